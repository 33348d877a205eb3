from __future__ import annotations

import json
import math
import os
from typing import Any, Optional

from .models import DEFAULT_IMAGE_DELAY_MS

SETTINGS_HOME_ENV = "X_ARTICLE_TO_MD_HOME"
SETTINGS_FILENAME = "settings.json"
_DELAY_KEY = "imageDelayMs"


def settings_path() -> str:
    home = os.environ.get(SETTINGS_HOME_ENV)
    if not home:
        home = os.path.join(os.path.expanduser("~"), ".config", "x-article-to-md")
    return os.path.join(home, SETTINGS_FILENAME)


def normalize_delay(value: Any, default: int = DEFAULT_IMAGE_DELAY_MS) -> int:
    """转为非负整数毫秒；无法解析（含 NaN/inf、布尔值）时回退默认值。"""
    if isinstance(value, bool) or value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return max(0, int(math.floor(number)))


def load_image_delay(path: Optional[str] = None) -> int:
    path = path or settings_path()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError):
        return DEFAULT_IMAGE_DELAY_MS
    if not isinstance(data, dict):
        return DEFAULT_IMAGE_DELAY_MS
    return normalize_delay(data.get(_DELAY_KEY))


def save_image_delay(delay_ms: int, path: Optional[str] = None) -> str:
    path = path or settings_path()
    data: dict = {}
    if os.path.isfile(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                loaded = json.load(f)
            if isinstance(loaded, dict):
                data = loaded
        except (OSError, ValueError):
            data = {}
    data[_DELAY_KEY] = normalize_delay(delay_ms)
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
    return path
