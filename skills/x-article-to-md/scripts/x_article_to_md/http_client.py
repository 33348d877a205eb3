from __future__ import annotations

from typing import Dict, Optional

import requests

_DEFAULT_MAX_IMAGE_BYTES = 25 * 1024 * 1024  # 25MB/张；设为 0 表示不限制

UA_PRESETS: Dict[str, str] = {
    "tool": "Mozilla/5.0 (compatible; export_x_article/1.0)",
    "edge-win": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36 Edg/120.0.0.0"
    ),
    "chrome-win": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "firefox-win": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:122.0) "
        "Gecko/20100101 Firefox/122.0"
    ),
    "chrome-mac": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "safari-mac": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/605.1.15 (KHTML, like Gecko) "
        "Version/17.3 Safari/605.1.15"
    ),
}


def _resolve_user_agent(user_agent: Optional[str], ua_preset: str) -> str:
    if user_agent and user_agent.strip():
        return user_agent.strip()
    return UA_PRESETS.get(ua_preset, UA_PRESETS["chrome-win"])


def create_session(
    ua_preset: str = "chrome-win",
    user_agent: Optional[str] = None,
    referer_url: Optional[str] = None,
) -> requests.Session:
    """创建用于下载图片的 requests.Session"""
    session = requests.Session()
    session.headers.update(
        {
            "User-Agent": _resolve_user_agent(user_agent, ua_preset),
            "Accept": "image/avif,image/webp,image/apng,image/*,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9,zh-CN;q=0.8,zh;q=0.7",
        }
    )
    if referer_url:
        session.headers.setdefault("Referer", referer_url)
    return session


class RequestsTransport:
    """
    单次 GET 获取完整响应体。

    非 2xx 状态、网络异常、超出体积上限都直接抛出，由调用方决定是否换用回退 URL；
    这里不做重试。
    """

    def __init__(
        self,
        session: requests.Session,
        timeout_s: int = 30,
        *,
        max_bytes: int = _DEFAULT_MAX_IMAGE_BYTES,
    ) -> None:
        self.session = session
        self.timeout_s = timeout_s
        self.max_bytes: Optional[int] = max_bytes if (max_bytes and max_bytes > 0) else None

    def fetch(self, url: str) -> bytes:
        r: Optional[requests.Response] = None
        try:
            r = self.session.get(url, timeout=self.timeout_s, stream=True)
            r.raise_for_status()

            if self.max_bytes is not None:
                cl = r.headers.get("Content-Length")
                if cl:
                    try:
                        if int(cl) > self.max_bytes:
                            raise RuntimeError(f"图片过大（Content-Length={cl} > {self.max_bytes} bytes）：{url}")
                    except ValueError:
                        pass

            buf = bytearray()
            for chunk in r.iter_content(chunk_size=1024 * 64):
                if not chunk:
                    continue
                buf.extend(chunk)
                if self.max_bytes is not None and len(buf) > self.max_bytes:
                    raise RuntimeError(f"图片过大（>{self.max_bytes} bytes）：{url}")
            return bytes(buf)
        finally:
            if r is not None:
                try:
                    r.close()
                except Exception:
                    pass
