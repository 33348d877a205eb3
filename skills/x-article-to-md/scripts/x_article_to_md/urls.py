from __future__ import annotations

import posixpath
import re
from urllib.parse import parse_qsl, urlencode, urlparse

X_ORIGIN = "https://x.com"
MEDIA_HOST = "pbs.twimg.com"
DEFAULT_IMAGE_EXT = "jpg"

_ABSOLUTE_HTTP_RE = re.compile(r"^https?://", re.IGNORECASE)
_ALNUM_RE = re.compile(r"^[A-Za-z0-9]+$")


def resolve_x_url(href: str) -> str:
    """
    站内链接补全：

    - http/https 绝对地址原样返回
    - 以 / 开头的站内路径补全为 https://x.com/...
    - 其他形式（mailto:、相对路径等）原样返回
    """
    if not href:
        return ""
    if _ABSOLUTE_HTTP_RE.match(href):
        return href
    if href.startswith("/"):
        return f"{X_ORIGIN}{href}"
    return href


def canonicalize_image_url(raw_url: str) -> str:
    """
    图片 URL 规范化：pbs.twimg.com 上带 name= 尺寸参数的地址统一改写为 name=orig（原图）。

    规范化结果作为图片去重的身份键；解析失败时原样返回，不抛异常。
    """
    try:
        resolved = resolve_x_url(raw_url)
        p = urlparse(resolved)
        if MEDIA_HOST not in (p.hostname or ""):
            return resolved
        pairs = parse_qsl(p.query, keep_blank_values=True)
        if not any(k == "name" for k, _ in pairs):
            return resolved
        rewritten = []
        seen_name = False
        for k, v in pairs:
            if k == "name":
                # 多个 name 参数合并为一个
                if seen_name:
                    continue
                seen_name = True
                v = "orig"
            rewritten.append((k, v))
        return p._replace(query=urlencode(rewritten)).geturl()
    except Exception:
        return raw_url


def infer_image_ext(url: str) -> str:
    """优先取 format= 查询参数，其次取路径扩展名，都不可用时回退 jpg。"""
    try:
        p = urlparse(url)
        for k, v in parse_qsl(p.query, keep_blank_values=True):
            if k == "format":
                if v and _ALNUM_RE.match(v):
                    return v.lower()
                break
        ext = posixpath.splitext(p.path)[1].lstrip(".")
        if ext and _ALNUM_RE.match(ext):
            return ext.lower()
    except Exception:
        pass
    return DEFAULT_IMAGE_EXT
