from __future__ import annotations

import datetime
import os
import re
from typing import List, Optional, Sequence

from .models import DEFAULT_TITLE, ContentBlock, DocumentMetadata, ValidationResult

FALLBACK_FOLDER_TITLE = "x-article"
MAX_TITLE_LEN = 120
MARKDOWN_FILENAME = "article.md"
IMAGES_DIRNAME = "images"

_UNSAFE_CHARS_RE = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def build_markdown(
    metadata: DocumentMetadata,
    blocks: Sequence[ContentBlock],
    default_title: str = DEFAULT_TITLE,
) -> str:
    sections: List[str] = [f"# {metadata.title or default_title}"]

    if metadata.has_byline():
        lines = []
        if metadata.author:
            lines.append(f"- Author: {metadata.author}")
        if metadata.handle:
            lines.append(f"- Handle: {metadata.handle}")
        if metadata.published_at:
            lines.append(f"- Published: {metadata.published_at}")
        if metadata.source_url:
            lines.append(f"- Source: {metadata.source_url}")
        sections.append("\n".join(lines))

    sections.extend(block.to_markdown() for block in blocks)
    return "\n\n".join(sections).rstrip() + "\n"


def sanitize_filename(text: Optional[str], fallback: str = FALLBACK_FOLDER_TITLE) -> str:
    """替换文件系统不安全字符为 -，合并空白，空结果回退为 fallback，最长 120 字符。"""
    cleaned = _UNSAFE_CHARS_RE.sub("-", text or fallback)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    return (cleaned or fallback)[:MAX_TITLE_LEN]


def _parse_iso_datetime(value: str) -> Optional[datetime.datetime]:
    value = (value or "").strip()
    if not value:
        return None
    # fromisoformat 在 3.11 之前不认 Z 后缀
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        return datetime.datetime.fromisoformat(value)
    except ValueError:
        return None


def format_date_prefix(published_at: str, now: Optional[datetime.datetime] = None) -> str:
    parsed = _parse_iso_datetime(published_at)
    if parsed is not None:
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(datetime.timezone.utc)
        return parsed.strftime("%Y-%m-%d")
    current = now or datetime.datetime.now(datetime.timezone.utc)
    return current.strftime("%Y-%m-%d")


def build_folder_name(title: str, published_at: str, now: Optional[datetime.datetime] = None) -> str:
    return f"{format_date_prefix(published_at, now)}-{sanitize_filename(title or FALLBACK_FOLDER_TITLE)}"


class FilesystemSink:
    """
    导出落盘端：<base_dir>/article.md 与 <base_dir>/images/<filename>。

    写入先落到 .part 临时文件再原子替换；失败时 OSError 直接向上抛出。
    """

    def __init__(self, base_dir: str) -> None:
        self.base_dir = base_dir
        self.image_dir = os.path.join(base_dir, IMAGES_DIRNAME)
        self.markdown_path = os.path.join(base_dir, MARKDOWN_FILENAME)

    def _write_bytes(self, path: str, data: bytes) -> str:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        tmp_path = path + ".part"
        try:
            with open(tmp_path, "wb") as f:
                f.write(data)
            os.replace(tmp_path, path)
        finally:
            if os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError:
                    pass
        return path

    def write_markdown(self, markdown: str) -> str:
        return self._write_bytes(self.markdown_path, markdown.encode("utf-8"))

    def write_image(self, filename: str, data: bytes) -> str:
        safe_name = sanitize_filename(filename, fallback="image.jpg")
        return self._write_bytes(os.path.join(self.image_dir, safe_name), data)


def validate_markdown(md_path: str, image_dir: str) -> ValidationResult:
    with open(md_path, "r", encoding="utf-8") as f:
        text = f.read()

    refs = [r.strip() for r in re.findall(r"!\[[^\]]*\]\(([^)]+)\)", text)]
    local_refs = [r for r in refs if not re.match(r"^[a-z]+://", r, re.IGNORECASE)]

    missing: List[str] = []
    for r in local_refs:
        p = os.path.normpath(os.path.join(os.path.dirname(md_path), r))
        if not os.path.exists(p):
            missing.append(r)

    image_files = 0
    if os.path.isdir(image_dir):
        image_files = len([f for f in os.listdir(image_dir) if os.path.isfile(os.path.join(image_dir, f))])

    return ValidationResult(
        image_refs=len(refs),
        local_image_refs=len(local_refs),
        image_files=image_files,
        missing_files=missing,
    )
