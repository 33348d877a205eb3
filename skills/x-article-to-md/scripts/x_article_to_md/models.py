from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

from .errors import PayloadValidationError

DEFAULT_TITLE = "Untitled X Article"
DEFAULT_IMAGE_DELAY_MS = 1200
DEFAULT_JITTER_MS = 250


@dataclass
class DocumentMetadata:
    title: str = ""
    author: str = ""
    handle: str = ""
    published_at: str = ""  # ISO-8601，缺失时为空串
    source_url: str = ""

    def has_byline(self) -> bool:
        """作者/账号/时间/来源任一非空时才输出元数据区块"""
        return bool(self.author or self.handle or self.published_at or self.source_url)


@dataclass
class Paragraph:
    text: str

    def to_markdown(self) -> str:
        return self.text


@dataclass
class Heading:
    text: str

    def to_markdown(self) -> str:
        return f"## {self.text}"


@dataclass
class BlockQuote:
    lines: List[str]

    def to_markdown(self) -> str:
        return "\n".join(f"> {line}" for line in self.lines)


@dataclass
class ImageGroup:
    markdown: str

    def to_markdown(self) -> str:
        return self.markdown


ContentBlock = Union[Paragraph, Heading, BlockQuote, ImageGroup]


@dataclass
class ImageRef:
    ordinal: int
    canonical_url: str
    original_url: str
    filename: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "url": self.canonical_url,
            "fallbackUrl": self.original_url,
            "filename": self.filename,
        }


@dataclass
class ExportPayload:
    """转换引擎交给持久化端的载荷"""

    title: str
    published_at: str
    source_url: str
    markdown: str
    images: List[ImageRef] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "publishedAt": self.published_at,
            "sourceUrl": self.source_url,
            "markdown": self.markdown,
            "images": [img.to_dict() for img in self.images],
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ExportPayload":
        """从 JSON 对象还原载荷；markdown 必须为字符串，图片条目必须带 filename。"""
        if not isinstance(data, dict):
            raise PayloadValidationError("载荷无效：必须是 JSON 对象")
        markdown = data.get("markdown")
        if not isinstance(markdown, str):
            raise PayloadValidationError("载荷无效：缺少 markdown 文本")

        raw_images = data.get("images") or []
        if not isinstance(raw_images, list):
            raise PayloadValidationError("载荷无效：images 必须是数组")

        images: List[ImageRef] = []
        for idx, item in enumerate(raw_images, start=1):
            if not isinstance(item, dict):
                raise PayloadValidationError(f"载荷无效：第 {idx} 个图片条目不是对象")
            filename = item.get("filename") or f"image-{idx:02d}.jpg"
            if not isinstance(filename, str):
                raise PayloadValidationError(f"载荷无效：第 {idx} 个图片的 filename 不是字符串")
            images.append(
                ImageRef(
                    ordinal=idx,
                    canonical_url=str(item.get("url") or ""),
                    original_url=str(item.get("fallbackUrl") or ""),
                    filename=filename,
                )
            )

        return cls(
            title=str(data.get("title") or ""),
            published_at=str(data.get("publishedAt") or ""),
            source_url=str(data.get("sourceUrl") or ""),
            markdown=markdown,
            images=images,
        )


@dataclass
class ExportConfig:
    """单次导出的配置，默认值只在入口处生效"""

    image_delay_ms: int = DEFAULT_IMAGE_DELAY_MS
    jitter_ms: int = DEFAULT_JITTER_MS
    timeout: int = 30
    max_image_bytes: int = 25 * 1024 * 1024
    default_title: str = DEFAULT_TITLE
    ua_preset: str = "chrome-win"
    flat: bool = False  # 直接写入输出目录，不建日期子目录


@dataclass
class ExportResult:
    base_dir: str
    markdown_path: str
    image_dir: str
    image_count: int
    delay_ms: int


@dataclass
class ValidationResult:
    image_refs: int
    local_image_refs: int
    image_files: int
    missing_files: List[str]
