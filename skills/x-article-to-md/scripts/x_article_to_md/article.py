from __future__ import annotations

import datetime
import os
from typing import Callable, Optional

from .dom import parse_html
from .errors import PayloadValidationError
from .extractors import extract_metadata, find_article_roots
from .images import Transport, download_images
from .markdown_conv import ParseContext, parse_content_blocks
from .models import ExportConfig, ExportPayload, ExportResult, ImageRef
from .output import FilesystemSink, build_folder_name, build_markdown


def extract_article(page_html: str, page_url: str = "", config: Optional[ExportConfig] = None) -> ExportPayload:
    """
    解析保存下来的 X 长文页面，生成 Markdown 与待下载图片清单。

    只做转换、不落盘；结构缺失时抛出 StructuralError。
    """
    config = config or ExportConfig()
    doc = parse_html(page_html)
    _, content_root = find_article_roots(doc)

    ctx = ParseContext()
    metadata = extract_metadata(doc, page_url)
    blocks = parse_content_blocks(content_root, ctx)
    markdown = build_markdown(metadata, blocks, default_title=config.default_title)

    return ExportPayload(
        title=metadata.title or config.default_title,
        published_at=metadata.published_at,
        source_url=metadata.source_url,
        markdown=markdown,
        images=ctx.registry.images,
    )


def resolve_base_dir(
    payload: ExportPayload,
    output_dir: str,
    config: ExportConfig,
    now: Optional[datetime.datetime] = None,
) -> str:
    if config.flat:
        return output_dir
    return os.path.join(output_dir, build_folder_name(payload.title, payload.published_at, now))


def export_article(
    payload: ExportPayload,
    sink: FilesystemSink,
    transport: Transport,
    config: Optional[ExportConfig] = None,
    *,
    sleep: Optional[Callable[[float], None]] = None,
    progress_callback: Optional[Callable[[int, int, ImageRef], None]] = None,
) -> ExportResult:
    """先写 article.md，再逐张下载图片；图片失败时已写文件不回滚。"""
    config = config or ExportConfig()
    if not isinstance(payload.markdown, str):
        raise PayloadValidationError("载荷无效：缺少 markdown 文本")

    markdown_path = sink.write_markdown(payload.markdown)
    download_images(
        payload.images,
        transport,
        sink,
        config.image_delay_ms,
        jitter_ms=config.jitter_ms,
        sleep=sleep,
        progress_callback=progress_callback,
    )
    return ExportResult(
        base_dir=sink.base_dir,
        markdown_path=markdown_path,
        image_dir=sink.image_dir,
        image_count=len(payload.images),
        delay_ms=config.image_delay_ms,
    )
