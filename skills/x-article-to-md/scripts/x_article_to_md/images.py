from __future__ import annotations

import logging
import random
import time
from typing import Callable, List, Optional, Protocol, Sequence

from .errors import ImageFetchError
from .models import DEFAULT_JITTER_MS, ImageRef

logger = logging.getLogger(__name__)


class Transport(Protocol):
    def fetch(self, url: str) -> bytes: ...


class ImageSink(Protocol):
    def write_image(self, filename: str, data: bytes) -> str: ...


def fetch_image_bytes(transport: Transport, image: ImageRef) -> bytes:
    """
    先取规范化 URL（原图），失败后换原始 URL 再试一次。

    两者都失败时抛出 ImageFetchError，错误信息带上具体文件名；不跳过、不替换。
    """
    primary_error: Optional[Exception] = None
    if image.canonical_url:
        try:
            return transport.fetch(image.canonical_url)
        except Exception as e:
            primary_error = e
            logger.debug("primary fetch failed for %s (%s): %s", image.filename, image.canonical_url, e)

    if not image.original_url:
        if primary_error is None:
            raise ImageFetchError(image.filename, f"缺少图片 URL：{image.filename}")
        raise ImageFetchError(
            image.filename,
            f"图片下载失败：{image.filename}（{image.canonical_url}）：{primary_error}",
            primary_error=primary_error,
        ) from primary_error

    try:
        data = transport.fetch(image.original_url)
    except Exception as e:
        raise ImageFetchError(
            image.filename,
            f"图片下载失败：{image.filename}（{image.original_url}）：{e}",
            primary_error=primary_error,
            fallback_error=e,
        ) from e
    if primary_error is not None:
        logger.info("fetched %s from fallback url %s", image.filename, image.original_url)
    return data


def throttle_delay_ms(delay_ms: int, jitter_ms: int = DEFAULT_JITTER_MS) -> int:
    jitter = random.randrange(jitter_ms) if jitter_ms > 0 else 0
    return delay_ms + jitter


def download_images(
    images: Sequence[ImageRef],
    transport: Transport,
    sink: ImageSink,
    delay_ms: int,
    *,
    jitter_ms: int = DEFAULT_JITTER_MS,
    sleep: Optional[Callable[[float], None]] = None,
    progress_callback: Optional[Callable[[int, int, ImageRef], None]] = None,
) -> List[str]:
    """
    按文档顺序逐张下载并交给 sink 落盘，严格串行。

    相邻两张之间（最后一张之后不等）休眠 delay_ms + [0, jitter_ms) 毫秒，
    让请求节奏接近正常浏览；delay_ms 为 0 时不休眠。
    任一张失败即中止，已写入的文件保留。
    """
    sleep = sleep or time.sleep
    written: List[str] = []
    total = len(images)

    for idx, image in enumerate(images, start=1):
        if progress_callback:
            progress_callback(idx, total, image)

        data = fetch_image_bytes(transport, image)
        written.append(sink.write_image(image.filename, data))

        if idx < total and delay_ms > 0:
            wait_ms = throttle_delay_ms(delay_ms, jitter_ms)
            logger.debug("sleeping %d ms before next image", wait_ms)
            sleep(wait_ms / 1000.0)

    return written
