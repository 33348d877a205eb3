from __future__ import annotations

from typing import Dict, List

from .models import ImageRef
from .urls import canonicalize_image_url, infer_image_ext, resolve_x_url


class ImageRegistry:
    """
    单次转换内的图片身份与命名登记表。

    以规范化 URL 为键，首次遇到时分配序号与文件名（image-01.jpg ...），重复引用直接复用。
    只追加、不共享：每次转换新建一个实例，非线程安全。
    """

    def __init__(self) -> None:
        self._by_url: Dict[str, ImageRef] = {}
        self._refs: List[ImageRef] = []

    def register(self, raw_url: str) -> str:
        original_url = resolve_x_url(raw_url)
        canonical_url = canonicalize_image_url(original_url)

        existing = self._by_url.get(canonical_url)
        if existing is not None:
            return existing.filename

        ordinal = len(self._refs) + 1
        ref = ImageRef(
            ordinal=ordinal,
            canonical_url=canonical_url,
            original_url=original_url,
            filename=f"image-{ordinal:02d}.{infer_image_ext(canonical_url)}",
        )
        self._refs.append(ref)
        self._by_url[canonical_url] = ref
        return ref.filename

    @property
    def images(self) -> List[ImageRef]:
        return list(self._refs)

    def __len__(self) -> int:
        return len(self._refs)
