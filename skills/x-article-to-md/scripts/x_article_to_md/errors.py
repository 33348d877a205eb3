from __future__ import annotations

from typing import Optional


class XArticleError(RuntimeError):
    """导出流程中的致命错误基类（CLI 统一映射为退出码 1）"""


class StructuralError(XArticleError):
    """页面缺少文章富文本容器或内容容器"""


class PayloadValidationError(XArticleError, ValueError):
    """导出载荷缺少必需字段"""


class ImageFetchError(XArticleError):
    """主 URL 与回退 URL 均下载失败"""

    def __init__(
        self,
        filename: str,
        message: str,
        *,
        primary_error: Optional[BaseException] = None,
        fallback_error: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.filename = filename
        self.primary_error = primary_error
        self.fallback_error = fallback_error
