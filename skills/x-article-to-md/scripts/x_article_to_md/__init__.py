"""x_article_to_md package."""

from .article import export_article, extract_article
from .errors import ImageFetchError, PayloadValidationError, StructuralError, XArticleError
from .models import DocumentMetadata, ExportConfig, ExportPayload, ExportResult, ImageRef

__all__ = [
    "DocumentMetadata",
    "ExportConfig",
    "ExportPayload",
    "ExportResult",
    "ImageFetchError",
    "ImageRef",
    "PayloadValidationError",
    "StructuralError",
    "XArticleError",
    "export_article",
    "extract_article",
]
