from __future__ import annotations

from typing import List, Optional, Tuple

from .dom import Node
from .errors import StructuralError
from .markdown_conv import clean_text
from .models import DocumentMetadata
from .urls import resolve_x_url

RICH_TEXT_TESTID = "twitterArticleRichTextView"
TITLE_TESTID = "twitter-article-title"
USER_NAME_TESTID = "User-Name"
VERIFIED_LABEL = "verified account"

STATUS_PATTERN = "/status/"
ANALYTICS_PATTERN = "/analytics"
ARTICLE_PATTERN = "/article/"


def _by_testid(testid: str):
    return lambda n: n.matches(data_testid=testid)


def find_article_roots(doc: Node) -> Tuple[Node, Node]:
    """
    定位文章富文本容器与其中的内容根节点（div[data-contents="true"]）。

    任一缺失都视为输入结构错误，在产生任何输出之前抛出 StructuralError。
    """
    rich_root = doc.find_first(_by_testid(RICH_TEXT_TESTID))
    if rich_root is None:
        raise StructuralError(
            f"未找到文章容器 [data-testid=\"{RICH_TEXT_TESTID}\"]，请确认保存的是 X 长文页面的完整 HTML"
        )

    content_root = rich_root.find_first(lambda n: n.matches("div", data_contents="true"))
    if content_root is None:
        raise StructuralError('找到了文章容器，但其中缺少富文本内容 div[data-contents="true"]')

    return rich_root, content_root


def extract_author_handle(doc: Node) -> Tuple[str, str]:
    user = doc.find_first(_by_testid(USER_NAME_TESTID))
    if user is None:
        return "", ""

    values = [clean_text(span.text_content) for span in user.find_all(lambda n: n.tag == "span")]
    author = ""
    handle = ""
    for value in values:
        if not value:
            continue
        if value.startswith("@"):
            if not handle:
                handle = value
            continue
        if not author and value.lower() != VERIFIED_LABEL:
            author = value
    return author, handle


def extract_published_at(doc: Node) -> str:
    node = doc.find_first(lambda n: "datetime" in n.attrs)
    return (node.get("datetime") or "") if node is not None else ""


def extract_source_url(doc: Node, page_url: str = "") -> str:
    """
    来源链接优先级：

    1. 第一个 /status/ 链接中不含 /analytics 的
    2. 第一个 /article/ 链接
    3. 第一个 /status/ 链接（即便是统计页）
    4. 页面自身地址
    """
    hrefs: List[str] = [a.get("href") or "" for a in doc.find_all(lambda n: n.tag == "a")]
    status_hrefs = [h for h in hrefs if STATUS_PATTERN in h]
    article_hrefs = [h for h in hrefs if ARTICLE_PATTERN in h]

    chosen: Optional[str] = next((h for h in status_hrefs if ANALYTICS_PATTERN not in h), None)
    if not chosen and article_hrefs:
        chosen = article_hrefs[0]
    if not chosen and status_hrefs:
        chosen = status_hrefs[0]
    return resolve_x_url(chosen or page_url or "")


def extract_metadata(doc: Node, page_url: str = "") -> DocumentMetadata:
    title_node = doc.find_first(_by_testid(TITLE_TESTID))
    title = clean_text(title_node.text_content) if title_node is not None else ""
    author, handle = extract_author_handle(doc)
    return DocumentMetadata(
        title=title,
        author=author,
        handle=handle,
        published_at=extract_published_at(doc),
        source_url=extract_source_url(doc, page_url),
    )
