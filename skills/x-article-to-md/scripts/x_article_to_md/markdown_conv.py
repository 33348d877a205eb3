from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Set

from .dom import ELEMENT, TEXT, Node
from .models import BlockQuote, ContentBlock, Heading, ImageGroup, Paragraph
from .registry import ImageRegistry
from .urls import canonicalize_image_url, resolve_x_url

PARAGRAPH_CLASS = "longform-unstyled"
BLOCKQUOTE_CLASS = "longform-blockquote"
HEADING_CLASS = "longform-header-two"
DEFAULT_ALT = "Image"

_WS_RE = re.compile(r"\s+")
_BOLD_RE = re.compile(r"font-weight\s*:\s*(bold|[6-9]00)")
_ITALIC_RE = re.compile(r"font-style\s*:\s*italic")


@dataclass
class ParseContext:
    """一次转换的解析状态，按引用传入每一层递归"""

    registry: ImageRegistry = field(default_factory=ImageRegistry)


def clean_text(value: Optional[str]) -> str:
    if not value:
        return ""
    return _WS_RE.sub(" ", value.replace("\u00a0", " ")).strip()


def apply_inline_style(text: str, style: Optional[str]) -> str:
    """
    按 span 的 style 声明包裹粗体/斜体：

    - font-weight 为 bold 或 600~900 → 粗体
    - font-style 为 italic → 斜体
    - 同时满足 → ***text***

    只做宽松的正则匹配，不解析完整 CSS。
    """
    if not text:
        return ""
    normalized = (style or "").lower()
    is_bold = bool(_BOLD_RE.search(normalized))
    is_italic = bool(_ITALIC_RE.search(normalized))
    if is_bold and is_italic:
        return f"***{text}***"
    if is_bold:
        return f"**{text}**"
    if is_italic:
        return f"*{text}*"
    return text


def image_markdown(node: Node, ctx: ParseContext) -> str:
    src = node.get("src")
    if not src:
        return ""
    alt = clean_text(node.get("alt")) or DEFAULT_ALT
    filename = ctx.registry.register(src)
    return f"![{alt}](images/{filename})"


def render_children(node: Node, ctx: ParseContext) -> str:
    return "".join(render_inline(child, ctx) for child in node.children)


def render_inline(node: Node, ctx: ParseContext) -> str:
    if node.kind == TEXT:
        return node.data
    if node.kind != ELEMENT:
        return ""

    tag = node.tag
    if tag == "br":
        return "\n"
    if tag == "img":
        return image_markdown(node, ctx)
    if tag == "a":
        href = resolve_x_url(node.get("href") or "")
        label = clean_text(render_children(node, ctx))
        if not label:
            return href
        if not href:
            return label
        return f"[{label}]({href})"

    child_text = render_children(node, ctx)
    if tag == "span":
        return apply_inline_style(child_text, node.get("style"))
    return child_text


# ---------------------------------------------------------------------------
# 块级解析：只看内容根节点的直接子元素，块内部一律按行内渲染
# ---------------------------------------------------------------------------


def parse_paragraph(el: Node, ctx: ParseContext) -> Optional[Paragraph]:
    text = clean_text(render_children(el, ctx))
    return Paragraph(text) if text else None


def parse_blockquote(el: Node, ctx: ParseContext) -> Optional[BlockQuote]:
    lines: List[str] = []
    blocks = [c for c in el.element_children() if c.tag == "div"]
    if blocks:
        for block in blocks:
            text = clean_text(render_children(block, ctx))
            if text:
                lines.append(text)
    else:
        text = clean_text(render_children(el, ctx))
        if text:
            lines.append(text)
    return BlockQuote(lines) if lines else None


def parse_image_section(el: Node, ctx: ParseContext) -> Optional[ImageGroup]:
    parts: List[str] = []
    seen_in_block: Set[str] = set()

    for img in el.find_all(lambda n: n.tag == "img" and "src" in n.attrs):
        src = img.get("src")
        if not src:
            continue
        canonical = canonicalize_image_url(resolve_x_url(src))
        if canonical in seen_in_block:
            continue
        seen_in_block.add(canonical)
        parts.append(image_markdown(img, ctx))

    return ImageGroup("\n\n".join(parts)) if parts else None


def _is_heading(node: Node) -> bool:
    return node.matches("h2", HEADING_CLASS)


def parse_heading(el: Node) -> Optional[Heading]:
    h2 = el if _is_heading(el) else el.find_first(_is_heading)
    if h2 is None:
        return None
    heading = clean_text(h2.text_content)
    return Heading(heading) if heading else None


def parse_content_blocks(content_root: Node, ctx: ParseContext) -> List[ContentBlock]:
    blocks: List[ContentBlock] = []

    for el in content_root.element_children():
        block: Optional[ContentBlock] = None
        if el.has_class(PARAGRAPH_CLASS):
            block = parse_paragraph(el, ctx)
        elif el.tag == "blockquote" and el.has_class(BLOCKQUOTE_CLASS):
            block = parse_blockquote(el, ctx)
        elif el.tag == "section":
            block = parse_image_section(el, ctx)
        elif el.find_first(_is_heading) is not None:
            block = parse_heading(el)
        if block is not None:
            blocks.append(block)

    return blocks
