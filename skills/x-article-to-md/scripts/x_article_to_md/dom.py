"""最小节点树：解析逻辑只依赖这里的 Node 接口，宿主 HTML 解析器通过适配器转换进来。"""

from __future__ import annotations

from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

ELEMENT = "element"
TEXT = "text"
COMMENT = "comment"
DOCUMENT = "document"

VOID_TAGS = {
    "area",
    "base",
    "br",
    "col",
    "embed",
    "hr",
    "img",
    "input",
    "link",
    "meta",
    "param",
    "source",
    "track",
    "wbr",
}

# 遇到这些开始标签时隐式关闭未闭合的 <p>
_CLOSES_P = {
    "address",
    "article",
    "aside",
    "blockquote",
    "div",
    "figure",
    "footer",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "header",
    "hr",
    "main",
    "nav",
    "ol",
    "p",
    "pre",
    "section",
    "table",
    "ul",
}


@dataclass(eq=False)
class Node:
    kind: str
    tag: str = ""
    attrs: Dict[str, str] = field(default_factory=dict)
    children: List["Node"] = field(default_factory=list)
    data: str = ""
    parent: Optional["Node"] = field(default=None, repr=False)

    @property
    def is_element(self) -> bool:
        return self.kind == ELEMENT

    @property
    def text_content(self) -> str:
        if self.kind == TEXT:
            return self.data
        if self.kind == COMMENT:
            return ""
        return "".join(child.text_content for child in self.children)

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.attrs.get(name, default)

    def class_list(self) -> List[str]:
        return [c for c in (self.attrs.get("class") or "").split() if c]

    def has_class(self, name: str) -> bool:
        return name in self.class_list()

    def matches(self, tag: Optional[str] = None, cls: Optional[str] = None, **attrs: Optional[str]) -> bool:
        """简单选择器匹配：标签名、class 以及属性精确值（属性值为 None 时只要求存在）"""
        if not self.is_element:
            return False
        if tag and self.tag != tag:
            return False
        if cls and not self.has_class(cls):
            return False
        for key, value in attrs.items():
            name = key.replace("_", "-")
            if name not in self.attrs:
                return False
            if value is not None and self.attrs[name] != value:
                return False
        return True

    def element_children(self) -> List["Node"]:
        return [c for c in self.children if c.is_element]

    def iter_descendants(self) -> Iterator["Node"]:
        """文档顺序（先序）遍历所有后代，不含自身"""
        stack = list(reversed(self.children))
        while stack:
            node = stack.pop()
            yield node
            if node.children:
                stack.extend(reversed(node.children))

    def find_all(self, predicate: Callable[["Node"], bool]) -> List["Node"]:
        return [n for n in self.iter_descendants() if n.is_element and predicate(n)]

    def find_first(self, predicate: Callable[["Node"], bool]) -> Optional["Node"]:
        for n in self.iter_descendants():
            if n.is_element and predicate(n):
                return n
        return None

    def append(self, child: "Node") -> None:
        child.parent = self
        self.children.append(child)


class _TreeBuilder(HTMLParser):
    """把 HTMLParser 的事件流组装成 Node 树（实体已由 convert_charrefs 解码）"""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.root = Node(kind=DOCUMENT)
        self.stack: List[Node] = [self.root]

    @property
    def current(self) -> Node:
        return self.stack[-1]

    @staticmethod
    def _attrs(attrs_list: Sequence[Tuple[str, Optional[str]]]) -> Dict[str, str]:
        out: Dict[str, str] = {}
        for name, value in attrs_list:
            if not name:
                continue
            # 重复属性以第一次出现为准（与浏览器一致）
            out.setdefault(name.lower(), "" if value is None else value)
        return out

    def _close(self, tag: str) -> None:
        for i in range(len(self.stack) - 1, 0, -1):
            if self.stack[i].tag == tag:
                del self.stack[i:]
                return

    def handle_starttag(self, tag: str, attrs_list: Sequence[Tuple[str, Optional[str]]]) -> None:
        tag = tag.lower()
        if tag in _CLOSES_P and self.current.tag == "p":
            self.stack.pop()
        node = Node(kind=ELEMENT, tag=tag, attrs=self._attrs(attrs_list))
        self.current.append(node)
        if tag not in VOID_TAGS:
            self.stack.append(node)

    def handle_startendtag(self, tag: str, attrs_list: Sequence[Tuple[str, Optional[str]]]) -> None:
        # <div/> 之类的自闭合写法不入栈，避免吞掉后续兄弟节点
        node = Node(kind=ELEMENT, tag=tag.lower(), attrs=self._attrs(attrs_list))
        self.current.append(node)

    def handle_endtag(self, tag: str) -> None:
        tag = tag.lower()
        if tag in VOID_TAGS:
            return
        self._close(tag)

    def handle_data(self, data: str) -> None:
        if not data:
            return
        last = self.current.children[-1] if self.current.children else None
        if last is not None and last.kind == TEXT:
            last.data += data
            return
        self.current.append(Node(kind=TEXT, data=data))

    def handle_comment(self, data: str) -> None:
        self.current.append(Node(kind=COMMENT, data=data))


def parse_html(page_html: str) -> Node:
    """解析 HTML 字符串，返回文档根节点"""
    builder = _TreeBuilder()
    builder.feed(page_html or "")
    builder.close()
    return builder.root
