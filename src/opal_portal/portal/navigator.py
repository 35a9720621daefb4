"""
Small tree-search helpers over a BeautifulSoup document.

Every lookup returns `None` when nothing matches; callers decide whether that is a structural failure.
"""

from __future__ import annotations

from typing import Callable, Optional, Union

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PageElement, PreformattedString, Tag


SOFT_HYPHEN = "\u00ad"

# Return True to descend into the node's children, False to skip them.
Visitor = Callable[[PageElement], bool]


def parse_document(raw: Union[bytes, str]) -> BeautifulSoup:
    return BeautifulSoup(raw, "lxml")


def each(node: PageElement, visit: Visitor) -> None:
    """
    Depth-first, pre-order walk from `node` (inclusive).
    """
    if not visit(node):
        return
    if isinstance(node, Tag):
        for kid in list(node.children):
            each(kid, visit)


def find(node: PageElement, pred: Callable[[Tag], bool]) -> Optional[Tag]:
    """
    First element (document order) under `node`, inclusive, for which `pred` holds.
    """
    if not isinstance(node, Tag):
        return None
    if pred(node):
        return node
    for kid in node.children:
        hit = find(kid, pred)
        if hit is not None:
            return hit
    return None


def attr_val(node: Tag, key: str) -> Optional[str]:
    val = node.attrs.get(key)
    if val is None:
        return None
    # Multi-valued attributes (class, rel, ...) come back as lists.
    if isinstance(val, (list, tuple)):
        return " ".join(val)
    return str(val)


def find_by_attr(node: PageElement, key: str, val: str) -> Optional[Tag]:
    return find(node, lambda n: attr_val(n, key) == val)


def find_by_tag(node: PageElement, name: str) -> Optional[Tag]:
    return find(node, lambda n: n.name == name)


def each_by_tag(node: PageElement, name: str, visit: Callable[[Tag], bool]) -> None:
    """
    Call `visit` for every `name` element under `node`; other elements are always descended into.
    """

    def _visit(n: PageElement) -> bool:
        if isinstance(n, Tag) and n.name == name:
            return visit(n)
        return True

    each(node, _visit)


def child_elements(node: Tag) -> list[Tag]:
    return [kid for kid in node.children if isinstance(kid, Tag)]


def is_text_node(node: PageElement) -> bool:
    # Comments, CDATA, doctypes etc. are NavigableStrings too, but not page text.
    return isinstance(node, NavigableString) and not isinstance(node, PreformattedString)


def text(node: PageElement) -> str:
    """
    Text of every text node under `node`, space-joined, with soft hyphens removed.
    """
    bits: list[str] = []

    def _visit(n: PageElement) -> bool:
        if is_text_node(n):
            bits.append(str(n))
        return True

    each(node, _visit)
    return " ".join(bits).replace(SOFT_HYPHEN, "")


def render(node: PageElement) -> str:
    return str(node)
