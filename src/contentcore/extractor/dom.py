"""
Minimal node-capability layer over BeautifulSoup and soupsieve.

Everything the cleaner, detector and adapters need from a document tree is
funnelled through here: selector queries that skip invalid selectors instead
of raising, a stack-based walker with descend/skip/accept verdicts, and a
coarse layout estimator standing in for rendered element geometry.
"""

from __future__ import annotations

import re
from enum import Enum
from functools import lru_cache
from typing import Callable, Dict, List, Optional, Sequence, Union
from urllib.parse import urljoin, urlsplit

import soupsieve
import structlog
from bs4 import BeautifulSoup, NavigableString, Tag

from ..protocols import Bounds

logger = structlog.get_logger(__name__)

Node = Union[BeautifulSoup, Tag]

VIEWPORT_WIDTH = 1024
VIEWPORT_HEIGHT = 768
CHARS_PER_LINE = 80
LINE_HEIGHT = 20
DEFAULT_MEDIA_HEIGHT = 150

MEDIA_TAGS = frozenset({"img", "video", "iframe", "embed", "object", "canvas", "svg", "audio"})
NON_RENDERED_TAGS = frozenset({"script", "style", "noscript", "template", "head", "title", "meta", "link"})
ROOT_TAGS = frozenset({"html", "body", "[document]"})

_WHITESPACE = re.compile(r"\s+")


def parse_html(markup: str, parser: str = "html.parser") -> BeautifulSoup:
    """Parse raw markup into a navigable document."""
    return BeautifulSoup(markup or "", parser)


# ============================================================================
# URLs
# ============================================================================


def url_host(url: str) -> Optional[str]:
    """Lower-cased host of ``url``, or ``None`` when it has none or is malformed."""
    try:
        return urlsplit(url).hostname
    except ValueError:
        return None


def resolve_url(url: str, base_url: str = "") -> Optional[str]:
    """
    ``url`` made absolute against ``base_url``.

    Protocol-relative URLs get https. Returns ``None`` for malformed URLs
    such as an unclosed IPv6 bracket.
    """
    url = url.strip()
    if url.startswith("//"):
        url = "https:" + url
    try:
        urlsplit(url)
        return urljoin(base_url, url) if base_url else url
    except ValueError:
        logger.debug("Skipping malformed URL", url=url)
        return None


# ============================================================================
# Selector queries
# ============================================================================


@lru_cache(maxsize=512)
def _compile(selector: str) -> Optional[soupsieve.SoupSieve]:
    try:
        return soupsieve.compile(selector)
    except (soupsieve.SelectorSyntaxError, NotImplementedError, ValueError) as e:
        logger.debug("Skipping invalid selector", selector=selector, error=str(e))
        return None


def select_all(root: Node, selector: str) -> List[Tag]:
    pattern = _compile(selector)
    if pattern is None:
        return []
    return pattern.select(root)


def select_one(root: Node, selector: str) -> Optional[Tag]:
    pattern = _compile(selector)
    if pattern is None:
        return None
    return pattern.select_one(root)


def matches(el: Tag, selector: str) -> bool:
    pattern = _compile(selector)
    return pattern is not None and pattern.match(el)


def closest(el: Tag, selector: str) -> Optional[Tag]:
    """Nearest ancestor-or-self matching ``selector``."""
    pattern = _compile(selector)
    if pattern is None:
        return None
    return pattern.closest(el)


def has_match(root: Node, selector: str) -> bool:
    return select_one(root, selector) is not None


# ============================================================================
# Node helpers
# ============================================================================


def text_of(el: Node) -> str:
    """Concatenated text of all descendant text nodes."""
    return el.get_text()


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def remove(el: Tag) -> bool:
    """Detach and destroy ``el``. Removing an already removed node is a no-op."""
    if el.decomposed:
        return False
    el.decompose()
    return True


def remove_all(root: Node, selectors: Sequence[str]) -> int:
    removed = 0
    for selector in selectors:
        for el in select_all(root, selector):
            if remove(el):
                removed += 1
    return removed


def element_children(el: Node) -> List[Tag]:
    return [child for child in el.children if isinstance(child, Tag)]


def class_list(el: Tag) -> List[str]:
    classes = el.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    return list(classes)


def inner_html(el: Tag) -> str:
    return el.decode_contents().strip()


def document_title(doc: Node) -> str:
    title = doc.find("title")
    return collapse_whitespace(title.get_text()) if title else ""


def selector_path(el: Tag) -> str:
    """Structural selector path used for traceability.

    Stops at the first ancestor carrying an id. Otherwise each step is the
    tag name, up to two short classes and an ``:nth-child`` position.
    """
    path: List[str] = []
    current: Optional[Tag] = el
    while current is not None and current.name not in ROOT_TAGS:
        el_id = current.get("id")
        if el_id:
            path.insert(0, f"#{el_id}")
            break

        step = current.name
        classes = [c for c in class_list(current) if "_" not in c and len(c) < 20][:2]
        if classes:
            step += "." + ".".join(classes)

        parent = current.parent
        if parent is not None:
            siblings = element_children(parent)
            if len(siblings) > 1:
                position = next(i for i, sibling in enumerate(siblings) if sibling is current)
                step += f":nth-child({position + 1})"

        path.insert(0, step)
        current = parent
    return " > ".join(path)


# ============================================================================
# Traversal
# ============================================================================


class Visit(Enum):
    """Verdict returned by a walk visitor for one element."""

    DESCEND = "descend"
    SKIP_SUBTREE = "skip"
    ACCEPT = "accept"


def walk(root: Node, visitor: Callable[[Tag], Visit]) -> List[Tag]:
    """Visit the descendants of ``root`` in document order.

    ``ACCEPT`` collects the element and does not look inside it,
    ``DESCEND`` continues into its children, ``SKIP_SUBTREE`` prunes it.
    """
    accepted: List[Tag] = []
    stack: List[Tag] = list(reversed(element_children(root)))
    while stack:
        el = stack.pop()
        verdict = visitor(el)
        if verdict is Visit.ACCEPT:
            accepted.append(el)
        elif verdict is Visit.DESCEND:
            stack.extend(reversed(element_children(el)))
    return accepted


# ============================================================================
# Layout estimation
# ============================================================================


def _int_attr(el: Tag, name: str) -> Optional[int]:
    value = el.get(name)
    if value is None:
        return None
    match = re.match(r"\s*(\d+)", str(value))
    return int(match.group(1)) if match else None


class LayoutEstimator:
    """Coarse vertical layout of a document in flow order.

    A cursor moves down the page: every rendered character adds
    ``LINE_HEIGHT / CHARS_PER_LINE`` units and every media element adds its
    ``height`` attribute (or ``DEFAULT_MEDIA_HEIGHT``). An element's bounds
    span the cursor positions at its start and end tag. Good enough to tell
    adjacent blocks from blocks separated by other content; not a renderer.
    """

    def __init__(self, doc: Node) -> None:
        self._bounds: Dict[int, Bounds] = {}
        self._height = 0.0
        self._layout(doc)

    @property
    def document_height(self) -> float:
        return self._height

    def bounds(self, el: Tag) -> Bounds:
        return self._bounds.get(id(el), Bounds(x=0.0, y=self._height, width=0.0, height=0.0))

    def in_viewport(self, el: Tag) -> bool:
        return self.bounds(el).top < VIEWPORT_HEIGHT

    def _layout(self, doc: Node) -> None:
        cursor = 0.0
        starts: Dict[int, float] = {}
        # (node, entering) pairs; the exit marker closes an element's box.
        stack: List[tuple] = [(doc, True)]
        while stack:
            node, entering = stack.pop()
            if isinstance(node, NavigableString):
                if type(node) is NavigableString:
                    chars = len(collapse_whitespace(str(node)))
                    cursor += chars / CHARS_PER_LINE * LINE_HEIGHT
                continue
            if not isinstance(node, Tag):
                continue
            if not entering:
                width = VIEWPORT_WIDTH
                if node.name in MEDIA_TAGS:
                    width = _int_attr(node, "width") or VIEWPORT_WIDTH
                start = starts.pop(id(node))
                self._bounds[id(node)] = Bounds(x=0.0, y=start, width=float(width), height=cursor - start)
                continue
            if node.name in NON_RENDERED_TAGS:
                self._bounds[id(node)] = Bounds(x=0.0, y=cursor, width=0.0, height=0.0)
                continue

            starts[id(node)] = cursor
            if node.name in MEDIA_TAGS:
                cursor += _int_attr(node, "height") or DEFAULT_MEDIA_HEIGHT
                stack.append((node, False))
                continue
            stack.append((node, False))
            stack.extend((child, True) for child in reversed(list(node.children)))
        self._height = cursor
