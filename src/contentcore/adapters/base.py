"""
Shared plumbing for site adapters.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Pattern, Sequence, Union

from bs4 import BeautifulSoup, Tag

from ..extractor.dom import LayoutEstimator, inner_html, selector_path
from ..protocols import ContentMetadata, Paragraph

UrlMatcher = Union[str, Pattern[str], Callable[[str], bool]]

_HEADING = re.compile(r"^h([1-6])$")


def compile_matcher(matcher: UrlMatcher) -> Callable[[str], bool]:
    """Normalize a regex string, compiled pattern or predicate into a predicate."""
    if isinstance(matcher, str):
        matcher = re.compile(matcher)
    if isinstance(matcher, re.Pattern):
        pattern = matcher
        return lambda url: pattern.search(url) is not None
    if callable(matcher):
        return matcher
    raise TypeError(f"Unsupported URL matcher: {matcher!r}")


class BaseSiteAdapter:
    """
    Convenience base class for adapters.

    Subclasses set ``name``, ``patterns`` and ``priority`` and implement
    ``extract``. Registration does not require inheriting from this class;
    any object satisfying ``SiteAdapter`` is accepted.
    """

    name: str = ""
    patterns: Sequence[UrlMatcher] = ()
    priority: int = 0

    def matches(self, url: str) -> bool:
        return adapter_matches(self, url)

    def extract(self, doc: BeautifulSoup, url: str) -> Dict[str, Any]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, priority={self.priority})"

    # ------------------------------------------------------------------
    # helpers for subclasses
    # ------------------------------------------------------------------

    @staticmethod
    def build_paragraphs(
        doc: BeautifulSoup,
        elements: Sequence[Tag],
        min_length: int = 10,
        importance: Callable[[Tag, bool], float] = lambda el, heading: 0.9 if heading else 0.7,
        text_of: Optional[Callable[[Tag], str]] = None,
    ) -> List[Paragraph]:
        """Turn matched elements into indexed paragraphs, skipping short ones."""
        layout = LayoutEstimator(doc)
        paragraphs: List[Paragraph] = []
        for el in elements:
            text = text_of(el) if text_of else el.get_text().strip()
            if len(text) < min_length:
                continue
            heading = _HEADING.match(el.name or "")
            index = len(paragraphs)
            paragraphs.append(
                Paragraph(
                    id=f"p-{index}",
                    text=text,
                    html=inner_html(el),
                    index=index,
                    element_path=selector_path(el),
                    bounds=layout.bounds(el),
                    is_quote=el.name == "blockquote",
                    is_code=el.name == "pre",
                    is_heading=heading is not None,
                    heading_level=int(heading.group(1)) if heading else None,
                    importance=importance(el, heading is not None),
                )
            )
        return paragraphs

    @staticmethod
    def site_metadata(source: str, **extra: Any) -> ContentMetadata:
        return ContentMetadata(source=source, extracted_at=datetime.now(timezone.utc), **extra)


def adapter_matches(adapter: Any, url: str) -> bool:
    """Whether any of ``adapter``'s URL patterns matches ``url``."""
    return any(compile_matcher(p)(url) for p in getattr(adapter, "patterns", ()) or ())
