"""
Wikipedia and other MediaWiki article pages.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup, Tag

from ..extractor.content_processors import TableProcessor
from ..extractor.dom import collapse_whitespace, select_all, select_one
from ..protocols import Paragraph, TableBlock
from .base import BaseSiteAdapter

CONTENT_SELECTOR = "#mw-content-text .mw-parser-output"
BLOCK_SELECTOR = "p, h2, h3, h4, h5, h6, blockquote"
NOISE_SELECTORS = ".mw-editsection, sup.reference, .reference, .noprint, .mw-empty-elt, style"


class WikipediaAdapter(BaseSiteAdapter):
    name = "wikipedia"
    patterns = [r"wikipedia\.org", r"wikimedia\.org"]
    priority = 10

    def _content(self, doc: BeautifulSoup) -> Optional[Tag]:
        content = select_one(doc, CONTENT_SELECTOR)
        if content is None:
            return None
        content = copy.copy(content)
        for noise in select_all(content, NOISE_SELECTORS):
            if not noise.decomposed:
                noise.decompose()
        return content

    def extract(self, doc: BeautifulSoup, url: str) -> Dict[str, Any]:
        content = self._content(doc)
        if content is None:
            return {}

        heading = select_one(doc, "#firstHeading")
        categories = [collapse_whitespace(a.get_text()) for a in select_all(doc, "#catlinks .mw-normal-catlinks li a")]
        return {
            "title": collapse_whitespace(heading.get_text()) if heading else "",
            "paragraphs": self._paragraphs(content),
            "metadata": self.site_metadata(
                "wikipedia.org",
                categories=categories,
                category=categories[0] if categories else None,
                license="CC BY-SA 4.0",
            ),
        }

    def _paragraphs(self, content: Tag) -> List[Paragraph]:
        return self.build_paragraphs(content, select_all(content, BLOCK_SELECTOR), min_length=10)

    def detect_paragraphs(self, doc: BeautifulSoup) -> List[Paragraph]:
        content = self._content(doc)
        return self._paragraphs(content) if content is not None else []

    def detect_tables(self, doc: BeautifulSoup) -> List[TableBlock]:
        content = self._content(doc)
        if content is None:
            return []
        return TableProcessor().process(content, selector="table.wikitable")
