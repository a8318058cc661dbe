"""
Substack newsletter posts.
"""

from __future__ import annotations

from typing import Any, Dict, List

from bs4 import BeautifulSoup

from ..extractor.dom import collapse_whitespace, select_all, select_one
from ..protocols import Paragraph
from .base import BaseSiteAdapter


class SubstackAdapter(BaseSiteAdapter):
    name = "substack"
    patterns = [r"\.substack\.com", r"substack\.com"]
    priority = 10

    def extract(self, doc: BeautifulSoup, url: str) -> Dict[str, Any]:
        if select_one(doc, ".post, article") is None:
            return {}

        title_el = select_one(doc, "h1.post-title, h1")
        subtitle = select_one(doc, "h3.subtitle")
        partial: Dict[str, Any] = {
            "title": collapse_whitespace(title_el.get_text()) if title_el else "",
            "paragraphs": self.detect_paragraphs(doc),
            "metadata": self.site_metadata(
                "substack.com",
                description=collapse_whitespace(subtitle.get_text()) if subtitle else None,
            ),
        }
        return partial

    def detect_paragraphs(self, doc: BeautifulSoup) -> List[Paragraph]:
        content = select_one(doc, ".body, .post-content, article")
        if content is None:
            return []
        elements = select_all(content, "p, h1, h2, h3, h4, blockquote, pre")
        return self.build_paragraphs(doc, elements, min_length=10)
