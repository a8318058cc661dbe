"""
Reddit thread pages: the post body followed by top-level comments.
"""

from __future__ import annotations

from typing import Any, Dict, List

from bs4 import BeautifulSoup

from ..extractor.dom import LayoutEstimator, collapse_whitespace, document_title, inner_html, select_all, select_one
from ..protocols import Paragraph
from .base import BaseSiteAdapter

POST_SELECTOR = '[data-test-id="post-content"]'
COMMENT_SELECTOR = '[data-testid="comment"]'
COMMENT_BODY_SELECTOR = ".RichTextJSON-root"
AUTHOR_SELECTOR = '[data-testid="comment_author_link"]'
MIN_TEXT = 10


class RedditAdapter(BaseSiteAdapter):
    name = "reddit"
    patterns = [r"reddit\.com", r"redd\.it"]
    priority = 10

    def extract(self, doc: BeautifulSoup, url: str) -> Dict[str, Any]:
        paragraphs = self.detect_paragraphs(doc)
        if not paragraphs:
            return {}
        return {
            "title": self._title(doc),
            "paragraphs": paragraphs,
            "metadata": self.site_metadata("reddit.com"),
        }

    @staticmethod
    def _title(doc: BeautifulSoup) -> str:
        for selector in ("h1", '[data-test-id="post-title"]'):
            el = select_one(doc, selector)
            if el is not None and el.get_text().strip():
                return collapse_whitespace(el.get_text())
        return document_title(doc).split("-")[0].strip()

    def detect_paragraphs(self, doc: BeautifulSoup) -> List[Paragraph]:
        layout = LayoutEstimator(doc)
        paragraphs: List[Paragraph] = []

        post = select_one(doc, POST_SELECTOR)
        if post is not None:
            text = post.get_text().strip()
            if len(text) > MIN_TEXT:
                paragraphs.append(
                    Paragraph(
                        id="p-0",
                        text=text,
                        html=inner_html(post),
                        index=0,
                        element_path=POST_SELECTOR,
                        bounds=layout.bounds(post),
                        importance=0.9,
                    )
                )

        for position, comment in enumerate(select_all(doc, COMMENT_SELECTOR), start=1):
            body = select_one(comment, COMMENT_BODY_SELECTOR)
            if body is None:
                continue
            text = body.get_text().strip()
            if len(text) <= MIN_TEXT:
                continue
            author = select_one(comment, AUTHOR_SELECTOR)
            author_name = author.get_text().strip() if author is not None else ""
            index = len(paragraphs)
            paragraphs.append(
                Paragraph(
                    id=f"p-{index}",
                    text=f"[{author_name}]: {text}" if author_name else text,
                    html=inner_html(body),
                    index=index,
                    element_path=f"{COMMENT_SELECTOR}:nth-of-type({position})",
                    bounds=layout.bounds(body),
                    is_quote=True,
                    importance=0.5,
                    metadata={"author": author_name} if author_name else {},
                )
            )
        return paragraphs
