"""
Paragraph detection over a (usually cleaned) document.

Detection runs in four steps:

1. pick the content container with the best ``text length * (1 - link
   density)`` score among a fixed list of candidates, falling back to a
   flat scan of paragraph-like selectors when none qualifies
2. walk the container and keep the leaf-most blocks carrying more than 20
   characters of text, pruning excluded subtrees (navigation, widgets, ...)
3. materialize every block into a ``Paragraph`` record
4. merge fragments that were split by inline markup, then reindex
"""

from __future__ import annotations

import copy
import re
from typing import Dict, List, Optional, Sequence

import structlog
from bs4 import Tag

from ..config.config import ExtractionOptions
from ..extractor.dom import (
    LayoutEstimator,
    Node,
    Visit,
    class_list,
    closest,
    element_children,
    matches,
    select_all,
    select_one,
    selector_path,
    text_of,
    walk,
)
from ..protocols import Paragraph, reindex

logger = structlog.get_logger(__name__)

CONTAINER_SELECTORS = (
    "main",
    "article",
    '[role="main"]',
    ".content",
    ".post-content",
    ".entry-content",
    "#content",
)

PARAGRAPH_SELECTORS = (
    "p",
    "div.paragraph",
    "div.content > div",
    "article > div",
    ".post-content > *",
    ".entry-content > *",
    ".article-body > *",
)

EXCLUDE_SELECTORS = (
    "script",
    "style",
    "nav",
    "header",
    "footer",
    ".advertisement",
    ".social-share",
    ".related-posts",
    '[class*="sidebar"]',
    '[class*="widget"]',
    '[id*="comments"]',
)
EXCLUDE_SELECTOR = ", ".join(EXCLUDE_SELECTORS)

MIN_BLOCK_TEXT = 20
MERGE_DISTANCE = 50.0

_HEADING = re.compile(r"^h([1-6])$")
_SENTENCE_END = re.compile(r"[.!?]$")


def link_density(el: Tag) -> float:
    """Anchor text length over total text length."""
    text_length = len(text_of(el))
    link_length = sum(len(text_of(a)) for a in select_all(el, "a"))
    return link_length / (text_length or 1)


class ParagraphDetector:
    """Finds the body paragraphs of a document."""

    def detect(self, doc: Node, options: Optional[ExtractionOptions] = None) -> List[Paragraph]:
        """
        Detect paragraphs in reading order.

        Args:
            doc: Parsed document
            options: Extraction options; ``min_paragraph_length`` and
                ``score_paragraphs`` are honoured

        Returns:
            Paragraphs with contiguous indexes starting at 0
        """
        opts = options or ExtractionOptions()
        min_length = opts.min_paragraph_length
        layout = LayoutEstimator(doc)

        paragraphs: List[Paragraph] = []
        for position, el in enumerate(self.find_paragraph_elements(doc)):
            text = self._extract_text(el)
            if len(text) < min_length:
                continue
            heading = _HEADING.match(el.name)
            paragraphs.append(
                Paragraph(
                    id=f"p-{position}",
                    text=text,
                    html=self._extract_html(el),
                    index=position,
                    element_path=selector_path(el),
                    bounds=layout.bounds(el),
                    is_quote=self.is_quote(el),
                    is_code=self.is_code(el),
                    is_heading=heading is not None,
                    heading_level=int(heading.group(1)) if heading else None,
                    importance=self.score_paragraph(el, text, layout) if opts.score_paragraphs else 0.5,
                )
            )

        merged = self.merge(paragraphs)
        logger.debug("Paragraphs detected", found=len(paragraphs), merged=len(merged))
        return merged

    # ------------------------------------------------------------------
    # container and traversal
    # ------------------------------------------------------------------

    def find_content_container(self, doc: Node) -> Optional[Tag]:
        best: Optional[Tag] = None
        best_score = 0.0
        for selector in CONTAINER_SELECTORS:
            candidate = select_one(doc, selector)
            if candidate is None:
                continue
            score = self.score_container(candidate)
            if score > best_score:
                best, best_score = candidate, score
        return best

    @staticmethod
    def score_container(el: Tag) -> float:
        text_length = len(text_of(el))
        return text_length * (1 - link_density(el))

    def should_exclude(self, el: Tag) -> bool:
        return matches(el, EXCLUDE_SELECTOR) or closest(el, EXCLUDE_SELECTOR) is not None

    @staticmethod
    def _has_text(el: Tag) -> bool:
        return len(text_of(el).strip()) > MIN_BLOCK_TEXT

    def _has_text_children(self, el: Tag) -> bool:
        return any(self._has_text(child) and not self.should_exclude(child) for child in element_children(el))

    def _visit(self, el: Tag) -> Visit:
        if self.should_exclude(el):
            return Visit.SKIP_SUBTREE
        if not self._has_text(el):
            # descendants cannot carry more text than their ancestor
            return Visit.SKIP_SUBTREE
        if self._has_text_children(el):
            return Visit.DESCEND
        return Visit.ACCEPT

    def find_paragraph_elements(self, doc: Node) -> List[Tag]:
        container = self.find_content_container(doc)
        if container is not None:
            return walk(container, self._visit)

        seen: Dict[int, Tag] = {}
        for selector in PARAGRAPH_SELECTORS:
            for el in select_all(doc, selector):
                if id(el) not in seen and not self.should_exclude(el):
                    seen[id(el)] = el
        if not seen:
            return []
        order = {id(el): i for i, el in enumerate(doc.find_all(True))}
        return sorted(seen.values(), key=lambda el: order.get(id(el), 0))

    # ------------------------------------------------------------------
    # materialization
    # ------------------------------------------------------------------

    @staticmethod
    def _without_scripts(el: Tag) -> Tag:
        clone = copy.copy(el)
        for junk in clone.find_all(["script", "style"]):
            junk.decompose()
        return clone

    def _extract_text(self, el: Tag) -> str:
        return self._without_scripts(el).get_text().strip()

    def _extract_html(self, el: Tag) -> str:
        return self._without_scripts(el).decode_contents().strip()

    @staticmethod
    def is_quote(el: Tag) -> bool:
        classes = class_list(el)
        return el.name == "blockquote" or "quote" in classes or "blockquote" in classes or el.get("role") == "blockquote"

    @staticmethod
    def is_code(el: Tag) -> bool:
        classes = class_list(el)
        return el.name in ("code", "pre") or "code" in classes or "highlight" in classes

    def score_paragraph(self, el: Tag, text: str, layout: LayoutEstimator) -> float:
        score = 0.5
        if len(text) > 100:
            score += 0.1
        if len(text) > 300:
            score += 0.1
        if layout.in_viewport(el):
            score += 0.1
        if closest(el, "article") is not None:
            score += 0.1
        if el.name == "p":
            score += 0.05
        if self.is_quote(el):
            score -= 0.2
        if self.is_code(el):
            score -= 0.3

        anchors = len(el.find_all("a"))
        words = len(text.split()) or 1
        score -= (anchors / words) * 0.5
        return max(0.0, min(1.0, score))

    # ------------------------------------------------------------------
    # merging
    # ------------------------------------------------------------------

    @staticmethod
    def should_merge(p1: Paragraph, p2: Paragraph) -> bool:
        if p1.is_heading or p2.is_heading:
            return False
        if p1.is_quote or p2.is_quote or p1.is_code or p2.is_code:
            return False
        if p2.bounds.top - p1.bounds.bottom > MERGE_DISTANCE:
            return False
        first = p1.text.strip()
        second = p2.text.strip()
        return not _SENTENCE_END.search(first) and bool(second) and second[0].islower()

    def merge(self, paragraphs: Sequence[Paragraph]) -> List[Paragraph]:
        """Join wrapped fragments and reindex the result."""
        processed: List[Paragraph] = []
        current: Optional[Paragraph] = None
        for p in paragraphs:
            if current is not None and self.should_merge(current, p):
                current = current.model_copy(
                    update={
                        "text": f"{current.text}\n{p.text}",
                        "html": f"{current.html}\n{p.html}",
                        "bounds": current.bounds.union(p.bounds),
                    }
                )
                continue
            if current is not None:
                processed.append(current)
            current = p
        if current is not None:
            processed.append(current)
        return reindex(processed)
