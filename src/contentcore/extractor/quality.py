"""
Content quality assessment.

Every component lands in [0, 1]; ``score`` is their weighted blend. Link
and ad density count against the score, the others count for it.
"""

from __future__ import annotations

from typing import Callable, Dict, Optional, Sequence

import structlog

from ..cleaner.content_cleaner import REMOVE_SELECTORS
from ..protocols import ContentMetadata, ContentQuality, Paragraph
from .dom import Node, select_all, text_of

logger = structlog.get_logger(__name__)

QUALITY_WEIGHTS: Dict[str, float] = {
    "text_density": 0.25,
    "link_density": 0.15,
    "ad_density": 0.10,
    "readability_score": 0.20,
    "structure_score": 0.15,
    "completeness": 0.15,
}

TARGET_WORD_COUNT = 300
AD_DENSITY_SCALE = 10.0


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def _body(doc: Node) -> Node:
    body = select_all(doc, "body")
    return body[0] if body else doc


class QualityAssessor:
    """Scores extracted content against the page it came from."""

    def __init__(self, weights: Optional[Dict[str, float]] = None) -> None:
        self.weights = weights or QUALITY_WEIGHTS

    def assess(
        self,
        original: Node,
        cleaned: Node,
        title: str,
        paragraphs: Sequence[Paragraph],
        metadata: ContentMetadata,
        reading_ease: Callable[[str], float],
        has_blocks: bool = False,
    ) -> ContentQuality:
        """
        Assess extracted content.

        Args:
            original: The page as fetched
            cleaned: The page after boilerplate removal
            title: Extracted title
            paragraphs: Extracted paragraphs
            metadata: Extracted metadata
            reading_ease: Maps text onto a [0, 1] readability score
            has_blocks: Whether tables or lists were found

        Returns:
            Quality breakdown and blended score
        """
        clean_text = "\n\n".join(p.text for p in paragraphs)
        word_count = len(clean_text.split())

        original_body = _body(original)
        page_text_length = len(text_of(original_body))
        text_density = _clamp(len(clean_text) / page_text_length) if page_text_length else 0.0

        cleaned_body = _body(cleaned)
        cleaned_text_length = len(text_of(cleaned_body))
        link_text_length = sum(len(text_of(a)) for a in select_all(cleaned_body, "a"))
        link_density = _clamp(link_text_length / cleaned_text_length) if cleaned_text_length else 0.0

        elements = original_body.find_all(True)
        ad_elements = {id(el) for selector in REMOVE_SELECTORS["ads"] for el in select_all(original_body, selector)}
        ad_density = _clamp(len(ad_elements) / len(elements) * AD_DENSITY_SCALE) if elements else 0.0

        readability = _clamp(reading_ease(clean_text)) if clean_text else 0.0

        structure = 0.0
        if title:
            structure += 0.2
        if any(p.is_heading for p in paragraphs):
            structure += 0.3
        body_paragraphs = [p for p in paragraphs if not p.is_heading]
        structure += 0.3 * min(len(body_paragraphs) / 5.0, 1.0)
        if has_blocks:
            structure += 0.2

        completeness_checks = (
            bool(title),
            bool(metadata.author),
            metadata.publish_date is not None,
            bool(metadata.description),
            word_count >= TARGET_WORD_COUNT,
        )
        completeness = sum(completeness_checks) / len(completeness_checks)

        components = {
            "text_density": text_density,
            "link_density": 1.0 - link_density,
            "ad_density": 1.0 - ad_density,
            "readability_score": readability,
            "structure_score": _clamp(structure),
            "completeness": completeness,
        }
        total_weight = sum(self.weights.values()) or 1.0
        score = sum(components[name] * weight for name, weight in self.weights.items()) / total_weight

        logger.debug("Quality assessed", score=round(score, 3), words=word_count)
        return ContentQuality(
            score=_clamp(score),
            text_density=text_density,
            link_density=link_density,
            ad_density=ad_density,
            readability_score=readability,
            structure_score=_clamp(structure),
            completeness=completeness,
        )
