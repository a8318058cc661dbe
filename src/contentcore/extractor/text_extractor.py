"""
Generic extraction pipeline.

Used for every page no site adapter claims:

    metadata -> title -> clean -> detect -> paragraph analysis
             -> sections / tables / lists / embeds / structured data
             -> language -> quality -> summary

``compose_content`` is shared with the adapter path. It derives the fields
that are never authored directly (clean text, word count, reading time).
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Sequence

import structlog
from bs4 import BeautifulSoup

from ..analysis.text_analysis import TextAnalyzers
from ..cleaner.content_cleaner import ContentCleaner
from ..config.config import ExtractionOptions
from ..detector.paragraph_detector import ParagraphDetector
from ..metadata.metadata_extractor import MetadataExtractor
from ..metadata.structured_data_parser import parse_structured_data
from ..protocols import ContentMetadata, ExtractedContent, Paragraph, Section, reindex
from .content_processors import EmbedProcessor, ListProcessor, TableProcessor
from .dom import collapse_whitespace, select_one, url_host
from .quality import QualityAssessor

logger = structlog.get_logger(__name__)

WORDS_PER_MINUTE = 200

TITLE_SELECTORS = (
    "article h1, main h1",
    'meta[property="og:title"]',
    'meta[name="twitter:title"]',
    "h1",
    "title",
)


def reading_time(word_count: int) -> int:
    """Minutes needed to read ``word_count`` words."""
    return math.ceil(word_count / WORDS_PER_MINUTE)


def compose_content(fields: Mapping[str, Any]) -> ExtractedContent:
    """
    Build ``ExtractedContent`` from a possibly partial record.

    Omitted fields take their defaults. Paragraph indexes are made
    contiguous and the text statistics are always recomputed from the
    paragraphs, whatever the record says.
    """
    paragraphs = reindex(list(fields.get("paragraphs") or []))
    clean_text = "\n\n".join(p.text for p in paragraphs)
    word_count = len(clean_text.split())
    minutes = reading_time(word_count)

    metadata = fields.get("metadata") or ContentMetadata()
    if isinstance(metadata, Mapping):
        metadata = ContentMetadata(**metadata)
    metadata = metadata.model_copy(update={"word_count": word_count, "estimated_read_time": minutes})

    known = {k: v for k, v in fields.items() if k in ExtractedContent.model_fields and v is not None}
    known.update(
        title=fields.get("title") or "",
        paragraphs=paragraphs,
        clean_text=clean_text,
        metadata=metadata,
        word_count=word_count,
        reading_time=minutes,
    )
    return ExtractedContent(**known)


def extract_title(doc: BeautifulSoup) -> str:
    """Headline of the page, falling back through social tags to ``<title>``."""
    for selector in TITLE_SELECTORS:
        el = select_one(doc, selector)
        if el is None:
            continue
        text = collapse_whitespace(str(el.get("content", "")) if el.name == "meta" else el.get_text())
        if text:
            return text
    return ""


def build_sections(paragraphs: Sequence[Paragraph]) -> "tuple[List[Section], List[Paragraph]]":
    """
    Group paragraphs under their headings.

    A heading opens a section that runs until the next heading of the same
    or a shallower level; deeper headings nest as sub-sections. Paragraphs
    before the first heading belong to no section.

    Returns:
        Top-level sections and the paragraphs with ``section`` set
    """
    roots: List[Section] = []
    stack: List[Section] = []
    tagged: List[Paragraph] = []
    count = 0

    for p in paragraphs:
        if p.is_heading:
            level = p.heading_level or 2
            while stack and stack[-1].level >= level:
                stack.pop()
            section = Section(id=f"section-{count}", title=p.text, level=level, start_index=p.index, end_index=p.index)
            count += 1
            (stack[-1].sub_sections if stack else roots).append(section)
            stack.append(section)
            tagged.append(p.model_copy(update={"section": section.id}))
            continue

        if stack:
            p = p.model_copy(update={"section": stack[-1].id})
            stack[-1].paragraphs.append(p)
            for open_section in stack:
                open_section.end_index = p.index
        tagged.append(p)

    return roots, tagged


def _walk_sections(sections: Sequence[Section]):
    for section in sections:
        yield section
        yield from _walk_sections(section.sub_sections)


class TextExtractor:
    """
    Default extraction path: clean, detect and analyze.

    Every collaborator can be injected; the defaults are stateless.
    """

    def __init__(
        self,
        cleaner: Optional[ContentCleaner] = None,
        detector: Optional[ParagraphDetector] = None,
        analyzers: Optional[TextAnalyzers] = None,
        metadata_extractor: Optional[MetadataExtractor] = None,
        quality: Optional[QualityAssessor] = None,
    ) -> None:
        self.cleaner = cleaner or ContentCleaner()
        self.detector = detector or ParagraphDetector()
        self.analyzers = analyzers or TextAnalyzers()
        self.metadata_extractor = metadata_extractor or MetadataExtractor()
        self.quality = quality or QualityAssessor()
        self.tables = TableProcessor()
        self.lists = ListProcessor()
        self.embeds = EmbedProcessor()

    def extract(self, doc: BeautifulSoup, url: str, options: Optional[ExtractionOptions] = None) -> ExtractedContent:
        """
        Run the full generic pipeline.

        Args:
            doc: Parsed document; left unmodified
            url: Page URL
            options: Extraction options

        Returns:
            Complete content record (without fingerprint)
        """
        opts = options or ExtractionOptions()

        if opts.include_metadata:
            metadata = self.metadata_extractor.extract(doc, url)
        else:
            metadata = ContentMetadata(source=url_host(url), extracted_at=datetime.now(timezone.utc))

        title = extract_title(doc)
        cleaned = self.cleaner.clean(doc, opts.cleaning_options)
        paragraphs = self.detector.detect(cleaned, opts)
        paragraphs = [self._analyze_paragraph(p, opts) for p in paragraphs]

        fields: dict = {"title": title, "metadata": metadata}

        if opts.detect_sections:
            sections, paragraphs = build_sections(paragraphs)
            if opts.generate_summary:
                for section in _walk_sections(sections):
                    text = " ".join(p.text for p in section.paragraphs)
                    section.summary = self.analyzers.summarize(text) if text else None
            fields["sections"] = sections
        if opts.extract_tables:
            fields["tables"] = self.tables.process(cleaned)
        if opts.extract_lists:
            fields["lists"] = self.lists.process(cleaned)
        if opts.extract_embeds:
            fields["embeds"] = self.embeds.process(doc, url)
        if opts.extract_structured_data:
            fields["structured_data"] = parse_structured_data(doc, url)

        fields["paragraphs"] = paragraphs
        content = compose_content(fields)

        language = self.analyzers.language(content.clean_text) if content.clean_text else "unknown"
        quality = self.quality.assess(
            doc,
            cleaned,
            content.title,
            content.paragraphs,
            content.metadata,
            self.analyzers.reading_ease,
            has_blocks=bool(content.tables or content.lists),
        )
        update: dict = {"language": language, "quality": quality}
        if opts.generate_summary and content.clean_text:
            update["summary"] = self.analyzers.summarize(content.clean_text)

        logger.debug(
            "Generic extraction finished",
            url=url,
            paragraphs=len(content.paragraphs),
            words=content.word_count,
            quality=round(quality.score, 3),
        )
        return content.model_copy(update=update)

    def _analyze_paragraph(self, paragraph: Paragraph, opts: ExtractionOptions) -> Paragraph:
        update: dict = {}
        if opts.analyze_sentiment:
            update["sentiment"] = self.analyzers.sentiment(paragraph.text)
        if opts.extract_entities:
            update["entities"] = self.analyzers.entities(paragraph.text)
        if opts.calculate_readability:
            update["readability"] = self.analyzers.readability(paragraph.text)
        return paragraph.model_copy(update=update) if update else paragraph
