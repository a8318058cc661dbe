"""
Core contracts and data structures for ContentCore.

Content records (paragraphs, sections, the extracted article) are pydantic
models so they serialize to JSON and validate back into equal objects.
Transient values exchanged with callers (results, progress events, stream
chunks) are plain dataclasses. Collaborators the service depends on
(site adapters, plugins, fetchers) are described as Protocols.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional, Protocol, runtime_checkable

from bs4 import BeautifulSoup
from pydantic import BaseModel, ConfigDict, Field

from .config.config import ExtractionOptions

# ============================================================================
# Geometry
# ============================================================================


class Bounds(BaseModel):
    """Estimated layout rectangle of an element, in layout units."""

    model_config = ConfigDict(frozen=True)

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def top(self) -> float:
        return self.y

    @property
    def left(self) -> float:
        return self.x

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def right(self) -> float:
        return self.x + self.width

    def union(self, other: Bounds) -> Bounds:
        """Smallest rectangle covering both rectangles."""
        left = min(self.left, other.left)
        top = min(self.top, other.top)
        return Bounds(
            x=left,
            y=top,
            width=max(self.right, other.right) - left,
            height=max(self.bottom, other.bottom) - top,
        )


# ============================================================================
# Paragraph-level records
# ============================================================================


class ReadabilityScore(BaseModel):
    flesch_kincaid: float
    gunning_fog: float
    avg_sentence_length: float
    avg_word_length: float
    complex_words: int


EntityType = Literal["person", "organization", "location", "date", "money", "other"]


class Entity(BaseModel):
    text: str
    type: EntityType
    confidence: float = Field(ge=0.0, le=1.0)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class Paragraph(BaseModel):
    """A block of body text in reading order.

    ``index`` is the rank in reading order and is contiguous from 0 in every
    list a detector or adapter returns; ``id`` is always ``p-{index}``.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    html: str = ""
    index: int = Field(ge=0)
    element_path: str = ""
    bounds: Bounds = Field(default_factory=Bounds)
    section: Optional[str] = None
    is_quote: bool = False
    is_code: bool = False
    is_heading: bool = False
    heading_level: Optional[int] = Field(default=None, ge=1, le=6)
    importance: float = Field(default=0.5, ge=0.0, le=1.0)
    sentiment: Optional[float] = None
    entities: Optional[List[Entity]] = None
    readability: Optional[ReadabilityScore] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


def reindex(paragraphs: List[Paragraph]) -> List[Paragraph]:
    """Return copies of ``paragraphs`` with contiguous indexes and ids."""
    return [
        p if p.index == i and p.id == f"p-{i}" else p.model_copy(update={"index": i, "id": f"p-{i}"})
        for i, p in enumerate(paragraphs)
    ]


class Section(BaseModel):
    id: str
    title: str
    level: int = Field(ge=1, le=6)
    paragraphs: List[Paragraph] = Field(default_factory=list)
    start_index: int
    end_index: int
    summary: Optional[str] = None
    sub_sections: List[Section] = Field(default_factory=list)


# ============================================================================
# Structured blocks
# ============================================================================


class TableBlock(BaseModel):
    id: str
    headers: List[str] = Field(default_factory=list)
    rows: List[List[str]] = Field(default_factory=list)
    caption: Optional[str] = None
    element_path: str = ""
    index: int


class ListItem(BaseModel):
    text: str
    html: str = ""
    sub_items: List[ListItem] = Field(default_factory=list)
    depth: int = 0


class ListBlock(BaseModel):
    id: str
    type: Literal["ordered", "unordered", "definition"]
    items: List[ListItem] = Field(default_factory=list)
    element_path: str = ""
    index: int


EmbedType = Literal["video", "audio", "iframe", "tweet", "instagram", "codepen", "other"]


class Embed(BaseModel):
    id: str
    type: EmbedType
    url: str
    title: Optional[str] = None
    provider: Optional[str] = None
    thumbnail_url: Optional[str] = None
    element_path: str = ""
    index: int


class StructuredData(BaseModel):
    type: Literal["json-ld", "microdata", "rdfa", "opengraph"]
    data: Any = None
    context: Optional[str] = None


# ============================================================================
# Document-level records
# ============================================================================


class ContentQuality(BaseModel):
    score: float = Field(default=0.0, ge=0.0, le=1.0)
    text_density: float = Field(default=0.0, ge=0.0, le=1.0)
    link_density: float = Field(default=0.0, ge=0.0, le=1.0)
    ad_density: float = Field(default=0.0, ge=0.0, le=1.0)
    readability_score: float = Field(default=0.0, ge=0.0, le=1.0)
    structure_score: float = Field(default=0.0, ge=0.0, le=1.0)
    completeness: float = Field(default=0.0, ge=0.0, le=1.0)


class ImageMetadata(BaseModel):
    url: str
    alt: Optional[str] = None
    caption: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    type: Optional[str] = None


class SocialMetadata(BaseModel):
    twitter: Dict[str, str] = Field(default_factory=dict)
    open_graph: Dict[str, str] = Field(default_factory=dict)


class ContentMetadata(BaseModel):
    """Descriptive metadata. Extra keys are kept so plugins can enrich it."""

    model_config = ConfigDict(extra="allow")

    author: Optional[str] = None
    authors: List[str] = Field(default_factory=list)
    publish_date: Optional[datetime] = None
    update_date: Optional[datetime] = None
    category: Optional[str] = None
    categories: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    image_url: Optional[str] = None
    images: List[ImageMetadata] = Field(default_factory=list)
    source: Optional[str] = None
    extracted_at: Optional[datetime] = None
    publisher: Optional[str] = None
    copyright: Optional[str] = None
    license: Optional[str] = None
    word_count: Optional[int] = None
    estimated_read_time: Optional[int] = None
    social: Optional[SocialMetadata] = None


class ExtractedContent(BaseModel):
    """The aggregate result of one extraction."""

    title: str = ""
    paragraphs: List[Paragraph] = Field(default_factory=list)
    clean_text: str = ""
    metadata: ContentMetadata = Field(default_factory=ContentMetadata)
    sections: List[Section] = Field(default_factory=list)
    word_count: int = 0
    reading_time: int = 0
    language: str = "unknown"
    quality: ContentQuality = Field(default_factory=ContentQuality)
    fingerprint: str = ""
    tables: Optional[List[TableBlock]] = None
    lists: Optional[List[ListBlock]] = None
    embeds: Optional[List[Embed]] = None
    structured_data: Optional[List[StructuredData]] = None
    summary: Optional[str] = None


# ============================================================================
# Results and events
# ============================================================================


@dataclass(frozen=True)
class ExtractionResult:
    """Tagged outcome of an extraction.

    ``partial`` is reserved and always ``None``.
    """

    success: bool
    data: Optional[ExtractedContent] = None
    error: Optional[BaseException] = None
    partial: Optional[Dict[str, Any]] = None

    @classmethod
    def ok(cls, content: ExtractedContent) -> ExtractionResult:
        return cls(success=True, data=content)

    @classmethod
    def fail(cls, error: BaseException) -> ExtractionResult:
        return cls(success=False, error=error)


Phase = Literal["fetching", "parsing", "cleaning", "extracting", "analyzing"]


@dataclass(frozen=True)
class ExtractionProgress:
    phase: Phase
    progress: int
    message: Optional[str] = None


@dataclass
class ExtractionEvents:
    """Optional observer callbacks. Any of them may be left unset."""

    on_start: Optional[Callable[[], None]] = None
    on_progress: Optional[Callable[[ExtractionProgress], None]] = None
    on_complete: Optional[Callable[[ExtractedContent], None]] = None
    on_error: Optional[Callable[[BaseException], None]] = None

    def start(self) -> None:
        if self.on_start:
            self.on_start()

    def progress(self, phase: Phase, progress: int, message: Optional[str] = None) -> None:
        if self.on_progress:
            self.on_progress(ExtractionProgress(phase=phase, progress=progress, message=message))

    def complete(self, content: ExtractedContent) -> None:
        if self.on_complete:
            self.on_complete(content)

    def error(self, exc: BaseException) -> None:
        if self.on_error:
            self.on_error(exc)


@dataclass(frozen=True)
class ValidationReport:
    valid: bool
    errors: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class StreamChunk:
    index: int
    paragraphs: List[Paragraph]
    word_count: int


@dataclass(frozen=True)
class RateLimitInfo:
    remaining: int
    reset_time: float


# ============================================================================
# Collaborator protocols
# ============================================================================


@runtime_checkable
class SiteAdapter(Protocol):
    """Site-specific extraction strategy.

    ``extract`` returns a partial content mapping keyed by ``ExtractedContent``
    field names; an empty mapping means the page did not look like the site's
    usual layout. Adapters may also expose ``detect_paragraphs``,
    ``detect_tables``, ``detect_lists`` and ``detect_embeds``.
    """

    name: str
    patterns: List[Any]
    priority: int

    def extract(self, doc: BeautifulSoup, url: str) -> Dict[str, Any]: ...


@runtime_checkable
class Plugin(Protocol):
    """Extension hooked into every extraction.

    All hooks are optional. ``before_extract`` receives the parsed document
    and may return a replacement; ``after_extract`` receives the content and
    may return a replacement. Returning ``None`` keeps the (possibly
    mutated) input.
    """

    name: str
    version: str


@runtime_checkable
class Fetcher(Protocol):
    """Turns a URL into raw markup."""

    async def fetch(self, url: str, timeout: float) -> str: ...


BeforeHook = Callable[[BeautifulSoup, ExtractionOptions], Optional[BeautifulSoup]]
AfterHook = Callable[[ExtractedContent], Optional[ExtractedContent]]
InitHook = Callable[[], Optional[Awaitable[None]]]
