"""
ContentExtractorService - the extraction orchestrator.

The service is the only component with side effects. It owns the result
cache, the per-origin rate limiter, the table of in-flight extractions and
the plugin chain, and composes the pure components (cleaner, detector,
adapters, analyzers) around an injected fetcher.

All shared state is touched from the event loop only, so the
check-then-act sequences below (rate-limit check and record, cache miss
then fetch then write, pending-table lookup then insert) are atomic
between awaits.
"""

from __future__ import annotations

import asyncio
import hashlib
import time
import uuid
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Sequence
from urllib.parse import urlsplit

import structlog
from bs4 import BeautifulSoup

from .adapters.registry import AdapterRegistry
from .analysis.text_analysis import TextAnalyzers
from .cache.result_cache import ResultCache, make_cache_key
from .cleaner.content_cleaner import ContentCleaner
from .config.config import Config, ExtractionOptions
from .crawler.http_client import HttpFetcher
from .crawler.rate_limiter import SlidingWindowRateLimiter
from .detector.paragraph_detector import ParagraphDetector
from .exceptions import AdapterNotFoundError, FetchTimeout, InvalidURLError, PluginError, RateLimitExceeded
from .exporter import export_content, import_content
from .extractor.dom import parse_html, url_host
from .extractor.text_extractor import TextExtractor, compose_content, extract_title
from .plugins import PluginChain
from .protocols import (
    ContentMetadata,
    ExtractedContent,
    ExtractionEvents,
    ExtractionResult,
    Fetcher,
    RateLimitInfo,
    SiteAdapter,
    StreamChunk,
    ValidationReport,
)

FINGERPRINT_PREFIX_CHARS = 1000
MIN_VALID_WORDS = 50
MIN_VALID_QUALITY = 0.3

# (option flag, content field, optional adapter capability)
ADAPTER_BLOCK_DETECTORS = (
    ("extract_tables", "tables", "detect_tables"),
    ("extract_lists", "lists", "detect_lists"),
    ("extract_embeds", "embeds", "detect_embeds"),
)


def generate_fingerprint(content: ExtractedContent) -> str:
    """SHA-256 over the first 1000 characters of clean text plus the title."""
    material = content.clean_text[:FINGERPRINT_PREFIX_CHARS] + content.title
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


def origin_of(url: str) -> str:
    """``scheme://host[:port]`` of ``url``; the rate limiting key."""
    try:
        parsed = urlsplit(url)
    except ValueError as e:
        raise InvalidURLError(f"Invalid URL: {url!r}") from e
    if not parsed.scheme or not parsed.netloc:
        raise InvalidURLError(f"Invalid URL: {url!r}")
    return f"{parsed.scheme.lower()}://{parsed.netloc.lower()}"


class ContentExtractorService:
    """
    Resilient main-content extraction.

    Every collaborator can be injected; anything left out is built from
    ``config``.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        *,
        fetcher: Optional[Fetcher] = None,
        registry: Optional[AdapterRegistry] = None,
        cleaner: Optional[ContentCleaner] = None,
        detector: Optional[ParagraphDetector] = None,
        analyzers: Optional[TextAnalyzers] = None,
        cache: Optional[ResultCache] = None,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or Config()
        self.fetcher: Fetcher = fetcher or HttpFetcher(self.config.fetch)
        self.registry = registry if registry is not None else AdapterRegistry.with_defaults()
        self.analyzers = analyzers or TextAnalyzers()
        self.extractor = TextExtractor(cleaner=cleaner, detector=detector, analyzers=self.analyzers)
        self.cache = cache or ResultCache(self.config.cache, clock=clock)
        self.rate_limiter = rate_limiter or SlidingWindowRateLimiter(
            max_requests=self.config.rate_limiter.max_requests,
            window_seconds=self.config.rate_limiter.window_seconds,
            clock=clock,
        )
        self.plugin_chain = PluginChain()
        self._pending: Dict[str, "asyncio.Future[ExtractedContent]"] = {}
        self._owns_fetcher = fetcher is None
        self.logger = structlog.get_logger(self.__class__.__name__)

    async def __aenter__(self) -> ContentExtractorService:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the fetcher if the service created it."""
        close = getattr(self.fetcher, "aclose", None)
        if self._owns_fetcher and close is not None:
            await close()

    # ========================================================================
    # Plugins
    # ========================================================================

    async def register_plugin(self, plugin: Any) -> None:
        """Initialize ``plugin`` and append it to the hook chain."""
        await self.plugin_chain.register(plugin)

    def unregister_plugin(self, name: str) -> bool:
        return self.plugin_chain.unregister(name)

    @property
    def plugins(self) -> List[Any]:
        """Registered plugins in hook order (a copy)."""
        return self.plugin_chain.plugins()

    # ========================================================================
    # Extraction
    # ========================================================================

    async def extract(
        self,
        url: str,
        options: Optional[ExtractionOptions] = None,
        events: Optional[ExtractionEvents] = None,
    ) -> ExtractionResult:
        """
        Fetch ``url`` and extract its main content.

        Concurrent calls with the same URL and options share one fetch.

        Args:
            url: Absolute http(s) URL
            options: Extraction options; the configured defaults when omitted
            events: Optional progress observer

        Returns:
            A successful result with the content, or a failed result
            carrying ``RateLimitExceeded``, ``FetchTimeout``,
            ``NetworkError`` or any other extraction error

        Raises:
            PluginError: A plugin hook failed
        """
        events = events or ExtractionEvents()
        cache_key = make_cache_key(url, options)

        with structlog.contextvars.bound_contextvars(
            correlation_id=uuid.uuid4().hex[:12], url=url, cache_key=cache_key[:16]
        ):
            try:
                origin = origin_of(url)
                if not self.rate_limiter.check_limit(origin):
                    retry_after = self.rate_limiter.retry_after(origin)
                    raise RateLimitExceeded(origin, retry_after, time.time() + retry_after)

                events.start()
                content = await self._shared_extraction(cache_key, url, options, events)
            except PluginError as e:
                self.logger.error("Plugin failed, extraction aborted", plugin=e.plugin_name, hook=e.hook)
                events.error(e)
                raise
            except Exception as e:
                self.logger.warning("Extraction failed", error=str(e), error_type=type(e).__name__)
                events.error(e)
                return ExtractionResult.fail(e)

            events.complete(content)
            return ExtractionResult.ok(content)

    async def _shared_extraction(
        self,
        cache_key: str,
        url: str,
        options: Optional[ExtractionOptions],
        events: ExtractionEvents,
    ) -> ExtractedContent:
        pending = self._pending.get(cache_key)
        if pending is not None:
            self.logger.debug("Joining in-flight extraction")
            return await asyncio.shield(pending)

        task = asyncio.ensure_future(self._extract(cache_key, url, options, events))
        self._pending[cache_key] = task

        def _forget(done: "asyncio.Future[ExtractedContent]") -> None:
            if self._pending.get(cache_key) is done:
                del self._pending[cache_key]

        task.add_done_callback(_forget)
        # a cancelled caller must not cancel the extraction other callers share
        return await asyncio.shield(task)

    async def _extract(
        self,
        cache_key: str,
        url: str,
        options: Optional[ExtractionOptions],
        events: ExtractionEvents,
    ) -> ExtractedContent:
        opts = options or self.config.extraction

        if self.cache.enabled:
            cached = self.cache.get(cache_key)
            if cached is not None:
                self.logger.debug("Cache hit")
                events.progress("fetching", 100, "Loaded from cache")
                return cached

        events.progress("fetching", 10)
        html = await self._fetch(url, opts.timeout)

        events.progress("parsing", 30)
        doc = parse_html(html)

        content = self._process_document(doc, url, opts, events)
        events.progress("analyzing", 90)

        if self.cache.enabled:
            self.cache.set(cache_key, content)
        events.progress("analyzing", 100)

        self.logger.info(
            "Extraction complete",
            paragraphs=len(content.paragraphs),
            words=content.word_count,
            quality=round(content.quality.score, 3),
        )
        return content

    async def _fetch(self, url: str, timeout: float) -> str:
        try:
            return await asyncio.wait_for(self.fetcher.fetch(url, timeout), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise FetchTimeout(url, timeout) from e

    async def extract_from_html(
        self,
        html: str,
        url: str,
        options: Optional[ExtractionOptions] = None,
        events: Optional[ExtractionEvents] = None,
    ) -> ExtractionResult:
        """
        Extract from markup the caller already has.

        Skips rate limiting, deduplication, fetching and the cache.

        Raises:
            PluginError: A plugin hook failed
        """
        events = events or ExtractionEvents()
        events.start()
        events.progress("parsing", 20)
        return await self._extract_document(parse_html(html), url, options, events)

    async def extract_from_document(
        self,
        doc: BeautifulSoup,
        url: str,
        options: Optional[ExtractionOptions] = None,
        events: Optional[ExtractionEvents] = None,
    ) -> ExtractionResult:
        """
        Extract from an already parsed document.

        Raises:
            PluginError: A plugin hook failed
        """
        events = events or ExtractionEvents()
        events.start()
        return await self._extract_document(doc, url, options, events)

    async def _extract_document(
        self,
        doc: BeautifulSoup,
        url: str,
        options: Optional[ExtractionOptions],
        events: ExtractionEvents,
    ) -> ExtractionResult:
        opts = options or self.config.extraction
        with structlog.contextvars.bound_contextvars(correlation_id=uuid.uuid4().hex[:12], url=url):
            try:
                content = self._process_document(doc, url, opts, events)
            except PluginError as e:
                self.logger.error("Plugin failed, extraction aborted", plugin=e.plugin_name, hook=e.hook)
                events.error(e)
                raise
            except Exception as e:
                self.logger.warning("Extraction failed", error=str(e), error_type=type(e).__name__)
                events.error(e)
                return ExtractionResult.fail(e)

        events.progress("analyzing", 100)
        events.complete(content)
        return ExtractionResult.ok(content)

    def _process_document(
        self, doc: BeautifulSoup, url: str, opts: ExtractionOptions, events: ExtractionEvents
    ) -> ExtractedContent:
        """Plugins, adapter or generic pipeline, plugins again, fingerprint."""
        doc = self.plugin_chain.run_before(doc, opts)

        events.progress("cleaning", 50)
        adapter = self._select_adapter(url, opts)

        events.progress("extracting", 70)
        content: Optional[ExtractedContent] = None
        if adapter is not None:
            partial = adapter.extract(doc, url)
            if partial:
                self.logger.debug("Adapter extraction", adapter=adapter.name)
                content = self._complete_partial(adapter, dict(partial), doc, url, opts)
            else:
                self.logger.debug("Adapter found nothing, using generic pipeline", adapter=adapter.name)
        if content is None:
            content = self.extractor.extract(doc, url, opts)

        content = self.plugin_chain.run_after(content)
        return content.model_copy(update={"fingerprint": generate_fingerprint(content)})

    def _select_adapter(self, url: str, opts: ExtractionOptions) -> Optional[SiteAdapter]:
        if opts.adapter:
            adapter = self.registry.get(opts.adapter)
            if adapter is None:
                raise AdapterNotFoundError(opts.adapter)
            return adapter
        return self.registry.dispatch(url)

    def _complete_partial(
        self,
        adapter: SiteAdapter,
        fields: Dict[str, Any],
        doc: BeautifulSoup,
        url: str,
        opts: ExtractionOptions,
    ) -> ExtractedContent:
        """Fill whatever the adapter left out with safe defaults."""
        if not fields.get("paragraphs"):
            detect = getattr(adapter, "detect_paragraphs", None)
            fields["paragraphs"] = detect(doc) if callable(detect) else []

        for flag, field_name, capability in ADAPTER_BLOCK_DETECTORS:
            detect = getattr(adapter, capability, None)
            if getattr(opts, flag) and fields.get(field_name) is None and callable(detect):
                fields[field_name] = detect(doc)

        if not fields.get("title"):
            fields["title"] = extract_title(doc)
        if fields.get("metadata") is None:
            fields["metadata"] = ContentMetadata(source=url_host(url), extracted_at=datetime.now(timezone.utc))

        content = compose_content(fields)
        if "language" not in fields and content.clean_text:
            content = content.model_copy(update={"language": self.analyzers.language(content.clean_text)})
        if "quality" not in fields:
            quality = self.extractor.quality.assess(
                doc,
                doc,
                content.title,
                content.paragraphs,
                content.metadata,
                self.analyzers.reading_ease,
                has_blocks=bool(content.tables or content.lists),
            )
            content = content.model_copy(update={"quality": quality})
        return content

    # ========================================================================
    # Batch, streaming and duplicates
    # ========================================================================

    async def extract_batch(
        self,
        urls: Sequence[str],
        options: Optional[ExtractionOptions] = None,
        concurrency: Optional[int] = None,
    ) -> List[ExtractionResult]:
        """
        Extract ``urls`` in fixed-size groups, one group at a time.

        Results are in input order. One URL failing, including through a
        plugin error, never affects the others.
        """
        size = concurrency or self.config.batch.concurrency
        if size < 1:
            raise ValueError("concurrency must be at least 1")

        results: List[ExtractionResult] = []
        for start in range(0, len(urls), size):
            group = list(urls[start : start + size])
            outcomes = await asyncio.gather(*(self.extract(url, options) for url in group), return_exceptions=True)
            for url, outcome in zip(group, outcomes):
                if isinstance(outcome, ExtractionResult):
                    results.append(outcome)
                elif isinstance(outcome, Exception):
                    self.logger.warning("Batch item failed", url=url, error=str(outcome))
                    results.append(ExtractionResult.fail(outcome))
                else:
                    raise outcome
        self.logger.info("Batch complete", total=len(urls), succeeded=sum(r.success for r in results))
        return results

    async def extract_stream(
        self,
        url: str,
        options: Optional[ExtractionOptions] = None,
        chunk_size: Optional[int] = None,
    ) -> AsyncIterator[StreamChunk]:
        """
        Extract ``url`` fully, then yield its paragraphs in chunks.

        Raises:
            ContentCoreError: The extraction failed (raised on first iteration)
        """
        size = chunk_size or self.config.batch.stream_chunk_size
        if size < 1:
            raise ValueError("chunk_size must be at least 1")

        result = await self.extract(url, options)
        if not result.success or result.data is None:
            raise result.error or RuntimeError(f"Extraction of {url} failed")

        paragraphs = result.data.paragraphs
        for index, start in enumerate(range(0, len(paragraphs), size)):
            chunk = paragraphs[start : start + size]
            yield StreamChunk(index=index, paragraphs=chunk, word_count=sum(len(p.text.split()) for p in chunk))

    async def find_duplicates(self, urls: Sequence[str]) -> Dict[str, List[str]]:
        """
        Group URLs whose content has the same fingerprint.

        Returns:
            Fingerprint -> URLs, only for groups of two or more. Failed
            extractions are left out.
        """
        groups: Dict[str, List[str]] = {}
        for url in urls:
            try:
                result = await self.extract(url)
            except PluginError as e:
                self.logger.warning("Skipping URL after plugin failure", url=url, plugin=e.plugin_name)
                continue
            if result.success and result.data is not None:
                groups.setdefault(result.data.fingerprint, []).append(url)
        return {fp: members for fp, members in groups.items() if len(members) > 1}

    # ========================================================================
    # Validation, export and bookkeeping
    # ========================================================================

    @staticmethod
    def validate_content(content: ExtractedContent) -> ValidationReport:
        """Check ``content`` against the minimum publishable bar."""
        errors: List[str] = []
        if not content.title:
            errors.append("Missing title")
        if not content.paragraphs:
            errors.append("No paragraphs extracted")
        if content.word_count < MIN_VALID_WORDS:
            errors.append(f"Content too short (less than {MIN_VALID_WORDS} words)")
        if content.quality.score < MIN_VALID_QUALITY:
            errors.append("Content quality too low")
        return ValidationReport(valid=not errors, errors=errors)

    @staticmethod
    def export_content(content: ExtractedContent, fmt: str = "json") -> str:
        return export_content(content, fmt)

    @staticmethod
    def import_content(data: str, fmt: str = "json") -> ExtractedContent:
        return import_content(data, fmt)

    def get_cache_stats(self) -> Dict[str, Any]:
        return self.cache.stats()

    def clear_cache(self) -> None:
        self.cache.clear()
        self.logger.info("Cache cleared")

    def get_rate_limit_info(self, url: str) -> RateLimitInfo:
        """
        Remaining quota for ``url``'s origin.

        ``reset_time`` is the wall-clock time (epoch seconds) at which at
        least one request will be admitted; now, when quota remains.
        """
        origin = origin_of(url)
        return RateLimitInfo(
            remaining=self.rate_limiter.get_remaining_requests(origin),
            reset_time=time.time() + self.rate_limiter.retry_after(origin),
        )
