"""
Metadata Extractor - page-level descriptive metadata

Combines OpenGraph, Twitter Cards, JSON-LD, microdata, standard meta tags,
``time[datetime]`` elements and ``rel=author`` links into one
``ContentMetadata`` record. Sources are consulted in a fixed precedence
order per field; the first non-empty value wins.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from bs4 import BeautifulSoup

from ..extractor.content_processors import ImageProcessor
from ..extractor.dom import collapse_whitespace, resolve_url, select_all, select_one, url_host
from ..protocols import ContentMetadata, SocialMetadata
from .structured_data_parser import OpenGraphParser, SchemaOrgParser, TwitterCardParser

logger = logging.getLogger(__name__)

AUTHOR_SELECTORS = (
    'a[rel~="author"]',
    '[itemprop="author"] [itemprop="name"]',
    '[itemprop="author"]',
    ".byline .author",
    ".author-name",
    ".byline",
)
BYLINE_PREFIX = re.compile(r"^\s*(by|written by|posted by)\s+", re.IGNORECASE)

DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%d.%m.%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%a, %d %b %Y %H:%M:%S %z",
)


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """Parse ISO 8601 and a handful of common human date formats."""
    if not value:
        return None
    value = value.strip()
    iso = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        return datetime.fromisoformat(iso)
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    logger.debug(f"Unparseable date: {value!r}")
    return None


def _first(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if value and str(value).strip():
            return str(value).strip()
    return None


def _unique(values: Iterable[str]) -> List[str]:
    result: List[str] = []
    seen = set()
    for value in values:
        value = value.strip()
        if value and value.lower() not in seen:
            seen.add(value.lower())
            result.append(value)
    return result


def _meta(soup: BeautifulSoup, name: str) -> Optional[str]:
    tag = soup.find("meta", attrs={"name": re.compile(rf"^{re.escape(name)}$", re.IGNORECASE)})
    if tag is None:
        return None
    return str(tag.get("content", "")).strip() or None


class MetadataExtractor:
    """
    Builds ``ContentMetadata`` for a parsed document.
    """

    def __init__(self, image_limit: int = 20) -> None:
        self.image_processor = ImageProcessor()
        self.image_limit = image_limit

    def extract(self, soup: BeautifulSoup, url: str = "") -> ContentMetadata:
        """
        Extract page metadata.

        Args:
            soup: Parsed (uncleaned) document
            url: Page URL, used to resolve relative links and as the fallback source

        Returns:
            Metadata with ``extracted_at`` set to now (UTC)
        """
        og = OpenGraphParser.parse(soup, url)
        twitter = TwitterCardParser.parse(soup)
        schema = SchemaOrgParser.extract_schema_fields(SchemaOrgParser.parse_json_ld(soup))
        microdata = self._microdata_fields(soup)

        authors = self._authors(soup, og, schema, microdata)
        keywords = _meta(soup, "keywords")
        tags = _unique(
            (og.get("article:tag", "").split(",") if og.get("article:tag") else [])
            + (keywords.split(",") if keywords else [])
            + list(schema.get("keywords", []))
        )
        categories = _unique(list(schema.get("section", [])) + ([og["article:section"]] if "article:section" in og else []))

        publish_date = parse_date(
            _first(
                og.get("article:published_time"),
                schema.get("date_published"),
                microdata.get("datePublished"),
                _meta(soup, "date"),
                _meta(soup, "pubdate"),
                _meta(soup, "publish-date"),
                self._time_element(soup),
            )
        )
        update_date = parse_date(
            _first(
                og.get("article:modified_time"),
                og.get("og:updated_time"),
                schema.get("date_modified"),
                microdata.get("dateModified"),
                _meta(soup, "last-modified"),
            )
        )

        image_url = _first(og.get("og:image"), twitter.get("twitter:image"), schema.get("image"))
        license_link = select_one(soup, 'link[rel~="license"], a[rel~="license"]')

        metadata = ContentMetadata(
            author=authors[0] if authors else None,
            authors=authors,
            publish_date=publish_date,
            update_date=update_date,
            category=categories[0] if categories else None,
            categories=categories,
            tags=tags,
            description=_first(
                og.get("og:description"),
                _meta(soup, "description"),
                twitter.get("twitter:description"),
                schema.get("description"),
            ),
            image_url=resolve_url(image_url, url) if image_url else None,
            images=self.image_processor.process(soup, url, limit=self.image_limit),
            source=_first(og.get("og:site_name"), url_host(url)),
            extracted_at=datetime.now(timezone.utc),
            publisher=_first(schema.get("publisher"), og.get("og:site_name"), _meta(soup, "publisher")),
            copyright=_first(_meta(soup, "copyright"), schema.get("copyright")),
            license=_first(str(license_link.get("href", "")) if license_link else None, schema.get("license")),
            social=SocialMetadata(twitter=twitter, open_graph=og) if (twitter or og) else None,
        )
        logger.debug(f"Extracted metadata for {url or '<document>'}: author={metadata.author}")
        return metadata

    @staticmethod
    def _microdata_fields(soup: BeautifulSoup) -> Dict[str, Any]:
        fields: Dict[str, Any] = {}
        for item in SchemaOrgParser.parse_microdata(soup):
            for name, value in item["properties"].items():
                fields.setdefault(name, value)
        return fields

    @staticmethod
    def _time_element(soup: BeautifulSoup) -> Optional[str]:
        tag = select_one(soup, "time[pubdate][datetime]") or select_one(soup, "time[datetime]")
        return str(tag.get("datetime")) if tag is not None else None

    @staticmethod
    def _authors(
        soup: BeautifulSoup, og: Dict[str, str], schema: Dict[str, Any], microdata: Dict[str, Any]
    ) -> List[str]:
        candidates: List[str] = []
        meta_author = _meta(soup, "author")
        if meta_author:
            candidates.append(meta_author)
        candidates.extend(schema.get("authors", []))
        if og.get("article:author"):
            # article:author is frequently a profile URL
            candidates.extend(a for a in og["article:author"].split(",") if not a.startswith("http"))
        md_author = microdata.get("author")
        if isinstance(md_author, dict):
            md_author = md_author.get("properties", {}).get("name")
        if isinstance(md_author, str):
            candidates.append(md_author)
        if not candidates:
            for selector in AUTHOR_SELECTORS:
                for el in select_all(soup, selector):
                    name = BYLINE_PREFIX.sub("", collapse_whitespace(el.get_text()))
                    if name and len(name) <= 100:
                        candidates.append(name)
                if candidates:
                    break
        return _unique(candidates)
