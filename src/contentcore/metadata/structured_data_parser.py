"""
Structured Data Parser - OpenGraph, Schema.org, RDFa and Twitter Cards

Reads the machine-readable metadata a page publishes about itself. The
parsers return plain dictionaries; ``parse_structured_data`` wraps them into
``StructuredData`` records for ``ExtractedContent.structured_data``.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup, Tag

from ..extractor.dom import resolve_url
from ..protocols import StructuredData

logger = logging.getLogger(__name__)

_OG_PROPERTY = re.compile(r"^(og|article|book|profile|video|music):")
_TWITTER_NAME = re.compile(r"^twitter:")


def _item_value(el: Tag) -> str:
    """Value of an ``itemprop``/``property`` element per its tag."""
    if el.has_attr("content"):
        return str(el.get("content", "")).strip()
    if el.name == "time":
        return str(el.get("datetime") or el.get_text()).strip()
    if el.name in ("img", "audio", "video", "source", "iframe", "embed"):
        return str(el.get("src", "")).strip()
    if el.name in ("a", "link", "area"):
        return str(el.get("href") or el.get_text()).strip()
    if el.name == "meta":
        return str(el.get("content", "")).strip()
    return el.get_text(" ", strip=True)


class OpenGraphParser:
    """Parser for OpenGraph metadata."""

    @staticmethod
    def parse(soup: BeautifulSoup, base_url: str = "") -> Dict[str, str]:
        """
        Parse OpenGraph (and the ``article:`` family) meta tags.

        Keys keep their namespace (``og:title``, ``article:published_time``).
        Repeated properties such as ``article:tag`` are joined with commas.
        """
        og_data: Dict[str, str] = {}
        for tag in soup.find_all("meta", attrs={"property": _OG_PROPERTY}):
            prop = str(tag.get("property", "")).strip()
            content = str(tag.get("content", "")).strip()
            if not prop or not content:
                continue
            if prop in ("og:image", "og:url") and base_url:
                content = resolve_url(content, base_url)
                if not content:
                    continue
            if prop in og_data and prop in ("article:tag", "article:author"):
                og_data[prop] = f"{og_data[prop]},{content}"
            else:
                og_data.setdefault(prop, content)
        return og_data


class TwitterCardParser:
    """Parser for Twitter Card metadata."""

    @staticmethod
    def parse(soup: BeautifulSoup) -> Dict[str, str]:
        twitter_data: Dict[str, str] = {}
        for tag in soup.find_all("meta", attrs={"name": _TWITTER_NAME}):
            name = str(tag.get("name", "")).strip()
            content = str(tag.get("content", "")).strip()
            if name and content:
                twitter_data.setdefault(name, content)
        return twitter_data


class SchemaOrgParser:
    """Parser for Schema.org structured data."""

    @staticmethod
    def parse_json_ld(soup: BeautifulSoup) -> List[Dict[str, Any]]:
        """Parse JSON-LD blocks, flattening arrays and ``@graph`` containers."""
        json_ld_data: List[Dict[str, Any]] = []
        for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
            raw = script.string or script.get_text()
            if not raw or not raw.strip():
                continue
            try:
                data = json.loads(raw.strip())
            except json.JSONDecodeError as e:
                logger.warning(f"Invalid JSON-LD: {e}")
                continue

            items = data if isinstance(data, list) else [data]
            for item in items:
                if not isinstance(item, dict):
                    continue
                graph = item.get("@graph")
                if isinstance(graph, list):
                    context = item.get("@context")
                    for node in graph:
                        if isinstance(node, dict):
                            json_ld_data.append({"@context": context, **node} if context else node)
                else:
                    json_ld_data.append(item)
        return json_ld_data

    @staticmethod
    def parse_microdata(soup: BeautifulSoup) -> List[Dict[str, Any]]:
        """Parse top-level ``itemscope`` items with their own properties."""
        items: List[Dict[str, Any]] = []
        for scope in soup.find_all(attrs={"itemscope": True}):
            if scope.find_parent(attrs={"itemscope": True}) is not None:
                continue
            items.append(SchemaOrgParser._microdata_item(scope))
        return [item for item in items if item["properties"]]

    @staticmethod
    def _microdata_item(scope: Tag) -> Dict[str, Any]:
        properties: Dict[str, Any] = {}
        for prop in scope.find_all(attrs={"itemprop": True}):
            # properties of nested items belong to the nested item
            owner = prop.find_parent(attrs={"itemscope": True})
            if owner is not scope:
                continue
            name = str(prop.get("itemprop", "")).strip()
            if not name:
                continue
            value: Any
            if prop.has_attr("itemscope"):
                value = SchemaOrgParser._microdata_item(prop)
            else:
                value = _item_value(prop)
            if value in ("", None):
                continue
            if name in properties:
                existing = properties[name]
                properties[name] = existing + [value] if isinstance(existing, list) else [existing, value]
            else:
                properties[name] = value
        return {"type": str(scope.get("itemtype", "")) or None, "properties": properties}

    @staticmethod
    def parse_rdfa(soup: BeautifulSoup) -> List[Dict[str, Any]]:
        """Parse RDFa ``typeof`` scopes. ``og:``-style meta properties are left to OpenGraph."""
        items: List[Dict[str, Any]] = []
        for scope in soup.find_all(attrs={"typeof": True}):
            properties: Dict[str, Any] = {}
            for prop in scope.find_all(attrs={"property": True}):
                name = str(prop.get("property", "")).strip()
                value = _item_value(prop)
                if name and value:
                    properties.setdefault(name, value)
            if properties:
                items.append({"type": str(scope.get("typeof")), "vocab": scope.get("vocab"), "properties": properties})
        return items

    @staticmethod
    def extract_schema_fields(json_ld_data: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Pull common article fields out of JSON-LD items.

        The first item that provides a field wins. Person and Organization
        references are reduced to their ``name``.
        """
        field_mappings = {
            "headline": "title",
            "name": "title",
            "description": "description",
            "author": "author",
            "datePublished": "date_published",
            "dateModified": "date_modified",
            "image": "image",
            "publisher": "publisher",
            "articleSection": "section",
            "keywords": "keywords",
            "license": "license",
            "copyrightHolder": "copyright",
        }
        schema_fields: Dict[str, Any] = {}
        for item in json_ld_data:
            if "@type" in item:
                schema_fields.setdefault("type", item["@type"])
            for json_key, schema_key in field_mappings.items():
                if schema_key in schema_fields:
                    continue
                value = item.get(json_key)
                if not value:
                    continue
                if json_key == "author":
                    names = _names(value)
                    if names:
                        schema_fields["author"] = names[0]
                        schema_fields["authors"] = names
                    continue
                if json_key in ("articleSection", "keywords"):
                    schema_fields[schema_key] = _string_list(value)
                    continue
                reduced = _reduce(value)
                if reduced:
                    schema_fields[schema_key] = reduced
        return schema_fields


def _reduce(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        for key in ("name", "url", "@id"):
            if value.get(key):
                return str(value[key])
        return None
    if isinstance(value, list):
        for item in value:
            reduced = _reduce(item)
            if reduced:
                return reduced
        return None
    return str(value)


def _names(value: Any) -> List[str]:
    items = value if isinstance(value, list) else [value]
    names = [_reduce(item) for item in items]
    return [name for name in names if name]


def _string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, list):
        return [str(part).strip() for part in value if str(part).strip()]
    return [str(value)]


def parse_structured_data(soup: BeautifulSoup, base_url: str = "") -> List[StructuredData]:
    """
    Collect every structured data block on the page.

    Args:
        soup: Parsed document
        base_url: Base URL for resolving relative OpenGraph URLs

    Returns:
        JSON-LD items, microdata items, RDFa scopes and one OpenGraph block,
        in that order
    """
    records: List[StructuredData] = []
    for item in SchemaOrgParser.parse_json_ld(soup):
        context = item.get("@context")
        records.append(StructuredData(type="json-ld", data=item, context=context if isinstance(context, str) else None))
    for item in SchemaOrgParser.parse_microdata(soup):
        records.append(StructuredData(type="microdata", data=item, context=item.get("type")))
    for item in SchemaOrgParser.parse_rdfa(soup):
        records.append(StructuredData(type="rdfa", data=item, context=item.get("vocab")))
    og_data = OpenGraphParser.parse(soup, base_url)
    if og_data:
        records.append(StructuredData(type="opengraph", data=og_data, context="https://ogp.me/ns#"))
    return records
