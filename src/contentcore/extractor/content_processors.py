"""
Specialized processors for structured blocks.

- Tables: headers, rows and caption
- Lists: nested items with depth
- Embeds: video/audio players, iframes and social embeds
- Images: source, alt text, caption and dimensions
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from bs4 import Tag

from ..protocols import Embed, EmbedType, ImageMetadata, ListBlock, ListItem, TableBlock
from .dom import (
    Node,
    collapse_whitespace,
    element_children,
    inner_html,
    resolve_url,
    select_all,
    select_one,
    selector_path,
    url_host,
)

logger = logging.getLogger(__name__)

MAX_LIST_DEPTH = 10


class TableProcessor:
    """
    HTML table processor with structure preservation.
    """

    def process(self, root: Node, selector: str = "table") -> List[TableBlock]:
        """
        Extract tables under ``root``.

        Args:
            root: Document or subtree to search
            selector: Which tables to consider

        Returns:
            Tables that carry at least one row or a caption
        """
        tables: List[TableBlock] = []
        for table in select_all(root, selector):
            # nested tables are reported through their outermost table
            if table.find_parent("table") is not None:
                continue
            block = self._process_table(table, len(tables))
            if block is not None:
                tables.append(block)
        return tables

    def _process_table(self, table: Tag, index: int) -> Optional[TableBlock]:
        caption_el = table.find("caption")
        caption = collapse_whitespace(caption_el.get_text()) if caption_el else None

        rows = [row for row in table.find_all("tr") if row.find_parent("table") is table]
        headers: List[str] = []
        if rows:
            first = rows[0]
            cells = first.find_all(["th", "td"], recursive=False)
            in_thead = first.find_parent("thead") is not None
            if cells and (in_thead or all(cell.name == "th" for cell in cells)):
                headers = [collapse_whitespace(cell.get_text()) for cell in cells]
                rows = rows[1:]

        body: List[List[str]] = []
        for row in rows:
            cells = row.find_all(["td", "th"], recursive=False)
            if cells:
                body.append([collapse_whitespace(cell.get_text()) for cell in cells])

        if not body and not caption:
            return None
        return TableBlock(
            id=f"table-{index}",
            headers=headers,
            rows=body,
            caption=caption or None,
            element_path=selector_path(table),
            index=index,
        )

    @staticmethod
    def to_text(table: TableBlock) -> str:
        """Render a table as pipe-separated text."""
        lines: List[str] = []
        if table.caption:
            lines.append(f"Table: {table.caption}")
            lines.append("")
        if table.headers:
            header_line = " | ".join(table.headers)
            lines.append(header_line)
            lines.append("-" * len(header_line))
        lines.extend(" | ".join(row) for row in table.rows)
        return "\n".join(lines)


class ListProcessor:
    """
    Ordered, unordered and definition list extraction with nesting.
    """

    def process(self, root: Node) -> List[ListBlock]:
        blocks: List[ListBlock] = []
        for el in select_all(root, "ul, ol, dl"):
            # nested lists are reported through their outermost list
            if el.find_parent(["ul", "ol", "dl"]) is not None:
                continue
            items = self._definition_items(el) if el.name == "dl" else self._items(el, 0)
            if not items:
                continue
            blocks.append(
                ListBlock(
                    id=f"list-{len(blocks)}",
                    type={"ol": "ordered", "ul": "unordered", "dl": "definition"}[el.name],
                    items=items,
                    element_path=selector_path(el),
                    index=len(blocks),
                )
            )
        return blocks

    def _items(self, list_el: Tag, depth: int) -> List[ListItem]:
        items: List[ListItem] = []
        for li in list_el.find_all("li", recursive=False):
            nested = [child for child in element_children(li) if child.name in ("ul", "ol")]
            sub_items: List[ListItem] = []
            if depth < MAX_LIST_DEPTH:
                for sub in nested:
                    sub_items.extend(self._items(sub, depth + 1))
            own_text = "".join(
                child.get_text() if isinstance(child, Tag) else str(child)
                for child in li.children
                if not (isinstance(child, Tag) and child.name in ("ul", "ol"))
            )
            text = collapse_whitespace(own_text)
            if not text and not sub_items:
                continue
            items.append(ListItem(text=text, html=inner_html(li), sub_items=sub_items, depth=depth))
        return items

    @staticmethod
    def _definition_items(dl: Tag) -> List[ListItem]:
        items: List[ListItem] = []
        for term in dl.find_all("dt", recursive=False):
            definitions = []
            sibling = term.find_next_sibling()
            while sibling is not None and sibling.name == "dd":
                definitions.append(
                    ListItem(text=collapse_whitespace(sibling.get_text()), html=inner_html(sibling), depth=1)
                )
                sibling = sibling.find_next_sibling()
            items.append(
                ListItem(text=collapse_whitespace(term.get_text()), html=inner_html(term), sub_items=definitions)
            )
        return items


EMBED_PROVIDERS = (
    (re.compile(r"(^|\.)youtube(-nocookie)?\.com$|(^|\.)youtu\.be$"), "youtube", "video"),
    (re.compile(r"(^|\.)vimeo\.com$"), "vimeo", "video"),
    (re.compile(r"(^|\.)codepen\.io$"), "codepen", "codepen"),
    (re.compile(r"(^|\.)(twitter|x)\.com$"), "twitter", "tweet"),
    (re.compile(r"(^|\.)instagram\.com$"), "instagram", "instagram"),
    (re.compile(r"(^|\.)(spotify|soundcloud)\.com$"), "audio", "audio"),
)


class EmbedProcessor:
    """
    Embedded media discovery.
    """

    def process(self, root: Node, base_url: str = "") -> List[Embed]:
        embeds: List[Embed] = []
        seen: set = set()

        def add(el: Tag, url: str, embed_type: EmbedType, provider: Optional[str], title: Optional[str] = None) -> None:
            if not url or url in seen:
                return
            seen.add(url)
            embeds.append(
                Embed(
                    id=f"embed-{len(embeds)}",
                    type=embed_type,
                    url=url,
                    title=title,
                    provider=provider,
                    thumbnail_url=self._absolute(str(el.get("poster", "")), base_url) or None,
                    element_path=selector_path(el),
                    index=len(embeds),
                )
            )

        for el in select_all(root, "video, audio, iframe, embed, object"):
            src = str(el.get("src") or el.get("data-src") or el.get("data") or "")
            if not src and el.name in ("video", "audio"):
                source = select_one(el, "source[src]")
                src = str(source.get("src")) if source is not None else ""
            url = self._absolute(src, base_url)
            provider, embed_type = self._classify(url)
            if el.name in ("video", "audio") and provider is None:
                embed_type = el.name
            add(el, url, embed_type, provider, el.get("title"))

        for quote in select_all(root, "blockquote.twitter-tweet, blockquote.instagram-media"):
            link = select_one(quote, "a[href]")
            if link is None:
                continue
            is_tweet = "twitter-tweet" in (quote.get("class") or [])
            add(quote, str(link["href"]), "tweet" if is_tweet else "instagram", "twitter" if is_tweet else "instagram")

        return embeds

    @staticmethod
    def _absolute(url: str, base_url: str) -> str:
        if not url.strip():
            return ""
        return resolve_url(url, base_url) or ""

    @staticmethod
    def _classify(url: str) -> "tuple[Optional[str], EmbedType]":
        host = url_host(url) or ""
        for pattern, provider, embed_type in EMBED_PROVIDERS:
            if pattern.search(host):
                return provider, embed_type
        return None, "iframe" if url else "other"


class ImageProcessor:
    """
    Image processor for extracting alt-text, captions, and dimensions.
    """

    def process(self, root: Node, base_url: str = "", limit: int = 20) -> List[ImageMetadata]:
        images: List[ImageMetadata] = []
        for img in select_all(root, "img"):
            src = str(img.get("src") or img.get("data-src") or "").strip()
            if not src or src.startswith("data:"):
                continue
            src = resolve_url(src, base_url)
            if not src:
                continue
            figure = img.find_parent("figure")
            caption_el = figure.find("figcaption") if figure is not None else None
            images.append(
                ImageMetadata(
                    url=src,
                    alt=str(img.get("alt")) if img.get("alt") else None,
                    caption=collapse_whitespace(caption_el.get_text()) if caption_el else None,
                    width=self._dimension(img.get("width")),
                    height=self._dimension(img.get("height")),
                    type=src.rsplit(".", 1)[-1].lower() if re.search(r"\.(jpe?g|png|gif|webp|svg|avif)$", src, re.I) else None,
                )
            )
            if len(images) >= limit:
                break
        logger.debug("Extracted %d images", len(images))
        return images

    @staticmethod
    def _dimension(value: object) -> Optional[int]:
        if value is None:
            return None
        match = re.match(r"\s*(\d+)", str(value))
        return int(match.group(1)) if match else None
