"""
Serialization of extracted content to JSON, Markdown and HTML.

Only JSON can be read back; it round-trips to an equal ``ExtractedContent``.
"""

from __future__ import annotations

import html
from typing import List, Literal, Sequence

from .exceptions import UnsupportedFormatError
from .protocols import ExtractedContent, Paragraph, Section

ExportFormat = Literal["json", "markdown", "html"]
EXPORT_FORMATS = ("json", "markdown", "html")


def to_json(content: ExtractedContent, indent: int = 2) -> str:
    return content.model_dump_json(indent=indent)


def _markdown_paragraph(p: Paragraph) -> str:
    if p.is_heading:
        return f"{'#' * (p.heading_level or 2)} {p.text}"
    if p.is_quote:
        return "\n".join(f"> {line}" if line else ">" for line in p.text.splitlines())
    if p.is_code:
        return f"```\n{p.text}\n```"
    return p.text


def _markdown_sections(sections: Sequence[Section], out: List[str]) -> None:
    for section in sections:
        out.append(f"{'#' * section.level} {section.title}")
        out.extend(_markdown_paragraph(p) for p in section.paragraphs)
        _markdown_sections(section.sub_sections, out)


def to_markdown(content: ExtractedContent) -> str:
    """
    Render content as Markdown.

    The header carries the title, author and publication date. Sections are
    rendered with their nesting when present; otherwise paragraphs are
    rendered in order with heading, quote and code formatting.
    """
    header = [f"# {content.title}", ""]
    meta = content.metadata
    if meta.author:
        header.append(f"**Author:** {meta.author}")
    if meta.publish_date:
        header.append(f"**Published:** {meta.publish_date.date().isoformat()}")
    header.extend(["", "---", ""])

    blocks: List[str] = []
    if content.sections:
        _markdown_sections(content.sections, blocks)
    else:
        blocks.extend(_markdown_paragraph(p) for p in content.paragraphs)

    return "\n".join(header) + "\n" + "\n\n".join(blocks) + ("\n" if blocks else "")


def _html_paragraph(p: Paragraph) -> str:
    if p.is_heading:
        tag = f"h{p.heading_level or 2}"
    elif p.is_quote:
        tag = "blockquote"
    elif p.is_code:
        tag = "pre"
    else:
        tag = "p"
    return f"    <{tag}>{p.html or html.escape(p.text)}</{tag}>"


def to_html(content: ExtractedContent) -> str:
    """Render content as a minimal standalone HTML document."""
    title = html.escape(content.title)
    lines = [
        "<!DOCTYPE html>",
        "<html>",
        "<head>",
        '  <meta charset="utf-8">',
        f"  <title>{title}</title>",
        "</head>",
        "<body>",
        "  <article>",
        f"    <h1>{title}</h1>",
    ]
    meta = content.metadata
    if meta.author or meta.publish_date:
        parts = []
        if meta.author:
            parts.append(f'<span class="author">By {html.escape(meta.author)}</span>')
        if meta.publish_date:
            stamp = meta.publish_date.isoformat()
            parts.append(f'<time datetime="{stamp}">{meta.publish_date.date().isoformat()}</time>')
        lines.append(f'    <div class="metadata">{"".join(parts)}</div>')
    lines.extend(_html_paragraph(p) for p in content.paragraphs)
    lines.extend(["  </article>", "</body>", "</html>"])
    return "\n".join(lines) + "\n"


def export_content(content: ExtractedContent, fmt: str = "json") -> str:
    """
    Serialize ``content``.

    Raises:
        UnsupportedFormatError: ``fmt`` is not json, markdown or html
    """
    if fmt == "json":
        return to_json(content)
    if fmt == "markdown":
        return to_markdown(content)
    if fmt == "html":
        return to_html(content)
    raise UnsupportedFormatError(fmt, "export")


def import_content(data: str, fmt: str = "json") -> ExtractedContent:
    """
    Deserialize content. Only JSON is supported.

    Raises:
        UnsupportedFormatError: ``fmt`` is anything but json
        pydantic.ValidationError: ``data`` is not a valid content record
    """
    if fmt != "json":
        raise UnsupportedFormatError(fmt, "import")
    return ExtractedContent.model_validate_json(data)
