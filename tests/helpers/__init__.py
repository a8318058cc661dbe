"""Shared helpers for the ContentCore test suite."""

from .fakes import FakeClock, FakeFetcher
from .pages import RICH_ARTICLE_HTML, SIMPLE_ARTICLE_HTML, article_html

__all__ = ["FakeClock", "FakeFetcher", "RICH_ARTICLE_HTML", "SIMPLE_ARTICLE_HTML", "article_html"]
