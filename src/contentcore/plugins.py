"""
Plugin hook chain.

Plugins see every extraction twice: ``before_extract`` gets the parsed
document and ``after_extract`` gets the finished content. Hooks run in
registration order. A hook that raises aborts the extraction with a
``PluginError`` naming the plugin and the hook.
"""

from __future__ import annotations

import inspect
from typing import Any, Iterator, List, Optional

import structlog
from bs4 import BeautifulSoup

from .config.config import ExtractionOptions
from .exceptions import PluginError
from .protocols import ExtractedContent

logger = structlog.get_logger(__name__)


class ContentExtractorPlugin:
    """
    Base class for plugins. Every hook is a no-op.

    Subclassing is optional; any object with ``name`` and ``version`` and
    any subset of the hooks is accepted.
    """

    name: str = "plugin"
    version: str = "0.0.0"

    def init(self) -> None:
        """Called once when the plugin is registered. May be a coroutine."""

    def before_extract(self, doc: BeautifulSoup, options: ExtractionOptions) -> Optional[BeautifulSoup]:
        return doc

    def after_extract(self, content: ExtractedContent) -> Optional[ExtractedContent]:
        return content


class PluginChain:
    """Ordered plugin list with attributed hook invocation."""

    def __init__(self) -> None:
        self._plugins: List[Any] = []

    async def register(self, plugin: Any) -> None:
        """
        Initialize and append ``plugin``.

        Raises:
            PluginError: ``init`` raised
            ValueError: The plugin has no name
        """
        name = getattr(plugin, "name", None)
        if not name:
            raise ValueError("Plugin must define a non-empty name")

        init = getattr(plugin, "init", None)
        if callable(init):
            try:
                result = init()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                raise PluginError(name, "init", e) from e

        self._plugins.append(plugin)
        logger.info("Registered plugin", plugin=name, version=getattr(plugin, "version", "unknown"))

    def unregister(self, name: str) -> bool:
        before = len(self._plugins)
        self._plugins = [p for p in self._plugins if p.name != name]
        removed = len(self._plugins) != before
        if removed:
            logger.info("Unregistered plugin", plugin=name)
        return removed

    def plugins(self) -> List[Any]:
        return list(self._plugins)

    def run_before(self, doc: BeautifulSoup, options: ExtractionOptions) -> BeautifulSoup:
        for plugin in self._plugins:
            hook = getattr(plugin, "before_extract", None)
            if not callable(hook):
                continue
            try:
                result = hook(doc, options)
            except Exception as e:
                raise PluginError(plugin.name, "before_extract", e) from e
            if result is not None:
                doc = result
        return doc

    def run_after(self, content: ExtractedContent) -> ExtractedContent:
        for plugin in self._plugins:
            hook = getattr(plugin, "after_extract", None)
            if not callable(hook):
                continue
            try:
                result = hook(content)
            except Exception as e:
                raise PluginError(plugin.name, "after_extract", e) from e
            if result is not None:
                content = result
        return content

    def __len__(self) -> int:
        return len(self._plugins)

    def __iter__(self) -> Iterator[Any]:
        return iter(list(self._plugins))
