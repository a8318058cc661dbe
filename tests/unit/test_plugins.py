"""
Tests for the plugin hook chain.
"""

import pytest
from contentcore.config import ExtractionOptions
from contentcore.exceptions import PluginError
from contentcore.extractor.dom import parse_html
from contentcore.plugins import ContentExtractorPlugin, PluginChain
from contentcore.protocols import ExtractedContent


class RecordingPlugin(ContentExtractorPlugin):
    def __init__(self, name, log):
        self.name = name
        self.log = log

    def before_extract(self, doc, options):
        self.log.append(f"{self.name}:before")

    def after_extract(self, content):
        self.log.append(f"{self.name}:after")
        return content.model_copy(update={"title": content.title + f"+{self.name}"})


class AsyncInitPlugin(ContentExtractorPlugin):
    name = "async-init"

    def __init__(self):
        self.ready = False

    async def init(self):
        self.ready = True


class BrokenInitPlugin(ContentExtractorPlugin):
    name = "broken-init"

    def init(self):
        raise RuntimeError("cannot start")


class HookOnlyPlugin:
    """Duck-typed plugin exposing a single hook."""

    name = "hook-only"
    version = "1.0"

    def after_extract(self, content):
        content.metadata.tags.append("seen")


class TestPluginChain:
    @pytest.fixture
    def chain(self):
        return PluginChain()

    @pytest.mark.asyncio
    async def test_hooks_run_in_registration_order(self, chain):
        log = []
        await chain.register(RecordingPlugin("a", log))
        await chain.register(RecordingPlugin("b", log))

        doc = parse_html("<p>x</p>")
        assert chain.run_before(doc, ExtractionOptions()) is doc
        content = chain.run_after(ExtractedContent(title="T"))

        assert log == ["a:before", "b:before", "a:after", "b:after"]
        assert content.title == "T+a+b"

    @pytest.mark.asyncio
    async def test_none_return_keeps_mutated_input(self, chain):
        await chain.register(HookOnlyPlugin())
        content = chain.run_after(ExtractedContent(title="T"))
        assert content.metadata.tags == ["seen"]

    @pytest.mark.asyncio
    async def test_before_hook_can_replace_document(self, chain):
        replacement = parse_html("<p>replacement</p>")

        class Replacer(ContentExtractorPlugin):
            name = "replacer"

            def before_extract(self, doc, options):
                return replacement

        await chain.register(Replacer())
        assert chain.run_before(parse_html("<p>x</p>"), ExtractionOptions()) is replacement

    @pytest.mark.asyncio
    async def test_async_init_is_awaited(self, chain):
        plugin = AsyncInitPlugin()
        await chain.register(plugin)
        assert plugin.ready
        assert chain.plugins() == [plugin]

    @pytest.mark.asyncio
    async def test_failing_init_is_attributed(self, chain):
        with pytest.raises(PluginError) as exc_info:
            await chain.register(BrokenInitPlugin())

        assert exc_info.value.plugin_name == "broken-init"
        assert exc_info.value.hook == "init"
        assert isinstance(exc_info.value.cause, RuntimeError)
        assert len(chain) == 0

    @pytest.mark.asyncio
    async def test_failing_hook_is_attributed(self, chain):
        class Exploding(ContentExtractorPlugin):
            name = "exploding"

            def after_extract(self, content):
                raise KeyError("boom")

        await chain.register(Exploding())
        with pytest.raises(PluginError) as exc_info:
            chain.run_after(ExtractedContent())

        assert exc_info.value.plugin_name == "exploding"
        assert exc_info.value.hook == "after_extract"
        assert isinstance(exc_info.value.__cause__, KeyError)

    @pytest.mark.asyncio
    async def test_unregister(self, chain):
        await chain.register(AsyncInitPlugin())
        assert chain.unregister("async-init") is True
        assert chain.unregister("async-init") is False
        assert list(chain) == []

    @pytest.mark.asyncio
    async def test_nameless_plugin_is_rejected(self, chain):
        class Nameless:
            name = ""

        with pytest.raises(ValueError):
            await chain.register(Nameless())
