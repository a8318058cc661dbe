"""
Tests for the adapter registry and the built-in site adapters.
"""

import re

import pytest
from contentcore.adapters import (
    AdapterRegistry,
    BaseSiteAdapter,
    RedditAdapter,
    SubstackAdapter,
    WikipediaAdapter,
    compile_matcher,
)
from contentcore.extractor.dom import parse_html
from contentcore.protocols import SiteAdapter


class StubAdapter:
    """Adapter that does not inherit from the base class."""

    def __init__(self, name, patterns, priority=0):
        self.name = name
        self.patterns = patterns
        self.priority = priority

    def extract(self, doc, url):
        return {"title": self.name}


class TestUrlMatchers:
    def test_string_is_regex(self):
        assert compile_matcher(r"example\.com/blog")("https://example.com/blog/post")
        assert not compile_matcher(r"example\.com/blog")("https://example.com/shop")

    def test_compiled_pattern(self):
        assert compile_matcher(re.compile(r"^https://docs\."))("https://docs.example.com")

    def test_predicate(self):
        assert compile_matcher(lambda url: url.endswith(".pdf"))("https://a.example/x.pdf")

    def test_rejects_other_types(self):
        with pytest.raises(TypeError):
            compile_matcher(42)


class TestAdapterRegistry:
    """Registration, replacement and priority dispatch."""

    def test_stub_satisfies_protocol(self):
        assert isinstance(StubAdapter("x", []), SiteAdapter)

    def test_highest_priority_wins(self):
        registry = AdapterRegistry()
        registry.register(StubAdapter("a", [r"example\.com"], priority=5))
        registry.register(StubAdapter("b", [r"example\.com"], priority=10))
        assert registry.dispatch("https://example.com/page").name == "b"

    def test_equal_priority_resolves_in_registration_order(self):
        registry = AdapterRegistry()
        registry.register(StubAdapter("first", [r"example\.com"], priority=5))
        registry.register(StubAdapter("second", [r"example\.com"], priority=5))
        assert registry.dispatch("https://example.com/").name == "first"

    def test_no_match_returns_none(self):
        registry = AdapterRegistry([StubAdapter("a", [r"example\.com"])])
        assert registry.dispatch("https://other.example/") is None

    def test_same_name_replaces_in_place(self):
        registry = AdapterRegistry()
        registry.register(StubAdapter("a", [r"one\.example"]))
        registry.register(StubAdapter("b", [r"two\.example"]))
        replacement = StubAdapter("a", [r"three\.example"])
        registry.register(replacement)

        assert [a.name for a in registry.list_adapters()] == ["a", "b"]
        assert registry.get("a") is replacement
        assert registry.dispatch("https://one.example/") is None
        assert len(registry) == 2

    def test_unregister(self):
        registry = AdapterRegistry([StubAdapter("a", [r"example\.com"])])
        assert registry.unregister("a") is True
        assert registry.unregister("a") is False
        assert "a" not in registry
        assert registry.dispatch("https://example.com/") is None

    def test_nameless_adapter_is_rejected(self):
        with pytest.raises(ValueError):
            AdapterRegistry().register(StubAdapter("", []))

    def test_defaults(self):
        registry = AdapterRegistry.with_defaults()
        assert {"wikipedia", "reddit", "substack"} <= {a.name for a in registry}
        assert registry.dispatch("https://en.wikipedia.org/wiki/Python").name == "wikipedia"
        assert registry.dispatch("https://www.reddit.com/r/python/comments/1").name == "reddit"
        assert registry.dispatch("https://someone.substack.com/p/post").name == "substack"
        assert registry.dispatch("https://example.com/") is None

    def test_clear(self):
        registry = AdapterRegistry.with_defaults()
        registry.clear()
        assert len(registry) == 0


WIKIPEDIA_HTML = """
<html><head><title>Python - Wikipedia</title></head><body>
<h1 id="firstHeading">Python (programming language)</h1>
<div id="mw-content-text"><div class="mw-parser-output">
  <p>Python is a high-level programming language.<sup class="reference">[1]</sup></p>
  <h2>History and development<span class="mw-editsection">[edit]</span></h2>
  <p>Python was conceived in the late 1980s.</p>
  <table class="wikitable"><tr><th>Version</th><th>Year</th></tr><tr><td>3.0</td><td>2008</td></tr></table>
</div></div>
<div id="catlinks"><div class="mw-normal-catlinks"><ul>
  <li><a href="/wiki/C1">Programming languages</a></li><li><a href="/wiki/C2">Dutch inventions</a></li>
</ul></div></div>
</body></html>
"""

REDDIT_HTML = """
<html><head><title>Best editor? - r/python</title></head><body>
<h1>Which editor do you use?</h1>
<div data-test-id="post-content">I have been trying several editors lately and want opinions.</div>
<div data-testid="comment">
  <a data-testid="comment_author_link">alice</a>
  <div class="RichTextJSON-root">I really like the one with good plugins.</div>
</div>
<div data-testid="comment">
  <div class="RichTextJSON-root">Short</div>
</div>
</body></html>
"""


class TestWikipediaAdapter:
    @pytest.fixture
    def adapter(self):
        return WikipediaAdapter()

    def test_extract(self, adapter):
        partial = adapter.extract(parse_html(WIKIPEDIA_HTML), "https://en.wikipedia.org/wiki/Python")

        assert partial["title"] == "Python (programming language)"
        texts = [p.text for p in partial["paragraphs"]]
        assert texts == [
            "Python is a high-level programming language.",
            "History and development",
            "Python was conceived in the late 1980s.",
        ]
        assert all("[1]" not in t and "[edit]" not in t for t in texts)
        assert [p.index for p in partial["paragraphs"]] == list(range(len(texts)))
        assert partial["metadata"].categories == ["Programming languages", "Dutch inventions"]
        assert partial["metadata"].source == "wikipedia.org"

    def test_headings_are_flagged(self, adapter):
        paragraphs = adapter.detect_paragraphs(parse_html(WIKIPEDIA_HTML))
        (heading,) = [p for p in paragraphs if p.is_heading]
        assert heading.heading_level == 2
        assert heading.importance == 0.9

    def test_tables(self, adapter):
        (table,) = adapter.detect_tables(parse_html(WIKIPEDIA_HTML))
        assert table.headers == ["Version", "Year"]
        assert table.rows == [["3.0", "2008"]]

    def test_non_article_page_returns_empty(self, adapter):
        assert adapter.extract(parse_html("<html><body><p>Nothing</p></body></html>"), "https://en.wikipedia.org/") == {}

    def test_source_document_is_untouched(self, adapter):
        doc = parse_html(WIKIPEDIA_HTML)
        adapter.extract(doc, "https://en.wikipedia.org/wiki/Python")
        assert "[1]" in doc.get_text()


class TestRedditAdapter:
    @pytest.fixture
    def adapter(self):
        return RedditAdapter()

    def test_post_and_comments(self, adapter):
        partial = adapter.extract(parse_html(REDDIT_HTML), "https://www.reddit.com/r/python/comments/1")

        assert partial["title"] == "Which editor do you use?"
        post, comment = partial["paragraphs"]
        assert post.text == "I have been trying several editors lately and want opinions."
        assert post.importance == 0.9
        assert comment.text == "[alice]: I really like the one with good plugins."
        assert comment.is_quote
        assert comment.metadata == {"author": "alice"}
        assert [p.index for p in partial["paragraphs"]] == [0, 1]

    def test_no_content_returns_empty(self, adapter):
        assert adapter.extract(parse_html("<html><body></body></html>"), "https://reddit.com/") == {}


class TestSubstackAdapter:
    def test_extract(self):
        doc = parse_html(
            "<html><body><article class='post'>"
            "<h1 class='post-title'>Weekly letter</h1><h3 class='subtitle'>What happened this week</h3>"
            "<div class='body'><p>The first paragraph of the letter.</p><p>The second paragraph.</p></div>"
            "</article></body></html>"
        )
        partial = SubstackAdapter().extract(doc, "https://someone.substack.com/p/weekly")

        assert partial["title"] == "Weekly letter"
        assert partial["metadata"].description == "What happened this week"
        assert [p.text for p in partial["paragraphs"] if not p.is_heading] == [
            "The first paragraph of the letter.",
            "The second paragraph.",
        ]

    def test_non_post_page_returns_empty(self):
        assert SubstackAdapter().extract(parse_html("<div>Landing</div>"), "https://substack.com/") == {}


class TestBaseSiteAdapter:
    def test_matches_and_repr(self):
        class Blog(BaseSiteAdapter):
            name = "blog"
            patterns = [r"blog\.example"]
            priority = 3

            def extract(self, doc, url):
                return {}

        blog = Blog()
        assert blog.matches("https://blog.example/post")
        assert not blog.matches("https://shop.example/")
        assert repr(blog) == "Blog(name='blog', priority=3)"
