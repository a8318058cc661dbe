"""
Tests for paragraph detection, classification and merging.
"""

import pytest
from contentcore.config import ExtractionOptions
from contentcore.detector import ParagraphDetector, link_density
from contentcore.extractor.dom import parse_html, select_one
from contentcore.protocols import Bounds, Paragraph


def _para(text: str, top: float, bottom: float, **kwargs) -> Paragraph:
    return Paragraph(id="p-0", text=text, index=0, bounds=Bounds(y=top, height=bottom - top), **kwargs)


class TestParagraphDetection:
    """Container selection, block discovery and record materialization."""

    @pytest.fixture
    def detector(self):
        return ParagraphDetector()

    def test_simple_article(self, detector, simple_doc):
        paragraphs = detector.detect(simple_doc)

        assert [p.text for p in paragraphs] == [
            "This is a test paragraph with some content.",
            "Another paragraph with more information.",
        ]
        assert [p.index for p in paragraphs] == [0, 1]
        assert [p.id for p in paragraphs] == ["p-0", "p-1"]
        assert all(p.importance == 0.5 for p in paragraphs)

    def test_indexes_are_contiguous_after_filtering(self, detector):
        doc = parse_html(
            "<article>"
            "<p>A first paragraph that is long enough.</p>"
            "<p>Short one is here, ok.</p>"
            "<p>A third paragraph that is long enough.</p>"
            "</article>"
        )
        paragraphs = detector.detect(doc, ExtractionOptions(min_paragraph_length=25))
        assert [p.text for p in paragraphs] == [
            "A first paragraph that is long enough.",
            "A third paragraph that is long enough.",
        ]
        assert [(p.index, p.id) for p in paragraphs] == [(0, "p-0"), (1, "p-1")]

    def test_min_paragraph_length_boundary(self, detector):
        text = "x" * 29 + "."
        doc = parse_html(f"<article><p>{text}</p><p>{'y' * 40}</p></article>")
        assert len(detector.detect(doc, ExtractionOptions(min_paragraph_length=30))) == 2
        assert len(detector.detect(doc, ExtractionOptions(min_paragraph_length=31))) == 1

    def test_prefers_container_with_less_link_text(self, detector):
        doc = parse_html(
            "<body>"
            "<main><a href='/1'>A long list of links pointing elsewhere on the site</a>"
            "<a href='/2'>Another long link text that is not content at all</a></main>"
            "<article><p>The actual article body is written in this paragraph.</p></article>"
            "</body>"
        )
        container = detector.find_content_container(doc)
        assert container.name == "article"

    def test_fallback_without_container(self, detector):
        doc = parse_html("<body><div><p>This page has no article or main container at all.</p></div></body>")
        paragraphs = detector.detect(doc)
        assert [p.text for p in paragraphs] == ["This page has no article or main container at all."]

    def test_excluded_subtrees_are_skipped(self, detector):
        doc = parse_html(
            "<article>"
            "<p>Body paragraph with enough text to be kept.</p>"
            "<div class='social-share'><p>Share this article with your friends today.</p></div>"
            "<div class='my-widget'><p>Widget paragraph with enough text to count.</p></div>"
            "<footer><p>Footer paragraph with enough text to count.</p></footer>"
            "</article>"
        )
        assert [p.text for p in detector.detect(doc)] == ["Body paragraph with enough text to be kept."]

    def test_leaf_most_blocks_are_chosen(self, detector):
        doc = parse_html(
            "<article><div class='wrapper'>"
            "<p>First nested paragraph inside the wrapper.</p>"
            "<p>Second nested paragraph inside the wrapper.</p>"
            "</div></article>"
        )
        paragraphs = detector.detect(doc)
        assert len(paragraphs) == 2
        assert all(p.element_path.split(" > ")[-1].startswith("p") for p in paragraphs)

    def test_headings_quotes_and_code(self, detector):
        doc = parse_html(
            "<article>"
            "<h2>A heading that is long enough</h2>"
            "<blockquote>A quotation from someone important.</blockquote>"
            "<pre>def function_with_a_long_name(): pass</pre>"
            "<p>An ordinary paragraph with plain text in it.</p>"
            "</article>"
        )
        heading, quote, code, plain = detector.detect(doc)

        assert heading.is_heading and heading.heading_level == 2
        assert quote.is_quote and not quote.is_heading
        assert code.is_code
        assert not (plain.is_heading or plain.is_quote or plain.is_code)
        assert plain.heading_level is None

    def test_scripts_are_excluded_from_text(self, detector):
        doc = parse_html("<article><p>Paragraph text that is long enough<script>var x = 1;</script></p></article>")
        (paragraph,) = detector.detect(doc)
        assert "var x" not in paragraph.text
        assert "script" not in paragraph.html

    def test_html_is_inner_markup(self, detector):
        doc = parse_html("<article><p>Text with <strong>bold words</strong> in the middle.</p></article>")
        (paragraph,) = detector.detect(doc)
        assert paragraph.html == "Text with <strong>bold words</strong> in the middle."

    def test_scoring(self, detector):
        long_text = "word " * 80
        doc = parse_html(
            f"<article><p>{long_text}</p><blockquote>A quotation that is long enough to be kept.</blockquote></article>"
        )
        plain, quote = detector.detect(doc, ExtractionOptions(score_paragraphs=True))
        # 0.5 + length + viewport + inside article + <p>
        assert plain.importance == pytest.approx(0.95)
        assert quote.importance < plain.importance
        assert all(0.0 <= p.importance <= 1.0 for p in (plain, quote))

    def test_empty_document(self, detector):
        assert detector.detect(parse_html("")) == []

    def test_link_density(self):
        doc = parse_html("<div>abcd<a href='#'>efgh</a></div>")
        assert link_density(select_one(doc, "div")) == pytest.approx(0.5)


class TestParagraphMerging:
    """Fragments split by inline markup are rejoined; real paragraphs are not."""

    @pytest.fixture
    def detector(self):
        return ParagraphDetector()

    def test_adjacent_fragments_merge(self, detector):
        doc = parse_html(
            "<article>"
            "<p>The sentence starts in this first block and</p>"
            "<p>continues in this second block until the end.</p>"
            "</article>"
        )
        (merged,) = detector.detect(doc)
        assert merged.text == (
            "The sentence starts in this first block and\ncontinues in this second block until the end."
        )
        assert merged.index == 0

    def test_distant_fragments_do_not_merge(self, detector):
        doc = parse_html(
            "<article>"
            "<p>The sentence starts in this first block and</p>"
            '<img src="/photo.jpg" height="200">'
            "<p>continues in this second block until the end.</p>"
            "</article>"
        )
        assert len(detector.detect(doc)) == 2

    def test_should_merge_rules(self, detector):
        first = _para("Unfinished sentence", 0, 20)
        assert detector.should_merge(first, _para("and its lowercase tail", 30, 50))
        assert not detector.should_merge(first, _para("And a capitalized start", 30, 50))
        assert not detector.should_merge(_para("Finished sentence.", 0, 20), _para("and more", 30, 50))
        assert not detector.should_merge(first, _para("and far away", 100, 120))
        assert not detector.should_merge(_para("A heading", 0, 20, is_heading=True, heading_level=2),
                                         _para("and text", 30, 50))
        assert not detector.should_merge(first, _para("and quoted", 30, 50, is_quote=True))
        assert not detector.should_merge(first, _para("and code", 30, 50, is_code=True))

    def test_merge_unions_bounds_and_reindexes(self, detector):
        merged = detector.merge(
            [
                _para("Unfinished sentence", 0, 20),
                _para("and its lowercase tail.", 30, 50),
                _para("A new paragraph.", 60, 80),
            ]
        )
        assert [p.index for p in merged] == [0, 1]
        assert merged[0].bounds.top == 0
        assert merged[0].bounds.bottom == 50
        assert merged[1].id == "p-1"
