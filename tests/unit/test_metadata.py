"""
Tests for metadata extraction and structured data parsing.
"""

from datetime import datetime, timezone

import pytest
from contentcore.extractor.dom import parse_html
from contentcore.metadata import (
    MetadataExtractor,
    OpenGraphParser,
    SchemaOrgParser,
    TwitterCardParser,
    parse_date,
    parse_structured_data,
)

OG_PAGE = """
<html><head>
  <meta property="og:title" content="OG Title">
  <meta property="og:image" content="/img/cover.png">
  <meta property="og:url" content="/story">
  <meta property="article:tag" content="alpha">
  <meta property="article:tag" content="beta">
  <meta property="article:author" content="https://social.example/profile/ann">
  <meta property="article:section" content="World">
  <meta property="article:modified_time" content="2024-05-02T10:00:00+00:00">
  <meta name="twitter:card" content="summary_large_image">
  <meta name="twitter:title" content="Card Title">
  <meta name="twitter:image" content="https://cdn.example/card.png">
</head><body></body></html>
"""

JSON_LD_PAGE = """
<html><head>
<script type="application/ld+json">
{"@context": "https://schema.org", "@graph": [
  {"@type": "WebSite", "name": "Example Site"},
  {"@type": "Article", "headline": "Graph headline",
   "author": [{"@type": "Person", "name": "Ann Lee"}, {"@type": "Person", "name": "Bo Kim"}],
   "datePublished": "2023-11-20", "publisher": {"@type": "Organization", "name": "Example Media"},
   "keywords": "science, space", "articleSection": ["Science", "Space"],
   "license": "https://creativecommons.org/licenses/by/4.0/"}
]}
</script>
<script type="application/ld+json">{ not valid json </script>
</head><body></body></html>
"""

MICRODATA_PAGE = """
<html><body>
<div itemscope itemtype="https://schema.org/BlogPosting">
  <h1 itemprop="headline">Microdata headline</h1>
  <time itemprop="datePublished" datetime="2022-01-15">January 15</time>
  <div itemprop="author" itemscope itemtype="https://schema.org/Person">
    <span itemprop="name">Cara Diaz</span>
  </div>
  <a itemprop="keywords" href="/tag/a">a</a>
  <a itemprop="keywords" href="/tag/b">b</a>
</div>
<div vocab="https://schema.org/" typeof="Event">
  <span property="name">Launch party</span>
</div>
</body></html>
"""


class TestParseDate:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2024-03-01T08:00:00Z", datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)),
            ("2024-03-01", datetime(2024, 3, 1)),
            ("2024/03/01", datetime(2024, 3, 1)),
            ("March 1, 2024", datetime(2024, 3, 1)),
            ("1 Mar 2024", datetime(2024, 3, 1)),
        ],
    )
    def test_formats(self, value, expected):
        assert parse_date(value) == expected

    @pytest.mark.parametrize("value", [None, "", "sometime last week"])
    def test_unparseable(self, value):
        assert parse_date(value) is None


class TestOpenGraphAndTwitter:
    def test_open_graph(self):
        og = OpenGraphParser.parse(parse_html(OG_PAGE), "https://news.example/a/b")
        assert og["og:title"] == "OG Title"
        assert og["og:image"] == "https://news.example/img/cover.png"
        assert og["og:url"] == "https://news.example/story"
        assert og["article:tag"] == "alpha,beta"
        assert og["article:section"] == "World"

    def test_twitter(self):
        twitter = TwitterCardParser.parse(parse_html(OG_PAGE))
        assert twitter == {
            "twitter:card": "summary_large_image",
            "twitter:title": "Card Title",
            "twitter:image": "https://cdn.example/card.png",
        }


class TestSchemaOrg:
    def test_json_ld_graph_is_flattened(self):
        items = SchemaOrgParser.parse_json_ld(parse_html(JSON_LD_PAGE))
        assert [item["@type"] for item in items] == ["WebSite", "Article"]
        assert all(item["@context"] == "https://schema.org" for item in items)

    def test_schema_fields(self):
        fields = SchemaOrgParser.extract_schema_fields(SchemaOrgParser.parse_json_ld(parse_html(JSON_LD_PAGE)))
        assert fields["title"] == "Example Site"
        assert fields["authors"] == ["Ann Lee", "Bo Kim"]
        assert fields["author"] == "Ann Lee"
        assert fields["date_published"] == "2023-11-20"
        assert fields["publisher"] == "Example Media"
        assert fields["keywords"] == ["science", "space"]
        assert fields["section"] == ["Science", "Space"]

    def test_microdata(self):
        (item,) = SchemaOrgParser.parse_microdata(parse_html(MICRODATA_PAGE))
        assert item["type"] == "https://schema.org/BlogPosting"
        props = item["properties"]
        assert props["headline"] == "Microdata headline"
        assert props["datePublished"] == "2022-01-15"
        assert props["author"]["properties"] == {"name": "Cara Diaz"}
        assert props["keywords"] == ["/tag/a", "/tag/b"]
        assert "name" not in props

    def test_rdfa(self):
        (item,) = SchemaOrgParser.parse_rdfa(parse_html(MICRODATA_PAGE))
        assert item == {"type": "Event", "vocab": "https://schema.org/", "properties": {"name": "Launch party"}}

    def test_parse_structured_data_order(self):
        doc = parse_html(MICRODATA_PAGE.replace("<html>", '<html><head><meta property="og:title" content="X"></head>'))
        blocks = parse_structured_data(doc)
        assert [b.type for b in blocks] == ["microdata", "rdfa", "opengraph"]
        assert blocks[0].context == "https://schema.org/BlogPosting"
        assert blocks[1].context == "https://schema.org/"
        assert blocks[2].data == {"og:title": "X"}

    def test_no_structured_data(self):
        assert parse_structured_data(parse_html("<p>plain</p>")) == []


class TestMetadataExtractor:
    """Field precedence across the metadata sources."""

    @pytest.fixture
    def extractor(self):
        return MetadataExtractor()

    def test_open_graph_page(self, extractor):
        meta = extractor.extract(parse_html(OG_PAGE), "https://news.example/a/b")

        assert meta.author is None
        assert meta.tags == ["alpha", "beta"]
        assert meta.categories == ["World"]
        assert meta.category == "World"
        assert meta.update_date == datetime(2024, 5, 2, 10, 0, tzinfo=timezone.utc)
        assert meta.image_url == "https://news.example/img/cover.png"
        assert meta.source == "news.example"
        assert meta.social.twitter["twitter:card"] == "summary_large_image"
        assert meta.social.open_graph["og:title"] == "OG Title"

    def test_json_ld_page(self, extractor):
        meta = extractor.extract(parse_html(JSON_LD_PAGE), "https://news.example/")
        assert meta.authors == ["Ann Lee", "Bo Kim"]
        assert meta.publish_date == datetime(2023, 11, 20)
        assert meta.publisher == "Example Media"
        assert meta.tags == ["science", "space"]
        assert meta.categories == ["Science", "Space"]
        assert meta.license == "https://creativecommons.org/licenses/by/4.0/"
        assert meta.social is None

    def test_microdata_page(self, extractor):
        meta = extractor.extract(parse_html(MICRODATA_PAGE), "https://blog.example/post")
        assert meta.author == "Cara Diaz"
        assert meta.publish_date == datetime(2022, 1, 15)

    def test_meta_author_takes_precedence(self, extractor):
        doc = parse_html(
            '<html><head><meta name="Author" content="Meta Name"></head>'
            '<body><a rel="author" href="/u/x">Link Name</a></body></html>'
        )
        meta = extractor.extract(doc, "https://a.example/")
        assert meta.authors == ["Meta Name"]

    def test_byline_fallback(self, extractor):
        doc = parse_html('<html><body><div class="byline">By  Dana   Frost</div></body></html>')
        assert extractor.extract(doc, "https://a.example/").author == "Dana Frost"

    def test_time_element_prefers_pubdate(self, extractor):
        doc = parse_html(
            '<html><body><time datetime="2020-01-01">old</time>'
            '<time pubdate datetime="2021-06-30">published</time></body></html>'
        )
        assert extractor.extract(doc, "https://a.example/").publish_date == datetime(2021, 6, 30)

    def test_description_and_license_fallbacks(self, extractor):
        doc = parse_html(
            '<html><head><meta name="description" content="Plain description">'
            '<meta name="copyright" content="2024 Example Ltd">'
            '<link rel="license" href="https://license.example/"></head><body></body></html>'
        )
        meta = extractor.extract(doc, "https://a.example/")
        assert meta.description == "Plain description"
        assert meta.copyright == "2024 Example Ltd"
        assert meta.license == "https://license.example/"

    def test_images(self, extractor):
        doc = parse_html(
            "<html><body><figure><img src='/a.jpg' alt='A' width='640' height='480'>"
            "<figcaption>Caption A</figcaption></figure>"
            "<img src='data:image/png;base64,xyz'><img src='//cdn.example/b.png'></body></html>"
        )
        first, second = extractor.extract(doc, "https://a.example/post").images
        assert (first.url, first.alt, first.caption, first.width, first.height, first.type) == (
            "https://a.example/a.jpg", "A", "Caption A", 640, 480, "jpg",
        )
        assert second.url == "https://cdn.example/b.png"

    def test_malformed_urls_are_skipped(self, extractor):
        doc = parse_html(
            '<html><head><meta property="og:image" content="http://[oops/cover.png"></head>'
            '<body><img src="http://[oops/a.png"><img src="/b.png"></body></html>'
        )
        meta = extractor.extract(doc, "https://a.example/post")
        assert meta.image_url is None
        assert [image.url for image in meta.images] == ["https://a.example/b.png"]

    def test_image_limit(self):
        doc = parse_html("<body>" + "".join(f"<img src='/{i}.png'>" for i in range(5)) + "</body>")
        assert len(MetadataExtractor(image_limit=3).extract(doc, "https://a.example/").images) == 3

    def test_extracted_at_is_utc(self, extractor):
        meta = extractor.extract(parse_html("<p>x</p>"), "https://a.example/")
        assert meta.extracted_at.tzinfo is not None
