"""
Boilerplate removal for parsed documents.

``ContentCleaner.clean`` works on a copy of the document and runs a fixed
sequence of passes:

1. category removals (ads, navigation, comments, ...), then social widgets
   and caller-supplied selectors
2. attribute allowlisting and junk-class filtering
3. media removal according to the preserve flags
4. empty-element pruning, repeated until nothing changes
5. hidden-element removal
6. aggressive pruning, when enabled

Every selector is applied tolerantly: a selector soupsieve cannot parse is
logged and skipped, and the pass carries on.
"""

from __future__ import annotations

import copy
import re
from typing import Dict, List, Optional, Sequence, Set, Union
from urllib.parse import urlsplit

import structlog
from bs4 import BeautifulSoup, Comment, Doctype, Tag

from ..config.config import CleaningOptions
from ..extractor.dom import class_list, closest, has_match, remove, remove_all, select_all, text_of, url_host

logger = structlog.get_logger(__name__)

REMOVE_SELECTORS: Dict[str, List[str]] = {
    "ads": [
        ".advertisement", ".ad", ".ads", '[class*="ad-"]', '[id*="ad-"]',
        ".sponsored", ".promo", '[class*="sponsor"]', "ins.adsbygoogle",
        '[id*="google_ads"]', ".banner-ad", ".text-ad", ".ad-container",
        ".ad-banner", ".ad-wrapper", "[data-ad]", "[data-advertisement]",
    ],
    "navigation": [
        "nav", ".navigation", ".nav", ".menu", "#menu", ".navbar",
        ".header-menu", ".main-menu", ".site-navigation", ".breadcrumb",
        ".breadcrumbs", '[role="navigation"]', ".nav-links",
    ],
    "comments": [
        "#comments", ".comments", ".comment-section", ".disqus",
        "#disqus_thread", ".fb-comments", '[id*="comments"]',
        ".comment-form", ".comment-list", ".comment-respond",
    ],
    "related": [
        ".related", ".related-posts", ".recommended", ".more-stories",
        ".you-might-like", ".suggested", ".popular-posts", ".trending",
        ".also-read", ".read-next", ".more-articles", ".suggested-articles",
    ],
    "footers": [
        "footer", ".footer", "#footer", ".site-footer", ".page-footer",
        ".copyright", ".footer-widgets", ".footer-content", '[role="contentinfo"]',
    ],
    "sidebars": [
        "aside", ".sidebar", "#sidebar", ".widget-area", ".side-column",
        ".rail", '[class*="sidebar"]', '[id*="sidebar"]', ".aside",
        ".side-bar", '[role="complementary"]',
    ],
    "social": [
        ".social-share", ".share-buttons", ".social-media", ".sharing",
        ".share-icons", ".social-links", ".share-bar", ".share-widget",
        ".social-buttons", ".sharing-buttons", '[class*="share-"]',
    ],
    "popups": [
        ".popup", ".modal", ".overlay", ".lightbox", ".dialog",
        '[class*="popup"]', '[class*="modal"]', ".newsletter-signup",
        ".cookie-notice", ".cookie-banner", ".gdpr-banner", ".privacy-banner",
    ],
    "cookie_banners": [
        ".cookie-banner", ".cookie-notice", ".cookie-consent", ".gdpr-notice",
        ".privacy-notice", "#cookie-banner", "#cookie-notice",
    ],
    "newsletters": [
        ".newsletter", ".subscribe-form", ".email-signup", ".subscription-box",
        ".newsletter-form", ".subscribe-widget", ".email-subscription",
    ],
}

# (option flag, category) in application order
CATEGORY_PASSES = (
    ("remove_ads", "ads"),
    ("remove_navigation", "navigation"),
    ("remove_comments", "comments"),
    ("remove_related", "related"),
    ("remove_footers", "footers"),
    ("remove_sidebars", "sidebars"),
    ("remove_popups", "popups"),
    ("remove_cookie_banners", "cookie_banners"),
    ("remove_newsletter_signups", "newsletters"),
)

ALLOWED_ATTRIBUTES = frozenset(
    {
        "href", "src", "alt", "title", "class", "id", "data-src", "data-srcset",
        "width", "height", "datetime", "cite", "lang", "dir",
    }
)

JUNK_CLASS_PATTERNS = [
    re.compile(p)
    for p in (
        r"^js-", r"^is-", r"^has-", r"^wp-", r"^post-\d+$", r"^id-\d+$",
        r"^item-\d+$", r"^node-\d+$", r"^_", r"^widget-", r"^module-", r"^component-",
    )
]

EMPTY_CANDIDATES = "div, span, p, section, article"
HIDDEN_CLASSES = ("hidden", "hide", "invisible", "visually-hidden", "sr-only", "d-none")
AGGRESSIVE_PATTERNS = [
    '[class*="banner"]', '[class*="promo"]', '[class*="sponsor"]',
    '[class*="widget"]', '[class*="module"]', '[id*="banner"]',
]

EMBED_HOSTS = (
    "youtube.com", "youtube-nocookie.com", "youtu.be", "vimeo.com",
    "codepen.io", "twitter.com", "x.com", "instagram.com", "spotify.com", "soundcloud.com",
)
IFRAME_HOSTNAMES = frozenset({"www.youtube.com", "player.vimeo.com", "codepen.io"})

_DISPLAY_NONE = re.compile(r"display\s*:\s*none", re.IGNORECASE)

Document = Union[BeautifulSoup, Tag]


def is_junk_class(class_name: str) -> bool:
    return any(pattern.search(class_name) for pattern in JUNK_CLASS_PATTERNS)


def is_embed_host(src: str) -> bool:
    host = url_host(src if "//" in src else f"//{src}") or ""
    return any(host == h or host.endswith("." + h) for h in EMBED_HOSTS)


class ContentCleaner:
    """Removes boilerplate from a document without touching the original."""

    def __init__(self, default_options: Optional[CleaningOptions] = None) -> None:
        self.default_options = default_options or CleaningOptions()

    def clean(self, doc: Document, options: Optional[CleaningOptions] = None) -> Document:
        """
        Return a cleaned copy of ``doc``.

        Args:
            doc: Parsed document (or subtree); never modified
            options: Cleaning toggles; defaults to the cleaner's defaults

        Returns:
            The cleaned copy
        """
        opts = options or self.default_options
        cleaned = copy.copy(doc)

        removed = 0
        for flag, category in CATEGORY_PASSES:
            if getattr(opts, flag):
                removed += remove_all(cleaned, REMOVE_SELECTORS[category])
        removed += remove_all(cleaned, REMOVE_SELECTORS["social"])
        if opts.custom_selectors and opts.custom_selectors.remove:
            removed += remove_all(cleaned, opts.custom_selectors.remove)

        # Inline hiding markers do not survive attribute cleanup.
        hidden = self._find_inline_hidden(cleaned)

        self._clean_attributes(cleaned, opts)
        removed += self._remove_media(cleaned, opts)
        removed += self._remove_empty(cleaned)
        removed += self._remove_hidden(cleaned, hidden)
        if opts.aggressive_mode:
            removed += self._apply_aggressive(cleaned)

        logger.debug("Document cleaned", removed=removed, aggressive=opts.aggressive_mode)
        return cleaned

    # ------------------------------------------------------------------
    # passes
    # ------------------------------------------------------------------

    @staticmethod
    def _find_inline_hidden(doc: Document) -> List[Tag]:
        found = []
        for el in doc.find_all(True):
            style = el.get("style")
            if el.has_attr("hidden") or (style and _DISPLAY_NONE.search(str(style))):
                found.append(el)
        return found

    @staticmethod
    def _clean_attributes(doc: Document, opts: CleaningOptions) -> None:
        allowed: Set[str] = set(ALLOWED_ATTRIBUTES)
        if opts.custom_selectors and opts.custom_selectors.preserve:
            allowed.update(opts.custom_selectors.preserve)

        for el in doc.find_all(True):
            for name in list(el.attrs):
                if name not in allowed and not name.startswith("aria-"):
                    del el.attrs[name]
            if "class" in el.attrs:
                kept = [c for c in class_list(el) if not is_junk_class(c)]
                if kept:
                    el["class"] = kept
                else:
                    del el.attrs["class"]

    @staticmethod
    def _remove_media(doc: Document, opts: CleaningOptions) -> int:
        removed = 0
        if not opts.preserve_images:
            removed += remove_all(doc, ["img", "picture", "figure"])
        if not opts.preserve_videos:
            removed += remove_all(doc, ["video", "audio"])
        if not opts.preserve_iframes:
            for el in select_all(doc, "iframe, embed, object"):
                src = str(el.get("src") or el.get("data-src") or "")
                if opts.preserve_embeds and src and is_embed_host(src):
                    continue
                if remove(el):
                    removed += 1
        return removed

    @staticmethod
    def _remove_empty(doc: Document) -> int:
        removed = 0
        changed = True
        while changed:
            changed = False
            for el in select_all(doc, EMPTY_CANDIDATES):
                if el.decomposed:
                    continue
                if text_of(el).strip():
                    continue
                if has_match(el, "img, video, iframe") or has_match(el, "table, ul, ol, pre, code"):
                    continue
                remove(el)
                removed += 1
                changed = True
        return removed

    @staticmethod
    def _remove_hidden(doc: Document, inline_hidden: Sequence[Tag]) -> int:
        removed = sum(1 for el in inline_hidden if remove(el))
        removed += remove_all(doc, [f".{cls}" for cls in HIDDEN_CLASSES])
        for el in select_all(doc, '[width="0"], [height="0"]'):
            # images may be tracking pixels; they are kept
            if el.name != "img" and remove(el):
                removed += 1
        return removed

    @staticmethod
    def _apply_aggressive(doc: Document) -> int:
        removed = 0
        for div in select_all(doc, "div"):
            if div.decomposed:
                continue
            if len(text_of(div).strip()) < 50 and not has_match(div, "img, video, table, ul, ol"):
                remove(div)
                removed += 1

        for link in select_all(doc, "a"):
            if link.decomposed:
                continue
            if len(text_of(link).strip()) < 20 and closest(link, "p, li") is None:
                remove(link)
                removed += 1

        removed += remove_all(doc, AGGRESSIVE_PATTERNS)
        return removed


# ============================================================================
# String-level sanitizer
# ============================================================================

BASE_TAGS = (
    "p", "br", "strong", "em", "b", "i", "u", "h1", "h2", "h3", "h4", "h5", "h6",
    "blockquote", "pre", "code", "a", "ul", "ol", "li", "dl", "dt", "dd",
)
IMAGE_TAGS = ("img", "picture", "figure", "figcaption")
VIDEO_TAGS = ("video", "audio", "source")
TABLE_TAGS = ("table", "thead", "tbody", "tr", "th", "td", "caption")

SANITIZE_ATTRIBUTES: Dict[str, Set[str]] = {
    "a": {"href", "title", "rel"},
    "img": {"src", "alt", "title", "width", "height"},
    "video": {"src", "controls", "width", "height"},
    "audio": {"src", "controls"},
    "source": {"src", "type"},
    "iframe": {"src", "width", "height", "frameborder", "allowfullscreen"},
    "blockquote": {"cite"},
    "code": {"class"},
    "pre": {"class"},
}
URL_ATTRIBUTES = frozenset({"href", "src", "cite"})
ALLOWED_SCHEMES = frozenset({"http", "https", "mailto", "tel"})
DROP_WITH_CONTENT = frozenset({"script", "style", "textarea", "option", "noscript", "template"})


def _allowed_tags(opts: CleaningOptions) -> Set[str]:
    tags = set(BASE_TAGS)
    if opts.preserve_images:
        tags.update(IMAGE_TAGS)
    if opts.preserve_videos:
        tags.update(VIDEO_TAGS)
    if opts.preserve_iframes:
        tags.add("iframe")
    if opts.preserve_tables:
        tags.update(TABLE_TAGS)
    return tags


def _safe_url(value: str) -> bool:
    try:
        scheme = urlsplit(value.strip()).scheme.lower()
    except ValueError:
        return False
    return not scheme or scheme in ALLOWED_SCHEMES


def sanitize_html(html: str, options: Optional[CleaningOptions] = None) -> str:
    """
    Allowlist-sanitize an HTML fragment.

    Disallowed tags are unwrapped (their text survives) except script-like
    tags, which are dropped with their content. Attributes are filtered per
    tag, URLs with unexpected schemes are dropped, iframes are only kept for
    known video/code hosts, and external links get ``rel="noopener noreferrer"``.
    """
    opts = options or CleaningOptions()
    allowed_tags = _allowed_tags(opts)
    soup = BeautifulSoup(html or "", "html.parser")

    for node in soup.find_all(string=lambda s: isinstance(s, (Comment, Doctype))):
        node.extract()

    for el in soup.find_all(True):
        if el.decomposed:
            continue
        if el.name in DROP_WITH_CONTENT:
            el.decompose()
            continue
        if el.name not in allowed_tags:
            if el.name == "iframe":
                el.decompose()
            else:
                el.unwrap()
            continue
        if el.name == "iframe":
            host = url_host(str(el.get("src", "")))
            if host not in IFRAME_HOSTNAMES:
                el.decompose()
                continue

        permitted = SANITIZE_ATTRIBUTES.get(el.name, set())
        for name in list(el.attrs):
            value = el.attrs[name]
            if name not in permitted:
                del el.attrs[name]
            elif name in URL_ATTRIBUTES and not _safe_url(str(value)):
                del el.attrs[name]

        if el.name == "a" and str(el.get("href", "")).startswith("http"):
            el["rel"] = "noopener noreferrer"

    return soup.decode()
