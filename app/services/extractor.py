"""Structural content extraction from a parsed HTML document.

Each ``_extract_*`` helper is an independent rule mapping the document tree
to one field of :class:`~app.models.record.ContentRecord`.  Every list-valued
rule filters first, de-duplicates second, and only then truncates to its cap,
so the surviving items always keep their document order.
"""

import re
from datetime import datetime, timezone
from typing import Dict, List, Optional, Union
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup, Tag

from app.models.record import ContentRecord, HeadingItem, ImageItem, LinkItem

NO_TITLE = "No title found"
NO_DESCRIPTION = "No description available"
UNKNOWN_CONTENT_TYPE = "unknown"

MAX_IMAGES = 10
MAX_LINKS = 20
MAX_HEADINGS = 15
MAX_PARAGRAPHS = 10
MAX_BODY_TEXT = 1000

# Lazy-loading libraries move the real URL out of ``src``; tried in order.
_IMAGE_SOURCE_ATTRS = ("src", "data-src", "data-lazy")

# Substrings marking decorative or tracking images rather than content
_IMAGE_SRC_NOISE = ("icon", "logo", "favicon", "pixel")
_IMAGE_ALT_NOISE = ("icon", "logo")

# hrefs with these prefixes are not resolvable against an http base
_PASSTHROUGH_HREF_PREFIXES = ("mailto", "tel")

_HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]

_MIN_LINK_TEXT = 3  # exclusive
_MAX_LINK_TEXT = 100  # exclusive
_MIN_HEADING_TEXT = 2  # exclusive
_MIN_PARAGRAPH_TEXT = 20  # exclusive
_MAX_PARAGRAPH_TEXT = 500  # exclusive

_WHITESPACE_RE = re.compile(r"\s+")


def clean_text(text: Optional[str]) -> str:
    """Trim *text* and collapse every whitespace run to a single space."""
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()


def parse_html(html: Union[str, bytes]) -> BeautifulSoup:
    """Build the queryable document tree the extraction rules operate on.

    Bytes are decoded by BeautifulSoup, honouring any <meta charset> declaration.
    """
    return BeautifulSoup(html, "lxml")


def _resolve_url(base_url: str, value: str) -> Optional[str]:
    """Return *value* resolved against *base_url*, or ``None`` if it cannot be."""
    try:
        resolved = urljoin(base_url, value)
        # Accessing .port validates the authority (bad ports, broken IPv6 hosts)
        urlsplit(resolved).port
    except ValueError:
        return None
    return resolved or None


def _attr(tag: Tag, name: str) -> str:
    value = tag.get(name)
    if value is None:
        return ""
    if isinstance(value, list):
        value = " ".join(value)
    return str(value)


def _extract_title(soup: BeautifulSoup) -> str:
    title_tag = soup.find("title")
    if title_tag:
        title = clean_text(title_tag.get_text())
        if title:
            return title
    return NO_TITLE


def _extract_description(soup: BeautifulSoup) -> str:
    for attrs in ({"name": "description"}, {"property": "og:description"}):
        meta = soup.find("meta", attrs=attrs)
        if meta:
            description = clean_text(_attr(meta, "content"))
            if description:
                return description
    return NO_DESCRIPTION


def _extract_meta_tags(soup: BeautifulSoup) -> Dict[str, str]:
    meta_tags: Dict[str, str] = {}
    for meta in soup.find_all("meta"):
        key = _attr(meta, "name") or _attr(meta, "property")
        content = _attr(meta, "content")
        if key and content:
            meta_tags[key] = content
    return meta_tags


def _is_noise_image(src: str, alt: str) -> bool:
    if any(marker in src for marker in _IMAGE_SRC_NOISE):
        return True
    alt = alt.lower()
    return any(marker in alt for marker in _IMAGE_ALT_NOISE)


def _image_source(img: Tag) -> str:
    """Return the first non-empty source attribute of *img*."""
    for name in _IMAGE_SOURCE_ATTRS:
        value = _attr(img, name).strip()
        if value:
            return value
    return ""


def _extract_images(soup: BeautifulSoup, base_url: str) -> List[ImageItem]:
    seen: set = set()
    images: List[ImageItem] = []
    for img in soup.find_all("img"):
        raw_src = _image_source(img)
        if not raw_src:
            continue
        src = _resolve_url(base_url, raw_src)
        if src is None:
            continue
        alt = _attr(img, "alt")
        if _is_noise_image(src, alt) or src in seen:
            continue
        seen.add(src)
        images.append(ImageItem(src=src, alt=clean_text(alt)))
        if len(images) == MAX_IMAGES:
            break
    return images


def _extract_links(soup: BeautifulSoup, base_url: str) -> List[LinkItem]:
    seen: set = set()
    links: List[LinkItem] = []
    for a in soup.find_all("a", href=True):
        raw_href = _attr(a, "href").strip()
        text = clean_text(a.get_text())
        if not raw_href or not text:
            continue
        if raw_href.startswith(_PASSTHROUGH_HREF_PREFIXES):
            href = raw_href
        else:
            href = _resolve_url(base_url, raw_href)
            if href is None:
                continue
        if not _MIN_LINK_TEXT < len(text) < _MAX_LINK_TEXT:
            continue
        if href in seen:
            continue
        seen.add(href)
        links.append(LinkItem(href=href, text=text))
        if len(links) == MAX_LINKS:
            break
    return links


def _extract_headings(soup: BeautifulSoup) -> List[HeadingItem]:
    headings: List[HeadingItem] = []
    for heading in soup.find_all(_HEADING_TAGS):
        text = clean_text(heading.get_text())
        if len(text) > _MIN_HEADING_TEXT:
            headings.append(HeadingItem(level=heading.name.lower(), text=text))
            if len(headings) == MAX_HEADINGS:
                break
    return headings


def _extract_paragraphs(soup: BeautifulSoup) -> List[str]:
    paragraphs: List[str] = []
    for p in soup.find_all("p"):
        text = clean_text(p.get_text())
        if _MIN_PARAGRAPH_TEXT < len(text) < _MAX_PARAGRAPH_TEXT:
            paragraphs.append(text)
            if len(paragraphs) == MAX_PARAGRAPHS:
                break
    return paragraphs


def _extract_body_text(soup: BeautifulSoup) -> str:
    node = soup.find("body") or soup
    return clean_text(node.get_text())[:MAX_BODY_TEXT]


def extract(
    soup: BeautifulSoup,
    base_url: str,
    http_status: int,
    content_type: Optional[str] = None,
    source_url: Optional[str] = None,
) -> ContentRecord:
    """Extract a :class:`ContentRecord` from a parsed document.

    Args:
        soup:         Document tree, usually built with :func:`parse_html`.
        base_url:     URL relative image and link references resolve against
                      (the final URL of the fetch, after redirects).
        http_status:  Status code reported by the transport.
        content_type: ``Content-Type`` header; ``"unknown"`` when missing.
        source_url:   The URL as originally requested.  Defaults to *base_url*.

    Missing elements never raise: they produce an empty list or the field's
    sentinel value.  Images and links whose URL cannot be resolved are
    silently dropped.
    """
    source_url = source_url or base_url

    return ContentRecord(
        title=_extract_title(soup),
        description=_extract_description(soup),
        domain=urlsplit(source_url).hostname or "",
        source_url=source_url,
        meta_tags=_extract_meta_tags(soup),
        images=_extract_images(soup, base_url),
        links=_extract_links(soup, base_url),
        headings=_extract_headings(soup),
        paragraphs=_extract_paragraphs(soup),
        body_text_preview=_extract_body_text(soup),
        fetched_at=datetime.now(timezone.utc),
        http_status=http_status,
        content_type=content_type or UNKNOWN_CONTENT_TYPE,
    )
