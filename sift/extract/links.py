"""
Link and image extraction for a single section element.
"""
import re
from typing import List, Optional
from urllib.parse import urlparse

from bs4 import Tag

from sift.config import get_config
from sift.core.models import Image, ImageType, Link, LinkType
from sift.utils.text import clean_text

_ABSOLUTE_URL = re.compile(r'^https?://', re.IGNORECASE)
_LEADING_INT = re.compile(r'^\s*(\d+)')

VIDEO_HOSTS = ('youtube.com', 'youtu.be')
SOCIAL_HOSTS = ('twitter.com', 'x.com', 'linkedin.com')
ARTICLE_PHRASES = ('read more', 'continue reading', 'full article')

# Beacon markers in image URLs
TRACKING_MARKERS = ('tracking', 'pixel')
MIN_IMAGE_SIZE = 10


def normalize_url(url: Optional[str]) -> Optional[str]:
    """
    Make a URL absolute without resolving it against a base.

    ``http(s)`` URLs pass through, protocol-relative ones get ``https:``.
    Anything else (root-relative, relative, ``mailto:``, anchors) is None.
    """
    if not url:
        return None
    url = url.strip()
    if _ABSOLUTE_URL.match(url):
        return url
    if url.startswith('//'):
        return 'https:' + url
    return None


def _host_matches(host: str, domains) -> bool:
    return any(host == domain or host.endswith('.' + domain) for domain in domains)


def detect_link_type(href: str, text: str) -> LinkType:
    parsed = urlparse(href)
    host = (parsed.hostname or '').lower()
    lower_text = text.lower()

    if _host_matches(host, VIDEO_HOSTS):
        return LinkType.VIDEO
    if _host_matches(host, SOCIAL_HOSTS):
        return LinkType.SOCIAL
    if any(phrase in lower_text for phrase in ARTICLE_PHRASES):
        return LinkType.ARTICLE
    if 'download' in lower_text or parsed.path.lower().endswith('.pdf'):
        return LinkType.DOWNLOAD
    return LinkType.EXTERNAL


def extract_links(element: Tag) -> List[Link]:
    """
    Collect the usable links inside an element.

    Unsubscribe and privacy links are skipped, as are links that cannot be
    made absolute. Link text falls back to the ``title`` attribute, then to
    ``"Link"``.

    Args:
        element: The section element

    Returns:
        List of Link
    """
    links = []
    max_text = get_config('extraction.link_text_max', 200)

    for anchor in element.find_all('a'):
        href = anchor.get('href')
        if not href or not href.strip():
            continue

        text = clean_text(anchor.get_text())
        lower_text = text.lower()
        if 'unsubscribe' in lower_text or 'privacy' in lower_text or 'unsubscribe' in href.lower():
            continue

        absolute = normalize_url(href)
        if absolute is None:
            continue

        if len(text) < 2:
            text = clean_text(anchor.get('title') or '') or 'Link'

        links.append(Link(
            text=text[:max_text],
            href=absolute,
            type=detect_link_type(absolute, text),
        ))

    return links


def _parse_dimension(value) -> Optional[int]:
    if value is None:
        return None
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def detect_image_type(src: str, alt: str) -> ImageType:
    src_lower = src.lower()
    alt_lower = alt.lower()

    if any(word in alt_lower for word in ('chart', 'graph', 'data')) or 'chart' in src_lower:
        return ImageType.CHART
    if 'logo' in alt_lower or 'logo' in src_lower:
        return ImageType.LOGO
    if 'product' in alt_lower or 'screenshot' in alt_lower:
        return ImageType.PRODUCT
    return ImageType.CONTENT


def _iter_images(element: Tag):
    if element.name == 'img':
        yield element
    yield from element.find_all('img')


def extract_images(element: Tag) -> List[Image]:
    """
    Collect the content images inside an element (or the element itself).

    Tracking pixels, images declared smaller than 10px and images whose URL
    cannot be made absolute are skipped.

    Args:
        element: The section element

    Returns:
        List of Image
    """
    images = []

    for img in _iter_images(element):
        src = img.get('src') or img.get('data-src')
        if not src:
            continue

        width = _parse_dimension(img.get('width'))
        height = _parse_dimension(img.get('height'))
        if (width is not None and width < MIN_IMAGE_SIZE) or (height is not None and height < MIN_IMAGE_SIZE):
            continue
        if any(marker in src.lower() for marker in TRACKING_MARKERS):
            continue

        absolute = normalize_url(src)
        if absolute is None:
            continue

        alt = img.get('alt') or ''
        images.append(Image(
            src=absolute,
            alt=alt,
            type=detect_image_type(absolute, alt),
            width=width,
            height=height,
        ))

    return images
