"""
Newsletter detection from a landing page URL.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup

from sift.core.models import utcnow
from sift.utils.http import get_page
from sift.utils.nlp import guess_page_category

# Configure logging
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Platform:
    pattern: str
    subscription_path: str
    logo_selector: str
    title_selector: str
    description_selector: str


# Common newsletter platforms and where their pages keep the interesting bits
PLATFORMS = {
    'substack': Platform(
        pattern=r'substack\.com',
        subscription_path='/subscribe',
        logo_selector='img[class*="logo"], .navbar-brand img, .publication-logo img',
        title_selector='.publication-name, .navbar-brand, h1, title',
        description_selector='.publication-description, .subtitle, meta[name="description"]',
    ),
    'mailchimp': Platform(
        pattern=r'mailchimp\.com|us\d+\.list-manage\.com',
        subscription_path='',
        logo_selector='.brand img, .header img, img[alt*="logo"]',
        title_selector='.brand, .header h1, h1, title',
        description_selector='.description, p, meta[name="description"]',
    ),
    'convertkit': Platform(
        pattern=r'convertkit\.com|ck\.page',
        subscription_path='',
        logo_selector='.formkit-image img, .logo img, img[class*="logo"]',
        title_selector='.formkit-header, h1, h2, title',
        description_selector='.formkit-subheader, .description, p, meta[name="description"]',
    ),
    'beehiiv': Platform(
        pattern=r'beehiiv\.com',
        subscription_path='/subscribe',
        logo_selector='.publication-logo img, .header img, img[class*="logo"]',
        title_selector='.publication-name, h1, title',
        description_selector='.publication-description, .subtitle, meta[name="description"]',
    ),
    'ghost': Platform(
        pattern=r'ghost\.io',
        subscription_path='/subscribe',
        logo_selector='.site-logo img, .brand img, img[class*="logo"]',
        title_selector='.site-title, .brand, h1, title',
        description_selector='.site-description, .description, meta[name="description"]',
    ),
}

DEFAULT_TITLE_SELECTOR = 'h1, .title, .publication-name, .site-title, title'
DEFAULT_DESCRIPTION_SELECTOR = 'meta[name="description"], .description, .subtitle, .tagline, p'
DEFAULT_LOGO_SELECTOR = 'img[class*="logo"], .logo img, .brand img, .header img'
SUBSCRIPTION_SELECTORS = [
    'a[href*="subscribe"]',
    'a[href*="signup"]',
    'a[href*="join"]',
    'form[action*="subscribe"]',
    'form[action*="signup"]',
]

GENERIC_TITLE = re.compile(r'sign up|subscribe|newsletter|email', re.IGNORECASE)
GENERIC_DESCRIPTION = re.compile(r'subscribe|sign up|enter your email', re.IGNORECASE)


@dataclass
class DetectionResult:
    """
    Outcome of analysing a newsletter landing page.
    """
    success: bool
    message: str = ""
    name: str = ""
    description: str = ""
    website: str = ""
    subscription_url: str = ""
    logo: str = ""
    category: str = "other"
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {"success": False, "message": self.message}
        return {
            "success": True,
            "name": self.name,
            "description": self.description,
            "website": self.website,
            "subscriptionUrl": self.subscription_url,
            "logo": self.logo,
            "category": self.category,
            "metadata": dict(self.metadata),
        }


def normalize_url(input_url: str) -> Optional[str]:
    """
    Add a scheme if missing and reject URLs without a usable host.

    Args:
        input_url: URL as typed by the user

    Returns:
        The normalized URL, or None if invalid
    """
    if not input_url or not input_url.strip():
        return None
    input_url = input_url.strip()
    if not input_url.startswith(('http://', 'https://')):
        input_url = 'https://' + input_url

    try:
        parsed = urlparse(input_url)
    except ValueError:
        return None

    if not parsed.hostname or parsed.hostname == 'localhost':
        return None
    if not parsed.path:
        parsed = parsed._replace(path='/')
    return parsed.geturl()


def detect_platform(url: str) -> str:
    for name, platform in PLATFORMS.items():
        if re.search(platform.pattern, url, re.IGNORECASE):
            return name
    return 'unknown'


def get_base_url(url: str) -> str:
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.hostname:
        return url
    return f"{parsed.scheme}://{parsed.hostname}"


def extract_website_name(url: str) -> str:
    hostname = urlparse(url).hostname
    if not hostname:
        return 'Newsletter'
    hostname = re.sub(r'^www\.', '', hostname)
    hostname = re.sub(r'^(newsletter|blog|news|mail)\.', '', hostname)
    label = hostname.split('.')[0]
    return label[:1].upper() + label[1:]


def _select_all(soup: BeautifulSoup, selectors: str) -> List:
    elements = []
    for selector in selectors.split(','):
        elements.extend(soup.select(selector.strip()))
    return elements


def extract_title(soup: BeautifulSoup, selectors: Optional[str] = None) -> str:
    candidates = []
    for element in _select_all(soup, selectors or DEFAULT_TITLE_SELECTOR):
        text = element.get_text().strip()
        if 0 < len(text) < 100:
            candidates.append(text)

    preferred = [title for title in candidates if not GENERIC_TITLE.search(title) or len(title) > 20]
    if preferred:
        return preferred[0]
    return candidates[0] if candidates else ''


def extract_description(soup: BeautifulSoup, selectors: Optional[str] = None) -> str:
    candidates = []

    meta = soup.find('meta', attrs={'name': 'description'})
    meta_content = (meta.get('content') or '').strip() if meta else ''
    if len(meta_content) > 10:
        candidates.append(meta_content)

    for element in _select_all(soup, selectors or DEFAULT_DESCRIPTION_SELECTOR):
        text = element.get('content') or element.get_text().strip()
        if text and 10 < len(text) < 300:
            candidates.append(text)

    preferred = [desc for desc in candidates if len(desc) > 20 and not GENERIC_DESCRIPTION.search(desc)]
    if preferred:
        return preferred[0]
    return candidates[0] if candidates else ''


def extract_logo(soup: BeautifulSoup, base_url: str, selectors: Optional[str] = None) -> str:
    for selector in (selectors or DEFAULT_LOGO_SELECTOR).split(','):
        img = soup.select_one(selector.strip())
        if img is not None:
            src = img.get('src') or img.get('data-src')
            if src:
                return urljoin(base_url, src)

    favicon = soup.select_one('link[rel*="icon"]')
    if favicon is not None and favicon.get('href'):
        return urljoin(base_url, favicon['href'])
    return ''


def determine_subscription_url(soup: BeautifulSoup, url: str, platform: str) -> str:
    for selector in SUBSCRIPTION_SELECTORS:
        element = soup.select_one(selector)
        if element is not None:
            href = element.get('href') or element.get('action')
            if href:
                return urljoin(url, href)

    config = PLATFORMS.get(platform)
    if config and config.subscription_path:
        return get_base_url(url) + config.subscription_path
    return url


def calculate_confidence(title: str, description: str, subscription_url: str) -> int:
    score = 0
    if title and len(title) > 3:
        score += 30
    if description and len(description) > 20:
        score += 25
    if subscription_url and 'subscribe' in subscription_url:
        score += 25
    if title and description and description[:20] not in title:
        score += 20
    return min(score, 100)


class NewsletterPageDetector:
    """
    Detects a newsletter from its landing page.
    """
    def detect(self, input_url: str) -> DetectionResult:
        """
        Fetch and analyse a newsletter landing page.

        Args:
            input_url: URL of the newsletter, with or without scheme

        Returns:
            DetectionResult; ``success`` is False with a message on any failure
        """
        url = normalize_url(input_url)
        if not url:
            return DetectionResult(success=False, message='Invalid URL provided')

        try:
            response = get_page(url)
        except requests.exceptions.RequestException as e:
            logger.error(f"Error fetching page {url}: {e}")
            return DetectionResult(success=False, message=self.describe_fetch_error(e))

        try:
            return self.detect_from_html(response.text, response.url or url)
        except Exception as e:
            logger.exception(f"Newsletter detection error for {url}: {e}")
            return DetectionResult(success=False, message='Failed to analyze the provided URL')

    @staticmethod
    def describe_fetch_error(error: requests.exceptions.RequestException) -> str:
        response = getattr(error, 'response', None)
        if response is not None:
            if response.status_code == 404:
                return 'Page not found (404). Please check the URL.'
            if response.status_code >= 500:
                return 'Server error. The website may be temporarily unavailable.'
        elif isinstance(error, requests.exceptions.ConnectionError):
            reason = str(error)
            if 'Name or service not known' in reason or 'getaddrinfo' in reason or 'NameResolution' in reason:
                return 'Website not found. Please check the URL.'
            if 'refused' in reason.lower():
                return 'Connection refused. The website may be temporarily unavailable.'
        return 'Unable to access the website. Please check the URL and try again.'

    def detect_from_html(self, html: str, url: str) -> DetectionResult:
        """
        Extract newsletter information from an already fetched page.

        Args:
            html: Page HTML
            url: Final URL of the page

        Returns:
            DetectionResult
        """
        soup = BeautifulSoup(html or '', 'html.parser')
        platform = detect_platform(url)
        config = PLATFORMS.get(platform)

        title = extract_title(soup, config.title_selector if config else None)
        description = extract_description(soup, config.description_selector if config else None)
        logo = extract_logo(soup, url, config.logo_selector if config else None)
        subscription_url = determine_subscription_url(soup, url, platform)
        website_name = extract_website_name(url)

        return DetectionResult(
            success=True,
            name=title or website_name,
            description=description or f"Newsletter from {website_name}",
            website=get_base_url(url),
            subscription_url=subscription_url,
            logo=logo,
            category=guess_page_category(title, description, url),
            metadata={
                'platform': platform,
                'detectedAt': utcnow().isoformat(),
                'originalUrl': url,
                'confidence': calculate_confidence(title, description, subscription_url),
            },
        )
