"""Tests for sift.fetchers.newsletter_page module."""

from unittest.mock import MagicMock, patch

import pytest
import requests
from bs4 import BeautifulSoup

from sift.fetchers.newsletter_page import (
    NewsletterPageDetector,
    calculate_confidence,
    detect_platform,
    determine_subscription_url,
    extract_description,
    extract_logo,
    extract_title,
    extract_website_name,
    get_base_url,
    normalize_url,
)

SUBSTACK_PAGE = """
<html><head>
  <title>Example Weekly</title>
  <meta name="description" content="Deep dives into software engineering every week.">
  <link rel="icon" href="/favicon.ico">
</head><body>
  <h1 class="publication-name">Example Weekly</h1>
  <img class="logo" src="/img/logo.png">
  <a href="/subscribe?ref=home">Subscribe now</a>
</body></html>
"""


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def _http_error(status: int) -> requests.exceptions.HTTPError:
    response = requests.Response()
    response.status_code = status
    return requests.exceptions.HTTPError(response=response)


class TestNormalizeUrl:
    def test_adds_scheme_and_path(self) -> None:
        assert normalize_url("example.com") == "https://example.com/"
        assert normalize_url("  http://example.com/path ") == "http://example.com/path"

    def test_rejects_unusable(self) -> None:
        assert normalize_url("") is None
        assert normalize_url("   ") is None
        assert normalize_url("http://localhost:3000") is None
        assert normalize_url("https://") is None


class TestPageHelpers:
    def test_detect_platform(self) -> None:
        assert detect_platform("https://example.substack.com/") == "substack"
        assert detect_platform("https://us5.list-manage.com/subscribe") == "mailchimp"
        assert detect_platform("https://acme.ck.page/") == "convertkit"
        assert detect_platform("https://example.com") == "unknown"

    def test_website_name(self) -> None:
        assert extract_website_name("https://newsletter.acme.io/") == "Acme"
        assert extract_website_name("https://www.stratechery.com/about") == "Stratechery"

    def test_base_url(self) -> None:
        assert get_base_url("https://example.com/a/b?c=1") == "https://example.com"

    def test_title_prefers_specific_names(self) -> None:
        soup = _soup("<h1>Subscribe today</h1><title>Acme Notes</title>")
        assert extract_title(soup) == "Acme Notes"

    def test_title_falls_back_to_generic(self) -> None:
        assert extract_title(_soup("<h1>Newsletter</h1>")) == "Newsletter"
        assert extract_title(_soup("<p>nothing</p>")) == ""

    def test_description_skips_signup_copy(self) -> None:
        soup = _soup(
            '<meta name="description" content="Enter your email to subscribe today">'
            '<p class="description">Weekly essays about product design.</p>'
        )
        assert extract_description(soup) == "Weekly essays about product design."

    def test_logo_falls_back_to_favicon(self) -> None:
        soup = _soup('<link rel="shortcut icon" href="/favicon.png"><p>x</p>')
        assert extract_logo(soup, "https://example.com/page") == "https://example.com/favicon.png"
        assert extract_logo(_soup("<p>x</p>"), "https://example.com") == ""

    def test_subscription_url(self) -> None:
        assert determine_subscription_url(
            _soup('<form action="/signup"></form>'), "https://example.com/", "unknown"
        ) == "https://example.com/signup"
        assert determine_subscription_url(
            _soup("<p>x</p>"), "https://acme.beehiiv.com/p/post", "beehiiv"
        ) == "https://acme.beehiiv.com/subscribe"
        assert determine_subscription_url(_soup("<p>x</p>"), "https://example.com/", "unknown") == "https://example.com/"

    def test_confidence(self) -> None:
        assert calculate_confidence("", "", "") == 0
        assert calculate_confidence("Acme", "", "https://example.com/") == 30
        assert calculate_confidence("Acme", "A long description of the letter", "https://x/subscribe") == 100


class TestNewsletterPageDetector:
    @patch("sift.fetchers.newsletter_page.get_page")
    def test_detects_substack_page(self, mock_get_page) -> None:
        mock_get_page.return_value = MagicMock(text=SUBSTACK_PAGE, url="https://example.substack.com/")

        result = NewsletterPageDetector().detect("example.substack.com")

        mock_get_page.assert_called_once_with("https://example.substack.com/")
        assert result.success is True
        assert result.name == "Example Weekly"
        assert result.description == "Deep dives into software engineering every week."
        assert result.website == "https://example.substack.com"
        assert result.logo == "https://example.substack.com/img/logo.png"
        assert result.subscription_url == "https://example.substack.com/subscribe?ref=home"
        assert result.category == "tech"
        assert result.metadata["platform"] == "substack"
        assert result.metadata["confidence"] == 100
        assert result.to_dict()["subscriptionUrl"] == result.subscription_url

    @patch("sift.fetchers.newsletter_page.get_page")
    def test_bare_page_uses_website_name(self, mock_get_page) -> None:
        mock_get_page.return_value = MagicMock(text="<p>hi</p>", url="https://www.acme.org/")

        result = NewsletterPageDetector().detect("https://www.acme.org/")

        assert result.name == "Acme"
        assert result.description == "Newsletter from Acme"
        assert result.category == "other"
        assert result.metadata["confidence"] == 0

    @patch("sift.fetchers.newsletter_page.get_page")
    def test_invalid_url_is_not_fetched(self, mock_get_page) -> None:
        result = NewsletterPageDetector().detect("")
        assert result.to_dict() == {"success": False, "message": "Invalid URL provided"}
        mock_get_page.assert_not_called()

    @pytest.mark.parametrize("error, message", [
        (_http_error(404), "Page not found (404). Please check the URL."),
        (_http_error(502), "Server error. The website may be temporarily unavailable."),
        (requests.exceptions.ConnectionError("Failed to resolve host (NameResolutionError)"),
         "Website not found. Please check the URL."),
        (requests.exceptions.ConnectionError("[Errno 111] Connection refused"),
         "Connection refused. The website may be temporarily unavailable."),
        (requests.exceptions.Timeout("read timed out"),
         "Unable to access the website. Please check the URL and try again."),
    ])
    @patch("sift.fetchers.newsletter_page.get_page")
    def test_fetch_errors_become_messages(self, mock_get_page, error, message) -> None:
        mock_get_page.side_effect = error
        result = NewsletterPageDetector().detect("https://example.com")
        assert result.success is False
        assert result.message == message

    @patch("sift.fetchers.newsletter_page.get_page")
    def test_analysis_error_is_reported(self, mock_get_page) -> None:
        mock_get_page.return_value = MagicMock(text="<p>x</p>", url="https://example.com/")
        with patch.object(NewsletterPageDetector, "detect_from_html", side_effect=RuntimeError("boom")):
            result = NewsletterPageDetector().detect("https://example.com")
        assert result.message == "Failed to analyze the provided URL"
