"""
Text cleanup helpers shared by the extraction stages.
"""
import re
from typing import Iterable

# Phrases that mark an element as email boilerplate during sanitization
BOILERPLATE_PHRASES = (
    'unsubscribe',
    'privacy policy',
    'manage preferences',
    'view in browser',
)

# Segment-time navigation phrases, a superset of the boilerplate phrases
NAVIGATION_PHRASES = BOILERPLATE_PHRASES + (
    'forward to a friend',
    'update preferences',
    'contact us',
)

_WHITESPACE = re.compile(r'\s+')


def clean_text(text: str) -> str:
    """Collapse every whitespace run to a single space and trim."""
    if not text:
        return ""
    return _WHITESPACE.sub(' ', text).strip()


def contains_any(text: str, phrases: Iterable[str]) -> bool:
    """Case-insensitive phrase test on whitespace-collapsed text."""
    lower_text = clean_text(text).lower()
    return any(phrase in lower_text for phrase in phrases)


def is_boilerplate(text: str) -> bool:
    return contains_any(text, BOILERPLATE_PHRASES)


def is_navigation_content(text: str) -> bool:
    return contains_any(text, NAVIGATION_PHRASES)


def first_sentence(text: str) -> str:
    """Text up to the first period."""
    return text.split('.')[0].strip()


def truncate(text: str, limit: int) -> str:
    return text[:limit] if text else ""
