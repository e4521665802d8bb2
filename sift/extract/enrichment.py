"""
Document metadata and derived fields for extracted sections.
"""
import re
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from sift.config import get_config
from sift.core.models import BrandColors, ContentMetadata, NewsletterSource, Section, utcnow
from sift.utils.nlp import extract_tags
from sift.utils.text import clean_text

BASE_CONFIDENCE = 0.5
TITLE_MIN_LENGTH = 10
SECTION_COUNT_THRESHOLD = 3


def _class_or_id_contains(word: str):
    pattern = re.compile(word, re.IGNORECASE)

    def matcher(tag: Tag) -> bool:
        classes = tag.get('class') or []
        if isinstance(classes, str):
            classes = [classes]
        return bool(pattern.search(" ".join(classes)) or pattern.search(tag.get('id') or ''))

    return matcher


def _text_of(tag: Optional[Tag]) -> str:
    return clean_text(tag.get_text()) if tag is not None else ""


def extract_title(soup: BeautifulSoup, source_name: str) -> str:
    """
    First non-empty title candidate: ``<title>``, the first ``<h1>``, an element
    whose class or id mentions ``subject``, then one mentioning ``title``.
    Falls back to ``"<source> Newsletter"``.
    """
    candidates = (
        lambda: soup.find('title'),
        lambda: soup.find('h1'),
        lambda: soup.find(_class_or_id_contains('subject')),
        lambda: soup.find(_class_or_id_contains('title')),
    )
    for candidate in candidates:
        text = _text_of(candidate())
        if text:
            return text
    return f"{source_name} Newsletter"


def generate_search_text(sections: List[Section], title: str) -> str:
    parts = [title]
    for section in sections:
        parts.append(section.title)
        parts.append(section.content)
    return " ".join(parts).lower()


def calculate_word_count(sections: List[Section]) -> int:
    return sum(section.word_count for section in sections)


def calculate_read_time(word_count: int) -> str:
    words_per_minute = get_config('extraction.words_per_minute', 200)
    return f"{max(1, word_count // words_per_minute)} min"


def derive_tags(sections: List[Section], title: str) -> List[str]:
    all_text = " ".join([title] + [section.content for section in sections])
    return extract_tags(all_text)


def calculate_confidence(sections: List[Section], title: str) -> float:
    """
    Heuristic extraction quality in [0, 1].

    Starts at 0.5: +0.2 for a title longer than 10 characters, +0.1 for at
    least three sections, +0.1 if any section has an image, +0.1 if any
    section has a link.
    """
    score = BASE_CONFIDENCE

    if title and len(title) > TITLE_MIN_LENGTH:
        score += 0.2
    if len(sections) >= SECTION_COUNT_THRESHOLD:
        score += 0.1
    if any(section.images for section in sections):
        score += 0.1
    if any(section.links for section in sections):
        score += 0.1

    return min(round(score, 2), 1.0)


def build_metadata(soup: BeautifulSoup, source: NewsletterSource, brand_colors: BrandColors,
                   word_count: int) -> ContentMetadata:
    # No publish date is parsed from the email; extraction time stands in for it
    now = utcnow()
    return ContentMetadata(
        title=extract_title(soup, source.name),
        brand_colors=brand_colors,
        source=source.name,
        read_time=calculate_read_time(word_count),
        source_logo=source.logo,
        source_website=source.website,
        publish_date=now,
        extracted_at=now,
    )
