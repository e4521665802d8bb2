"""
Segmentation of a sanitized newsletter into ordered, typed sections.
"""
import re
from typing import Callable, List, Optional

from bs4 import BeautifulSoup, Tag

from sift.config import get_config
from sift.core.models import HeadingSection, Section, SectionType, TableSection
from sift.extract.links import extract_images, extract_links
from sift.utils.text import clean_text, first_sentence, is_navigation_content

HEADING_TAGS = ['h1', 'h2', 'h3', 'h4', 'h5', 'h6']
CANDIDATE_TAGS = HEADING_TAGS + ['p', 'div', 'table', 'img', 'ul', 'ol']

MIN_TEXT_LENGTH = 10
CAPTION_MAX_LENGTH = 50
ARTICLE_MIN_LENGTH = 500
LINK_COLLECTION_MIN_LINKS = 3

DATA_SYMBOLS = ('📊', '📈', '📉', '%')
DATA_PATTERN = re.compile(r'[$€£]\s?[\d,]+|[\d,]+(?:\.\d+)?\s?%')

MergeStep = Callable[[List[Section]], List[Section]]


def _is_heading(element: Tag) -> bool:
    return element.name in HEADING_TAGS


def should_include(element: Tag, text: str) -> bool:
    """
    Inclusion filter for candidate elements.

    Args:
        element: Candidate element
        text: Its cleaned text

    Returns:
        True if the element becomes a section
    """
    if not text and element.name != 'img' and element.find('img') is None:
        return False
    if len(text) < MIN_TEXT_LENGTH and not _is_heading(element) and element.name != 'img':
        return False
    if is_navigation_content(text):
        return False
    return True


def determine_section_type(element: Tag, text: str) -> SectionType:
    """First matching rule wins."""
    if _is_heading(element):
        return SectionType.HEADING
    if element.name == 'img':
        return SectionType.IMAGE
    if element.name == 'table':
        return SectionType.DATA_TABLE
    if element.find('img') is not None:
        if len(text) < CAPTION_MAX_LENGTH:
            return SectionType.IMAGE_WITH_CAPTION
        return SectionType.ARTICLE_WITH_IMAGES
    if len(element.find_all('a')) > LINK_COLLECTION_MIN_LINKS:
        return SectionType.LINK_COLLECTION
    if any(symbol in text for symbol in DATA_SYMBOLS) or DATA_PATTERN.search(text):
        return SectionType.DATA_HIGHLIGHT
    if len(text) > ARTICLE_MIN_LENGTH:
        return SectionType.ARTICLE_BLOCK
    if element.find(['ul', 'ol']) is not None:
        return SectionType.LIST_CONTENT
    return SectionType.TEXT_BLOCK


def extract_table_data(table: Tag) -> List[List[str]]:
    rows = []
    for row in table.find_all('tr'):
        cells = [clean_text(cell.get_text()) for cell in row.find_all(['td', 'th'])]
        if any(cells):
            rows.append(cells)
    return rows


def preceding_heading(element: Tag) -> Optional[Tag]:
    """Nearest heading among previous siblings, walking up through ancestors."""
    node = element
    while node is not None and isinstance(node, Tag):
        heading = node.find_previous_sibling(HEADING_TAGS)
        if heading is not None:
            return heading
        node = node.parent
    return None


def derive_title(element: Tag, section_type: SectionType, text: str) -> str:
    title_max = get_config('extraction.title_max', 100)

    if section_type == SectionType.HEADING:
        return text
    if section_type == SectionType.IMAGE:
        return element.get('alt') or 'Image'
    if section_type == SectionType.DATA_TABLE:
        return 'Data Table'
    if section_type == SectionType.IMAGE_WITH_CAPTION:
        return text or 'Image'

    heading = preceding_heading(element)
    if heading is not None:
        return clean_text(heading.get_text())[:title_max]

    sentence = first_sentence(text)
    return sentence if len(sentence) <= title_max else ''


def build_section(element: Tag, text: str, order: int) -> Section:
    section_type = determine_section_type(element, text)
    common = dict(
        id=f"section-{order}",
        order=order,
        title=derive_title(element, section_type, text),
        content=text,
        links=extract_links(element),
        images=extract_images(element),
    )

    if section_type == SectionType.HEADING:
        return HeadingSection(level=int(element.name[1]), **common)
    if section_type == SectionType.DATA_TABLE:
        return TableSection(table_data=extract_table_data(element), **common)
    return Section(type=section_type, **common)


def merge_related_sections(sections: List[Section]) -> List[Section]:
    """Default merge step: sections pass through unchanged."""
    return sections


class Segmenter:
    """
    Walks a sanitized document and emits sections in document order.

    A merge step may combine adjacent sections; orders and ids are reassigned
    afterwards so they stay gapless.
    """
    def __init__(self, merge: Optional[MergeStep] = None):
        self.merge = merge or merge_related_sections

    def segment(self, soup: BeautifulSoup) -> List[Section]:
        sections = []
        for element in soup.find_all(CANDIDATE_TAGS):
            text = clean_text(element.get_text())
            if not should_include(element, text):
                continue
            sections.append(build_section(element, text, len(sections) + 1))

        merged = self.merge(sections)
        for order, section in enumerate(merged, 1):
            section.renumber(order)
        return merged


def segment(soup: BeautifulSoup, merge: Optional[MergeStep] = None) -> List[Section]:
    """
    Split a sanitized document into sections.

    Args:
        soup: Sanitized document
        merge: Optional step combining adjacent related sections

    Returns:
        Ordered list of Section
    """
    return Segmenter(merge).segment(soup)
