"""
HTML sanitization ahead of structural analysis.

Removes markup that never carries newsletter content: scripts, styles,
header/footer/unsubscribe blocks, boilerplate phrases and empty wrappers.
The document is modified in place and returned.
"""
import re
from typing import List, Optional, Union

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PageElement, PreformattedString

from sift.utils.text import is_boilerplate

NON_CONTENT_TAGS = ['script', 'style', 'meta', 'link']

_CRUFT_MARKERS = re.compile(r'unsubscribe|footer|header', re.IGNORECASE)


def _attr_text(tag: Tag, name: str) -> str:
    value = tag.get(name)
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(value)
    return str(value)


def is_cruft_container(tag: Tag) -> bool:
    """True if the tag's class or id names a header, footer or unsubscribe block."""
    return bool(
        _CRUFT_MARKERS.search(_attr_text(tag, 'class')) or
        _CRUFT_MARKERS.search(_attr_text(tag, 'id'))
    )


def has_image(tag: Tag) -> bool:
    return tag.name == 'img' or tag.find('img') is not None


def _node_text(node: PageElement) -> str:
    # Comments, doctypes and the like carry no visible text
    if isinstance(node, Tag):
        return node.get_text()
    if isinstance(node, NavigableString) and not isinstance(node, PreformattedString):
        return str(node)
    return ""


def boilerplate_run(tag: Union[BeautifulSoup, Tag]) -> Optional[List[PageElement]]:
    """
    Shortest run of a tag's children whose joined text holds a boilerplate phrase.

    The run ends at the first child that completes a phrase, so a phrase
    split across inline children (``View in <b>browser</b>``) is found as
    a whole while unrelated siblings stay untouched.

    Args:
        tag: Element whose direct children are searched

    Returns:
        The children to remove, or None if the tag's text is clean
    """
    children = list(tag.contents)
    texts = [_node_text(child) for child in children]

    end = next((j for j in range(len(children)) if is_boilerplate(''.join(texts[:j + 1]))), None)
    if end is None:
        return None

    start = end
    while start > 0 and not is_boilerplate(''.join(texts[start:end + 1])):
        start -= 1
    return children[start:end + 1]


def _remove_boilerplate_text(soup: BeautifulSoup) -> bool:
    # Children are visited before their parents, so by the time a container is
    # checked only phrases in its own text nodes or split across its children
    # remain, and only those children are removed. The container itself stays.
    removed = False
    for tag in list(reversed(soup.find_all(True))) + [soup]:
        if tag.decomposed:
            continue
        while is_boilerplate(tag.get_text()):
            run = boilerplate_run(tag)
            if not run:
                break
            for node in run:
                if isinstance(node, Tag):
                    node.decompose()
                else:
                    node.extract()
            removed = True
    return removed


def _remove_empty_elements(soup: BeautifulSoup) -> bool:
    removed = False
    for element in soup.find_all(True):
        if element.decomposed:
            continue
        if not element.get_text().strip() and not has_image(element):
            element.decompose()
            removed = True
    return removed


def sanitize(soup: BeautifulSoup) -> BeautifulSoup:
    """
    Strip non-content markup from a parsed document.

    Boilerplate and empty-element removal repeat until neither changes the
    document, so sanitizing the output again leaves it as it is.

    Args:
        soup: Parsed document

    Returns:
        The same document, sanitized
    """
    for element in soup.find_all(NON_CONTENT_TAGS):
        if not element.decomposed:
            element.decompose()

    for element in soup.find_all(is_cruft_container):
        if not element.decomposed:
            element.decompose()

    while True:
        stripped = _remove_boilerplate_text(soup)
        emptied = _remove_empty_elements(soup)
        if not (stripped or emptied):
            break

    return soup
