"""
Best-effort brand color detection.
"""
import logging
import re
from typing import Optional

from bs4 import BeautifulSoup

from sift.config import get_config
from sift.core.models import BrandColors

# Configure logging
logger = logging.getLogger(__name__)

HEX_COLOR = re.compile(r'#[0-9a-fA-F]{6}|#[0-9a-fA-F]{3}')
COLOR_DECLARATION = re.compile(r'(?:background-color|color):\s*([#\w]+)', re.IGNORECASE)


def default_brand_colors() -> BrandColors:
    return BrandColors(
        primary=get_config('brand.primary', '#6C7BFF'),
        accent=get_config('brand.accent', '#1E1E1E'),
    )


def _first_inline_color(soup: BeautifulSoup) -> Optional[str]:
    styled = soup.find(
        lambda tag: tag.has_attr('style') and (
            'color' in tag['style'] or 'background' in tag['style']
        )
    )
    if styled is None:
        return None
    match = HEX_COLOR.search(styled['style'])
    return match.group(0) if match else None


def extract_brand_colors(soup: BeautifulSoup, raw_html: str) -> BrandColors:
    """
    Pick a primary and an accent color for the newsletter.

    CSS ``color``/``background-color`` declarations in the raw HTML supply the
    first two hex colors in document order. The first element with an inline
    color style then overrides the primary color when it carries a hex value.
    Any failure yields the configured defaults.

    Args:
        soup: Sanitized document
        raw_html: The original HTML text, including style blocks

    Returns:
        BrandColors
    """
    colors = default_brand_colors()

    try:
        declared = []
        for value in COLOR_DECLARATION.findall(raw_html or ""):
            match = HEX_COLOR.search(value)
            if match:
                declared.append(match.group(0))

        if declared:
            colors.primary = declared[0]
            if len(declared) > 1:
                colors.accent = declared[1]

        inline = _first_inline_color(soup)
        if inline:
            colors.primary = inline
    except Exception as e:
        logger.info(f"Color extraction failed, using defaults: {e}")
        return default_brand_colors()

    return colors
