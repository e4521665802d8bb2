"""
Content extraction for newsletter email bodies.

``ContentExtractor.extract`` runs sanitize -> brand colors -> segment -> enrich
and never raises: a failing pipeline yields an ``ExtractionFailure`` whose
``fallback`` keeps the visible text as one article block.
"""
import logging
import re
from typing import Optional, Union

from bs4 import BeautifulSoup

from sift.config import get_config
from sift.core.models import (
    ContentMetadata,
    ExtractionFailure,
    ExtractionResult,
    NewsletterSource,
    Section,
    SectionType,
)
from sift.extract.brand import default_brand_colors, extract_brand_colors
from sift.extract.enrichment import (
    build_metadata,
    calculate_confidence,
    calculate_read_time,
    calculate_word_count,
    derive_tags,
    generate_search_text,
)
from sift.extract.sanitizer import sanitize
from sift.extract.segmenter import MergeStep, Segmenter
from sift.utils.text import clean_text

# Configure logging
logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 0.3
FALLBACK_TITLE = 'Newsletter Content'

ExtractionOutcome = Union[ExtractionResult, ExtractionFailure]


def visible_text(html: str) -> str:
    """Document text without scripts and styles, whitespace collapsed."""
    try:
        soup = BeautifulSoup(html or "", 'html.parser')
        for element in soup(['script', 'style']):
            element.decompose()
        return clean_text(soup.get_text(' '))
    except Exception:
        logger.warning("Could not parse HTML for fallback text, stripping tags instead")
        return clean_text(re.sub(r'<[^>]*>', ' ', html or ""))


class ContentExtractor:
    """
    Turns arbitrary newsletter HTML into an ExtractionResult.
    """
    def __init__(self, merge: Optional[MergeStep] = None):
        """
        Initialize the ContentExtractor.

        Args:
            merge: Optional step combining adjacent related sections
        """
        self.segmenter = Segmenter(merge)

    def extract(self, html: Optional[str], source: NewsletterSource) -> ExtractionOutcome:
        """
        Extract structured content from an email body.

        Args:
            html: Raw HTML of the email body
            source: The newsletter source (at least a name)

        Returns:
            ExtractionResult on success, ExtractionFailure otherwise
        """
        html = html or ""
        try:
            logger.info(f"Extracting content from {source.name}...")

            soup = BeautifulSoup(html, 'html.parser')
            sanitize(soup)
            brand_colors = extract_brand_colors(soup, html)
            sections = self.segmenter.segment(soup)
            word_count = calculate_word_count(sections)
            metadata = build_metadata(soup, source, brand_colors, word_count)

            result = ExtractionResult(
                metadata=metadata,
                sections=sections,
                search_text=generate_search_text(sections, metadata.title),
                word_count=word_count,
                tags=derive_tags(sections, metadata.title),
                extraction_confidence=calculate_confidence(sections, metadata.title),
            )

            logger.info(f"Extracted {len(sections)} sections from {source.name}")
            return result

        except Exception as e:
            logger.error(f"Content extraction failed for {source.name}: {e}")
            return ExtractionFailure(
                error=str(e) or e.__class__.__name__,
                fallback=self.create_fallback(html, source),
            )

    def create_fallback(self, html: str, source: NewsletterSource) -> ExtractionResult:
        """
        Degraded result holding the first characters of the visible text.

        Args:
            html: Raw HTML of the email body
            source: The newsletter source

        Returns:
            ExtractionResult with a single article block
        """
        text = visible_text(html)
        excerpt = text[:get_config('extraction.fallback_chars', 1000)]
        title = f"{source.name} Newsletter"

        section = Section(
            id='fallback-1',
            order=1,
            type=SectionType.ARTICLE_BLOCK,
            title=FALLBACK_TITLE,
            content=excerpt,
        )
        word_count = section.word_count

        return ExtractionResult(
            metadata=ContentMetadata(
                title=title,
                brand_colors=default_brand_colors(),
                source=source.name,
                read_time=calculate_read_time(word_count),
                source_logo=source.logo,
                source_website=source.website,
            ),
            sections=[section],
            search_text=text.lower(),
            word_count=word_count,
            tags=[],
            extraction_confidence=FALLBACK_CONFIDENCE,
        )


def extract_content(html: Optional[str], source: NewsletterSource) -> ExtractionOutcome:
    """
    Extract structured content with the default pipeline.

    Args:
        html: Raw HTML of the email body
        source: The newsletter source

    Returns:
        ExtractionResult on success, ExtractionFailure otherwise
    """
    return ContentExtractor().extract(html, source)
