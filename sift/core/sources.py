"""
Newsletter source resolution.

Matches an inbound message to a known publisher by sender address, sender
domain or recurring subject pattern, and creates a new source from sender
heuristics when nothing matches. Matching is approximate on purpose; near
duplicates are tolerated and never merged here.
"""
import logging
import re
from typing import Any, Dict, List, Optional

from sift.core.models import NewsletterSource, utcnow
from sift.utils.email import normalize_address, sender_domain
from sift.utils.nlp import detect_category

# Configure logging
logger = logging.getLogger(__name__)

MONTHS = re.compile(
    r'\b(january|february|march|april|may|june|july|august|september|october|november|december)\b',
    re.IGNORECASE,
)
WEEKDAYS = re.compile(r'\b(monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b', re.IGNORECASE)
DIGITS = re.compile(r'\d+')

WEBSITE_URL = re.compile(r'https?://(?:www\.)?[^/\s"\'<>]+')
META_DESCRIPTION = re.compile(
    r'<meta[^>]*name=[\'"](?:description|Description)[\'"]*[^>]*content=[\'"]([^\'"]+)[\'"]'
)
TEXT_RUN = re.compile(r'\b.{20,100}\b')
TAG = re.compile(r'<[^>]*>')

SUBSTACK_DOMAIN = 'substack.com'
CONVERTKIT_DOMAINS = ('convertkit.com', 'ck.page')
UNKNOWN_NAME = 'Unknown Newsletter'

# Metadata lists used for matching future messages
SENDER_EMAILS = 'senderEmails'
SENDER_DOMAINS = 'senderDomains'
SUBJECT_PATTERNS = 'subjectPatterns'


def extract_subject_pattern(subject: Optional[str]) -> str:
    """
    Collapse a recurring subject line into a stable key.

    ``"Issue #42 - March Update"`` becomes ``"issue #x - month update"``.
    """
    pattern = DIGITS.sub('X', subject or '')
    pattern = MONTHS.sub('MONTH', pattern)
    pattern = WEEKDAYS.sub('DAY', pattern)
    return pattern.lower().strip()


def extract_newsletter_name(from_email: str, subject: Optional[str]) -> str:
    """
    Guess a display name for the publisher behind a sender.

    Substack senders are named after the first label of their domain,
    ConvertKit senders get a generic name, everyone else the first word of
    the subject, then the sender domain.
    """
    domain = sender_domain(from_email)

    if domain and SUBSTACK_DOMAIN in domain:
        label = domain.split('.')[0]
        return label[:1].upper() + label[1:]

    if domain and any(marker in domain for marker in CONVERTKIT_DOMAINS):
        return 'Newsletter'

    words = (subject or '').split()
    if words:
        return words[0]

    return domain or UNKNOWN_NAME


def extract_website(html: Optional[str], domain: Optional[str]) -> Optional[str]:
    """First URL in the body on the sender's domain, else the first URL at all."""
    if not html:
        return None
    urls = WEBSITE_URL.findall(html)
    if not urls:
        return None
    if domain:
        bare_domain = re.sub(r'^mail\.', '', domain)
        for url in urls:
            if bare_domain in url:
                return url
    return urls[0]


def extract_description(subject: Optional[str], html: Optional[str]) -> str:
    description = None

    if html:
        meta = META_DESCRIPTION.search(html)
        if meta:
            description = meta.group(1)
        else:
            run = TEXT_RUN.search(TAG.sub(' ', html))
            if run:
                description = run.group(0).strip()

    if not description or len(description) < 10:
        subject = subject or ''
        suffix = '...' if len(subject) > 80 else ''
        description = f"Newsletter: {subject[:80]}{suffix}"

    return description


def detection_confidence(name: Optional[str], website: Optional[str], description: Optional[str]) -> float:
    confidence = 0.3
    if name and name != UNKNOWN_NAME:
        confidence += 0.3
    if website:
        confidence += 0.3
    if description and len(description) > 20:
        confidence += 0.1
    return min(round(confidence, 2), 1.0)


def detect_from_message(from_email: str, subject: Optional[str], html: Optional[str],
                        user_id: Optional[str] = None) -> Optional[NewsletterSource]:
    """
    Synthesize a new source from a message when no known source matches.

    Args:
        from_email: Sender address
        subject: Subject line
        html: Body used for website, description and category hints
        user_id: The user whose message triggered detection

    Returns:
        An unsaved NewsletterSource, or None if the sender has no domain
    """
    domain = sender_domain(from_email)
    if not domain:
        logger.info(f"Cannot detect a newsletter from sender without domain: {from_email!r}")
        return None

    name = extract_newsletter_name(from_email, subject)
    website = extract_website(html, domain)
    description = extract_description(subject, html)
    category = detect_category(f"{subject or ''} {html or ''}")

    return NewsletterSource(
        name=name,
        description=description,
        website=website,
        category=category,
        metadata={
            'detectedFromEmail': True,
            'firstDetectedBy': user_id,
            'senderDomain': domain,
            SENDER_EMAILS: [from_email],
            SENDER_DOMAINS: [domain],
            SUBJECT_PATTERNS: [extract_subject_pattern(subject)],
            'detectedAt': utcnow().isoformat(),
            'detectionMethod': 'content_analysis',
            'confidence': detection_confidence(name, website, description),
        },
    )


def merge_sender_metadata(metadata: Dict[str, Any], from_email: str, domain: Optional[str],
                          pattern: str) -> Optional[Dict[str, Any]]:
    """
    Add the message's sender values to a source's matching lists.

    Returns:
        The merged metadata, or None when nothing was missing
    """
    merged = dict(metadata or {})
    changed = False

    for key, value in ((SENDER_EMAILS, from_email), (SENDER_DOMAINS, domain), (SUBJECT_PATTERNS, pattern)):
        if not value:
            continue
        values: List[str] = list(merged.get(key) or [])
        if value not in values:
            values.append(value)
            merged[key] = values
            changed = True

    return merged if changed else None


def identity_key(source: NewsletterSource) -> str:
    """Normalized identity used for at-most-one creation in the store."""
    domain = (source.metadata or {}).get('senderDomain') or ''
    return f"{source.name.strip().lower()}|{domain.lower()}"


class SourceResolver:
    """
    Resolves or creates the newsletter source for inbound messages.

    The store must provide ``find_source_by_sender``, ``update_source_metadata``
    and ``upsert_source``.
    """
    def __init__(self, store):
        self.store = store

    def find_existing(self, from_email: str, subject: Optional[str]) -> Optional[NewsletterSource]:
        return self.store.find_source_by_sender(
            email=from_email,
            domain=sender_domain(from_email),
            subject_pattern=extract_subject_pattern(subject),
        )

    def resolve_or_create(self, from_email: str, subject: Optional[str], html: Optional[str],
                          user_id: Optional[str] = None) -> Optional[NewsletterSource]:
        """
        Find the source for a message, creating it when detection succeeds.

        Args:
            from_email: Sender address
            subject: Subject line
            html: Message body
            user_id: The receiving user, recorded on newly created sources

        Returns:
            The NewsletterSource, or None if none could be resolved
        """
        from_email = normalize_address(from_email)
        try:
            source = self.find_existing(from_email, subject)

            if source is not None:
                merged = merge_sender_metadata(
                    source.metadata, from_email, sender_domain(from_email), extract_subject_pattern(subject)
                )
                if merged is not None:
                    self.store.update_source_metadata(source.id, merged)
                    source.metadata = merged
                    logger.info(f"Updated sender info for newsletter source: {source.name}")
                return source

            detected = detect_from_message(from_email, subject, html, user_id)
            if detected is None:
                return None

            source = self.store.upsert_source(detected, identity_key(detected))
            logger.info(f"Auto-detected new newsletter source: {source.name}")
            return source

        except Exception as e:
            logger.error(f"Error resolving newsletter source for {from_email}: {e}")
            return None
