"""
Inbound message routing.

A forwarded newsletter goes through: user lookup by inbox address, block
list check, source resolution, approval disposition, content extraction and
finally persistence. Every message ends stored, blocked or reported as
unroutable; extraction problems never drop a message.
"""
import html as html_lib
import logging
import re
from typing import List, Optional

from sift.core.extractor import ContentExtractor
from sift.core.models import (
    ApprovalStatus,
    BlockRule,
    BlockType,
    ContentRecord,
    ExtractionFailure,
    NewsletterSource,
    ProcessingStatus,
    RawMessage,
    RoutingResult,
    User,
    utcnow,
)
from sift.core.sources import SourceResolver, extract_newsletter_name
from sift.core.webhook import WebhookError, parse_mailgun_webhook
from sift.utils.email import is_inbox_email, normalize_address, sender_domain
from sift.utils.nlp import detect_category

# Configure logging
logger = logging.getLogger(__name__)

_PARAGRAPH_BREAK = re.compile(r'\n\s*\n')


class UnroutableMessageError(LookupError):
    """No user owns the destination address of a message."""


def text_to_html(text: Optional[str]) -> str:
    """Wrap a plain-text body into escaped paragraphs."""
    if not text:
        return ""
    paragraphs = [p.strip() for p in _PARAGRAPH_BREAK.split(text) if p.strip()]
    return "\n".join(f"<p>{html_lib.escape(p)}</p>" for p in paragraphs)


def matches_block_rule(rule: BlockRule, from_email: str, domain: Optional[str], subject: str) -> bool:
    value = (rule.block_value or '').strip().lower()
    if not value:
        return False
    if rule.block_type == BlockType.EMAIL:
        return from_email.lower() == value
    if rule.block_type == BlockType.DOMAIN:
        return (domain or '') == value
    if rule.block_type == BlockType.KEYWORD:
        return value in (subject or '').lower()
    return False


class InboundRouter:
    """
    Routes inbound newsletter emails into users' content queues.

    The store provides user lookup, block rules, sender approval history,
    the source catalog, subscriptions and content persistence (see
    ``sift.core.store.SqliteStore``).
    """
    def __init__(self, store, extractor: Optional[ContentExtractor] = None):
        """
        Initialize the InboundRouter.

        Args:
            store: Persistence collaborator
            extractor: Content extractor, a default one if omitted
        """
        self.store = store
        self.extractor = extractor or ContentExtractor()
        self.resolver = SourceResolver(store)

    def find_user(self, inbox_email: str) -> User:
        """
        Resolve the user owning an inbox address.

        Raises:
            UnroutableMessageError: if the address is not an inbox address or has no owner
        """
        if not is_inbox_email(inbox_email):
            raise UnroutableMessageError(f"Invalid inbox email format: {inbox_email}")

        user = self.store.find_user_by_inbox_email(inbox_email)
        if user is None:
            raise UnroutableMessageError(f"User not found for inbox email: {inbox_email}")
        return user

    def is_blocked(self, user_id: str, from_email: str, subject: str) -> bool:
        domain = sender_domain(from_email)
        rules: List[BlockRule] = self.store.active_block_rules(user_id)
        return any(matches_block_rule(rule, from_email, domain, subject) for rule in rules)

    def determine_approval_status(self, user_id: str, source: Optional[NewsletterSource],
                                  from_email: str) -> ApprovalStatus:
        """
        ``approved`` for an auto-approve subscription to the source,
        ``auto_approved`` for a sender the user approved before, else ``pending``.
        """
        try:
            if source is not None and source.id:
                subscription = self.store.find_subscription(user_id, source.id)
                if subscription and subscription.is_active and subscription.auto_approve:
                    return ApprovalStatus.APPROVED

            if self.store.has_approved_content_from(user_id, from_email):
                logger.info(f"Auto-approving from previously approved sender: {from_email}")
                return ApprovalStatus.AUTO_APPROVED

            return ApprovalStatus.PENDING
        except Exception as e:
            logger.error(f"Error determining approval status: {e}")
            return ApprovalStatus.PENDING

    def route(self, message: RawMessage) -> RoutingResult:
        """
        Route a raw inbound message to its user.

        Args:
            message: The inbound message

        Returns:
            RoutingResult; ``success`` is False for unroutable messages
        """
        logger.info(f"Processing email: {message.subject} -> {message.to}")
        try:
            user = self.find_user(normalize_address(message.to))
        except UnroutableMessageError as e:
            logger.warning(str(e))
            return RoutingResult(success=False, message='Message not routed', error=str(e))

        return self.process_incoming(user.id, message)

    def route_webhook(self, payload) -> RoutingResult:
        """Parse a Mailgun payload and route it."""
        try:
            message = parse_mailgun_webhook(payload)
        except WebhookError as e:
            logger.warning(f"Rejected webhook payload: {e}")
            return RoutingResult(success=False, message='Message not routed', error=str(e))
        return self.route(message)

    def process_incoming(self, user_id: str, message: RawMessage) -> RoutingResult:
        """
        Process a newsletter for a known user.

        Args:
            user_id: The receiving user
            message: The inbound message

        Returns:
            RoutingResult with the stored content id and approval status
        """
        from_email = normalize_address(message.from_email)
        subject = message.subject or ''
        domain = sender_domain(from_email)
        logger.info(f"Processing newsletter for user {user_id} from {from_email}")

        if self.is_blocked(user_id, from_email, subject):
            logger.info(f"Email blocked for user {user_id}: {from_email}")
            return RoutingResult(success=True, message='Email blocked by user settings',
                                 approval_status=ApprovalStatus.BLOCKED)

        body = message.html or text_to_html(message.text)

        source = self.resolver.resolve_or_create(from_email, subject, body, user_id)
        approval_status = self.determine_approval_status(user_id, source, from_email)

        if source is not None and source.id:
            self.store.touch_subscription(user_id, source.id)

        detected_name = source.name if source else extract_newsletter_name(from_email, subject)
        extraction_source = source or NewsletterSource(name=detected_name)
        outcome = self.extractor.extract(body, extraction_source)

        sender_info = {'email': from_email, 'domain': domain}
        common = dict(
            user_id=user_id,
            source_id=source.id if source else None,
            approval_status=approval_status,
            original_subject=subject,
            original_html=message.html,
            original_from=from_email,
            sender_domain=domain,
            received_at=message.received_at or utcnow(),
            detected_newsletter_name=detected_name,
            detected_category=detect_category(f"{subject} {message.html or message.text or ''}"),
            approved_at=utcnow() if approval_status == ApprovalStatus.APPROVED else None,
        )

        if isinstance(outcome, ExtractionFailure):
            logger.warning(f"Content extraction failed for {subject}, saving as raw content")
            fallback = outcome.fallback
            record = ContentRecord(
                metadata={
                    'title': subject,
                    'extractionFailed': True,
                    'rawContent': True,
                    'senderInfo': sender_info,
                },
                sections=[section.to_dict() for section in fallback.sections],
                processing_status=ProcessingStatus.FAILED,
                processing_error=outcome.error,
                extraction_confidence=fallback.extraction_confidence,
                word_count=fallback.word_count,
                search_text=subject.lower(),
                tags=[],
                **common,
            )
            content_id = self.store.save_content(record)
            return RoutingResult(success=True, content_id=content_id, approval_status=approval_status,
                                 message='Content saved as raw (extraction failed)')

        metadata = outcome.metadata.to_dict()
        metadata['senderInfo'] = sender_info
        record = ContentRecord(
            metadata=metadata,
            sections=[section.to_dict() for section in outcome.sections],
            processing_status=ProcessingStatus.COMPLETED,
            extraction_confidence=outcome.extraction_confidence,
            word_count=outcome.word_count,
            search_text=outcome.search_text,
            tags=list(outcome.tags),
            **common,
        )
        content_id = self.store.save_content(record)

        if approval_status == ApprovalStatus.APPROVED:
            logger.info(f"Auto-approved: {subject}")
        else:
            logger.info(f"Stored as {approval_status.value}: {subject}")

        return RoutingResult(success=True, content_id=content_id, approval_status=approval_status,
                             message='Newsletter processed successfully')
