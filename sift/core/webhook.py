"""
Inbound email webhook intake (Mailgun routes format).
"""
import hashlib
import hmac
import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Union

from sift.core.models import RawMessage, utcnow
from sift.utils.email import normalize_address

# Configure logging
logger = logging.getLogger(__name__)


class WebhookError(ValueError):
    """Raised for webhook payloads that cannot be turned into a message."""


def signing_key() -> Optional[str]:
    return os.getenv('MAILGUN_WEBHOOK_SIGNING_KEY')


def verify_webhook_signature(signature: str, timestamp: str, token: str, key: Optional[str] = None) -> bool:
    """
    Check a Mailgun webhook signature (HMAC-SHA256 of timestamp + token).

    Without a signing key verification is skipped and the payload accepted.
    """
    key = key if key is not None else signing_key()
    if not key:
        logger.warning("No webhook signing key configured - skipping verification")
        return True

    expected = hmac.new(
        key.encode('utf-8'),
        f"{timestamp}{token}".encode('utf-8'),
        hashlib.sha256,
    ).hexdigest()
    return hmac.compare_digest(expected, signature or '')


def _first(payload: Mapping[str, Any], *names: str) -> Optional[Any]:
    for name in names:
        value = payload.get(name)
        if value not in (None, ''):
            return value
    return None


def _received_at(timestamp: Any) -> datetime:
    if timestamp in (None, ''):
        return utcnow()
    try:
        return datetime.fromtimestamp(float(timestamp), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        logger.warning(f"Ignoring unparseable webhook timestamp: {timestamp!r}")
        return utcnow()


def parse_mailgun_webhook(payload: Union[str, bytes, Mapping[str, Any]]) -> RawMessage:
    """
    Turn a Mailgun inbound payload (form fields or JSON) into a RawMessage.

    Args:
        payload: Mapping of form fields, or their JSON encoding

    Returns:
        RawMessage

    Raises:
        WebhookError: if the payload is malformed or has no recipient
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError as e:
            raise WebhookError(f"Invalid webhook data format: {e}") from e

    if not isinstance(payload, Mapping):
        raise WebhookError("Invalid webhook data format")

    to = _first(payload, 'recipient', 'To', 'to')
    if not to:
        raise WebhookError("Webhook payload has no recipient")

    return RawMessage(
        to=normalize_address(str(to)),
        from_email=normalize_address(str(_first(payload, 'sender', 'From', 'from') or '')),
        subject=str(_first(payload, 'subject', 'Subject') or ''),
        html=_first(payload, 'body-html', 'html'),
        text=_first(payload, 'body-plain', 'text'),
        received_at=_received_at(_first(payload, 'timestamp')),
        message_id=_first(payload, 'Message-Id', 'message-id'),
    )


def signature_fields(payload: Mapping[str, Any]) -> Dict[str, str]:
    """
    The signature triple of a payload, from a nested ``signature`` object or
    top-level form fields.
    """
    nested = payload.get('signature')
    source = nested if isinstance(nested, Mapping) else payload
    return {
        'signature': str(source.get('signature') or ''),
        'timestamp': str(source.get('timestamp') or ''),
        'token': str(source.get('token') or ''),
    }
