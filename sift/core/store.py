"""
SQLite persistence for users, block lists, sources, subscriptions and content.
"""
import json
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from sift.config import get_config
from sift.core.models import (
    ApprovalStatus,
    BlockRule,
    BlockType,
    ContentRecord,
    NewsletterSource,
    ProcessingStatus,
    Subscription,
    User,
    utcnow,
)
from sift.utils.email import generate_inbox_email

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL,
    inbox_email TEXT NOT NULL UNIQUE COLLATE NOCASE
);

CREATE TABLE IF NOT EXISTS block_list (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL REFERENCES users(id),
    block_type TEXT NOT NULL,
    block_value TEXT NOT NULL,
    reason TEXT,
    is_active INTEGER NOT NULL DEFAULT 1,
    blocked_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS sources (
    id TEXT PRIMARY KEY,
    identity_key TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    description TEXT,
    website TEXT,
    logo TEXT,
    category TEXT,
    subscription_type TEXT NOT NULL DEFAULT 'individual',
    is_active INTEGER NOT NULL DEFAULT 1,
    metadata TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS subscriptions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL REFERENCES users(id),
    source_id TEXT NOT NULL REFERENCES sources(id),
    auto_approve INTEGER NOT NULL DEFAULT 0,
    is_active INTEGER NOT NULL DEFAULT 1,
    subscribed_at TEXT NOT NULL,
    last_content_at TEXT NOT NULL,
    UNIQUE (user_id, source_id)
);

CREATE TABLE IF NOT EXISTS contents (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL REFERENCES users(id),
    source_id TEXT REFERENCES sources(id),
    approval_status TEXT NOT NULL,
    approved_at TEXT,
    original_subject TEXT,
    original_html TEXT,
    original_from TEXT,
    sender_domain TEXT,
    detected_newsletter_name TEXT,
    detected_category TEXT,
    received_at TEXT NOT NULL,
    metadata TEXT NOT NULL,
    sections TEXT NOT NULL,
    processing_status TEXT NOT NULL,
    processing_error TEXT,
    extraction_confidence REAL,
    word_count INTEGER,
    search_text TEXT,
    tags TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_contents_sender ON contents (user_id, original_from);
"""

APPROVED_STATUSES = (ApprovalStatus.APPROVED.value, ApprovalStatus.AUTO_APPROVED.value)


def _new_id() -> str:
    return str(uuid.uuid4())


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class SqliteStore:
    """
    Persistence collaborator of the inbound router, backed by one SQLite file.
    """
    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path or get_config('storage.database', 'sift.db'))
        self._init_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _init_db(self):
        """Create the tables if they do not exist."""
        if self.path.parent and not self.path.parent.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript(SCHEMA)

    # Users

    def inbox_email_exists(self, inbox_email: str) -> bool:
        with self._connect() as conn:
            row = conn.execute("SELECT 1 FROM users WHERE inbox_email = ?", (inbox_email,)).fetchone()
            return row is not None

    def create_user(self, email: str, inbox_email: Optional[str] = None) -> User:
        """
        Create a user, generating an unused inbox address unless one is given.
        """
        user = User(
            id=_new_id(),
            email=email,
            inbox_email=inbox_email or generate_inbox_email(email, self.inbox_email_exists),
        )
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO users (id, email, inbox_email) VALUES (?, ?, ?)",
                (user.id, user.email, user.inbox_email),
            )
        return user

    def find_user_by_inbox_email(self, inbox_email: str) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id, email, inbox_email FROM users WHERE inbox_email = ?",
                (inbox_email.strip(),),
            ).fetchone()
        if row is None:
            return None
        return User(id=row['id'], email=row['email'], inbox_email=row['inbox_email'])

    # Block list

    def add_block_rule(self, user_id: str, block_type: Union[BlockType, str], block_value: str,
                       reason: Optional[str] = None) -> BlockRule:
        rule = BlockRule(
            id=_new_id(),
            user_id=user_id,
            block_type=BlockType(block_type),
            block_value=block_value,
            reason=reason,
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO block_list (id, user_id, block_type, block_value, reason, is_active, blocked_at)
                VALUES (?, ?, ?, ?, ?, 1, ?)
                """,
                (rule.id, rule.user_id, rule.block_type.value, rule.block_value, rule.reason, _iso(utcnow())),
            )
        return rule

    def deactivate_block_rule(self, rule_id: str) -> None:
        with self._connect() as conn:
            conn.execute("UPDATE block_list SET is_active = 0 WHERE id = ?", (rule_id,))

    def active_block_rules(self, user_id: str) -> List[BlockRule]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT id, user_id, block_type, block_value, reason, is_active
                FROM block_list
                WHERE user_id = ? AND is_active = 1
                """,
                (user_id,),
            ).fetchall()
        return [
            BlockRule(
                id=row['id'],
                user_id=row['user_id'],
                block_type=BlockType(row['block_type']),
                block_value=row['block_value'],
                reason=row['reason'],
                is_active=bool(row['is_active']),
            )
            for row in rows
        ]

    # Sources

    def _row_to_source(self, row: sqlite3.Row) -> NewsletterSource:
        return NewsletterSource(
            id=row['id'],
            name=row['name'],
            description=row['description'],
            website=row['website'],
            logo=row['logo'],
            category=row['category'] or 'other',
            subscription_type=row['subscription_type'],
            is_active=bool(row['is_active']),
            metadata=json.loads(row['metadata'] or '{}'),
        )

    def list_sources(self) -> List[NewsletterSource]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM sources ORDER BY created_at, id").fetchall()
        return [self._row_to_source(row) for row in rows]

    def get_source(self, source_id: str) -> Optional[NewsletterSource]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM sources WHERE id = ?", (source_id,)).fetchone()
        return self._row_to_source(row) if row else None

    def find_source_by_sender(self, email: str, domain: Optional[str],
                              subject_pattern: Optional[str]) -> Optional[NewsletterSource]:
        """
        Source whose recorded senders overlap the message.

        Sender email matches are preferred over domain matches, which are
        preferred over subject pattern matches.
        """
        sources = self.list_sources()
        email = (email or '').lower()

        def recorded(source: NewsletterSource, key: str) -> List[str]:
            return [str(value).lower() for value in source.metadata.get(key) or []]

        for key, value in (('senderEmails', email), ('senderDomains', domain), ('subjectPatterns', subject_pattern)):
            if not value:
                continue
            for source in sources:
                if value.lower() in recorded(source, key):
                    return source
        return None

    def update_source_metadata(self, source_id: str, metadata: Dict[str, Any]) -> None:
        with self._connect() as conn:
            conn.execute("UPDATE sources SET metadata = ? WHERE id = ?", (json.dumps(metadata), source_id))

    def upsert_source(self, source: NewsletterSource, identity_key: str) -> NewsletterSource:
        """
        Insert a source unless one with the same identity exists; return the stored row.
        """
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO sources (id, identity_key, name, description, website, logo, category,
                                     subscription_type, is_active, metadata, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (identity_key) DO NOTHING
                """,
                (
                    source.id or _new_id(),
                    identity_key,
                    source.name,
                    source.description,
                    source.website,
                    source.logo,
                    source.category,
                    source.subscription_type,
                    int(source.is_active),
                    json.dumps(source.metadata),
                    _iso(utcnow()),
                ),
            )
            row = conn.execute("SELECT * FROM sources WHERE identity_key = ?", (identity_key,)).fetchone()
        return self._row_to_source(row)

    # Subscriptions

    def _row_to_subscription(self, row: sqlite3.Row) -> Subscription:
        return Subscription(
            id=row['id'],
            user_id=row['user_id'],
            source_id=row['source_id'],
            auto_approve=bool(row['auto_approve']),
            is_active=bool(row['is_active']),
            subscribed_at=_parse_time(row['subscribed_at']),
            last_content_at=_parse_time(row['last_content_at']),
        )

    def find_subscription(self, user_id: str, source_id: str) -> Optional[Subscription]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM subscriptions WHERE user_id = ? AND source_id = ?",
                (user_id, source_id),
            ).fetchone()
        return self._row_to_subscription(row) if row else None

    def touch_subscription(self, user_id: str, source_id: str) -> Subscription:
        """
        Find or create the user's subscription to a source and record new content.
        """
        now = _iso(utcnow())
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO subscriptions (id, user_id, source_id, auto_approve, is_active,
                                           subscribed_at, last_content_at)
                VALUES (?, ?, ?, 0, 1, ?, ?)
                ON CONFLICT (user_id, source_id) DO UPDATE SET last_content_at = excluded.last_content_at
                """,
                (_new_id(), user_id, source_id, now, now),
            )
        return self.find_subscription(user_id, source_id)

    def set_auto_approve(self, user_id: str, source_id: str, auto_approve: bool = True) -> Subscription:
        self.touch_subscription(user_id, source_id)
        with self._connect() as conn:
            conn.execute(
                "UPDATE subscriptions SET auto_approve = ? WHERE user_id = ? AND source_id = ?",
                (int(auto_approve), user_id, source_id),
            )
        return self.find_subscription(user_id, source_id)

    # Content

    def has_approved_content_from(self, user_id: str, from_email: str) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT 1 FROM contents
                WHERE user_id = ? AND original_from = ? COLLATE NOCASE AND approval_status IN (?, ?)
                LIMIT 1
                """,
                (user_id, from_email) + APPROVED_STATUSES,
            ).fetchone()
        return row is not None

    def save_content(self, record: ContentRecord) -> str:
        """
        Store a processed message.

        Returns:
            The new content id
        """
        content_id = record.id or _new_id()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO contents (
                    id, user_id, source_id, approval_status, approved_at, original_subject,
                    original_html, original_from, sender_domain, detected_newsletter_name,
                    detected_category, received_at, metadata, sections, processing_status,
                    processing_error, extraction_confidence, word_count, search_text, tags
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    content_id,
                    record.user_id,
                    record.source_id,
                    record.approval_status.value,
                    _iso(record.approved_at),
                    record.original_subject,
                    record.original_html,
                    record.original_from,
                    record.sender_domain,
                    record.detected_newsletter_name,
                    record.detected_category,
                    _iso(record.received_at),
                    json.dumps(record.metadata),
                    json.dumps(record.sections),
                    record.processing_status.value,
                    record.processing_error,
                    record.extraction_confidence,
                    record.word_count,
                    record.search_text,
                    json.dumps(record.tags),
                ),
            )
        record.id = content_id
        return content_id

    def get_content(self, content_id: str) -> Optional[ContentRecord]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM contents WHERE id = ?", (content_id,)).fetchone()
        if row is None:
            return None
        return ContentRecord(
            id=row['id'],
            user_id=row['user_id'],
            source_id=row['source_id'],
            approval_status=ApprovalStatus(row['approval_status']),
            approved_at=_parse_time(row['approved_at']),
            original_subject=row['original_subject'],
            original_html=row['original_html'],
            original_from=row['original_from'],
            sender_domain=row['sender_domain'],
            detected_newsletter_name=row['detected_newsletter_name'],
            detected_category=row['detected_category'],
            received_at=_parse_time(row['received_at']),
            metadata=json.loads(row['metadata']),
            sections=json.loads(row['sections']),
            processing_status=ProcessingStatus(row['processing_status']),
            processing_error=row['processing_error'],
            extraction_confidence=row['extraction_confidence'],
            word_count=row['word_count'],
            search_text=row['search_text'],
            tags=json.loads(row['tags']),
        )

    def count_contents(self, user_id: Optional[str] = None) -> int:
        with self._connect() as conn:
            if user_id is None:
                row = conn.execute("SELECT COUNT(*) FROM contents").fetchone()
            else:
                row = conn.execute("SELECT COUNT(*) FROM contents WHERE user_id = ?", (user_id,)).fetchone()
        return row[0]

    def set_approval_status(self, content_id: str, status: Union[ApprovalStatus, str]) -> bool:
        """
        Approve or reject stored content.

        Returns:
            True if the content exists
        """
        status = ApprovalStatus(status)
        approved_at = _iso(utcnow()) if status in (ApprovalStatus.APPROVED, ApprovalStatus.AUTO_APPROVED) else None
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE contents SET approval_status = ?, approved_at = COALESCE(?, approved_at) WHERE id = ?",
                (status.value, approved_at, content_id),
            )
            return cursor.rowcount > 0
