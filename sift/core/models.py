"""
Data models for Sift.

Everything the extraction pipeline and the inbound router exchange lives here.
``to_dict()`` methods produce the camelCase JSON shape stored by the
persistence layer and served to the feed.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SectionType(str, Enum):
    HEADING = "heading"
    TEXT_BLOCK = "text_block"
    ARTICLE_BLOCK = "article_block"
    IMAGE = "image"
    IMAGE_WITH_CAPTION = "image_with_caption"
    ARTICLE_WITH_IMAGES = "article_with_images"
    DATA_TABLE = "data_table"
    DATA_HIGHLIGHT = "data_highlight"
    LINK_COLLECTION = "link_collection"
    LIST_CONTENT = "list_content"


class LinkType(str, Enum):
    VIDEO = "video"
    SOCIAL = "social"
    ARTICLE = "article"
    DOWNLOAD = "download"
    EXTERNAL = "external"


class ImageType(str, Enum):
    CHART = "chart"
    LOGO = "logo"
    PRODUCT = "product"
    CONTENT = "content"


class ApprovalStatus(str, Enum):
    APPROVED = "approved"
    AUTO_APPROVED = "auto_approved"
    PENDING = "pending"
    BLOCKED = "blocked"


class ProcessingStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class BlockType(str, Enum):
    EMAIL = "email"
    DOMAIN = "domain"
    KEYWORD = "keyword"


@dataclass
class Link:
    """
    A hyperlink found inside a section. ``href`` is always absolute.
    """
    text: str
    href: str
    type: LinkType = LinkType.EXTERNAL
    target: str = "_blank"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "href": self.href,
            "target": self.target,
            "type": self.type.value,
        }


@dataclass
class Image:
    """
    An image found inside a section. ``src`` is always absolute.
    """
    src: str
    alt: str = ""
    type: ImageType = ImageType.CONTENT
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def caption(self) -> str:
        return self.alt

    def to_dict(self) -> Dict[str, Any]:
        return {
            "src": self.src,
            "alt": self.alt,
            "caption": self.caption,
            "width": self.width,
            "height": self.height,
            "type": self.type.value,
        }


@dataclass
class Section:
    """
    One structurally classified unit of a newsletter body.

    ``order`` is 1-based and gapless in emission order; ``id`` is derived from it.
    """
    id: str
    order: int
    type: SectionType
    title: str = ""
    content: str = ""
    links: List[Link] = field(default_factory=list)
    images: List[Image] = field(default_factory=list)

    @property
    def word_count(self) -> int:
        return len(self.content.split())

    def renumber(self, order: int) -> None:
        self.order = order
        self.id = f"section-{order}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "order": self.order,
            "type": self.type.value,
            "title": self.title,
            "content": self.content,
            "links": [link.to_dict() for link in self.links],
            "images": [image.to_dict() for image in self.images],
        }


@dataclass
class HeadingSection(Section):
    """A heading; ``level`` is the numeral of the ``h1``..``h6`` tag."""
    type: SectionType = SectionType.HEADING
    level: int = 1

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["level"] = self.level
        return data


@dataclass
class TableSection(Section):
    """A table; ``table_data`` holds the cell text row by row."""
    type: SectionType = SectionType.DATA_TABLE
    table_data: List[List[str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["tableData"] = [list(row) for row in self.table_data]
        return data


@dataclass
class BrandColors:
    primary: str
    accent: str

    def to_dict(self) -> Dict[str, str]:
        return {"primary": self.primary, "accent": self.accent}


@dataclass
class ContentMetadata:
    """
    Document-level metadata derived during extraction.
    """
    title: str
    brand_colors: BrandColors
    source: str
    read_time: str = "1 min"
    source_logo: Optional[str] = None
    source_website: Optional[str] = None
    publish_date: datetime = field(default_factory=utcnow)
    extracted_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "publishDate": self.publish_date.isoformat(),
            "readTime": self.read_time,
            "brandColors": self.brand_colors.to_dict(),
            "source": self.source,
            "sourceLogo": self.source_logo,
            "sourceWebsite": self.source_website,
            "extractedAt": self.extracted_at.isoformat(),
        }


@dataclass
class ExtractionResult:
    """
    Structured content extracted from one newsletter body.
    """
    metadata: ContentMetadata
    sections: List[Section]
    search_text: str
    word_count: int
    tags: List[str]
    extraction_confidence: float
    success: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "metadata": self.metadata.to_dict(),
            "sections": [section.to_dict() for section in self.sections],
            "searchText": self.search_text,
            "wordCount": self.word_count,
            "tags": list(self.tags),
            "extractionConfidence": self.extraction_confidence,
        }


@dataclass
class ExtractionFailure:
    """
    Returned by the extractor when the pipeline raised; ``fallback`` still
    carries a usable single-section result.
    """
    error: str
    fallback: ExtractionResult
    success: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "error": self.error,
            "fallback": self.fallback.to_dict(),
        }


@dataclass
class RawMessage:
    """
    An inbound email as handed over by the mail transport.
    """
    to: str
    from_email: str
    subject: str = ""
    html: Optional[str] = None
    text: Optional[str] = None
    received_at: datetime = field(default_factory=utcnow)
    message_id: Optional[str] = None


@dataclass
class NewsletterSource:
    """
    A publisher identity, independent of any single message.
    """
    name: str
    id: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    logo: Optional[str] = None
    category: str = "other"
    subscription_type: str = "individual"
    is_active: bool = True
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "website": self.website,
            "logo": self.logo,
            "category": self.category,
            "subscriptionType": self.subscription_type,
            "isActive": self.is_active,
            "metadata": dict(self.metadata),
        }


@dataclass
class User:
    id: str
    email: str
    inbox_email: str


@dataclass
class BlockRule:
    user_id: str
    block_type: BlockType
    block_value: str
    reason: Optional[str] = None
    is_active: bool = True
    id: Optional[str] = None


@dataclass
class Subscription:
    user_id: str
    source_id: str
    auto_approve: bool = False
    is_active: bool = True
    subscribed_at: datetime = field(default_factory=utcnow)
    last_content_at: datetime = field(default_factory=utcnow)
    id: Optional[str] = None


@dataclass
class ContentRecord:
    """
    What the router hands to the store for one processed message.
    """
    user_id: str
    approval_status: ApprovalStatus
    original_subject: str
    original_from: str
    sender_domain: Optional[str]
    detected_newsletter_name: str
    detected_category: str
    received_at: datetime
    metadata: Dict[str, Any]
    sections: List[Dict[str, Any]]
    processing_status: ProcessingStatus
    extraction_confidence: float
    word_count: int
    search_text: str
    tags: List[str]
    source_id: Optional[str] = None
    original_html: Optional[str] = None
    processing_error: Optional[str] = None
    approved_at: Optional[datetime] = None
    id: Optional[str] = None


@dataclass
class RoutingResult:
    """
    Outcome of routing one inbound message.
    """
    success: bool
    message: str = ""
    content_id: Optional[str] = None
    approval_status: Optional[ApprovalStatus] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "success": self.success,
            "contentId": self.content_id,
            "approvalStatus": self.approval_status.value if self.approval_status else None,
            "message": self.message,
        }
        if self.error:
            data["error"] = self.error
        return data
