"""
Registrable resource (project record) and its provenance trail.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bluecarbon.kernel.models.base import Base, TimestampMixin, enum_column, generate_uuid, utcnow

if TYPE_CHECKING:
    from bluecarbon.kernel.models.principal import Principal


class ResourceStatus(str, Enum):
    """Resource lifecycle status."""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    VERIFIED = "verified"
    REJECTED = "rejected"
    TOKENIZED = "tokenized"


# Statuses visible on the public surface
PUBLIC_STATUSES = frozenset({ResourceStatus.VERIFIED, ResourceStatus.TOKENIZED})


class ContentKind(str, Enum):
    """Semantic kind of an attached content reference."""
    DOCUMENTATION = "documentation"
    MONITORING_EVIDENCE = "monitoring_evidence"
    VERIFICATION_REPORT = "verification_report"
    CREDIT_METADATA = "credit_metadata"
    RETIREMENT_CERTIFICATE = "retirement_certificate"


class Resource(Base, TimestampMixin):
    """
    A registrable project record.

    ``version`` increases on every write and is the compare-and-set token
    for transitions, edits and attachments.
    """

    __tablename__ = "resources"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("principals.id"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    attributes: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        default=dict,
        nullable=False,
    )
    status: Mapped[ResourceStatus] = mapped_column(
        enum_column(ResourceStatus),
        default=ResourceStatus.DRAFT,
        nullable=False,
        index=True,
    )
    version: Mapped[int] = mapped_column(
        Integer,
        default=1,
        nullable=False,
    )

    owner: Mapped["Principal"] = relationship(
        "Principal",
        foreign_keys=[owner_id],
        lazy="selectin",
    )
    content_references: Mapped[List["ContentReference"]] = relationship(
        "ContentReference",
        back_populates="resource",
        order_by="ContentReference.sequence",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Resource {self.title[:50]} status={self.status.value}>"


class ContentReference(Base):
    """
    Opaque pointer into the external content-addressed store.

    Rows are only ever inserted; ``sequence`` orders them per resource.
    """

    __tablename__ = "content_references"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    resource_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("resources.id"),
        nullable=False,
        index=True,
    )
    sequence: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    kind: Mapped[ContentKind] = mapped_column(
        enum_column(ContentKind),
        nullable=False,
    )
    content_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    attached_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        nullable=True,
    )
    attached_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    resource: Mapped["Resource"] = relationship(
        "Resource",
        back_populates="content_references",
    )

    __table_args__ = (
        UniqueConstraint("resource_id", "sequence", name="uq_content_references_sequence"),
        UniqueConstraint("resource_id", "kind", "content_id", name="uq_content_references_content"),
    )

    def __repr__(self) -> str:
        return f"<ContentReference {self.kind.value}:{self.content_id}>"
