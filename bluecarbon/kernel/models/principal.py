"""
Principal model for identity management.
"""

import uuid
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from bluecarbon.kernel.models.base import Base, TimestampMixin, enum_column, generate_uuid


class Role(str, Enum):
    """Fixed role set of the registry."""
    SUBMITTER = "submitter"
    REVIEWER = "reviewer"
    ADMINISTRATOR = "administrator"
    CONSUMER = "consumer"


class Principal(Base, TimestampMixin):
    """
    A registered actor.

    Identity and role are fixed at registration; only the profile
    attributes (display name, organization, country, contact) change.
    Principals are disabled via ``is_active``, never deleted.
    """

    __tablename__ = "principals"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    identity: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    secret_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    display_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    role: Mapped[Role] = mapped_column(
        enum_column(Role),
        nullable=False,
    )

    # Profile attributes
    organization: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    contact: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Principal {self.identity} role={self.role.value}>"
