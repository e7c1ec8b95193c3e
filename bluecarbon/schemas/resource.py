"""
Resource schemas.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, computed_field, field_validator

from bluecarbon.kernel.models.event_log import EventType
from bluecarbon.kernel.models.resource import ContentKind, ResourceStatus
from bluecarbon.kernel.permissions.matrix import LifecycleEvent
from bluecarbon.provenance.content_store import gateway_url


def _not_blank(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("Must not be blank")
    return v


class ResourceCreate(BaseModel):
    """Resource registration request."""

    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    # e.g. location, ecosystem_type, area_hectares, estimated_sequestration
    attributes: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _not_blank(v)


class ResourceUpdate(BaseModel):
    """Draft edit request."""

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    attributes: Optional[Dict[str, Any]] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        return _not_blank(v)


class TransitionRequest(BaseModel):
    """Lifecycle event request."""

    event: LifecycleEvent
    comment: Optional[str] = Field(None, max_length=2000)


class AttachRequest(BaseModel):
    """Attach an existing content identifier."""

    kind: ContentKind
    content_id: str = Field(..., min_length=1, max_length=255)

    @field_validator("content_id")
    @classmethod
    def validate_content_id(cls, v: str) -> str:
        return _not_blank(v)


class PublishRequest(BaseModel):
    """Upload a structured payload and attach the resulting identifier."""

    kind: ContentKind
    payload: Dict[str, Any]


class PublicContentReferenceResponse(BaseModel):
    """Attached content reference as shown in the public registry."""

    sequence: int
    kind: ContentKind
    content_id: str
    attached_at: datetime

    @computed_field
    @property
    def gateway_url(self) -> str:
        return gateway_url(self.content_id)

    class Config:
        from_attributes = True


class ContentReferenceResponse(PublicContentReferenceResponse):
    """Attached content reference, including who attached it."""

    attached_by: Optional[uuid.UUID] = None


class ResourceResponse(BaseModel):
    """Full resource view for owners, reviewers and administrators."""

    id: uuid.UUID
    owner_id: uuid.UUID
    title: str
    description: Optional[str]
    attributes: Dict[str, Any]
    status: ResourceStatus
    version: int
    content_references: List[ContentReferenceResponse] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PublicOwner(BaseModel):
    """Owner details safe to publish. No identity or contact."""

    display_name: str
    organization: Optional[str] = None
    country: Optional[str] = None

    class Config:
        from_attributes = True


class PublicResourceResponse(BaseModel):
    """Restricted projection for consumers and anonymous readers."""

    id: uuid.UUID
    title: str
    description: Optional[str]
    attributes: Dict[str, Any]
    status: ResourceStatus
    owner: PublicOwner
    content_references: List[PublicContentReferenceResponse] = []
    created_at: datetime

    class Config:
        from_attributes = True


class EventResponse(BaseModel):
    """Audit event."""

    id: uuid.UUID
    event_type: EventType
    principal_id: Optional[uuid.UUID]
    payload: Dict[str, Any]
    created_at: datetime

    class Config:
        from_attributes = True
