"""
Pydantic schemas for API request/response validation.
"""

from bluecarbon.schemas.auth import (
    PrincipalCreate,
    PrincipalLogin,
    PrincipalResponse,
    ProfileUpdate,
    CredentialResponse,
)
from bluecarbon.schemas.resource import (
    ResourceCreate,
    ResourceUpdate,
    TransitionRequest,
    AttachRequest,
    PublishRequest,
    ContentReferenceResponse,
    PublicContentReferenceResponse,
    ResourceResponse,
    PublicOwner,
    PublicResourceResponse,
    EventResponse,
)
from bluecarbon.schemas.common import (
    ErrorResponse,
    PaginatedResponse,
    HealthResponse,
)

__all__ = [
    # Auth
    "PrincipalCreate",
    "PrincipalLogin",
    "PrincipalResponse",
    "ProfileUpdate",
    "CredentialResponse",
    # Resource
    "ResourceCreate",
    "ResourceUpdate",
    "TransitionRequest",
    "AttachRequest",
    "PublishRequest",
    "ContentReferenceResponse",
    "PublicContentReferenceResponse",
    "ResourceResponse",
    "PublicOwner",
    "PublicResourceResponse",
    "EventResponse",
    # Common
    "ErrorResponse",
    "PaginatedResponse",
    "HealthResponse",
]
