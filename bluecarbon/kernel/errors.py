"""
Registry error taxonomy.

Every user-visible failure of the kernel is one of these. Each carries the
HTTP status and a stable machine code; the exception handlers in
``bluecarbon.main`` translate them into JSON responses.
"""

from typing import Dict, Optional


class RegistryError(Exception):
    """Base class for all registry errors."""

    status_code: int = 400
    code: str = "registry_error"
    default_detail: str = "Request could not be processed"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    @property
    def headers(self) -> Dict[str, str]:
        return {}


class InvalidCredentials(RegistryError):
    """Unknown identity or wrong secret. Deliberately indistinguishable."""

    status_code = 401
    code = "invalid_credentials"
    default_detail = "Invalid email or password"


class Unauthorized(RegistryError):
    """Missing, invalid or expired credential on a protected call."""

    status_code = 401
    code = "unauthorized"
    default_detail = "Not authenticated"

    @property
    def headers(self) -> Dict[str, str]:
        return {"WWW-Authenticate": "Bearer"}


class Forbidden(RegistryError):
    status_code = 403
    code = "forbidden"
    default_detail = "Access denied"


class NotFound(RegistryError):
    status_code = 404
    code = "not_found"
    default_detail = "Not found"


class InvalidTransition(RegistryError):
    """Lifecycle event not allowed for this state or role."""

    status_code = 409
    code = "invalid_transition"
    default_detail = "Transition not allowed"


class ResourceLocked(RegistryError):
    """Edit attempted after the resource left draft."""

    status_code = 423
    code = "resource_locked"
    default_detail = "Resource can only be edited while in draft"


class InvalidAttachmentPoint(RegistryError):
    """Content kind attached outside its lifecycle window."""

    status_code = 409
    code = "invalid_attachment_point"
    default_detail = "Content of this kind cannot be attached in the current state"


class Conflict(RegistryError):
    """Duplicate identity, or the losing side of a concurrent update."""

    status_code = 409
    code = "conflict"
    default_detail = "Conflict"


class ContentStoreUnavailable(RegistryError):
    """The external content store failed after bounded retries; nothing was attached."""

    status_code = 502
    code = "content_store_unavailable"
    default_detail = "Content store unavailable, nothing was attached"


class InvalidInput(RegistryError):
    """A value the kernel refuses to record, e.g. a blank title or content id."""

    status_code = 422
    code = "invalid_input"
    default_detail = "Invalid input"


class PayloadTooLarge(RegistryError):
    """Upload exceeds the accepted size."""

    status_code = 413
    code = "payload_too_large"
    default_detail = "Upload too large"
