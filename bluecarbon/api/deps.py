"""
FastAPI dependencies for authentication, database sessions and the
content store.
"""

from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from bluecarbon.database import async_session_maker
from bluecarbon.kernel.errors import Unauthorized
from bluecarbon.kernel.identity.identity_service import IdentityService
from bluecarbon.kernel.models.principal import Principal
from bluecarbon.kernel.permissions.access_control import Caller
from bluecarbon.logging_config import principal_id_var
from bluecarbon.provenance.content_store import ContentStore


# Security scheme
security = HTTPBearer(auto_error=False)


async def get_db() -> AsyncSession:
    """Dependency that yields database sessions."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_bearer_token(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> str:
    """Raw bearer credential, or 401 if none was sent."""
    if not credentials:
        raise Unauthorized()
    return credentials.credentials


BearerToken = Annotated[str, Depends(get_bearer_token)]


async def get_current_principal(token: BearerToken, db: DbSession) -> Principal:
    """Resolve the bearer credential to an active principal."""
    principal = await IdentityService(db).introspect(token)
    principal_id_var.set(str(principal.id))
    return principal


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


async def get_caller(principal: CurrentPrincipal) -> Caller:
    return Caller.from_principal(principal)


CurrentCaller = Annotated[Caller, Depends(get_caller)]


@lru_cache
def get_content_store() -> ContentStore:
    """Process-wide content store client built from settings."""
    return ContentStore()


ContentStoreDep = Annotated[ContentStore, Depends(get_content_store)]


def get_request_id(request: Request) -> Optional[str]:
    """Get request correlation ID (set by RequestIdMiddleware)."""
    return getattr(request.state, "request_id", None)
