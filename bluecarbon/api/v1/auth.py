"""
Authentication endpoints.
"""

from fastapi import APIRouter, status

from bluecarbon.api.deps import BearerToken, CurrentPrincipal, DbSession
from bluecarbon.kernel.identity.identity_service import IdentityService
from bluecarbon.kernel.identity.tokens import Credential
from bluecarbon.kernel.models.principal import Principal
from bluecarbon.schemas.auth import (
    CredentialResponse,
    PrincipalCreate,
    PrincipalLogin,
    PrincipalResponse,
    ProfileUpdate,
)

router = APIRouter()


def _credential_response(principal: Principal, credential: Credential) -> CredentialResponse:
    return CredentialResponse(
        access_token=credential.token,
        token_type=credential.token_type,
        expires_at=credential.expires_at,
        expires_in=credential.expires_in,
        principal=PrincipalResponse.model_validate(principal),
    )


@router.post("/register", response_model=CredentialResponse, status_code=status.HTTP_201_CREATED)
async def register(data: PrincipalCreate, db: DbSession):
    """
    Register a new principal.

    Returns the principal and its first credential. The role is fixed for
    the lifetime of the principal.
    """
    principal, credential = await IdentityService(db).register(
        identity=data.email,
        secret=data.password,
        display_name=data.display_name,
        role=data.role,
        attributes=data.model_dump(include={"organization", "country", "contact"}),
    )
    return _credential_response(principal, credential)


@router.post("/login", response_model=CredentialResponse)
async def login(data: PrincipalLogin, db: DbSession):
    """Exchange email and password for a credential."""
    principal, credential = await IdentityService(db).authenticate(data.email, data.password)
    return _credential_response(principal, credential)


@router.post("/refresh", response_model=CredentialResponse)
async def refresh(token: BearerToken, db: DbSession):
    """
    Exchange a credential for a fresh one.

    The presented credential may already be expired; only its signature
    must hold.
    """
    principal, credential = await IdentityService(db).refresh(token)
    return _credential_response(principal, credential)


@router.get("/me", response_model=PrincipalResponse)
async def get_me(principal: CurrentPrincipal):
    """Get the authenticated principal's profile."""
    return PrincipalResponse.model_validate(principal)


@router.patch("/me", response_model=PrincipalResponse)
async def update_me(data: ProfileUpdate, principal: CurrentPrincipal, db: DbSession):
    """Update profile attributes. Identity and role cannot change."""
    changes = data.model_dump(exclude_unset=True)
    if changes.get("display_name") is None:
        changes.pop("display_name", None)
    updated = await IdentityService(db).update_profile(principal, changes)
    return PrincipalResponse.model_validate(updated)
