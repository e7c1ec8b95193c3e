"""
Identity service: registration, authentication, session introspection
and refresh.
"""

from typing import Any, Dict, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from bluecarbon.kernel.errors import Forbidden, InvalidCredentials, NotFound, Unauthorized
from bluecarbon.kernel.events.event_store import EventStore
from bluecarbon.kernel.identity.credential_store import CredentialStore
from bluecarbon.kernel.identity.password import dummy_secret_hash, hash_secret, verify_secret
from bluecarbon.kernel.identity.tokens import (
    Credential,
    ExpiredToken,
    InvalidToken,
    TokenService,
    get_token_service,
)
from bluecarbon.kernel.models.event_log import EventType
from bluecarbon.kernel.models.principal import Principal, Role
from bluecarbon.logging_config import get_logger

logger = get_logger(__name__)


class IdentityService:
    """
    Service for principal identity operations.

    Handles registration, authentication, and credential lifecycle.
    """

    def __init__(self, session: AsyncSession, token_service: Optional[TokenService] = None):
        self.session = session
        self.store = CredentialStore(session)
        self.tokens = token_service or get_token_service()
        self.event_store = EventStore(session)

    async def register(
        self,
        identity: str,
        secret: str,
        display_name: str,
        role: Role,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Principal, Credential]:
        """
        Register a new principal and issue its first credential.

        Raises:
            Conflict: identity already registered
        """
        principal = await self.store.create(
            identity=identity,
            secret_hash=hash_secret(secret),
            role=role,
            display_name=display_name,
            attributes=attributes,
        )

        await self.event_store.log(
            event_type=EventType.PRINCIPAL_REGISTERED,
            entity_type="principal",
            entity_id=principal.id,
            principal_id=principal.id,
            payload={"identity": principal.identity, "role": principal.role},
        )
        logger.info(
            "Principal registered",
            extra={"principal_id": str(principal.id), "role": principal.role.value},
        )

        return principal, self.tokens.issue(principal.id)

    async def authenticate(self, identity: str, secret: str) -> Tuple[Principal, Credential]:
        """
        Exchange identity + secret for a credential.

        Raises:
            InvalidCredentials: unknown identity, wrong secret or disabled
                principal, indistinguishably
        """
        try:
            principal = await self.store.resolve(identity)
        except NotFound:
            # Burn the same bcrypt cost as a real check
            verify_secret(secret, dummy_secret_hash())
            raise InvalidCredentials()

        if not self.store.verify_secret(principal, secret) or not principal.is_active:
            raise InvalidCredentials()

        if await self.store.rehash_secret(principal, secret):
            logger.info("Secret re-hashed", extra={"principal_id": str(principal.id)})

        await self.event_store.log(
            event_type=EventType.PRINCIPAL_AUTHENTICATED,
            entity_type="principal",
            entity_id=principal.id,
            principal_id=principal.id,
            payload={"method": "secret"},
        )
        return principal, self.tokens.issue(principal.id)

    async def introspect(self, token: str) -> Principal:
        """
        Resolve a bearer credential to its principal.

        Raises:
            Unauthorized: invalid or expired credential, or unknown principal
            Forbidden: the principal is disabled
        """
        try:
            principal_id = self.tokens.verify(token)
        except ExpiredToken:
            raise Unauthorized("Credential expired")
        except InvalidToken:
            raise Unauthorized("Invalid credential")

        try:
            principal = await self.store.resolve_by_id(principal_id)
        except NotFound:
            raise Unauthorized("Principal not found")

        if not principal.is_active:
            raise Forbidden("Principal account is disabled")
        return principal

    async def refresh(self, token: str) -> Tuple[Principal, Credential]:
        """
        Rotate a possibly expired credential.

        Raises:
            Unauthorized: signature invalid, or principal gone or disabled
        """
        try:
            credential = self.tokens.refresh(token)
        except InvalidToken:
            raise Unauthorized("Invalid credential")

        try:
            principal = await self.store.resolve_by_id(credential.principal_id)
        except NotFound:
            raise Unauthorized("Principal not found")
        if not principal.is_active:
            raise Unauthorized("Principal account is disabled")

        return principal, credential

    async def update_profile(self, principal: Principal, changes: Dict[str, Any]) -> Principal:
        """Update the mutable profile attributes of ``principal``."""
        applied = await self.store.update_profile(principal, changes)
        if applied:
            await self.event_store.log(
                event_type=EventType.PRINCIPAL_UPDATED,
                entity_type="principal",
                entity_id=principal.id,
                principal_id=principal.id,
                payload=applied,
            )
        return principal
