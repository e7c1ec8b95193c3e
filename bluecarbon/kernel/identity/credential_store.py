"""
Durable store of principal records.
"""

import uuid
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bluecarbon.kernel.errors import Conflict, NotFound
from bluecarbon.kernel.identity.password import SecretHasher, hash_secret, verify_secret
from bluecarbon.kernel.models.principal import Principal, Role

# Attributes a principal may change after registration
PROFILE_FIELDS = ("display_name", "organization", "country", "contact")


def normalize_identity(identity: str) -> str:
    """Identities are email addresses compared case-insensitively."""
    return identity.strip().lower()


class CredentialStore:
    """Resolve, create and check principals against the relational store."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def resolve(self, identity: str) -> Principal:
        """
        Look up a principal by identity.

        Raises:
            NotFound: no principal has this identity
        """
        query = select(Principal).where(Principal.identity == normalize_identity(identity))
        result = await self.session.execute(query)
        principal = result.scalar_one_or_none()
        if principal is None:
            raise NotFound("Principal not found")
        return principal

    async def resolve_by_id(self, principal_id: uuid.UUID) -> Principal:
        principal = await self.session.get(Principal, principal_id)
        if principal is None:
            raise NotFound("Principal not found")
        return principal

    async def create(
        self,
        identity: str,
        secret_hash: str,
        role: Role,
        display_name: str,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> Principal:
        """
        Create a principal.

        Raises:
            Conflict: the identity is already registered
        """
        identity = normalize_identity(identity)
        existing = await self.session.execute(
            select(Principal.id).where(Principal.identity == identity)
        )
        if existing.scalar_one_or_none() is not None:
            raise Conflict("Identity already registered")

        attributes = attributes or {}
        principal = Principal(
            identity=identity,
            secret_hash=secret_hash,
            role=role,
            display_name=display_name.strip(),
            organization=attributes.get("organization"),
            country=attributes.get("country"),
            contact=attributes.get("contact"),
        )
        self.session.add(principal)
        try:
            await self.session.flush()
        except IntegrityError as e:
            # Lost a race against a concurrent registration of the same identity
            raise Conflict("Identity already registered") from e
        return principal

    @staticmethod
    def verify_secret(principal: Principal, candidate: str) -> bool:
        """Constant-time check of a candidate secret."""
        return verify_secret(candidate, principal.secret_hash)

    async def rehash_secret(self, principal: Principal, secret: str) -> bool:
        """Re-hash a verified secret stored with an outdated cost factor."""
        if not SecretHasher.needs_rehash(principal.secret_hash):
            return False
        principal.secret_hash = hash_secret(secret)
        await self.session.flush()
        return True

    async def update_profile(self, principal: Principal, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Apply profile attribute changes and return the ones that took effect."""
        applied = {}
        for field in PROFILE_FIELDS:
            if field not in changes:
                continue
            value = changes[field]
            if isinstance(value, str):
                value = value.strip()
            if getattr(principal, field) != value:
                setattr(principal, field, value)
                applied[field] = value
        if applied:
            await self.session.flush()
        return applied
