"""
Bearer credential issuance and verification (JWT, HS256).

Credentials are stateless: nothing is stored, a credential is checked by
recomputing its signature. Normal verification rejects expired credentials;
refresh accepts them as long as the signature holds, which lets a session
outlive a short-lived credential without re-entering the secret.
"""

import uuid
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel

from bluecarbon.config import get_settings

TOKEN_TYPE = "access"


class CredentialError(Exception):
    """Base class for credential verification failures."""


class InvalidToken(CredentialError):
    """Signature mismatch or malformed structure."""


class ExpiredToken(CredentialError):
    """Signature is valid but the expiry has passed."""

    def __init__(self, principal_id: uuid.UUID):
        self.principal_id = principal_id
        super().__init__(f"Credential for {principal_id} has expired")


class Credential(BaseModel):
    """An issued bearer credential."""

    token: str
    principal_id: uuid.UUID
    expires_at: datetime
    token_type: str = "bearer"

    @property
    def expires_in(self) -> int:
        """Seconds until expiry (negative once expired)."""
        return int((self.expires_at - datetime.now(timezone.utc)).total_seconds())


class TokenService:
    """
    Issues, verifies and refreshes credentials.

    Holds no state besides its signing key and defaults.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        default_ttl: Optional[timedelta] = None,
    ):
        settings = get_settings()
        self.secret_key = secret_key or settings.secret_key
        self.algorithm = algorithm or settings.algorithm
        self.default_ttl = default_ttl or timedelta(minutes=settings.access_token_expire_minutes)

    def issue(self, principal_id: uuid.UUID, ttl: Optional[timedelta] = None) -> Credential:
        """
        Issue a credential for ``principal_id`` expiring at ``now + ttl``.

        A negative ``ttl`` yields an already-expired credential.
        """
        now = datetime.now(timezone.utc).replace(microsecond=0)
        expires_at = now + (ttl if ttl is not None else self.default_ttl)

        claims = {
            "sub": str(principal_id),
            "exp": expires_at,
            "iat": now,
            "jti": str(uuid.uuid4()),
            "type": TOKEN_TYPE,
        }
        token = jwt.encode(claims, self.secret_key, algorithm=self.algorithm)
        return Credential(token=token, principal_id=principal_id, expires_at=expires_at)

    def verify(self, token: str) -> uuid.UUID:
        """
        Return the principal id a credential was issued for.

        Raises:
            InvalidToken: signature mismatch or malformed structure
            ExpiredToken: valid signature, expiry passed
        """
        try:
            claims = self._decode(token, verify_exp=True)
        except ExpiredSignatureError:
            # Signature was checked before the expiry claim
            claims = self._decode(token, verify_exp=False)
            raise ExpiredToken(self._principal_id(claims))
        return self._principal_id(claims)

    def refresh(self, token: str, ttl: Optional[timedelta] = None) -> Credential:
        """
        Issue a fresh credential for the principal of ``token``.

        Expiry is ignored; the signature and structure are not.

        Raises:
            InvalidToken: signature mismatch or malformed structure
        """
        claims = self._decode(token, verify_exp=False)
        return self.issue(self._principal_id(claims), ttl)

    def _decode(self, token: str, verify_exp: bool) -> Dict[str, Any]:
        # jose turns any require_<claim> back into verify_<claim>
        options = {"verify_exp": verify_exp, "require_sub": True}
        if verify_exp:
            options["require_exp"] = True
        try:
            claims = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options=options,
            )
        except ExpiredSignatureError:
            raise
        except JWTError as e:
            raise InvalidToken(str(e)) from e

        if "exp" not in claims:
            raise InvalidToken("Missing expiry claim")
        if claims.get("type") != TOKEN_TYPE:
            raise InvalidToken("Unexpected token type")
        return claims

    @staticmethod
    def _principal_id(claims: Dict[str, Any]) -> uuid.UUID:
        try:
            return uuid.UUID(str(claims["sub"]))
        except (KeyError, ValueError) as e:
            raise InvalidToken("Malformed subject claim") from e


@lru_cache
def get_token_service() -> TokenService:
    """Get the process-wide token service built from settings."""
    return TokenService()
