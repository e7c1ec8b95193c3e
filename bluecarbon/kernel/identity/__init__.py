"""
Identity Core - principals, secrets and bearer credentials.
"""

from bluecarbon.kernel.identity.password import SecretHasher, hash_secret, verify_secret
from bluecarbon.kernel.identity.tokens import (
    Credential,
    CredentialError,
    ExpiredToken,
    InvalidToken,
    TokenService,
    get_token_service,
)
from bluecarbon.kernel.identity.credential_store import CredentialStore, normalize_identity
from bluecarbon.kernel.identity.identity_service import IdentityService

__all__ = [
    "SecretHasher",
    "hash_secret",
    "verify_secret",
    "Credential",
    "CredentialError",
    "ExpiredToken",
    "InvalidToken",
    "TokenService",
    "get_token_service",
    "CredentialStore",
    "normalize_identity",
    "IdentityService",
]
