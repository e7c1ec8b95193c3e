"""
Secret hashing utilities using bcrypt.
"""

from functools import lru_cache

import bcrypt

# Number of rounds for bcrypt hashing (12 is secure default)
BCRYPT_ROUNDS = 12


class SecretHasher:
    """Secret hashing service."""

    @staticmethod
    def _truncate_secret(secret: str) -> bytes:
        """
        Truncate secret to 72 bytes (bcrypt limit) and encode.

        bcrypt only uses the first 72 bytes of its input.
        """
        return secret.encode("utf-8")[:72]

    @staticmethod
    def hash(secret: str) -> str:
        """
        Hash a secret using bcrypt.

        Args:
            secret: Plain text secret

        Returns:
            Hashed secret string
        """
        salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
        hashed = bcrypt.hashpw(SecretHasher._truncate_secret(secret), salt)
        return hashed.decode("utf-8")

    @staticmethod
    def verify(candidate: str, secret_hash: str) -> bool:
        """
        Verify a candidate secret against its hash.

        ``bcrypt.checkpw`` compares digests in constant time.
        """
        try:
            return bcrypt.checkpw(
                SecretHasher._truncate_secret(candidate),
                secret_hash.encode("utf-8"),
            )
        except ValueError:
            # Malformed stored hash
            return False

    @staticmethod
    def needs_rehash(secret_hash: str) -> bool:
        """Check whether a hash was produced with a different cost factor."""
        # Format: $2b$XX$... where XX is the rounds
        parts = secret_hash.split("$")
        if len(parts) < 3 or not parts[2].isdigit():
            return True
        return int(parts[2]) != BCRYPT_ROUNDS


@lru_cache
def dummy_secret_hash() -> str:
    """
    Hash checked when the identity is unknown, so that a login attempt
    costs the same whether or not the identity exists.
    """
    return SecretHasher.hash("unknown-identity-placeholder")


# Convenience functions
def hash_secret(secret: str) -> str:
    """Hash a secret."""
    return SecretHasher.hash(secret)


def verify_secret(candidate: str, secret_hash: str) -> bool:
    """Verify a secret."""
    return SecretHasher.verify(candidate, secret_hash)
