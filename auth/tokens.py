"""
auth/tokens.py -- Credential hashing and session-token issuance.

Security design decisions:
  Credentials: bcrypt-pbkdf (bcrypt.kdf) keyed by CREDENTIAL_HASH_KEY. Unlike
       bcrypt.hashpw, kdf with a fixed salt is deterministic: the same
       plaintext always yields the same hash. That is what lets the store
       match a sign-in by comparing hashes in a WHERE clause, and it is why the
       login is hashed too -- the users table never holds a plaintext login.
       The round count keeps brute force of a leaked table expensive.

  Tokens: python-jose JWT with HS256, signed with SECRET_KEY. Claims are the
       subject (decimal user id), the ordered role list, iat and exp. A token
       is a point-in-time snapshot of the role set; later role changes are
       not reflected until the user signs in again.

  Verification of tokens on later requests is not done here.

Layer rule: may import core/ (settings) and auth.models only.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import bcrypt
from jose import jwt

from auth.models import Role

if TYPE_CHECKING:
    from auth.ports import Signer
    from core.config import Settings

logger = logging.getLogger("useraccess.auth")

_ALGORITHM = "HS256"
_HASH_BYTES = 32

# ---------------------------------------------------------------------------
# Credential hashing
# ---------------------------------------------------------------------------


class CredentialHasher:
    """Deterministic one-way transform for logins and passwords.

    hash() is pure: no I/O, no randomness. There is no inverse.
    """

    def __init__(self, key: str, rounds: int = 64) -> None:
        if not key:
            raise ValueError("CredentialHasher requires a non-empty key.")
        if rounds < 1:
            raise ValueError("rounds must be at least 1.")
        self._salt = key.encode("utf-8")
        self._rounds = rounds

    @classmethod
    def from_settings(cls, settings: Settings) -> CredentialHasher:
        return cls(settings.credential_hash_key, rounds=settings.credential_hash_rounds)

    def hash(self, plaintext: str) -> str:
        """Return the 64-char hex hash of plaintext.

        Raises ValueError for an empty string. Validators reject empty
        credentials before anything reaches this point.
        """
        if not plaintext:
            raise ValueError("Cannot hash an empty credential.")
        # ignore_few_rounds: the round count is an operator decision (Settings),
        # and tests run with rounds=1.
        digest = bcrypt.kdf(
            password=plaintext.encode("utf-8"),
            salt=self._salt,
            desired_key_bytes=_HASH_BYTES,
            rounds=self._rounds,
            ignore_few_rounds=True,
        )
        return digest.hex()


# ---------------------------------------------------------------------------
# JWT signing
# ---------------------------------------------------------------------------


class JwtSigner:
    """Signs claim sets with a key held for the process lifetime."""

    def __init__(self, secret_key: str, algorithm: str = _ALGORITHM) -> None:
        self._secret_key = secret_key
        self._algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: Settings) -> JwtSigner:
        return cls(settings.secret_key)

    def sign(self, claims: dict[str, Any]) -> str:
        return jwt.encode(claims, self._secret_key, algorithm=self._algorithm)


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenIssuer:
    """Builds signed session tokens from a verified identity.

    clock is injectable so the output is reproducible: the same signer key,
    clock reading, user id and roles always produce the same token.
    """

    def __init__(
        self,
        signer: Signer,
        expire_seconds: int = 3600,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        if expire_seconds < 1:
            raise ValueError("expire_seconds must be at least 1.")
        self._signer = signer
        self._expire_seconds = expire_seconds
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, clock: Callable[[], datetime] = _utc_now) -> TokenIssuer:
        return cls(JwtSigner.from_settings(settings), expire_seconds=settings.token_expire_seconds, clock=clock)

    def issue(self, user_id: int, roles: Sequence[Role]) -> str:
        """Return a signed token for user_id carrying roles in the given order."""
        issued_at = int(self._clock().timestamp())
        claims = {
            "sub": str(user_id),
            "roles": [Role(role).value for role in roles],
            "iat": issued_at,
            "exp": issued_at + self._expire_seconds,
        }
        logger.debug("Issuing session token for user %s", user_id)
        return self._signer.sign(claims)
