"""
auth/ports.py -- Collaborator contracts consumed by the auth workflows.

Pure interfaces (typing.Protocol, structural subtyping). The workflows receive
implementations through their constructors and never look them up globally:

    UserRepositoryFactory -- functools.partial(auth.store.UserStore, engine)
    AuditSink             -- auth.store.AuditStore  (SQLAlchemy Core)
    Signer                -- auth.tokens.JwtSigner  (python-jose)

A UserRepository holds one request's pending transaction, so workflows get a
factory and build a new repository per call. AuditSink and Signer are
stateless and shared.

Tests pass in-memory fakes or MagicMocks that match these signatures.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

from auth.models import AuditEvent, SignedInIdentity, UserAccount


class UserRepository(Protocol):
    """Persistence for user accounts with an explicit unit-of-work boundary.

    insert/update/delete_by_id are pending until commit(). rollback() discards
    everything pending since the last commit. close() releases the repository.
    """

    def find_by_credentials(self, hashed_login: str, hashed_password: str) -> SignedInIdentity | None: ...

    def insert(self, account: UserAccount) -> int: ...

    def select_by_id(self, user_id: int) -> UserAccount | None: ...

    def list_accounts(self) -> list[UserAccount]: ...

    def update(self, account: UserAccount, user_id: int) -> bool: ...

    def delete_by_id(self, user_id: int) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def close(self) -> None: ...


UserRepositoryFactory = Callable[[], UserRepository]


class AuditSink(Protocol):
    def append(self, event: AuditEvent) -> None: ...


class Signer(Protocol):
    def sign(self, claims: dict[str, Any]) -> str: ...
