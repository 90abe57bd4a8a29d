"""
auth/workflows.py -- Sign-in/sign-out and account management orchestration.

AuthenticationWorkflow.sign_in walks a fixed sequence per request:

    Received -> Validated -> CredentialsChecked -> Audited -> TokenIssued
        |            |
        |            +--> RejectedNoMatch       (Error, no audit)
        +--> RejectedInvalidInput               (Error, no store access, no audit)

Both rejections return the same Error (see auth/validators.py). The Login
audit append is fire-and-forget: by the time it is scheduled the Result is
already decided.

UserWorkflow enforces the credential invariants of UserAccount:
  - add_user hashes login and password before anything is persisted.
  - update_user never takes credentials from the request; it copies the
    persisted hashes onto the candidate record.
Each mutation is one unit of work: stage, commit, or roll back and re-raise.

Request isolation:
  Workflows are long-lived and may serve concurrent requests. They hold a
  repository factory, not a repository. Every call builds its own
  UserRepository (and so its own pending transaction) inside a single
  worker-thread call, and closes it before returning.

Store calls are synchronous SQLAlchemy; they are awaited through
asyncio.to_thread so the event loop is never blocked on SQL.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, TypeVar

from sqlalchemy.exc import IntegrityError

from auth.models import (
    AddUserRequest,
    LogType,
    SignInRequest,
    SignOutRequest,
    UpdateUserRequest,
    UserAccount,
)
from auth.validators import validate_add_user, validate_sign_in, validate_signed_in, validate_update_user
from core.result import Error, ErrorKind, Result, Success

if TYPE_CHECKING:
    from auth.audit import AuditLog
    from auth.ports import UserRepository, UserRepositoryFactory
    from auth.tokens import CredentialHasher, TokenIssuer

logger = logging.getLogger("useraccess.auth")
users_logger = logging.getLogger("useraccess.users")

_NOT_FOUND = "User not found."

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Unit of work
# ---------------------------------------------------------------------------


def _in_transaction(factory: UserRepositoryFactory, work: Callable[[UserRepository], T]) -> T:
    """Run work against a fresh repository, then commit, all on one thread.

    Any exception rolls back and propagates. The repository never outlives
    the call, so the SQLite write lock is never held across an await.
    """
    users = factory()
    try:
        outcome = work(users)
        users.commit()
        return outcome
    except Exception:
        users.rollback()
        raise
    finally:
        users.close()


def _read(factory: UserRepositoryFactory, query: Callable[[UserRepository], T]) -> T:
    users = factory()
    try:
        return query(users)
    finally:
        users.close()


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


class AuthenticationWorkflow:
    def __init__(
        self,
        users: UserRepositoryFactory,
        hasher: CredentialHasher,
        tokens: TokenIssuer,
        audit: AuditLog,
    ) -> None:
        self._users = users
        self._hasher = hasher
        self._tokens = tokens
        self._audit = audit

    async def sign_in(self, request: SignInRequest) -> Result[str]:
        """Authenticate a login/password pair and return a session token.

        Never logs the submitted login or password -- only the outcome and,
        on success, the numeric user id.
        """
        validation = validate_sign_in(request)
        if isinstance(validation, Error):
            logger.info("Sign-in rejected: malformed credentials")
            return validation

        hashed_login = self._hasher.hash(request.login)
        hashed_password = self._hasher.hash(request.password)
        identity = await asyncio.to_thread(
            _read, self._users, lambda users: users.find_by_credentials(hashed_login, hashed_password)
        )

        checked = validate_signed_in(identity)
        if isinstance(checked, Error):
            logger.info("Sign-in rejected: no matching account")
            return checked

        self._audit.append(identity.user_id, LogType.LOGIN)
        logger.info("Successful sign-in for user %s", identity.user_id)
        return Success(self._tokens.issue(identity.user_id, identity.roles))

    async def sign_out(self, request: SignOutRequest) -> None:
        """Record a Logout event. No validation; the token itself is stateless."""
        self._audit.append(request.user_id, LogType.LOGOUT)
        logger.info("Sign-out recorded for user %s", request.user_id)


# ---------------------------------------------------------------------------
# Account management
# ---------------------------------------------------------------------------


class UserWorkflow:
    def __init__(self, users: UserRepositoryFactory, hasher: CredentialHasher) -> None:
        self._users = users
        self._hasher = hasher

    async def add_user(self, request: AddUserRequest) -> Result[int]:
        """Create an account from plaintext credentials. Returns the new user id."""
        validation = validate_add_user(request)
        if isinstance(validation, Error):
            return validation

        account = UserAccount(
            name=request.name,
            surname=request.surname,
            email=request.email,
            login=self._hasher.hash(request.login),
            password=self._hasher.hash(request.password),
            roles=tuple(request.roles),
            status=request.status,
        )
        try:
            user_id = await asyncio.to_thread(_in_transaction, self._users, lambda users: users.insert(account))
        except IntegrityError:
            users_logger.warning("Add user rejected: login already in use")
            return Error("A user with that login already exists.", ErrorKind.CONFLICT)

        users_logger.info("User %s created", user_id)
        return Success(user_id)

    async def delete_user(self, user_id: int) -> Result[None]:
        """Hard-delete an account. Deleting an unknown id is still a Success."""
        deleted = await asyncio.to_thread(_in_transaction, self._users, lambda users: users.delete_by_id(user_id))
        if deleted:
            users_logger.info("User %s deleted", user_id)
        else:
            users_logger.info("Delete requested for unknown user %s", user_id)
        return Success(None)

    async def update_user(self, request: UpdateUserRequest) -> Result[None]:
        """Overwrite profile fields. Credential fields always keep their
        persisted hashes, whatever the request carries."""
        validation = validate_update_user(request)
        if isinstance(validation, Error):
            return validation

        def overwrite(users: UserRepository) -> bool:
            persisted = users.select_by_id(request.user_id)
            if persisted is None:
                return False
            account = UserAccount(
                user_id=request.user_id,
                name=request.name,
                surname=request.surname,
                email=request.email,
                login=persisted.login,
                password=persisted.password,
                roles=tuple(request.roles),
                status=request.status,
            )
            # False when the row was deleted after the read above.
            return users.update(account, request.user_id)

        if not await asyncio.to_thread(_in_transaction, self._users, overwrite):
            users_logger.info("Update requested for unknown user %s", request.user_id)
            return Error(_NOT_FOUND, ErrorKind.NOT_FOUND)

        users_logger.info("User %s updated", request.user_id)
        return Success(None)

    async def list_users(self) -> list[UserAccount]:
        return await asyncio.to_thread(_read, self._users, lambda users: users.list_accounts())

    async def select_user(self, user_id: int) -> UserAccount | None:
        return await asyncio.to_thread(_read, self._users, lambda users: users.select_by_id(user_id))
