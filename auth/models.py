"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores, validators and
workflows do the work; these classes only own domain shape.

Request classes (SignInRequest, AddUserRequest, UpdateUserRequest) carry
caller input, plaintext credentials included. They are never persisted --
UserAccount is the only persisted shape and its login/password fields always
hold CredentialHasher output.

Layer rule: no imports from core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    # Declaration order is the canonical order of a role set.
    USER = "user"
    ADMIN = "admin"


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class LogType(str, Enum):
    LOGIN = "login"
    LOGOUT = "logout"


@dataclass
class SignInRequest:
    login: str
    password: str


@dataclass
class SignOutRequest:
    user_id: int


@dataclass(frozen=True)
class SignedInIdentity:
    """Who just authenticated: the user id and the role set at match time."""

    user_id: int
    roles: tuple[Role, ...] = ()


@dataclass
class UserAccount:
    """A persisted user record.

    login and password are hashes, never plaintext. user_id is None before
    the record is written to the database.
    """

    name: str
    surname: str
    email: str
    login: str  # CredentialHasher output
    password: str  # CredentialHasher output
    roles: tuple[Role, ...] = (Role.USER,)
    status: UserStatus = UserStatus.ACTIVE
    user_id: int | None = None
    created_at: str | None = None  # ISO 8601, set by store on insert


@dataclass
class AddUserRequest:
    name: str
    surname: str
    email: str
    login: str  # plaintext, hashed before persistence
    password: str  # plaintext, hashed before persistence
    roles: tuple[Role, ...] = (Role.USER,)
    status: UserStatus = UserStatus.ACTIVE


@dataclass
class UpdateUserRequest:
    """Profile update for an existing account.

    login/password are accepted so callers can round-trip a full record, but
    they are never applied: the persisted hashes always win.
    """

    user_id: int
    name: str
    surname: str
    email: str
    roles: tuple[Role, ...] = (Role.USER,)
    status: UserStatus = UserStatus.ACTIVE
    login: str | None = None
    password: str | None = None


@dataclass
class AuditEvent:
    """Append-only login/logout record. Never updated or deleted."""

    user_id: int
    log_type: LogType
    logged_at: str = ""  # ISO 8601 UTC
    id: int | None = None
