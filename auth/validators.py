"""
auth/validators.py -- Input validation for the auth workflows.

Every validator is a pure function: same input, same Result, no I/O. Each
returns Success(model) when the model is acceptable and Error(message)
otherwise; the first failing rule wins.

Anti-enumeration:
  validate_sign_in() and validate_signed_in() fail with the SAME message and
  the SAME kind. A caller cannot tell "your input was malformed" from "no
  account matched" -- merging those two outcomes is deliberate and must not be
  split into separate errors.
"""

from __future__ import annotations

import re
from collections.abc import Collection

from auth.models import AddUserRequest, Role, SignedInIdentity, SignInRequest, UpdateUserRequest, UserStatus
from core.result import Error, ErrorKind, Result, Success

CREDENTIALS_INVALID = "Invalid login or password."

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

_MAX_CREDENTIAL = 255
_MAX_NAME = 100
_MAX_SURNAME = 200
_MAX_EMAIL = 300

# ---------------------------------------------------------------------------
# Rule helpers -- each returns an error message or None
# ---------------------------------------------------------------------------


def _check_text(value, label: str, max_length: int) -> str | None:
    if not isinstance(value, str) or not value.strip():
        return f"{label} is required."
    if len(value) > max_length:
        return f"{label} must be at most {max_length} characters."
    try:
        # Lone surrogates survive str checks but cannot be hashed or stored.
        value.encode("utf-8")
    except UnicodeEncodeError:
        return f"{label} is invalid."
    return None


def _check_email(value) -> str | None:
    problem = _check_text(value, "Email", _MAX_EMAIL)
    if problem:
        return problem
    if not _EMAIL_RE.match(value):
        return "Email is invalid."
    return None


def _check_roles(roles) -> str | None:
    if isinstance(roles, (str, bytes)) or not isinstance(roles, Collection) or not roles:
        return "At least one role is required."
    if not all(isinstance(role, Role) for role in roles):
        return "Roles are invalid."
    return None


def _check_status(status) -> str | None:
    if not isinstance(status, UserStatus):
        return "Status is invalid."
    return None


def _check_profile(name, surname, email, roles, status) -> str | None:
    return (
        _check_text(name, "Name", _MAX_NAME)
        or _check_text(surname, "Surname", _MAX_SURNAME)
        or _check_email(email)
        or _check_roles(roles)
        or _check_status(status)
    )


def _credentials_well_formed(login, password) -> bool:
    return (
        _check_text(login, "Login", _MAX_CREDENTIAL) is None
        and _check_text(password, "Password", _MAX_CREDENTIAL) is None
    )


# ---------------------------------------------------------------------------
# Sign-in
# ---------------------------------------------------------------------------


def validate_sign_in(request: SignInRequest | None) -> Result[SignInRequest]:
    """Reject a missing, blank or oversized login or password.

    Runs before any store access, so malformed input never costs a query.
    """
    if request is None or not _credentials_well_formed(request.login, request.password):
        return Error(CREDENTIALS_INVALID, ErrorKind.VALIDATION)
    return Success(request)


def validate_signed_in(identity: SignedInIdentity | None) -> Result[SignedInIdentity]:
    """Reject a store lookup that found no matching account."""
    if identity is None:
        return Error(CREDENTIALS_INVALID, ErrorKind.VALIDATION)
    return Success(identity)


# ---------------------------------------------------------------------------
# Account mutation
# ---------------------------------------------------------------------------


def validate_add_user(request: AddUserRequest) -> Result[AddUserRequest]:
    problem = (
        _check_profile(request.name, request.surname, request.email, request.roles, request.status)
        or _check_text(request.login, "Login", _MAX_CREDENTIAL)
        or _check_text(request.password, "Password", _MAX_CREDENTIAL)
    )
    if problem:
        return Error(problem, ErrorKind.VALIDATION)
    return Success(request)


def validate_update_user(request: UpdateUserRequest) -> Result[UpdateUserRequest]:
    """Validate profile fields only. login/password on the request are ignored
    by the update path, so they are not checked here either."""
    user_id = request.user_id
    if isinstance(user_id, bool) or not isinstance(user_id, int) or user_id < 1:
        return Error("User id is invalid.", ErrorKind.VALIDATION)
    problem = _check_profile(request.name, request.surname, request.email, request.roles, request.status)
    if problem:
        return Error(problem, ErrorKind.VALIDATION)
    return Success(request)
