"""
tests/conftest.py -- Shared test fixtures for useraccess.

This module provides:
  - engine: a SQLite file database under tmp_path with both tables created
  - user_store / audit_store: real SQLAlchemy repositories on that engine
  - hasher / issuer: cheap, reproducible crypto (rounds=1, fixed clock)
  - audit_log, auth_workflow, user_workflow: fully wired workflows. The
    workflows get partial(UserStore, engine) and build a store per call.

Design: file-backed SQLite under tmp_path (not :memory:) because store calls
and audit writes run on asyncio.to_thread worker threads. A plain :memory:
database is per-connection, so a worker thread would see a blank schema.

The DEBUG env var must be set before any import that reads settings so
get_settings() auto-generates keys in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from datetime import datetime, timezone
from functools import partial

# CRITICAL: Set DEBUG before any auth/core import so get_settings() can
# auto-generate SECRET_KEY / CREDENTIAL_HASH_KEY instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from sqlalchemy.engine import Engine

from auth.audit import AuditLog
from auth.store import AuditStore, UserStore, create_store_engine
from auth.tokens import CredentialHasher, JwtSigner, TokenIssuer
from auth.workflows import AuthenticationWorkflow, UserWorkflow

SECRET_KEY = "test-secret-key-0123456789abcdef0123456789"
HASH_KEY = "test-hash-key-0123456789abcdef0123456789ab"
FIXED_NOW = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


@pytest.fixture
def engine(tmp_path) -> Generator[Engine, None, None]:
    eng = create_store_engine(f"sqlite:///{tmp_path / 'useraccess_test.db'}")
    yield eng
    eng.dispose()


@pytest.fixture
def user_store(engine: Engine) -> Generator[UserStore, None, None]:
    store = UserStore(engine)
    yield store
    store.close()


@pytest.fixture
def audit_store(engine: Engine) -> AuditStore:
    return AuditStore(engine)


# ---------------------------------------------------------------------------
# Crypto
# ---------------------------------------------------------------------------


@pytest.fixture
def hasher() -> CredentialHasher:
    return CredentialHasher(HASH_KEY, rounds=1)


@pytest.fixture
def signer() -> JwtSigner:
    return JwtSigner(SECRET_KEY)


@pytest.fixture
def issuer(signer: JwtSigner) -> TokenIssuer:
    return TokenIssuer(signer, expire_seconds=3600, clock=lambda: FIXED_NOW)


# ---------------------------------------------------------------------------
# Workflows
# ---------------------------------------------------------------------------


@pytest.fixture
def audit_log(audit_store: AuditStore) -> AuditLog:
    return AuditLog(audit_store)


@pytest.fixture
def auth_workflow(
    engine: Engine, hasher: CredentialHasher, issuer: TokenIssuer, audit_log: AuditLog
) -> AuthenticationWorkflow:
    return AuthenticationWorkflow(partial(UserStore, engine), hasher, issuer, audit_log)


@pytest.fixture
def user_workflow(engine: Engine, hasher: CredentialHasher) -> UserWorkflow:
    return UserWorkflow(partial(UserStore, engine), hasher)
