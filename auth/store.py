"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper. UserStore and AuditStore are the
repositories; _row_to_account / _row_to_event are the mappers. Workflow code
never touches SQL directly.

Unit of work:
  UserStore is request-scoped. Build one per request around the shared Engine
  returned by create_store_engine(). Writes (insert/update/delete_by_id) open a
  single pending connection on first use and stay invisible to other
  connections until commit(). rollback() discards them. Reads join the pending
  transaction when one is open, so a request sees its own uncommitted writes.

  AuditStore is stateless: every append() is its own committed transaction, so
  one instance can be shared by the whole process.

Security:
  All queries use bound parameters. No f-strings in SQL.
  login and password columns only ever receive CredentialHasher output. The
  UNIQUE constraint on login therefore compares hashes, not plaintext.

Layer rule: may import core/ (settings) and auth.models only.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, create_engine, event, select
from sqlalchemy.engine import Connection, Engine

from auth.models import AuditEvent, LogType, Role, SignedInIdentity, UserAccount, UserStatus
from core.config import get_settings

logger = logging.getLogger("useraccess.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("user_id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False),
    Column("surname", String(200), nullable=False),
    Column("email", String(300), nullable=False),
    Column("login", String(64), nullable=False, unique=True),  # credential hash, hex
    Column("password", String(64), nullable=False),  # credential hash, hex
    Column("roles", String(100), nullable=False, server_default="user"),  # comma-delimited, canonical order
    Column("status", String(20), nullable=False, server_default="active"),
    Column("created_at", String(32), nullable=False),
)

_user_logs = Table(
    "user_logs",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False),  # no FK: logs outlive deleted users
    Column("log_type", String(10), nullable=False),
    Column("logged_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Audit appends run on worker threads while request transactions are open;
    WAL lets readers proceed without blocking on those writes. Set per
    connection because SQLite PRAGMAs are not inherited from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def create_store_engine(db_url: str | None = None) -> Engine:
    """Create the process-wide Engine and make sure both tables exist.

    db_url defaults to Settings.database_url. check_same_thread is disabled for
    SQLite because store calls are dispatched through asyncio.to_thread and a
    request's connection may be used from more than one worker thread (never
    concurrently).
    """
    db_url = db_url or get_settings().database_url
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    _metadata.create_all(engine)
    return engine


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def roles_to_text(roles) -> str:
    """Serialize a role collection as comma-delimited text in canonical order.

    Canonical order is Role declaration order; duplicates collapse. The same
    role set always produces the same string regardless of input order.
    """
    present = set(roles)
    return ",".join(role.value for role in Role if role in present)


def text_to_roles(value: str | None) -> tuple[Role, ...]:
    if not value:
        return ()
    present = {part.strip() for part in value.split(",")}
    return tuple(role for role in Role if role.value in present)


# ---------------------------------------------------------------------------
# User repository
# ---------------------------------------------------------------------------


class UserStore:
    """Request-scoped repository for UserAccount records.

    The Engine is required: it owns the connection pool and is built once per
    process. Never share one UserStore between concurrent requests; the
    workflows take a factory (e.g. functools.partial(UserStore, engine)) and
    build a fresh store per call.

    Usage:
        engine = create_store_engine()            # once per process
        store = UserStore(engine)                 # once per request
        user_id = store.insert(account)
        store.commit()
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._pending: Connection | None = None

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    def _writer(self) -> Connection:
        if self._pending is None:
            self._pending = self.engine.connect()
        return self._pending

    @contextmanager
    def _reader(self) -> Iterator[Connection]:
        if self._pending is not None:
            yield self._pending
            return
        with self.engine.connect() as conn:
            yield conn

    def commit(self) -> None:
        """Flush every pending insert/update/delete as one transaction."""
        if self._pending is None:
            return
        try:
            self._pending.commit()
        finally:
            self._pending.close()
            self._pending = None

    def rollback(self) -> None:
        """Discard everything pending since the last commit. Safe to call twice."""
        if self._pending is None:
            return
        try:
            self._pending.rollback()
        finally:
            self._pending.close()
            self._pending = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_by_credentials(self, hashed_login: str, hashed_password: str) -> SignedInIdentity | None:
        """Return the identity whose stored hashes both match, or None.

        Inactive accounts never match. The caller cannot tell which of the
        three conditions failed, and neither can anything it reports to.
        """
        query = select(_users.c.user_id, _users.c.roles).where(
            (_users.c.login == hashed_login)
            & (_users.c.password == hashed_password)
            & (_users.c.status == UserStatus.ACTIVE.value)
        )
        with self._reader() as conn:
            row = conn.execute(query).fetchone()
        if row is None:
            return None
        return SignedInIdentity(user_id=row.user_id, roles=text_to_roles(row.roles))

    def select_by_id(self, user_id: int) -> UserAccount | None:
        """Look up an account by primary key. Returns None if not found."""
        with self._reader() as conn:
            row = conn.execute(_users.select().where(_users.c.user_id == user_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def list_accounts(self) -> list[UserAccount]:
        """Return every account ordered by user_id."""
        with self._reader() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.user_id)).fetchall()
        return [_row_to_account(r) for r in rows]

    # ------------------------------------------------------------------
    # Pending writes
    # ------------------------------------------------------------------

    def insert(self, account: UserAccount) -> int:
        """Stage a new account and return its assigned user_id.

        The id is assigned immediately (and written back onto account) but the
        row only becomes visible to other connections after commit().

        Raises sqlalchemy.exc.IntegrityError if the hashed login already exists.
        """
        created_at = _now_iso()
        result = self._writer().execute(
            _users.insert().values(
                name=account.name,
                surname=account.surname,
                email=account.email,
                login=account.login,
                password=account.password,
                roles=roles_to_text(account.roles),
                status=account.status.value,
                created_at=created_at,
            )
        )
        account.user_id = result.inserted_primary_key[0]
        account.created_at = created_at
        return account.user_id

    def update(self, account: UserAccount, user_id: int) -> bool:
        """Stage a full overwrite of the row for user_id.

        Every column except user_id and created_at is written from account,
        credential columns included. Callers are responsible for carrying the
        persisted hashes over -- see UserWorkflow.update_user.

        Returns True if a row matched, False if user_id no longer exists.
        """
        result = self._writer().execute(
            _users.update()
            .where(_users.c.user_id == user_id)
            .values(
                name=account.name,
                surname=account.surname,
                email=account.email,
                login=account.login,
                password=account.password,
                roles=roles_to_text(account.roles),
                status=account.status.value,
            )
        )
        return result.rowcount > 0

    def delete_by_id(self, user_id: int) -> bool:
        """Stage a hard delete. Returns True if a row matched, False otherwise.

        Login history in user_logs is left in place.
        """
        result = self._writer().execute(_users.delete().where(_users.c.user_id == user_id))
        return result.rowcount > 0

    def close(self) -> None:
        """Roll back anything still pending. The shared Engine is left open."""
        self.rollback()


# ---------------------------------------------------------------------------
# Audit repository
# ---------------------------------------------------------------------------


class AuditStore:
    """Append-only repository for login/logout events.

    Records are never updated or deleted -- only inserted.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def append(self, event: AuditEvent) -> None:
        with self.engine.connect() as conn:
            result = conn.execute(
                _user_logs.insert().values(
                    user_id=event.user_id,
                    log_type=event.log_type.value,
                    logged_at=event.logged_at or _now_iso(),
                )
            )
            conn.commit()
        event.id = result.inserted_primary_key[0]

    def list_events(self, user_id: int | None = None) -> list[AuditEvent]:
        """Return events oldest first, optionally for a single user."""
        query = _user_logs.select().order_by(_user_logs.c.id)
        if user_id is not None:
            query = query.where(_user_logs.c.user_id == user_id)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_event(r) for r in rows]


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> UserAccount:
    return UserAccount(
        user_id=row.user_id,
        name=row.name,
        surname=row.surname,
        email=row.email,
        login=row.login,
        password=row.password,
        roles=text_to_roles(row.roles),
        status=UserStatus(row.status),
        created_at=row.created_at,
    )


def _row_to_event(row) -> AuditEvent:
    return AuditEvent(
        id=row.id,
        user_id=row.user_id,
        log_type=LogType(row.log_type),
        logged_at=row.logged_at,
    )
