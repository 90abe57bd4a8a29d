"""Unit tests for auth/audit.py -- AuditLog fire-and-forget semantics.

Covers:
- append() returns before the sink write happens
- Exactly one sink call per append()
- Sink failures are logged and swallowed
- drain() / pending bookkeeping
"""

from __future__ import annotations

import asyncio
import logging
import threading
from unittest.mock import MagicMock

import pytest

from auth.audit import AuditLog
from auth.models import AuditEvent, LogType
from auth.store import AuditStore

# ---------------------------------------------------------------------------
# Fake sinks
# ---------------------------------------------------------------------------


class _FailingSink:
    def __init__(self) -> None:
        self.calls = 0

    def append(self, event: AuditEvent) -> None:
        self.calls += 1
        raise RuntimeError("disk full")


class _GatedSink:
    """Blocks every append until the test opens the gate."""

    def __init__(self) -> None:
        self.gate = threading.Event()
        self.events: list[AuditEvent] = []

    def append(self, event: AuditEvent) -> None:
        self.gate.wait(timeout=5)
        self.events.append(event)


# ---------------------------------------------------------------------------
# TestAuditLog
# ---------------------------------------------------------------------------


class TestAuditLog:
    @pytest.mark.asyncio
    async def test_append_does_not_wait_for_sink(self) -> None:
        sink = _GatedSink()
        log = AuditLog(sink)

        log.append(1, LogType.LOGIN)
        assert sink.events == []
        assert log.pending == 1

        sink.gate.set()
        await log.drain()
        assert len(sink.events) == 1
        assert log.pending == 0

    @pytest.mark.asyncio
    async def test_one_sink_call_per_append(self) -> None:
        sink = MagicMock()
        log = AuditLog(sink)

        log.append(7, LogType.LOGIN)
        log.append(7, LogType.LOGOUT)
        await log.drain()

        assert sink.append.call_count == 2
        events = [c.args[0] for c in sink.append.call_args_list]
        assert {e.log_type for e in events} == {LogType.LOGIN, LogType.LOGOUT}
        assert all(e.user_id == 7 for e in events)
        assert all(e.logged_at for e in events)

    @pytest.mark.asyncio
    async def test_sink_failure_is_logged_not_raised(self, caplog: pytest.LogCaptureFixture) -> None:
        sink = _FailingSink()
        log = AuditLog(sink)

        with caplog.at_level(logging.ERROR, logger="useraccess.audit"):
            log.append(3, LogType.LOGOUT)
            await log.drain()

        assert sink.calls == 1
        assert log.pending == 0
        assert "Audit append failed for user 3" in caplog.text

    @pytest.mark.asyncio
    async def test_drain_with_nothing_pending(self) -> None:
        log = AuditLog(MagicMock())
        await log.drain()
        assert log.pending == 0

    @pytest.mark.asyncio
    async def test_writes_reach_store(self, audit_store: AuditStore) -> None:
        log = AuditLog(audit_store)
        log.append(5, LogType.LOGIN)
        await log.drain()
        events = audit_store.list_events(user_id=5)
        assert len(events) == 1
        assert events[0].log_type is LogType.LOGIN

    def test_append_requires_running_loop(self) -> None:
        log = AuditLog(MagicMock())
        with pytest.raises(RuntimeError):
            log.append(1, LogType.LOGIN)

    @pytest.mark.asyncio
    async def test_concurrent_appends_all_land(self, audit_store: AuditStore) -> None:
        log = AuditLog(audit_store)
        for user_id in range(1, 11):
            log.append(user_id, LogType.LOGIN)
        await asyncio.wait_for(log.drain(), timeout=10)
        assert len(audit_store.list_events()) == 10
