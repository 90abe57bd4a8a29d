"""
auth/audit.py -- Fire-and-forget login/logout audit trail.

append() returns immediately. The sink write is scheduled as an asyncio task
and runs on a worker thread (the sink is a synchronous SQLAlchemy store), so
the calling workflow neither waits for it nor sees its failures. A failed
write is logged and dropped.

The task set keeps a strong reference to every in-flight write; the event
loop only holds weak references to tasks, and an unreferenced task can be
garbage-collected before it runs. drain() awaits whatever is still in flight
(call it on shutdown, and in tests before asserting on the sink).
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from auth.models import AuditEvent, LogType

if TYPE_CHECKING:
    from auth.ports import AuditSink

logger = logging.getLogger("useraccess.audit")


class AuditLog:
    """Owns the append operation for AuditEvents. One sink call per append()."""

    def __init__(self, sink: AuditSink) -> None:
        self._sink = sink
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def append(self, user_id: int, log_type: LogType) -> None:
        """Record an event without blocking. Must be called from a running loop."""
        event = AuditEvent(
            user_id=user_id,
            log_type=log_type,
            logged_at=datetime.now(timezone.utc).isoformat(),
        )
        task = asyncio.get_running_loop().create_task(self._write(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _write(self, event: AuditEvent) -> None:
        try:
            await asyncio.to_thread(self._sink.append, event)
        except Exception:
            logger.exception("Audit append failed for user %s (%s)", event.user_id, event.log_type.value)

    async def drain(self) -> None:
        """Wait until every scheduled write has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
