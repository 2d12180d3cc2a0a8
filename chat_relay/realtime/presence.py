"""Presence broadcaster.

Pushes ``user_counts`` ({registered, online}) to every admitted connection.
Broadcasting is best-effort: a directory or emit failure is logged and that
broadcast is dropped; the next membership change tries again.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from dataclasses import dataclass
from typing import TYPE_CHECKING
from typing import Any

from chat_relay.directory.exceptions import DirectoryUnavailable

if TYPE_CHECKING:  # import for type checking only
    from .registry import ConnectionRegistry

logger = logging.getLogger(__name__)

USER_COUNTS_EVENT = "user_counts"


@dataclass(frozen=True)
class PresenceSnapshot:
    registered: int
    online: int

    def as_payload(self) -> dict[str, int]:
        return asdict(self)


class PresenceBroadcaster:
    def __init__(
        self,
        server: Any,
        registry: ConnectionRegistry,
        directory: Any,
    ) -> None:
        # ``directory`` only needs an async ``acount()``.
        self.server = server
        self.registry = registry
        self.directory = directory

    async def snapshot(self) -> PresenceSnapshot:
        registered = await self.directory.acount()
        return PresenceSnapshot(registered=registered, online=self.registry.size())

    async def broadcast(self) -> PresenceSnapshot | None:
        try:
            snapshot = await self.snapshot()
        except DirectoryUnavailable:
            logger.exception("Broadcast skipped: directory unavailable")
            return None

        recipients = self.registry.connection_ids()
        logger.info(
            "Broadcast: registered=%s online=%s",
            snapshot.registered,
            snapshot.online,
        )
        if not recipients:
            return snapshot
        try:
            await self.server.emit(
                USER_COUNTS_EVENT,
                snapshot.as_payload(),
                to=recipients,
            )
        except Exception:  # noqa: BLE001 - runs detached; nobody awaits the task
            logger.exception("Broadcast failed: emit error")
            return None
        return snapshot

    def trigger(self, delay: float = 0):
        """Schedule a broadcast without waiting for it."""

        return self.server.start_background_task(self._delayed_broadcast, delay)

    async def _delayed_broadcast(self, delay: float) -> None:
        if delay and delay > 0:
            await self.server.sleep(delay)
        await self.broadcast()
