from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from typing import TYPE_CHECKING

from django.utils import timezone

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Callable


class ConnectionAlreadyRegistered(ValueError):
    pass


@dataclass(frozen=True)
class LiveConnection:
    connection_id: str
    identity_token: str
    connected_at: datetime = field(default_factory=timezone.now)


class ConnectionRegistry:
    """Admitted Socket.IO connections keyed by session id.

    Only the gateway mutates this: ``add`` after the token gate passes and
    ``remove`` when the transport closes.
    """

    def __init__(self) -> None:
        self._connections: dict[str, LiveConnection] = {}

    def add(self, connection_id: str, identity_token: str) -> LiveConnection:
        if not identity_token:
            msg = "identity token must be non-empty"
            raise ValueError(msg)
        if connection_id in self._connections:
            msg = f"connection already registered: {connection_id}"
            raise ConnectionAlreadyRegistered(msg)
        connection = LiveConnection(connection_id, identity_token)
        self._connections[connection_id] = connection
        return connection

    def remove(self, connection_id: str) -> LiveConnection | None:
        return self._connections.pop(connection_id, None)

    def get(self, connection_id: str) -> LiveConnection | None:
        return self._connections.get(connection_id)

    def size(self) -> int:
        return len(self._connections)

    def connection_ids(self) -> list[str]:
        return list(self._connections)

    def for_each_other(
        self,
        excluding: str | None,
        fn: Callable[[LiveConnection], object],
    ) -> None:
        # Snapshot first so fn may add/remove entries safely.
        for connection in list(self._connections.values()):
            if connection.connection_id != excluding:
                fn(connection)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)
