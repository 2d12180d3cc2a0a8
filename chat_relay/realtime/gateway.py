"""Relay gateway: the per-connection state machine behind the Socket.IO server.

Pending -> Admitted -> Closed. A handshake without an identity token is
refused with ``NO_TOKEN`` and never reaches the registry. Admitted
connections relay ``send_message`` / ``send_image`` verbatim to every other
admitted connection and never back to the sender.
"""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING
from typing import Any
from urllib.parse import parse_qs

from socketio.exceptions import ConnectionRefusedError as SocketIOConnectionRefused

if TYPE_CHECKING:  # import for type checking only
    from .presence import PresenceBroadcaster
    from .registry import ConnectionRegistry
    from .registry import LiveConnection

logger = logging.getLogger(__name__)

MISSING_TOKEN = "NO_TOKEN"

# inbound event -> outbound event
RELAYED_EVENTS = {
    "send_message": "receive_message",
    "send_image": "receive_image",
}


class MissingToken(SocketIOConnectionRefused):
    def __init__(self) -> None:
        super().__init__(MISSING_TOKEN)


class ConnectionState(enum.Enum):
    PENDING = "pending"
    ADMITTED = "admitted"
    CLOSED = "closed"


def extract_token(environ: dict[str, Any] | None, auth: Any | None) -> str | None:
    """Return the identity token from the handshake, or ``None``.

    ``auth.token`` is the primary source; a ``token`` query parameter is
    accepted as fallback. Blank values count as missing.
    """

    if isinstance(auth, dict):
        auth_token = auth.get("token")
        if isinstance(auth_token, str) and auth_token.strip():
            return auth_token

    scope: Any = environ
    if isinstance(environ, dict) and "asgi.scope" in environ:
        inner = environ.get("asgi.scope")
        if isinstance(inner, dict):
            scope = inner

    query_string: str | bytes = ""
    if isinstance(scope, dict) and "query_string" in scope:
        query_string = scope.get("query_string", b"")
    elif isinstance(scope, dict) and "QUERY_STRING" in scope:
        query_string = scope.get("QUERY_STRING", "")

    if isinstance(query_string, (bytes, bytearray)):
        query_string = query_string.decode(errors="ignore")

    token = parse_qs(str(query_string)).get("token", [None])[0]
    if isinstance(token, str) and token.strip():
        return token

    return None


class RelayGateway:
    def __init__(
        self,
        server: Any,
        registry: ConnectionRegistry,
        broadcaster: PresenceBroadcaster,
        *,
        disconnect_delay: float = 1.0,
    ) -> None:
        self.server = server
        self.registry = registry
        self.broadcaster = broadcaster
        self.disconnect_delay = disconnect_delay
        # sids whose handshake is being checked
        self._pending: set[str] = set()

    def attach(self) -> None:
        """Register the gateway's handlers on the Socket.IO server."""

        self.server.on("connect", self.connect)
        self.server.on("disconnect", self.disconnect)
        self.server.on("send_message", self.send_message)
        self.server.on("send_image", self.send_image)

    def state(self, sid: str) -> ConnectionState:
        if sid in self.registry:
            return ConnectionState.ADMITTED
        if sid in self._pending:
            return ConnectionState.PENDING
        # Unknown sids are reported as closed: refused, departed or never seen.
        return ConnectionState.CLOSED

    async def connect(
        self,
        sid: str,
        environ: dict[str, Any] | None,
        auth: Any | None = None,
    ) -> None:
        self._pending.add(sid)
        try:
            token = extract_token(environ, auth)
            if not token:
                logger.info("Connection refused (no token): sid=%s", sid)
                raise MissingToken
            self.registry.add(sid, token)
        finally:
            self._pending.discard(sid)
        logger.info("User connected: %s ID: %s", token, sid)
        self.broadcaster.trigger()

    async def disconnect(self, sid: str, reason: Any | None = None) -> None:
        connection = self.registry.remove(sid)
        if connection is None:
            return
        logger.info(
            "User disconnected: %s ID: %s reason=%s",
            connection.identity_token,
            sid,
            reason,
        )
        self.broadcaster.trigger(delay=self.disconnect_delay)

    async def send_message(self, sid: str, payload: Any = None) -> None:
        await self.relay(sid, "send_message", payload)

    async def send_image(self, sid: str, payload: Any = None) -> None:
        await self.relay(sid, "send_image", payload)

    async def relay(self, sid: str, inbound_event: str, payload: Any) -> int:
        """Forward ``payload`` to every other admitted connection.

        Returns the number of recipients.
        """

        if sid not in self.registry:
            logger.warning("Dropped %s from unadmitted sid=%s", inbound_event, sid)
            return 0

        recipients: list[str] = []

        def collect(connection: LiveConnection) -> None:
            recipients.append(connection.connection_id)

        self.registry.for_each_other(sid, collect)
        if recipients:
            await self.server.emit(
                RELAYED_EVENTS[inbound_event],
                payload,
                to=recipients,
            )
        return len(recipients)
