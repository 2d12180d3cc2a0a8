"""Process-wide Socket.IO server for chat clients.

Client convention:
- URL base: ws://<host>:8000
- Socket.IO path: /socket.io/ (default)
- Auth: ``auth.token`` (the signed-in username); ``query.token`` also accepted

Exactly one registry, broadcaster and gateway exist per process. They are
built here and handed to each other explicitly; tests build their own set
around a fake server through ``build_relay``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import socketio
from django.conf import settings

from chat_relay.directory.services import CredentialDirectory

from .gateway import RelayGateway
from .notices import PresenceNotices
from .presence import PresenceBroadcaster
from .registry import ConnectionRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Relay:
    server: Any
    registry: ConnectionRegistry
    broadcaster: PresenceBroadcaster
    gateway: RelayGateway


def _cors_allowed_origins() -> str | list[str]:
    origins = list(getattr(settings, "CHAT_CORS_ALLOWED_ORIGINS", ["*"]))
    if not origins or "*" in origins:
        return "*"
    return origins


def _client_manager() -> socketio.AsyncManager | None:
    url = getattr(settings, "REDIS_URL", "")
    if not url:
        return None
    return socketio.AsyncRedisManager(url)


def build_relay(
    server: Any,
    directory: Any,
    *,
    disconnect_delay: float | None = None,
) -> Relay:
    if disconnect_delay is None:
        disconnect_delay = float(settings.CHAT_PRESENCE_DISCONNECT_DELAY)
    registry = ConnectionRegistry()
    broadcaster = PresenceBroadcaster(server, registry, directory)
    gateway = RelayGateway(
        server,
        registry,
        broadcaster,
        disconnect_delay=disconnect_delay,
    )
    gateway.attach()
    return Relay(
        server=server,
        registry=registry,
        broadcaster=broadcaster,
        gateway=gateway,
    )


def start_presence_listener(target: Relay | None = None):
    """Subscribe this Socket.IO process to cross-process refresh notices.

    Runs at ASGI startup. Without ``REDIS_URL`` there is nothing to listen to.
    """

    notices = PresenceNotices.from_settings()
    if notices is None:
        return None
    target = target or relay
    return target.server.start_background_task(notices.listen, target.broadcaster)


sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=_cors_allowed_origins(),
    client_manager=_client_manager(),
    logger=False,
    engineio_logger=False,
)

relay = build_relay(sio, CredentialDirectory())
