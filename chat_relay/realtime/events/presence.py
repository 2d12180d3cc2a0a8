from __future__ import annotations

import logging

from asgiref.sync import async_to_sync

from chat_relay.realtime.notices import PresenceNotices
from chat_relay.realtime.socketio import relay

logger = logging.getLogger(__name__)


def publish_presence_counts() -> None:
    """Push fresh user counts to every connection from sync Django code.

    Used after a registration or a deletion commits. With ``REDIS_URL`` set
    every Socket.IO process is asked to rebroadcast; otherwise this process's
    own connections are the only ones reachable.
    """

    notices = PresenceNotices.from_settings()
    try:
        if notices is None:
            async_to_sync(relay.broadcaster.broadcast)()
            return
        reached = notices.publish()
        logger.info("Presence refresh published to %s process(es)", reached)
    except Exception:  # noqa: BLE001 - presence must not fail the request
        logger.exception("Presence publish failed")
