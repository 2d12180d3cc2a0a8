from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

import pytest

from chat_relay.directory.exceptions import DirectoryUnavailable
from chat_relay.realtime.socketio import Relay
from chat_relay.realtime.socketio import build_relay


@pytest.fixture(autouse=True)
def _media_storage(settings, tmpdir) -> None:
    settings.MEDIA_ROOT = tmpdir.strpath


@dataclass(frozen=True)
class Emission:
    event: str
    data: Any
    sid: str


class FakeSocketServer:
    """Stands in for ``socketio.AsyncServer``.

    Records every emit per recipient sid and runs background tasks on the
    running event loop so tests can wait for them with ``drain``.
    """

    def __init__(self) -> None:
        self.handlers: dict[str, Any] = {}
        self.emitted: list[Emission] = []
        self.tasks: list[asyncio.Task] = []

    def on(self, event, handler=None, namespace=None):
        self.handlers[event] = handler
        return handler

    async def emit(self, event, data=None, to=None, room=None, **kwargs):
        target = to if to is not None else room
        sids = target if isinstance(target, list) else [target]
        for sid in sids:
            self.emitted.append(Emission(event, data, sid))

    def start_background_task(self, target, *args, **kwargs):
        task = asyncio.ensure_future(target(*args, **kwargs))
        self.tasks.append(task)
        return task

    async def sleep(self, seconds=0):
        await asyncio.sleep(seconds)

    async def drain(self) -> None:
        while True:
            pending = [task for task in self.tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending)

    def received(self, sid: str, event: str | None = None) -> list[Emission]:
        return [
            e
            for e in self.emitted
            if e.sid == sid and (event is None or e.event == event)
        ]


class InMemoryDirectory:
    """Async ``acount`` only, which is all the broadcaster needs."""

    def __init__(self, registered: int = 0) -> None:
        self.registered = registered
        self.fail = False
        self.calls = 0

    async def acount(self) -> int:
        self.calls += 1
        if self.fail:
            msg = "directory down"
            raise DirectoryUnavailable(msg)
        return self.registered


@pytest.fixture
def fake_server() -> FakeSocketServer:
    return FakeSocketServer()


@pytest.fixture
def memory_directory() -> InMemoryDirectory:
    return InMemoryDirectory(registered=2)


@pytest.fixture
def relay(fake_server, memory_directory) -> Relay:
    return build_relay(fake_server, memory_directory, disconnect_delay=0)
