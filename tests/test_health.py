from http import HTTPStatus
from unittest import mock

import pytest
from django.db import connection as dj_conn

from chat_relay.realtime.socketio import relay


class DummyDbError(Exception):  # TRY002: use a custom exception in tests
    """Synthetic DB error for testing."""


@pytest.mark.django_db
def test_health_ok_without_redis(client, settings):
    settings.REDIS_URL = ""

    resp = client.get("/health/")

    assert resp.status_code == HTTPStatus.OK
    data = resp.json()
    assert data["status"] == "ok"
    assert data["components"]["db"]["ok"] is True
    assert data["components"]["redis"] == {"ok": True, "enabled": False}
    assert data["components"]["relay"] == {"ok": True, "online": relay.registry.size()}


@pytest.mark.django_db
def test_health_degraded_when_redis_fails(client, settings):
    settings.REDIS_URL = "redis://localhost:6399/0"
    with mock.patch(
        "config.health.redis.Redis.ping",
        side_effect=TimeoutError("redis timeout"),
    ):
        resp = client.get("/health/")
    assert resp.status_code == HTTPStatus.SERVICE_UNAVAILABLE
    data = resp.json()
    assert data["components"]["redis"]["ok"] is False
    assert data["status"] == "degraded"


@pytest.mark.django_db
def test_health_degraded_when_db_fails(client, monkeypatch):
    msg = "db down"  # EM101/TRY003: assign message to a variable

    def raise_cursor():
        raise DummyDbError(msg)

    monkeypatch.setattr(dj_conn, "cursor", raise_cursor, raising=True)
    resp = client.get("/health/")
    assert resp.status_code == HTTPStatus.SERVICE_UNAVAILABLE
    data = resp.json()
    assert data["components"]["db"]["ok"] is False
    assert data["components"]["db"]["error"] == "db down"
