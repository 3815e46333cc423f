from __future__ import annotations

import socket

from card_manager.config import AppConfig
from card_manager.network import is_online, status_text


class DummyConnection:
    def __enter__(self):
        return self

    def __exit__(self, *_exc_info):
        return False


def test_is_online_when_probe_connects(monkeypatch):
    calls = []

    def fake_connect(address, timeout):
        calls.append((address, timeout))
        return DummyConnection()

    monkeypatch.setattr(socket, "create_connection", fake_connect)

    assert is_online(AppConfig(connectivity_host="probe.test", connectivity_port=443), timeout=0.5)
    assert calls == [(("probe.test", 443), 0.5)]


def test_is_offline_when_probe_fails(monkeypatch):
    def fake_connect(*_args, **_kwargs):
        raise OSError("unreachable")

    monkeypatch.setattr(socket, "create_connection", fake_connect)

    assert not is_online()


def test_status_text():
    assert status_text(True).startswith("ONLINE")
    assert status_text(False).startswith("OFFLINE")
