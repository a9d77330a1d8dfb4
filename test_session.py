"""
Tests for session acquisition and guaranteed release
"""

import logging
import sys
import types

import pytest

from conftest import MockGraphClient
from oof_manager.config import GraphConfig
from oof_manager.errors import SessionConnectionError
from oof_manager.session import connect, disconnect, session_scope


class FailingClose(MockGraphClient):
    def close(self):
        self.closed += 1
        raise RuntimeError("socket already closed")


def test_scope_disconnects_once_on_success():
    client = MockGraphClient()
    with session_scope(GraphConfig(), connector=lambda cfg: client) as got:
        assert got is client
    assert client.closed == 1


def test_scope_disconnects_once_on_error():
    client = MockGraphClient()
    with pytest.raises(ValueError):
        with session_scope(GraphConfig(), connector=lambda cfg: client):
            raise ValueError("boom")
    assert client.closed == 1


def test_disconnect_errors_are_logged_not_raised(caplog):
    client = FailingClose()
    with caplog.at_level(logging.WARNING):
        with session_scope(GraphConfig(), connector=lambda cfg: client):
            pass
    assert client.closed == 1
    assert "socket already closed" in caplog.text


def test_disconnect_error_does_not_mask_batch_error():
    with pytest.raises(KeyError):
        with session_scope(GraphConfig(), connector=lambda cfg: FailingClose()):
            raise KeyError("original")


def test_connect_requires_credentials(monkeypatch):
    monkeypatch.setitem(sys.modules, "msal", types.SimpleNamespace())
    with pytest.raises(SessionConnectionError) as exc:
        connect(GraphConfig(tenant_id="t"))
    assert "client_id" in str(exc.value) and "client_secret" in str(exc.value)


class MockConfidentialClientApplication:
    result = {"access_token": "token-123"}

    def __init__(self, client_id, authority=None, client_credential=None):
        self.client_id = client_id
        self.authority = authority

    def acquire_token_for_client(self, scopes):
        return self.result


def test_connect_builds_authenticated_client(monkeypatch):
    monkeypatch.setitem(sys.modules, "msal", types.SimpleNamespace(
        ConfidentialClientApplication=MockConfidentialClientApplication))
    client = connect(GraphConfig(tenant_id="t", client_id="c", client_secret="s", timeout_seconds=12))
    assert client.http.headers["Authorization"] == "Bearer token-123"
    assert client.timeout == 12
    disconnect(client)


def test_connect_token_refused(monkeypatch):
    class Refusing(MockConfidentialClientApplication):
        result = {"error": "invalid_client", "error_description": "AADSTS7000215: Invalid client secret"}

    monkeypatch.setitem(sys.modules, "msal", types.SimpleNamespace(ConfidentialClientApplication=Refusing))
    with pytest.raises(SessionConnectionError) as exc:
        connect(GraphConfig(tenant_id="t", client_id="c", client_secret="bad"))
    assert "AADSTS7000215" in str(exc.value)


def test_connect_without_msal(monkeypatch):
    monkeypatch.setitem(sys.modules, "msal", None)
    with pytest.raises(SessionConnectionError):
        connect(GraphConfig(tenant_id="t", client_id="c", client_secret="s"))
