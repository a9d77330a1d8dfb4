import datetime as dt

import pytest

from oof_manager.errors import RemoteError
from oof_manager.models import AutoReplyConfig, AutoReplyState, ExternalAudience


class MockGraphClient:
    """In-memory stand-in for GraphClient"""
    def __init__(self, mailboxes=None, failing=()):
        self.mailboxes = dict(mailboxes or {})
        self.failing = set(failing)
        self.calls = []
        self.closed = 0

    def get_auto_reply_config(self, identity):
        self.calls.append(("get", identity))
        if identity in self.failing:
            raise RemoteError(f"{identity}: HTTP 404 ErrorItemNotFound Mailbox not found", status_code=404)
        return self.mailboxes[identity]

    def set_auto_reply_config(self, identity, config):
        self.calls.append(("set", identity))
        if identity in self.failing:
            raise RemoteError(f"{identity}: HTTP 403 ErrorAccessDenied Access is denied", status_code=403)
        self.mailboxes[identity] = config

    def close(self):
        self.closed += 1


class ScriptedPrompter:
    """Replays canned answers; records everything shown to the operator"""
    def __init__(self, answers=None, confirmations=()):
        self.answers = dict(answers or {})
        self.confirmations = list(confirmations)
        self.asked = []
        self.shown = []

    def ask(self, key, prompt):
        self.asked.append(key)
        return self.answers[key]

    def confirm(self, prompt):
        return self.confirmations.pop(0) if self.confirmations else False

    def show(self, text):
        self.shown.append(text)


def local(*args):
    return dt.datetime(*args).astimezone()


@pytest.fixture
def scheduled_config():
    return AutoReplyConfig(
        state=AutoReplyState.SCHEDULED,
        internal_message="<p>Out until June 15.</p>",
        external_message="I am away, replies may be delayed.",
        external_audience=ExternalAudience.KNOWN,
        start_time=local(2025, 6, 1, 9, 0),
        end_time=local(2025, 6, 15, 17, 0),
    )


@pytest.fixture
def enabled_config():
    return AutoReplyConfig(
        state=AutoReplyState.ENABLED,
        internal_message="Out of office",
        external_message="Out of office, contact support@x.com",
        external_audience=ExternalAudience.ALL,
    )
