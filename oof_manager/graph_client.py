"""
Microsoft Graph client for mailbox automatic-reply settings.

Only the two calls the tool needs are wrapped:
    GET   /users/{id}/mailboxSettings/automaticRepliesSetting
    PATCH /users/{id}/mailboxSettings
"""
from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pandas as pd
import requests

from .errors import RemoteError
from .models import AutoReplyConfig, AutoReplyState, ExternalAudience

LOGGER = logging.getLogger(__name__)

STATE_TO_GRAPH = {
    AutoReplyState.DISABLED: "disabled",
    AutoReplyState.ENABLED: "alwaysEnabled",
    AutoReplyState.SCHEDULED: "scheduled",
}
STATE_FROM_GRAPH = {v.lower(): k for k, v in STATE_TO_GRAPH.items()}

AUDIENCE_TO_GRAPH = {
    ExternalAudience.NONE: "none",
    ExternalAudience.KNOWN: "contactsOnly",
    ExternalAudience.ALL: "all",
}
AUDIENCE_FROM_GRAPH = {v.lower(): k for k, v in AUDIENCE_TO_GRAPH.items()}

# Windows zone names Graph may report when a mailbox ignores the Prefer header
WINDOWS_TIMEZONES = {
    "UTC": "UTC",
    "Coordinated Universal Time": "UTC",
    "GMT Standard Time": "Europe/London",
    "Greenwich Standard Time": "Atlantic/Reykjavik",
    "W. Europe Standard Time": "Europe/Berlin",
    "Romance Standard Time": "Europe/Paris",
    "Central Europe Standard Time": "Europe/Budapest",
    "Central European Standard Time": "Europe/Warsaw",
    "E. Europe Standard Time": "Europe/Chisinau",
    "FLE Standard Time": "Europe/Kiev",
    "GTB Standard Time": "Europe/Bucharest",
    "Russian Standard Time": "Europe/Moscow",
    "Israel Standard Time": "Asia/Jerusalem",
    "South Africa Standard Time": "Africa/Johannesburg",
    "Arabian Standard Time": "Asia/Dubai",
    "India Standard Time": "Asia/Kolkata",
    "China Standard Time": "Asia/Shanghai",
    "Singapore Standard Time": "Asia/Singapore",
    "Tokyo Standard Time": "Asia/Tokyo",
    "Korea Standard Time": "Asia/Seoul",
    "AUS Eastern Standard Time": "Australia/Sydney",
    "New Zealand Standard Time": "Pacific/Auckland",
    "Hawaiian Standard Time": "Pacific/Honolulu",
    "Alaskan Standard Time": "America/Anchorage",
    "Pacific Standard Time": "America/Los_Angeles",
    "Mountain Standard Time": "America/Denver",
    "US Mountain Standard Time": "America/Phoenix",
    "Central Standard Time": "America/Chicago",
    "Eastern Standard Time": "America/New_York",
    "Atlantic Standard Time": "America/Halifax",
    "E. South America Standard Time": "America/Sao_Paulo",
}

GRAPH_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S"


def _to_graph_datetime(value: dt.datetime) -> Dict[str, str]:
    # Always send UTC; naive values are taken as local time.
    utc = value.astimezone(dt.timezone.utc)
    return {"dateTime": utc.strftime(GRAPH_DATETIME_FORMAT), "timeZone": "UTC"}


def _graph_timezone(name: Optional[str]) -> str:
    """IANA name for a Graph timeZone value; unknown zones are read as UTC."""
    if not name:
        return "UTC"
    iana = WINDOWS_TIMEZONES.get(name, name)
    try:
        ZoneInfo(iana)
    except (ZoneInfoNotFoundError, ValueError):
        LOGGER.warning(f"Unknown time zone '{name}' from Graph, reading the timestamp as UTC")
        return "UTC"
    return iana


def _from_graph_datetime(value: Optional[Dict[str, Any]]) -> Optional[dt.datetime]:
    if not value or not value.get("dateTime"):
        return None
    # Graph returns 7 fractional digits, which pandas handles
    ts = pd.Timestamp(value["dateTime"])
    if ts.tzinfo is None:
        ts = ts.tz_localize(_graph_timezone(value.get("timeZone")))
    return ts.floor("s").to_pydatetime().astimezone()


def to_graph_payload(config: AutoReplyConfig) -> Dict[str, Any]:
    setting: Dict[str, Any] = {
        "status": STATE_TO_GRAPH[config.state],
        "externalAudience": AUDIENCE_TO_GRAPH[config.external_audience],
        "internalReplyMessage": config.internal_message,
        "externalReplyMessage": config.external_message,
    }
    if config.is_scheduled:
        setting["scheduledStartDateTime"] = _to_graph_datetime(config.start_time)
        setting["scheduledEndDateTime"] = _to_graph_datetime(config.end_time)
    return {"automaticRepliesSetting": setting}


def from_graph_payload(setting: Dict[str, Any]) -> AutoReplyConfig:
    status = str(setting.get("status", "")).lower()
    if status not in STATE_FROM_GRAPH:
        raise RemoteError(f"Unexpected automatic reply status from Graph: {setting.get('status')!r}")
    state = STATE_FROM_GRAPH[status]
    audience = AUDIENCE_FROM_GRAPH.get(str(setting.get("externalAudience", "all")).lower(), ExternalAudience.ALL)

    start = end = None
    # Graph keeps the last schedule even when replies are off; it only means something when scheduled
    if state is AutoReplyState.SCHEDULED:
        start = _from_graph_datetime(setting.get("scheduledStartDateTime"))
        end = _from_graph_datetime(setting.get("scheduledEndDateTime"))

    return AutoReplyConfig(
        state=state,
        internal_message=setting.get("internalReplyMessage") or "",
        external_message=setting.get("externalReplyMessage") or "",
        external_audience=audience,
        start_time=start,
        end_time=end,
    )


class GraphClient:
    """Thin wrapper over an authenticated requests.Session."""

    def __init__(self, http: requests.Session, base_url: str, timeout: float = 30.0):
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _user_url(self, identity: str, suffix: str) -> str:
        return f"{self.base_url}/users/{quote(identity, safe='@')}/{suffix}"

    @staticmethod
    def _check(response: requests.Response, identity: str) -> None:
        if response.ok:
            return
        code = None
        message = response.text
        try:
            err = response.json().get("error", {})
            code = err.get("code")
            message = err.get("message") or message
        except ValueError:
            pass
        raise RemoteError(
            f"{identity}: HTTP {response.status_code} {code or ''} {message}".strip(),
            status_code=response.status_code,
            code=code,
        )

    def get_auto_reply_config(self, identity: str) -> AutoReplyConfig:
        response = self.http.get(
            self._user_url(identity, "mailboxSettings/automaticRepliesSetting"),
            headers={"Prefer": 'outlook.timezone="UTC"'},
            timeout=self.timeout,
        )
        self._check(response, identity)
        return from_graph_payload(response.json())

    def set_auto_reply_config(self, identity: str, config: AutoReplyConfig) -> None:
        response = self.http.patch(
            self._user_url(identity, "mailboxSettings"),
            json=to_graph_payload(config),
            timeout=self.timeout,
        )
        self._check(response, identity)
        LOGGER.debug(f"PATCH mailboxSettings for {identity} -> {response.status_code}")

    def close(self) -> None:
        self.http.close()
