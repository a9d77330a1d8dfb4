from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union

from .errors import InvalidSchedule

NOT_APPLICABLE = "N/A"


class AutoReplyState(str, Enum):
    DISABLED = "Disabled"
    ENABLED = "Enabled"
    SCHEDULED = "Scheduled"


class ExternalAudience(str, Enum):
    NONE = "None"
    KNOWN = "Known"
    ALL = "All"


class Status(str, Enum):
    SUCCESS = "Success"
    FAILURE = "Failure"


@dataclass(frozen=True)
class AutoReplyConfig:
    state: AutoReplyState
    internal_message: str = ""
    external_message: str = ""
    external_audience: ExternalAudience = ExternalAudience.ALL
    start_time: Optional[dt.datetime] = None
    end_time: Optional[dt.datetime] = None

    def __post_init__(self):
        has_window = self.start_time is not None or self.end_time is not None
        if self.state is AutoReplyState.SCHEDULED:
            if self.start_time is None or self.end_time is None:
                raise InvalidSchedule("Scheduled auto-reply needs both a start and an end time")
            if self.end_time <= self.start_time:
                raise InvalidSchedule(
                    f"End time {format_timestamp(self.end_time)} must be after "
                    f"start time {format_timestamp(self.start_time)}"
                )
        elif has_window:
            raise InvalidSchedule(f"Start/end times are only allowed for the Scheduled state, not {self.state.value}")

    @property
    def is_scheduled(self) -> bool:
        return self.state is AutoReplyState.SCHEDULED


@dataclass(frozen=True)
class BackupRecord:
    identity: str
    captured_at: dt.datetime
    config: Optional[AutoReplyConfig] = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.config is not None and not self.error

    def as_row(self) -> dict:
        cfg = self.config
        if cfg is None:
            return {
                "Identity": self.identity,
                "State": "",
                "StartTime": "",
                "EndTime": "",
                "InternalMessage": "",
                "ExternalMessage": "",
                "ExternalAudience": "",
                "CapturedAt": format_timestamp(self.captured_at),
                "Error": self.error,
            }
        return {
            "Identity": self.identity,
            "State": cfg.state.value,
            "StartTime": format_window(cfg, cfg.start_time),
            "EndTime": format_window(cfg, cfg.end_time),
            "InternalMessage": cfg.internal_message,
            "ExternalMessage": cfg.external_message,
            "ExternalAudience": cfg.external_audience.value,
            "CapturedAt": format_timestamp(self.captured_at),
            "Error": self.error,
        }


@dataclass(frozen=True)
class OperationResult:
    identity: str
    config: Optional[AutoReplyConfig]
    status: Status
    detail: str = ""

    def as_row(self) -> dict:
        cfg = self.config
        # No config when a restore row had nothing to push
        return {
            "Identity": self.identity,
            "State": cfg.state.value if cfg else "",
            "StartTime": format_window(cfg, cfg.start_time) if cfg else "",
            "EndTime": format_window(cfg, cfg.end_time) if cfg else "",
            "ExternalAudience": cfg.external_audience.value if cfg else "",
            "Status": self.status.value,
            "Detail": self.detail,
        }


Record = Union[BackupRecord, OperationResult]


@dataclass(frozen=True)
class RunOutput:
    records: Tuple[Record, ...] = field(default_factory=tuple)
    success_count: int = 0
    failure_count: int = 0

    @property
    def total(self) -> int:
        return self.success_count + self.failure_count

    def rows(self) -> list:
        return [r.as_row() for r in self.records]


BACKUP_COLUMNS = [
    "Identity", "State", "StartTime", "EndTime", "InternalMessage",
    "ExternalMessage", "ExternalAudience", "CapturedAt", "Error",
]
RESULT_COLUMNS = ["Identity", "State", "StartTime", "EndTime", "ExternalAudience", "Status", "Detail"]


def format_timestamp(value: Optional[dt.datetime]) -> str:
    if value is None:
        return ""
    return value.isoformat(timespec="seconds")


def format_window(cfg: AutoReplyConfig, value: Optional[dt.datetime]) -> str:
    # Non-scheduled configs never carry a window; say so explicitly in reports.
    if not cfg.is_scheduled:
        return NOT_APPLICABLE
    return format_timestamp(value)
