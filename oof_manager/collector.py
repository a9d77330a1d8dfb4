"""
Collects the automatic-reply configuration for a SetOOF run.

The parse_* / build_* functions are pure (answers in, config out). Prompting
lives in the prompter classes so the same flow runs from a terminal or from
an answers file.
"""
from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

import pandas as pd

from .errors import DateParseError, InvalidState, MissingAnswer, RunCancelled
from .models import AutoReplyConfig, AutoReplyState, ExternalAudience, format_timestamp

LOGGER = logging.getLogger(__name__)

PREVIEW_LENGTH = 100


@dataclass(frozen=True)
class ConfigAnswers:
    state: str
    internal_message: str = ""
    external_message: str = ""
    external_audience: str = "All"
    start_date: Optional[str] = None
    start_time: Optional[str] = None
    end_date: Optional[str] = None
    end_time: Optional[str] = None


def parse_state(text: str) -> AutoReplyState:
    # Exact, case-sensitive match
    for state in AutoReplyState:
        if text == state.value:
            return state
    raise InvalidState(f"Invalid state '{text}'. Expected one of: Scheduled, Enabled, Disabled")


def parse_audience(text: str) -> Tuple[ExternalAudience, bool]:
    """Return (audience, coerced). Unknown answers become All rather than failing."""
    for audience in ExternalAudience:
        if text == audience.value:
            return audience, False
    LOGGER.warning(f"Unrecognized external audience '{text}'. Defaulting to All.")
    return ExternalAudience.ALL, True


def parse_local_timestamp(date_text: Optional[str], time_text: Optional[str]) -> dt.datetime:
    raw = f"{date_text or ''} {time_text or ''}".strip()
    try:
        ts = pd.to_datetime(raw)
    except (ValueError, TypeError, OverflowError) as e:
        raise DateParseError(f"Could not parse date/time '{raw}': {e}")
    if pd.isna(ts):
        raise DateParseError(f"Could not parse date/time '{raw}'")
    # Naive input is local wall-clock time
    return ts.to_pydatetime().astimezone()


def parse_schedule(start_date, start_time, end_date, end_time) -> Tuple[dt.datetime, dt.datetime]:
    start = parse_local_timestamp(start_date, start_time)
    end = parse_local_timestamp(end_date, end_time)
    # Window validation (end after start) happens in AutoReplyConfig
    AutoReplyConfig(state=AutoReplyState.SCHEDULED, start_time=start, end_time=end)
    return start, end


def build_auto_reply_config(answers: ConfigAnswers) -> AutoReplyConfig:
    state = parse_state(answers.state)
    start = end = None
    if state is AutoReplyState.SCHEDULED:
        start, end = parse_schedule(answers.start_date, answers.start_time, answers.end_date, answers.end_time)
    audience, _ = parse_audience(answers.external_audience)
    return AutoReplyConfig(
        state=state,
        internal_message=answers.internal_message,
        external_message=answers.external_message,
        external_audience=audience,
        start_time=start,
        end_time=end,
    )


def timezone_label(*stamps: dt.datetime) -> str:
    """Zone abbreviation of each timestamp, e.g. "CET" or "CET -> CEST" across a DST change."""
    labels = []
    for stamp in stamps:
        label = stamp.tzname() or "local time"
        if label not in labels:
            labels.append(label)
    return " -> ".join(labels)


class ConsolePrompter:
    """Asks the operator on the terminal."""

    def __init__(self, input_func: Optional[Callable[[str], str]] = None,
                 output: Optional[Callable[[str], None]] = None, assume_yes: bool = False):
        self.input_func = input_func or input
        self.output = output or print
        self.assume_yes = assume_yes

    def ask(self, key: str, prompt: str) -> str:
        return self.input_func(prompt)

    def confirm(self, prompt: str) -> bool:
        if self.assume_yes:
            self.output(f"{prompt} Y (assumed)")
            return True
        return self.input_func(f"{prompt} (Y/N): ") in ("Y", "y")

    def show(self, text: str) -> None:
        self.output(text)


class AnswersPrompter(ConsolePrompter):
    """Reads answers from a mapping (answers YAML) instead of the terminal."""

    def __init__(self, answers: Dict[str, Any], **kwargs):
        super().__init__(**kwargs)
        self.answers = answers

    def ask(self, key: str, prompt: str) -> str:
        if self.answers.get(key) is None:
            raise MissingAnswer(f"Answers file has no value for '{key}'")
        return str(self.answers[key])


def read_message_file(path) -> Optional[str]:
    if not path:
        return None
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        LOGGER.debug(f"Could not read message file {path}: {e}")
        return None


def load_message(label: str, key: str, configured_path, fallback_name: str, prompter) -> str:
    """Configured file, then the fallback file in the working directory, then the operator."""
    candidates = [configured_path, Path.cwd() / fallback_name if fallback_name else None]
    for candidate in candidates:
        text = read_message_file(candidate)
        if text is None:
            if candidate:
                LOGGER.info(f"{label} message file not found or unreadable: {candidate}")
            continue
        prompter.show(f"{label} message loaded from {candidate}. Preview: {text[:PREVIEW_LENGTH]}")
        return text

    LOGGER.warning(f"No {label.lower()} message file available, asking the operator.")
    return prompter.ask(key, f"Enter the {label.lower()} auto-reply message: ")


def collect_auto_reply_config(prompter, internal_path=None, external_path=None,
                              internal_fallback: str = "InternalMessage.html",
                              external_fallback: str = "ExternalMessage.html",
                              mailbox_count: Optional[int] = None) -> AutoReplyConfig:
    """
    Walk the operator through state, schedule, messages and audience.

    Raises:
        InvalidState, DateParseError, InvalidSchedule, MissingAnswer: bad answers.
        RunCancelled: the operator declined a confirmation.
    """
    state = parse_state(prompter.ask("state", "Auto-reply state (Scheduled/Enabled/Disabled): "))

    start = end = None
    if state is AutoReplyState.SCHEDULED:
        start, end = parse_schedule(
            prompter.ask("start_date", "Start date (e.g. 2025-06-01): "),
            prompter.ask("start_time", "Start time (e.g. 09:00 AM): "),
            prompter.ask("end_date", "End date (e.g. 2025-06-15): "),
            prompter.ask("end_time", "End time (e.g. 05:00 PM): "),
        )
        prompter.show(f"Schedule: {format_timestamp(start)} -> {format_timestamp(end)} ({timezone_label(start, end)})")
        if not prompter.confirm("Is this schedule correct?"):
            raise RunCancelled("Schedule not confirmed. No changes were made.")

    internal = load_message("Internal", "internal_message", internal_path, internal_fallback, prompter)
    external = load_message("External", "external_message", external_path, external_fallback, prompter)

    audience, coerced = parse_audience(prompter.ask("external_audience", "External audience (None/Known/All): "))
    if coerced:
        prompter.show("Unrecognized external audience, using All.")

    config = AutoReplyConfig(
        state=state,
        internal_message=internal,
        external_message=external,
        external_audience=audience,
        start_time=start,
        end_time=end,
    )

    target = f"{mailbox_count} mailbox(es)" if mailbox_count is not None else "the listed mailboxes"
    prompter.show(f"State: {state.value} | External audience: {audience.value}")
    if not prompter.confirm(f"Apply this auto-reply configuration to {target}?"):
        raise RunCancelled("Operation cancelled by operator. No changes were made.")
    return config
