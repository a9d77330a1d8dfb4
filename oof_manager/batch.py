from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from functools import reduce
from typing import Any, Callable, Iterable, Optional, Sequence, Tuple

from .models import AutoReplyConfig, BackupRecord, OperationResult, Record, RunOutput, Status

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Outcome:
    """Result of the single remote call made for one identity."""
    identity: str
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, identity: str, value: Any = None) -> "Outcome":
        return cls(identity=identity, value=value)

    @classmethod
    def failure(cls, identity: str, error: str) -> "Outcome":
        return cls(identity=identity, error=error)


def attempt(identity: str, call: Callable[[], Any]) -> Outcome:
    """Run one remote call; any exception becomes a failed Outcome."""
    try:
        return Outcome.success(identity, call())
    except Exception as e:
        LOGGER.error(f"{identity}: {e}")
        return Outcome.failure(identity, str(e) or e.__class__.__name__)


def _accumulate(output: RunOutput, item: Tuple[Record, bool]) -> RunOutput:
    record, ok = item
    return RunOutput(
        records=output.records + (record,),
        success_count=output.success_count + (1 if ok else 0),
        failure_count=output.failure_count + (0 if ok else 1),
    )


def run_batch(items: Sequence[Any], identity_of: Callable[[Any], str], call: Callable[[Any], Any],
              to_record: Callable[[Any, Outcome], Record]) -> RunOutput:
    """
    Process items strictly in order, one remote call each.

    Failures are recorded and counted; they never stop the batch.
    """
    total = len(items)

    def step(indexed):
        index, item = indexed
        identity = identity_of(item)
        LOGGER.info(f"[{index}/{total}] Processing {identity}")
        outcome = attempt(identity, lambda: call(item))
        return to_record(item, outcome), outcome.ok

    output = reduce(_accumulate, map(step, enumerate(items, start=1)), RunOutput())
    LOGGER.info(f"Batch finished: {output.success_count} succeeded, {output.failure_count} failed.")
    return output


def _result(config: Optional[AutoReplyConfig], outcome: Outcome) -> OperationResult:
    if outcome.ok:
        return OperationResult(outcome.identity, config, Status.SUCCESS)
    return OperationResult(outcome.identity, config, Status.FAILURE, outcome.error)


def backup(client, identities: Sequence[str], now: Optional[Callable[[], dt.datetime]] = None) -> RunOutput:
    now = now or (lambda: dt.datetime.now().astimezone())

    def to_record(identity: str, outcome: Outcome) -> BackupRecord:
        if outcome.ok:
            return BackupRecord(identity=identity, captured_at=now(), config=outcome.value)
        return BackupRecord(identity=identity, captured_at=now(), error=outcome.error)

    return run_batch(identities, str, client.get_auto_reply_config, to_record)


def deploy(client, identities: Sequence[str], config: AutoReplyConfig) -> RunOutput:
    return run_batch(
        identities,
        str,
        lambda identity: client.set_auto_reply_config(identity, config),
        lambda identity, outcome: _result(config, outcome),
    )


def restore(client, records: Iterable[BackupRecord]) -> RunOutput:
    """
    Push each backed-up configuration back to its own mailbox.

    Rows that failed at backup time have nothing to push: they are reported as
    failures without a remote call, so every row of the backup is accounted for.
    """
    def push(record: BackupRecord):
        if not record.ok:
            raise ValueError(f"skipped: no configuration in backup ({record.error})")
        return client.set_auto_reply_config(record.identity, record.config)

    return run_batch(
        list(records),
        lambda record: record.identity,
        push,
        lambda record, outcome: _result(record.config, outcome),
    )
