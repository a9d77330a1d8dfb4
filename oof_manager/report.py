from __future__ import annotations

import datetime as dt
import logging
from pathlib import Path
from typing import List, Optional

import pandas as pd
from tabulate import tabulate

from .errors import InputEmpty, InputNotFound, InputSchemaInvalid, OutputWriteError
from .models import (
    BACKUP_COLUMNS,
    NOT_APPLICABLE,
    RESULT_COLUMNS,
    AutoReplyConfig,
    AutoReplyState,
    BackupRecord,
    ExternalAudience,
    RunOutput,
)

LOGGER = logging.getLogger(__name__)

BACKUP_PREFIX = "OOF_Backup"
DEPLOY_PREFIX = "OOF_Deploy_Results"
RESTORE_PREFIX = "OOF_Restore_Results"

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


def report_path(output_dir, prefix: str, started_at: dt.datetime) -> Path:
    return Path(output_dir) / f"{prefix}_{started_at.strftime(TIMESTAMP_FORMAT)}.csv"


def write_report(output: RunOutput, output_dir, prefix: str, started_at: dt.datetime) -> Path:
    """
    Write the run's records to a new CSV file.

    The file is created exclusively; an existing file with the same name is
    never appended to or replaced.

    Raises:
        OutputWriteError: the file could not be created or written.
    """
    columns = BACKUP_COLUMNS if prefix == BACKUP_PREFIX else RESULT_COLUMNS
    csv_path = report_path(output_dir, prefix, started_at)
    df = pd.DataFrame(output.rows(), columns=columns)
    try:
        csv_path.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(csv_path, index=False, mode="x", encoding="utf-8")
    except OSError as e:
        raise OutputWriteError(
            f"Could not write report {csv_path}: {e}",
            success_count=output.success_count,
            failure_count=output.failure_count,
        )
    LOGGER.info(f"Saved report to CSV: {csv_path}")
    return csv_path


def _parse_time(value: str) -> Optional[dt.datetime]:
    if not value or value == NOT_APPLICABLE:
        return None
    return dt.datetime.fromisoformat(value)


def read_backup_report(path) -> List[BackupRecord]:
    """Load a backup report written by write_report back into records."""
    csv_path = Path(path)
    if not csv_path.is_file():
        raise InputNotFound(f"Backup report not found: {csv_path}")
    try:
        df = pd.read_csv(csv_path, dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError:
        raise InputEmpty(f"Backup report is empty: {csv_path}")
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise InputSchemaInvalid(f"Could not parse backup report {csv_path}: {e}")

    missing = [c for c in BACKUP_COLUMNS if c not in df.columns]
    if missing:
        raise InputSchemaInvalid(f"Backup report {csv_path} is missing columns: {', '.join(missing)}")
    if df.empty:
        raise InputEmpty(f"Backup report has no rows: {csv_path}")

    records = []
    for row in df.to_dict(orient="records"):
        try:
            captured_at = _parse_time(row["CapturedAt"]) or dt.datetime.now().astimezone()
        except ValueError as e:
            raise InputSchemaInvalid(f"Invalid CapturedAt for {row['Identity']}: {e}")
        if row["Error"] or not row["State"]:
            records.append(BackupRecord(identity=row["Identity"], captured_at=captured_at,
                                        error=row["Error"] or "No state recorded"))
            continue
        try:
            config = AutoReplyConfig(
                state=AutoReplyState(row["State"]),
                internal_message=row["InternalMessage"],
                external_message=row["ExternalMessage"],
                external_audience=ExternalAudience(row["ExternalAudience"]),
                start_time=_parse_time(row["StartTime"]),
                end_time=_parse_time(row["EndTime"]),
            )
        except ValueError as e:
            raise InputSchemaInvalid(f"Invalid backup row for {row['Identity']}: {e}")
        records.append(BackupRecord(identity=row["Identity"], captured_at=captured_at, config=config))

    LOGGER.info(f"Loaded {len(records)} rows from backup report {csv_path}")
    return records


def render_summary(action: str, output: RunOutput, csv_path: Optional[Path] = None) -> str:
    rows = [
        ["Action", action],
        ["Mailboxes", output.total],
        ["Succeeded", output.success_count],
        ["Failed", output.failure_count],
    ]
    if csv_path is not None:
        rows.append(["Report", str(csv_path)])
    return tabulate(rows, tablefmt="simple")
