from __future__ import annotations

import logging
from pathlib import Path
from typing import List

import pandas as pd

from .errors import InputEmpty, InputNotFound, InputSchemaInvalid

LOGGER = logging.getLogger(__name__)

# Checked in order; the first column present is used exclusively.
IDENTITY_COLUMNS = ("UserPrincipalName", "Email")


def load_identities(path, delimiter: str = ",") -> List[str]:
    """
    Read the mailbox identity list.

    Args:
        path: CSV (or other delimited text) file with a header row.
        delimiter: Field separator.

    Returns:
        list: One identity per data row, in file order, exactly as written.
    """
    input_path = Path(path)
    if not input_path.is_file():
        raise InputNotFound(f"Input file not found: {input_path}")

    try:
        # Everything as str, no NA coercion: identities pass through untouched
        df = pd.read_csv(input_path, sep=delimiter, dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError:
        raise InputEmpty(f"Input file is empty: {input_path}")
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise InputSchemaInvalid(f"Could not parse input file {input_path}: {e}")
    except OSError as e:
        raise InputNotFound(f"Input file could not be read: {input_path} ({e})")

    if df.empty:
        raise InputEmpty(f"Input file has no data rows: {input_path}")

    column = next((c for c in IDENTITY_COLUMNS if c in df.columns), None)
    if column is None:
        raise InputSchemaInvalid(
            f"Input file {input_path} needs a 'UserPrincipalName' or 'Email' column "
            f"(found: {', '.join(map(str, df.columns))})"
        )

    identities = df[column].tolist()
    LOGGER.info(f"Loaded {len(identities)} identities from {input_path} (column '{column}')")
    return identities
