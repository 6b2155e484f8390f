"""
Record parser: raw comma-delimited text to typed, read-only records.

The input format is deliberately minimal: header line first, one record per
line, no quoting and no escaping of embedded commas.
"""

import logging
import math
from pathlib import Path
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple, Union

import numpy as np
import pandas as pd

from sessioncube.cube.schema import CubeConfig

logger = logging.getLogger(__name__)

Value = Union[int, float, str]
Record = Mapping[str, Value]

DELIMITER = ","


def plain_number(num, text: Optional[str] = None) -> Union[int, float]:
    """
    Convert a numpy scalar to int when integral, float otherwise.

    Integer scalars and integer-looking text are converted exactly, so ids
    and counters beyond float precision survive unchanged.
    """
    if text is not None:
        try:
            return int(text)
        except ValueError:
            pass
    if isinstance(num, (int, np.integer)):
        return int(num)
    value = float(num)
    return int(value) if value.is_integer() else value


def value_text(value: Value) -> str:
    """Text form of a record value; integral numbers render without '.0'."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def split_rows(raw_text: str) -> Tuple[List[str], List[List[str]]]:
    """
    Split raw text into a header and positional rows.

    Blank lines are skipped. Rows shorter than the header are padded with
    empty text; longer rows are truncated to the header length.

    Returns:
        (headers, rows) where every row has exactly len(headers) values
    """
    headers: List[str] = []
    rows: List[List[str]] = []

    for line_no, line in enumerate(raw_text.splitlines(), 1):
        if not line.strip():
            continue
        values = [v.strip() for v in line.split(DELIMITER)]
        if not headers:
            headers = values
            continue

        if len(values) < len(headers):
            logger.debug(
                f"Line {line_no}: {len(values)} of {len(headers)} fields, "
                f"padding missing trailing fields with empty text"
            )
            values.extend([""] * (len(headers) - len(values)))
        elif len(values) > len(headers):
            logger.debug(
                f"Line {line_no}: {len(values)} fields for {len(headers)} headers, "
                f"dropping the extra values"
            )
            values = values[:len(headers)]
        rows.append(values)

    return headers, rows


def _coerce_column(raw: pd.Series, name: str, config: CubeConfig) -> List[Value]:
    """Type one column: numbers where they parse, text otherwise."""
    is_duration = name == config.duration_field
    if name in config.text_fields and not is_duration:
        return list(raw)

    parsed = pd.to_numeric(raw, errors="coerce")
    values: List[Value] = []
    for text, num in zip(raw, parsed):
        if not pd.isna(num) and math.isfinite(num):
            values.append(plain_number(num, text))
        elif is_duration:
            values.append(0)
        else:
            values.append(text)
    return values


def parse_records(raw_text: str, config: Optional[CubeConfig] = None) -> List[Record]:
    """
    Parse delimited text into an ordered list of records.

    The entity and time-of-day fields stay text; every other field becomes a
    number when the whole value parses as one. The duration field is always a
    number and falls back to 0.

    Args:
        raw_text: Header-first comma-delimited text
        config: Cube configuration naming the special fields

    Returns:
        Records in input order, each a read-only mapping
    """
    config = config or CubeConfig()
    headers, rows = split_rows(raw_text)
    if not rows:
        return []

    # Positional columns so duplicate header names cannot collide in pandas
    frame = pd.DataFrame(rows, columns=range(len(headers)), dtype=object)
    columns = [
        _coerce_column(frame[pos], name, config)
        for pos, name in enumerate(headers)
    ]
    fields = list(headers)
    if config.duration_field not in fields:
        fields.append(config.duration_field)
        columns.append([0] * len(rows))

    records: List[Record] = []
    for row_values in zip(*columns):
        records.append(MappingProxyType(dict(zip(fields, row_values))))

    logger.debug(f"Parsed {len(records)} records with fields {headers}")
    return records


def load_records(filepath: Union[str, Path],
                 config: Optional[CubeConfig] = None) -> List[Record]:
    """Read a file and parse it with parse_records."""
    return parse_records(Path(filepath).read_text(encoding="utf-8"), config)
