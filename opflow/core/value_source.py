"""Value resolution - turns a descriptor into concrete parameters.

Strategies (selected by ``descriptor.value_source``, case-insensitive)
---------------------------------------------------------------------
node      : the descriptor's own IntValues / StringValues.
date-map  : today's entry in the descriptor's DateMap, else node values.
date-json : today's entry in an external JSON file, looked up by the
            caller-supplied context key ("<NodeName>-<NodeID>").
            Missing date / key entries are hard stops.

Unknown value sources fall back to ``node``.

The data file is re-read on every call; nothing is cached.
"""
from __future__ import annotations

import datetime
import json
from pathlib import Path
from typing import Any, Callable, Optional

from opflow.core.constants import DATE_FORMAT
from opflow.core.errors import ConfigurationError, DataSourceError, DataSourceKind
from opflow.core.operation import (
    OperationDescriptor, ResolvedValues,
    VALUE_SOURCE_DATE_MAP, VALUE_SOURCE_DATE_JSON,
)

Clock = Callable[[], datetime.date]


def today_string(clock: Clock = datetime.date.today) -> str:
    return clock().strftime(DATE_FORMAT)


def resolve(
    descriptor:  OperationDescriptor,
    context_key: Optional[str] = None,
    clock:       Clock = datetime.date.today,
    base_dir:    Optional[Path] = None,
) -> ResolvedValues:
    """Resolve the effective parameters for one descriptor.

    ``base_dir`` anchors a relative ``date_json_file_path``.
    """
    source = (descriptor.value_source or "").strip().lower()
    if source == VALUE_SOURCE_DATE_MAP:
        return _from_date_map(descriptor, clock)
    if source == VALUE_SOURCE_DATE_JSON:
        if not context_key:
            raise ConfigurationError("context key required for date-json value source")
        return _from_date_json(descriptor, context_key, clock, base_dir)
    return _from_node(descriptor)


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

def _from_node(descriptor: OperationDescriptor) -> ResolvedValues:
    return ResolvedValues(
        int_values    = tuple(descriptor.int_values or ()),
        string_values = tuple(descriptor.string_values or ()),
    )


def _from_date_map(descriptor: OperationDescriptor, clock: Clock) -> ResolvedValues:
    if not descriptor.date_map:
        return _from_node(descriptor)
    entry = descriptor.date_map.get(today_string(clock))
    if entry is None:
        return _from_node(descriptor)
    return ResolvedValues(
        int_values    = tuple(entry.int_values or ()),
        string_values = tuple(entry.string_values or ()),
    )


def _from_date_json(
    descriptor:  OperationDescriptor,
    context_key: str,
    clock:       Clock,
    base_dir:    Optional[Path],
) -> ResolvedValues:
    if not descriptor.date_json_file_path:
        raise ConfigurationError(
            f"DateJsonFilePath is not set for node '{context_key}'"
        )

    path = Path(descriptor.date_json_file_path)
    if base_dir is not None and not path.is_absolute():
        path = base_dir / path
    if not path.is_file():
        raise DataSourceError(
            DataSourceKind.NOT_FOUND,
            f"Date JSON file not found: {path} (node: {context_key})",
        )

    try:
        entries = json.loads(path.read_text(encoding="utf-8"))
    except (ValueError, UnicodeDecodeError) as exc:
        raise DataSourceError(
            DataSourceKind.MALFORMED_DATA,
            f"Invalid JSON in {path}: {exc}",
        ) from exc

    if not isinstance(entries, list):
        raise DataSourceError(
            DataSourceKind.MALFORMED_DATA,
            f"{path} must contain a JSON array of date objects",
        )
    if not entries:
        raise DataSourceError(
            DataSourceKind.EMPTY_SOURCE,
            f"Date JSON file is empty: {path} (node: {context_key})",
        )

    today = today_string(clock)
    day = _find_date_entry(entries, today, path)
    if day is None:
        raise DataSourceError(
            DataSourceKind.NO_DATA_FOR_DATE,
            f"No data found for date {today} in {path} (node: {context_key}). "
            "Execution stopped; add data for this date.",
        )

    if context_key not in day:
        raise DataSourceError(
            DataSourceKind.NO_DATA_FOR_KEY,
            f"No data found for node '{context_key}' on {today} in {path}. "
            "Execution stopped; add this node's data.",
        )
    node_data = day[context_key]
    if not isinstance(node_data, dict):
        raise DataSourceError(
            DataSourceKind.MALFORMED_DATA,
            f"Data for node '{context_key}' on {today} must be an object",
        )

    return ResolvedValues(
        int_values    = _json_ints(_field(node_data, "IntValues"), context_key),
        string_values = _json_strs(_field(node_data, "StringValues"), context_key),
    )


# ---------------------------------------------------------------------------
# JSON helpers
# ---------------------------------------------------------------------------

def _find_date_entry(entries: list, today: str, path: Path) -> Optional[dict]:
    for entry in entries:
        if not isinstance(entry, dict):
            raise DataSourceError(
                DataSourceKind.MALFORMED_DATA,
                f"{path} contains a non-object entry: {entry!r}",
            )
        if entry.get("date") == today:
            return entry
    return None


def _field(data: dict, key: str) -> Any:
    if key in data:
        return data[key]
    return data.get(key[:1].lower() + key[1:])


def _json_ints(raw: Any, context_key: str) -> tuple[int, ...]:
    # absent or non-array fields degrade to empty
    if not isinstance(raw, list):
        return ()
    for v in raw:
        if isinstance(v, bool) or not isinstance(v, int):
            raise DataSourceError(
                DataSourceKind.MALFORMED_DATA,
                f"IntValues for '{context_key}' must be integers, got {v!r}",
            )
    return tuple(raw)


def _json_strs(raw: Any, context_key: str) -> tuple[str, ...]:
    if not isinstance(raw, list):
        return ()
    for v in raw:
        if not isinstance(v, str):
            raise DataSourceError(
                DataSourceKind.MALFORMED_DATA,
                f"StringValues for '{context_key}' must be strings, got {v!r}",
            )
    return tuple(raw)
