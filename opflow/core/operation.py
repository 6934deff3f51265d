"""Operation descriptor dataclasses.

OperationDescriptor - one declarative automation step (a diagram node's data)
DateValues          - per-date override payload inside a descriptor's date map
ResolvedValues      - concrete parameters produced by value_source.resolve()

Descriptors are frozen; one execution pass never mutates them.  Value
lists are stored as tuples so ``resolve()`` can hand them out as-is.

JSON keys
---------
Both the PascalCase keys written by the diagram editor (``IntValues``,
``DelayBefore``, …) and camelCase keys (``intValues``, ``delayBefore``, …)
are accepted by ``from_dict``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from opflow.core.errors import ValidationError

VALUE_SOURCE_NODE      = "node"
VALUE_SOURCE_DATE_MAP  = "date-map"
VALUE_SOURCE_DATE_JSON = "date-json"

VALUE_SOURCES = frozenset({
    VALUE_SOURCE_NODE, VALUE_SOURCE_DATE_MAP, VALUE_SOURCE_DATE_JSON,
})


def node_identifier(name: str, node_id: Any) -> str:
    """Context key used to look a node up in a date-json file."""
    return f"{name}-{node_id}"


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

def _camel(key: str) -> str:
    return key[:1].lower() + key[1:]


def _pick(data: Mapping[str, Any], key: str, default: Any = None) -> Any:
    """Return data[key] or data[camelCase(key)], else default."""
    if key in data:
        return data[key]
    return data.get(_camel(key), default)


def _int_list(raw: Any, what: str) -> tuple[int, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, (list, tuple)):
        raise ValidationError(f"{what} must be a list of integers")
    out = []
    for v in raw:
        if isinstance(v, bool) or not isinstance(v, int):
            raise ValidationError(f"{what} must contain integers only, got {v!r}")
        out.append(v)
    return tuple(out)


def _str_list(raw: Any, what: str) -> tuple[str, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, (list, tuple)):
        raise ValidationError(f"{what} must be a list of strings")
    for v in raw:
        if not isinstance(v, str):
            raise ValidationError(f"{what} must contain strings only, got {v!r}")
    return tuple(raw)


def _non_negative_int(raw: Any, what: str) -> int:
    if raw is None:
        return 0
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ValidationError(f"{what} must be an integer (ms), got {raw!r}")
    if raw < 0:
        raise ValidationError(f"{what} cannot be negative")
    return raw


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ResolvedValues:
    int_values:    tuple[int, ...] = ()
    string_values: tuple[str, ...] = ()


@dataclass(frozen=True)
class DateValues:
    """Override payload for a single date in a descriptor's date map."""
    int_values:    Optional[tuple[int, ...]] = None
    string_values: Optional[tuple[str, ...]] = None

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "DateValues":
        if not isinstance(data, Mapping):
            raise ValidationError("DateMap entries must be objects")
        ints = _pick(data, "IntValues")
        strs = _pick(data, "StringValues")
        return DateValues(
            int_values    = None if ints is None else _int_list(ints, "DateMap IntValues"),
            string_values = None if strs is None else _str_list(strs, "DateMap StringValues"),
        )


@dataclass(frozen=True)
class OperationDescriptor:
    """One automation step.

    type               : action tag, case-insensitive (mouse_move, wait, …)
    priority           : ascending execution order; ties keep input order
    delay_before/after : milliseconds suspended around the action
    value_source       : "node" | "date-map" | "date-json"
    date_map           : "YYYY-MM-DD" → DateValues
    date_json_file_path: external date-indexed data file for "date-json"
    """
    type:                str
    enabled:             bool                   = True
    priority:            int                    = 0
    delay_before:        int                    = 0
    delay_after:         int                    = 0
    int_values:          tuple[int, ...]        = ()
    string_values:       tuple[str, ...]        = ()
    custom_code:         Optional[str]          = None
    value_source:        str                    = VALUE_SOURCE_NODE
    date_map:            Mapping[str, DateValues] = field(default_factory=dict)
    date_json_file_path: Optional[str]          = None

    @property
    def kind(self) -> str:
        """Normalised (lower-case) action tag."""
        return (self.type or "").strip().lower()

    @staticmethod
    def from_dict(data: Mapping[str, Any], default_type: str = "") -> "OperationDescriptor":
        """Build a descriptor from node JSON data.

        ``default_type`` is used when the data has no Type of its own
        (diagram nodes store the type on the node, not in its data).
        """
        if not isinstance(data, Mapping):
            raise ValidationError("Operation data must be an object")

        op_type = _pick(data, "Type", default_type) or default_type
        if not isinstance(op_type, str):
            raise ValidationError(f"Type must be a string, got {op_type!r}")

        priority = _pick(data, "Priority", 0)
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise ValidationError(f"Priority must be an integer, got {priority!r}")

        enabled = _pick(data, "Enabled")
        if enabled is None:
            enabled = True
        elif not isinstance(enabled, bool):
            raise ValidationError(f"Enabled must be a boolean, got {enabled!r}")

        raw_map = _pick(data, "DateMap") or {}
        if not isinstance(raw_map, Mapping):
            raise ValidationError("DateMap must be an object keyed by YYYY-MM-DD")
        date_map = {str(k): DateValues.from_dict(v) for k, v in raw_map.items()}

        custom_code = _pick(data, "CustomCode")
        json_path   = _pick(data, "DateJsonFilePath")

        return OperationDescriptor(
            type                = op_type,
            enabled             = enabled,
            priority            = priority,
            delay_before        = _non_negative_int(_pick(data, "DelayBefore"), "DelayBefore"),
            delay_after         = _non_negative_int(_pick(data, "DelayAfter"), "DelayAfter"),
            int_values          = _int_list(_pick(data, "IntValues"), "IntValues"),
            string_values       = _str_list(_pick(data, "StringValues"), "StringValues"),
            custom_code         = None if custom_code is None else str(custom_code),
            value_source        = str(_pick(data, "ValueSource") or VALUE_SOURCE_NODE),
            date_map            = date_map,
            date_json_file_path = str(json_path) if json_path else None,
        )
