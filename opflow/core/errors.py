"""Error taxonomy for operation execution and value resolution.

OperationError
  ├─ ValidationError             malformed descriptor / too few arguments
  ├─ ConfigurationError          missing file path or context key
  ├─ DataSourceError(kind)       problems with the external date file
  ├─ UnsupportedOperationError   unknown operation type
  ├─ OperationNotImplementedError  recognised but deliberately unimplemented
  └─ ExecutionError              per-operation wrapper (type, index, cause)

ExecutionCancelled is raised when a stop was requested between operations.
It is a control-flow signal, not a failure.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional


class OperationError(Exception):
    """Base class for every engine failure."""


class ValidationError(OperationError):
    pass


class ConfigurationError(OperationError):
    pass


class DataSourceKind(Enum):
    NOT_FOUND        = "NotFound"
    MALFORMED_DATA   = "MalformedData"
    EMPTY_SOURCE     = "EmptySource"
    NO_DATA_FOR_DATE = "NoDataForDate"
    NO_DATA_FOR_KEY  = "NoDataForKey"


_HARD_STOP_KINDS = frozenset({
    DataSourceKind.NO_DATA_FOR_DATE,
    DataSourceKind.NO_DATA_FOR_KEY,
})


class DataSourceError(OperationError):
    """Failure reading or matching the external date-indexed data file."""

    def __init__(self, kind: DataSourceKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind

    @property
    def is_hard_stop(self) -> bool:
        """True for missing operator-authored data (date or node entry)."""
        return self.kind in _HARD_STOP_KINDS

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.args[0]}"


class UnsupportedOperationError(OperationError):
    pass


class OperationNotImplementedError(OperationError, NotImplementedError):
    pass


class ExecutionError(OperationError):
    """Raised by the executor around any failure of a single operation.

    ``cause`` keeps the original exception (also chained as ``__cause__``);
    ``index`` is the position in the submitted batch, or None for a single run.
    """

    def __init__(
        self,
        op_type: str,
        cause:   BaseException,
        index:   Optional[int] = None,
    ) -> None:
        super().__init__(op_type, cause, index)
        self.op_type = op_type
        self.cause   = cause
        self.index   = index

    def __str__(self) -> str:
        where = f" (#{self.index})" if self.index is not None else ""
        return f"Failed to execute operation '{self.op_type}'{where}: {self.cause}"


class ExecutionCancelled(Exception):
    """A stop was requested; the remaining operations were discarded."""
