# results.py - records, runtime status and typed failures shared by every view
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class PackageRecord:
    name: str
    version: str


@dataclass(frozen=True)
class RuntimeStatus:
    available: bool
    version: Optional[str] = None
    path: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def unavailable(cls, error: str, path: Optional[str] = None) -> "RuntimeStatus":
        return cls(available=False, path=path, error=error)


class ErrorKind(Enum):
    RUNTIME_UNAVAILABLE = "RuntimeUnavailable"
    MODULE_NOT_FOUND = "ModuleNotFound"
    EXECUTION_FAILURE = "ExecutionFailure"
    MARSHAL_FAILURE = "MarshalFailure"


@dataclass(frozen=True)
class Error:
    kind: ErrorKind
    message: str

    def __str__(self):
        return f"{self.kind.value}: {self.message}"


@dataclass(frozen=True)
class Ok:
    records: Tuple[PackageRecord, ...]
    total: int

    @property
    def truncated(self) -> bool:
        return self.total > len(self.records)


ListingResult = Union[Ok, Error]

DIAGNOSTIC_NAME = "<diagnostic-name>"


def fallback(error: Error, name: str = DIAGNOSTIC_NAME) -> Ok:
    """Turn a failure into a one-record listing carrying the diagnostic message."""
    return Ok(records=(PackageRecord(name, error.message or error.kind.value),), total=1)
