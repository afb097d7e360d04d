"""Ownership resolution protocol: shared data types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

UNOWNED_SENTINEL = "Unowned"


class OwnershipError(Exception):
    """Base class for errors raised by the ownership engine."""


class UnknownOracleError(OwnershipError):
    """Raised when configuration names an oracle that does not exist."""


class ResolverDisposedError(OwnershipError):
    """Raised when a disposed resolver is asked to start again."""


class Phase(str, Enum):
    """Externally observable resolution phase."""
    IDLE = "idle"
    WORKING = "working"
    ERROR = "error"


class FailureKind(str, Enum):
    """Ways an oracle invocation can fail."""
    PROCESS_FAILURE = "process_failure"
    TIMEOUT = "timeout"
    EMPTY_OUTPUT = "empty_output"


class Outcome(str, Enum):
    """Terminal outcome of one resolution."""
    OWNED = "owned"
    NO_OWNER = "no_owner"
    ERROR = "error"


@dataclass(frozen=True)
class WorkspaceRoot:
    """A workspace folder tracked by the router."""
    name: str
    path: Path


@dataclass(frozen=True)
class Action:
    """A follow-up the presentation layer can offer for a record."""
    title: str
    target: str


@dataclass(frozen=True)
class OwnershipRecord:
    """Validated ownership of a single file."""
    file_path: str
    team_name: str
    team_config_path: str
    actions: tuple[Action, ...] = ()


@dataclass(frozen=True)
class OraclePayload:
    """Raw stdout of a successful oracle invocation."""
    raw: str
    command: str = ""


@dataclass(frozen=True)
class OracleFailure:
    """A typed oracle failure; never raised, always returned."""
    kind: FailureKind
    detail: str
    command: str = ""
    stderr: str = ""
    exit_code: int | None = None


OracleResult = OraclePayload | OracleFailure


@dataclass(frozen=True)
class Resolution:
    """Result of a resolution that was applied to the status."""
    outcome: Outcome
    file_path: str
    record: OwnershipRecord | None = None
    detail: str = ""


@dataclass(frozen=True)
class StatusSnapshot:
    """The single piece of state the presentation layer reads."""
    phase: Phase = Phase.IDLE
    record: OwnershipRecord | None = None
    configured: bool | None = None
    visible: bool = False
    error: str | None = None


@dataclass
class WorkspaceState:
    """Mutable per-workspace state, owned by exactly one resolver."""
    root: WorkspaceRoot
    configured: bool | None = None
    last_record: OwnershipRecord | None = None
    request_id: int = 0
    resolutions: int = 0
    failures: int = 0
