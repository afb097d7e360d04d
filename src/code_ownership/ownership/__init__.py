"""Ownership resolution engine."""

from code_ownership.ownership.context import OwnershipContext, OwnershipInfo
from code_ownership.ownership.oracle import CodeownersOracle, MockOracle, Oracle, ToolOracle, create_oracle
from code_ownership.ownership.protocol import (
    Action,
    Outcome,
    OwnershipRecord,
    Phase,
    Resolution,
    StatusSnapshot,
    WorkspaceRoot,
)
from code_ownership.ownership.router import Router
from code_ownership.ownership.resolver import WorkspaceResolver
from code_ownership.ownership.status import StatusStateMachine

__all__ = [
    "Action",
    "CodeownersOracle",
    "MockOracle",
    "Oracle",
    "Outcome",
    "OwnershipContext",
    "OwnershipInfo",
    "OwnershipRecord",
    "Phase",
    "Resolution",
    "Router",
    "StatusSnapshot",
    "StatusStateMachine",
    "ToolOracle",
    "WorkspaceResolver",
    "WorkspaceRoot",
    "create_oracle",
]
