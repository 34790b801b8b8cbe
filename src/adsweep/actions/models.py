"""Action plan data models."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from adsweep.lifecycle.models import AccountKind


class DisableOperation(BaseModel):
    """Disable an account and stamp its description.

    Attributes:
        kind: Account kind.
        name: Account name.
        description: Description written before disabling.
        previous_description: Description found on the account.
    """

    kind: AccountKind
    name: str
    description: str
    previous_description: str = ""


class RemoveOperation(BaseModel):
    """Archive and/or delete an account.

    Attributes:
        kind: Account kind.
        name: Account name.
        archive: Whether the object is exported before anything else happens.
        delete: Whether the object is deleted (after a successful archive).
    """

    kind: AccountKind
    name: str
    archive: bool = False
    delete: bool = True


class ActionPlan(BaseModel):
    """Operations derived from one classification run."""

    kind: AccountKind
    disables: List[DisableOperation] = Field(default_factory=list)
    removals: List[RemoveOperation] = Field(default_factory=list)
    archive_destination: Optional[str] = None
    notes: List[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.disables and not self.removals


class ActionEvent(BaseModel):
    """Outcome of one attempted operation."""

    timestamp: datetime
    kind: AccountKind
    name: str
    operation: Literal["disable", "archive", "delete"]
    status: Literal["applied", "failed", "aborted"]
    detail: Optional[str] = None
    archive_file: Optional[str] = None


class ExecutionReport(BaseModel):
    """Events produced by applying a plan.

    Attributes:
        dry_run: True when nothing was executed.
        events: Per-account outcomes in execution order.
        aborted: True when the removal step stopped early, either because the
            archive destination was unreachable or because an archive failed.
        abort_reason: Explanation recorded with ``aborted``.
    """

    dry_run: bool = False
    events: List[ActionEvent] = Field(default_factory=list)
    aborted: bool = False
    abort_reason: Optional[str] = None

    @property
    def failures(self) -> list[ActionEvent]:
        return [event for event in self.events if event.status == "failed"]

    def count(self, operation: str, status: str = "applied") -> int:
        """Return how many events match ``operation`` and ``status``."""
        return sum(
            1 for event in self.events if event.operation == operation and event.status == status
        )
