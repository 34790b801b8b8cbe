"""Run history data models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from adsweep.actions.models import ActionEvent
from adsweep.lifecycle.models import AccountKind


class RunRecord(BaseModel):
    """Summary of one applied sweep.

    Attributes:
        timestamp: When the sweep ran.
        kind: Account kind swept.
        evaluated: Number of accounts classified.
        actions: Count of results per action label.
        events: Operations that were attempted.
        aborted: Whether removals were aborted.
        abort_reason: Explanation recorded with ``aborted``.
    """

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    kind: AccountKind
    evaluated: int = 0
    actions: Dict[str, int] = Field(default_factory=dict)
    events: List[ActionEvent] = Field(default_factory=list)
    aborted: bool = False
    abort_reason: Optional[str] = None


class RunHistory(BaseModel):
    """Persisted list of run records, oldest first."""

    runs: List[RunRecord] = Field(default_factory=list)


__all__ = ["RunRecord", "RunHistory"]
