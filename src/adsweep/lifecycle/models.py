"""Lifecycle data models shared by the classifier, planner and reports."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class AccountKind(str, Enum):
    """Kind of directory object being evaluated."""

    COMPUTER = "computer"
    USER = "user"


class Action(str, Enum):
    """Lifecycle action assigned to an account."""

    NONE = "None"
    DISABLE = "Disable"
    WAIT = "Wait"
    REMOVE = "Remove"
    KEEP = "Keep"
    SVC = "Svc"
    NEW = "New"


class AccountSnapshot(BaseModel):
    """Point-in-time view of a directory account.

    Attributes:
        kind: Computer or user.
        name: Computer name or sAMAccountName.
        enabled: Whether the account is enabled.
        last_logon_date: Last replicated logon; ``None`` when never recorded.
        when_created: Creation timestamp.
        operating_system: Operating system string reported by computers.
        description: Free-text description field.
        distinguished_name: Full distinguished name of the object.
    """

    model_config = ConfigDict(frozen=True)

    kind: AccountKind
    name: str
    enabled: bool
    last_logon_date: Optional[datetime] = None
    when_created: Optional[datetime] = None
    operating_system: Optional[str] = None
    description: str = ""
    distinguished_name: Optional[str] = None

    @property
    def organizational_unit(self) -> str:
        """Return the parent container of the object, or an empty string."""
        if not self.distinguished_name:
            return ""
        _, _, parent = self.distinguished_name.partition(",")
        return parent


class ClassificationResult(BaseModel):
    """Action assigned to one snapshot.

    Attributes:
        snapshot: Evaluated account snapshot.
        action: Lifecycle action chosen by the classifier.
    """

    model_config = ConfigDict(frozen=True)

    snapshot: AccountSnapshot
    action: Action

    @property
    def name(self) -> str:
        return self.snapshot.name

    @property
    def kind(self) -> AccountKind:
        return self.snapshot.kind

    @property
    def enabled(self) -> bool:
        return self.snapshot.enabled

    @property
    def last_logon_date(self) -> Optional[datetime]:
        return self.snapshot.last_logon_date

    @property
    def description(self) -> str:
        return self.snapshot.description

    def sort_key(self) -> tuple[str, str]:
        """Return the ``(action, name)`` key used for report ordering."""
        return (self.action.value, self.snapshot.name.lower())


@dataclass(frozen=True, slots=True)
class PolicyThresholds:
    """Cut-off dates derived from a policy and the evaluation time.

    Attributes:
        now: Evaluation time.
        disable_days: Days of inactivity before disabling.
        remove_days: Days disabled before removal.
    """

    now: datetime
    disable_days: int
    remove_days: int

    @property
    def disable_date(self) -> datetime:
        return _days_before(self.now, self.disable_days)

    @property
    def remove_date(self) -> datetime:
        return _days_before(self.now, self.remove_days)

    @property
    def no_desc_remove_date(self) -> datetime:
        return _days_before(self.now, self.disable_days + self.remove_days)


def _days_before(now: datetime, days: int) -> datetime:
    """Return ``now`` minus ``days``, clamped to the earliest representable time."""
    try:
        return now - timedelta(days=days)
    except OverflowError:
        return datetime.min.replace(tzinfo=now.tzinfo)


__all__ = [
    "AccountKind",
    "Action",
    "AccountSnapshot",
    "ClassificationResult",
    "PolicyThresholds",
]
