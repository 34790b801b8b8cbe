"""Directory backend protocol."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from pydantic import BaseModel

from adsweep.lifecycle.models import AccountKind, AccountSnapshot


class OuSummary(BaseModel):
    """Enabled/disabled account counts for one organizational unit."""

    ou: str
    enabled: int = 0
    disabled: int = 0


class DirectoryBackend(Protocol):
    """Operations adsweep needs from the directory service."""

    def verify(self) -> None:
        """Raise ``DirectoryError`` when the backend cannot be used."""

    def list_accounts(self, kind: AccountKind) -> list[AccountSnapshot]:
        """Return every account of ``kind``."""

    def fetch_account(self, kind: AccountKind, name: str) -> AccountSnapshot:
        """Return one account or raise ``AccountNotFoundError``."""

    def set_disabled(self, kind: AccountKind, name: str, description: str) -> None:
        """Clear deletion protection, write ``description`` and disable the account."""

    def delete_account(self, kind: AccountKind, name: str) -> None:
        """Delete the account and any child objects."""

    def archive_account(self, kind: AccountKind, name: str, destination: Path) -> Path:
        """Export the full object under ``destination`` and return the file written."""

    def ou_summary(self, kind: AccountKind) -> list[OuSummary]:
        """Return per-OU enabled/disabled counts."""


__all__ = ["DirectoryBackend", "OuSummary"]
