"""Shared fixtures: an in-memory directory backend and snapshot builders."""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional

import pytest

from adsweep.directory import AccountNotFoundError, DirectoryError, OuSummary
from adsweep.lifecycle import AccountKind, AccountSnapshot

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def days_ago(days: int) -> datetime:
    return NOW - timedelta(days=days)


def computer(name: str, **overrides: Any) -> AccountSnapshot:
    values: dict[str, Any] = {
        "kind": AccountKind.COMPUTER,
        "name": name,
        "enabled": True,
        "last_logon_date": days_ago(1),
        "when_created": days_ago(1000),
        "operating_system": "Windows 10 Pro",
        "description": "",
        "distinguished_name": f"CN={name},OU=Workstations,DC=corp,DC=example",
    }
    values.update(overrides)
    return AccountSnapshot(**values)


def user(name: str, **overrides: Any) -> AccountSnapshot:
    values: dict[str, Any] = {
        "kind": AccountKind.USER,
        "name": name,
        "enabled": True,
        "last_logon_date": days_ago(1),
        "when_created": days_ago(1000),
        "description": "",
        "distinguished_name": f"CN={name},OU=Staff,DC=corp,DC=example",
    }
    values.update(overrides)
    return AccountSnapshot(**values)


class FakeDirectory:
    """Directory backend holding snapshots in memory and recording writes."""

    def __init__(self, accounts: Optional[list[AccountSnapshot]] = None) -> None:
        self.accounts = {(item.kind, item.name): item for item in accounts or []}
        self.disabled: list[tuple[str, str]] = []
        self.deleted: list[str] = []
        self.archived: list[str] = []
        self.fail_disable: set[str] = set()
        self.fail_delete: set[str] = set()
        self.fail_archive: set[str] = set()
        self.fail_lookup: set[str] = set()
        self.verified = False

    def verify(self) -> None:
        self.verified = True

    def list_accounts(self, kind: AccountKind) -> list[AccountSnapshot]:
        return [item for (item_kind, _), item in self.accounts.items() if item_kind is kind]

    def fetch_account(self, kind: AccountKind, name: str) -> AccountSnapshot:
        if name in self.fail_lookup:
            raise DirectoryError(f"lookup of {name} failed")
        try:
            return self.accounts[(kind, name)]
        except KeyError:
            raise AccountNotFoundError(kind.value, name) from None

    def set_disabled(self, kind: AccountKind, name: str, description: str) -> None:
        if name in self.fail_disable:
            raise DirectoryError("insufficient access rights")
        self.disabled.append((name, description))

    def delete_account(self, kind: AccountKind, name: str) -> None:
        if name in self.fail_delete:
            raise DirectoryError("object is protected")
        self.deleted.append(name)

    def archive_account(self, kind: AccountKind, name: str, destination: Path) -> Path:
        if name in self.fail_archive:
            raise DirectoryError("share is read-only")
        target = Path(destination) / f"{name}.xml"
        target.write_text("<Objs/>", encoding="utf-8")
        self.archived.append(name)
        return target

    def ou_summary(self, kind: AccountKind) -> list[OuSummary]:
        counts: dict[str, OuSummary] = {}
        for item in self.list_accounts(kind):
            ou = item.organizational_unit
            row = counts.setdefault(ou, OuSummary(ou=ou))
            if item.enabled:
                row.enabled += 1
            else:
                row.disabled += 1
        return sorted(counts.values(), key=lambda row: row.ou.lower())


@pytest.fixture
def fake_directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def home_env(tmp_path: Path) -> dict[str, Optional[str]]:
    """Environment for CliRunner with HOME redirected into ``tmp_path``."""
    env: dict[str, Optional[str]] = {key: None for key in os.environ if key.startswith("ADSWEEP")}
    env["HOME"] = str(tmp_path)
    env["USERPROFILE"] = str(tmp_path)
    return env
