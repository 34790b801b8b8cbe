"""Tests for the PowerShell directory backend and concurrent lookups."""

from __future__ import annotations

import base64
import json
import subprocess
from datetime import datetime, timezone
from pathlib import Path

import pytest
from conftest import FakeDirectory, computer

from adsweep.config.models import DirectorySettings
from adsweep.directory import (
    AccountNotFoundError,
    DirectoryError,
    PowerShellDirectory,
    PowerShellRunner,
    fetch_accounts,
)
from adsweep.directory.powershell import NOT_FOUND_SENTINEL, quote
from adsweep.lifecycle import AccountKind


class ScriptedRunner:
    """Runner returning canned output and recording scripts."""

    def __init__(self, *outputs: str) -> None:
        self.outputs = list(outputs)
        self.scripts: list[str] = []
        self.envs: list = []

    def run(self, script: str, *, env=None) -> str:
        self.scripts.append(script)
        self.envs.append(env)
        return self.outputs.pop(0) if self.outputs else ""


def _directory(runner: ScriptedRunner, **settings) -> PowerShellDirectory:
    return PowerShellDirectory(DirectorySettings(**settings), runner=runner)


def test_quote_escapes_single_quotes() -> None:
    assert quote("O'Brien") == "'O''Brien'"


def test_verify_requires_ad_module() -> None:
    with pytest.raises(DirectoryError, match="ActiveDirectory module"):
        _directory(ScriptedRunner("")).verify()

    _directory(ScriptedRunner("Cmdlet Get-ADUser")).verify()


def test_list_accounts_parses_json_rows() -> None:
    rows = [
        {
            "Name": "PC01",
            "Enabled": True,
            "LastLogonDate": "2024-04-01T08:30:00Z",
            "whenCreated": "2019-01-01T00:00:00Z",
            "Description": None,
            "DistinguishedName": "CN=PC01,OU=Workstations,DC=corp,DC=example",
            "OperatingSystem": "Windows 11 Enterprise",
        },
        {"Name": "PC02", "Enabled": False, "LastLogonDate": None, "Description": "spare"},
    ]
    runner = ScriptedRunner(json.dumps(rows))

    snapshots = _directory(runner, server="dc01", search_base="OU=Corp,DC=corp").list_accounts(
        AccountKind.COMPUTER
    )

    assert [snapshot.name for snapshot in snapshots] == ["PC01", "PC02"]
    assert snapshots[0].last_logon_date == datetime(2024, 4, 1, 8, 30, tzinfo=timezone.utc)
    assert snapshots[0].description == ""
    assert snapshots[0].organizational_unit == "OU=Workstations,DC=corp,DC=example"
    assert snapshots[1].last_logon_date is None
    assert snapshots[1].enabled is False
    script = runner.scripts[0]
    assert "Import-Module ActiveDirectory" in script
    assert "Get-ADComputer -Filter *" in script
    assert "-Server 'dc01'" in script
    assert "-SearchBase 'OU=Corp,DC=corp'" in script


def test_list_accounts_accepts_single_object_and_empty_output() -> None:
    single = json.dumps({"Name": "jdoe", "Enabled": True})

    users = _directory(ScriptedRunner(single)).list_accounts(AccountKind.USER)
    empty = _directory(ScriptedRunner("")).list_accounts(AccountKind.USER)

    assert [item.name for item in users] == ["jdoe"]
    assert users[0].operating_system is None
    assert empty == []


def test_unexpected_output_raises_directory_error() -> None:
    with pytest.raises(DirectoryError):
        _directory(ScriptedRunner("WARNING: not json")).list_accounts(AccountKind.USER)


def test_fetch_account_not_found() -> None:
    runner = ScriptedRunner(NOT_FOUND_SENTINEL + "\n")

    with pytest.raises(AccountNotFoundError):
        _directory(runner).fetch_account(AccountKind.USER, "ghost")

    assert "Get-ADUser -Identity 'ghost'" in runner.scripts[0]


def test_set_disabled_clears_protection_first() -> None:
    runner = ScriptedRunner()

    _directory(runner).set_disabled(AccountKind.USER, "jdoe", "INACTIVE 6/1/2024 it's me")

    script = runner.scripts[0]
    protection = script.index("-ProtectedFromAccidentalDeletion $false")
    assert protection < script.index("Set-ADUser") < script.index("Disable-ADAccount")
    assert "'INACTIVE 6/1/2024 it''s me'" in script


def test_delete_and_archive_scripts(tmp_path: Path) -> None:
    runner = ScriptedRunner()
    directory = _directory(runner)

    directory.delete_account(AccountKind.COMPUTER, "PC01")
    target = directory.archive_account(AccountKind.USER, "jdoe", tmp_path)

    assert "Remove-ADObject" in runner.scripts[0]
    assert "-Recursive" in runner.scripts[0]
    assert target.parent == tmp_path
    assert target.name.startswith("jdoe_") and target.suffix == ".xml"
    assert "Export-Clixml" in runner.scripts[1]
    assert "-Properties *" in runner.scripts[1]


def test_ou_summary_sorts_rows() -> None:
    payload = [
        {"OU": "OU=Staff,DC=corp", "Enabled": 4, "Disabled": 1},
        {"OU": "OU=Admins,DC=corp", "Enabled": 2, "Disabled": 0},
    ]

    rows = _directory(ScriptedRunner(json.dumps(payload))).ou_summary(AccountKind.USER)

    assert [(row.ou, row.enabled, row.disabled) for row in rows] == [
        ("OU=Admins,DC=corp", 2, 0),
        ("OU=Staff,DC=corp", 4, 1),
    ]


def test_runner_encodes_script_and_reports_failures(monkeypatch) -> None:
    captured: dict = {}

    def _fake_run(command, **kwargs):
        captured["command"] = command
        captured["env"] = kwargs.get("env")
        return subprocess.CompletedProcess(command, 1, stdout="", stderr="Access is denied.")

    monkeypatch.setattr("adsweep.directory.powershell.subprocess.run", _fake_run)
    runner = PowerShellRunner("pwsh", timeout=5)

    with pytest.raises(DirectoryError, match="Access is denied"):
        runner.run("Write-Output 'hi'", env={"ADSWEEP_TASK_PASSWORD": "x"})

    command = captured["command"]
    assert command[:4] == ["pwsh", "-NoProfile", "-NonInteractive", "-EncodedCommand"]
    assert base64.b64decode(command[4]).decode("utf-16-le") == "Write-Output 'hi'"
    assert captured["env"]["ADSWEEP_TASK_PASSWORD"] == "x"


def test_runner_missing_executable(monkeypatch) -> None:
    def _missing(command, **kwargs):
        raise FileNotFoundError(command[0])

    monkeypatch.setattr("adsweep.directory.powershell.subprocess.run", _missing)

    with pytest.raises(DirectoryError, match="not found"):
        PowerShellRunner("powershell").run("Get-Date")


def test_fetch_accounts_skips_missing_and_failed_lookups() -> None:
    directory = FakeDirectory([computer("PC01"), computer("PC02")])
    directory.fail_lookup.add("PC03")

    result = fetch_accounts(
        directory, AccountKind.COMPUTER, ["PC02", "GHOST", "PC01", "PC02", "PC03", " "]
    )

    assert [snapshot.name for snapshot in result.snapshots] == ["PC02", "PC01"]
    assert result.missing == ["GHOST"]
    assert len(result.errors) == 1 and result.errors[0].startswith("PC03:")
