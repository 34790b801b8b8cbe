"""CLI tests for the sweep and ou-summary commands."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner
from conftest import NOW, FakeDirectory, computer, days_ago, user

from adsweep.cli import cli
from adsweep.directory import DirectoryError
from adsweep.lifecycle import AccountKind
from adsweep.state import HistoryRepository


class RecordingMailer:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    def send(self, subject: str, html_body: str) -> None:
        self.sent.append((subject, html_body))


@pytest.fixture
def directory(monkeypatch: pytest.MonkeyPatch) -> FakeDirectory:
    fake = FakeDirectory(
        [
            computer("PC01", last_logon_date=days_ago(45)),
            computer("PC02", last_logon_date=days_ago(2)),
            computer("SRV01", operating_system="Windows Server 2019", last_logon_date=None),
            computer("PC03", enabled=False, last_logon_date=None, description="INACTIVE 1/1/2024"),
            user("jdoe", enabled=False, last_logon_date=None, description="INACTIVE 1/1/2023"),
            user("svc-sql", last_logon_date=days_ago(300)),
        ]
    )
    monkeypatch.setattr("adsweep.cli._build_directory", lambda config: fake)
    monkeypatch.setattr("adsweep.cli._now", lambda: NOW)
    return fake


@pytest.fixture
def mailer(monkeypatch: pytest.MonkeyPatch) -> RecordingMailer:
    fake = RecordingMailer()
    monkeypatch.setattr("adsweep.cli._build_mailer", lambda config: fake)
    return fake


def _history(tmp_path: Path) -> HistoryRepository:
    return HistoryRepository(tmp_path / ".adsweep" / "history.json")


def test_sweep_is_a_dry_run_by_default(tmp_path: Path, home_env, directory) -> None:
    runner = CliRunner()

    result = runner.invoke(cli, ["sweep", "computers", "--no-email", "--json"], env=home_env)

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["context"]["dry_run"] is True
    assert payload["counts"] == {"Disable": 1, "None": 1, "Remove": 1}
    assert [row["name"] for row in payload["results"]] == ["PC01", "PC02", "PC03"]
    assert payload["plan"]["disables"][0]["description"] == "INACTIVE 6/1/2024"
    assert directory.verified is True
    assert directory.disabled == []
    assert directory.deleted == []
    assert not _history(tmp_path).path.exists()


def test_sweep_apply_changes_directory_and_records_history(
    tmp_path: Path, home_env, directory
) -> None:
    runner = CliRunner()

    result = runner.invoke(cli, ["sweep", "computers", "--apply", "--no-email"], env=home_env)

    assert result.exit_code == 0, result.output
    assert directory.disabled == [("PC01", "INACTIVE 6/1/2024")]
    assert directory.deleted == ["PC03"]
    assert "Sweep summary for computers" in result.output

    runs = _history(tmp_path).recent(5)
    assert len(runs) == 1
    assert runs[0].evaluated == 3
    assert runs[0].actions == {"Disable": 1, "None": 1, "Remove": 1}
    assert [event.operation for event in runs[0].events] == ["disable", "delete"]


def test_sweep_threshold_override_changes_classification(home_env, directory) -> None:
    runner = CliRunner()

    result = runner.invoke(
        cli,
        ["sweep", "computers", "--disable-days", "60", "--no-email", "--json"],
        env=home_env,
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["context"]["disable_days"] == 60
    assert payload["counts"] == {"None": 2, "Remove": 1}


def test_sweep_rejects_non_positive_threshold_before_directory_access(
    home_env, directory
) -> None:
    runner = CliRunner()

    result = runner.invoke(cli, ["sweep", "users", "--remove-days", "0"], env=home_env)

    assert result.exit_code != 0
    assert "users.remove_days" in result.output
    assert directory.verified is False


def test_sweep_rejects_oversized_threshold_before_directory_access(
    home_env, directory
) -> None:
    runner = CliRunner()

    result = runner.invoke(
        cli, ["sweep", "users", "--disable-days", "800000", "--json"], env=home_env
    )

    assert result.exit_code == 1
    payload = json.loads(result.output)
    assert payload["error"]["code"] == "config_error"
    assert "users.disable_days" in payload["error"]["message"]
    assert directory.verified is False


def test_sweep_emails_report(home_env, directory, mailer) -> None:
    runner = CliRunner()
    env = {**home_env, "ADSWEEP__REPORT__RECIPIENTS": "[ops@corp.example]"}

    result = runner.invoke(cli, ["sweep", "computers", "--summary"], env=env)

    assert result.exit_code == 0, result.output
    assert len(mailer.sent) == 1
    subject, body = mailer.sent[0]
    assert subject == "AD cleanup report: computers (2024-06-01)"
    assert "PC01" in body
    assert "Dry run" in body


def test_sweep_writes_report_file(tmp_path: Path, home_env, directory) -> None:
    runner = CliRunner()
    report = tmp_path / "report.html"

    result = runner.invoke(
        cli, ["sweep", "users", "--no-email", "--report-file", str(report)], env=home_env
    )

    assert result.exit_code == 0, result.output
    html = report.read_text(encoding="utf-8")
    assert "svc-sql" in html
    assert "users.archive_path is not configured" in html


def test_sweep_named_accounts_skip_missing(home_env, directory) -> None:
    runner = CliRunner()

    result = runner.invoke(
        cli,
        ["sweep", "computers", "--name", "PC01", "--name", "GHOST", "--no-email"],
        env=home_env,
    )

    assert result.exit_code == 0, result.output
    assert "Account not found: GHOST" in result.output
    assert "evaluated=1" in result.output


def test_sweep_unreachable_archive_aborts_removals_but_disables(
    tmp_path: Path, home_env, directory
) -> None:
    directory.accounts[(AccountKind.USER, "kim")] = user("kim", last_logon_date=days_ago(120))
    runner = CliRunner()
    env = {
        **home_env,
        "ADSWEEP__USERS__ARCHIVE_PATH": str(tmp_path / "missing-share"),
        "ADSWEEP__USERS__DELETE_AFTER_ARCHIVE": "true",
    }

    result = runner.invoke(cli, ["sweep", "users", "--apply", "--no-email"], env=env)

    assert result.exit_code == 1
    assert "Removals aborted" in result.output
    assert [name for name, _ in directory.disabled] == ["kim"]
    assert directory.archived == []
    assert directory.deleted == []
    run = _history(tmp_path).recent(1)[0]
    assert run.aborted is True
    assert [(event.name, event.status) for event in run.events] == [
        ("kim", "applied"),
        ("jdoe", "aborted"),
    ]


def test_sweep_dry_run_with_unreachable_archive_succeeds(
    tmp_path: Path, home_env, directory
) -> None:
    runner = CliRunner()
    env = {**home_env, "ADSWEEP__USERS__ARCHIVE_PATH": str(tmp_path / "missing-share")}

    result = runner.invoke(cli, ["sweep", "users", "--no-email", "--json"], env=env)

    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["execution"]["aborted"] is False


def test_sweep_report_file_error_is_reported(tmp_path: Path, home_env, directory) -> None:
    runner = CliRunner()
    report = tmp_path / "no-such-dir" / "report.html"

    result = runner.invoke(
        cli,
        ["sweep", "computers", "--no-email", "--json", "--report-file", str(report)],
        env=home_env,
    )

    assert result.exit_code == 1
    payload = json.loads(result.output)
    assert payload["error"]["code"] == "report_file_error"
    assert "Traceback" not in result.output


def test_sweep_archives_users_before_delete(tmp_path: Path, home_env, directory) -> None:
    share = tmp_path / "share"
    share.mkdir()
    runner = CliRunner()
    env = {
        **home_env,
        "ADSWEEP__USERS__ARCHIVE_PATH": str(share),
        "ADSWEEP__USERS__DELETE_AFTER_ARCHIVE": "true",
    }

    result = runner.invoke(cli, ["sweep", "users", "--apply", "--no-email"], env=env)

    assert result.exit_code == 0, result.output
    assert directory.archived == ["jdoe"]
    assert directory.deleted == ["jdoe"]
    assert (share / "jdoe.xml").exists()


def test_sweep_write_failure_exits_nonzero(tmp_path: Path, home_env, directory) -> None:
    directory.fail_disable.add("PC01")
    runner = CliRunner()

    result = runner.invoke(cli, ["sweep", "computers", "--apply", "--no-email"], env=home_env)

    assert result.exit_code == 1
    assert "disable failed for PC01" in result.output
    assert directory.deleted == ["PC03"]
    run = _history(tmp_path).recent(1)[0]
    assert [event.status for event in run.events] == ["failed", "applied"]


def test_sweep_directory_error_is_reported(home_env, directory, monkeypatch) -> None:
    def _unavailable() -> None:
        raise DirectoryError("ActiveDirectory module not found.")

    monkeypatch.setattr(directory, "verify", _unavailable)
    runner = CliRunner()

    result = runner.invoke(cli, ["sweep", "computers", "--json"], env=home_env)

    assert result.exit_code == 1
    payload = json.loads(result.output)
    assert payload["error"]["code"] == "directory_error"


def test_sweep_json_conflicts_with_quiet(home_env, directory) -> None:
    runner = CliRunner()

    result = runner.invoke(cli, ["sweep", "computers", "--json", "--quiet"], env=home_env)

    assert result.exit_code != 0
    assert directory.verified is False


def test_ou_summary_json(home_env, directory) -> None:
    runner = CliRunner()

    result = runner.invoke(cli, ["ou-summary", "computers", "--no-email", "--json"], env=home_env)

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["rows"] == [
        {"ou": "OU=Workstations,DC=corp,DC=example", "enabled": 3, "disabled": 1}
    ]


def test_ou_summary_report_flags_disabled(tmp_path: Path, home_env, directory) -> None:
    runner = CliRunner()
    report = tmp_path / "ou.html"

    result = runner.invoke(
        cli, ["ou-summary", "users", "--no-email", "--report-file", str(report)], env=home_env
    )

    assert result.exit_code == 0, result.output
    assert 'class="flagged"' in report.read_text(encoding="utf-8")


def test_ou_summary_report_file_error_is_reported(tmp_path: Path, home_env, directory) -> None:
    runner = CliRunner()
    report = tmp_path / "no-such-dir" / "ou.html"

    result = runner.invoke(
        cli, ["ou-summary", "users", "--no-email", "--report-file", str(report)], env=home_env
    )

    assert result.exit_code == 1
    assert "Unable to write report file" in result.output
