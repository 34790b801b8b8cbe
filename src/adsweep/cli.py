"""Command line interface for adsweep."""

from __future__ import annotations

import difflib
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from adsweep.actions import ActionExecutor, ActionPlanner
from adsweep.config import AdsweepConfig, ConfigError, ConfigManager, resolve_with_precedence
from adsweep.directory import DirectoryBackend, DirectoryError, PowerShellDirectory, fetch_accounts
from adsweep.lifecycle import AccountKind, LifecycleClassifier
from adsweep.logs import configure_logging
from adsweep.reporting import (
    ReportError,
    ReportMailer,
    count_actions,
    render_account_report,
    render_ou_summary,
)
from adsweep.scheduling import build_registration_script, register_task
from adsweep.state import HistoryRepository, RunRecord, StateError

console = Console()

_KIND_CHOICES = {"computers": AccountKind.COMPUTER, "users": AccountKind.USER}


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """
    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Conditionally print CLI output according to quiet/summary settings.

    Args:
        message: Renderable or string to emit.
        mode: Output mode identifier (`detail`, `summary`, `warning`, or `error`).
        quiet: Whether quiet mode is active.
        summary_only: Whether only summary lines should be emitted.
    """
    if quiet and mode != "error":
        return
    if summary_only and mode not in {"summary", "warning", "error"}:
        return
    console.print(message)


def _format_summary_line(command: str, target: str, metrics: dict[str, Any]) -> str:
    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {target}: {parts}.[/green]"


def _resolve_output_modes(
    ctx: click.Context,
    config: AdsweepConfig,
    *,
    quiet: bool,
    summary_mode: bool,
    json_output: bool,
) -> tuple[bool, bool]:
    """Combine CLI flags with configured defaults into ``(quiet, summary_only)``.

    Raises:
        click.ClickException: If the flags conflict.
    """
    explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
    explicit_summary = ctx.get_parameter_source("summary_mode") == ParameterSource.COMMANDLINE

    quiet_enabled = quiet if explicit_quiet else config.cli.quiet_default
    summary_only = summary_mode if explicit_summary else config.cli.summary_default

    if json_output:
        if explicit_quiet and quiet_enabled:
            raise click.ClickException("--json cannot be combined with --quiet.")
        if explicit_summary and summary_only:
            raise click.ClickException("--json cannot be combined with --summary.")
        return False, False

    if quiet_enabled and summary_only:
        raise click.ClickException(
            "Quiet and summary modes cannot both be enabled. Adjust CLI defaults or flags."
        )
    return quiet_enabled, summary_only


def _assign_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign a nested value within a dictionary for a dotted path.

    Raises:
        ConfigError: If a non-mapping value is encountered along the path.
    """
    node = target
    for segment in path[:-1]:
        existing = node.get(segment)
        if existing is None:
            existing = {}
            node[segment] = existing
        elif not isinstance(existing, dict):
            raise ConfigError(
                f"Cannot assign into '{segment}' because it is not a mapping in the config file."
            )
        node = existing
    node[path[-1]] = value


def _build_directory(config: AdsweepConfig) -> DirectoryBackend:
    return PowerShellDirectory(config.directory)


def _build_mailer(config: AdsweepConfig) -> ReportMailer:
    return ReportMailer(config.report)


def _now() -> datetime:
    return datetime.now().astimezone()


def _write_report_file(path: str, html: str, *, json_output: bool) -> None:
    """Write ``html`` to ``path``, reporting filesystem errors as CLI errors."""
    target = Path(path).expanduser()
    try:
        target.write_text(html, encoding="utf-8")
    except OSError as exc:
        _handle_cli_error(
            f"Unable to write report file {target}: {exc}",
            code="report_file_error",
            json_output=json_output,
            original=exc,
        )


def _send_report(config: AdsweepConfig, kind_label: str, html: str, now: datetime) -> None:
    subject = config.report.subject.format(kind=kind_label, date=now.strftime("%Y-%m-%d"))
    _build_mailer(config).send(subject, html)


def _results_table(results, kind: AccountKind, title: str) -> Table:
    table = Table(title=title)
    table.add_column("Name", overflow="fold")
    table.add_column("Enabled")
    table.add_column("Last Logon")
    table.add_column("Operating System" if kind is AccountKind.COMPUTER else "Created")
    table.add_column("Description", overflow="fold")
    table.add_column("Action")
    for result in results:
        snapshot = result.snapshot
        last_logon = snapshot.last_logon_date
        if kind is AccountKind.COMPUTER:
            extra = snapshot.operating_system or ""
        else:
            extra = snapshot.when_created.strftime("%Y-%m-%d") if snapshot.when_created else ""
        table.add_row(
            snapshot.name,
            "yes" if snapshot.enabled else "no",
            last_logon.strftime("%Y-%m-%d") if last_logon else "never",
            extra,
            snapshot.description,
            result.action.value,
        )
    return table


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="adsweep")
def cli() -> None:
    """adsweep disables and removes stale Active Directory accounts."""


@cli.command()
@click.argument("kind", type=click.Choice(sorted(_KIND_CHOICES)))
@click.option("--name", "names", multiple=True, help="Only evaluate the named account(s).")
@click.option(
    "--apply/--dry-run",
    "apply_changes",
    default=False,
    help="Disable and remove accounts (default: dry run).",
)
@click.option("--disable-days", type=int, help="Override the configured disable threshold.")
@click.option("--remove-days", type=int, help="Override the configured remove threshold.")
@click.option(
    "--report-file",
    type=click.Path(dir_okay=False, path_type=str),
    help="Also write the HTML report to this file.",
)
@click.option("--no-email", is_flag=True, help="Skip emailing the report.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing the run.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def sweep(
    ctx: click.Context,
    kind: str,
    names: tuple[str, ...],
    apply_changes: bool,
    disable_days: Optional[int],
    remove_days: Optional[int],
    report_file: Optional[str],
    no_email: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Classify KIND accounts, optionally apply the actions, and report.

    Without --apply the run is a dry run: accounts are classified and reported
    but nothing in the directory changes.

    Args:
        ctx: Click context used for parameter source inspection.
        kind: ``computers`` or ``users``.
        names: Optional account names limiting the sweep.
        apply_changes: Whether to execute disables and removals.
        disable_days: Disable threshold override.
        remove_days: Remove threshold override.
        report_file: Optional path receiving the HTML report.
        no_email: Skip report delivery.
        json_output: Emit JSON instead of tables.
        summary_mode: Limit output to summary lines and warnings.
        quiet: Suppress non-error output.
    """
    account_kind = _KIND_CHOICES[kind]
    section = "users" if account_kind is AccountKind.USER else "computers"
    dry_run = not apply_changes
    exit_code = 0

    try:
        overrides: dict[str, Any] = {}
        if disable_days is not None:
            overrides[f"{section}.disable_days"] = disable_days
        if remove_days is not None:
            overrides[f"{section}.remove_days"] = remove_days
        config = ConfigManager().load(cli_overrides=overrides or None)
        quiet_enabled, summary_only = _resolve_output_modes(
            ctx, config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )
        logger = configure_logging(config.logging)
        policy = config.policy_for(account_kind)

        directory = _build_directory(config)
        directory.verify()

        lookup_errors: list[str] = []
        missing: list[str] = []
        if names:
            fetched = fetch_accounts(
                directory, account_kind, names, max_workers=config.directory.max_workers
            )
            snapshots = fetched.snapshots
            missing = fetched.missing
            lookup_errors = fetched.errors
        else:
            snapshots = directory.list_accounts(account_kind)

        now = _now()
        results = LifecycleClassifier(
            policy, max_workers=config.directory.max_workers
        ).classify_batch(snapshots, now)
        plan = ActionPlanner().build_plan(results, account_kind, policy, now)

        execution = ActionExecutor(
            directory, max_workers=config.directory.max_workers
        ).apply(plan, dry_run=dry_run)

        notes = list(plan.notes)
        notes.extend(f"Account not found: {name}" for name in missing)
        notes.extend(f"Lookup failed: {entry}" for entry in lookup_errors)
        warnings = list(notes)
        if execution.aborted and execution.abort_reason:
            notes.append(f"REMOVALS ABORTED: {execution.abort_reason}")
        notes.extend(str(event.detail) for event in execution.failures)

        title = f"Inactive {section} report ({policy.disable_days}/{policy.remove_days} days)"
        html = render_account_report(
            results,
            kind=account_kind,
            title=title,
            generated_at=now,
            dry_run=dry_run,
            notes=notes,
        )

        mail_error: Optional[str] = None
        emailed = False
        if config.report.enabled and not no_email and not config.report.recipients:
            logger.warning("report.recipients is empty; the report was not emailed.")
        elif config.report.enabled and not no_email:
            try:
                _send_report(config, section, html, now)
                emailed = True
            except ReportError as exc:
                logger.error("Report delivery failed: %s", exc)
                mail_error = str(exc)

        if not dry_run:
            HistoryRepository(
                Path(config.history.path), max_records=config.history.max_records
            ).append(
                RunRecord(
                    timestamp=now,
                    kind=account_kind,
                    evaluated=len(results),
                    actions=count_actions(results),
                    events=execution.events,
                    aborted=execution.aborted,
                    abort_reason=execution.abort_reason,
                )
            )

        if report_file:
            _write_report_file(report_file, html, json_output=json_output)

        action_counts = count_actions(results)
        if execution.aborted or execution.failures or lookup_errors or mail_error:
            exit_code = 1

        if json_output:
            console.print_json(
                data={
                    "context": {
                        "kind": account_kind.value,
                        "dry_run": dry_run,
                        "disable_days": policy.disable_days,
                        "remove_days": policy.remove_days,
                        "generated_at": now.isoformat(),
                    },
                    "counts": action_counts,
                    "results": [
                        {
                            **result.snapshot.model_dump(mode="json"),
                            "action": result.action.value,
                        }
                        for result in results
                    ],
                    "plan": plan.model_dump(mode="json"),
                    "execution": execution.model_dump(mode="json"),
                    "missing": missing,
                    "errors": {
                        "lookup": lookup_errors,
                        "mail": mail_error,
                    },
                    "emailed": emailed,
                }
            )
        else:
            _emit_message(
                _results_table(results, account_kind, title),
                mode="detail",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
            for note in warnings:
                _emit_message(
                    f"[yellow]{note}[/yellow]",
                    mode="warning",
                    quiet=quiet_enabled,
                    summary_only=summary_only,
                )
            if execution.aborted:
                _emit_message(
                    f"[red]Removals aborted: {execution.abort_reason}[/red]",
                    mode="error",
                    quiet=quiet_enabled,
                    summary_only=summary_only,
                )
            for event in execution.failures:
                _emit_message(
                    f"[red]{event.detail}[/red]",
                    mode="error",
                    quiet=quiet_enabled,
                    summary_only=summary_only,
                )
            if mail_error:
                _emit_message(
                    f"[red]Report delivery failed: {mail_error}[/red]",
                    mode="error",
                    quiet=quiet_enabled,
                    summary_only=summary_only,
                )
            metrics: dict[str, Any] = {"evaluated": len(results), **action_counts}
            metrics["disabled"] = execution.count("disable")
            metrics["archived"] = execution.count("archive")
            metrics["deleted"] = execution.count("delete")
            metrics["failed"] = len(execution.failures)
            if dry_run:
                metrics["dry_run"] = True
            _emit_message(
                _format_summary_line("Sweep", section, metrics),
                mode="summary",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
    except DirectoryError as exc:
        _handle_cli_error(str(exc), code="directory_error", json_output=json_output, original=exc)
    except StateError as exc:
        _handle_cli_error(str(exc), code="state_error", json_output=json_output, original=exc)
    except click.ClickException as exc:
        _handle_cli_error(str(exc), code="cli_error", json_output=json_output, original=exc)

    if exit_code:
        ctx.exit(exit_code)


@cli.command("ou-summary")
@click.argument("kind", type=click.Choice(sorted(_KIND_CHOICES)))
@click.option(
    "--report-file",
    type=click.Path(dir_okay=False, path_type=str),
    help="Also write the HTML report to this file.",
)
@click.option("--no-email", is_flag=True, help="Skip emailing the report.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON counts.")
def ou_summary(kind: str, report_file: Optional[str], no_email: bool, json_output: bool) -> None:
    """Report enabled and disabled KIND accounts per OU.

    OUs holding disabled accounts are highlighted in the HTML report.
    """
    account_kind = _KIND_CHOICES[kind]
    try:
        config = ConfigManager().load()
        configure_logging(config.logging)
        directory = _build_directory(config)
        directory.verify()
        rows = directory.ou_summary(account_kind)
        now = _now()
        html = render_ou_summary(rows, title=f"{kind.capitalize()} per OU", generated_at=now)
        if report_file:
            _write_report_file(report_file, html, json_output=json_output)
        if config.report.enabled and not no_email and config.report.recipients:
            _send_report(config, f"{kind} per OU", html, now)
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
        return
    except DirectoryError as exc:
        _handle_cli_error(str(exc), code="directory_error", json_output=json_output, original=exc)
        return
    except ReportError as exc:
        _handle_cli_error(str(exc), code="report_error", json_output=json_output, original=exc)
        return

    if json_output:
        console.print_json(data={"kind": kind, "rows": [row.model_dump() for row in rows]})
        return

    table = Table(title=f"{kind.capitalize()} per OU")
    table.add_column("OU", overflow="fold")
    table.add_column("Enabled", justify="right")
    table.add_column("Disabled", justify="right")
    for row in rows:
        style = "bold red" if row.disabled else None
        table.add_row(row.ou or "(root)", str(row.enabled), str(row.disabled), style=style)
    console.print(table)


@cli.group()
def schedule() -> None:
    """Register recurring sweeps with the Windows Task Scheduler."""


@schedule.command("show")
@click.argument("kind", type=click.Choice(sorted(_KIND_CHOICES)))
@click.option("--user", help="Account the task runs as (defaults to SYSTEM).")
def schedule_show(kind: str, user: Optional[str]) -> None:
    """Print the registration script for KIND without running it."""
    try:
        config = ConfigManager().load()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    script = build_registration_script(config.schedule, _KIND_CHOICES[kind], user=user)
    console.print(Syntax(script, "powershell", word_wrap=True))


@schedule.command("register")
@click.argument("kind", type=click.Choice(sorted(_KIND_CHOICES)))
@click.option("--user", help="Account the task runs as (defaults to SYSTEM).")
def schedule_register(kind: str, user: Optional[str]) -> None:
    """Register the weekly sweep task for KIND.

    When --user is given the password is prompted for and handed to
    PowerShell through the environment; it is not written to disk.
    """
    try:
        config = ConfigManager().load()
        configure_logging(config.logging)
        password = None
        if user:
            password = click.prompt(f"Password for {user}", hide_input=True)
        directory = PowerShellDirectory(config.directory)
        name = register_task(
            directory.runner, config.schedule, _KIND_CHOICES[kind], user=user, password=password
        )
    except (ConfigError, DirectoryError) as exc:
        raise click.ClickException(str(exc)) from exc
    console.print(f"[green]Registered scheduled task {config.schedule.task_path}{name}.[/green]")


@cli.command()
@click.option("--limit", type=int, help="Number of runs to show.")
@click.option("--json", "json_output", is_flag=True, help="Emit history as JSON.")
def history(limit: Optional[int], json_output: bool) -> None:
    """Show recent applied sweeps."""
    try:
        config = ConfigManager().load()
        repository = HistoryRepository(
            Path(config.history.path), max_records=config.history.max_records
        )
        records = repository.recent(limit if limit is not None else config.cli.history_limit)
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
        return
    except StateError as exc:
        _handle_cli_error(str(exc), code="state_error", json_output=json_output, original=exc)
        return

    if json_output:
        console.print_json(data={"runs": [record.model_dump(mode="json") for record in records]})
        return

    if not records:
        console.print("[yellow]No sweeps have been applied yet.[/yellow]")
        return

    table = Table(title="Recent sweeps")
    table.add_column("When")
    table.add_column("Kind")
    table.add_column("Evaluated", justify="right")
    table.add_column("Actions")
    table.add_column("Failed", justify="right")
    table.add_column("Aborted")
    for record in records:
        failed = sum(1 for event in record.events if event.status == "failed")
        table.add_row(
            record.timestamp.strftime("%Y-%m-%d %H:%M"),
            record.kind.value,
            str(record.evaluated),
            ", ".join(f"{action}={count}" for action, count in record.actions.items()),
            str(failed),
            "yes" if record.aborted else "",
            style="red" if record.aborted else None,
        )
    console.print(table)


@cli.group()
def config() -> None:
    """Manage adsweep configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Args:
        no_env: If True, ignore environment-derived overrides.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        effective = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(effective.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Args:
        key: Dotted path describing the configuration field to update.
        value: YAML-literal value to write into the configuration file.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    before = manager.read_text().splitlines()
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must specify a dotted path such as 'users.disable_days'.")

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    file_data = manager.load_file_overrides()
    try:
        _assign_nested(file_data, segments, parsed_value)
        resolve_with_precedence(defaults=AdsweepConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(file_data)
    after = manager.read_text().splitlines()

    diff = list(
        difflib.unified_diff(
            before,
            after,
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
    )
    if not any(line.startswith(("+", "-")) and "Last updated" not in line for line in diff[2:]):
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Open the configuration file in an interactive editor session.

    Raises:
        click.ClickException: If edited content is invalid or cannot be saved.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")

    if edited is None:
        console.print("[yellow]Edit cancelled; no changes applied.[/yellow]")
        return
    if edited == original:
        console.print("[yellow]No changes detected.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc

    if not isinstance(parsed, dict):
        raise click.ClickException("Configuration file must contain a top-level mapping.")

    try:
        resolve_with_precedence(defaults=AdsweepConfig(), file_overrides=parsed)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(parsed)
    console.print("[green]Configuration updated successfully.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
