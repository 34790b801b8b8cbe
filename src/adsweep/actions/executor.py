"""Executor for action plans."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Literal, Optional, TypeVar

from adsweep.directory.base import DirectoryBackend
from adsweep.directory.errors import DirectoryError
from adsweep.lifecycle.models import AccountKind

from .errors import PreconditionFailure, WriteFailure
from .models import ActionEvent, ActionPlan, DisableOperation, ExecutionReport, RemoveOperation

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class ActionExecutor:
    """Apply action plans against a directory backend."""

    def __init__(self, directory: DirectoryBackend, *, max_workers: int = 5) -> None:
        self._directory = directory
        self._max_workers = max_workers

    def apply(self, plan: ActionPlan, dry_run: bool = False) -> ExecutionReport:
        """Execute the disables and removals described by ``plan``.

        Disables run first and are independent of each other. Removals run in
        order after the archive destination has been validated. An unreachable
        destination, or an archive that fails, stops the removal step without
        affecting the disables.

        Args:
            plan: Plan computed by the planner.
            dry_run: When true, nothing is executed.

        Returns:
            ExecutionReport: Outcome of every attempted operation.
        """
        if dry_run:
            return ExecutionReport(dry_run=True)

        report = ExecutionReport()
        if plan.disables:
            with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
                report.events.extend(pool.map(self._disable, plan.disables))

        try:
            self._validate(plan)
        except PreconditionFailure as exc:
            LOGGER.error("Removal step aborted: %s", exc)
            self._abort(report, plan.removals, str(exc))
            return report

        for index, removal in enumerate(plan.removals):
            archive_file: Optional[str] = None
            if removal.archive:
                event = self._archive(removal, Path(plan.archive_destination or ""))
                report.events.append(event)
                if event.status != "applied":
                    reason = (
                        f"Archive of {removal.name} failed; remaining removals were not attempted."
                    )
                    LOGGER.error(reason)
                    self._abort(report, plan.removals[index + 1 :], reason)
                    break
                archive_file = event.archive_file
            if removal.delete:
                report.events.append(self._delete(removal, archive_file))

        return report

    def _abort(
        self, report: ExecutionReport, pending: list[RemoveOperation], reason: str
    ) -> None:
        report.aborted = True
        report.abort_reason = reason
        for removal in pending:
            operation: Literal["archive", "delete"] = "archive" if removal.archive else "delete"
            report.events.append(self._event(removal.kind, removal.name, operation, "aborted"))

    def _validate(self, plan: ActionPlan) -> None:
        if not any(removal.archive for removal in plan.removals):
            return
        destination = plan.archive_destination
        if not destination:
            raise PreconditionFailure("Removals require an archive destination, none is set.")
        try:
            reachable = Path(destination).expanduser().is_dir()
        except OSError:
            reachable = False
        if not reachable:
            raise PreconditionFailure(
                f"Archive destination {destination} is unreachable; no accounts were removed."
            )

    def _disable(self, operation: DisableOperation) -> ActionEvent:
        try:
            self._write(
                operation.name,
                "disable",
                lambda: self._directory.set_disabled(
                    operation.kind, operation.name, operation.description
                ),
            )
        except WriteFailure as exc:
            return self._event(operation.kind, operation.name, "disable", "failed", str(exc))
        return self._event(
            operation.kind, operation.name, "disable", "applied", operation.description
        )

    def _archive(self, operation: RemoveOperation, destination: Path) -> ActionEvent:
        try:
            written = self._write(
                operation.name,
                "archive",
                lambda: self._directory.archive_account(
                    operation.kind, operation.name, destination
                ),
            )
            if not Path(written).exists():
                failure = WriteFailure(operation.name, "archive", f"{written} was not created")
                LOGGER.error("%s", failure)
                raise failure
        except WriteFailure as exc:
            return self._event(operation.kind, operation.name, "archive", "failed", str(exc))
        event = self._event(operation.kind, operation.name, "archive", "applied")
        event.archive_file = str(written)
        return event

    def _delete(self, operation: RemoveOperation, archive_file: Optional[str]) -> ActionEvent:
        try:
            self._write(
                operation.name,
                "delete",
                lambda: self._directory.delete_account(operation.kind, operation.name),
            )
        except WriteFailure as exc:
            return self._event(operation.kind, operation.name, "delete", "failed", str(exc))
        event = self._event(operation.kind, operation.name, "delete", "applied")
        event.archive_file = archive_file
        return event

    def _write(self, name: str, operation: str, call: Callable[[], T]) -> T:
        try:
            return call()
        except DirectoryError as exc:
            failure = WriteFailure(name, operation, str(exc))
            LOGGER.error("%s", failure)
            raise failure from exc

    def _event(
        self,
        kind: AccountKind,
        name: str,
        operation: Literal["disable", "archive", "delete"],
        status: Literal["applied", "failed", "aborted"],
        detail: Optional[str] = None,
    ) -> ActionEvent:
        return ActionEvent(
            timestamp=datetime.now(timezone.utc),
            kind=kind,
            name=name,
            operation=operation,
            status=status,
            detail=detail,
        )
