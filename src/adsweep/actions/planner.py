"""Planner turning classification results into directory operations."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from adsweep.config.models import PolicySettings, UserPolicySettings
from adsweep.lifecycle.codec import encode_disabled_description
from adsweep.lifecycle.models import AccountKind, Action, ClassificationResult

from .models import ActionPlan, DisableOperation, RemoveOperation


class ActionPlanner:
    """Derive an action plan from classification results."""

    def build_plan(
        self,
        results: Iterable[ClassificationResult],
        kind: AccountKind,
        policy: PolicySettings,
        now: datetime,
    ) -> ActionPlan:
        """Produce disable and removal operations for one account kind.

        Only ``Disable`` and ``Remove`` results yield operations. User removals
        archive the object first; they delete it only when
        ``delete_after_archive`` is enabled. Computer removals delete directly.

        Args:
            results: Classified accounts.
            kind: Kind the plan applies to.
            policy: Policy section for ``kind``.
            now: Evaluation time; its date is written into disabled descriptions.

        Returns:
            ActionPlan: Operations ready for the executor.
        """
        archive_destination = self._archive_destination(kind, policy)
        plan = ActionPlan(kind=kind, archive_destination=archive_destination)
        skipped = 0

        for result in results:
            if result.kind is not kind:
                continue
            if result.action is Action.DISABLE:
                plan.disables.append(
                    DisableOperation(
                        kind=kind,
                        name=result.name,
                        description=encode_disabled_description(result.description, now.date()),
                        previous_description=result.description,
                    )
                )
            elif result.action is Action.REMOVE:
                removal = self._build_removal(result, kind, policy, archive_destination)
                if removal is None:
                    skipped += 1
                    continue
                plan.removals.append(removal)

        if skipped:
            plan.notes.append(
                f"{skipped} user(s) eligible for removal were skipped: "
                "users.archive_path is not configured."
            )
        if kind is AccountKind.USER and isinstance(policy, UserPolicySettings):
            if plan.removals and not policy.delete_after_archive:
                plan.notes.append(
                    "users.delete_after_archive is disabled; removable users are archived only."
                )
        return plan

    def _archive_destination(self, kind: AccountKind, policy: PolicySettings) -> Optional[str]:
        if kind is AccountKind.USER and isinstance(policy, UserPolicySettings):
            return policy.archive_path or None
        return None

    def _build_removal(
        self,
        result: ClassificationResult,
        kind: AccountKind,
        policy: PolicySettings,
        archive_destination: Optional[str],
    ) -> Optional[RemoveOperation]:
        if kind is AccountKind.COMPUTER:
            return RemoveOperation(kind=kind, name=result.name, archive=False, delete=True)
        if archive_destination is None:
            return None
        delete = isinstance(policy, UserPolicySettings) and policy.delete_after_archive
        return RemoveOperation(kind=kind, name=result.name, archive=True, delete=delete)
