"""Account lifecycle classification.

``classify`` is a pure function of the snapshot, the policy and ``now``. The
primary branch looks at logon activity and the inactive-since marker; the
override branch then applies, in increasing priority, the service-account
rule, the new-account rule and the ``KEEP`` description flag.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, time
from typing import Iterable, Optional

from adsweep.config.models import PolicySettings

from .codec import decode_inactive_date
from .models import AccountKind, AccountSnapshot, Action, ClassificationResult, PolicyThresholds

LOGGER = logging.getLogger(__name__)

KEEP_FLAG = "keep"
SERVICE_PREFIX = "svc"
SERVER_PATTERN = "server"
_UNKNOWN_OS = {"", "unknown"}


def is_excluded_computer(snapshot: AccountSnapshot) -> bool:
    """Return True for computers that are never classified.

    Servers and machines without a known operating system are skipped.
    """
    if snapshot.kind is not AccountKind.COMPUTER:
        return False
    operating_system = (snapshot.operating_system or "").strip().lower()
    return operating_system in _UNKNOWN_OS or SERVER_PATTERN in operating_system


def classify(
    snapshot: AccountSnapshot,
    policy: PolicySettings | PolicyThresholds,
    now: datetime,
) -> Optional[Action]:
    """Assign a lifecycle action to a snapshot.

    Args:
        snapshot: Account to evaluate.
        policy: Configured thresholds, or thresholds already bound to a time.
            A ``PolicyThresholds`` carries its own ``now``, which takes
            precedence over the ``now`` argument for every threshold date.
        now: Evaluation time. Timestamps are aligned to its timezone.

    Returns:
        Action | None: The action, or ``None`` when the account is filtered out
        (servers and unknown operating systems).
    """
    if is_excluded_computer(snapshot):
        return None

    thresholds = _thresholds(policy, now)
    disable_date = thresholds.disable_date
    last_logon = _align(snapshot.last_logon_date, now)

    if last_logon is None or last_logon < disable_date:
        if snapshot.enabled:
            action = Action.DISABLE
        else:
            action = _disabled_action(snapshot, last_logon, thresholds)
    else:
        action = Action.NONE

    if snapshot.kind is AccountKind.USER:
        if snapshot.name.lower().startswith(SERVICE_PREFIX):
            action = Action.SVC
        created = _align(snapshot.when_created, now)
        if created is not None and created > disable_date:
            action = Action.NEW

    if KEEP_FLAG in (snapshot.description or "").lower():
        action = Action.KEEP

    return action


def sort_results(results: Iterable[ClassificationResult]) -> list[ClassificationResult]:
    """Return results ordered by action label, then account name."""
    return sorted(results, key=ClassificationResult.sort_key)


class LifecycleClassifier:
    """Classify batches of snapshots against one policy."""

    def __init__(self, policy: PolicySettings, *, max_workers: int = 4) -> None:
        self._policy = policy
        self._max_workers = max_workers

    def classify_batch(
        self,
        snapshots: Iterable[AccountSnapshot],
        now: datetime,
    ) -> list[ClassificationResult]:
        """Classify snapshots concurrently and return sorted results.

        Filtered snapshots are dropped from the output.

        Args:
            snapshots: Accounts to evaluate.
            now: Evaluation time shared by every snapshot in the batch.

        Returns:
            list[ClassificationResult]: Results sorted by ``(action, name)``.
        """
        thresholds = _thresholds(self._policy, now)
        items = list(snapshots)
        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            actions = list(pool.map(lambda item: classify(item, thresholds, now), items))

        results = [
            ClassificationResult(snapshot=snapshot, action=action)
            for snapshot, action in zip(items, actions)
            if action is not None
        ]
        skipped = len(items) - len(results)
        if skipped:
            LOGGER.debug("Skipped %d server or unknown-OS account(s).", skipped)
        return sort_results(results)


# ---------------------------------------------------------------------- #
# Helpers                                                                #
# ---------------------------------------------------------------------- #


def _disabled_action(
    snapshot: AccountSnapshot,
    last_logon: Optional[datetime],
    thresholds: PolicyThresholds,
) -> Action:
    decoded = decode_inactive_date(snapshot.description)
    if decoded.ok:
        inactive_since = _align(decoded.value, thresholds.now)
        return Action.REMOVE if inactive_since < thresholds.remove_date else Action.WAIT

    # No marker: an absent logon counts as infinitely old.
    if last_logon is None or last_logon < thresholds.no_desc_remove_date:
        return Action.REMOVE
    return Action.WAIT


def _thresholds(policy: PolicySettings | PolicyThresholds, now: datetime) -> PolicyThresholds:
    if isinstance(policy, PolicyThresholds):
        return policy
    return PolicyThresholds(
        now=now, disable_days=policy.disable_days, remove_days=policy.remove_days
    )


def _align(value: date | datetime | None, now: datetime) -> Optional[datetime]:
    """Make ``value`` comparable with ``now`` (dates become midnight)."""
    if value is None:
        return None
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=now.tzinfo)
    if now.tzinfo is None and value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    if now.tzinfo is not None and value.tzinfo is None:
        return value.replace(tzinfo=now.tzinfo)
    return value


__all__ = [
    "KEEP_FLAG",
    "SERVICE_PREFIX",
    "SERVER_PATTERN",
    "LifecycleClassifier",
    "classify",
    "is_excluded_computer",
    "sort_results",
]
