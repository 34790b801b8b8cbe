"""Concurrent lookups of named accounts."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Iterable

from adsweep.lifecycle.models import AccountKind, AccountSnapshot

from .base import DirectoryBackend
from .errors import AccountNotFoundError, DirectoryError

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class FetchResult:
    """Snapshots that resolved plus the lookups that did not.

    Attributes:
        snapshots: Accounts returned by the directory, in request order.
        missing: Names that did not resolve.
        errors: ``name: message`` entries for lookups that failed otherwise.
    """

    snapshots: list[AccountSnapshot] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def fetch_accounts(
    directory: DirectoryBackend,
    kind: AccountKind,
    names: Iterable[str],
    *,
    max_workers: int = 5,
) -> FetchResult:
    """Look up named accounts concurrently.

    A failed lookup is logged and skipped; it never aborts the batch.

    Args:
        directory: Backend used for the lookups.
        kind: Kind of account to resolve.
        names: Account names to resolve.
        max_workers: Maximum concurrent lookups.

    Returns:
        FetchResult: Resolved snapshots and skipped names.
    """
    requested = list(dict.fromkeys(name.strip() for name in names if name.strip()))
    result = FetchResult()
    found: dict[str, AccountSnapshot] = {}

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = {pool.submit(directory.fetch_account, kind, name): name for name in requested}
        for future in as_completed(futures):
            name = futures[future]
            try:
                found[name] = future.result()
            except AccountNotFoundError:
                LOGGER.warning("Could not find %s %s; skipping.", kind.value, name)
                result.missing.append(name)
            except DirectoryError as exc:
                LOGGER.warning("Lookup of %s %s failed: %s", kind.value, name, exc)
                result.errors.append(f"{name}: {exc}")

    result.snapshots = [found[name] for name in requested if name in found]
    result.missing.sort()
    result.errors.sort()
    return result


__all__ = ["FetchResult", "fetch_accounts"]
