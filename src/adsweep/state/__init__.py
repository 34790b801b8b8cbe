"""Run history persistence for adsweep."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from .errors import StateError
from .models import RunHistory, RunRecord

DEFAULT_HISTORY_PATH = Path("~/.adsweep/history.json")


class HistoryRepository:
    """Append and read run records stored as a JSON document."""

    def __init__(self, path: Path | None = None, *, max_records: int = 200) -> None:
        """Initialize the repository.

        Args:
            path: History file; defaults to ``~/.adsweep/history.json``.
            max_records: Number of most recent records kept on disk.
        """
        self._path = (path or DEFAULT_HISTORY_PATH).expanduser()
        self._max_records = max_records

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> RunHistory:
        """Return stored history, empty when no file exists.

        Raises:
            StateError: If the file cannot be parsed.
        """
        if not self._path.exists():
            return RunHistory()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return RunHistory.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as exc:
            raise StateError(f"Invalid run history data in {self._path}: {exc}") from exc

    def append(self, record: RunRecord) -> None:
        """Add a record, trimming the oldest beyond ``max_records``."""
        history = self.load()
        history.runs.append(record)
        history.runs = history.runs[-self._max_records :]
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps(history.model_dump(mode="json"), indent=2), encoding="utf-8"
        )

    def recent(self, limit: int) -> list[RunRecord]:
        """Return up to ``limit`` records, newest first."""
        runs = self.load().runs
        return list(reversed(runs[-limit:])) if limit > 0 else []


__all__ = [
    "DEFAULT_HISTORY_PATH",
    "HistoryRepository",
    "RunHistory",
    "RunRecord",
    "StateError",
]
