"""HTML rendering for sweep and OU-summary reports."""

from __future__ import annotations

from datetime import datetime
from html import escape
from typing import Iterable, Optional, Sequence

from adsweep.directory.base import OuSummary
from adsweep.lifecycle.classifier import sort_results
from adsweep.lifecycle.models import AccountKind, ClassificationResult

_STYLE = """
body { font-family: Segoe UI, Arial, sans-serif; font-size: 10pt; color: #222; }
h1 { font-size: 14pt; }
p.meta { color: #666; }
table { border-collapse: collapse; width: 100%; }
th { background: #2f5597; color: #fff; text-align: left; padding: 4px 8px; }
td { border-bottom: 1px solid #ddd; padding: 4px 8px; vertical-align: top; }
tr:nth-child(even) td { background: #f5f7fa; }
tr.action-disable td { background: #fff4ce; }
tr.action-remove td { background: #fde7e9; }
tr.action-wait td { color: #555; }
tr.action-keep td, tr.action-svc td, tr.action-new td { color: #1e6b30; }
tr.flagged td { background: #fde7e9; font-weight: bold; }
td.num { text-align: right; }
"""


def _document(title: str, body: str) -> str:
    return (
        "<!DOCTYPE html>\n<html>\n<head>\n<meta charset=\"utf-8\">\n"
        f"<title>{escape(title)}</title>\n<style>{_STYLE}</style>\n</head>\n"
        f"<body>\n<h1>{escape(title)}</h1>\n{body}\n</body>\n</html>\n"
    )


def _format_timestamp(value: Optional[datetime]) -> str:
    if value is None:
        return "Never"
    return value.strftime("%Y-%m-%d %H:%M")


def _table(headers: Sequence[str], rows: Iterable[str]) -> str:
    head = "".join(f"<th>{escape(header)}</th>" for header in headers)
    return f"<table>\n<tr>{head}</tr>\n" + "\n".join(rows) + "\n</table>"


def count_actions(results: Iterable[ClassificationResult]) -> dict[str, int]:
    """Return the number of results per action label."""
    counts: dict[str, int] = {}
    for result in results:
        counts[result.action.value] = counts.get(result.action.value, 0) + 1
    return dict(sorted(counts.items()))


def render_account_report(
    results: Iterable[ClassificationResult],
    *,
    kind: AccountKind,
    title: str,
    generated_at: datetime,
    dry_run: bool = False,
    notes: Sequence[str] = (),
) -> str:
    """Render classification results as a styled HTML document.

    Rows are sorted by action, then name, and carry an ``action-<name>``
    class so disables and removals stand out.

    Args:
        results: Classification results to list.
        kind: Account kind; selects the kind-specific column.
        title: Document heading.
        generated_at: Time shown in the report header.
        dry_run: Adds a banner stating that no changes were made.
        notes: Extra lines printed above the table.

    Returns:
        str: Complete HTML document.
    """
    ordered = sort_results(results)
    extra_header = "Operating System" if kind is AccountKind.COMPUTER else "Created"
    headers = ["Name", "Enabled", "Last Logon", extra_header, "Description", "Action"]

    rows = []
    for result in ordered:
        snapshot = result.snapshot
        if kind is AccountKind.COMPUTER:
            extra = snapshot.operating_system or ""
        else:
            extra = _format_timestamp(snapshot.when_created)
        cells = [
            snapshot.name,
            "Yes" if snapshot.enabled else "No",
            _format_timestamp(snapshot.last_logon_date),
            extra,
            snapshot.description,
            result.action.value,
        ]
        rendered = "".join(f"<td>{escape(cell)}</td>" for cell in cells)
        rows.append(f'<tr class="action-{result.action.value.lower()}">{rendered}</tr>')

    counts = count_actions(ordered)
    summary = ", ".join(f"{action}: {count}" for action, count in counts.items()) or "none"
    meta = [
        f'<p class="meta">Generated {escape(_format_timestamp(generated_at))}. '
        f"Accounts evaluated: {len(ordered)} ({escape(summary)}).</p>"
    ]
    if dry_run:
        meta.append('<p class="meta"><strong>Dry run: no accounts were changed.</strong></p>')
    meta.extend(f'<p class="meta">{escape(note)}</p>' for note in notes)
    return _document(title, "\n".join(meta) + "\n" + _table(headers, rows))


def render_ou_summary(
    rows: Iterable[OuSummary],
    *,
    title: str,
    generated_at: datetime,
) -> str:
    """Render per-OU enabled/disabled counts.

    Rows with a non-zero disabled count get the ``flagged`` class.

    Args:
        rows: Per-OU counts.
        title: Document heading.
        generated_at: Time shown in the report header.

    Returns:
        str: Complete HTML document.
    """
    rendered = []
    for row in rows:
        css = ' class="flagged"' if row.disabled > 0 else ""
        rendered.append(
            f"<tr{css}><td>{escape(row.ou or '(root)')}</td>"
            f'<td class="num">{row.enabled}</td><td class="num">{row.disabled}</td></tr>'
        )
    meta = f'<p class="meta">Generated {escape(_format_timestamp(generated_at))}.</p>'
    return _document(title, meta + "\n" + _table(["OU", "Enabled", "Disabled"], rendered))


__all__ = ["count_actions", "render_account_report", "render_ou_summary"]
