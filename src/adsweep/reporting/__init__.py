"""Report rendering and delivery."""

from .html import count_actions, render_account_report, render_ou_summary
from .mailer import ReportError, ReportMailer

__all__ = [
    "ReportError",
    "ReportMailer",
    "count_actions",
    "render_account_report",
    "render_ou_summary",
]
