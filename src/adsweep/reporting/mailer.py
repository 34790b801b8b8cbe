"""SMTP delivery of HTML reports."""

from __future__ import annotations

import logging
import os
import smtplib
from email.message import EmailMessage
from typing import Callable, Mapping

from adsweep.config.exceptions import ConfigError
from adsweep.config.models import ReportSettings

LOGGER = logging.getLogger(__name__)


class ReportError(Exception):
    """Raised when a report cannot be delivered."""


class ReportMailer:
    """Send HTML reports to the configured recipients."""

    def __init__(
        self,
        settings: ReportSettings,
        *,
        smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP,
        env: Mapping[str, str] | None = None,
    ) -> None:
        if not settings.recipients:
            raise ConfigError("report.recipients must list at least one address.")
        self._settings = settings
        self._smtp_factory = smtp_factory
        self._env = env if env is not None else os.environ

    def build_message(self, subject: str, html_body: str) -> EmailMessage:
        """Return the MIME message for a report."""
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self._settings.sender
        message["To"] = ", ".join(self._settings.recipients)
        message.set_content("This report requires an HTML capable mail client.")
        message.add_alternative(html_body, subtype="html")
        return message

    def send(self, subject: str, html_body: str) -> None:
        """Deliver a report.

        Args:
            subject: Message subject.
            html_body: Rendered HTML document.

        Raises:
            ReportError: If the SMTP session fails.
        """
        settings = self._settings
        message = self.build_message(subject, html_body)
        try:
            with self._smtp_factory(
                settings.smtp_host, settings.smtp_port, timeout=settings.timeout_seconds
            ) as smtp:
                if settings.starttls:
                    smtp.starttls()
                if settings.username:
                    smtp.login(settings.username, self._env.get(settings.password_env, ""))
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise ReportError(
                f"Failed to send report via {settings.smtp_host}:{settings.smtp_port}: {exc}"
            ) from exc
        LOGGER.info("Report %r sent to %s.", subject, ", ".join(settings.recipients))
