"""Configuration models describing adsweep settings."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, PositiveInt

MAX_THRESHOLD_DAYS = 36500


class AdsweepBaseModel(BaseModel):
    """Shared configuration for adsweep Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class PolicySettings(AdsweepBaseModel):
    """Inactivity thresholds applied to one kind of account.

    Both thresholds are whole days between 1 and ``MAX_THRESHOLD_DAYS``.

    Attributes:
        disable_days: Days without a logon before an enabled account is disabled.
        remove_days: Days an account stays disabled before it is removed.
    """

    disable_days: int = Field(default=30, gt=0, le=MAX_THRESHOLD_DAYS)
    remove_days: int = Field(default=30, gt=0, le=MAX_THRESHOLD_DAYS)


class UserPolicySettings(PolicySettings):
    """User-specific policy settings.

    Attributes:
        archive_path: Directory (local or UNC share) receiving exported user objects.
        delete_after_archive: Whether archived users are deleted from the directory.
    """

    disable_days: int = Field(default=90, gt=0, le=MAX_THRESHOLD_DAYS)
    remove_days: int = Field(default=180, gt=0, le=MAX_THRESHOLD_DAYS)
    archive_path: Optional[str] = None
    delete_after_archive: bool = False


class DirectorySettings(AdsweepBaseModel):
    """Settings for the PowerShell ActiveDirectory backend.

    Attributes:
        executable: PowerShell executable (``powershell`` or ``pwsh``).
        server: Optional domain controller passed as ``-Server``.
        search_base: Optional distinguished name limiting account queries.
        timeout_seconds: Maximum runtime for a single PowerShell invocation.
        max_workers: Concurrency used when fetching named accounts.
    """

    executable: str = "powershell"
    server: Optional[str] = None
    search_base: Optional[str] = None
    timeout_seconds: PositiveInt = 300
    max_workers: PositiveInt = 5


class ReportSettings(AdsweepBaseModel):
    """Email delivery options for generated reports.

    Attributes:
        enabled: Whether reports are mailed after each sweep.
        smtp_host: SMTP relay host name.
        smtp_port: SMTP relay port.
        starttls: Whether to upgrade the connection with STARTTLS.
        username: Optional SMTP login.
        password_env: Environment variable holding the SMTP password.
        sender: Envelope and header sender address.
        recipients: Report recipients.
        subject: Subject template; ``{kind}`` and ``{date}`` are substituted.
        timeout_seconds: Socket timeout for the SMTP session.
    """

    enabled: bool = True
    smtp_host: str = "localhost"
    smtp_port: PositiveInt = 25
    starttls: bool = False
    username: Optional[str] = None
    password_env: str = "ADSWEEP_SMTP_PASSWORD"
    sender: str = "adsweep@localhost"
    recipients: List[str] = Field(default_factory=list)
    subject: str = "AD cleanup report: {kind} ({date})"
    timeout_seconds: PositiveInt = 30


class ScheduleSettings(AdsweepBaseModel):
    """Windows scheduled-task registration defaults.

    Attributes:
        task_name: Task name prefix; the account kind is appended.
        task_path: Task Scheduler folder holding the tasks.
        day_of_week: Day the weekly trigger fires.
        at: Local time of day (``HH:MM``) for the trigger.
        executable: Command launched by the task.
    """

    task_name: str = "adsweep"
    task_path: str = "\\adsweep\\"
    day_of_week: Literal[
        "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"
    ] = "Monday"
    at: str = Field(default="06:00", pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    executable: str = "adsweep"


class LoggingSettings(AdsweepBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        path: Log file location.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "INFO"
    path: str = "~/.adsweep/adsweep.log"
    max_size_mb: int = 100
    backup_count: int = 5


class HistorySettings(AdsweepBaseModel):
    """Run history retention.

    Attributes:
        path: JSON file storing run records.
        max_records: Number of run records retained.
    """

    path: str = "~/.adsweep/history.json"
    max_records: PositiveInt = 200


class CLIOptions(AdsweepBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
        history_limit: Default number of history entries to display.
    """

    quiet_default: bool = False
    summary_default: bool = False
    history_limit: int = 10


class AdsweepConfig(AdsweepBaseModel):
    """Top-level configuration struct for adsweep.

    Attributes:
        computers: Policy for computer accounts.
        users: Policy for user accounts.
        directory: Directory backend settings.
        report: Report delivery settings.
        schedule: Scheduled-task defaults.
        logging: Logging configuration.
        history: Run history retention.
        cli: CLI presentation defaults.
    """

    computers: PolicySettings = Field(default_factory=PolicySettings)
    users: UserPolicySettings = Field(default_factory=UserPolicySettings)
    directory: DirectorySettings = Field(default_factory=DirectorySettings)
    report: ReportSettings = Field(default_factory=ReportSettings)
    schedule: ScheduleSettings = Field(default_factory=ScheduleSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    history: HistorySettings = Field(default_factory=HistorySettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)

    def policy_for(self, kind: str) -> PolicySettings:
        """Return the policy section matching an account kind.

        Args:
            kind: ``computer`` or ``user`` (an ``AccountKind`` value also works).

        Returns:
            PolicySettings: Thresholds configured for that kind.
        """
        return self.users if kind == "user" else self.computers


__all__ = [
    "MAX_THRESHOLD_DAYS",
    "AdsweepBaseModel",
    "PolicySettings",
    "UserPolicySettings",
    "DirectorySettings",
    "ReportSettings",
    "ScheduleSettings",
    "LoggingSettings",
    "HistorySettings",
    "CLIOptions",
    "AdsweepConfig",
]
