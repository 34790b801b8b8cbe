"""Windows Task Scheduler registration for recurring sweeps."""

from __future__ import annotations

import logging
from typing import Optional

from adsweep.config.models import ScheduleSettings
from adsweep.directory.powershell import PowerShellRunner, quote
from adsweep.lifecycle.models import AccountKind

LOGGER = logging.getLogger(__name__)

PASSWORD_ENV = "ADSWEEP_TASK_PASSWORD"
SYSTEM_ACCOUNT = "NT AUTHORITY\\SYSTEM"


def task_name(schedule: ScheduleSettings, kind: AccountKind) -> str:
    """Return the task name used for ``kind``."""
    return f"{schedule.task_name}-{kind.value}s"


def task_arguments(kind: AccountKind) -> str:
    """Return the command-line arguments the scheduled task runs."""
    return f"sweep {kind.value}s --apply --quiet"


def build_registration_script(
    schedule: ScheduleSettings,
    kind: AccountKind,
    *,
    user: Optional[str] = None,
) -> str:
    """Build the ``Register-ScheduledTask`` script for one account kind.

    The task runs weekly. When ``user`` is given, the password is read from
    the ``ADSWEEP_TASK_PASSWORD`` environment variable of the registering
    process; it never appears in the script text.

    Args:
        schedule: Scheduling section of the configuration.
        kind: Account kind the task sweeps.
        user: Account the task runs as; defaults to ``SYSTEM``.

    Returns:
        str: PowerShell script.
    """
    principal = f"-User {quote(user)} -Password $env:{PASSWORD_ENV}"
    if not user:
        principal = f"-User {quote(SYSTEM_ACCOUNT)}"
    lines = [
        "$ErrorActionPreference = 'Stop'",
        f"$action = New-ScheduledTaskAction -Execute {quote(schedule.executable)} "
        f"-Argument {quote(task_arguments(kind))}",
        f"$trigger = New-ScheduledTaskTrigger -Weekly -DaysOfWeek {schedule.day_of_week} "
        f"-At {quote(schedule.at)}",
        "$settings = New-ScheduledTaskSettingsSet -StartWhenAvailable",
        f"Register-ScheduledTask -TaskName {quote(task_name(schedule, kind))} "
        f"-TaskPath {quote(schedule.task_path)} -Action $action -Trigger $trigger "
        f"-Settings $settings {principal} -RunLevel Highest -Force | Out-Null",
    ]
    return "\n".join(lines)


def register_task(
    runner: PowerShellRunner,
    schedule: ScheduleSettings,
    kind: AccountKind,
    *,
    user: Optional[str] = None,
    password: Optional[str] = None,
) -> str:
    """Register (or replace) the scheduled task for ``kind``.

    Returns:
        str: Name of the registered task.

    Raises:
        DirectoryError: If PowerShell reports a failure.
    """
    script = build_registration_script(schedule, kind, user=user)
    env = {PASSWORD_ENV: password} if user and password is not None else None
    runner.run(script, env=env)
    name = task_name(schedule, kind)
    LOGGER.info("Registered scheduled task %s%s.", schedule.task_path, name)
    return name


__all__ = [
    "PASSWORD_ENV",
    "build_registration_script",
    "register_task",
    "task_arguments",
    "task_name",
]
