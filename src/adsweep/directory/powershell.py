"""ActiveDirectory backend driven through the PowerShell AD module."""

from __future__ import annotations

import base64
import json
import logging
import os
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Optional

from adsweep.config.models import DirectorySettings
from adsweep.lifecycle.models import AccountKind, AccountSnapshot

from .base import OuSummary
from .errors import AccountNotFoundError, DirectoryError

LOGGER = logging.getLogger(__name__)

if os.name == "nt":
    CREATE_NO_WINDOW = subprocess.CREATE_NO_WINDOW
else:
    CREATE_NO_WINDOW = 0

NOT_FOUND_SENTINEL = "__ADSWEEP_NOT_FOUND__"

_CMDLET_NOUN = {AccountKind.COMPUTER: "ADComputer", AccountKind.USER: "ADUser"}
_NAME_PROPERTY = {AccountKind.COMPUTER: "Name", AccountKind.USER: "SamAccountName"}
_PROPERTIES = {
    AccountKind.COMPUTER: "LastLogonDate,whenCreated,OperatingSystem,Description",
    AccountKind.USER: "LastLogonDate,whenCreated,Description",
}


def quote(value: str) -> str:
    """Return ``value`` as a single-quoted PowerShell string literal."""
    return "'" + value.replace("'", "''") + "'"


def _iso(prop: str) -> str:
    return (
        f"@{{n='{prop}';e={{if ($_.{prop}) "
        f"{{ $_.{prop}.ToUniversalTime().ToString('yyyy-MM-ddTHH:mm:ssZ') }}}}}}"
    )


class PowerShellRunner:
    """Run PowerShell scripts in a windowless subprocess."""

    def __init__(self, executable: str = "powershell", *, timeout: float = 300) -> None:
        self.executable = executable
        self.timeout = timeout

    def run(self, script: str, *, env: Mapping[str, str] | None = None) -> str:
        """Execute ``script`` and return its standard output.

        Args:
            script: PowerShell source to execute.
            env: Extra environment variables for the child process.

        Returns:
            str: Captured standard output.

        Raises:
            DirectoryError: If PowerShell is missing, times out or exits non-zero.
        """
        encoded = base64.b64encode(script.encode("utf-16-le")).decode("ascii")
        command = [self.executable, "-NoProfile", "-NonInteractive", "-EncodedCommand", encoded]
        child_env = None
        if env:
            child_env = {**os.environ, **env}
        try:
            process = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=child_env,
                creationflags=CREATE_NO_WINDOW,
            )
        except FileNotFoundError as exc:
            raise DirectoryError(f"PowerShell executable not found: {self.executable}") from exc
        except subprocess.TimeoutExpired as exc:
            raise DirectoryError(f"PowerShell command timed out after {self.timeout}s") from exc

        if process.returncode != 0:
            message = (process.stderr or process.stdout or "").strip()
            raise DirectoryError(f"PowerShell error (exit {process.returncode}): {message}")
        return process.stdout


class PowerShellDirectory:
    """Directory backend built on the ActiveDirectory PowerShell module."""

    def __init__(
        self,
        settings: DirectorySettings | None = None,
        *,
        runner: PowerShellRunner | None = None,
    ) -> None:
        self._settings = settings or DirectorySettings()
        self._runner = runner or PowerShellRunner(
            self._settings.executable, timeout=self._settings.timeout_seconds
        )

    @property
    def runner(self) -> PowerShellRunner:
        return self._runner

    def verify(self) -> None:
        output = self._runner.run("Get-Command -Name Get-ADUser -ErrorAction SilentlyContinue")
        if not output.strip():
            raise DirectoryError(
                "ActiveDirectory module not found. Is this a domain-joined machine with RSAT "
                "installed and enabled?"
            )

    def list_accounts(self, kind: AccountKind) -> list[AccountSnapshot]:
        noun = _CMDLET_NOUN[kind]
        scope = self._scope_args(search_base=True)
        script = self._script(
            f"$items = @(Get-{noun} -Filter * -Properties {_PROPERTIES[kind]}{scope} | "
            f"Select-Object {self._projection(kind)})\n"
            "ConvertTo-Json -InputObject $items -Depth 3 -Compress"
        )
        rows = self._parse_rows(self._runner.run(script))
        LOGGER.info("Fetched %d %s account(s) from the directory.", len(rows), kind.value)
        return [self._to_snapshot(kind, row) for row in rows]

    def fetch_account(self, kind: AccountKind, name: str) -> AccountSnapshot:
        noun = _CMDLET_NOUN[kind]
        script = self._script(
            "try {\n"
            f"    $obj = Get-{noun} -Identity {quote(name)} "
            f"-Properties {_PROPERTIES[kind]}{self._scope_args()}\n"
            "} catch [Microsoft.ActiveDirectory.Management.ADIdentityNotFoundException] {\n"
            f"    Write-Output '{NOT_FOUND_SENTINEL}'\n"
            "    exit 0\n"
            "}\n"
            f"$obj | Select-Object {self._projection(kind)} | ConvertTo-Json -Depth 3 -Compress"
        )
        output = self._runner.run(script).strip()
        if output == NOT_FOUND_SENTINEL:
            raise AccountNotFoundError(kind.value, name)
        rows = self._parse_rows(output)
        if not rows:
            raise AccountNotFoundError(kind.value, name)
        return self._to_snapshot(kind, rows[0])

    def set_disabled(self, kind: AccountKind, name: str, description: str) -> None:
        noun = _CMDLET_NOUN[kind]
        scope = self._scope_args()
        script = self._script(
            f"$obj = Get-{noun} -Identity {quote(name)}{scope}\n"
            f"Set-ADObject -Identity $obj.DistinguishedName "
            f"-ProtectedFromAccidentalDeletion $false{scope}\n"
            f"Set-{noun} -Identity $obj -Description {quote(description)}{scope}\n"
            f"Disable-ADAccount -Identity $obj{scope}"
        )
        self._runner.run(script)
        LOGGER.info("Disabled %s %s.", kind.value, name)

    def delete_account(self, kind: AccountKind, name: str) -> None:
        noun = _CMDLET_NOUN[kind]
        scope = self._scope_args()
        script = self._script(
            f"$obj = Get-{noun} -Identity {quote(name)}{scope}\n"
            f"Set-ADObject -Identity $obj.DistinguishedName "
            f"-ProtectedFromAccidentalDeletion $false{scope}\n"
            f"Remove-ADObject -Identity $obj.DistinguishedName -Recursive -Confirm:$false{scope}"
        )
        self._runner.run(script)
        LOGGER.info("Deleted %s %s.", kind.value, name)

    def archive_account(self, kind: AccountKind, name: str, destination: Path) -> Path:
        noun = _CMDLET_NOUN[kind]
        stamp = datetime.now().strftime("%Y%m%d%H%M%S")
        target = Path(destination) / f"{name}_{stamp}.xml"
        script = self._script(
            f"Get-{noun} -Identity {quote(name)} -Properties *{self._scope_args()} | "
            f"Export-Clixml -Path {quote(str(target))}"
        )
        self._runner.run(script)
        LOGGER.info("Archived %s %s to %s.", kind.value, name, target)
        return target

    def ou_summary(self, kind: AccountKind) -> list[OuSummary]:
        noun = _CMDLET_NOUN[kind]
        script = self._script(
            f"$items = @(Get-{noun} -Filter *{self._scope_args(search_base=True)} | "
            "Group-Object { ($_.DistinguishedName -split '(?<!\\\\),', 2)[1] } | "
            "ForEach-Object { [pscustomobject]@{ OU = $_.Name; "
            "Enabled = @($_.Group | Where-Object { $_.Enabled }).Count; "
            "Disabled = @($_.Group | Where-Object { -not $_.Enabled }).Count } })\n"
            "ConvertTo-Json -InputObject $items -Compress"
        )
        rows = self._parse_rows(self._runner.run(script))
        summaries = [
            OuSummary(
                ou=row.get("OU") or "",
                enabled=int(row.get("Enabled") or 0),
                disabled=int(row.get("Disabled") or 0),
            )
            for row in rows
        ]
        return sorted(summaries, key=lambda item: item.ou.lower())

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #

    def _script(self, body: str) -> str:
        return "$ErrorActionPreference = 'Stop'\nImport-Module ActiveDirectory\n" + body

    def _scope_args(self, *, search_base: bool = False) -> str:
        args = ""
        if self._settings.server:
            args += f" -Server {quote(self._settings.server)}"
        if search_base and self._settings.search_base:
            args += f" -SearchBase {quote(self._settings.search_base)}"
        return args

    def _projection(self, kind: AccountKind) -> str:
        fields = [
            f"@{{n='Name';e={{$_.{_NAME_PROPERTY[kind]}}}}}",
            "@{n='Enabled';e={[bool]$_.Enabled}}",
            _iso("LastLogonDate"),
            _iso("whenCreated"),
            "Description",
            "DistinguishedName",
        ]
        if kind is AccountKind.COMPUTER:
            fields.append("OperatingSystem")
        return ", ".join(fields)

    def _parse_rows(self, output: str) -> list[dict[str, Any]]:
        text = output.strip()
        if not text:
            return []
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise DirectoryError(f"Unexpected PowerShell output: {exc}") from exc
        if isinstance(payload, dict):
            return [payload]
        if isinstance(payload, list):
            return [row for row in payload if isinstance(row, dict)]
        raise DirectoryError("Unexpected PowerShell output: expected a JSON object or array.")

    def _to_snapshot(self, kind: AccountKind, row: Mapping[str, Any]) -> AccountSnapshot:
        return AccountSnapshot(
            kind=kind,
            name=str(row.get("Name") or ""),
            enabled=bool(row.get("Enabled")),
            last_logon_date=_parse_timestamp(row.get("LastLogonDate")),
            when_created=_parse_timestamp(row.get("whenCreated")),
            operating_system=row.get("OperatingSystem") if kind is AccountKind.COMPUTER else None,
            description=row.get("Description") or "",
            distinguished_name=row.get("DistinguishedName"),
        )


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        LOGGER.warning("Ignoring unparseable directory timestamp %r.", value)
        return None


__all__ = [
    "NOT_FOUND_SENTINEL",
    "PowerShellDirectory",
    "PowerShellRunner",
    "quote",
]
