"""Directory service collaborators."""

from .base import DirectoryBackend, OuSummary
from .errors import AccountNotFoundError, DirectoryError
from .fetch import FetchResult, fetch_accounts
from .powershell import PowerShellDirectory, PowerShellRunner

__all__ = [
    "AccountNotFoundError",
    "DirectoryBackend",
    "DirectoryError",
    "FetchResult",
    "OuSummary",
    "PowerShellDirectory",
    "PowerShellRunner",
    "fetch_accounts",
]
