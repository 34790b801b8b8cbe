"""Directory backend errors."""


class DirectoryError(Exception):
    """Base exception for directory queries and mutations."""


class AccountNotFoundError(DirectoryError):
    """Raised when an account name does not resolve in the directory."""

    def __init__(self, kind: str, name: str) -> None:
        super().__init__(f"No {kind} account named {name!r} was found.")
        self.kind = kind
        self.name = name
