"""Errors raised while applying lifecycle actions."""


class ActionError(Exception):
    """Base exception for action execution."""


class WriteFailure(ActionError):
    """Raised when a directory or archive mutation fails for one account."""

    def __init__(self, name: str, operation: str, reason: str) -> None:
        super().__init__(f"{operation} failed for {name}: {reason}")
        self.name = name
        self.operation = operation
        self.reason = reason


class PreconditionFailure(ActionError):
    """Raised when removals cannot start safely, e.g. the archive share is unreachable."""
