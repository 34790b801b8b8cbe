"""Run history errors."""


class StateError(Exception):
    """Raised when stored run history cannot be read."""
