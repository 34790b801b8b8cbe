"""Planning and execution of lifecycle actions."""

from .errors import ActionError, PreconditionFailure, WriteFailure
from .executor import ActionExecutor
from .models import (
    ActionEvent,
    ActionPlan,
    DisableOperation,
    ExecutionReport,
    RemoveOperation,
)
from .planner import ActionPlanner

__all__ = [
    "ActionError",
    "ActionEvent",
    "ActionExecutor",
    "ActionPlan",
    "ActionPlanner",
    "DisableOperation",
    "ExecutionReport",
    "PreconditionFailure",
    "RemoveOperation",
    "WriteFailure",
]
