"""Action executors: the boundary to third-party systems."""

from .base import ActionError, ActionExecutor
from .http import HttpActionExecutor, unwrap_envelope

__all__ = [
    "ActionError",
    "ActionExecutor",
    "HttpActionExecutor",
    "unwrap_envelope",
]
