"""
Logger access for Seedline components.

Every module logs through ``get_logger(__name__)``. Names are kept inside the
``seedline`` namespace, so the handler and level that
``seedline.monitoring.setup_logging`` installs on the ``seedline`` logger
(together with the execution context filter) cover every record the
orchestrator, runner, log and cleanup engine emit.

A job runner embedding the orchestrator can route everything to its own
logger instead, at any time, including after the modules are imported:

    from seedline.core.logger import set_logger
    set_logger(my_job_logger)   # anything with debug/info/warning/error/exception
    set_logger(None)            # back to standard logging
"""

import logging
from typing import Any

ROOT_LOGGER = "seedline"

_custom_logger: Any = None

# Silent unless the application configures handlers
logging.getLogger(ROOT_LOGGER).addHandler(logging.NullHandler())


class NullLogger:
    """Logger that drops everything. ``set_logger(NullLogger())`` silences Seedline."""

    def _drop(self, *args: Any, **kwargs: Any) -> None:
        return None

    debug = info = warning = error = exception = critical = _drop


class ComponentLogger:
    """
    Module-level logger handle.

    Resolves its target on every call: the logger installed with
    ``set_logger()`` if any, else the standard logger of the same name.
    """

    def __init__(self, name: str):
        self.name = name

    @property
    def target(self) -> Any:
        if _custom_logger is not None:
            return _custom_logger
        return logging.getLogger(self.name)

    def __getattr__(self, attr: str) -> Any:
        return getattr(self.target, attr)

    def __repr__(self) -> str:
        return f"<ComponentLogger {self.name}>"


def qualified_name(name: str | None = None) -> str:
    """
    Map a logger name into the ``seedline`` namespace.

    >>> qualified_name("seedline.core.runner")
    'seedline.core.runner'
    >>> qualified_name("nightly_seed")
    'seedline.nightly_seed'
    """
    if not name or name == ROOT_LOGGER:
        return ROOT_LOGGER
    if name.startswith(f"{ROOT_LOGGER}."):
        return name
    return f"{ROOT_LOGGER}.{name}"


def set_logger(logger: Any) -> None:
    """
    Set a custom logger for all Seedline components.

    Args:
        logger: Must support debug/info/warning/error/exception methods.
                Pass None to go back to standard logging.
    """
    global _custom_logger
    _custom_logger = logger


def get_logger(name: str | None = None) -> ComponentLogger:
    """Get the logger handle for a Seedline component."""
    return ComponentLogger(qualified_name(name))
