"""
Action executor port.

An executor performs one named provider action against one connected
external system. It must make retryable and terminal failures
distinguishable, which it does by raising ActionError with the HTTP-style
status of the failure.
"""

from abc import ABC, abstractmethod
from typing import Any


class ActionError(Exception):
    """
    Categorized failure raised by an action executor.

    Attributes:
        status_code: HTTP-style status of the failure, None for transport
            failures (connection reset, timeout, DNS...)
        provider_action: Action that failed
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        provider_action: str | None = None,
        retryable: bool | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.provider_action = provider_action
        self._retryable = retryable

    @property
    def retryable(self) -> bool:
        """Transport failures, 5xx and 429 are retryable; any other status is terminal."""
        if self._retryable is not None:
            return self._retryable
        if self.status_code is None:
            return True
        return self.status_code >= 500 or self.status_code == 429


class ActionExecutor(ABC):
    """
    Executes provider actions on behalf of the step runner and cleanup engine.

    Implementations return the already-unwrapped provider output.
    """

    #: Calls are rejected with ConfigError while the configured api_key is empty
    requires_api_key: bool = False

    @abstractmethod
    async def execute(self, connection: str, provider_action: str, payload: dict[str, Any]) -> Any:
        """
        Execute one action.

        Args:
            connection: Connection handle from the ConnectionResolver
            provider_action: Concrete action name (``"SLACKBOT_SEND_MESSAGE"``)
            payload: Fully resolved input

        Raises:
            ActionError: On any failure; ``retryable`` tells the runner what to do
        """
        ...

    async def close(self) -> None:  # noqa: B027
        """Release network resources."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
