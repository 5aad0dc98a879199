"""
HTTP action executor.

Posts ``{connectedAccountId, input}`` to ``{base_url}/actions/{action}/execute``
and normalizes the provider response envelope.

Requires: pip install aiohttp
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import quote

try:
    import aiohttp

    AIOHTTP_AVAILABLE = True
except ImportError:  # pragma: no cover
    AIOHTTP_AVAILABLE = False
    aiohttp = None  # type: ignore[assignment]

from seedline.core.config import DEFAULT_EXECUTOR_URL
from seedline.core.exceptions import MissingDependencyError
from seedline.executors.base import ActionError, ActionExecutor

logger = logging.getLogger(__name__)

# Provider error bodies can be large HTML pages
MAX_ERROR_BODY = 300


def unwrap_envelope(result: Any, provider_action: str = "") -> Any:
    """
    Strip the provider's response wrappers.

    Handles the outer ``{data, successful, error}`` envelope (``successfull``
    is accepted too, some SDK versions misspell it) and then a nested
    ``response_data`` layer.

    Raises:
        ActionError: If the envelope reports failure with an error
    """
    if (
        isinstance(result, dict)
        and "data" in result
        and ("successful" in result or "successfull" in result)
    ):
        succeeded = result.get("successful") is True or result.get("successfull") is True
        error = result.get("error")
        if not succeeded and error:
            msg = f"{provider_action} failed: {error}"
            raise ActionError(msg, provider_action=provider_action)
        result = result["data"]

    if isinstance(result, dict) and isinstance(result.get("response_data"), dict):
        result = result["response_data"]

    return result


class HttpActionExecutor(ActionExecutor):
    """
    aiohttp-based executor for a hosted action API.

    Example:
        >>> async with HttpActionExecutor(api_key="...") as executor:
        ...     await executor.execute("conn-1", "SLACKBOT_SEND_MESSAGE", {"text": "hi"})

    Args:
        api_key: Sent as the ``x-api-key`` header
        base_url: API root
        session: Optional externally owned ClientSession
        timeout: Total request timeout in seconds
    """

    requires_api_key = True

    def __init__(
        self,
        api_key: str | None,
        base_url: str = DEFAULT_EXECUTOR_URL,
        session: Any = None,
        timeout: float = 30.0,
    ):
        if not AIOHTTP_AVAILABLE and session is None:  # pragma: no cover
            msg = "aiohttp"
            raise MissingDependencyError(msg, "HTTP action executor")

        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    def _get_session(self):
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    def action_url(self, provider_action: str) -> str:
        return f"{self.base_url}/actions/{quote(provider_action, safe='')}/execute"

    async def execute(self, connection: str, provider_action: str, payload: dict[str, Any]) -> Any:
        session = self._get_session()
        body = {"connectedAccountId": connection, "input": payload}
        headers = {"x-api-key": self.api_key or "", "Content-Type": "application/json"}

        try:
            async with session.post(
                self.action_url(provider_action), json=body, headers=headers
            ) as response:
                if response.status >= 400:
                    text = await response.text()
                    msg = f"{provider_action} error {response.status}: {text[:MAX_ERROR_BODY]}"
                    raise ActionError(
                        msg, status_code=response.status, provider_action=provider_action
                    )
                result = await response.json()
        except ActionError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            msg = f"{provider_action} transport failure: {e}"
            raise ActionError(msg, provider_action=provider_action) from e

        return unwrap_envelope(result, provider_action)

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None
