"""
Connection resolver port

Maps a logical integration id ("slack", "github"...) to the connection
handle the action executor needs. The orchestrator resolves every handle it
needs once, at the start of a run, and passes them along; there is no
process-wide connection cache.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

# Integration id -> provider app name, where the two differ
DEFAULT_APP_ALIASES = {
    "slack": "slackbot",
}


class ConnectionResolver(ABC):
    """Port to whatever system holds the tenant's connected accounts."""

    @abstractmethod
    async def resolve(self, tenant_id: str, integration: str) -> str | None:
        """Return the connection handle, or None when the integration is not connected."""
        ...

    async def is_connected(self, tenant_id: str, integration: str) -> bool:
        return await self.resolve(tenant_id, integration) is not None

    async def resolve_all(self, tenant_id: str, integrations: Iterable[str]) -> dict[str, str]:
        """Resolve several integrations at once, leaving out the unconnected ones."""
        handles: dict[str, str] = {}
        for integration in integrations:
            handle = await self.resolve(tenant_id, integration)
            if handle is not None:
                handles[integration] = handle
        return handles


class StaticConnectionResolver(ConnectionResolver):
    """
    Resolver backed by an in-process mapping.

    Used by the CLI (``--connection slack=conn_123``) and in tests.
    Handles may be registered under the integration id or under its
    provider app name; both are looked up.

    Example:
        >>> resolver = StaticConnectionResolver({"org-1": {"slackbot": "ca_1"}})
        >>> await resolver.resolve("org-1", "slack")
        'ca_1'
    """

    def __init__(
        self,
        connections: dict[str, dict[str, str]] | None = None,
        aliases: dict[str, str] | None = None,
    ):
        self._connections: dict[str, dict[str, str]] = {
            tenant: {k.lower(): v for k, v in handles.items()}
            for tenant, handles in (connections or {}).items()
        }
        self.aliases = DEFAULT_APP_ALIASES if aliases is None else aliases

    def connect(self, tenant_id: str, integration: str, handle: str) -> None:
        self._connections.setdefault(tenant_id, {})[integration.lower()] = handle

    def disconnect(self, tenant_id: str, integration: str) -> None:
        handles = self._connections.get(tenant_id, {})
        handles.pop(integration.lower(), None)
        app_name = self.aliases.get(integration.lower())
        if app_name:
            handles.pop(app_name, None)

    async def resolve(self, tenant_id: str, integration: str) -> str | None:
        handles = self._connections.get(tenant_id)
        if not handles:
            return None
        key = integration.lower()
        app_name = self.aliases.get(key, key)
        return handles.get(app_name) or handles.get(key)
