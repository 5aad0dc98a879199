"""
SeedlineConfig - Unified configuration for the scenario orchestrator.

Wires together the feature switch, sandbox allow-list, quotas, pacing and
the persistence store location.

Example:
    >>> from seedline import SeedlineConfig, configure
    >>>
    >>> configure(SeedlineConfig(
    ...     enabled=True,
    ...     sandbox_tenants=("org-demo",),
    ...     storage_url="sqlite:///./seedline.db",
    ... ))

Environment variables (see ``SeedlineConfig.from_env``):
    SEEDLINE_ENABLED, SEEDLINE_API_KEY, SEEDLINE_REQUIRE_API_KEY,
    SEEDLINE_SANDBOX_TENANTS, SEEDLINE_MAX_DAILY_EXECUTIONS,
    SEEDLINE_STEP_DELAY, SEEDLINE_IDEMPOTENCY_WINDOW,
    SEEDLINE_STORAGE_URL, SEEDLINE_EXECUTOR_URL, SEEDLINE_SEED_TAG
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_SEED_TAG = "[SEEDLINE_SEED]"
DEFAULT_EXECUTOR_URL = "https://backend.composio.dev/api/v2"


@dataclass
class SeedlineConfig:
    """
    Configuration for scenario execution.

    Attributes:
        enabled: Master switch; every run fails with DisabledError when off
        api_key: Credential handed to the HTTP action executor
        require_api_key: Require api_key even for executors that do not need one
            (the HTTP executor always does)
        sandbox_tenants: Explicit allow-list of sandbox tenant ids
        max_daily_executions: Per-tenant quota per UTC day
        step_delay: Seconds slept between two steps of one execution
        retry_delays: Backoff before each retry; its length is the retry bound
        idempotency_window: Fingerprint bucket size in seconds
        seed_tag: Marker prefixed to every text field the orchestrator writes
        summary_threshold: Max JSON length of a stored output before summarizing
        storage_url: Persistence store location (memory://, sqlite://, postgresql://)
        executor_base_url: Base URL of the HTTP action executor
    """

    enabled: bool = False
    api_key: str | None = None
    require_api_key: bool = False
    sandbox_tenants: tuple[str, ...] = ()
    max_daily_executions: int = 20
    step_delay: float = 0.5
    retry_delays: tuple[float, ...] = (1.0, 2.0, 4.0)
    idempotency_window: int = 3600
    seed_tag: str = DEFAULT_SEED_TAG
    summary_threshold: int = 2000
    storage_url: str = "memory://"
    executor_base_url: str = DEFAULT_EXECUTOR_URL

    extra: dict[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        self.sandbox_tenants = tuple(self.sandbox_tenants)
        self.retry_delays = tuple(float(d) for d in self.retry_delays)

        if self.max_daily_executions < 1:
            msg = f"max_daily_executions must be positive, got {self.max_daily_executions}"
            raise ValueError(msg)
        if self.step_delay < 0:
            msg = f"step_delay must not be negative, got {self.step_delay}"
            raise ValueError(msg)
        if any(d < 0 for d in self.retry_delays):
            msg = "retry_delays must not contain negative values"
            raise ValueError(msg)
        if self.idempotency_window < 1:
            msg = f"idempotency_window must be positive, got {self.idempotency_window}"
            raise ValueError(msg)

    @property
    def max_retries(self) -> int:
        return len(self.retry_delays)

    def is_sandbox_allowed(self, tenant_id: str) -> bool:
        return tenant_id in self.sandbox_tenants

    @classmethod
    def from_env(cls, load_dotenv: bool = True) -> SeedlineConfig:
        """
        Create configuration from environment variables.

        Args:
            load_dotenv: If True, loads .env file before reading variables
        """
        from seedline.core.env import get_env

        env = get_env()
        if load_dotenv:
            env.load()

        return cls(
            enabled=env.get_bool("SEEDLINE_ENABLED", False),
            api_key=env.get("SEEDLINE_API_KEY") or None,
            require_api_key=env.get_bool("SEEDLINE_REQUIRE_API_KEY", False),
            sandbox_tenants=tuple(env.get_list("SEEDLINE_SANDBOX_TENANTS")),
            max_daily_executions=env.get_int("SEEDLINE_MAX_DAILY_EXECUTIONS", 20),
            step_delay=env.get_float("SEEDLINE_STEP_DELAY", 0.5),
            idempotency_window=env.get_int("SEEDLINE_IDEMPOTENCY_WINDOW", 3600),
            seed_tag=env.get("SEEDLINE_SEED_TAG", DEFAULT_SEED_TAG) or DEFAULT_SEED_TAG,
            storage_url=env.get("SEEDLINE_STORAGE_URL", "memory://") or "memory://",
            executor_base_url=env.get("SEEDLINE_EXECUTOR_URL", DEFAULT_EXECUTOR_URL)
            or DEFAULT_EXECUTOR_URL,
        )

    @classmethod
    def from_file(cls, file_path: str | Path, substitute_env: bool = True) -> SeedlineConfig:
        """
        Create configuration from a seedline.yaml file.

        Values may reference environment variables using ``${VAR}`` syntax.
        Unknown keys are kept in ``extra``.
        """
        import yaml

        from seedline.core.env import get_env

        path = Path(file_path)
        data = yaml.safe_load(path.read_text()) or {}
        if substitute_env:
            data = get_env().substitute_dict(data)

        known = {f for f in cls.__dataclass_fields__ if f != "extra"}
        kwargs = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        if "sandbox_tenants" in kwargs and isinstance(kwargs["sandbox_tenants"], str):
            kwargs["sandbox_tenants"] = tuple(
                t.strip() for t in kwargs["sandbox_tenants"].split(",") if t.strip()
            )
        return cls(**kwargs, extra=extra)


_global_config: SeedlineConfig | None = None


def get_config() -> SeedlineConfig:
    """Get the global configuration."""
    global _global_config
    if _global_config is None:
        _global_config = SeedlineConfig()
    return _global_config


def configure(config: SeedlineConfig) -> None:
    """Set the global configuration."""
    global _global_config
    _global_config = config
    logger.info(f"Seedline configured: enabled={config.enabled}, storage={config.storage_url}")
