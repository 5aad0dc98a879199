"""
Idempotency tracking for scenario runs.

A run is fingerprinted by tenant, scenario and the current time bucket, so
asking for the same scenario again within the window maps to the execution
already started. There is no lock: two concurrent requests can both miss
and both run.
"""

import hashlib
import time
from collections.abc import Callable

from seedline.core.execution_log import ExecutionLog
from seedline.core.types import IDEMPOTENT_STATUSES

DEFAULT_WINDOW_SECONDS = 3600


class IdempotencyTracker:
    """
    Args:
        log: Execution log used to look up earlier runs
        window_seconds: Bucket size of the fingerprint
        clock: Returns the current UNIX time; replaceable in tests
    """

    def __init__(
        self,
        log: ExecutionLog,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.log = log
        self.window_seconds = window_seconds
        self._clock = clock

    def bucket(self) -> int:
        return int(self._clock() // self.window_seconds)

    def fingerprint(self, tenant_id: str, scenario_name: str) -> str:
        key = f"{tenant_id}:{scenario_name}:{self.bucket()}"
        return hashlib.sha256(key.encode()).hexdigest()

    async def find_existing(self, tenant_id: str, execution_hash: str) -> str | None:
        """Id of a running or completed execution with this fingerprint, if any."""
        return await self.log.find_by_hash(tenant_id, execution_hash, IDEMPOTENT_STATUSES)
