"""
All seedline exceptions

Precondition errors carry a stable ``code`` so callers (API routes, job
runners, the CLI) can map them to responses without parsing messages.
"""

from typing import Any


class SeedlineError(Exception):
    """Base seedline error"""

    code = "SEEDLINE_ERROR"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class DisabledError(SeedlineError):
    """Scenario execution is switched off for this environment"""

    code = "DISABLED"


class ConfigError(SeedlineError):
    """A required credential or setting is missing"""

    code = "CONFIG_ERROR"


class NotSandboxedError(SeedlineError):
    """Tenant is not authorized as a sandbox"""

    code = "NOT_SANDBOX"


class OrgNotFoundError(SeedlineError):
    """Tenant does not exist in the persistence store"""

    code = "ORG_NOT_FOUND"


class RateLimitedError(SeedlineError):
    """Tenant exhausted its daily execution quota"""

    code = "RATE_LIMITED"

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Daily execution limit reached ({limit}). Try again tomorrow.")


class InvalidScenarioError(SeedlineError):
    """Scenario name does not resolve to a known definition"""

    code = "INVALID_SCENARIO"

    def __init__(self, scenario_name: str, available: list[str] | None = None):
        self.scenario_name = scenario_name
        self.available = list(available or [])
        names = ", ".join(self.available) or "none"
        super().__init__(f'Unknown scenario: "{scenario_name}". Available: {names}')


class ScenarioValidationError(SeedlineError):
    """Scenario definition is structurally invalid"""

    code = "INVALID_SCENARIO"

    def __init__(self, scenario_name: str, errors: list[str]):
        self.scenario_name = scenario_name
        self.errors = list(errors)
        super().__init__(f"Scenario {scenario_name!r} is invalid: " + "; ".join(self.errors))


class MissingIntegrationsError(SeedlineError):
    """One or more required integrations are not connected"""

    code = "MISSING_INTEGRATIONS"

    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__(
            f"Missing required integrations: {', '.join(self.missing)}. Connect them first."
        )


class DuplicateExecutionError(SeedlineError):
    """
    An execution for the same fingerprint already exists.

    Informational: it is attached to the returned ExecutionResult rather
    than raised to the caller.
    """

    code = "DUPLICATE_EXECUTION"

    def __init__(self, execution_id: str):
        self.execution_id = execution_id
        super().__init__(
            f"Duplicate execution (idempotency): {execution_id} already exists for this "
            "time window. Use force=True to override."
        )


class StepExecutionError(SeedlineError):
    """Action executor failure surfaced by the step runner"""

    code = "STEP_FAILED"

    def __init__(
        self,
        message: str,
        provider_action: str | None = None,
        attempts: int = 1,
        status_code: int | None = None,
        retryable: bool = False,
    ):
        self.provider_action = provider_action
        self.attempts = attempts
        self.status_code = status_code
        self.retryable = retryable
        super().__init__(message)


class ExecutionNotFoundError(SeedlineError):
    """Execution does not exist or belongs to another tenant"""

    code = "NOT_FOUND"

    def __init__(self, execution_id: str, tenant_id: str):
        self.execution_id = execution_id
        self.tenant_id = tenant_id
        super().__init__(f"Execution {execution_id} not found for tenant {tenant_id}")


class MissingDependencyError(SeedlineError):
    """
    Raised when an optional dependency is not installed.

    This exception provides clear installation instructions to help users
    quickly resolve missing package issues.
    """

    code = "MISSING_DEPENDENCY"

    INSTALL_COMMANDS = {
        "aiosqlite": "pip install seedline[sqlite]",
        "asyncpg": "pip install seedline[postgresql]",
        "aiohttp": "pip install seedline[http]",
        "prometheus-client": "pip install seedline[metrics]",
    }

    def __init__(self, package: str, feature: str | None = None):
        self.package = package
        self.feature = feature

        install_cmd = self.INSTALL_COMMANDS.get(package, f"pip install {package}")

        if feature:
            message = (
                f"\n╔══════════════════════════════════════════════════════════════╗\n"
                f"║  Missing Dependency: {package:<40} ║\n"
                f"╠══════════════════════════════════════════════════════════════╣\n"
                f"║  Required for: {feature:<45} ║\n"
                f"║  Install with: {install_cmd:<45} ║\n"
                f"╚══════════════════════════════════════════════════════════════╝"
            )
        else:
            message = (
                f"\n╔══════════════════════════════════════════════════════════════╗\n"
                f"║  Missing Dependency: {package:<40} ║\n"
                f"╠══════════════════════════════════════════════════════════════╣\n"
                f"║  Install with: {install_cmd:<45} ║\n"
                f"╚══════════════════════════════════════════════════════════════╝"
            )

        super().__init__(message)


# Same mapping the admin route applies to precondition failures
_HTTP_STATUS_BY_CODE = {
    "DISABLED": 403,
    "NOT_SANDBOX": 403,
    "ORG_NOT_FOUND": 404,
    "NOT_FOUND": 404,
    "RATE_LIMITED": 429,
    "MISSING_INTEGRATIONS": 400,
    "INVALID_SCENARIO": 400,
    "DUPLICATE_EXECUTION": 200,
}


def http_status_for(error: Any) -> int:
    """Map a seedline error (or its code) to an HTTP status for API layers."""
    code = error if isinstance(error, str) else getattr(error, "code", None)
    return _HTTP_STATUS_BY_CODE.get(code, 500)
