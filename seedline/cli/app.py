"""
Seedline CLI Application - Built with Click.

Commands:
    seedline list                                  List registered scenarios
    seedline validate scenarios.yaml               Check scenario definitions
    seedline run incident-response --tenant org-1 \\
        --connection slack=ca_123 --connection linear=ca_456
    seedline cleanup <execution-id> --tenant org-1 --connection slack=ca_123
    seedline history --tenant org-1

Settings come from SEEDLINE_* environment variables (and .env), or from a
seedline.yaml passed with ``--config``.
"""

import asyncio
import json
import sys

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from seedline import __version__
from seedline.connections import StaticConnectionResolver
from seedline.core.config import SeedlineConfig
from seedline.core.exceptions import SeedlineError
from seedline.core.execution_log import ExecutionLog
from seedline.core.types import ExecutionStatus, StepStatus
from seedline.core.validation import validate_scenario
from seedline.scenarios import ScenarioRegistry, default_registry, load_scenario_file
from seedline.service import Seedline
from seedline.storage import ExecutionStore, create_store

console = Console()

STATUS_STYLES = {
    "completed": "green",
    "partial": "yellow",
    "failed": "red",
    "running": "cyan",
    "cleaned": "blue",
}


# ============================================================================
# CLI Group
# ============================================================================


class OrderedGroup(click.Group):
    """Click Group that lists commands in the order they were added."""

    def list_commands(self, ctx):
        return list(self.commands.keys())


@click.group(cls=OrderedGroup)
@click.version_option(version=__version__, prog_name="seedline")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="seedline.yaml settings file (defaults to SEEDLINE_* environment variables)",
)
@click.option(
    "--scenarios",
    "scenario_files",
    type=click.Path(exists=True, dir_okay=False),
    multiple=True,
    help="Extra YAML scenario file to register (repeatable)",
)
@click.pass_context
def cli(ctx, config_path, scenario_files):
    """
    Seedline - Scenario execution for sandbox tenants.

    \b
    Analysis (Read-only):
      list             List registered scenarios
      validate         Validate scenario definitions
      history          Show recent executions of a tenant
    \b
    Execution:
      run              Run a scenario for a tenant
      cleanup          Undo what an execution created
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["scenario_files"] = scenario_files


# ============================================================================
# Helpers
# ============================================================================


def _load_config(ctx) -> SeedlineConfig:
    config_path = ctx.obj.get("config_path")
    if config_path:
        return SeedlineConfig.from_file(config_path)
    return SeedlineConfig.from_env()


def _load_registry(ctx):
    registry = ScenarioRegistry(default_registry.list())
    for path in ctx.obj.get("scenario_files", ()):
        for scenario in load_scenario_file(path):
            registry.register(scenario, validate=True, replace=True)
    return registry


def _parse_connections(tenant: str, values: tuple[str, ...]) -> StaticConnectionResolver:
    handles = {}
    for value in values:
        integration, sep, handle = value.partition("=")
        if not sep or not integration or not handle:
            msg = f"Expected INTEGRATION=HANDLE, got {value!r}"
            raise click.BadParameter(msg, param_hint="--connection")
        handles[integration.strip()] = handle.strip()
    return StaticConnectionResolver({tenant: handles})


def _build_service(config: SeedlineConfig, connections, scenarios) -> Seedline:
    return Seedline.from_config(config, connections=connections, scenarios=scenarios)


def _create_store(config: SeedlineConfig) -> ExecutionStore:
    return create_store(config.storage_url)


def _fail(message: str) -> None:
    console.print(f"[bold red]Error:[/bold red] {escape(message)}")
    sys.exit(1)


# ============================================================================
# seedline list
# ============================================================================


@click.command()
@click.pass_context
def list_cmd(ctx):
    """List registered scenarios."""
    try:
        registry = _load_registry(ctx)
    except SeedlineError as e:
        _fail(str(e))

    table = Table(title="Scenarios")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Integrations")
    table.add_column("Steps", justify="right")
    table.add_column("Description")

    for scenario in registry.list():
        table.add_row(
            scenario.name,
            ", ".join(scenario.required_integrations),
            str(len(scenario.steps)),
            scenario.description,
        )

    console.print(table)


# ============================================================================
# seedline validate
# ============================================================================


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def validate_cmd(file):
    """Validate the scenario definitions in a YAML file."""
    try:
        scenarios = load_scenario_file(file)
    except SeedlineError as e:
        _fail(str(e))

    if not scenarios:
        _fail(f"No scenarios found in {file}")

    invalid = 0
    for scenario in scenarios:
        errors = validate_scenario(scenario)
        if errors:
            invalid += 1
            console.print(f"[red]✗[/red] {scenario.name}")
            for error in errors:
                console.print(f"    - {error}")
        else:
            console.print(f"[green]✓[/green] {scenario.name} ({len(scenario.steps)} steps)")

    if invalid:
        console.print(f"\n[bold red]{invalid} of {len(scenarios)} scenario(s) invalid[/bold red]")
        sys.exit(1)
    console.print(f"\n[bold green]All {len(scenarios)} scenario(s) valid[/bold green]")


# ============================================================================
# seedline run
# ============================================================================


@click.command()
@click.argument("scenario")
@click.option("--tenant", "-t", required=True, help="Tenant (organization) id")
@click.option("--force", is_flag=True, help="Run even if this hour already has an execution")
@click.option(
    "--connection",
    "-c",
    "connections",
    multiple=True,
    metavar="INTEGRATION=HANDLE",
    help="Connected account handle for an integration (repeatable)",
)
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.pass_context
def run_cmd(ctx, scenario, tenant, force, connections, as_json):
    """Run a scenario for a tenant."""
    resolver = _parse_connections(tenant, connections)
    try:
        config = _load_config(ctx)
        registry = _load_registry(ctx)
    except (SeedlineError, ValueError) as e:
        _fail(str(e))

    async def _run():
        async with _build_service(config, resolver, registry) as service:
            return await service.run_scenario(tenant, scenario, force=force)

    try:
        result = asyncio.run(_run())
    except SeedlineError as e:
        _fail(str(e))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))
    else:
        _display_run_result(result)

    if result.status == ExecutionStatus.FAILED:
        sys.exit(1)


def _display_run_result(result) -> None:
    if result.error is not None and not result.steps:
        style = "yellow" if result.is_duplicate else "red"
        code = getattr(result.error, "code", type(result.error).__name__)
        console.print(f"[{style}]{code}:[/{style}] {result.error}")
        if not result.is_duplicate:
            return

    table = Table(title=f"{result.scenario_name} ({result.execution_id or 'no execution'})")
    table.add_column("Step", style="cyan", no_wrap=True)
    table.add_column("Integration")
    table.add_column("Status")
    table.add_column("Resource")
    table.add_column("Duration", justify="right")

    for step in result.steps:
        status = (
            "[green]success[/green]" if step.status == StepStatus.SUCCESS else "[red]error[/red]"
        )
        resource = step.external_resource_id or ""
        if step.external_resource_type and resource:
            resource = f"{step.external_resource_type}/{resource}"
        table.add_row(step.step_id, step.integration, status, resource, f"{step.duration_ms}ms")
    for step_id in result.skipped_steps:
        table.add_row(step_id, "", "[yellow]skipped[/yellow]", "", "")

    console.print(table)

    for step in result.steps:
        if step.error:
            console.print(f"[red]{step.step_id}:[/red] {step.error}")

    style = STATUS_STYLES.get(result.status.value, "white")
    console.print(
        Panel.fit(
            f"Status: [{style}]{result.status.value}[/{style}]\n"
            f"Resources created: {result.resource_count}\n"
            f"Duration: {result.total_duration_ms}ms",
            border_style=style,
        )
    )


# ============================================================================
# seedline cleanup
# ============================================================================


@click.command()
@click.argument("execution_id")
@click.option("--tenant", "-t", required=True, help="Tenant (organization) id")
@click.option(
    "--connection",
    "-c",
    "connections",
    multiple=True,
    metavar="INTEGRATION=HANDLE",
    help="Connected account handle for an integration (repeatable)",
)
@click.pass_context
def cleanup_cmd(ctx, execution_id, tenant, connections):
    """Undo every resource an execution created."""
    resolver = _parse_connections(tenant, connections)
    try:
        config = _load_config(ctx)
    except ValueError as e:
        _fail(str(e))

    async def _cleanup():
        async with _build_service(config, resolver, default_registry) as service:
            return await service.cleanup_execution(tenant, execution_id)

    try:
        summary = asyncio.run(_cleanup())
    except SeedlineError as e:
        _fail(str(e))

    console.print(
        f"Cleaned: [green]{summary.cleaned}[/green]  "
        f"Failed: [red]{summary.failed}[/red]  "
        f"Skipped: [yellow]{summary.skipped}[/yellow]"
    )
    for error in summary.errors:
        console.print(f"  - {error}")

    if summary.failed:
        sys.exit(1)


# ============================================================================
# seedline history
# ============================================================================


@click.command()
@click.option("--tenant", "-t", required=True, help="Tenant (organization) id")
@click.option("--limit", "-n", type=click.IntRange(1, 100), default=10, show_default=True)
@click.pass_context
def history_cmd(ctx, tenant, limit):
    """Show the most recent executions of a tenant."""
    try:
        config = _load_config(ctx)
    except ValueError as e:
        _fail(str(e))

    # Read-only: only the store is opened, no action executor
    async def _history():
        async with _create_store(config) as store:
            return await ExecutionLog(store).list_recent(tenant, limit=limit)

    try:
        records = asyncio.run(_history())
    except (SeedlineError, ValueError) as e:
        _fail(str(e))

    if not records:
        console.print(f"No executions found for {tenant}")
        return

    table = Table(title=f"Executions for {tenant}")
    table.add_column("Execution", style="cyan", no_wrap=True)
    table.add_column("Scenario")
    table.add_column("Status")
    table.add_column("Resources", justify="right")
    table.add_column("Created")

    for record in records:
        style = STATUS_STYLES.get(record.status.value, "white")
        table.add_row(
            record.execution_id,
            record.scenario_name,
            f"[{style}]{record.status.value}[/{style}]",
            str(record.resource_count),
            record.created_at.strftime("%Y-%m-%d %H:%M:%S"),
        )

    console.print(table)


# ============================================================================
# Command Registration
# ============================================================================

# Read-only
cli.add_command(list_cmd, name="list")
cli.add_command(validate_cmd, name="validate")
cli.add_command(history_cmd, name="history")

# State modification
cli.add_command(run_cmd, name="run")
cli.add_command(cleanup_cmd, name="cleanup")

if __name__ == "__main__":
    cli()
