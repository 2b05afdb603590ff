"""
FactoryFlow Command-Line Interface.

Balances a line described by a balancer request file and answers capacity,
sequencing and scheduling questions about it.
"""

import json
import logging
import sys
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from factoryflow import __version__
from factoryflow.config.schema import FactoryflowConfig, get_default_config
from factoryflow.engine.balancer import BalanceResult, BalancerError
from factoryflow.engine.line import AssemblyLine
from factoryflow.engine.throughput import ThroughputResult
from factoryflow.engine.validation import validate_assignment
from factoryflow.io import (
    BalancerIOError,
    BalancerResponse,
    configs_from_response,
    format_minutes_to_clock,
    load_request,
    write_response,
    write_schedule_csv,
)
from factoryflow.models.production import OperatingPoint

console = Console()
err_console = Console(stderr=True)

# Library errors reported as a message and exit status 1
CLI_ERRORS = (BalancerError, BalancerIOError, FileNotFoundError, ValueError)


# =============================================================================
# Main CLI Group
# =============================================================================


@click.group()
@click.version_option(version=__version__, prog_name="FactoryFlow")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Engine configuration file (.json or .yaml)",
)
@click.option("--verbose", "-v", is_flag=True, help="Show solver progress and debug logs")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], verbose: bool) -> None:
    """
    FactoryFlow - Line Balancing & Throughput Simulation

    Commands take a balancer request file (JSON) describing the tasks and
    product models of the line.
    """
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    try:
        config = FactoryflowConfig.from_file(config_path) if config_path else get_default_config()
    except (ValueError, ImportError) as e:
        err_console.print(f"[red]Error loading configuration: {e}[/red]")
        sys.exit(1)
    ctx.obj["config"] = config


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


# =============================================================================
# Commands
# =============================================================================


@cli.command()
@click.argument("request", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", type=click.Path(), help="Write the balancer response JSON here")
@click.option("--stations", "-m", type=int, multiple=True, help="Station count to solve (repeatable)")
@click.option("--timeout", type=float, default=None, help="Seconds to wait for all solves")
@click.pass_context
def balance(
    ctx: click.Context,
    request: str,
    output: Optional[str],
    stations: tuple[int, ...],
    timeout: Optional[float],
) -> None:
    """Balance the line for every offerable station count.

    REQUEST is a balancer request JSON file.
    """
    try:
        line = _load_line(ctx, request)
        with console.status("Solving line balancing problems..."):
            result = line.balance(stations or None, timeout=timeout)
    except CLI_ERRORS as e:
        _fail("Balancing failed", e)

    _display_balance(line, result)

    if output:
        write_response(BalancerResponse.ok(result).to_dict(), output)
        console.print(f"[green]Response written to {output}[/green]")


@cli.command()
@click.argument("request", type=click.Path(exists=True, dir_okay=False))
@click.option("--configs", "configs_path", type=click.Path(exists=True, dir_okay=False),
              help="Stored balancer response (balances on the fly if omitted)")
@click.option("--stations", "-m", type=int, required=True, help="Station count to evaluate")
@click.option("--demand", "-d", type=int, required=True, help="Daily demand (units)")
@click.option("--hours", "-H", type=float, default=8.0, show_default=True,
              help="Operating hours per day")
@click.option("--employees", "-e", type=int, default=None, help="Operators (default: one per station)")
@click.option("--json", "as_json", is_flag=True, help="Print the capacity report as JSON")
@click.pass_context
def capacity(
    ctx: click.Context,
    request: str,
    configs_path: Optional[str],
    stations: int,
    demand: int,
    hours: float,
    employees: Optional[int],
    as_json: bool,
) -> None:
    """Compute realizable output at an operating point."""
    try:
        line = _load_line(ctx, request, configs_path, stations)
        op = _operating_point(demand, hours, employees, stations)
        result = line.capacity(stations, op)
    except CLI_ERRORS as e:
        _fail("Capacity calculation failed", e)

    if as_json:
        click.echo(json.dumps(result.to_report(), indent=2))
        return
    _display_capacity(stations, result)


@cli.command()
@click.argument("request", type=click.Path(exists=True, dir_okay=False))
@click.option("--demand", "-d", type=int, required=True, help="Daily demand (units)")
@click.pass_context
def sequence(ctx: click.Context, request: str, demand: int) -> None:
    """Print the levelled mixed-model build order for a day."""
    try:
        line = _load_line(ctx, request)
        order = line.sequence(demand)
    except CLI_ERRORS as e:
        _fail("Sequencing failed", e)

    models = line.task_model.models
    counts = line.sequencer.model_demands(models, demand)

    table = Table(title="Model Mix", box=None)
    table.add_column("Model")
    table.add_column("Ratio", justify="right")
    table.add_column("Units", justify="right")
    for model, count in zip(models, counts):
        table.add_row(model.display_name, f"{model.ratio:.2f}", str(count))
    console.print(table)

    names = {m.model_id: m.display_name for m in models}
    console.print()
    console.print("[bold]Build order:[/bold]")
    console.print(" ".join(names.get(mid, str(mid)) for mid in order) or "[dim](empty)[/dim]")


@cli.command()
@click.argument("request", type=click.Path(exists=True, dir_okay=False))
@click.option("--configs", "configs_path", type=click.Path(exists=True, dir_okay=False),
              help="Stored balancer response (balances on the fly if omitted)")
@click.option("--stations", "-m", type=int, required=True, help="Station count to simulate")
@click.option("--demand", "-d", type=int, required=True, help="Daily demand (units)")
@click.option("--hours", "-H", type=float, default=8.0, show_default=True,
              help="Operating hours per day")
@click.option("--employees", "-e", type=int, default=None, help="Operators (default: one per station)")
@click.option("--output", "-o", type=click.Path(), help="Write the build sequence CSV here")
@click.pass_context
def schedule(
    ctx: click.Context,
    request: str,
    configs_path: Optional[str],
    stations: int,
    demand: int,
    hours: float,
    employees: Optional[int],
    output: Optional[str],
) -> None:
    """Simulate the day's schedule at the analytic pace."""
    try:
        line = _load_line(ctx, request, configs_path, stations)
        op = _operating_point(demand, hours, employees, stations)
        throughput = line.capacity(stations, op)
        result = line.simulate(stations, op)
    except CLI_ERRORS as e:
        _fail("Simulation failed", e)

    if result.is_empty:
        console.print("[yellow]Nothing to simulate: the line does not move or the assignment is invalid.[/yellow]")
        return

    realized = result.realized_cycle_time
    realized_text = f"{realized:.3f} min" if realized is not None else "N/A"
    console.print(Panel.fit(
        f"Units launched: {len(result.units)}\n"
        f"Launch interval: {throughput.effective_cycle_time:.3f} min\n"
        f"Realized cycle time: {realized_text}",
        title=f"Schedule ({stations} stations)",
        border_style="blue",
    ))
    console.print(f"Last unit leaves at {format_minutes_to_clock(result.makespan)}")

    if output:
        rows = write_schedule_csv(result, output, line.task_model)
        console.print(f"[green]{rows} units written to {output}[/green]")


@cli.command()
@click.argument("request", type=click.Path(exists=True, dir_okay=False))
@click.option("--configs", "configs_path", type=click.Path(exists=True, dir_okay=False),
              required=True, help="Balancer response whose assignments to check")
@click.option("--strict", is_flag=True, help="Treat warnings as errors")
@click.pass_context
def validate(ctx: click.Context, request: str, configs_path: str, strict: bool) -> None:
    """Check stored assignments against the task model."""
    try:
        line = _load_line(ctx, request, configs_path)
    except CLI_ERRORS as e:
        _fail("Validation failed", e)

    all_valid = True
    for station_count, config in sorted(line.configs.items()):
        validation = validate_assignment(line.task_model, config.assignment, strict=strict)
        if validation.valid:
            console.print(f"[green]{station_count} stations: valid[/green]")
        else:
            all_valid = False
            console.print(f"[red]{station_count} stations: {len(validation.errors)} errors[/red]")
            for error in validation.errors:
                console.print(f"  [red]- {error}[/red]")
        for warning in validation.warnings:
            console.print(f"  [yellow]- {warning}[/yellow]")

    if not all_valid:
        sys.exit(1)


@cli.command()
def info() -> None:
    """Show information about FactoryFlow."""
    console.print(Panel.fit(
        f"""[bold blue]FactoryFlow {__version__}[/bold blue]

Line balancing and throughput simulation for paced
mixed-model assembly lines.

[bold]Commands:[/bold]
  balance    SALBP-2 balancing for every station count
  capacity   Realizable output at an operating point
  sequence   Levelled mixed-model build order
  schedule   Discrete-event simulation of the day
  validate   Check stored station assignments""",
        title="About FactoryFlow",
        border_style="blue",
    ))


# =============================================================================
# Helpers
# =============================================================================


def _fail(message: str, error: Exception) -> None:
    err_console.print(f"[red]{message}: {error}[/red]")
    sys.exit(1)


def _load_line(
    ctx: click.Context,
    request_path: str,
    configs_path: Optional[str] = None,
    station_count: Optional[int] = None,
) -> AssemblyLine:
    """Build the line from a request, with stored or freshly solved configs."""
    config: FactoryflowConfig = ctx.obj["config"]
    task_model = load_request(request_path).to_task_model()

    configs = None
    if configs_path:
        with open(configs_path, encoding="utf-8") as f:
            try:
                response = json.load(f)
            except json.JSONDecodeError as e:
                raise BalancerIOError(f"Corrupt response file: {e}", configs_path) from e
        configs = configs_from_response(response, task_model)

    line = AssemblyLine(task_model, config=config, configs=configs)
    if station_count is not None and station_count not in line.configs:
        result = line.balance([station_count])
        if station_count not in result:
            raise BalancerError(f"No optimal balance found for {station_count} stations")
    return line


def _operating_point(
    demand: int,
    hours: float,
    employees: Optional[int],
    station_count: int,
) -> OperatingPoint:
    return OperatingPoint(
        daily_demand=demand,
        op_hours_per_day=hours,
        employee_count=station_count if employees is None else employees,
    )


def _display_balance(line: AssemblyLine, result: BalanceResult) -> None:
    """Display balanced configurations."""
    table = Table(title="Balanced Configurations", box=None)
    table.add_column("Stations", justify="right")
    table.add_column("Cycle Time", justify="right")
    table.add_column("Max Demand / 24h", justify="right")
    table.add_column("Assignment")

    thresholds = {
        t.station_count: t.max_demand
        for t in line.throughput_engine.capacity_thresholds(result.configs, line.task_model)
    }
    for m in result.station_counts:
        config = result.configs[m]
        layout = " | ".join(
            ",".join(str(t) for t in config.assignment.tasks_at(sid))
            for sid in config.assignment.station_ids
        )
        table.add_row(
            str(m),
            f"{config.cycle_time:.3f}",
            str(thresholds.get(m, 0)),
            layout,
        )

    console.print(table)
    if result.infeasible:
        console.print(f"[yellow]No optimal solution for: {', '.join(map(str, result.infeasible))}[/yellow]")
    for m, message in sorted(result.errors.items()):
        console.print(f"[red]{m} stations failed: {message}[/red]")


def _display_capacity(station_count: int, result: ThroughputResult) -> None:
    """Display a capacity result."""
    status = "[green]meets demand[/green]" if result.meets_demand else "[red]short of demand[/red]"
    console.print(Panel.fit(
        f"Regime: {result.regime.value}  ({status})\n"
        f"Units per day: {result.units_produced} of {result.daily_demand} "
        f"(physical max {result.physical_max_units})\n"
        f"Units per hour: {result.throughput_units_per_hour:.2f}\n"
        f"Effective cycle time: {result.effective_cycle_time:.3f} min\n"
        f"Conveyor speed: {result.conveyor_speed:.3f} ft/min\n"
        f"Product spacing: {result.product_spacing:.2f} ft\n"
        f"WIP: {result.wip:.2f} units",
        title=f"Capacity ({station_count} stations)",
        border_style="blue",
    ))

    table = Table(title="Workstations", box=None)
    table.add_column("Station", justify="right")
    table.add_column("Cycle Time", justify="right")
    table.add_column("Efficiency", justify="right")
    table.add_column("Idle / Day", justify="right")
    for ws in result.workstations:
        table.add_row(
            str(ws.station_id),
            f"{ws.cycle_time:.3f}",
            f"{ws.efficiency:.1f}%",
            f"{ws.daily_idle_time:.1f}",
        )
    console.print(table)

    console.print(
        f"Average efficiency: {result.average_efficiency:.1f}% | "
        f"Balance delay: {result.balance_delay:.1f}% | "
        f"Idle time CV: {result.idle_time_cv:.1f}%"
    )


# =============================================================================
# Entry Point
# =============================================================================


if __name__ == "__main__":
    cli()
