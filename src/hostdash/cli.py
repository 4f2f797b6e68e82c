"""CLI entry point for hostdash."""

from __future__ import annotations

import logging

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table
from rich.text import Text

from hostdash.config import DashConfig

app = typer.Typer(
    name="hostdash",
    help="Terminal dashboard for host metrics with an embedded shell.",
    no_args_is_help=True,
)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _load_config(config_file: str | None) -> DashConfig:
    try:
        return DashConfig.load(config_file)
    except (ValidationError, ValueError) as e:
        typer.echo(f"Error: Invalid configuration: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def run(
    eager_shell: bool = typer.Option(
        False, "--eager-shell", "-e", help="Start the shell at startup."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Run the interactive dashboard."""
    # No setup_logging() here: a stderr handler would corrupt the Textual
    # display. The app installs its own handler that feeds the status bar.
    logging.getLogger().setLevel(logging.DEBUG if verbose else logging.INFO)
    for h in logging.getLogger().handlers[:]:
        logging.getLogger().removeHandler(h)

    config = _load_config(config_file)
    if eager_shell:
        config.shell.eager_spawn = True

    from hostdash.tui.app import DashApp

    dash = DashApp(config=config)
    try:
        dash.run()
    finally:
        dash.controller.close()


@app.command("shell-info")
def shell_info(
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Show which shell the Shell tab would start."""
    from hostdash.pty.resolver import resolve

    config = _load_config(config_file)
    if config.shell.command:
        program, args = config.shell.command[0], config.shell.command[1:]
        source = "config"
    else:
        program, args = resolve()
        source = "platform"
    typer.echo(f"Program: {program}")
    typer.echo(f"Args: {' '.join(args) if args else '(none)'}")
    typer.echo(f"Source: {source}")
    typer.echo(
        f"Buffer: {config.shell.buffer_capacity} bytes "
        f"(trim to {config.shell.low_watermark})"
    )


@app.command()
def snapshot(
    processes: int = typer.Option(
        5, "--processes", "-p", help="Number of top processes to list."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
) -> None:
    """Print a single metrics sample and exit."""
    setup_logging(verbose)
    from hostdash.gpu import detect_gpus
    from hostdash.metrics import MetricsSampler, human_bytes

    sampler = MetricsSampler()
    snap = sampler.sample()

    table = Table(title="hostdash snapshot")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("CPU", f"{snap.cpu_total:.1f}%")
    table.add_row(
        "Memory",
        f"{snap.mem_percent:.1f}% ({human_bytes(snap.mem_used)}/{human_bytes(snap.mem_total)})",
    )
    table.add_row(
        "Swap",
        f"{snap.swap_percent:.1f}% ({human_bytes(snap.swap_used)}/{human_bytes(snap.swap_total)})",
    )
    table.add_row(
        "Disk /",
        f"{snap.disk_percent:.1f}% ({human_bytes(snap.disk_used)}/{human_bytes(snap.disk_total)})",
    )
    table.add_row("Load", ", ".join(f"{v:.2f}" for v in snap.load_avg))
    for gpu in detect_gpus():
        temp = f" {gpu.temp_c:.0f}°C" if gpu.temp_c is not None else ""
        table.add_row("GPU", Text(f"{gpu.model} [{gpu.driver}]{temp}"))

    console = Console()
    console.print(table)

    if processes > 0:
        procs = Table(title="Top processes")
        for col in ("PID", "Name", "CPU%", "MEM%"):
            procs.add_column(col)
        for p in sampler.top_processes(processes):
            procs.add_row(str(p["pid"]), p["name"], f"{p['cpu']:.1f}", f"{p['mem']:.1f}")
        console.print(procs)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
