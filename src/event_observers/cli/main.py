"""CLI entry point — click group exposing the benchmark and scenario demo."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from event_observers.core.config import ConfigManager
from event_observers.core.events import Priority


def setup_logging(verbose: bool = False) -> None:
    """Configure root logging for CLI runs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _load_config(config_dir: str | None) -> ConfigManager | None:
    """Load a ``ConfigManager`` from *config_dir*, or return ``None``."""
    if config_dir is None:
        return None
    config = ConfigManager(config_dir=Path(config_dir))
    config.load()
    return config


@click.group()
@click.version_option(package_name="event-observers")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """Event Observers — subscription policies on top of a host event bus."""
    setup_logging(verbose)


@cli.command(name="bench")
@click.option(
    "-n", "--events", default=100_000, show_default=True, type=click.IntRange(min=0), help="Events to publish."
)
@click.option(
    "-l",
    "--min-length",
    default=5,
    show_default=True,
    type=int,
    help="Filter threshold: messages longer than this are handled.",
)
@click.option(
    "-p",
    "--priority",
    default=None,
    type=click.Choice([p.name.lower() for p in Priority]),
    help="Observer priority (default: configured or normal).",
)
@click.option(
    "--config-dir",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    default=None,
    help="Directory holding config.toml.",
)
def bench_cmd(events: int, min_length: int, priority: str | None, config_dir: str | None) -> None:
    """Publish random messages through a filtered observer and time dispatch."""
    from event_observers.tools.benchmark import run_benchmark

    result = run_benchmark(
        events,
        min_length=min_length,
        priority=Priority.parse(priority) if priority else None,
        config=_load_config(config_dir),
    )

    click.echo(f"Published {result.events} events, handled {result.fired} in {result.elapsed_ms:.1f} ms")
    click.echo(f"  p50 {result.p50_us:.2f} us  p99 {result.p99_us:.2f} us  ({result.events_per_second:,.0f} events/s)")


@cli.command(name="demo")
@click.option("-d", "--duration", default=3.0, show_default=True, type=float, help="Lifetime of the 'for' observer.")
@click.option("--show-traces", is_flag=True, default=False, help="Print intercepted failure reports.")
@click.option(
    "--config-dir",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    default=None,
    help="Directory holding config.toml.",
)
def demo_cmd(duration: float, show_traces: bool, config_dir: str | None) -> None:
    """Run each dispatch policy against a local bus and print callback counts."""
    from event_observers.tools.scenarios import run_scenarios

    sink = (lambda _level, message: click.echo(message, err=True)) if show_traces else None
    results = run_scenarios(config=_load_config(config_dir), sink=sink, duration=duration)

    for result in results:
        state = "active" if result.active else "inactive"
        line = f"  {result.name:<8} [{result.policy:<4}] fired {result.fired}/{result.deliveries} ({state})"
        if result.failures:
            line += f", {result.failures} failures intercepted"
        click.echo(line)
