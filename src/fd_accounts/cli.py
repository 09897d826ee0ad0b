"""CLI entry point for the fixed-deposit backend."""

from __future__ import annotations

import json

import click


@click.group()
def main() -> None:
    """Fixed Deposit Accounts."""


def _container(config: str, overrides: dict | None = None):
    from .core.config import load_settings
    from .main import build_container
    from .observability.logger import setup_logging

    settings = load_settings(config_path=config, overrides=overrides)
    setup_logging(settings.observability.log_level, settings.observability.log_format)
    return build_container(settings)


def _apply_clock(container, at: str | None) -> None:
    if not at:
        return
    clock = container.logical_clock
    if clock is None:
        raise click.UsageError("--at requires clock.mode = 'logical'")
    if "T" in at:
        clock.set_absolute(at)
    else:
        clock.set_date(at)


@main.command()
@click.option("--config", default="configs/dev.toml", help="Config file path")
@click.option("--host", default=None, help="Bind address override")
@click.option("--port", default=None, type=int, help="Port override")
def serve(config: str, host: str | None, port: int | None) -> None:
    """Run the HTTP API with the scheduler."""
    import uvicorn

    from .main import create_application

    app = create_application(config_path=config)
    settings = app.state.container.settings
    uvicorn.run(
        app,
        host=host or settings.api.host,
        port=port or settings.api.port,
        log_config=None,
    )


@main.command("run-job")
@click.argument("job_name")
@click.option("--config", default="configs/dev.toml", help="Config file path")
@click.option("--at", default=None, help="Logical date (YYYY-MM-DD) or ISO-8601 instant")
def run_job(job_name: str, config: str, at: str | None) -> None:
    """Run one batch job immediately, bypassing the daily gate."""
    from .core.enums import TriggerSource

    container = _container(config)
    try:
        _apply_clock(container, at)
        result = container.launcher.run(job_name, source=TriggerSource.MANUAL)
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))
    finally:
        container.close()


@main.command()
@click.option("--config", default="configs/dev.toml", help="Config file path")
@click.option("--at", default=None, help="Logical date (YYYY-MM-DD) or ISO-8601 instant")
def tick(config: str, at: str | None) -> None:
    """Evaluate every trigger window once and run what is due."""
    container = _container(config)
    try:
        _apply_clock(container, at)
        fired = container.scheduler.tick()
        click.echo(json.dumps({
            "logicalTime": container.clock.now().isoformat(),
            "fired": fired,
        }, indent=2))
    finally:
        container.close()


@main.command()
@click.option("--config", default="configs/dev.toml", help="Config file path")
def clock(config: str) -> None:
    """Show the current logical time."""
    container = _container(config)
    try:
        now = container.clock.now()
        click.echo(json.dumps({
            "logicalInstant": now.isoformat(),
            "logicalDate": now.date().isoformat(),
            "timezone": str(container.clock.tz),
            "clockMode": container.settings.clock.mode.value,
        }, indent=2))
    finally:
        container.close()


if __name__ == "__main__":
    main()
