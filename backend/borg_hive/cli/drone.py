"""CLI entrypoint for borg-drone."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer
import yaml
from pydantic import ValidationError

from borg_hive.core.config import DroneSettings
from borg_hive.core.logging import configure_logging, get_logger, level_for_verbosity
from borg_hive.drone.pipeline import BackupRun

app = typer.Typer(name="borg-drone", help="Run borg backups and report them to the vinculum")

DEFAULT_CONFIG_PATH = Path("/etc/borg-drone/config.yaml")

logger = get_logger(__name__)


@dataclass(slots=True)
class CliState:
    config_path: Path
    verbose: int


@app.callback()
def main(
    ctx: typer.Context,
    verbose: int = typer.Option(0, "-v", "--verbose", count=True, help="Increase verbosity"),
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config-path", help="Path to the drone config"),
) -> None:
    configure_logging(level_for_verbosity(verbose), use_json=False)
    ctx.obj = CliState(config_path=config_path, verbose=verbose)


def _load_settings(state: CliState) -> DroneSettings:
    """Load the drone config once a command actually needs it."""
    try:
        settings = DroneSettings.from_yaml(state.config_path)
    except FileNotFoundError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)
    except (ValidationError, ValueError, yaml.YAMLError) as exc:
        typer.echo(f"Couldn't load config {state.config_path}: {exc}", err=True)
        raise typer.Exit(code=1)
    configure_logging(level_for_verbosity(state.verbose, settings.log_level), use_json=False)
    return settings


@app.command()
def create(
    ctx: typer.Context,
    dry_run: bool = typer.Option(False, "--dry-run", help="Run the hooks but skip archive creation"),
    progress: bool = typer.Option(False, "--progress", help="Log progress while creating the archive"),
) -> None:
    """Create a new archive in the configured repository."""
    settings = _load_settings(ctx.obj)
    outcome = BackupRun.from_settings(settings).run(dry_run=dry_run, progress=progress)
    if not outcome.ok:
        raise typer.Exit(code=1)
    logger.info("Run finished")


if __name__ == "__main__":
    app()
