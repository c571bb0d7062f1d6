"""CLI entrypoint for the vinculum."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

import requests
import typer
import uvicorn

from borg_hive.core.config import VinculumSettings
from borg_hive.core.logging import configure_logging

app = typer.Typer(name="vinculum", help="The control unit of all borg drones")
drones_app = typer.Typer(name="drones", help="Manage registered drones")
app.add_typer(drones_app, name="drones")

DEFAULT_HOST = "http://127.0.0.1:8080"
ADMIN_PREFIX = "/api/admin/v1"


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip('/')
    env_host = os.environ.get("VINCULUM_HOST")
    if env_host:
        return env_host.rstrip('/')
    return DEFAULT_HOST


def _resolve_token(override: Optional[str]) -> str:
    token = override or os.environ.get("VINCULUM_ADMIN_TOKEN")
    if not token:
        typer.echo("An admin token is required (--token or VINCULUM_ADMIN_TOKEN)", err=True)
        raise typer.Exit(code=1)
    return token


def _request(
    method: str,
    path: str,
    host: Optional[str] = None,
    token: Optional[str] = None,
    **kwargs,
) -> requests.Response:
    url = f"{_resolve_host(host)}{ADMIN_PREFIX}{path}"
    headers = {"Authorization": f"Bearer {_resolve_token(token)}"}
    try:
        resp = requests.request(method, url, headers=headers, timeout=10, **kwargs)
    except requests.RequestException as exc:
        typer.echo(f"Request failed: {exc}", err=True)
        raise typer.Exit(code=1)
    if not resp.ok:
        try:
            detail = resp.json()
        except ValueError:
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)
    return resp


@app.command()
def start(
    config_path: Optional[Path] = typer.Option(None, "--config-path", help="Path to the vinculum config"),
) -> None:
    """Start the vinculum server."""
    if config_path is not None:
        os.environ["VINCULUM_CONFIG"] = str(config_path.expanduser())
    settings = VinculumSettings.from_yaml(config_path)
    configure_logging(settings.log_level, use_json=settings.log_json)
    uvicorn.run(
        "borg_hive.app:app",
        host=settings.listen_address,
        port=settings.listen_port,
        log_config=None,
    )


@drones_app.command("list")
def list_drones(
    host: Optional[str] = typer.Option(None, "--host", help="Override vinculum host"),
    token: Optional[str] = typer.Option(None, "--token", help="Admin token"),
) -> None:
    """List registered drones."""
    resp = _request("GET", "/drones", host=host, token=token)
    typer.echo(json.dumps(resp.json(), indent=2))


@drones_app.command("add")
def add_drone(
    name: str = typer.Argument(..., help="Unique drone name"),
    repository: str = typer.Argument(..., help="The borg repository the drone backs up to"),
    host: Optional[str] = typer.Option(None, "--host", help="Override vinculum host"),
    token: Optional[str] = typer.Option(None, "--token", help="Admin token"),
) -> None:
    """Register a drone and print its bearer token."""
    resp = _request("POST", "/drones", host=host, token=token, json={"name": name, "repository": repository})
    typer.echo(json.dumps(resp.json(), indent=2))


@drones_app.command("remove")
def remove_drone(
    drone_id: str = typer.Argument(..., help="Drone identifier"),
    host: Optional[str] = typer.Option(None, "--host", help="Override vinculum host"),
    token: Optional[str] = typer.Option(None, "--token", help="Admin token"),
) -> None:
    """Remove a drone and its stats."""
    _request("DELETE", f"/drones/{drone_id}", host=host, token=token)
    typer.echo(json.dumps({"status": "ok"}))


if __name__ == "__main__":
    app()
