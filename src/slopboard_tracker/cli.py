"""Typer CLI interface for Slopboard Tracker."""

import asyncio
import os
from typing import Any, Dict, Optional

import httpx
import typer
import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .utils.format_utils import format_duration

app = typer.Typer(
    name="slopboard-tracker",
    help="Slopboard Tracker - coding time tracking daemon",
    add_completion=False,
)
console = Console()

DEFAULT_PORT = 4763


def _base_url(port: int) -> str:
    return f"http://localhost:{port}"


async def check_service_running(port: int) -> bool:
    """Check if the daemon is already running on port."""
    try:
        async with httpx.AsyncClient() as client:
            resp = await client.get(f"{_base_url(port)}/health", timeout=2.0)
            return resp.status_code == 200
    except httpx.HTTPError:
        return False


async def _call(
    method: str, path: str, port: int, json: Optional[Dict[str, Any]] = None
) -> httpx.Response:
    async with httpx.AsyncClient(base_url=_base_url(port), timeout=60.0) as client:
        return await client.request(method, path, json=json)


def _request(
    method: str, path: str, port: int, json: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Call the running daemon, exiting with a readable error if it is unreachable."""
    try:
        resp = asyncio.run(_call(method, path, port, json=json))
    except httpx.HTTPError:
        console.print(
            f"[red]Error:[/red] Tracker is not running on port {port}. "
            "Start it with 'slopboard-tracker serve'."
        )
        raise typer.Exit(1)

    if resp.status_code >= 400:
        try:
            detail = resp.json().get("detail", resp.text)
        except ValueError:
            detail = resp.text
        console.print(f"[red]Error:[/red] {detail}")
        raise typer.Exit(1)
    return resp.json()


@app.command()
def serve(
    port: int = typer.Option(DEFAULT_PORT, "--port", help="HTTP port"),
    host: str = typer.Option("localhost", "--host", help="Bind address"),
    api_url: Optional[str] = typer.Option(None, "--api-url", help="Collector API URL"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Also log to this file"),
):
    """Start the tracking daemon."""
    # Set environment variables BEFORE importing settings to ensure they're picked up
    os.environ["SLOPBOARD_DEBUG"] = "true" if debug else "false"
    os.environ["SLOPBOARD_PORT"] = str(port)
    if api_url:
        os.environ["SLOPBOARD_API_URL"] = api_url
    if log_file:
        os.environ["SLOPBOARD_LOG_FILE"] = log_file

    if asyncio.run(check_service_running(port)):
        console.print(f"[red]Error:[/red] Tracker already running on port {port}")
        raise typer.Exit(1)

    from .config import settings

    console.print(
        Panel.fit(
            f"[bold]Slopboard Tracker[/bold]\n\n"
            f"📡 Listening: http://{host}:{port}\n"
            f"☁️  Collector: {settings.API_URL}\n"
            f"🔑 API key: {'set' if settings.API_KEY else '[yellow]not set[/yellow]'}\n"
            f"💾 Queue: {settings.DATA_DIR / 'queue.db'}\n"
            f"🔍 Debug: {'enabled' if debug else 'disabled'}",
            border_style="green",
        )
    )

    uvicorn.run(
        "slopboard_tracker.main:app",
        host=host,
        port=port,
        log_level="debug" if debug else "info",
        access_log=debug,
    )


@app.command()
def status(port: int = typer.Option(DEFAULT_PORT, "--port", help="Daemon port")):
    """Show tracking state, offline queue and today's totals."""
    data = _request("GET", "/status", port)
    summary = _request("GET", "/summary", port)

    state = "[green]tracking[/green]" if data["tracking"] else "[yellow]not tracking[/yellow]"
    queue = data["queue"]
    console.print(f"Status: {state} ({data['state']})")
    if data["current_session"]:
        current = data["current_session"]
        console.print(
            f"Current: {current['language']} - {current['project']}/{current['relative_path']}"
        )
    console.print(f"Offline queue: {queue['queued']} session(s)")
    console.print(
        f"Today: {summary['today_total_formatted']}  "
        f"This week: {summary['week_total_formatted']}"
    )

    if summary["today_by_language"]:
        table = Table(title="Today by language")
        table.add_column("Language")
        table.add_column("Time", justify="right")
        for entry in summary["today_by_language"]:
            table.add_row(entry["language"], format_duration(entry["duration"]))
        console.print(table)

    for notice in data["notices"][-5:]:
        color = "yellow" if notice["level"] == "warning" else "cyan"
        console.print(f"[{color}]•[/{color}] {notice['message']}")


@app.command()
def start(port: int = typer.Option(DEFAULT_PORT, "--port", help="Daemon port")):
    """Start tracking."""
    _request("POST", "/tracking/start", port, json={})
    console.print("[green]✓[/green] Slopboard Tracker has started")


@app.command()
def stop(port: int = typer.Option(DEFAULT_PORT, "--port", help="Daemon port")):
    """Stop tracking."""
    _request("POST", "/tracking/stop", port)
    console.print("[green]✓[/green] Slopboard Tracker has stopped")


@app.command()
def sync(port: int = typer.Option(DEFAULT_PORT, "--port", help="Daemon port")):
    """Upload queued sessions now."""
    result = _request("POST", "/sync", port)
    console.print(
        f"Sync {result['status']}: sent {result['sent']}, {result['remaining']} remaining"
    )


@app.command("set-api-key")
def set_api_key(
    port: int = typer.Option(DEFAULT_PORT, "--port", help="Daemon port"),
):
    """Validate and store the collector API key."""
    api_key = typer.prompt("Enter your Slopboard Tracker API key", hide_input=True)
    _request("POST", "/config/api-key", port, json={"api_key": api_key})
    console.print("[green]✓[/green] API key has been saved")


@app.command()
def configure(
    idle_threshold: Optional[int] = typer.Option(
        None, "--idle-threshold", min=1, help="Idle threshold in seconds"
    ),
    min_session_duration: Optional[int] = typer.Option(
        None, "--min-session-duration", min=0, help="Minimum session length in seconds"
    ),
    upload_interval: Optional[int] = typer.Option(
        None, "--upload-interval", min=60, help="Seconds between offline uploads"
    ),
    upload_batch_size: Optional[int] = typer.Option(
        None, "--upload-batch-size", min=1, help="Sessions per upload batch"
    ),
    port: int = typer.Option(DEFAULT_PORT, "--port", help="Daemon port"),
):
    """View or change tracking settings."""
    changes = {
        "idle_threshold_seconds": idle_threshold,
        "min_session_duration_seconds": min_session_duration,
        "upload_interval_seconds": upload_interval,
        "upload_batch_size": upload_batch_size,
    }
    changes = {k: v for k, v in changes.items() if v is not None}

    if changes:
        config = _request("PATCH", "/config", port, json=changes)
    else:
        config = _request("GET", "/status", port)["config"]

    table = Table(title="Slopboard Tracker settings")
    table.add_column("Setting")
    table.add_column("Value")
    for key, value in config.items():
        table.add_row(key, str(value))
    console.print(table)


if __name__ == "__main__":
    app()
