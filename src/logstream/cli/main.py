"""logstream CLI — run the server, send logs, query history, tail a service.

Usage:
    logstream serve                                  # Run the API + WebSocket server
    logstream send auth error "login failed"         # Ingest one log record
    logstream query --service auth --from 2024-01-01 # Historical query (newest first)
    logstream tail auth                              # Stream live records for a service
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Optional

import click
import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:3000"


def _api_url() -> str:
    return os.environ.get("LOGSTREAM_API_URL", DEFAULT_API_URL).rstrip("/")


def _ws_url() -> str:
    url = _api_url()
    if url.startswith("https://"):
        return "wss://" + url[len("https://"):] + "/ws"
    if url.startswith("http://"):
        return "ws://" + url[len("http://"):] + "/ws"
    return url + "/ws"


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the logstream server."""
    return httpx.AsyncClient(base_url=_api_url(), timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Offloads to a thread when a loop is already running (e.g. CliRunner
    inside an async test).
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _type_color(log_type: str) -> str:
    colors = {
        "error": "red",
        "fatal": "red",
        "critical": "red",
        "warn": "yellow",
        "warning": "yellow",
        "info": "green",
        "debug": "cyan",
    }
    return colors.get(log_type.lower(), "white")


def _format_record(record: dict) -> str:
    type_label = click.style(f"{record['type']:<8}", fg=_type_color(record["type"]))
    return f"{record['timestamp']}  {record['service']:<16} {type_label} {record['message']}"


def _fail(resp: httpx.Response) -> None:
    try:
        detail = resp.json().get("detail", resp.text)
    except ValueError:
        detail = resp.text
    click.secho(f"Error {resp.status_code}: {detail}", fg="red", err=True)
    sys.exit(1)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version="0.1.0", prog_name="logstream")
def main():
    """logstream — ingest, query and live-tail structured logs."""


@main.command()
@click.option("--host", default=None, help="Bind address (default: LOGSTREAM_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: LOGSTREAM_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the HTTP + WebSocket server with uvicorn."""
    import uvicorn

    from logstream.config import settings

    uvicorn.run(
        "logstream.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command()
@click.argument("service")
@click.argument("log_type", metavar="TYPE")
@click.argument("message")
def send(service: str, log_type: str, message: str):
    """Ingest one log record for SERVICE."""
    _run(_send_impl(service, log_type, message))


async def _send_impl(service: str, log_type: str, message: str):
    async with _client() as c:
        r = await c.post("/api/logs", json={
            "service": service,
            "type": log_type,
            "message": message,
        })
        if r.status_code >= 400:
            _fail(r)
        click.secho(f"Stored log #{r.json()['id']}", fg="green")


@main.command()
@click.option("--service", "-s", help="Exact service name")
@click.option("--type", "-t", "log_type", help="Exact log type")
@click.option("--from", "from_", help="ISO-8601 lower bound (inclusive)")
@click.option("--to", help="ISO-8601 upper bound (inclusive)")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def query(service: Optional[str], log_type: Optional[str], from_: Optional[str],
          to: Optional[str], as_json: bool):
    """Query stored logs, newest first (max 200)."""
    _run(_query_impl(service, log_type, from_, to, as_json))


async def _query_impl(service: Optional[str], log_type: Optional[str],
                      from_: Optional[str], to: Optional[str], as_json: bool):
    params = {
        k: v for k, v in
        {"service": service, "type": log_type, "from": from_, "to": to}.items()
        if v
    }
    async with _client() as c:
        r = await c.get("/api/logs", params=params)
        if r.status_code >= 400:
            _fail(r)
        records = r.json()

    if as_json:
        click.echo(json.dumps(records, indent=2))
        return
    if not records:
        click.echo("No matching logs.")
        return
    for record in records:
        click.echo(_format_record(record))


@main.command()
@click.argument("service")
def tail(service: str):
    """Stream records for SERVICE as they are ingested (Ctrl-C to stop)."""
    try:
        _run(_tail_impl(service))
    except KeyboardInterrupt:
        pass


async def _tail_impl(service: str):
    import websockets

    async with websockets.connect(_ws_url()) as ws:
        await ws.send(json.dumps({"subscribe": service}))
        async for frame in ws:
            try:
                record = json.loads(frame)
            except ValueError:
                # Welcome / acknowledgement lines are plain text
                click.secho(str(frame), dim=True)
                continue
            if isinstance(record, dict) and "service" in record:
                click.echo(_format_record(record))
