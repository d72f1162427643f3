"""CLI entrypoint for Context Optimizer."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

import requests
import typer

app = typer.Typer(name="ctxo", help="Context Optimizer command-line interface")

DEFAULT_HOST = "http://127.0.0.1:5180"


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip('/')
    env_host = os.environ.get("CTXO_HOST")
    if env_host:
        return env_host.rstrip('/')
    return DEFAULT_HOST


def _request(method: str, path: str, host: Optional[str] = None, **kwargs) -> requests.Response:
    base = _resolve_host(host)
    url = f"{base}{path}"
    try:
        resp = requests.request(method, url, timeout=300, **kwargs)
    except requests.ConnectionError as exc:
        typer.echo(f"Cannot reach {base}: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    if not resp.ok:
        try:
            detail = resp.json()
        except ValueError:
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)
    return resp


def _echo(resp: requests.Response) -> None:
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def index(
    full: bool = typer.Option(False, "--full", help="Re-index every file instead of only changed ones"),
    file: Optional[Path] = typer.Option(None, "--file", help="Index a single file"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Run an indexing pass."""
    if file is not None:
        _echo(_request("POST", "/index/file", host=host, json={"path": str(file.expanduser().resolve())}))
        return
    _echo(_request("POST", "/index", host=host, json={"mode": "full" if full else "incremental"}))


@app.command()
def stats(
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Show index statistics."""
    _echo(_request("GET", "/index/stats", host=host))


@app.command()
def compress(
    path: Path = typer.Argument(..., help="File to compress"),
    algorithm: Optional[str] = typer.Option(None, "--algorithm", help="summarization, truncation or keyword-extraction"),
    ratio: Optional[float] = typer.Option(None, "--ratio", help="Target compression ratio"),
    force: bool = typer.Option(False, "--force", help="Ignore the size threshold and importance exemption"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Compress a file and print the result."""
    payload: dict[str, object] = {"path": str(path.expanduser().resolve()), "force": force}
    if algorithm:
        payload["algorithm"] = algorithm
    if ratio is not None:
        payload["compression_ratio"] = ratio
    _echo(_request("POST", "/compress", host=host, json=payload))


@app.command()
def master(
    query: str = typer.Argument(..., help="Question or topic for the package"),
    max_tokens: Optional[int] = typer.Option(None, "--max-tokens", help="Token budget"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Generate a master context package."""
    payload: dict[str, object] = {"query": query}
    if max_tokens:
        payload["max_tokens"] = max_tokens
    _echo(_request("POST", "/packages/master", host=host, json=payload))


@app.command()
def worker(
    task: str = typer.Argument(..., help="Task description"),
    max_tokens: Optional[int] = typer.Option(None, "--max-tokens", help="Token budget"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Generate a worker context package."""
    payload: dict[str, object] = {"task": task}
    if max_tokens:
        payload["max_tokens"] = max_tokens
    _echo(_request("POST", "/packages/worker", host=host, json=payload))


@app.command()
def snapshot(
    description: str = typer.Argument("", help="Snapshot description"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Record a snapshot of the current index."""
    _echo(_request("POST", "/snapshots", host=host, json={"description": description}))


@app.command()
def history(
    limit: int = typer.Option(20, "--limit", help="Number of entries to show"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Show recent context history."""
    _echo(_request("GET", "/history", host=host, params={"limit": limit}))


if __name__ == "__main__":
    app()
