"""Typer CLI for Modelvault."""

from pathlib import Path

import typer
from rich.console import Console

from modelvault.uploads.rules import SizeClass

app = typer.Typer(name="modelvault", help="Modelvault: upload validation and asset entitlements")
console = Console()


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind host"),
    port: int = typer.Option(8080, help="Bind port"),
):
    """Start the Modelvault API server."""
    import uvicorn
    from modelvault.app import create_app

    console.print(f"[bold green]Starting Modelvault on {host}:{port}[/bold green]")
    uvicorn.run(create_app(), host=host, port=port)


@app.command()
def check(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to validate"),
    size_class: SizeClass = typer.Option(SizeClass.MODEL, "--class", help="Intended use"),
):
    """Validate a local file offline, as an upload would be."""
    from modelvault.common.config import get_settings
    from modelvault.uploads.rules import rules_from_settings
    from modelvault.uploads.validator import UploadCandidate, validate_upload

    rules = rules_from_settings(get_settings())
    verdict = validate_upload(
        UploadCandidate(path.name, path.read_bytes()), size_class, rules,
    )

    if verdict.accepted:
        console.print(f"[bold green]ACCEPTED[/bold green]: {verdict.message}")
    else:
        console.print(f"[bold red]{verdict.reason.value}[/bold red]: {verdict.message}")
        raise typer.Exit(1)


@app.command()
def health(
    url: str = typer.Option("http://localhost:8080", help="Server URL"),
):
    """Check Modelvault server health."""
    import httpx

    try:
        resp = httpx.get(f"{url}/health", timeout=5)
        data = resp.json()
        console.print(f"[bold green]{data['status']}[/bold green]: v{data['version']}")
    except (httpx.HTTPError, ValueError, KeyError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
