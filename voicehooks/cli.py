from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import httpx
import typer
import uvicorn

from voicehooks.core.client import VoiceHooksClient
from voicehooks.core.config import Settings, get_settings


cli = typer.Typer(name="voice-hooks", help="Serveur compagnon voice hooks")
config_cli = typer.Typer(help="Configuration")

cli.add_typer(config_cli, name="config")


@cli.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Adresse d'écoute"),
    port: Optional[int] = typer.Option(None, "--port", help="Port HTTP"),
) -> None:
    """Démarrer le serveur FastAPI."""
    settings = get_settings()
    uvicorn.run("voicehooks.main:app", host=host or settings.host, port=port or settings.port)


@cli.command()
def status(url: Optional[str] = typer.Option(None, "--url", help="URL du serveur")) -> None:
    """Afficher le rôle et les sessions d'un serveur en cours d'exécution."""
    settings = get_settings()
    client = VoiceHooksClient(url or settings.self_url)
    try:
        payload = {"version": client.version(), "sessions": client.sessions()}
    except httpx.HTTPError as exc:
        typer.echo(f"Serveur injoignable: {exc}")
        raise typer.Exit(code=1)
    typer.echo(json.dumps(payload, ensure_ascii=False))


@config_cli.command("print")
def config_print():
    s = Settings()
    typer.echo(json.dumps(s.model_dump(), ensure_ascii=False, default=str))


@config_cli.command("edit")
def config_edit():
    path = Path("config.json").resolve()
    if not path.exists():
        path.write_text("{}", encoding="utf-8")
    typer.echo(str(path))


if __name__ == "__main__":
    cli()
