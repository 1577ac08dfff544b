"""
Command-line interface for WeChat article ingestion.

Uses Typer to expose the three pipeline operations. Supports loading
.env files and a YAML config file.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console

from .config import AppConfig, load_config, validate_config
from .runner import run_batch, run_detail, run_upsert

app = typer.Typer(add_completion=False)
console = Console()


def _load(
    config: Path | None,
    store_path: Path | None,
    log_level: str | None,
    content_type: str | None = None,
) -> AppConfig:
    load_dotenv()
    cfg = load_config(str(config) if config else None)
    if store_path is not None:
        cfg.store.path = str(store_path)
    if log_level:
        cfg.logging.level = log_level
    if content_type:
        cfg.page.save_content_type = content_type
    validate_config(cfg)
    return cfg


@app.command("ingest-batch")
def ingest_batch(
    input: Path = typer.Option(..., "--input", "-i", exists=True, readable=True),
    config: Path | None = typer.Option(None, "--config", "-c", exists=True),
    store_path: Path | None = typer.Option(None, "--store", "-s", help="Store directory."),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
):
    """Save article metadata from a history listing JSON file."""
    cfg = _load(config, store_path, log_level)
    saved = run_batch(input, cfg, console=console)
    console.print(f"Saved {len(saved)} posts")


@app.command("ingest-detail")
def ingest_detail(
    link: str = typer.Argument(..., help="Article link."),
    body: Path | None = typer.Option(
        None, "--body", "-b", exists=True, readable=True, help="Saved page HTML; fetched when omitted."
    ),
    config: Path | None = typer.Option(None, "--config", "-c", exists=True),
    store_path: Path | None = typer.Option(None, "--store", "-s", help="Store directory."),
    content_type: str | None = typer.Option(
        None, "--content-type", help="Body to save: html or text."
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
):
    """Fetch and parse one article page, filling gaps in the stored records."""
    cfg = _load(config, store_path, log_level, content_type)
    result = run_detail(link, cfg, body_path=body)
    console.print(
        f"status={result.status}, article={result.article_written}, "
        f"profile={result.profile_written}, content={result.content_written}"
    )
    if result.status in ("unresolved", "fetch_failed"):
        raise typer.Exit(code=1)


@app.command("upsert")
def upsert(
    input: Path = typer.Option(..., "--input", "-i", exists=True, readable=True),
    config: Path | None = typer.Option(None, "--config", "-c", exists=True),
    store_path: Path | None = typer.Option(None, "--store", "-s", help="Store directory."),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
):
    """Overwrite-upsert a JSON article record or list of records."""
    cfg = _load(config, store_path, log_level)
    result = run_upsert(input, cfg)
    console.print_json(json.dumps(result, ensure_ascii=False))


if __name__ == "__main__":
    app()
