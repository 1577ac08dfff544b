"""
Synchronous entry points wiring configuration to the ingestion pipeline.

Each run builds the store, fetcher and pipeline from an AppConfig, runs one
pipeline operation inside ``asyncio.run`` and returns its result. The CLI
is a thin layer over these functions.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from rich.console import Console

from .config import AppConfig
from .fetch import build_fetcher
from .history import StorePubRecordRecorder
from .logging_utils import log_event, setup_logging
from .pipeline import DetailResult, IngestionPipeline, IngestStats
from .core.types import Article
from .store import DocumentStore, build_store


def build_pipeline(
    cfg: AppConfig,
    logger: logging.Logger,
    store: DocumentStore | None = None,
) -> IngestionPipeline:
    """Build an IngestionPipeline from configuration.

    Args:
        cfg: Application configuration
        logger: Logger for pipeline events
        store: Store override; built from cfg.store when omitted

    Returns:
        A ready-to-use pipeline
    """
    store = store or build_store(cfg.store.backend, cfg.store.path)
    return IngestionPipeline(
        store=store,
        page=cfg.page,
        fetcher=build_fetcher(cfg.fetch),
        recorder=StorePubRecordRecorder(store),
        logger=logger,
    )


def load_listing(input_path: Path) -> list[dict[str, Any]]:
    """Read listing entries from a JSON file.

    Accepts either a bare list of entries or the platform's history
    response shape ``{"list": [...]}``.

    Raises:
        ValueError: If the file holds neither shape
    """
    with open(input_path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict) and isinstance(data.get("list"), list):
        return data["list"]
    if isinstance(data, list):
        return data
    raise ValueError("Invalid listing format: expected a list or an object with a 'list' key")


def run_batch(
    input_path: Path,
    cfg: AppConfig,
    console: Console | None = None,
    store: DocumentStore | None = None,
) -> list[Article]:
    """Ingest one listing file and print a summary line."""
    logger = setup_logging(cfg.logging, Path(cfg.store.path))
    entries = load_listing(input_path)
    pipeline = build_pipeline(cfg, logger, store)
    stats = IngestStats()

    log_event(logger, "Batch start", event="batch_start", input=str(input_path), entries=len(entries))
    saved = asyncio.run(pipeline.ingest_batch(entries, stats))
    log_event(logger, "Batch complete", event="batch_complete", saved=stats.saved, failed=stats.failed)

    _render_stats(stats, console or Console())
    return saved


def run_detail(
    link: str,
    cfg: AppConfig,
    body_path: Path | None = None,
    store: DocumentStore | None = None,
) -> DetailResult:
    """Deep-ingest one article link, optionally from a saved page."""
    logger = setup_logging(cfg.logging, Path(cfg.store.path))
    body = body_path.read_text(encoding="utf-8") if body_path else None
    pipeline = build_pipeline(cfg, logger, store)
    return asyncio.run(pipeline.ingest_detail(link, body))


def run_upsert(
    input_path: Path,
    cfg: AppConfig,
    store: DocumentStore | None = None,
) -> dict[str, Any] | list[dict[str, Any] | None] | None:
    """Overwrite-upsert the record or records held in a JSON file."""
    logger = setup_logging(cfg.logging, Path(cfg.store.path))
    with open(input_path, encoding="utf-8") as f:
        records = json.load(f)
    pipeline = build_pipeline(cfg, logger, store)
    return asyncio.run(pipeline.upsert_posts(records))


def _render_stats(stats: IngestStats, console: Console) -> None:
    """Display bulk ingestion statistics to the console."""
    console.print(
        "[bold]Ingest summary[/bold]: "
        f"total={stats.total}, saved={stats.saved}, failed={stats.failed}, "
        f"duplicates={stats.duplicates}"
    )
