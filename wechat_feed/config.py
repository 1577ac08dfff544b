"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- FetchConfig: HTTP fetching settings for detail pages
- PageConfig: What to persist from article detail pages
- StoreConfig: Document store backend and location
- LoggingConfig: Logging behavior
- AppConfig: Root configuration container
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import yaml


CONTENT_TYPES = ("html", "text")
STORE_BACKENDS = ("json", "memory")


@dataclass
class FetchConfig:
    """Configuration for HTTP fetching of article detail pages.

    Attributes:
        timeout_seconds: HTTP request timeout
        retries: Number of retry attempts for failed requests
        trust_env: Whether to respect system proxy settings
        user_agent: HTTP User-Agent header string
    """

    timeout_seconds: float = 20.0
    retries: int = 2
    trust_env: bool = True
    user_agent: str = (
        "Mozilla/5.0 (iPhone; CPU iPhone OS 16_0 like Mac OS X) "
        "AppleWebKit/605.1.15 (KHTML, like Gecko) "
        "Mobile/15E148 MicroMessenger/8.0.40"
    )


@dataclass
class PageConfig:
    """Configuration for deep ingestion of article pages.

    Attributes:
        is_save_post_content: Whether to persist the article body
        save_content_type: "html" stores the body markup, "text" stores plain text
    """

    is_save_post_content: bool = True
    save_content_type: str = "html"


@dataclass
class StoreConfig:
    """Configuration for the document store.

    Attributes:
        backend: "json" for one JSON file per record, "memory" for a process-local store
        path: Root directory for the json backend
    """

    backend: str = "json"
    path: str = "data"


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        filename: Name of the log file, relative to the store path
    """

    level: str = "INFO"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    filename: str = "ingest.jsonl"


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    fetch: FetchConfig = field(default_factory=FetchConfig)
    page: PageConfig = field(default_factory=PageConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        return AppConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    cfg = _merge_config(AppConfig(), raw)
    validate_config(cfg)
    return cfg


def validate_config(cfg: AppConfig) -> None:
    """Reject option values the pipeline does not understand.

    Raises:
        ValueError: If the content type or store backend is unsupported
    """
    if cfg.page.save_content_type not in CONTENT_TYPES:
        raise ValueError(
            f"Unsupported save_content_type: {cfg.page.save_content_type!r}. "
            "Use 'html' or 'text'."
        )
    if cfg.store.backend not in STORE_BACKENDS:
        raise ValueError(
            f"Unsupported store backend: {cfg.store.backend!r}. Use 'json' or 'memory'."
        )


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = _asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            data[key].update(value)
        else:
            data[key] = value
    return _fromdict(data)


def _asdict(cfg: AppConfig) -> dict[str, Any]:
    """Convert AppConfig to nested dictionary."""
    return {
        "fetch": {
            "timeout_seconds": cfg.fetch.timeout_seconds,
            "retries": cfg.fetch.retries,
            "trust_env": cfg.fetch.trust_env,
            "user_agent": cfg.fetch.user_agent,
        },
        "page": {
            "is_save_post_content": cfg.page.is_save_post_content,
            "save_content_type": cfg.page.save_content_type,
        },
        "store": {
            "backend": cfg.store.backend,
            "path": cfg.store.path,
        },
        "logging": {
            "level": cfg.logging.level,
            "console": cfg.logging.console,
            "file": cfg.logging.file,
            "format": cfg.logging.format,
            "filename": cfg.logging.filename,
        },
    }


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    return AppConfig(
        fetch=FetchConfig(**data["fetch"]),
        page=PageConfig(**data["page"]),
        store=StoreConfig(**data["store"]),
        logging=LoggingConfig(**data["logging"]),
    )
