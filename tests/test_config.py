"""Tests for YAML configuration loading."""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from wechat_feed.config import AppConfig, load_config


def _write(tmpdir: str, text: str) -> str:
    path = Path(tmpdir) / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_defaults_without_path():
    cfg = load_config(None)

    assert cfg == AppConfig()
    assert cfg.page.is_save_post_content is True
    assert cfg.page.save_content_type == "html"
    assert cfg.store.backend == "json"


def test_yaml_sections_merge_over_defaults():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write(
            tmpdir,
            "page:\n  save_content_type: text\nstore:\n  backend: memory\nfetch:\n  retries: 0\nunknown: 1\n",
        )

        cfg = load_config(path)

    assert cfg.page.save_content_type == "text"
    assert cfg.page.is_save_post_content is True
    assert cfg.store.backend == "memory"
    assert cfg.store.path == "data"
    assert cfg.fetch.retries == 0
    assert cfg.fetch.timeout_seconds == 20.0


def test_load_config_does_not_mutate_defaults():
    with tempfile.TemporaryDirectory() as tmpdir:
        load_config(_write(tmpdir, "logging:\n  level: DEBUG\n"))

    assert load_config(None).logging.level == "INFO"


def test_unsupported_values_are_rejected():
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(ValueError):
            load_config(_write(tmpdir, "page:\n  save_content_type: pdf\n"))
        with pytest.raises(ValueError):
            load_config(_write(tmpdir, "store:\n  backend: mongo\n"))
