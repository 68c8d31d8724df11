"""
GitGallery Repository
Introductory remarks: This module is part of the GitGallery codebase.

Unit tests for logging configuration helper.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import pytest

from gitgallery import logging_config


@pytest.fixture(autouse=True)
def _reset_configured(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(logging_config, "_CONFIGURED", False)


@pytest.fixture()
def basic_config_calls(monkeypatch: pytest.MonkeyPatch) -> list[Dict[str, Any]]:
    calls: list[Dict[str, Any]] = []
    monkeypatch.setattr(
        logging_config.logging,
        "basicConfig",
        lambda **kwargs: calls.append(kwargs),
    )
    return calls


def test_read_level_invalid_returns_none() -> None:
    assert logging_config._read_level("not-an-int") is None


def test_map_level_thresholds() -> None:
    assert logging_config._map_level(1) == logging_config.logging.INFO
    assert logging_config._map_level(2) == logging_config.logging.DEBUG


def test_configure_logging_silent_mode_skips_basic_config(
    monkeypatch: pytest.MonkeyPatch,
    basic_config_calls: list[Dict[str, Any]],
) -> None:
    monkeypatch.setenv("LOG_LEVEL", "0")

    logging_config.configure_logging()

    assert basic_config_calls == []


def test_configure_logging_uses_stderr_without_log_file(
    monkeypatch: pytest.MonkeyPatch,
    basic_config_calls: list[Dict[str, Any]],
) -> None:
    monkeypatch.setenv("LOG_LEVEL", "1")

    logging_config.configure_logging()
    logging_config.configure_logging()

    assert len(basic_config_calls) == 1
    assert basic_config_calls[0]["level"] == logging_config.logging.INFO
    assert basic_config_calls[0]["force"] is True
    assert "filename" not in basic_config_calls[0]


def test_configure_logging_writes_to_file_when_log_file_set(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    basic_config_calls: list[Dict[str, Any]],
) -> None:
    log_path = tmp_path / "logs" / "app.log"
    monkeypatch.setenv("LOG_LEVEL", "2")
    monkeypatch.setenv("LOG_FILE", str(log_path))

    logging_config.configure_logging()

    assert basic_config_calls[0]["filename"] == log_path
    assert basic_config_calls[0]["filemode"] == "a"
    assert basic_config_calls[0]["level"] == logging_config.logging.DEBUG
    assert log_path.parent.is_dir()
