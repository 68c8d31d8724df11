"""
GitGallery Repository
Introductory remarks: This module is part of the GitGallery codebase.

Shared fixtures for the test suite.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator

import pytest

from gitgallery.utils import env

_BACKEND_ENV_VARS = (
    "GALLERY_STORE_BACKEND",
    "GALLERY_LOCAL_DIR",
    "GALLERY_S3_PREFIX",
    "GALLERY_STORAGE_REGION",
    "S3_GALLERIES_BUCKET",
    "S3_GIT_MOSAICS",
    "AWS_SAM_LOCAL",
    "LOG_LEVEL",
    "LOG_FILE",
)


class FrozenClock:
    """Clock that only moves when a test advances it."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now = self.now + timedelta(**delta)


@pytest.fixture(autouse=True)
def _isolated_gallery_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """
    _isolated_gallery_env: Function description.
    :param monkeypatch:
    :returns:
    """

    for name in _BACKEND_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Never pick up a developer's .env during tests.
    monkeypatch.setattr(env, "_ENV_LOADED", True)


@pytest.fixture()
def clock() -> FrozenClock:
    """
    clock: Function description.
    :param:
    :returns:
    """

    return FrozenClock(datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture()
def id_factory() -> Callable[[], str]:
    """
    id_factory: Function description.
    :param:
    :returns:
    """

    counter: Iterator[int] = iter(range(1, 10_000))
    return lambda: f"gallery-{next(counter)}"
