"""

GitGallery Repository
Introductory remarks: This module is part of the GitGallery codebase.

"""
from __future__ import annotations

from typing import Any, Generator

import pytest

from gitgallery.storage import InMemoryGalleryStore
from gitgallery.webapp import create_app


@pytest.fixture()
def gallery_store(clock: Any, id_factory: Any) -> InMemoryGalleryStore:
    """In-memory store injected into the app under test."""
    return InMemoryGalleryStore(clock=clock, id_factory=id_factory)


@pytest.fixture()
def web_app(gallery_store: InMemoryGalleryStore) -> Generator:
    """Provide a configured Flask application for API tests."""
    app = create_app({"TESTING": True, "GALLERY_STORE": gallery_store})
    yield app


@pytest.fixture()
def client(web_app):
    """Flask test client fixture."""
    return web_app.test_client()


@pytest.fixture()
def auth_headers() -> dict[str, str]:
    return {
        "X-User-Id": "42",
        "X-User-Login": "octocat",
        "X-User-Name": "Octo Cat",
    }
