"""Flask application factory exposing the gallery store over HTTP."""

from __future__ import annotations

from typing import Any, Dict

from flask import Flask, current_app

from gitgallery.logging_config import configure_logging
from gitgallery.storage import GalleryRepository, build_gallery_store_from_env

from .identity import attribution_from_headers


def create_app(config: Dict[str, Any] | None = None) -> Flask:
    """Create and configure the Flask application.

    The gallery store is resolved once here and shared through
    ``app.config["GALLERY_STORE"]``; pass one in ``config`` to inject a
    specific backend.
    """

    configure_logging()
    app = Flask(__name__)
    app.config.setdefault("JSON_SORT_KEYS", False)
    app.config.setdefault("ATTRIBUTION_PROVIDER", attribution_from_headers)

    if config:
        app.config.update(config)
    if app.config.get("GALLERY_STORE") is None:
        app.config["GALLERY_STORE"] = build_gallery_store_from_env()

    from .api import api_bp

    app.register_blueprint(api_bp, url_prefix="/api")
    return app


def get_store(app: Flask | None = None) -> GalleryRepository:
    """Retrieve the shared gallery store. Accepts an optional app override."""
    ctx_app = app or current_app
    store = ctx_app.config.get("GALLERY_STORE")
    if store is None:
        raise RuntimeError("GALLERY_STORE is not configured")
    return store
