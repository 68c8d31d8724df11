"""REST API blueprint for gallery CRUD and repository membership."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from flask import Blueprint, current_app, jsonify, request

from gitgallery.models import Attribution, GalleryCreate, GalleryUpdate
from gitgallery.storage import (GalleryRepository,
                                MissingBackendConfigurationError,
                                NotFoundError, RepositoryError,
                                SerializationError, StorageUnavailableError,
                                ValidationError)
from gitgallery.storage.codec import gallery_to_payload

from . import get_store

_LOGGER = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)

_UPDATABLE_FIELDS = {
    "name": "name",
    "description": "description",
    "allowPublicSubmissions": "allow_public_submissions",
}


def _json_error(message: str, status: int = 400):
    return jsonify({"error": message}), status


def _store() -> GalleryRepository:
    return get_store(current_app)


def _current_attribution() -> Optional[Attribution]:
    provider = current_app.config["ATTRIBUTION_PROVIDER"]
    return provider(request)


def _json_body() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def _storage_error_response(error: RepositoryError, action: str):
    """Map storage failures onto HTTP responses."""
    if isinstance(error, ValidationError):
        return _json_error(str(error), 400)
    if isinstance(error, NotFoundError):
        return _json_error(str(error), 404)
    if isinstance(error, MissingBackendConfigurationError):
        return _json_error(str(error), 500)
    if isinstance(error, StorageUnavailableError):
        _LOGGER.warning("Gallery storage unavailable: %s", error)
        return _json_error(
            "Storage temporarily unavailable; please retry", 503
        )
    if isinstance(error, SerializationError):
        _LOGGER.error("Stored gallery could not be decoded: %s", error)
        return _json_error(f"Failed to {action}", 502)
    _LOGGER.exception("Error trying to %s", action)
    return _json_error(f"Failed to {action}", 500)


@api_bp.get("/galleries")
def list_galleries():
    """Return every indexed gallery."""
    try:
        galleries = _store().list()
    except MissingBackendConfigurationError as error:
        return jsonify({"error": str(error), "galleries": []}), 200
    except RepositoryError as error:
        return _storage_error_response(error, "load galleries")
    return jsonify(
        {"galleries": [gallery_to_payload(g) for g in galleries]}
    ), 200


@api_bp.post("/galleries")
def create_gallery():
    attribution = _current_attribution()
    if attribution is None:
        return _json_error("Authentication required", 401)
    try:
        body = _json_body()
        gallery = _store().create(
            GalleryCreate(
                name=body.get("name"),
                description=body.get("description"),
                allow_public_submissions=body.get(
                    "allowPublicSubmissions", False
                ),
                attribution=attribution,
            )
        )
    except RepositoryError as error:
        return _storage_error_response(error, "create gallery")
    return jsonify({"gallery": gallery_to_payload(gallery)}), 201


@api_bp.get("/galleries/<gallery_id>")
def get_gallery(gallery_id: str):
    try:
        gallery = _store().get(gallery_id)
    except RepositoryError as error:
        return _storage_error_response(error, "load gallery")
    return jsonify({"gallery": gallery_to_payload(gallery)}), 200


@api_bp.patch("/galleries/<gallery_id>")
def update_gallery(gallery_id: str):
    """Apply a partial update; only name, description and the
    public-submission flag are editable here."""
    if _current_attribution() is None:
        return _json_error("Authentication required", 401)
    try:
        body = _json_body()
        unknown = sorted(set(body) - set(_UPDATABLE_FIELDS))
        if unknown:
            raise ValidationError(
                f"Unsupported fields: {', '.join(unknown)}"
            )
        changes = GalleryUpdate(
            **{
                _UPDATABLE_FIELDS[key]: value
                for key, value in body.items()
            }
        )
        gallery = _store().update(gallery_id, changes)
    except RepositoryError as error:
        return _storage_error_response(error, "update gallery")
    return jsonify({"gallery": gallery_to_payload(gallery)}), 200


@api_bp.delete("/galleries/<gallery_id>")
def delete_gallery(gallery_id: str):
    if _current_attribution() is None:
        return _json_error("Authentication required", 401)
    try:
        removed = _store().delete(gallery_id)
    except RepositoryError as error:
        return _storage_error_response(error, "delete gallery")
    if not removed:
        return _json_error(f"Gallery with id {gallery_id} was not found", 404)
    return "", 204


@api_bp.post("/galleries/<gallery_id>/repos")
def add_gallery_repo(gallery_id: str):
    if _current_attribution() is None:
        return _json_error("Authentication required", 401)
    try:
        body = _json_body()
        gallery = _store().add_repo(
            gallery_id, body.get("owner"), body.get("repo")
        )
    except RepositoryError as error:
        return _storage_error_response(error, "add repository")
    return jsonify({"gallery": gallery_to_payload(gallery)}), 200


@api_bp.delete("/galleries/<gallery_id>/repos/<owner>/<repo>")
def remove_gallery_repo(gallery_id: str, owner: str, repo: str):
    if _current_attribution() is None:
        return _json_error("Authentication required", 401)
    try:
        gallery = _store().remove_repo(gallery_id, owner, repo)
    except RepositoryError as error:
        return _storage_error_response(error, "remove repository")
    return jsonify({"gallery": gallery_to_payload(gallery)}), 200
