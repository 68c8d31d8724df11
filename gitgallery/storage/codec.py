"""
Serialize galleries to JSON blobs and back.

Decoding applies migration-on-read: fields introduced after the first
release are filled with defaults when an older blob lacks them, so stored
records never need a rewrite pass.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from gitgallery.models import (DEFAULT_CREATED_BY, Gallery, RepoRef,
                               dedupe_repos)

from .errors import SerializationError

_LOGGER = logging.getLogger(__name__)

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"


def format_timestamp(value: datetime) -> str:
    """Render ``value`` as ``YYYY-MM-DDTHH:MM:SS.sssZ`` in UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    millis = value.microsecond // 1000
    return f"{value.strftime(_TIMESTAMP_FORMAT)}.{millis:03d}Z"


def parse_timestamp(raw: Any) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if not isinstance(raw, str) or not raw:
        raise SerializationError(f"Invalid timestamp {raw!r}")
    text = raw[:-1] + "+00:00" if raw.endswith("Z") else raw
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise SerializationError(f"Invalid timestamp {raw!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def gallery_to_payload(gallery: Gallery) -> Dict[str, Any]:
    """Return the camelCase wire shape for ``gallery``."""
    payload: Dict[str, Any] = {
        "id": gallery.id,
        "name": gallery.name,
        "repos": [
            {"owner": ref.owner, "repo": ref.repo} for ref in gallery.repos
        ],
        "createdAt": format_timestamp(gallery.created_at),
        "updatedAt": format_timestamp(gallery.updated_at),
        "createdBy": gallery.created_by,
        "createdById": gallery.created_by_id,
        "createdByLogin": gallery.created_by_login,
        "allowPublicSubmissions": gallery.allow_public_submissions,
    }
    if gallery.description is not None:
        payload["description"] = gallery.description
    return payload


def gallery_from_payload(payload: Any) -> Gallery:
    """Build a gallery from a decoded JSON object, filling missing fields."""
    if not isinstance(payload, Mapping):
        raise SerializationError("Gallery record must be a JSON object")

    gallery_id = payload.get("id")
    name = payload.get("name")
    if not isinstance(gallery_id, str) or not gallery_id:
        raise SerializationError("Gallery record is missing 'id'")
    if not isinstance(name, str):
        raise SerializationError(
            f"Gallery record '{gallery_id}' is missing 'name'"
        )

    created_at = parse_timestamp(payload.get("createdAt"))
    raw_updated = payload.get("updatedAt")
    updated_at = (
        parse_timestamp(raw_updated) if raw_updated is not None
        else created_at
    )

    description = payload.get("description")
    if description is not None and not isinstance(description, str):
        raise SerializationError(
            f"Gallery record '{gallery_id}' has a non-string description"
        )

    allow_public = payload.get("allowPublicSubmissions", False)
    if allow_public is None:
        allow_public = False
    if not isinstance(allow_public, bool):
        raise SerializationError(
            f"Gallery record '{gallery_id}' has a non-boolean "
            "'allowPublicSubmissions'"
        )

    return Gallery(
        id=gallery_id,
        name=name,
        description=description,
        repos=_repos_from_payload(gallery_id, payload.get("repos")),
        created_at=created_at,
        updated_at=updated_at,
        created_by=_text(payload, "createdBy", DEFAULT_CREATED_BY),
        created_by_id=_text(payload, "createdById", ""),
        created_by_login=_text(payload, "createdByLogin", ""),
        allow_public_submissions=allow_public,
    )


def _repos_from_payload(gallery_id: str, raw: Any) -> tuple[RepoRef, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise SerializationError(
            f"Gallery record '{gallery_id}' has a non-list 'repos'"
        )
    refs: list[RepoRef] = []
    for item in raw:
        if not isinstance(item, Mapping):
            raise SerializationError(
                f"Gallery record '{gallery_id}' has a malformed repo entry"
            )
        owner = item.get("owner")
        repo = item.get("repo")
        if not isinstance(owner, str) or not isinstance(repo, str):
            raise SerializationError(
                f"Gallery record '{gallery_id}' has a malformed repo entry"
            )
        refs.append(RepoRef(owner=owner, repo=repo))
    return dedupe_repos(refs)


def _text(payload: Mapping[str, Any], key: str, default: str) -> str:
    value = payload.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise SerializationError(f"Field '{key}' must be a string")
    return value


def _dumps(value: Any) -> bytes:
    return json.dumps(
        value, sort_keys=True, separators=(",", ":"), ensure_ascii=False
    ).encode("utf-8")


def _loads(data: bytes) -> Any:
    try:
        return json.loads(data)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Stored blob is not valid JSON: {exc}") from exc


def encode_gallery(gallery: Gallery) -> bytes:
    return _dumps(gallery_to_payload(gallery))


def decode_gallery(data: bytes) -> Gallery:
    return gallery_from_payload(_loads(data))


def encode_galleries(galleries: Iterable[Gallery]) -> bytes:
    return _dumps([gallery_to_payload(gallery) for gallery in galleries])


GalleryEntry = Tuple[Any, Optional[Gallery]]


def entry_id(entry: GalleryEntry) -> Optional[str]:
    """Return the id of an array entry, decoded or not."""
    raw, gallery = entry
    if gallery is not None:
        return gallery.id
    if isinstance(raw, Mapping) and isinstance(raw.get("id"), str):
        return raw["id"]
    return None


def decode_gallery_entries(data: bytes) -> List[GalleryEntry]:
    """
    Decode a JSON array of galleries into ``(raw, gallery)`` pairs.

    ``gallery`` is ``None`` for entries that fail to decode; ``raw`` keeps
    the stored JSON value so writers can re-emit it untouched. A blob that
    is not an array at all raises ``SerializationError``.
    """
    payload = _loads(data)
    if not isinstance(payload, list):
        raise SerializationError("Gallery collection must be a JSON array")
    entries: list[GalleryEntry] = []
    for position, raw in enumerate(payload):
        try:
            entries.append((raw, gallery_from_payload(raw)))
        except SerializationError as exc:
            _LOGGER.warning(
                "Skipping undecodable gallery at position=%s id=%s: %s",
                position,
                entry_id((raw, None)),
                exc,
            )
            entries.append((raw, None))
    return entries


def encode_gallery_entries(entries: Iterable[GalleryEntry]) -> bytes:
    """Encode entries, re-emitting undecodable ones exactly as stored."""
    return _dumps(
        [
            gallery_to_payload(gallery) if gallery is not None else raw
            for raw, gallery in entries
        ]
    )


def decode_galleries(data: bytes) -> List[Gallery]:
    """
    Decode a JSON array of galleries.

    Entries that fail to decode are logged and skipped so a single corrupt
    record cannot hide the rest of the collection.
    """
    return [
        gallery
        for _, gallery in decode_gallery_entries(data)
        if gallery is not None
    ]
