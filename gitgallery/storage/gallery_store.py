"""
GitGallery Repository
Introductory remarks: This module is part of the GitGallery codebase.

Gallery stores layered on a byte-blob backend.

Two physical layouts are supported:

* ``IndexedGalleryStore`` keeps one blob per gallery plus a denormalized
  index blob holding every record. Writes touch both, one after the other;
  a failure between them leaves a record that ``get`` can read but ``list``
  cannot see until ``reconcile_index`` rebuilds the index.
* ``SingleBlobGalleryStore`` keeps the whole collection in one blob, so
  there is nothing to keep in sync but every mutation rewrites everything.

No locking is performed: concurrent read-modify-write calls on the same
gallery are last-writer-wins.
"""

from __future__ import annotations

import logging
import os
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, List, Optional

from gitgallery.models import (UNSET, Gallery, GalleryCreate, GalleryUpdate,
                               RepoRef, dedupe_repos, validate_repo_part)
from gitgallery.utils.env import load_dotenv, truthy

from .base import GalleryRepository
from .blob_store import BlobStore, LocalBlobStore, S3BlobStore
from .codec import (GalleryEntry, decode_galleries, decode_gallery,
                    decode_gallery_entries, encode_galleries,
                    encode_gallery, encode_gallery_entries, entry_id)
from .errors import (MissingBackendConfigurationError, NotFoundError,
                     RepositoryError, SerializationError, ValidationError)

_LOGGER = logging.getLogger(__name__)

DEFAULT_PREFIX = "galleries"
INDEX_NAME = "index"
SINGLE_BLOB_KEY = "git-gallery-galleries"
DEFAULT_LOCAL_DIR = "/tmp/git-gallery-store"

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_gallery_id() -> str:
    return str(uuid.uuid4())


def _validated(check: Callable[[], object]) -> None:
    try:
        check()
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


class BaseGalleryStore(ABC):
    """
    Shared orchestration for every gallery backend.

    Subclasses provide ``list``, ``delete`` and the three record hooks
    ``_load``, ``_insert`` and ``_replace``; validation, timestamps, merging
    and the repo-list operations live here so that all backends behave the
    same way.
    """

    def __init__(
        self,
        *,
        clock: Optional[Clock] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self._clock = clock or _utcnow
        self._id_factory = id_factory or _new_gallery_id

    # Public contract -----------------------------------------------------

    def create(self, payload: GalleryCreate) -> Gallery:
        _validated(payload.validate)
        now = self._now()
        attribution = payload.attribution
        gallery = Gallery(
            id=self._id_factory(),
            name=payload.name,
            description=payload.description,
            repos=(),
            created_at=now,
            updated_at=now,
            created_by=attribution.created_by,
            created_by_id=attribution.created_by_id,
            created_by_login=attribution.created_by_login,
            allow_public_submissions=payload.allow_public_submissions,
        )
        self._insert(gallery)
        _LOGGER.info("Created gallery id=%s name=%s", gallery.id, gallery.name)
        return gallery

    def get(self, gallery_id: str) -> Gallery:
        return self._load(gallery_id)

    @abstractmethod
    def list(self) -> List[Gallery]:
        """Return every listed gallery."""

    def update(self, gallery_id: str, changes: GalleryUpdate) -> Gallery:
        _validated(changes.validate)
        existing = self._load(gallery_id)
        merged = self._merge(existing, changes)
        self._replace(merged)
        _LOGGER.info(
            "Updated gallery id=%s updated_at=%s",
            gallery_id,
            merged.updated_at.isoformat(),
        )
        return merged

    def add_repo(self, gallery_id: str, owner: str, repo: str) -> Gallery:
        _validated(lambda: self._check_repo(owner, repo))
        existing = self.get(gallery_id)
        if existing.has_repo(owner, repo):
            return existing
        repos = existing.repos + (RepoRef(owner=owner, repo=repo),)
        return self.update(gallery_id, GalleryUpdate(repos=repos))

    def remove_repo(self, gallery_id: str, owner: str, repo: str) -> Gallery:
        _validated(lambda: self._check_repo(owner, repo))
        existing = self.get(gallery_id)
        if not existing.has_repo(owner, repo):
            return existing
        repos = tuple(
            ref for ref in existing.repos if ref.key != (owner, repo)
        )
        return self.update(gallery_id, GalleryUpdate(repos=repos))

    @abstractmethod
    def delete(self, gallery_id: str) -> bool:
        """Remove the gallery; return False if it was unknown."""

    # Backend hooks -------------------------------------------------------

    @abstractmethod
    def _load(self, gallery_id: str) -> Gallery:
        """Read one record or raise NotFoundError."""

    @abstractmethod
    def _insert(self, gallery: Gallery) -> None:
        """Persist a new record."""

    @abstractmethod
    def _replace(self, gallery: Gallery) -> None:
        """Overwrite an existing record."""

    # Helpers -------------------------------------------------------------

    @staticmethod
    def _check_repo(owner: str, repo: str) -> None:
        validate_repo_part(owner, "owner")
        validate_repo_part(repo, "name")

    def _now(self, previous: Optional[datetime] = None) -> datetime:
        """Current time at millisecond precision, strictly after previous."""
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        now = now.astimezone(timezone.utc)
        now = now.replace(microsecond=(now.microsecond // 1000) * 1000)
        if previous is not None and now <= previous:
            now = previous + timedelta(milliseconds=1)
        return now

    def _merge(self, existing: Gallery, changes: GalleryUpdate) -> Gallery:
        fields = {}
        if changes.name is not UNSET:
            fields["name"] = changes.name
        if changes.description is not UNSET:
            fields["description"] = changes.description
        if changes.allow_public_submissions is not UNSET:
            fields["allow_public_submissions"] = (
                changes.allow_public_submissions
            )
        if changes.repos is not UNSET:
            fields["repos"] = dedupe_repos(changes.repos)
        fields["updated_at"] = self._now(existing.updated_at)
        return replace(existing, **fields)


class IndexedGalleryStore(BaseGalleryStore):
    """One blob per gallery plus an aggregate index blob for listings."""

    def __init__(
        self,
        blob_store: BlobStore,
        *,
        prefix: str = DEFAULT_PREFIX,
        clock: Optional[Clock] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        super().__init__(clock=clock, id_factory=id_factory)
        self._blobs = blob_store
        self._prefix = prefix.strip("/")

    @property
    def index_key(self) -> str:
        return f"{self._prefix}/{INDEX_NAME}.json"

    def primary_key(self, gallery_id: str) -> str:
        return f"{self._prefix}/{gallery_id}.json"

    def _addressable(self, gallery_id: str) -> bool:
        return bool(gallery_id) and "/" not in gallery_id and (
            gallery_id != INDEX_NAME
        )

    def _index_entries(self) -> List[GalleryEntry]:
        data = self._blobs.read(self.index_key)
        if data is None:
            return []
        return decode_gallery_entries(data)

    def list(self) -> List[Gallery]:
        data = self._blobs.read(self.index_key)
        if data is None:
            return []
        return decode_galleries(data)

    def delete(self, gallery_id: str) -> bool:
        if not self._addressable(gallery_id):
            return False
        # Primary before index; an interrupted delete leaves a stale entry.
        removed_primary = self._blobs.delete(self.primary_key(gallery_id))
        entries = self._index_entries()
        remaining = [e for e in entries if entry_id(e) != gallery_id]
        removed_index = len(remaining) != len(entries)
        if removed_index:
            self._blobs.write(self.index_key, encode_gallery_entries(remaining))
        if removed_primary or removed_index:
            _LOGGER.info("Deleted gallery id=%s", gallery_id)
        return removed_primary or removed_index

    def reconcile_index(self) -> int:
        """
        Rebuild the index from a full scan of primary records.

        Repairs the gaps left by partial writes: records missing from the
        index are added back and entries whose primary blob is gone are
        dropped. Returns the number of galleries indexed.
        """
        scan_prefix = f"{self._prefix}/"
        galleries: list[Gallery] = []
        for key in self._blobs.list_keys(scan_prefix):
            name = key[len(scan_prefix):]
            if "/" in name or not name.endswith(".json"):
                continue
            if key == self.index_key:
                continue
            data = self._blobs.read(key)
            if data is None:
                continue
            try:
                galleries.append(decode_gallery(data))
            except SerializationError as exc:
                _LOGGER.warning(
                    "Skipping undecodable primary record key=%s: %s",
                    key,
                    exc,
                )
        galleries.sort(key=lambda g: (g.created_at, g.id))
        self._blobs.write(self.index_key, encode_galleries(galleries))
        _LOGGER.info("Reconciled gallery index with %d entries", len(galleries))
        return len(galleries)

    def _load(self, gallery_id: str) -> Gallery:
        if not self._addressable(gallery_id):
            raise NotFoundError(gallery_id)
        data = self._blobs.read(self.primary_key(gallery_id))
        if data is None:
            raise NotFoundError(gallery_id)
        return decode_gallery(data)

    def _insert(self, gallery: Gallery) -> None:
        self._blobs.write(self.primary_key(gallery.id), encode_gallery(gallery))
        try:
            entries = self._index_entries()
            entries.append((None, gallery))
            self._blobs.write(self.index_key, encode_gallery_entries(entries))
        except RepositoryError:
            _LOGGER.error(
                "Gallery id=%s was stored but could not be indexed; it will "
                "not be listed until the index is reconciled",
                gallery.id,
            )
            raise

    def _replace(self, gallery: Gallery) -> None:
        self._blobs.write(self.primary_key(gallery.id), encode_gallery(gallery))
        try:
            entries = self._index_entries()
            positions = [
                i for i, entry in enumerate(entries)
                if entry_id(entry) == gallery.id
            ]
            if not positions:
                _LOGGER.warning(
                    "Gallery id=%s is missing from the index; leaving the "
                    "index untouched",
                    gallery.id,
                )
                return
            for position in positions:
                entries[position] = (None, gallery)
            self._blobs.write(self.index_key, encode_gallery_entries(entries))
        except RepositoryError:
            _LOGGER.error(
                "Gallery id=%s was updated but the index still holds the "
                "previous version",
                gallery.id,
            )
            raise


class SingleBlobGalleryStore(BaseGalleryStore):
    """Every gallery lives in one JSON array stored under a single key."""

    def __init__(
        self,
        blob_store: BlobStore,
        *,
        key: str = SINGLE_BLOB_KEY,
        clock: Optional[Clock] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        super().__init__(clock=clock, id_factory=id_factory)
        self._blobs = blob_store
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    def _entries(self) -> List[GalleryEntry]:
        data = self._blobs.read(self._key)
        if data is None:
            return []
        return decode_gallery_entries(data)

    def list(self) -> List[Gallery]:
        data = self._blobs.read(self._key)
        if data is None:
            return []
        return decode_galleries(data)

    def delete(self, gallery_id: str) -> bool:
        entries = self._entries()
        remaining = [e for e in entries if entry_id(e) != gallery_id]
        if len(remaining) == len(entries):
            return False
        self._blobs.write(self._key, encode_gallery_entries(remaining))
        _LOGGER.info("Deleted gallery id=%s", gallery_id)
        return True

    def _load(self, gallery_id: str) -> Gallery:
        for gallery in self.list():
            if gallery.id == gallery_id:
                return gallery
        raise NotFoundError(gallery_id)

    def _insert(self, gallery: Gallery) -> None:
        # Undecodable entries are written back exactly as they were read.
        entries = self._entries()
        entries.append((None, gallery))
        self._blobs.write(self._key, encode_gallery_entries(entries))

    def _replace(self, gallery: Gallery) -> None:
        entries = self._entries()
        for position, entry in enumerate(entries):
            if entry_id(entry) == gallery.id:
                entries[position] = (None, gallery)
                break
        else:
            raise NotFoundError(gallery.id)
        self._blobs.write(self._key, encode_gallery_entries(entries))


class UnconfiguredGalleryStore:
    """Stand-in used when no backend location is configured."""

    def __init__(self, message: Optional[str] = None) -> None:
        self._message = message

    def _fail(self) -> MissingBackendConfigurationError:
        return MissingBackendConfigurationError(self._message)

    def create(self, payload: GalleryCreate) -> Gallery:
        raise self._fail()

    def get(self, gallery_id: str) -> Gallery:
        raise self._fail()

    def list(self) -> List[Gallery]:
        raise self._fail()

    def update(self, gallery_id: str, changes: GalleryUpdate) -> Gallery:
        raise self._fail()

    def add_repo(self, gallery_id: str, owner: str, repo: str) -> Gallery:
        raise self._fail()

    def remove_repo(self, gallery_id: str, owner: str, repo: str) -> Gallery:
        raise self._fail()

    def delete(self, gallery_id: str) -> bool:
        raise self._fail()


def build_gallery_store_from_env() -> GalleryRepository:
    """
    Select the gallery backend from the environment.

    ``GALLERY_STORE_BACKEND=local`` (or ``AWS_SAM_LOCAL``) picks the
    single-blob store on local disk; otherwise ``S3_GALLERIES_BUCKET`` (or the
    legacy ``S3_GIT_MOSAICS``) picks the indexed S3 store. With neither, the
    returned store fails every call with MissingBackendConfigurationError.
    """

    load_dotenv()
    backend = os.environ.get("GALLERY_STORE_BACKEND", "").strip().lower()
    if backend == "local" or truthy(os.environ.get("AWS_SAM_LOCAL")):
        base_dir = Path(os.environ.get("GALLERY_LOCAL_DIR", DEFAULT_LOCAL_DIR))
        _LOGGER.info("Using local single-blob gallery store at %s", base_dir)
        return SingleBlobGalleryStore(LocalBlobStore(base_dir))

    bucket = (
        os.environ.get("S3_GALLERIES_BUCKET")
        or os.environ.get("S3_GIT_MOSAICS")
    )
    if bucket:
        prefix = os.environ.get("GALLERY_S3_PREFIX", "")
        _LOGGER.info("Using S3 gallery store bucket=%s", bucket)
        return IndexedGalleryStore(S3BlobStore(bucket, prefix=prefix))

    _LOGGER.warning("No gallery backend configured")
    return UnconfiguredGalleryStore()
