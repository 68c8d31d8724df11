"""Abstract repository interface for gallery persistence."""

from __future__ import annotations

from typing import List, Protocol

from gitgallery.models import Gallery, GalleryCreate, GalleryUpdate


class GalleryRepository(Protocol):
    """Persistence contract every gallery backend satisfies."""

    def create(self, payload: GalleryCreate) -> Gallery:
        """Persist a new gallery; raise ValidationError on bad input."""

    def get(self, gallery_id: str) -> Gallery:
        """Return the gallery or raise NotFoundError."""

    def list(self) -> List[Gallery]:
        """
        Return every gallery known to the listing index.

        An absent index means no galleries yet and yields an empty list.
        """

    def update(self, gallery_id: str, changes: GalleryUpdate) -> Gallery:
        """Merge ``changes`` over the stored gallery and bump updated_at."""

    def add_repo(self, gallery_id: str, owner: str, repo: str) -> Gallery:
        """Append a repository reference unless it is already present."""

    def remove_repo(self, gallery_id: str, owner: str, repo: str) -> Gallery:
        """Drop a repository reference; absent pairs are a no-op."""

    def delete(self, gallery_id: str) -> bool:
        """Remove the gallery everywhere; return False if it was unknown."""
