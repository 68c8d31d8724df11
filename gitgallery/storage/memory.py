"""In-memory gallery store for development and tests."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

from gitgallery.models import Gallery

from .errors import NotFoundError
from .gallery_store import BaseGalleryStore, Clock


class InMemoryGalleryStore(BaseGalleryStore):
    """Dictionary-backed gallery store; insertion order is listing order."""

    def __init__(
        self,
        *,
        clock: Optional[Clock] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        super().__init__(clock=clock, id_factory=id_factory)
        self._galleries: Dict[str, Gallery] = {}

    def list(self) -> List[Gallery]:
        return list(self._galleries.values())

    def delete(self, gallery_id: str) -> bool:
        return self._galleries.pop(gallery_id, None) is not None

    def _load(self, gallery_id: str) -> Gallery:
        try:
            return self._galleries[gallery_id]
        except KeyError as exc:
            raise NotFoundError(gallery_id) from exc

    def _insert(self, gallery: Gallery) -> None:
        self._galleries[gallery.id] = gallery

    def _replace(self, gallery: Gallery) -> None:
        if gallery.id not in self._galleries:
            raise NotFoundError(gallery.id)
        self._galleries[gallery.id] = gallery
