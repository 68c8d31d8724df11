"""Storage layer abstractions and adapters."""

from .base import GalleryRepository
from .blob_store import BlobStore, InMemoryBlobStore, LocalBlobStore, S3BlobStore
from .codec import decode_galleries, decode_gallery, encode_galleries, encode_gallery
from .errors import (MissingBackendConfigurationError, NotFoundError,
                     RepositoryError, SerializationError,
                     StorageUnavailableError, ValidationError)
from .gallery_store import (BaseGalleryStore, IndexedGalleryStore,
                            SingleBlobGalleryStore, UnconfiguredGalleryStore,
                            build_gallery_store_from_env)
from .memory import InMemoryGalleryStore

__all__ = [
    "GalleryRepository",
    "BlobStore",
    "InMemoryBlobStore",
    "LocalBlobStore",
    "S3BlobStore",
    "encode_gallery",
    "decode_gallery",
    "encode_galleries",
    "decode_galleries",
    "RepositoryError",
    "ValidationError",
    "NotFoundError",
    "MissingBackendConfigurationError",
    "StorageUnavailableError",
    "SerializationError",
    "BaseGalleryStore",
    "IndexedGalleryStore",
    "SingleBlobGalleryStore",
    "UnconfiguredGalleryStore",
    "InMemoryGalleryStore",
    "build_gallery_store_from_env",
]
