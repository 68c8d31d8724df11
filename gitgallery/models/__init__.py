"""Domain model package exports."""

from .gallery import (DEFAULT_CREATED_BY, MAX_DESCRIPTION_LENGTH, UNSET,
                      Attribution, Gallery, GalleryCreate, GalleryUpdate,
                      RepoRef, dedupe_repos, validate_description,
                      validate_gallery_name, validate_repo_part)

__all__ = [
    "Attribution",
    "DEFAULT_CREATED_BY",
    "Gallery",
    "GalleryCreate",
    "GalleryUpdate",
    "MAX_DESCRIPTION_LENGTH",
    "RepoRef",
    "UNSET",
    "dedupe_repos",
    "validate_description",
    "validate_gallery_name",
    "validate_repo_part",
]
