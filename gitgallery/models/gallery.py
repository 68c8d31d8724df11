"""
GitGallery Repository
Introductory remarks: This module is part of the GitGallery codebase.

Domain models for galleries and their repository references.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional, Tuple

MAX_DESCRIPTION_LENGTH = 2000
DEFAULT_CREATED_BY = "Unknown"


class _Unset:
    """Marker for partial-update fields the caller did not provide."""

    _instance: Optional["_Unset"] = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


def validate_gallery_name(name: Any) -> str:
    """Gallery names must be non-empty strings."""
    if not isinstance(name, str) or not name.strip():
        raise ValueError("Gallery name is required")
    return name


def validate_description(description: Any) -> Optional[str]:
    """Descriptions are optional but bounded."""
    if description is None:
        return None
    if not isinstance(description, str):
        raise ValueError("Gallery description must be a string")
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValueError(
            "Description must be "
            f"{MAX_DESCRIPTION_LENGTH} characters or less"
        )
    return description


def validate_repo_part(value: Any, label: str) -> str:
    """Owner and repo names are opaque but must be present."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Repository {label} is required")
    return value


@dataclass(frozen=True)
class RepoRef:
    """Pointer to an external GitHub repository."""

    owner: str
    repo: str

    @property
    def key(self) -> Tuple[str, str]:
        return (self.owner, self.repo)


def dedupe_repos(repos: Iterable[RepoRef]) -> Tuple[RepoRef, ...]:
    """Drop repeated (owner, repo) pairs, keeping first-seen order."""
    seen: set[Tuple[str, str]] = set()
    unique: list[RepoRef] = []
    for ref in repos:
        if ref.key in seen:
            continue
        seen.add(ref.key)
        unique.append(ref)
    return tuple(unique)


@dataclass(frozen=True)
class Attribution:
    """Who created a gallery. Supplied by the caller's identity source."""

    created_by: str = DEFAULT_CREATED_BY
    created_by_id: str = ""
    created_by_login: str = ""


@dataclass(frozen=True)
class Gallery:
    """A named, attributed collection of repository references."""

    id: str
    name: str
    created_at: datetime
    updated_at: datetime
    description: Optional[str] = None
    repos: Tuple[RepoRef, ...] = ()
    created_by: str = DEFAULT_CREATED_BY
    created_by_id: str = ""
    created_by_login: str = ""
    allow_public_submissions: bool = False

    def has_repo(self, owner: str, repo: str) -> bool:
        return any(ref.key == (owner, repo) for ref in self.repos)

    @property
    def attribution(self) -> Attribution:
        return Attribution(
            created_by=self.created_by,
            created_by_id=self.created_by_id,
            created_by_login=self.created_by_login,
        )


@dataclass(frozen=True)
class GalleryCreate:
    """Input accepted by ``create``."""

    name: str
    description: Optional[str] = None
    allow_public_submissions: bool = False
    attribution: Attribution = field(default_factory=Attribution)

    def validate(self) -> None:
        validate_gallery_name(self.name)
        validate_description(self.description)
        if not isinstance(self.allow_public_submissions, bool):
            raise ValueError("allowPublicSubmissions must be a boolean")


@dataclass(frozen=True)
class GalleryUpdate:
    """
    Partial update for an existing gallery.

    Fields left as ``UNSET`` keep their stored value. Attribution, ``id`` and
    ``created_at`` are deliberately absent: they are write-once.
    """

    name: Any = UNSET
    description: Any = UNSET
    allow_public_submissions: Any = UNSET
    repos: Any = UNSET

    def validate(self) -> None:
        if self.name is not UNSET:
            validate_gallery_name(self.name)
        if self.description is not UNSET:
            validate_description(self.description)
        if self.allow_public_submissions is not UNSET and not isinstance(
            self.allow_public_submissions, bool
        ):
            raise ValueError("allowPublicSubmissions must be a boolean")
        if self.repos is not UNSET:
            for ref in self.repos:
                if not isinstance(ref, RepoRef):
                    raise ValueError(f"Invalid repository reference {ref!r}")
                validate_repo_part(ref.owner, "owner")
                validate_repo_part(ref.repo, "name")

    def is_empty(self) -> bool:
        return all(
            value is UNSET
            for value in (
                self.name,
                self.description,
                self.allow_public_submissions,
                self.repos,
            )
        )
