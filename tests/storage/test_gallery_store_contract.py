"""
GitGallery Repository
Introductory remarks: This module is part of the GitGallery codebase.

Behavioural tests shared by every gallery store implementation.
"""

from __future__ import annotations

from typing import Any

import pytest

from gitgallery.models import (Attribution, GalleryCreate, GalleryUpdate,
                               RepoRef)
from gitgallery.storage import (BaseGalleryStore, IndexedGalleryStore,
                                InMemoryBlobStore, InMemoryGalleryStore,
                                NotFoundError, SingleBlobGalleryStore,
                                ValidationError)


@pytest.fixture(params=["indexed", "single_blob", "memory"])
def store(request: pytest.FixtureRequest, clock: Any, id_factory: Any) -> Any:
    """
    store: Function description.
    :param request:
    :param clock:
    :param id_factory:
    :returns:
    """

    if request.param == "indexed":
        return IndexedGalleryStore(
            InMemoryBlobStore(), clock=clock, id_factory=id_factory
        )
    if request.param == "single_blob":
        return SingleBlobGalleryStore(
            InMemoryBlobStore(), clock=clock, id_factory=id_factory
        )
    return InMemoryGalleryStore(clock=clock, id_factory=id_factory)


def _create(store: Any, name: str = "Winter Hackathon", **kwargs: Any) -> Any:
    return store.create(GalleryCreate(name=name, **kwargs))


def test_create_returns_fresh_record_with_defaults(store: Any) -> None:
    gallery = _create(store)

    assert gallery.id
    assert gallery.name == "Winter Hackathon"
    assert gallery.repos == ()
    assert gallery.allow_public_submissions is False
    assert gallery.created_at == gallery.updated_at
    assert gallery.description is None


def test_create_assigns_unique_ids(store: Any) -> None:
    first = _create(store, "one")
    second = _create(store, "two")

    assert first.id != second.id


def test_get_round_trips_created_record(store: Any) -> None:
    created = _create(
        store,
        description="Projects from the winter event",
        allow_public_submissions=True,
        attribution=Attribution(
            created_by="Octo Cat",
            created_by_id="42",
            created_by_login="octocat",
        ),
    )

    assert store.get(created.id) == created


def test_list_contains_exactly_one_entry_per_created_gallery(store: Any) -> None:
    first = _create(store, "one")
    second = _create(store, "two")

    listed = store.list()

    assert [g.id for g in listed] == [first.id, second.id]
    assert [g.id for g in listed].count(first.id) == 1


def test_list_on_empty_backend_returns_empty_sequence(store: Any) -> None:
    assert list(store.list()) == []


def test_add_repo_is_idempotent(store: Any) -> None:
    gallery = _create(store)

    store.add_repo(gallery.id, "vercel", "next.js")
    updated = store.add_repo(gallery.id, "vercel", "next.js")

    assert updated.repos == (RepoRef("vercel", "next.js"),)
    assert store.get(gallery.id).repos == (RepoRef("vercel", "next.js"),)


def test_add_repo_appends_in_order(store: Any) -> None:
    gallery = _create(store)

    store.add_repo(gallery.id, "vercel", "next.js")
    store.add_repo(gallery.id, "pallets", "flask")

    assert store.get(gallery.id).repos == (
        RepoRef("vercel", "next.js"),
        RepoRef("pallets", "flask"),
    )


def test_add_repo_treats_pairs_not_names_as_identity(store: Any) -> None:
    gallery = _create(store)

    store.add_repo(gallery.id, "alice", "tools")
    updated = store.add_repo(gallery.id, "bob", "tools")

    assert len(updated.repos) == 2


def test_remove_repo_drops_matching_pair(store: Any) -> None:
    gallery = _create(store)
    store.add_repo(gallery.id, "vercel", "next.js")
    store.add_repo(gallery.id, "pallets", "flask")

    updated = store.remove_repo(gallery.id, "vercel", "next.js")

    assert updated.repos == (RepoRef("pallets", "flask"),)
    assert store.get(gallery.id).repos == (RepoRef("pallets", "flask"),)


def test_remove_absent_repo_is_a_no_op(store: Any, clock: Any) -> None:
    gallery = _create(store)
    with_repo = store.add_repo(gallery.id, "vercel", "next.js")
    clock.advance(seconds=5)

    result = store.remove_repo(gallery.id, "octo", "missing")

    assert result == with_repo
    assert store.get(gallery.id).updated_at == with_repo.updated_at


@pytest.mark.parametrize(
    "operation",
    [
        lambda s: s.get("nonexistent"),
        lambda s: s.update("nonexistent", GalleryUpdate(name="x")),
        lambda s: s.add_repo("nonexistent", "o", "r"),
        lambda s: s.remove_repo("nonexistent", "o", "r"),
    ],
    ids=["get", "update", "add_repo", "remove_repo"],
)
def test_unknown_id_raises_not_found(store: Any, operation: Any) -> None:
    with pytest.raises(NotFoundError) as excinfo:
        operation(store)

    assert excinfo.value.gallery_id == "nonexistent"


def test_update_merges_only_provided_fields(store: Any, clock: Any) -> None:
    gallery = _create(store, "Old Name", description="keep me")
    clock.advance(seconds=1)

    updated = store.update(gallery.id, GalleryUpdate(name="New Name"))

    assert updated.name == "New Name"
    assert updated.description == "keep me"
    assert updated.updated_at > gallery.updated_at
    assert updated.created_at == gallery.created_at
    assert store.get(gallery.id) == updated


def test_update_can_clear_description(store: Any) -> None:
    gallery = _create(store, description="temporary")

    updated = store.update(gallery.id, GalleryUpdate(description=None))

    assert updated.description is None
    assert store.get(gallery.id).description is None


def test_update_never_touches_attribution(store: Any) -> None:
    gallery = _create(
        store,
        attribution=Attribution(
            created_by="Octo Cat", created_by_id="42", created_by_login="octo"
        ),
    )

    updated = store.update(
        gallery.id, GalleryUpdate(allow_public_submissions=True)
    )

    assert updated.allow_public_submissions is True
    assert updated.attribution == gallery.attribution


def test_update_collapses_duplicate_repos(store: Any) -> None:
    gallery = _create(store)

    updated = store.update(
        gallery.id,
        GalleryUpdate(
            repos=(
                RepoRef("a", "b"),
                RepoRef("c", "d"),
                RepoRef("a", "b"),
            )
        ),
    )

    assert updated.repos == (RepoRef("a", "b"), RepoRef("c", "d"))


def test_updated_at_strictly_increases_even_when_clock_stalls(
    store: Any,
) -> None:
    gallery = _create(store)
    seen = [gallery.updated_at]

    store.add_repo(gallery.id, "a", "one")
    store.update(gallery.id, GalleryUpdate(name="renamed"))
    store.add_repo(gallery.id, "a", "two")
    store.remove_repo(gallery.id, "a", "one")

    final = store.get(gallery.id)
    seen.append(final.updated_at)
    assert final.created_at == gallery.created_at
    assert final.updated_at > gallery.updated_at
    assert all(later >= earlier for earlier, later in zip(seen, seen[1:]))


def test_each_mutation_is_not_older_than_the_previous(
    store: Any, clock: Any
) -> None:
    gallery = _create(store)
    previous = gallery.updated_at
    for index in range(4):
        clock.advance(milliseconds=index)
        current = store.add_repo(gallery.id, "owner", f"repo-{index}")
        assert current.updated_at > previous
        assert current.updated_at >= current.created_at
        previous = current.updated_at


@pytest.mark.parametrize(
    "payload",
    [
        GalleryCreate(name=""),
        GalleryCreate(name="   "),
        GalleryCreate(name="ok", description="x" * 2001),
    ],
)
def test_create_rejects_invalid_input(store: Any, payload: GalleryCreate) -> None:
    with pytest.raises(ValidationError):
        store.create(payload)

    assert list(store.list()) == []


def test_update_rejects_empty_name(store: Any) -> None:
    gallery = _create(store)

    with pytest.raises(ValidationError):
        store.update(gallery.id, GalleryUpdate(name=""))

    assert store.get(gallery.id).name == gallery.name


def test_add_repo_rejects_blank_owner(store: Any) -> None:
    gallery = _create(store)

    with pytest.raises(ValidationError):
        store.add_repo(gallery.id, "", "repo")


def test_delete_removes_gallery_everywhere(store: Any) -> None:
    keep = _create(store, "keep")
    drop = _create(store, "drop")

    assert store.delete(drop.id) is True

    with pytest.raises(NotFoundError):
        store.get(drop.id)
    assert [g.id for g in store.list()] == [keep.id]
    assert store.delete(drop.id) is False


def test_delete_unknown_returns_false(store: Any) -> None:
    assert store.delete("missing") is False


def test_backend_missing_a_hook_cannot_be_instantiated() -> None:
    class ListOnlyStore(BaseGalleryStore):
        def list(self) -> list:
            return []

    with pytest.raises(TypeError):
        ListOnlyStore()
