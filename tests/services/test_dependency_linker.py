"""Tests for the dependency linker."""

import pytest

from pkgmeta.models.errors import StoreError
from pkgmeta.models.package_key import PackageKey
from pkgmeta.models.package_models import Dependency
from pkgmeta.services.dependency_linker import DependencyLinker

WIDGET = PackageKey(ecosystem="rust", name="widget", version="0.3.1")


@pytest.fixture
def linker(store):
    return DependencyLinker(store)


async def test_link_adds_consumer_to_tracked_dependency(store, linker):
    store.seed("rust/serde:1.0.197", build_project_name="serde-build")

    result = await linker.link(WIDGET, Dependency(name="serde", version="1.0.197"))

    assert result == "rust/serde:1.0.197"
    assert store.attributes("rust/serde:1.0.197")["consumers"] == {"rust/widget:0.3.1"}


async def test_link_untracked_dependency_returns_none_without_creating_record(store, linker):
    result = await linker.link(WIDGET, Dependency(name="serde", version="1.0.197"))

    assert result is None
    assert store.attributes("rust/serde:1.0.197") is None


async def test_link_unversioned_dependency_skips_store(store, linker):
    result = await linker.link(WIDGET, Dependency(name="local-helper", version=None))

    assert result is None
    assert store.calls == []


async def test_link_propagates_store_errors(store, linker):
    store.fail_on[("add", None)] = StoreError("set add", "rust/serde:1.0.197", "connection reset")

    with pytest.raises(StoreError):
        await linker.link(WIDGET, Dependency(name="serde", version="1.0.197"))


async def test_link_all_collects_only_tracked_dependencies(store, linker):
    store.seed("rust/serde:1.0.197")
    store.seed("rust/tokio:1.36.0")

    tracked = await linker.link_all(
        WIDGET,
        [
            Dependency(name="serde", version="1.0.197"),
            Dependency(name="tokio", version="1.36.0"),
            Dependency(name="rand", version="0.8.5"),
            Dependency(name="local-helper"),
        ],
    )

    assert tracked == frozenset({"rust/serde:1.0.197", "rust/tokio:1.36.0"})


async def test_link_all_collapses_duplicates(store, linker):
    store.seed("rust/serde:1.0.197")

    tracked = await linker.link_all(
        WIDGET,
        [Dependency(name="serde", version="1.0.197"), Dependency(name="serde", version="1.0.197")],
    )

    assert tracked == frozenset({"rust/serde:1.0.197"})


async def test_link_all_fails_when_any_link_fails(store, linker):
    store.seed("rust/serde:1.0.197")
    store.seed("rust/tokio:1.36.0")
    tokio_key = PackageKey("rust", "tokio", "1.36.0").structured_key
    store.fail_on[("add", tokio_key)] = StoreError("set add", tokio_key, "throttled")

    with pytest.raises(StoreError, match="throttled"):
        await linker.link_all(
            WIDGET,
            [Dependency(name="serde", version="1.0.197"), Dependency(name="tokio", version="1.36.0")],
        )


async def test_link_all_with_no_dependencies(linker):
    assert await linker.link_all(WIDGET, []) == frozenset()
