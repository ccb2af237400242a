# tests/unit/test_catalog_store.py
import pytest

from conftest import SCENARIO, TODAY, write_catalog
from puphax.application.catalog_store import CatalogSnapshot, CatalogStore
from puphax.domain.errors import CatalogLoadError
from puphax.domain.models import LookupTables
from puphax.infra.catalog.loader import CatalogLoader
from puphax.infra.catalog.tables import PRODUCTS


def test_new_store_is_empty_and_not_loaded():
    store = CatalogStore()
    assert store.loaded is False
    assert len(store.current()) == 0
    assert store.current().get("1") is None


def test_snapshot_build():
    snap = CatalogSnapshot.build(SCENARIO, LookupTables())
    assert len(snap) == 3
    assert snap.get("3").name == "Paracetamol 500"
    assert snap.stats.products_loaded == 3
    assert snap.stats.index_keys == len(snap.index) > 0


def test_reload_publishes_new_snapshot(loader):
    store = CatalogStore()
    before = store.current()
    stats = store.reload(loader)
    after = store.current()
    assert after is not before
    assert store.loaded is True
    assert len(after) == stats.products_loaded == 6
    assert stats.index_keys == len(after.index)


def test_failed_reload_keeps_previous_snapshot(tmp_path, loader):
    store = CatalogStore()
    store.reload(loader)
    good = store.current()

    other = tmp_path / "broken"
    other.mkdir()
    broken = CatalogLoader(write_catalog(other, skip=(PRODUCTS,)), today=TODAY)
    with pytest.raises(CatalogLoadError):
        store.reload(broken)
    assert store.current() is good


def test_reader_snapshot_is_unaffected_by_reload(loader):
    store = CatalogStore(CatalogSnapshot.build(SCENARIO, LookupTables()))
    held = store.current()
    store.reload(loader)
    assert len(held) == 3
    assert held.get("1").name == "Aspirin 500"
    assert store.current().get("1").manufacturer == "Bayer Hungária Kft."
