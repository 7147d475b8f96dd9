# tests/test_services.py
import threading

import pytest
from listing_sync import crud
from listing_sync.errors import SnapshotError, StoreError
from listing_sync.reconcile import Outcome
from listing_sync.services import SourceRegistry, build_registries, ingest_snapshot
from listing_sync.variants import V1, V2

ON_SALE = "В продаже"


def _store_state(db, variant="v1"):
    db.expire_all()
    return sorted(
        (obj.vin, tuple(sorted(obj.fields.items())), obj.status, tuple(obj.photos),
         obj.is_new, tuple(obj.changed_columns), obj.old_price, obj.updated_at)
        for obj in crud.list_listings(db, variant)["items"]
    )


def test_first_upload_creates_listings(db, snapshot):
    data = snapshot(V1, [
        {"vin": "VIN1", "status": ON_SALE, "approved_price": "100"},
        {"vin": "VIN2", "status": ON_SALE, "approved_price": "200"},
    ])
    result = ingest_snapshot(db, V1, data, "march.xlsx", SourceRegistry())
    assert [obj.vin for obj in result.listings] == ["VIN1", "VIN2"]
    assert all(obj.is_new for obj in result.listings)
    assert result.rows_processed == 2
    assert result.outcomes[Outcome.CREATED] == 2
    assert result.files == ["march.xlsx"]


def test_reupload_is_idempotent(db, snapshot):
    data = snapshot(V1, [
        {"vin": "VIN1", "status": ON_SALE, "approved_price": "100"},
        {"vin": "VIN2", "status": ON_SALE, "approved_price": "200", "days_on_sale": "5"},
        {"vin": "VIN3", "status": "Продано"},
    ])
    registry = SourceRegistry()
    first = ingest_snapshot(db, V1, data, "a.xlsx", registry)
    assert len(first.listings) == 2
    after_first = _store_state(db)

    second = ingest_snapshot(db, V1, data, "a.xlsx", registry)
    assert second.listings == []
    assert second.outcomes[Outcome.UNCHANGED] == 2
    assert _store_state(db) == after_first
    assert second.files == ["a.xlsx"]


def test_batch_reports_only_new_or_changed(db, snapshot):
    ingest_snapshot(db, V1, snapshot(V1, [
        {"vin": "VIN1", "status": ON_SALE, "approved_price": "100"},
        {"vin": "VIN2", "status": ON_SALE, "approved_price": "200"},
        {"vin": "VIN3", "status": ON_SALE, "approved_price": "300"},
    ]), "a.xlsx", SourceRegistry())

    result = ingest_snapshot(db, V1, snapshot(V1, [
        {"vin": "VIN1", "status": ON_SALE, "approved_price": "100"},
        {"vin": "VIN2", "status": ON_SALE, "approved_price": "250"},
        {"vin": "VIN3", "status": "Продано", "approved_price": "999"},
        {"vin": "", "status": ON_SALE, "approved_price": "1"},
        {"vin": "VIN4", "status": ON_SALE, "approved_price": "400"},
    ]), "b.xlsx", SourceRegistry())

    assert [(obj.vin, obj.is_new) for obj in result.listings] == [("VIN2", False), ("VIN4", True)]
    assert result.listings[0].changed_columns == ["approved_price"]
    assert result.listings[0].old_price == "200"
    assert result.outcomes[Outcome.RETIRED] == 1
    assert result.outcomes[Outcome.SKIPPED] == 1
    assert result.rows_processed == 5
    assert crud.get_listing(db, "v1", "VIN3") is None
    assert {obj.vin for obj in crud.list_listings(db, "v1")["items"]} == {"VIN1", "VIN2", "VIN4"}


def test_row_failure_does_not_fail_the_batch(db, snapshot, monkeypatch):
    original = crud.insert_listing

    def flaky(db, listing):
        if listing.vin == "VIN2":
            raise StoreError("disk full")
        return original(db, listing)

    monkeypatch.setattr(crud, "insert_listing", flaky)
    registry = SourceRegistry()
    result = ingest_snapshot(db, V1, snapshot(V1, [
        {"vin": "VIN1", "status": ON_SALE},
        {"vin": "VIN2", "status": ON_SALE},
        {"vin": "VIN3", "status": ON_SALE},
    ]), "partial.xlsx", registry)

    assert [obj.vin for obj in result.listings] == ["VIN1", "VIN3"]
    assert result.outcomes[Outcome.FAILED] == 1
    assert crud.get_listing(db, "v1", "VIN2") is None
    assert registry.list() == ["partial.xlsx"]


def test_malformed_snapshot_has_no_side_effects(db, snapshot):
    registry = SourceRegistry()
    with pytest.raises(SnapshotError):
        ingest_snapshot(db, V1, b"not a workbook", "bad.xlsx", registry)
    with pytest.raises(SnapshotError):
        ingest_snapshot(db, V1, snapshot(V1, []), "empty.xlsx", registry)
    assert registry.list() == []
    assert crud.list_listings(db, "v1")["total"] == 0


def test_variants_are_kept_apart(db, snapshot):
    ingest_snapshot(db, V1, snapshot(V1, [{"vin": "VIN1", "status": ON_SALE}]), "v1.xlsx", SourceRegistry())
    result = ingest_snapshot(db, V2, snapshot(V2, [{"vin": "VIN1", "photos": ["http://a"]}]),
                             "v2.xlsx", SourceRegistry())
    assert result.listings[0].is_new
    assert result.listings[0].photos == ["http://a"]
    assert crud.list_listings(db, "v1")["total"] == 1
    assert crud.list_listings(db, "v2")["total"] == 1


def test_registry_deduplicates_in_insertion_order():
    registry = SourceRegistry()
    for name in ("b.xlsx", "a.xlsx", "b.xlsx"):
        registry.record(name)
    assert registry.list() == ["b.xlsx", "a.xlsx"]
    registry.clear()
    assert registry.list() == []


def test_registry_list_is_a_copy():
    registry = SourceRegistry()
    registry.record("a.xlsx")
    names = registry.list()
    names.append("x.xlsx")
    assert registry.list() == ["a.xlsx"]


def test_registry_under_concurrent_writers_and_readers():
    registry = SourceRegistry()
    names = ["file-%d.xlsx" % i for i in range(50)]
    seen = []

    def writer():
        for name in names:
            registry.record(name)

    def reader():
        for _ in range(50):
            seen.append(len(registry.list()))

    threads = [threading.Thread(target=writer) for _ in range(4)]
    threads += [threading.Thread(target=reader) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert sorted(registry.list()) == sorted(names)
    assert all(count <= len(names) for count in seen)


def test_build_registries_one_per_variant():
    registries = build_registries()
    assert set(registries) == {"v1", "v2", "v3"}
    registries["v1"].record("a.xlsx")
    assert registries["v2"].list() == []
