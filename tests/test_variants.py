# tests/test_variants.py
import pytest
from listing_sync.errors import ConfigurationError
from listing_sync.variants import ON_SALE, SchemaVariant, V1, V2, V3, VARIANTS


def _variant(**overrides):
    kwargs = dict(
        name="test",
        columns={"vin": "A", "price": "B", "status": "C"},
        key_field="vin",
        price_field="price",
        compare_fields=("price",),
        accepted_statuses=(ON_SALE,),
        status_field="status",
    )
    kwargs.update(overrides)
    return SchemaVariant(**kwargs)


def test_column_letters_resolve_to_positions():
    assert V1.column_for("vin") == 6
    assert V1.column_for("location") == 29
    assert V1.column_for("status") == 39
    assert V2.column_for("mileage") == 36
    assert V3.column_for("exposure_period") == 48
    assert V2.photo_positions == (46, 45, 44, 43, 42)


def test_undeclared_field_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        V1.column_for("brand")


def test_registry_holds_all_variants():
    assert set(VARIANTS) == {"v1", "v2", "v3"}


def test_days_on_market_never_drives_change_detection():
    assert "days_on_sale" not in V1.compare_fields
    assert "exposure_period" not in V2.compare_fields
    assert "exposure_period" not in V3.compare_fields


def test_change_fields_are_declared():
    for variant in VARIANTS.values():
        for name in variant.compare_fields:
            variant.column_for(name)


@pytest.mark.parametrize("overrides", [
    {"key_field": "missing"},
    {"price_field": "missing"},
    {"status_field": "missing"},
    {"compare_fields": ("price", "missing")},
    {"compare_fields": ("price", "price")},
    {"accepted_statuses": ()},
    {"columns": {"vin": "A", "price": "1B", "status": "C"}},
    {"photo_columns": ("??",)},
    {"status_field": None},
    {"columns": {}},
])
def test_invalid_declarations_fail_on_construction(overrides):
    with pytest.raises(ConfigurationError):
        _variant(**overrides)


def test_variant_without_status_column_needs_accepted_default():
    variant = _variant(status_field=None, default_status=ON_SALE)
    assert variant.is_accepted(variant.default_status)


def test_is_accepted():
    assert V1.is_accepted("В продаже")
    assert not V1.is_accepted("Продано")
    assert not V1.is_accepted("")
    assert V3.is_accepted("В свободной продаже")
    assert not V3.is_accepted("В продаже")
