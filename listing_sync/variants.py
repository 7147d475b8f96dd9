# listing_sync/variants.py
"""Schema variants: one per upstream spreadsheet export format.

A variant maps semantic field names to spreadsheet column letters and says
which status values keep a listing on sale, which field carries the price
and which fields take part in change detection. Variants are validated when
they are constructed, so a broken declaration fails at import time.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple
from openpyxl.utils import column_index_from_string
from .errors import ConfigurationError

ON_SALE = "В продаже"
ON_FREE_SALE = "В свободной продаже"


def _position(letter: str, variant: str) -> int:
    try:
        return column_index_from_string(letter.upper()) - 1
    except (ValueError, AttributeError):
        raise ConfigurationError(f"{variant}: invalid column {letter!r}") from None


@dataclass(frozen=True)
class SchemaVariant:
    name: str
    columns: Dict[str, str]
    key_field: str
    price_field: str
    compare_fields: Tuple[str, ...]
    accepted_statuses: Tuple[str, ...]
    status_field: Optional[str] = None
    # used when the export has no status column or the status cell is blank
    default_status: Optional[str] = None
    photo_columns: Tuple[str, ...] = ()
    _positions: Dict[str, int] = field(init=False, repr=False, compare=False)
    _photo_positions: Tuple[int, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if not self.columns:
            raise ConfigurationError(f"{self.name}: no columns declared")
        required = [self.key_field, self.price_field, *self.compare_fields]
        if self.status_field is not None:
            required.append(self.status_field)
        for name in required:
            if name not in self.columns:
                raise ConfigurationError(f"{self.name}: field {name!r} has no column")
        if len(set(self.compare_fields)) != len(self.compare_fields):
            raise ConfigurationError(f"{self.name}: duplicate change-detection field")
        if not self.accepted_statuses:
            raise ConfigurationError(f"{self.name}: no accepted status")
        if self.status_field is None and self.default_status not in self.accepted_statuses:
            raise ConfigurationError(
                f"{self.name}: without a status column the default status must be accepted"
            )
        positions = {name: _position(letter, self.name) for name, letter in self.columns.items()}
        photos = tuple(_position(letter, self.name) for letter in self.photo_columns)
        object.__setattr__(self, "_positions", positions)
        object.__setattr__(self, "_photo_positions", photos)

    @property
    def fields(self) -> Tuple[str, ...]:
        return tuple(self.columns)

    @property
    def photo_positions(self) -> Tuple[int, ...]:
        return self._photo_positions

    def column_for(self, name: str) -> int:
        """Return the 0-based column position of a declared field."""
        try:
            return self._positions[name]
        except KeyError:
            raise ConfigurationError(f"{self.name}: field {name!r} is not declared") from None

    def is_accepted(self, status: str) -> bool:
        return status in self.accepted_statuses


V1 = SchemaVariant(
    name="v1",
    columns={
        "subject": "B",
        "subject_type": "E",
        "vehicle_type": "F",
        "vin": "G",
        "year": "K",
        "mileage": "L",
        "days_on_sale": "O",
        "approved_price": "Q",
        "location": "AD",
        "status": "AN",
    },
    key_field="vin",
    price_field="approved_price",
    compare_fields=("subject", "subject_type", "vehicle_type", "mileage", "approved_price", "status"),
    accepted_statuses=(ON_SALE,),
    status_field="status",
)

V2 = SchemaVariant(
    name="v2",
    columns={
        "exposure_period": "C",
        "vin": "D",
        "vehicle_type": "F",
        "vehicle_subtype": "G",
        "brand": "I",
        "model": "J",
        "actual_price": "K",
        "city": "L",
        "year": "N",
        "mileage": "AK",
    },
    key_field="vin",
    price_field="actual_price",
    compare_fields=(
        "brand", "model", "vehicle_type", "vehicle_subtype",
        "year", "mileage", "city", "actual_price",
    ),
    accepted_statuses=(ON_SALE,),
    default_status=ON_SALE,
    photo_columns=("AU", "AT", "AS", "AR", "AQ"),
)

V3 = SchemaVariant(
    name="v3",
    columns={
        "status": "C",
        "vin": "F",
        "vehicle_type": "G",
        "vehicle_subtype": "H",
        "brand": "K",
        "model": "L",
        "actual_price": "N",
        "city": "P",
        "year": "R",
        "exposure_period": "AW",
        "mileage": "BA",
    },
    key_field="vin",
    price_field="actual_price",
    compare_fields=(
        "brand", "model", "vehicle_type", "vehicle_subtype",
        "year", "mileage", "city", "actual_price", "status",
    ),
    accepted_statuses=(ON_FREE_SALE,),
    status_field="status",
)

VARIANTS: Dict[str, SchemaVariant] = {v.name: v for v in (V1, V2, V3)}
