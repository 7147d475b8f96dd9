# listing_sync/reconcile.py
"""Per-row reconciliation of a snapshot against the persisted catalog.

For each row the `Reconciler` makes exactly one decision:

* empty key: the row is skipped without touching the store;
* status not accepted: the persisted listing, if any, is deleted;
* accepted and unknown: a new listing is inserted with ``is_new`` set;
* accepted and known: the change set is computed against the persisted
  fields, and the listing is updated only when something changed.

The persisted listing is read once, before anything is written for its key,
so change detection always compares against the state the batch started from.
Store failures are logged and reported as ``Outcome.FAILED``; they never stop
the batch.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional
from sqlalchemy.orm import Session
from . import crud
from .changes import detect_changes
from .errors import StoreError
from .extract import SnapshotRow
from .models import Listing
from .utils import logger
from .variants import SchemaVariant

PhotoResolver = Callable[[str], List[str]]


def search_photos(vin: str) -> List[str]:
    # no photo source is wired up yet
    return []


class Outcome(str, Enum):
    SKIPPED = "skipped"
    ABSENT = "absent"
    RETIRED = "retired"
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    FAILED = "failed"


@dataclass
class Decision:
    outcome: Outcome
    listing: Optional[Listing] = None

    @property
    def emitted(self) -> bool:
        return self.outcome in (Outcome.CREATED, Outcome.UPDATED)


class Reconciler:
    def __init__(self, db: Session, variant: SchemaVariant,
                 photo_resolver: PhotoResolver = search_photos):
        self.db = db
        self.variant = variant
        self.photo_resolver = photo_resolver

    def reconcile(self, row: SnapshotRow) -> Decision:
        if not row.key:
            return Decision(Outcome.SKIPPED)
        try:
            if not self.variant.is_accepted(row.status):
                return self._retire(row)
            existing = crud.get_listing(self.db, self.variant.name, row.key)
            if existing is None:
                return self._create(row)
            return self._update(existing, row)
        except StoreError as e:
            logger.error("%s row %d: failed to reconcile %s: %s",
                         self.variant.name, row.row_number, row.key, e)
            return Decision(Outcome.FAILED)

    def _retire(self, row: SnapshotRow) -> Decision:
        if crud.delete_listing(self.db, self.variant.name, row.key):
            logger.debug("%s: retired %s (status %r)", self.variant.name, row.key, row.status)
            return Decision(Outcome.RETIRED)
        return Decision(Outcome.ABSENT)

    def _create(self, row: SnapshotRow) -> Decision:
        if self.variant.photo_positions:
            photos = list(row.photos)
        else:
            photos = list(self.photo_resolver(row.key) or [])
        listing = Listing(
            variant=self.variant.name,
            vin=row.key,
            fields=dict(row.fields),
            status=row.status,
            photos=photos,
            is_new=True,
            changed_columns=[],
        )
        crud.insert_listing(self.db, listing)
        logger.debug("%s: created %s (id=%s)", self.variant.name, row.key, listing.id)
        return Decision(Outcome.CREATED, listing)

    def _update(self, existing: Listing, row: SnapshotRow) -> Decision:
        changed = detect_changes(existing.fields or {}, row.fields, self.variant.compare_fields)
        if not changed:
            return Decision(Outcome.UNCHANGED)
        price_field = self.variant.price_field
        existing.old_price = existing.fields.get(price_field) if price_field in changed else None
        existing.fields = dict(row.fields)
        existing.status = row.status
        existing.photos = list(existing.photos or [])
        existing.is_new = False
        existing.changed_columns = changed
        crud.update_listing(self.db, existing)
        logger.debug("%s: updated %s, changed %s", self.variant.name, row.key, ", ".join(changed))
        return Decision(Outcome.UPDATED, existing)
