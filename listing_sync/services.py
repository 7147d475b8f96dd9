# listing_sync/services.py
"""Batch coordination: reconcile one uploaded snapshot and track its source."""
import threading
from collections import Counter
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, List
from sqlalchemy.orm import Session
from .extract import SnapshotWorkbook, data_rows, extract_row
from .models import Listing
from .reconcile import Outcome, PhotoResolver, Reconciler, search_photos
from .utils import logger
from .variants import SchemaVariant, VARIANTS


class _ReadWriteLock:
    """Many readers or one writer."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False

    @contextmanager
    def read(self):
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self):
        with self._cond:
            while self._writing or self._readers:
                self._cond.wait()
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


class SourceRegistry:
    """Append-only, de-duplicated list of snapshot source names.

    Shared by every batch of one variant, so access goes through a
    reader/writer lock.
    """

    def __init__(self):
        self._lock = _ReadWriteLock()
        self._names: List[str] = []

    def record(self, name: str) -> None:
        with self._lock.write():
            if name not in self._names:
                self._names.append(name)

    def list(self) -> List[str]:
        with self._lock.read():
            return list(self._names)

    def clear(self) -> None:
        with self._lock.write():
            self._names = []


def build_registries() -> Dict[str, SourceRegistry]:
    return {name: SourceRegistry() for name in VARIANTS}


@dataclass
class BatchResult:
    source_name: str
    listings: List[Listing]
    rows_processed: int
    outcomes: Counter = field(default_factory=Counter)
    files: List[str] = field(default_factory=list)


def ingest_snapshot(db: Session, variant: SchemaVariant, data: bytes, source_name: str,
                    registry: SourceRegistry,
                    photo_resolver: PhotoResolver = search_photos) -> BatchResult:
    """Reconcile every data row of an .xlsx snapshot against the store.

    Structural problems (unreadable file, no sheet, no data row) raise
    SnapshotError before any row is reconciled. Rows whose store write fails
    are logged and left out of the result; the batch still succeeds.
    """
    rows = data_rows(SnapshotWorkbook(data))
    logger.info("%s: reconciling %d rows from %s", variant.name, len(rows), source_name)

    reconciler = Reconciler(db, variant, photo_resolver)
    listings: List[Listing] = []
    outcomes: Counter = Counter()
    # row 1 is the header
    for row_number, cells in enumerate(rows, start=2):
        decision = reconciler.reconcile(extract_row(cells, variant, row_number))
        outcomes[decision.outcome] += 1
        if decision.emitted:
            listings.append(decision.listing)

    registry.record(source_name)
    logger.info(
        "%s: %s done, %d created, %d updated, %d retired, %d unchanged, %d failed",
        variant.name, source_name,
        outcomes[Outcome.CREATED], outcomes[Outcome.UPDATED], outcomes[Outcome.RETIRED],
        outcomes[Outcome.UNCHANGED], outcomes[Outcome.FAILED],
    )
    return BatchResult(
        source_name=source_name,
        listings=listings,
        rows_processed=len(rows),
        outcomes=outcomes,
        files=registry.list(),
    )
