# tests/conftest.py
import os
from io import BytesIO

# point the package at a throwaway database before anything imports listing_sync.db
os.environ["POSTGRES_URL"] = "sqlite://"
os.environ.pop("SNAPSHOT_INBOX_DIR", None)

import pytest
from openpyxl import Workbook

from listing_sync.db import Base, engine, SessionLocal
import listing_sync.models  # noqa: F401


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


def build_snapshot(variant, rows, header=True):
    """Build .xlsx bytes laid out for `variant`.

    Each row is a dict of semantic field name to cell value; the optional
    "photos" entry fills the variant's photo columns in order.
    """
    positions = [variant.column_for(name) for name in variant.fields]
    positions += list(variant.photo_positions)
    width = max(positions) + 1
    wb = Workbook()
    ws = wb.active
    if header:
        head = [None] * width
        for name in variant.fields:
            head[variant.column_for(name)] = name
        ws.append(head)
    for values in rows:
        cells = [None] * width
        for name, value in values.items():
            if name == "photos":
                for position, link in zip(variant.photo_positions, value):
                    cells[position] = link
            else:
                cells[variant.column_for(name)] = value
        ws.append(cells)
    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


@pytest.fixture
def snapshot():
    return build_snapshot
