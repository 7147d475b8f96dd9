# listing_sync/crud.py
"""Store operations for `Listing` entities, keyed by (variant, vin).

Every write commits on its own. A database error rolls the session back and
is re-raised as `StoreError`, so one failed row never poisons the session
used for the rest of a batch.
"""
from functools import wraps
from sqlalchemy import select, update, delete, or_, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Dict, Any, List, Optional
from .errors import StoreError
from .models import Listing


def _rollback_on_error(f):
    @wraps(f)
    def wrapper(db: Session, *args, **kwargs):
        try:
            return f(db, *args, **kwargs)
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreError(f"{f.__name__} failed: {e}") from e
    return wrapper


def _json_array_length(db: Session, column):
    if db.get_bind().dialect.name == "postgresql":
        return func.jsonb_array_length(column)
    return func.json_array_length(column)


@_rollback_on_error
def get_listing(db: Session, variant: str, vin: str) -> Optional[Listing]:
    return db.execute(
        select(Listing).where(Listing.variant == variant, Listing.vin == vin)
    ).scalar_one_or_none()


@_rollback_on_error
def insert_listing(db: Session, listing: Listing) -> int:
    if not listing.vin:
        raise StoreError("refusing to persist a listing without a key")
    db.add(listing)
    db.commit()
    return listing.id


@_rollback_on_error
def update_listing(db: Session, listing: Listing) -> None:
    db.add(listing)
    db.commit()


@_rollback_on_error
def delete_listing(db: Session, variant: str, vin: str) -> bool:
    result = db.execute(delete(Listing).where(Listing.variant == variant, Listing.vin == vin))
    db.commit()
    return result.rowcount > 0


@_rollback_on_error
def delete_all_listings(db: Session, variant: str) -> int:
    result = db.execute(delete(Listing).where(Listing.variant == variant))
    db.commit()
    return result.rowcount


@_rollback_on_error
def clear_changed_columns(db: Session, variant: str) -> int:
    result = db.execute(
        update(Listing).where(Listing.variant == variant).values(changed_columns=[])
    )
    db.commit()
    return result.rowcount


@_rollback_on_error
def list_listings(db: Session, variant: str, skip: int = 0, limit: Optional[int] = None,
                  only_changed: bool = False) -> Dict[str, Any]:
    q = select(Listing).where(Listing.variant == variant)
    if only_changed:
        changed_count = _json_array_length(db, Listing.changed_columns)
        q = q.where(or_(Listing.is_new.is_(True), changed_count > 0))
    total = db.execute(select(func.count()).select_from(q.subquery())).scalar_one()
    q = q.order_by(Listing.updated_at.desc(), Listing.id.desc()).offset(skip)
    if limit is not None:
        q = q.limit(limit)
    items: List[Listing] = list(db.execute(q).scalars())
    return {"total": total, "items": items}
