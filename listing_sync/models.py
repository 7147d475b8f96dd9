# listing_sync/models.py
"""SQLAlchemy ORM models for persisted entities.

One `listings` table serves every schema variant; the semantic fields of a
variant live in a JSON column and `(variant, vin)` is unique.
"""
from sqlalchemy import Column, Integer, Text, Boolean, JSON, TIMESTAMP, func, Index, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from .db import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")

class Listing(Base):
    __tablename__ = "listings"
    __table_args__ = (UniqueConstraint("variant", "vin", name="uq_listings_variant_vin"),)
    id = Column(Integer, primary_key=True, index=True)
    variant = Column(Text, nullable=False)
    vin = Column(Text, nullable=False)
    fields = Column(JSONType, nullable=False)
    old_price = Column(Text)
    status = Column(Text)
    photos = Column(JSONType, nullable=False)
    is_new = Column(Boolean, nullable=False, default=False)
    changed_columns = Column(JSONType, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

Index("idx_listings_variant_updated", Listing.variant, Listing.updated_at)
