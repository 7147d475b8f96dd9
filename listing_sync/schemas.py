# listing_sync/schemas.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional
from datetime import datetime

class ListingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    variant: str
    vin: str
    fields: Dict[str, str]
    old_price: Optional[str] = None
    status: Optional[str] = None
    photos: List[str] = Field(default_factory=list)
    is_new: bool
    changed_columns: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class UploadResult(BaseModel):
    records: List[ListingOut]
    file_name: str
    files: List[str]
    rows_processed: int
    summary: Dict[str, int]

class ClearResult(BaseModel):
    message: str
    rows_affected: int

class DeleteAllRequest(BaseModel):
    confirm: str = ""

class DeleteAllResult(BaseModel):
    message: str
    rows_deleted: int
