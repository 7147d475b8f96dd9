# listing_sync/api/routes.py
import os
from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from sqlalchemy.orm import Session
from typing import List
from .. import crud, schemas
from ..db import get_db
from ..errors import SnapshotError, StoreError
from ..services import SourceRegistry, ingest_snapshot
from ..utils import logger
from ..variants import SchemaVariant, VARIANTS

MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", 32 << 20))

router = APIRouter(prefix="/api")


def get_variant(variant: str) -> SchemaVariant:
    try:
        return VARIANTS[variant]
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown schema variant: {variant}")


def get_registry(request: Request, schema_variant: SchemaVariant = Depends(get_variant)) -> SourceRegistry:
    return request.app.state.registries[schema_variant.name]


@router.get("/health")
def health():
    return {"status": "ok"}


@router.post("/{variant}/upload", response_model=schemas.UploadResult)
def upload(
    file: UploadFile = File(...),
    schema_variant: SchemaVariant = Depends(get_variant),
    registry: SourceRegistry = Depends(get_registry),
    db: Session = Depends(get_db),
):
    data = file.file.read(MAX_UPLOAD_BYTES + 1)
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File too large")
    file_name = file.filename or "upload.xlsx"
    try:
        result = ingest_snapshot(db, schema_variant, data, file_name, registry)
    except SnapshotError as e:
        logger.warning("%s: rejected %s: %s", schema_variant.name, file_name, e)
        raise HTTPException(status_code=400, detail=f"Failed to process Excel: {e}")
    except Exception as e:
        logger.exception("%s: upload of %s failed: %s", schema_variant.name, file_name, e)
        raise HTTPException(status_code=500, detail="Failed to process Excel")
    return schemas.UploadResult(
        records=[schemas.ListingOut.model_validate(obj) for obj in result.listings],
        file_name=file_name,
        files=result.files,
        rows_processed=result.rows_processed,
        summary={outcome.value: count for outcome, count in result.outcomes.items()},
    )


@router.get("/{variant}/records", response_model=List[schemas.ListingOut])
def records(
    skip: int = 0,
    limit: int | None = None,
    only_changed: bool = False,
    schema_variant: SchemaVariant = Depends(get_variant),
    db: Session = Depends(get_db),
):
    try:
        res = crud.list_listings(db, schema_variant.name, skip=skip, limit=limit, only_changed=only_changed)
    except StoreError as e:
        logger.exception("%s: failed to fetch records: %s", schema_variant.name, e)
        raise HTTPException(status_code=500, detail="Failed to fetch records")
    return [schemas.ListingOut.model_validate(obj) for obj in res["items"]]


@router.get("/{variant}/files", response_model=List[str])
def files(registry: SourceRegistry = Depends(get_registry)):
    return registry.list()


@router.post("/{variant}/clear-changed-columns", response_model=schemas.ClearResult)
def clear_changed(schema_variant: SchemaVariant = Depends(get_variant), db: Session = Depends(get_db)):
    try:
        count = crud.clear_changed_columns(db, schema_variant.name)
    except StoreError as e:
        logger.exception("%s: failed to clear changed columns: %s", schema_variant.name, e)
        raise HTTPException(status_code=500, detail="Failed to clear changed_columns")
    logger.info("%s: cleared changed columns on %d listings", schema_variant.name, count)
    return schemas.ClearResult(message="changed_columns cleared", rows_affected=count)


@router.post("/{variant}/delete-all-records", response_model=schemas.DeleteAllResult)
def delete_all(
    payload: schemas.DeleteAllRequest,
    schema_variant: SchemaVariant = Depends(get_variant),
    registry: SourceRegistry = Depends(get_registry),
    db: Session = Depends(get_db),
):
    if payload.confirm != "delete":
        raise HTTPException(status_code=400, detail='To delete all records, send JSON: {"confirm": "delete"}')
    try:
        count = crud.delete_all_listings(db, schema_variant.name)
    except StoreError as e:
        logger.exception("%s: failed to delete all records: %s", schema_variant.name, e)
        raise HTTPException(status_code=500, detail="Failed to delete all records")
    registry.clear()
    logger.info("%s: deleted %d listings", schema_variant.name, count)
    return schemas.DeleteAllResult(message="all records deleted", rows_deleted=count)
