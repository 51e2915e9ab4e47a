"""API endpoints for Tiny deposit -> Shopify location mappings."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from stock_bridge.api.deps import get_audit
from stock_bridge.constants.sync import LogStatus, LogType
from stock_bridge.core.exceptions import ValidationError
from stock_bridge.db.session import get_db
from stock_bridge.repositories.mapping_repository import MappingRepository
from stock_bridge.schemas.mappings import MappingCreate, MappingResponse
from stock_bridge.services.audit import AuditLogger

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("")
def list_mappings(db: Session = Depends(get_db)):
    """All mappings, active or not."""
    rows = MappingRepository(db).list_all()
    return {"mappings": [MappingResponse.model_validate(row) for row in rows]}


@router.post("")
def save_mapping(
    mapping: MappingCreate,
    db: Session = Depends(get_db),
    audit: AuditLogger = Depends(get_audit)
):
    """
    Create or replace the mapping for ``tiny_deposito_id``.

    Args:
        mapping: Deposit id, location id (numeric or gid), optional names and ``active``
        db: Database session
    """
    try:
        row = MappingRepository(db).upsert(mapping)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    audit.record(LogType.MAPPING, LogStatus.OK, "Mapping saved", mapping.model_dump(), log=logger)
    return {"ok": True, "mapping": MappingResponse.model_validate(row)}


@router.delete("/{tiny_deposito_id}")
def delete_mapping(
    tiny_deposito_id: str,
    db: Session = Depends(get_db),
    audit: AuditLogger = Depends(get_audit)
):
    """Remove a mapping. Unknown ids still answer ``ok``."""
    removed = MappingRepository(db).remove(tiny_deposito_id)
    audit.record(
        LogType.MAPPING,
        LogStatus.OK,
        "Mapping removed",
        {"tiny_deposito_id": tiny_deposito_id, "removed": removed},
        log=logger,
    )
    return {"ok": True, "removed": removed}
