"""API endpoints for the sync audit log."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stock_bridge.db.session import get_db
from stock_bridge.repositories.sync_log_repository import SyncLogRepository

router = APIRouter()


@router.get("")
def list_logs(
    limit: int = Query(200, ge=1, le=1000),
    db: Session = Depends(get_db)
):
    """Most recent audit events first."""
    return {"logs": SyncLogRepository(db).list_logs(limit)}
