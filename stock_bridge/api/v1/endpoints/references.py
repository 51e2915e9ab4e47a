"""API endpoint listing Tiny deposits and Shopify locations for the mapping screen."""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from stock_bridge.api.deps import get_audit, get_sync_service
from stock_bridge.constants.sync import LogStatus, LogType
from stock_bridge.services.audit import AuditLogger
from stock_bridge.services.sync_service import SyncService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("")
async def get_references(
    sync_service: SyncService = Depends(get_sync_service),
    audit: AuditLogger = Depends(get_audit)
):
    try:
        return await sync_service.load_integration_references()
    except Exception as e:
        audit.record(LogType.REFERENCES, LogStatus.ERROR, str(e), log=logger)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"ok": False, "error": str(e)},
        )
