"""API endpoints for running and monitoring the full sync."""

import logging

from fastapi import APIRouter, Depends

from stock_bridge.api.deps import get_scheduler, get_sync_service
from stock_bridge.constants.sync import SyncTrigger
from stock_bridge.schemas.sync_schemas import FullSyncResult
from stock_bridge.services.sync_service import SyncService
from stock_bridge.tasks.scheduler import SyncScheduler

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/sync/full", response_model=FullSyncResult)
async def run_full_sync(sync_service: SyncService = Depends(get_sync_service)):
    """
    Run a full sync and wait for its summary.

    Returns a ``skipped`` result if a run (manual or scheduled) is already
    in progress.
    """
    return await sync_service.run_full_sync(trigger=SyncTrigger.MANUAL)


@router.get("/status")
def get_status(
    sync_service: SyncService = Depends(get_sync_service),
    scheduler: SyncScheduler = Depends(get_scheduler)
):
    """Scheduler timer state and the last full sync run."""
    return {
        "scheduler": scheduler.status(),
        "sync": sync_service.status(),
    }
