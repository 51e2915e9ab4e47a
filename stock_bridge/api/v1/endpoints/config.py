"""API endpoints for runtime configuration."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends

from stock_bridge.api.deps import get_audit, get_config_service, get_scheduler
from stock_bridge.constants.sync import EDITABLE_CONFIG_KEYS, ConfigKey, LogStatus, LogType
from stock_bridge.services.audit import AuditLogger
from stock_bridge.services.config_service import ConfigService
from stock_bridge.tasks.scheduler import SyncScheduler

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("")
def get_config(config: ConfigService = Depends(get_config_service)):
    """Stored configuration; credentials always present as strings."""
    values = config.as_dict()
    values.setdefault(ConfigKey.TINY_API_TOKEN, "")
    values.setdefault(ConfigKey.SHOPIFY_ACCESS_TOKEN, "")
    return values


@router.post("")
async def update_config(
    data: Dict[str, Any],
    config: ConfigService = Depends(get_config_service),
    scheduler: SyncScheduler = Depends(get_scheduler),
    audit: AuditLogger = Depends(get_audit)
):
    """
    Save any of the editable keys present in the body and restart the
    scheduler so a new ``sync_interval_minutes`` takes effect. Other keys
    are ignored.
    """
    saved = []
    for key in EDITABLE_CONFIG_KEYS:
        if key in data and data[key] is not None:
            config.set(key, data[key])
            saved.append(key)

    await scheduler.restart()
    audit.record(LogType.CONFIG, LogStatus.OK, "Configuration updated", {"keys": sorted(data.keys())}, log=logger)
    return {"ok": True, "saved": saved}
