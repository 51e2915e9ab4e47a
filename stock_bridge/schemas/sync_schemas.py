"""
Schemas for sync results, scheduler status and audit log entries.
"""
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field


class UnitResult(BaseModel):
    """Outcome of pushing one SKU to one mapped location."""
    status: str = Field(..., description="updated, not_found, skipped")
    reason: Optional[str] = None
    sku: Optional[str] = None
    quantity: Optional[int] = None
    inventory_item_id: Optional[str] = None
    location_id: Optional[str] = None
    source: Optional[str] = None


class FullSyncResult(BaseModel):
    ok: bool
    status: str = Field(..., description="completed, failed, skipped")
    trigger: str
    reason: Optional[str] = None
    message: Optional[str] = None
    updated: int = 0
    not_found: int = 0
    skipped: int = 0
    errors: int = Field(default=0, description="Units that raised; also counted in skipped")
    duration_ms: int = 0
    error: Optional[str] = None


class StockWebhookResult(BaseModel):
    ok: bool = True
    skipped: bool = False
    reason: Optional[str] = None
    result: Optional[UnitResult] = None


class SalesWebhookResult(BaseModel):
    ok: bool = True
    skipped: bool = False
    reason: Optional[str] = None
    updated: int = 0
    skus: List[str] = []


class SchedulerStatus(BaseModel):
    running: bool
    interval_minutes: int
    next_run_at: Optional[datetime] = None


class SyncRunStatus(BaseModel):
    state: str
    trigger: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    last_result: Optional[FullSyncResult] = None


class LogEntryResponse(BaseModel):
    id: int
    type: str
    status: str
    message: Optional[str] = None
    context: Optional[Any] = None
    created_at: Optional[datetime] = None
