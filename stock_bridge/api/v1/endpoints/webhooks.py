"""API endpoints receiving Tiny ERP webhooks."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from stock_bridge.api.deps import get_audit, get_config_service, get_sync_service
from stock_bridge.constants.sync import ConfigKey, LogStatus, LogType
from stock_bridge.core.security import is_webhook_authorized
from stock_bridge.services.audit import AuditLogger
from stock_bridge.services.config_service import ConfigService
from stock_bridge.services.sync_service import SyncService
from stock_bridge.services.webhook_payloads import decode_body, parse_webhook_body

logger = logging.getLogger(__name__)
router = APIRouter()
# Mounted under /api; manual trigger used by the UI
test_router = APIRouter()

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def read_webhook_body(request: Request) -> Dict[str, Any]:
    """Form fields, decoded JSON, or ``{"raw": text}`` for anything else."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(_FORM_CONTENT_TYPES):
        form = await request.form()
        return dict(form)

    raw_body = await request.body()
    return decode_body(raw_body)


def _reject_unauthorized(
    request: Request,
    body: Dict[str, Any],
    log_type: str,
    config: ConfigService,
    audit: AuditLogger
):
    if is_webhook_authorized(
        config.get(ConfigKey.TINY_WEBHOOK_SECRET),
        request.headers,
        request.query_params,
        body,
    ):
        return None

    client_ip = request.client.host if request.client else None
    audit.record(log_type, LogStatus.UNAUTHORIZED, "Unauthorized webhook", {"ip": client_ip}, log=logger)
    return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"ok": False, "error": "unauthorized"})


@router.post("/tiny/stock")
async def receive_stock_webhook(
    request: Request,
    sync_service: SyncService = Depends(get_sync_service),
    config: ConfigService = Depends(get_config_service),
    audit: AuditLogger = Depends(get_audit)
):
    """
    Tiny stock-change webhook.

    Domain skips (unmapped deposit, unknown SKU) answer 200 with
    ``skipped``; any other failure answers 500 with the error message.
    """
    body = await read_webhook_body(request)
    denied = _reject_unauthorized(request, body, LogType.WEBHOOK_STOCK, config, audit)
    if denied is not None:
        return denied

    try:
        result = await sync_service.sync_from_stock_webhook(parse_webhook_body(body))
    except Exception as e:
        audit.record(LogType.WEBHOOK_STOCK, LogStatus.ERROR, str(e), {"body": body}, log=logger)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"ok": False, "error": str(e)},
        )
    return result.model_dump(exclude_none=True)


@router.post("/tiny/sales")
async def receive_sales_webhook(
    request: Request,
    sync_service: SyncService = Depends(get_sync_service),
    config: ConfigService = Depends(get_config_service),
    audit: AuditLogger = Depends(get_audit)
):
    """Tiny sales webhook: refreshes every SKU of the order on every mapped location."""
    body = await read_webhook_body(request)
    denied = _reject_unauthorized(request, body, LogType.WEBHOOK_SALES, config, audit)
    if denied is not None:
        return denied

    try:
        result = await sync_service.sync_from_sales_webhook(parse_webhook_body(body))
    except Exception as e:
        audit.record(LogType.WEBHOOK_SALES, LogStatus.ERROR, str(e), {"body": body}, log=logger)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"ok": False, "error": str(e)},
        )
    return result.model_dump(exclude_none=True)


@test_router.post("/test/webhook-stock")
async def simulate_stock_webhook(
    data: Dict[str, Any],
    sync_service: SyncService = Depends(get_sync_service)
):
    """
    Push one stock value as if Tiny had sent a stock webhook.

    Body fields: ``idProduto``, ``sku``, ``saldo`` (default 0), ``idDeposito``.
    """
    payload = {
        "dados": {
            "idProduto": data.get("idProduto") or "",
            "sku": data.get("sku") or "",
            "saldo": data["saldo"] if data.get("saldo") is not None else 0,
            "idDeposito": data.get("idDeposito") or "",
        }
    }
    result = await sync_service.sync_from_stock_webhook(payload)
    return result.model_dump(exclude_none=True)
