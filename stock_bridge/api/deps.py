"""
FastAPI dependencies for the long-lived services built at startup.

The lifespan handler in ``stock_bridge.main`` stores them on ``app.state``.
"""
from fastapi import Request

from stock_bridge.services.audit import AuditLogger
from stock_bridge.services.config_service import ConfigService
from stock_bridge.services.shopify.oauth import ShopifyOAuth
from stock_bridge.services.sync_service import SyncService
from stock_bridge.tasks.scheduler import SyncScheduler


def get_sync_service(request: Request) -> SyncService:
    return request.app.state.sync_service


def get_scheduler(request: Request) -> SyncScheduler:
    return request.app.state.scheduler


def get_audit(request: Request) -> AuditLogger:
    return request.app.state.audit


def get_config_service(request: Request) -> ConfigService:
    return request.app.state.config_service


def get_oauth(request: Request) -> ShopifyOAuth:
    return request.app.state.oauth
