from contextlib import asynccontextmanager
import logging
from typing import Callable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from stock_bridge.api.v1.endpoints.config import router as config_router
from stock_bridge.api.v1.endpoints.logs import router as logs_router
from stock_bridge.api.v1.endpoints.mappings import router as mappings_router
from stock_bridge.api.v1.endpoints.references import router as references_router
from stock_bridge.api.v1.endpoints.shopify_oauth import api_router as oauth_api_router
from stock_bridge.api.v1.endpoints.shopify_oauth import auth_router as oauth_auth_router
from stock_bridge.api.v1.endpoints.sync import router as sync_router
from stock_bridge.api.v1.endpoints.webhooks import router as webhooks_router
from stock_bridge.api.v1.endpoints.webhooks import test_router as webhook_test_router
from stock_bridge.core.config import Settings, settings
from stock_bridge.db.session import SessionLocal, init_db
from stock_bridge.services.audit import AuditLogger
from stock_bridge.services.config_service import ConfigService
from stock_bridge.services.shopify import ShopifyClient, ShopifyInventory, ShopifyOAuth
from stock_bridge.services.sync_service import SyncService
from stock_bridge.services.tiny import TinyCatalog, TinyClient
from stock_bridge.tasks.scheduler import SyncScheduler

_logger = logging.getLogger(__name__)


def configure_logging(level: str = settings.log_level) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_services(app: FastAPI, session_factory: Callable[[], Session], app_settings: Settings) -> None:
    """Wire connectors, orchestrator and scheduler onto ``app.state``."""
    config_service = ConfigService(session_factory, app_settings)
    audit = AuditLogger(session_factory)

    tiny_client = TinyClient(
        config_service,
        base_url=app_settings.tiny_api_base_url,
        timeout=app_settings.http_timeout_seconds,
    )
    shopify_client = ShopifyClient(config_service, timeout=app_settings.http_timeout_seconds)

    sync_service = SyncService(
        source=TinyCatalog(tiny_client),
        sink=ShopifyInventory(shopify_client, session_factory),
        session_factory=session_factory,
        audit=audit,
        config=config_service,
        settings=app_settings,
    )

    app.state.session_factory = session_factory
    app.state.config_service = config_service
    app.state.audit = audit
    app.state.tiny_client = tiny_client
    app.state.shopify_client = shopify_client
    app.state.oauth = ShopifyOAuth(config_service, app_settings)
    app.state.sync_service = sync_service
    app.state.scheduler = SyncScheduler(sync_service, config_service, audit)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    build_services(app, SessionLocal, settings)
    app.state.config_service.seed_defaults()
    app.state.scheduler.start()

    base_url = settings.public_base_url
    _logger.info(f"Tiny stock webhook: {base_url}/webhooks/tiny/stock")
    _logger.info(f"Tiny sales webhook: {base_url}/webhooks/tiny/sales")

    yield

    await app.state.scheduler.stop()
    await app.state.tiny_client.aclose()
    await app.state.shopify_client.aclose()
    await app.state.oauth.aclose()
    _logger.info("Stock bridge stopped")


def create_app() -> FastAPI:
    app = FastAPI(title="Stock Bridge", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost", f"http://localhost:{settings.port}"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(sync_router, prefix="/api", tags=["sync"])
    app.include_router(webhooks_router, prefix="/webhooks", tags=["webhooks"])
    app.include_router(webhook_test_router, prefix="/api", tags=["webhooks"])
    app.include_router(mappings_router, prefix="/api/mappings", tags=["mappings"])
    app.include_router(references_router, prefix="/api/references", tags=["references"])
    app.include_router(logs_router, prefix="/api/logs", tags=["logs"])
    app.include_router(config_router, prefix="/api/config", tags=["config"])
    app.include_router(oauth_api_router, prefix="/api/shopify/oauth", tags=["shopify-oauth"])
    app.include_router(oauth_auth_router, prefix="/auth/shopify", tags=["shopify-oauth"])
    return app


configure_logging()
app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
