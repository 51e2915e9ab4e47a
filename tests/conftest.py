"""Pytest configuration and fixtures."""

from typing import Dict, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from stock_bridge.core.config import Settings
from stock_bridge.core.exceptions import TransportError
from stock_bridge.db.base import Base
from stock_bridge.repositories.mapping_repository import MappingRepository
from stock_bridge.schemas.mappings import MappingCreate
from stock_bridge.schemas.shopify import InventoryItemRef, ShopifyLocation
from stock_bridge.schemas.tiny import (
    DepositReference,
    ProductPage,
    TinyDeposit,
    TinyProduct,
    TinyProductStock,
)
from stock_bridge.services.audit import AuditLogger
from stock_bridge.services.config_service import ConfigService
import stock_bridge.models  # noqa: F401


@pytest.fixture
def session_factory():
    """In-memory SQLite shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        tiny_api_token="tiny-token",
        shopify_store="test-shop",
        shopify_access_token="shpat_test",
        shopify_client_id="client-id",
        shopify_client_secret="client-secret",
        sync_interval_minutes=180,
    )


@pytest.fixture
def config_service(session_factory, test_settings) -> ConfigService:
    return ConfigService(session_factory, test_settings)


@pytest.fixture
def audit(session_factory) -> AuditLogger:
    return AuditLogger(session_factory)


def add_mapping(session_factory, deposito_id: str, location_id: str, active: bool = True, nome: str = ""):
    with session_factory() as db:
        MappingRepository(db).upsert(MappingCreate(
            tiny_deposito_id=deposito_id,
            tiny_deposito_nome=nome or f"Deposit {deposito_id}",
            shopify_location_id=location_id,
            active=active,
        ))


def make_stock(product_id: str, sku: str = "", **balances: float) -> TinyProductStock:
    """``make_stock("p1", "A", D1=5)`` -> stock with deposit D1 holding 5."""
    return TinyProductStock(
        product_id=product_id,
        sku=sku,
        deposits=[TinyDeposit(deposito_id=key, deposito_nome=key, saldo=value) for key, value in balances.items()],
    )


class FakeSource:
    """In-memory Tiny catalog."""

    def __init__(
        self,
        pages: Optional[List[List[TinyProduct]]] = None,
        stocks: Optional[Dict[str, object]] = None,
        total_pages: Optional[int] = None
    ):
        self.pages = pages or []
        self.stocks = stocks or {}
        self.total_pages = total_pages
        self.failing_pages = set()
        self.page_calls: List[int] = []
        self.stock_calls: List[str] = []
        self.sku_lookups: List[str] = []

    async def list_products(self, page: int = 1) -> ProductPage:
        self.page_calls.append(page)
        if page in self.failing_pages:
            raise TransportError("Tiny HTTP 503", 503)
        total = self.total_pages or max(len(self.pages), 1)
        products = self.pages[page - 1] if page <= len(self.pages) else []
        return ProductPage(page=page, total_pages=total, products=products)

    async def get_product_stock(self, product_id: str) -> TinyProductStock:
        self.stock_calls.append(product_id)
        stock = self.stocks[product_id]
        if isinstance(stock, Exception):
            raise stock
        return stock

    async def find_product_by_sku(self, sku: str) -> Optional[TinyProduct]:
        self.sku_lookups.append(sku)
        for page in self.pages:
            for product in page:
                if product.sku == sku:
                    return product
        return None

    async def discover_deposits(self, sample_products: int = 150) -> List[DepositReference]:
        return [DepositReference(id="D1", nome="Main")]


class FakeSink:
    """In-memory Shopify inventory recording every quantity set."""

    def __init__(self, items: Optional[Dict[str, str]] = None, failing_skus=()):
        self.items = items or {}
        self.failing_skus = set(failing_skus)
        self.lookups: List[str] = []
        self.sets: List[tuple] = []

    async def find_inventory_item_by_sku(self, sku: str) -> Optional[InventoryItemRef]:
        self.lookups.append(sku)
        if sku in self.failing_skus:
            raise TransportError("Shopify HTTP 502", 502)
        if sku not in self.items:
            return None
        return InventoryItemRef(inventory_item_id=self.items[sku], source="api")

    async def set_inventory_quantity(self, inventory_item_id, location_id, quantity, reason="correction"):
        self.sets.append((inventory_item_id, location_id, quantity, reason))
        return {"userErrors": []}

    async def list_locations(self) -> List[ShopifyLocation]:
        return [ShopifyLocation(id="gid://shopify/Location/1", numeric_id="1", name="Store")]
