"""SQLAlchemy models for mappings, SKU resolution cache, audit log and config."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, func

from stock_bridge.db.base import Base


class ConfigEntry(Base):
    """Runtime key/value configuration (credentials, interval, secrets)."""

    __tablename__ = "config"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, nullable=False,
                        server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<ConfigEntry(key={self.key})>"


class WarehouseMapping(Base):
    """Routes one Tiny deposit to exactly one Shopify location."""

    __tablename__ = "warehouse_mappings"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    tiny_deposito_id = Column(String(100), nullable=False, unique=True, index=True)
    tiny_deposito_nome = Column(String(255), nullable=True,
                                comment="Cached for display only")
    shopify_location_id = Column(String(255), nullable=False,
                                 comment="Numeric id or gid://shopify/Location/<id>")
    shopify_location_name = Column(String(255), nullable=True)
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False,
                        server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return (
            f"<WarehouseMapping(deposito={self.tiny_deposito_id}, "
            f"location={self.shopify_location_id}, active={self.active})>"
        )


class SkuCache(Base):
    """SKU -> Shopify inventory item binding, written on first resolution."""

    __tablename__ = "sku_cache"

    sku = Column(String(255), primary_key=True)
    shopify_inventory_item_id = Column(String(255), nullable=False)
    shopify_variant_id = Column(String(255), nullable=True)
    product_title = Column(String(500), nullable=True)
    updated_at = Column(DateTime, nullable=False,
                        server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<SkuCache(sku={self.sku}, item={self.shopify_inventory_item_id})>"


class SyncLog(Base):
    """Append-only audit trail, one row per attempted unit of work or run."""

    __tablename__ = "sync_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    type = Column(String(50), nullable=False, index=True)
    status = Column(String(20), nullable=False, index=True,
                    comment="ok, skipped, error, unauthorized")
    message = Column(Text, nullable=True)
    context_json = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<SyncLog(id={self.id}, type={self.type}, status={self.status})>"
