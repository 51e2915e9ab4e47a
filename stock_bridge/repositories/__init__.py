"""
Repository layer for database operations.

- MappingRepository: Tiny deposit -> Shopify location mappings
- SkuCacheRepository: SKU -> Shopify inventory item resolution cache
- SyncLogRepository: append-only audit trail
- ConfigRepository: runtime key/value configuration
"""
from stock_bridge.repositories.config_repository import ConfigRepository
from stock_bridge.repositories.mapping_repository import MappingRepository
from stock_bridge.repositories.sku_cache_repository import SkuCacheRepository
from stock_bridge.repositories.sync_log_repository import SyncLogRepository

__all__ = [
    "ConfigRepository",
    "MappingRepository",
    "SkuCacheRepository",
    "SyncLogRepository",
]
