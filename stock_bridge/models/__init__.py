from stock_bridge.models.sync_models import ConfigEntry, SkuCache, SyncLog, WarehouseMapping

__all__ = ["ConfigEntry", "SkuCache", "SyncLog", "WarehouseMapping"]
