"""
SKU resolution cache repository.

Entries never expire. A SKU re-created in Shopify under a new inventory
item keeps resolving to the old id until the row is overwritten.
"""
from typing import Optional

from sqlalchemy.orm import Session

from stock_bridge.models.sync_models import SkuCache


class SkuCacheRepository:
    """Repository for SKU -> inventory item bindings."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, sku: str) -> Optional[SkuCache]:
        """Cached binding for ``sku`` or None."""
        return self.db.query(SkuCache).filter(SkuCache.sku == sku).first()

    def put(
        self,
        sku: str,
        inventory_item_id: str,
        variant_id: Optional[str] = None,
        title: Optional[str] = None
    ) -> SkuCache:
        """
        Store a binding, replacing every field of an existing entry.

        Args:
            sku: SKU as sent to Shopify
            inventory_item_id: Shopify InventoryItem gid
            variant_id: Shopify ProductVariant gid
            title: "<product> - <variant>" display title

        Returns:
            Stored SkuCache record
        """
        entry = self.get(sku)
        if entry is None:
            entry = SkuCache(sku=sku)
            self.db.add(entry)

        entry.shopify_inventory_item_id = inventory_item_id
        entry.shopify_variant_id = variant_id or ""
        entry.product_title = title or ""

        self.db.commit()
        self.db.refresh(entry)
        return entry
