"""Canonical records produced by the Shopify connector."""
from typing import Optional

from pydantic import BaseModel


class ShopifyLocation(BaseModel):
    id: str
    numeric_id: str
    name: str
    is_active: bool = True


class InventoryItemRef(BaseModel):
    """Result of resolving a SKU to a Shopify inventory item."""
    inventory_item_id: str
    variant_id: Optional[str] = None
    title: Optional[str] = None
    source: str = "api"
