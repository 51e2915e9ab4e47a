from stock_bridge.services.shopify.client import (
    ShopifyClient,
    normalize_shop_domain,
    to_inventory_item_gid,
    to_location_gid,
)
from stock_bridge.services.shopify.inventory import ShopifyInventory
from stock_bridge.services.shopify.oauth import OAuthStateStore, ShopifyOAuth, validate_shopify_hmac

__all__ = [
    "ShopifyClient",
    "ShopifyInventory",
    "ShopifyOAuth",
    "OAuthStateStore",
    "normalize_shop_domain",
    "to_inventory_item_gid",
    "to_location_gid",
    "validate_shopify_hmac",
]
