"""
Shopify inventory operations: locations, SKU resolution, absolute set.
"""
import logging
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from stock_bridge.constants.sync import AdjustmentReason
from stock_bridge.core.exceptions import ShopifyUserError
from stock_bridge.repositories.sku_cache_repository import SkuCacheRepository
from stock_bridge.schemas.shopify import InventoryItemRef, ShopifyLocation
from stock_bridge.services.shopify.client import (
    ShopifyClient,
    gid_numeric_id,
    to_inventory_item_gid,
    to_location_gid,
)

logger = logging.getLogger(__name__)

LOCATIONS_QUERY = """
query Locations($first: Int!) {
  locations(first: $first) {
    edges {
      node {
        id
        name
        isActive
      }
    }
  }
}
"""

FIND_VARIANT_BY_SKU_QUERY = """
query FindVariantBySku($query: String!) {
  productVariants(first: 5, query: $query) {
    edges {
      node {
        id
        sku
        title
        product {
          title
        }
        inventoryItem {
          id
        }
      }
    }
  }
}
"""

SET_INVENTORY_MUTATION = """
mutation SetInventory($input: InventorySetQuantitiesInput!) {
  inventorySetQuantities(input: $input) {
    userErrors {
      field
      message
    }
    inventoryAdjustmentGroup {
      reason
      referenceDocumentUri
      changes {
        name
        delta
      }
    }
  }
}
"""


def _sku_search_query(sku: str) -> str:
    escaped = sku.replace("\\", "\\\\").replace('"', '\\"')
    return f'sku:"{escaped}"'


class ShopifyInventory:
    """
    Sink connector.

    SKU lookups go through the ``sku_cache`` table first; a Shopify search
    only happens on a miss and its result is written back.
    """

    def __init__(self, client: ShopifyClient, session_factory: Callable[[], Session]):
        self.client = client
        self.session_factory = session_factory

    async def list_locations(self) -> List[ShopifyLocation]:
        data = await self.client.graphql(LOCATIONS_QUERY, {"first": 100})
        edges = ((data.get("locations") or {}).get("edges")) or []
        locations = [
            ShopifyLocation(
                id=edge["node"]["id"],
                numeric_id=gid_numeric_id(edge["node"]["id"]),
                name=edge["node"].get("name") or "",
                is_active=bool(edge["node"].get("isActive", True)),
            )
            for edge in edges
        ]
        return sorted(locations, key=lambda loc: loc.name.casefold())

    async def find_inventory_item_by_sku(self, sku: str) -> Optional[InventoryItemRef]:
        """
        Resolve ``sku`` to its inventory item.

        Returns:
            InventoryItemRef (``source`` is ``cache`` or ``api``), or None when
            no variant carries exactly this SKU
        """
        if not sku:
            return None

        with self.session_factory() as db:
            cached = SkuCacheRepository(db).get(sku)
        if cached:
            return InventoryItemRef(
                inventory_item_id=to_inventory_item_gid(cached.shopify_inventory_item_id),
                variant_id=cached.shopify_variant_id or None,
                title=cached.product_title or None,
                source="cache",
            )

        data = await self.client.graphql(FIND_VARIANT_BY_SKU_QUERY, {"query": _sku_search_query(sku)})
        edges = ((data.get("productVariants") or {}).get("edges")) or []
        # Shopify search is token based; only an exact SKU counts as a match
        node = next((e["node"] for e in edges if (e.get("node") or {}).get("sku") == sku), None)
        if node is None:
            logger.info(f"SKU {sku} not found on Shopify")
            return None

        result = InventoryItemRef(
            inventory_item_id=node["inventoryItem"]["id"],
            variant_id=node["id"],
            title=f"{(node.get('product') or {}).get('title', '')} - {node.get('title', '')}",
            source="api",
        )

        with self.session_factory() as db:
            SkuCacheRepository(db).put(
                sku,
                inventory_item_id=result.inventory_item_id,
                variant_id=result.variant_id,
                title=result.title,
            )
        return result

    async def set_inventory_quantity(
        self,
        inventory_item_id: str,
        location_id: str,
        quantity: int,
        reason: str = AdjustmentReason.CORRECTION
    ) -> Dict[str, Any]:
        """
        Set the ``available`` quantity outright (not a delta).

        Raises:
            ShopifyUserError: If Shopify rejects the input; all messages joined
        """
        variables = {
            "input": {
                "name": "available",
                "reason": reason,
                "ignoreCompareQuantity": True,
                "quantities": [
                    {
                        "inventoryItemId": to_inventory_item_gid(inventory_item_id),
                        "locationId": to_location_gid(location_id),
                        "quantity": int(quantity),
                    }
                ],
            }
        }

        data = await self.client.graphql(SET_INVENTORY_MUTATION, variables)
        result = data.get("inventorySetQuantities") or {}

        user_errors = result.get("userErrors") or []
        if user_errors:
            raise ShopifyUserError("; ".join(str(e.get("message", "")) for e in user_errors))

        return result
