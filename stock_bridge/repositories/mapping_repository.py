"""
Warehouse mapping repository.

Handles Tiny deposit -> Shopify location mapping persistence. Nothing here
checks that the deposit or location exists remotely; a wrong id shows up
at sync time as a skipped unit or a Shopify error.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from stock_bridge.core.exceptions import ValidationError
from stock_bridge.models.sync_models import WarehouseMapping
from stock_bridge.schemas.mappings import MappingCreate

logger = logging.getLogger(__name__)


class MappingRepository:
    """Repository for warehouse mapping operations."""

    def __init__(self, db: Session):
        """
        Initialize repository with database session.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def upsert(self, mapping: MappingCreate) -> WarehouseMapping:
        """
        Create or replace the mapping keyed by ``tiny_deposito_id``.

        Args:
            mapping: Mapping data; ``active`` is stored as supplied

        Returns:
            Stored WarehouseMapping record

        Raises:
            ValidationError: If the deposit id or location id is empty
        """
        deposito_id = str(mapping.tiny_deposito_id or "").strip()
        location_id = str(mapping.shopify_location_id or "").strip()
        if not deposito_id or not location_id:
            raise ValidationError("tiny_deposito_id and shopify_location_id are required")

        row = self.get_by_warehouse(deposito_id)
        if row is None:
            row = WarehouseMapping(tiny_deposito_id=deposito_id)
            self.db.add(row)

        row.tiny_deposito_nome = mapping.tiny_deposito_nome or ""
        row.shopify_location_id = location_id
        row.shopify_location_name = mapping.shopify_location_name or ""
        row.active = bool(mapping.active)

        self.db.commit()
        self.db.refresh(row)
        logger.info(f"Saved mapping deposit {deposito_id} -> location {location_id} (active={row.active})")
        return row

    def remove(self, tiny_deposito_id: str) -> bool:
        """
        Delete a mapping. Calling it for an unknown deposit is a no-op.

        Returns:
            True if a row was deleted
        """
        row = self.get_by_warehouse(tiny_deposito_id)
        if row is None:
            return False
        self.db.delete(row)
        self.db.commit()
        logger.info(f"Removed mapping for deposit {tiny_deposito_id}")
        return True

    def list_all(self) -> List[WarehouseMapping]:
        """All mappings ordered by deposit name, then deposit id."""
        return self.db.query(WarehouseMapping).order_by(
            WarehouseMapping.tiny_deposito_nome,
            WarehouseMapping.tiny_deposito_id,
        ).all()

    def list_active(self) -> List[WarehouseMapping]:
        """Mappings the sync paths act on."""
        return self.db.query(WarehouseMapping).filter(
            WarehouseMapping.active == True  # noqa: E712
        ).order_by(WarehouseMapping.id).all()

    def get_by_warehouse(self, tiny_deposito_id: str) -> Optional[WarehouseMapping]:
        """Point lookup by Tiny deposit id."""
        return self.db.query(WarehouseMapping).filter(
            WarehouseMapping.tiny_deposito_id == str(tiny_deposito_id)
        ).first()
