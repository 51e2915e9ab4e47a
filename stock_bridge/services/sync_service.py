"""
Stock synchronization engine.

Three paths push Tiny stock balances into Shopify locations:

- full sync: every catalog product x every active mapping, reason ``correction``
- stock webhook: one SKU on one mapping, reason ``correction``
- sales webhook: every SKU of an order x every active mapping, reason ``sale``

Quantities are always absolute. Failures of a single product/mapping unit
are logged and counted; they never stop the surrounding loop.
"""
import asyncio
import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from stock_bridge.constants.sync import (
    AdjustmentReason,
    LogStatus,
    LogType,
    RunState,
    SkipReason,
    SyncAction,
    SyncTrigger,
)
from stock_bridge.core.config import Settings
from stock_bridge.repositories.mapping_repository import MappingRepository
from stock_bridge.schemas.mappings import MappingResponse
from stock_bridge.schemas.sync_schemas import (
    FullSyncResult,
    SalesWebhookResult,
    StockWebhookResult,
    SyncRunStatus,
    UnitResult,
)
from stock_bridge.schemas.tiny import TinyProduct, TinyProductStock
from stock_bridge.services.audit import AuditLogger
from stock_bridge.services.config_service import ConfigService
from stock_bridge.services.shopify.inventory import ShopifyInventory
from stock_bridge.services.tiny.products import TinyCatalog
from stock_bridge.services.webhook_payloads import extract_sales_skus, normalize_stock_payload
from stock_bridge.utils.parsing import to_quantity

logger = logging.getLogger(__name__)


# ==================== Helper Functions ====================

def _mapping_context(mapping: MappingResponse) -> Dict[str, str]:
    return {
        "tiny_deposito_id": mapping.tiny_deposito_id,
        "shopify_location_id": mapping.shopify_location_id,
    }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncService:
    """
    Orchestrates Tiny -> Shopify stock updates.

    Holds the single-flight guard for full syncs; webhooks are never
    blocked by it and may interleave with a running full sync.
    """

    def __init__(
        self,
        source: TinyCatalog,
        sink: ShopifyInventory,
        session_factory: Callable[[], Session],
        audit: AuditLogger,
        config: ConfigService,
        settings: Settings
    ):
        self.source = source
        self.sink = sink
        self.session_factory = session_factory
        self.audit = audit
        self.config = config
        self.settings = settings

        self._run_lock = threading.Lock()
        self._run_state = RunState.IDLE
        self._run_trigger: Optional[str] = None
        self._run_started_at: Optional[datetime] = None
        self._run_finished_at: Optional[datetime] = None
        self._last_result: Optional[FullSyncResult] = None

    # ==================== Mappings ====================

    def _active_mappings(self) -> List[MappingResponse]:
        with self.session_factory() as db:
            rows = MappingRepository(db).list_active()
            return [MappingResponse.model_validate(row) for row in rows]

    def _active_mapping_for(self, tiny_deposito_id: str) -> Optional[MappingResponse]:
        with self.session_factory() as db:
            row = MappingRepository(db).get_by_warehouse(tiny_deposito_id)
            if row is None or not row.active:
                return None
            return MappingResponse.model_validate(row)

    # ==================== Units of work ====================

    async def update_sku_on_mapping(
        self,
        sku: str,
        quantity: int,
        mapping: MappingResponse,
        reason: str,
        source: str
    ) -> UnitResult:
        """
        Resolve ``sku`` on Shopify and set its quantity at the mapped location.

        Returns:
            UnitResult with status ``updated``, ``not_found`` or ``skipped``
        """
        if not sku:
            return UnitResult(status=SyncAction.SKIPPED, reason=SkipReason.SKU_MISSING)

        inventory = await self.sink.find_inventory_item_by_sku(sku)
        if inventory is None:
            return UnitResult(
                status=SyncAction.NOT_FOUND,
                reason=SkipReason.SKU_NOT_FOUND_ON_SHOPIFY,
                sku=sku,
            )

        await self.sink.set_inventory_quantity(
            inventory.inventory_item_id,
            mapping.shopify_location_id,
            quantity,
            reason,
        )

        return UnitResult(
            status=SyncAction.UPDATED,
            sku=sku,
            quantity=quantity,
            inventory_item_id=inventory.inventory_item_id,
            location_id=mapping.shopify_location_id,
            source=source,
        )

    async def sync_single_product_for_mapping(
        self,
        product: TinyProduct,
        mapping: MappingResponse,
        reason: str = AdjustmentReason.CORRECTION,
        source: str = LogType.FULL_SYNC
    ) -> UnitResult:
        stock = await self.source.get_product_stock(product.id)
        deposit = stock.find_deposit(mapping.tiny_deposito_id)
        if deposit is None:
            return UnitResult(status=SyncAction.SKIPPED, reason=SkipReason.DEPOSIT_NOT_PRESENT, sku=product.sku or None)

        return await self.update_sku_on_mapping(
            sku=stock.sku or product.sku,
            quantity=to_quantity(deposit.saldo),
            mapping=mapping,
            reason=reason,
            source=source,
        )

    # ==================== Full sync ====================

    async def run_full_sync(self, trigger: str = SyncTrigger.MANUAL) -> FullSyncResult:
        """
        Reconcile the whole Tiny catalog against every active mapping.

        Only one run is active at a time; a call made while a run is in
        progress returns immediately with status ``skipped``.
        """
        # Check-and-set happens before the first await
        if not self._run_lock.acquire(blocking=False):
            message = "Full sync already running"
            self.audit.record(LogType.FULL_SYNC, LogStatus.SKIPPED, message, {"trigger": trigger}, log=logger)
            return FullSyncResult(
                ok=False,
                status="skipped",
                trigger=trigger,
                reason=SkipReason.ALREADY_RUNNING,
                message=message,
            )

        self._run_state = RunState.RUNNING
        self._run_trigger = trigger
        self._run_started_at = _utcnow()
        self._run_finished_at = None
        result: Optional[FullSyncResult] = None

        try:
            result = await self._execute_full_sync(trigger)
            return result
        except Exception as e:
            self.audit.record(LogType.FULL_SYNC, LogStatus.ERROR, str(e), {"trigger": trigger}, log=logger)
            result = FullSyncResult(ok=False, status=RunState.FAILED, trigger=trigger, error=str(e))
            return result
        finally:
            self._run_state = RunState.COMPLETED if result is not None and result.ok else RunState.FAILED
            self._run_finished_at = _utcnow()
            self._last_result = result
            self._run_lock.release()

    async def _execute_full_sync(self, trigger: str) -> FullSyncResult:
        started = time.monotonic()

        mappings = self._active_mappings()
        if not mappings:
            message = "No active mappings to sync"
            self.audit.record(LogType.FULL_SYNC, LogStatus.SKIPPED, message, {"trigger": trigger}, log=logger)
            return FullSyncResult(
                ok=True,
                status=RunState.COMPLETED,
                trigger=trigger,
                reason=SkipReason.NO_MAPPINGS,
                message=message,
            )

        counts = {SyncAction.UPDATED: 0, SyncAction.NOT_FOUND: 0, SyncAction.SKIPPED: 0}
        errors = 0
        page_number = 1

        while True:
            page = await self.source.list_products(page_number)
            if not page.products:
                break

            logger.info(f"Full sync page {page_number}/{page.total_pages}: {len(page.products)} products")

            for product in page.products:
                for mapping in mappings:
                    try:
                        unit = await self.sync_single_product_for_mapping(product, mapping)
                    except Exception as e:
                        counts[SyncAction.SKIPPED] += 1
                        errors += 1
                        self.audit.record(
                            LogType.FULL_SYNC_ITEM,
                            LogStatus.ERROR,
                            str(e),
                            {"product_id": product.id, "sku": product.sku, "mapping": _mapping_context(mapping)},
                            log=logger,
                        )
                        continue

                    counts[unit.status] += 1
                    self.audit.record(
                        LogType.FULL_SYNC_ITEM,
                        LogStatus.OK if unit.status == SyncAction.UPDATED else LogStatus.SKIPPED,
                        unit.status,
                        {
                            "product_id": product.id,
                            "sku": unit.sku or product.sku,
                            "reason": unit.reason,
                            "quantity": unit.quantity,
                            "mapping": _mapping_context(mapping),
                        },
                        log=logger,
                    )

            if page_number >= page.total_pages:
                break
            page_number += 1

        duration_ms = int((time.monotonic() - started) * 1000)
        result = FullSyncResult(
            ok=True,
            status=RunState.COMPLETED,
            trigger=trigger,
            message=f"Full sync finished in {duration_ms}ms",
            updated=counts[SyncAction.UPDATED],
            not_found=counts[SyncAction.NOT_FOUND],
            skipped=counts[SyncAction.SKIPPED],
            errors=errors,
            duration_ms=duration_ms,
        )
        self.audit.record(
            LogType.FULL_SYNC,
            LogStatus.OK,
            result.message,
            result.model_dump(include={"trigger", "updated", "not_found", "skipped", "errors", "duration_ms"}),
            log=logger,
        )
        return result

    # ==================== Webhooks ====================

    async def sync_from_stock_webhook(self, payload: Dict[str, Any]) -> StockWebhookResult:
        """
        Apply a Tiny stock-change notification.

        Raises whatever the connectors raise; the HTTP layer reports it.
        """
        event = normalize_stock_payload(payload)
        event_context = {"tiny_deposito_id": event.deposito_id, "sku": event.sku, "product_id": event.product_id}

        mapping: Optional[MappingResponse] = None
        if event.deposito_id:
            mapping = self._active_mapping_for(event.deposito_id)
            if mapping is None:
                self.audit.record(
                    LogType.WEBHOOK_STOCK, LogStatus.SKIPPED, "Deposit has no active mapping", event_context, log=logger
                )
                return StockWebhookResult(skipped=True, reason=SkipReason.MAPPING_NOT_FOUND)
        else:
            active = self._active_mappings()
            if len(active) == 1:
                mapping = active[0]

        if mapping is None:
            self.audit.record(
                LogType.WEBHOOK_STOCK, LogStatus.SKIPPED, "Could not determine mapping", event_context, log=logger
            )
            return StockWebhookResult(skipped=True, reason=SkipReason.MAPPING_UNDETERMINED)

        sku = event.sku
        quantity = event.saldo
        if quantity is None and event.product_id:
            stock: TinyProductStock = await self.source.get_product_stock(event.product_id)
            deposit = stock.find_deposit(mapping.tiny_deposito_id)
            quantity = deposit.saldo if deposit is not None else 0
            sku = sku or stock.sku

        quantity = to_quantity(quantity)

        result = await self.update_sku_on_mapping(
            sku=sku,
            quantity=quantity,
            mapping=mapping,
            reason=AdjustmentReason.CORRECTION,
            source=LogType.WEBHOOK_STOCK,
        )

        self.audit.record(
            LogType.WEBHOOK_STOCK,
            LogStatus.OK if result.status == SyncAction.UPDATED else LogStatus.SKIPPED,
            f"Stock webhook processed: {result.status}",
            {"sku": sku, "quantity": quantity, "tiny_deposito_id": mapping.tiny_deposito_id, "reason": result.reason},
            log=logger,
        )
        return StockWebhookResult(result=result)

    async def sync_from_sales_webhook(self, payload: Dict[str, Any]) -> SalesWebhookResult:
        """
        Re-read Tiny stock for every SKU of a sale and push it with reason ``sale``.
        """
        skus = extract_sales_skus(payload)
        mappings = self._active_mappings()

        if not mappings:
            self.audit.record(LogType.WEBHOOK_SALES, LogStatus.SKIPPED, "No mappings for sales webhook", log=logger)
            return SalesWebhookResult(skipped=True, reason=SkipReason.NO_MAPPINGS)

        if not skus:
            keys = sorted(payload.keys()) if isinstance(payload, dict) else []
            self.audit.record(
                LogType.WEBHOOK_SALES, LogStatus.SKIPPED, "Sales webhook without identifiable SKU", {"keys": keys},
                log=logger,
            )
            return SalesWebhookResult(skipped=True, reason=SkipReason.NO_SKU)

        # Tiny lookups repeat for every mapping of the same SKU; keep them per request
        products: Dict[str, Optional[TinyProduct]] = {}
        stocks: Dict[str, TinyProductStock] = {}
        updated = 0

        for sku in skus:
            for mapping in mappings:
                try:
                    inventory = await self.sink.find_inventory_item_by_sku(sku)
                    if inventory is None:
                        logger.debug(f"Sales webhook: SKU {sku} not on Shopify")
                        continue

                    if sku not in products:
                        products[sku] = await self.source.find_product_by_sku(sku)
                    product = products[sku]
                    if product is None:
                        logger.debug(f"Sales webhook: SKU {sku} not in Tiny catalog")
                        continue

                    if product.id not in stocks:
                        stocks[product.id] = await self.source.get_product_stock(product.id)
                    deposit = stocks[product.id].find_deposit(mapping.tiny_deposito_id)
                    if deposit is None:
                        continue

                    await self.sink.set_inventory_quantity(
                        inventory.inventory_item_id,
                        mapping.shopify_location_id,
                        to_quantity(deposit.saldo),
                        AdjustmentReason.SALE,
                    )
                    updated += 1
                except Exception as e:
                    self.audit.record(
                        LogType.WEBHOOK_SALES_ITEM,
                        LogStatus.ERROR,
                        str(e),
                        {"sku": sku, "tiny_deposito_id": mapping.tiny_deposito_id},
                        log=logger,
                    )

        self.audit.record(
            LogType.WEBHOOK_SALES,
            LogStatus.OK,
            f"Sales webhook processed ({updated} updates)",
            {"skus": skus},
            log=logger,
        )
        return SalesWebhookResult(updated=updated, skus=skus)

    # ==================== References & status ====================

    async def load_integration_references(self) -> Dict[str, Any]:
        """Tiny deposits and Shopify locations, fetched concurrently, for the mapping UI."""
        deposits, locations = await asyncio.gather(
            self.source.discover_deposits(self.settings.discover_sample_products),
            self.sink.list_locations(),
        )
        return {"deposits": deposits, "locations": locations}

    def get_runtime_config(self) -> Dict[str, Any]:
        return {"sync_interval_minutes": self.config.get_sync_interval_minutes()}

    def is_running(self) -> bool:
        return self._run_lock.locked()

    def status(self) -> SyncRunStatus:
        return SyncRunStatus(
            state=self._run_state,
            trigger=self._run_trigger,
            started_at=self._run_started_at,
            finished_at=self._run_finished_at,
            last_result=self._last_result,
        )
