"""Constants for sync operations."""


class LogType:
    """Audit event categories."""
    FULL_SYNC = "full_sync"
    FULL_SYNC_ITEM = "full_sync_item"
    WEBHOOK_STOCK = "webhook_stock"
    WEBHOOK_SALES = "webhook_sales"
    WEBHOOK_SALES_ITEM = "webhook_sales_item"
    SCHEDULER = "scheduler"
    CONFIG = "config"
    MAPPING = "mapping"
    REFERENCES = "references"
    SHOPIFY_OAUTH = "shopify_oauth"


class LogStatus:
    """Audit event status."""
    OK = "ok"
    SKIPPED = "skipped"
    ERROR = "error"
    UNAUTHORIZED = "unauthorized"


class SyncAction:
    """Outcome of one product x mapping unit of work."""
    UPDATED = "updated"
    NOT_FOUND = "not_found"
    SKIPPED = "skipped"


class SkipReason:
    """Reason codes attached to skipped / not_found results."""
    SKU_MISSING = "sku_missing"
    SKU_NOT_FOUND_ON_SHOPIFY = "sku_not_found_on_shopify"
    DEPOSIT_NOT_PRESENT = "deposit_not_present"
    MAPPING_NOT_FOUND = "mapping_not_found"
    MAPPING_UNDETERMINED = "mapping_undetermined"
    NO_MAPPINGS = "no_mappings"
    NO_SKU = "no_sku"
    ALREADY_RUNNING = "already_running"


class AdjustmentReason:
    """Reason codes sent to Shopify with every quantity set."""
    CORRECTION = "correction"
    SALE = "sale"


class SyncTrigger:
    """What started a full sync."""
    MANUAL = "manual"
    SCHEDULER = "scheduler"


class RunState:
    """Full sync run lifecycle."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ConfigKey:
    """Keys stored in the ``config`` table."""
    TINY_API_TOKEN = "tiny_api_token"
    TINY_API_FORMAT = "tiny_api_format"
    TINY_WEBHOOK_SECRET = "tiny_webhook_secret"
    SHOPIFY_STORE = "shopify_store"
    SHOPIFY_ACCESS_TOKEN = "shopify_access_token"
    SHOPIFY_API_VERSION = "shopify_api_version"
    SHOPIFY_CLIENT_ID = "shopify_client_id"
    SHOPIFY_CLIENT_SECRET = "shopify_client_secret"
    SHOPIFY_SCOPES = "shopify_scopes"
    SHOPIFY_REDIRECT_URI = "shopify_redirect_uri"
    SHOPIFY_INSTALLED_SCOPES = "shopify_installed_scopes"
    SYNC_INTERVAL_MINUTES = "sync_interval_minutes"


# Keys an operator may change through POST /api/config
EDITABLE_CONFIG_KEYS = (
    ConfigKey.TINY_API_TOKEN,
    ConfigKey.TINY_API_FORMAT,
    ConfigKey.TINY_WEBHOOK_SECRET,
    ConfigKey.SHOPIFY_STORE,
    ConfigKey.SHOPIFY_ACCESS_TOKEN,
    ConfigKey.SHOPIFY_API_VERSION,
    ConfigKey.SHOPIFY_CLIENT_ID,
    ConfigKey.SHOPIFY_CLIENT_SECRET,
    ConfigKey.SHOPIFY_SCOPES,
    ConfigKey.SHOPIFY_REDIRECT_URI,
    ConfigKey.SYNC_INTERVAL_MINUTES,
)
