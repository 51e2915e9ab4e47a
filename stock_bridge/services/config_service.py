"""
Runtime configuration provider.

Values saved through the API live in the ``config`` table; anything never
saved falls back to the environment (``Settings``).
"""
import logging
from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session

from stock_bridge.constants.sync import ConfigKey
from stock_bridge.core.config import Settings
from stock_bridge.repositories.config_repository import ConfigRepository
from stock_bridge.utils.parsing import safe_number

logger = logging.getLogger(__name__)

# Keys copied from the environment into the config table on first start
_SEEDED_KEYS = (
    ConfigKey.TINY_API_TOKEN,
    ConfigKey.TINY_API_FORMAT,
    ConfigKey.TINY_WEBHOOK_SECRET,
    ConfigKey.SHOPIFY_STORE,
    ConfigKey.SHOPIFY_ACCESS_TOKEN,
    ConfigKey.SHOPIFY_CLIENT_ID,
    ConfigKey.SHOPIFY_CLIENT_SECRET,
    ConfigKey.SHOPIFY_SCOPES,
    ConfigKey.SHOPIFY_REDIRECT_URI,
)

_RETIRED_API_VERSION_PREFIX = "2025-"


class ConfigService:
    """``get(key, fallback)`` / ``set(key, value)`` over the config table."""

    def __init__(self, session_factory: Callable[[], Session], settings: Settings):
        self.session_factory = session_factory
        self.settings = settings

    def get(self, key: str, fallback: Optional[str] = None) -> Optional[str]:
        """
        Stored value for ``key``.

        Falls back to ``fallback`` and then to the matching ``Settings``
        attribute when the key was never saved.
        """
        with self.session_factory() as db:
            value = ConfigRepository(db).get_value(key)
        if value is not None:
            return value
        if fallback is not None:
            return fallback
        default = getattr(self.settings, key, None)
        return None if default is None else str(default)

    def set(self, key: str, value) -> None:
        with self.session_factory() as db:
            ConfigRepository(db).set_value(key, value)

    def as_dict(self) -> Dict[str, str]:
        with self.session_factory() as db:
            return ConfigRepository(db).get_all()

    def get_sync_interval_minutes(self) -> int:
        """Configured interval; non-numeric or non-positive values use the env default."""
        raw = self.get(ConfigKey.SYNC_INTERVAL_MINUTES, str(self.settings.sync_interval_minutes))
        minutes = safe_number(raw, 0)
        if minutes <= 0:
            return self.settings.sync_interval_minutes
        return max(1, int(minutes))

    def seed_defaults(self) -> None:
        """Populate unset keys from the environment and retire old API versions."""
        with self.session_factory() as db:
            repo = ConfigRepository(db)

            if not repo.get_value(ConfigKey.SYNC_INTERVAL_MINUTES):
                repo.set_value(ConfigKey.SYNC_INTERVAL_MINUTES, self.settings.sync_interval_minutes)

            for key in _SEEDED_KEYS:
                env_value = getattr(self.settings, key, "")
                if env_value and not repo.get_value(key):
                    repo.set_value(key, env_value)

            saved_version = repo.get_value(ConfigKey.SHOPIFY_API_VERSION)
            if not saved_version or saved_version.startswith(_RETIRED_API_VERSION_PREFIX):
                repo.set_value(ConfigKey.SHOPIFY_API_VERSION, self.settings.shopify_api_version)

        logger.info("Runtime configuration defaults ensured")
