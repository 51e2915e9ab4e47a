"""Runtime configuration repository."""
from typing import Dict, Optional

from sqlalchemy.orm import Session

from stock_bridge.models.sync_models import ConfigEntry


class ConfigRepository:
    """Repository for key/value configuration rows."""

    def __init__(self, db: Session):
        self.db = db

    def get_value(self, key: str, fallback: Optional[str] = None) -> Optional[str]:
        row = self.db.query(ConfigEntry).filter(ConfigEntry.key == key).first()
        return row.value if row else fallback

    def set_value(self, key: str, value) -> ConfigEntry:
        row = self.db.query(ConfigEntry).filter(ConfigEntry.key == key).first()
        if row is None:
            row = ConfigEntry(key=key)
            self.db.add(row)
        row.value = str(value)
        self.db.commit()
        self.db.refresh(row)
        return row

    def get_all(self) -> Dict[str, str]:
        return {row.key: row.value for row in self.db.query(ConfigEntry).all()}
