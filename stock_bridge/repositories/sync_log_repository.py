"""
Sync log repository.

Append-only: rows are inserted and listed, never updated or deleted here.
"""
import json
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from stock_bridge.models.sync_models import SyncLog


class SyncLogRepository:
    """Repository for audit log entries."""

    def __init__(self, db: Session):
        self.db = db

    def add_log(
        self,
        type: str,
        status: str,
        message: Optional[str] = None,
        context: Optional[Any] = None
    ) -> SyncLog:
        """
        Append an audit event.

        Args:
            type: Event category (full_sync, webhook_stock, ...)
            status: ok, skipped, error or unauthorized
            message: Free text
            context: JSON-serializable structured data

        Returns:
            Created SyncLog record
        """
        log = SyncLog(
            type=type,
            status=status,
            message=message or "",
            context_json=json.dumps(context, default=str, ensure_ascii=False) if context else None,
        )
        self.db.add(log)
        self.db.commit()
        self.db.refresh(log)
        return log

    def list_logs(self, limit: int = 200) -> List[Dict[str, Any]]:
        """
        Newest entries first, with ``context`` decoded.

        Args:
            limit: Maximum number of records
        """
        rows = self.db.query(SyncLog).order_by(SyncLog.id.desc()).limit(limit).all()
        return [
            {
                "id": row.id,
                "type": row.type,
                "status": row.status,
                "message": row.message,
                "context": json.loads(row.context_json) if row.context_json else None,
                "created_at": row.created_at,
            }
            for row in rows
        ]
