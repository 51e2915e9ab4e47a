"""
Audit sink.

Every sync event is appended to ``sync_logs`` and mirrored to the Python
logger of the module that emitted it.
"""
import logging
from typing import Any, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stock_bridge.constants.sync import LogStatus
from stock_bridge.repositories.sync_log_repository import SyncLogRepository

logger = logging.getLogger(__name__)


class AuditLogger:
    """Fire-and-forget ``record(type, status, message, context)``."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def record(
        self,
        type: str,
        status: str,
        message: Optional[str] = None,
        context: Optional[Any] = None,
        log: Optional[logging.Logger] = None
    ) -> None:
        log = log or logger
        level = logging.ERROR if status == LogStatus.ERROR else logging.INFO
        log.log(level, f"[{type}] [{status}] {message or ''} {context or ''}".rstrip())

        try:
            with self.session_factory() as db:
                SyncLogRepository(db).add_log(type, status, message, context)
        except SQLAlchemyError as e:
            # Audit failures never propagate to the caller
            logger.error(f"Failed to store audit event {type}/{status}: {e}")
