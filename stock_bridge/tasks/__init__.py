"""Background tasks running inside the API process."""

from stock_bridge.tasks.scheduler import SyncScheduler

__all__ = ["SyncScheduler"]
