"""
Periodic background sync.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from folio.projects.sync import GitHubSyncService

logger = logging.getLogger(__name__)


class SyncScheduler:
    """Runs a full sync every ``interval`` seconds on a daemon thread."""

    def __init__(self, sync_service: GitHubSyncService, interval: float, sweep: Callable[[], int] | None = None):
        """Initialize scheduler.

        Args:
            sync_service: Service whose sync_all_projects() is called
            interval: Seconds between runs (must be positive)
            sweep: Optional callable run after each sync, e.g. CacheStore.sweep
        """
        if interval <= 0:
            raise ValueError("Sync interval must be positive")
        self.sync_service = sync_service
        self.interval = interval
        self.sweep = sweep
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="folio-sync", daemon=True)
        self._thread.start()
        logger.info("Scheduled sync every %.0f seconds", self.interval)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run_once(self) -> None:
        """One scheduled tick. Failures are logged, never raised."""
        try:
            result = self.sync_service.sync_all_projects(triggered_by="scheduler")
            logger.info("Scheduled sync finished: success=%s created=%d updated=%d",
                        result.success, result.created, result.updated)
        except Exception:
            logger.exception("Scheduled sync failed")
        if self.sweep is not None:
            removed = self.sweep()
            logger.debug("Swept %s expired cache entries", removed)

    def _loop(self) -> None:
        while not self._stop.wait(self.interval):
            self.run_once()
