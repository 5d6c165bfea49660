"""CodeTime Sync - application lifecycle."""

import logging
from datetime import date
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .auth import KeychainManager
from .config import Config
from .sync import (
    DeltaAccumulator,
    FirestoreStore,
    HttpStore,
    InMemoryStore,
    OfflineQueue,
    SqliteStore,
    SyncCoordinator,
    SyncOutcome,
)
from .sync.protocols import RemoteStoreProtocol

__all__ = ["TrackerApp", "build_store"]

logger = logging.getLogger(__name__)


def build_store(config: Config, keychain: KeychainManager) -> RemoteStoreProtocol:
    """Create the store adapter selected in the config."""
    backend = config.backend
    if backend.kind == "memory":
        return InMemoryStore()
    if backend.kind == "sqlite":
        return SqliteStore(backend.get_sqlite_path())
    if backend.kind == "http":
        creds = keychain.load_api()
        return HttpStore(
            api_url=backend.get_api_url(),
            token=creds.api_token if creds else None,
            timeout=backend.timeout,
        )
    if backend.kind == "firestore":
        return FirestoreStore(creds=keychain.load_firestore())
    raise ValueError(f"Unknown backend: {backend.kind}")


class TrackerApp:
    """Owns the accumulator, coordinator and the periodic sync jobs.

    The editor integration feeds ``record()``; a background scheduler flushes
    pending time every ``flush_interval_seconds`` and retries the backend
    connection (or queued deltas) every ``reconnect_interval_seconds``.
    ``shutdown()`` must run before the process exits so the last deltas and
    the offline queue get one final delivery attempt.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        store: Optional[RemoteStoreProtocol] = None,
        keychain: Optional[KeychainManager] = None,
        scheduler: Optional[BackgroundScheduler] = None,
    ):
        self.config = config or Config.load()
        self.keychain = keychain or KeychainManager()
        self.user_id = self.config.ensure_user_id()

        self.store = store or build_store(self.config, self.keychain)
        self.queue = OfflineQueue(max_size=self.config.sync.max_queue_size)
        self.coordinator = SyncCoordinator(
            store=self.store,
            queue=self.queue,
            max_retries=self.config.sync.max_retries,
            prefer_atomic=self.config.sync.prefer_atomic,
        )
        self.accumulator = DeltaAccumulator()
        self.scheduler = scheduler or BackgroundScheduler()

        self._shutdown_done = False

    def start(self, schedule: bool = True) -> bool:
        """Connect to the backend and start the periodic jobs.

        Args:
            schedule: Start the background flush/reconnect jobs

        Returns:
            True if the backend is connected
        """
        logger.info(f"Starting with {self.config.backend.kind} backend")
        ready = self.coordinator.connect()
        if not ready:
            logger.warning("Backend unavailable - updates will be queued")

        if schedule:
            self.scheduler.add_job(
                self.flush,
                trigger=IntervalTrigger(seconds=self.config.sync.flush_interval_seconds),
                id="flush_job",
                replace_existing=True,
            )
            self.scheduler.add_job(
                self._reconnect,
                trigger=IntervalTrigger(
                    seconds=self.config.sync.reconnect_interval_seconds
                ),
                id="reconnect_job",
                replace_existing=True,
            )
            self.scheduler.start()
            logger.info(
                f"Sync loop started (interval: {self.config.sync.flush_interval_seconds}s)"
            )
        return ready

    def record(self, language: str, seconds: int, day: Optional[date] = None) -> None:
        """Count coding time for a language."""
        self.accumulator.add(language, seconds, day)

    def flush(self) -> list[SyncOutcome]:
        """Send everything recorded since the last flush."""
        try:
            outcomes = self.accumulator.flush(self.coordinator, self.user_id)
        except Exception as e:
            logger.exception(f"Flush error: {e}")
            return []
        if outcomes:
            logger.debug(f"Flushed {len(outcomes)} delta(s): {[o.value for o in outcomes]}")
        return outcomes

    def _reconnect(self) -> None:
        """Re-establish the backend, or retry deltas queued while connected."""
        if not self.coordinator.is_ready:
            if self.coordinator.connect():
                logger.info("Backend connection re-established")
        elif not self.queue.is_empty():
            stats = self.coordinator.drain_queue()
            logger.info(
                f"Queue retry: {stats.succeeded} delivered, {stats.requeued} requeued"
            )

    def get_status(self) -> dict:
        """Get current tracker status."""
        status = self.coordinator.get_status()
        status.update(
            {
                "user_id": self.user_id,
                "backend": self.config.backend.kind,
                "pending_seconds": self.accumulator.pending_seconds(),
            }
        )
        return status

    def shutdown(self) -> None:
        """Final flush and queue drain, then release the backend. Safe to call multiple times."""
        if self._shutdown_done:
            return
        self._shutdown_done = True
        logger.info("Shutting down...")

        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)

        self.flush()
        self.coordinator.shutdown()
        logger.info("Shutdown complete")

    def __enter__(self) -> "TrackerApp":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()
