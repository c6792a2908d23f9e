"""Time-driven transitions: no-show, auto-complete and stale pending requests.

Candidates are picked purely from stored status and clock comparisons, and
each one goes through the state machine in its own transaction. Running a
sweep twice is harmless: rows already moved no longer match.
"""
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from courtbook.core.config import Settings
from courtbook.core.db import run_with_retry
from courtbook.core.errors import BookingError
from courtbook.models.actor import Actor
from courtbook.models.reservation import Reservation
from courtbook.services.reservation_service import ReservationService

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    name: str
    processed: List[int] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def total(self) -> int:
        return len(self.processed)


class SweepService:
    def __init__(self, store, reservations: ReservationService, clock, settings: Settings):
        self.store = store
        self.reservations = reservations
        self.clock = clock
        self.settings = settings
        self.actor = Actor.system()

    def _sweep(
        self,
        name: str,
        candidates: List[Reservation],
        transition: Callable[[Actor, int], Reservation],
    ) -> SweepReport:
        report = SweepReport(name)
        for reservation in candidates:
            try:
                run_with_retry(transition, self.actor, reservation.id)
                report.processed.append(reservation.id)
            except BookingError as exc:
                # A manual action got there first; the row no longer qualifies.
                logger.warning(f"{name}: skipped reservation {reservation.id}: {exc}")
                report.skipped.append(reservation.id)
            except Exception:
                logger.exception(f"{name}: failed on reservation {reservation.id}")
                report.failed.append(reservation.id)
        logger.info(
            f"{name}: {len(report.processed)} processed, "
            f"{len(report.skipped)} skipped, {len(report.failed)} failed"
        )
        return report

    def _candidates(self, finder: str, moment: datetime) -> List[Reservation]:
        with self.store.transaction() as tx:
            return getattr(tx.reservations, finder)(moment)

    def run_no_show_sweep(self) -> SweepReport:
        cutoff = self.clock.now() - timedelta(minutes=self.settings.no_show_grace_minutes)
        candidates = run_with_retry(self._candidates, "find_no_show_candidates", cutoff)
        return self._sweep("no-show sweep", candidates, self.reservations.mark_no_show)

    def run_completion_sweep(self) -> SweepReport:
        candidates = run_with_retry(self._candidates, "find_completion_candidates", self.clock.now())
        return self._sweep("completion sweep", candidates, self.reservations.complete)

    def run_pending_expiry_sweep(self) -> SweepReport:
        candidates = run_with_retry(self._candidates, "find_stale_pending", self.clock.now())
        return self._sweep("pending expiry sweep", candidates, self.reservations.expire_pending)

    def _purge_locks(self, now: datetime) -> List[int]:
        with self.store.transaction() as tx:
            return tx.locks.delete_all_expired(now)

    def run_lock_cleanup(self) -> SweepReport:
        """Delete expired slot locks on every court and date."""
        report = SweepReport("lock cleanup", processed=run_with_retry(self._purge_locks, self.clock.now()))
        logger.info(f"lock cleanup: {len(report.processed)} expired locks removed")
        return report

    def run_all(self) -> List[SweepReport]:
        """Run every sweep. One sweep failing does not stop the others."""
        sweeps = [
            ("no-show sweep", self.run_no_show_sweep),
            ("completion sweep", self.run_completion_sweep),
            ("pending expiry sweep", self.run_pending_expiry_sweep),
            ("lock cleanup", self.run_lock_cleanup),
        ]
        reports = []
        for name, sweep in sweeps:
            try:
                reports.append(sweep())
            except Exception as exc:
                logger.exception(f"{name} could not run")
                reports.append(SweepReport(name, error=str(exc)))
        return reports


class SweepScheduler:
    """Runs every sweep on a fixed interval in a background thread."""

    def __init__(self, sweeps: SweepService, interval_seconds: float = 300):
        self.sweeps = sweeps
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def run_once(self) -> List[SweepReport]:
        return self.sweeps.run_all()

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                self.run_once()
            except Exception:
                logger.exception("Sweep run failed")
            self._stop.wait(self.interval_seconds)

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="sweep-scheduler", daemon=True)
        self._thread.start()
        logger.info(f"Sweep scheduler started (every {self.interval_seconds} seconds)")

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Sweep scheduler stopped")

    def join(self, timeout: Optional[float] = None) -> None:
        thread = self._thread
        if thread:
            thread.join(timeout)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
