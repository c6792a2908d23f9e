from dataclasses import dataclass
from typing import Optional

from courtbook.core.clock import SystemClock
from courtbook.core.config import Settings
from courtbook.core.db import PostgresStore
from courtbook.services.availability_service import AvailabilityService
from courtbook.services.checkin_service import CheckInService
from courtbook.services.ledger import Ledger
from courtbook.services.notification_service import NotificationService
from courtbook.services.penalty_service import PenaltyService
from courtbook.services.reservation_service import ReservationService
from courtbook.services.slot_lock_service import SlotLockService
from courtbook.services.sweep_service import SweepScheduler, SweepService
from courtbook.services.topup_service import TopUpService


@dataclass
class Engine:
    settings: Settings
    store: object
    clock: object
    notifier: object
    ledger: Ledger
    availability: AvailabilityService
    locks: SlotLockService
    reservations: ReservationService
    checkin: CheckInService
    sweeps: SweepService
    scheduler: SweepScheduler
    penalties: PenaltyService
    topups: TopUpService


def build_engine(
    settings: Optional[Settings] = None,
    store=None,
    clock=None,
    notifier=None,
) -> Engine:
    """Wire every service around one store and one clock.

    Defaults: settings from the environment, the Postgres store, the wall
    clock and persisted in-app notifications.
    """
    settings = settings or Settings.from_env()
    store = store or PostgresStore(settings)
    clock = clock or SystemClock()
    notifier = notifier or NotificationService(store)

    ledger = Ledger(store, clock)
    availability = AvailabilityService(store, clock)
    locks = SlotLockService(store, availability, clock, ttl_minutes=settings.lock_ttl_minutes)
    reservations = ReservationService(store, ledger, availability, locks, notifier, clock, settings)
    sweeps = SweepService(store, reservations, clock, settings)
    return Engine(
        settings=settings,
        store=store,
        clock=clock,
        notifier=notifier,
        ledger=ledger,
        availability=availability,
        locks=locks,
        reservations=reservations,
        checkin=CheckInService(store, reservations, clock),
        sweeps=sweeps,
        scheduler=SweepScheduler(sweeps, settings.sweep_interval_seconds),
        penalties=PenaltyService(store, ledger, notifier, clock),
        topups=TopUpService(settings, store, ledger, notifier),
    )
