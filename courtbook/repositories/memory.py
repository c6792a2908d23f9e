"""In-process store with the same repository surface as the Postgres one.

Transactions are serialised behind a re-entrant lock and rolled back by
restoring a snapshot of every table, so tests get the same all-or-nothing
behaviour the database gives.
"""
import copy
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime, time
from typing import Dict, Iterator, List, Optional

from courtbook.models.admin_notification import AdminNotification
from courtbook.models.court import Court
from courtbook.models.notification import Notification
from courtbook.models.penalty import PenaltyRecord
from courtbook.models.reservation import (
    BOOKED,
    CONFIRMED,
    LIVE_STATUSES,
    PENDING,
    Reservation,
)
from courtbook.models.slot_lock import SlotLock
from courtbook.models.topup import TopUp
from courtbook.models.user import User


class MemoryTables:
    def __init__(self):
        self.users: Dict[int, User] = {}
        self.courts: Dict[int, Court] = {}
        self.reservations: Dict[int, Reservation] = {}
        self.locks: Dict[int, SlotLock] = {}
        self.penalties: Dict[int, PenaltyRecord] = {}
        self.notifications: Dict[int, Notification] = {}
        self.admin_notifications: Dict[int, AdminNotification] = {}
        self.topups: Dict[int, TopUp] = {}
        self.counters: Dict[str, int] = {}

    def next_id(self, table: str) -> int:
        self.counters[table] = self.counters.get(table, 0) + 1
        return self.counters[table]


class _MemoryRepository:
    table = ""

    def __init__(self, tables: MemoryTables):
        self.tables = tables

    @property
    def rows(self) -> dict:
        return getattr(self.tables, self.table)

    def _insert(self, obj):
        obj.id = self.tables.next_id(self.table)
        self.rows[obj.id] = replace(obj)
        return obj

    def _get(self, obj_id):
        row = self.rows.get(obj_id)
        return replace(row) if row else None


class MemoryUserRepository(_MemoryRepository):
    table = "users"

    def create(self, user: User) -> User:
        return self._insert(user)

    def find_by_id(self, user_id: int) -> Optional[User]:
        return self._get(user_id)

    def find_for_update(self, user_id: int) -> Optional[User]:
        return self._get(user_id)

    def update_balance(self, user: User) -> None:
        stored = self.rows[user.id]
        stored.balance = user.balance
        stored.penalty = user.penalty

    def update_suspension(self, user: User) -> None:
        stored = self.rows[user.id]
        stored.suspended_from = user.suspended_from
        stored.suspended_until = user.suspended_until
        stored.suspension_reason = user.suspension_reason


class MemoryCourtRepository(_MemoryRepository):
    table = "courts"

    def find_all(self) -> List[Court]:
        return [replace(c) for _, c in sorted(self.rows.items())]

    def find_by_id(self, court_id: int) -> Optional[Court]:
        return self._get(court_id)

    def find_for_update(self, court_id: int) -> Optional[Court]:
        return self._get(court_id)

    def create(self, court: Court) -> Court:
        return self._insert(court)


class MemoryReservationRepository(_MemoryRepository):
    table = "reservations"

    def _select(self, predicate, key=None) -> List[Reservation]:
        found = [replace(r) for r in self.rows.values() if predicate(r)]
        return sorted(found, key=key) if key else found

    def create(self, reservation: Reservation) -> Reservation:
        return self._insert(reservation)

    def update(self, reservation: Reservation) -> None:
        self.rows[reservation.id] = replace(reservation)

    def find_by_id(self, reservation_id: int) -> Optional[Reservation]:
        return self._get(reservation_id)

    def find_for_update(self, reservation_id: int) -> Optional[Reservation]:
        return self._get(reservation_id)

    def find_by_token_for_update(self, token: str) -> Optional[Reservation]:
        matches = self._select(lambda r: r.checkin_token == token)
        return matches[0] if matches else None

    def find_overlapping(self, court_id: int, day: date, start: time, end: time) -> List[Reservation]:
        return self._select(
            lambda r: r.court_id == court_id
            and r.date == day
            and r.status in LIVE_STATUSES
            and r.overlaps(start, end)
        )

    def find_by_user(self, user_id: int) -> List[Reservation]:
        found = self._select(lambda r: r.user_id == user_id, key=lambda r: r.starts_at)
        return list(reversed(found))

    def find_by_status(self, status: str) -> List[Reservation]:
        return self._select(lambda r: r.status == status, key=lambda r: r.created_at)

    def find_no_show_candidates(self, started_before: datetime) -> List[Reservation]:
        return self._select(
            lambda r: r.status == BOOKED and not r.checked_in and r.starts_at < started_before,
            key=lambda r: r.starts_at,
        )

    def find_completion_candidates(self, ended_before: datetime) -> List[Reservation]:
        return self._select(
            lambda r: r.status == CONFIRMED and r.ends_at < ended_before,
            key=lambda r: r.ends_at,
        )

    def find_stale_pending(self, started_by: datetime) -> List[Reservation]:
        return self._select(
            lambda r: r.status == PENDING and r.starts_at <= started_by,
            key=lambda r: r.starts_at,
        )


class MemorySlotLockRepository(_MemoryRepository):
    table = "locks"

    def create(self, lock: SlotLock) -> SlotLock:
        return self._insert(lock)

    def _delete_where(self, predicate) -> int:
        doomed = [lock_id for lock_id, lock in self.rows.items() if predicate(lock)]
        for lock_id in doomed:
            del self.rows[lock_id]
        return len(doomed)

    def delete_expired(self, court_id: int, day: date, now: datetime) -> int:
        return self._delete_where(
            lambda l: l.court_id == court_id and l.date == day and not l.is_active(now)
        )

    def delete_all_expired(self, now: datetime) -> List[int]:
        doomed = sorted(lock_id for lock_id, lock in self.rows.items() if not lock.is_active(now))
        for lock_id in doomed:
            del self.rows[lock_id]
        return doomed

    def find_overlapping(self, court_id: int, day: date, start: time, end: time, now: datetime) -> List[SlotLock]:
        return [
            replace(l) for l in self.rows.values()
            if l.court_id == court_id and l.date == day and l.is_active(now) and l.overlaps(start, end)
        ]

    def delete_for_user(self, user_id: int, court_id: int, day: date) -> int:
        return self._delete_where(
            lambda l: l.user_id == user_id and l.court_id == court_id and l.date == day
        )


class MemoryPenaltyRepository(_MemoryRepository):
    table = "penalties"

    def create(self, record: PenaltyRecord) -> PenaltyRecord:
        return self._insert(record)

    def find_by_id(self, penalty_id: int) -> Optional[PenaltyRecord]:
        return self._get(penalty_id)

    def find_by_user(self, user_id: int) -> List[PenaltyRecord]:
        found = [replace(p) for p in self.rows.values() if p.user_id == user_id]
        return sorted(found, key=lambda p: (p.created_at, p.id), reverse=True)

    def mark_resolved(self, penalty_id: int) -> None:
        self.rows[penalty_id].resolved = True


class MemoryNotificationRepository(_MemoryRepository):
    table = "notifications"

    def create(self, notification: Notification) -> Notification:
        return self._insert(notification)

    def get_by_user(self, user_id: int) -> List[Notification]:
        found = [replace(n) for n in self.rows.values() if n.user_id == user_id]
        return sorted(found, key=lambda n: (n.created_at, n.id), reverse=True)

    def mark_read(self, notification_id: int, user_id: int) -> bool:
        notification = self.rows.get(notification_id)
        if not notification or notification.user_id != user_id:
            return False
        notification.is_read = True
        return True


class MemoryAdminNotificationRepository(_MemoryRepository):
    table = "admin_notifications"

    def create(self, notification: AdminNotification) -> AdminNotification:
        return self._insert(notification)

    def get_unread(self, limit: int = 50) -> List[AdminNotification]:
        found = [replace(n) for n in self.rows.values() if not n.is_read]
        return sorted(found, key=lambda n: (n.created_at, n.id), reverse=True)[:limit]

    def mark_read(self, notification_id: int) -> bool:
        notification = self.rows.get(notification_id)
        if not notification:
            return False
        notification.is_read = True
        return True

    def mark_read_for_reservation(self, reservation_id: int) -> int:
        unread = [n for n in self.rows.values() if n.reservation_id == reservation_id and not n.is_read]
        for notification in unread:
            notification.is_read = True
        return len(unread)


class MemoryTopUpRepository(_MemoryRepository):
    table = "topups"

    def create(self, topup: TopUp) -> TopUp:
        return self._insert(topup)

    def find_by_gateway_ref_for_update(self, gateway_ref: str) -> Optional[TopUp]:
        for topup in self.rows.values():
            if topup.gateway_ref == gateway_ref:
                return replace(topup)
        return None

    def update_status(self, topup_id: int, new_status: str) -> None:
        self.rows[topup_id].status = new_status


class MemorySession:
    def __init__(self, tables: MemoryTables):
        self.users = MemoryUserRepository(tables)
        self.courts = MemoryCourtRepository(tables)
        self.reservations = MemoryReservationRepository(tables)
        self.locks = MemorySlotLockRepository(tables)
        self.penalties = MemoryPenaltyRepository(tables)
        self.notifications = MemoryNotificationRepository(tables)
        self.admin_notifications = MemoryAdminNotificationRepository(tables)
        self.topups = MemoryTopUpRepository(tables)


class MemoryStore:
    def __init__(self):
        self.tables = MemoryTables()
        self._lock = threading.RLock()

    @contextmanager
    def transaction(self) -> Iterator[MemorySession]:
        with self._lock:
            snapshot = copy.deepcopy(self.tables.__dict__)
            try:
                yield MemorySession(self.tables)
            except BaseException:
                self.tables.__dict__.clear()
                self.tables.__dict__.update(snapshot)
                raise

    # Seeding helpers used by tests and local simulations.

    def add_user(self, user: User) -> User:
        with self.transaction() as tx:
            return tx.users.create(user)

    def add_court(self, court: Court) -> Court:
        with self.transaction() as tx:
            return tx.courts.create(court)
