import logging
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

import psycopg2
import psycopg2.extensions
from psycopg2.extras import RealDictCursor

from courtbook.core.config import Settings
from courtbook.core.errors import TransientStorageError, UnavailableError
from courtbook.repositories.admin_notification_repository import AdminNotificationRepository
from courtbook.repositories.court_repository import CourtRepository
from courtbook.repositories.notification_repository import NotificationRepository
from courtbook.repositories.penalty_repository import PenaltyRepository
from courtbook.repositories.reservation_repository import ReservationRepository
from courtbook.repositories.slot_lock_repository import SlotLockRepository
from courtbook.repositories.topup_repository import TopUpRepository
from courtbook.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Connection loss, deadlocks, serialization failures and lock timeouts.
TRANSIENT_ERRORS = (
    psycopg2.OperationalError,
    psycopg2.extensions.TransactionRollbackError,
)


def get_connection(settings: Settings):
    conn = psycopg2.connect(
        host=settings.db_host,
        port=settings.db_port,
        dbname=settings.db_name,
        user=settings.db_user,
        password=settings.db_password,
        cursor_factory=RealDictCursor,
        options=f"-c lock_timeout={settings.db_lock_timeout_ms}",
    )
    conn.set_session(isolation_level=psycopg2.extensions.ISOLATION_LEVEL_READ_COMMITTED)
    return conn


class StoreSession:
    """Transaction handle: every repository shares the same connection."""

    def __init__(self, conn):
        self.conn = conn
        self.users = UserRepository(conn)
        self.courts = CourtRepository(conn)
        self.reservations = ReservationRepository(conn)
        self.locks = SlotLockRepository(conn)
        self.penalties = PenaltyRepository(conn)
        self.notifications = NotificationRepository(conn)
        self.admin_notifications = AdminNotificationRepository(conn)
        self.topups = TopUpRepository(conn)


class PostgresStore:
    def __init__(self, settings: Settings):
        self.settings = settings

    @contextmanager
    def transaction(self) -> Iterator[StoreSession]:
        """Commit when the block exits cleanly, roll back on any exception."""
        try:
            conn = get_connection(self.settings)
        except TRANSIENT_ERRORS as exc:
            raise TransientStorageError(f"Could not connect to the database: {exc}") from exc
        try:
            with conn:
                yield StoreSession(conn)
        except TRANSIENT_ERRORS as exc:
            raise TransientStorageError(f"Transaction aborted: {exc}") from exc
        finally:
            conn.close()


def run_with_retry(operation: Callable[..., T], *args, **kwargs) -> T:
    """Run a core operation, retrying once when storage fails transiently.

    Business errors propagate untouched on the first attempt.
    """
    try:
        return operation(*args, **kwargs)
    except TransientStorageError as exc:
        logger.warning(f"Transient storage failure, retrying once: {exc}")
    try:
        return operation(*args, **kwargs)
    except TransientStorageError as exc:
        raise UnavailableError(f"Storage unavailable: {exc}") from exc
