import psycopg2
import pytest
from datetime import date, datetime, time
from unittest.mock import MagicMock

from courtbook.core import db
from courtbook.core.config import Settings
from courtbook.core.errors import ConflictError, TransientStorageError, UnavailableError
from courtbook.models.user import User
from courtbook.repositories.admin_notification_repository import AdminNotificationRepository
from courtbook.repositories.reservation_repository import ReservationRepository
from courtbook.repositories.slot_lock_repository import SlotLockRepository
from courtbook.repositories.user_repository import UserRepository


def make_conn():
    conn = MagicMock()
    cursor = conn.cursor.return_value.__enter__.return_value
    return conn, cursor


def test_run_with_retry_retries_once():
    operation = MagicMock(side_effect=[TransientStorageError("deadlock"), "ok"])
    assert db.run_with_retry(operation, 1, flag=True) == "ok"
    assert operation.call_count == 2
    operation.assert_called_with(1, flag=True)


def test_run_with_retry_gives_up_after_second_failure():
    operation = MagicMock(side_effect=TransientStorageError("connection lost"))
    with pytest.raises(UnavailableError):
        db.run_with_retry(operation)
    assert operation.call_count == 2


def test_run_with_retry_does_not_retry_business_errors():
    operation = MagicMock(side_effect=ConflictError("Time slot not available."))
    with pytest.raises(ConflictError):
        db.run_with_retry(operation)
    assert operation.call_count == 1


def test_transaction_commits_and_closes(monkeypatch):
    conn, _ = make_conn()
    monkeypatch.setattr(db, "get_connection", MagicMock(return_value=conn))

    with db.PostgresStore(Settings()).transaction() as tx:
        assert tx.users.conn is conn
        assert tx.reservations.conn is conn

    conn.__enter__.assert_called_once()
    args = conn.__exit__.call_args.args
    assert args[0] is None
    conn.close.assert_called_once()


def test_transaction_maps_transient_errors(monkeypatch):
    conn, _ = make_conn()
    monkeypatch.setattr(db, "get_connection", MagicMock(return_value=conn))

    with pytest.raises(TransientStorageError):
        with db.PostgresStore(Settings()).transaction():
            raise psycopg2.OperationalError("lock timeout")

    assert conn.__exit__.call_args.args[0] is psycopg2.OperationalError
    conn.close.assert_called_once()


def test_transaction_keeps_business_errors(monkeypatch):
    conn, _ = make_conn()
    monkeypatch.setattr(db, "get_connection", MagicMock(return_value=conn))

    with pytest.raises(ConflictError):
        with db.PostgresStore(Settings()).transaction():
            raise ConflictError("Time slot not available.")
    conn.close.assert_called_once()


def test_connection_failure_is_transient(monkeypatch):
    monkeypatch.setattr(db, "get_connection", MagicMock(side_effect=psycopg2.OperationalError("refused")))
    with pytest.raises(TransientStorageError):
        with db.PostgresStore(Settings()).transaction():
            pass


def test_user_lock_query():
    conn, cursor = make_conn()
    cursor.fetchone.return_value = {
        "id": 3, "balance": 120, "penalty": 0,
        "suspended_from": None, "suspended_until": None, "suspension_reason": None,
    }

    user = UserRepository(conn).find_for_update(3)

    assert user == User(id=3, balance=120)
    sql, params = cursor.execute.call_args.args
    assert "FOR UPDATE" in sql
    assert params == (3,)


def test_reservation_overlap_query_uses_half_open_bounds():
    conn, cursor = make_conn()
    cursor.fetchall.return_value = []

    found = ReservationRepository(conn).find_overlapping(1, date(2030, 6, 1), time(10), time(11))

    assert found == []
    sql, params = cursor.execute.call_args.args
    assert "start_time < %s" in sql and "end_time > %s" in sql
    assert params == (1, date(2030, 6, 1), ["pending", "booked", "confirmed"], time(11), time(10))


def test_reservation_lookups_lock_the_row():
    conn, cursor = make_conn()
    cursor.fetchone.return_value = None
    repo = ReservationRepository(conn)

    assert repo.find_for_update(5) is None
    assert "FOR UPDATE" in cursor.execute.call_args.args[0]
    assert repo.find_by_token_for_update("BOOKING-5-x") is None
    assert "FOR UPDATE" in cursor.execute.call_args.args[0]


def test_slot_lock_cleanup_reports_rowcount():
    conn, cursor = make_conn()
    cursor.rowcount = 2

    removed = SlotLockRepository(conn).delete_expired(1, date(2030, 6, 1), datetime(2030, 6, 1, 8, 0))

    assert removed == 2
    assert "expires_at <= %s" in cursor.execute.call_args.args[0]


def test_expired_lock_purge_spans_every_court():
    conn, cursor = make_conn()
    cursor.fetchall.return_value = [{"id": 4}, {"id": 9}]

    removed = SlotLockRepository(conn).delete_all_expired(datetime(2030, 6, 1, 8, 0))

    assert removed == [4, 9]
    sql, params = cursor.execute.call_args.args
    assert "court_id" not in sql
    assert "RETURNING id" in sql
    assert params == (datetime(2030, 6, 1, 8, 0),)


def test_admin_inbox_marks_whole_reservation_read():
    conn, cursor = make_conn()
    cursor.rowcount = 1

    assert AdminNotificationRepository(conn).mark_read_for_reservation(12) == 1
    sql, params = cursor.execute.call_args.args
    assert "is_read = TRUE" in sql
    assert params == (12,)
