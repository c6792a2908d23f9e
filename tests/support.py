"""Shared wiring for the engine tests: in-memory store, frozen clock, fake notifier."""
from datetime import date, datetime, time

from courtbook.bootstrap import build_engine
from courtbook.core.clock import FrozenClock
from courtbook.core.config import Settings
from courtbook.models.actor import Actor
from courtbook.models.court import Court
from courtbook.models.user import User
from courtbook.repositories.memory import MemoryStore

DAY = date(2030, 6, 1)
MORNING = datetime(2030, 6, 1, 8, 0)
ADMIN = Actor.admin(999)
SYSTEM = Actor.system()


class FakeNotifier:
    def __init__(self):
        self.sent = []

    def notify(self, user_id, title, body):
        self.sent.append((user_id, title, body))

    def titles_for(self, user_id):
        return [title for uid, title, _ in self.sent if uid == user_id]


def at(hour, minute=0):
    return time(hour, minute)


def make_engine(**overrides):
    settings = Settings(**overrides)
    return build_engine(
        settings=settings,
        store=MemoryStore(),
        clock=FrozenClock(MORNING),
        notifier=FakeNotifier(),
    )


def add_user(engine, balance=500, penalty=0, **fields):
    user = engine.store.add_user(User(id=None, balance=balance, penalty=penalty, **fields))
    return Actor.user(user.id)


def add_court(engine, hourly_rate=100, is_active=True, name="Court 1"):
    return engine.store.add_court(
        Court(name=name, category="badminton", hourly_rate=hourly_rate, is_active=is_active)
    )


def get_user(engine, actor):
    with engine.store.transaction() as tx:
        return tx.users.find_by_id(actor.user_id)


def get_reservation(engine, reservation_id):
    with engine.store.transaction() as tx:
        return tx.reservations.find_by_id(reservation_id)
