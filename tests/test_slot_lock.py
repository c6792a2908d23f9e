import unittest

from courtbook.core.errors import ConflictError, InvalidRequestError, NotFoundError, SlotLockedError
from support import DAY, add_court, add_user, at, make_engine


class SlotLockTest(unittest.TestCase):
    def setUp(self):
        self.engine = make_engine(lock_ttl_minutes=10)
        self.court = add_court(self.engine)
        self.alice = add_user(self.engine)
        self.bob = add_user(self.engine)

    def lock(self, actor, start, end):
        return self.engine.locks.lock(actor, self.court.id, DAY, start, end)

    def test_lock_expires_after_ttl(self):
        created = self.lock(self.alice, at(10), at(11))
        self.assertEqual(created.expires_at, self.engine.clock.now().replace(minute=10))

        with self.assertRaises(SlotLockedError):
            self.lock(self.bob, at(10), at(11))

        self.engine.clock.advance(minutes=10)
        taken_over = self.lock(self.bob, at(10), at(11))

        self.assertEqual(taken_over.user_id, self.bob.user_id)
        self.assertEqual(len(self.engine.store.tables.locks), 1)

    def test_lock_hides_slot_from_others_only(self):
        self.lock(self.alice, at(10), at(11))
        availability = self.engine.availability

        self.assertFalse(availability.check_availability(self.court.id, DAY, at(10, 30), at(11, 30), self.bob.user_id))
        self.assertFalse(availability.check_availability(self.court.id, DAY, at(10), at(11)))
        self.assertTrue(availability.check_availability(self.court.id, DAY, at(10), at(11), self.alice.user_id))
        self.assertTrue(availability.check_availability(self.court.id, DAY, at(11), at(12), self.bob.user_id))

    def test_touching_locks_coexist(self):
        self.lock(self.alice, at(10), at(11))
        self.lock(self.bob, at(11), at(12))
        self.assertEqual(len(self.engine.store.tables.locks), 2)

    def test_relock_replaces_previous_lock(self):
        self.lock(self.alice, at(10), at(11))
        self.lock(self.alice, at(14), at(15))

        locks = list(self.engine.store.tables.locks.values())
        self.assertEqual(len(locks), 1)
        self.assertEqual(locks[0].start_time, at(14))
        self.lock(self.bob, at(10), at(11))

    def test_cannot_lock_a_booked_range(self):
        self.engine.reservations.create(self.alice, self.court.id, DAY, at(10), at(11))
        with self.assertRaises(ConflictError):
            self.lock(self.bob, at(10, 30), at(11))

    def test_release(self):
        self.lock(self.alice, at(10), at(11))
        self.assertEqual(self.engine.locks.release(self.alice, self.court.id, DAY), 1)
        self.assertEqual(self.engine.locks.release(self.alice, self.court.id, DAY), 0)
        self.lock(self.bob, at(10), at(11))

    def test_court_listing_hides_inactive_courts(self):
        closed = add_court(self.engine, is_active=False, name="Closed")
        availability = self.engine.availability

        self.assertEqual([c.id for c in availability.list_courts()], [self.court.id])
        self.assertEqual(len(availability.list_courts(include_inactive=True)), 2)
        self.assertEqual(availability.get_court(closed.id).name, "Closed")
        with self.assertRaises(NotFoundError):
            availability.get_court(999)

    def test_bad_requests(self):
        with self.assertRaises(InvalidRequestError):
            self.lock(self.alice, at(11), at(11))
        with self.assertRaises(NotFoundError):
            self.engine.locks.lock(self.alice, 999, DAY, at(10), at(11))


if __name__ == "__main__":
    unittest.main()
