import unittest
from unittest.mock import patch

from courtbook.models.actor import Actor
from courtbook.models.notification import Notification
from courtbook.models.user import User
from courtbook.repositories.memory import MemoryStore
from courtbook.services.notification_service import NotificationService


class MemoryStoreTest(unittest.TestCase):
    def setUp(self):
        self.store = MemoryStore()
        self.user = self.store.add_user(User(id=None, balance=10))

    def test_reads_return_copies(self):
        with self.store.transaction() as tx:
            user = tx.users.find_by_id(self.user.id)
            user.balance = 999
        with self.store.transaction() as tx:
            self.assertEqual(tx.users.find_by_id(self.user.id).balance, 10)

    def test_exception_restores_every_table(self):
        with self.assertRaises(KeyError):
            with self.store.transaction() as tx:
                user = tx.users.find_for_update(self.user.id)
                user.balance = 0
                tx.users.update_balance(user)
                tx.notifications.create(Notification(user_id=user.id, title="x", body="y"))
                raise KeyError("boom")

        with self.store.transaction() as tx:
            self.assertEqual(tx.users.find_by_id(self.user.id).balance, 10)
            self.assertEqual(tx.notifications.get_by_user(self.user.id), [])

    def test_ids_are_not_reused_after_commit(self):
        second = self.store.add_user(User(id=None))
        self.assertEqual(second.id, self.user.id + 1)


class NotificationServiceTest(unittest.TestCase):
    def setUp(self):
        self.store = MemoryStore()
        self.service = NotificationService(self.store)
        self.alice = Actor.user(1)
        self.bob = Actor.user(2)

    def test_notify_list_and_mark_read(self):
        self.service.notify(1, "Booking Confirmed", "See you on court.")
        self.service.notify(2, "Booking Cancelled", "Refunded.")

        mine = self.service.list_for_user(self.alice)
        self.assertEqual([n.title for n in mine], ["Booking Confirmed"])
        self.assertFalse(self.service.mark_read(self.bob, mine[0].id))
        self.assertTrue(self.service.mark_read(self.alice, mine[0].id))
        self.assertTrue(self.service.list_for_user(self.alice)[0].is_read)

    def test_notify_failure_is_swallowed_and_logged(self):
        with patch.object(self.store, "transaction", side_effect=RuntimeError("db down")):
            with self.assertLogs("courtbook.services.notification_service", level="ERROR"):
                self.service.notify(1, "Booking Confirmed", "See you on court.")


if __name__ == "__main__":
    unittest.main()
