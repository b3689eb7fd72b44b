import unittest

from socializer import notifications
from socializer.constants import society_notifications_path, user_notifications_path
from socializer.db import InMemoryDocumentStore
from socializer.errors import NotFoundError
from socializer.tests.support import ApiTestCase, seed_society, seed_user


def add_note(store, path, doc_id, created_at, **fields):
    data = {"read": False, "createdAt": created_at, "message": ""}
    data.update(fields)
    store.set(path, doc_id, data)


class FeedTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        seed_user(self.store, "alice", "Alice")
        seed_user(self.store, "boss", "Boss")
        seed_society(self.store, "chess", "Chess Club", members=["alice"])
        seed_society(self.store, "drama", "Drama Society", members=["bob"])

    def test_user_stream_messages(self):
        path = user_notifications_path("alice")
        add_note(self.store, path, "n1", 1.0, type="broadcast", message="Meet at 5", societyId="chess")
        add_note(self.store, path, "n2", 2.0, type="adminAssigned", societyId="chess", assignedBy="boss")
        add_note(
            self.store, path, "n3", 3.0,
            type="roleAssigned", societyId="chess", assignedBy="ghost", role="Director",
        )
        add_note(
            self.store, path, "n4", 4.0,
            type="eventCreated", societyId="chess", eventName="Blitz", eventDate="5/3/2024",
        )
        add_note(self.store, path, "n5", 5.0, type="eventUpdated", societyId="gone", eventName="Blitz")
        add_note(self.store, path, "n6", 6.0, type="portfolioMemberAdded", message="Custom text")
        add_note(self.store, path, "n7", 7.0, type="somethingElse", societyId="chess")

        feed = notifications.build_feed(self.store, "alice")
        messages = {item.id: item.message for item in feed}
        self.assertEqual(messages["n1"], "Broadcast from Chess Club: Meet at 5")
        self.assertEqual(
            messages["n2"], "You have been assigned as an admin in Chess Club by Boss."
        )
        self.assertEqual(
            messages["n3"],
            "You have been assigned the role of Director in Chess Club by Unknown User.",
        )
        self.assertEqual(
            messages["n4"], 'New event "Blitz" has been created in Chess Club on 5/3/2024.'
        )
        self.assertEqual(messages["n5"], 'Event "Blitz" in Unknown Society has been updated.')
        self.assertEqual(messages["n6"], "Custom text")
        self.assertEqual(messages["n7"], "You have a new notification in Chess Club.")
        self.assertEqual([item.id for item in feed], ["n7", "n6", "n5", "n4", "n3", "n2", "n1"])

    def test_society_stream_merged_and_sorted(self):
        add_note(self.store, user_notifications_path("alice"), "u1", 10.0, type="x", message="Mine")
        chess = society_notifications_path("chess")
        add_note(self.store, chess, "s1", 5.0, type="interviewStatusChanged", message="Open now")
        add_note(self.store, chess, "s2", 20.0, type="broadcast", message="Hello")
        add_note(self.store, chess, "s3", 15.0, type="other")
        add_note(
            self.store, society_notifications_path("drama"), "d1", 30.0,
            type="broadcast", message="Not for alice",
        )

        feed = notifications.build_feed(self.store, "alice")
        self.assertEqual([item.id for item in feed], ["s2", "s3", "u1", "s1"])
        by_id = {item.id: item for item in feed}
        self.assertEqual(by_id["s2"].message, "Broadcast from Chess Club: Hello")
        self.assertEqual(by_id["s3"].message, "New notification from Chess Club.")
        self.assertEqual(by_id["s1"].message, "Open now")
        self.assertEqual(by_id["s2"].source, "society")
        self.assertEqual(by_id["s2"].society_name, "Chess Club")
        self.assertEqual(by_id["u1"].source, "user")

    def test_duplicate_ids_keep_first_occurrence(self):
        add_note(self.store, user_notifications_path("alice"), "same", 1.0, type="x", message="user copy")
        add_note(
            self.store, society_notifications_path("chess"), "same", 2.0,
            type="x", message="society copy",
        )
        feed = notifications.build_feed(self.store, "alice")
        self.assertEqual(len(feed), 1)
        self.assertEqual(feed[0].message, "society copy")

    def test_unread_count_and_mark_read(self):
        path = user_notifications_path("alice")
        add_note(self.store, path, "n1", 1.0, type="x")
        add_note(self.store, path, "n2", 2.0, type="x")
        add_note(self.store, society_notifications_path("chess"), "s1", 3.0, type="x")
        self.assertEqual(notifications.unread_count(self.store, "alice"), 2)

        notifications.mark_read(self.store, "alice", "n1")
        self.assertEqual(notifications.unread_count(self.store, "alice"), 1)
        with self.assertRaises(NotFoundError):
            notifications.mark_read(self.store, "alice", "missing")

    def test_writers(self):
        note_id = notifications.notify_society(
            self.store, "chess", notifications.EVENT_UPDATED, eventName="Blitz"
        )
        stored = self.store.get(society_notifications_path("chess"), note_id)
        self.assertEqual(stored["societyId"], "chess")
        self.assertFalse(stored["read"])
        self.assertIn("createdAt", stored)
        self.assertNotIn("role", stored)


class NotificationApiTests(ApiTestCase):
    def test_feed_endpoints(self):
        headers = self.login("alice", "Alice")
        seed_society(self.store, "chess", members=["alice"])
        add_note(
            self.store, user_notifications_path("alice"), "n1", 1700000000.0,
            type="broadcast", message="Hi", societyId="chess",
        )

        response = self.client.get("/api/notifications", headers=headers)
        self.assertEqual(response.status_code, 200)
        items = response.json()["notifications"]
        self.assertEqual(items[0]["message"], "Broadcast from Chess Club: Hi")
        self.assertTrue(items[0]["timestamp"].startswith("2023-11-14"))

        response = self.client.get("/api/notifications/unread-count", headers=headers)
        self.assertEqual(response.json()["count"], 1)
        response = self.client.post("/api/notifications/n1/read", headers=headers)
        self.assertEqual(response.status_code, 200)
        response = self.client.get("/api/notifications/unread-count", headers=headers)
        self.assertEqual(response.json()["count"], 0)

        response = self.client.post("/api/notifications/nope/read", headers=headers)
        self.assertEqual(response.status_code, 404)


if __name__ == "__main__":
    unittest.main()
