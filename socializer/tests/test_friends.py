import unittest

from socializer import friends
from socializer.constants import (
    FRIEND_REQUESTS_COLLECTION,
    FRIENDS_COLLECTION,
    USERS_COLLECTION,
    user_notifications_path,
)
from socializer.db import InMemoryDocumentStore
from socializer.errors import (
    ConflictError,
    InvalidRequestError,
    NotFoundError,
    PermissionDeniedError,
)
from socializer.tests.support import ApiTestCase, actor_for, seed_user


class FriendDomainTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        for uid in ("alice", "bob", "carol"):
            seed_user(self.store, uid)

    def actor(self, uid):
        return actor_for(self.store, uid)

    def test_send_rules(self):
        with self.assertRaises(InvalidRequestError):
            friends.send_request(self.store, self.actor("alice"), "alice")
        with self.assertRaises(NotFoundError):
            friends.send_request(self.store, self.actor("alice"), "ghost")

        friends.send_request(self.store, self.actor("alice"), "bob")
        with self.assertRaises(ConflictError):
            friends.send_request(self.store, self.actor("alice"), "bob")
        with self.assertRaises(ConflictError):
            friends.send_request(self.store, self.actor("bob"), "alice")

    def test_accept_is_one_batch(self):
        request = friends.send_request(self.store, self.actor("alice"), "bob")
        with self.assertRaises(PermissionDeniedError):
            friends.accept_request(self.store, self.actor("carol"), request.id)

        friends.accept_request(self.store, self.actor("bob"), request.id)
        self.assertEqual(
            self.store.get(FRIEND_REQUESTS_COLLECTION, request.id)["status"], "accepted"
        )
        self.assertEqual(self.store.get(USERS_COLLECTION, "alice")["friendList"], ["bob"])
        self.assertEqual(self.store.get(USERS_COLLECTION, "bob")["friendList"], ["alice"])
        friendships = self.store.list_collection(FRIENDS_COLLECTION)
        self.assertEqual(len(friendships), 1)
        self.assertEqual(friendships[0].data["user1"], "alice")
        self.assertEqual(friendships[0].data["user2"], "bob")
        notes = self.store.query(user_notifications_path("alice"))
        self.assertEqual(notes[0].data["message"], "Bob accepted your friend request.")

        with self.assertRaises(ConflictError):
            friends.accept_request(self.store, self.actor("bob"), request.id)
        with self.assertRaises(ConflictError):
            friends.send_request(self.store, self.actor("alice"), "bob")

        self.assertEqual(friends.list_friends(self.store, self.actor("alice")), [("bob", "Bob")])

    def test_accept_with_missing_sender_leaves_request_pending(self):
        request = friends.send_request(self.store, self.actor("alice"), "bob")
        self.store.delete(USERS_COLLECTION, "alice")
        with self.assertRaises(NotFoundError):
            friends.accept_request(self.store, self.actor("bob"), request.id)
        self.assertEqual(
            self.store.get(FRIEND_REQUESTS_COLLECTION, request.id)["status"], "pending"
        )
        self.assertEqual(self.store.list_collection(FRIENDS_COLLECTION), [])

    def test_decline_deletes(self):
        request = friends.send_request(self.store, self.actor("alice"), "bob")
        with self.assertRaises(PermissionDeniedError):
            friends.decline_request(self.store, self.actor("alice"), request.id)
        friends.decline_request(self.store, self.actor("bob"), request.id)
        self.assertIsNone(self.store.get(FRIEND_REQUESTS_COLLECTION, request.id))
        with self.assertRaises(NotFoundError):
            friends.decline_request(self.store, self.actor("bob"), request.id)

    def test_incoming_pagination(self):
        for index in range(12):
            uid = f"user{index:02d}"
            seed_user(self.store, uid, f"User {index}")
            self.store.set(
                FRIEND_REQUESTS_COLLECTION,
                f"req{index:02d}",
                {
                    "fromUserId": uid,
                    "toUserId": "carol",
                    "status": "pending",
                    "createdAt": 1000.0 + index,
                },
            )
        self.store.set(
            FRIEND_REQUESTS_COLLECTION,
            "orphan",
            {"fromUserId": "ghost", "toUserId": "carol", "status": "pending", "createdAt": 2000.0},
        )

        carol = self.actor("carol")
        page, cursor = friends.list_incoming(self.store, carol)
        self.assertEqual(len(page), 10)
        self.assertEqual(page[0][0].id, "orphan")
        self.assertIsNone(page[0][1])
        self.assertEqual(page[1][0].id, "req11")
        self.assertEqual(page[1][1], "User 11")
        self.assertEqual(cursor, "req03")

        page, cursor = friends.list_incoming(self.store, carol, cursor=cursor)
        self.assertEqual([request.id for request, _ in page], ["req02", "req01", "req00"])
        self.assertIsNone(cursor)

    def test_friend_list_unknown_user(self):
        self.store.update(USERS_COLLECTION, "alice", {"friendList": ["gone"]})
        self.assertEqual(
            friends.list_friends(self.store, self.actor("alice")), [("gone", "Unknown User")]
        )


class FriendApiTests(ApiTestCase):
    def test_request_accept_flow(self):
        alice = self.login("alice", "Alice")
        bob = self.login("bob", "Bob")

        response = self.client.post(
            "/api/friends/requests", json={"to_user_id": "bob"}, headers=alice
        )
        self.assertEqual(response.status_code, 201)
        request_id = response.json()["id"]

        response = self.client.get("/api/friends/requests", headers=bob)
        body = response.json()
        self.assertEqual(body["requests"][0]["from_user_name"], "Alice")
        self.assertIsNone(body["next_cursor"])

        response = self.client.post(f"/api/friends/requests/{request_id}/accept", headers=bob)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "accepted")

        response = self.client.get("/api/friends", headers=alice)
        self.assertEqual(response.json()["friends"], [{"uid": "bob", "name": "Bob"}])

    def test_unknown_cursor(self):
        bob = self.login("bob")
        response = self.client.get(
            "/api/friends/requests", params={"cursor": "nope"}, headers=bob
        )
        self.assertEqual(response.status_code, 400)


if __name__ == "__main__":
    unittest.main()
