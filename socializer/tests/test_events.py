import unittest

from socializer.constants import SOCIETIES_COLLECTION, society_notifications_path
from socializer.events import format_event_date
from socializer.tests.support import ApiTestCase, seed_society

EVENT = {
    "name": "Blitz Night",
    "date": "2024-03-05T18:00:00",
    "description": "Five minute games",
    "link": "https://example.test/blitz",
}


class EventDateTests(unittest.TestCase):
    def test_format(self):
        self.assertEqual(format_event_date("2024-03-05T18:00:00"), "5/3/2024")
        self.assertEqual(format_event_date("2023-12-25"), "25/12/2023")
        self.assertEqual(format_event_date("next week"), "next week")


class EventApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.headers = self.login("admin", societyAdmins=["chess"])
        seed_society(self.store, "chess")

    def society_notes(self):
        return [
            doc.data
            for doc in self.store.query(
                society_notifications_path("chess"), order_by="createdAt"
            )
        ]

    def test_add_event_notifies_society(self):
        response = self.client.post(
            "/api/societies/chess/events", json=EVENT, headers=self.headers
        )
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["pre_event_notification_time"], 24)
        self.assertEqual(body["updated_by"], "admin")

        notes = self.society_notes()
        self.assertEqual(len(notes), 1)
        self.assertEqual(notes[0]["type"], "eventCreated")
        self.assertEqual(notes[0]["eventName"], "Blitz Night")
        self.assertEqual(notes[0]["eventDate"], "5/3/2024")

    def test_duplicate_and_invalid_events(self):
        self.client.post("/api/societies/chess/events", json=EVENT, headers=self.headers)
        response = self.client.post(
            "/api/societies/chess/events", json=EVENT, headers=self.headers
        )
        self.assertEqual(response.status_code, 409)

        response = self.client.post(
            "/api/societies/chess/events",
            json=dict(EVENT, name="Other", pre_event_notification_time=-1),
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 422)

        response = self.client.post(
            "/api/societies/chess/events",
            json=dict(EVENT, name="Other", description=""),
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 422)

    def test_update_and_rename(self):
        self.client.post("/api/societies/chess/events", json=EVENT, headers=self.headers)
        self.client.post(
            "/api/societies/chess/events",
            json=dict(EVENT, name="Rapid Day"),
            headers=self.headers,
        )

        response = self.client.put(
            "/api/societies/chess/events/Blitz Night",
            json=dict(EVENT, name="Rapid Day"),
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 409)

        response = self.client.put(
            "/api/societies/chess/events/Blitz Night",
            json=dict(EVENT, name="Bullet Night", pre_event_notification_time=2),
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        names = [e["name"] for e in self.store.get(SOCIETIES_COLLECTION, "chess")["events"]]
        self.assertEqual(names, ["Bullet Night", "Rapid Day"])
        self.assertEqual(self.society_notes()[-1]["type"], "eventUpdated")

        response = self.client.put(
            "/api/societies/chess/events/Missing", json=EVENT, headers=self.headers
        )
        self.assertEqual(response.status_code, 404)

    def test_list_and_delete(self):
        self.client.post("/api/societies/chess/events", json=EVENT, headers=self.headers)
        response = self.client.get("/api/societies/chess/events", headers=self.headers)
        self.assertEqual([e["name"] for e in response.json()["events"]], ["Blitz Night"])

        response = self.client.delete(
            "/api/societies/chess/events/Blitz Night", headers=self.headers
        )
        self.assertEqual(response.status_code, 200)
        response = self.client.get("/api/societies/chess/events", headers=self.headers)
        self.assertEqual(response.json()["events"], [])

    def test_event_name_cannot_contain_slash(self):
        response = self.client.post(
            "/api/societies/chess/events",
            json=dict(EVENT, name="Q&A 1/2"),
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 400)

        self.client.post("/api/societies/chess/events", json=EVENT, headers=self.headers)
        response = self.client.put(
            "/api/societies/chess/events/Blitz Night",
            json=dict(EVENT, name="Blitz 1/2"),
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 400)
        names = [e["name"] for e in self.store.get(SOCIETIES_COLLECTION, "chess")["events"]]
        self.assertEqual(names, ["Blitz Night"])

    def test_members_cannot_edit_events(self):
        headers = self.login("alice")
        response = self.client.post("/api/societies/chess/events", json=EVENT, headers=headers)
        self.assertEqual(response.status_code, 403)


if __name__ == "__main__":
    unittest.main()
