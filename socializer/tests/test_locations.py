import unittest

from socializer import locations
from socializer.db import InMemoryDocumentStore
from socializer.tests.support import ApiTestCase, seed_society

BLITZ = {"name": "Blitz", "date": "2024-03-05T18:00:00"}


class MarkerTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()

    def test_colors(self):
        seed_society(self.store, "a", "A", isOpenForInterviews=True, events=[BLITZ],
                     locations=[{"name": "Library", "coordinates": [33.64, 72.99]}])
        seed_society(self.store, "b", "B", isOpenForInterviews=True,
                     locations=[{"name": "Gate 1", "coordinates": [33.65, 72.98]}])
        seed_society(self.store, "c", "C", events=[BLITZ],
                     locations=[{"name": "Hall", "coordinates": [33.66, 72.97]}])
        seed_society(self.store, "d", "D",
                     locations=[{"name": "Lawn", "coordinates": [33, 72]}])

        markers = locations.list_markers(self.store)
        self.assertEqual(
            [(m.society_id, m.color) for m in markers],
            [("a", "purple"), ("b", "blue"), ("c", "orange"), ("d", "green")],
        )
        self.assertEqual(markers[3].coordinates, [33.0, 72.0])
        self.assertEqual(markers[0].location_name, "Library")
        self.assertEqual(markers[0].events[0].name, "Blitz")

    def test_invalid_coordinates_are_skipped(self):
        seed_society(
            self.store,
            "chess",
            isOpenForInterviews=True,
            locations=[
                "Old Block",
                {"name": "No coords"},
                {"name": "Short", "coordinates": [33.6]},
                {"name": "Text", "coordinates": ["33.6", "72.9"]},
                {"name": "Flags", "coordinates": [True, False]},
                {"name": "Good", "coordinates": [33.6, 72.9]},
            ],
        )
        markers = locations.list_markers(self.store)
        self.assertEqual([m.location_name for m in markers], ["Good"])

    def test_one_marker_per_location(self):
        seed_society(
            self.store,
            "chess",
            isOpenForInterviews=True,
            locations=[
                {"name": "North", "coordinates": [1.0, 2.0]},
                {"name": "South", "coordinates": [3.0, 4.0]},
            ],
        )
        markers = locations.list_markers(self.store)
        self.assertEqual([m.location_name for m in markers], ["North", "South"])
        self.assertTrue(all(m.color == "blue" for m in markers))


class MarkerApiTests(ApiTestCase):
    def test_markers_endpoint(self):
        headers = self.login("alice")
        seed_society(
            self.store,
            "chess",
            isOpenForInterviews=True,
            events=[BLITZ],
            locations=[{"name": "Library", "coordinates": [33.64, 72.99]}],
        )
        response = self.client.get("/api/map/markers", headers=headers)
        self.assertEqual(response.status_code, 200)
        marker = response.json()["markers"][0]
        self.assertEqual(marker["society_id"], "chess")
        self.assertEqual(marker["color"], "purple")
        self.assertEqual(marker["coordinates"], [33.64, 72.99])
        self.assertEqual(marker["events"][0]["name"], "Blitz")


if __name__ == "__main__":
    unittest.main()
