import unittest

from socializer import portfolios
from socializer.constants import (
    SOCIETIES_COLLECTION,
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
from socializer.models import SocietyRecord, from_document
from socializer.tests.support import ApiTestCase, actor_for, seed_society, seed_user


def society_record(store):
    return from_document(SocietyRecord, "chess", store.get(SOCIETIES_COLLECTION, "chess"))


def notification_types(store, uid):
    return [doc.data["type"] for doc in store.query(user_notifications_path(uid))]


class PortfolioDomainTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        seed_user(self.store, "admin", "Admin", societyAdmins=["chess"])
        seed_user(self.store, "alice", "Alice")
        seed_user(self.store, "bob", "Bob")
        seed_user(self.store, "carol", "Carol")
        seed_society(self.store, "chess", societyAdmins=["admin"])
        self.actor = actor_for(self.store, "admin")

    def society(self):
        return self.store.get(SOCIETIES_COLLECTION, "chess")

    def test_add_portfolio_syncs_members_and_notifies(self):
        portfolios.add_portfolio(self.store, self.actor, "chess", " Media ", ["alice", "bob"])
        society = self.society()
        self.assertEqual(society["portfolios"], [{"name": "Media", "members": ["alice", "bob"]}])
        self.assertEqual(society["members"], ["alice", "bob"])
        self.assertEqual(notification_types(self.store, "alice"), ["portfolioMemberAdded"])

        with self.assertRaises(ConflictError):
            portfolios.add_portfolio(self.store, self.actor, "chess", "Media")
        with self.assertRaises(InvalidRequestError):
            portfolios.add_portfolio(self.store, self.actor, "chess", "   ")
        with self.assertRaises(NotFoundError):
            portfolios.add_portfolio(self.store, self.actor, "chess", "Events", ["ghost"])

    def test_outsider_cannot_manage(self):
        outsider = actor_for(self.store, "carol")
        with self.assertRaises(PermissionDeniedError):
            portfolios.add_portfolio(self.store, outsider, "chess", "Media")

    def test_add_member_duplicate(self):
        portfolios.add_portfolio(self.store, self.actor, "chess", "Media", ["alice"])
        portfolios.add_portfolio_member(self.store, self.actor, "chess", "Media", "bob")
        self.assertEqual(self.society()["members"], ["alice", "bob"])
        with self.assertRaises(ConflictError):
            portfolios.add_portfolio_member(self.store, self.actor, "chess", "Media", "bob")
        with self.assertRaises(NotFoundError):
            portfolios.add_portfolio_member(self.store, self.actor, "chess", "Design", "bob")

    def test_single_holder_roles(self):
        portfolios.add_portfolio(self.store, self.actor, "chess", "Media", ["alice", "bob"])
        portfolios.assign_role(self.store, self.actor, "chess", "Media", "alice", "Deputy Director")
        with self.assertRaises(ConflictError):
            portfolios.assign_role(
                self.store, self.actor, "chess", "Media", "bob", "Deputy Director"
            )
        # Re-assigning to the current holder is allowed.
        portfolios.assign_role(self.store, self.actor, "chess", "Media", "alice", "Deputy Director")
        self.assertEqual(self.society()["roles"]["Media"], {"Deputy Director": "alice"})
        self.assertEqual(
            self.store.get(USERS_COLLECTION, "alice")["roles"], {"chess": "Deputy Director"}
        )

    def test_executives_accumulate(self):
        portfolios.add_portfolio(self.store, self.actor, "chess", "Media", ["alice", "bob"])
        portfolios.assign_role(self.store, self.actor, "chess", "Media", "alice", "Executive")
        portfolios.assign_role(self.store, self.actor, "chess", "Media", "bob", "Executive")
        portfolios.assign_role(self.store, self.actor, "chess", "Media", "bob", "Executive")
        self.assertEqual(self.society()["roles"]["Media"], {"Executive": ["alice", "bob"]})

    def test_role_requires_membership(self):
        portfolios.add_portfolio(self.store, self.actor, "chess", "Media", ["alice"])
        with self.assertRaises(InvalidRequestError):
            portfolios.assign_role(self.store, self.actor, "chess", "Media", "carol", "Director")
        with self.assertRaises(InvalidRequestError):
            portfolios.assign_role(self.store, self.actor, "chess", "Media", "alice", "Mascot")

    def test_role_notifications_record_actor(self):
        portfolios.add_portfolio(self.store, self.actor, "chess", "Media", ["alice"])
        portfolios.assign_role(self.store, self.actor, "chess", "Media", "alice", "Director")

        assigned = [
            doc.data
            for doc in self.store.query(user_notifications_path("alice"))
            if doc.data["type"] == "roleAssigned"
        ]
        self.assertEqual(assigned[0]["assignedBy"], "admin")
        self.assertEqual(assigned[0]["role"], "Director")

        confirmations = self.store.query(user_notifications_path("admin"))
        self.assertEqual(confirmations[0].data["type"], "roleAssignedByYou")
        self.assertEqual(
            confirmations[0].data["message"],
            "You assigned the role of Director to Alice in Chess Club.",
        )

    def test_remove_member_strips_roles_in_that_portfolio_only(self):
        portfolios.add_portfolio(self.store, self.actor, "chess", "Media", ["alice", "bob"])
        portfolios.add_portfolio(self.store, self.actor, "chess", "Design", ["alice"])
        portfolios.assign_role(self.store, self.actor, "chess", "Media", "alice", "Director")
        portfolios.assign_role(self.store, self.actor, "chess", "Media", "bob", "Executive")
        portfolios.assign_role(self.store, self.actor, "chess", "Design", "alice", "Executive")

        portfolios.remove_portfolio_member(self.store, self.actor, "chess", "Media", "alice")
        society = self.society()
        self.assertEqual(society["roles"]["Media"], {"Executive": ["bob"]})
        self.assertEqual(society["roles"]["Design"], {"Executive": ["alice"]})
        self.assertEqual(society["members"], ["bob", "alice"])
        # Alice still holds a role in Design.
        self.assertIn("chess", self.store.get(USERS_COLLECTION, "alice")["roles"])
        self.assertIn("portfolioMemberRemoved", notification_types(self.store, "alice"))

        portfolios.remove_portfolio_member(self.store, self.actor, "chess", "Design", "alice")
        society = self.society()
        self.assertNotIn("Design", society["roles"])
        self.assertEqual(society["members"], ["bob"])
        self.assertEqual(self.store.get(USERS_COLLECTION, "alice")["roles"], {})

        with self.assertRaises(NotFoundError):
            portfolios.remove_portfolio_member(self.store, self.actor, "chess", "Design", "alice")

    def test_portfolio_name_cannot_contain_slash(self):
        with self.assertRaises(InvalidRequestError):
            portfolios.add_portfolio(self.store, self.actor, "chess", "Media/PR")
        self.assertEqual(self.society().get("portfolios", []), [])

    def test_user_role_falls_back_to_remaining_role(self):
        portfolios.add_portfolio(self.store, self.actor, "chess", "Media", ["alice"])
        portfolios.add_portfolio(self.store, self.actor, "chess", "Design", ["alice"])
        portfolios.assign_role(self.store, self.actor, "chess", "Design", "alice", "Director")
        portfolios.assign_role(self.store, self.actor, "chess", "Media", "alice", "Executive")
        self.assertEqual(
            self.store.get(USERS_COLLECTION, "alice")["roles"], {"chess": "Executive"}
        )

        portfolios.remove_portfolio_member(self.store, self.actor, "chess", "Media", "alice")
        self.assertEqual(
            self.store.get(USERS_COLLECTION, "alice")["roles"], {"chess": "Director"}
        )
        self.assertEqual(portfolios.held_roles(society_record(self.store), "alice"), ["Director"])

    def test_delete_portfolio(self):
        portfolios.add_portfolio(self.store, self.actor, "chess", "Media", ["alice"])
        portfolios.assign_role(self.store, self.actor, "chess", "Media", "alice", "Director")
        portfolios.delete_portfolio(self.store, self.actor, "chess", "Media")
        society = self.society()
        self.assertEqual(society["portfolios"], [])
        self.assertEqual(society["roles"], {})
        self.assertEqual(society["members"], [])
        self.assertEqual(self.store.get(USERS_COLLECTION, "alice")["roles"], {})


class PortfolioApiTests(ApiTestCase):
    def test_portfolio_endpoints(self):
        headers = self.login("admin", "Admin", societyAdmins=["chess"])
        seed_user(self.store, "alice", "Alice", department="NBS")
        seed_society(self.store, "chess")

        response = self.client.post(
            "/api/societies/chess/portfolios",
            json={"name": "Media Team", "members": ["alice"]},
            headers=headers,
        )
        self.assertEqual(response.status_code, 201)

        response = self.client.post(
            "/api/societies/chess/portfolios/Media Team/roles",
            json={"uid": "alice", "role": "Director"},
            headers=headers,
        )
        self.assertEqual(response.status_code, 200)
        member = response.json()["portfolios"][0]["members"][0]
        self.assertEqual(member, {"uid": "alice", "name": "Alice", "department": "NBS", "role": "Director"})

        response = self.client.post(
            "/api/societies/chess/portfolios/Media Team/roles",
            json={"uid": "alice", "role": "President"},
            headers=headers,
        )
        self.assertEqual(response.status_code, 422)

        response = self.client.delete(
            "/api/societies/chess/portfolios/Media Team/members/alice", headers=headers
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["portfolios"][0]["members"], [])

        response = self.client.delete(
            "/api/societies/chess/portfolios/Media Team", headers=headers
        )
        self.assertEqual(response.status_code, 200)
        response = self.client.get("/api/societies/chess/portfolios", headers=headers)
        self.assertEqual(response.json()["portfolios"], [])


if __name__ == "__main__":
    unittest.main()
