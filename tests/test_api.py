"""
End-to-end tests through the HTTP API.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from hearth.api.app import create_app
from hearth.auth.permissions import Permission
from hearth.storage import Collections, InMemoryMetadataStorage

from conftest import HEAD_PASSWORD, bearer, login, register, role_id


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def acme(client):
    """Acme family with Alice as head. Returns Alice's token."""
    return register(client, "Acme", "Alice", "alice@acme.com")["token"]


@pytest.fixture
def globex(client):
    """A second, unrelated family."""
    return register(client, "Globex", "Gus", "gus@globex.com")["token"]


def add_member(client, head_token, name, email, role_name="Member") -> dict:
    response = client.post(
        "/members",
        headers=bearer(head_token),
        json={
            "name": name,
            "email": email,
            "password": HEAD_PASSWORD,
            "role_id": role_id(client, head_token, role_name),
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def bob(client, acme):
    """Bob joins Acme with the Member role. Returns (member, token)."""
    member = add_member(client, acme, "Bob", "bob@acme.com")
    return member, login(client, "bob@acme.com")


def create_expense(client, token, **overrides) -> dict:
    body = {
        "type": "expense",
        "category": "Food",
        "description": "Groceries",
        "amount": 42.5,
        "date": "2024-05-01",
    }
    body.update(overrides)
    response = client.post("/transactions", headers=bearer(token), json=body)
    assert response.status_code == 201, response.text
    return response.json()


def me(client, token) -> dict:
    return client.get("/auth/me", headers=bearer(token)).json()


# =============================================================================
# Sessions
# =============================================================================


class TestSessions:
    def test_register_returns_session(self, client):
        body = register(client, "Acme", "Alice", "alice@acme.com")

        assert body["token_type"] == "bearer"
        assert body["expires_in"] == 5 * 3600
        assert body["family"]["name"] == "Acme"
        assert body["user"]["role_name"] == "Head"
        assert "password_hash" not in body["user"]

    def test_head_can_manage_roles(self, client, acme):
        user = me(client, acme)
        assert user["email"] == "alice@acme.com"
        assert Permission.ROLES_MANAGE.value in user["permissions"]

    def test_register_taken_email(self, client, acme):
        response = client.post(
            "/auth/register",
            json={"family_name": "Other", "name": "A", "email": "alice@acme.com", "password": HEAD_PASSWORD},
        )
        assert response.status_code == 409
        assert response.json()["code"] == "email_taken"

    def test_register_weak_password(self, client):
        response = client.post(
            "/auth/register",
            json={"family_name": "Acme", "name": "Alice", "email": "alice@acme.com", "password": "password"},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "weak_password"

    def test_login(self, client, acme):
        assert login(client, "ALICE@acme.com")

    @pytest.mark.parametrize("email,password", [
        ("alice@acme.com", "Wr0ngPass!"),
        ("nobody@acme.com", HEAD_PASSWORD),
    ])
    def test_login_failures_look_the_same(self, client, acme, email, password):
        response = client.post("/auth/login", json={"email": email, "password": password})
        assert response.status_code == 401
        assert response.json() == {"detail": "Invalid credentials", "code": "invalid_credentials"}

    def test_no_token(self, client):
        response = client.get("/auth/me")
        assert response.status_code == 401
        assert response.json()["code"] == "no_token"

    def test_garbage_token(self, client):
        response = client.get("/auth/me", headers=bearer("garbage"))
        assert response.status_code == 401
        assert response.json()["code"] == "invalid_token"

    def test_change_password(self, client, acme):
        response = client.post(
            "/auth/change-password",
            headers=bearer(acme),
            json={"current_password": HEAD_PASSWORD, "new_password": "An0ther!Pass"},
        )
        assert response.status_code == 200
        assert login(client, "alice@acme.com", "An0ther!Pass")

    def test_change_password_wrong_current(self, client, acme):
        response = client.post(
            "/auth/change-password",
            headers=bearer(acme),
            json={"current_password": "Wr0ngPass!", "new_password": "An0ther!Pass"},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "wrong_password"

    def test_change_password_weak_new(self, client, acme):
        response = client.post(
            "/auth/change-password",
            headers=bearer(acme),
            json={"current_password": HEAD_PASSWORD, "new_password": "weak"},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "weak_password"
        assert login(client, "alice@acme.com")

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}


# =============================================================================
# Revocation by data change
# =============================================================================


class TestLiveAuthorization:
    def test_deleted_member_token_is_stale(self, client, acme, bob):
        member, token = bob
        assert client.delete(f"/members/{member['id']}", headers=bearer(acme)).status_code == 200

        response = client.get("/auth/me", headers=bearer(token))
        assert response.status_code == 401
        assert response.json()["code"] == "stale_token"

    def test_deleted_role_after_login(self, client, app, acme, bob):
        member, token = bob
        storage = app.state.container.storage
        asyncio.run(storage.delete(Collections.ROLES, member["role_id"]))

        response = client.get("/auth/me", headers=bearer(token))
        assert response.status_code == 403
        assert response.json()["code"] == "role_missing"

    def test_login_with_deleted_role(self, client, app, acme, bob):
        member, _ = bob
        asyncio.run(app.state.container.storage.delete(Collections.ROLES, member["role_id"]))

        response = client.post("/auth/login", json={"email": "bob@acme.com", "password": HEAD_PASSWORD})
        assert response.status_code == 403
        assert response.json()["code"] == "role_missing"

    def test_role_change_applies_immediately(self, client, acme, bob):
        member, token = bob
        assert client.get("/budgets", headers=bearer(token)).status_code == 200

        client.put(
            f"/roles/{member['role_id']}",
            headers=bearer(acme),
            json={"permissions": ["dashboard:view"]},
        )
        assert client.get("/budgets", headers=bearer(token)).status_code == 403

    def test_reassignment_applies_immediately(self, client, acme, bob):
        member, token = bob
        manager = role_id(client, acme, "Manager")
        response = client.put(f"/members/{member['id']}", headers=bearer(acme), json={"role_id": manager})
        assert response.status_code == 200

        assert me(client, token)["role_name"] == "Manager"
        assert client.get("/subscriptions", headers=bearer(token)).status_code == 200


# =============================================================================
# Members
# =============================================================================


class TestMembers:
    def test_list_is_family_only(self, client, acme, globex, bob):
        names = [m["name"] for m in client.get("/members", headers=bearer(acme)).json()]
        assert names == ["Alice", "Bob"]

    def test_member_role_cannot_delete(self, client, acme, bob):
        _, token = bob
        alice_id = me(client, acme)["id"]
        response = client.delete(f"/members/{alice_id}", headers=bearer(token))
        assert response.status_code == 403

    def test_cannot_delete_self(self, client, acme):
        alice_id = me(client, acme)["id"]
        response = client.delete(f"/members/{alice_id}", headers=bearer(acme))
        assert response.status_code == 403
        assert response.json()["code"] == "cannot_delete_self"

    def test_cannot_change_own_role(self, client, acme):
        alice = me(client, acme)
        manager = role_id(client, acme, "Manager")
        response = client.put(f"/members/{alice['id']}", headers=bearer(acme), json={"role_id": manager})
        assert response.status_code == 403
        assert response.json()["code"] == "cannot_change_own_role"

    def test_edit_own_profile_without_permission(self, client, bob):
        member, token = bob
        response = client.put(f"/members/{member['id']}", headers=bearer(token), json={"bio": "Hi"})
        assert response.status_code == 200
        assert response.json()["bio"] == "Hi"

    def test_cannot_edit_someone_else_without_permission(self, client, acme, bob):
        _, token = bob
        alice_id = me(client, acme)["id"]
        response = client.put(f"/members/{alice_id}", headers=bearer(token), json={"bio": "Hi"})
        assert response.status_code == 403

    def test_update_rejects_unknown_fields(self, client, bob):
        member, token = bob
        response = client.put(
            f"/members/{member['id']}", headers=bearer(token), json={"family_id": "fam_other"}
        )
        assert response.status_code == 422

    def test_cannot_assign_foreign_role(self, client, acme, globex, bob):
        member, _ = bob
        foreign = role_id(client, globex, "Head")
        response = client.put(f"/members/{member['id']}", headers=bearer(acme), json={"role_id": foreign})
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_role"

    def test_create_with_foreign_role(self, client, acme, globex):
        response = client.post(
            "/members",
            headers=bearer(acme),
            json={
                "name": "Eve",
                "email": "eve@acme.com",
                "password": HEAD_PASSWORD,
                "role_id": role_id(client, globex, "Head"),
            },
        )
        assert response.status_code == 400

    def test_other_family_member_is_not_found(self, client, acme, globex):
        gus_id = me(client, globex)["id"]
        assert client.get(f"/members/{gus_id}", headers=bearer(acme)).status_code == 404
        assert client.delete(f"/members/{gus_id}", headers=bearer(acme)).status_code == 404


# =============================================================================
# Roles
# =============================================================================


class TestRoles:
    def test_permission_catalog(self, client, acme):
        groups = client.get("/permissions", headers=bearer(acme)).json()
        ids = {p["id"] for g in groups for p in g["permissions"]}
        assert ids == {p.value for p in Permission}

    def test_member_cannot_manage_roles(self, client, bob):
        _, token = bob
        assert client.get("/roles", headers=bearer(token)).status_code == 403

    def test_create_role(self, client, acme):
        response = client.post(
            "/roles", headers=bearer(acme), json={"name": "Kids", "permissions": ["dashboard:view"]}
        )
        assert response.status_code == 201
        assert response.json()["permissions"] == ["dashboard:view"]

    def test_create_role_unknown_permission(self, client, acme):
        response = client.post(
            "/roles", headers=bearer(acme), json={"name": "Kids", "permissions": ["vault:open"]}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "unknown_permission"

    def test_delete_role_in_use(self, client, acme):
        head = role_id(client, acme, "Head")
        response = client.delete(f"/roles/{head}", headers=bearer(acme))
        assert response.status_code == 409
        assert response.json()["code"] == "role_in_use"

    def test_other_family_role_is_not_found(self, client, acme, globex):
        foreign = role_id(client, globex, "Member")
        response = client.put(f"/roles/{foreign}", headers=bearer(acme), json={"name": "Mine"})
        assert response.status_code == 404


# =============================================================================
# Transactions
# =============================================================================


class TestTransactions:
    def test_tenancy_isolation(self, client, acme, globex):
        theirs = create_expense(client, globex)
        create_expense(client, acme, description="Ours")

        rows = client.get("/transactions", headers=bearer(acme)).json()
        assert [r["description"] for r in rows] == ["Ours"]

        assert client.put(
            f"/transactions/{theirs['id']}", headers=bearer(acme), json={"amount": 1}
        ).status_code == 404
        assert client.delete(f"/transactions/{theirs['id']}", headers=bearer(acme)).status_code == 404

    def test_family_is_taken_from_session(self, client, acme):
        row = create_expense(client, acme, family_id="fam_other")
        assert row["family_id"] == me(client, acme)["family_id"]

    def test_newest_first(self, client, acme):
        create_expense(client, acme, date="2024-01-01", description="old")
        create_expense(client, acme, date="2024-06-01", description="new")
        rows = client.get("/transactions", headers=bearer(acme)).json()
        assert [r["description"] for r in rows] == ["new", "old"]

    def test_member_cannot_edit(self, client, acme, bob):
        _, token = bob
        row = create_expense(client, acme)
        response = client.put(f"/transactions/{row['id']}", headers=bearer(token), json={"amount": 1})
        assert response.status_code == 403

    def test_view_is_filtered_by_type(self, client, acme):
        create_expense(client, acme)
        create_expense(client, acme, type="income", category="Income", description="Salary")

        client.post(
            "/roles",
            headers=bearer(acme),
            json={"name": "Expenses only", "permissions": ["expenses:view"]},
        )
        add_member(client, acme, "Viewer", "viewer@acme.com", role_name="Expenses only")
        token = login(client, "viewer@acme.com")

        rows = client.get("/transactions", headers=bearer(token)).json()
        assert {r["type"] for r in rows} == {"expense"}

    def test_bulk_delete_is_all_or_nothing(self, client, acme):
        expense = create_expense(client, acme)
        income = create_expense(client, acme, type="income", category="Income")

        client.post(
            "/roles",
            headers=bearer(acme),
            json={"name": "Cleaner", "permissions": ["expenses:view", "expenses:delete"]},
        )
        add_member(client, acme, "Cleaner", "cleaner@acme.com", role_name="Cleaner")
        token = login(client, "cleaner@acme.com")

        response = client.post(
            "/transactions/bulk-delete",
            headers=bearer(token),
            json={"ids": [expense["id"], income["id"]]},
        )
        assert response.status_code == 403
        assert len(client.get("/transactions", headers=bearer(acme)).json()) == 2

    def test_bulk_delete_skips_other_families(self, client, acme, globex):
        ours = create_expense(client, acme)
        theirs = create_expense(client, globex)

        response = client.post(
            "/transactions/bulk-delete",
            headers=bearer(acme),
            json={"ids": [ours["id"], theirs["id"]]},
        )
        assert response.json()["deleted"] == 1
        assert len(client.get("/transactions", headers=bearer(globex)).json()) == 1


# =============================================================================
# Categories and budgets
# =============================================================================


class TestCategoriesAndBudgets:
    def test_defaults_seeded(self, client, acme):
        categories = client.get("/categories", headers=bearer(acme)).json()
        assert categories[0]["name"] == "Income"
        assert [c["order"] for c in categories] == sorted(c["order"] for c in categories)

    def test_category_in_use(self, client, acme):
        create_expense(client, acme, category="Food")
        food = next(c for c in client.get("/categories", headers=bearer(acme)).json() if c["name"] == "Food")

        response = client.delete(f"/categories/{food['id']}", headers=bearer(acme))
        assert response.status_code == 409
        assert response.json()["code"] == "category_in_use"

    def test_one_budget_per_category(self, client, acme):
        food = next(c for c in client.get("/categories", headers=bearer(acme)).json() if c["name"] == "Food")
        body = {"category_id": food["id"], "amount": 300}

        assert client.post("/budgets", headers=bearer(acme), json=body).status_code == 201
        response = client.post("/budgets", headers=bearer(acme), json=body)
        assert response.status_code == 409
        assert response.json()["code"] == "budget_exists"

    def test_budget_for_foreign_category(self, client, acme, globex):
        theirs = client.get("/categories", headers=bearer(globex)).json()[0]
        response = client.post(
            "/budgets", headers=bearer(acme), json={"category_id": theirs["id"], "amount": 10}
        )
        assert response.status_code == 404

    def test_member_cannot_manage_budgets(self, client, bob):
        _, token = bob
        categories = client.get("/categories", headers=bearer(token)).json()
        response = client.post(
            "/budgets", headers=bearer(token), json={"category_id": categories[0]["id"], "amount": 10}
        )
        assert response.status_code == 403


# =============================================================================
# Partial updates
# =============================================================================


class TestNullUpdates:
    """Explicit nulls on required fields are rejected as bad requests."""

    def assert_rejected(self, response):
        assert response.status_code == 400, response.text
        assert response.json()["code"] == "invalid_update"

    def test_category(self, client, acme):
        category = client.get("/categories", headers=bearer(acme)).json()[0]
        response = client.put(f"/categories/{category['id']}", headers=bearer(acme), json={"name": None})
        self.assert_rejected(response)
        assert client.get("/categories", headers=bearer(acme)).json()[0]["name"] == category["name"]

    def test_trip(self, client, acme):
        trip = client.post("/trips", headers=bearer(acme), json=TRIP).json()
        response = client.put(f"/trips/{trip['id']}", headers=bearer(acme), json={"location": None})
        self.assert_rejected(response)

    def test_transaction(self, client, acme):
        row = create_expense(client, acme)
        for body in ({"description": None}, {"type": None}):
            response = client.put(f"/transactions/{row['id']}", headers=bearer(acme), json=body)
            self.assert_rejected(response)

    def test_budget(self, client, acme):
        category = client.get("/categories", headers=bearer(acme)).json()[0]
        budget = client.post(
            "/budgets", headers=bearer(acme), json={"category_id": category["id"], "amount": 100}
        ).json()
        response = client.put(f"/budgets/{budget['id']}", headers=bearer(acme), json={"amount": None})
        self.assert_rejected(response)

    def test_subscription(self, client, acme):
        sub = client.post(
            "/subscriptions",
            headers=bearer(acme),
            json={"name": "Music", "amount": 9.99, "next_payment_date": "2024-07-10", "category": "Subscriptions"},
        ).json()
        response = client.put(f"/subscriptions/{sub['id']}", headers=bearer(acme), json={"name": None})
        self.assert_rejected(response)

    def test_optional_field_can_be_cleared(self, client, acme):
        row = create_expense(client, acme, receipt_url="https://files.acme.com/r.png")
        response = client.put(f"/transactions/{row['id']}", headers=bearer(acme), json={"receipt_url": None})
        assert response.status_code == 200
        assert response.json()["receipt_url"] is None


# =============================================================================
# Subscriptions
# =============================================================================


class TestSubscriptions:
    def test_listed_by_next_payment(self, client, acme):
        for name, due in [("Music", "2024-07-10"), ("News", "2024-07-01")]:
            response = client.post(
                "/subscriptions",
                headers=bearer(acme),
                json={"name": name, "amount": 9.99, "next_payment_date": due, "category": "Subscriptions"},
            )
            assert response.status_code == 201

        rows = client.get("/subscriptions", headers=bearer(acme)).json()
        assert [r["name"] for r in rows] == ["News", "Music"]

    def test_member_role_has_no_access(self, client, bob):
        _, token = bob
        assert client.get("/subscriptions", headers=bearer(token)).status_code == 403


# =============================================================================
# Trips
# =============================================================================


TRIP = {
    "location": "Lisbon",
    "purpose": "Conference",
    "depart_date": "2024-09-01",
    "return_date": "2024-09-05",
    "amount": 900,
}


class TestTrips:
    def test_owner_may_edit_details(self, client, bob):
        _, token = bob
        trip = client.post("/trips", headers=bearer(token), json=TRIP).json()

        response = client.put(f"/trips/{trip['id']}", headers=bearer(token), json={"purpose": "Workshop"})
        assert response.status_code == 200
        assert response.json()["purpose"] == "Workshop"

    def test_owner_cannot_set_status(self, client, bob):
        _, token = bob
        trip = client.post("/trips", headers=bearer(token), json=TRIP).json()
        response = client.put(f"/trips/{trip['id']}", headers=bearer(token), json={"status": "Approved"})
        assert response.status_code == 403

    def test_other_member_cannot_edit(self, client, acme, bob):
        _, token = bob
        trip = client.post("/trips", headers=bearer(token), json=TRIP).json()
        add_member(client, acme, "Carol", "carol@acme.com")
        carol = login(client, "carol@acme.com")

        assert client.put(f"/trips/{trip['id']}", headers=bearer(carol), json={"purpose": "x"}).status_code == 403
        assert client.delete(f"/trips/{trip['id']}", headers=bearer(carol)).status_code == 403

    def test_manager_may_approve_and_delete(self, client, acme, bob):
        _, token = bob
        trip = client.post("/trips", headers=bearer(token), json=TRIP).json()

        response = client.put(f"/trips/{trip['id']}", headers=bearer(acme), json={"status": "Approved"})
        assert response.json()["status"] == "Approved"
        assert client.delete(f"/trips/{trip['id']}", headers=bearer(acme)).status_code == 200


# =============================================================================
# Approvals
# =============================================================================


class TestApprovals:
    @pytest.fixture
    def request_id(self, client, bob):
        _, token = bob
        response = client.post(
            "/approvals",
            headers=bearer(token),
            json={"category": "Travel", "amount": 250, "description": "Train tickets"},
        )
        assert response.status_code == 201
        return response.json()["id"]

    def test_requester_sees_only_their_own(self, client, acme, bob, request_id):
        client.post(
            "/approvals",
            headers=bearer(acme),
            json={"category": "Food", "amount": 20, "description": "Lunch"},
        )
        _, token = bob
        assert [a["id"] for a in client.get("/approvals", headers=bearer(token)).json()] == [request_id]
        assert len(client.get("/approvals", headers=bearer(acme)).json()) == 2

    def test_requester_cannot_decide(self, client, bob, request_id):
        _, token = bob
        response = client.put(f"/approvals/{request_id}/status", headers=bearer(token), json={"status": "Approved"})
        assert response.status_code == 403

    def test_decision_is_final(self, client, acme, request_id):
        url = f"/approvals/{request_id}/status"
        response = client.put(url, headers=bearer(acme), json={"status": "Approved"})
        assert response.json()["status"] == "Approved"

        response = client.put(url, headers=bearer(acme), json={"status": "Declined"})
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_status_transition"

    def test_cannot_move_back_to_pending(self, client, acme, request_id):
        response = client.put(
            f"/approvals/{request_id}/status", headers=bearer(acme), json={"status": "Pending"}
        )
        assert response.status_code == 400


# =============================================================================
# Chat
# =============================================================================


def send(client, token, receiver_id, text="Hi"):
    return client.post("/chat", headers=bearer(token), json={"receiver_id": receiver_id, "text": text})


class TestChat:
    def test_conversation_between_family_members(self, client, acme, bob):
        member, token = bob
        alice_id = me(client, acme)["id"]

        first = send(client, acme, member["id"], "Dinner at 7?")
        assert first.status_code == 201
        assert first.json()["sender_id"] == alice_id
        send(client, token, alice_id, "Sure")

        for caller in (acme, token):
            texts = [m["text"] for m in client.get("/chat/conversations", headers=bearer(caller)).json()]
            assert texts == ["Dinner at 7?", "Sure"]

    def test_receiver_in_other_family_is_not_found(self, client, acme, globex):
        gus_id = me(client, globex)["id"]
        response = send(client, acme, gus_id)
        assert response.status_code == 404
        assert client.get("/chat/conversations", headers=bearer(globex)).json() == []

    def test_conversations_are_private(self, client, acme, bob):
        member, _ = bob
        add_member(client, acme, "Carol", "carol@acme.com")
        carol = login(client, "carol@acme.com")

        send(client, acme, member["id"])
        assert client.get("/chat/conversations", headers=bearer(carol)).json() == []

    def test_mark_as_read(self, client, acme, bob):
        member, token = bob
        alice_id = me(client, acme)["id"]
        send(client, acme, member["id"], "one")
        send(client, acme, member["id"], "two")
        send(client, token, alice_id, "reply")

        response = client.post("/chat/mark-as-read", headers=bearer(token), json={"partner_id": alice_id})
        assert response.json()["updated"] == 2

        messages = client.get("/chat/conversations", headers=bearer(token)).json()
        assert {m["text"]: m["is_read"] for m in messages} == {"one": True, "two": True, "reply": False}

    def test_requires_session(self, client):
        assert client.get("/chat/conversations").status_code == 401

    def test_empty_text_rejected(self, client, acme, bob):
        member, _ = bob
        assert send(client, acme, member["id"], "").status_code == 422


# =============================================================================
# Setup, audit and system administration
# =============================================================================


class TestSetupAndAdmin:
    @pytest.fixture
    def admin(self, client):
        response = client.post(
            "/setup/create-admin",
            json={"name": "Root", "email": "root@hearth.app", "password": HEAD_PASSWORD},
        )
        assert response.status_code == 201
        return login(client, "root@hearth.app")

    def test_status(self, client):
        assert client.get("/setup/status").json() == {"initialized": False, "member_count": 0}

    def test_create_admin_only_once(self, client, admin, app):
        response = client.post(
            "/setup/create-admin",
            json={"name": "Other", "email": "other@hearth.app", "password": HEAD_PASSWORD},
        )
        assert response.status_code == 403
        assert response.json()["code"] == "already_initialized"

        storage = app.state.container.storage
        assert asyncio.run(storage.count(Collections.MEMBERS)) == 1
        assert asyncio.run(storage.count(Collections.ROLES)) == 1

    def test_admin_lists_every_family(self, client, admin):
        register(client, "Acme", "Alice", "alice@acme.com")
        register(client, "Globex", "Gus", "gus@globex.com")

        families = client.get("/families", headers=bearer(admin)).json()
        assert [f["name"] for f in families] == ["Acme", "Globex"]

    def test_family_head_cannot_list_families(self, client, acme):
        assert client.get("/families", headers=bearer(acme)).status_code == 403

    def test_admin_has_no_family_to_write_into(self, client, admin):
        response = client.post(
            "/transactions",
            headers=bearer(admin),
            json={"type": "expense", "category": "Food", "description": "x", "amount": 1, "date": "2024-01-01"},
        )
        assert response.status_code == 403
        assert response.json()["code"] == "family_required"

    def test_admin_cannot_create_global_roles(self, client, admin, app):
        response = client.post(
            "/roles", headers=bearer(admin), json={"name": "Auditor", "permissions": ["dashboard:view"]}
        )
        assert response.status_code == 403
        assert response.json()["code"] == "family_required"
        assert asyncio.run(app.state.container.storage.count(Collections.ROLES)) == 1

    def test_admin_cannot_create_family_less_members(self, client, admin, app):
        response = client.post(
            "/members",
            headers=bearer(admin),
            json={
                "name": "Eve",
                "email": "eve@hearth.app",
                "password": HEAD_PASSWORD,
                "role_id": me(client, admin)["role_id"],
            },
        )
        assert response.status_code == 403
        assert response.json()["code"] == "family_required"
        assert asyncio.run(app.state.container.storage.count(Collections.MEMBERS, {"family_id": None})) == 1

    def test_system_role_cannot_be_assigned(self, client, admin, acme, bob):
        member, token = bob
        system_role = me(client, admin)["role_id"]

        for caller in (admin, acme):
            response = client.put(
                f"/members/{member['id']}", headers=bearer(caller), json={"role_id": system_role}
            )
            assert response.status_code == 400
            assert response.json()["code"] == "invalid_role"
        assert me(client, token)["role_name"] == "Member"

    def test_admin_cannot_edit_system_role(self, client, admin):
        system_role = me(client, admin)["role_id"]
        response = client.put(
            f"/roles/{system_role}", headers=bearer(admin), json={"permissions": ["dashboard:view"]}
        )
        assert response.status_code == 403
        assert Permission.ROLES_MANAGE.value in me(client, admin)["permissions"]

    def test_audit_is_family_scoped(self, client, acme, globex, bob):
        actions = [e["action"] for e in client.get("/audit", headers=bearer(acme)).json()]
        assert actions == ["MEMBER_CREATE", "FAMILY_REGISTER"]

    def test_member_cannot_read_audit(self, client, bob):
        _, token = bob
        assert client.get("/audit", headers=bearer(token)).status_code == 403


# =============================================================================
# Store availability
# =============================================================================


class SlowStorage(InMemoryMetadataStorage):
    """In-memory store that can be told to hang on reads."""

    def __init__(self):
        super().__init__()
        self.slow = False

    async def get(self, collection, id):
        if self.slow:
            await asyncio.sleep(1)
        return await super().get(collection, id)


class TestStoreTimeout:
    def test_slow_store_is_unavailable_not_unauthorized(self, settings):
        backend = SlowStorage()
        app = create_app(settings.model_copy(update={"store_timeout_seconds": 0.05}), backend=backend)
        client = TestClient(app)
        try:
            token = register(client, "Acme", "Alice", "alice@acme.com")["token"]
            backend.slow = True

            response = client.get("/auth/me", headers=bearer(token))
            assert response.status_code == 503
            assert response.json()["code"] == "store_unavailable"
            assert response.headers["Retry-After"] == "1"
        finally:
            app.state.container.close()
