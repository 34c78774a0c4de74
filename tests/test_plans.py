"""Tests for subscription plans, subscriptions and default group provisioning."""

import pytest

from proske.modules.plans.service import SubscriptionService
from tests.conftest import API


@pytest.fixture
def groups(db, community):
    return [
        db.seed("conversation_groups", community_id=community["id"], name=f"Turma {n}", created_by=community["created_by"])
        for n in ("A", "B", "C")
    ]


@pytest.fixture
def plan(client, admin):
    resp = client.post(f"{API}/plans", json={"name": "Mensal", "price": 199.9, "monitoring_frequency": "weekly"})
    assert resp.status_code == 201
    return resp.json()


def _assign(client, user_id, plan_id, **overrides):
    return client.post(f"{API}/subscriptions", json={
        "user_id": user_id,
        "plan_id": plan_id,
        "start_date": "2026-10-01",
        "end_date": "2027-09-30",
        **overrides,
    })


class TestPlans:
    def test_list_ordered_by_price(self, client, admin):
        for name, price in (("Anual", 1800), ("Mensal", 199.9), ("Trimestral", 540)):
            client.post(f"{API}/plans", json={"name": name, "price": price})
        names = [p["name"] for p in client.get(f"{API}/plans").json()]
        assert names == ["Mensal", "Trimestral", "Anual"]

    def test_rejects_unknown_frequency(self, client, admin):
        resp = client.post(f"{API}/plans", json={"name": "X", "price": 10, "billing_frequency": "daily"})
        assert resp.status_code == 422

    def test_teacher_cannot_create(self, client, make_user, login):
        login(make_user("teacher"))
        assert client.post(f"{API}/plans", json={"name": "X", "price": 10}).status_code == 403

    def test_set_default_groups(self, client, db, plan, groups):
        a, b, c = groups
        resp = client.put(f"{API}/plans/{plan['id']}/default-groups", json={"group_ids": [a["id"], b["id"]]})
        assert resp.status_code == 200
        assert sorted(resp.json()["default_group_ids"]) == sorted([a["id"], b["id"]])

        resp = client.put(f"{API}/plans/{plan['id']}/default-groups", json={"group_ids": [b["id"], c["id"]]})
        assert sorted(resp.json()["default_group_ids"]) == sorted([b["id"], c["id"]])
        assert len(db.rows("plan_default_groups", plan_id=plan["id"])) == 2

    def test_default_groups_must_exist(self, client, plan):
        resp = client.put(f"{API}/plans/{plan['id']}/default-groups", json={"group_ids": ["missing"]})
        assert resp.status_code == 400

    def test_delete_blocked_by_active_subscription(self, client, db, plan, make_user):
        _assign(client, make_user("student"), plan["id"])
        assert client.delete(f"{API}/plans/{plan['id']}").status_code == 409

    def test_delete_unused_plan(self, client, db, plan, groups):
        client.put(f"{API}/plans/{plan['id']}/default-groups", json={"group_ids": [groups[0]["id"]]})
        assert client.delete(f"{API}/plans/{plan['id']}").status_code == 204
        assert db.rows("plan_default_groups", plan_id=plan["id"]) == []
        assert client.get(f"{API}/plans/{plan['id']}").status_code == 404


class TestSubscriptions:
    def test_assign_provisions_default_groups(self, client, db, plan, groups, make_user):
        student = make_user("student")
        client.put(f"{API}/plans/{plan['id']}/default-groups", json={"group_ids": [g["id"] for g in groups]})

        resp = _assign(client, student, plan["id"], due_day=10)
        assert resp.status_code == 201
        result = resp.json()
        assert result["subscription"]["status"] == "active"
        assert result["subscription"]["plan_name"] == "Mensal"
        assert result["provisioned_groups"] == 3
        assert result["skipped_groups"] == 0
        assert len(db.rows("group_members", user_id=student)) == 3

    def test_provisioning_twice_adds_nothing(self, db, plan, groups, make_user, client):
        student = make_user("student")
        client.put(f"{API}/plans/{plan['id']}/default-groups", json={"group_ids": [g["id"] for g in groups]})
        db.seed("group_members", group_id=groups[0]["id"], user_id=student)

        service = SubscriptionService(db)
        assert service.provision_default_groups(student, plan["id"]) == (2, 1)
        assert service.provision_default_groups(student, plan["id"]) == (0, 3)
        assert len(db.rows("group_members", user_id=student)) == 3

    def test_provisioning_without_default_groups(self, db, plan, make_user):
        student = make_user("student")
        service = SubscriptionService(db)
        assert service.provision_default_groups(student, plan["id"]) == (0, 0)
        assert service.provision_default_groups(student, plan["id"]) == (0, 0)
        assert db.rows("group_members", user_id=student) == []

    def test_single_active_subscription(self, client, db, plan, make_user, login):
        student = make_user("student")
        other = client.post(f"{API}/plans", json={"name": "Anual", "price": 1800}).json()

        for plan_id in (plan["id"], other["id"], plan["id"]):
            assert _assign(client, student, plan_id).status_code == 201

        active = db.rows("user_subscriptions", user_id=student, status="active")
        assert len(active) == 1
        assert active[0]["plan_id"] == plan["id"]
        assert len(db.rows("user_subscriptions", user_id=student, status="cancelled")) == 2

        history = client.get(f"{API}/subscriptions/users/{student}").json()
        assert len(history) == 3

        login(student)
        mine = client.get(f"{API}/subscriptions/me").json()
        assert mine["plan_id"] == plan["id"]

    def test_me_without_subscription(self, client, make_user, login):
        login(make_user("student"))
        resp = client.get(f"{API}/subscriptions/me")
        assert resp.status_code == 200
        assert resp.json() is None

    def test_unknown_plan(self, client, admin, make_user):
        assert _assign(client, make_user("student"), "missing").status_code == 404

    def test_end_before_start(self, client, plan, make_user):
        resp = _assign(client, make_user("student"), plan["id"], end_date="2026-09-01")
        assert resp.status_code == 422

    def test_cancel(self, client, db, plan, make_user):
        student = make_user("student")
        subscription = _assign(client, student, plan["id"]).json()["subscription"]
        resp = client.post(f"{API}/subscriptions/{subscription['id']}/cancel")
        assert resp.status_code == 200
        assert resp.json()["status"] == "cancelled"
        assert db.rows("user_subscriptions", user_id=student, status="active") == []

    def test_students_cannot_assign(self, client, plan, make_user, login):
        student = login(make_user("student"))
        assert _assign(client, student, plan["id"]).status_code == 403
