"""Tests for communities, invites and conversation groups."""

import pytest
from fastapi import HTTPException

from proske.modules.communities.service import CommunityService
from tests.conftest import API


class TestCommunityAndGroupFlow:
    def test_admin_builds_community_with_group(self, client, db, admin, make_user, login):
        student = make_user("student", name="Ana")

        resp = client.post(f"{API}/communities", json={"name": "Matemática", "subject": "math"})
        assert resp.status_code == 201
        community = resp.json()
        assert community["name"] == "Matemática"
        assert db.rows("community_members", community_id=community["id"], user_id=admin)

        resp = client.post(f"{API}/communities/{community['id']}/groups", json={"name": "Turma A"})
        assert resp.status_code == 201
        group = resp.json()
        assert group["member_count"] == 0

        resp = client.post(f"{API}/groups/{group['id']}/members", json={"user_id": student})
        assert resp.status_code == 201

        login(student)
        resp = client.get(f"{API}/groups/mine")
        assert resp.status_code == 200
        mine = resp.json()
        assert [g["id"] for g in mine] == [group["id"]]
        assert mine[0]["member_count"] == 1

    def test_student_cannot_create_community(self, client, make_user, login):
        login(make_user("student"))
        resp = client.post(f"{API}/communities", json={"name": "Física", "subject": "physics"})
        assert resp.status_code == 403

    def test_student_cannot_create_group(self, client, community, make_user, login):
        login(make_user("student"))
        resp = client.post(f"{API}/communities/{community['id']}/groups", json={"name": "Turma B"})
        assert resp.status_code == 403

    def test_add_member_twice_conflicts(self, client, community, make_user):
        student = make_user("student")
        group = client.post(f"{API}/communities/{community['id']}/groups", json={"name": "Turma A"}).json()
        assert client.post(f"{API}/groups/{group['id']}/members", json={"user_id": student}).status_code == 201
        resp = client.post(f"{API}/groups/{group['id']}/members", json={"user_id": student})
        assert resp.status_code == 409

    def test_add_member_by_email(self, client, community, make_user):
        student = make_user("student", email="ana@example.com")
        group = client.post(f"{API}/communities/{community['id']}/groups", json={"name": "Turma A"}).json()
        resp = client.post(f"{API}/groups/{group['id']}/members", json={"contact": "ana@example.com"})
        assert resp.status_code == 201
        assert resp.json()["user_id"] == student

    def test_add_member_rejects_bad_contact(self, client, community):
        group = client.post(f"{API}/communities/{community['id']}/groups", json={"name": "Turma A"}).json()
        resp = client.post(f"{API}/groups/{group['id']}/members", json={"contact": "12345"})
        assert resp.status_code == 422

    def test_add_member_unknown_contact(self, client, community):
        group = client.post(f"{API}/communities/{community['id']}/groups", json={"name": "Turma A"}).json()
        resp = client.post(f"{API}/groups/{group['id']}/members", json={"contact": "(11) 99999-9999"})
        assert resp.status_code == 404


class TestInvites:
    def test_invite_preview_and_accept(self, client, db, community, make_user, login, identity):
        resp = client.post(f"{API}/communities/{community['id']}/invites")
        assert resp.status_code == 201
        code = resp.json()["inviteCode"]
        assert resp.json()["invite_url"].endswith(f"/invite/{code}")

        identity.user_id = None
        resp = client.get(f"{API}/invites/{code}")
        assert resp.status_code == 200
        assert resp.json()["community"]["id"] == community["id"]
        assert resp.json()["inviter"]["name"] == "Admin"

        student = login(make_user("student"))
        resp = client.post(f"{API}/invites/{code}/accept")
        assert resp.status_code == 200
        assert resp.json()["already_member"] is False
        assert db.rows("community_members", community_id=community["id"], user_id=student)
        assert db.rows("community_invitations", invite_code=code)[0]["used_by"] == student

    def test_accept_again_is_noop(self, client, db, community, make_user, login):
        code = client.post(f"{API}/communities/{community['id']}/invites").json()["inviteCode"]
        student = login(make_user("student"))
        client.post(f"{API}/invites/{code}/accept")
        resp = client.post(f"{API}/invites/{code}/accept")
        assert resp.status_code == 200
        assert resp.json()["already_member"] is True
        assert len(db.rows("community_members", community_id=community["id"], user_id=student)) == 1

    def test_used_invite_rejects_other_users(self, client, community, make_user, login):
        code = client.post(f"{API}/communities/{community['id']}/invites").json()["inviteCode"]
        login(make_user("student"))
        client.post(f"{API}/invites/{code}/accept")
        login(make_user("student"))
        assert client.post(f"{API}/invites/{code}/accept").status_code == 409
        assert client.get(f"{API}/invites/{code}").status_code == 409

    def test_unknown_invite(self, client, make_user, login):
        login(make_user("student"))
        assert client.get(f"{API}/invites/nope").status_code == 404

    def test_student_cannot_generate_invite(self, client, community, make_user, login):
        login(make_user("student"))
        assert client.post(f"{API}/communities/{community['id']}/invites").status_code == 403

    def test_invite_taken_after_it_was_read(self, db, community, make_user, monkeypatch):
        invite = db.seed("community_invitations", community_id=community["id"], invited_by=community["created_by"], invite_code="a1b2c3d4")
        first, second = make_user("student"), make_user("student")
        service = CommunityService(db)
        read_invite = service._get_invite
        stale = [dict(invite)]

        def get_invite(code):
            # The first read sees the invite unused; another user claims it right after
            if stale:
                db.table("community_invitations").update({"used_by": first}).eq("id", invite["id"]).execute()
                return stale.pop()
            return read_invite(code)

        monkeypatch.setattr(service, "_get_invite", get_invite)
        with pytest.raises(HTTPException) as exc:
            service.accept_invite("a1b2c3d4", second)
        assert exc.value.status_code == 409
        assert db.rows("community_invitations", id=invite["id"])[0]["used_by"] == first
        assert db.rows("community_members", community_id=community["id"], user_id=second) == []

    def test_claim_only_sets_unused_invite(self, db, community, make_user):
        invite = db.seed("community_invitations", community_id=community["id"], invited_by=community["created_by"], invite_code="e5f6a7b8")
        student = make_user("student")
        service = CommunityService(db)
        service._claim_invite(invite, student)
        service._claim_invite(invite, student)
        row = db.rows("community_invitations", id=invite["id"])[0]
        assert row["used_by"] == student
        assert row["used_at"] is not None
