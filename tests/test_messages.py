"""Tests for group messaging: payloads, send permissions and read tracking."""

import asyncio

import pytest
from fastapi import HTTPException

from proske.modules.messages.schemas import (
    PlainPayload, TaskReviewedPayload, TaskSubmissionPayload, parse_payload, payload_to_columns
)
from proske.modules.messages.realtime import GroupMessageFeed, authorize_feed, extract_record
from proske.modules.messages.service import check_can_send
from tests.conftest import API


@pytest.fixture
def group(db, community):
    return db.seed("conversation_groups", community_id=community["id"], name="Turma A", created_by=community["created_by"])


@pytest.fixture
def member(db, group, make_user):
    user_id = make_user("student", name="Eva")
    db.seed("group_members", group_id=group["id"], user_id=user_id)
    return user_id


class TestPayloads:
    def test_plain_for_missing_type(self):
        assert parse_payload(None, None) == PlainPayload()
        assert parse_payload("plain", {"anything": 1}) == PlainPayload()

    def test_typed_payload(self):
        payload = parse_payload("task_reviewed", {"submission_id": "s1", "grade": 90})
        assert isinstance(payload, TaskReviewedPayload)
        assert payload.grade == 90

    def test_malformed_metadata_reads_as_plain(self):
        assert parse_payload("task_reviewed", {"grade": 90}) == PlainPayload()
        assert parse_payload("task_reviewed", "not a dict") == PlainPayload()
        assert parse_payload("unknown_kind", {"x": 1}) == PlainPayload()

    def test_columns(self):
        assert payload_to_columns(None) == {"message_type": "plain", "metadata": None}
        columns = payload_to_columns(TaskSubmissionPayload(submission_id="s1", task_name="Escalas"))
        assert columns["message_type"] == "task_submission"
        assert columns["metadata"]["task_name"] == "Escalas"
        assert "type" not in columns["metadata"]


class TestCanSend:
    def test_member_student_may_send(self):
        check_can_send({"students_can_message": True}, ["student"], is_member=True)

    def test_non_member_student_is_rejected(self):
        with pytest.raises(HTTPException) as exc:
            check_can_send({}, ["student"], is_member=False)
        assert exc.value.status_code == 403

    def test_teacher_may_send_without_membership(self):
        check_can_send({"students_can_message": False}, ["teacher"], is_member=False)

    def test_students_blocked_when_disabled(self):
        with pytest.raises(HTTPException):
            check_can_send({"students_can_message": False}, ["student"], is_member=True)

    def test_allowed_roles_apply_to_everyone(self):
        group = {"allowed_message_roles": ["admin"]}
        check_can_send(group, ["admin"], is_member=False)
        with pytest.raises(HTTPException) as exc:
            check_can_send(group, ["teacher"], is_member=True)
        assert "admin" in exc.value.detail


class TestGroupMessages:
    def test_send_and_list(self, client, group, member, login):
        login(member)
        resp = client.post(f"{API}/groups/{group['id']}/messages", json={"content": "  Olá turma  "})
        assert resp.status_code == 201
        message = resp.json()
        assert message["content"] == "Olá turma"
        assert message["payload"] == {"type": "plain"}
        assert message["author"]["name"] == "Eva"

        listed = client.get(f"{API}/groups/{group['id']}/messages").json()
        assert [m["id"] for m in listed] == [message["id"]]

    def test_blank_content_rejected(self, client, group, member, login):
        login(member)
        assert client.post(f"{API}/groups/{group['id']}/messages", json={"content": "   "}).status_code == 422

    def test_outsider_cannot_read(self, client, group, make_user, login):
        login(make_user("student"))
        assert client.get(f"{API}/groups/{group['id']}/messages").status_code == 403

    def test_unread_and_mark_read(self, client, db, group, member, admin, login):
        client.post(f"{API}/groups/{group['id']}/messages", json={"content": "Aviso 1"})
        client.post(f"{API}/groups/{group['id']}/messages", json={"content": "Aviso 2"})

        login(member)
        assert client.get(f"{API}/groups/{group['id']}/unread").json()["unread_count"] == 2
        client.post(f"{API}/groups/{group['id']}/messages", json={"content": "Minha resposta"})
        assert client.get(f"{API}/groups/{group['id']}/unread").json()["unread_count"] == 2

        assert client.post(f"{API}/groups/{group['id']}/read").json()["marked"] == 2
        assert client.post(f"{API}/groups/{group['id']}/read").json()["marked"] == 0
        assert client.get(f"{API}/groups/{group['id']}/unread").json()["unread_count"] == 0
        assert len(db.rows("message_reads", user_id=member)) == 2

    def test_list_returns_the_latest_messages(self, client, db, group, member, login):
        for n in range(5):
            db.seed("messages", group_id=group["id"], community_id=group["community_id"], user_id=member, content=f"m{n}")

        login(member)
        listed = client.get(f"{API}/groups/{group['id']}/messages", params={"limit": 3}).json()
        assert [m["content"] for m in listed] == ["m2", "m3", "m4"]

    def test_typed_payload_cannot_be_posted(self, client, db, group, member, login):
        login(member)
        resp = client.post(f"{API}/groups/{group['id']}/messages", json={
            "content": "Tarefa corrigida",
            "payload": {"type": "task_reviewed", "submission_id": "x", "grade": 100}
        })
        assert resp.status_code == 422
        assert resp.json()["detail"].startswith("payload: ")
        assert db.rows("messages", group_id=group["id"]) == []



class TestLiveFeed:
    def test_extract_record_from_callback_payload(self):
        row = {"id": "m1", "group_id": "g1"}
        assert extract_record({"data": {"record": row}}) == row
        assert extract_record({"new": row}) == row
        assert extract_record({"data": {}}) is None

    def test_inserts_are_queued_in_order(self):
        feed = GroupMessageFeed("g1")
        feed._on_insert({"data": {"record": {"id": "m1"}}})
        feed._on_insert({"data": {}})
        feed._on_insert({"new": {"id": "m2"}})
        assert feed.queue.qsize() == 2
        assert feed.queue.get_nowait()["id"] == "m1"
        assert feed.queue.get_nowait()["id"] == "m2"

    def test_feed_authorization_runs_in_worker_thread(self, db, group):
        user = db.auth.sign_up({"email": "live@example.com", "password": "segredo1"}).user
        db.seed("user_roles", user_id=user.id, role="student")
        db.seed("group_members", group_id=group["id"], user_id=user.id)

        user_data = asyncio.run(asyncio.to_thread(authorize_feed, db, group["id"], f"token-{user.id}"))
        assert user_data["id"] == user.id
        assert user_data["roles"] == ["student"]

    def test_feed_rejects_outsiders_and_bad_tokens(self, db, group):
        outsider = db.auth.sign_up({"email": "fora@example.com", "password": "segredo1"}).user
        db.seed("user_roles", user_id=outsider.id, role="student")
        with pytest.raises(HTTPException) as exc:
            authorize_feed(db, group["id"], f"token-{outsider.id}")
        assert exc.value.status_code == 403
        with pytest.raises(HTTPException) as exc:
            authorize_feed(db, group["id"], "token-nobody")
        assert exc.value.status_code == 401
