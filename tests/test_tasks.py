"""Tests for task submissions, reviews and assigned tasks."""

from datetime import date, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from proske.modules.tasks.schemas import SubmissionReview, compute_final_grade
from tests.conftest import API

SUBMISSION = {
    "video_url": "https://youtu.be/abc123",
    "recording_date": "2026-10-01",
    "task_name": "Estudo de escalas",
    "song_name": "Garota de Ipanema",
    "harmonic_field": "Fá maior",
    "effective_key": "F",
    "bpm": 90,
    "melodic_reference": "Tom Jobim",
}


def _review(grade=5, observation=None, **overrides):
    category = {"grade": grade, "observation": observation}
    body = {name: dict(category) for name in
            ("right_hand", "left_hand", "voice", "video", "interpretation", "audio")}
    body.update(overrides)
    return body


@pytest.fixture
def member(db, community, make_user):
    user_id = make_user("student", name="Bruno")
    db.seed("community_members", community_id=community["id"], user_id=user_id)
    return user_id


@pytest.fixture
def submission(client, community, member, login):
    login(member)
    resp = client.post(f"{API}/communities/{community['id']}/submissions", json=SUBMISSION)
    assert resp.status_code == 201
    return resp.json()


class TestFinalGrade:
    def test_all_fives_is_100(self):
        assert compute_final_grade([5, 5, 5, 5, 5, 5]) == 100

    def test_scaled_average(self):
        assert compute_final_grade([4, 4, 4, 4, 4, 4]) == 80
        assert compute_final_grade([1, 1, 1, 1, 1, 1]) == 20

    def test_rounds_to_nearest(self):
        # 25/6 -> 83.33, 23/6 -> 76.67
        assert compute_final_grade([5, 5, 4, 4, 4, 3]) == 83
        assert compute_final_grade([4, 4, 4, 4, 4, 3]) == 77

    def test_review_property(self):
        review = SubmissionReview(**_review(4, "ok"))
        assert review.final_grade == 80


class TestReviewValidation:
    def test_observation_required_below_five(self):
        body = _review(5)
        body["voice"] = {"grade": 3, "observation": "  "}
        with pytest.raises(ValidationError, match="voice: an observation is required"):
            SubmissionReview(**body)

    def test_no_observation_needed_for_five(self):
        assert SubmissionReview(**_review(5)).voice.observation is None

    def test_grade_range(self):
        with pytest.raises(ValidationError):
            SubmissionReview(**_review(6))


class TestSubmissions:
    def test_create_submission(self, submission, member):
        assert submission["status"] == "pending"
        assert submission["student_id"] == member
        assert submission["student_name"] == "Bruno"
        assert submission["grade"] is None
        assert submission["categories"] is None

    def test_rejects_non_youtube_video(self, client, community, member, login):
        login(member)
        resp = client.post(
            f"{API}/communities/{community['id']}/submissions",
            json={**SUBMISSION, "video_url": "https://vimeo.com/123"}
        )
        assert resp.status_code == 422

    def test_non_member_cannot_submit(self, client, community, make_user, login):
        login(make_user("student"))
        resp = client.post(f"{API}/communities/{community['id']}/submissions", json=SUBMISSION)
        assert resp.status_code == 403

    def test_students_see_only_their_own(self, client, db, community, submission, make_user, login):
        other = make_user("student")
        db.seed("community_members", community_id=community["id"], user_id=other)
        login(other)
        assert client.get(f"{API}/communities/{community['id']}/submissions").json() == []
        assert client.get(f"{API}/submissions/{submission['id']}").status_code == 403

    def test_review_sets_every_review_column_at_once(self, client, db, submission, make_user, login):
        teacher = login(make_user("teacher", name="Prof"))
        body = _review(5)
        body["voice"] = {"grade": 4, "observation": "Afinação"}
        body["teacher_comments"] = "Muito bom"
        resp = client.post(f"{API}/submissions/{submission['id']}/review", json=body)
        assert resp.status_code == 200
        reviewed = resp.json()
        assert reviewed["status"] == "reviewed"
        assert reviewed["grade"] == compute_final_grade([5, 5, 4, 5, 5, 5])
        assert reviewed["categories"]["voice"] == {"grade": 4, "observation": "Afinação"}
        assert reviewed["reviewed_by"] == teacher

        row = db.rows("submissions", id=submission["id"])[0]
        assert row["status"] == "reviewed"
        assert row["reviewed_by"] == teacher and row["reviewed_at"]
        assert row["grade_voz"] == 4 and row["obs_voz"] == "Afinação"
        assert row["grade_mao_direita"] == 5 and row["obs_mao_direita"] is None

        notes = db.rows("notifications", user_id=submission["student_id"], type="task_reviewed")
        assert len(notes) == 1
        assert notes[0]["related_id"] == submission["id"]

    def test_second_review_conflicts(self, client, db, submission, make_user, login):
        login(make_user("teacher"))
        assert client.post(f"{API}/submissions/{submission['id']}/review", json=_review(5)).status_code == 200
        first = dict(db.rows("submissions", id=submission["id"])[0])

        login(make_user("teacher"))
        resp = client.post(f"{API}/submissions/{submission['id']}/review", json=_review(1, "Refazer"))
        assert resp.status_code == 409
        assert db.rows("submissions", id=submission["id"])[0] == first

    def test_pending_rows_have_no_reviewer(self, db, submission):
        rows = db.rows("submissions")
        for row in rows:
            assert (row["status"] == "reviewed") == bool(row.get("reviewed_by") and row.get("reviewed_at"))

    def test_students_cannot_review(self, client, submission, member, login):
        login(member)
        resp = client.post(f"{API}/submissions/{submission['id']}/review", json=_review(5))
        assert resp.status_code == 403

    def test_review_rejected_without_observation(self, client, submission, make_user, login):
        login(make_user("teacher"))
        resp = client.post(f"{API}/submissions/{submission['id']}/review", json=_review(3))
        assert resp.status_code == 422
        assert "observation is required" in resp.json()["detail"]

    def test_review_unknown_submission(self, client, make_user, login):
        login(make_user("teacher"))
        assert client.post(f"{API}/submissions/missing/review", json=_review(5)).status_code == 404

    def test_submission_announced_in_group(self, client, db, community, member, login):
        group = db.seed("conversation_groups", community_id=community["id"], name="Turma A", created_by=community["created_by"])
        db.seed("group_members", group_id=group["id"], user_id=member)
        login(member)
        resp = client.post(
            f"{API}/communities/{community['id']}/submissions",
            json={**SUBMISSION, "announce_group_id": group["id"]}
        )
        assert resp.status_code == 201
        messages = db.rows("messages", group_id=group["id"])
        assert len(messages) == 1
        assert messages[0]["message_type"] == "task_submission"
        assert messages[0]["metadata"]["submission_id"] == resp.json()["id"]

    def test_announcement_respects_group_rules(self, client, db, community, member, login):
        group = db.seed(
            "conversation_groups", community_id=community["id"], name="Avisos",
            created_by=community["created_by"], students_can_message=False
        )
        db.seed("group_members", group_id=group["id"], user_id=member)
        login(member)
        resp = client.post(
            f"{API}/communities/{community['id']}/submissions",
            json={**SUBMISSION, "announce_group_id": group["id"]}
        )
        assert resp.status_code == 403
        assert db.rows("submissions") == []


class TestAssignedTasks:
    def test_assign_and_complete(self, client, db, community, member, admin, login):
        deadline = (datetime.now(timezone.utc) + timedelta(days=3)).isoformat()
        resp = client.post(f"{API}/communities/{community['id']}/assigned-tasks", json={
            "title": "Transcrever solo",
            "description": "Transcreva os 8 primeiros compassos",
            "deadline": deadline,
            "student_ids": [member, member],
        })
        assert resp.status_code == 201
        task = resp.json()
        assert task["student_ids"] == [member]
        assert len(db.rows("assigned_task_students", assigned_task_id=task["id"])) == 1
        assert len(db.rows("notifications", user_id=member, type="task_assigned")) == 1

        login(member)
        mine = client.get(f"{API}/assigned-tasks/mine").json()
        assert len(mine) == 1
        assert mine[0]["assigned_task_id"] == task["id"]
        assert mine[0]["status"] == "pending"
        assert mine[0]["is_overdue"] is False

        resp = client.put(f"{API}/assigned-tasks/{mine[0]['id']}/status", json={"status": "completed"})
        assert resp.status_code == 200
        assert resp.json()["status"] == "completed"

    def test_overdue_flag(self, client, community, member, login):
        past = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
        client.post(f"{API}/communities/{community['id']}/assigned-tasks", json={
            "title": "Atrasada", "description": "x", "deadline": past, "student_ids": [member],
        })
        login(member)
        assert client.get(f"{API}/assigned-tasks/mine").json()[0]["is_overdue"] is True

    def test_cannot_update_someone_elses_assignment(self, client, community, member, make_user, login):
        client.post(f"{API}/communities/{community['id']}/assigned-tasks", json={
            "title": "Tarefa", "description": "x", "student_ids": [member],
        })
        login(member)
        assignment_id = client.get(f"{API}/assigned-tasks/mine").json()[0]["id"]
        login(make_user("student"))
        resp = client.put(f"{API}/assigned-tasks/{assignment_id}/status", json={"status": "completed"})
        assert resp.status_code == 404

    def test_requires_a_student(self, client, community):
        resp = client.post(f"{API}/communities/{community['id']}/assigned-tasks", json={
            "title": "Tarefa", "description": "x", "student_ids": [],
        })
        assert resp.status_code == 422

    def test_students_cannot_assign(self, client, community, member, login):
        login(member)
        resp = client.post(f"{API}/communities/{community['id']}/assigned-tasks", json={
            "title": "Tarefa", "description": "x", "student_ids": [member],
        })
        assert resp.status_code == 403
