"""Tests for scheduled events, RSVPs and individual studies."""

from datetime import date, datetime, timedelta, timezone

import pytest

from proske.modules.events.study_scheduler import create_scheduled_studies, js_day_of_week, plan_study_slots
from proske.modules.profiles.schemas import StudyScheduleSlot
from tests.conftest import API


def _future_day(days=10):
    return (date.today() + timedelta(days=days)).isoformat()


@pytest.fixture
def group_with_members(db, community, make_user):
    group = db.seed("conversation_groups", community_id=community["id"], name="Turma A", created_by=community["created_by"])
    members = [make_user("student", name="Aluno A"), make_user("student", name="Aluno B")]
    for user_id in members:
        db.seed("group_members", group_id=group["id"], user_id=user_id)
    return group, members


@pytest.fixture
def enroll(db, community, make_user):
    """Factory for a student who belongs to the community"""
    def _enroll(**profile):
        user_id = make_user("student", **profile)
        db.seed("community_members", community_id=community["id"], user_id=user_id)
        return user_id
    return _enroll


def _create_event(client, community, group, **overrides):
    payload = {
        "title": "Aula ao vivo",
        "event_date": _future_day(),
        "event_time": "19:00:00",
        "group_ids": [group["id"]],
        "event_type": "live",
        **overrides,
    }
    return client.post(f"{API}/communities/{community['id']}/events", json=payload)


class TestScheduledEvents:
    def test_members_become_pending_participants(self, client, db, community, group_with_members):
        group, members = group_with_members
        resp = _create_event(client, community, group)
        assert resp.status_code == 201
        event = resp.json()
        assert event["group_ids"] == [group["id"]]
        assert event["group_names"] == ["Turma A"]
        participants = db.rows("event_participants", event_id=event["id"])
        assert sorted(p["user_id"] for p in participants) == sorted(members)
        assert all(p["status"] == "pending" for p in participants)

    def test_rsvp_updates_only_the_caller(self, client, db, community, group_with_members, login):
        group, (user_a, user_b) = group_with_members
        event = _create_event(client, community, group).json()

        login(user_a)
        resp = client.post(f"{API}/events/{event['id']}/rsvp", json={"status": "accepted"})
        assert resp.status_code == 200
        assert resp.json()["status"] == "accepted"

        statuses = {p["user_id"]: p["status"] for p in db.rows("event_participants", event_id=event["id"])}
        assert statuses == {user_a: "accepted", user_b: "pending"}

        resp = client.get(f"{API}/events/mine")
        assert resp.status_code == 200
        upcoming = resp.json()["upcoming"]
        assert [e["id"] for e in upcoming] == [event["id"]]
        assert upcoming[0]["my_status"] == "accepted"
        assert resp.json()["past"] == []

        assert client.get(f"{API}/events/{event['id']}").json()["my_status"] == "accepted"

    def test_rsvp_requires_invitation(self, client, community, group_with_members, make_user, login):
        group, _ = group_with_members
        event = _create_event(client, community, group).json()
        login(make_user("student"))
        resp = client.post(f"{API}/events/{event['id']}/rsvp", json={"status": "accepted"})
        assert resp.status_code == 403

    def test_past_events_are_read_only(self, client, db, community, group_with_members, login):
        group, (user_a, _) = group_with_members
        event = _create_event(client, community, group).json()
        past = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
        db.table("events").update({"event_date": past}).eq("id", event["id"]).execute()

        login(user_a)
        resp = client.post(f"{API}/events/{event['id']}/rsvp", json={"status": "declined"})
        assert resp.status_code == 400
        assert [e["id"] for e in client.get(f"{API}/events/mine").json()["past"]] == [event["id"]]

    def test_edit_recomputes_participants(self, client, db, community, group_with_members, make_user, login):
        group, (user_a, user_b) = group_with_members
        other = db.seed("conversation_groups", community_id=community["id"], name="Turma B", created_by=community["created_by"])
        user_c = make_user("student", name="Aluno C")
        db.seed("group_members", group_id=other["id"], user_id=user_c)
        db.seed("group_members", group_id=other["id"], user_id=user_a)

        event = _create_event(client, community, group).json()
        admin_id = event["created_by"]
        login(user_a)
        client.post(f"{API}/events/{event['id']}/rsvp", json={"status": "accepted"})

        login(admin_id)
        resp = client.put(f"{API}/events/{event['id']}", json={
            "title": "Aula ao vivo",
            "event_date": _future_day(12),
            "event_time": "20:00:00",
            "group_ids": [other["id"]],
        })
        assert resp.status_code == 200
        assert resp.json()["group_ids"] == [other["id"]]

        statuses = {p["user_id"]: p["status"] for p in db.rows("event_participants", event_id=event["id"])}
        assert statuses == {user_a: "accepted", user_c: "pending"}
        assert user_b not in statuses

    def test_groups_must_belong_to_community(self, client, db, community, admin):
        foreign = db.seed("communities", name="Física", subject="physics", created_by=admin)
        group = db.seed("conversation_groups", community_id=foreign["id"], name="Outra", created_by=admin)
        resp = _create_event(client, community, group)
        assert resp.status_code == 400

    def test_teacher_may_only_invite_own_groups(self, client, community, group_with_members, make_user, login):
        group, _ = group_with_members
        login(make_user("teacher"))
        resp = _create_event(client, community, group)
        assert resp.status_code == 403

    def test_requires_at_least_one_group(self, client, community):
        resp = client.post(f"{API}/communities/{community['id']}/events", json={
            "title": "Aula", "event_date": _future_day(), "event_time": "19:00:00", "group_ids": [],
        })
        assert resp.status_code == 422

    def test_delete_removes_participants(self, client, db, community, group_with_members):
        group, _ = group_with_members
        event = _create_event(client, community, group).json()
        assert client.delete(f"{API}/events/{event['id']}").status_code == 204
        assert db.rows("event_participants", event_id=event["id"]) == []
        assert db.rows("event_groups", event_id=event["id"]) == []


class TestIndividualStudies:
    def _create_study(self, client, community, **overrides):
        payload = {
            "event_date": _future_day(3),
            "event_time": "08:00:00",
            "duration_minutes": 45,
            "study_topic": "Escalas maiores",
            **overrides,
        }
        return client.post(f"{API}/communities/{community['id']}/studies", json=payload)

    def test_study_lifecycle_leaves_participants_untouched(self, client, db, community, group_with_members, login):
        group, (user_a, _) = group_with_members
        db.seed("community_members", community_id=community["id"], user_id=user_a)
        _create_event(client, community, group)
        before = [dict(p) for p in db.tables["event_participants"]]

        login(user_a)
        resp = self._create_study(client, community)
        assert resp.status_code == 201
        study = resp.json()
        assert study["kind"] == "individual_study"
        assert study["study_status"] == "pending"

        resp = client.post(f"{API}/studies/{study['id']}/reschedule", json={
            "event_date": _future_day(4), "event_time": "09:30:00",
        })
        assert resp.status_code == 200
        assert resp.json()["study_status"] == "rescheduled"

        assert client.delete(f"{API}/studies/{study['id']}").status_code == 204
        assert db.rows("events", id=study["id"]) == []
        assert db.tables["event_participants"] == before

    def test_complete_is_terminal(self, client, community, enroll, login):
        login(enroll())
        study = self._create_study(client, community).json()
        start = datetime.now(timezone.utc)
        body = {
            "actual_start_time": start.isoformat(),
            "actual_end_time": (start + timedelta(minutes=40)).isoformat(),
            "actual_study_notes": "Escalas em todas as tonalidades",
        }
        resp = client.post(f"{API}/studies/{study['id']}/complete", json=body)
        assert resp.status_code == 200
        assert resp.json()["study_status"] == "completed"
        assert resp.json()["actual_study_notes"] == "Escalas em todas as tonalidades"

        assert client.post(f"{API}/studies/{study['id']}/complete", json=body).status_code == 409
        resp = client.post(f"{API}/studies/{study['id']}/reschedule", json={
            "event_date": _future_day(5), "event_time": "10:00:00",
        })
        assert resp.status_code == 409

    def test_complete_rejects_inverted_times(self, client, community, enroll, login):
        login(enroll())
        study = self._create_study(client, community).json()
        start = datetime.now(timezone.utc)
        resp = client.post(f"{API}/studies/{study['id']}/complete", json={
            "actual_start_time": start.isoformat(),
            "actual_end_time": (start - timedelta(minutes=5)).isoformat(),
            "actual_study_notes": "x",
        })
        assert resp.status_code == 422

    def test_minimum_duration(self, client, community, enroll, login):
        login(enroll())
        assert self._create_study(client, community, duration_minutes=10).status_code == 422

    def test_only_owner_manages_study(self, client, community, enroll, login):
        login(enroll())
        study = self._create_study(client, community).json()
        login(enroll())
        assert client.delete(f"{API}/studies/{study['id']}").status_code == 403

    def test_studies_are_private_in_community_listing(self, client, community, enroll, login):
        owner = login(enroll())
        study = self._create_study(client, community).json()
        listed = client.get(f"{API}/communities/{community['id']}/events").json()
        assert [e["id"] for e in listed] == [study["id"]]
        assert listed[0]["created_by"] == owner

        login(enroll())
        assert client.get(f"{API}/communities/{community['id']}/events").json() == []

    def test_non_member_cannot_create_study(self, client, db, community, make_user, login):
        login(make_user("student"))
        assert self._create_study(client, community).status_code == 403
        assert client.get(f"{API}/communities/{community['id']}/events").status_code == 403
        assert db.rows("events", community_id=community["id"]) == []



class TestStudyPlanning:
    def test_js_day_of_week(self):
        assert js_day_of_week(date(2026, 10, 18)) == 0  # Sunday
        assert js_day_of_week(date(2026, 10, 24)) == 6  # Saturday

    def test_plans_future_slots_only(self):
        now = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)  # Monday
        schedule = [
            StudyScheduleSlot(dayOfWeek=1, time="08:00", topic="Arpejos"),
            StudyScheduleSlot(dayOfWeek=1, time="18:00"),
            StudyScheduleSlot(dayOfWeek=3, time="07:30"),
        ]
        planned = plan_study_slots(schedule, now, 7)
        assert [starts_at for starts_at, _ in planned] == [
            datetime(2026, 10, 19, 18, 0, tzinfo=timezone.utc),
            datetime(2026, 10, 21, 7, 30, tzinfo=timezone.utc),
        ]

    def test_create_scheduled_studies_skips_existing(self, db, make_user, community):
        user_id = make_user("student", study_schedule=[{"dayOfWeek": 3, "time": "07:30", "topic": "Leitura"}])
        db.seed("community_members", community_id=community["id"], user_id=user_id)
        now = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

        first = create_scheduled_studies(db, now=now, days_ahead=7)
        assert first.total_created == 1
        study = db.rows("events", created_by=user_id)[0]
        assert study["study_topic"] == "Leitura"
        assert study["community_id"] == community["id"]

        second = create_scheduled_studies(db, now=now, days_ahead=7)
        assert second.total_created == 0
        assert len(db.rows("events", created_by=user_id)) == 1

    def test_skips_invalid_schedules(self, db, make_user, community):
        user_id = make_user("student", study_schedule=[{"dayOfWeek": 9, "time": "25:00"}])
        db.seed("community_members", community_id=community["id"], user_id=user_id)
        result = create_scheduled_studies(db, now=datetime(2026, 10, 19, tzinfo=timezone.utc), days_ahead=7)
        assert result.total_created == 0
        assert result.profiles_processed == 1
