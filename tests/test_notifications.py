"""Tests for notifications and profile-completeness notices."""

from proske.modules.notifications.service import profile_notices
from tests.conftest import API

COMPLETE_PROFILE = {
    "avatar_url": "https://storage.test/a.png",
    "city": "Olinda",
    "monitoring_frequency": "weekly",
    "monitoring_day_of_week": 0,
    "monitoring_time": "09:00",
}


class TestProfileNotices:
    def test_complete_profile_has_none(self):
        assert profile_notices(COMPLETE_PROFILE) == []

    def test_missing_fields(self):
        notices = profile_notices({**COMPLETE_PROFILE, "avatar_url": None, "monitoring_time": None})
        assert [n.id for n in notices] == ["avatar", "monitoring"]
        assert all(n.synthetic for n in notices)

    def test_sunday_counts_as_set(self):
        assert profile_notices({**COMPLETE_PROFILE, "monitoring_day_of_week": 0}) == []

    def test_no_profile(self):
        assert profile_notices(None) == []


class TestNotificationEndpoints:
    def test_notices_first_then_unread(self, client, db, make_user, login):
        user_id = login(make_user("student", city="Olinda"))
        older = db.seed("notifications", user_id=user_id, type="task_assigned", title="T1", message="m1", description="d1")
        newer = db.seed("notifications", user_id=user_id, type="task_reviewed", title="T2", message="m2", description="d2")
        db.seed("notifications", user_id=user_id, type="x", title="T3", message="m3", description="d3", is_read=True)

        items = client.get(f"{API}/notifications").json()
        assert [n["id"] for n in items] == ["avatar", "monitoring", newer["id"], older["id"]]

    def test_mark_read(self, client, db, make_user, login):
        user_id = login(make_user("student"))
        note = db.seed("notifications", user_id=user_id, type="x", title="T", message="m", description="d")
        assert client.post(f"{API}/notifications/{note['id']}/read").status_code == 204
        assert db.rows("notifications", id=note["id"])[0]["is_read"] is True

    def test_profile_notice_ids_are_ignored(self, client, make_user, login):
        login(make_user("student"))
        assert client.post(f"{API}/notifications/avatar/read").status_code == 204

    def test_cannot_mark_someone_elses(self, client, db, make_user, login):
        note = db.seed("notifications", user_id=make_user("student"), type="x", title="T", message="m", description="d")
        login(make_user("student"))
        assert client.post(f"{API}/notifications/{note['id']}/read").status_code == 404
