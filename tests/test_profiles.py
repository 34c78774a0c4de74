"""Tests for profiles and roles."""

from proske.modules.profiles.service import format_name
from proske.modules.roles.service import normalize_roles, primary_role
from tests.conftest import API


class TestFormatName:
    def test_capitalizes_each_word(self):
        assert format_name("maria DA silva") == "Maria Da Silva"

    def test_trims_outer_spaces(self):
        assert format_name(" joão ") == "João"


class TestRoles:
    def test_visitor_is_guest(self):
        assert normalize_roles(["visitor", "student", "guest"]) == ["guest", "student"]

    def test_unknown_roles_dropped(self):
        assert normalize_roles(["superuser"]) == []

    def test_primary_role(self):
        assert primary_role(["student", "teacher"]) == "teacher"
        assert primary_role([]) == "student"


class TestProfileEndpoints:
    def test_update_my_profile(self, client, make_user, login):
        login(make_user("student", name="Ana"))
        resp = client.put(f"{API}/profiles/me", json={
            "name": "ana clara",
            "city": "Recife",
            "study_schedule": [{"dayOfWeek": 2, "time": "07:00", "topic": "Leitura"}],
        })
        assert resp.status_code == 200
        profile = resp.json()
        assert profile["name"] == "Ana Clara"
        assert profile["city"] == "Recife"
        assert profile["study_schedule"] == [{"dayOfWeek": 2, "time": "07:00", "topic": "Leitura"}]

    def test_invalid_schedule_time(self, client, make_user, login):
        login(make_user("student"))
        resp = client.put(f"{API}/profiles/me", json={"study_schedule": [{"dayOfWeek": 2, "time": "7h"}]})
        assert resp.status_code == 422

    def test_upload_avatar(self, client, db, make_user, login):
        user_id = login(make_user("student"))
        resp = client.post(
            f"{API}/profiles/me/avatar",
            files={"file": ("me.png", b"\x89PNG fake", "image/png")}
        )
        assert resp.status_code == 200
        assert resp.json()["avatar_url"] == f"https://storage.test/avatars/{user_id}/avatar.png"
        assert ("avatars", f"{user_id}/avatar.png") in db.storage.files

    def test_avatar_rejects_other_types(self, client, make_user, login):
        login(make_user("student"))
        resp = client.post(f"{API}/profiles/me/avatar", files={"file": ("a.txt", b"hi", "text/plain")})
        assert resp.status_code == 400

    def test_students_cannot_read_others(self, client, make_user, login):
        other = make_user("student")
        login(make_user("student"))
        assert client.get(f"{API}/profiles/{other}").status_code == 403

    def test_teacher_lists_profiles(self, client, make_user, login):
        make_user("student", name="Zeca")
        login(make_user("teacher", name="Bia"))
        names = [p["name"] for p in client.get(f"{API}/profiles", params={"search": "zec"}).json()]
        assert names == ["Zeca"]
