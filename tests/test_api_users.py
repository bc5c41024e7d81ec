"""
tests/test_api_users.py -- Integration tests for api/routes/v1/users.py.

Coverage:
  - authors directory lists authors and admins only, by name, without emails
  - profile update changes only the supplied fields
  - role change is admin only and 404s for unknown users
  - public profile hides the email; "authors"/"profile" never match {user_id}
"""

from __future__ import annotations

from auth.models import Role

USERS = "/api/v1/users"


def test_authors_directory(api) -> None:
    api.make_user(Role.author, name="Zoe")
    api.make_user(Role.admin, name="Abe")
    api.make_user(Role.reader, name="Rae")
    resp = api.client.get(f"{USERS}/authors")
    assert resp.status_code == 200
    body = resp.json()
    assert [a["name"] for a in body["data"]] == ["Abe", "Zoe"]
    assert body["count"] == 2
    assert all("email" not in a for a in body["data"])


class TestProfileUpdate:
    def test_partial_update(self, api) -> None:
        user = api.make_user(name="Rae")
        resp = api.client.put(
            f"{USERS}/profile",
            json={"bio": "Writes things", "avatarUrl": "https://img.example/rae.png"},
            headers=api.headers_for(user),
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["name"] == "Rae"
        assert data["bio"] == "Writes things"
        assert data["avatarUrl"] == "https://img.example/rae.png"
        stored = api.user_store.find_by_id(user.id)
        assert stored.bio == "Writes things"

    def test_bio_too_long(self, api) -> None:
        user = api.make_user()
        resp = api.client.put(f"{USERS}/profile", json={"bio": "x" * 251}, headers=api.headers_for(user))
        assert resp.status_code == 400

    def test_requires_auth(self, api) -> None:
        assert api.client.put(f"{USERS}/profile", json={"bio": "x"}).status_code == 401


class TestRoleChange:
    def test_admin_promotes(self, api) -> None:
        admin = api.make_user(Role.admin)
        reader = api.make_user(Role.reader)
        resp = api.client.put(f"{USERS}/{reader.id}/role", json={"role": "author"}, headers=api.headers_for(admin))
        assert resp.status_code == 200
        assert resp.json()["data"]["role"] == "author"
        assert api.user_store.find_by_id(reader.id).role == Role.author

    def test_non_admin_forbidden(self, api) -> None:
        author = api.make_user(Role.author)
        reader = api.make_user(Role.reader)
        resp = api.client.put(f"{USERS}/{reader.id}/role", json={"role": "admin"}, headers=api.headers_for(author))
        assert resp.status_code == 403

    def test_unknown_user_and_bad_role(self, api) -> None:
        admin = api.make_user(Role.admin)
        headers = api.headers_for(admin)
        assert api.client.put(f"{USERS}/missing/role", json={"role": "author"}, headers=headers).status_code == 404
        assert api.client.put(f"{USERS}/{admin.id}/role", json={"role": "owner"}, headers=headers).status_code == 400


class TestPublicProfile:
    def test_no_email(self, api) -> None:
        user = api.make_user(Role.author, name="Zoe")
        resp = api.client.get(f"{USERS}/{user.id}")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["name"] == "Zoe"
        assert data["role"] == "author"
        assert "email" not in data

    def test_unknown_is_404(self, api) -> None:
        resp = api.client.get(f"{USERS}/missing")
        assert resp.status_code == 404
        assert resp.json() == {"success": False, "message": "User not found."}
