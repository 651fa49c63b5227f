"""
tests/test_records_routes.py -- Integration tests for the /roles and /teams CRUD routes.

Both entity kinds are served by the same router factory, so most cases run
against both through pytest parametrization.

Coverage:
  - Auth: every route is 401 without a bearer token
  - Create -> get round-trip; audit stamps carry the acting user's id and name
  - Update renames and restamps updated_by; code is unchanged
  - Delete then get is 404 with the "Cannot find <entity> with id <id>" message
  - Validation: missing name/code is 422; bad sort_by / sort_dir / per_page is 422
  - Listing: default sort created_at desc, sort_by=name asc ordering, pagination envelope
  - Store failures on create/update are a generic 500 that hides the database error
"""

from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from conftest import ApiHarness

KINDS = [("roles", "role"), ("teams", "team")]


def _create(h: ApiHarness, plural: str, name: str, code: str):
    return h.client.post(f"/{plural}", json={"name": name, "code": code}, headers=h.headers)


@pytest.mark.parametrize("plural,kind", KINDS)
class TestRecordAuth:
    def test_list_unauthenticated(self, api_client: ApiHarness, plural: str, kind: str) -> None:
        assert api_client.client.get(f"/{plural}").status_code == 401

    def test_create_unauthenticated(self, api_client: ApiHarness, plural: str, kind: str) -> None:
        resp = api_client.client.post(f"/{plural}", json={"name": "X", "code": "x"})
        assert resp.status_code == 401

    def test_detail_update_delete_unauthenticated(self, api_client: ApiHarness, plural: str, kind: str) -> None:
        c = api_client.client
        assert c.get(f"/{plural}/1").status_code == 401
        assert c.put(f"/{plural}/1", json={"name": "Y"}).status_code == 401
        assert c.delete(f"/{plural}/1").status_code == 401


@pytest.mark.parametrize("plural,kind", KINDS)
class TestRecordCrud:
    def test_create_then_get_round_trip(self, api_client: ApiHarness, plural: str, kind: str) -> None:
        h = api_client
        resp = _create(h, plural, "Admin", "admin")
        assert resp.status_code == 201, resp.text
        created = resp.json()["data"]
        assert created["name"] == "Admin"
        assert created["code"] == "admin"

        resp = h.client.get(f"/{plural}/{created['id']}", headers=h.headers)
        assert resp.status_code == 200
        fetched = resp.json()["data"]
        assert fetched["name"] == "Admin"
        assert fetched["code"] == "admin"
        assert fetched == created

    def test_create_stamps_acting_user(self, api_client: ApiHarness, plural: str, kind: str) -> None:
        h = api_client
        data = _create(h, plural, "Stamped", "stamped").json()["data"]
        expected = {"id": h.user.id, "name": "Ada Lovelace"}
        assert data["created_by"] == expected
        assert data["updated_by"] == expected
        assert data["created_at"] and data["updated_at"]

    def test_update_renames_and_restamps(self, api_client: ApiHarness, plural: str, kind: str) -> None:
        h = api_client
        created = _create(h, plural, "Before", "before").json()["data"]

        resp = h.client.put(f"/{plural}/{created['id']}", json={"name": "After"}, headers=h.headers)
        assert resp.status_code == 200, resp.text
        updated = resp.json()["data"]
        assert updated["name"] == "After"
        assert updated["code"] == "before"
        assert updated["created_at"] == created["created_at"]
        assert updated["updated_at"] >= created["updated_at"]
        assert updated["updated_by"] == {"id": h.user.id, "name": "Ada Lovelace"}

    def test_update_missing_is_404(self, api_client: ApiHarness, plural: str, kind: str) -> None:
        h = api_client
        resp = h.client.put(f"/{plural}/999999", json={"name": "Ghost"}, headers=h.headers)
        assert resp.status_code == 404
        assert resp.json() == {"error": {"code": 404, "message": f"Cannot find {kind} with id 999999"}}

    def test_delete_then_get_is_404(self, api_client: ApiHarness, plural: str, kind: str) -> None:
        h = api_client
        record_id = _create(h, plural, "Doomed", "doomed").json()["data"]["id"]

        resp = h.client.delete(f"/{plural}/{record_id}", headers=h.headers)
        assert resp.status_code == 204
        assert resp.content == b""

        resp = h.client.get(f"/{plural}/{record_id}", headers=h.headers)
        assert resp.status_code == 404
        assert resp.json()["error"] == {"code": 404, "message": f"Cannot find {kind} with id {record_id}"}

        assert h.client.delete(f"/{plural}/{record_id}", headers=h.headers).status_code == 404

    def test_create_requires_name_and_code(self, api_client: ApiHarness, plural: str, kind: str) -> None:
        h = api_client
        resp = h.client.post(f"/{plural}", json={"name": "No code"}, headers=h.headers)
        assert resp.status_code == 422
        assert "code" in resp.json()["error"]["errors"]

        resp = h.client.post(f"/{plural}", json={"name": "   ", "code": "blank"}, headers=h.headers)
        assert resp.status_code == 422
        assert "name" in resp.json()["error"]["errors"]

    def test_update_requires_name(self, api_client: ApiHarness, plural: str, kind: str) -> None:
        h = api_client
        record_id = _create(h, plural, "Named", "named").json()["data"]["id"]
        resp = h.client.put(f"/{plural}/{record_id}", json={}, headers=h.headers)
        assert resp.status_code == 422
        assert "name" in resp.json()["error"]["errors"]

    def test_non_integer_id_is_422(self, api_client: ApiHarness, plural: str, kind: str) -> None:
        resp = api_client.client.get(f"/{plural}/abc", headers=api_client.headers)
        assert resp.status_code == 422


@pytest.mark.parametrize("plural,kind", KINDS)
class TestRecordListing:
    def test_list_envelope_shape(self, api_client: ApiHarness, plural: str, kind: str) -> None:
        h = api_client
        _create(h, plural, "Envelope", "envelope")
        resp = h.client.get(f"/{plural}", headers=h.headers)
        assert resp.status_code == 200
        body = resp.json()
        for key in (
            "current_page",
            "data",
            "first_page_url",
            "from",
            "last_page",
            "last_page_url",
            "links",
            "next_page_url",
            "path",
            "per_page",
            "prev_page_url",
            "to",
            "total",
        ):
            assert key in body, key
        assert body["current_page"] == 1
        assert body["per_page"] == 10
        assert body["from"] == 1
        assert body["prev_page_url"] is None
        assert body["path"].endswith(f"/{plural}")

    def test_sort_by_name_ascending(self, api_client: ApiHarness, plural: str, kind: str) -> None:
        h = api_client
        for name in ("Charlie", "alpha", "Bravo", "Delta"):
            _create(h, plural, name, name.lower())
        resp = h.client.get(f"/{plural}?sort_by=name&sort_dir=asc&per_page=100", headers=h.headers)
        assert resp.status_code == 200
        names = [r["name"] for r in resp.json()["data"]]
        assert names == sorted(names)

    def test_sort_by_name_descending(self, api_client: ApiHarness, plural: str, kind: str) -> None:
        h = api_client
        resp = h.client.get(f"/{plural}?sort_by=name&sort_dir=desc&per_page=100", headers=h.headers)
        names = [r["name"] for r in resp.json()["data"]]
        assert names == sorted(names, reverse=True)

    def test_default_sort_newest_first(self, api_client: ApiHarness, plural: str, kind: str) -> None:
        h = api_client
        newest = _create(h, plural, "Newest", "newest").json()["data"]
        resp = h.client.get(f"/{plural}", headers=h.headers)
        assert resp.json()["data"][0]["id"] == newest["id"]

    def test_pagination(self, api_client: ApiHarness, plural: str, kind: str) -> None:
        h = api_client
        for i in range(5):
            _create(h, plural, f"Paged {i}", f"paged-{i}")
        total = h.client.get(f"/{plural}", headers=h.headers).json()["total"]

        resp = h.client.get(f"/{plural}?per_page=2&page=2&sort_by=id&sort_dir=asc", headers=h.headers)
        body = resp.json()
        assert body["current_page"] == 2
        assert body["per_page"] == 2
        assert body["total"] == total
        assert body["last_page"] == (total + 1) // 2
        assert body["from"] == 3
        assert body["to"] == 4
        assert len(body["data"]) == 2
        assert "page=1" in body["prev_page_url"]
        assert "per_page=2" in body["prev_page_url"]
        assert [link for link in body["links"] if link["active"]] == [
            {"url": body["links"][2]["url"], "label": "2", "active": True}
        ]

        ids = [r["id"] for r in body["data"]]
        assert ids == sorted(ids)

    def test_page_past_the_end_is_empty(self, api_client: ApiHarness, plural: str, kind: str) -> None:
        h = api_client
        body = h.client.get(f"/{plural}?page=9999", headers=h.headers).json()
        assert body["data"] == []
        assert body["from"] is None
        assert body["to"] is None
        assert body["next_page_url"] is None

    @pytest.mark.parametrize(
        "query",
        ["sort_by=password", "sort_dir=sideways", "per_page=0", "per_page=1000", "page=0"],
    )
    def test_invalid_list_params_are_422(self, api_client: ApiHarness, plural: str, kind: str, query: str) -> None:
        resp = api_client.client.get(f"/{plural}?{query}", headers=api_client.headers)
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == 422


def test_roles_and_teams_are_separate(api_client: ApiHarness) -> None:
    h = api_client
    role_id = _create(h, "roles", "Only a role", "only-role").json()["data"]["id"]
    teams = h.client.get("/teams?per_page=100", headers=h.headers).json()["data"]
    assert "Only a role" not in [t["name"] for t in teams]
    assert h.client.get(f"/roles/{role_id}", headers=h.headers).status_code == 200


@pytest.mark.parametrize("plural,kind", KINDS)
class TestRecordStorageFailure:
    def test_create_failure_is_generic_500(
        self, api_client: ApiHarness, plural: str, kind: str, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        h = api_client

        def _broken_create(*args, **kwargs):
            raise OperationalError("INSERT INTO roles", {}, Exception("disk I/O error at /var/db"))

        monkeypatch.setattr(h.org_store, "create", _broken_create)
        resp = _create(h, plural, "Unsaved", "unsaved")
        assert resp.status_code == 500
        assert resp.json() == {"error": {"code": 500, "message": f"Failed to create {kind}"}}
        assert "disk I/O" not in resp.text
        assert "INSERT" not in resp.text

    def test_update_failure_is_generic_500(
        self, api_client: ApiHarness, plural: str, kind: str, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        h = api_client
        record_id = _create(h, plural, "Stuck", "stuck").json()["data"]["id"]

        def _broken_update(*args, **kwargs):
            raise OperationalError("UPDATE roles", {}, Exception("database is locked"))

        monkeypatch.setattr(h.org_store, "update", _broken_update)
        resp = h.client.put(f"/{plural}/{record_id}", json={"name": "Renamed"}, headers=h.headers)
        assert resp.status_code == 500
        assert resp.json() == {"error": {"code": 500, "message": f"Failed to update {kind}"}}
        assert "locked" not in resp.text

        monkeypatch.undo()
        assert h.client.get(f"/{plural}/{record_id}", headers=h.headers).json()["data"]["name"] == "Stuck"

    def test_oversized_id_is_404(self, api_client: ApiHarness, plural: str, kind: str) -> None:
        h = api_client
        huge = "99999999999999999999999"
        for method in ("get", "delete"):
            resp = getattr(h.client, method)(f"/{plural}/{huge}", headers=h.headers)
            assert resp.status_code == 404, method
            assert resp.json()["error"]["message"] == f"Cannot find {kind} with id {huge}"
        resp = h.client.put(f"/{plural}/{huge}", json={"name": "Ghost"}, headers=h.headers)
        assert resp.status_code == 404
