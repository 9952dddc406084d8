"""API tests for the moderation queue, decisions, revert and history."""

from conftest import ALICE_ID, BOB_ID, MODERATOR_ID, bot_headers
from fastapi.testclient import TestClient

VALID = {
    "name": "Sunset Glow",
    "description": "Warm oranges for evening glamours",
    "category_id": "aesthetics",
    "dyes": [5, 3, 9],
}
MOD = bot_headers(MODERATOR_ID)


def _submit(client: TestClient, **overrides) -> dict:
    resp = client.post(
        "/api/v1/presets", json={**VALID, **overrides}, headers=bot_headers(ALICE_ID),
    )
    assert resp.status_code == 201
    return resp.json()["preset"]


def _set_status(client: TestClient, preset_id: str, status: str, **extra):
    return client.patch(
        f"/api/v1/moderation/{preset_id}/status",
        json={"status": status, **extra},
        headers=MOD,
    )


class TestAccess:
    def test_anonymous(self, client: TestClient) -> None:
        assert client.get("/api/v1/moderation/pending").status_code == 401

    def test_non_moderator(self, client: TestClient) -> None:
        resp = client.get("/api/v1/moderation/pending", headers=bot_headers(BOB_ID))
        assert resp.status_code == 403


class TestQueue:
    def test_pending_and_flagged_oldest_first(self, client: TestClient) -> None:
        first = _submit(client, name="badword one", dyes=[1, 2])
        approved = _submit(client, dyes=[3, 4])
        _set_status(client, approved["id"], "flagged")
        resp = client.get("/api/v1/moderation/pending", headers=MOD)
        assert resp.status_code == 200
        assert [p["id"] for p in resp.json()] == [first["id"], approved["id"]]


class TestStatusChange:
    def test_approve_pending(self, client: TestClient) -> None:
        preset = _submit(client, name="badword", dyes=[1, 2])
        resp = _set_status(client, preset["id"], "approved", reason="False positive")
        assert resp.status_code == 200
        assert resp.json()["preset"]["status"] == "approved"

    def test_reject_is_terminal(self, client: TestClient) -> None:
        preset = _submit(client, name="badword", dyes=[1, 2])
        assert _set_status(client, preset["id"], "rejected").status_code == 200
        assert _set_status(client, preset["id"], "approved").status_code == 409

    def test_invalid_status_value(self, client: TestClient) -> None:
        preset = _submit(client)
        assert _set_status(client, preset["id"], "hidden").status_code == 422

    def test_missing_preset(self, client: TestClient) -> None:
        assert _set_status(client, "nope", "approved").status_code == 404

    def test_history_recorded(self, client: TestClient) -> None:
        preset = _submit(client, name="badword", dyes=[1, 2])
        _set_status(client, preset["id"], "flagged", reason="Looking closer")
        _set_status(client, preset["id"], "approved")
        resp = client.get(f"/api/v1/moderation/{preset['id']}/history", headers=MOD)
        assert resp.status_code == 200
        entries = resp.json()["entries"]
        assert [e["action"] for e in entries] == ["flag", "approve"]
        assert entries[0]["reason"] == "Looking closer"
        assert entries[0]["moderator_discord_id"] == MODERATOR_ID

    def test_history_missing_preset(self, client: TestClient) -> None:
        resp = client.get("/api/v1/moderation/nope/history", headers=MOD)
        assert resp.status_code == 404


class TestRevert:
    def test_revert_flagged_edit(self, client: TestClient) -> None:
        preset = _submit(client)
        client.patch(
            f"/api/v1/presets/{preset['id']}",
            json={"name": "badword glow", "dyes": [7, 8]},
            headers=bot_headers(ALICE_ID),
        )
        resp = client.put(f"/api/v1/moderation/{preset['id']}/revert", headers=MOD)
        assert resp.status_code == 200
        reverted = resp.json()["preset"]
        assert reverted["status"] == "approved"
        assert reverted["name"] == "Sunset Glow"
        assert reverted["dyes"] == [5, 3, 9]
        assert reverted["previous_values"] is None

        history = client.get(
            f"/api/v1/moderation/{preset['id']}/history", headers=MOD,
        ).json()["entries"]
        assert [e["action"] for e in history] == ["revert"]

    def test_revert_without_snapshot(self, client: TestClient) -> None:
        preset = _submit(client)
        resp = client.put(f"/api/v1/moderation/{preset['id']}/revert", headers=MOD)
        assert resp.status_code == 409

    def test_revert_missing(self, client: TestClient) -> None:
        resp = client.put("/api/v1/moderation/nope/revert", headers=MOD)
        assert resp.status_code == 404
