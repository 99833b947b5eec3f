"""Tests pour les endpoints de santé et de notifications."""

from petcare.core.http_constants import HTTP_OK, HTTP_UNAUTHORIZED
from tests.helpers import signup_and_login


def test_health(client):
    """Teste que l'endpoint de santé retourne un statut OK et le stockage utilisé."""
    r = client.get("/health")
    assert r.status_code == HTTP_OK
    body = r.json()
    assert body["status"] == "ok"
    assert body["storage"] == "memory"
    assert body["sessions"] == 0


def test_notifications_are_drained(client):
    headers = signup_and_login(client)
    client.post("/premium/activate", headers=headers)

    notes = client.get("/notifications", headers=headers).json()
    assert [n["code"] for n in notes] == ["premium_activated"]
    assert notes[0]["level"] == "success"
    assert client.get("/notifications", headers=headers).json() == []


def test_notifications_require_session(client):
    assert client.get("/notifications").status_code == HTTP_UNAUTHORIZED
