# tests/test_account_api.py
from chartjournal import ai_service, crud


def test_profile_update(client, auth_headers):
    response = client.put(
        "/api/users/me/profile", json={"name": "Swing King", "description": "Patient."}, headers=auth_headers
    )
    assert response.status_code == 200
    assert response.json()["name"] == "Swing King"
    assert response.json()["description"] == "Patient."

    too_long = {"name": "Swing King", "description": "x" * 201}
    assert client.put("/api/users/me/profile", json=too_long, headers=auth_headers).status_code == 422


def test_capital_and_withdrawal(client, auth_headers):
    response = client.put("/api/users/me/capital", json={"capital": 1000}, headers=auth_headers)
    assert response.json()["initialCapital"] == 1000

    rejected = client.post("/api/users/me/withdraw", json={"amount": 1200}, headers=auth_headers)
    assert rejected.status_code == 400
    assert rejected.json()["detail"] == "Withdrawal amount exceeds available capital."
    assert client.get("/api/auth/me", headers=auth_headers).json()["initialCapital"] == 1000

    accepted = client.post("/api/users/me/withdraw", json={"amount": 250}, headers=auth_headers)
    assert accepted.status_code == 200
    assert accepted.json()["initialCapital"] == 750

    assert client.post("/api/users/me/withdraw", json={"amount": 0}, headers=auth_headers).status_code == 422
    assert client.put("/api/users/me/capital", json={"capital": -1}, headers=auth_headers).status_code == 422


def test_api_status_idle_without_key(client, auth_headers):
    assert client.get("/api/settings/api-status", headers=auth_headers).json() == {"status": "idle"}


def test_store_gemini_key(client, auth_headers, db, monkeypatch):
    checked = []
    monkeypatch.setattr(ai_service, "verify_api_key", lambda key: checked.append(key) or key == "good-key")

    response = client.put("/api/settings/gemini-key", json={"apiKey": "  good-key "}, headers=auth_headers)
    assert response.json() == {"status": "valid"}
    assert crud.get_gemini_api_key(db) == "good-key"
    assert client.get("/api/settings/api-status", headers=auth_headers).json() == {"status": "valid"}

    response = client.put("/api/settings/gemini-key", json={"apiKey": "bad-key"}, headers=auth_headers)
    assert response.json() == {"status": "invalid"}
    assert checked == ["good-key", "good-key", "bad-key"]

    assert client.put("/api/settings/gemini-key", json={"apiKey": "   "}, headers=auth_headers).status_code == 422
