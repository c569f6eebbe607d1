# tests/test_community_api.py
from conftest import manual_trade, register


def share(client, headers, **extra):
    trade = client.post("/api/trades", json=manual_trade(), headers=headers).json()
    response = client.post("/api/community/share", json={"analysisId": trade["id"], **extra}, headers=headers)
    assert response.status_code == 201, response.text
    return trade, response.json()


def test_share_snapshot_in_feed(client, auth_headers):
    trade, shared = share(client, auth_headers, title="EURUSD breakout")
    assert shared["title"] == "EURUSD breakout"
    assert shared["userName"] == "Test Trader"
    assert shared["tradeAnalysis"]["id"] == trade["id"]
    assert shared["tradeAnalysis"]["tradeSetup"]["tradeType"] == "Long"

    viewer = register(client, email="viewer@example.com", name="Viewer")
    feed = client.get("/api/community", headers=viewer).json()
    assert [s["id"] for s in feed] == [shared["id"]]
    assert feed[0]["userLike"] is None


def test_default_title_and_missing_trade(client, auth_headers):
    _, shared = share(client, auth_headers)
    assert shared["title"].startswith("Shared Analysis - Long ")
    response = client.post("/api/community/share", json={"analysisId": "missing"}, headers=auth_headers)
    assert response.status_code == 404


def test_snapshot_survives_trade_changes(client, auth_headers):
    trade, shared = share(client, auth_headers)
    client.patch(
        f"/api/trades/{trade['id']}/status", json={"status": "profit", "outcomeAmount": 10}, headers=auth_headers
    )
    client.delete(f"/api/trades/{trade['id']}", headers=auth_headers)

    feed = client.get("/api/community", headers=auth_headers).json()
    assert len(feed) == 1
    assert feed[0]["tradeAnalysis"]["status"] == "pending"


def test_resharing_updates_text_only(client, auth_headers):
    trade, shared = share(client, auth_headers, title="First")
    again = client.post(
        "/api/community/share",
        json={"analysisId": trade["id"], "title": "Second", "description": "Updated"},
        headers=auth_headers,
    ).json()
    assert again["id"] == shared["id"]
    assert again["title"] == "Second"
    assert len(client.get("/api/community", headers=auth_headers).json()) == 1


def test_comments(client, auth_headers):
    _, shared = share(client, auth_headers)
    viewer = register(client, email="viewer@example.com", name="Viewer")
    url = f"/api/community/{shared['id']}/comments"

    assert client.post(url, json={"content": "Nice setup"}, headers=viewer).status_code == 201
    assert client.post(url, json={"content": "Thanks"}, headers=auth_headers).status_code == 201
    assert client.post(url, json={"content": ""}, headers=viewer).status_code == 422

    comments = client.get(url, headers=viewer).json()
    assert [c["content"] for c in comments] == ["Nice setup", "Thanks"]
    assert [c["userName"] for c in comments] == ["Viewer", "Test Trader"]
    assert client.get("/api/community", headers=viewer).json()[0]["commentsCount"] == 2
    assert client.get("/api/community/missing/comments", headers=viewer).status_code == 404


def test_like_toggle(client, auth_headers):
    _, shared = share(client, auth_headers)
    viewer = register(client, email="viewer@example.com", name="Viewer")
    url = f"/api/community/{shared['id']}/like"

    liked = client.post(url, json={"likeType": "like"}, headers=viewer).json()
    assert (liked["likesCount"], liked["dislikesCount"], liked["userLike"]) == (1, 0, "like")
    assert liked["userName"] == "Test Trader"

    switched = client.post(url, json={"likeType": "dislike"}, headers=viewer).json()
    assert (switched["likesCount"], switched["dislikesCount"], switched["userLike"]) == (0, 1, "dislike")

    removed = client.post(url, json={"likeType": "dislike"}, headers=viewer).json()
    assert (removed["likesCount"], removed["dislikesCount"], removed["userLike"]) == (0, 0, None)

    assert client.post("/api/community/missing/like", json={"likeType": "like"}, headers=viewer).status_code == 404


def test_stats_and_unread(client, auth_headers):
    viewer = register(client, email="viewer@example.com", name="Viewer")
    assert client.post("/api/community/read", headers=viewer).status_code == 204

    share(client, auth_headers)
    share(client, auth_headers)
    stats = client.get("/api/community/stats", headers=viewer).json()
    assert stats["totalAnalyses"] == 2
    assert stats["unreadCount"] == 2

    client.post("/api/community/read", headers=viewer)
    assert client.get("/api/community/stats", headers=viewer).json()["unreadCount"] == 0
