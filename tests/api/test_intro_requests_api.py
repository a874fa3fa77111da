from __future__ import annotations

from uuid import uuid4


def _seed(client) -> tuple[str, str]:
    deal = client.post(
        "/api/deals",
        json={"company_name": "Tidal Grid", "founders": [{"name": "Ola Nwosu"}]},
    ).json()
    partner = client.post(
        "/api/limited-partners", json={"name": "Priya Raman", "email": "priya@example.com"}
    ).json()
    return deal["id"], partner["id"]


def test_qualifying_vote_is_listed_with_context(client):
    deal_id, lp_id = _seed(client)
    vote = client.post(
        "/api/votes",
        json={
            "deal_id": deal_id,
            "lp_id": lp_id,
            "conviction_level": 1,
            "would_buy": True,
            "buying_interest_response": "absolutely",
        },
    ).json()

    response = client.get("/api/intro-requests")
    assert response.status_code == 200
    [candidate] = response.json()
    assert candidate["vote_id"] == vote["id"]
    assert candidate["intro_status"] is None
    assert candidate["lp_email"] == "priya@example.com"
    assert candidate["company_name"] == "Tidal Grid"
    assert [founder["name"] for founder in candidate["founders"]] == ["Ola Nwosu"]


def test_manual_request_then_send_and_resend(client, mailer):
    deal_id, lp_id = _seed(client)
    response = client.post(
        "/api/intro-requests/manual",
        json={"deal_id": deal_id, "lp_id": lp_id, "message": "Please connect"},
    )
    assert response.status_code == 201
    vote_id = response.json()["vote_id"]
    assert response.json()["status"] == "pending"

    send = client.post(
        f"/api/intro-requests/{vote_id}/send",
        json={"message": "Hi both", "lp_email": "priya@example.com"},
    )
    assert send.status_code == 200
    assert send.json()["status"] == "sent"
    resend = client.post(f"/api/intro-requests/{vote_id}/send", json={"message": "Bumping"})
    assert resend.status_code == 200

    [candidate] = client.get("/api/intro-requests").json()
    assert candidate["intro_status"] == "sent"
    assert candidate["intro_message"] == "Bumping"
    assert len(mailer.outbox) == 1


def test_manual_request_without_identifiers_returns_400(client):
    response = client.post("/api/intro-requests/manual", json={"message": "?"})
    assert response.status_code == 400


def test_send_after_decline_overwrites_status(client):
    deal_id, lp_id = _seed(client)
    vote = client.post(
        "/api/votes", json={"deal_id": deal_id, "lp_id": lp_id, "conviction_level": 3}
    ).json()

    response = client.post(f"/api/intro-requests/{vote['id']}/decline")
    assert response.status_code == 200
    assert response.json()["status"] == "declined"

    response = client.post(f"/api/intro-requests/{vote['id']}/send", json={"message": "Late"})
    assert response.status_code == 200
    assert response.json()["status"] == "sent"

    response = client.post(f"/api/intro-requests/{vote['id']}/decline")
    assert response.status_code == 200
    [candidate] = client.get("/api/intro-requests").json()
    assert candidate["intro_status"] == "declined"
    assert candidate["intro_message"] == "Late"


def test_send_for_unknown_vote_returns_404(client):
    assert client.post(f"/api/intro-requests/{uuid4()}/send").status_code == 404
