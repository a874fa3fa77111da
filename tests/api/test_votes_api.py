from __future__ import annotations

from uuid import uuid4


def _seed(client) -> tuple[str, str]:
    deal = client.post("/api/deals", json={"company_name": "Quill AI"}).json()
    partner = client.post(
        "/api/limited-partners", json={"name": "Jordan Blake", "email": "jordan@example.com"}
    ).json()
    return deal["id"], partner["id"]


def test_submit_vote_twice_merges(client):
    deal_id, lp_id = _seed(client)
    first = client.post(
        "/api/votes",
        json={"deal_id": deal_id, "lp_id": lp_id, "conviction_level": 3, "comments": "Yes"},
    )
    assert first.status_code == 201
    second = client.post(
        "/api/votes", json={"deal_id": deal_id, "lp_id": lp_id, "would_buy": True}
    )
    assert second.status_code == 201
    assert second.json()["id"] == first.json()["id"]
    assert second.json()["conviction_level"] == 3
    assert second.json()["comments"] == "Yes"

    listing = client.get("/api/votes", params={"deal_id": deal_id}).json()
    assert len(listing) == 1
    assert listing[0]["lp_name"] == "Jordan Blake"
    assert listing[0]["deal_company_name"] == "Quill AI"


def test_submit_vote_without_identifiers_returns_400(client):
    response = client.post("/api/votes", json={"conviction_level": 3})
    assert response.status_code == 400


def test_submit_vote_for_unknown_deal_returns_404(client):
    _, lp_id = _seed(client)
    response = client.post("/api/votes", json={"deal_id": str(uuid4()), "lp_id": lp_id})
    assert response.status_code == 404


def test_invalid_conviction_level_is_rejected(client):
    deal_id, lp_id = _seed(client)
    response = client.post(
        "/api/votes", json={"deal_id": deal_id, "lp_id": lp_id, "conviction_level": 7}
    )
    assert response.status_code == 422


def test_update_and_delete_vote(client):
    deal_id, lp_id = _seed(client)
    vote = client.post(
        "/api/votes", json={"deal_id": deal_id, "lp_id": lp_id, "conviction_level": 4}
    ).json()

    response = client.put(f"/api/votes/{vote['id']}", json={"comments": "Raising allocation"})
    assert response.status_code == 200
    assert response.json()["conviction_level"] == 4
    assert response.json()["comments"] == "Raising allocation"

    response = client.delete(f"/api/votes/{vote['id']}")
    assert response.status_code == 200
    assert response.json()["deal_id"] == deal_id
    assert client.delete(f"/api/votes/{vote['id']}").status_code == 404


def test_deal_summary_counts_strong_no(client):
    deal_id, lp_id = _seed(client)
    other = client.post(
        "/api/limited-partners", json={"name": "Sam Ortiz", "email": "sam@example.com"}
    ).json()
    client.post("/api/votes", json={"deal_id": deal_id, "lp_id": lp_id, "conviction_level": 4})
    client.post(
        "/api/votes",
        json={"deal_id": deal_id, "lp_id": other["id"], "conviction_level": 1, "strong_no": True},
    )

    summary = client.get(f"/api/deals/{deal_id}", params={"include_votes": True}).json()[
        "vote_summary"
    ]
    assert summary["total_votes"] == 2
    assert summary["strong_no_votes"] == 1
    assert summary["net_score"] == 0
