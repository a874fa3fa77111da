from __future__ import annotations

from uuid import uuid4


def test_partner_crud_and_cascade(client, repository):
    created = client.post(
        "/api/limited-partners",
        json={
            "name": "Elena Fischer",
            "email": "elena@example.com",
            "partner_type": "venture_partner",
            "expertise_areas": ["fintech"],
        },
    )
    assert created.status_code == 201
    lp_id = created.json()["id"]
    assert client.get(f"/api/limited-partners/{lp_id}").json()["partner_type"] == "venture_partner"
    assert [entry["id"] for entry in client.get("/api/limited-partners").json()] == [lp_id]

    deal = client.post("/api/deals", json={"company_name": "Orbit Pay"}).json()
    vote = client.post(
        "/api/votes", json={"deal_id": deal["id"], "lp_id": lp_id, "conviction_level": 4}
    ).json()
    client.post(f"/api/intro-requests/{vote['id']}/send")

    response = client.delete(f"/api/limited-partners/{lp_id}")
    assert response.status_code == 204
    assert client.get(f"/api/limited-partners/{lp_id}").status_code == 404
    assert client.get("/api/votes").json() == []
    assert repository.list_introductions() == []


def test_partner_put_and_patch_update_fields(client):
    created = client.post(
        "/api/limited-partners",
        json={"name": "Jonas Berg", "email": "jonas@example.com", "company": "Berg Capital"},
    ).json()
    lp_id = created["id"]

    response = client.patch(f"/api/limited-partners/{lp_id}", json={"title": "Partner"})
    assert response.status_code == 200
    assert response.json()["title"] == "Partner"
    assert response.json()["company"] == "Berg Capital"

    response = client.put(
        f"/api/limited-partners/{lp_id}", json={"company": None, "status": "inactive"}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["company"] is None
    assert body["status"] == "inactive"
    assert body["title"] == "Partner"

    assert client.patch(f"/api/limited-partners/{uuid4()}", json={}).status_code == 404
    bad = client.patch(f"/api/limited-partners/{lp_id}", json={"email": "nope"})
    assert bad.status_code == 422


def test_invalid_email_is_rejected(client):
    response = client.post("/api/limited-partners", json={"name": "No Mail", "email": "nope"})
    assert response.status_code == 422


def test_delete_unknown_partner_returns_404(client):
    assert client.delete(f"/api/limited-partners/{uuid4()}").status_code == 404
