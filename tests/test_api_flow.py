from tests.fixtures_seed import INTERNAL_HEADERS, bootstrap_admin, bootstrap_developer


SUNSET = {
    "name": "Sunset Heights",
    "city": "Cape Town",
    "province": "Western Cape",
    "developmentType": "residential",
    "unitTypes": [{"name": "2 Bed", "bedrooms": 2, "bathrooms": 1, "basePriceFrom": 1500000}],
    "media": [],
}


async def test_requests_without_a_key_are_rejected(client):
    r = await client.get("/v1/developments")
    assert r.status_code == 401

    r = await client.get("/v1/developments", headers={"X-API-Key": "dp_nope_nope"})
    assert r.status_code == 401


async def test_bootstrap_requires_internal_key(client):
    r = await client.post("/v1/owners/bootstrap", json={"name": "Nobody"})
    assert r.status_code == 403

    r = await client.post("/v1/owners/bootstrap", headers={"X-Internal-Admin-Key": "wrong"}, json={"name": "Nobody"})
    assert r.status_code == 403


async def test_me(client):
    dev = await bootstrap_developer(client)
    r = await client.get("/v1/me", headers=dev["headers"])
    assert r.status_code == 200
    assert r.json()["role"] == "developer"
    assert r.json()["owner_id"] == dev["owner_id"]


async def test_sunset_heights_review_flow(client):
    dev = await bootstrap_developer(client)
    admin = await bootstrap_admin(client)

    # 1) save the wizard draft
    r = await client.post("/v1/developments", headers=dev["headers"], json=SUNSET)
    assert r.status_code == 201, r.text
    body = r.json()
    development = body["development"]
    dev_id = development["id"]
    assert development["approval_status"] == "draft"
    assert development["owner"] == {"kind": "individual", "id": dev["owner_id"]}
    assert development["price_display"] == {"value": "1500000.00"}
    assert len(development["unit_types"]) == 1
    assert body["readiness"]["score"] < 90
    assert body["errors"] == []

    # 2) publish is gated by readiness
    r = await client.post(f"/v1/developments/{dev_id}/publish", headers=dev["headers"])
    assert r.status_code == 409
    err = r.json()
    assert err["code"] == "precondition_failed"
    assert set(err["detail"]["missing"]) == {"media", "amenities"}

    r = await client.get(f"/v1/developments/{dev_id}/readiness", headers=dev["headers"])
    assert r.status_code == 200
    assert r.json()["can_publish"] is False

    # 3) commit the hero upload, add amenities
    r = await client.post(
        f"/v1/developments/{dev_id}/media",
        headers=dev["headers"],
        json={"url": "https://cdn.example.com/sunset/hero.jpg", "category": "hero"},
    )
    assert r.status_code == 201, r.text
    version = r.json()["development"]["version"]

    r = await client.patch(
        f"/v1/developments/{dev_id}",
        headers={**dev["headers"], "If-Match": str(version)},
        json={"amenities": "Pool, Gym, Clubhouse"},
    )
    assert r.status_code == 200, r.text
    assert r.json()["development"]["amenities"] == ["Pool", "Gym", "Clubhouse"]

    r = await client.get(f"/v1/developments/{dev_id}/readiness", headers=dev["headers"])
    assert r.json()["score"] >= 90
    assert r.json()["can_publish"] is True

    # 4) publish -> pending review
    r = await client.post(f"/v1/developments/{dev_id}/publish", headers=dev["headers"])
    assert r.status_code == 200, r.text
    pub = r.json()
    assert pub["auto_approved"] is False
    assert pub["development"]["approval_status"] == "pending"
    assert pub["submission"]["submission_type"] == "new"

    r = await client.get("/v1/admin/approval-queue", headers=admin["headers"])
    assert [e["development_id"] for e in r.json()] == [dev_id]

    # developers cannot review
    r = await client.post(f"/v1/admin/developments/{dev_id}/approve", headers=dev["headers"], json={})
    assert r.status_code == 403

    # 5) reject, edit (back to draft), resubmit, approve
    r = await client.post(
        f"/v1/admin/developments/{dev_id}/reject",
        headers=admin["headers"],
        json={"reason": "Add the show house address"},
    )
    assert r.status_code == 200, r.text
    assert r.json()["approval_status"] == "rejected"
    assert r.json()["rejection_reason"] == "Add the show house address"

    r = await client.patch(f"/v1/developments/{dev_id}", headers=dev["headers"], json={"address": "1 Beach Road"})
    assert r.json()["development"]["approval_status"] == "draft"

    r = await client.post(f"/v1/developments/{dev_id}/publish", headers=dev["headers"])
    assert r.json()["submission"]["submission_type"] == "update"

    r = await client.post(
        f"/v1/admin/developments/{dev_id}/approve",
        headers=admin["headers"],
        json={"compliance_checks": {"zoning": True}, "notes": "ok"},
    )
    assert r.status_code == 200, r.text
    assert r.json()["approval_status"] == "approved"
    assert r.json()["is_published"] is True

    # approved is terminal for publish
    r = await client.post(f"/v1/developments/{dev_id}/publish", headers=dev["headers"])
    assert r.status_code == 409
    assert r.json()["detail"]["currentStatus"] == "approved"

    r = await client.get(f"/v1/admin/developments/{dev_id}/submissions", headers=admin["headers"])
    assert [e["status"] for e in r.json()] == ["rejected", "approved"]

    r = await client.get("/v1/admin/approval-queue/analytics", headers=admin["headers"])
    stats = r.json()
    assert (stats["pending"], stats["rejected"], stats["manual_approved"]) == (0, 1, 1)


async def test_trusted_owner_publishes_immediately_and_idempotently(client):
    dev = await bootstrap_developer(client, trusted=True)
    ready = dict(
        SUNSET,
        amenities=["Pool", "Gym", "Clubhouse"],
        media=[{"url": "https://cdn.example.com/sunset/hero.jpg", "category": "featured"}],
    )
    r = await client.post("/v1/developments", headers=dev["headers"], json=ready)
    dev_id = r.json()["development"]["id"]

    headers = {**dev["headers"], "Idempotency-Key": "publish-sunset-1"}
    r1 = await client.post(f"/v1/developments/{dev_id}/publish", headers=headers)
    assert r1.status_code == 200, r1.text
    assert r1.json()["auto_approved"] is True
    assert r1.json()["development"]["is_published"] is True
    assert r1.json()["submission"]["status"] == "approved"

    # a retried request replays instead of failing on the approved state
    r2 = await client.post(f"/v1/developments/{dev_id}/publish", headers=headers)
    assert r2.status_code == 200
    assert r2.json() == r1.json()


async def test_owner_trust_can_be_granted(client):
    dev = await bootstrap_developer(client)
    r = await client.patch(f"/v1/owners/{dev['owner_id']}/trust", headers=INTERNAL_HEADERS, json={"is_trusted": True})
    assert r.status_code == 200
    assert r.json()["is_trusted"] is True


async def test_ownership_is_exclusive(client):
    dev = await bootstrap_developer(client)
    brand = await client.post(
        "/v1/owners/bootstrap", headers=INTERNAL_HEADERS, json={"kind": "platform", "name": "Sunset Brand"},
    )
    assert brand.json()["developer_api_key"] is None

    r = await client.post(
        "/v1/developments",
        headers=dev["headers"],
        json=dict(SUNSET, developerId=dev["owner_id"], brandProfileId=brand.json()["owner_id"]),
    )
    assert r.status_code == 422
    assert r.json()["code"] == "validation_error"

    r = await client.get("/v1/developments", headers=dev["headers"])
    assert r.json() == []


async def test_developers_only_see_their_own(client):
    mine = await bootstrap_developer(client)
    theirs = await bootstrap_developer(client)
    r = await client.post("/v1/developments", headers=mine["headers"], json={"name": "Mine"})
    dev_id = r.json()["development"]["id"]

    r = await client.get(f"/v1/developments/{dev_id}", headers=theirs["headers"])
    assert r.status_code == 403
    assert r.json()["code"] == "forbidden"

    r = await client.post(
        "/v1/developments", headers=theirs["headers"], json={"name": "Sneaky", "developerId": mine["owner_id"]},
    )
    assert r.status_code == 403

    r = await client.get("/v1/developments", headers=theirs["headers"])
    assert r.json() == []


async def test_stale_if_match_is_a_conflict(client):
    dev = await bootstrap_developer(client)
    r = await client.post("/v1/developments", headers=dev["headers"], json={"name": "Sunset Heights"})
    dev_id = r.json()["development"]["id"]
    version = r.json()["development"]["version"]

    r = await client.patch(
        f"/v1/developments/{dev_id}", headers={**dev["headers"], "If-Match": str(version)}, json={"tagline": "a"},
    )
    assert r.status_code == 200

    r = await client.patch(
        f"/v1/developments/{dev_id}", headers={**dev["headers"], "If-Match": str(version)}, json={"tagline": "b"},
    )
    assert r.status_code == 409
    assert r.json()["code"] == "conflict"

    r = await client.patch(f"/v1/developments/{dev_id}", headers={**dev["headers"], "If-Match": "abc"}, json={})
    assert r.status_code == 400


async def test_delete_development(client):
    dev = await bootstrap_developer(client)
    r = await client.post("/v1/developments", headers=dev["headers"], json=SUNSET)
    dev_id = r.json()["development"]["id"]

    r = await client.delete(f"/v1/developments/{dev_id}", headers=dev["headers"])
    assert r.status_code == 204

    r = await client.get(f"/v1/developments/{dev_id}", headers=dev["headers"])
    assert r.status_code == 404
