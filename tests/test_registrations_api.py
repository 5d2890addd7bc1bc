"""Tests for the academy and tournament registration endpoints."""
import pytest

from conftest import academy_payload, tournament_payload

TOURNAMENT = "/api/tournament-registrations"
ACADEMY = "/api/academy-registrations"


async def _create(client, url=TOURNAMENT, body=None):
    r = await client.post(url, json=body or tournament_payload())
    assert r.status_code == 201, r.text
    return r.json()["data"]


@pytest.mark.asyncio
async def test_create_tournament_registration_is_public(client):
    r = await client.post(TOURNAMENT, json=tournament_payload())
    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    assert body["message"] == "Tournament registration submitted successfully"
    data = body["data"]
    assert data["registrationType"] == "tournament"
    assert data["fullName"] == "Omar Haddad"
    assert data["email"] == "omar.haddad@example.com"
    assert data["status"] == "pending"
    assert data["paymentStatus"] == "pending"
    assert data["paymentAmount"] == 500
    assert data["tournament"] == "ATOMICS PRESEASON CUP"
    assert data["cupDates"] == "Tuesday - Thursday 26th - 28th August"
    assert data["externalPaymentRef"] is None
    assert len(data["id"]) == 32


@pytest.mark.asyncio
async def test_create_academy_registration(client):
    data = await _create(client, ACADEMY, academy_payload())
    assert data["registrationType"] == "academy"
    assert data["selectedTeams"] == ["U10 Girls"]
    assert data["parentName"] == "Rania Mansour"
    assert data["mobileNumber"] == "+971557654321"
    assert data["assessmentCompleted"] is False
    assert data["ageGroup"].startswith("U")


@pytest.mark.asyncio
async def test_create_validation_errors(client):
    r = await client.post(TOURNAMENT, json=tournament_payload(mobileNumber="999", paymentAmount=-5))
    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"
    assert {e["field"] for e in body["errors"]} == {"mobileNumber", "paymentAmount"}


@pytest.mark.asyncio
async def test_create_rejects_non_object_body(client):
    r = await client.post(TOURNAMENT, json=["nope"])
    assert r.status_code == 400
    assert r.json()["success"] is False


@pytest.mark.asyncio
async def test_create_duplicate(client):
    await _create(client)
    r = await client.post(TOURNAMENT, json=tournament_payload(mobileNumber="0559876543", playerFirstName="Other"))
    assert r.status_code == 400
    assert r.json()["message"] == (
        "A registration with this information already exists. Please contact us if you need assistance."
    )


@pytest.mark.asyncio
async def test_reads_require_auth(client):
    created = await _create(client)
    for path in (TOURNAMENT, f"{TOURNAMENT}/stats", f"{TOURNAMENT}/{created['id']}"):
        r = await client.get(path)
        assert r.status_code == 401, path


@pytest.mark.asyncio
async def test_list_and_filter(client, auth_headers):
    first = await _create(client)
    await _create(
        client,
        body=tournament_payload(email="b@example.com", mobileNumber="0521111111", playerFirstName="Bilal"),
    )
    r = await client.patch(f"{TOURNAMENT}/{first['id']}/status", json={"status": "confirmed"}, headers=auth_headers)
    assert r.status_code == 200

    r = await client.get(TOURNAMENT, headers=auth_headers)
    assert r.status_code == 200
    assert len(r.json()["data"]) == 2

    r = await client.get(TOURNAMENT, params={"status": "confirmed"}, headers=auth_headers)
    assert [d["id"] for d in r.json()["data"]] == [first["id"]]

    r = await client.get(TOURNAMENT, params={"paymentStatus": "completed"}, headers=auth_headers)
    assert r.json()["data"] == []

    r = await client.get(TOURNAMENT, params={"status": "approved"}, headers=auth_headers)
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_get_by_id(client, auth_headers):
    created = await _create(client)
    r = await client.get(f"{TOURNAMENT}/{created['id']}", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["data"]["id"] == created["id"]


@pytest.mark.asyncio
async def test_get_missing_and_malformed_id(client, auth_headers):
    r = await client.get(f"{TOURNAMENT}/{'0' * 32}", headers=auth_headers)
    assert r.status_code == 404
    assert r.json() == {"success": False, "message": "Tournament registration not found"}

    r = await client.get(f"{TOURNAMENT}/not-an-id", headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["message"] == "Invalid registration ID"


@pytest.mark.asyncio
async def test_kinds_do_not_share_ids(client, auth_headers):
    created = await _create(client)
    r = await client.get(f"{ACADEMY}/{created['id']}", headers=auth_headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_update_details(client, auth_headers):
    created = await _create(client, ACADEMY, academy_payload())
    r = await client.put(
        f"{ACADEMY}/{created['id']}",
        json={"assignedCoach": "Coach Sam", "assignedGroup": "U10 Blue", "adminNotes": "Strong left foot"},
        headers=auth_headers,
    )
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["assignedCoach"] == "Coach Sam"
    assert data["assignedGroup"] == "U10 Blue"
    assert data["version"] == created["version"] + 1


@pytest.mark.asyncio
async def test_update_cannot_touch_identity(client, auth_headers):
    created = await _create(client)
    r = await client.put(f"{TOURNAMENT}/{created['id']}", json={"email": "x@example.com"}, headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["errors"][0]["field"] == "email"


@pytest.mark.asyncio
async def test_update_null_keeps_required_field(client, auth_headers):
    created = await _create(client)
    r = await client.put(f"{TOURNAMENT}/{created['id']}", json={"academyClub": None}, headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["errors"][0]["field"] == "academyClub"
    r = await client.get(f"{TOURNAMENT}/{created['id']}", headers=auth_headers)
    assert r.json()["data"]["academyClub"] == created["academyClub"]


@pytest.mark.asyncio
async def test_update_status_rejects_unknown_value(client, auth_headers):
    created = await _create(client)
    r = await client.patch(f"{TOURNAMENT}/{created['id']}/status", json={"status": "approved"}, headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["success"] is False


@pytest.mark.asyncio
async def test_update_payment_completes_registration(client, auth_headers):
    created = await _create(client)
    r = await client.patch(
        f"{TOURNAMENT}/{created['id']}/payment",
        json={"paymentStatus": "completed", "externalRef": "pi_desk_1"},
        headers=auth_headers,
    )
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["paymentStatus"] == "completed"
    assert data["status"] == "confirmed"
    assert data["externalPaymentRef"] == "pi_desk_1"
    assert data["paymentDate"] is not None


@pytest.mark.asyncio
async def test_bulk_update(client, auth_headers):
    a = await _create(client, ACADEMY, academy_payload())
    b = await _create(
        client,
        ACADEMY,
        academy_payload(email="c@example.com", mobileNumber="0521111111", playerFirstName="Cyrine"),
    )
    r = await client.post(
        f"{ACADEMY}/bulk-update",
        json={"registrationIds": [a["id"], b["id"]], "status": "approved", "adminNotes": "Trial passed"},
        headers=auth_headers,
    )
    assert r.status_code == 200
    assert r.json()["data"] == {"modifiedCount": 2}

    r = await client.get(ACADEMY, params={"status": "approved"}, headers=auth_headers)
    assert len(r.json()["data"]) == 2

    r = await client.post(
        f"{ACADEMY}/bulk-update",
        json={"registrationIds": [a["id"]], "status": "confirmed"},
        headers=auth_headers,
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_delete(client, auth_headers):
    created = await _create(client)
    r = await client.delete(f"{TOURNAMENT}/{created['id']}", headers=auth_headers)
    assert r.status_code == 200
    assert r.json() == {"success": True, "message": "Tournament registration deleted successfully"}
    r = await client.delete(f"{TOURNAMENT}/{created['id']}", headers=auth_headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_tournament_stats(client, auth_headers):
    created = await _create(client)
    await client.patch(
        f"{TOURNAMENT}/{created['id']}/payment",
        json={"paymentStatus": "completed"},
        headers=auth_headers,
    )
    r = await client.get(f"{TOURNAMENT}/stats", headers=auth_headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["overview"]["totalRegistrations"] == 1
    assert data["overview"]["confirmedRegistrations"] == 1
    assert data["overview"]["completedPayments"] == 1
    assert data["overview"]["totalRevenue"] == 500
    assert sum(day["count"] for day in data["recentRegistrations"]) == 1


@pytest.mark.asyncio
async def test_academy_stats(client, auth_headers):
    await _create(client, ACADEMY, academy_payload())
    r = await client.get(f"{ACADEMY}/stats", headers=auth_headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["overview"]["totalRegistrations"] == 1
    assert data["overview"]["pendingPayments"] == 1
    assert data["overview"]["totalRevenue"] == 0
    assert data["locationDistribution"] == [
        {"location": "active-mariah", "count": 1},
        {"location": "saadiyat", "count": 1},
    ]
    assert len(data["ageGroupDistribution"]) == 1
