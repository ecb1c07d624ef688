from datetime import datetime, timedelta, timezone

from fastapi import status


def _iso(days: int) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


async def _create(client, headers, child_id, name, days, **fields):
    resp = await client.post(
        "/api/v1/vaccinations/",
        json={"child_id": child_id, "vaccine_name": name, "vaccine_date": _iso(days), **fields},
        headers=headers,
    )
    assert resp.status_code == status.HTTP_201_CREATED, resp.text
    return resp.json()


async def test_create_vaccination_records_in_app_notification(client, auth_headers, make_user, make_child, email_sender):
    await make_user("parent-1")
    child = await make_child("parent-1")
    headers = auth_headers("parent-1")

    vaccination = await _create(client, headers, child["id"], "MMR", 10, vaccine_type="Measles", dose_number=1)
    assert vaccination["status"] == "scheduled"
    assert vaccination["side_effects"] == {"reported": False, "description": None, "severity": None}

    notes = (await client.get("/api/v1/notifications/", headers=headers)).json()
    assert notes["unread_count"] == 1
    assert notes["notifications"][0]["title"] == "Vaccination Scheduled"
    assert notes["notifications"][0]["message"] == "MMR scheduled for Mia"
    assert notes["notifications"][0]["data"]["vaccination_id"] == vaccination["id"]
    # Creation is in-app only.
    assert email_sender.sent == []


async def test_create_for_foreign_child_is_not_found(client, auth_headers, make_user, make_child):
    await make_user("parent-1")
    await make_user("parent-2")
    child = await make_child("parent-1")

    resp = await client.post(
        "/api/v1/vaccinations/",
        json={"child_id": child["id"], "vaccine_name": "MMR", "vaccine_date": _iso(3)},
        headers=auth_headers("parent-2"),
    )
    assert resp.status_code == status.HTTP_404_NOT_FOUND


async def test_list_filters_by_child_and_status(client, auth_headers, make_user, make_child):
    await make_user("parent-1")
    headers = auth_headers("parent-1")
    mia = await make_child("parent-1", name="Mia")
    leo = await make_child("parent-1", name="Leo")

    await _create(client, headers, mia["id"], "BCG", -30, status="completed")
    await _create(client, headers, mia["id"], "MMR", 20)
    await _create(client, headers, leo["id"], "Polio", 5)

    everything = (await client.get("/api/v1/vaccinations/", headers=headers)).json()
    assert [v["vaccine_name"] for v in everything] == ["MMR", "Polio", "BCG"]

    mia_only = (await client.get("/api/v1/vaccinations/", params={"child_id": mia["id"]}, headers=headers)).json()
    assert {v["vaccine_name"] for v in mia_only} == {"BCG", "MMR"}

    completed = (await client.get("/api/v1/vaccinations/", params={"status": "completed"}, headers=headers)).json()
    assert [v["vaccine_name"] for v in completed] == ["BCG"]


async def test_list_with_foreign_child_id_is_empty(client, auth_headers, make_user, make_child):
    await make_user("parent-1")
    await make_user("parent-2")
    child = await make_child("parent-1")
    await _create(client, auth_headers("parent-1"), child["id"], "MMR", 3)

    resp = await client.get(
        "/api/v1/vaccinations/", params={"child_id": child["id"]}, headers=auth_headers("parent-2")
    )
    assert resp.status_code == status.HTTP_200_OK
    assert resp.json() == []


async def test_upcoming_only_returns_future_scheduled(client, auth_headers, make_user, make_child):
    await make_user("parent-1")
    headers = auth_headers("parent-1")
    child = await make_child("parent-1")

    await _create(client, headers, child["id"], "Past", -1)
    await _create(client, headers, child["id"], "Later", 30)
    await _create(client, headers, child["id"], "Soon", 2)
    await _create(client, headers, child["id"], "Done", 4, status="completed")

    upcoming = (await client.get("/api/v1/vaccinations/upcoming", headers=headers)).json()
    assert [v["vaccine_name"] for v in upcoming] == ["Soon", "Later"]


async def test_update_and_delete_require_ownership(client, auth_headers, make_user, make_child):
    await make_user("parent-1")
    await make_user("parent-2")
    child = await make_child("parent-1")
    vaccination = await _create(client, auth_headers("parent-1"), child["id"], "MMR", 3)
    url = f"/api/v1/vaccinations/{vaccination['id']}"

    resp = await client.put(url, json={"status": "completed"}, headers=auth_headers("parent-2"))
    assert resp.status_code == status.HTTP_403_FORBIDDEN
    resp = await client.delete(url, headers=auth_headers("parent-2"))
    assert resp.status_code == status.HTTP_403_FORBIDDEN

    resp = await client.put(
        url,
        json={"status": "completed", "side_effects": {"reported": True, "severity": "Mild"}},
        headers=auth_headers("parent-1"),
    )
    assert resp.status_code == status.HTTP_200_OK
    body = resp.json()
    assert body["status"] == "completed"
    assert body["side_effects"]["severity"] == "Mild"
    assert body["vaccine_name"] == "MMR"

    resp = await client.delete(url, headers=auth_headers("parent-1"))
    assert resp.status_code == status.HTTP_200_OK
    resp = await client.delete(url, headers=auth_headers("parent-1"))
    assert resp.status_code == status.HTTP_404_NOT_FOUND


async def test_schedule_reference(client, auth_headers, make_user):
    await make_user("parent-1")
    resp = await client.get("/api/v1/vaccinations/schedule", headers=auth_headers("parent-1"))
    assert resp.status_code == status.HTTP_200_OK
    stages = resp.json()
    assert len(stages) == 10
    assert stages[0]["age"] == "Birth"
    assert stages[0]["age_in_months"] == 0
    assert stages[-1]["age"] == "4-6 Years"
    assert any(v["name"] == "BCG" for v in stages[0]["vaccines"])
