from datetime import date, timedelta

from fastapi import status

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


async def test_create_and_list_children(client, auth_headers, make_user):
    await make_user("parent-1")
    resp = await client.post(
        "/api/v1/children/",
        data={
            "name": "Mia",
            "date_of_birth": "2024-01-15",
            "gender": "Female",
            "blood_type": "O+",
            "allergies": ["peanuts", " "],
            "emergency_contact_name": "Grandma",
            "emergency_contact_phone": "+15550199",
        },
        headers=auth_headers("parent-1"),
    )
    assert resp.status_code == status.HTTP_201_CREATED
    child = resp.json()
    assert child["name"] == "Mia"
    assert child["blood_type"] == "O+"
    assert child["allergies"] == ["peanuts"]
    assert child["emergency_contact"]["name"] == "Grandma"
    assert child["photo"] is None
    assert isinstance(child["age_in_months"], int)

    listed = await client.get("/api/v1/children/", headers=auth_headers("parent-1"))
    assert listed.status_code == status.HTTP_200_OK
    assert [c["id"] for c in listed.json()] == [child["id"]]


async def test_future_date_of_birth_is_rejected(client, auth_headers, make_user):
    await make_user("parent-1")
    tomorrow = (date.today() + timedelta(days=1)).isoformat()
    resp = await client.post(
        "/api/v1/children/",
        data={"name": "Mia", "date_of_birth": tomorrow, "gender": "Female"},
        headers=auth_headers("parent-1"),
    )
    assert resp.status_code == status.HTTP_400_BAD_REQUEST


async def test_invalid_gender_is_rejected(client, auth_headers, make_user):
    await make_user("parent-1")
    resp = await client.post(
        "/api/v1/children/",
        data={"name": "Mia", "date_of_birth": "2024-01-15", "gender": "Unknown"},
        headers=auth_headers("parent-1"),
    )
    assert resp.status_code == 422


async def test_other_parents_child_is_not_found(client, auth_headers, make_user, make_child):
    await make_user("parent-1")
    await make_user("parent-2")
    child = await make_child("parent-1")

    for method in ("get", "delete"):
        resp = await getattr(client, method)(f"/api/v1/children/{child['id']}", headers=auth_headers("parent-2"))
        assert resp.status_code == status.HTTP_404_NOT_FOUND

    resp = await client.put(
        f"/api/v1/children/{child['id']}",
        data={"name": "Stolen"},
        headers=auth_headers("parent-2"),
    )
    assert resp.status_code == status.HTTP_404_NOT_FOUND


async def test_get_child_includes_vaccinations(client, auth_headers, make_user, make_child):
    await make_user("parent-1")
    child = await make_child("parent-1")
    await client.post(
        "/api/v1/vaccinations/",
        json={"child_id": child["id"], "vaccine_name": "BCG", "vaccine_date": "2024-01-16T09:00:00Z"},
        headers=auth_headers("parent-1"),
    )

    resp = await client.get(f"/api/v1/children/{child['id']}", headers=auth_headers("parent-1"))
    assert resp.status_code == status.HTTP_200_OK
    body = resp.json()
    assert body["child"]["id"] == child["id"]
    assert [v["vaccine_name"] for v in body["vaccinations"]] == ["BCG"]


async def test_update_child_keeps_unspecified_fields(client, auth_headers, make_user, make_child):
    await make_user("parent-1")
    child = await make_child("parent-1", medical_history="Born premature")

    resp = await client.put(
        f"/api/v1/children/{child['id']}",
        data={"name": "Mia Rose"},
        headers=auth_headers("parent-1"),
    )
    assert resp.status_code == status.HTTP_200_OK
    body = resp.json()
    assert body["name"] == "Mia Rose"
    assert body["medical_history"] == "Born premature"
    assert body["date_of_birth"] == "2024-01-15"


async def test_photo_upload_and_replacement_deletes_old_photo(client, auth_headers, make_user, tmp_path):
    await make_user("parent-1")
    resp = await client.post(
        "/api/v1/children/",
        data={"name": "Mia", "date_of_birth": "2024-01-15", "gender": "Female"},
        files={"photo": ("mia.png", PNG_BYTES, "image/png")},
        headers=auth_headers("parent-1"),
    )
    assert resp.status_code == status.HTTP_201_CREATED
    child = resp.json()
    old_key = child["photo"]["key"]
    assert child["photo"]["url"].endswith(old_key)

    base = tmp_path / "photos"
    assert (base / old_key).exists()

    resp = await client.put(
        f"/api/v1/children/{child['id']}",
        files={"photo": ("mia2.jpg", b"jpeg-bytes", "image/jpeg")},
        headers=auth_headers("parent-1"),
    )
    assert resp.status_code == status.HTTP_200_OK
    new_key = resp.json()["photo"]["key"]
    assert new_key != old_key
    assert new_key.endswith(".jpg")
    assert (base / new_key).exists()
    assert not (base / old_key).exists()


async def test_non_image_upload_is_rejected(client, auth_headers, make_user):
    await make_user("parent-1")
    resp = await client.post(
        "/api/v1/children/",
        data={"name": "Mia", "date_of_birth": "2024-01-15", "gender": "Female"},
        files={"photo": ("notes.txt", b"hello", "text/plain")},
        headers=auth_headers("parent-1"),
    )
    assert resp.status_code == status.HTTP_400_BAD_REQUEST


async def test_deleted_child_disappears(client, auth_headers, make_user, make_child):
    await make_user("parent-1")
    child = await make_child("parent-1")

    resp = await client.delete(f"/api/v1/children/{child['id']}", headers=auth_headers("parent-1"))
    assert resp.status_code == status.HTTP_200_OK

    listed = await client.get("/api/v1/children/", headers=auth_headers("parent-1"))
    assert listed.json() == []
    resp = await client.get(f"/api/v1/children/{child['id']}", headers=auth_headers("parent-1"))
    assert resp.status_code == status.HTTP_404_NOT_FOUND
