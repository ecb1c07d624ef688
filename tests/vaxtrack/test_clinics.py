from datetime import datetime, timezone
from uuid import uuid4

from fastapi import status

from src.vaxtrack.domain.models.clinic import Clinic, ClinicService, GeoPoint
from src.vaxtrack.domain.models.user import UserRole
from src.vaxtrack.infra.db.registry import repositories
from src.vaxtrack.services.users.service import user_service

NAIROBI = (36.8219, -1.2921)


def _clinic(name, longitude, latitude, *, services=(ClinicService.VACCINATIONS,), city="Nairobi", active=True):
    now = datetime.now(timezone.utc)
    clinic = Clinic(
        id=uuid4(),
        name=name,
        address={"city": city, "full_address": f"1 Main St, {city}"},
        location=GeoPoint(longitude=longitude, latitude=latitude),
        services=list(services),
        is_active=active,
        created_at=now,
        updated_at=now,
    )
    repositories.clinics.save(clinic)
    return clinic


async def test_nearby_filters_and_orders_by_distance(client):
    lon, lat = NAIROBI
    far = _clinic("Far Clinic", lon + 0.05, lat)  # ~5.6 km
    near = _clinic("Near Clinic", lon + 0.01, lat)  # ~1.1 km
    _clinic("Out Of Range", lon + 0.2, lat)  # ~22 km
    _clinic("Closed Clinic", lon, lat, active=False)

    resp = await client.get("/api/v1/clinics/nearby", params={"longitude": lon, "latitude": lat})
    assert resp.status_code == status.HTTP_200_OK
    body = resp.json()
    assert [c["id"] for c in body] == [str(near.id), str(far.id)]
    assert body[0]["distance_km"] == 1.11
    assert "reviews" not in body[0]

    resp = await client.get(
        "/api/v1/clinics/nearby", params={"longitude": lon, "latitude": lat, "max_distance": 2000}
    )
    assert [c["id"] for c in resp.json()] == [str(near.id)]


async def test_nearby_returns_at_most_twenty(client):
    lon, lat = NAIROBI
    for i in range(25):
        _clinic(f"Clinic {i}", lon + 0.001 * i, lat)

    resp = await client.get("/api/v1/clinics/nearby", params={"longitude": lon, "latitude": lat})
    body = resp.json()
    assert len(body) == 20
    assert [c["name"] for c in body] == [f"Clinic {i}" for i in range(20)]


async def test_nearby_validates_coordinates(client):
    resp = await client.get("/api/v1/clinics/nearby", params={"longitude": 200, "latitude": 0})
    assert resp.status_code == 422


async def test_list_clinics_supports_search_and_service_filter(client):
    _clinic("Sunrise Pediatrics", 36.8, -1.3, services=(ClinicService.PEDIATRICS,))
    _clinic("Harbor Health", 39.6, -4.0, city="Mombasa")

    everything = (await client.get("/api/v1/clinics/")).json()
    assert {c["name"] for c in everything} == {"Sunrise Pediatrics", "Harbor Health"}

    by_city = (await client.get("/api/v1/clinics/", params={"search": "mombasa"})).json()
    assert [c["name"] for c in by_city] == ["Harbor Health"]

    by_service = (await client.get("/api/v1/clinics/", params={"service": "Pediatrics"})).json()
    assert [c["name"] for c in by_service] == ["Sunrise Pediatrics"]


async def test_reviews_update_rating_and_reject_duplicates(client, auth_headers, make_user):
    await make_user("parent-1")
    await make_user("parent-2")
    clinic = _clinic("Sunrise", 36.8, -1.3)
    url = f"/api/v1/clinics/{clinic.id}/review"

    resp = await client.post(url, json={"rating": 5, "comment": "Great"}, headers=auth_headers("parent-1"))
    assert resp.status_code == status.HTTP_201_CREATED
    resp = await client.post(url, json={"rating": 2}, headers=auth_headers("parent-2"))
    assert resp.status_code == status.HTTP_201_CREATED
    assert resp.json()["rating"] == {"average": 3.5, "count": 2}

    resp = await client.post(url, json={"rating": 1}, headers=auth_headers("parent-1"))
    assert resp.status_code == status.HTTP_400_BAD_REQUEST

    detail = (await client.get(f"/api/v1/clinics/{clinic.id}")).json()
    assert detail["rating"]["count"] == 2
    assert len(detail["reviews"]) == 2


async def test_review_validation_and_missing_clinic(client, auth_headers, make_user):
    await make_user("parent-1")
    clinic = _clinic("Sunrise", 36.8, -1.3)

    resp = await client.post(
        f"/api/v1/clinics/{clinic.id}/review", json={"rating": 6}, headers=auth_headers("parent-1")
    )
    assert resp.status_code == 422
    resp = await client.post(f"/api/v1/clinics/{uuid4()}/review", json={"rating": 4}, headers=auth_headers("parent-1"))
    assert resp.status_code == status.HTTP_404_NOT_FOUND
    resp = await client.post(f"/api/v1/clinics/{clinic.id}/review", json={"rating": 4})
    assert resp.status_code == status.HTTP_401_UNAUTHORIZED


async def test_inactive_clinic_is_not_found(client):
    clinic = _clinic("Closed", 36.8, -1.3, active=False)
    resp = await client.get(f"/api/v1/clinics/{clinic.id}")
    assert resp.status_code == status.HTTP_404_NOT_FOUND


async def test_only_staff_can_create_clinics(client, auth_headers, make_user):
    await make_user("staff-1")
    await make_user("parent-1")
    user = user_service.get_user_by_subject("staff-1")
    user.role = UserRole.CLINIC_STAFF
    repositories.users.save(user)

    payload = {
        "name": "New Clinic",
        "location": {"longitude": 36.8, "latitude": -1.3},
        "services": ["Vaccinations"],
        "operating_hours": {"monday": {"open": "08:00", "close": "17:00"}},
    }
    resp = await client.post("/api/v1/clinics/", json=payload, headers=auth_headers("parent-1"))
    assert resp.status_code == status.HTTP_403_FORBIDDEN

    resp = await client.post("/api/v1/clinics/", json=payload, headers=auth_headers("staff-1"))
    assert resp.status_code == status.HTTP_201_CREATED
    body = resp.json()
    assert body["rating"] == {"average": 0.0, "count": 0}
    assert body["operating_hours"]["monday"]["closed"] is False
