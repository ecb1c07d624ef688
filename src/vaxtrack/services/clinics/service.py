from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from src.vaxtrack.domain.errors import ForbiddenError, NotFoundError
from src.vaxtrack.domain.geo import haversine_km
from src.vaxtrack.domain.models.clinic import Clinic, ClinicService, ClinicSummary, Review
from src.vaxtrack.domain.models.user import User, UserRole
from src.vaxtrack.infra.db.registry import RepositoryRegistry, repositories

DEFAULT_MAX_DISTANCE_M = 10_000
MAX_NEARBY_RESULTS = 20

_CLINIC_MANAGERS = {UserRole.ADMIN, UserRole.CLINIC_STAFF}


class ClinicDirectoryService:
    """Read access to the public clinic directory plus reviews.

    List and proximity results are summaries: the embedded review list only
    comes back from ``get_clinic``.
    """

    def __init__(self, registry: RepositoryRegistry = repositories) -> None:
        self._registry = registry

    def list_clinics(
        self,
        *,
        search: Optional[str] = None,
        service: Optional[ClinicService] = None,
    ) -> List[ClinicSummary]:
        clinics = self._registry.clinics.list_active(search=search, service=service)
        return [ClinicSummary.from_clinic(c) for c in clinics]

    def nearby(
        self,
        longitude: float,
        latitude: float,
        max_distance_m: float = DEFAULT_MAX_DISTANCE_M,
    ) -> List[ClinicSummary]:
        clinics = self._registry.clinics.find_near(
            longitude,
            latitude,
            max_distance_m=max_distance_m,
            limit=MAX_NEARBY_RESULTS,
        )
        return [
            ClinicSummary.from_clinic(
                c,
                distance_km=round(
                    haversine_km(longitude, latitude, c.location.longitude, c.location.latitude),
                    2,
                ),
            )
            for c in clinics
        ]

    def get_clinic(self, clinic_id: UUID) -> Clinic:
        clinic = self._registry.clinics.get(clinic_id)
        if clinic is None or not clinic.is_active:
            raise NotFoundError("Clinic not found")
        return clinic

    def add_review(self, clinic_id: UUID, user_id: UUID, rating: int, comment: Optional[str] = None) -> Clinic:
        """Append a review; raises ConflictError if the user already reviewed."""

        self.get_clinic(clinic_id)
        review = Review(user_id=user_id, rating=rating, comment=comment, created_at=datetime.now(timezone.utc))
        clinic = self._registry.clinics.add_review(clinic_id, review)
        if clinic is None:
            raise NotFoundError("Clinic not found")
        return clinic

    def create_clinic(self, user: User, fields: Dict[str, Any]) -> Clinic:
        if user.role not in _CLINIC_MANAGERS:
            raise ForbiddenError("Only administrators and clinic staff can add clinics")
        now = datetime.now(timezone.utc)
        values = {k: v for k, v in fields.items() if k not in {"id", "rating", "reviews", "created_at", "updated_at"}}
        clinic = Clinic(id=uuid4(), created_at=now, updated_at=now, **values)
        self._registry.clinics.save(clinic)
        return clinic


clinic_directory_service = ClinicDirectoryService()
