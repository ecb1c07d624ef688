from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select

from src.vaxtrack.domain.errors import ConflictError
from src.vaxtrack.domain.geo import bounding_box, haversine_km
from src.vaxtrack.domain.models.clinic import Clinic, ClinicService, Review
from src.vaxtrack.infra.db.models import ClinicORM, ClinicReviewORM
from src.vaxtrack.infra.db.repositories import ClinicRepository
from src.vaxtrack.infra.db.session import SessionFactory


class SqlClinicRepository(ClinicRepository):
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def get(self, clinic_id: UUID) -> Optional[Clinic]:
        session = self._session_factory()
        try:
            orm = session.get(ClinicORM, clinic_id)
            return orm.to_domain() if orm is not None else None
        finally:
            session.close()

    def list_active(
        self,
        *,
        search: Optional[str] = None,
        service: Optional[ClinicService] = None,
    ) -> List[Clinic]:
        """Active clinics, highest rating first.

        Services and city live in JSON columns, so those filters run after the
        query; the clinic directory is small enough for that.
        """

        needle = search.lower().strip() if search else None
        session = self._session_factory()
        try:
            stmt = (
                select(ClinicORM)
                .where(ClinicORM.is_active.is_(True))
                .order_by(ClinicORM.rating_average.desc())
            )
            results: List[Clinic] = []
            for orm in session.scalars(stmt):
                if service is not None and service.value not in (orm.services or []):
                    continue
                if needle:
                    city = (orm.address or {}).get("city")
                    haystack = " ".join(filter(None, [orm.name, orm.full_address, city]))
                    if needle not in haystack.lower():
                        continue
                results.append(orm.to_domain())
            return results
        finally:
            session.close()

    def find_near(self, longitude: float, latitude: float, *, max_distance_m: float, limit: int) -> List[Clinic]:
        min_lon, min_lat, max_lon, max_lat = bounding_box(longitude, latitude, max_distance_m)
        session = self._session_factory()
        try:
            stmt = select(ClinicORM).where(
                ClinicORM.is_active.is_(True),
                ClinicORM.latitude >= min_lat,
                ClinicORM.latitude <= max_lat,
            )
            # Boxes that cross the antimeridian fall back to the latitude band.
            if min_lon >= -180.0 and max_lon <= 180.0:
                stmt = stmt.where(ClinicORM.longitude >= min_lon, ClinicORM.longitude <= max_lon)

            ranked = []
            for orm in session.scalars(stmt):
                distance_m = 1000 * haversine_km(longitude, latitude, orm.longitude, orm.latitude)
                if distance_m <= max_distance_m:
                    ranked.append((distance_m, orm))
            ranked.sort(key=lambda pair: pair[0])
            return [orm.to_domain() for _, orm in ranked[:limit]]
        finally:
            session.close()

    def save(self, clinic: Clinic) -> None:
        session = self._session_factory()
        try:
            existing = session.get(ClinicORM, clinic.id)
            if existing is None:
                orm = ClinicORM.from_domain(clinic)
                for review in clinic.reviews:
                    orm.reviews.append(
                        ClinicReviewORM(
                            user_id=review.user_id,
                            rating=review.rating,
                            comment=review.comment,
                            created_at=review.created_at,
                        )
                    )
                session.add(orm)
            else:
                existing.apply(clinic)
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def add_review(self, clinic_id: UUID, review: Review) -> Optional[Clinic]:
        """Insert a review and recompute the aggregate in one transaction.

        The clinic row is locked (SELECT ... FOR UPDATE where supported) so
        concurrent reviews cannot interleave the read and the recompute.
        """

        session = self._session_factory()
        try:
            orm = session.scalars(
                select(ClinicORM).where(ClinicORM.id == clinic_id).with_for_update()
            ).first()
            if orm is None:
                return None
            if any(r.user_id == review.user_id for r in orm.reviews):
                raise ConflictError("You have already reviewed this clinic")

            orm.reviews.append(
                ClinicReviewORM(
                    user_id=review.user_id,
                    rating=review.rating,
                    comment=review.comment,
                    created_at=review.created_at,
                )
            )
            orm.rating_count = len(orm.reviews)
            orm.rating_average = sum(r.rating for r in orm.reviews) / orm.rating_count
            orm.updated_at = review.created_at
            session.commit()
            return orm.to_domain()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
