from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select, update

from src.vaxtrack.domain.models.appointment import Appointment, AppointmentStatus
from src.vaxtrack.domain.models.vaccination import Vaccination, VaccinationStatus
from src.vaxtrack.infra.db.models import AppointmentORM, VaccinationORM
from src.vaxtrack.infra.db.repositories import AppointmentRepository, VaccinationRepository
from src.vaxtrack.infra.db.session import SessionFactory


class SqlVaccinationRepository(VaccinationRepository):
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def get(self, vaccination_id: UUID) -> Optional[Vaccination]:
        session = self._session_factory()
        try:
            orm = session.get(VaccinationORM, vaccination_id)
            return orm.to_domain() if orm is not None else None
        finally:
            session.close()

    def list_by_children(
        self,
        child_ids: Iterable[UUID],
        *,
        status: Optional[VaccinationStatus] = None,
    ) -> List[Vaccination]:
        wanted = list(child_ids)
        if not wanted:
            return []
        session = self._session_factory()
        try:
            stmt = select(VaccinationORM).where(VaccinationORM.child_id.in_(wanted))
            if status is not None:
                stmt = stmt.where(VaccinationORM.status == status.value)
            stmt = stmt.order_by(VaccinationORM.vaccine_date.desc())
            return [orm.to_domain() for orm in session.scalars(stmt)]
        finally:
            session.close()

    def list_upcoming(self, child_ids: Iterable[UUID], *, now: datetime, limit: int) -> List[Vaccination]:
        wanted = list(child_ids)
        if not wanted:
            return []
        session = self._session_factory()
        try:
            stmt = (
                select(VaccinationORM)
                .where(
                    VaccinationORM.child_id.in_(wanted),
                    VaccinationORM.status == VaccinationStatus.SCHEDULED.value,
                    VaccinationORM.vaccine_date >= now,
                )
                .order_by(VaccinationORM.vaccine_date)
                .limit(limit)
            )
            return [orm.to_domain() for orm in session.scalars(stmt)]
        finally:
            session.close()

    def list_scheduled_between(self, start: datetime, end: datetime) -> List[Vaccination]:
        session = self._session_factory()
        try:
            stmt = (
                select(VaccinationORM)
                .where(
                    VaccinationORM.status == VaccinationStatus.SCHEDULED.value,
                    VaccinationORM.vaccine_date >= start,
                    VaccinationORM.vaccine_date <= end,
                )
                .order_by(VaccinationORM.vaccine_date)
            )
            return [orm.to_domain() for orm in session.scalars(stmt)]
        finally:
            session.close()

    def save(self, vaccination: Vaccination) -> None:
        session = self._session_factory()
        try:
            existing = session.get(VaccinationORM, vaccination.id)
            if existing is None:
                session.add(VaccinationORM.from_domain(vaccination))
            else:
                existing.apply(vaccination)
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def delete(self, vaccination_id: UUID) -> bool:
        session = self._session_factory()
        try:
            orm = session.get(VaccinationORM, vaccination_id)
            if orm is None:
                return False
            session.delete(orm)
            session.commit()
            return True
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


class SqlAppointmentRepository(AppointmentRepository):
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def get(self, appointment_id: UUID) -> Optional[Appointment]:
        session = self._session_factory()
        try:
            orm = session.get(AppointmentORM, appointment_id)
            return orm.to_domain() if orm is not None else None
        finally:
            session.close()

    def list_by_parent(
        self,
        parent_id: UUID,
        *,
        status: Optional[AppointmentStatus] = None,
        from_date: Optional[datetime] = None,
    ) -> List[Appointment]:
        session = self._session_factory()
        try:
            stmt = select(AppointmentORM).where(AppointmentORM.parent_id == parent_id)
            if status is not None:
                stmt = stmt.where(AppointmentORM.status == status.value)
            if from_date is not None:
                stmt = stmt.where(AppointmentORM.appointment_date >= from_date)
            stmt = stmt.order_by(AppointmentORM.appointment_date)
            return [orm.to_domain() for orm in session.scalars(stmt)]
        finally:
            session.close()

    def list_due_for_reminder(self, start: datetime, end: datetime) -> List[Appointment]:
        session = self._session_factory()
        try:
            stmt = (
                select(AppointmentORM)
                .where(
                    AppointmentORM.status == AppointmentStatus.CONFIRMED.value,
                    AppointmentORM.reminder_sent.is_(False),
                    AppointmentORM.appointment_date >= start,
                    AppointmentORM.appointment_date <= end,
                )
                .order_by(AppointmentORM.appointment_date)
            )
            return [orm.to_domain() for orm in session.scalars(stmt)]
        finally:
            session.close()

    def save(self, appointment: Appointment) -> None:
        session = self._session_factory()
        try:
            existing = session.get(AppointmentORM, appointment.id)
            if existing is None:
                session.add(AppointmentORM.from_domain(appointment))
            else:
                existing.apply(appointment)
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def mark_reminder_sent(self, appointment_id: UUID, sent_at: datetime) -> bool:
        """Flip reminder_sent with a guarded UPDATE so concurrent scans send once."""

        session = self._session_factory()
        try:
            result = session.execute(
                update(AppointmentORM)
                .where(AppointmentORM.id == appointment_id, AppointmentORM.reminder_sent.is_(False))
                .values(reminder_sent=True, reminder_sent_at=sent_at)
            )
            session.commit()
            return result.rowcount == 1
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
