from __future__ import annotations

from typing import TYPE_CHECKING

from src.vaxtrack.infra.db import inmemory
from src.vaxtrack.infra.db.repositories import (
    AppointmentRepository,
    ChildRepository,
    ClinicRepository,
    MessageRepository,
    NotificationRepository,
    UserRepository,
    VaccinationRepository,
)

if TYPE_CHECKING:  # pragma: no cover
    from src.vaxtrack.infra.db.session import SessionFactory


class RepositoryRegistry:
    """Holds the active repository implementations.

    Services keep a reference to the registry and resolve repositories at call
    time, so swapping the backend at startup (or between tests) is visible
    everywhere without re-importing modules.
    """

    users: UserRepository
    children: ChildRepository
    vaccinations: VaccinationRepository
    clinics: ClinicRepository
    appointments: AppointmentRepository
    messages: MessageRepository
    notifications: NotificationRepository

    def __init__(self) -> None:
        self.use_in_memory()

    def use_in_memory(self) -> None:
        self.users = inmemory.InMemoryUserRepository()
        self.children = inmemory.InMemoryChildRepository()
        self.vaccinations = inmemory.InMemoryVaccinationRepository()
        self.clinics = inmemory.InMemoryClinicRepository()
        self.appointments = inmemory.InMemoryAppointmentRepository()
        self.messages = inmemory.InMemoryMessageRepository()
        self.notifications = inmemory.InMemoryNotificationRepository()

    def use_sql(self, session_factory: "SessionFactory") -> None:
        from src.vaxtrack.infra.db.sql_clinics import SqlClinicRepository
        from src.vaxtrack.infra.db.sql_messages import SqlMessageRepository, SqlNotificationRepository
        from src.vaxtrack.infra.db.sql_profiles import SqlChildRepository, SqlUserRepository
        from src.vaxtrack.infra.db.sql_records import SqlAppointmentRepository, SqlVaccinationRepository

        self.users = SqlUserRepository(session_factory)
        self.children = SqlChildRepository(session_factory)
        self.vaccinations = SqlVaccinationRepository(session_factory)
        self.clinics = SqlClinicRepository(session_factory)
        self.appointments = SqlAppointmentRepository(session_factory)
        self.messages = SqlMessageRepository(session_factory)
        self.notifications = SqlNotificationRepository(session_factory)


repositories = RepositoryRegistry()
