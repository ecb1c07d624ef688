from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from src.vaxtrack.domain.errors import ForbiddenError, NotFoundError
from src.vaxtrack.domain.models.notification import NotificationPriority, NotificationType
from src.vaxtrack.domain.models.vaccination import Vaccination, VaccinationStatus
from src.vaxtrack.infra.db.registry import RepositoryRegistry, repositories
from src.vaxtrack.services.notifications.dispatcher import NotificationDispatcher, notification_dispatcher

UPCOMING_LIMIT = 10

# Fields never taken from caller input.
_PROTECTED = {"id", "child_id", "created_at", "updated_at"}


class VaccinationService:
    def __init__(
        self,
        registry: RepositoryRegistry = repositories,
        dispatcher: NotificationDispatcher = notification_dispatcher,
    ) -> None:
        self._registry = registry
        self._dispatcher = dispatcher

    def _active_child_ids(self, parent_id: UUID) -> List[UUID]:
        return [c.id for c in self._registry.children.list_by_parent(parent_id)]

    def list_vaccinations(
        self,
        parent_id: UUID,
        *,
        child_id: Optional[UUID] = None,
        status: Optional[VaccinationStatus] = None,
    ) -> List[Vaccination]:
        """Vaccinations of the caller's active children, latest date first.

        A ``child_id`` outside the caller's children yields an empty list.
        """

        child_ids = self._active_child_ids(parent_id)
        if child_id is not None:
            child_ids = [c for c in child_ids if c == child_id]
        return self._registry.vaccinations.list_by_children(child_ids, status=status)

    def list_upcoming(self, parent_id: UUID) -> List[Vaccination]:
        return self._registry.vaccinations.list_upcoming(
            self._active_child_ids(parent_id),
            now=datetime.now(timezone.utc),
            limit=UPCOMING_LIMIT,
        )

    def create_vaccination(self, parent_id: UUID, child_id: UUID, fields: Dict[str, Any]) -> Vaccination:
        child = self._registry.children.get(child_id)
        if child is None or child.parent_id != parent_id or not child.is_active:
            raise NotFoundError("Child not found")

        now = datetime.now(timezone.utc)
        values = {k: v for k, v in fields.items() if k not in _PROTECTED and v is not None}
        vaccination = Vaccination(id=uuid4(), child_id=child.id, created_at=now, updated_at=now, **values)
        self._registry.vaccinations.save(vaccination)

        self._dispatcher.notify(
            parent_id,
            NotificationType.VACCINATION_REMINDER,
            "Vaccination Scheduled",
            f"{vaccination.vaccine_name} scheduled for {child.name}",
            payload={"vaccination_id": str(vaccination.id), "child_id": str(child.id)},
            priority=NotificationPriority.MEDIUM,
            action_url="/vaccinations",
            external=False,
        )
        return vaccination

    def _owned(self, vaccination_id: UUID, parent_id: UUID) -> Vaccination:
        vaccination = self._registry.vaccinations.get(vaccination_id)
        if vaccination is None:
            raise NotFoundError("Vaccination record not found")
        child = self._registry.children.get(vaccination.child_id)
        if child is None or child.parent_id != parent_id:
            raise ForbiddenError("Not authorized")
        return vaccination

    def update_vaccination(self, vaccination_id: UUID, parent_id: UUID, changes: Dict[str, Any]) -> Vaccination:
        vaccination = self._owned(vaccination_id, parent_id)
        merged = {**vaccination.model_dump(), **{k: v for k, v in changes.items() if k not in _PROTECTED}}
        updated = Vaccination.model_validate(merged)
        updated.updated_at = datetime.now(timezone.utc)
        self._registry.vaccinations.save(updated)
        return updated

    def delete_vaccination(self, vaccination_id: UUID, parent_id: UUID) -> None:
        self._owned(vaccination_id, parent_id)
        self._registry.vaccinations.delete(vaccination_id)


vaccination_service = VaccinationService()
