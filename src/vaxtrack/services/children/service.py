from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID, uuid4

from src.vaxtrack.domain.errors import NotFoundError
from src.vaxtrack.domain.models.child import Child
from src.vaxtrack.domain.models.vaccination import Vaccination
from src.vaxtrack.infra.db.registry import RepositoryRegistry, repositories
from src.vaxtrack.infra.storage.photos import PhotoStorageBackend, photo_storage_backend

logger = logging.getLogger(__name__)

# Fields a parent may change through update_child.
EDITABLE_FIELDS = {
    "name",
    "date_of_birth",
    "gender",
    "blood_type",
    "allergies",
    "medical_history",
    "emergency_contact",
}


@dataclass
class PhotoUpload:
    content: bytes
    suffix: str


class ChildService:
    """Child profiles, always scoped to the requesting parent.

    A child that belongs to another parent, or that was soft-deleted, is
    reported as not found.
    """

    def __init__(
        self,
        registry: RepositoryRegistry = repositories,
        storage: PhotoStorageBackend = photo_storage_backend,
    ) -> None:
        self._registry = registry
        self.storage = storage

    def list_children(self, parent_id: UUID) -> List[Child]:
        return self._registry.children.list_by_parent(parent_id)

    def get_owned_child(self, child_id: UUID, parent_id: UUID) -> Child:
        child = self._registry.children.get(child_id)
        if child is None or child.parent_id != parent_id or not child.is_active:
            raise NotFoundError("Child not found")
        return child

    def get_child_with_vaccinations(self, child_id: UUID, parent_id: UUID) -> Tuple[Child, List[Vaccination]]:
        child = self.get_owned_child(child_id, parent_id)
        return child, self._registry.vaccinations.list_by_children([child.id])

    def create_child(self, parent_id: UUID, fields: Dict[str, Any], photo: Optional[PhotoUpload] = None) -> Child:
        now = datetime.now(timezone.utc)
        values = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS and v is not None}
        child = Child(id=uuid4(), parent_id=parent_id, created_at=now, updated_at=now, **values)
        if photo is not None:
            child.photo = self.storage.save(photo.content, suffix=photo.suffix)
        self._registry.children.save(child)
        return child

    def update_child(
        self,
        child_id: UUID,
        parent_id: UUID,
        changes: Dict[str, Any],
        photo: Optional[PhotoUpload] = None,
    ) -> Child:
        child = self.get_owned_child(child_id, parent_id)

        values = child.model_dump(include=EDITABLE_FIELDS)
        values.update({k: v for k, v in changes.items() if k in EDITABLE_FIELDS and v is not None})
        # Re-validate the merged record so bad enum values surface as errors.
        updated = Child.model_validate({**child.model_dump(exclude={"age", "age_in_months"}), **values})

        if photo is not None:
            old_key = child.photo.key if child.photo else None
            updated.photo = self.storage.save(photo.content, suffix=photo.suffix)
            if old_key:
                self.storage.delete(old_key)

        updated.updated_at = datetime.now(timezone.utc)
        self._registry.children.save(updated)
        return updated

    def delete_child(self, child_id: UUID, parent_id: UUID) -> None:
        child = self.get_owned_child(child_id, parent_id)
        child.is_active = False
        child.updated_at = datetime.now(timezone.utc)
        self._registry.children.save(child)


child_service = ChildService()
