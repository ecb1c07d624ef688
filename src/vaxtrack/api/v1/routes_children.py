from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import BaseModel

from src.vaxtrack.config import settings
from src.vaxtrack.domain.models.child import BloodType, Child, EmergencyContact, Gender
from src.vaxtrack.domain.models.user import User
from src.vaxtrack.domain.models.vaccination import Vaccination
from src.vaxtrack.infra.storage.photos import ALLOWED_SUFFIXES
from src.vaxtrack.ratelimit import api_limiter, rate_limit
from src.vaxtrack.security import get_current_user
from src.vaxtrack.services.audit.service import audit_service
from src.vaxtrack.services.children.service import PhotoUpload, child_service

router = APIRouter(prefix="/children", tags=["children"], dependencies=[Depends(rate_limit(api_limiter))])


class ChildDetailResponse(BaseModel):
    child: Child
    vaccinations: List[Vaccination]


async def _read_photo(photo: Optional[UploadFile]) -> Optional[PhotoUpload]:
    if photo is None or not photo.filename:
        return None
    suffix = Path(photo.filename).suffix.lower()
    if suffix not in ALLOWED_SUFFIXES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Photo must be an image file")
    content = await photo.read()
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="Photo is too large")
    return PhotoUpload(content=content, suffix=suffix)


def _emergency_contact(name: Optional[str], relationship: Optional[str], phone: Optional[str]) -> Optional[EmergencyContact]:
    if not any((name, relationship, phone)):
        return None
    return EmergencyContact(name=name, relationship=relationship, phone=phone)


@router.get("/", response_model=List[Child])
async def list_children(current_user: User = Depends(get_current_user)) -> List[Child]:
    return child_service.list_children(current_user.id)


@router.post("/", response_model=Child, status_code=status.HTTP_201_CREATED)
async def create_child(
    name: str = Form(..., min_length=1, max_length=100),
    date_of_birth: date = Form(...),
    gender: Gender = Form(...),
    blood_type: Optional[BloodType] = Form(None),
    allergies: Optional[List[str]] = Form(None),
    medical_history: Optional[str] = Form(None),
    emergency_contact_name: Optional[str] = Form(None),
    emergency_contact_relationship: Optional[str] = Form(None),
    emergency_contact_phone: Optional[str] = Form(None),
    photo: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
) -> Child:
    if date_of_birth > date.today():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Date of birth cannot be in the future")

    fields: Dict[str, Any] = {
        "name": name,
        "date_of_birth": date_of_birth,
        "gender": gender,
        "blood_type": blood_type,
        "allergies": [a.strip() for a in allergies or [] if a.strip()],
        "medical_history": medical_history,
        "emergency_contact": _emergency_contact(
            emergency_contact_name, emergency_contact_relationship, emergency_contact_phone
        ),
    }
    child = child_service.create_child(current_user.id, fields, await _read_photo(photo))

    audit_service.log_event(
        action="create_child",
        resource_type="child",
        resource_id=str(child.id),
        extra={"has_photo": child.photo is not None},
    )
    return child


@router.get("/{child_id}", response_model=ChildDetailResponse)
async def get_child(child_id: UUID, current_user: User = Depends(get_current_user)) -> ChildDetailResponse:
    child, vaccinations = child_service.get_child_with_vaccinations(child_id, current_user.id)
    return ChildDetailResponse(child=child, vaccinations=vaccinations)


@router.put("/{child_id}", response_model=Child)
async def update_child(
    child_id: UUID,
    name: Optional[str] = Form(None, min_length=1, max_length=100),
    date_of_birth: Optional[date] = Form(None),
    gender: Optional[Gender] = Form(None),
    blood_type: Optional[BloodType] = Form(None),
    allergies: Optional[List[str]] = Form(None),
    medical_history: Optional[str] = Form(None),
    emergency_contact_name: Optional[str] = Form(None),
    emergency_contact_relationship: Optional[str] = Form(None),
    emergency_contact_phone: Optional[str] = Form(None),
    photo: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
) -> Child:
    if date_of_birth is not None and date_of_birth > date.today():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Date of birth cannot be in the future")

    changes: Dict[str, Any] = {
        "name": name,
        "date_of_birth": date_of_birth,
        "gender": gender,
        "blood_type": blood_type,
        "allergies": [a.strip() for a in allergies if a.strip()] if allergies is not None else None,
        "medical_history": medical_history,
        "emergency_contact": _emergency_contact(
            emergency_contact_name, emergency_contact_relationship, emergency_contact_phone
        ),
    }
    child = child_service.update_child(child_id, current_user.id, changes, await _read_photo(photo))

    audit_service.log_event(action="update_child", resource_type="child", resource_id=str(child.id))
    return child


@router.delete("/{child_id}")
async def delete_child(child_id: UUID, current_user: User = Depends(get_current_user)) -> dict:
    child_service.delete_child(child_id, current_user.id)
    audit_service.log_event(action="delete_child", resource_type="child", resource_id=str(child_id))
    return {"message": "Child deleted successfully"}
