from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr, Field

from src.vaxtrack.domain.models.user import Address, NotificationPreferences, User
from src.vaxtrack.ratelimit import api_limiter, auth_limiter, rate_limit
from src.vaxtrack.security import IdentityClaims, get_current_user, get_identity
from src.vaxtrack.services.audit.service import audit_service
from src.vaxtrack.services.users.service import user_service

router = APIRouter(prefix="/auth", tags=["auth"], dependencies=[Depends(rate_limit(api_limiter))])


class SyncRequest(BaseModel):
    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    photo_url: Optional[str] = None


class ProfileUpdateRequest(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=32)
    address: Optional[Address] = None
    preferences: Optional[NotificationPreferences] = None


@router.post("/sync", response_model=User, dependencies=[Depends(rate_limit(auth_limiter))])
async def sync_user(payload: SyncRequest, claims: IdentityClaims = Depends(get_identity)) -> User:
    """Create or update the local profile for the token's subject.

    Profile fields in the body win over the ones carried in the token.
    """

    email = payload.email or claims.email
    if not email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email is required")

    user = user_service.sync_profile(
        subject=claims.subject,
        email=email,
        first_name=payload.first_name or claims.first_name,
        last_name=payload.last_name or claims.last_name,
        photo_url=payload.photo_url,
    )
    audit_service.log_event(action="sync_user", resource_type="user", resource_id=str(user.id))
    return user


@router.get("/me", response_model=User)
async def get_me(current_user: User = Depends(get_current_user)) -> User:
    return current_user


@router.put("/profile", response_model=User)
async def update_profile(
    payload: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
) -> User:
    changes = {name: getattr(payload, name) for name in payload.model_fields_set}
    user = user_service.update_profile(current_user.id, **changes)
    audit_service.log_event(
        action="update_profile",
        resource_type="user",
        resource_id=str(user.id),
        extra={"fields": sorted(payload.model_fields_set)},
    )
    return user


@router.delete("/account")
async def delete_account(current_user: User = Depends(get_current_user)) -> dict:
    user_service.deactivate(current_user.id)
    audit_service.log_event(action="deactivate_account", resource_type="user", resource_id=str(current_user.id))
    return {"message": "Account deactivated successfully"}
