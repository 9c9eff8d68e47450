"""Identity API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from app.core.enums import RoleEnum
from app.modules.identity.schemas import ProfileRead, ProfileUpdate
from app.modules.identity.service import IdentityService, get_current_profile, get_identity_service
from app.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/identity", tags=["identity"])


@router.get("/me", response_model=ProfileRead)
async def get_me(current_profile=Depends(get_current_profile)) -> ProfileRead:
    """Return profile of authenticated staff member."""
    return ProfileRead.model_validate(current_profile)


@router.get("/profiles", response_model=Page[ProfileRead])
async def list_profiles(
    role: RoleEnum | None = None,
    pagination=Depends(get_pagination_params),
    service: IdentityService = Depends(get_identity_service),
    current_profile=Depends(get_current_profile),
) -> Page[ProfileRead]:
    """List staff profiles."""
    items, total = await service.list_profiles(current_profile, pagination.limit, pagination.offset, role=role)
    serialized = [ProfileRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.patch("/profiles/{profile_id}", response_model=ProfileRead)
async def update_profile(
    profile_id: UUID,
    payload: ProfileUpdate,
    service: IdentityService = Depends(get_identity_service),
    current_profile=Depends(get_current_profile),
) -> ProfileRead:
    """Update staff profile role or status."""
    profile = await service.update_profile(profile_id, payload, current_profile)
    return ProfileRead.model_validate(profile)
