"""Trial appointments API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from app.core.enums import TrialStatusEnum
from app.modules.identity.service import get_current_profile
from app.modules.trials.schemas import TrialAssignRequest, TrialCreate, TrialRead, TrialUpdate
from app.modules.trials.service import TrialsService, get_trials_service
from app.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/trials", tags=["trials"])


@router.post("", response_model=TrialRead, status_code=status.HTTP_201_CREATED)
async def create_trial(
    payload: TrialCreate,
    service: TrialsService = Depends(get_trials_service),
    current_profile=Depends(get_current_profile),
) -> TrialRead:
    """Create trial appointment."""
    trial = await service.create_trial(payload, current_profile)
    return TrialRead.model_validate(trial)


@router.get("", response_model=Page[TrialRead])
async def list_trials(
    trial_status: TrialStatusEnum | None = None,
    pagination=Depends(get_pagination_params),
    service: TrialsService = Depends(get_trials_service),
    current_profile=Depends(get_current_profile),
) -> Page[TrialRead]:
    """List trial appointments visible to current profile."""
    items, total = await service.list_trials(
        current_profile,
        pagination.limit,
        pagination.offset,
        status=trial_status,
    )
    serialized = [TrialRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("/{trial_id}", response_model=TrialRead)
async def get_trial(
    trial_id: UUID,
    service: TrialsService = Depends(get_trials_service),
    current_profile=Depends(get_current_profile),
) -> TrialRead:
    trial = await service.get_trial(trial_id, current_profile)
    return TrialRead.model_validate(trial)


@router.patch("/{trial_id}", response_model=TrialRead)
async def update_trial(
    trial_id: UUID,
    payload: TrialUpdate,
    service: TrialsService = Depends(get_trials_service),
    current_profile=Depends(get_current_profile),
) -> TrialRead:
    """Update trial contact details."""
    trial = await service.update_trial(trial_id, payload, current_profile)
    return TrialRead.model_validate(trial)


@router.post("/{trial_id}/assign", response_model=TrialRead)
async def assign_trial(
    trial_id: UUID,
    payload: TrialAssignRequest,
    service: TrialsService = Depends(get_trials_service),
    current_profile=Depends(get_current_profile),
) -> TrialRead:
    """Assign trial to a teacher."""
    trial = await service.assign_trial(trial_id, payload.teacher_id, current_profile)
    return TrialRead.model_validate(trial)


@router.post("/{trial_id}/accept", response_model=TrialRead)
async def accept_trial(
    trial_id: UUID,
    service: TrialsService = Depends(get_trials_service),
    current_profile=Depends(get_current_profile),
) -> TrialRead:
    """Accept trial appointment."""
    trial = await service.accept_trial(trial_id, current_profile)
    return TrialRead.model_validate(trial)


@router.post("/{trial_id}/decline", response_model=TrialRead)
async def decline_trial(
    trial_id: UUID,
    service: TrialsService = Depends(get_trials_service),
    current_profile=Depends(get_current_profile),
) -> TrialRead:
    """Decline assigned trial appointment."""
    trial = await service.decline_trial(trial_id, current_profile)
    return TrialRead.model_validate(trial)


@router.delete("/{trial_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_trial(
    trial_id: UUID,
    service: TrialsService = Depends(get_trials_service),
    current_profile=Depends(get_current_profile),
) -> Response:
    """Delete trial appointment."""
    await service.delete_trial(trial_id, current_profile)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
