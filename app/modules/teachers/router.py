"""Teachers API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from app.modules.identity.service import get_current_profile
from app.modules.teachers.schemas import TeacherContractCount, TeacherCreate, TeacherRead, TeacherUpdate
from app.modules.teachers.service import TeachersService, get_teachers_service
from app.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/teachers", tags=["teachers"])


@router.post("", response_model=TeacherRead, status_code=status.HTTP_201_CREATED)
async def create_teacher(
    payload: TeacherCreate,
    service: TeachersService = Depends(get_teachers_service),
    current_profile=Depends(get_current_profile),
) -> TeacherRead:
    """Create teacher."""
    teacher = await service.create_teacher(payload, current_profile)
    return TeacherRead.model_validate(teacher)


@router.get("", response_model=Page[TeacherRead])
async def list_teachers(
    instrument: str | None = None,
    pagination=Depends(get_pagination_params),
    service: TeachersService = Depends(get_teachers_service),
    current_profile=Depends(get_current_profile),
) -> Page[TeacherRead]:
    """List teachers."""
    items, total = await service.list_teachers(pagination.limit, pagination.offset, instrument=instrument)
    serialized = [TeacherRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("/contract-counts", response_model=list[TeacherContractCount])
async def get_contract_counts(
    service: TeachersService = Depends(get_teachers_service),
    current_profile=Depends(get_current_profile),
) -> list[TeacherContractCount]:
    """Return number of contracts per teacher."""
    return await service.contract_counts(current_profile)


@router.post("/student-counts/recompute")
async def recompute_student_counts(
    service: TeachersService = Depends(get_teachers_service),
    current_profile=Depends(get_current_profile),
) -> dict[str, int]:
    """Refresh cached student counts of all teachers."""
    checked = await service.recompute_student_counts(current_profile)
    return {"teachers_checked": checked}


@router.get("/{teacher_id}", response_model=TeacherRead)
async def get_teacher(
    teacher_id: UUID,
    service: TeachersService = Depends(get_teachers_service),
    current_profile=Depends(get_current_profile),
) -> TeacherRead:
    """Return teacher details."""
    teacher = await service.get_teacher(teacher_id)
    return TeacherRead.model_validate(teacher)


@router.patch("/{teacher_id}", response_model=TeacherRead)
async def update_teacher(
    teacher_id: UUID,
    payload: TeacherUpdate,
    service: TeachersService = Depends(get_teachers_service),
    current_profile=Depends(get_current_profile),
) -> TeacherRead:
    """Update teacher."""
    teacher = await service.update_teacher(teacher_id, payload, current_profile)
    return TeacherRead.model_validate(teacher)


@router.delete("/{teacher_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_teacher(
    teacher_id: UUID,
    service: TeachersService = Depends(get_teachers_service),
    current_profile=Depends(get_current_profile),
) -> Response:
    """Delete teacher."""
    await service.delete_teacher(teacher_id, current_profile)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
