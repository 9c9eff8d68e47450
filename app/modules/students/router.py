"""Students API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from app.core.enums import StudentStatusEnum
from app.modules.identity.service import get_current_profile
from app.modules.students.schemas import (
    StudentCreate,
    StudentDetailRead,
    StudentRead,
    StudentUpdate,
    TeacherAssignmentRequest,
)
from app.modules.students.service import StudentsService, get_students_service
from app.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/students", tags=["students"])


@router.post("", response_model=StudentRead, status_code=status.HTTP_201_CREATED)
async def create_student(
    payload: StudentCreate,
    service: StudentsService = Depends(get_students_service),
    current_profile=Depends(get_current_profile),
) -> StudentRead:
    """Create student."""
    student = await service.create_student(payload, current_profile)
    return StudentRead.model_validate(student)


@router.get("", response_model=Page[StudentRead])
async def list_students(
    teacher_id: UUID | None = None,
    student_status: StudentStatusEnum | None = None,
    search: str | None = None,
    pagination=Depends(get_pagination_params),
    service: StudentsService = Depends(get_students_service),
    current_profile=Depends(get_current_profile),
) -> Page[StudentRead]:
    """List students visible to the current profile."""
    items, total = await service.list_students(
        current_profile,
        pagination.limit,
        pagination.offset,
        teacher_id=teacher_id,
        status=student_status,
        search=search,
    )
    serialized = [StudentRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("/{student_id}", response_model=StudentDetailRead)
async def get_student(
    student_id: UUID,
    service: StudentsService = Depends(get_students_service),
    current_profile=Depends(get_current_profile),
) -> StudentDetailRead:
    """Return student details."""
    student, assigned = await service.get_student(student_id, current_profile)
    return StudentDetailRead.model_validate(student).model_copy(update={"additional_teacher_ids": assigned})


@router.patch("/{student_id}", response_model=StudentRead)
async def update_student(
    student_id: UUID,
    payload: StudentUpdate,
    service: StudentsService = Depends(get_students_service),
    current_profile=Depends(get_current_profile),
) -> StudentRead:
    """Update student."""
    student = await service.update_student(student_id, payload, current_profile)
    return StudentRead.model_validate(student)


@router.delete("/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_student(
    student_id: UUID,
    service: StudentsService = Depends(get_students_service),
    current_profile=Depends(get_current_profile),
) -> Response:
    """Delete student with contracts."""
    await service.delete_student(student_id, current_profile)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{student_id}/teachers", response_model=list[UUID])
async def assign_teacher(
    student_id: UUID,
    payload: TeacherAssignmentRequest,
    service: StudentsService = Depends(get_students_service),
    current_profile=Depends(get_current_profile),
) -> list[UUID]:
    """Assign additional teacher."""
    return await service.assign_teacher(student_id, payload.teacher_id, current_profile)


@router.delete("/{student_id}/teachers/{teacher_id}", response_model=list[UUID])
async def unassign_teacher(
    student_id: UUID,
    teacher_id: UUID,
    service: StudentsService = Depends(get_students_service),
    current_profile=Depends(get_current_profile),
) -> list[UUID]:
    """Remove additional teacher."""
    return await service.unassign_teacher(student_id, teacher_id, current_profile)
