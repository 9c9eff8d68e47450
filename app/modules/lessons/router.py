"""Lessons API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from app.modules.identity.service import get_current_profile
from app.modules.lessons.schemas import LessonBatchRequest, LessonBatchResult, LessonRead, LessonUpdate
from app.modules.lessons.service import LessonsService, get_lessons_service

router = APIRouter(prefix="/lessons", tags=["lessons"])


@router.get("/contract/{contract_id}", response_model=list[LessonRead])
async def list_lessons(
    contract_id: UUID,
    service: LessonsService = Depends(get_lessons_service),
    current_profile=Depends(get_current_profile),
) -> list[LessonRead]:
    """List lessons of a contract in lesson order."""
    lessons = await service.list_lessons(contract_id, current_profile)
    return [LessonRead.model_validate(lesson) for lesson in lessons]


@router.post("/batch", response_model=LessonBatchResult)
async def batch_update_lessons(
    payload: LessonBatchRequest,
    service: LessonsService = Depends(get_lessons_service),
    current_profile=Depends(get_current_profile),
) -> LessonBatchResult:
    """Update many lessons at once."""
    return await service.batch_update_lessons(payload.updates, current_profile)


@router.patch("/{lesson_id}", response_model=LessonRead)
async def update_lesson(
    lesson_id: UUID,
    payload: LessonUpdate,
    service: LessonsService = Depends(get_lessons_service),
    current_profile=Depends(get_current_profile),
) -> LessonRead:
    """Update lesson date, comment or availability."""
    lesson = await service.update_lesson(lesson_id, payload, current_profile)
    return LessonRead.model_validate(lesson)
