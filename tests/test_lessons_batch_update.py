from __future__ import annotations

from datetime import date
from uuid import uuid4

import pytest

from app.core.enums import ContractStatusEnum, ContractTypeEnum, NotificationTypeEnum, OperationStatusEnum
from app.modules.contracts.schemas import ContractCreate
from app.modules.lessons.schemas import LessonBatchItem, LessonUpdate
from app.shared.exceptions import UnauthorizedException
from app.shared.utils import parse_bool


async def _new_contract(school, teacher=None, student=None):
    teacher = teacher or school.add_teacher()
    student = student or school.add_student(teacher)
    contract = await school.contracts_service().create_contract(
        ContractCreate(student_id=student.id, type=ContractTypeEnum.TEN_CLASS_CARD),
        school.admin(),
    )
    return contract, teacher


@pytest.mark.parametrize(
    ("value", "expected"),
    [(True, True), ("false", False), ("YES", True), (0, False), ("n", False), ("maybe", True)],
)
def test_parse_bool_accepts_loose_tokens(value: object, expected: bool) -> None:
    assert parse_bool(value) is expected


@pytest.mark.asyncio
async def test_single_lesson_update_refreshes_attendance(school) -> None:
    contract, teacher = await _new_contract(school)
    lesson = school.lessons_of(contract.id)[0]

    updated = await school.lessons_service().update_lesson(
        lesson.id,
        LessonUpdate(date=date(2026, 3, 3), comment="  "),
        school.actor_for(teacher),
    )

    assert updated.date == date(2026, 3, 3)
    assert updated.comment is None
    assert contract.attendance_count == "1/10"
    assert contract.attendance_dates == ["2026-03-03"]


@pytest.mark.asyncio
async def test_foreign_teacher_cannot_update_lesson(school) -> None:
    contract, _ = await _new_contract(school)
    stranger = school.add_teacher("Carla Stein")
    lesson = school.lessons_of(contract.id)[0]

    with pytest.raises(UnauthorizedException):
        await school.lessons_service().update_lesson(
            lesson.id,
            LessonUpdate(date=date(2026, 3, 3)),
            school.actor_for(stranger),
        )


@pytest.mark.asyncio
async def test_batch_update_completes_contract_once(school) -> None:
    contract, teacher = await _new_contract(school)
    lessons = school.lessons_of(contract.id)
    items = [
        LessonBatchItem(id=lesson.id, contract_id=contract.id, date=f"2026-02-{lesson.lesson_number:02d}")
        for lesson in lessons[:9]
    ]
    items.append(LessonBatchItem(id=lessons[9].id, is_available="false", comment="krank"))

    result = await school.lessons_service().batch_update_lessons(items, school.actor_for(teacher))

    assert result.success is True
    assert result.success_count == 10
    assert result.processed_contracts == [contract.id]
    assert result.completed_contracts == [contract.id]
    assert contract.status == ContractStatusEnum.COMPLETED
    assert contract.attendance_count == "9/9"
    assert lessons[9].is_available is False
    assert lessons[9].comment == "krank"
    assert len(school.notifications_of_type(NotificationTypeEnum.CONTRACT_FULFILLED)) == 1
    assert school.operation_logs[-1].status == OperationStatusEnum.SUCCESS


@pytest.mark.asyncio
async def test_batch_update_reports_item_errors_and_keeps_valid_items(school) -> None:
    contract, teacher = await _new_contract(school)
    other_contract, _ = await _new_contract(school, teacher=school.add_teacher("Bernd Kurz"))
    lessons = school.lessons_of(contract.id)
    missing_id = uuid4()
    items = [
        LessonBatchItem(id=lessons[0].id, date="2026-02-01"),
        LessonBatchItem(id=lessons[1].id, date="01.02.2026"),
        LessonBatchItem(id=missing_id, date="2026-02-01"),
        LessonBatchItem(id=lessons[2].id, contract_id=other_contract.id, date="2026-02-01"),
        LessonBatchItem(id=school.lessons_of(other_contract.id)[0].id, date="2026-02-01"),
    ]

    result = await school.lessons_service().batch_update_lessons(items, school.actor_for(teacher))

    assert result.success is False
    assert result.success_count == 1
    assert result.error_count == 4
    assert any(str(missing_id) in error for error in result.errors)
    assert lessons[0].date == date(2026, 2, 1)
    assert lessons[1].date is None
    assert school.lessons_of(other_contract.id)[0].date is None
    assert contract.attendance_count == "1/10"
    assert school.operation_logs[-1].status == OperationStatusEnum.FAILED


@pytest.mark.asyncio
async def test_batch_update_locks_contracts_in_id_order(school) -> None:
    first, _ = await _new_contract(school)
    second, _ = await _new_contract(school)
    school.locks.clear()
    items = [
        LessonBatchItem(id=school.lessons_of(contract.id)[0].id, date="2026-02-01")
        for contract in (first, second)
    ]

    result = await school.lessons_service().batch_update_lessons(list(reversed(items)), school.admin())

    assert result.success_count == 2
    assert school.locks == [("contract", contract_id) for contract_id in sorted([first.id, second.id])]
    assert sorted(result.processed_contracts) == sorted([first.id, second.id])


@pytest.mark.asyncio
async def test_batch_update_with_empty_values_clears_date_and_comment(school) -> None:
    contract, teacher = await _new_contract(school)
    lesson = school.lessons_of(contract.id)[0]
    lesson.date = date(2026, 1, 5)
    lesson.comment = "gut"

    await school.lessons_service().batch_update_lessons(
        [LessonBatchItem(id=lesson.id, date="", comment="")],
        school.actor_for(teacher),
    )

    assert lesson.date is None
    assert lesson.comment is None
    assert lesson.is_available is True
    assert contract.attendance_count == "0/10"


@pytest.mark.asyncio
async def test_assigned_teacher_can_track_lessons(school) -> None:
    primary = school.add_teacher("Anna Berg")
    helper = school.add_teacher("Bernd Kurz")
    student = school.add_student(primary)
    school.assignments.add((student.id, helper.id))
    contract, _ = await _new_contract(school, teacher=primary, student=student)
    lesson = school.lessons_of(contract.id)[0]

    result = await school.lessons_service().batch_update_lessons(
        [LessonBatchItem(id=lesson.id, date="2026-02-01")],
        school.actor_for(helper),
    )

    assert result.success is True
    assert lesson.date == date(2026, 2, 1)


@pytest.mark.asyncio
async def test_batch_update_accepts_textual_availability(school) -> None:
    contract, teacher = await _new_contract(school)
    lessons = school.lessons_of(contract.id)
    service = school.lessons_service()
    actor = school.actor_for(teacher)

    result = await service.batch_update_lessons(
        [
            LessonBatchItem(id=lessons[0].id, is_available="no"),
            LessonBatchItem(id=lessons[1].id, is_available="0", date="2026-02-03"),
            LessonBatchItem(id=lessons[2].id, date="2026-02-04"),
        ],
        actor,
    )

    assert result.success_count == 3
    assert [lesson.is_available for lesson in lessons[:3]] == [False, False, True]
    assert contract.attendance_count == "1/8"

    await service.batch_update_lessons([LessonBatchItem(id=lessons[0].id, is_available="Yes")], actor)
    assert lessons[0].is_available is True
    assert contract.attendance_count == "1/9"
