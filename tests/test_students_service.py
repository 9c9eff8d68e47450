from __future__ import annotations

import pytest

from app.core.enums import StudentStatusEnum
from app.modules.students.schemas import StudentCreate, StudentUpdate
from app.shared.exceptions import (
    BusinessRuleException,
    ConflictException,
    NotFoundException,
    UnauthorizedException,
)


@pytest.mark.asyncio
async def test_teacher_creates_student_for_themselves(school) -> None:
    teacher = school.add_teacher()
    school.add_student(teacher)

    student = await school.students_service().create_student(
        StudentCreate(name="Mia Roth", instrument="Gesang"),
        school.actor_for(teacher),
    )

    assert student.teacher_id == teacher.id
    assert student.bank_id == "S2"
    assert teacher.student_count == 2


@pytest.mark.asyncio
async def test_teacher_cannot_create_student_for_colleague(school) -> None:
    teacher = school.add_teacher("Anna Berg")
    colleague = school.add_teacher("Bernd Kurz")

    with pytest.raises(UnauthorizedException):
        await school.students_service().create_student(
            StudentCreate(name="Mia Roth", instrument="Gesang", teacher_id=colleague.id),
            school.actor_for(teacher),
        )


@pytest.mark.asyncio
async def test_assign_teacher_respects_maximum(school) -> None:
    primary = school.add_teacher("Anna Berg")
    second = school.add_teacher("Bernd Kurz")
    third = school.add_teacher("Carla Stein")
    student = school.add_student(primary)
    service = school.students_service()
    admin = school.admin()

    assigned = await service.assign_teacher(student.id, second.id, admin)
    assert assigned == [second.id]
    assert second.student_count == 1

    with pytest.raises(BusinessRuleException):
        await service.assign_teacher(student.id, third.id, admin)


@pytest.mark.asyncio
async def test_assign_rejects_duplicate_and_primary(school) -> None:
    primary = school.add_teacher("Anna Berg")
    student = school.add_student(primary)

    with pytest.raises(ConflictException):
        await school.students_service().assign_teacher(student.id, primary.id, school.admin())


@pytest.mark.asyncio
async def test_only_admin_assigns_teachers(school) -> None:
    primary = school.add_teacher("Anna Berg")
    other = school.add_teacher("Bernd Kurz")
    student = school.add_student(primary)

    with pytest.raises(UnauthorizedException):
        await school.students_service().assign_teacher(student.id, other.id, school.actor_for(primary))


@pytest.mark.asyncio
async def test_unassign_missing_assignment_raises(school) -> None:
    primary = school.add_teacher("Anna Berg")
    other = school.add_teacher("Bernd Kurz")
    student = school.add_student(primary)

    with pytest.raises(NotFoundException):
        await school.students_service().unassign_teacher(student.id, other.id, school.admin())


@pytest.mark.asyncio
async def test_promoting_assigned_teacher_drops_assignment(school) -> None:
    primary = school.add_teacher("Anna Berg")
    helper = school.add_teacher("Bernd Kurz")
    student = school.add_student(primary)
    service = school.students_service()
    admin = school.admin()
    await service.assign_teacher(student.id, helper.id, admin)

    updated = await service.update_student(student.id, StudentUpdate(teacher_id=helper.id), admin)

    assert updated.teacher_id == helper.id
    assert school.assignments == set()
    assert primary.student_count == 0
    assert helper.student_count == 1


@pytest.mark.asyncio
async def test_teacher_cannot_reassign_primary_teacher(school) -> None:
    primary = school.add_teacher("Anna Berg")
    other = school.add_teacher("Bernd Kurz")
    student = school.add_student(primary)

    with pytest.raises(UnauthorizedException):
        await school.students_service().update_student(
            student.id,
            StudentUpdate(teacher_id=other.id),
            school.actor_for(primary),
        )


@pytest.mark.asyncio
async def test_deactivating_student_updates_teacher_count(school) -> None:
    primary = school.add_teacher("Anna Berg")
    student = school.add_student(primary)
    primary.student_count = 1

    await school.students_service().update_student(
        student.id,
        StudentUpdate(status=StudentStatusEnum.INACTIVE, name=None),
        school.actor_for(primary),
    )

    assert student.name == "Lena Vogel"
    assert primary.student_count == 0


@pytest.mark.asyncio
async def test_assigned_teacher_sees_student_but_cannot_delete(school) -> None:
    primary = school.add_teacher("Anna Berg")
    helper = school.add_teacher("Bernd Kurz")
    student = school.add_student(primary)
    school.assignments.add((student.id, helper.id))
    service = school.students_service()

    found, assigned = await service.get_student(student.id, school.actor_for(helper))
    assert found.id == student.id
    assert assigned == [helper.id]

    with pytest.raises(UnauthorizedException):
        await service.delete_student(student.id, school.actor_for(helper))

    await service.delete_student(student.id, school.admin())
    assert student.id not in school.students
    assert helper.student_count == 0
