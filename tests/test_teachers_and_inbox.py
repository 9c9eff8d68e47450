from __future__ import annotations

from types import SimpleNamespace
from uuid import UUID, uuid4

import pytest

from app.core.enums import NotificationTypeEnum, RoleEnum
from app.modules.notifications.service import NotificationsService
from app.modules.teachers.schemas import TeacherCreate, TeacherUpdate
from app.modules.teachers.service import TeachersService, resolve_actor_teacher
from app.shared.exceptions import ConflictException, UnauthorizedException


class FakeTeachersRepository:
    def __init__(self) -> None:
        self.teachers: dict[UUID, SimpleNamespace] = {}

    async def create_teacher(self, **fields):
        teacher = SimpleNamespace(id=uuid4(), student_count=0, **fields)
        self.teachers[teacher.id] = teacher
        return teacher

    async def get_teacher_by_id(self, teacher_id: UUID):
        return self.teachers.get(teacher_id)

    async def get_teacher_by_profile_id(self, profile_id: UUID):
        return next((t for t in self.teachers.values() if t.profile_id == profile_id), None)

    async def list_bank_ids(self) -> list[str]:
        return [teacher.bank_id for teacher in self.teachers.values()]

    async def update_teacher(self, teacher, **changes):
        for key, value in changes.items():
            setattr(teacher, key, value)
        return teacher


class FakeNotificationsRepository:
    def __init__(self, notifications: list[SimpleNamespace]) -> None:
        self.notifications = notifications

    async def get_notification_by_id(self, notification_id: UUID):
        return next((n for n in self.notifications if n.id == notification_id), None)

    async def count_unread(self, teacher_id: UUID | None = None) -> int:
        return sum(1 for n in self.notifications if not n.is_read and teacher_id in (None, n.teacher_id))

    async def mark_read(self, notification, is_read: bool = True):
        notification.is_read = is_read
        return notification


def _admin() -> SimpleNamespace:
    return SimpleNamespace(id=uuid4(), role=RoleEnum.ADMIN)


def _teacher_actor() -> SimpleNamespace:
    return SimpleNamespace(id=uuid4(), role=RoleEnum.TEACHER)


@pytest.mark.asyncio
async def test_create_teacher_assigns_next_bank_id() -> None:
    repository = FakeTeachersRepository()
    service = TeachersService(repository, None, None)  # type: ignore[arg-type]
    admin = _admin()

    first = await service.create_teacher(TeacherCreate(name="Anna Berg", email="anna@school.example.com"), admin)
    second = await service.create_teacher(TeacherCreate(name="Bernd Kurz", email="bernd@school.example.com"), admin)

    assert (first.bank_id, second.bank_id) == ("L1", "L2")


@pytest.mark.asyncio
async def test_profile_links_to_one_teacher_only() -> None:
    repository = FakeTeachersRepository()
    service = TeachersService(repository, None, None)  # type: ignore[arg-type]
    admin = _admin()
    profile_id = uuid4()
    await service.create_teacher(TeacherCreate(name="Anna Berg", email="anna@school.example.com", profile_id=profile_id), admin)
    other = await service.create_teacher(TeacherCreate(name="Bernd Kurz", email="bernd@school.example.com"), admin)

    with pytest.raises(ConflictException):
        await service.update_teacher(other.id, TeacherUpdate(profile_id=profile_id), admin)


@pytest.mark.asyncio
async def test_teacher_updates_own_record_only() -> None:
    repository = FakeTeachersRepository()
    service = TeachersService(repository, None, None)  # type: ignore[arg-type]
    actor = _teacher_actor()
    own = await repository.create_teacher(name="Anna Berg", email="anna@school.example.com", profile_id=actor.id, bank_id="L1")
    other = await repository.create_teacher(name="Bernd Kurz", email="bernd@school.example.com", profile_id=None, bank_id="L2")

    updated = await service.update_teacher(own.id, TeacherUpdate(phone="+49 30 1234"), actor)
    assert updated.phone == "+49 30 1234"

    with pytest.raises(UnauthorizedException):
        await service.update_teacher(other.id, TeacherUpdate(phone="0"), actor)


@pytest.mark.asyncio
async def test_unlinked_teacher_profile_is_rejected() -> None:
    with pytest.raises(UnauthorizedException):
        await resolve_actor_teacher(FakeTeachersRepository(), _teacher_actor())  # type: ignore[arg-type]
    assert await resolve_actor_teacher(FakeTeachersRepository(), _admin()) is None  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_inbox_is_scoped_to_recipient_teacher() -> None:
    teachers = FakeTeachersRepository()
    actor = _teacher_actor()
    teacher = await teachers.create_teacher(name="Anna Berg", email="anna@school.example.com", profile_id=actor.id, bank_id="L1")
    own = SimpleNamespace(id=uuid4(), teacher_id=teacher.id, is_read=False, type=NotificationTypeEnum.OPEN_TRIAL)
    foreign = SimpleNamespace(id=uuid4(), teacher_id=uuid4(), is_read=False, type=NotificationTypeEnum.OPEN_TRIAL)
    admin_only = SimpleNamespace(id=uuid4(), teacher_id=None, is_read=False, type=NotificationTypeEnum.ACCEPTED_TRIAL)
    service = NotificationsService(FakeNotificationsRepository([own, foreign, admin_only]), teachers)  # type: ignore[arg-type]

    assert await service.unread_count(actor) == 1
    assert await service.unread_count(_admin()) == 3

    await service.mark_read(own.id, actor)
    assert own.is_read is True

    with pytest.raises(UnauthorizedException):
        await service.mark_read(admin_only.id, actor)
