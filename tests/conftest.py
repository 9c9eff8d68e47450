from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from decimal import Decimal
from types import SimpleNamespace
from uuid import UUID, uuid4

import pytest

from app.core.enums import (
    ContractStatusEnum,
    NotificationTypeEnum,
    RoleEnum,
    StudentStatusEnum,
    TrialStatusEnum,
)
from app.modules.contracts.completion import ContractCompletionTracker
from app.modules.contracts.service import ContractsService
from app.modules.lessons.service import LessonsService
from app.modules.notifications.service import NotificationsService
from app.modules.students.service import StudentsService
from app.modules.trials.service import TrialsService

FIXED_NOW = datetime(2026, 3, 20, 17, 45, tzinfo=UTC)


def _entity(**fields) -> SimpleNamespace:
    now = datetime.now(UTC)
    fields.setdefault("id", uuid4())
    fields.setdefault("created_at", now)
    fields.setdefault("updated_at", now)
    return SimpleNamespace(**fields)


def _apply(entity: SimpleNamespace, changes: dict) -> SimpleNamespace:
    for key, value in changes.items():
        setattr(entity, key, value)
    entity.updated_at = datetime.now(UTC)
    return entity


class FakeTeachersRepository:
    def __init__(self, school: InMemorySchool) -> None:
        self.school = school

    async def get_teacher_by_id(self, teacher_id: UUID):
        return self.school.teachers.get(teacher_id)

    async def get_teacher_by_profile_id(self, profile_id: UUID):
        return next((t for t in self.school.teachers.values() if t.profile_id == profile_id), None)

    async def get_teachers_by_ids(self, teacher_ids: list[UUID]):
        return [self.school.teachers[tid] for tid in teacher_ids if tid in self.school.teachers]

    async def list_linked_teacher_ids(self, exclude_teacher_id: UUID | None = None) -> list[UUID]:
        return [
            teacher.id
            for teacher in self.school.teachers.values()
            if teacher.profile_id is not None and teacher.id != exclude_teacher_id
        ]

    async def set_student_count(self, teacher, student_count: int):
        teacher.student_count = student_count
        return teacher


class FakeStudentsRepository:
    def __init__(self, school: InMemorySchool) -> None:
        self.school = school

    async def create_student(self, **fields):
        student = _entity(contract_id=None, **fields)
        self.school.students[student.id] = student
        return student

    async def get_student_by_id(self, student_id: UUID, *, for_update: bool = False):
        if for_update:
            self.school.locks.append(("student", student_id))
        return self.school.students.get(student_id)

    async def list_bank_ids(self) -> list[str]:
        return [student.bank_id for student in self.school.students.values()]

    async def apply_changes(self, student, **changes):
        return _apply(student, changes)

    async def delete_student(self, student) -> None:
        self.school.students.pop(student.id, None)
        self.school.assignments = {pair for pair in self.school.assignments if pair[0] != student.id}

    async def count_active_students_for_teacher(self, teacher_id: UUID) -> int:
        return sum(
            1
            for student in self.school.students.values()
            if student.status == StudentStatusEnum.ACTIVE
            and (student.teacher_id == teacher_id or (student.id, teacher_id) in self.school.assignments)
        )

    async def list_assigned_teacher_ids(self, student_id: UUID) -> list[UUID]:
        return [teacher_id for sid, teacher_id in sorted(self.school.assignments, key=str) if sid == student_id]

    async def add_assignment(self, student_id: UUID, teacher_id: UUID, assigned_by: UUID | None):
        self.school.assignments.add((student_id, teacher_id))
        return SimpleNamespace(student_id=student_id, teacher_id=teacher_id, assigned_by=assigned_by)

    async def remove_assignment(self, student_id: UUID, teacher_id: UUID) -> bool:
        if (student_id, teacher_id) not in self.school.assignments:
            return False
        self.school.assignments.discard((student_id, teacher_id))
        return True


class FakeContractsRepository:
    def __init__(self, school: InMemorySchool) -> None:
        self.school = school

    async def apply_changes(self, entity, **changes):
        return _apply(entity, changes)

    async def get_variant_by_id(self, variant_id: UUID):
        return self.school.variants.get(variant_id)

    async def list_variants(
        self,
        category_id: UUID | None = None,
        include_inactive: bool = False,
        price_version: int | None = None,
    ):
        variants = [
            variant
            for variant in self.school.variants.values()
            if (include_inactive or variant.is_active)
            and (price_version is None or variant.price_version in (None, price_version))
        ]
        return sorted(variants, key=lambda variant: variant.name)

    async def get_pricing_settings(self, *, for_update: bool = False):
        return self.school.pricing_settings

    async def get_current_price_version(self) -> int:
        return self.school.pricing_settings.current_price_version

    async def set_current_price_version(self, price_version: int):
        return _apply(self.school.pricing_settings, {"current_price_version": price_version})

    async def get_discounts_by_ids(self, discount_ids: list[UUID]):
        return [self.school.discounts[did] for did in discount_ids if did in self.school.discounts]

    async def create_contract(self, **fields):
        fields.setdefault("completed_at", None)
        contract = _entity(**fields)
        self.school.contracts[contract.id] = contract
        return contract

    async def get_contract_by_id(self, contract_id: UUID, *, for_update: bool = False):
        if for_update:
            self.school.locks.append(("contract", contract_id))
        return self.school.contracts.get(contract_id)

    async def lock_contracts(self, contract_ids: list[UUID]) -> dict:
        locked = {}
        for contract_id in sorted(contract_ids):
            self.school.locks.append(("contract", contract_id))
            if contract_id in self.school.contracts:
                locked[contract_id] = self.school.contracts[contract_id]
        return locked

    async def get_active_contract_for_student(self, student_id: UUID):
        return next(
            (
                contract
                for contract in self.school.contracts.values()
                if contract.student_id == student_id and contract.status == ContractStatusEnum.ACTIVE
            ),
            None,
        )

    async def delete_contract(self, contract) -> None:
        self.school.contracts.pop(contract.id, None)
        self.school.lessons = {lid: l for lid, l in self.school.lessons.items() if l.contract_id != contract.id}
        self.school.notifications = [n for n in self.school.notifications if n.contract_id != contract.id]
        for student in self.school.students.values():
            if student.contract_id == contract.id:
                student.contract_id = None


class FakeLessonsRepository:
    def __init__(self, school: InMemorySchool) -> None:
        self.school = school

    async def list_lessons_for_contract(self, contract_id: UUID):
        lessons = [lesson for lesson in self.school.lessons.values() if lesson.contract_id == contract_id]
        return sorted(lessons, key=lambda lesson: lesson.lesson_number)

    async def get_lesson_by_id(self, lesson_id: UUID):
        return self.school.lessons.get(lesson_id)

    async def map_contract_ids(self, lesson_ids: list[UUID]) -> dict[UUID, UUID]:
        return {lid: self.school.lessons[lid].contract_id for lid in lesson_ids if lid in self.school.lessons}

    async def get_lessons_by_ids(self, lesson_ids: list[UUID]) -> dict:
        return {lid: self.school.lessons[lid] for lid in lesson_ids if lid in self.school.lessons}

    async def create_lessons(self, contract_id: UUID, lesson_numbers: list[int]):
        created = []
        for number in lesson_numbers:
            lesson = _entity(contract_id=contract_id, lesson_number=number, date=None, is_available=True, comment=None)
            self.school.lessons[lesson.id] = lesson
            created.append(lesson)
        return created

    async def delete_lessons_above(self, contract_id: UUID, max_lesson_number: int) -> int:
        doomed = [
            lid
            for lid, lesson in self.school.lessons.items()
            if lesson.contract_id == contract_id and lesson.lesson_number > max_lesson_number
        ]
        for lid in doomed:
            del self.school.lessons[lid]
        return len(doomed)

    async def update_lesson(self, lesson, **changes):
        return _apply(lesson, changes)


class FakeNotificationsRepository:
    def __init__(self, school: InMemorySchool) -> None:
        self.school = school

    def _visible(self, teacher_id: UUID | None):
        return [n for n in self.school.notifications if teacher_id is None or n.teacher_id == teacher_id]

    async def get_notification_by_id(self, notification_id: UUID):
        return next((n for n in self.school.notifications if n.id == notification_id), None)

    async def count_unread(self, teacher_id: UUID | None = None) -> int:
        return sum(1 for n in self._visible(teacher_id) if not n.is_read)

    async def mark_read(self, notification, is_read: bool = True):
        notification.is_read = is_read
        return notification

    async def mark_all_read(self, teacher_id: UUID | None = None) -> int:
        unread = [n for n in self._visible(teacher_id) if not n.is_read]
        for notification in unread:
            notification.is_read = True
        return len(unread)

    async def delete_notification(self, notification) -> None:
        self.school.notifications.remove(notification)

    async def delete_stale_trial_notifications(self) -> int:
        accepted = {tid for tid, trial in self.school.trials.items() if trial.status == TrialStatusEnum.ACCEPTED}
        stale = {NotificationTypeEnum.OPEN_TRIAL, NotificationTypeEnum.ASSIGNED_TRIAL}
        before = len(self.school.notifications)
        self.school.notifications = [
            n for n in self.school.notifications if not (n.type in stale and n.trial_appointment_id in accepted)
        ]
        return before - len(self.school.notifications)

    async def create_notification(
        self,
        type: NotificationTypeEnum,
        message: str,
        *,
        contract_id: UUID | None = None,
        teacher_id: UUID | None = None,
        student_id: UUID | None = None,
        trial_appointment_id: UUID | None = None,
    ):
        notification = _entity(
            type=type,
            message=message,
            contract_id=contract_id,
            teacher_id=teacher_id,
            student_id=student_id,
            trial_appointment_id=trial_appointment_id,
            is_read=False,
        )
        self.school.notifications.append(notification)
        return notification

    async def has_contract_fulfilled(self, contract_id: UUID) -> bool:
        return any(
            n.contract_id == contract_id and n.type == NotificationTypeEnum.CONTRACT_FULFILLED
            for n in self.school.notifications
        )

    async def has_trial_notification(self, trial_appointment_id: UUID, teacher_id: UUID | None, type) -> bool:
        return any(
            n.trial_appointment_id == trial_appointment_id and n.teacher_id == teacher_id and n.type == type
            for n in self.school.notifications
        )

    async def delete_trial_notifications(
        self,
        trial_appointment_id: UUID,
        types: Iterable[NotificationTypeEnum],
        *,
        teacher_id: UUID | None = None,
        exclude_teacher_id: UUID | None = None,
    ) -> int:
        types = set(types)

        def _matches(n) -> bool:
            return (
                n.trial_appointment_id == trial_appointment_id
                and n.type in types
                and (teacher_id is None or n.teacher_id == teacher_id)
                and (exclude_teacher_id is None or n.teacher_id != exclude_teacher_id)
            )

        before = len(self.school.notifications)
        self.school.notifications = [n for n in self.school.notifications if not _matches(n)]
        return before - len(self.school.notifications)


class FakeAuditRepository:
    def __init__(self, school: InMemorySchool) -> None:
        self.school = school

    async def create_operation_log(self, **fields):
        fields.setdefault("status", None)
        entry = _entity(**fields)
        self.school.operation_logs.append(entry)
        return entry

    async def create_outbox_event(self, aggregate_type: str, aggregate_id: str, event_type: str, payload: dict):
        event = _entity(
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
            event_type=event_type,
            payload=payload,
        )
        self.school.outbox.append(event)
        return event


class FakeTrialsRepository:
    def __init__(self, school: InMemorySchool) -> None:
        self.school = school

    async def create_trial(self, **fields):
        trial = _entity(**fields)
        self.school.trials[trial.id] = trial
        return trial

    async def get_trial_by_id(self, trial_id: UUID, *, for_update: bool = False):
        return self.school.trials.get(trial_id)

    async def apply_changes(self, trial, **changes):
        return _apply(trial, changes)

    async def delete_trial(self, trial) -> None:
        self.school.trials.pop(trial.id, None)
        self.school.notifications = [n for n in self.school.notifications if n.trial_appointment_id != trial.id]


class InMemorySchool:
    """Dict-backed stand-in for the database shared by all fake repositories."""

    def __init__(self) -> None:
        self.teachers: dict[UUID, SimpleNamespace] = {}
        self.students: dict[UUID, SimpleNamespace] = {}
        self.assignments: set[tuple[UUID, UUID]] = set()
        self.variants: dict[UUID, SimpleNamespace] = {}
        self.discounts: dict[UUID, SimpleNamespace] = {}
        self.contracts: dict[UUID, SimpleNamespace] = {}
        self.lessons: dict[UUID, SimpleNamespace] = {}
        self.notifications: list[SimpleNamespace] = []
        self.trials: dict[UUID, SimpleNamespace] = {}
        self.operation_logs: list[SimpleNamespace] = []
        self.outbox: list[SimpleNamespace] = []
        self.locks: list[tuple[str, UUID]] = []
        self.pricing_settings = SimpleNamespace(current_price_version=2, updated_at=FIXED_NOW)
        self.now = FIXED_NOW

        self.teachers_repository = FakeTeachersRepository(self)
        self.students_repository = FakeStudentsRepository(self)
        self.contracts_repository = FakeContractsRepository(self)
        self.lessons_repository = FakeLessonsRepository(self)
        self.notifications_repository = FakeNotificationsRepository(self)
        self.audit_repository = FakeAuditRepository(self)
        self.trials_repository = FakeTrialsRepository(self)

    # Actors and rows

    @staticmethod
    def admin() -> SimpleNamespace:
        return SimpleNamespace(id=uuid4(), role=RoleEnum.ADMIN, email="office@school.example.com")

    def add_teacher(self, name: str = "Anna Berg", *, linked: bool = True) -> SimpleNamespace:
        teacher = _entity(
            profile_id=uuid4() if linked else None,
            name=name,
            email=f"{name.split()[0].lower()}@school.example.com",
            student_count=0,
        )
        self.teachers[teacher.id] = teacher
        return teacher

    @staticmethod
    def actor_for(teacher: SimpleNamespace) -> SimpleNamespace:
        return SimpleNamespace(id=teacher.profile_id, role=RoleEnum.TEACHER, email=teacher.email)

    def add_student(
        self,
        teacher: SimpleNamespace | None = None,
        name: str = "Lena Vogel",
        *,
        price_version: int | None = 2,
    ) -> SimpleNamespace:
        student = _entity(
            name=name,
            instrument="Klavier",
            teacher_id=teacher.id if teacher is not None else None,
            status=StudentStatusEnum.ACTIVE,
            contract_id=None,
            bank_id=f"S{len(self.students) + 1:03d}",
            price_version=price_version,
        )
        self.students[student.id] = student
        return student

    def add_variant(
        self,
        name: str = "Einzel – 30min",
        *,
        total_lessons: int | None = 18,
        monthly_price: str | None = "88.00",
        one_time_price: str | None = None,
        is_active: bool = True,
        price_version: int | None = None,
    ) -> SimpleNamespace:
        variant = _entity(
            name=name,
            total_lessons=total_lessons,
            monthly_price=Decimal(monthly_price) if monthly_price else None,
            one_time_price=Decimal(one_time_price) if one_time_price else None,
            is_active=is_active,
            price_version=price_version,
        )
        self.variants[variant.id] = variant
        return variant

    def add_discount(self, percent: str, *, is_active: bool = True) -> SimpleNamespace:
        discount = _entity(name=f"Rabatt {percent}", discount_percent=Decimal(percent), is_active=is_active)
        self.discounts[discount.id] = discount
        return discount

    def lessons_of(self, contract_id: UUID) -> list[SimpleNamespace]:
        lessons = [lesson for lesson in self.lessons.values() if lesson.contract_id == contract_id]
        return sorted(lessons, key=lambda lesson: lesson.lesson_number)

    def notifications_of_type(self, type: NotificationTypeEnum) -> list[SimpleNamespace]:
        return [n for n in self.notifications if n.type == type]

    # Services

    def tracker(self) -> ContractCompletionTracker:
        return ContractCompletionTracker(
            self.contracts_repository,  # type: ignore[arg-type]
            self.lessons_repository,  # type: ignore[arg-type]
            self.students_repository,  # type: ignore[arg-type]
            self.teachers_repository,  # type: ignore[arg-type]
            self.notifications_repository,  # type: ignore[arg-type]
            self.audit_repository,  # type: ignore[arg-type]
            now_provider=lambda: FIXED_NOW,
        )

    def contracts_service(self) -> ContractsService:
        return ContractsService(
            repository=self.contracts_repository,  # type: ignore[arg-type]
            lessons_repository=self.lessons_repository,  # type: ignore[arg-type]
            students_repository=self.students_repository,  # type: ignore[arg-type]
            teachers_repository=self.teachers_repository,  # type: ignore[arg-type]
            audit_repository=self.audit_repository,  # type: ignore[arg-type]
            completion_tracker=self.tracker(),
        )

    def lessons_service(self) -> LessonsService:
        return LessonsService(
            repository=self.lessons_repository,  # type: ignore[arg-type]
            contracts_repository=self.contracts_repository,  # type: ignore[arg-type]
            students_repository=self.students_repository,  # type: ignore[arg-type]
            teachers_repository=self.teachers_repository,  # type: ignore[arg-type]
            audit_repository=self.audit_repository,  # type: ignore[arg-type]
            completion_tracker=self.tracker(),
        )

    def students_service(self) -> StudentsService:
        return StudentsService(
            repository=self.students_repository,  # type: ignore[arg-type]
            teachers_repository=self.teachers_repository,  # type: ignore[arg-type]
            contracts_repository=self.contracts_repository,  # type: ignore[arg-type]
        )

    def notifications_service(self) -> NotificationsService:
        return NotificationsService(
            repository=self.notifications_repository,  # type: ignore[arg-type]
            teachers_repository=self.teachers_repository,  # type: ignore[arg-type]
        )

    def trials_service(self) -> TrialsService:
        return TrialsService(
            repository=self.trials_repository,  # type: ignore[arg-type]
            teachers_repository=self.teachers_repository,  # type: ignore[arg-type]
            notifications_repository=self.notifications_repository,  # type: ignore[arg-type]
            audit_repository=self.audit_repository,  # type: ignore[arg-type]
        )


@pytest.fixture
def school() -> InMemorySchool:
    return InMemorySchool()


