from __future__ import annotations

import pytest

from app.core.enums import NotificationTypeEnum, TrialStatusEnum
from app.modules.trials.schemas import TrialCreate, TrialUpdate
from app.shared.exceptions import (
    BusinessRuleException,
    ConflictException,
    UnauthorizedException,
)


def _request(**overrides) -> TrialCreate:
    return TrialCreate(student_name="Jonas Weber", instrument="Gitarre", **overrides)


@pytest.mark.asyncio
async def test_open_trial_notifies_every_linked_teacher(school) -> None:
    anna = school.add_teacher("Anna Berg")
    bernd = school.add_teacher("Bernd Kurz")
    school.add_teacher("Extern Lehrer", linked=False)

    trial = await school.trials_service().create_trial(_request(), school.admin())

    assert trial.status == TrialStatusEnum.OPEN
    recipients = {n.teacher_id for n in school.notifications_of_type(NotificationTypeEnum.OPEN_TRIAL)}
    assert recipients == {anna.id, bernd.id}
    event = school.outbox[-1]
    assert event.event_type == "trial.opened"
    assert set(event.payload["teacher_ids"]) == {str(anna.id), str(bernd.id)}
    assert event.payload["notify_admins"] is False


@pytest.mark.asyncio
async def test_teacher_created_trial_skips_creator(school) -> None:
    anna = school.add_teacher("Anna Berg")
    bernd = school.add_teacher("Bernd Kurz")

    await school.trials_service().create_trial(_request(), school.actor_for(anna))

    recipients = [n.teacher_id for n in school.notifications_of_type(NotificationTypeEnum.OPEN_TRIAL)]
    assert recipients == [bernd.id]


@pytest.mark.asyncio
async def test_teacher_cannot_create_assigned_trial(school) -> None:
    anna = school.add_teacher("Anna Berg")

    with pytest.raises(UnauthorizedException):
        await school.trials_service().create_trial(_request(teacher_id=anna.id), school.actor_for(anna))


@pytest.mark.asyncio
async def test_accepting_open_trial_clears_other_pending_notices(school) -> None:
    anna = school.add_teacher("Anna Berg")
    bernd = school.add_teacher("Bernd Kurz")
    service = school.trials_service()
    trial = await service.create_trial(_request(), school.admin())

    accepted = await service.accept_trial(trial.id, school.actor_for(bernd))

    assert accepted.status == TrialStatusEnum.ACCEPTED
    assert accepted.teacher_id == bernd.id
    assert school.notifications_of_type(NotificationTypeEnum.OPEN_TRIAL) == [
        n for n in school.notifications if n.teacher_id == bernd.id
    ]
    admin_notices = school.notifications_of_type(NotificationTypeEnum.ACCEPTED_TRIAL)
    assert len(admin_notices) == 1
    assert admin_notices[0].teacher_id is None
    assert "Bernd Kurz hat eine Probestunde mit Jonas Weber (Gitarre) angenommen." == admin_notices[0].message
    assert school.outbox[-1].payload["notify_admins"] is True

    with pytest.raises(ConflictException):
        await service.accept_trial(trial.id, school.actor_for(anna))


@pytest.mark.asyncio
async def test_assigned_trial_only_accepted_by_assignee(school) -> None:
    anna = school.add_teacher("Anna Berg")
    bernd = school.add_teacher("Bernd Kurz")
    service = school.trials_service()
    trial = await service.create_trial(_request(teacher_id=anna.id), school.admin())

    assert trial.status == TrialStatusEnum.ASSIGNED
    assigned = school.notifications_of_type(NotificationTypeEnum.ASSIGNED_TRIAL)
    assert [n.teacher_id for n in assigned] == [anna.id]

    with pytest.raises(UnauthorizedException):
        await service.accept_trial(trial.id, school.actor_for(bernd))


@pytest.mark.asyncio
async def test_decline_reopens_trial_for_other_teachers(school) -> None:
    anna = school.add_teacher("Anna Berg")
    bernd = school.add_teacher("Bernd Kurz")
    service = school.trials_service()
    trial = await service.create_trial(_request(teacher_id=anna.id), school.admin())

    declined = await service.decline_trial(trial.id, school.actor_for(anna))

    assert declined.status == TrialStatusEnum.OPEN
    assert declined.teacher_id is None
    assert school.notifications_of_type(NotificationTypeEnum.ASSIGNED_TRIAL) == []
    open_recipients = [n.teacher_id for n in school.notifications_of_type(NotificationTypeEnum.OPEN_TRIAL)]
    assert open_recipients == [bernd.id]
    declined_notices = school.notifications_of_type(NotificationTypeEnum.DECLINED_TRIAL)
    assert len(declined_notices) == 1
    assert declined_notices[0].teacher_id is None
    assert [event.event_type for event in school.outbox] == ["trial.assigned", "trial.opened", "trial.declined"]


@pytest.mark.asyncio
async def test_repeated_decline_keeps_single_admin_notice(school) -> None:
    anna = school.add_teacher("Anna Berg")
    service = school.trials_service()
    admin = school.admin()
    trial = await service.create_trial(_request(teacher_id=anna.id), admin)

    await service.decline_trial(trial.id, school.actor_for(anna))
    await service.assign_trial(trial.id, anna.id, admin)
    await service.decline_trial(trial.id, school.actor_for(anna))

    assert len(school.notifications_of_type(NotificationTypeEnum.DECLINED_TRIAL)) == 1


@pytest.mark.asyncio
async def test_only_assigned_trials_can_be_declined(school) -> None:
    anna = school.add_teacher("Anna Berg")
    service = school.trials_service()
    trial = await service.create_trial(_request(), school.admin())

    with pytest.raises(BusinessRuleException):
        await service.decline_trial(trial.id, school.actor_for(anna))


@pytest.mark.asyncio
async def test_reassign_moves_pending_notice_to_new_teacher(school) -> None:
    anna = school.add_teacher("Anna Berg")
    bernd = school.add_teacher("Bernd Kurz")
    service = school.trials_service()
    admin = school.admin()
    trial = await service.create_trial(_request(), admin)

    await service.assign_trial(trial.id, anna.id, admin)
    await service.assign_trial(trial.id, bernd.id, admin)

    assert school.notifications_of_type(NotificationTypeEnum.OPEN_TRIAL) == []
    assigned = school.notifications_of_type(NotificationTypeEnum.ASSIGNED_TRIAL)
    assert [n.teacher_id for n in assigned] == [bernd.id]


@pytest.mark.asyncio
async def test_creator_cannot_edit_accepted_trial(school) -> None:
    anna = school.add_teacher("Anna Berg")
    bernd = school.add_teacher("Bernd Kurz")
    service = school.trials_service()
    trial = await service.create_trial(_request(), school.actor_for(anna))
    await service.accept_trial(trial.id, school.actor_for(bernd))

    with pytest.raises(BusinessRuleException):
        await service.update_trial(trial.id, TrialUpdate(notes="neu"), school.actor_for(anna))

    updated = await service.update_trial(trial.id, TrialUpdate(notes="neu", student_name=None), school.admin())
    assert updated.notes == "neu"
    assert updated.student_name == "Jonas Weber"
