from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from uuid import UUID, uuid4

import httpx
import pytest

from app.core.enums import OutboxStatusEnum
from app.modules.notifications.email import ResendEmailClient
from app.modules.notifications.outbox_worker import EmailOutboxWorker


@dataclass
class FakeOutboxEvent:
    id: UUID
    event_type: str
    payload: dict
    status: OutboxStatusEnum = OutboxStatusEnum.PENDING
    retries: int = 0
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    processed_at: datetime | None = None
    error_message: str | None = None


class FakeAuditRepository:
    def __init__(self, events: list[FakeOutboxEvent]) -> None:
        self.events = events

    async def list_pending_outbox(self, limit: int) -> list[FakeOutboxEvent]:
        return [event for event in self.events if event.status == OutboxStatusEnum.PENDING][:limit]

    async def list_failed_outbox(self, limit: int, max_retries: int) -> list[FakeOutboxEvent]:
        return [
            event
            for event in self.events
            if event.status == OutboxStatusEnum.FAILED and event.retries < max_retries
        ][:limit]

    async def mark_outbox_pending(self, event: FakeOutboxEvent) -> FakeOutboxEvent:
        event.status = OutboxStatusEnum.PENDING
        event.error_message = None
        return event

    async def mark_outbox_processed(self, event: FakeOutboxEvent, processed_at: datetime) -> FakeOutboxEvent:
        event.status = OutboxStatusEnum.PROCESSED
        event.processed_at = processed_at
        return event

    async def mark_outbox_failed(self, event: FakeOutboxEvent, error_message: str) -> FakeOutboxEvent:
        event.status = OutboxStatusEnum.FAILED
        event.retries += 1
        event.error_message = error_message
        return event


class FakeIdentityRepository:
    def __init__(self, admin_emails: list[str]) -> None:
        self.admins = [SimpleNamespace(id=uuid4(), email=email) for email in admin_emails]

    async def list_active_admins(self):
        return self.admins


class FakeTeachersRepository:
    def __init__(self, teachers: dict[UUID, str]) -> None:
        self.teachers = teachers

    async def get_teachers_by_ids(self, teacher_ids: list[UUID]):
        return [
            SimpleNamespace(id=teacher_id, email=self.teachers[teacher_id])
            for teacher_id in teacher_ids
            if teacher_id in self.teachers
        ]


class RecordingEmailClient:
    def __init__(self, fail: bool = False) -> None:
        self.sent: list[tuple[list[str], str, str]] = []
        self.fail = fail

    async def send(self, to: list[str], subject: str, text: str) -> str | None:
        if self.fail:
            raise RuntimeError("smtp down")
        self.sent.append((to, subject, text))
        return "msg-1"


NOW = datetime(2026, 10, 18, 12, 0, tzinfo=UTC)


def make_worker(
    events: list[FakeOutboxEvent],
    *,
    teachers: dict[UUID, str] | None = None,
    admin_emails: list[str] | None = None,
    email_client: RecordingEmailClient | None = None,
) -> tuple[EmailOutboxWorker, RecordingEmailClient]:
    client = email_client or RecordingEmailClient()
    worker = EmailOutboxWorker(
        audit_repository=FakeAuditRepository(events),  # type: ignore[arg-type]
        identity_repository=FakeIdentityRepository(admin_emails or []),  # type: ignore[arg-type]
        teachers_repository=FakeTeachersRepository(teachers or {}),  # type: ignore[arg-type]
        email_client=client,
        now_provider=lambda: NOW,
        base_backoff_seconds=30,
    )
    return worker, client


@pytest.mark.asyncio
async def test_contract_fulfilled_emails_teacher_and_admins() -> None:
    teacher_id = uuid4()
    event = FakeOutboxEvent(
        id=uuid4(),
        event_type="contract.fulfilled",
        payload={
            "contract_id": str(uuid4()),
            "student_id": str(uuid4()),
            "teacher_id": str(teacher_id),
            "message": "Vertrag erfüllt",
        },
    )
    worker, client = make_worker(
        [event],
        teachers={teacher_id: "anna@school.example.com"},
        admin_emails=["office@school.example.com", "ANNA@school.example.com"],
    )

    stats = await worker.run_once()

    assert stats == {"requeued": 0, "processed": 1, "failed": 0, "dispatched": 1}
    assert event.status == OutboxStatusEnum.PROCESSED
    recipients, subject, text = client.sent[0]
    assert recipients == ["anna@school.example.com", "office@school.example.com"]
    assert subject == "Vertrag erfüllt"
    assert text == "Vertrag erfüllt"


@pytest.mark.asyncio
async def test_trial_opened_emails_listed_teachers_only() -> None:
    first, second = uuid4(), uuid4()
    event = FakeOutboxEvent(
        id=uuid4(),
        event_type="trial.opened",
        payload={
            "trial_id": str(uuid4()),
            "teacher_ids": [str(first), str(second)],
            "notify_admins": False,
            "message": "Neue Probestunde",
        },
    )
    worker, client = make_worker(
        [event],
        teachers={first: "a@school.example.com", second: "b@school.example.com"},
        admin_emails=["office@school.example.com"],
    )

    await worker.run_once()

    assert client.sent[0][0] == ["a@school.example.com", "b@school.example.com"]


@pytest.mark.asyncio
async def test_trial_declined_goes_to_admins() -> None:
    event = FakeOutboxEvent(
        id=uuid4(),
        event_type="trial.declined",
        payload={"trial_id": str(uuid4()), "teacher_ids": [], "notify_admins": True, "message": "abgelehnt"},
    )
    worker, client = make_worker([event], admin_emails=["office@school.example.com"])

    await worker.run_once()

    assert client.sent == [(["office@school.example.com"], "Probestunde abgelehnt", "abgelehnt")]


@pytest.mark.asyncio
async def test_unrelated_event_is_processed_without_email() -> None:
    event = FakeOutboxEvent(id=uuid4(), event_type="contract.updated", payload={"contract_id": str(uuid4())})
    worker, client = make_worker([event], admin_emails=["office@school.example.com"])

    stats = await worker.run_once()

    assert stats == {"requeued": 0, "processed": 1, "failed": 0, "dispatched": 0}
    assert client.sent == []


@pytest.mark.asyncio
async def test_event_without_recipients_is_processed_without_email() -> None:
    event = FakeOutboxEvent(
        id=uuid4(),
        event_type="contract.fulfilled",
        payload={"contract_id": str(uuid4()), "teacher_id": None, "message": "x"},
    )
    worker, client = make_worker([event])

    stats = await worker.run_once()

    assert stats["processed"] == 1
    assert stats["dispatched"] == 0
    assert client.sent == []


@pytest.mark.asyncio
async def test_delivery_failure_marks_event_failed() -> None:
    teacher_id = uuid4()
    event = FakeOutboxEvent(
        id=uuid4(),
        event_type="trial.assigned",
        payload={"trial_id": str(uuid4()), "teacher_ids": [str(teacher_id)], "message": "zugewiesen"},
    )
    worker, _ = make_worker(
        [event],
        teachers={teacher_id: "a@school.example.com"},
        email_client=RecordingEmailClient(fail=True),
    )

    stats = await worker.run_once()

    assert stats["failed"] == 1
    assert event.status == OutboxStatusEnum.FAILED
    assert event.retries == 1
    assert event.error_message == "smtp down"


@pytest.mark.asyncio
async def test_missing_trial_id_marks_event_failed() -> None:
    event = FakeOutboxEvent(id=uuid4(), event_type="trial.accepted", payload={"notify_admins": True})
    worker, client = make_worker([event], admin_emails=["office@school.example.com"])

    stats = await worker.run_once()

    assert stats["failed"] == 1
    assert client.sent == []


@pytest.mark.asyncio
async def test_failed_event_is_requeued_only_after_backoff() -> None:
    teacher_id = uuid4()
    payload = {"trial_id": str(uuid4()), "teacher_ids": [str(teacher_id)], "message": "zugewiesen"}
    ready = FakeOutboxEvent(
        id=uuid4(),
        event_type="trial.assigned",
        payload=payload,
        status=OutboxStatusEnum.FAILED,
        retries=1,
        updated_at=NOW - timedelta(minutes=2),
    )
    waiting = FakeOutboxEvent(
        id=uuid4(),
        event_type="trial.assigned",
        payload=payload,
        status=OutboxStatusEnum.FAILED,
        retries=3,
        updated_at=NOW - timedelta(seconds=90),
    )
    worker, client = make_worker([ready, waiting], teachers={teacher_id: "a@school.example.com"})

    stats = await worker.run_once()

    assert stats["requeued"] == 1
    assert ready.status == OutboxStatusEnum.PROCESSED
    assert waiting.status == OutboxStatusEnum.FAILED
    assert len(client.sent) == 1


@pytest.mark.asyncio
async def test_resend_client_posts_json_with_bearer_token() -> None:
    captured: dict = {}

    def _handler(request: httpx.Request) -> httpx.Response:
        captured["auth"] = request.headers["Authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "email-123"})

    client = ResendEmailClient(
        "re_test_key",
        "Schule <noreply@school.example.com>",
        api_url="https://mail.test/emails",
        transport=httpx.MockTransport(_handler),
    )

    message_id = await client.send(["a@school.example.com"], "Betreff", "Hallo")

    assert message_id == "email-123"
    assert captured["auth"] == "Bearer re_test_key"
    assert captured["body"] == {
        "from": "Schule <noreply@school.example.com>",
        "to": ["a@school.example.com"],
        "subject": "Betreff",
        "text": "Hallo",
    }


@pytest.mark.asyncio
async def test_resend_client_raises_on_error_status() -> None:
    client = ResendEmailClient(
        "re_test_key",
        "noreply@school.example.com",
        transport=httpx.MockTransport(lambda request: httpx.Response(422, json={"message": "invalid"})),
    )

    with pytest.raises(httpx.HTTPStatusError):
        await client.send(["a@school.example.com"], "Betreff", "Hallo")
