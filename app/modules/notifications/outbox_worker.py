"""Outbox consumer that delivers domain events as emails."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

from app.core.metrics import OUTBOX_EMAILS_TOTAL
from app.modules.audit.models import OutboxEvent
from app.modules.audit.repository import AuditRepository
from app.modules.identity.repository import IdentityRepository
from app.modules.notifications.email import EmailSender
from app.modules.teachers.repository import TeachersRepository
from app.shared.utils import utc_now

logger = logging.getLogger(__name__)

SUBJECTS = {
    "contract.fulfilled": "Vertrag erfüllt",
    "trial.opened": "Neue Probestunde verfügbar",
    "trial.assigned": "Probestunde zugewiesen",
    "trial.accepted": "Probestunde angenommen",
    "trial.declined": "Probestunde abgelehnt",
}


@dataclass(slots=True)
class EmailMessage:
    to: list[str]
    subject: str
    text: str


class EmailOutboxWorker:
    """Process outbox events and send notification emails."""

    def __init__(
        self,
        audit_repository: AuditRepository,
        identity_repository: IdentityRepository,
        teachers_repository: TeachersRepository,
        email_client: EmailSender,
        *,
        batch_size: int = 100,
        max_retries: int = 5,
        base_backoff_seconds: int = 30,
        max_backoff_seconds: int = 300,
        now_provider=utc_now,
    ) -> None:
        self.audit_repository = audit_repository
        self.identity_repository = identity_repository
        self.teachers_repository = teachers_repository
        self.email_client = email_client
        self.batch_size = batch_size
        self.max_retries = max_retries
        self.base_backoff_seconds = base_backoff_seconds
        self.max_backoff_seconds = max_backoff_seconds
        self.now_provider = now_provider

    async def run_once(self) -> dict[str, int]:
        """Run one processing cycle."""
        stats = {"requeued": 0, "processed": 0, "failed": 0, "dispatched": 0}
        stats["requeued"] = await self._requeue_retryable_failed_events()

        events = await self.audit_repository.list_pending_outbox(limit=self.batch_size)
        for event in events:
            try:
                message = await self._build_message(event)
                if message is not None:
                    await self.email_client.send(message.to, message.subject, message.text)
                    stats["dispatched"] += 1
                    OUTBOX_EMAILS_TOTAL.labels(outcome="sent").inc()

                await self.audit_repository.mark_outbox_processed(event, self.now_provider())
                stats["processed"] += 1
            except Exception as exc:
                logger.warning("Outbox event %s failed: %s", event.id, exc)
                OUTBOX_EMAILS_TOTAL.labels(outcome="failed").inc()
                await self.audit_repository.mark_outbox_failed(event, str(exc))
                stats["failed"] += 1
        return stats

    async def _requeue_retryable_failed_events(self) -> int:
        now = self.now_provider()
        failed_events = await self.audit_repository.list_failed_outbox(
            limit=self.batch_size,
            max_retries=self.max_retries,
        )
        requeued = 0
        for event in failed_events:
            if self._is_backoff_elapsed(event, now):
                await self.audit_repository.mark_outbox_pending(event)
                requeued += 1
        return requeued

    def _is_backoff_elapsed(self, event: OutboxEvent, now: datetime) -> bool:
        retries = max(event.retries, 1)
        backoff_seconds = min(
            self.max_backoff_seconds,
            self.base_backoff_seconds * (2 ** (retries - 1)),
        )
        last_attempt_at = event.updated_at or event.occurred_at
        return now >= last_attempt_at + timedelta(seconds=backoff_seconds)

    async def _build_message(self, event: OutboxEvent) -> EmailMessage | None:
        """Resolve recipients for an event; None when nobody is to be emailed."""
        payload = event.payload or {}
        event_type = event.event_type
        subject = SUBJECTS.get(event_type)
        if subject is None:
            return None

        text = payload.get("message") or subject
        if event_type == "contract.fulfilled":
            self._required_uuid(payload, "contract_id")
            teacher_id = self._optional_uuid(payload, "teacher_id")
            recipients = await self._teacher_emails([teacher_id] if teacher_id else [])
            recipients += await self._admin_emails()
        else:
            self._required_uuid(payload, "trial_id")
            teacher_ids = [UUID(str(value)) for value in payload.get("teacher_ids") or []]
            recipients = await self._teacher_emails(teacher_ids)
            if payload.get("notify_admins"):
                recipients += await self._admin_emails()

        recipients = self._unique_recipients(*recipients)
        if not recipients:
            logger.info("No email recipients for outbox event %s (%s)", event.id, event_type)
            return None
        return EmailMessage(to=recipients, subject=subject, text=text)

    async def _teacher_emails(self, teacher_ids: list[UUID]) -> list[str]:
        if not teacher_ids:
            return []
        teachers = await self.teachers_repository.get_teachers_by_ids(teacher_ids)
        return [teacher.email for teacher in teachers if teacher.email]

    async def _admin_emails(self) -> list[str]:
        admins = await self.identity_repository.list_active_admins()
        return [admin.email for admin in admins if admin.email]

    @staticmethod
    def _required_uuid(payload: dict, key: str) -> UUID:
        value = payload.get(key)
        if value is None:
            raise ValueError(f"Missing required key: {key}")
        return UUID(str(value))

    @staticmethod
    def _optional_uuid(payload: dict, key: str) -> UUID | None:
        value = payload.get(key)
        if value is None:
            return None
        return UUID(str(value))

    @staticmethod
    def _unique_recipients(*recipients: str) -> list[str]:
        unique: list[str] = []
        seen: set[str] = set()
        for recipient in recipients:
            key = recipient.lower()
            if key not in seen:
                unique.append(recipient)
                seen.add(key)
        return unique
