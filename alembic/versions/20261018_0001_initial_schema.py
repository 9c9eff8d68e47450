"""Initial schema

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:30:00
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Sequence, Union
from uuid import uuid4

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "20261018_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


role_enum = sa.Enum("admin", "teacher", name="role_enum", native_enum=False)
student_status_enum = sa.Enum("active", "inactive", name="student_status_enum", native_enum=False)
contract_type_enum = sa.Enum("ten_class_card", "half_year", name="contract_type_enum", native_enum=False)
contract_status_enum = sa.Enum("active", "completed", name="contract_status_enum", native_enum=False)
payment_type_enum = sa.Enum("monthly", "one_time", name="payment_type_enum", native_enum=False)
billing_cycle_enum = sa.Enum("monthly", "upfront", name="billing_cycle_enum", native_enum=False)
group_type_enum = sa.Enum("single", "group", "duo", "varies", name="group_type_enum", native_enum=False)
trial_status_enum = sa.Enum("open", "assigned", "accepted", name="trial_status_enum", native_enum=False)
notification_type_enum = sa.Enum(
    "contract_fulfilled",
    "open_trial",
    "assigned_trial",
    "accepted_trial",
    "declined_trial",
    name="notification_type_enum",
    native_enum=False,
)
operation_status_enum = sa.Enum("success", "failed", name="operation_status_enum", native_enum=False)
outbox_status_enum = sa.Enum("pending", "processed", "failed", name="outbox_status_enum", native_enum=False)


def _id_col() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False)


def _created_col() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)


def _updated_col() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False)


def _uuid_col(name: str, nullable: bool = True) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), nullable=nullable)


CATEGORIES = [
    ("ten_lesson_card", "10er Karte", "Flexible 10-lesson packages"),
    ("half_year_contract", "Halbjahresvertrag", "6-month contracts with regular lessons"),
    ("supplement_program", "Ergänzungsprogramme", "Supplementary music programs"),
    ("private_diploma", "Diplomausbildung", "Private diploma programs"),
    ("repetition_workshop", "Repetitions-/Workshop-Stunden", "Repetition and workshop sessions"),
    ("trial_package", "Schnuppermomente", "Trial lesson packages"),
    ("special_discount", "Sondervereinbarung", "Special discount arrangements"),
]

# category, name, months, group type, minutes, lessons, monthly price, one-time price, notes
VARIANTS = [
    ("ten_lesson_card", "10er Karte – 30min", None, "single", 30, 10, None, "295.00", None),
    ("ten_lesson_card", "10er Karte – 45min", None, "single", 45, 10, None, "445.00", None),
    ("ten_lesson_card", "10er Karte – 60min", None, "single", 60, 10, None, "590.00", None),
    ("half_year_contract", "Einzel – 30min", 6, "single", 30, 18, "88.00", None, None),
    ("half_year_contract", "Einzel – 45min", 6, "single", 45, 18, "130.00", None, None),
    ("half_year_contract", "Einzel – 60min", 6, "single", 60, 18, "175.00", None, None),
    ("half_year_contract", "Gruppe – 60min", 6, "group", 60, 18, "66.00", None, None),
    ("half_year_contract", "Zweier – 45min", 6, "duo", 45, 18, "66.00", None, None),
    ("supplement_program", "Gruppe – 45min", 6, "group", 45, 18, "50.00", None, "Ergänzungsfach"),
    ("private_diploma", "Oper/Operette – 2 Jahre", 24, "single", 45, 72, "1080.00", None, "Diploma – Kategorie A"),
    ("private_diploma", "Musical – 3 Jahre", 36, "single", 45, 108, "840.00", None, "Diploma – Kategorie B"),
    ("repetition_workshop", "Repetitionsstunden 10x60min", None, "single", 60, 10, None, "530.00", None),
    ("repetition_workshop", "Workshop Klassik", None, "group", None, 1, None, "200.00", None),
    ("repetition_workshop", "Workshop Modern/Musical", None, "group", None, 1, None, "85.00", None),
    ("trial_package", "Schnuppermoment (ohne Instrument)", None, "single", 30, 4, None, "120.00", "4x30min"),
    ("trial_package", "Schnuppermoment (mit Instrument)", None, "single", 30, 4, None, "140.00", "4x30min + Instrument"),
]

DISCOUNTS = [
    ("Family/Student Discount", "5.00", "manually assignable"),
    ("Combo Booking (2 blocks)", "5.00", "applies if 2 active blocks exist"),
    ("Combo Booking (3 blocks)", "10.00", "applies if 3+ active blocks exist"),
    ("Half-Year Prepayment", "5.00", "applies if paid upfront"),
    ("Full-Year Prepayment", "10.00", "applies if paid upfront"),
]


def _price(value: str | None) -> Decimal | None:
    return Decimal(value) if value is not None else None


def upgrade() -> None:
    op.create_table(
        "profiles",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("role", role_enum, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.UniqueConstraint("email", name="uq_profiles_email"),
    )
    op.create_index("ix_profiles_email", "profiles", ["email"], unique=False)
    op.create_index("ix_profiles_role", "profiles", ["role"], unique=False)

    op.create_table(
        "teachers",
        _id_col(),
        _created_col(),
        _updated_col(),
        _uuid_col("profile_id"),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("instruments", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("bank_id", sa.String(length=32), nullable=False),
        sa.Column("student_count", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["profile_id"], ["profiles.id"], name="fk_teachers_profile_id_profiles", ondelete="CASCADE"),
        sa.UniqueConstraint("profile_id", name="uq_teachers_profile_id"),
        sa.UniqueConstraint("bank_id", name="uq_teachers_bank_id"),
    )

    op.create_table(
        "students",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("instrument", sa.String(length=128), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=64), nullable=True),
        _uuid_col("teacher_id"),
        sa.Column("status", student_status_enum, nullable=False),
        _uuid_col("contract_id"),
        sa.Column("bank_id", sa.String(length=32), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("price_version", sa.SmallInteger(), nullable=True),
        sa.ForeignKeyConstraint(["teacher_id"], ["teachers.id"], name="fk_students_teacher_id_teachers", ondelete="SET NULL"),
        sa.UniqueConstraint("bank_id", name="uq_students_bank_id"),
    )
    op.create_index("ix_students_teacher_id", "students", ["teacher_id"], unique=False)
    op.create_index("ix_students_status", "students", ["status"], unique=False)

    op.create_table(
        "student_teachers",
        _uuid_col("student_id", nullable=False),
        _uuid_col("teacher_id", nullable=False),
        _uuid_col("assigned_by"),
        _created_col(),
        sa.ForeignKeyConstraint(["student_id"], ["students.id"], name="fk_student_teachers_student_id_students", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["teacher_id"], ["teachers.id"], name="fk_student_teachers_teacher_id_teachers", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["assigned_by"],
            ["profiles.id"],
            name="fk_student_teachers_assigned_by_profiles",
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("student_id", "teacher_id", name="pk_student_teachers"),
    )
    op.create_index("ix_student_teachers_teacher_id", "student_teachers", ["teacher_id"], unique=False)

    contract_categories = op.create_table(
        "contract_categories",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("display_name", sa.String(length=128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.UniqueConstraint("name", name="uq_contract_categories_name"),
    )

    contract_variants = op.create_table(
        "contract_variants",
        _id_col(),
        _created_col(),
        _updated_col(),
        _uuid_col("category_id", nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("duration_months", sa.Integer(), nullable=True),
        sa.Column("group_type", group_type_enum, nullable=False),
        sa.Column("session_length_minutes", sa.Integer(), nullable=True),
        sa.Column("total_lessons", sa.Integer(), nullable=True),
        sa.Column("monthly_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("one_time_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("price_version", sa.SmallInteger(), nullable=True),
        sa.ForeignKeyConstraint(
            ["category_id"],
            ["contract_categories.id"],
            name="fk_contract_variants_category_id_contract_categories",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_contract_variants_category_id", "contract_variants", ["category_id"], unique=False)
    op.create_index("ix_contract_variants_price_version", "contract_variants", ["price_version"], unique=False)

    pricing_settings = op.create_table(
        "pricing_settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("current_price_version", sa.SmallInteger(), nullable=False),
        _updated_col(),
        sa.PrimaryKeyConstraint("id", name="pk_pricing_settings"),
        sa.CheckConstraint("id = 1", name="ck_pricing_settings_single_row"),
        sa.CheckConstraint("current_price_version > 0", name="ck_pricing_settings_current_price_version_positive"),
    )

    contract_discounts = op.create_table(
        "contract_discounts",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("discount_percent", sa.Numeric(5, 2), nullable=False),
        sa.Column("conditions", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.UniqueConstraint("name", name="uq_contract_discounts_name"),
    )

    op.create_table(
        "contracts",
        _id_col(),
        _created_col(),
        _updated_col(),
        _uuid_col("student_id", nullable=False),
        _uuid_col("teacher_id"),
        sa.Column("type", contract_type_enum, nullable=False),
        _uuid_col("contract_variant_id"),
        sa.Column("status", contract_status_enum, nullable=False),
        sa.Column("attendance_count", sa.String(length=32), nullable=False),
        sa.Column("attendance_dates", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("discount_ids", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("custom_discount_percent", sa.Numeric(5, 2), nullable=True),
        sa.Column("final_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("payment_type", payment_type_enum, nullable=True),
        sa.Column("billing_cycle", billing_cycle_enum, nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("paid_through", sa.Date(), nullable=True),
        sa.Column("first_payment_date", sa.Date(), nullable=True),
        sa.Column("term_start", sa.Date(), nullable=True),
        sa.Column("term_end", sa.Date(), nullable=True),
        sa.Column("term_label", sa.String(length=64), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("private_notes", sa.Text(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["student_id"], ["students.id"], name="fk_contracts_student_id_students", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["teacher_id"], ["teachers.id"], name="fk_contracts_teacher_id_teachers", ondelete="SET NULL"),
        sa.ForeignKeyConstraint(
            ["contract_variant_id"],
            ["contract_variants.id"],
            name="fk_contracts_contract_variant_id_contract_variants",
            ondelete="RESTRICT",
        ),
    )
    op.create_index("ix_contracts_student_id", "contracts", ["student_id"], unique=False)
    op.create_index("ix_contracts_teacher_id", "contracts", ["teacher_id"], unique=False)
    op.create_index("ix_contracts_status", "contracts", ["status"], unique=False)
    op.create_index(
        "uq_contracts_active_student_id",
        "contracts",
        ["student_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
    )
    op.create_foreign_key(
        "fk_students_contract_id_contracts",
        "students",
        "contracts",
        ["contract_id"],
        ["id"],
        ondelete="SET NULL",
    )

    op.create_table(
        "lessons",
        _id_col(),
        _created_col(),
        _updated_col(),
        _uuid_col("contract_id", nullable=False),
        sa.Column("lesson_number", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=True),
        sa.Column("is_available", sa.Boolean(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["contract_id"], ["contracts.id"], name="fk_lessons_contract_id_contracts", ondelete="CASCADE"),
        sa.UniqueConstraint("contract_id", "lesson_number", name="uq_lessons_contract_id_lesson_number"),
        sa.CheckConstraint("lesson_number >= 1", name="ck_lessons_lesson_number_positive"),
    )
    op.create_index("ix_lessons_contract_id", "lessons", ["contract_id"], unique=False)

    op.create_table(
        "trial_appointments",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("student_name", sa.String(length=255), nullable=False),
        sa.Column("instrument", sa.String(length=128), nullable=False),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", trial_status_enum, nullable=False),
        _uuid_col("teacher_id"),
        _uuid_col("created_by"),
        sa.ForeignKeyConstraint(
            ["teacher_id"],
            ["teachers.id"],
            name="fk_trial_appointments_teacher_id_teachers",
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["created_by"],
            ["profiles.id"],
            name="fk_trial_appointments_created_by_profiles",
            ondelete="SET NULL",
        ),
    )
    op.create_index("ix_trial_appointments_status", "trial_appointments", ["status"], unique=False)
    op.create_index("ix_trial_appointments_teacher_id", "trial_appointments", ["teacher_id"], unique=False)

    op.create_table(
        "notifications",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("type", notification_type_enum, nullable=False),
        _uuid_col("contract_id"),
        _uuid_col("teacher_id"),
        _uuid_col("student_id"),
        _uuid_col("trial_appointment_id"),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["contract_id"], ["contracts.id"], name="fk_notifications_contract_id_contracts", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["teacher_id"], ["teachers.id"], name="fk_notifications_teacher_id_teachers", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["student_id"], ["students.id"], name="fk_notifications_student_id_students", ondelete="SET NULL"),
        sa.ForeignKeyConstraint(
            ["trial_appointment_id"],
            ["trial_appointments.id"],
            name="fk_notifications_trial_appointment_id_trial_appointments",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_notifications_type", "notifications", ["type"], unique=False)
    op.create_index("ix_notifications_contract_id", "notifications", ["contract_id"], unique=False)
    op.create_index("ix_notifications_teacher_id", "notifications", ["teacher_id"], unique=False)
    op.create_index("ix_notifications_trial_appointment_id", "notifications", ["trial_appointment_id"], unique=False)
    op.create_index(
        "uq_notifications_contract_fulfilled",
        "notifications",
        ["contract_id"],
        unique=True,
        postgresql_where=sa.text("type = 'contract_fulfilled'"),
    )
    op.create_index(
        "uq_notifications_trial_recipient",
        "notifications",
        ["trial_appointment_id", "teacher_id", "type"],
        unique=True,
        postgresql_where=sa.text("trial_appointment_id IS NOT NULL AND teacher_id IS NOT NULL"),
    )
    op.create_index(
        "uq_notifications_trial_admin",
        "notifications",
        ["trial_appointment_id", "type"],
        unique=True,
        postgresql_where=sa.text("trial_appointment_id IS NOT NULL AND teacher_id IS NULL"),
    )

    op.create_table(
        "operation_logs",
        _id_col(),
        _created_col(),
        _updated_col(),
        _uuid_col("actor_id"),
        sa.Column("operation", sa.String(length=128), nullable=False),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("entity_id", sa.String(length=128), nullable=True),
        sa.Column("status", operation_status_enum, nullable=False),
        sa.Column("details", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["actor_id"], ["profiles.id"], name="fk_operation_logs_actor_id_profiles", ondelete="SET NULL"),
    )
    op.create_index("ix_operation_logs_actor_id", "operation_logs", ["actor_id"], unique=False)
    op.create_index("ix_operation_logs_operation", "operation_logs", ["operation"], unique=False)
    op.create_index("ix_operation_logs_entity_type", "operation_logs", ["entity_type"], unique=False)

    op.create_table(
        "outbox_events",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("aggregate_type", sa.String(length=128), nullable=False),
        sa.Column("aggregate_id", sa.String(length=128), nullable=False),
        sa.Column("event_type", sa.String(length=128), nullable=False),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("status", outbox_status_enum, nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("retries", sa.Integer(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
    )
    op.create_index("ix_outbox_events_aggregate_type", "outbox_events", ["aggregate_type"], unique=False)
    op.create_index("ix_outbox_events_aggregate_id", "outbox_events", ["aggregate_id"], unique=False)
    op.create_index("ix_outbox_events_event_type", "outbox_events", ["event_type"], unique=False)
    op.create_index("ix_outbox_events_status", "outbox_events", ["status"], unique=False)

    now = datetime.now(timezone.utc)
    category_ids = {name: uuid4() for name, _, _ in CATEGORIES}
    op.bulk_insert(
        contract_categories,
        [
            {
                "id": category_ids[name],
                "created_at": now,
                "updated_at": now,
                "name": name,
                "display_name": display_name,
                "description": description,
            }
            for name, display_name, description in CATEGORIES
        ],
    )
    op.bulk_insert(
        contract_variants,
        [
            {
                "id": uuid4(),
                "created_at": now,
                "updated_at": now,
                "category_id": category_ids[category],
                "name": name,
                "duration_months": months,
                "group_type": group_type,
                "session_length_minutes": minutes,
                "total_lessons": lessons,
                "monthly_price": _price(monthly_price),
                "one_time_price": _price(one_time_price),
                "notes": notes,
                "is_active": True,
            }
            for category, name, months, group_type, minutes, lessons, monthly_price, one_time_price, notes in VARIANTS
        ],
    )
    op.bulk_insert(
        contract_discounts,
        [
            {
                "id": uuid4(),
                "created_at": now,
                "updated_at": now,
                "name": name,
                "discount_percent": Decimal(percent),
                "conditions": conditions,
                "is_active": True,
            }
            for name, percent, conditions in DISCOUNTS
        ],
    )
    op.bulk_insert(pricing_settings, [{"id": 1, "current_price_version": 2, "updated_at": now}])


def downgrade() -> None:
    op.drop_index("ix_outbox_events_status", table_name="outbox_events")
    op.drop_index("ix_outbox_events_event_type", table_name="outbox_events")
    op.drop_index("ix_outbox_events_aggregate_id", table_name="outbox_events")
    op.drop_index("ix_outbox_events_aggregate_type", table_name="outbox_events")
    op.drop_table("outbox_events")

    op.drop_index("ix_operation_logs_entity_type", table_name="operation_logs")
    op.drop_index("ix_operation_logs_operation", table_name="operation_logs")
    op.drop_index("ix_operation_logs_actor_id", table_name="operation_logs")
    op.drop_table("operation_logs")

    op.drop_index("uq_notifications_trial_admin", table_name="notifications")
    op.drop_index("uq_notifications_trial_recipient", table_name="notifications")
    op.drop_index("uq_notifications_contract_fulfilled", table_name="notifications")
    op.drop_index("ix_notifications_trial_appointment_id", table_name="notifications")
    op.drop_index("ix_notifications_teacher_id", table_name="notifications")
    op.drop_index("ix_notifications_contract_id", table_name="notifications")
    op.drop_index("ix_notifications_type", table_name="notifications")
    op.drop_table("notifications")

    op.drop_index("ix_trial_appointments_teacher_id", table_name="trial_appointments")
    op.drop_index("ix_trial_appointments_status", table_name="trial_appointments")
    op.drop_table("trial_appointments")

    op.drop_index("ix_lessons_contract_id", table_name="lessons")
    op.drop_table("lessons")

    op.drop_constraint("fk_students_contract_id_contracts", "students", type_="foreignkey")
    op.drop_index("uq_contracts_active_student_id", table_name="contracts")
    op.drop_index("ix_contracts_status", table_name="contracts")
    op.drop_index("ix_contracts_teacher_id", table_name="contracts")
    op.drop_index("ix_contracts_student_id", table_name="contracts")
    op.drop_table("contracts")

    op.drop_table("contract_discounts")
    op.drop_table("pricing_settings")
    op.drop_index("ix_contract_variants_price_version", table_name="contract_variants")
    op.drop_index("ix_contract_variants_category_id", table_name="contract_variants")
    op.drop_table("contract_variants")
    op.drop_table("contract_categories")

    op.drop_index("ix_student_teachers_teacher_id", table_name="student_teachers")
    op.drop_table("student_teachers")

    op.drop_index("ix_students_status", table_name="students")
    op.drop_index("ix_students_teacher_id", table_name="students")
    op.drop_table("students")

    op.drop_table("teachers")

    op.drop_index("ix_profiles_role", table_name="profiles")
    op.drop_index("ix_profiles_email", table_name="profiles")
    op.drop_table("profiles")
