"""Create hospitals, users, prescriptions, schedules, intake log and audit tables."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

USER_ROLE = sa.Enum(
    "SUPER_ADMIN", "HOSPITAL_ADMIN", "DOCTOR", "RECEPTIONIST", "PATIENT", name="userrole"
)
USER_STATUS = sa.Enum("INVITED", "ACTIVE", "SUSPENDED", name="userstatus")
PRESCRIPTION_STATUS = sa.Enum("ACTIVE", "COMPLETED", "CANCELLED", name="prescriptionstatus")
FREQUENCY = sa.Enum(
    "ONCE_DAILY",
    "TWICE_DAILY",
    "THREE_TIMES_DAILY",
    "FOUR_TIMES_DAILY",
    "EVERY_12_HOURS",
    "EVERY_8_HOURS",
    "EVERY_6_HOURS",
    "AS_NEEDED",
    name="frequency",
)
DURATION_UNIT = sa.Enum("DAYS", "WEEKS", "MONTHS", "ONGOING", name="durationunit")
SCHEDULE_SOURCE = sa.Enum("DOCTOR_PRESCRIPTION", "MANUAL", name="schedulesource")
INTAKE_STATUS = sa.Enum("TAKEN", "MISSED", "SKIPPED", name="intakestatus")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "hospitals",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False, unique=True),
        *_timestamps(),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "hospital_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("hospitals.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=120), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False),
        sa.Column("role", USER_ROLE, nullable=False),
        sa.Column("status", USER_STATUS, nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "prescriptions",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "hospital_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("hospitals.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "patient_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "doctor_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("doctor_name", sa.String(length=255), nullable=False),
        sa.Column("medication_name", sa.String(length=255), nullable=False),
        sa.Column("dosage", sa.String(length=120), nullable=False),
        sa.Column("frequency", sa.String(length=64), nullable=False),
        sa.Column("specific_times", sa.JSON(), nullable=True),
        sa.Column("duration", sa.String(length=64), nullable=False),
        sa.Column("instructions", sa.String(length=1024), nullable=False),
        sa.Column("status", PRESCRIPTION_STATUS, nullable=False),
        sa.Column("imported_to_scheduler", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_prescriptions_patient_id", "prescriptions", ["patient_id"])

    op.create_table(
        "medication_schedules",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "patient_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("medication_name", sa.String(length=255), nullable=False),
        sa.Column("dosage", sa.String(length=120), nullable=False),
        sa.Column("instructions", sa.String(length=1024), nullable=False),
        sa.Column("frequency", FREQUENCY, nullable=False),
        sa.Column("times_per_day", sa.Integer(), nullable=False),
        sa.Column("specific_times", sa.JSON(), nullable=False),
        sa.Column("duration_value", sa.Integer(), nullable=False),
        sa.Column("duration_unit", DURATION_UNIT, nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("source", SCHEDULE_SOURCE, nullable=False),
        sa.Column("source_record_id", sa.String(length=64), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("deactivated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reminder_enabled", sa.Boolean(), nullable=False),
        sa.Column("reminder_minutes_before", sa.Integer(), nullable=False),
        sa.Column("taken_doses", sa.Integer(), nullable=False),
        sa.Column("missed_doses", sa.Integer(), nullable=False),
        sa.Column("skipped_doses", sa.Integer(), nullable=False),
        sa.Column("adherence_rate", sa.Integer(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index(
        "ix_medication_schedules_patient_active",
        "medication_schedules",
        ["patient_id", "is_active"],
    )
    op.create_index(
        "uq_medication_schedules_active_prescription",
        "medication_schedules",
        ["patient_id", "medication_name"],
        unique=True,
        sqlite_where=sa.text("is_active = 1 AND source = 'DOCTOR_PRESCRIPTION'"),
        postgresql_where=sa.text("is_active AND source = 'DOCTOR_PRESCRIPTION'"),
    )

    op.create_table(
        "intake_log_entries",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "schedule_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("medication_schedules.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("dose_date", sa.Date(), nullable=False),
        sa.Column("dose_time", sa.String(length=5), nullable=False),
        sa.Column("status", INTAKE_STATUS, nullable=False),
        sa.Column("logged_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("notes", sa.String(length=1024), nullable=True),
        sa.UniqueConstraint(
            "schedule_id", "dose_date", "dose_time", name="uq_intake_log_dose"
        ),
    )
    op.create_index("ix_intake_log_entries_logged_at", "intake_log_entries", ["logged_at"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "hospital_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("hospitals.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "user_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("event_type", sa.String(length=120), nullable=False),
        sa.Column("resource_type", sa.String(length=64), nullable=True),
        sa.Column("resource_id", sa.String(length=64), nullable=True),
        sa.Column("description", sa.String(length=1024), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_audit_events_user_id", "audit_events", ["user_id"])
    op.create_index("ix_audit_events_event_type", "audit_events", ["event_type"])


def downgrade() -> None:
    op.drop_index("ix_audit_events_event_type", table_name="audit_events")
    op.drop_index("ix_audit_events_user_id", table_name="audit_events")
    op.drop_table("audit_events")
    op.drop_index("ix_intake_log_entries_logged_at", table_name="intake_log_entries")
    op.drop_table("intake_log_entries")
    op.drop_index(
        "uq_medication_schedules_active_prescription", table_name="medication_schedules"
    )
    op.drop_index("ix_medication_schedules_patient_active", table_name="medication_schedules")
    op.drop_table("medication_schedules")
    op.drop_index("ix_prescriptions_patient_id", table_name="prescriptions")
    op.drop_table("prescriptions")
    op.drop_table("users")
    op.drop_table("hospitals")
    bind = op.get_bind()
    for enum_type in (
        INTAKE_STATUS,
        SCHEDULE_SOURCE,
        DURATION_UNIT,
        FREQUENCY,
        PRESCRIPTION_STATUS,
        USER_STATUS,
        USER_ROLE,
    ):
        enum_type.drop(bind, checkfirst=True)
