"""create schedules

Revision ID: 20261017_0003
Revises: 20261017_0002
Create Date: 2026-10-17 00:20:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261017_0003"
down_revision = "20261017_0002"
branch_labels = None
depends_on = None


day_of_week_enum = sa.Enum(
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
    name="day_of_week",
)
recurrence_type_enum = sa.Enum("weekly", "biweekly", "custom", name="recurrence_type")
approval_status_enum = sa.Enum("pending", "approved", "rejected", "auto_approved", name="approval_status")


def upgrade() -> None:
    op.create_table(
        "schedules",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("class_id", sa.String(length=36), nullable=False),
        sa.Column("course_id", sa.String(length=36), nullable=False),
        sa.Column("teacher_id", sa.String(length=36), nullable=False),
        sa.Column("day_of_week", day_of_week_enum, nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("room", sa.String(length=100), nullable=True),
        sa.Column("building", sa.String(length=200), nullable=True),
        sa.Column("recurrence_type", recurrence_type_enum, nullable=False, server_default="weekly"),
        sa.Column("effective_from", sa.Date(), nullable=True),
        sa.Column("effective_to", sa.Date(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("requires_approval", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("approval_status", approval_status_enum, nullable=True),
        sa.Column("approved_by_id", sa.String(length=36), nullable=True),
        sa.Column("approval_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approval_notes", sa.String(length=500), nullable=True),
        sa.Column("created_by_id", sa.String(length=36), nullable=False),
        sa.Column("updated_by_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_schedules_class_id", "schedules", ["class_id"])
    op.create_index("ix_schedules_course_id", "schedules", ["course_id"])
    op.create_index("ix_schedules_teacher_id", "schedules", ["teacher_id"])
    op.create_index("ix_schedules_is_active", "schedules", ["is_active"])
    op.create_index("ix_schedules_approval_status", "schedules", ["approval_status"])
    op.create_index("ix_schedules_teacher_day_start", "schedules", ["teacher_id", "day_of_week", "start_time"])
    op.create_index("ix_schedules_room_day_start", "schedules", ["room", "day_of_week", "start_time"])
    op.create_index("ix_schedules_course_day", "schedules", ["course_id", "day_of_week"])


def downgrade() -> None:
    op.drop_index("ix_schedules_course_day", table_name="schedules")
    op.drop_index("ix_schedules_room_day_start", table_name="schedules")
    op.drop_index("ix_schedules_teacher_day_start", table_name="schedules")
    op.drop_index("ix_schedules_approval_status", table_name="schedules")
    op.drop_index("ix_schedules_is_active", table_name="schedules")
    op.drop_index("ix_schedules_teacher_id", table_name="schedules")
    op.drop_index("ix_schedules_course_id", table_name="schedules")
    op.drop_index("ix_schedules_class_id", table_name="schedules")
    op.drop_table("schedules")
    bind = op.get_bind()
    approval_status_enum.drop(bind, checkfirst=True)
    recurrence_type_enum.drop(bind, checkfirst=True)
    day_of_week_enum.drop(bind, checkfirst=True)
