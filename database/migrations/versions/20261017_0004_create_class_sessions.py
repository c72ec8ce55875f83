"""create class sessions

Revision ID: 20261017_0004
Revises: 20261017_0003
Create Date: 2026-10-17 00:30:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261017_0004"
down_revision = "20261017_0003"
branch_labels = None
depends_on = None


location_type_enum = sa.Enum("offline", "online", name="location_type")
class_session_status_enum = sa.Enum("scheduled", "in_progress", "completed", "cancelled", name="class_session_status")


def upgrade() -> None:
    op.create_table(
        "class_sessions",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("schedule_id", sa.String(length=36), nullable=True),
        sa.Column("class_id", sa.String(length=36), nullable=True),
        sa.Column("course_id", sa.String(length=36), nullable=False),
        sa.Column("teacher_id", sa.String(length=36), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("scheduled_date", sa.Date(), nullable=False),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("location_type", location_type_enum, nullable=False, server_default="offline"),
        sa.Column("room", sa.String(length=100), nullable=True),
        sa.Column("building", sa.String(length=200), nullable=True),
        sa.Column("status", class_session_status_enum, nullable=False, server_default="scheduled"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_class_sessions_course_id", "class_sessions", ["course_id"])
    op.create_index("ix_class_sessions_schedule_date", "class_sessions", ["schedule_id", "scheduled_date"])
    op.create_index("ix_class_sessions_teacher_date", "class_sessions", ["teacher_id", "scheduled_date"])


def downgrade() -> None:
    op.drop_index("ix_class_sessions_teacher_date", table_name="class_sessions")
    op.drop_index("ix_class_sessions_schedule_date", table_name="class_sessions")
    op.drop_index("ix_class_sessions_course_id", table_name="class_sessions")
    op.drop_table("class_sessions")
    bind = op.get_bind()
    class_session_status_enum.drop(bind, checkfirst=True)
    location_type_enum.drop(bind, checkfirst=True)
