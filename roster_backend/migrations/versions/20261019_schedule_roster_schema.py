"""Schedule records and per-student attendance entries

Revision ID: 20261019_schedule_roster
Revises:
Create Date: 2026-10-19 10:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_schedule_roster"
down_revision = None
branch_labels = None
depends_on = None

TIME_SLOT_VALUES = ("morning", "afternoon", "evening")
ATTENDANCE_STATUS_VALUES = ("present", "absent", "late", "excused")


def _has_table(table_name):
    return table_name in sa.inspect(op.get_bind()).get_table_names()


def upgrade():
    if not _has_table("schedule_records"):
        op.create_table(
            "schedule_records",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("class_date", sa.Date(), nullable=False),
            sa.Column("time_slot", sa.Enum(*TIME_SLOT_VALUES, name="timeslot"), nullable=False),
            sa.Column("instructor_id", sa.Integer(), nullable=True),
            sa.Column("attendance_taken", sa.Boolean(), nullable=False, server_default=sa.text("false")),
            sa.Column("name", sa.String(length=100), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.UniqueConstraint("class_date", "time_slot", name="uq_schedule_records_date_slot"),
        )
        op.create_index("ix_schedule_records_class_date", "schedule_records", ["class_date"])
        op.create_index("ix_schedule_records_instructor_id", "schedule_records", ["instructor_id"])

    if not _has_table("attendance_entries"):
        op.create_table(
            "attendance_entries",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "schedule_record_id",
                sa.Integer(),
                sa.ForeignKey("schedule_records.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("student_id", sa.Integer(), nullable=False),
            sa.Column("status", sa.Enum(*ATTENDANCE_STATUS_VALUES, name="attendancestatus"), nullable=False),
            sa.Column("marked_at", sa.DateTime(), nullable=True),
            sa.UniqueConstraint("schedule_record_id", "student_id", name="uq_attendance_entries_record_student"),
        )
        op.create_index("ix_attendance_entries_schedule_record_id", "attendance_entries", ["schedule_record_id"])


def downgrade():
    if _has_table("attendance_entries"):
        op.drop_table("attendance_entries")
    if _has_table("schedule_records"):
        op.drop_table("schedule_records")
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        sa.Enum(name="attendancestatus").drop(bind, checkfirst=True)
        sa.Enum(name="timeslot").drop(bind, checkfirst=True)
