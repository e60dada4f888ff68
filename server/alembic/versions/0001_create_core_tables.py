"""create users, staff, students, behavior and homework tables

Revision ID: 0001_create_core_tables
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_create_core_tables"
down_revision = None
branch_labels = None
depends_on = None

USER_ROLES = ("admin", "staff", "parent")
BEHAVIOR_TIERS = ("good-standing", "tier-1", "tier-2", "tier-3", "suspended")
INCIDENT_TYPES = ("disruption", "disrespect", "physical", "property-damage", "bullying", "other")
HOMEWORK_STATUSES = ("assigned", "completed", "verified", "overdue")
HOMEWORK_PRIORITIES = ("low", "normal", "high")


def upgrade() -> None:
    user_role = sa.Enum(*USER_ROLES, name="user_role")
    behavior_tier = sa.Enum(*BEHAVIOR_TIERS, name="behavior_tier")
    incident_type = sa.Enum(*INCIDENT_TYPES, name="incident_type")
    homework_status = sa.Enum(*HOMEWORK_STATUSES, name="homework_status")
    homework_priority = sa.Enum(*HOMEWORK_PRIORITIES, name="homework_priority")

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=150), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("role", user_role, nullable=False),
        sa.Column("profile_image_url", sa.String(length=500), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "staff_profiles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(length=120), nullable=False),
        sa.Column("staff_role", sa.String(length=64), nullable=True),
        sa.Column("permissions", sa.JSON(), nullable=False),
        sa.Column("specialties", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_staff_profiles_user_id", "staff_profiles", ["user_id"], unique=True)

    op.create_table(
        "students",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("first_name", sa.String(length=120), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False),
        sa.Column("grade", sa.String(length=20), nullable=False),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("profile_image_url", sa.String(length=500), nullable=True),
        sa.Column("emergency_contact", sa.String(length=255), nullable=True),
        sa.Column("medical_notes", sa.Text(), nullable=True),
        sa.Column("current_tier", behavior_tier, nullable=False, server_default="good-standing"),
        sa.Column("tier_update_date", sa.Date(), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_students_parent_id", "students", ["parent_id"])

    op.create_table(
        "behavior_incidents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("students.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "reported_by_staff_id",
            sa.Integer(),
            sa.ForeignKey("staff_profiles.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("incident_date", sa.Date(), nullable=False),
        sa.Column("incident_time", sa.String(length=5), nullable=False),
        sa.Column("incident_type", incident_type, nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("location", sa.String(length=150), nullable=False),
        sa.Column("witness_names", sa.JSON(), nullable=True),
        sa.Column("action_taken", sa.Text(), nullable=True),
        sa.Column("parent_notified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("parent_notification_date", sa.Date(), nullable=True),
        sa.Column("follow_up_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_resolved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_behavior_incidents_student_id", "behavior_incidents", ["student_id"])
    op.create_index("ix_behavior_incidents_incident_date", "behavior_incidents", ["incident_date"])

    op.create_table(
        "behavior_notes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("students.id", ondelete="CASCADE"), nullable=False),
        sa.Column("staff_id", sa.Integer(), sa.ForeignKey("staff_profiles.id", ondelete="SET NULL"), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time", sa.String(length=5), nullable=False),
        sa.Column("note", sa.Text(), nullable=False),
        sa.Column("is_positive", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_private", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("parent_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_behavior_notes_student_id", "behavior_notes", ["student_id"])

    op.create_table(
        "tier_transitions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("students.id", ondelete="CASCADE"), nullable=False),
        sa.Column("from_tier", behavior_tier, nullable=False),
        sa.Column("to_tier", behavior_tier, nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("authorized_by_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("parent_notified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("parent_notification_date", sa.Date(), nullable=True),
        sa.Column("incident_ids", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_tier_transitions_student_id", "tier_transitions", ["student_id"])

    op.create_table(
        "homework_assignments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("students.id", ondelete="CASCADE"), nullable=False),
        sa.Column("activity_id", sa.Integer(), nullable=True),
        sa.Column(
            "assigned_by_staff_id",
            sa.Integer(),
            sa.ForeignKey("staff_profiles.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("assigned_date", sa.Date(), nullable=False),
        sa.Column("status", homework_status, nullable=False, server_default="assigned"),
        sa.Column("priority", homework_priority, nullable=False, server_default="normal"),
        sa.Column("completed_date", sa.Date(), nullable=True),
        sa.Column("completion_notes", sa.Text(), nullable=True),
        sa.Column(
            "verified_by_staff_id",
            sa.Integer(),
            sa.ForeignKey("staff_profiles.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("verification_date", sa.Date(), nullable=True),
        sa.Column("parent_notified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_homework_assignments_student_id", "homework_assignments", ["student_id"])
    op.create_index("ix_homework_assignments_due_date", "homework_assignments", ["due_date"])


def downgrade() -> None:
    op.drop_index("ix_homework_assignments_due_date", table_name="homework_assignments")
    op.drop_index("ix_homework_assignments_student_id", table_name="homework_assignments")
    op.drop_table("homework_assignments")
    op.drop_index("ix_tier_transitions_student_id", table_name="tier_transitions")
    op.drop_table("tier_transitions")
    op.drop_index("ix_behavior_notes_student_id", table_name="behavior_notes")
    op.drop_table("behavior_notes")
    op.drop_index("ix_behavior_incidents_incident_date", table_name="behavior_incidents")
    op.drop_index("ix_behavior_incidents_student_id", table_name="behavior_incidents")
    op.drop_table("behavior_incidents")
    op.drop_index("ix_students_parent_id", table_name="students")
    op.drop_table("students")
    op.drop_index("ix_staff_profiles_user_id", table_name="staff_profiles")
    op.drop_table("staff_profiles")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_name in ("homework_priority", "homework_status", "incident_type", "behavior_tier", "user_role"):
        sa.Enum(name=enum_name).drop(bind, checkfirst=True)
