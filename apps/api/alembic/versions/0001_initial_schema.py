"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 12:00:00.000000

Creates every table of the platform:
1. schools and users (tenants and principals)
2. tenant-scoped resources (clubs, events, trainings, iso_clauses,
   documents, students); a NULL tenant_id marks a global row
3. registrations, with the unique (tenant_id, resource_kind, resource_id)
   constraint that arbitrates concurrent duplicate registrations
4. notifications and gamification
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


ENUMS: dict[str, tuple[str, ...]] = {
    "school_status": ("active", "suspended", "deactivated"),
    "user_role": ("super_admin", "school_admin", "eca_coordinator"),
    "club_status": ("open", "closed", "coming_soon"),
    "event_status": ("draft", "published", "cancelled", "completed"),
    "training_status": ("upcoming", "ongoing", "completed", "cancelled"),
    "iso_clause_status": ("active", "archived"),
    "document_status": ("active", "archived"),
    "student_status": ("active", "inactive", "graduated", "transferred"),
    "registration_status": ("pending", "submitted", "approved", "rejected"),
    "notification_category": (
        "school",
        "club",
        "event",
        "training",
        "iso",
        "document",
        "student",
        "system",
        "security",
    ),
    "notification_priority": ("low", "medium", "high", "urgent"),
    "gamification_action": (
        "club_register",
        "event_register",
        "training_register",
        "iso_submission",
        "document_download",
        "student_add",
        "profile_update",
        "daily_login",
    ),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _base_columns() -> list[sa.Column]:
    """Primary key and timestamps (from BaseModel)."""
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def _tenant_columns(table: str, nullable: bool = True) -> list:
    """Owning school (from TenantScopedMixin)."""
    return [
        sa.Column("tenant_id", sa.Uuid(), nullable=nullable),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(
            ["tenant_id"],
            ["schools.id"],
            name=f"{table}_tenant_id_fkey",
            ondelete="CASCADE",
        ),
    ]


def _tenant_index(table: str) -> None:
    op.create_index(f"ix_{table}_tenant_id", table, ["tenant_id"], unique=False)


def upgrade() -> None:
    """Create all tables."""
    bind = op.get_bind()
    for name in ENUMS:
        _enum(name).create(bind, checkfirst=True)

    # ---- Tenants and principals ----
    op.create_table(
        "schools",
        *_base_columns(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("logo_url", sa.String(length=500), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("status", _enum("school_status"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_schools_name", "schools", ["name"], unique=False)

    op.create_table(
        "users",
        *_base_columns(),
        sa.Column("school_id", sa.Uuid(), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("avatar_url", sa.String(length=500), nullable=True),
        sa.Column("role", _enum("user_role"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["school_id"],
            ["schools.id"],
            name="users_school_id_fkey",
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_school_id", "users", ["school_id"], unique=False)

    # ---- Tenant-scoped resources ----
    op.create_table(
        "clubs",
        *_base_columns(),
        *_tenant_columns("clubs"),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=100), nullable=True),
        sa.Column("lead_teacher", sa.String(length=200), nullable=True),
        sa.Column("logo_url", sa.String(length=500), nullable=True),
        sa.Column("status", _enum("club_status"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    _tenant_index("clubs")
    op.create_index("ix_clubs_name", "clubs", ["name"], unique=False)

    op.create_table(
        "events",
        *_base_columns(),
        *_tenant_columns("events"),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("event_type", sa.String(length=100), nullable=True),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ends_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("location", sa.String(length=300), nullable=True),
        sa.Column("max_participants", sa.Integer(), nullable=True),
        sa.Column("registration_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", _enum("event_status"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    _tenant_index("events")
    op.create_index("ix_events_title", "events", ["title"], unique=False)

    op.create_table(
        "trainings",
        *_base_columns(),
        *_tenant_columns("trainings"),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("trainer", sa.String(length=200), nullable=True),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_hours", sa.Float(), nullable=True),
        sa.Column("location", sa.String(length=300), nullable=True),
        sa.Column("max_participants", sa.Integer(), nullable=True),
        sa.Column("status", _enum("training_status"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    _tenant_index("trainings")
    op.create_index("ix_trainings_title", "trainings", ["title"], unique=False)

    op.create_table(
        "iso_clauses",
        *_base_columns(),
        *_tenant_columns("iso_clauses"),
        sa.Column("number", sa.String(length=20), nullable=False),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("requirements", sa.JSON(), nullable=False),
        sa.Column("status", _enum("iso_clause_status"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "number", name="uq_iso_clauses_tenant_number"),
    )
    _tenant_index("iso_clauses")

    op.create_table(
        "documents",
        *_base_columns(),
        *_tenant_columns("documents"),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=100), nullable=True),
        sa.Column("version", sa.String(length=20), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("original_name", sa.String(length=255), nullable=False),
        sa.Column("stored_name", sa.String(length=255), nullable=False),
        sa.Column("file_path", sa.String(length=500), nullable=False),
        sa.Column("mime_type", sa.String(length=150), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("download_count", sa.Integer(), nullable=False),
        sa.Column("is_public", sa.Boolean(), nullable=False),
        sa.Column("status", _enum("document_status"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    _tenant_index("documents")
    op.create_index("ix_documents_name", "documents", ["name"], unique=False)

    op.create_table(
        "students",
        *_base_columns(),
        *_tenant_columns("students"),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("gender", sa.String(length=20), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("roll_number", sa.String(length=50), nullable=True),
        sa.Column("class_name", sa.String(length=50), nullable=True),
        sa.Column("section", sa.String(length=20), nullable=True),
        sa.Column("guardian_name", sa.String(length=200), nullable=True),
        sa.Column("guardian_contact", sa.String(length=50), nullable=True),
        sa.Column("academic_year", sa.String(length=20), nullable=True),
        sa.Column("status", _enum("student_status"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    _tenant_index("students")
    op.create_index("ix_students_class_name", "students", ["class_name"], unique=False)

    # ---- Registrations ----
    op.create_table(
        "registrations",
        *_base_columns(),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("resource_kind", sa.String(length=32), nullable=False),
        sa.Column("resource_id", sa.Uuid(), nullable=False),
        sa.Column("status", _enum("registration_status"), nullable=False),
        sa.Column("evidence", sa.JSON(), nullable=False),
        sa.Column("participant_count", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("registered_by", sa.Uuid(), nullable=False),
        sa.Column("submitted_by", sa.Uuid(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_by", sa.Uuid(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["tenant_id"],
            ["schools.id"],
            name="registrations_tenant_id_fkey",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
        # One registration per school and resource; concurrent duplicates
        # fail here and surface as a conflict.
        sa.UniqueConstraint(
            "tenant_id",
            "resource_kind",
            "resource_id",
            name="uq_registrations_tenant_resource",
        ),
    )
    op.create_index("ix_registrations_tenant_id", "registrations", ["tenant_id"], unique=False)
    op.create_index("ix_registrations_status", "registrations", ["status"], unique=False)
    op.create_index(
        "ix_registrations_resource",
        "registrations",
        ["resource_kind", "resource_id"],
        unique=False,
    )

    # ---- Notifications ----
    op.create_table(
        "notifications",
        *_base_columns(),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("category", _enum("notification_category"), nullable=False),
        sa.Column("priority", _enum("notification_priority"), nullable=False),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("action_url", sa.String(length=500), nullable=True),
        sa.Column("read", sa.Boolean(), nullable=False),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="notifications_user_id_fkey",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"], unique=False)
    op.create_index("ix_notifications_expires_at", "notifications", ["expires_at"], unique=False)

    # ---- Gamification ----
    op.create_table(
        "gamification_profiles",
        *_base_columns(),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("total_points", sa.Integer(), nullable=False),
        sa.Column("last_activity_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="gamification_profiles_user_id_fkey",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", name="gamification_profiles_user_id_key"),
    )

    op.create_table(
        "gamification_activities",
        *_base_columns(),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("action_type", _enum("gamification_action"), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="gamification_activities_user_id_fkey",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_gamification_activities_user_id",
        "gamification_activities",
        ["user_id"],
        unique=False,
    )


def downgrade() -> None:
    """Drop all tables and enum types."""
    for table in (
        "gamification_activities",
        "gamification_profiles",
        "notifications",
        "registrations",
        "students",
        "documents",
        "iso_clauses",
        "trainings",
        "events",
        "clubs",
        "users",
        "schools",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for name in reversed(ENUMS):
        _enum(name).drop(bind, checkfirst=True)
