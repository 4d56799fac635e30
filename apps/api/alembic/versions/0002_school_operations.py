"""school operations

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19 18:00:00.000000

1. global ISO clause numbers become unique (partial index on tenant_id IS NULL)
2. documents.is_public is dropped; visibility is decided by tenant_id alone
3. students get graduation_date; class structures and promotion history
4. training feedback
5. messaging: conversations, participants and messages
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0002"
down_revision: str | Sequence[str] | None = "0001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


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


def upgrade() -> None:
    """Add the school operations tables."""
    op.create_index(
        "uq_iso_clauses_global_number",
        "iso_clauses",
        ["number"],
        unique=True,
        postgresql_where=sa.text("tenant_id IS NULL"),
        sqlite_where=sa.text("tenant_id IS NULL"),
    )

    op.drop_column("documents", "is_public")
    op.add_column("students", sa.Column("graduation_date", sa.Date(), nullable=True))

    # ---- Students ----
    op.create_table(
        "class_structures",
        *_base_columns(),
        sa.Column("tenant_id", sa.Uuid(), nullable=True),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        sa.Column("class_name", sa.String(length=50), nullable=False),
        sa.Column("sections", sa.JSON(), nullable=False),
        sa.Column("is_graduation_class", sa.Boolean(), nullable=False),
        sa.Column("max_students", sa.Integer(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["tenant_id"],
            ["schools.id"],
            name="class_structures_tenant_id_fkey",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "class_name", name="uq_class_structures_tenant_class"),
    )
    op.create_index("ix_class_structures_tenant_id", "class_structures", ["tenant_id"])

    op.create_table(
        "student_promotions",
        *_base_columns(),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("student_id", sa.Uuid(), nullable=False),
        sa.Column("from_class", sa.String(length=50), nullable=True),
        sa.Column("from_section", sa.String(length=20), nullable=True),
        sa.Column("to_class", sa.String(length=50), nullable=False),
        sa.Column("to_section", sa.String(length=20), nullable=True),
        sa.Column("academic_year", sa.String(length=20), nullable=False),
        sa.Column("is_graduation", sa.Boolean(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("promoted_by", sa.Uuid(), nullable=False),
        sa.Column("promoted_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["tenant_id"],
            ["schools.id"],
            name="student_promotions_tenant_id_fkey",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["student_id"],
            ["students.id"],
            name="student_promotions_student_id_fkey",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_student_promotions_tenant_id", "student_promotions", ["tenant_id"])
    op.create_index("ix_student_promotions_student_id", "student_promotions", ["student_id"])
    op.create_index(
        "ix_student_promotions_academic_year", "student_promotions", ["academic_year"]
    )

    # ---- Training feedback ----
    op.create_table(
        "training_feedback",
        *_base_columns(),
        sa.Column("training_id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("feedback", sa.Text(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["training_id"],
            ["trainings.id"],
            name="training_feedback_training_id_fkey",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["tenant_id"],
            ["schools.id"],
            name="training_feedback_tenant_id_fkey",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="training_feedback_user_id_fkey",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("training_id", "user_id", name="uq_training_feedback_user"),
    )
    op.create_index("ix_training_feedback_training_id", "training_feedback", ["training_id"])
    op.create_index("ix_training_feedback_tenant_id", "training_feedback", ["tenant_id"])

    # ---- Messaging ----
    op.create_table(
        "conversations",
        *_base_columns(),
        sa.Column("title", sa.String(length=200), nullable=True),
        sa.Column("created_by", sa.Uuid(), nullable=False),
        sa.Column("last_message", sa.Text(), nullable=True),
        sa.Column("last_message_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_conversations_last_message_at", "conversations", ["last_message_at"])

    op.create_table(
        "conversation_participants",
        *_base_columns(),
        sa.Column("conversation_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("unread_count", sa.Integer(), nullable=False),
        sa.Column("last_read_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["conversation_id"],
            ["conversations.id"],
            name="conversation_participants_conversation_id_fkey",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="conversation_participants_user_id_fkey",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("conversation_id", "user_id", name="uq_conversation_participant"),
    )
    op.create_index(
        "ix_conversation_participants_conversation_id",
        "conversation_participants",
        ["conversation_id"],
    )
    op.create_index(
        "ix_conversation_participants_user_id", "conversation_participants", ["user_id"]
    )

    op.create_table(
        "messages",
        *_base_columns(),
        sa.Column("conversation_id", sa.Uuid(), nullable=False),
        sa.Column("sender_id", sa.Uuid(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("attachments", sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(
            ["conversation_id"],
            ["conversations.id"],
            name="messages_conversation_id_fkey",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["sender_id"],
            ["users.id"],
            name="messages_sender_id_fkey",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_messages_conversation_id", "messages", ["conversation_id"])


def downgrade() -> None:
    """Drop the school operations tables."""
    for table in (
        "messages",
        "conversation_participants",
        "conversations",
        "training_feedback",
        "student_promotions",
        "class_structures",
    ):
        op.drop_table(table)

    op.drop_column("students", "graduation_date")
    op.add_column(
        "documents",
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.drop_index("uq_iso_clauses_global_number", table_name="iso_clauses")
