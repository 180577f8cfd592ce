"""create users, credit and generation attempt tables

Revision ID: 20261018_000001
Revises:
Create Date: 2026-10-18 00:00:01.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261018_000001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=False)

    op.create_table(
        "user_credits",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("free_generations_remaining", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("paid_credits", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("total_generations", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("free_generations_remaining >= 0", name="ck_user_credits_free_non_negative"),
        sa.CheckConstraint("paid_credits >= 0", name="ck_user_credits_paid_non_negative"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_user_credits_user_id"), "user_credits", ["user_id"], unique=True)

    op.create_table(
        "generation_attempts",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("is_free_attempt", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("cost", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("selected_style", sa.String(), nullable=False),
        sa.Column("prompt_used", sa.Text(), nullable=False),
        sa.Column("generated_image_url", sa.Text(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_generation_attempts_user_id"), "generation_attempts", ["user_id"], unique=False)
    op.create_index(op.f("ix_generation_attempts_status"), "generation_attempts", ["status"], unique=False)
    op.create_index(op.f("ix_generation_attempts_created_at"), "generation_attempts", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_generation_attempts_created_at"), table_name="generation_attempts")
    op.drop_index(op.f("ix_generation_attempts_status"), table_name="generation_attempts")
    op.drop_index(op.f("ix_generation_attempts_user_id"), table_name="generation_attempts")
    op.drop_table("generation_attempts")
    op.drop_index(op.f("ix_user_credits_user_id"), table_name="user_credits")
    op.drop_table("user_credits")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")
