"""Initial schema — users, user_photos, user_tags.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_gender = postgresql.ENUM("MALE", "FEMALE", name="user_gender", create_type=False)


def upgrade() -> None:
    user_gender.create(op.get_bind(), checkfirst=True)

    # ── 1. users ────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String, nullable=False),
        sa.Column("surname", sa.String, nullable=False),
        sa.Column("about_myself", sa.Text, nullable=True),
        sa.Column("gender", user_gender, nullable=True),
        sa.Column("birth_date", sa.Date, nullable=True),
        sa.Column(
            "jung_result",
            sa.String(4),
            nullable=True,
            comment="One of the 16 four-letter personality codes",
        ),
        sa.Column("jung_last_attempt", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "primary_photo",
            sa.String,
            nullable=True,
            comment="Path of the photo shown by default",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    # ── 2. user_photos ──────────────────────────────────────────────
    op.create_table(
        "user_photos",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("url", sa.String, nullable=False, comment="Object path or public URL"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_user_photos_user_id", "user_photos", ["user_id"])

    # ── 3. user_tags ────────────────────────────────────────────────
    op.create_table(
        "user_tags",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("value", sa.String, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_user_tags_user_id", "user_tags", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_user_tags_user_id", table_name="user_tags")
    op.drop_table("user_tags")
    op.drop_index("ix_user_photos_user_id", table_name="user_photos")
    op.drop_table("user_photos")
    op.drop_table("users")
    user_gender.drop(op.get_bind(), checkfirst=True)
