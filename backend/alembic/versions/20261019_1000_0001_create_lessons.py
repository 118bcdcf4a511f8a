"""Create lessons table

Revision ID: 0001
Revises: None
Create Date: 2026-10-19 10:00:00
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import mysql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "lessons",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column(
            "content",
            sa.Text().with_variant(mysql.LONGTEXT(), "mysql"),
            nullable=False,
        ),
        sa.Column("status", sa.String(20), nullable=False, comment="pending | done | failed"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True).with_variant(mysql.DATETIME(fsp=6), "mysql"),
            nullable=False,
        ),
        mysql_charset="utf8mb4",
        mysql_collate="utf8mb4_unicode_ci",
    )
    op.create_index("ix_lessons_status", "lessons", ["status"])
    op.create_index("ix_lessons_created_at", "lessons", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_lessons_created_at", table_name="lessons")
    op.drop_index("ix_lessons_status", table_name="lessons")
    op.drop_table("lessons")
