"""Create daily meals and meal ratings.

Revision ID: 4a7c2e91d0b3
Revises:
Create Date: 2025-12-05 14:21:12
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "4a7c2e91d0b3"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "daily_meals",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("day_number", sa.Integer(), nullable=False),
        sa.Column("option", sa.String(length=32), nullable=False),
        sa.Column("description", sa.String(length=200), nullable=False, server_default=""),
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
        sa.UniqueConstraint("day_number", "option", name="uq_daily_meals_day_option"),
    )
    op.create_index("ix_daily_meals_day_number", "daily_meals", ["day_number"])
    op.create_index("ix_daily_meals_description", "daily_meals", ["description"])

    op.create_table(
        "meal_ratings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column(
            "daily_meal_id",
            sa.Integer(),
            sa.ForeignKey("daily_meals.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("stars", sa.Integer(), nullable=False),
        sa.Column("day_number", sa.Integer(), nullable=False),
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
        sa.UniqueConstraint("day_number", "user_id", name="uq_meal_ratings_day_user"),
        sa.CheckConstraint("stars >= 1 AND stars <= 5", name="ck_meal_ratings_stars"),
    )
    op.create_index("ix_meal_ratings_daily_meal_id", "meal_ratings", ["daily_meal_id"])


def downgrade() -> None:
    op.drop_index("ix_meal_ratings_daily_meal_id", table_name="meal_ratings")
    op.drop_table("meal_ratings")
    op.drop_index("ix_daily_meals_description", table_name="daily_meals")
    op.drop_index("ix_daily_meals_day_number", table_name="daily_meals")
    op.drop_table("daily_meals")
