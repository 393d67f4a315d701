from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

DESCRIPTION_MAX_LENGTH = 200


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class TimestampMixin:
    """Common created/updated timestamp columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class MealOption(str, Enum):
    """The standing counters served every weekday, in display order."""

    GRILL_SANDWICHES = "grill_sandwiches"
    SMUTS_LEIBSPEISE = "smuts_leibspeise"
    JUST_GOOD_FOOD = "just_good_food"

    @property
    def position(self) -> int:
        return list(MealOption).index(self)

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


class DailyMeal(Base, TimestampMixin):
    __tablename__ = "daily_meals"
    __table_args__ = (
        UniqueConstraint("day_number", "option", name="uq_daily_meals_day_option"),
    )
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # days since 0001-01-01 (date.toordinal() - 1)
    day_number: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    option: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[str] = mapped_column(
        String(DESCRIPTION_MAX_LENGTH), nullable=False, default="", index=True
    )

    ratings: Mapped[List["MealRating"]] = relationship(
        back_populates="daily_meal", cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def meal_option(self) -> MealOption:
        return MealOption(self.option)

    def __repr__(self) -> str:
        return (
            f"DailyMeal(id={self.id}, day_number={self.day_number}, "
            f"option={self.option}, description={self.description!r})"
        )


class MealRating(Base, TimestampMixin):
    __tablename__ = "meal_ratings"
    __table_args__ = (
        UniqueConstraint("day_number", "user_id", name="uq_meal_ratings_day_user"),
        CheckConstraint("stars >= 1 AND stars <= 5", name="ck_meal_ratings_stars"),
    )
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    daily_meal_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("daily_meals.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    stars: Mapped[int] = mapped_column(Integer, nullable=False)
    # copied from the rated meal so (day_number, user_id) stays a single-table constraint
    day_number: Mapped[int] = mapped_column(Integer, nullable=False)

    daily_meal: Mapped[DailyMeal] = relationship(back_populates="ratings")

    def __repr__(self) -> str:
        return (
            f"MealRating(id={self.id}, daily_meal_id={self.daily_meal_id}, "
            f"user_id={self.user_id}, day_number={self.day_number}, stars={self.stars})"
        )
