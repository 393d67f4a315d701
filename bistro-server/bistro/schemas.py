from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field

from .models import DailyMeal, MealOption, MealRating
from .services.calendar import from_day_number
from .services.ratings import TopMenu


class MealSlotSchema(BaseModel):
    id: int
    dayNumber: int
    date: dt.date
    option: MealOption
    optionLabel: str
    description: str

    @classmethod
    def from_model(cls, meal: DailyMeal) -> "MealSlotSchema":
        option = meal.meal_option
        return cls(
            id=meal.id,
            dayNumber=meal.day_number,
            date=from_day_number(meal.day_number),
            option=option,
            optionLabel=option.label,
            description=meal.description or "",
        )


class RenameMenuRequest(BaseModel):
    dailyMealId: int = Field(validation_alias=AliasChoices("dailyMealId", "DailyMealId"))
    newDescription: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("newDescription", "NewDescription")
    )


class RateMealRequest(BaseModel):
    dailyMealId: int = Field(validation_alias=AliasChoices("dailyMealId", "DailyMealId"))
    stars: int = Field(validation_alias=AliasChoices("stars", "Stars"))
    # only honoured when the request carries no authenticated identity
    userId: Optional[str] = Field(default=None, validation_alias=AliasChoices("userId", "userID", "UserId"))


class RatingSchema(BaseModel):
    id: int
    dailyMealId: int
    userId: str
    dayNumber: int
    stars: int
    created: bool = False

    @classmethod
    def from_model(cls, rating: MealRating, *, created: bool = False) -> "RatingSchema":
        return cls(
            id=rating.id,
            dailyMealId=rating.daily_meal_id,
            userId=rating.user_id,
            dayNumber=rating.day_number,
            stars=rating.stars,
            created=created,
        )


class TopMenuSchema(BaseModel):
    description: str
    avgStars: float
    count: int

    @classmethod
    def from_entry(cls, entry: TopMenu) -> "TopMenuSchema":
        return cls(description=entry.description, avgStars=entry.avg_stars, count=entry.count)


class ErrorResponse(BaseModel):
    detail: str
    code: str
