from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..errors import InvalidArgument, InvalidState, NotFound, StorageFailure, Unauthorized
from ..models import DailyMeal, MealRating
from . import calendar

logger = logging.getLogger(__name__)

MIN_STARS = 1
MAX_STARS = 5
RATE_MAX_ATTEMPTS = 3


@dataclass
class RatingOutcome:
    rating: MealRating
    created: bool


@dataclass(frozen=True)
class TopMenu:
    description: str
    avg_stars: float
    count: int


async def get_user_rating(session: AsyncSession, user_id: str, day: int) -> Optional[MealRating]:
    result = await session.execute(
        select(MealRating).where(MealRating.day_number == day, MealRating.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def rate_meal(
    session: AsyncSession,
    *,
    meal_id: int,
    stars: int,
    user_id: Optional[str],
    now: Optional[datetime] = None,
) -> RatingOutcome:
    """Create or update the caller's rating for today.

    A user holds at most one rating per day. Rating the same meal again
    overwrites the stars; rating a different meal on the same day is refused
    and leaves the existing rating untouched.
    """
    meal = await session.get(DailyMeal, meal_id)
    if meal is None:
        raise NotFound("Meal not found.")
    meal_pk = meal.id

    today = calendar.today(now, get_settings().menu_timezone)
    if meal.day_number != today:
        raise InvalidState("Only today's meals can be rated.")

    if stars < MIN_STARS or stars > MAX_STARS:
        raise InvalidArgument(f"Stars must be between {MIN_STARS} and {MAX_STARS}.")

    user_id = (user_id or "").strip()
    if not user_id:
        raise Unauthorized("No user id found.")

    for attempt in range(1, RATE_MAX_ATTEMPTS + 1):
        rating = await get_user_rating(session, user_id, today)
        if rating is None:
            rating = MealRating(daily_meal_id=meal_pk, user_id=user_id, stars=stars, day_number=today)
            session.add(rating)
            created = True
        elif rating.daily_meal_id != meal_pk:
            raise InvalidState("You already rated a different meal today.")
        else:
            rating.stars = stars
            rating.day_number = today
            created = False

        try:
            await session.commit()
        except IntegrityError as exc:
            # another request stored this user's rating for today first
            await session.rollback()
            if attempt >= RATE_MAX_ATTEMPTS:
                logger.error("Unable to store rating user=%s day=%s after %s attempts", user_id, today, attempt)
                raise StorageFailure("Could not store the rating.") from exc
            logger.info("Concurrent rating detected user=%s day=%s; re-reading", user_id, today)
            continue

        await session.refresh(rating)
        logger.info(
            "Rating %s user=%s meal=%s day=%s stars=%s",
            "created" if created else "updated",
            user_id,
            meal_pk,
            today,
            stars,
        )
        return RatingOutcome(rating=rating, created=created)

    raise StorageFailure("Could not store the rating.")  # pragma: no cover


async def get_top_menus(session: AsyncSession, min_ratings: int = 1) -> List[TopMenu]:
    """Rank dish descriptions by mean stars.

    Ratings are grouped by the description text, so the same dish served on
    different days forms a single row. Slots without a description are skipped.
    Ordered by mean descending, then rating count descending, then description.
    """
    avg_stars = func.avg(MealRating.stars).label("avg_stars")
    rating_count = func.count(MealRating.id).label("rating_count")
    stmt = (
        select(DailyMeal.description, avg_stars, rating_count)
        .select_from(MealRating)
        .join(DailyMeal, MealRating.daily_meal_id == DailyMeal.id)
        .where(DailyMeal.description.is_not(None), DailyMeal.description != "")
        .group_by(DailyMeal.description)
        .having(func.count(MealRating.id) >= min_ratings)
        .order_by(avg_stars.desc(), rating_count.desc(), DailyMeal.description.asc())
    )
    result = await session.execute(stmt)
    return [
        TopMenu(description=row.description, avg_stars=float(row.avg_stars), count=int(row.rating_count))
        for row in result.all()
    ]
