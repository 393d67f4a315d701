from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..errors import InvalidArgument, NotFound, StorageFailure
from ..models import DESCRIPTION_MAX_LENGTH, DailyMeal, MealOption
from . import calendar

logger = logging.getLogger(__name__)

AUTOCOMPLETE_MIN_QUERY_LENGTH = 2
AUTOCOMPLETE_LIMIT = 10
MATERIALIZE_MAX_ATTEMPTS = 3

_OPTION_POSITION: Dict[str, int] = {option.value: option.position for option in MealOption}


def _slot_key(meal: DailyMeal) -> tuple[int, int]:
    return meal.day_number, _OPTION_POSITION.get(meal.option, len(_OPTION_POSITION))


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def _load_week(session: AsyncSession, monday: int) -> List[DailyMeal]:
    friday = monday + calendar.BUSINESS_DAYS - 1
    result = await session.execute(
        select(DailyMeal)
        .where(DailyMeal.day_number >= monday, DailyMeal.day_number <= friday)
        .order_by(DailyMeal.day_number, DailyMeal.id)
    )
    return sorted(result.scalars(), key=_slot_key)


def _missing_slots(meals: List[DailyMeal], monday: int) -> List[DailyMeal]:
    present = {(meal.day_number, meal.option) for meal in meals}
    return [
        DailyMeal(day_number=day, option=option.value, description="")
        for day in calendar.week_days(monday)
        for option in MealOption
        if (day, option.value) not in present
    ]


async def get_week(
    session: AsyncSession,
    reference_date: Optional[date] = None,
    *,
    now: Optional[datetime] = None,
) -> List[DailyMeal]:
    """Return the complete Monday–Friday grid for the week holding ``reference_date``.

    Missing (day, option) slots are created with an empty description. When a
    concurrent request inserts the same slot first, the unique constraint
    rejects ours; the week is re-read and only what is still missing is retried.
    """
    if reference_date is None:
        reference_date = calendar.current_date(now, get_settings().menu_timezone)
    monday = calendar.week_start(reference_date)

    meals = await _load_week(session, monday)
    attempt = 0
    while True:
        missing = _missing_slots(meals, monday)
        if not missing:
            return meals
        attempt += 1
        session.add_all(missing)
        try:
            await session.commit()
        except IntegrityError as exc:
            await session.rollback()
            if attempt >= MATERIALIZE_MAX_ATTEMPTS:
                logger.error("Unable to materialize week starting day=%s after %s attempts", monday, attempt)
                raise StorageFailure("Could not complete the weekly menu.") from exc
            logger.info("Concurrent week materialization detected (day=%s); re-reading", monday)
        else:
            logger.info("Materialized %s meal slots for week starting day=%s", len(missing), monday)
        meals = await _load_week(session, monday)


async def get_slot(session: AsyncSession, slot_id: int) -> DailyMeal:
    meal = await session.get(DailyMeal, slot_id)
    if meal is None:
        raise NotFound("Meal not found.")
    return meal


async def rename_slot(session: AsyncSession, slot_id: int, new_description: Optional[str]) -> DailyMeal:
    meal = await get_slot(session, slot_id)

    normalized = (new_description or "").strip()
    if not normalized:
        raise InvalidArgument("Description cannot be empty.")
    if len(normalized) > DESCRIPTION_MAX_LENGTH:
        raise InvalidArgument(f"Description must be at most {DESCRIPTION_MAX_LENGTH} characters.")

    meal.description = normalized
    await session.commit()
    await session.refresh(meal)
    logger.info("Renamed meal id=%s day=%s option=%s", meal.id, meal.day_number, meal.option)
    return meal


async def suggest_descriptions(
    session: AsyncSession, query: Optional[str], *, limit: int = AUTOCOMPLETE_LIMIT
) -> List[str]:
    """Distinct descriptions containing ``query`` (case-insensitive), alphabetically."""
    term = (query or "").strip()
    if len(term) < AUTOCOMPLETE_MIN_QUERY_LENGTH:
        return []

    stmt = (
        select(DailyMeal.description)
        .where(
            DailyMeal.description != "",
            DailyMeal.description.ilike(f"%{_escape_like(term)}%", escape="\\"),
        )
        .distinct()
        .order_by(DailyMeal.description)
        .limit(min(limit, AUTOCOMPLETE_LIMIT))
    )
    result = await session.execute(stmt)
    return list(result.scalars())
