from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request

from ..auth import get_current_principal, get_optional_principal
from ..config import get_settings
from ..db import get_session
from ..errors import NotFound
from ..ratelimit import limiter
from ..schemas import RateMealRequest, RatingSchema, TopMenuSchema
from ..services import calendar
from ..services.ratings import get_top_menus, get_user_rating, rate_meal

router = APIRouter(prefix="/ratings", tags=["ratings"])


def _resolve_user_id(principal: Optional[Dict[str, Any]], payload: RateMealRequest) -> Optional[str]:
    if principal and principal.get("sub"):
        return principal["sub"]
    if get_settings().allow_request_user_fallback:
        return payload.userId
    return None


@router.post("/rate", response_model=RatingSchema)
@limiter.limit("30/minute")
async def rate(
    request: Request,
    payload: RateMealRequest,
    principal=Depends(get_optional_principal),
) -> RatingSchema:
    async with get_session() as session:
        outcome = await rate_meal(
            session,
            meal_id=payload.dailyMealId,
            stars=payload.stars,
            user_id=_resolve_user_id(principal, payload),
        )
        return RatingSchema.from_model(outcome.rating, created=outcome.created)


@router.get("/today", response_model=RatingSchema)
async def todays_rating(principal=Depends(get_current_principal)) -> RatingSchema:
    day = calendar.today(tz=get_settings().menu_timezone)
    async with get_session() as session:
        rating = await get_user_rating(session, principal["sub"], day)
        if rating is None:
            raise NotFound("No rating for today.")
        return RatingSchema.from_model(rating)


@router.get("/top", response_model=List[TopMenuSchema])
async def top_menus(min_ratings: int = Query(default=1, ge=1, alias="minRatings")) -> List[TopMenuSchema]:
    async with get_session() as session:
        entries = await get_top_menus(session, min_ratings)
    return [TopMenuSchema.from_entry(entry) for entry in entries]
