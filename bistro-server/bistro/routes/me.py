from __future__ import annotations

from fastapi import APIRouter, Depends

from ..auth import get_current_principal
from ..config import get_settings
from ..db import get_session
from ..services import calendar
from ..services.ratings import get_user_rating

router = APIRouter()


@router.get("/me")
async def me(principal=Depends(get_current_principal)):
    today = calendar.today(tz=get_settings().menu_timezone)
    async with get_session() as session:
        rating = await get_user_rating(session, principal["sub"], today)
        rated_meal_id = rating.daily_meal_id if rating else None
    return {
        "sub": principal.get("sub"),
        "name": principal.get("name"),
        "email": principal.get("email"),
        "today": today,
        "ratedMealId": rated_meal_id,
    }
