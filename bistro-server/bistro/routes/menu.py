import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, Query, Request

from ..db import get_session
from ..ratelimit import limiter
from ..schemas import MealSlotSchema, RenameMenuRequest, TopMenuSchema
from ..services.menu import get_slot, get_week, rename_slot, suggest_descriptions
from .ratings import top_menus

router = APIRouter(prefix="/menu", tags=["menu"])


@router.get("/week", response_model=List[MealSlotSchema])
async def weekly_menu(date: Optional[dt.date] = Query(default=None)) -> List[MealSlotSchema]:
    async with get_session() as session:
        meals = await get_week(session, date)
        return [MealSlotSchema.from_model(meal) for meal in meals]


@router.post("/rename", response_model=MealSlotSchema)
@limiter.limit("60/minute")
async def rename_menu(request: Request, payload: RenameMenuRequest) -> MealSlotSchema:
    async with get_session() as session:
        meal = await rename_slot(session, payload.dailyMealId, payload.newDescription)
        return MealSlotSchema.from_model(meal)


@router.get("/autocomplete", response_model=List[str])
async def autocomplete(q: str = Query(default="")) -> List[str]:
    async with get_session() as session:
        return await suggest_descriptions(session, q)


# Same listing as /ratings/top; registered before /{slot_id} so "top" is not parsed as an id.
router.add_api_route("/top", top_menus, methods=["GET"], response_model=List[TopMenuSchema])


@router.get("/{slot_id}", response_model=MealSlotSchema)
async def menu_slot(slot_id: int) -> MealSlotSchema:
    async with get_session() as session:
        meal = await get_slot(session, slot_id)
        return MealSlotSchema.from_model(meal)
