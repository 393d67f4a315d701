from __future__ import annotations

import unittest
from datetime import date, datetime, time
from unittest import IsolatedAsyncioTestCase, mock

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from bistro.errors import InvalidArgument, NotFound, StorageFailure
from bistro.models import Base, DailyMeal, MealOption
from bistro.services import calendar
from bistro.services import menu as menu_service
from bistro.services.menu import get_slot, get_week, rename_slot, suggest_descriptions

WEDNESDAY = date(2025, 12, 3)
MONDAY_NUMBER = calendar.week_start(WEDNESDAY)


class MenuServiceTestCase(IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.Session = async_sessionmaker(self.engine, expire_on_commit=False)

    async def asyncTearDown(self):
        await self.engine.dispose()

    async def _add_meal(self, day_number: int, option: MealOption, description: str = "") -> DailyMeal:
        async with self.Session() as session:
            meal = DailyMeal(day_number=day_number, option=option.value, description=description)
            session.add(meal)
            await session.commit()
            await session.refresh(meal)
            return meal

    async def _meal_count(self) -> int:
        async with self.Session() as session:
            result = await session.execute(select(func.count()).select_from(DailyMeal))
            return int(result.scalar_one())


class GetWeekTest(MenuServiceTestCase):
    async def test_empty_week_is_materialized(self):
        async with self.Session() as session:
            meals = await get_week(session, WEDNESDAY)

        self.assertEqual(len(meals), 5 * len(MealOption))
        expected = [
            (MONDAY_NUMBER + day, option.value) for day in range(5) for option in MealOption
        ]
        self.assertEqual([(m.day_number, m.option) for m in meals], expected)
        self.assertTrue(all(m.description == "" for m in meals))
        self.assertEqual(await self._meal_count(), 15)

    async def test_second_call_creates_nothing(self):
        async with self.Session() as session:
            first = await get_week(session, WEDNESDAY)
        async with self.Session() as session:
            second = await get_week(session, WEDNESDAY)

        self.assertEqual([m.id for m in first], [m.id for m in second])
        self.assertEqual(await self._meal_count(), 15)

    async def test_partial_week_keeps_existing_slots(self):
        existing = await self._add_meal(MONDAY_NUMBER + 2, MealOption.SMUTS_LEIBSPEISE, "Gulasch")
        await self._add_meal(MONDAY_NUMBER, MealOption.JUST_GOOD_FOOD, "Linsensuppe")

        async with self.Session() as session:
            meals = await get_week(session, WEDNESDAY)

        self.assertEqual(len(meals), 15)
        by_key = {(m.day_number, m.meal_option): m for m in meals}
        kept = by_key[(MONDAY_NUMBER + 2, MealOption.SMUTS_LEIBSPEISE)]
        self.assertEqual(kept.id, existing.id)
        self.assertEqual(kept.description, "Gulasch")
        self.assertEqual(by_key[(MONDAY_NUMBER, MealOption.JUST_GOOD_FOOD)].description, "Linsensuppe")
        self.assertEqual(await self._meal_count(), 15)

    async def test_weekend_reference_resolves_to_same_week(self):
        async with self.Session() as session:
            weekday_meals = await get_week(session, WEDNESDAY)
        async with self.Session() as session:
            sunday_meals = await get_week(session, date(2025, 12, 7))

        self.assertEqual([m.id for m in weekday_meals], [m.id for m in sunday_meals])
        self.assertEqual(sunday_meals[0].day_number, MONDAY_NUMBER)
        self.assertEqual(sunday_meals[-1].day_number, MONDAY_NUMBER + 4)

    async def test_other_weeks_are_not_included(self):
        await self._add_meal(MONDAY_NUMBER + 7, MealOption.GRILL_SANDWICHES, "Next week")
        await self._add_meal(MONDAY_NUMBER + 5, MealOption.GRILL_SANDWICHES, "Saturday special")

        async with self.Session() as session:
            meals = await get_week(session, WEDNESDAY)

        self.assertEqual(len(meals), 15)
        self.assertTrue(all(MONDAY_NUMBER <= m.day_number <= MONDAY_NUMBER + 4 for m in meals))

    async def test_defaults_to_current_week(self):
        async with self.Session() as session:
            meals = await get_week(
                session, now=datetime.combine(calendar.from_day_number(MONDAY_NUMBER + 1), time(12))
            )
        self.assertEqual(meals[0].day_number, MONDAY_NUMBER)

    async def test_concurrent_insert_is_reread(self):
        racing = await self._add_meal(MONDAY_NUMBER, MealOption.GRILL_SANDWICHES, "Bratwurst")
        original = menu_service._load_week
        calls = {"count": 0}

        async def stale_first_read(session, monday):
            calls["count"] += 1
            if calls["count"] == 1:
                return []
            return await original(session, monday)

        with mock.patch.object(menu_service, "_load_week", stale_first_read):
            async with self.Session() as session:
                meals = await get_week(session, WEDNESDAY)

        self.assertEqual(len(meals), 15)
        self.assertEqual(meals[0].id, racing.id)
        self.assertEqual(meals[0].description, "Bratwurst")
        self.assertEqual(await self._meal_count(), 15)

    async def test_persistent_conflict_raises_storage_failure(self):
        await self._add_meal(MONDAY_NUMBER, MealOption.GRILL_SANDWICHES, "Bratwurst")

        async def always_stale(session, monday):
            return []

        with mock.patch.object(menu_service, "_load_week", always_stale):
            async with self.Session() as session:
                with self.assertRaises(StorageFailure):
                    await get_week(session, WEDNESDAY)

        self.assertEqual(await self._meal_count(), 1)


class RenameSlotTest(MenuServiceTestCase):
    async def test_rename_trims_and_persists(self):
        meal = await self._add_meal(MONDAY_NUMBER, MealOption.JUST_GOOD_FOOD, "Old Name")

        async with self.Session() as session:
            renamed = await rename_slot(session, meal.id, "  New Name  ")
            self.assertEqual(renamed.description, "New Name")

        async with self.Session() as session:
            stored = await get_slot(session, meal.id)
            self.assertEqual(stored.description, "New Name")

    async def test_whitespace_description_is_rejected(self):
        meal = await self._add_meal(MONDAY_NUMBER, MealOption.JUST_GOOD_FOOD, "Old Name")

        async with self.Session() as session:
            with self.assertRaises(InvalidArgument):
                await rename_slot(session, meal.id, "   ")
            with self.assertRaises(InvalidArgument):
                await rename_slot(session, meal.id, None)

        async with self.Session() as session:
            stored = await get_slot(session, meal.id)
            self.assertEqual(stored.description, "Old Name")

    async def test_overlong_description_is_rejected(self):
        meal = await self._add_meal(MONDAY_NUMBER, MealOption.JUST_GOOD_FOOD, "Old Name")
        async with self.Session() as session:
            with self.assertRaises(InvalidArgument):
                await rename_slot(session, meal.id, "x" * 201)

    async def test_unknown_slot(self):
        async with self.Session() as session:
            with self.assertRaises(NotFound):
                await rename_slot(session, 999, "New Name")
            with self.assertRaises(NotFound):
                await get_slot(session, 999)

    async def test_rename_materialized_slot(self):
        async with self.Session() as session:
            meals = await get_week(session, WEDNESDAY)
            target = meals[4]
            await rename_slot(session, target.id, "Käsespätzle")

        async with self.Session() as session:
            meals = await get_week(session, WEDNESDAY)
        self.assertEqual(meals[4].description, "Käsespätzle")


class SuggestDescriptionsTest(MenuServiceTestCase):
    async def test_short_query_returns_empty_without_storage(self):
        session = mock.AsyncMock()
        self.assertEqual(await suggest_descriptions(session, "J"), [])
        self.assertEqual(await suggest_descriptions(session, "  J  "), [])
        self.assertEqual(await suggest_descriptions(session, None), [])
        session.execute.assert_not_called()

    async def test_matches_are_distinct(self):
        await self._add_meal(MONDAY_NUMBER, MealOption.JUST_GOOD_FOOD, "Jägerschnitzel")
        await self._add_meal(MONDAY_NUMBER - 1, MealOption.JUST_GOOD_FOOD, "Jägerschnitzel")
        await self._add_meal(MONDAY_NUMBER, MealOption.GRILL_SANDWICHES, "Pizza")

        async with self.Session() as session:
            self.assertEqual(await suggest_descriptions(session, "Jäger"), ["Jägerschnitzel"])

    async def test_substring_match_ignores_case(self):
        await self._add_meal(MONDAY_NUMBER, MealOption.GRILL_SANDWICHES, "Pizza Margherita")
        await self._add_meal(MONDAY_NUMBER, MealOption.JUST_GOOD_FOOD, "Pasta")

        async with self.Session() as session:
            self.assertEqual(await suggest_descriptions(session, "MARGH"), ["Pizza Margherita"])
            self.assertEqual(await suggest_descriptions(session, "  zza "), ["Pizza Margherita"])

    async def test_wildcards_are_literal(self):
        await self._add_meal(MONDAY_NUMBER, MealOption.GRILL_SANDWICHES, "100% Rind Burger")
        await self._add_meal(MONDAY_NUMBER, MealOption.JUST_GOOD_FOOD, "1000 Rind Burger")

        async with self.Session() as session:
            self.assertEqual(await suggest_descriptions(session, "0%"), ["100% Rind Burger"])

    async def test_result_is_capped_and_sorted(self):
        for index in range(12):
            await self._add_meal(MONDAY_NUMBER + index, MealOption.JUST_GOOD_FOOD, f"Suppe {index:02d}")
        await self._add_meal(MONDAY_NUMBER + 20, MealOption.JUST_GOOD_FOOD, "")

        async with self.Session() as session:
            first = await suggest_descriptions(session, "Suppe")
            second = await suggest_descriptions(session, "Suppe")

        self.assertEqual(len(first), 10)
        self.assertEqual(first, sorted(first))
        self.assertEqual(first, second)
        self.assertEqual(first[0], "Suppe 00")


if __name__ == "__main__":
    unittest.main()
