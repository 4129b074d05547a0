"""Shared fixtures: a temporary sqlite store and a small seeding helper."""

from __future__ import annotations

from typing import Any, Dict, Optional

import pytest
import pytest_asyncio

from poolscore.config.db_url import build_sqlite_url
from poolscore.database.dbm import DBM
from poolscore.database.schema import (
    Answer,
    Base,
    Bet,
    Classification,
    League,
    ListItem,
    Question,
    ResultTypeRef,
    Season,
    Solution,
    User,
)
from poolscore.shared.enums import ResultType


class PoolSeeder:
    """Inserts rows through the ORM and hands back their ids."""

    def __init__(self, dbm: DBM):
        self.dbm = dbm
        self.result_types: Dict[ResultType, int] = {}

    async def _add(self, obj: Any) -> int:
        async with self.dbm.session() as session:
            session.add(obj)
            await session.commit()
            return obj.id

    async def result_type_ids(self) -> Dict[ResultType, int]:
        if not self.result_types:
            for rt in ResultType:
                self.result_types[rt] = await self._add(ResultTypeRef(label=rt.value))
        return self.result_types

    async def user(self, firstname: str = "Test", lastname: str = "User", infix: Optional[str] = None) -> int:
        return await self._add(User(firstname=firstname, infix=infix, lastname=lastname))

    async def users(self, n: int) -> list[int]:
        return [await self.user(firstname=f"User{i}") for i in range(n)]

    async def season(self, season_id: int = 2025, label: str = "2025") -> int:
        return await self._add(Season(id=season_id, label=label))

    async def league(self, label: str = "Main") -> int:
        return await self._add(League(label=label))

    async def bet(self, label: str = "Round 1", season_id: Optional[int] = None) -> int:
        return await self._add(Bet(label=label, season_id=season_id))

    async def list_item(self, label: str) -> int:
        return await self._add(ListItem(label=label))

    async def question(
        self,
        bet_id: int,
        *,
        groupcode: int,
        points: float = 10,
        result_type: ResultType = ResultType.OPEN,
        parent_id: Optional[int] = None,
        lineup: int = 0,
        average: float = 1,
        margin: Optional[float] = None,
        step: Optional[float] = None,
    ) -> int:
        rts = await self.result_type_ids()
        return await self._add(
            Question(
                bet_id=bet_id,
                groupcode=groupcode,
                points=points,
                resulttype_id=rts[result_type],
                parent_id=parent_id,
                lineup=lineup,
                average=average,
                margin=margin,
                step=step,
            )
        )

    async def solution(self, question_id: int, result: Optional[str], listitem_id: Optional[int] = None) -> int:
        return await self._add(Solution(question_id=question_id, result=result, listitem_id=listitem_id))

    async def answer(
        self,
        user_id: int,
        question_id: int,
        result: Optional[str],
        *,
        points: float = 0,
        posted: int = 1,
        listitem_id: Optional[int] = None,
        label: Optional[str] = None,
        correct: int = 0,
        score: float = 0,
    ) -> int:
        return await self._add(
            Answer(
                user_id=user_id,
                question_id=question_id,
                result=result,
                label=label if label is not None else result,
                listitem_id=listitem_id,
                points=points,
                posted=posted,
                correct=correct,
                score=score,
            )
        )

    async def standing(
        self,
        *,
        season_id: int,
        league_id: int,
        user_id: int,
        sequence: int,
        seed: int,
        virtual: Optional[str] = "0",
        points: float = 0,
        score: float = 0,
    ) -> int:
        return await self._add(
            Classification(
                season_id=season_id,
                league_id=league_id,
                user_id=user_id,
                sequence=sequence,
                seed=seed,
                virtual=virtual,
                points=points,
                score=score,
            )
        )


@pytest_asyncio.fixture
async def dbm(tmp_path):
    """Fresh sqlite store with the full schema."""
    database = DBM(build_sqlite_url(str(tmp_path / "pool.db")))
    async with database.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield database
    await database.dispose()


@pytest.fixture
def seeder(dbm) -> PoolSeeder:
    return PoolSeeder(dbm)
