import pytest
import pytest_asyncio
from sqlalchemy import text

from poolscore.shared.enums import Dataset
from poolscore.standings.repository import PageOptions, dataset_clause
from poolscore.standings.service import StandingsService


def test_dataset_clause():
    assert dataset_clause(Dataset.VIRTUAL, "p") == "p.virtual = '1'"
    assert dataset_clause(Dataset.REAL) == "(virtual IS NULL OR virtual = '0' OR virtual = '')"


def test_page_options_sanitize_ordering():
    opts = PageOptions(order_by="seed; DROP TABLE users", order_dir="DESC", virtual="1")
    assert opts.order_by == "season_id"
    assert opts.order_dir == "desc"
    assert opts.dataset is Dataset.VIRTUAL
    assert PageOptions(virtual=None).dataset is Dataset.REAL


@pytest_asyncio.fixture
async def league_setup(seeder):
    season = await seeder.season(2025)
    league = await seeder.league("Office")
    u1 = await seeder.user("Jan", "Berg", infix="van den")
    u2 = await seeder.user("Piet", "Smit")
    u3 = await seeder.user("Kees", "Bos")

    async def put(sequence, virtual, seeds):
        for user, seed in zip((u1, u2, u3), seeds):
            await seeder.standing(
                season_id=season, league_id=league, user_id=user,
                sequence=sequence, seed=seed, virtual=virtual, points=float(10 - seed),
            )

    await put(1, "0", (1, 2, 3))
    # NULL-flagged rows are real
    await put(2, None, (2, 1, 3))
    await put(1, "1", (3, 3, 3))
    await put(3, "1", (2, 3, 1))
    return {"season": season, "league": league, "users": (u1, u2, u3)}


def _movement(standings):
    return {r["user_id"]: (r["seed"], r["prev_seed"], r["movement"]) for r in standings}


class TestStandingsService:
    @pytest.mark.asyncio
    async def test_real_movement_against_previous_sequence(self, dbm, league_setup):
        service = StandingsService.from_database(dbm)
        u1, u2, u3 = league_setup["users"]

        result = await service.current(league_setup["season"], league_setup["league"])

        assert result["sequence"] == 2
        assert [r["user_id"] for r in result["standings"]] == [u2, u1, u3]
        assert _movement(result["standings"]) == {u1: (2, 1, -1), u2: (1, 2, 1), u3: (3, 3, 0)}

    @pytest.mark.asyncio
    async def test_virtual_measured_against_latest_real(self, dbm, league_setup):
        service = StandingsService.from_database(dbm)
        u1, u2, u3 = league_setup["users"]

        result = await service.current(league_setup["season"], league_setup["league"], virtual=True)

        assert result["sequence"] == 3
        assert _movement(result["standings"]) == {u1: (2, 2, 0), u2: (3, 1, -2), u3: (1, 3, 2)}

    @pytest.mark.asyncio
    async def test_first_real_sequence_has_no_movement(self, dbm, league_setup):
        service = StandingsService.from_database(dbm)

        result = await service.standings_at(league_setup["season"], league_setup["league"], 1)

        assert all(r["movement"] is None and r["prev_seed"] is None for r in result["standings"])

    @pytest.mark.asyncio
    async def test_virtual_without_real_baseline(self, dbm, seeder):
        season = await seeder.season(2030)
        league = await seeder.league()
        user = await seeder.user()
        await seeder.standing(season_id=season, league_id=league, user_id=user, sequence=1, seed=1, virtual="1")

        result = await StandingsService.from_database(dbm).current(season, league, virtual="1")

        assert _movement(result["standings"]) == {user: (1, None, None)}

    @pytest.mark.asyncio
    async def test_empty_league(self, dbm, seeder):
        league = await seeder.league()
        result = await StandingsService.from_database(dbm).current(2025, league)
        assert result == {"sequence": 0, "standings": []}

    @pytest.mark.asyncio
    async def test_expand_users_and_league(self, dbm, league_setup):
        service = StandingsService.from_database(dbm)

        result = await service.current(league_setup["season"], league_setup["league"], expand="user,league")

        first = result["standings"][0]
        assert first["user"]["firstname"] == "Piet"
        assert first["league"] == {"id": league_setup["league"], "label": "Office"}
        assert "season" not in first

    @pytest.mark.asyncio
    async def test_user_progression_and_trend(self, dbm, league_setup):
        service = StandingsService.from_database(dbm)
        season, league = league_setup["season"], league_setup["league"]
        u1 = league_setup["users"][0]

        progression = await service.user_progression(season, league, u1)
        trend = await service.league_trend(season, league, 1, 2)

        assert [(p["sequence"], p["seat"]) for p in progression] == [(1, 1), (2, 2)]
        assert trend["from"] == 1 and trend["to"] == 2
        assert [(r["sequence"], r["seed"]) for r in trend["rows"]] == [(1, 1), (1, 2), (1, 3), (2, 1), (2, 2), (2, 3)]

    @pytest.mark.asyncio
    async def test_list_pages_and_clamps(self, dbm, league_setup):
        service = StandingsService.from_database(dbm)

        result = await service.list({"page_size": 1000, "order_by": "seed", "order_dir": "desc"})
        second = await service.list({"page": 2, "page_size": 4, "virtual": True})

        assert result["meta"]["page_size"] == 200
        assert result["meta"]["total"] == 6
        assert result["data"][0]["seed"] == 3
        assert second["meta"] == {
            "page": 2, "page_size": 4, "total": 6, "total_pages": 2,
            "order_by": "season_id", "order_dir": "asc",
        }
        assert len(second["data"]) == 2

    @pytest.mark.asyncio
    async def test_blank_flag_is_real(self, dbm, seeder):
        league = await seeder.league()
        user = await seeder.user()
        await seeder.standing(season_id=2031, league_id=league, user_id=user, sequence=4, seed=1, virtual="")

        service = StandingsService.from_database(dbm)

        assert (await service.current(2031, league))["sequence"] == 4
        assert (await service.current(2031, league, virtual=True))["sequence"] == 0

    @pytest.mark.asyncio
    async def test_invalidate_lookups_picks_up_renames(self, dbm, league_setup):
        service = StandingsService.from_database(dbm)
        season, league = league_setup["season"], league_setup["league"]
        u2 = league_setup["users"][1]

        before = await service.current(season, league, expand="user,league")
        await dbm.write(text("UPDATE users SET firstname = :name WHERE id = :id"), {"name": "Peter", "id": u2})
        cached = await service.current(season, league, expand="user,league")

        assert before["standings"][0]["user"]["name"] == "Piet Smit"
        assert cached["standings"][0]["user"]["firstname"] == "Piet"
        assert service.invalidate_lookups("user") == 1

        refreshed = await service.current(season, league, expand="user")
        assert refreshed["standings"][0]["user"]["name"] == "Peter Smit"
        assert service.invalidate_lookups() == 2
