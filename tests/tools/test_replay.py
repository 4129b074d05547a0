import json
from datetime import datetime, timezone

import pytest

from poolscore.config.db_url import build_sqlite_url
from poolscore.scoring.determinism import compute_hash
from poolscore.tools.replay import diff_snapshots, main, parse_args, replay, snapshot_bet


def _snap(answers, tally=()):
    answers, tally = [list(a) for a in answers], [list(t) for t in tally]
    return {"answers": answers, "tally": tally, "hash": compute_hash({"answers": answers, "tally": tally})}


class TestDiffSnapshots:
    def test_identical(self):
        snap = {"1": _snap([[1, 1, "5"]])}
        assert diff_snapshots(snap, snap) == []

    def test_changed_answer(self):
        baseline = {"1": _snap([[1, 1, "5"], [2, 0, "0"]])}
        current = {"1": _snap([[1, 0, "0"], [2, 0, "0"]])}

        problems = diff_snapshots(baseline, current)

        assert problems == ["bet 1: answer 1 [1, 1, '5'] -> [1, 0, '0']"]

    def test_tally_and_missing_bet(self):
        baseline = {"1": _snap([], [[7, "3", 1]])}
        current = {"1": _snap([], [[7, "4", 1]]), "2": _snap([])}

        assert diff_snapshots(baseline, current) == ["bet 1: tally differs", "bet 2: missing from baseline"]


def test_parse_args_collects_bets():
    args = parse_args(["--target-url", "sqlite+aiosqlite:///x.db", "--bet", "3", "--bet", "4", "--migrate"])
    assert args.bet == [3, 4]
    assert args.migrate is True


@pytest.mark.asyncio
async def test_replay_is_stable(dbm, seeder):
    bet = await seeder.bet()
    u1, u2 = await seeder.users(2)
    qid = await seeder.question(bet, groupcode=1, points=4)
    await seeder.solution(qid, "Ajax")
    await seeder.answer(u1, qid, "Ajax")
    await seeder.answer(u2, qid, "PSV")
    as_of = datetime(2025, 3, 1, tzinfo=timezone.utc)

    first = await replay(dbm.url, [bet], as_of)
    second = await replay(dbm.url, [bet], as_of)

    assert first[str(bet)]["tally"] == [[u1, "4.00000000", 1], [u2, "0.00000000", 2]]
    assert diff_snapshots(first, second) == []
    assert (await snapshot_bet(dbm, bet))["hash"] == second[str(bet)]["hash"]


def test_main_baseline_round(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("POOLSCORE_CONFIG", str(tmp_path / "absent.yaml"))
    monkeypatch.delenv("POOLSCORE_DATABASE__URL", raising=False)
    url = build_sqlite_url(str(tmp_path / "copy.db"))
    baseline = tmp_path / "baseline.json"

    assert main(["--target-url", url, "--bet", "1", "--migrate", "--write-baseline", str(baseline)]) == 0
    assert json.loads(baseline.read_text())["1"]["answers"] == []
    assert main(["--target-url", url, "--bet", "1", "--baseline", str(baseline)]) == 0
    assert "no differences" in capsys.readouterr().out


def test_main_requires_url(tmp_path, monkeypatch):
    monkeypatch.setenv("POOLSCORE_CONFIG", str(tmp_path / "absent.yaml"))
    monkeypatch.delenv("POOLSCORE_REPLAY_URL", raising=False)
    monkeypatch.delenv("POOLSCORE_DATABASE__URL", raising=False)
    monkeypatch.chdir(tmp_path)
    assert main(["--bet", "1"]) == 2
