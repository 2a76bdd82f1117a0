"""
Tests for the standings table: points, tie-breakers, inconsistent results.
"""
from __future__ import annotations

import random
from datetime import datetime, timezone

import pytest

from matchday.errors import InvalidReference
from matchday.models import Match, MatchResult, MatchStatus
from matchday.services.standings import compute_standings

_NOW = datetime(2026, 9, 1, tzinfo=timezone.utc)


def _match(mid, home, away, hg=None, ag=None, status=None, rnd=1):
    result = MatchResult(hg, ag) if hg is not None else None
    if status is None:
        status = MatchStatus.PLAYED.value if result else MatchStatus.SCHEDULED.value
    return Match(
        id=mid, league_id="L1", home_team_id=home, away_team_id=away,
        round=rnd, status=status, created_at=_NOW, result=result,
    )


TEAMS = [("a", "Athletic"), ("b", "Borough"), ("c", "City")]


def test_win_and_draw_points():
    """A beats B 2-1, then B and A draw 0-0: A 4 pts, B 1 pt."""
    table = compute_standings(TEAMS[:2], [_match("m1", "a", "b", 2, 1), _match("m2", "b", "a", 0, 0)])
    a, b = table.row_for("a"), table.row_for("b")
    assert (a.points, a.won, a.drawn, a.lost) == (4, 1, 1, 0)
    assert (b.points, b.won, b.drawn, b.lost) == (1, 0, 1, 1)
    assert (a.goals_for, a.goals_against, a.goal_difference) == (2, 1, 1)
    assert [r.team_id for r in table.rows] == ["a", "b"]
    assert table.is_consistent


def test_teams_without_matches_are_listed_by_name():
    table = compute_standings([("z", "Zebras"), ("m", "Magpies"), ("a", "Anchors")], [])
    assert [r.team_name for r in table.rows] == ["Anchors", "Magpies", "Zebras"]
    assert all(r.played == 0 and r.points == 0 for r in table.rows)


def test_unplayed_and_cancelled_matches_do_not_count():
    matches = [
        _match("m1", "a", "b"),
        _match("m2", "a", "c", 3, 0, status=MatchStatus.CANCELLED.value),
    ]
    table = compute_standings(TEAMS, matches)
    assert all(r.played == 0 for r in table.rows)


def test_tie_breakers_goal_difference_then_goals_for():
    matches = [
        _match("m1", "a", "c", 1, 0),  # a: +1, 1 scored
        _match("m2", "b", "c", 3, 2),  # b: +1, 3 scored
    ]
    table = compute_standings(TEAMS, matches)
    assert [r.team_id for r in table.rows] == ["b", "a", "c"]
    dicts = table.to_dicts()
    assert [d["position"] for d in dicts] == [1, 2, 3]
    assert dicts[0]["points"] == 3 and dicts[0]["goal_difference"] == 1


def test_points_sum_matches_results():
    """Each decided match adds 3 points to the table, each draw adds 2."""
    matches = [
        _match("m1", "a", "b", 1, 1),
        _match("m2", "b", "c", 2, 0),
        _match("m3", "c", "a", 4, 4),
    ]
    table = compute_standings(TEAMS, matches)
    assert sum(r.points for r in table.rows) == 2 + 3 + 2
    assert sum(r.goals_for for r in table.rows) == sum(r.goals_against for r in table.rows)


def test_order_of_input_matches_is_irrelevant():
    matches = [
        _match("m1", "a", "b", 1, 0),
        _match("m2", "b", "c", 2, 2),
        _match("m3", "c", "a", 0, 3),
        _match("m4", "x", "a", 1, 0),
    ]
    shuffled = list(matches)
    random.Random(7).shuffle(shuffled)
    assert compute_standings(TEAMS, matches).to_dicts() == compute_standings(TEAMS, shuffled).to_dicts()


def test_unknown_team_is_reported_and_skipped():
    table = compute_standings(TEAMS, [_match("m1", "a", "ghost", 5, 0), _match("m2", "a", "b", 1, 0)])
    assert not table.is_consistent
    assert [i.to_dict() for i in table.inconsistencies] == [{"match_id": "m1", "unknown_team_ids": ["ghost"]}]
    assert table.row_for("a").played == 1


def test_unknown_team_raises_when_strict():
    with pytest.raises(InvalidReference):
        compute_standings(TEAMS, [_match("m1", "a", "ghost", 5, 0)], strict=True)
