"""
Tests for round-robin fixture generation.
Deterministic; every pair once per leg; at most one match per team per round.
"""
from __future__ import annotations

from collections import Counter
from datetime import date
from itertools import combinations

import pytest

from matchday.errors import InvalidReference, InvalidTeamCount
from matchday.services.scheduling import (
    BYE,
    byes_by_round,
    expected_match_count,
    generate_league_schedule,
    round_robin_pairings,
)


def test_round_robin_two_teams():
    """2 teams: 1 round, 1 match."""
    pairings = round_robin_pairings(["A", "B"])
    assert len(pairings) == 1
    rnd, h, a = pairings[0]
    assert rnd == 1
    assert (h, a) in [("A", "B"), ("B", "A")]


def test_round_robin_three_teams():
    """3 teams: virtual BYE, 3 rounds, each team sits out once."""
    pairings = round_robin_pairings(["A", "B", "C"])
    assert len(pairings) == 6
    real = [(h, a) for _, h, a in pairings if a is not None]
    byes = [h for _, h, a in pairings if a is None]
    assert {tuple(sorted(p)) for p in real} == {("A", "B"), ("A", "C"), ("B", "C")}
    assert sorted(byes) == ["A", "B", "C"]
    assert BYE not in {t for p in real for t in p}


def test_byes_by_round_odd_and_even():
    assert len(byes_by_round(["A", "B", "C", "D", "E"])) == 5
    assert byes_by_round(["A", "B", "C", "D"]) == {}


@pytest.mark.parametrize("n", [2, 3, 4, 5, 6, 7, 8])
def test_every_pair_meets_exactly_once(n):
    teams = [f"T{i}" for i in range(n)]
    fixtures = generate_league_schedule(teams)
    assert len(fixtures) == expected_match_count(n) == n * (n - 1) // 2
    pairs = Counter(frozenset((f.home_team_id, f.away_team_id)) for f in fixtures)
    assert set(pairs) == {frozenset(p) for p in combinations(teams, 2)}
    assert all(count == 1 for count in pairs.values())


@pytest.mark.parametrize("n", [4, 5, 6, 7])
def test_no_team_plays_twice_in_a_round(n):
    teams = [f"T{i}" for i in range(n)]
    fixtures = generate_league_schedule(teams)
    rounds = {f.round for f in fixtures}
    assert rounds == set(range(1, (n if n % 2 else n - 1) + 1))
    for rnd in rounds:
        playing = [t for f in fixtures if f.round == rnd for t in (f.home_team_id, f.away_team_id)]
        assert len(playing) == len(set(playing))


@pytest.mark.parametrize("n", range(2, 21))
def test_home_and_away_counts_balanced(n):
    """Odd team counts: equal home and away. Even counts: exactly one apart."""
    teams = [f"T{i}" for i in range(n)]
    fixtures = generate_league_schedule(teams)
    home = Counter(f.home_team_id for f in fixtures)
    away = Counter(f.away_team_id for f in fixtures)
    expected_gap = 0 if n % 2 else 1
    for t in teams:
        assert home[t] + away[t] == n - 1
        assert abs(home[t] - away[t]) == expected_gap, (t, home[t], away[t])


def test_double_round_gives_equal_home_and_away():
    teams = [f"T{i}" for i in range(6)]
    fixtures = generate_league_schedule(teams, double_round=True)
    home = Counter(f.home_team_id for f in fixtures)
    assert all(home[t] == 5 for t in teams)


def test_schedule_is_deterministic():
    teams = ["Reds", "Blues", "Greens", "Whites", "Blacks"]
    assert generate_league_schedule(teams) == generate_league_schedule(list(teams))


def test_double_round_reverses_home_and_away():
    teams = ["A", "B", "C", "D"]
    fixtures = generate_league_schedule(teams, double_round=True)
    assert len(fixtures) == expected_match_count(4, double_round=True) == 12
    leg_one = [f for f in fixtures if f.leg == 1]
    leg_two = [f for f in fixtures if f.leg == 2]
    assert {(f.home_team_id, f.away_team_id) for f in leg_two} == {
        (f.away_team_id, f.home_team_id) for f in leg_one
    }
    assert min(f.round for f in leg_two) == max(f.round for f in leg_one) + 1


def test_scheduled_dates_follow_round_interval():
    fixtures = generate_league_schedule(
        ["A", "B", "C", "D"], start_date=date(2026, 9, 5), round_interval_days=7, kickoff_time="19:30"
    )
    by_round = {f.round: f.scheduled_date for f in fixtures}
    assert by_round == {1: date(2026, 9, 5), 2: date(2026, 9, 12), 3: date(2026, 9, 19)}
    assert all(f.scheduled_time == "19:30" for f in fixtures)


def test_no_start_date_means_no_dates():
    fixtures = generate_league_schedule(["A", "B"])
    assert fixtures[0].scheduled_date is None
    assert fixtures[0].to_dict()["scheduled_date"] is None


def test_too_few_teams_rejected():
    with pytest.raises(InvalidTeamCount):
        generate_league_schedule(["Solo"])
    with pytest.raises(InvalidTeamCount):
        generate_league_schedule([])


def test_duplicate_or_reserved_ids_rejected():
    with pytest.raises(InvalidReference):
        generate_league_schedule(["A", "B", "A"])
    with pytest.raises(InvalidReference):
        generate_league_schedule(["A", BYE])


def test_round_interval_must_be_positive():
    with pytest.raises(ValueError):
        generate_league_schedule(["A", "B"], start_date=date(2026, 1, 1), round_interval_days=0)
