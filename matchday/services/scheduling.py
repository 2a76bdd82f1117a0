"""
Deterministic round-robin fixture generation for leagues.

Round-robin is used so every team plays every other team exactly once per leg; a leg
is N-1 rounds (N even) or N rounds (N odd). Each team plays at most one match per round.

BYE handling: when the number of teams is odd, a virtual BYE takes the fixed circle
position. Each round the team drawn against it sits out; those pairings never become fixtures.

Uses the circle method: fix first slot, rotate others each round. Same team list
ordering yields the same schedule (deterministic for persistence and for the
"generate once" guard).

Home/away: the fixed team alternates by round parity. Rotating teams sit on a circle of
odd size m and each hosts the next (m - 1) / 2 positions after it. With an odd number of
teams every team ends a leg with exactly as many home as away matches; with an even
number (an odd match count each) home and away differ by exactly one.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

from matchday.errors import InvalidReference, InvalidTeamCount

# Sentinel for bye when number of teams is odd
BYE = "BYE"

DEFAULT_ROUND_INTERVAL_DAYS = int(os.environ.get("MATCHDAY_ROUND_INTERVAL_DAYS", "7"))
DEFAULT_DOUBLE_ROUND_ROBIN = os.environ.get("MATCHDAY_DOUBLE_ROUND_ROBIN", "").strip().lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class Fixture:
    """One generated pairing, not yet persisted."""
    round: int
    leg: int
    home_team_id: str
    away_team_id: str
    scheduled_date: date | None = None
    scheduled_time: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "round": self.round,
            "leg": self.leg,
            "home_team_id": self.home_team_id,
            "away_team_id": self.away_team_id,
            "scheduled_date": self.scheduled_date.isoformat() if self.scheduled_date else None,
            "scheduled_time": self.scheduled_time,
        }


def _check_team_ids(team_ids: list[str]) -> None:
    if len(team_ids) < 2:
        raise InvalidTeamCount(f"Need at least 2 teams to generate a schedule (got {len(team_ids)})")
    if len(set(team_ids)) != len(team_ids):
        raise InvalidReference("Team list contains duplicates")
    if BYE in team_ids:
        raise InvalidReference(f"'{BYE}' is reserved and cannot be used as a team id")


def _hosts(a: int, b: int, size: int) -> bool:
    """True when rotating position a hosts b: each hosts the next (size - 1) / 2 positions around the circle."""
    return 1 <= (b - a) % size <= (size - 1) // 2


def round_robin_pairings(team_ids: list[str]) -> list[tuple[int, str, str | None]]:
    """
    Generate one leg of round-robin pairings: (round_number, home_team_id, away_team_id).
    away_team_id is None when home_team_id has a bye (odd number of teams).
    Deterministic: same team list => same schedule.
    """
    if not team_ids:
        return []
    ids = list(team_ids)
    if len(ids) % 2 == 1:
        # BYE takes the fixed position so every real team rotates
        ids.insert(0, BYE)
    N = len(ids)  # N is even
    rotating = N - 1  # odd
    result: list[tuple[int, str, str | None]] = []
    # Circle method: indices 0..N-1. Fix 0, rotate 1..N-1 each round.
    # Round 0: pair (0, N-1), (1, N-2), (2, N-3), ...
    # Round 1: new order [0, N-1, 1, 2, ..., N-2]; pair (0,N-1), (1,N-2), ...
    order = list(range(N))
    rounds = N - 1
    for rnd in range(rounds):
        for i in range(N // 2):
            a, b = order[i], order[N - 1 - i]
            if i == 0:
                home_first = rnd % 2 == 0
            else:
                home_first = _hosts(a - 1, b - 1, rotating)
            home_id, away_id = (ids[a], ids[b]) if home_first else (ids[b], ids[a])
            if home_id == BYE:
                result.append((rnd + 1, away_id, None))
            elif away_id == BYE:
                result.append((rnd + 1, home_id, None))
            else:
                result.append((rnd + 1, home_id, away_id))
        # Rotate: keep 0, then order[N-1], order[1], order[2], ..., order[N-2]
        order = [order[0]] + [order[N - 1]] + order[1 : N - 1]
    return result


def byes_by_round(team_ids: list[str]) -> dict[int, str]:
    """Round number -> team sitting out. Empty for an even number of teams."""
    return {rnd: home for rnd, home, away in round_robin_pairings(team_ids) if away is None}


def generate_league_schedule(
    team_ids: list[str],
    double_round: bool = False,
    start_date: date | None = None,
    round_interval_days: int = DEFAULT_ROUND_INTERVAL_DAYS,
    kickoff_time: str | None = None,
) -> list[Fixture]:
    """
    Return the full fixture list ordered by round then pairing.
    Leg 2 (double_round) mirrors leg 1 with home/away reversed; round numbers continue.
    scheduled_date = start_date + (round - 1) * round_interval_days when start_date is given.
    """
    _check_team_ids(team_ids)
    if round_interval_days < 1:
        raise ValueError("round_interval_days must be at least 1")
    leg_one = [(rnd, h, a) for rnd, h, a in round_robin_pairings(team_ids) if a is not None]
    rounds_per_leg = max(rnd for rnd, _, _ in leg_one)

    def _date_for(rnd: int) -> date | None:
        if start_date is None:
            return None
        return start_date + timedelta(days=(rnd - 1) * round_interval_days)

    fixtures = [
        Fixture(round=rnd, leg=1, home_team_id=h, away_team_id=a,
                scheduled_date=_date_for(rnd), scheduled_time=kickoff_time)
        for rnd, h, a in leg_one
    ]
    if double_round:
        fixtures.extend(
            Fixture(round=rnd + rounds_per_leg, leg=2, home_team_id=a, away_team_id=h,
                    scheduled_date=_date_for(rnd + rounds_per_leg), scheduled_time=kickoff_time)
            for rnd, h, a in leg_one
        )
    return fixtures


def expected_match_count(team_count: int, double_round: bool = False) -> int:
    """n·(n−1)/2 per leg."""
    per_leg = team_count * (team_count - 1) // 2
    return per_leg * 2 if double_round else per_leg
