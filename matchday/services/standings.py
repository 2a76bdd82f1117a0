"""
League standings: points table derived from recorded match results.
Always recomputed from the full match list; nothing is updated incrementally.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

from matchday.errors import InvalidReference
from matchday.models import Match, MatchStatus, Team

logger = logging.getLogger(__name__)

POINTS_WIN = 3
POINTS_DRAW = 1
POINTS_LOSS = 0


@dataclass
class StandingsRow:
    team_id: str
    team_name: str
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0

    @property
    def goal_difference(self) -> int:
        return self.goals_for - self.goals_against

    @property
    def points(self) -> int:
        return POINTS_WIN * self.won + POINTS_DRAW * self.drawn + POINTS_LOSS * self.lost

    def _add(self, scored: int, conceded: int) -> None:
        self.played += 1
        self.goals_for += scored
        self.goals_against += conceded
        if scored > conceded:
            self.won += 1
        elif scored == conceded:
            self.drawn += 1
        else:
            self.lost += 1

    def sort_key(self) -> tuple:
        return (-self.points, -self.goal_difference, -self.goals_for, self.team_name, self.team_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "team_id": self.team_id,
            "team_name": self.team_name,
            "played": self.played,
            "won": self.won,
            "drawn": self.drawn,
            "lost": self.lost,
            "goals_for": self.goals_for,
            "goals_against": self.goals_against,
            "goal_difference": self.goal_difference,
            "points": self.points,
        }


@dataclass(frozen=True)
class StandingsInconsistency:
    """A result that could not be counted because it names a team outside the league."""
    match_id: str
    unknown_team_ids: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"match_id": self.match_id, "unknown_team_ids": list(self.unknown_team_ids)}


@dataclass
class StandingsTable:
    rows: list[StandingsRow]
    inconsistencies: list[StandingsInconsistency] = field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return not self.inconsistencies

    def row_for(self, team_id: str) -> StandingsRow | None:
        for r in self.rows:
            if r.team_id == team_id:
                return r
        return None

    def to_dicts(self) -> list[dict[str, Any]]:
        return [{"position": i, **r.to_dict()} for i, r in enumerate(self.rows, start=1)]


def _team_entries(teams: Iterable[Team | tuple[str, str]]) -> list[tuple[str, str]]:
    out: list[tuple[str, str]] = []
    for t in teams:
        if isinstance(t, Team):
            out.append((t.id, t.name))
        else:
            tid, name = t
            out.append((tid, name))
    return out


def compute_standings(
    teams: Iterable[Team | tuple[str, str]],
    matches: Sequence[Match],
    strict: bool = False,
) -> StandingsTable:
    """
    Build the points table for `teams` from `matches` (any order).
    Only matches with a recorded result count; cancelled matches never count.
    Matches naming a team outside `teams` are reported in `inconsistencies` and skipped,
    or raise InvalidReference when strict.
    Sort: points, goal difference, goals for (all desc), then team name, then team id.
    """
    rows: dict[str, StandingsRow] = {}
    for tid, name in _team_entries(teams):
        rows.setdefault(tid, StandingsRow(team_id=tid, team_name=name))

    inconsistencies: list[StandingsInconsistency] = []
    # Sorting by id makes the inconsistency list independent of input order
    for m in sorted(matches, key=lambda m: m.id):
        if m.result is None or m.status == MatchStatus.CANCELLED:
            continue
        unknown = tuple(t for t in (m.home_team_id, m.away_team_id) if t not in rows)
        if unknown:
            if strict:
                raise InvalidReference(f"Match {m.id} references unknown team(s): {', '.join(unknown)}")
            logger.warning("Standings: skipping match %s with unknown team(s) %s", m.id, unknown)
            inconsistencies.append(StandingsInconsistency(match_id=m.id, unknown_team_ids=unknown))
            continue
        home, away = m.result.home_goals, m.result.away_goals
        rows[m.home_team_id]._add(home, away)
        rows[m.away_team_id]._add(away, home)

    ordered = sorted(rows.values(), key=StandingsRow.sort_key)
    return StandingsTable(rows=ordered, inconsistencies=inconsistencies)
