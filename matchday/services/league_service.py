"""
League-centric service: state machine, guards, team entry, scheduling, results, standings.
Lock league: freeze teams (DRAFT -> ACTIVE). Generate schedule: once, round-robin.
"""
from __future__ import annotations

import logging
import sqlite3
from datetime import date, datetime

from matchday.errors import (
    Forbidden,
    InvalidReference,
    InvalidState,
    LeagueTransitionError,
    NotFound,
    ScheduleAlreadyExists,
)
from matchday.models import League, LeagueStatus, Match, MatchStatus
from matchday.persistence.repositories import (
    LeagueRepository,
    LeagueTeamRepository,
    MatchRepository,
    TeamRepository,
)
from matchday.services.scheduling import DEFAULT_DOUBLE_ROUND_ROBIN, generate_league_schedule
from matchday.services.standings import StandingsTable, compute_standings

logger = logging.getLogger(__name__)

MIN_TEAMS_TO_LOCK = 2


# ---------- Valid transitions ----------

_VALID_TRANSITIONS: dict[LeagueStatus, set[LeagueStatus]] = {
    LeagueStatus.DRAFT: {LeagueStatus.ACTIVE},
    LeagueStatus.ACTIVE: {LeagueStatus.COMPLETED},
    LeagueStatus.COMPLETED: set(),
}


# ---------- LeagueService ----------


class LeagueService:
    """
    Domain logic for leagues: status transitions, owner checks, schedule guard.
    Persistence is delegated to repositories.
    """

    def __init__(self, double_round: bool = DEFAULT_DOUBLE_ROUND_ROBIN) -> None:
        self.double_round = double_round
        self._league_repo = LeagueRepository()
        self._league_team_repo = LeagueTeamRepository()
        self._match_repo = MatchRepository()
        self._team_repo = TeamRepository()

    # ---------- Lookups & guards ----------

    def get_league(self, conn: sqlite3.Connection, league_id: str) -> League:
        league = self._league_repo.get(conn, league_id)
        if league is None:
            raise NotFound(f"League not found: {league_id}")
        return league

    def _get_owned_league(self, conn: sqlite3.Connection, league_id: str, acting_user_id: str | None) -> League:
        league = self.get_league(conn, league_id)
        if acting_user_id is None or league.owner_id != acting_user_id:
            raise Forbidden("Only the league owner can manage this league")
        return league

    def transition_league_status(self, conn: sqlite3.Connection, league_id: str, new_status: str) -> None:
        """
        Transition league to new_status if valid.
        Valid: DRAFT -> ACTIVE -> COMPLETED.
        """
        league = self.get_league(conn, league_id)
        current = LeagueStatus(league.status)
        target = LeagueStatus(new_status)
        allowed = _VALID_TRANSITIONS.get(current, set())
        if target not in allowed:
            allowed_values = sorted(s.value for s in allowed)
            raise LeagueTransitionError(
                f"Invalid transition: {current.value} -> {target.value}. Allowed from {current.value}: {allowed_values}"
            )
        self._league_repo.update_status(conn, league_id, target.value)

    def can_modify_teams(self, conn: sqlite3.Connection, league_id: str) -> bool:
        """Teams can only be added or removed while the league is a draft."""
        league = self._league_repo.get(conn, league_id)
        return league is not None and league.status == LeagueStatus.DRAFT

    def assert_can_modify_teams(self, conn: sqlite3.Connection, league_id: str) -> None:
        if not self.can_modify_teams(conn, league_id):
            league = self._league_repo.get(conn, league_id)
            status = league.status if league else "not found"
            raise InvalidState(f"Cannot modify teams: league must be DRAFT (current: {status})")

    # ---------- League lifecycle ----------

    def create_league(
        self,
        conn: sqlite3.Connection,
        owner_id: str,
        name: str,
        city: str,
        season: str | None = None,
        start_date: date | None = None,
    ) -> League:
        league = self._league_repo.create(conn, name, city, owner_id, season=season, start_date=start_date)
        logger.info("League %s created by %s", league.id, owner_id)
        return league

    def add_team(self, conn: sqlite3.Connection, league_id: str, acting_user_id: str | None, team_id: str) -> None:
        self._get_owned_league(conn, league_id, acting_user_id)
        self.assert_can_modify_teams(conn, league_id)
        if self._team_repo.get(conn, team_id) is None:
            raise NotFound(f"Team not found: {team_id}")
        if self._league_team_repo.exists(conn, league_id, team_id):
            raise InvalidState(f"Team {team_id} is already in league {league_id}")
        self._league_team_repo.add(conn, league_id, team_id)

    def remove_team(self, conn: sqlite3.Connection, league_id: str, acting_user_id: str | None, team_id: str) -> None:
        self._get_owned_league(conn, league_id, acting_user_id)
        self.assert_can_modify_teams(conn, league_id)
        if not self._league_team_repo.exists(conn, league_id, team_id):
            raise NotFound(f"Team {team_id} is not in league {league_id}")
        self._league_team_repo.remove(conn, league_id, team_id)

    def lock_league(self, conn: sqlite3.Connection, league_id: str, acting_user_id: str | None) -> League:
        """DRAFT -> ACTIVE. Requires at least two teams; locking twice is rejected."""
        league = self._get_owned_league(conn, league_id, acting_user_id)
        if league.status != LeagueStatus.DRAFT:
            raise LeagueTransitionError(f"League must be DRAFT to lock (current: {league.status})")
        team_count = len(self._league_team_repo.list_team_ids(conn, league_id))
        if team_count < MIN_TEAMS_TO_LOCK:
            raise InvalidState(f"Need at least {MIN_TEAMS_TO_LOCK} teams to lock a league (has {team_count})")
        self.transition_league_status(conn, league_id, LeagueStatus.ACTIVE)
        logger.info("League %s locked with %d teams", league_id, team_count)
        return self.get_league(conn, league_id)

    def complete_league(self, conn: sqlite3.Connection, league_id: str, acting_user_id: str | None) -> League:
        self._get_owned_league(conn, league_id, acting_user_id)
        self.transition_league_status(conn, league_id, LeagueStatus.COMPLETED)
        logger.info("League %s completed", league_id)
        return self.get_league(conn, league_id)

    # ---------- Scheduling ----------

    def generate_schedule(
        self,
        conn: sqlite3.Connection,
        league_id: str,
        acting_user_id: str | None,
        double_round: bool | None = None,
        kickoff_time: str | None = None,
    ) -> list[Match]:
        """
        Create all fixtures for an ACTIVE league, in team join order.
        Rejected with ScheduleAlreadyExists when the league already has fixtures.
        """
        league = self._get_owned_league(conn, league_id, acting_user_id)
        if league.status != LeagueStatus.ACTIVE:
            raise InvalidState(f"League must be ACTIVE to generate a schedule (current: {league.status})")
        existing = self._match_repo.count_by_league(conn, league_id)
        if existing:
            raise ScheduleAlreadyExists(f"League {league_id} already has {existing} fixtures")
        team_ids = self._league_team_repo.list_team_ids(conn, league_id)
        fixtures = generate_league_schedule(
            team_ids,
            double_round=self.double_round if double_round is None else double_round,
            start_date=league.start_date,
            kickoff_time=kickoff_time,
        )
        matches = self._match_repo.create_many(conn, league_id, fixtures)
        logger.info("League %s: generated %d fixtures over %d rounds", league_id, len(matches), max(m.round for m in matches))
        return matches

    def list_matches(self, conn: sqlite3.Connection, league_id: str) -> list[Match]:
        self.get_league(conn, league_id)
        return self._match_repo.list_by_league(conn, league_id)

    # ---------- Results ----------

    def _get_match(self, conn: sqlite3.Connection, match_id: str) -> Match:
        match = self._match_repo.get(conn, match_id)
        if match is None:
            raise NotFound(f"Match not found: {match_id}")
        return match

    def can_record_result(self, conn: sqlite3.Connection, league: League, match: Match, user_id: str | None) -> bool:
        """League owner, or any member of either team."""
        if user_id is None:
            return False
        if league.owner_id == user_id:
            return True
        user_team_ids = set(self._team_repo.list_ids_by_member(conn, user_id))
        return match.home_team_id in user_team_ids or match.away_team_id in user_team_ids

    def record_result(
        self,
        conn: sqlite3.Connection,
        match_id: str,
        acting_user_id: str | None,
        home_goals: int,
        away_goals: int,
    ) -> Match:
        match = self._get_match(conn, match_id)
        league = self.get_league(conn, match.league_id)
        if not self.can_record_result(conn, league, match, acting_user_id):
            raise Forbidden("Only the league owner or a member of either team can record this result")
        if league.status != LeagueStatus.ACTIVE:
            raise InvalidState(f"Results can only be recorded while the league is ACTIVE (current: {league.status})")
        if match.status == MatchStatus.CANCELLED:
            raise InvalidState(f"Match {match_id} is cancelled")
        if home_goals < 0 or away_goals < 0:
            raise InvalidReference("Goals cannot be negative")
        self._match_repo.record_result(conn, match_id, home_goals, away_goals, acting_user_id)
        logger.info("Match %s result %d-%d recorded by %s", match_id, home_goals, away_goals, acting_user_id)
        return self._get_match(conn, match_id)

    def update_match_schedule(
        self,
        conn: sqlite3.Connection,
        match_id: str,
        acting_user_id: str | None,
        scheduled_date: date | None,
        scheduled_time: str | None,
    ) -> Match:
        """
        Assign or move a fixture's date and kickoff (HH:MM). Owner only, ACTIVE league only;
        played and cancelled fixtures keep their schedule.
        """
        match = self._get_match(conn, match_id)
        league = self._get_owned_league(conn, match.league_id, acting_user_id)
        if league.status != LeagueStatus.ACTIVE:
            raise InvalidState(f"Fixtures can only be rescheduled while the league is ACTIVE (current: {league.status})")
        if match.status != MatchStatus.SCHEDULED:
            raise InvalidState(f"Match {match_id} is {match.status} and cannot be rescheduled")
        if scheduled_time is not None:
            try:
                datetime.strptime(scheduled_time, "%H:%M")
            except ValueError as e:
                raise InvalidReference(f"Kickoff time must be HH:MM, got {scheduled_time!r}") from e
        self._match_repo.update_schedule(conn, match_id, scheduled_date, scheduled_time)
        logger.info("Match %s rescheduled to %s %s", match_id, scheduled_date, scheduled_time or "")
        return self._get_match(conn, match_id)

    def cancel_match(self, conn: sqlite3.Connection, match_id: str, acting_user_id: str | None) -> None:
        match = self._get_match(conn, match_id)
        self._get_owned_league(conn, match.league_id, acting_user_id)
        if match.status == MatchStatus.PLAYED:
            raise InvalidState(f"Match {match_id} has already been played")
        self._match_repo.update_status(conn, match_id, MatchStatus.CANCELLED.value)

    # ---------- Standings ----------

    def get_standings(self, conn: sqlite3.Connection, league_id: str) -> StandingsTable:
        """Recomputed on every read from all league fixtures."""
        self.get_league(conn, league_id)
        teams: list[tuple[str, str]] = []
        for team_id in self._league_team_repo.list_team_ids(conn, league_id):
            team = self._team_repo.get(conn, team_id)
            teams.append((team_id, team.name if team else team_id))
        matches = self._match_repo.list_by_league(conn, league_id)
        return compute_standings(teams, matches)
