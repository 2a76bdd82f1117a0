"""
Tests for the league service: status transitions, team entry guards, scheduling once, results.
"""
from __future__ import annotations

from datetime import date

import pytest

from matchday.errors import (
    Forbidden,
    InvalidReference,
    InvalidState,
    LeagueTransitionError,
    NotFound,
    ScheduleAlreadyExists,
)
from matchday.models import LeagueStatus, MatchStatus
from matchday.persistence.db import get_connection, init_db, set_db_path
from matchday.persistence.repositories import (
    LeagueRepository,
    MatchRepository,
    TeamRepository,
    UserRepository,
)
from matchday.services.league_service import LeagueService


@pytest.fixture
def db_conn(tmp_path):
    """Temporary DB with the full schema."""
    db_path = tmp_path / "league_test.db"
    set_db_path(db_path)
    init_db(db_path=db_path)
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture
def league_service():
    return LeagueService(double_round=False)


@pytest.fixture
def users(db_conn):
    repo = UserRepository()
    return {name: repo.create(db_conn, name, id=name) for name in ("owner", "cap1", "cap2", "cap3", "cap4", "outsider")}


@pytest.fixture
def teams(db_conn, users):
    repo = TeamRepository()
    return [repo.create(db_conn, f"cap{i}", f"Team {i}", "Leeds", id=f"t{i}") for i in range(1, 5)]


@pytest.fixture
def league(db_conn, league_service, users):
    return league_service.create_league(db_conn, "owner", "Sunday League", "Leeds", season="2026", start_date=date(2026, 9, 6))


def _fill_and_lock(db_conn, svc, league, team_ids):
    for tid in team_ids:
        svc.add_team(db_conn, league.id, "owner", tid)
    svc.lock_league(db_conn, league.id, "owner")


def test_new_league_is_draft(league):
    assert league.status == LeagueStatus.DRAFT


def test_transition_draft_to_active_to_completed(db_conn, league_service, league):
    league_service.transition_league_status(db_conn, league.id, LeagueStatus.ACTIVE)
    league_service.transition_league_status(db_conn, league.id, LeagueStatus.COMPLETED)
    assert LeagueRepository().get(db_conn, league.id).status == LeagueStatus.COMPLETED


def test_invalid_transition_raises(db_conn, league_service, league):
    with pytest.raises(LeagueTransitionError) as exc_info:
        league_service.transition_league_status(db_conn, league.id, LeagueStatus.COMPLETED)
    assert "Invalid transition" in str(exc_info.value)
    assert isinstance(exc_info.value, InvalidState)


def test_only_owner_adds_teams(db_conn, league_service, league, teams):
    with pytest.raises(Forbidden):
        league_service.add_team(db_conn, league.id, "cap1", "t1")
    with pytest.raises(Forbidden):
        league_service.add_team(db_conn, league.id, None, "t1")


def test_add_team_guards(db_conn, league_service, league, teams):
    league_service.add_team(db_conn, league.id, "owner", "t1")
    with pytest.raises(InvalidState):
        league_service.add_team(db_conn, league.id, "owner", "t1")
    with pytest.raises(NotFound):
        league_service.add_team(db_conn, league.id, "owner", "no-such-team")


def test_remove_team_while_draft(db_conn, league_service, league, teams):
    league_service.add_team(db_conn, league.id, "owner", "t1")
    league_service.remove_team(db_conn, league.id, "owner", "t1")
    with pytest.raises(NotFound):
        league_service.remove_team(db_conn, league.id, "owner", "t1")


def test_lock_requires_two_teams(db_conn, league_service, league, teams):
    league_service.add_team(db_conn, league.id, "owner", "t1")
    with pytest.raises(InvalidState):
        league_service.lock_league(db_conn, league.id, "owner")
    league_service.add_team(db_conn, league.id, "owner", "t2")
    locked = league_service.lock_league(db_conn, league.id, "owner")
    assert locked.status == LeagueStatus.ACTIVE


def test_teams_frozen_after_lock(db_conn, league_service, league, teams):
    _fill_and_lock(db_conn, league_service, league, ["t1", "t2"])
    assert not league_service.can_modify_teams(db_conn, league.id)
    with pytest.raises(InvalidState):
        league_service.add_team(db_conn, league.id, "owner", "t3")
    with pytest.raises(InvalidState):
        league_service.remove_team(db_conn, league.id, "owner", "t1")
    with pytest.raises(LeagueTransitionError):
        league_service.lock_league(db_conn, league.id, "owner")


def test_schedule_requires_active(db_conn, league_service, league, teams):
    league_service.add_team(db_conn, league.id, "owner", "t1")
    league_service.add_team(db_conn, league.id, "owner", "t2")
    with pytest.raises(InvalidState):
        league_service.generate_schedule(db_conn, league.id, "owner")


def test_generate_schedule_once(db_conn, league_service, league, teams):
    _fill_and_lock(db_conn, league_service, league, ["t1", "t2", "t3", "t4"])
    matches = league_service.generate_schedule(db_conn, league.id, "owner")
    assert len(matches) == 6
    assert {m.round for m in matches} == {1, 2, 3}
    assert all(m.status == MatchStatus.SCHEDULED for m in matches)
    assert min(m.scheduled_date for m in matches) == date(2026, 9, 6)

    with pytest.raises(ScheduleAlreadyExists):
        league_service.generate_schedule(db_conn, league.id, "owner")
    assert MatchRepository().count_by_league(db_conn, league.id) == 6


def test_double_round_schedule(db_conn, league_service, league, teams):
    _fill_and_lock(db_conn, league_service, league, ["t1", "t2", "t3"])
    matches = league_service.generate_schedule(db_conn, league.id, "owner", double_round=True)
    assert len(matches) == 6
    assert {m.leg for m in matches} == {1, 2}
    listed = league_service.list_matches(db_conn, league.id)
    assert [m.round for m in listed] == sorted(m.round for m in listed)


def test_only_owner_generates_schedule(db_conn, league_service, league, teams):
    _fill_and_lock(db_conn, league_service, league, ["t1", "t2"])
    with pytest.raises(Forbidden):
        league_service.generate_schedule(db_conn, league.id, "cap1")


def test_record_result_and_standings(db_conn, league_service, league, teams):
    _fill_and_lock(db_conn, league_service, league, ["t1", "t2"])
    match = league_service.generate_schedule(db_conn, league.id, "owner", double_round=True)[0]
    home, away = match.home_team_id, match.away_team_id

    played = league_service.record_result(db_conn, match.id, f"cap{home[-1]}", 2, 1)
    assert played.status == MatchStatus.PLAYED
    assert played.result.home_goals == 2

    table = league_service.get_standings(db_conn, league.id)
    assert table.rows[0].team_id == home
    assert table.row_for(home).points == 3
    assert table.row_for(away).points == 0


def test_rerecording_result_overwrites(db_conn, league_service, league, teams):
    _fill_and_lock(db_conn, league_service, league, ["t1", "t2"])
    match = league_service.generate_schedule(db_conn, league.id, "owner")[0]
    league_service.record_result(db_conn, match.id, "owner", 1, 0)
    league_service.record_result(db_conn, match.id, "owner", 1, 1)
    table = league_service.get_standings(db_conn, league.id)
    assert [r.points for r in table.rows] == [1, 1]


def test_record_result_guards(db_conn, league_service, league, teams):
    _fill_and_lock(db_conn, league_service, league, ["t1", "t2"])
    match = league_service.generate_schedule(db_conn, league.id, "owner")[0]
    with pytest.raises(Forbidden):
        league_service.record_result(db_conn, match.id, "outsider", 1, 0)
    with pytest.raises(InvalidReference):
        league_service.record_result(db_conn, match.id, "owner", -1, 0)
    with pytest.raises(NotFound):
        league_service.record_result(db_conn, "missing", "owner", 1, 0)


def test_cancelled_match_refuses_result(db_conn, league_service, league, teams):
    _fill_and_lock(db_conn, league_service, league, ["t1", "t2", "t3"])
    first, second = league_service.generate_schedule(db_conn, league.id, "owner")[:2]
    league_service.cancel_match(db_conn, first.id, "owner")
    with pytest.raises(InvalidState):
        league_service.record_result(db_conn, first.id, "owner", 1, 0)
    league_service.record_result(db_conn, second.id, "owner", 0, 0)
    with pytest.raises(InvalidState):
        league_service.cancel_match(db_conn, second.id, "owner")


def test_results_closed_after_completion(db_conn, league_service, league, teams):
    _fill_and_lock(db_conn, league_service, league, ["t1", "t2"])
    match = league_service.generate_schedule(db_conn, league.id, "owner")[0]
    league_service.complete_league(db_conn, league.id, "owner")
    with pytest.raises(InvalidState):
        league_service.record_result(db_conn, match.id, "owner", 1, 0)


def test_standings_include_teams_without_results(db_conn, league_service, league, teams):
    _fill_and_lock(db_conn, league_service, league, ["t3", "t1", "t2"])
    table = league_service.get_standings(db_conn, league.id)
    assert [r.team_name for r in table.rows] == ["Team 1", "Team 2", "Team 3"]
    assert table.is_consistent


def test_fixture_without_start_date_can_be_given_a_date(db_conn, league_service, teams):
    undated = league_service.create_league(db_conn, "owner", "Midweek League", "Leeds")
    _fill_and_lock(db_conn, league_service, undated, ["t1", "t2"])
    match = league_service.generate_schedule(db_conn, undated.id, "owner")[0]
    assert match.scheduled_date is None

    moved = league_service.update_match_schedule(db_conn, match.id, "owner", date(2026, 10, 7), "20:15")
    assert (moved.scheduled_date, moved.scheduled_time) == (date(2026, 10, 7), "20:15")
    stored = MatchRepository().get(db_conn, match.id)
    assert stored.scheduled_date == date(2026, 10, 7)


def test_reschedule_guards(db_conn, league_service, league, teams):
    _fill_and_lock(db_conn, league_service, league, ["t1", "t2", "t3"])
    first, second, third = league_service.generate_schedule(db_conn, league.id, "owner")
    with pytest.raises(Forbidden):
        league_service.update_match_schedule(db_conn, first.id, "cap1", date(2026, 10, 1), None)
    with pytest.raises(InvalidReference):
        league_service.update_match_schedule(db_conn, first.id, "owner", None, "25:99")
    with pytest.raises(NotFound):
        league_service.update_match_schedule(db_conn, "missing", "owner", None, None)

    league_service.record_result(db_conn, first.id, "owner", 1, 0)
    with pytest.raises(InvalidState):
        league_service.update_match_schedule(db_conn, first.id, "owner", date(2026, 10, 1), None)
    league_service.cancel_match(db_conn, second.id, "owner")
    with pytest.raises(InvalidState):
        league_service.update_match_schedule(db_conn, second.id, "owner", date(2026, 10, 1), None)

    league_service.complete_league(db_conn, league.id, "owner")
    with pytest.raises(InvalidState):
        league_service.update_match_schedule(db_conn, third.id, "owner", date(2026, 10, 1), None)
