"""
REST API for the matchday league backend.
Thin wrappers around the services; domain errors are translated to HTTP status codes in one place.
"""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager, contextmanager
from datetime import date
from typing import Any, AsyncGenerator, Generator, NoReturn

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field

from matchday.auth import authenticate, create_access_token, decode_token, hash_password
from matchday.errors import (
    Forbidden,
    InvalidReference,
    InvalidState,
    MatchdayError,
    NotFound,
    PlayerAlreadyAssigned,
    SquadPersistenceError,
)
from matchday.formations import formations_for_mode, get_default_formation
from matchday.persistence import (
    LeagueRepository,
    LeagueTeamRepository,
    MatchRepository,
    TeamRepository,
    UserRepository,
    get_connection,
    init_db,
)
from matchday.persistence.db import get_db_path
from matchday.services.league_service import LeagueService
from matchday.services.squad_service import SquadService

logger = logging.getLogger(__name__)

_DEFAULT_CORS_ORIGINS = "http://localhost:5173,http://127.0.0.1:5173"
CORS_ORIGINS = [
    o.strip() for o in os.environ.get("MATCHDAY_CORS_ORIGINS", _DEFAULT_CORS_ORIGINS).split(",") if o.strip()
]


@contextmanager
def db_conn() -> Generator:
    """Yield a DB connection, ensure close on exit."""
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    init_db(db_path=get_db_path())
    yield


app = FastAPI(
    title="Matchday League API",
    description="Amateur football leagues: teams, squads, fixtures and standings",
    version="0.1.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

security = HTTPBearer(auto_error=False)


# ---------- Error translation ----------

_STATUS_BY_ERROR: list[tuple[type[MatchdayError], int]] = [
    (PlayerAlreadyAssigned, 409),
    (SquadPersistenceError, 500),
    (Forbidden, 403),
    (NotFound, 404),
    (InvalidState, 409),
    (InvalidReference, 400),
]


def _raise_http(e: MatchdayError) -> NoReturn:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(e, error_type):
            raise HTTPException(status_code=status_code, detail=str(e)) from e
    raise HTTPException(status_code=400, detail=str(e)) from e


def _require_user(user_id: str | None) -> str:
    if not user_id:
        raise HTTPException(status_code=401, detail="Login required")
    return user_id


# ---------- Request models ----------


class SignupRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=6)
    name: str | None = Field(None, max_length=200)


class LoginRequest(BaseModel):
    username: str
    password: str


class CreateTeamRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    preferred_pitch_id: str | None = None


class AddMemberRequest(BaseModel):
    username: str = Field(..., min_length=1)


class SquadSlotRequest(BaseModel):
    slot_key: str
    player_id: str | None = None


class UpdateSquadRequest(BaseModel):
    mode: int = Field(..., description="Players per side: 5 or 6")
    formation_id: str
    slots: list[SquadSlotRequest] = Field(default_factory=list)


class CreateLeagueRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    season: str | None = Field(None, max_length=50)
    start_date: date | None = Field(None, description="Date of round 1; later rounds follow at the round interval")


class AddLeagueTeamRequest(BaseModel):
    team_id: str


class GenerateScheduleRequest(BaseModel):
    double_round: bool | None = Field(None, description="Two legs with home/away reversed; default from config")
    kickoff_time: str | None = Field(None, pattern=r"^\d{2}:\d{2}$")


class RescheduleMatchRequest(BaseModel):
    scheduled_date: date | None = Field(None, description="Null clears the date")
    scheduled_time: str | None = Field(None, pattern=r"^\d{2}:\d{2}$", description="Kickoff HH:MM")


class RecordResultRequest(BaseModel):
    home_goals: int = Field(..., ge=0)
    away_goals: int = Field(..., ge=0)


def _get_current_user_id(credentials: HTTPAuthorizationCredentials | None = Depends(security)) -> str | None:
    """User id from the bearer JWT, or None if no/invalid token."""
    if credentials is None:
        return None
    return decode_token(credentials.credentials)


# ---------- Auth ----------


@app.post("/signup")
def signup(req: SignupRequest) -> dict[str, Any]:
    with db_conn() as conn:
        user_repo = UserRepository()
        if user_repo.get_by_username(conn, req.username):
            raise HTTPException(status_code=400, detail="Username already taken")
        user = user_repo.create(conn, req.username, name=req.name or req.username, password_hash=hash_password(req.password))
        return {"user_id": user.id, "username": user.username, "token": create_access_token(user.id)}


@app.post("/login")
def login(req: LoginRequest) -> dict[str, Any]:
    with db_conn() as conn:
        user = authenticate(conn, req.username, req.password)
        if user is None:
            raise HTTPException(status_code=401, detail="Invalid username or password")
        return {"user_id": user.id, "username": user.username, "token": create_access_token(user.id)}


# ---------- Teams & squads ----------


@app.post("/teams")
def create_team(
    req: CreateTeamRequest,
    user_id_from_token: str | None = Depends(_get_current_user_id),
) -> dict[str, Any]:
    """Create a team; the creator becomes its captain and first member."""
    user_id = _require_user(user_id_from_token)
    with db_conn() as conn:
        team = TeamRepository().create(conn, user_id, req.name, req.city, preferred_pitch_id=req.preferred_pitch_id)
        return team.to_dict()


@app.get("/teams/{team_id}")
def get_team(team_id: str) -> dict[str, Any]:
    with db_conn() as conn:
        team = TeamRepository().get(conn, team_id)
        if team is None:
            raise HTTPException(status_code=404, detail="Team not found")
        return team.to_dict()


@app.post("/teams/{team_id}/members")
def add_team_member(
    team_id: str,
    req: AddMemberRequest,
    user_id_from_token: str | None = Depends(_get_current_user_id),
) -> dict[str, Any]:
    """Captain adds a registered user to the roster."""
    user_id = _require_user(user_id_from_token)
    with db_conn() as conn:
        team_repo = TeamRepository()
        team = team_repo.get(conn, team_id)
        if team is None:
            raise HTTPException(status_code=404, detail="Team not found")
        if team.captain_id != user_id:
            raise HTTPException(status_code=403, detail="Only the team captain can add members")
        user = UserRepository().get_by_username(conn, req.username)
        if user is None:
            raise HTTPException(status_code=404, detail=f"User not found: {req.username}")
        if team.is_member(user.id):
            raise HTTPException(status_code=409, detail="Already a member of this team")
        team_repo.add_member(conn, team_id, user.id)
        team.members = team_repo.list_members(conn, team_id)
        return team.to_dict()


@app.delete("/teams/{team_id}/members/{user_id}")
def remove_team_member(
    team_id: str,
    user_id: str,
    user_id_from_token: str | None = Depends(_get_current_user_id),
) -> dict[str, Any]:
    """Captain drops a player; the player is also cleared from the saved squad."""
    acting_user_id = _require_user(user_id_from_token)
    with db_conn() as conn:
        try:
            team = SquadService().remove_member(conn, team_id, acting_user_id, user_id)
        except MatchdayError as e:
            _raise_http(e)
        return team.to_dict()


@app.get("/formations")
def list_formations(mode: int = Query(5, description="Players per side: 5 or 6")) -> dict[str, Any]:
    try:
        formations = formations_for_mode(mode)
    except MatchdayError as e:
        _raise_http(e)
    return {
        "mode": mode,
        "default_formation_id": get_default_formation(mode).id,
        "formations": [f.to_dict() for f in formations],
    }


@app.get("/teams/{team_id}/squad")
def get_team_squad(team_id: str) -> dict[str, Any]:
    """Saved squad with player snapshots; squad is null when none has been saved."""
    with db_conn() as conn:
        try:
            squad = SquadService().get_squad(conn, team_id)
        except MatchdayError as e:
            _raise_http(e)
        return {"team_id": team_id, "squad": squad.to_dict() if squad else None}


@app.put("/teams/{team_id}/squad")
def update_team_squad(
    team_id: str,
    req: UpdateSquadRequest,
    user_id_from_token: str | None = Depends(_get_current_user_id),
) -> dict[str, Any]:
    user_id = _require_user(user_id_from_token)
    with db_conn() as conn:
        try:
            squad = SquadService().update_squad(conn, team_id, user_id, req.model_dump())
        except MatchdayError as e:
            _raise_http(e)
        return {"team_id": team_id, "squad": squad.to_dict()}


# ---------- Leagues ----------


@app.post("/leagues")
def create_league(
    req: CreateLeagueRequest,
    user_id_from_token: str | None = Depends(_get_current_user_id),
) -> dict[str, Any]:
    """Create a league. Creator is owner; league starts as DRAFT."""
    user_id = _require_user(user_id_from_token)
    with db_conn() as conn:
        league = LeagueService().create_league(
            conn, user_id, req.name, req.city, season=req.season, start_date=req.start_date
        )
        return league.to_dict()


@app.get("/leagues")
def list_leagues(
    status: str | None = Query(None, description="DRAFT, ACTIVE or COMPLETED"),
    city: str | None = Query(None),
) -> dict[str, Any]:
    with db_conn() as conn:
        leagues = LeagueRepository().list_all(conn, status=status, city=city)
        return {"leagues": [l.to_dict() for l in leagues]}


@app.get("/leagues/{league_id}")
def get_league(league_id: str) -> dict[str, Any]:
    """League with its teams in join order and fixture count."""
    with db_conn() as conn:
        try:
            league = LeagueService().get_league(conn, league_id)
        except MatchdayError as e:
            _raise_http(e)
        team_repo = TeamRepository()
        teams: list[dict[str, Any]] = []
        for lt in LeagueTeamRepository().list_by_league(conn, league_id):
            team = team_repo.get(conn, lt.team_id)
            entry = lt.to_dict()
            entry["team_name"] = team.name if team else None
            teams.append(entry)
        return {
            **league.to_dict(),
            "teams": teams,
            "match_count": MatchRepository().count_by_league(conn, league_id),
        }


@app.post("/leagues/{league_id}/teams")
def add_league_team(
    league_id: str,
    req: AddLeagueTeamRequest,
    user_id_from_token: str | None = Depends(_get_current_user_id),
) -> dict[str, Any]:
    user_id = _require_user(user_id_from_token)
    with db_conn() as conn:
        try:
            LeagueService().add_team(conn, league_id, user_id, req.team_id)
        except MatchdayError as e:
            _raise_http(e)
        return {"league_id": league_id, "team_id": req.team_id, "added": True}


@app.delete("/leagues/{league_id}/teams/{team_id}")
def remove_league_team(
    league_id: str,
    team_id: str,
    user_id_from_token: str | None = Depends(_get_current_user_id),
) -> dict[str, Any]:
    user_id = _require_user(user_id_from_token)
    with db_conn() as conn:
        try:
            LeagueService().remove_team(conn, league_id, user_id, team_id)
        except MatchdayError as e:
            _raise_http(e)
        return {"league_id": league_id, "team_id": team_id, "removed": True}


@app.post("/leagues/{league_id}/lock")
def lock_league(
    league_id: str,
    user_id_from_token: str | None = Depends(_get_current_user_id),
) -> dict[str, Any]:
    """Freeze the team list: DRAFT -> ACTIVE. Owner only; at least 2 teams."""
    user_id = _require_user(user_id_from_token)
    with db_conn() as conn:
        try:
            league = LeagueService().lock_league(conn, league_id, user_id)
        except MatchdayError as e:
            _raise_http(e)
        return league.to_dict()


@app.post("/leagues/{league_id}/complete")
def complete_league(
    league_id: str,
    user_id_from_token: str | None = Depends(_get_current_user_id),
) -> dict[str, Any]:
    user_id = _require_user(user_id_from_token)
    with db_conn() as conn:
        try:
            league = LeagueService().complete_league(conn, league_id, user_id)
        except MatchdayError as e:
            _raise_http(e)
        return league.to_dict()


@app.get("/leagues/{league_id}/standings")
def get_league_standings(league_id: str) -> dict[str, Any]:
    """Points, goal difference, goals for, then name. Recomputed from results on every call."""
    with db_conn() as conn:
        try:
            table = LeagueService().get_standings(conn, league_id)
        except MatchdayError as e:
            _raise_http(e)
        return {
            "league_id": league_id,
            "standings": table.to_dicts(),
            "inconsistencies": [i.to_dict() for i in table.inconsistencies],
        }


# ---------- Matches ----------


@app.post("/matches/leagues/{league_id}/generate-schedule")
def generate_schedule(
    league_id: str,
    req: GenerateScheduleRequest | None = None,
    user_id_from_token: str | None = Depends(_get_current_user_id),
) -> dict[str, Any]:
    """Create every round-robin fixture for an ACTIVE league. Only once per league."""
    user_id = _require_user(user_id_from_token)
    with db_conn() as conn:
        try:
            matches = LeagueService().generate_schedule(
                conn,
                league_id,
                user_id,
                double_round=req.double_round if req else None,
                kickoff_time=req.kickoff_time if req else None,
            )
        except MatchdayError as e:
            _raise_http(e)
        return {
            "league_id": league_id,
            "match_count": len(matches),
            "rounds": max((m.round for m in matches), default=0),
            "matches": [m.to_dict() for m in matches],
        }


@app.get("/matches/leagues/{league_id}/matches")
def list_league_matches(league_id: str) -> dict[str, Any]:
    with db_conn() as conn:
        try:
            matches = LeagueService().list_matches(conn, league_id)
        except MatchdayError as e:
            _raise_http(e)
        return {"league_id": league_id, "matches": [m.to_dict() for m in matches]}


@app.post("/matches/{match_id}/result")
def record_match_result(
    match_id: str,
    req: RecordResultRequest,
    user_id_from_token: str | None = Depends(_get_current_user_id),
) -> dict[str, Any]:
    user_id = _require_user(user_id_from_token)
    with db_conn() as conn:
        try:
            match = LeagueService().record_result(conn, match_id, user_id, req.home_goals, req.away_goals)
        except MatchdayError as e:
            _raise_http(e)
        return match.to_dict()


@app.patch("/matches/{match_id}")
def reschedule_match(
    match_id: str,
    req: RescheduleMatchRequest,
    user_id_from_token: str | None = Depends(_get_current_user_id),
) -> dict[str, Any]:
    """Set or move a fixture's date and kickoff. League owner only."""
    user_id = _require_user(user_id_from_token)
    with db_conn() as conn:
        try:
            match = LeagueService().update_match_schedule(
                conn, match_id, user_id, req.scheduled_date, req.scheduled_time
            )
        except MatchdayError as e:
            _raise_http(e)
        return match.to_dict()


@app.post("/matches/{match_id}/cancel")
def cancel_match(
    match_id: str,
    user_id_from_token: str | None = Depends(_get_current_user_id),
) -> dict[str, Any]:
    user_id = _require_user(user_id_from_token)
    with db_conn() as conn:
        try:
            LeagueService().cancel_match(conn, match_id, user_id)
        except MatchdayError as e:
            _raise_http(e)
        return {"match_id": match_id, "cancelled": True}
