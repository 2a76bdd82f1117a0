"""
Persistence layer for league data.
Read/write interfaces only. Scheduling and rules live in services.
"""
from .db import get_connection, init_db, set_db_path
from .repositories import (
    UserRepository,
    TeamRepository,
    SquadRepository,
    LeagueRepository,
    LeagueTeamRepository,
    MatchRepository,
)

__all__ = [
    "get_connection",
    "init_db",
    "set_db_path",
    "UserRepository",
    "TeamRepository",
    "SquadRepository",
    "LeagueRepository",
    "LeagueTeamRepository",
    "MatchRepository",
]
