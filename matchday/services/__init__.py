"""
Service layer: domain logic, league state machine, scheduling, standings, squads.
scheduling, standings and squad_editor are pure; league_service and squad_service orchestrate persistence.
"""
from .league_service import LeagueService
from .scheduling import Fixture, generate_league_schedule, round_robin_pairings
from .squad_editor import CommandResult, SquadEditor, remap_slots
from .squad_service import SquadService, validate_squad_payload
from .standings import StandingsRow, StandingsTable, compute_standings

__all__ = [
    "LeagueService",
    "Fixture",
    "generate_league_schedule",
    "round_robin_pairings",
    "CommandResult",
    "SquadEditor",
    "remap_slots",
    "SquadService",
    "validate_squad_payload",
    "StandingsRow",
    "StandingsTable",
    "compute_standings",
]
