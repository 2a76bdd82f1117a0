"""
Typed errors raised by the league, squad and scheduling core.
The HTTP layer maps these to status codes; nothing here is retried.
"""
from __future__ import annotations


class MatchdayError(ValueError):
    """Base for all domain errors."""


class Forbidden(MatchdayError):
    """Acting user is not the team captain / league owner."""


class InvalidState(MatchdayError):
    """Business-rule precondition failed (e.g. league not in DRAFT)."""


class LeagueTransitionError(InvalidState):
    """Invalid league status transition (e.g. DRAFT -> COMPLETED)."""


class ScheduleAlreadyExists(InvalidState):
    """League already has fixtures; generating again would duplicate them."""


class InvalidTeamCount(InvalidState):
    """Fixture generation needs at least two teams."""


class NotFound(MatchdayError):
    """Referenced league, team, match or squad does not exist."""


class InvalidReference(MatchdayError):
    """Id exists syntactically but is wrong for the context (formation/mode, slot key, player)."""


class PlayerAlreadyAssigned(MatchdayError):
    """Player already occupies another formation slot."""

    def __init__(self, player_id: str, slot_key: str) -> None:
        super().__init__(f"Player {player_id} is already assigned to slot {slot_key}")
        self.player_id = player_id
        self.slot_key = slot_key


class SquadPersistenceError(MatchdayError):
    """Saving the squad failed in the storage layer."""
