"""
Data models for the league backend.
Domain objects only; no persistence or API logic.

Leagues own teams (join order matters for scheduling); matches are created once
by the fixture generator; standings are derived from match results on read.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any


# ---------- League status (state machine) ----------
class LeagueStatus(str, Enum):
    """League lifecycle: draft → active → completed. Forward only."""
    DRAFT = "DRAFT"          # Accepting teams
    ACTIVE = "ACTIVE"        # Locked; fixtures and results
    COMPLETED = "COMPLETED"  # Season over


# ---------- Match status ----------
class MatchStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    PLAYED = "PLAYED"
    CANCELLED = "CANCELLED"


# ---------- Team member role ----------
class TeamMemberRole(str, Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    CAPTAIN = "CAPTAIN"  # legacy alias of OWNER
    MEMBER = "MEMBER"


# ---------- Formation slot role ----------
class SlotRole(str, Enum):
    GK = "GK"
    DEF = "DEF"
    MID = "MID"
    ATT = "ATT"


# ---------- User ----------
@dataclass
class User:
    id: str
    name: str
    username: str
    created_at: datetime
    password_hash: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "username": self.username,
            "created_at": self.created_at.isoformat(),
        }


# ---------- Team ----------
@dataclass
class TeamMember:
    team_id: str
    user_id: str
    role: str  # TeamMemberRole value
    joined_at: datetime
    name: str | None = None
    username: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "team_id": self.team_id,
            "user_id": self.user_id,
            "role": self.role,
            "joined_at": self.joined_at.isoformat(),
        }
        if self.name is not None:
            d["user"] = {"id": self.user_id, "name": self.name, "username": self.username}
        return d


@dataclass
class Team:
    """
    A club registered by its captain. The captain is inserted as the OWNER member,
    so exactly one member carries an owner role.
    """
    id: str
    name: str
    city: str
    captain_id: str
    created_at: datetime
    preferred_pitch_id: str | None = None
    members: list[TeamMember] = field(default_factory=list)

    def is_member(self, user_id: str) -> bool:
        return any(m.user_id == user_id for m in self.members)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "city": self.city,
            "captain_id": self.captain_id,
            "created_at": self.created_at.isoformat(),
            "members": [m.to_dict() for m in self.members],
        }
        if self.preferred_pitch_id is not None:
            d["preferred_pitch_id"] = self.preferred_pitch_id
        return d


# ---------- Squad ----------
@dataclass(frozen=True)
class PlayerSnapshot:
    """Display copy of a roster player held in a slot."""
    id: str
    name: str
    username: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "username": self.username}


@dataclass
class SquadSlot:
    """One formation position. role mirrors the formation slot and never changes."""
    slot_key: str
    role: str  # SlotRole value
    player_id: str | None = None
    player: PlayerSnapshot | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "slot_key": self.slot_key,
            "role": self.role,
            "player_id": self.player_id,
            "player": self.player.to_dict() if self.player else None,
        }


@dataclass
class Squad:
    """Persisted squad for a team: mode, formation and slot→player list."""
    team_id: str
    mode: int
    formation_id: str
    slots: list[SquadSlot]
    updated_at: datetime | None = None
    updated_by: str | None = None

    def assigned_player_ids(self) -> list[str]:
        return [s.player_id for s in self.slots if s.player_id]

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "team_id": self.team_id,
            "mode": self.mode,
            "formation_id": self.formation_id,
            "slots": [s.to_dict() for s in self.slots],
        }
        if self.updated_at is not None:
            d["updated_at"] = self.updated_at.isoformat()
        if self.updated_by is not None:
            d["updated_by"] = self.updated_by
        return d


# ---------- League ----------
@dataclass
class LeagueTeam:
    league_id: str
    team_id: str
    joined_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "league_id": self.league_id,
            "team_id": self.team_id,
            "joined_at": self.joined_at.isoformat(),
        }


@dataclass
class League:
    """
    Competition container. Teams join while DRAFT; lock moves it to ACTIVE,
    after which fixtures can be generated once.
    """
    id: str
    name: str
    city: str
    owner_id: str
    status: str  # LeagueStatus value
    created_at: datetime
    season: str | None = None
    start_date: date | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "city": self.city,
            "owner_id": self.owner_id,
            "status": self.status,
            "created_at": self.created_at.isoformat(),
            "season": self.season,
            "start_date": self.start_date.isoformat() if self.start_date else None,
        }
        return d


# ---------- Match ----------
@dataclass
class MatchResult:
    home_goals: int
    away_goals: int
    recorded_by: str | None = None
    recorded_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"home_goals": self.home_goals, "away_goals": self.away_goals}
        if self.recorded_by is not None:
            d["recorded_by"] = self.recorded_by
        if self.recorded_at is not None:
            d["recorded_at"] = self.recorded_at.isoformat()
        return d


@dataclass
class Match:
    """
    A league fixture. result is None until played.
    leg 2 of a double round-robin mirrors leg 1 with home/away reversed.
    """
    id: str
    league_id: str
    home_team_id: str
    away_team_id: str
    round: int
    status: str  # MatchStatus value
    created_at: datetime
    leg: int = 1
    scheduled_date: date | None = None
    scheduled_time: str | None = None  # "HH:MM"
    result: MatchResult | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "league_id": self.league_id,
            "home_team_id": self.home_team_id,
            "away_team_id": self.away_team_id,
            "round": self.round,
            "leg": self.leg,
            "status": self.status,
            "scheduled_date": self.scheduled_date.isoformat() if self.scheduled_date else None,
            "scheduled_time": self.scheduled_time,
            "result": self.result.to_dict() if self.result else None,
            "created_at": self.created_at.isoformat(),
        }
