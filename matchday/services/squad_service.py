"""
Squad service: load, validate and persist a team's squad.
Only the team captain may write; concurrent saves are last-write-wins.
"""
from __future__ import annotations

import logging
import sqlite3
from typing import Any

from matchday.errors import (
    Forbidden,
    InvalidReference,
    InvalidState,
    NotFound,
    PlayerAlreadyAssigned,
    SquadPersistenceError,
)
from matchday.formations import Formation, get_formation_by_id
from matchday.models import PlayerSnapshot, Squad, SquadSlot, Team
from matchday.persistence.repositories import SquadRepository, TeamRepository
from matchday.services.squad_editor import SquadEditor

logger = logging.getLogger(__name__)


def roster_snapshots(team: Team) -> list[PlayerSnapshot]:
    return [
        PlayerSnapshot(id=m.user_id, name=m.name or m.user_id, username=m.username or "")
        for m in team.members
    ]


def validate_squad_payload(team: Team, payload: dict[str, Any]) -> tuple[Formation, list[SquadSlot]]:
    """
    Check an update payload {mode, formation_id, slots: [{slot_key, player_id}]} against
    the formation catalog and the team roster. Returns the formation and one SquadSlot per
    formation slot (formation order); slot keys missing from the payload are empty.
    """
    mode = payload.get("mode")
    formation_id = payload.get("formation_id")
    formation = get_formation_by_id(formation_id) if formation_id else None
    if formation is None:
        raise InvalidReference(f"Unknown formation: {formation_id}")
    if formation.mode != mode:
        raise InvalidReference(f"Formation {formation.id} is for mode {formation.mode}, not {mode}")

    members = {m.id: m for m in roster_snapshots(team)}
    chosen: dict[str, str | None] = {}
    placed: dict[str, str] = {}
    for entry in payload.get("slots") or []:
        key = entry.get("slot_key")
        player_id = entry.get("player_id")
        if formation.slot(key) is None:
            raise InvalidReference(f"Slot {key} is not in formation {formation.id}")
        if key in chosen:
            raise InvalidReference(f"Slot {key} appears more than once")
        if player_id is not None:
            if player_id not in members:
                raise InvalidReference(f"Player {player_id} is not a member of team {team.id}")
            if player_id in placed:
                raise PlayerAlreadyAssigned(player_id, placed[player_id])
            placed[player_id] = key
        chosen[key] = player_id

    slots = []
    for fs in formation.slots:
        pid = chosen.get(fs.key)
        slots.append(SquadSlot(slot_key=fs.key, role=fs.role.value, player_id=pid, player=members.get(pid) if pid else None))
    return formation, slots


class SquadService:
    def __init__(self) -> None:
        self._team_repo = TeamRepository()
        self._squad_repo = SquadRepository()

    def _get_team(self, conn: sqlite3.Connection, team_id: str) -> Team:
        team = self._team_repo.get(conn, team_id)
        if team is None:
            raise NotFound(f"Team not found: {team_id}")
        return team

    def get_squad(self, conn: sqlite3.Connection, team_id: str) -> Squad | None:
        """Last saved squad with player snapshots, or None when nothing was saved yet."""
        team = self._get_team(conn, team_id)
        squad = self._squad_repo.get(conn, team_id)
        if squad is None:
            return None
        members = {m.id: m for m in roster_snapshots(team)}
        for s in squad.slots:
            s.player = members.get(s.player_id) if s.player_id else None
        return squad

    def update_squad(
        self,
        conn: sqlite3.Connection,
        team_id: str,
        acting_user_id: str | None,
        payload: dict[str, Any],
    ) -> Squad:
        team = self._get_team(conn, team_id)
        if acting_user_id is None or acting_user_id != team.captain_id:
            raise Forbidden("Only the team captain can update the squad")
        formation, slots = validate_squad_payload(team, payload)
        try:
            squad = self._squad_repo.upsert(conn, team_id, formation.mode, formation.id, slots, acting_user_id)
        except sqlite3.Error as e:
            raise SquadPersistenceError(f"Could not save squad for team {team_id}: {e}") from e
        logger.info("Team %s squad saved (%s, %d assigned)", team_id, formation.id, len(squad.assigned_player_ids()))
        return squad

    def remove_member(self, conn: sqlite3.Connection, team_id: str, acting_user_id: str | None, user_id: str) -> Team:
        """
        Captain drops a player from the roster. The captain cannot be removed.
        The player is also cleared from the saved squad so it only names current members.
        """
        team = self._get_team(conn, team_id)
        if acting_user_id is None or acting_user_id != team.captain_id:
            raise Forbidden("Only the team captain can remove members")
        if user_id == team.captain_id:
            raise InvalidState("The captain cannot be removed from the team")
        if not team.is_member(user_id):
            raise NotFound(f"User {user_id} is not a member of team {team_id}")
        self._team_repo.remove_member(conn, team_id, user_id)
        squad = self._squad_repo.get(conn, team_id)
        if squad is not None and user_id in squad.assigned_player_ids():
            for s in squad.slots:
                if s.player_id == user_id:
                    s.player_id = None
            self._squad_repo.upsert(conn, team_id, squad.mode, squad.formation_id, squad.slots, acting_user_id)
            logger.info("Team %s: removed member %s cleared from saved squad", team_id, user_id)
        return self._get_team(conn, team_id)

    def open_editor(self, conn: sqlite3.Connection, team_id: str, acting_user_id: str | None) -> SquadEditor:
        """Editor seeded from the saved squad; save() writes back through update_squad."""
        team = self._get_team(conn, team_id)
        return SquadEditor(
            team_id=team.id,
            captain_id=team.captain_id,
            acting_user_id=acting_user_id,
            members=roster_snapshots(team),
            saved=self._squad_repo.get(conn, team_id),
            persist=lambda payload: self.update_squad(conn, team_id, acting_user_id, payload),
        )
