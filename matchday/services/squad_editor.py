"""
Squad assignment engine: one team's formation slots and who stands in them.

Commands mirror the squad editor UI (select slot, pick player, drag between slots,
switch mode/formation). Every command returns a CommandResult and leaves state
untouched when rejected; non-captains are rejected without an exception so the
caller can simply discard the tentative change.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from matchday.errors import (
    Forbidden,
    InvalidReference,
    InvalidState,
    MatchdayError,
    PlayerAlreadyAssigned,
    SquadPersistenceError,
)
from matchday.formations import Formation, get_default_formation, get_formation_by_id
from matchday.models import PlayerSnapshot, Squad, SquadSlot, SlotRole

logger = logging.getLogger(__name__)

DEFAULT_MODE = 5


@dataclass(frozen=True)
class CommandResult:
    """Outcome of an editor command. applied=False with error=None is a plain no-op."""
    applied: bool
    error: MatchdayError | None = None

    def __bool__(self) -> bool:
        return self.applied

    @classmethod
    def ok(cls) -> "CommandResult":
        return cls(applied=True)

    @classmethod
    def noop(cls) -> "CommandResult":
        return cls(applied=False)

    @classmethod
    def rejected(cls, error: MatchdayError) -> "CommandResult":
        return cls(applied=False, error=error)


def empty_slots(formation: Formation) -> list[SquadSlot]:
    return [SquadSlot(slot_key=s.key, role=s.role.value) for s in formation.slots]


def remap_slots(
    slots: Sequence[SquadSlot],
    old_formation: Formation,
    new_formation: Formation,
) -> tuple[list[SquadSlot], list[str]]:
    """
    Role-preserving remap. Assigned players are grouped by role, ordered left to right by
    their slot's x in the old formation (old slot order breaks ties), then dealt into the
    new formation's slots of the same role in slot order.
    Returns (new_slots, benched_player_ids) where benched players had no slot left for their role.
    """
    order = {s.key: i for i, s in enumerate(old_formation.slots)}
    xs = {s.key: s.x for s in old_formation.slots}
    by_role: dict[str, list[SquadSlot]] = {r.value: [] for r in SlotRole}
    for slot in slots:
        if slot.player_id and slot.role in by_role:
            by_role[slot.role].append(slot)
    for role_slots in by_role.values():
        role_slots.sort(key=lambda s: (xs.get(s.slot_key, 0.0), order.get(s.slot_key, len(order))))

    new_slots: list[SquadSlot] = []
    for fs in new_formation.slots:
        queue = by_role[fs.role.value]
        taken = queue.pop(0) if queue else None
        new_slots.append(SquadSlot(
            slot_key=fs.key,
            role=fs.role.value,
            player_id=taken.player_id if taken else None,
            player=taken.player if taken else None,
        ))
    benched = [s.player_id for queue in by_role.values() for s in queue if s.player_id]
    return new_slots, benched


class SquadEditor:
    """
    In-memory edit session for one team's squad.
    `persist` receives the payload from to_payload() and returns the stored Squad;
    SquadService.open_editor wires it to the database.
    """

    def __init__(
        self,
        team_id: str,
        captain_id: str,
        acting_user_id: str | None,
        members: Sequence[PlayerSnapshot],
        saved: Squad | None = None,
        persist: Callable[[dict[str, Any]], Squad] | None = None,
    ) -> None:
        self.team_id = team_id
        self.captain_id = captain_id
        self.acting_user_id = acting_user_id
        self.members = list(members)
        self._members_by_id = {m.id: m for m in self.members}
        self._persist = persist
        self._saved = saved
        self.fallback_applied = False
        self.mode = DEFAULT_MODE
        self.formation = get_default_formation(DEFAULT_MODE)
        self.slots: list[SquadSlot] = []
        self.active_slot: str | None = None
        self._load(saved)

    # ---------- Loading ----------

    def _load(self, saved: Squad | None) -> None:
        self.active_slot = None
        self.fallback_applied = False
        if saved is None:
            self.mode = DEFAULT_MODE
            self.formation = get_default_formation(DEFAULT_MODE)
            self.slots = empty_slots(self.formation)
            return
        mode = saved.mode if saved.mode in (5, 6) else DEFAULT_MODE
        formation = get_formation_by_id(saved.formation_id)
        if formation is None or formation.mode != mode:
            logger.warning(
                "Team %s: saved formation %r does not match mode %s; falling back to %s",
                self.team_id, saved.formation_id, saved.mode, get_default_formation(mode).id,
            )
            self.fallback_applied = True
            self.mode = mode
            self.formation = get_default_formation(mode)
            self.slots = empty_slots(self.formation)
            return
        saved_by_key = {s.slot_key: s.player_id for s in saved.slots}
        slots: list[SquadSlot] = []
        seen: set[str] = set()
        for fs in formation.slots:
            pid = saved_by_key.get(fs.key)
            player = self._members_by_id.get(pid) if pid else None
            if pid and (player is None or pid in seen):
                logger.warning("Team %s: dropping player %s from slot %s (not on roster)", self.team_id, pid, fs.key)
                pid = None
            if pid:
                seen.add(pid)
            slots.append(SquadSlot(slot_key=fs.key, role=fs.role.value, player_id=pid, player=player if pid else None))
        self.mode = mode
        self.formation = formation
        self.slots = slots

    # ---------- Queries ----------

    @property
    def is_captain(self) -> bool:
        return self.acting_user_id is not None and self.acting_user_id == self.captain_id

    def slot(self, slot_key: str) -> SquadSlot | None:
        for s in self.slots:
            if s.slot_key == slot_key:
                return s
        return None

    def assigned_player_ids(self) -> set[str]:
        return {s.player_id for s in self.slots if s.player_id}

    def slot_of_player(self, player_id: str) -> str | None:
        for s in self.slots:
            if s.player_id == player_id:
                return s.slot_key
        return None

    def bench(self) -> list[PlayerSnapshot]:
        """Roster members not in any slot, roster order."""
        assigned = self.assigned_player_ids()
        return [m for m in self.members if m.id not in assigned]

    def to_payload(self) -> dict[str, Any]:
        return {
            "mode": self.mode,
            "formation_id": self.formation.id,
            "slots": [{"slot_key": s.slot_key, "player_id": s.player_id} for s in self.slots],
        }

    def state(self) -> dict[str, Any]:
        """Full comparable snapshot of the editor (payload plus selection)."""
        return {**copy.deepcopy(self.to_payload()), "active_slot": self.active_slot}

    # ---------- Commands ----------

    def _forbidden(self) -> CommandResult:
        return CommandResult.rejected(Forbidden("Only the team captain can edit the squad"))

    def select_slot(self, slot_key: str) -> CommandResult:
        if not self.is_captain:
            return self._forbidden()
        if self.slot(slot_key) is None:
            return CommandResult.rejected(InvalidReference(f"Slot {slot_key} is not in formation {self.formation.id}"))
        self.active_slot = slot_key
        return CommandResult.ok()

    def assign_player(self, slot_key: str, player_id: str) -> CommandResult:
        if not self.is_captain:
            return self._forbidden()
        target = self.slot(slot_key)
        if target is None:
            return CommandResult.rejected(InvalidReference(f"Slot {slot_key} is not in formation {self.formation.id}"))
        player = self._members_by_id.get(player_id)
        if player is None:
            return CommandResult.rejected(InvalidReference(f"Player {player_id} is not a member of team {self.team_id}"))
        current = self.slot_of_player(player_id)
        if current is not None and current != slot_key:
            return CommandResult.rejected(PlayerAlreadyAssigned(player_id, current))
        target.player_id = player_id
        target.player = player
        self.active_slot = None
        return CommandResult.ok()

    def assign_to_active_slot(self, player_id: str) -> CommandResult:
        """Bench pick: put the player in the selected slot."""
        if not self.is_captain:
            return self._forbidden()
        if self.active_slot is None:
            return CommandResult.rejected(InvalidState("No slot selected"))
        return self.assign_player(self.active_slot, player_id)

    def remove_player(self, slot_key: str) -> CommandResult:
        if not self.is_captain:
            return self._forbidden()
        target = self.slot(slot_key)
        if target is None:
            return CommandResult.rejected(InvalidReference(f"Slot {slot_key} is not in formation {self.formation.id}"))
        if target.player_id is None:
            return CommandResult.noop()
        target.player_id = None
        target.player = None
        return CommandResult.ok()

    def swap_or_move(self, from_slot_key: str, to_slot_key: str) -> CommandResult:
        """Drag-and-drop: swap when the destination is occupied, otherwise move."""
        if not self.is_captain:
            return self._forbidden()
        if from_slot_key == to_slot_key:
            return CommandResult.noop()
        src = self.slot(from_slot_key)
        dst = self.slot(to_slot_key)
        if src is None or dst is None or src.player_id is None:
            return CommandResult.noop()
        src.player_id, dst.player_id = dst.player_id, src.player_id
        src.player, dst.player = dst.player, src.player
        return CommandResult.ok()

    def _remap_to(self, formation: Formation) -> None:
        new_slots, benched = remap_slots(self.slots, self.formation, formation)
        if benched:
            logger.info("Team %s: %d player(s) back to bench after switching to %s", self.team_id, len(benched), formation.id)
        self.slots = new_slots
        self.formation = formation
        self.mode = formation.mode
        self.active_slot = None

    def change_mode(self, new_mode: int) -> CommandResult:
        if not self.is_captain:
            return self._forbidden()
        if new_mode == self.mode:
            return CommandResult.noop()
        try:
            formation = get_default_formation(new_mode)
        except InvalidReference as e:
            return CommandResult.rejected(e)
        self._remap_to(formation)
        return CommandResult.ok()

    def change_formation(self, formation_id: str) -> CommandResult:
        if not self.is_captain:
            return self._forbidden()
        formation = get_formation_by_id(formation_id)
        if formation is None or formation.mode != self.mode:
            return CommandResult.noop()
        if formation.id == self.formation.id:
            return CommandResult.noop()
        self._remap_to(formation)
        return CommandResult.ok()

    # ---------- Persistence ----------

    def save(self) -> Squad:
        """Persist current state. Raises Forbidden for non-captains; storage errors propagate."""
        if not self.is_captain:
            raise Forbidden("Only the team captain can save the squad")
        if self._persist is None:
            raise SquadPersistenceError("No squad store configured for this editor")
        saved = self._persist(self.to_payload())
        self._saved = saved
        self.active_slot = None
        return saved

    def reset(self) -> None:
        """Discard local edits: back to the last saved squad, or empty default formation."""
        self._load(self._saved)
