"""
Formation catalog for 5- and 6-a-side squads.
Read-only reference data: each formation has exactly one GK slot and `mode` slots.
Coordinates are normalized to the pitch (x: 0 = left touchline, y: 0 = opponent goal line).
"""
from __future__ import annotations

from dataclasses import dataclass

from matchday.errors import InvalidReference
from matchday.models import SlotRole

SUPPORTED_MODES = (5, 6)


@dataclass(frozen=True)
class FormationSlot:
    key: str
    role: SlotRole
    x: float
    y: float
    label: str


@dataclass(frozen=True)
class Formation:
    id: str
    mode: int
    name: str
    slots: tuple[FormationSlot, ...]

    def slot(self, key: str) -> FormationSlot | None:
        for s in self.slots:
            if s.key == key:
                return s
        return None

    def slot_keys(self) -> list[str]:
        return [s.key for s in self.slots]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "mode": self.mode,
            "name": self.name,
            "slots": [
                {"key": s.key, "role": s.role.value, "x": s.x, "y": s.y, "label": s.label}
                for s in self.slots
            ],
        }


def _gk(y: float = 0.92) -> FormationSlot:
    return FormationSlot("GK", SlotRole.GK, 0.5, y, "Goalkeeper")


def _def(key: str, x: float, y: float) -> FormationSlot:
    return FormationSlot(key, SlotRole.DEF, x, y, "Defender")


def _mid(key: str, x: float, y: float) -> FormationSlot:
    return FormationSlot(key, SlotRole.MID, x, y, "Midfielder")


def _att(key: str, x: float, y: float, label: str = "Attacker") -> FormationSlot:
    return FormationSlot(key, SlotRole.ATT, x, y, label)


# ---------- 5-a-side ----------
# First entry of each list is the mode's default.

FORMATIONS_5: tuple[Formation, ...] = (
    Formation("5_2-2", 5, "2-2", (
        _gk(),
        _def("DL", 0.30, 0.60), _def("DR", 0.70, 0.60),
        _att("AL", 0.35, 0.25), _att("AR", 0.65, 0.25),
    )),
    Formation("5_1-2-1", 5, "1-2-1", (
        _gk(),
        _def("DM", 0.50, 0.65),
        _mid("ML", 0.30, 0.45), _mid("MR", 0.70, 0.45),
        _att("ST", 0.50, 0.20, "Striker"),
    )),
    Formation("5_1-1-2", 5, "1-1-2", (
        _gk(),
        _def("DM", 0.50, 0.65),
        _mid("CM", 0.50, 0.50),
        _att("AL", 0.35, 0.20), _att("AR", 0.65, 0.20),
    )),
    Formation("5_3-1", 5, "3-1", (
        _gk(),
        _def("DL", 0.25, 0.60), _def("DC", 0.50, 0.60), _def("DR", 0.75, 0.60),
        _att("ST", 0.50, 0.20, "Striker"),
    )),
)

# ---------- 6-a-side ----------

FORMATIONS_6: tuple[Formation, ...] = (
    Formation("6_2-2-1", 6, "2-2-1", (
        _gk(),
        _def("DL", 0.30, 0.65), _def("DR", 0.70, 0.65),
        _mid("ML", 0.35, 0.45), _mid("MR", 0.65, 0.45),
        _att("ST", 0.50, 0.20, "Striker"),
    )),
    Formation("6_2-1-2", 6, "2-1-2", (
        _gk(),
        _def("DL", 0.30, 0.65), _def("DR", 0.70, 0.65),
        _mid("CM", 0.50, 0.50),
        _att("AL", 0.35, 0.20), _att("AR", 0.65, 0.20),
    )),
    Formation("6_1-2-2", 6, "1-2-2", (
        _gk(),
        _def("DC", 0.50, 0.65),
        _mid("ML", 0.35, 0.50), _mid("MR", 0.65, 0.50),
        _att("AL", 0.35, 0.20), _att("AR", 0.65, 0.20),
    )),
    Formation("6_3-2", 6, "3-2", (
        _gk(),
        _def("DL", 0.25, 0.65), _def("DC", 0.50, 0.65), _def("DR", 0.75, 0.65),
        _att("AL", 0.35, 0.20), _att("AR", 0.65, 0.20),
    )),
    Formation("6_1-3-1", 6, "1-3-1", (
        _gk(),
        _def("DC", 0.50, 0.68),
        _mid("ML", 0.30, 0.50), _mid("MC", 0.50, 0.50), _mid("MR", 0.70, 0.50),
        _att("ST", 0.50, 0.20, "Striker"),
    )),
)

_BY_MODE: dict[int, tuple[Formation, ...]] = {5: FORMATIONS_5, 6: FORMATIONS_6}
_BY_ID: dict[str, Formation] = {f.id: f for f in FORMATIONS_5 + FORMATIONS_6}


def validate_formation(formation: Formation) -> None:
    """Raise ValueError if the formation breaks the catalog invariants."""
    if formation.mode not in SUPPORTED_MODES:
        raise ValueError(f"{formation.id}: unsupported mode {formation.mode}")
    if len(formation.slots) != formation.mode:
        raise ValueError(f"{formation.id}: {len(formation.slots)} slots for mode {formation.mode}")
    keys = formation.slot_keys()
    if len(set(keys)) != len(keys):
        raise ValueError(f"{formation.id}: duplicate slot keys")
    gk_count = sum(1 for s in formation.slots if s.role == SlotRole.GK)
    if gk_count != 1:
        raise ValueError(f"{formation.id}: expected exactly one GK slot, found {gk_count}")


for _f in _BY_ID.values():
    validate_formation(_f)


def formations_for_mode(mode: int) -> list[Formation]:
    """For API/frontend: formations available for a squad size, default first."""
    if mode not in _BY_MODE:
        raise InvalidReference(f"Unsupported mode: {mode}. Must be one of {SUPPORTED_MODES}")
    return list(_BY_MODE[mode])


def get_default_formation(mode: int) -> Formation:
    return formations_for_mode(mode)[0]


def get_formation_by_id(formation_id: str) -> Formation | None:
    """Lookup only; callers must still check formation.mode against the expected mode."""
    return _BY_ID.get(formation_id)


def role_slot_counts(formation: Formation) -> dict[SlotRole, int]:
    counts: dict[SlotRole, int] = {r: 0 for r in SlotRole}
    for s in formation.slots:
        counts[s.role] += 1
    return counts
