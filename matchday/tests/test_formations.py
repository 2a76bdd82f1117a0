"""
Formation catalog: slot counts, one goalkeeper, lookups.
"""
from __future__ import annotations

import pytest

from matchday.errors import InvalidReference
from matchday.formations import (
    FORMATIONS_5,
    FORMATIONS_6,
    SUPPORTED_MODES,
    Formation,
    FormationSlot,
    formations_for_mode,
    get_default_formation,
    get_formation_by_id,
    role_slot_counts,
    validate_formation,
)
from matchday.models import SlotRole


@pytest.mark.parametrize("formation", FORMATIONS_5 + FORMATIONS_6, ids=lambda f: f.id)
def test_every_formation_has_mode_slots_and_one_goalkeeper(formation):
    assert len(formation.slots) == formation.mode
    assert role_slot_counts(formation)[SlotRole.GK] == 1
    assert len(set(formation.slot_keys())) == formation.mode
    for s in formation.slots:
        assert 0.0 <= s.x <= 1.0 and 0.0 <= s.y <= 1.0


def test_defaults_are_first_per_mode():
    assert get_default_formation(5).id == "5_2-2"
    assert get_default_formation(6).id == "6_2-2-1"
    for mode in SUPPORTED_MODES:
        assert formations_for_mode(mode)[0] == get_default_formation(mode)
        assert all(f.mode == mode for f in formations_for_mode(mode))


def test_lookup_by_id():
    f = get_formation_by_id("5_3-1")
    assert f is not None
    assert f.mode == 5
    assert [s.x for s in f.slots if s.role == SlotRole.DEF] == [0.25, 0.5, 0.75]
    assert get_formation_by_id("7_3-3") is None


def test_unsupported_mode_rejected():
    with pytest.raises(InvalidReference):
        formations_for_mode(7)


def test_validate_formation_rejects_two_goalkeepers():
    bad = Formation("5_bad", 5, "bad", (
        FormationSlot("GK", SlotRole.GK, 0.5, 0.9, "Goalkeeper"),
        FormationSlot("GK2", SlotRole.GK, 0.5, 0.8, "Goalkeeper"),
        FormationSlot("DL", SlotRole.DEF, 0.3, 0.6, "Defender"),
        FormationSlot("DR", SlotRole.DEF, 0.7, 0.6, "Defender"),
        FormationSlot("ST", SlotRole.ATT, 0.5, 0.2, "Striker"),
    ))
    with pytest.raises(ValueError):
        validate_formation(bad)


def test_to_dict_shape():
    d = get_default_formation(6).to_dict()
    assert d["id"] == "6_2-2-1"
    assert d["mode"] == 6
    assert d["slots"][0] == {"key": "GK", "role": "GK", "x": 0.5, "y": 0.92, "label": "Goalkeeper"}
