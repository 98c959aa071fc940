"""Type chart lookups and per-type strength/weakness lists."""

from __future__ import annotations

import pytest

from poke_team_builder.effectiveness import (
    ALL_TYPES,
    DEFAULT_TABLE,
    EffectivenessTable,
    PokemonType,
    get_strengths,
    get_weaknesses,
)
from poke_team_builder.models import TypeMultiplier


def test_closed_set_has_eighteen_types_in_canonical_order() -> None:
    assert len(ALL_TYPES) == 18
    assert ALL_TYPES[0] is PokemonType.NORMAL
    assert ALL_TYPES[-1] is PokemonType.FAIRY
    assert PokemonType.parse("  Fire ") is PokemonType.FIRE
    assert PokemonType.parse("shadow") is None
    assert PokemonType.parse(None) is None


def test_unlisted_pairs_are_neutral() -> None:
    empty = EffectivenessTable(chart={})
    for attack in ALL_TYPES:
        for defense in ALL_TYPES:
            assert empty.lookup(attack, defense) == 1.0
    assert DEFAULT_TABLE.lookup("normal", "fire") == 1.0
    assert DEFAULT_TABLE.lookup("dragon", "water") == 1.0


def test_unknown_type_names_fall_back_to_neutral() -> None:
    assert DEFAULT_TABLE.lookup("stellar", "fire") == 1.0
    assert DEFAULT_TABLE.lookup("fire", "") == 1.0


def test_known_relationships() -> None:
    assert DEFAULT_TABLE.lookup("water", "fire") == 2.0
    assert DEFAULT_TABLE.lookup(PokemonType.FIRE, PokemonType.WATER) == 0.5
    assert DEFAULT_TABLE.lookup("Electric", "Ground") == 0.0
    assert DEFAULT_TABLE.lookup("ghost", "normal") == 0.0


def test_dual_type_multiplier_is_a_product() -> None:
    assert DEFAULT_TABLE.multiplier_against("electric", ["water", "ground"]) == 0.0
    assert DEFAULT_TABLE.multiplier_against("ice", ["grass", "flying"]) == 4.0
    assert DEFAULT_TABLE.multiplier_against("fire", ["water", "grass"]) == 1.0
    assert DEFAULT_TABLE.multiplier_against("grass", ["fire", "flying"]) == 0.25


def test_weaknesses_only_include_super_effective_types() -> None:
    weaknesses = get_weaknesses(["grass", "flying"])
    assert weaknesses[0] == TypeMultiplier("ice", 4.0)
    assert all(entry.multiplier > 1.0 for entry in weaknesses)
    assert [entry.type for entry in weaknesses] == ["ice", "fire", "poison", "flying", "rock"]


def test_weaknesses_drop_immunities() -> None:
    weaknesses = {entry.type: entry.multiplier for entry in get_weaknesses(["water", "ground"])}
    assert weaknesses == {"grass": 4.0}


def test_strengths_multiply_across_attacker_types() -> None:
    strengths = get_strengths(["fire"])
    assert [entry.type for entry in strengths] == ["grass", "ice", "bug", "steel"]
    assert all(entry.multiplier == 2.0 for entry in strengths)


@pytest.mark.parametrize("types", [["normal"], ["ghost", "dragon"], []])
def test_lists_never_report_neutral_or_resisted_entries(types) -> None:
    for entry in get_strengths(types) + get_weaknesses(types):
        assert entry.multiplier > 1.0


def test_label_formats_multiplier() -> None:
    assert TypeMultiplier("fighting", 2.0).label == "Fighting (2x)"
    assert TypeMultiplier("ice", 0.5).label == "Ice (0.5x)"
