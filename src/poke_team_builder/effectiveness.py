"""Elemental type effectiveness chart and per-type strength/weakness helpers."""
from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Union

from .models import TypeMultiplier


class PokemonType(str, Enum):
    """The closed set of 18 types, declared in canonical order."""

    NORMAL = "normal"
    FIRE = "fire"
    WATER = "water"
    ELECTRIC = "electric"
    GRASS = "grass"
    ICE = "ice"
    FIGHTING = "fighting"
    POISON = "poison"
    GROUND = "ground"
    FLYING = "flying"
    PSYCHIC = "psychic"
    BUG = "bug"
    ROCK = "rock"
    GHOST = "ghost"
    DRAGON = "dragon"
    DARK = "dark"
    STEEL = "steel"
    FAIRY = "fairy"

    @classmethod
    def parse(cls, value: Union[str, "PokemonType", None]) -> Optional["PokemonType"]:
        if isinstance(value, PokemonType):
            return value
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None

    @property
    def position(self) -> int:
        return _POSITIONS[self]


ALL_TYPES: tuple = tuple(PokemonType)
_POSITIONS: Dict[PokemonType, int] = {member: position for position, member in enumerate(ALL_TYPES)}

TypeLike = Union[str, PokemonType]

# attack -> {defense: multiplier}; pairs not listed are neutral.
_CHART: Dict[PokemonType, Dict[PokemonType, float]] = {
    PokemonType.NORMAL: {PokemonType.ROCK: 0.5, PokemonType.GHOST: 0.0, PokemonType.STEEL: 0.5},
    PokemonType.FIRE: {
        PokemonType.FIRE: 0.5, PokemonType.WATER: 0.5, PokemonType.GRASS: 2.0, PokemonType.ICE: 2.0,
        PokemonType.BUG: 2.0, PokemonType.ROCK: 0.5, PokemonType.DRAGON: 0.5, PokemonType.STEEL: 2.0,
    },
    PokemonType.WATER: {
        PokemonType.FIRE: 2.0, PokemonType.WATER: 0.5, PokemonType.GRASS: 0.5, PokemonType.GROUND: 2.0,
        PokemonType.ROCK: 2.0, PokemonType.DRAGON: 0.5,
    },
    PokemonType.ELECTRIC: {
        PokemonType.WATER: 2.0, PokemonType.ELECTRIC: 0.5, PokemonType.GRASS: 0.5,
        PokemonType.GROUND: 0.0, PokemonType.FLYING: 2.0, PokemonType.DRAGON: 0.5,
    },
    PokemonType.GRASS: {
        PokemonType.FIRE: 0.5, PokemonType.WATER: 2.0, PokemonType.GRASS: 0.5, PokemonType.POISON: 0.5,
        PokemonType.GROUND: 2.0, PokemonType.FLYING: 0.5, PokemonType.BUG: 0.5, PokemonType.ROCK: 2.0,
        PokemonType.DRAGON: 0.5, PokemonType.STEEL: 0.5,
    },
    PokemonType.ICE: {
        PokemonType.FIRE: 0.5, PokemonType.WATER: 0.5, PokemonType.GRASS: 2.0, PokemonType.ICE: 0.5,
        PokemonType.GROUND: 2.0, PokemonType.FLYING: 2.0, PokemonType.DRAGON: 2.0, PokemonType.STEEL: 0.5,
    },
    PokemonType.FIGHTING: {
        PokemonType.NORMAL: 2.0, PokemonType.ICE: 2.0, PokemonType.POISON: 0.5, PokemonType.FLYING: 0.5,
        PokemonType.PSYCHIC: 0.5, PokemonType.BUG: 0.5, PokemonType.ROCK: 2.0, PokemonType.GHOST: 0.0,
        PokemonType.DARK: 2.0, PokemonType.STEEL: 2.0, PokemonType.FAIRY: 0.5,
    },
    PokemonType.POISON: {
        PokemonType.GRASS: 2.0, PokemonType.POISON: 0.5, PokemonType.GROUND: 0.5, PokemonType.ROCK: 0.5,
        PokemonType.GHOST: 0.5, PokemonType.STEEL: 0.0, PokemonType.FAIRY: 2.0,
    },
    PokemonType.GROUND: {
        PokemonType.FIRE: 2.0, PokemonType.ELECTRIC: 2.0, PokemonType.GRASS: 0.5, PokemonType.POISON: 2.0,
        PokemonType.FLYING: 0.0, PokemonType.BUG: 0.5, PokemonType.ROCK: 2.0, PokemonType.STEEL: 2.0,
    },
    PokemonType.FLYING: {
        PokemonType.ELECTRIC: 0.5, PokemonType.GRASS: 2.0, PokemonType.FIGHTING: 2.0, PokemonType.BUG: 2.0,
        PokemonType.ROCK: 0.5, PokemonType.STEEL: 0.5,
    },
    PokemonType.PSYCHIC: {
        PokemonType.FIGHTING: 2.0, PokemonType.POISON: 2.0, PokemonType.PSYCHIC: 0.5,
        PokemonType.DARK: 0.0, PokemonType.STEEL: 0.5,
    },
    PokemonType.BUG: {
        PokemonType.FIRE: 0.5, PokemonType.GRASS: 2.0, PokemonType.FIGHTING: 0.5, PokemonType.POISON: 0.5,
        PokemonType.FLYING: 0.5, PokemonType.PSYCHIC: 2.0, PokemonType.GHOST: 0.5, PokemonType.DARK: 2.0,
        PokemonType.STEEL: 0.5, PokemonType.FAIRY: 0.5,
    },
    PokemonType.ROCK: {
        PokemonType.FIRE: 2.0, PokemonType.ICE: 2.0, PokemonType.FIGHTING: 0.5, PokemonType.GROUND: 0.5,
        PokemonType.FLYING: 2.0, PokemonType.BUG: 2.0, PokemonType.STEEL: 0.5,
    },
    PokemonType.GHOST: {
        PokemonType.NORMAL: 0.0, PokemonType.PSYCHIC: 2.0, PokemonType.GHOST: 2.0, PokemonType.DARK: 0.5,
    },
    PokemonType.DRAGON: {PokemonType.DRAGON: 2.0, PokemonType.STEEL: 0.5, PokemonType.FAIRY: 0.0},
    PokemonType.DARK: {
        PokemonType.FIGHTING: 0.5, PokemonType.PSYCHIC: 2.0, PokemonType.GHOST: 2.0, PokemonType.DARK: 0.5,
        PokemonType.FAIRY: 0.5,
    },
    PokemonType.STEEL: {
        PokemonType.FIRE: 0.5, PokemonType.WATER: 0.5, PokemonType.ELECTRIC: 0.5, PokemonType.ICE: 2.0,
        PokemonType.ROCK: 2.0, PokemonType.STEEL: 0.5, PokemonType.FAIRY: 2.0,
    },
    PokemonType.FAIRY: {
        PokemonType.FIRE: 0.5, PokemonType.FIGHTING: 2.0, PokemonType.POISON: 0.5, PokemonType.DRAGON: 2.0,
        PokemonType.DARK: 2.0, PokemonType.STEEL: 0.5,
    },
}


class EffectivenessTable:
    """Fixed 18x18 attack/defense multiplier matrix.

    Every cell starts at 1.0 and only the listed relationships are
    overwritten, so an unlisted pair is neutral rather than missing.
    """

    def __init__(self, chart: Optional[Dict[PokemonType, Dict[PokemonType, float]]] = None) -> None:
        size = len(ALL_TYPES)
        self._matrix: List[List[float]] = [[1.0] * size for _ in range(size)]
        for attack, row in (_CHART if chart is None else chart).items():
            for defense, multiplier in row.items():
                self._matrix[attack.position][defense.position] = float(multiplier)

    def lookup(self, attack: TypeLike, defense: TypeLike) -> float:
        attack_type = PokemonType.parse(attack)
        defense_type = PokemonType.parse(defense)
        if attack_type is None or defense_type is None:
            return 1.0
        return self._matrix[attack_type.position][defense_type.position]

    def multiplier_against(self, attack: TypeLike, defender_types: Iterable[TypeLike]) -> float:
        """Damage multiplier of ``attack`` on a defender with ``defender_types``."""
        multiplier = 1.0
        for defense in defender_types:
            multiplier *= self.lookup(attack, defense)
        return multiplier

    def attacking_multiplier(self, attacker_types: Iterable[TypeLike], defense: TypeLike) -> float:
        multiplier = 1.0
        for attack in attacker_types:
            multiplier *= self.lookup(attack, defense)
        return multiplier

    def row(self, attack: TypeLike) -> Dict[str, float]:
        attack_type = PokemonType.parse(attack)
        if attack_type is None:
            return {member.value: 1.0 for member in ALL_TYPES}
        return {
            member.value: self._matrix[attack_type.position][member.position] for member in ALL_TYPES
        }


DEFAULT_TABLE = EffectivenessTable()


def sort_multipliers(values: Dict[PokemonType, float]) -> List[TypeMultiplier]:
    """Order by multiplier descending, ties kept in canonical type order."""
    ordered = sorted(values.items(), key=lambda item: item[0].position)
    ordered.sort(key=lambda item: item[1], reverse=True)
    return [TypeMultiplier(member.value, multiplier) for member, multiplier in ordered]


def get_strengths(
    attacker_types: Sequence[TypeLike], table: EffectivenessTable = DEFAULT_TABLE
) -> List[TypeMultiplier]:
    """Defending types the given attacker types hit for more than neutral damage."""

    values = {
        defense: table.attacking_multiplier(attacker_types, defense) for defense in ALL_TYPES
    }
    return sort_multipliers({key: value for key, value in values.items() if value > 1.0})


def get_weaknesses(
    defender_types: Sequence[TypeLike], table: EffectivenessTable = DEFAULT_TABLE
) -> List[TypeMultiplier]:
    """Attacking types that deal more than neutral damage to the given defender types."""

    values = {attack: table.multiplier_against(attack, defender_types) for attack in ALL_TYPES}
    return sort_multipliers({key: value for key, value in values.items() if value > 1.0})


__all__ = [
    "PokemonType",
    "ALL_TYPES",
    "EffectivenessTable",
    "DEFAULT_TABLE",
    "get_strengths",
    "get_weaknesses",
    "sort_multipliers",
]
