"""Record, index, team and sync data structures."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import ParseError

STAT_NAMES = ("hp", "attack", "defense", "special-attack", "special-defense", "speed")
MAX_TEAM_SIZE = 6

# Stems the cache keeps for its own files.
RESERVED_NAMES = frozenset({"index", "favorites"})
_NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_.-]*$")


def normalize_name(name: str) -> str:
    """Return the case-insensitive key used for names on disk and in lookups."""
    return name.strip().lower()


def is_storable_name(name: str) -> bool:
    """True when ``name`` can key a cache file without clashing or escaping the cache."""
    key = normalize_name(name)
    if not _NAME_PATTERN.match(key) or ".." in key:
        return False
    return not key.isdigit() and key not in RESERVED_NAMES


def display_name(name: str) -> str:
    if not name:
        return "N/A"
    return name[0].upper() + name[1:]


@dataclass(frozen=True)
class BaseStat:
    """One named base stat."""
    name: str
    value: int


@dataclass(frozen=True)
class Species:
    """A creature's full record as held by the cache.

    ``types`` keeps the slot order of the source and holds one or two
    lowercase type names.
    """

    id: int
    name: str
    height: int = 0
    weight: int = 0
    generation: int = 0
    is_legendary: bool = False
    is_mythical: bool = False
    types: Tuple[str, ...] = ()
    stats: Tuple[BaseStat, ...] = ()
    sprite_url: Optional[str] = None
    shiny_sprite_url: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", normalize_name(self.name))
        object.__setattr__(self, "types", tuple(normalize_name(kind) for kind in self.types))

    @property
    def total_base_stats(self) -> int:
        return sum(stat.value for stat in self.stats)

    def stat_map(self) -> Dict[str, int]:
        return {stat.name: stat.value for stat in self.stats}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "height": self.height,
            "weight": self.weight,
            "generation": self.generation,
            "is_legendary": self.is_legendary,
            "is_mythical": self.is_mythical,
            "types": list(self.types),
            "stats": [{"name": stat.name, "value": stat.value} for stat in self.stats],
            "total_base_stats": self.total_base_stats,
            "sprite_url": self.sprite_url,
            "shiny_sprite_url": self.shiny_sprite_url,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Species":
        if not isinstance(data, Mapping):
            raise ParseError("Species record must be a JSON object")
        try:
            species_id = int(data["id"])
            name = str(data["name"])
            raw_types = data.get("types") or []
            raw_stats = data.get("stats") or []
            if not isinstance(raw_types, list) or not isinstance(raw_stats, list):
                raise TypeError("types and stats must be lists")
            stats = tuple(
                BaseStat(name=str(entry["name"]), value=int(entry["value"])) for entry in raw_stats
            )
            types = tuple(normalize_name(str(value)) for value in raw_types)
            return cls(
                id=species_id,
                name=normalize_name(name),
                height=int(data.get("height") or 0),
                weight=int(data.get("weight") or 0),
                generation=int(data.get("generation") or 0),
                is_legendary=bool(data.get("is_legendary", False)),
                is_mythical=bool(data.get("is_mythical", False)),
                types=types,
                stats=stats,
                sprite_url=data.get("sprite_url"),
                shiny_sprite_url=data.get("shiny_sprite_url"),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ParseError(
                "Malformed species record",
                context={"reason": str(exc)},
            ) from exc

    @property
    def is_valid(self) -> bool:
        return self.id > 0 and is_storable_name(self.name)


def _generation_from_url(url: Optional[str]) -> int:
    if not url:
        return 0
    tail = url.rstrip("/").rsplit("/", 1)[-1]
    try:
        return int(tail)
    except ValueError:
        return 0


def species_from_api_payload(
    pokemon: Mapping[str, Any], species: Optional[Mapping[str, Any]] = None
) -> Species:
    """Build a :class:`Species` from PokeAPI ``pokemon`` and ``pokemon-species`` JSON."""

    try:
        raw_types = sorted(pokemon.get("types") or [], key=lambda entry: entry.get("slot", 0))
        types = tuple(normalize_name(entry["type"]["name"]) for entry in raw_types)
        stats = tuple(
            BaseStat(name=entry["stat"]["name"], value=int(entry["base_stat"]))
            for entry in pokemon.get("stats") or []
        )
        sprites = pokemon.get("sprites") or {}
        species = species or {}
        generation = species.get("generation") or {}
        return Species(
            id=int(pokemon["id"]),
            name=normalize_name(str(pokemon["name"])),
            height=int(pokemon.get("height") or 0),
            weight=int(pokemon.get("weight") or 0),
            generation=_generation_from_url(generation.get("url")),
            is_legendary=bool(species.get("is_legendary", False)),
            is_mythical=bool(species.get("is_mythical", False)),
            types=types,
            stats=stats,
            sprite_url=sprites.get("front_default"),
            shiny_sprite_url=sprites.get("front_shiny"),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ParseError(
            "Malformed PokeAPI payload",
            context={"reason": str(exc)},
        ) from exc


@dataclass(frozen=True)
class IndexEntry:
    """Denormalized projection of a :class:`Species` used for filtering.

    ``stats`` is a read-only view so entries handed out by the index can be
    shared without copying.
    """

    id: int
    name: str
    generation: int
    is_legendary: bool
    is_mythical: bool
    types: Tuple[str, ...]
    stats: Mapping[str, int] = field(default_factory=dict, hash=False, compare=True)

    def __post_init__(self) -> None:
        object.__setattr__(self, "types", tuple(self.types))
        object.__setattr__(self, "stats", MappingProxyType(dict(self.stats)))

    @property
    def total_base_stats(self) -> int:
        return sum(self.stats.values())

    @classmethod
    def from_species(cls, species: Species) -> "IndexEntry":
        return cls(
            id=species.id,
            name=species.name,
            generation=species.generation,
            is_legendary=species.is_legendary,
            is_mythical=species.is_mythical,
            types=tuple(species.types),
            stats=species.stat_map(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "generation": self.generation,
            "is_legendary": self.is_legendary,
            "is_mythical": self.is_mythical,
            "types": list(self.types),
            "stats": dict(self.stats),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "IndexEntry":
        if not isinstance(data, Mapping):
            raise ParseError("Index entry must be a JSON object")
        try:
            return cls(
                id=int(data["id"]),
                name=normalize_name(str(data["name"])),
                generation=int(data.get("generation") or 0),
                is_legendary=bool(data.get("is_legendary", False)),
                is_mythical=bool(data.get("is_mythical", False)),
                types=tuple(str(value) for value in data.get("types") or []),
                stats={str(key): int(value) for key, value in (data.get("stats") or {}).items()},
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise ParseError("Malformed index entry", context={"reason": str(exc)}) from exc


@dataclass
class TeamMember:
    name: str
    sprite: Optional[str] = None
    types: List[str] = field(default_factory=list)
    level: int = 50

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "sprite": self.sprite, "types": list(self.types), "level": self.level}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TeamMember":
        if not data.get("name"):
            raise ValueError("Team members must include a name")
        return cls(
            name=normalize_name(str(data["name"])),
            sprite=data.get("sprite"),
            types=[str(value) for value in data.get("types") or []],
            level=int(data.get("level", 50)),
        )

    @classmethod
    def from_species(cls, species: Species, *, sprite: Optional[str] = None, level: int = 50) -> "TeamMember":
        return cls(name=species.name, sprite=sprite, types=list(species.types), level=level)


@dataclass(frozen=True)
class TypeMultiplier:
    """A type paired with the multiplier computed against it."""

    type: str
    multiplier: float

    @property
    def label(self) -> str:
        return f"{display_name(self.type)} ({self.multiplier:g}x)"


@dataclass(frozen=True)
class ScoreBreakdown:
    offensive: int = 0
    defensive: int = 0
    base_stats: int = 0
    weakness_penalty: int = 0


@dataclass
class TeamSummary:
    """Score and strength/weakness labels for a team. Always computed fresh."""

    total_score: int = 0
    strengths: List[str] = field(default_factory=list)
    weaknesses: List[str] = field(default_factory=list)
    breakdown: ScoreBreakdown = field(default_factory=ScoreBreakdown)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_score": self.total_score,
            "strengths": list(self.strengths),
            "weaknesses": list(self.weaknesses),
            "breakdown": {
                "offensive": self.breakdown.offensive,
                "defensive": self.breakdown.defensive,
                "base_stats": self.breakdown.base_stats,
                "weakness_penalty": self.breakdown.weakness_penalty,
            },
        }


@dataclass(frozen=True)
class SyncProgress:
    """Progress event emitted by the bulk sync."""

    current: int
    total: int
    current_id: int = 0
    failed: int = 0
    is_complete: bool = False
    elapsed_seconds: float = 0.0

    @property
    def percentage(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.current / self.total * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current": self.current,
            "total": self.total,
            "current_id": self.current_id,
            "failed": self.failed,
            "is_complete": self.is_complete,
            "percentage": self.percentage,
            "elapsed_seconds": self.elapsed_seconds,
        }


@dataclass(frozen=True)
class FetchResult:
    """What a fetch collaborator returns for one id: the record and its sprite blobs."""

    species: Species
    sprite: Optional[bytes] = None
    shiny_sprite: Optional[bytes] = None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_stats(values: Sequence[int]) -> Tuple[BaseStat, ...]:
    """Pair six values with the canonical stat names."""
    if len(values) != len(STAT_NAMES):
        raise ValueError(f"Expected {len(STAT_NAMES)} stat values, got {len(values)}")
    return tuple(BaseStat(name, int(value)) for name, value in zip(STAT_NAMES, values))
