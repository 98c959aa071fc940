"""Tools for building and managing teams of up to six Pokémon."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, MutableMapping, Optional

from .errors import InputValidationError, NotFoundError, PersistenceError
from .models import MAX_TEAM_SIZE, TeamMember, TeamSummary, normalize_name, utc_now
from .record_store import RecordStore
from .synergy import score_team


def read_roster_data(path: Path | str) -> Dict[str, Any]:
    """Read the team roster data from ``path``.

    Missing files return an empty mapping. JSON parsing errors will be raised to
    signal corrupted data to the caller.
    """

    roster_path = Path(path)
    if not roster_path.exists():
        return {}
    text = roster_path.read_text(encoding="utf-8").strip()
    if not text:
        return {}
    data = json.loads(text)
    if not isinstance(data, MutableMapping):
        raise ValueError("Roster data must be a mapping of team names to teams")
    return dict(data)


def write_roster_data(data: Mapping[str, Any], path: Path | str) -> None:
    """Write the roster mapping to disk."""

    roster_path = Path(path)
    try:
        roster_path.parent.mkdir(parents=True, exist_ok=True)
        roster_path.write_text(json.dumps(dict(data), indent=2, sort_keys=True), encoding="utf-8")
    except OSError as exc:
        raise PersistenceError(
            "Failed to save teams", context={"path": str(roster_path), "reason": str(exc)}
        ) from exc


@dataclass
class Team:
    """A named, ordered collection of at most six members."""

    id: int
    name: str
    members: List[TeamMember] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)

    def add_member(self, member: TeamMember) -> TeamMember:
        if len(self.members) >= MAX_TEAM_SIZE:
            raise InputValidationError(
                f"Team '{self.name}' already has {MAX_TEAM_SIZE} members",
                remediation="Remove a member before adding another.",
                context={"team_name": self.name},
            )
        self.members.append(member)
        return member

    def remove_member(self, name: str) -> TeamMember:
        key = normalize_name(name)
        for position, member in enumerate(self.members):
            if member.name == key:
                return self.members.pop(position)
        raise NotFoundError(
            f"'{name}' is not on team '{self.name}'",
            context={"team_name": self.name, "member": key},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "members": [member.to_dict() for member in self.members],
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, name: Optional[str] = None) -> "Team":
        team_name = name or data.get("name")
        if not team_name:
            raise ValueError("Team name is required")
        members = [TeamMember.from_dict(member) for member in data.get("members", [])]
        if len(members) > MAX_TEAM_SIZE:
            raise ValueError(f"Team '{team_name}' has more than {MAX_TEAM_SIZE} members")
        created = data.get("created_at")
        return cls(
            id=int(data.get("id", 0)),
            name=team_name,
            members=members,
            created_at=datetime.fromisoformat(created) if created else utc_now(),
        )


class Roster:
    """Collection of named teams backed by a JSON data file."""

    def __init__(self, teams: Optional[Mapping[str, Team]] = None, *, storage_path: Path | str):
        self._teams: Dict[str, Team] = {name: team for name, team in (teams or {}).items()}
        self._path = Path(storage_path)

    @classmethod
    def load(cls, path: Path | str) -> "Roster":
        raw = read_roster_data(path)
        teams = {name: Team.from_dict(data, name=name) for name, data in raw.items()}
        return cls(teams, storage_path=path)

    def save(self) -> None:
        write_roster_data({name: team.to_dict() for name, team in self._teams.items()}, self._path)

    def _next_id(self) -> int:
        return max((team.id for team in self._teams.values()), default=0) + 1

    def create_team(self, name: str) -> Team:
        if not name or not name.strip():
            raise InputValidationError("Team name cannot be empty")
        if name in self._teams:
            raise InputValidationError(f"Team '{name}' already exists", context={"team_name": name})
        team = Team(id=self._next_id(), name=name)
        self._teams[name] = team
        self.save()
        return team

    def delete_team(self, name: str) -> None:
        self.get_team(name)
        del self._teams[name]
        self.save()

    def get_team(self, name: str) -> Team:
        try:
            return self._teams[name]
        except KeyError as exc:
            raise NotFoundError(
                f"Team '{name}' does not exist", context={"team_name": name}
            ) from exc

    def team_names(self) -> List[str]:
        return sorted(self._teams)

    def add_member(self, team_name: str, store: RecordStore, species_name: str, *, level: int = 50) -> TeamMember:
        """Add a cached species to a team, copying its types and sprite path."""

        team = self.get_team(team_name)
        species = store.get_by_name(species_name)
        if species is None:
            raise NotFoundError(
                f"'{species_name}' is not in the local cache",
                remediation="Run a sync or fetch the record before adding it to a team.",
                context={"species_name": species_name},
            )
        sprite = store.get_sprite_path(species.name)
        member = TeamMember.from_species(species, sprite=str(sprite) if sprite else None, level=level)
        team.add_member(member)
        self.save()
        return member

    def remove_member(self, team_name: str, species_name: str) -> TeamMember:
        member = self.get_team(team_name).remove_member(species_name)
        self.save()
        return member

    def summary(self, team_name: str, store: RecordStore) -> TeamSummary:
        """Score a saved team using the full cached records of its members."""

        team = self.get_team(team_name)
        records = []
        for member in team.members:
            species = store.get_by_name(member.name)
            if species is None:
                raise NotFoundError(
                    f"'{member.name}' is not in the local cache",
                    context={"team_name": team_name, "species_name": member.name},
                )
            records.append(species)
        return score_team(records)

    def to_dict(self) -> Dict[str, Any]:
        return {name: team.to_dict() for name, team in self._teams.items()}


__all__ = ["Team", "Roster", "read_roster_data", "write_roster_data"]
