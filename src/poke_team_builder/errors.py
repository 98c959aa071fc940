"""Centralised error taxonomy for poke_team_builder."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Dict

__all__ = [
    "PokeTeamBuilderError",
    "DependencyError",
    "InputValidationError",
    "NotFoundError",
    "FetchError",
    "RecordNotFoundError",
    "TransientFetchError",
    "PersistenceError",
    "ParseError",
    "SetupError",
]


@dataclass
class PokeTeamBuilderError(Exception):
    """Base class for structured, actionable errors raised by the package."""

    message: str
    remediation: str | None = None
    context: Dict[str, Any] | None = None
    category: ClassVar[str] = "internal_error"
    http_status: ClassVar[int] = 500

    def __post_init__(self) -> None:  # pragma: no cover - trivial
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    def to_payload(self, *, trace_id: str | None = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "category": self.category,
            "message": self.message,
        }
        if self.remediation:
            payload["remediation"] = self.remediation
        if self.context:
            payload["context"] = dict(self.context)
        if trace_id:
            payload["trace_id"] = trace_id
        return payload


class DependencyError(PokeTeamBuilderError):
    category = "dependency_error"
    http_status = 503


class InputValidationError(PokeTeamBuilderError):
    category = "input_error"
    http_status = 400


class NotFoundError(PokeTeamBuilderError):
    category = "not_found"
    http_status = 404


class FetchError(PokeTeamBuilderError):
    """Raised by fetch collaborators when a remote record cannot be obtained."""

    category = "fetch_error"
    http_status = 502


class RecordNotFoundError(FetchError):
    category = "fetch_not_found"
    http_status = 404


class TransientFetchError(FetchError):
    category = "fetch_transient"
    http_status = 503


class PersistenceError(PokeTeamBuilderError):
    """A cache write failed; the artifact may be missing or stale."""

    category = "persistence_error"
    http_status = 500


class ParseError(PokeTeamBuilderError):
    category = "parse_error"
    http_status = 422


class SetupError(PokeTeamBuilderError):
    """The cache directory layout could not be created."""

    category = "setup_error"
    http_status = 500
