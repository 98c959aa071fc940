"""Fetch collaborators that read records from a local PokeAPI-shaped dump.

Expected layout under ``root``::

    pokemon/<id>.json            PokeAPI ``/pokemon/<id>`` payload
    pokemon-species/<id>.json    optional ``/pokemon-species/<id>`` payload
    sprites/<id>.png             optional default sprite
    sprites/<id>_shiny.png       optional shiny sprite
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

from .errors import ParseError, RecordNotFoundError, TransientFetchError
from .models import FetchResult, species_from_api_payload


class DirectoryFetcher:
    """Callable ``fetch(id) -> FetchResult`` backed by files on disk."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def _read_json(self, path: Path) -> Any:
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise
        except OSError as exc:
            raise TransientFetchError(
                f"Could not read {path.name}", context={"path": str(path), "reason": str(exc)}
            ) from exc
        except json.JSONDecodeError as exc:
            raise ParseError(f"Invalid JSON in {path.name}", context={"path": str(path)}) from exc

    def _read_optional_bytes(self, path: Path) -> Optional[bytes]:
        if not path.is_file():
            return None
        try:
            return path.read_bytes()
        except OSError as exc:
            raise TransientFetchError(
                f"Could not read {path.name}", context={"path": str(path), "reason": str(exc)}
            ) from exc

    def __call__(self, species_id: int) -> FetchResult:
        pokemon_path = self.root / "pokemon" / f"{species_id}.json"
        try:
            pokemon = self._read_json(pokemon_path)
        except FileNotFoundError as exc:
            raise RecordNotFoundError(
                f"No record for id {species_id}", context={"path": str(pokemon_path)}
            ) from exc

        species_path = self.root / "pokemon-species" / f"{species_id}.json"
        species_payload = self._read_json(species_path) if species_path.is_file() else None

        species = species_from_api_payload(pokemon, species_payload)
        sprites_dir = self.root / "sprites"
        return FetchResult(
            species=species,
            sprite=self._read_optional_bytes(sprites_dir / f"{species_id}.png"),
            shiny_sprite=self._read_optional_bytes(sprites_dir / f"{species_id}_shiny.png"),
        )


__all__ = ["DirectoryFetcher"]
