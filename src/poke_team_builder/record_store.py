"""Durable dual-keyed storage for species records, sprites and favorites.

Each record is written twice, as ``<id>.json`` and ``<name>.json``, and each
sprite as ``sprites/<id>.png`` and ``sprites/<name>.png`` (plus ``_shiny``
variants). Either key resolves to equivalent content on its own. Names must
be plain slugs that are neither all digits nor a reserved stem such as
``index``, so a name key can never shadow an id key or a bookkeeping file.

Read paths never raise: a missing or unreadable artifact comes back as
``None`` from the ``get_*`` helpers, and the ``lookup_*`` helpers report
which of the two happened. Write paths log and raise :class:`PersistenceError`.
"""
from __future__ import annotations

import contextlib
import json
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator, Optional, Set, Union

from .errors import InputValidationError, ParseError, PersistenceError, SetupError
from .models import Species, is_storable_name, normalize_name
from .observability import get_logger

LOGGER = get_logger(__name__)

SPRITES_DIRNAME = "sprites"
FAVORITES_FILENAME = "favorites.json"
INDEX_FILENAME = "index.json"
COMPLETION_MARKER_FILENAME = "download_complete.txt"

_RESERVED_FILES = {FAVORITES_FILENAME, INDEX_FILENAME}

Key = Union[int, str]


class LookupStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    IO_FAILURE = "io_failure"
    PARSE_ERROR = "parse_error"


@dataclass(frozen=True)
class Lookup:
    """Outcome of a record read, telling "absent" apart from "broken"."""

    status: LookupStatus
    record: Optional[Species] = None
    error: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.status is LookupStatus.FOUND


def _key_text(key: Key) -> str:
    if isinstance(key, int):
        return str(key)
    return normalize_name(key)


class RecordStore:
    """Filesystem-backed cache rooted at ``cache_dir``."""

    def __init__(self, cache_dir: Path | str) -> None:
        self.cache_dir = Path(cache_dir)
        self.sprites_dir = self.cache_dir / SPRITES_DIRNAME
        self.favorites_file = self.cache_dir / FAVORITES_FILENAME
        self.index_file = self.cache_dir / INDEX_FILENAME
        self.completion_marker = self.cache_dir / COMPLETION_MARKER_FILENAME

    def ensure_layout(self) -> None:
        try:
            self.sprites_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            LOGGER.error(
                "cache_setup_failed",
                extra={"event": "cache_setup_failed", "cache_dir": str(self.cache_dir)},
            )
            raise SetupError(
                f"Cannot create cache directory {self.cache_dir}",
                remediation="Check permissions or point POKE_TEAM_BUILDER_CACHE_DIR elsewhere.",
                context={"reason": str(exc)},
            ) from exc

    # paths

    def record_path(self, key: Key) -> Path:
        return self.cache_dir / f"{_key_text(key)}.json"

    def sprite_file(self, key: Key, shiny: bool = False) -> Path:
        suffix = "_shiny" if shiny else ""
        return self.sprites_dir / f"{_key_text(key)}{suffix}.png"

    # writes

    def write_atomic(self, path: Path, data: bytes) -> None:
        """Write ``data`` through a temp file so readers never see a partial artifact."""
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(data)
            os.replace(tmp_path, path)
        except OSError as exc:
            LOGGER.error(
                "cache_write_failed",
                extra={"event": "cache_write_failed", "path": str(path), "reason": str(exc)},
            )
            with contextlib.suppress(OSError):
                tmp_path.unlink()
            raise PersistenceError(
                f"Failed to write {path.name}",
                remediation="Check free disk space and cache directory permissions.",
                context={"path": str(path), "reason": str(exc)},
            ) from exc

    def put(self, species: Species) -> None:
        """Persist ``species`` under both its id and its name."""

        if not species.is_valid:
            raise ParseError(
                "Refusing to cache a record without a positive id and a plain, unreserved name",
                context={"id": species.id, "name": species.name},
            )
        payload = json.dumps(species.to_dict(), indent=2).encode("utf-8")
        self.write_atomic(self.record_path(species.id), payload)
        self.write_atomic(self.record_path(species.name), payload)
        LOGGER.debug(
            "record_cached",
            extra={"event": "record_cached", "species_id": species.id, "species_name": species.name},
        )

    def put_sprite(self, species: Species, data: bytes, *, shiny: bool = False) -> None:
        if not species.is_valid:
            raise ParseError(
                "Refusing to cache a sprite for an invalid record",
                context={"id": species.id, "name": species.name},
            )
        self.write_atomic(self.sprite_file(species.id, shiny), data)
        self.write_atomic(self.sprite_file(species.name, shiny), data)

    # reads

    def _lookup(self, path: Path) -> Lookup:
        if not path.is_file():
            return Lookup(LookupStatus.NOT_FOUND)
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as exc:
            LOGGER.warning(
                "cache_read_failed",
                extra={"event": "cache_read_failed", "path": str(path), "reason": str(exc)},
            )
            return Lookup(LookupStatus.IO_FAILURE, error=str(exc))
        try:
            record = Species.from_dict(json.loads(raw))
        except (json.JSONDecodeError, ParseError) as exc:
            LOGGER.warning(
                "cache_parse_failed",
                extra={"event": "cache_parse_failed", "path": str(path)},
            )
            return Lookup(LookupStatus.PARSE_ERROR, error=str(exc))
        return Lookup(LookupStatus.FOUND, record=record)

    def lookup_by_name(self, name: str) -> Lookup:
        if not name or not is_storable_name(name):
            return Lookup(LookupStatus.NOT_FOUND)
        return self._lookup(self.record_path(name))

    def lookup_by_id(self, species_id: int) -> Lookup:
        if species_id <= 0:
            return Lookup(LookupStatus.NOT_FOUND)
        return self._lookup(self.record_path(species_id))

    def get_by_name(self, name: str) -> Optional[Species]:
        return self.lookup_by_name(name).record

    def get_by_id(self, species_id: int) -> Optional[Species]:
        return self.lookup_by_id(species_id).record

    def get(self, key: Key) -> Optional[Species]:
        """Resolve a numeric id, a digit string or a name."""
        if isinstance(key, int):
            return self.get_by_id(key)
        text = key.strip()
        if text.isdigit():
            return self.get_by_id(int(text))
        return self.get_by_name(text)

    def has_both(self, species_id: int) -> bool:
        """True when both the record and the sprite for ``species_id`` exist."""
        return self.record_path(species_id).is_file() and self.sprite_file(species_id).is_file()

    def get_sprite_path(self, key: Key, shiny: bool = False) -> Optional[Path]:
        if isinstance(key, str) and not key.strip().isdigit() and not is_storable_name(key):
            return None
        path = self.sprite_file(key, shiny)
        return path if path.is_file() else None

    def iter_record_files(self) -> Iterator[Path]:
        """Yield record artifacts in name order, skipping favorites and the index."""
        if not self.cache_dir.is_dir():
            return
        for path in sorted(self.cache_dir.glob("*.json")):
            if path.name not in _RESERVED_FILES:
                yield path

    # removal

    def remove(self, name: str) -> None:
        """Delete the record stored under ``name`` and its sprites.

        When the record is readable the id-keyed artifacts go too.
        """

        key = normalize_name(name)
        if not is_storable_name(key):
            raise InputValidationError(f"'{name}' is not a cached record name", context={"name": name})
        record = self.get_by_name(key)
        paths = [self.record_path(key), self.sprite_file(key), self.sprite_file(key, shiny=True)]
        if record is not None:
            paths += [
                self.record_path(record.id),
                self.sprite_file(record.id),
                self.sprite_file(record.id, shiny=True),
            ]
        for path in paths:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                LOGGER.error(
                    "cache_delete_failed",
                    extra={"event": "cache_delete_failed", "path": str(path), "reason": str(exc)},
                )
                raise PersistenceError(
                    f"Failed to delete {path.name}", context={"path": str(path)}
                ) from exc

    def purge(self) -> int:
        """Delete every record and sprite artifact. Returns the number of files removed."""
        removed = 0
        targets = list(self.iter_record_files())
        if self.sprites_dir.is_dir():
            targets += sorted(self.sprites_dir.glob("*.png"))
        for path in targets:
            try:
                path.unlink()
                removed += 1
            except FileNotFoundError:
                continue
            except OSError as exc:
                raise PersistenceError(
                    f"Failed to delete {path.name}", context={"path": str(path)}
                ) from exc
        return removed

    # favorites

    def list_favorites(self) -> Set[str]:
        if not self.favorites_file.is_file():
            return set()
        try:
            data = json.loads(self.favorites_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            LOGGER.warning(
                "favorites_read_failed",
                extra={"event": "favorites_read_failed", "path": str(self.favorites_file)},
            )
            return set()
        if not isinstance(data, list):
            return set()
        return {normalize_name(str(name)) for name in data if str(name).strip()}

    def save_favorites(self, names: Iterable[str]) -> None:
        cleaned = sorted({normalize_name(name) for name in names if name and name.strip()})
        self.write_atomic(self.favorites_file, json.dumps(cleaned, indent=2).encode("utf-8"))

    def is_favorite(self, name: str) -> bool:
        return normalize_name(name) in self.list_favorites()

    def toggle_favorite(self, name: str) -> bool:
        """Flip ``name`` in the favorites set and return whether it is now a favorite."""
        key = normalize_name(name)
        favorites = self.list_favorites()
        if key in favorites:
            favorites.discard(key)
            now_favorite = False
        else:
            favorites.add(key)
            now_favorite = True
        self.save_favorites(favorites)
        return now_favorite


__all__ = [
    "RecordStore",
    "Lookup",
    "LookupStatus",
    "SPRITES_DIRNAME",
    "FAVORITES_FILENAME",
    "INDEX_FILENAME",
    "COMPLETION_MARKER_FILENAME",
]
