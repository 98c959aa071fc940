"""Lazily built, persisted index over every cached species record."""
from __future__ import annotations

import json
import threading
from typing import Dict, Iterable, List, Optional

from .errors import ParseError, PersistenceError
from .models import IndexEntry, Species, normalize_name
from .observability import get_logger, metrics
from .record_store import RecordStore

LOGGER = get_logger(__name__)


def _dedupe_sorted(entries: Iterable[IndexEntry]) -> List[IndexEntry]:
    unique: Dict[int, IndexEntry] = {}
    for entry in entries:
        if entry.id <= 0:
            continue
        unique.setdefault(entry.id, entry)
    return sorted(unique.values(), key=lambda entry: entry.id)


class SpeciesIndex:
    """Owns the in-memory index and the lock guarding its first build.

    The index is either loaded whole from ``index.json`` or rebuilt whole
    from the record files; it is never patched in place.
    """

    def __init__(self, store: RecordStore) -> None:
        self.store = store
        self._entries: Optional[List[IndexEntry]] = None
        self._lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._entries is not None

    def get(self) -> List[IndexEntry]:
        entries = self._entries
        if entries is not None:
            return list(entries)
        with self._lock:
            if self._entries is None:
                loaded = self._load_persisted()
                self._entries = loaded if loaded else self._build()
                metrics.set_gauge("poke_team_builder_index_entries", float(len(self._entries)))
            return list(self._entries)

    def invalidate(self) -> None:
        with self._lock:
            self._entries = None
            try:
                self.store.index_file.unlink(missing_ok=True)
            except OSError as exc:
                LOGGER.error(
                    "index_delete_failed",
                    extra={"event": "index_delete_failed", "path": str(self.store.index_file)},
                )
                raise PersistenceError(
                    "Failed to delete the persisted index",
                    context={"path": str(self.store.index_file), "reason": str(exc)},
                ) from exc
        LOGGER.info("index_invalidated", extra={"event": "index_invalidated"})

    def _load_persisted(self) -> List[IndexEntry]:
        path = self.store.index_file
        if not path.is_file():
            return []
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(raw, list):
                raise ParseError("Index file must hold a list")
            entries = [IndexEntry.from_dict(item) for item in raw]
        except (OSError, json.JSONDecodeError, ParseError):
            LOGGER.warning(
                "index_load_failed",
                extra={"event": "index_load_failed", "path": str(path)},
            )
            return []
        return _dedupe_sorted(entries)

    def _build(self) -> List[IndexEntry]:
        projected: List[IndexEntry] = []
        skipped = 0
        for path in self.store.iter_record_files():
            try:
                species = Species.from_dict(json.loads(path.read_text(encoding="utf-8")))
            except (OSError, json.JSONDecodeError, ParseError):
                skipped += 1
                continue
            if species.id <= 0:
                skipped += 1
                continue
            projected.append(IndexEntry.from_species(species))
        entries = _dedupe_sorted(projected)
        metrics.increment("poke_team_builder_index_builds_total")
        LOGGER.info(
            "index_built",
            extra={"event": "index_built", "entries": len(entries), "skipped": skipped},
        )
        self._persist(entries)
        return entries

    def _persist(self, entries: List[IndexEntry]) -> None:
        if not entries:
            return
        payload = json.dumps([entry.to_dict() for entry in entries]).encode("utf-8")
        try:
            self.store.write_atomic(self.store.index_file, payload)
        except PersistenceError:
            # The in-memory copy is still served; the next process rebuilds.
            LOGGER.exception(
                "index_persist_failed",
                extra={"event": "index_persist_failed", "path": str(self.store.index_file)},
            )

    def search(self, prefix: str, *, limit: int = 8, exclude: Iterable[str] = ()) -> List[IndexEntry]:
        """Entries whose name starts with ``prefix``, for type-ahead suggestions."""
        query = normalize_name(prefix)
        if not query:
            return []
        skip = {normalize_name(name) for name in exclude}
        matches = [
            entry
            for entry in self.get()
            if entry.name.startswith(query) and entry.name not in skip
        ]
        return matches[:limit]

    def filter(
        self,
        *,
        generation: Optional[int] = None,
        type_name: Optional[str] = None,
        legendary: Optional[bool] = None,
        mythical: Optional[bool] = None,
    ) -> List[IndexEntry]:
        wanted_type = normalize_name(type_name) if type_name else None
        results = []
        for entry in self.get():
            if generation is not None and entry.generation != generation:
                continue
            if wanted_type is not None and wanted_type not in entry.types:
                continue
            if legendary is not None and entry.is_legendary != legendary:
                continue
            if mythical is not None and entry.is_mythical != mythical:
                continue
            results.append(entry)
        return results


__all__ = ["SpeciesIndex"]
