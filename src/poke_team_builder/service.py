"""Consumer-facing entry points wiring the cache, index, sync and scorer together."""
from __future__ import annotations

import threading
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .config import CacheSettings, load_settings
from .errors import InputValidationError, NotFoundError
from .index import SpeciesIndex
from .models import MAX_TEAM_SIZE, IndexEntry, Species, SyncProgress, TeamSummary
from .observability import get_logger
from .record_store import RecordStore
from .sync import BulkSyncPipeline, FetchById, ProgressCallback
from .synergy import score_team

LOGGER = get_logger(__name__)

MemberRef = Union[Species, int, str]


class PokedexService:
    """One cache directory and the objects that operate on it."""

    def __init__(self, settings: Optional[CacheSettings] = None) -> None:
        self.settings = settings or load_settings()
        self.store = RecordStore(self.settings.cache_dir)
        self.index = SpeciesIndex(self.store)

    def pipeline(self, fetch: FetchById) -> BulkSyncPipeline:
        return BulkSyncPipeline(
            self.store,
            fetch,
            total=self.settings.sync_limit,
            delay=self.settings.sync_delay,
            index=self.index,
        )

    # lookups

    def get_by_name(self, name: str) -> Optional[Species]:
        return self.store.get_by_name(name)

    def get_by_id(self, species_id: int) -> Optional[Species]:
        return self.store.get_by_id(species_id)

    def get(self, key: Union[int, str]) -> Optional[Species]:
        return self.store.get(key)

    def get_sprite_path(self, key: Union[int, str], shiny: bool = False) -> Optional[Path]:
        return self.store.get_sprite_path(key, shiny)

    def get_index(self) -> List[IndexEntry]:
        return self.index.get()

    def invalidate_index(self) -> None:
        self.index.invalidate()

    # favorites

    def is_favorite(self, name: str) -> bool:
        return self.store.is_favorite(name)

    def toggle_favorite(self, name: str) -> bool:
        return self.store.toggle_favorite(name)

    # sync

    def start_bulk_sync(
        self,
        fetch: FetchById,
        progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> SyncProgress:
        return self.pipeline(fetch).run(progress, cancel_event)

    def is_sync_complete(self) -> bool:
        return self.store.completion_marker.is_file()

    def reset_sync(self, *, purge: bool = False) -> None:
        BulkSyncPipeline(self.store, index=self.index).reset_download(purge=purge)

    def fetch_and_cache(self, species_id: int, fetch: FetchById) -> Species:
        """Fetch one record outside a bulk run and cache it under both keys."""

        pipeline = self.pipeline(fetch)
        self.store.ensure_layout()
        species = pipeline.store_result(fetch(species_id), expected_id=species_id)
        self.index.invalidate()
        return species

    # scoring

    def resolve_members(self, members: Sequence[MemberRef]) -> List[Species]:
        if len(members) > MAX_TEAM_SIZE:
            raise InputValidationError(
                f"A team holds at most {MAX_TEAM_SIZE} members",
                context={"members": len(members)},
            )
        resolved: List[Species] = []
        for member in members:
            if isinstance(member, Species):
                resolved.append(member)
                continue
            species = self.store.get(member)
            if species is None:
                raise NotFoundError(
                    f"'{member}' is not in the local cache",
                    remediation="Run a sync or fetch the record first.",
                    context={"member": str(member)},
                )
            resolved.append(species)
        return resolved

    def compute_team_summary(self, members: Sequence[MemberRef]) -> TeamSummary:
        return score_team(self.resolve_members(members))


__all__ = ["PokedexService", "MemberRef"]
