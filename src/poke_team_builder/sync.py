"""Resumable, sequential bulk download of species records into the cache."""
from __future__ import annotations

import threading
import time
from datetime import datetime, timezone
from typing import Callable, Optional, Union

from .config import DEFAULT_SYNC_DELAY, DEFAULT_SYNC_LIMIT
from .errors import FetchError, PersistenceError, SetupError
from .index import SpeciesIndex
from .models import FetchResult, Species, SyncProgress
from .observability import get_logger, metrics
from .record_store import RecordStore

LOGGER = get_logger(__name__)

FetchById = Callable[[int], Union[FetchResult, Species]]
ProgressCallback = Callable[[SyncProgress], None]


class BulkSyncPipeline:
    """Walk ids ``1..total`` in order, fetching and caching whatever is missing.

    An id counts as cached only when both its record and its sprite exist,
    so a run interrupted between the two writes refetches that id next time.
    Per-id failures are counted and skipped; the run always reaches the end
    and writes the completion marker unless it is cancelled.
    """

    def __init__(
        self,
        store: RecordStore,
        fetch: Optional[FetchById] = None,
        *,
        total: int = DEFAULT_SYNC_LIMIT,
        delay: float = DEFAULT_SYNC_DELAY,
        sleep: Callable[[float], None] = time.sleep,
        index: Optional[SpeciesIndex] = None,
    ) -> None:
        if total <= 0:
            raise ValueError("total must be a positive integer")
        self.store = store
        self.fetch = fetch
        self.total = total
        self.delay = delay
        self._sleep = sleep
        self.index = index

    def is_download_complete(self) -> bool:
        return self.store.completion_marker.is_file()

    def reset_download(self, *, purge: bool = False) -> None:
        """Forget that a full pass ran; with ``purge`` also drop every cached artifact."""
        try:
            self.store.completion_marker.unlink(missing_ok=True)
        except OSError as exc:
            raise PersistenceError(
                "Failed to delete the completion marker",
                context={"path": str(self.store.completion_marker), "reason": str(exc)},
            ) from exc
        removed = self.store.purge() if purge else 0
        if purge and self.index is not None:
            self.index.invalidate()
        LOGGER.info(
            "sync_reset",
            extra={"event": "sync_reset", "purged": purge, "files_removed": removed},
        )

    def store_result(
        self, result: Union[FetchResult, Species], expected_id: Optional[int] = None
    ) -> Species:
        """Validate and persist one fetched record and its sprites.

        With ``expected_id``, a record carrying any other id is rejected.
        """
        if isinstance(result, Species):
            result = FetchResult(species=result)
        species = result.species
        if not species.is_valid:
            raise FetchError(
                "Fetched record has no usable id or name",
                context={"id": species.id, "name": species.name},
            )
        if expected_id is not None and species.id != expected_id:
            raise FetchError(
                f"Requested id {expected_id} but received id {species.id}",
                context={"requested_id": expected_id, "id": species.id, "name": species.name},
            )
        self.store.put(species)
        if result.sprite:
            self.store.put_sprite(species, result.sprite)
        if result.shiny_sprite:
            self.store.put_sprite(species, result.shiny_sprite, shiny=True)
        return species

    def _write_marker(self) -> None:
        stamp = datetime.now(timezone.utc).isoformat()
        try:
            self.store.completion_marker.write_text(stamp, encoding="utf-8")
        except OSError as exc:
            LOGGER.error(
                "sync_marker_failed",
                extra={"event": "sync_marker_failed", "path": str(self.store.completion_marker)},
            )
            raise PersistenceError(
                "Failed to write the completion marker",
                context={"path": str(self.store.completion_marker), "reason": str(exc)},
            ) from exc

    def run(
        self,
        progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> SyncProgress:
        """Run one full pass and return the final progress event."""

        if self.fetch is None:
            raise ValueError("A fetch function is required to run a sync")
        self.store.ensure_layout()
        started = time.perf_counter()
        downloaded = 0
        failed = 0
        fetched = 0
        LOGGER.info("sync_started", extra={"event": "sync_started", "total": self.total})

        for species_id in range(1, self.total + 1):
            if cancel_event is not None and cancel_event.is_set():
                LOGGER.warning(
                    "sync_cancelled",
                    extra={"event": "sync_cancelled", "next_id": species_id, "downloaded": downloaded},
                )
                if fetched and self.index is not None:
                    self.index.invalidate()
                return SyncProgress(
                    current=downloaded,
                    total=self.total,
                    current_id=species_id,
                    failed=failed,
                    elapsed_seconds=time.perf_counter() - started,
                )

            if progress is not None:
                progress(
                    SyncProgress(
                        current=downloaded, total=self.total, current_id=species_id, failed=failed
                    )
                )

            if self.store.has_both(species_id):
                downloaded += 1
                metrics.increment("poke_team_builder_sync_skipped_total")
                continue

            try:
                self.store_result(self.fetch(species_id), expected_id=species_id)
            except SetupError:
                raise
            except (FetchError, PersistenceError) as exc:
                failed += 1
                metrics.increment("poke_team_builder_sync_failures_total")
                LOGGER.warning(
                    "sync_item_failed",
                    extra={"event": "sync_item_failed", "species_id": species_id, "error": exc.to_payload()},
                )
            except Exception:
                failed += 1
                metrics.increment("poke_team_builder_sync_failures_total")
                LOGGER.exception(
                    "sync_item_failed",
                    extra={"event": "sync_item_failed", "species_id": species_id},
                )
            else:
                downloaded += 1
                fetched += 1
                metrics.increment("poke_team_builder_sync_fetched_total")

            if self.delay > 0:
                self._sleep(self.delay)

        self._write_marker()
        if fetched and self.index is not None:
            self.index.invalidate()

        elapsed = time.perf_counter() - started
        metrics.observe("poke_team_builder_sync_duration_seconds", elapsed)
        final = SyncProgress(
            current=downloaded,
            total=self.total,
            current_id=self.total,
            failed=failed,
            is_complete=True,
            elapsed_seconds=elapsed,
        )
        LOGGER.info(
            "sync_completed",
            extra={
                "event": "sync_completed",
                "downloaded": downloaded,
                "fetched": fetched,
                "failed": failed,
                "elapsed_seconds": round(elapsed, 3),
            },
        )
        if progress is not None:
            progress(final)
        return final


__all__ = ["BulkSyncPipeline", "FetchById", "ProgressCallback"]
