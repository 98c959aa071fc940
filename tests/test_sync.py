"""Bulk sync: resume, partial failure, cancellation and reset."""

from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest

from poke_team_builder.errors import RecordNotFoundError, SetupError, TransientFetchError
from poke_team_builder.fetchers import DirectoryFetcher
from poke_team_builder.index import SpeciesIndex
from poke_team_builder.models import FetchResult
from poke_team_builder.record_store import RecordStore
from poke_team_builder.sync import BulkSyncPipeline

from conftest import PNG_BYTES, make_result, make_species


class RecordingFetcher:
    def __init__(self, failing=()):
        self.calls = []
        self.failing = set(failing)

    def __call__(self, species_id):
        self.calls.append(species_id)
        if species_id in self.failing:
            raise TransientFetchError(f"boom {species_id}")
        return make_result(species_id)


def _pipeline(store, fetch, total, **kwargs):
    return BulkSyncPipeline(store, fetch, total=total, delay=0, **kwargs)


def test_full_run_caches_every_id_under_both_keys(store):
    fetch = RecordingFetcher()
    events = []
    final = _pipeline(store, fetch, 5).run(events.append)

    assert fetch.calls == [1, 2, 3, 4, 5]
    assert final.is_complete and final.current == 5 and final.failed == 0
    assert final.percentage == 100.0
    for species_id in range(1, 6):
        assert store.has_both(species_id)
        assert store.get_by_name(f"mon{species_id}").id == species_id
        assert store.get_sprite_path(f"mon{species_id}") is not None

    assert [event.current_id for event in events[:-1]] == [1, 2, 3, 4, 5]
    assert [event.current for event in events[:-1]] == [0, 1, 2, 3, 4]
    assert events[-1] == final
    assert not any(event.is_complete for event in events[:-1])


def test_resume_skips_ids_with_both_artifacts(store):
    for species_id in range(1, 501):
        result = make_result(species_id)
        store.put(result.species)
        store.put_sprite(result.species, PNG_BYTES)

    fetch = RecordingFetcher()
    events = []
    final = _pipeline(store, fetch, 520).run(events.append)

    assert fetch.calls == list(range(501, 521))
    assert events[500].current == 500
    assert events[500].current_id == 501
    assert final.current == 520


def test_failures_are_counted_and_marker_is_still_written(store):
    fetch = RecordingFetcher(failing={7, 42})
    pipeline = _pipeline(store, fetch, 50)

    final = pipeline.run()

    assert final.failed == 2
    assert final.current == 48
    assert pipeline.is_download_complete()
    assert store.completion_marker.read_text()
    assert not store.has_both(7)
    assert not store.has_both(42)


def test_interrupted_sync_resumes_where_it_stopped(store):
    fetch = RecordingFetcher()
    _pipeline(store, fetch, 300).run()
    store.completion_marker.unlink()
    # id 301 got its record but the sprite write never happened
    store.put(make_species(301))

    pipeline = _pipeline(store, RecordingFetcher(), 320)
    assert pipeline.is_download_complete() is False

    second = RecordingFetcher()
    _pipeline(store, second, 320).run()
    assert second.calls == list(range(301, 321))


def test_record_without_sprite_is_refetched(store):
    calls = []

    def no_sprite(species_id):
        calls.append(species_id)
        return make_species(species_id)

    _pipeline(store, no_sprite, 2).run()
    _pipeline(store, no_sprite, 2).run()
    assert calls == [1, 2, 1, 2]


def test_invalid_records_count_as_failures(store):
    def bad(species_id):
        return FetchResult(species=make_species(species_id, name=" "), sprite=PNG_BYTES)

    final = _pipeline(store, bad, 3).run()
    assert final.failed == 3
    assert final.current == 0


def test_record_for_another_id_counts_as_failure(store):
    calls = []

    def off_by_one(species_id):
        calls.append(species_id)
        return make_result(species_id + 1)

    first = _pipeline(store, off_by_one, 3).run()
    assert first.failed == 3
    assert first.current == 0
    assert store.get_by_id(4) is None

    second = _pipeline(store, off_by_one, 3).run()
    assert second.failed == 3
    assert calls == [1, 2, 3, 1, 2, 3]


@pytest.mark.parametrize("name", ["index", "favorites", "../escaped", "a/b", "42"])
def test_records_with_unusable_names_count_as_failures(store, name):
    def fetch(species_id):
        return make_result(species_id, name=name)

    final = _pipeline(store, fetch, 2).run()
    assert final.failed == 2
    assert not (store.cache_dir.parent / "escaped.json").exists()
    assert not store.index_file.exists()
    assert not store.favorites_file.exists()


def test_unexpected_exceptions_do_not_abort(store):
    def flaky(species_id):
        if species_id == 2:
            raise RuntimeError("socket closed")
        return make_result(species_id)

    final = _pipeline(store, flaky, 3).run()
    assert (final.current, final.failed, final.is_complete) == (2, 1, True)


def test_delay_is_applied_between_fetches(store):
    sleeps = []
    pipeline = BulkSyncPipeline(store, RecordingFetcher(), total=3, delay=0.25, sleep=sleeps.append)
    pipeline.run()
    assert sleeps == [0.25, 0.25, 0.25]

    sleeps.clear()
    pipeline.run()
    assert sleeps == []


def test_cancellation_stops_before_next_id_without_marker(store):
    cancel = threading.Event()

    def fetch(species_id):
        if species_id == 3:
            cancel.set()
        return make_result(species_id)

    pipeline = _pipeline(store, fetch, 10)
    final = pipeline.run(cancel_event=cancel)

    assert final.is_complete is False
    assert final.current == 3
    assert final.current_id == 4
    assert not pipeline.is_download_complete()


def test_setup_failure_aborts_the_run(tmp_path: Path):
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    pipeline = _pipeline(RecordStore(blocker / "cache"), RecordingFetcher(), 3)
    with pytest.raises(SetupError):
        pipeline.run()


def test_sync_invalidates_a_loaded_index(store):
    index = SpeciesIndex(store)
    assert index.get() == []
    _pipeline(store, RecordingFetcher(), 3, index=index).run()
    assert [entry.id for entry in index.get()] == [1, 2, 3]


def test_reset_download(store):
    pipeline = _pipeline(store, RecordingFetcher(), 2)
    pipeline.run()
    assert pipeline.is_download_complete()

    pipeline.reset_download()
    assert not pipeline.is_download_complete()
    assert store.has_both(1)

    pipeline.reset_download(purge=True)
    assert not store.has_both(1)
    assert store.get_by_name("mon1") is None


def test_run_requires_fetch(store):
    with pytest.raises(ValueError):
        BulkSyncPipeline(store, total=1).run()


def _write_dump(root: Path) -> None:
    (root / "pokemon").mkdir(parents=True)
    (root / "pokemon-species").mkdir()
    (root / "sprites").mkdir()
    (root / "pokemon" / "25.json").write_text(
        json.dumps(
            {
                "id": 25,
                "name": "pikachu",
                "height": 4,
                "weight": 60,
                "types": [{"slot": 1, "type": {"name": "electric"}}],
                "stats": [
                    {"base_stat": value, "stat": {"name": name}}
                    for name, value in [
                        ("hp", 35),
                        ("attack", 55),
                        ("defense", 40),
                        ("special-attack", 50),
                        ("special-defense", 50),
                        ("speed", 90),
                    ]
                ],
                "sprites": {"front_default": "https://example/25.png", "front_shiny": None},
            }
        )
    )
    (root / "pokemon-species" / "25.json").write_text(
        json.dumps(
            {
                "is_legendary": False,
                "is_mythical": False,
                "generation": {"name": "generation-i", "url": "https://pokeapi.co/api/v2/generation/1/"},
            }
        )
    )
    (root / "sprites" / "25.png").write_bytes(PNG_BYTES)
    (root / "sprites" / "25_shiny.png").write_bytes(b"shiny")


def test_directory_fetcher_reads_pokeapi_dump(tmp_path: Path):
    _write_dump(tmp_path / "dump")
    fetch = DirectoryFetcher(tmp_path / "dump")

    result = fetch(25)
    assert result.species.name == "pikachu"
    assert result.species.types == ("electric",)
    assert result.species.generation == 1
    assert result.species.total_base_stats == 320
    assert result.sprite == PNG_BYTES
    assert result.shiny_sprite == b"shiny"

    with pytest.raises(RecordNotFoundError):
        fetch(26)


def test_sync_from_directory_dump(tmp_path: Path, store):
    _write_dump(tmp_path / "dump")
    final = _pipeline(store, DirectoryFetcher(tmp_path / "dump"), 26).run()

    assert final.current == 1
    assert final.failed == 25
    assert store.get_sprite_path("pikachu", shiny=True).read_bytes() == b"shiny"
    assert store.get_sprite_path(25, shiny=True) is not None
