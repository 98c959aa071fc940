"""Consumer-facing operations on the service facade."""

from __future__ import annotations

from pathlib import Path

import pytest

from poke_team_builder.config import CacheSettings
from poke_team_builder.errors import InputValidationError, NotFoundError, TransientFetchError
from poke_team_builder.service import PokedexService

from conftest import make_result, make_species


@pytest.fixture
def service(tmp_path: Path) -> PokedexService:
    return PokedexService(CacheSettings(cache_dir=tmp_path / "cache", sync_limit=6, sync_delay=0))


def test_sync_then_browse(service: PokedexService) -> None:
    events = []
    final = service.start_bulk_sync(make_result, events.append)

    assert final.is_complete
    assert service.is_sync_complete()
    assert len(events) == 7
    assert service.get_by_id(3).name == "mon3"
    assert service.get_by_name("MON3").id == 3
    assert service.get_sprite_path("mon3") is not None
    assert service.get_sprite_path("mon3", shiny=True) is None
    assert [entry.id for entry in service.get_index()] == [1, 2, 3, 4, 5, 6]

    service.reset_sync()
    assert not service.is_sync_complete()


def test_fetch_and_cache_single_record(service: PokedexService) -> None:
    service.get_index()
    species = service.fetch_and_cache(151, lambda _id: make_result(151, name="mew"))

    assert species.name == "mew"
    assert service.get_by_name("mew").id == 151
    assert [entry.id for entry in service.get_index()] == [151]


def test_fetch_and_cache_propagates_fetch_errors(service: PokedexService) -> None:
    def failing(_id):
        raise TransientFetchError("timeout")

    with pytest.raises(TransientFetchError):
        service.fetch_and_cache(1, failing)


def test_favorites(service: PokedexService) -> None:
    assert not service.is_favorite("pikachu")
    assert service.toggle_favorite("Pikachu") is True
    assert service.is_favorite("pikachu")
    assert service.toggle_favorite("pikachu") is False


def test_compute_team_summary_resolves_names_ids_and_records(service: PokedexService) -> None:
    service.store.ensure_layout()
    service.store.put(make_species(1, "eevee", types=["normal"]))
    service.store.put(make_species(2, "pidgey", types=["normal", "flying"]))

    summary = service.compute_team_summary(["eevee", 2, make_species(3, "rattata")])
    assert 0 <= summary.total_score <= 1000

    with pytest.raises(NotFoundError):
        service.compute_team_summary(["missingno"])
    with pytest.raises(InputValidationError):
        service.compute_team_summary(["eevee"] * 7)


def test_invalidate_index(service: PokedexService) -> None:
    service.store.ensure_layout()
    service.store.put(make_species(1, "eevee"))
    assert len(service.get_index()) == 1
    service.store.put(make_species(2, "pidgey"))
    service.invalidate_index()
    assert len(service.get_index()) == 2
