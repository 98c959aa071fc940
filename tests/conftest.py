"""Shared factories for building species records and populated caches."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import pytest

from poke_team_builder.models import FetchResult, Species, build_stats
from poke_team_builder.record_store import RecordStore

PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00\x1f\x15\xc4\x89"
    b"\x00\x00\x00\nIDATx\x9cc````\x00\x00\x00\x04\x00\x01\xe2!\xbc3\x00\x00\x00\x00IEND\xaeB`\x82"
)


def make_species(
    species_id: int,
    name: str | None = None,
    types: Sequence[str] = ("normal",),
    stats: Sequence[int] = (50, 50, 50, 50, 50, 50),
    **extra,
) -> Species:
    return Species(
        id=species_id,
        name=name or f"mon{species_id}",
        types=tuple(types),
        stats=build_stats(stats),
        **extra,
    )


def make_result(species_id: int, **kwargs) -> FetchResult:
    return FetchResult(species=make_species(species_id, **kwargs), sprite=PNG_BYTES)


@pytest.fixture
def store(tmp_path: Path) -> RecordStore:
    record_store = RecordStore(tmp_path / "pokemon_cache")
    record_store.ensure_layout()
    return record_store
