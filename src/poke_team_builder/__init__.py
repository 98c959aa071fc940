"""Local Pokédex cache, resumable bulk sync and team synergy scoring."""

from . import (
    config,
    effectiveness,
    errors,
    fetchers,
    index,
    models,
    observability,
    record_store,
    service,
    sync,
    synergy,
    team_builder,
)
from .service import PokedexService
from .synergy import score_team

__all__ = [
    "config",
    "effectiveness",
    "errors",
    "fetchers",
    "index",
    "models",
    "observability",
    "record_store",
    "service",
    "sync",
    "synergy",
    "team_builder",
    "PokedexService",
    "score_team",
]
