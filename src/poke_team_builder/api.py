"""REST API exposing the cache lookups, favorites and team scoring."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from .errors import DependencyError, InputValidationError, NotFoundError, PokeTeamBuilderError
from .observability import (
    configure_logging,
    generate_trace_id,
    get_logger,
    health_snapshot,
    render_metrics,
)
from .service import PokedexService

try:  # pragma: no cover - optional dependency
    from fastapi import Body, FastAPI, Request  # type: ignore[import-not-found]
    from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse  # type: ignore[import-not-found]
except Exception:  # pragma: no cover - gracefully handled at runtime
    FastAPI = None  # type: ignore
    Body = None  # type: ignore
    Request = None  # type: ignore
    FileResponse = None  # type: ignore
    JSONResponse = None  # type: ignore
    PlainTextResponse = None  # type: ignore


LOGGER = get_logger(__name__)

_SECURE_HEADERS: Dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
}


def _validate_dependency() -> None:
    if FastAPI is None:
        raise DependencyError(
            "FastAPI is required to use poke_team_builder.api.",
            remediation="Install the 'api' extra: pip install poke-team-builder[api].",
        )


def create_app(service: Optional[PokedexService] = None) -> "FastAPI":
    """Return a configured FastAPI application backed by ``service``."""

    _validate_dependency()
    assert FastAPI is not None and JSONResponse is not None  # for mypy

    configure_logging()
    service = service or PokedexService()
    app = FastAPI(title="Poke Team Builder", version="1.0.0")

    @app.middleware("http")
    async def add_trace_and_security_headers(request: "Request", call_next):  # type: ignore[override]
        request.state.trace_id = generate_trace_id()
        response = await call_next(request)
        response.headers.setdefault("X-Trace-Id", request.state.trace_id)
        for header, value in _SECURE_HEADERS.items():
            response.headers.setdefault(header, value)
        return response

    @app.exception_handler(PokeTeamBuilderError)
    async def handle_package_error(request: "Request", exc: PokeTeamBuilderError) -> "JSONResponse":
        trace_id = getattr(request.state, "trace_id", None) or generate_trace_id()
        LOGGER.warning(
            "api_request_failed",
            extra={"event": "api_request_failed", "trace_id": trace_id, "error": exc.to_payload()},
        )
        response = JSONResponse(
            status_code=exc.http_status,
            content={"error": exc.to_payload(trace_id=trace_id)},
        )
        response.headers["X-Trace-Id"] = trace_id
        return response

    @app.get("/health", tags=["system"])
    def healthcheck() -> Dict[str, Any]:
        return health_snapshot(service)

    @app.get("/metrics", tags=["system"], response_class=PlainTextResponse)
    async def metrics_endpoint() -> "PlainTextResponse":
        return PlainTextResponse(render_metrics(), media_type="text/plain; version=0.0.4")

    @app.get("/pokemon/{key}", tags=["cache"])
    def get_pokemon(key: str) -> Dict[str, Any]:
        species = service.get(key)
        if species is None:
            raise NotFoundError(f"'{key}' is not cached", context={"key": key})
        payload = species.to_dict()
        payload["favorite"] = service.is_favorite(species.name)
        return payload

    @app.get("/pokemon/{key}/sprite", tags=["cache"])
    def get_sprite(key: str, shiny: bool = False) -> "FileResponse":
        path = service.get_sprite_path(key, shiny)
        if path is None:
            raise NotFoundError(f"No sprite cached for '{key}'", context={"key": key, "shiny": shiny})
        return FileResponse(path, media_type="image/png")

    @app.get("/index", tags=["cache"])
    def get_index(
        generation: Optional[int] = None,
        type: Optional[str] = None,
        legendary: Optional[bool] = None,
        mythical: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        if search:
            entries = service.index.search(search)
        else:
            entries = service.index.filter(
                generation=generation, type_name=type, legendary=legendary, mythical=mythical
            )
        return [entry.to_dict() for entry in entries]

    @app.delete("/index", tags=["cache"])
    def invalidate_index() -> Dict[str, Any]:
        service.invalidate_index()
        return {"invalidated": True}

    @app.post("/favorites/{name}", tags=["favorites"])
    def toggle_favorite(name: str) -> Dict[str, Any]:
        return {"name": name.lower(), "favorite": service.toggle_favorite(name)}

    @app.get("/sync", tags=["sync"])
    def sync_status() -> Dict[str, Any]:
        return {"complete": service.is_sync_complete()}

    @app.post("/teams/summary", tags=["teams"])
    def team_summary(members: List[str] = Body(..., embed=True)) -> Dict[str, Any]:
        if not members:
            raise InputValidationError(
                "At least one member is required.",
                remediation="Send {\"members\": [\"pikachu\", ...]}.",
            )
        return service.compute_team_summary(members).to_dict()

    return app


__all__ = ["create_app"]
