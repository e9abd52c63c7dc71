from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .recommendations.domains import DOMAINS
from .recommendations.engine import RecommendationEngine
from .recommendations.errors import (
    EngineNotReady,
    RecommendationUnavailable,
    StorageError,
    ValidationError,
)
from .recommendations.models import (
    HistoryResponse,
    InteractionOut,
    InteractionRequest,
    PopularResponse,
    RecommendationResponse,
    to_recommendation_out,
)
from .storage.availability import InMemoryAvailability
from .storage.catalog import load_catalog
from .storage.config import DEFAULT_CATALOG_CONFIG, CatalogConfig

logger = logging.getLogger(__name__)


def build_engines(config: CatalogConfig = DEFAULT_CATALOG_CONFIG) -> dict[str, RecommendationEngine]:
    """One loaded engine per domain, seeded from the catalog CSVs."""
    engines: dict[str, RecommendationEngine] = {}
    for name, domain in DOMAINS.items():
        engine = RecommendationEngine(domain, availability=InMemoryAvailability())
        engines[name] = engine.load(load_catalog(name, config))
    return engines


def create_app(engines: dict[str, RecommendationEngine] | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        for engine in app.state.engines.values():
            engine.close()

    app = FastAPI(title="Hospitality Recommendation API", version="1.0.0", lifespan=lifespan)
    app.state.engines = engines if engines is not None else build_engines()
    _register_error_handlers(app)
    _register_routes(app)
    return app


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "detail": message})


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError):
        return _error(400, str(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        messages = [
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}"
            for err in exc.errors()
        ]
        return _error(400, "; ".join(messages))

    @app.exception_handler(EngineNotReady)
    async def engine_not_ready(request: Request, exc: EngineNotReady):
        return _error(503, str(exc))

    @app.exception_handler(StorageError)
    async def storage_error(request: Request, exc: StorageError):
        logger.error("Storage failure on %s: %s", request.url.path, exc)
        return _error(500, "Storage unavailable")

    @app.exception_handler(RecommendationUnavailable)
    async def recommendation_unavailable(request: Request, exc: RecommendationUnavailable):
        logger.error("Recommendation pipeline failed on %s", request.url.path, exc_info=exc)
        return _error(500, "Recommendations unavailable")


def get_engine(domain: str, request: Request) -> RecommendationEngine:
    engine = request.app.state.engines.get(domain)
    if engine is None:
        raise HTTPException(status_code=404, detail=f"Unknown domain '{domain}'")
    return engine


def _request_context(
    check_in: str | None = None,
    check_out: str | None = None,
    group_size: int | None = None,
    party_size: int | None = None,
    occasion: str | None = None,
    time_slot: str | None = None,
) -> dict:
    context = {
        "check_in": check_in,
        "check_out": check_out,
        "group_size": group_size,
        "party_size": party_size,
        "occasion": occasion,
        "time_slot": time_slot,
    }
    return {k: v for k, v in context.items() if v is not None}


def _register_routes(app: FastAPI) -> None:
    # ── Service endpoints ────────────────────────────────────────────────

    @app.get("/health")
    def health(request: Request) -> dict:
        engines = request.app.state.engines
        ready = {name: engine.is_ready() for name, engine in engines.items()}
        return {"status": "ok" if all(ready.values()) else "degraded", "engines": ready}

    @app.get("/cache/stats")
    def cache_stats(request: Request) -> dict:
        return {name: engine.cache.stats() for name, engine in request.app.state.engines.items()}

    # ── Domain endpoints ─────────────────────────────────────────────────

    @app.post("/{domain}/interactions", status_code=201)
    def record_interaction(
        body: InteractionRequest,
        engine: RecommendationEngine = Depends(get_engine),
    ) -> dict:
        interaction = engine.record_interaction(
            body.user_id,
            body.item_id,
            body.interaction_type,
            rating=body.rating,
            context=body.context,
            weight=body.weight,
        )
        return {
            "success": True,
            "interaction": InteractionOut.from_interaction(interaction),
        }

    @app.get("/{domain}/recommendations/{user_id}", response_model=RecommendationResponse)
    def recommendations(
        user_id: str,
        count: int = Query(default=10, ge=1, le=50),
        context: dict = Depends(_request_context),
        engine: RecommendationEngine = Depends(get_engine),
    ) -> RecommendationResponse:
        result = engine.recommend(user_id, count, context)
        return RecommendationResponse(
            recommendations=[
                to_recommendation_out(rec, engine.domain, engine.get_item(rec.item_id), result.preferences)
                for rec in result.recommendations
            ],
            preferences=result.preferences.to_dict() if result.preferences else None,
            cached=result.cached,
            generated_at=result.generated_at,
            fallback=result.fallback,
        )

    @app.get("/{domain}/popular", response_model=PopularResponse)
    def popular(
        count: int = Query(default=10, ge=1, le=50),
        context: dict = Depends(_request_context),
        engine: RecommendationEngine = Depends(get_engine),
    ) -> PopularResponse:
        ranked = engine.popular(count, context)
        return PopularResponse(popular_items=[
            to_recommendation_out(rec, engine.domain, engine.get_item(rec.item_id))
            for rec in ranked
        ])

    @app.get("/{domain}/history/{user_id}", response_model=HistoryResponse)
    def history(
        user_id: str,
        days: int = Query(default=30, ge=1, le=365),
        engine: RecommendationEngine = Depends(get_engine),
    ) -> HistoryResponse:
        result = engine.history(user_id, days)
        return HistoryResponse(
            history=[InteractionOut.from_interaction(i) for i in result["history"]],
            preferences=result["preferences"].to_dict(),
            period_days=result["period_days"],
        )

    @app.get("/{domain}/analytics")
    def analytics(engine: RecommendationEngine = Depends(get_engine)) -> dict:
        return {
            **engine.analytics(),
            "last_updated": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/{domain}/model-info")
    def model_info(engine: RecommendationEngine = Depends(get_engine)) -> dict:
        return engine.model_info()


app = create_app()
