# mind_the_gap/main.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional
import logging
import os

from fastapi import FastAPI
from fastapi.routing import APIRoute

from mind_the_gap.providers.wb_provider import WorldBankClient, build_http_client
from mind_the_gap.renderers.badges import Rasterizer, svg_to_png
from mind_the_gap.routes import badges, stats
from mind_the_gap.services.cache import FreshnessCache
from mind_the_gap.services.stats_service import StatsService

logger = logging.getLogger("mind-the-gap")
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())


# --- keep operation_id stable (avoid FastAPI auto-dedupe renaming) ----------
def _fixed_unique_id(route: APIRoute) -> str:
    return route.operation_id or f"{route.name}_{route.path}".strip("/").replace("/", "_")


def create_app(service: Optional[StatsService] = None, rasterizer: Rasterizer = svg_to_png) -> FastAPI:
    """
    Build the application. Without an explicit service, the lifespan opens one
    shared httpx client and one FreshnessCache for the life of the process.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if service is not None:
            app.state.stats = service
            yield
            return

        http = build_http_client()
        app.state.stats = StatsService(WorldBankClient(http), FreshnessCache())
        logger.info("[init] stats service ready | ttl=%ss", app.state.stats.cache.ttl_ms // 1000)
        try:
            yield
        finally:
            await http.aclose()

    app = FastAPI(
        title="Mind the Gap API",
        description="Women's rights & equality statistics from the World Bank, cached daily",
        version="2025.10.19",
        generate_unique_id_function=_fixed_unique_id,
        lifespan=lifespan,
    )
    app.state.rasterizer = rasterizer

    app.include_router(stats.router)
    app.include_router(badges.router)

    @app.get("/")
    def root():
        return {
            "ok": True,
            "endpoints": [
                "/api/stats/{country}",
                "/api/trends/{stat}/{country}",
                "/api/export/{country}?format=csv|json",
                "/api/badge/{stat}/{country}",
                "/api/badge/{stat}/{base}/{country}",
                "/api/badge-png/{stat}/{country}",
                "/api/badge-png/{stat}/{base}/{country}",
                "/api/share/{stat}/{country}",
                "/api/sources",
                "/api/locations",
            ],
        }

    @app.get("/healthz")
    def healthz():
        # keep this super fast
        return {"status": "ok"}

    return app


app = create_app()
