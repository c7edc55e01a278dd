# mind_the_gap/routes/badges.py: embeddable SVG/PNG badges and social share cards
from __future__ import annotations

from typing import Awaitable, Callable
import logging
import os

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response

from mind_the_gap.renderers.badges import (
    Rasterizer,
    render_badge,
    render_comparison_badge,
    render_png,
    render_share_card,
)
from mind_the_gap.routes.stats import get_stats_service, require_location, require_metric
from mind_the_gap.services.stats_service import StatsService

logger = logging.getLogger("mind-the-gap")

router = APIRouter(prefix="/api", tags=["badges"])

BADGE_MAX_AGE = int(os.getenv("BADGE_MAX_AGE", str(24 * 60 * 60)))
ERROR_MAX_AGE = int(os.getenv("ERROR_MAX_AGE", str(60 * 60)))

SVG = "image/svg+xml"
PNG = "image/png"

OK_HEADERS = {"Cache-Control": f"public, max-age={BADGE_MAX_AGE}"}
ERROR_HEADERS = {"Cache-Control": f"public, max-age={ERROR_MAX_AGE}"}


def get_rasterizer(request: Request) -> Rasterizer:
    return request.app.state.rasterizer


async def _image(label: str, media_type: str, make: Callable[[], Awaitable[bytes]]) -> Response:
    """Run a renderer; unexpected failures become a short-lived 500."""
    try:
        body = await make()
    except HTTPException:
        raise
    except Exception:
        logger.exception("%s failed", label)
        return Response(
            content=f"Failed to generate {label}",
            status_code=500,
            media_type="text/plain",
            headers=ERROR_HEADERS,
        )
    return Response(content=body, media_type=media_type, headers=OK_HEADERS)


# -----------------------------------------------------------------------------
# single location
# -----------------------------------------------------------------------------
@router.get("/badge/{stat}/{country}", summary="SVG badge for one location")
async def badge_svg(stat: str, country: str, service: StatsService = Depends(get_stats_service)):
    metric = require_metric(stat, ERROR_HEADERS)
    location = require_location(country, ERROR_HEADERS)

    async def make() -> bytes:
        snapshot = await service.get_snapshot(location)
        return render_badge(metric, snapshot[metric]).encode("utf-8")

    return await _image("badge", SVG, make)


@router.get("/badge-png/{stat}/{country}", summary="PNG badge for one location")
async def badge_png(
    stat: str,
    country: str,
    service: StatsService = Depends(get_stats_service),
    rasterizer: Rasterizer = Depends(get_rasterizer),
):
    metric = require_metric(stat, ERROR_HEADERS)
    location = require_location(country, ERROR_HEADERS)

    async def make() -> bytes:
        snapshot = await service.get_snapshot(location)
        return await render_png(render_badge(metric, snapshot[metric]), rasterizer)

    return await _image("PNG badge", PNG, make)


# -----------------------------------------------------------------------------
# two-location comparison (e.g. /api/badge/paygap/global/us)
# -----------------------------------------------------------------------------
def _comparison_svg(service: StatsService, stat: str, base: str, country: str):
    metric = require_metric(stat, ERROR_HEADERS)
    left = require_location(base, ERROR_HEADERS)
    right = require_location(country, ERROR_HEADERS)

    async def make_svg() -> str:
        left_snap, right_snap = await service.get_snapshots(left, right)
        return render_comparison_badge(metric, left, left_snap[metric], right, right_snap[metric])

    return make_svg


@router.get("/badge/{stat}/{base}/{country}", summary="SVG comparison badge")
async def comparison_svg(stat: str, base: str, country: str, service: StatsService = Depends(get_stats_service)):
    make_svg = _comparison_svg(service, stat, base, country)

    async def make() -> bytes:
        return (await make_svg()).encode("utf-8")

    return await _image("comparison badge", SVG, make)


@router.get("/badge-png/{stat}/{base}/{country}", summary="PNG comparison badge")
async def comparison_png(
    stat: str,
    base: str,
    country: str,
    service: StatsService = Depends(get_stats_service),
    rasterizer: Rasterizer = Depends(get_rasterizer),
):
    make_svg = _comparison_svg(service, stat, base, country)

    async def make() -> bytes:
        return await render_png(await make_svg(), rasterizer)

    return await _image("PNG comparison badge", PNG, make)


# -----------------------------------------------------------------------------
# share card
# -----------------------------------------------------------------------------
@router.get("/share/{stat}/{country}", summary="1200x630 SVG share card")
async def share_card(stat: str, country: str, service: StatsService = Depends(get_stats_service)):
    metric = require_metric(stat, ERROR_HEADERS)
    location = require_location(country, ERROR_HEADERS)

    async def make() -> bytes:
        snapshot = await service.get_snapshot(location)
        return render_share_card(metric, snapshot[metric], location).encode("utf-8")

    return await _image("share card", SVG, make)
