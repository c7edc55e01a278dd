# mind_the_gap/routes/stats.py: JSON stats, trend series, downloads, metadata
from __future__ import annotations

from typing import Dict, Literal, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse, Response

from mind_the_gap.models import Metric
from mind_the_gap.providers.wb_provider import UpstreamUnavailable
from mind_the_gap.renderers.exports import export_filename, snapshot_to_csv, snapshot_to_json
from mind_the_gap.services.cache import STATS_CACHE_TTL
from mind_the_gap.services.metrics import describe_sources
from mind_the_gap.services.stats_service import StatsService
from mind_the_gap.utils.locations import Location, get_location, list_locations

logger = logging.getLogger("mind-the-gap")

router = APIRouter(prefix="/api", tags=["stats"])


# -----------------------------------------------------------------------------
# Shared request helpers (also used by the badge router)
# -----------------------------------------------------------------------------
def get_stats_service(request: Request) -> StatsService:
    return request.app.state.stats


def require_metric(key: str, headers: Optional[Dict[str, str]] = None) -> Metric:
    metric = Metric.parse(key)
    if metric is None:
        raise HTTPException(status_code=400, detail="Invalid stat type", headers=headers)
    return metric


def require_location(key: str, headers: Optional[Dict[str, str]] = None) -> Location:
    location = get_location(key)
    if location is None:
        raise HTTPException(status_code=400, detail="Invalid country", headers=headers)
    return location


# -----------------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------------
@router.get("/stats/{country}", summary="All statistics for a location")
async def stats(
    country: str,
    fresh: bool = Query(False, description="Bypass the 24h cache and refetch"),
    service: StatsService = Depends(get_stats_service),
):
    location = require_location(country)
    try:
        snapshot = await service.get_snapshot(location, fresh=fresh)
    except Exception:
        logger.exception("stats failed | location=%s", location.key)
        return JSONResponse(status_code=500, content={"error": "Failed to fetch statistics"})
    return JSONResponse(content=snapshot_to_json(snapshot))


@router.get("/trends/{stat}/{country}", summary="Yearly trend for one statistic")
async def trends(stat: str, country: str, service: StatsService = Depends(get_stats_service)):
    metric = require_metric(stat)
    location = require_location(country)
    try:
        series = await service.get_trend(metric, location)
    except UpstreamUnavailable as e:
        logger.warning("trend upstream unavailable | stat=%s | location=%s: %s", metric.value, location.key, e)
        return JSONResponse(status_code=502, content={"error": "Trend data unavailable"})
    except Exception:
        logger.exception("trend failed | stat=%s | location=%s", metric.value, location.key)
        return JSONResponse(status_code=500, content={"error": "Failed to fetch trend data"})
    return JSONResponse(content=series.to_dict())


@router.get("/export/{country}", summary="Download statistics as CSV or JSON")
async def export(
    country: str,
    format: Literal["csv", "json"] = Query("json"),
    service: StatsService = Depends(get_stats_service),
):
    location = require_location(country)
    try:
        snapshot = await service.get_snapshot(location)
    except Exception:
        logger.exception("export failed | location=%s", location.key)
        return JSONResponse(status_code=500, content={"error": "Failed to export data"})

    disposition = f'attachment; filename="{export_filename(location.key, format)}"'
    if format == "csv":
        return Response(
            content=snapshot_to_csv(snapshot),
            media_type="text/csv",
            headers={"Content-Disposition": disposition},
        )
    return JSONResponse(content=snapshot_to_json(snapshot), headers={"Content-Disposition": disposition})


@router.get("/sources", summary="Indicator metadata for every statistic")
def sources():
    return {"stats": describe_sources(), "cacheHours": STATS_CACHE_TTL / 3600}


@router.get("/locations", summary="Supported locations")
def locations():
    return {"locations": list_locations()}
