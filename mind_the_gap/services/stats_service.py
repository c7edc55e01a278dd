# mind_the_gap/services/stats_service.py: aggregate builder + cache-first lookups
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Tuple
import asyncio
import logging
import os

from mind_the_gap.models import Metric, Snapshot, TrendPoint, TrendSeries
from mind_the_gap.providers.wb_provider import WorldBankClient
from mind_the_gap.services.cache import FreshnessCache, stats_key, trend_key
from mind_the_gap.services.metrics import METRICS, normalize
from mind_the_gap.utils.locations import Location

logger = logging.getLogger("mind-the-gap")

TREND_YEARS = int(os.getenv("TREND_YEARS", "10"))


def iso_timestamp(epoch_seconds: float) -> str:
    # 2024-01-01T12:00:00.000Z
    dt = datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class StatsService:
    """
    Every consumer that needs statistics for a location goes through here.

    Lookups check the cache first and return the exact cached object on a hit,
    so the JSON, CSV, badge and share-card views of one location agree on values
    and lastUpdated for the whole freshness window.
    """

    def __init__(self, client: WorldBankClient, cache: FreshnessCache, trend_years: int = TREND_YEARS) -> None:
        self.client = client
        self.cache = cache
        self.trend_years = trend_years

    # -------------------------------------------------------------------
    # snapshots
    # -------------------------------------------------------------------
    async def build_snapshot(self, location: Location) -> Snapshot:
        metrics = list(Metric)
        values = await asyncio.gather(*(normalize(m, location.code, self.client) for m in metrics))
        snapshot = Snapshot(stats=dict(zip(metrics, values)), last_updated=iso_timestamp(self.cache.now()))
        self.cache.put(stats_key(location.key), snapshot)
        logger.info("snapshot built | location=%s | lastUpdated=%s", location.key, snapshot.last_updated)
        return snapshot

    async def get_snapshot(self, location: Location, fresh: bool = False) -> Snapshot:
        key = stats_key(location.key)
        if not fresh:
            cached = self.cache.lookup(key)
            if cached is not None:
                logger.info("stats cache hit | location=%s", location.key)
                return cached
        return await self.cache.once(key, lambda: self.build_snapshot(location))

    async def get_snapshots(self, *locations: Location) -> List[Snapshot]:
        return list(await asyncio.gather(*(self.get_snapshot(loc) for loc in locations)))

    # -------------------------------------------------------------------
    # trends
    # -------------------------------------------------------------------
    async def build_trend(self, metric: Metric, location: Location) -> TrendSeries:
        spec = METRICS[metric]
        rows = await self.client.fetch_history(location.code, spec.indicator, self.trend_years)

        points: List[Tuple[int, TrendPoint]] = []
        for obs in rows:
            if obs.value is None:
                continue
            try:
                order = int(obs.date)
            except ValueError:
                continue
            points.append((order, TrendPoint(year=obs.date, value=round(obs.value, 2), location_name=obs.location_name)))
        points.sort(key=lambda kv: kv[0])

        series = TrendSeries(
            metric=metric,
            location=location.key,
            indicator=spec.indicator,
            last_updated=iso_timestamp(self.cache.now()),
            points=tuple(p for _, p in points),
        )
        self.cache.put(trend_key(metric.value, location.key), series)
        logger.info("trend built | stat=%s | location=%s | points=%d", metric.value, location.key, len(series.points))
        return series

    async def get_trend(self, metric: Metric, location: Location) -> TrendSeries:
        key = trend_key(metric.value, location.key)
        cached = self.cache.lookup(key)
        if cached is not None:
            logger.info("trend cache hit | stat=%s | location=%s", metric.value, location.key)
            return cached
        return await self.cache.once(key, lambda: self.build_trend(metric, location))
