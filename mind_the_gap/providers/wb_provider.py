# mind_the_gap/providers/wb_provider.py
from __future__ import annotations

from typing import Any, Callable, List, Optional
import logging
import os
import time

import httpx

from mind_the_gap.models import Observation

logger = logging.getLogger("mind-the-gap")

# -------------------------------------------------------------------
# CONFIG
# -------------------------------------------------------------------
WB_BASE = os.getenv("WB_BASE", "https://api.worldbank.org/v2")
WB_TIMEOUT = float(os.getenv("WB_TIMEOUT", "6.0"))
WB_HISTORY_PER_PAGE = int(os.getenv("WB_HISTORY_PER_PAGE", "100"))


class UpstreamUnavailable(Exception):
    """The World Bank API could not produce a usable response."""


# -------------------------------------------------------------------
# HTTP CLIENT (shared)
# -------------------------------------------------------------------
def _timeout() -> httpx.Timeout:
    return httpx.Timeout(
        timeout=WB_TIMEOUT,
        connect=min(2.0, WB_TIMEOUT),
        read=WB_TIMEOUT,
        write=min(2.0, WB_TIMEOUT),
        pool=min(2.0, WB_TIMEOUT),
    )


def build_http_client() -> httpx.AsyncClient:
    limits = httpx.Limits(
        max_connections=int(os.getenv("WB_MAX_CONNECTIONS", "20")),
        max_keepalive_connections=int(os.getenv("WB_MAX_KEEPALIVE", "10")),
        keepalive_expiry=float(os.getenv("WB_KEEPALIVE_EXPIRY", "30")),
    )
    return httpx.AsyncClient(
        timeout=_timeout(),
        headers={"Accept": "application/json", "User-Agent": "mind-the-gap/1.0"},
        follow_redirects=True,
        limits=limits,
    )


# -------------------------------------------------------------------
# PARSING
# -------------------------------------------------------------------
def _rows(data: Any) -> List[Any]:
    # WB returns: [ {metadata}, [data...] ]; errors come back as [ {message: ...} ]
    if not isinstance(data, list) or len(data) < 2:
        raise UpstreamUnavailable(f"unexpected payload shape: {type(data).__name__}")
    meta, rows = data[0], data[1]
    # a series with nothing in the window: [ {"page": 0, ..., "total": 0}, null ]
    if rows is None and isinstance(meta, dict) and "message" not in meta:
        return []
    if not isinstance(rows, list):
        raise UpstreamUnavailable(f"unexpected payload rows: {type(rows).__name__}")
    return rows


def _observation(row: Any) -> Optional[Observation]:
    if not isinstance(row, dict):
        return None
    date = row.get("date")
    if date is None:
        return None
    raw = row.get("value")
    value = float(raw) if raw is not None else None
    country = row.get("country") or {}
    name = country.get("value") if isinstance(country, dict) else None
    return Observation(value=value, date=str(date), location_name=name)


def date_window(years: int, today: Optional[int] = None) -> str:
    """Inclusive 'YYYY:YYYY' range ending at the current year."""
    y2 = today if today is not None else time.gmtime().tm_year
    y1 = y2 - max(1, years) + 1
    return f"{y1}:{y2}"


# -------------------------------------------------------------------
# CLIENT
# -------------------------------------------------------------------
class WorldBankClient:
    """
    Thin async wrapper over the WDI indicator endpoint.

    `fetch_latest` is fail-soft (None on any problem) so callers can always
    fall back to static values; `fetch_history` raises UpstreamUnavailable
    because a trend series has nothing to fall back to.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str = WB_BASE,
        year: Optional[Callable[[], int]] = None,
    ) -> None:
        self._client = client
        self._base = base_url.rstrip("/")
        self._year = year or (lambda: time.gmtime().tm_year)

    def _url(self, upstream_code: str, indicator: str) -> str:
        return f"{self._base}/country/{upstream_code}/indicator/{indicator}"

    async def _get_rows(self, upstream_code: str, indicator: str, params: dict) -> List[Any]:
        try:
            r = await self._client.get(self._url(upstream_code, indicator), params=params)
            r.raise_for_status()
            data = r.json()
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamUnavailable(f"{upstream_code}/{indicator}: {e!r}") from e
        return _rows(data)

    async def fetch_latest(self, upstream_code: str, indicator: str, window_years: int) -> Optional[Observation]:
        params = {
            "format": "json",
            "date": date_window(window_years, self._year()),
            "per_page": "1",
            "mrv": "1",
        }
        try:
            rows = await self._get_rows(upstream_code, indicator, params)
            obs = _observation(rows[0]) if rows else None
        except Exception as e:
            logger.warning("wb latest failed | %s/%s: %r", upstream_code, indicator, e)
            return None

        if obs is None or obs.value is None:
            return None
        return obs

    async def fetch_history(self, upstream_code: str, indicator: str, years: int) -> List[Observation]:
        params = {
            "format": "json",
            "date": date_window(years, self._year()),
            # one row per year, so a page at least `years` long holds the whole series
            "per_page": str(max(WB_HISTORY_PER_PAGE, years)),
        }
        rows = await self._get_rows(upstream_code, indicator, params)
        out: List[Observation] = []
        for row in rows:
            try:
                obs = _observation(row)
            except (TypeError, ValueError):
                continue
            if obs is not None:
                out.append(obs)
        return out


__all__ = [
    "UpstreamUnavailable",
    "WorldBankClient",
    "build_http_client",
    "date_window",
]
