from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest

from mind_the_gap.providers.wb_provider import WorldBankClient
from mind_the_gap.services.cache import FreshnessCache
from mind_the_gap.services.stats_service import StatsService

WB_BASE = "https://api.worldbank.org/v2"

# indicator -> latest value served by the fake World Bank
DEFAULT_VALUES: Dict[str, Optional[float]] = {
    "SL.EMP.WORK.FE.WE.ZS": 84.4,   # pay gap 16%
    "SG.GEN.PARL.ZS": 28.7,         # 29%
    "SH.STA.MMRT": 21.3,            # 21
    "SP.DYN.CONM.ZS": 73.6,         # 74%
    "SL.TLF.TOTL.FE.ZS": 46.5,      # 47% (half rounds up)
}


def wb_payload(rows: Optional[List[Dict[str, Any]]]) -> List[Any]:
    # WB sends null rows (and page 0) when a series has nothing in the window
    total = len(rows) if rows else 0
    page = 1 if rows else 0
    return [{"page": page, "pages": page, "per_page": 1, "total": total}, rows]


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.t = start

    def __call__(self) -> float:
        return self.t

    def advance(self, seconds: float) -> None:
        self.t += seconds


class FakeWorldBank:
    """MockTransport handler for /country/{code}/indicator/{indicator}; records every call."""

    def __init__(
        self,
        values: Optional[Dict[str, Optional[float]]] = None,
        history: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        status: int = 200,
    ) -> None:
        self.values = dict(DEFAULT_VALUES if values is None else values)
        self.history = history or {}
        self.status = status
        self.calls: List[Tuple[str, str, Dict[str, str]]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        parts = request.url.path.split("/")
        code, indicator = parts[-3], parts[-1]
        params = dict(request.url.params)
        self.calls.append((code, indicator, params))

        if self.status != 200:
            return httpx.Response(self.status, text="upstream down")

        if "mrv" in params:
            if indicator not in self.values:
                return httpx.Response(200, json=wb_payload(None))
            row = {"value": self.values[indicator], "date": "2022", "country": {"id": code, "value": code}}
            return httpx.Response(200, json=wb_payload([row]))

        return httpx.Response(200, json=wb_payload(self.history.get(indicator)))


def make_client(handler) -> WorldBankClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WorldBankClient(http, base_url=WB_BASE, year=lambda: 2024)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def wb():
    return FakeWorldBank()


@pytest.fixture
def wb_client(wb):
    return make_client(wb)


@pytest.fixture
def cache(clock):
    return FreshnessCache(clock=clock)


@pytest.fixture
def service(wb_client, cache):
    return StatsService(wb_client, cache)
