import csv
import io
import xml.etree.ElementTree as ET

import pytest
from fastapi.testclient import TestClient

from mind_the_gap.main import create_app
from mind_the_gap.services.cache import stats_key, trend_key
from mind_the_gap.services.stats_service import StatsService

from conftest import FakeWorldBank, make_client

SVG_NS = "{http://www.w3.org/2000/svg}"
FAKE_PNG = b"\x89PNG\r\n\x1a\nfake"


class FakeRasterizer:
    def __init__(self):
        self.seen = []

    def __call__(self, svg: str) -> bytes:
        self.seen.append(svg)
        return FAKE_PNG


@pytest.fixture
def rasterizer():
    return FakeRasterizer()


@pytest.fixture
def client(service, rasterizer):
    with TestClient(create_app(service=service, rasterizer=rasterizer)) as c:
        yield c


def _texts(svg: str):
    return [el.text for el in ET.fromstring(svg).iter(f"{SVG_NS}text")]


def test_health_and_index(client):
    assert client.get("/healthz").json() == {"status": "ok"}
    assert "/api/stats/{country}" in client.get("/").json()["endpoints"]


def test_stats_endpoint(client, wb):
    r = client.get("/api/stats/us")
    assert r.status_code == 200
    body = r.json()
    assert body["paygap"] == {"value": "16%", "detail": "Gender pay gap: 16% (US)", "year": "2022", "source": "World Bank / ILO"}
    assert body["lastUpdated"].endswith("Z")
    assert len(wb.calls) == 5


def test_all_representations_share_one_snapshot(client, wb, service):
    stats = client.get("/api/stats/uk").json()
    exported = client.get("/api/export/uk", params={"format": "json"}).json()
    csv_text = client.get("/api/export/uk", params={"format": "csv"}).text
    badge = client.get("/api/badge/leadership/uk").text
    share = client.get("/api/share/maternal/uk").text

    assert exported == stats
    rows = list(csv.DictReader(io.StringIO(csv_text)))
    assert [r["Value"] for r in rows] == [stats[k]["value"] for k in ("paygap", "leadership", "maternal", "healthcare", "workforce")]
    assert stats["leadership"]["value"] in _texts(badge)
    assert stats["maternal"]["value"] in _texts(share)
    # one upstream round for five representations
    assert len(wb.calls) == 5
    assert len(service.cache) == 1


def test_export_headers(client):
    r = client.get("/api/export/canada", params={"format": "csv"})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert r.headers["content-disposition"].startswith('attachment; filename="mind-the-gap-canada-')
    assert r.headers["content-disposition"].endswith('.csv"')
    assert len(list(csv.DictReader(io.StringIO(r.text)))) == 5

    r = client.get("/api/export/canada")
    assert r.headers["content-disposition"].endswith('.json"')
    assert set(r.json()) >= {"paygap", "lastUpdated"}


def test_export_rejects_unknown_format(client):
    assert client.get("/api/export/us", params={"format": "xml"}).status_code == 422


def test_badge_svg_headers(client):
    r = client.get("/api/badge/paygap/us")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("image/svg+xml")
    assert r.headers["cache-control"] == "public, max-age=86400"
    assert "Gender pay gap: 16% (US)" in _texts(r.text)


@pytest.mark.parametrize(
    "path",
    [
        "/api/badge/bogus/us",
        "/api/badge/paygap/atlantis",
        "/api/badge-png/bogus/us",
        "/api/badge-png/paygap/atlantis",
        "/api/badge/bogus/global/us",
        "/api/badge/paygap/global/atlantis",
        "/api/badge/paygap/atlantis/us",
        "/api/badge-png/paygap/global/atlantis",
        "/api/share/bogus/us",
        "/api/share/paygap/atlantis",
        "/api/stats/atlantis",
        "/api/trends/bogus/us",
        "/api/trends/paygap/atlantis",
        "/api/export/atlantis",
    ],
)
def test_whitelist_rejects_without_side_effects(client, wb, service, path):
    r = client.get(path)
    assert r.status_code == 400
    assert wb.calls == []
    assert len(service.cache) == 0


def test_rejected_image_request_has_short_cache_lifetime(client):
    r = client.get("/api/badge/bogus/us")
    assert r.headers["cache-control"] == "public, max-age=3600"


def test_comparison_badge_fans_out_two_locations(client, wb):
    r = client.get("/api/badge/paygap/global/us")
    assert r.status_code == 200
    texts = _texts(r.text)
    assert "GLOBAL" in texts and "US" in texts
    assert {code for code, _, _ in wb.calls} == {"WLD", "USA"}
    assert len(wb.calls) == 10


def test_comparison_badge_same_location_twice(client, wb):
    r = client.get("/api/badge/workforce/mexico/mexico")
    assert r.status_code == 200
    root = ET.fromstring(r.text)
    big = [el.text for el in root.iter(f"{SVG_NS}text") if el.get("font-size") == "32"]
    assert len(big) == 2 and big[0] == big[1] == "47%"
    assert len(wb.calls) == 5


def test_png_comparison_uses_same_markup(client, rasterizer):
    svg = client.get("/api/badge/healthcare/global/uk").text
    r = client.get("/api/badge-png/healthcare/global/uk")

    assert r.status_code == 200
    assert r.headers["content-type"] == "image/png"
    assert r.headers["cache-control"] == "public, max-age=86400"
    assert r.content == FAKE_PNG
    assert rasterizer.seen == [svg]


def test_png_single_badge(client, rasterizer):
    r = client.get("/api/badge-png/leadership/japan")
    assert r.status_code == 200
    assert r.content == FAKE_PNG
    assert "Women in parliament: 29% (Japan)" in _texts(rasterizer.seen[0])


def test_rasterizer_failure_is_short_lived_500(service):
    def broken(svg):
        raise RuntimeError("cairo missing")

    with TestClient(create_app(service=service, rasterizer=broken)) as c:
        r = c.get("/api/badge-png/paygap/us")
    assert r.status_code == 500
    assert r.headers["cache-control"] == "public, max-age=3600"
    # the snapshot itself was still cached
    assert service.cache.lookup(stats_key("us")) is not None


def test_share_card(client):
    r = client.get("/api/share/paygap/global")
    assert r.status_code == 200
    assert r.headers["cache-control"] == "public, max-age=86400"
    root = ET.fromstring(r.text)
    assert root.get("width") == "1200"
    assert "Gender Pay Gap" in _texts(r.text)


def test_trends_endpoint(cache):
    rows = [
        {"value": 30.0, "date": "2023", "country": {"value": "United States"}},
        {"value": None, "date": "2022", "country": {"value": "United States"}},
        {"value": 28.5, "date": "2018", "country": {"value": "United States"}},
    ]
    service = StatsService(make_client(FakeWorldBank(history={"SG.GEN.PARL.ZS": rows})), cache)
    with TestClient(create_app(service=service)) as c:
        body = c.get("/api/trends/leadership/us").json()

    assert body["stat"] == "leadership"
    assert body["country"] == "us"
    assert body["indicator"] == "SG.GEN.PARL.ZS"
    assert [p["year"] for p in body["data"]] == ["2018", "2023"]


def test_trends_upstream_down_is_502_and_not_cached(cache):
    service = StatsService(make_client(FakeWorldBank(status=503)), cache)
    with TestClient(create_app(service=service)) as c:
        r = c.get("/api/trends/paygap/global")
    assert r.status_code == 502
    assert len(cache) == 0


def test_stats_fallbacks_when_upstream_down(cache):
    service = StatsService(make_client(FakeWorldBank(status=503)), cache)
    with TestClient(create_app(service=service)) as c:
        body = c.get("/api/stats/global").json()
    assert body["workforce"] == {"value": "47%", "detail": "Women in workforce: 47% (global)", "source": "World Bank / ILO"}


def test_sources_and_locations(client):
    sources = client.get("/api/sources").json()
    assert [s["stat"] for s in sources["stats"]] == ["paygap", "leadership", "maternal", "healthcare", "workforce"]
    assert sources["cacheHours"] == 24

    locations = {row["key"]: row for row in client.get("/api/locations").json()["locations"]}
    assert locations["global"]["iso_codes"]["iso_alpha_2"] is None
    assert locations["uk"]["iso_codes"]["iso_alpha_2"] == "GB"
    assert locations["south-africa"]["code"] == "ZAF"


def test_trends_without_observations_is_empty_and_cached(cache):
    wb = FakeWorldBank()
    service = StatsService(make_client(wb), cache)
    with TestClient(create_app(service=service)) as c:
        r = c.get("/api/trends/healthcare/us")
        again = c.get("/api/trends/healthcare/us")

    assert r.status_code == 200
    assert r.json()["data"] == []
    assert r.json()["indicator"] == "SP.DYN.CONM.ZS"
    assert again.json() == r.json()
    assert trend_key("healthcare", "us") in cache
    assert len(wb.calls) == 1
