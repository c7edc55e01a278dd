# mind_the_gap/renderers/badges.py: SVG badges / share cards and PNG rasterization
from __future__ import annotations

from typing import Callable, Optional
from xml.sax.saxutils import escape

from fastapi.concurrency import run_in_threadpool

from mind_the_gap.models import Metric, Statistic
from mind_the_gap.services.metrics import METRICS
from mind_the_gap.utils.locations import Location

Rasterizer = Callable[[str], bytes]

BRAND = "MIND THE GAP"
SHARE_DETAIL_MAX = 80

_ENTITIES = {'"': "&quot;", "'": "&apos;"}


def escape_svg_text(text: Optional[str]) -> str:
    """Escape & < > " ' for element text and attribute values."""
    return escape(text or "", _ENTITIES)


def _color(metric: Metric) -> str:
    return escape_svg_text(METRICS[metric].color)


def render_badge(metric: Metric, stat: Statistic) -> str:
    color = _color(metric)
    value = escape_svg_text(stat.value)
    detail = escape_svg_text(stat.detail)
    return f"""<svg width="500" height="80" xmlns="http://www.w3.org/2000/svg">
  <rect width="500" height="80" fill="{color}" rx="6"/>
  <text x="20" y="30" font-family="Inter, sans-serif" font-size="12" font-weight="600" fill="rgba(255,255,255,0.9)">{BRAND}</text>
  <text x="20" y="55" font-family="Inter, sans-serif" font-size="16" font-weight="700" fill="white">{detail}</text>
  <text x="450" y="55" font-family="JetBrains Mono, monospace" font-size="32" font-weight="700" fill="white" text-anchor="end">{value}</text>
</svg>"""


def render_comparison_badge(metric: Metric, left_loc: Location, left: Statistic, right_loc: Location, right: Statistic) -> str:
    color = _color(metric)
    title = escape_svg_text(METRICS[metric].title.upper())
    left_label = escape_svg_text(left_loc.name.upper())
    right_label = escape_svg_text(right_loc.name.upper())
    left_value = escape_svg_text(left.value)
    right_value = escape_svg_text(right.value)
    return f"""<svg width="500" height="110" xmlns="http://www.w3.org/2000/svg">
  <rect width="500" height="110" fill="{color}" rx="6"/>
  <text x="20" y="26" font-family="Inter, sans-serif" font-size="12" font-weight="600" fill="rgba(255,255,255,0.9)">{BRAND}</text>
  <text x="480" y="26" font-family="Inter, sans-serif" font-size="12" font-weight="600" fill="rgba(255,255,255,0.9)" text-anchor="end">{title}</text>
  <line x1="250" y1="40" x2="250" y2="96" stroke="rgba(255,255,255,0.4)" stroke-width="1"/>
  <text x="125" y="54" font-family="Inter, sans-serif" font-size="12" font-weight="600" fill="rgba(255,255,255,0.8)" text-anchor="middle">{left_label}</text>
  <text x="125" y="92" font-family="JetBrains Mono, monospace" font-size="32" font-weight="700" fill="white" text-anchor="middle">{left_value}</text>
  <text x="375" y="54" font-family="Inter, sans-serif" font-size="12" font-weight="600" fill="rgba(255,255,255,0.8)" text-anchor="middle">{right_label}</text>
  <text x="375" y="92" font-family="JetBrains Mono, monospace" font-size="32" font-weight="700" fill="white" text-anchor="middle">{right_value}</text>
</svg>"""


def render_share_card(metric: Metric, stat: Statistic, location: Location) -> str:
    spec = METRICS[metric]
    color = _color(metric)
    title = escape_svg_text(spec.title)
    place = escape_svg_text(location.name)
    value = escape_svg_text(stat.value)
    # truncate before escaping so entities are never cut in half
    detail = escape_svg_text(stat.detail[:SHARE_DETAIL_MAX])
    source = escape_svg_text(stat.source or "World Bank")
    return f"""<svg width="1200" height="630" xmlns="http://www.w3.org/2000/svg">
  <rect width="1200" height="630" fill="{color}"/>
  <text x="60" y="80" font-family="Inter, sans-serif" font-size="24" font-weight="700" fill="rgba(255,255,255,0.9)">{BRAND}</text>
  <text x="60" y="115" font-family="Inter, sans-serif" font-size="18" font-weight="400" fill="rgba(255,255,255,0.7)">Women's Rights &amp; Equality Statistics</text>
  <text x="60" y="220" font-family="Inter, sans-serif" font-size="32" font-weight="600" fill="rgba(255,255,255,0.9)">{title}</text>
  <text x="60" y="260" font-family="Inter, sans-serif" font-size="24" font-weight="400" fill="rgba(255,255,255,0.75)">{place}</text>
  <text x="60" y="400" font-family="JetBrains Mono, monospace" font-size="120" font-weight="700" fill="white">{value}</text>
  <text x="60" y="480" font-family="Inter, sans-serif" font-size="22" font-weight="400" fill="rgba(255,255,255,0.8)">{detail}</text>
  <text x="60" y="570" font-family="Inter, sans-serif" font-size="16" font-weight="400" fill="rgba(255,255,255,0.6)">Source: {source}</text>
</svg>"""


def svg_to_png(svg: str) -> bytes:
    import cairosvg  # needs the native cairo library; only imported when a PNG is requested

    return cairosvg.svg2png(bytestring=svg.encode("utf-8"))


async def render_png(svg: str, rasterizer: Rasterizer = svg_to_png) -> bytes:
    # rasterization is CPU-bound; keep it off the event loop
    return await run_in_threadpool(rasterizer, svg)
