# mind_the_gap/services/metrics.py: per-metric config + normalizers (observation -> Statistic)
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List
import math

from mind_the_gap.models import Metric, Observation, Statistic
from mind_the_gap.providers.wb_provider import WorldBankClient
from mind_the_gap.services.fallbacks import fallback_statistic
from mind_the_gap.utils.locations import location_name


@dataclass(frozen=True)
class MetricSpec:
    metric: Metric
    indicator: str
    window_years: int
    source: str
    title: str
    export_label: str
    color: str
    update_frequency: str
    description: str
    transform: Callable[[float], float]
    unit: str            # suffix after the rounded number
    template: str        # detail sentence; takes {value} and {loc}


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


METRICS: Dict[Metric, MetricSpec] = {
    Metric.PAYGAP: MetricSpec(
        metric=Metric.PAYGAP,
        # female wage & salaried workers share, used as a proxy: gap = 100 - ratio
        indicator="SL.EMP.WORK.FE.WE.ZS",
        window_years=5,
        source="World Bank / ILO",
        title="Gender Pay Gap",
        export_label="Gender Pay Gap",
        color="#5271bf",
        update_frequency="Annual",
        description="Difference in average earnings between men and women.",
        transform=lambda v: 100.0 - v,
        unit="%",
        template="Gender pay gap: {value} ({loc})",
    ),
    Metric.LEADERSHIP: MetricSpec(
        metric=Metric.LEADERSHIP,
        indicator="SG.GEN.PARL.ZS",
        window_years=5,
        source="World Bank / IPU",
        title="Leadership Representation",
        export_label="Leadership Representation",
        color="#b573c3",
        update_frequency="Annual (after elections)",
        description="Proportion of seats held by women in national parliaments.",
        transform=lambda v: v,
        unit="%",
        template="Women in parliament: {value} ({loc})",
    ),
    Metric.MATERNAL: MetricSpec(
        metric=Metric.MATERNAL,
        indicator="SH.STA.MMRT",
        window_years=5,
        source="WHO/UNICEF/UNFPA/World Bank",
        title="Maternal Mortality Rate",
        export_label="Maternal Mortality",
        color="#fa7aab",
        update_frequency="Every 2-3 years",
        description="Women who die from pregnancy-related causes per 100,000 live births.",
        transform=lambda v: v,
        unit="",
        template="Maternal mortality ratio: {value} per 100k live births ({loc})",
    ),
    Metric.HEALTHCARE: MetricSpec(
        metric=Metric.HEALTHCARE,
        indicator="SP.DYN.CONM.ZS",
        window_years=10,  # survey-based, sparse
        source="World Bank / UN Population Division",
        title="Contraceptive Access",
        export_label="Contraceptive Access",
        color="#ff9686",
        update_frequency="Every 1-3 years",
        description="Women aged 15-49 using modern contraceptive methods.",
        transform=lambda v: v,
        unit="%",
        template="Contraceptive access rate: {value} ({loc})",
    ),
    Metric.WORKFORCE: MetricSpec(
        metric=Metric.WORKFORCE,
        indicator="SL.TLF.TOTL.FE.ZS",
        window_years=5,
        source="World Bank / ILO",
        title="Workforce Participation",
        export_label="Workforce Participation",
        color="#ffc569",
        update_frequency="Annual",
        description="Women as a share of the total labor force.",
        transform=lambda v: v,
        unit="%",
        template="Women in workforce: {value} ({loc})",
    ),
}


def statistic_from_observation(spec: MetricSpec, obs: Observation, upstream_code: str) -> Statistic:
    value = f"{round_half_up(spec.transform(float(obs.value)))}{spec.unit}"
    return Statistic(
        value=value,
        detail=spec.template.format(value=value, loc=location_name(upstream_code)),
        year=obs.date,
        source=spec.source,
    )


async def normalize(metric: Metric, upstream_code: str, client: WorldBankClient) -> Statistic:
    """Latest observation for one metric, or the fallback row. Never raises."""
    spec = METRICS[metric]
    obs = await client.fetch_latest(upstream_code, spec.indicator, spec.window_years)
    if obs is None or obs.value is None or not math.isfinite(obs.value):
        return fallback_statistic(metric, upstream_code)
    return statistic_from_observation(spec, obs, upstream_code)


def describe_sources() -> List[Dict[str, Any]]:
    return [
        {
            "stat": spec.metric.value,
            "title": spec.title,
            "indicator": spec.indicator,
            "source": spec.source,
            "windowYears": spec.window_years,
            "updateFrequency": spec.update_frequency,
            "description": spec.description,
        }
        for spec in METRICS.values()
    ]
