# mind_the_gap/models.py: typed records shared by the fetcher, cache and renderers
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple


class Metric(str, Enum):
    PAYGAP = "paygap"
    LEADERSHIP = "leadership"
    MATERNAL = "maternal"
    HEALTHCARE = "healthcare"
    WORKFORCE = "workforce"

    @classmethod
    def parse(cls, key: str) -> Optional["Metric"]:
        try:
            return cls(key)
        except ValueError:
            return None


@dataclass(frozen=True)
class Observation:
    """One upstream row: [meta, [{value, date, country: {value}}, ...]]."""

    value: Optional[float]
    date: str
    location_name: Optional[str] = None


@dataclass(frozen=True)
class Statistic:
    value: str
    detail: str
    year: Optional[str] = None
    source: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        out = {"value": self.value, "detail": self.detail}
        if self.year is not None:
            out["year"] = self.year
        if self.source is not None:
            out["source"] = self.source
        return out


@dataclass(frozen=True)
class Snapshot:
    """All five statistics for one location as of one fetch cycle."""

    stats: Mapping[Metric, Statistic]
    last_updated: str

    def __post_init__(self) -> None:
        missing = [m.value for m in Metric if m not in self.stats]
        if missing:
            raise ValueError(f"snapshot missing metrics: {missing}")
        # freeze the mapping as well as the record
        object.__setattr__(self, "stats", MappingProxyType(dict(self.stats)))

    def __getitem__(self, metric: Metric) -> Statistic:
        return self.stats[metric]

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {m.value: self.stats[m].to_dict() for m in Metric}
        out["lastUpdated"] = self.last_updated
        return out


@dataclass(frozen=True)
class TrendPoint:
    year: str
    value: float
    location_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"year": self.year, "value": self.value, "countryName": self.location_name}


@dataclass(frozen=True)
class TrendSeries:
    metric: Metric
    location: str
    indicator: str
    last_updated: str
    points: Tuple[TrendPoint, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stat": self.metric.value,
            "country": self.location,
            "data": [p.to_dict() for p in self.points],
            "indicator": self.indicator,
            "lastUpdated": self.last_updated,
        }
