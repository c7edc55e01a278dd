# mind_the_gap/renderers/exports.py
from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional
import csv
import io

from mind_the_gap.models import Metric, Snapshot
from mind_the_gap.services.metrics import METRICS

CSV_HEADER = ["Metric", "Value", "Detail", "Year", "Source"]


def snapshot_to_json(snapshot: Snapshot) -> Dict[str, Any]:
    return snapshot.to_dict()


def snapshot_to_csv(snapshot: Snapshot) -> str:
    """One row per metric, enum order; the csv module quotes comma-bearing fields."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for metric in Metric:
        stat = snapshot[metric]
        writer.writerow([
            METRICS[metric].export_label,
            stat.value,
            stat.detail,
            stat.year or "",
            stat.source or "",
        ])
    return buf.getvalue()


def export_filename(location: str, ext: str, on: Optional[date] = None) -> str:
    day = (on or date.today()).isoformat()
    return f"mind-the-gap-{location}-{day}.{ext}"
