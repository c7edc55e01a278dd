# mind_the_gap/utils/locations.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import pycountry

WORLD_CODE = "WLD"
DEFAULT_LOCATION = "global"


@dataclass(frozen=True)
class Location:
    key: str          # path segment used by the API, e.g. "south-africa"
    code: str         # World Bank area code, e.g. "ZAF"
    name: str         # short display name interpolated into detail sentences


# Closed registry. Extend by adding rows; keys and codes must stay 1:1.
_LOCATIONS: List[Location] = [
    Location("global",       "WLD", "global"),
    Location("us",           "USA", "US"),
    Location("uk",           "GBR", "UK"),
    Location("canada",       "CAN", "Canada"),
    Location("france",       "FRA", "France"),
    Location("germany",      "DEU", "Germany"),
    Location("japan",        "JPN", "Japan"),
    Location("australia",    "AUS", "Australia"),
    Location("india",        "IND", "India"),
    Location("brazil",       "BRA", "Brazil"),
    Location("mexico",       "MEX", "Mexico"),
    Location("south-africa", "ZAF", "South Africa"),
    Location("sweden",       "SWE", "Sweden"),
    Location("norway",       "NOR", "Norway"),
]

LOCATIONS: Dict[str, Location] = {loc.key: loc for loc in _LOCATIONS}
_BY_CODE: Dict[str, Location] = {loc.code: loc for loc in _LOCATIONS}


def get_location(key: str) -> Optional[Location]:
    """Whitelist lookup; None for anything outside the registry."""
    if not key:
        return None
    return LOCATIONS.get(key)


def location_name(code: str) -> str:
    """Display name for an upstream code, 'global' when unknown."""
    loc = _BY_CODE.get(code)
    return loc.name if loc else LOCATIONS[DEFAULT_LOCATION].name


def iso_codes(location: Location) -> Dict[str, Optional[str]]:
    """
    Return a dict with: name, iso_alpha_2, iso_alpha_3, iso_numeric.
    The world aggregate has no ISO entry and gets None values.
    """
    if location.code == WORLD_CODE:
        return {"name": "World", "iso_alpha_2": None, "iso_alpha_3": None, "iso_numeric": None}

    country = pycountry.countries.get(alpha_3=location.code)
    if country is None:
        return {"name": location.name, "iso_alpha_2": None, "iso_alpha_3": location.code, "iso_numeric": None}
    return {
        "name": getattr(country, "name", location.name),
        "iso_alpha_2": getattr(country, "alpha_2", None),
        "iso_alpha_3": getattr(country, "alpha_3", None),
        "iso_numeric": getattr(country, "numeric", None),
    }


def list_locations() -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for loc in _LOCATIONS:
        out.append({"key": loc.key, "code": loc.code, "label": loc.name, "iso_codes": iso_codes(loc)})
    return out
