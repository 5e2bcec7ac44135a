"""Match geographic features (state boundaries) to jurisdiction codes."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

RAW_DIR = Path(__file__).resolve().parent.parent / "data" / "raw"
GEOGRAPHY_PATH = RAW_DIR / "australia_states.geojson"

# Tried in order; codes come before names
CANDIDATE_PROPERTIES = (
    "postal", "postcode", "STE_CODE", "STATE_ABBR", "state_abbr",
    "STATE", "STATE_NAME", "NAME", "name",
)
FULL_NAME_PROPERTIES = ("STATE_NAME", "STATE", "NAME", "name")

STATE_ABBREVIATIONS = {
    "New South Wales": "NSW",
    "Victoria": "VIC",
    "Queensland": "QLD",
    "Western Australia": "WA",
    "South Australia": "SA",
    "Tasmania": "TAS",
    "Northern Territory": "NT",
    "Australian Capital Territory": "ACT",
}


class GeographyUnavailable(Exception):
    """The state boundary file is missing or not a GeoJSON FeatureCollection."""


def _full_name(properties: Mapping[str, Any]) -> str:
    for prop in FULL_NAME_PROPERTIES:
        if properties.get(prop):
            return str(properties[prop])
    return ""


def resolve(properties: Mapping[str, Any], known_keys: Iterable[str]) -> str | None:
    """Return the jurisdiction key a feature represents, or None.

    Precedence: candidate properties as-is, then trimmed, then the full
    state name through STATE_ABBREVIATIONS, then a case-insensitive match
    of the full name against ``known_keys``.
    """
    keys = list(dict.fromkeys(known_keys))
    known = set(keys)
    candidates = [str(properties[p]) for p in CANDIDATE_PROPERTIES if properties.get(p)]

    for c in candidates:
        if c in known:
            return c
    for c in candidates:
        if c.strip() in known:
            return c.strip()

    full = _full_name(properties)
    if not full:
        return None
    abbr = STATE_ABBREVIATIONS.get(full)
    if abbr and abbr in known:
        return abbr
    for key in keys:
        if str(key).lower() == full.lower():
            return key
    return None


def annotate_features(collection: dict, known_keys: Iterable[str]) -> dict:
    """Write ``_match`` and ``_label`` into every feature's properties."""
    keys = list(dict.fromkeys(known_keys))
    for feature in collection.get("features", []):
        props = feature.setdefault("properties", {}) or {}
        feature["properties"] = props
        match = resolve(props, keys)
        props["_match"] = match
        props["_label"] = match or _full_name(props) or "Unknown"
    return collection


def load_geography(path: str | Path = GEOGRAPHY_PATH) -> dict:
    path = Path(path)
    if not path.exists():
        raise GeographyUnavailable(
            f"Map file not found. Place a GeoJSON of Australian states at {path}."
        )
    try:
        geo = json.loads(path.read_text())
    except (OSError, ValueError) as exc:
        raise GeographyUnavailable(f"Map file could not be read: {path.name} ({exc})") from exc
    if not isinstance(geo, dict) or geo.get("type") != "FeatureCollection":
        raise GeographyUnavailable(
            f"Map file {path.name} is not a GeoJSON FeatureCollection."
        )
    return geo
