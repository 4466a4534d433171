"""
Immersion Facilitée — Geospatial Proximity Matching

Great-circle distance between agency positions using the Haversine formula,
plus a radius filter used by the in-memory agency store to answer
"which agencies sit within N km of this referential agency".

Radius semantics match the PostGIS query of the database store: kilometres,
inclusive (a candidate exactly on the radius is a match).

No external geo-libraries required — pure math with stdlib.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Iterable, TypeVar


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EARTH_RADIUS_KM = 6371.0

T = TypeVar("T")


@dataclass(frozen=True)
class GeoPosition:
    """A WGS84 position, in degrees."""
    lat: float
    lon: float

    def is_valid(self) -> bool:
        """Check whether the position is a plausible WGS84 coordinate."""
        return -90.0 <= self.lat <= 90.0 and -180.0 <= self.lon <= 180.0


# ---------------------------------------------------------------------------
# Core distance calculation
# ---------------------------------------------------------------------------


def haversine_km(pos_a: GeoPosition, pos_b: GeoPosition) -> float:
    """
    Compute the great-circle distance in kilometres between two WGS84 points
    using the Haversine formula.
    """
    lat1 = math.radians(pos_a.lat)
    lat2 = math.radians(pos_b.lat)
    dlat = math.radians(pos_b.lat - pos_a.lat)
    dlon = math.radians(pos_b.lon - pos_a.lon)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


# ---------------------------------------------------------------------------
# Candidate filtering
# ---------------------------------------------------------------------------


def bounding_box_filter(
    target: GeoPosition,
    radius_km: float,
) -> tuple[float, float, float, float]:
    """
    Return a lat/lon bounding box that encloses a circle of the given radius
    around the target position.

    Returns (min_lat, max_lat, min_lon, max_lon) in degrees.
    """
    lat_delta = radius_km / EARTH_RADIUS_KM * (180.0 / math.pi)
    lon_delta = lat_delta / max(math.cos(math.radians(target.lat)), 1e-12)

    return (
        target.lat - lat_delta,
        target.lat + lat_delta,
        target.lon - lon_delta,
        target.lon + lon_delta,
    )


def find_nearby_candidates(
    target: GeoPosition,
    candidates: Iterable[T],
    radius_km: float,
    *,
    position_of: Callable[[T], GeoPosition | None],
) -> list[tuple[float, T]]:
    """
    Filter candidates to those within radius_km of the target (inclusive).

    Uses a bounding-box pre-filter then exact Haversine check.  Returns
    (distance_km, candidate) pairs sorted by distance, ascending.  The sort is
    stable, so equidistant candidates keep their input order.

    Parameters
    ----------
    target : GeoPosition
        The reference point.
    candidates : iterable
        Any objects; ``position_of`` extracts their position.
    radius_km : float
        Maximum distance to consider.
    position_of : callable
        Returns the candidate's position, or None to skip it.
    """
    min_lat, max_lat, min_lon, max_lon = bounding_box_filter(target, radius_km)

    nearby: list[tuple[float, T]] = []
    for candidate in candidates:
        pos = position_of(candidate)
        if pos is None:
            continue
        if not (min_lat <= pos.lat <= max_lat and min_lon <= pos.lon <= max_lon):
            continue
        dist = haversine_km(target, pos)
        if dist <= radius_km:
            nearby.append((dist, candidate))

    nearby.sort(key=lambda pair: pair[0])
    return nearby
