"""Immersion Facilitée — Agency Matching Algorithms."""

from .address import normalize_address
from .emails import MergedEmails, merge_validator_email
from .geo_proximity import (
    GeoPosition,
    bounding_box_filter,
    find_nearby_candidates,
    haversine_km,
)

__all__ = [
    "normalize_address",
    "MergedEmails",
    "merge_validator_email",
    "GeoPosition",
    "bounding_box_filter",
    "find_nearby_candidates",
    "haversine_km",
]
