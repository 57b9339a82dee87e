"""
pings.proximity — Distance and movement-plausibility checks.

Pure functions only: no database access, no settings lookups.  The
service layer feeds in the ping, the reported location and the
claimant's previous samples, and turns a rejected ``ProximityResult``
into the appropriate domain error.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable

EARTH_RADIUS_M = 6_371_000
DEFAULT_RADIUS_M = 5
DEFAULT_MAX_SPEED_KMH = 200.0


@dataclass(frozen=True)
class LocationSample:
    lat: float
    lng: float
    timestamp: datetime


@dataclass(frozen=True)
class ProximityResult:
    valid: bool
    distance_m: float
    radius_m: int | None = None
    error: str = ""
    invalid_input: bool = False
    suspicious: bool = False
    suspicious_reason: str = ""


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in meters between two WGS84 points."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def coordinates_valid(lat: Any, lng: Any) -> bool:
    try:
        lat = float(lat)
        lng = float(lng)
    except (TypeError, ValueError):
        return False
    if math.isnan(lat) or math.isnan(lng):
        return False
    return -90 <= lat <= 90 and -180 <= lng <= 180


def implied_speed_kmh(previous: LocationSample, lat: float, lng: float, at: datetime) -> float:
    """
    Speed needed to travel from ``previous`` to (lat, lng) by ``at``.

    A non-positive time delta yields ``math.inf`` so it is always treated
    as implausible.
    """
    elapsed = (at - previous.timestamp).total_seconds()
    if elapsed <= 0:
        return math.inf
    meters = haversine_distance(float(previous.lat), float(previous.lng), lat, lng)
    return (meters / elapsed) * 3.6


def _round1(value: float) -> float:
    return round(value, 1)


def validate_proximity(
    user_lat: Any,
    user_lng: Any,
    ping: Any,
    history: Iterable[LocationSample] | None = None,
    *,
    now: datetime,
    max_speed_kmh: float = DEFAULT_MAX_SPEED_KMH,
    default_radius_m: int = DEFAULT_RADIUS_M,
) -> ProximityResult:
    """
    Decide whether a reported location may claim ``ping``.

    ``ping`` only needs ``lat``, ``lng``, ``claim_type`` and
    ``proximity_radius`` attributes.  When ``history`` holds at least one
    sample, a movement faster than ``max_speed_kmh`` since the most recent
    one rejects the attempt as suspicious whatever the distance.
    """
    if not coordinates_valid(user_lat, user_lng):
        return ProximityResult(
            valid=False,
            distance_m=0.0,
            error="Invalid coordinates provided.",
            invalid_input=True,
            suspicious=True,
        )
    if not coordinates_valid(ping.lat, ping.lng):
        return ProximityResult(
            valid=False,
            distance_m=0.0,
            error="Invalid ping coordinates.",
            invalid_input=True,
        )

    if ping.claim_type != "proximity":
        return ProximityResult(
            valid=False,
            distance_m=0.0,
            error="This ping does not use proximity claiming.",
            invalid_input=True,
        )

    user_lat = float(user_lat)
    user_lng = float(user_lng)
    radius = ping.proximity_radius or default_radius_m
    distance = haversine_distance(user_lat, user_lng, float(ping.lat), float(ping.lng))
    rounded = _round1(distance)

    samples = list(history or [])
    if samples:
        latest = max(samples, key=lambda s: s.timestamp)
        if implied_speed_kmh(latest, user_lat, user_lng, now) > max_speed_kmh:
            return ProximityResult(
                valid=False,
                distance_m=rounded,
                radius_m=radius,
                error="Suspicious movement detected. Please try again.",
                suspicious=True,
                suspicious_reason="Unrealistic movement speed",
            )

    if distance > radius:
        return ProximityResult(
            valid=False,
            distance_m=rounded,
            radius_m=radius,
            error=(
                f"You must be within {radius} meters to claim this ping. "
                f"You are {rounded} meters away."
            ),
        )

    return ProximityResult(valid=True, distance_m=rounded, radius_m=radius)
