"""
Unit tests — pings.proximity (pure functions, no database).
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from pings.proximity import (
    LocationSample,
    coordinates_valid,
    haversine_distance,
    implied_speed_kmh,
    validate_proximity,
)

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
PING_LAT, PING_LNG = 40.7128, -74.0060
# One metre of latitude, in degrees.
M_LAT = 1 / 111_195


def _ping(radius=5, claim_type="proximity"):
    return SimpleNamespace(lat=PING_LAT, lng=PING_LNG, claim_type=claim_type, proximity_radius=radius)


class TestHaversine:

    def test_zero_distance(self):
        assert haversine_distance(PING_LAT, PING_LNG, PING_LAT, PING_LNG) == 0

    def test_one_degree_of_latitude(self):
        assert haversine_distance(0, 0, 1, 0) == pytest.approx(111_195, rel=1e-3)

    def test_symmetry(self):
        a = haversine_distance(PING_LAT, PING_LNG, 51.5074, -0.1278)
        b = haversine_distance(51.5074, -0.1278, PING_LAT, PING_LNG)
        assert a == pytest.approx(b)


class TestCoordinatesValid:

    @pytest.mark.parametrize("lat,lng", [(0, 0), (90, 180), (-90, -180), ("12.5", "-3.25")])
    def test_accepts_in_range(self, lat, lng):
        assert coordinates_valid(lat, lng)

    @pytest.mark.parametrize("lat,lng", [(91, 0), (0, 181), (None, 0), ("abc", 0), (float("nan"), 0)])
    def test_rejects_out_of_range_or_garbage(self, lat, lng):
        assert not coordinates_valid(lat, lng)


class TestImpliedSpeed:

    def test_non_positive_elapsed_is_infinite(self):
        sample = LocationSample(lat=PING_LAT, lng=PING_LNG, timestamp=NOW)
        assert implied_speed_kmh(sample, PING_LAT, PING_LNG, NOW) == math.inf

    def test_speed_in_kmh(self):
        sample = LocationSample(lat=0, lng=0, timestamp=NOW - timedelta(hours=1))
        assert implied_speed_kmh(sample, 1, 0, NOW) == pytest.approx(111.2, rel=1e-2)


class TestValidateProximity:

    def test_inside_radius_without_history_is_accepted(self):
        result = validate_proximity(PING_LAT + 3 * M_LAT, PING_LNG, _ping(), now=NOW)
        assert result.valid
        assert result.distance_m == pytest.approx(3.0, abs=0.1)
        assert result.radius_m == 5

    def test_outside_radius_is_rejected_with_distance(self):
        result = validate_proximity(PING_LAT + 12 * M_LAT, PING_LNG, _ping(), now=NOW)
        assert not result.valid
        assert not result.suspicious
        assert "within 5 meters" in result.error
        assert "12.0 meters away" in result.error

    def test_just_inside_large_radius_is_accepted(self):
        ping = _ping(radius=20)
        result = validate_proximity(PING_LAT + 19.9 * M_LAT, PING_LNG, ping, now=NOW)
        assert result.valid

    def test_missing_radius_uses_default(self):
        result = validate_proximity(PING_LAT + 4 * M_LAT, PING_LNG, _ping(radius=None), now=NOW, default_radius_m=5)
        assert result.valid
        assert result.radius_m == 5

    def test_teleport_is_rejected_regardless_of_distance(self):
        far_away = LocationSample(lat=51.5074, lng=-0.1278, timestamp=NOW - timedelta(minutes=10))
        result = validate_proximity(PING_LAT, PING_LNG, _ping(), [far_away], now=NOW)
        assert not result.valid
        assert result.suspicious
        assert result.suspicious_reason == "Unrealistic movement speed"

    def test_plausible_history_does_not_block(self):
        nearby = LocationSample(lat=PING_LAT + 100 * M_LAT, lng=PING_LNG, timestamp=NOW - timedelta(minutes=5))
        result = validate_proximity(PING_LAT + 2 * M_LAT, PING_LNG, _ping(), [nearby], now=NOW)
        assert result.valid

    def test_only_latest_sample_is_compared(self):
        old_far = LocationSample(lat=51.5074, lng=-0.1278, timestamp=NOW - timedelta(minutes=30))
        recent_near = LocationSample(lat=PING_LAT, lng=PING_LNG, timestamp=NOW - timedelta(minutes=1))
        result = validate_proximity(PING_LAT, PING_LNG, _ping(), [old_far, recent_near], now=NOW)
        assert result.valid

    def test_invalid_coordinates_are_flagged(self):
        result = validate_proximity(200, 0, _ping(), now=NOW)
        assert not result.valid
        assert result.invalid_input

    def test_nfc_ping_is_not_proximity_claimable(self):
        result = validate_proximity(PING_LAT, PING_LNG, _ping(claim_type="nfc"), now=NOW)
        assert not result.valid
        assert result.invalid_input
