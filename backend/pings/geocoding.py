"""
pings.geocoding — Reverse-geocoding collaborator.

Turns coordinates into a short "City, State, Country" label.  Failures
never block ping creation: they are logged and ``None`` is returned.
"""

from __future__ import annotations

import logging

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


def _format_result(result: dict) -> str | None:
    city = state = country = None
    for component in result.get("address_components", []):
        types = component.get("types", [])
        if "locality" in types:
            city = component.get("long_name")
        elif "administrative_area_level_1" in types:
            state = component.get("short_name")
        elif "country" in types:
            country = component.get("long_name")

    if city and state and country:
        return f"{city}, {state}, {country}"
    if city and state:
        return f"{city}, {state}"
    if city:
        return city
    return result.get("formatted_address")


def resolve_location_name(lat, lng) -> str | None:
    api_key = settings.GEOCODING_API_KEY
    if not api_key:
        logger.debug("GEOCODING_API_KEY not configured; skipping location lookup")
        return None

    try:
        response = requests.get(
            settings.GEOCODING_API_URL,
            params={"latlng": f"{lat},{lng}", "key": api_key},
            timeout=settings.EXTERNAL_HTTP_TIMEOUT,
        )
        response.raise_for_status()
        data = response.json()
    except (requests.RequestException, ValueError) as exc:
        logger.warning("Geocoding lookup failed for (%s, %s): %s", lat, lng, exc)
        return None

    results = data.get("results") or []
    if data.get("status") != "OK" or not results:
        logger.info("No geocoding results for (%s, %s): %s", lat, lng, data.get("status"))
        return None

    return _format_result(results[0])
