"""
Google Maps geocoding and driving-time lookups
"""

import logging
from typing import Optional

import httpx

from ..config import GOOGLE_MAPS_API_KEY

logger = logging.getLogger(__name__)

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
DISTANCE_MATRIX_URL = "https://maps.googleapis.com/maps/api/distancematrix/json"


async def geocode_address(address: Optional[str]) -> Optional[dict]:
    """
    Geocode an address string.

    Returns:
        {"latitude": float, "longitude": float} or None when there is no result
    """
    if not address or not address.strip():
        return None
    if not GOOGLE_MAPS_API_KEY:
        logger.warning("⚠️ GOOGLE_MAPS_API_KEY not set, skipping geocoding")
        return None

    try:
        async with httpx.AsyncClient(timeout=5.0) as client:
            response = await client.get(GEOCODE_URL, params={"address": address, "key": GOOGLE_MAPS_API_KEY})
            data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"❌ Geocoding request failed: {str(e)}")
        return None

    if data.get("status") != "OK" or not data.get("results"):
        logger.warning(f"⚠️ Geocoding returned no results for '{address}': {data.get('status')}")
        return None

    location = data["results"][0]["geometry"]["location"]
    return {"latitude": float(location["lat"]), "longitude": float(location["lng"])}


async def get_driving_time(origin: dict, destination: dict) -> Optional[dict]:
    """
    Driving duration between two {"latitude", "longitude"} points.

    Returns:
        {"text": str, "seconds": int} or None
    """
    if not GOOGLE_MAPS_API_KEY:
        logger.warning("⚠️ GOOGLE_MAPS_API_KEY not set, skipping distance request")
        return None

    params = {
        "origins": f"{origin['latitude']},{origin['longitude']}",
        "destinations": f"{destination['latitude']},{destination['longitude']}",
        "mode": "driving",
        "key": GOOGLE_MAPS_API_KEY,
    }
    try:
        async with httpx.AsyncClient(timeout=5.0) as client:
            response = await client.get(DISTANCE_MATRIX_URL, params=params)
            data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"❌ Distance matrix request failed: {str(e)}")
        return None

    try:
        element = data["rows"][0]["elements"][0]
    except (KeyError, IndexError):
        element = None
    if data.get("status") != "OK" or not element or element.get("status") != "OK":
        logger.warning(f"⚠️ No driving route found: {data.get('status')}")
        return None

    return {"text": element["duration"]["text"], "seconds": int(element["duration"]["value"])}


def build_address(*parts: Optional[str]) -> str:
    """Join the non-empty address parts with commas"""
    return ", ".join(str(p).strip() for p in parts if p and str(p).strip())
