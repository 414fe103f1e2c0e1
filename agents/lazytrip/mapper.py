"""Map links, geocoding and marker data for parsed itineraries."""

from __future__ import annotations

import copy
import time
from typing import Optional

import requests

from .editor import maps_search_link
from .models import Activity, ParsedItinerary, Region


NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"

# Nominatim requires a delay between requests (1 request per second)
NOMINATIM_DELAY = 1.1

# Stop geocoding after this many misses in a row (likely network/rate limit issue)
MAX_CONSECUTIVE_FAILURES = 3

# Marker colors by day, cycled
DAY_COLORS = [
    "#FF6B35",  # Orange
    "#4285F4",  # Google blue
    "#34A853",  # Google green
    "#9C27B0",  # Purple
    "#EA4335",  # Google red
]


def region_hint(region: Optional[Region]) -> str:
    """City name used to bias geocoding queries, e.g. "서울" for Region.SEOUL."""
    if region is None or region == Region.OVERSEAS:
        return ""
    return region.value.split(" ")[0]


class ItineraryMapper:
    """Resolve map locations for activities using OpenStreetMap/Nominatim."""

    def __init__(self, user_agent: str = "Lazy-Wander/1.0"):
        self.user_agent = user_agent
        self._geocode_failures = 0
        self._last_geocode_time = 0.0

    def map_link_for(self, activity: Activity) -> str:
        """The grounding link if the parser matched one, else a Maps search URL."""
        if activity.map_link and activity.map_link.uri:
            return activity.map_link.uri
        return maps_search_link(activity).uri

    def geocode_missing(self, itinerary: ParsedItinerary, region_hint: str = "") -> ParsedItinerary:
        """Return a copy with coordinates filled in for activities lacking them."""
        result = copy.deepcopy(itinerary)
        self._geocode_failures = 0

        for day in result.days:
            for activity in day.activities:
                if activity.has_coordinates:
                    continue
                if self._geocode_failures >= MAX_CONSECUTIVE_FAILURES:
                    print(f"[GEOCODING] Stopping after {self._geocode_failures} consecutive failures")
                    return result
                self._geocode_activity(activity, region_hint)

        return result

    def create_map_data(self, itinerary: ParsedItinerary) -> dict:
        """Marker data grouped by day, for activities that have coordinates."""
        markers = []
        for day_index, day in enumerate(itinerary.days):
            color = DAY_COLORS[day_index % len(DAY_COLORS)]
            for order, activity in enumerate(day.activities, start=1):
                if not activity.has_coordinates:
                    continue
                try:
                    lat, lng = float(activity.lat), float(activity.lng)
                except ValueError:
                    continue
                markers.append({
                    "day": day.day,
                    "order": order,
                    "name": activity.name,
                    "lat": lat,
                    "lng": lng,
                    "color": color,
                    "url": self.map_link_for(activity),
                })

        center = None
        if markers:
            center = {
                "lat": sum(m["lat"] for m in markers) / len(markers),
                "lng": sum(m["lng"] for m in markers) / len(markers),
            }
        return {"title": itinerary.title, "center": center, "markers": markers}

    def _geocode_activity(self, activity: Activity, region_hint: str = "") -> None:
        queries = []
        if region_hint and region_hint.lower() not in activity.name.lower():
            queries.append(f"{activity.name}, {region_hint}")
        queries.append(activity.name)

        for query in queries:
            result = self._do_geocode(query)
            if result:
                activity.lat = str(result["lat"])
                activity.lng = str(result["lng"])
                self._geocode_failures = 0
                return

        self._geocode_failures += 1

    def _do_geocode(self, query: str) -> Optional[dict]:
        """Execute a geocoding request using Nominatim and return result or None."""
        try:
            # Rate limiting - Nominatim requires max 1 request per second
            elapsed = time.time() - self._last_geocode_time
            if elapsed < NOMINATIM_DELAY:
                time.sleep(NOMINATIM_DELAY - elapsed)

            params = {"q": query, "format": "json", "limit": 1}
            headers = {"User-Agent": self.user_agent}

            self._last_geocode_time = time.time()
            response = requests.get(NOMINATIM_URL, params=params, headers=headers, timeout=10)
            data = response.json()

            if data:
                return {"lat": float(data[0]["lat"]), "lng": float(data[0]["lon"])}
            return None
        except requests.Timeout:
            print(f"[GEOCODING] Timed out for: {query}")
            return None
        except (requests.RequestException, ValueError, KeyError) as e:
            print(f"[GEOCODING] Failed for {query}: {e}")
            return None
