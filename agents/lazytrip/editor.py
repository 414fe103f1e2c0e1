"""Edit parsed itineraries.

Every function returns a new itinerary; the one passed in is left untouched.
"""

import copy
import dataclasses
from typing import Optional
from urllib.parse import quote_plus

from .models import Activity, GroundingLink, ParsedItinerary, StarRating, new_activity_id


MAPS_SEARCH_URL = "https://www.google.com/maps/search/?api=1&query={query}"


def maps_search_link(activity: Activity) -> GroundingLink:
    """Google Maps search link by coordinates, or by name when there are none."""
    if activity.has_coordinates:
        query = f"{activity.lat},{activity.lng}"
    else:
        query = quote_plus(activity.name)
    return GroundingLink(title=activity.name, uri=MAPS_SEARCH_URL.format(query=query))


def recompute_derived_stats(itinerary: ParsedItinerary) -> ParsedItinerary:
    """Rescale steps and movements to the current number of activities.

    This is a linear estimate from the parse-time values, not a route
    simulation. Only the star-rating metrics carry derived stats.
    """
    result = copy.deepcopy(itinerary)
    baseline = result.baseline_metrics
    if not isinstance(result.metrics, StarRating) or not isinstance(baseline, StarRating):
        return result
    if result.baseline_activity_count <= 0:
        return result

    ratio = result.activity_count / result.baseline_activity_count
    result.metrics = dataclasses.replace(
        result.metrics,
        steps=max(0, round(baseline.steps * ratio)),
        movements=max(0, round(baseline.movements * ratio)),
    )
    return result


def move_activity(
    itinerary: ParsedItinerary, day_index: int, from_index: int, to_index: int
) -> ParsedItinerary:
    """Move an activity within a day. Out-of-range positions change nothing."""
    result = copy.deepcopy(itinerary)
    if not 0 <= day_index < len(result.days):
        return result
    activities = result.days[day_index].activities
    if not 0 <= from_index < len(activities) or not 0 <= to_index < len(activities):
        return result

    activities.insert(to_index, activities.pop(from_index))
    return recompute_derived_stats(result)


def delete_activity(itinerary: ParsedItinerary, day_index: int, activity_index: int) -> ParsedItinerary:
    """Remove one activity. The day stays even if it becomes empty."""
    result = copy.deepcopy(itinerary)
    if not 0 <= day_index < len(result.days):
        return result
    activities = result.days[day_index].activities
    if not 0 <= activity_index < len(activities):
        return result

    del activities[activity_index]
    return recompute_derived_stats(result)


def insert_activity(
    itinerary: ParsedItinerary,
    day_index: int,
    after_index: int,
    activity: Activity,
    map_link: Optional[GroundingLink] = None,
) -> ParsedItinerary:
    """Insert a place right after `after_index` (-1 puts it first)."""
    result = copy.deepcopy(itinerary)
    if not 0 <= day_index < len(result.days):
        return result

    new_activity = dataclasses.replace(activity, id=new_activity_id())
    new_activity.map_link = map_link or activity.map_link or maps_search_link(activity)

    activities = result.days[day_index].activities
    position = min(max(after_index + 1, 0), len(activities))
    activities.insert(position, new_activity)
    return recompute_derived_stats(result)
