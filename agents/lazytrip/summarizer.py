"""Render itineraries as readable text."""

from typing import Iterable

from .models import LazyScore, ParsedItinerary, SavedTravel


def format_metrics(itinerary: ParsedItinerary) -> list[str]:
    metrics = itinerary.metrics
    if isinstance(metrics, LazyScore):
        return [f"**Lazy score:** {metrics.difficulty}/100"]
    return [
        f"**Stars:** {'★' * metrics.stars}{'☆' * (5 - metrics.stars)}",
        f"**Steps:** ~{metrics.steps:,}",
        f"**Movements:** {metrics.movements}",
        f"**Indoor:** {metrics.indoor}%",
    ]


def quick_summary(itinerary: ParsedItinerary, show_links: bool = True) -> str:
    """Generate a quick markdown summary of a parsed itinerary."""
    lines = []

    # Header
    lines.append(f"# {itinerary.title}")
    lines.append("")
    lines.append(f"> {itinerary.comment}")
    lines.append("")
    lines.extend(format_metrics(itinerary))

    for day in itinerary.days:
        lines.append(f"\n## Day {day.day}")
        for index, activity in enumerate(day.activities, start=1):
            extra = ""
            if activity.photo is not None:
                extra = f" (photo {activity.photo}/5)"
            lines.append(f"{index}. **{activity.name}**{extra}")
            if activity.desc:
                lines.append(f"   - {activity.desc}")
            if activity.tip:
                lines.append(f"   - Tip: {activity.tip}")
            if show_links and activity.map_link:
                lines.append(f"   - Map: {activity.map_link.uri}")

    if not itinerary.days:
        lines.append("\n(No places could be read from this plan.)")

    return "\n".join(lines)


def saved_list_summary(travels: Iterable[SavedTravel]) -> str:
    """One line per saved plan."""
    lines = []
    for travel in travels:
        region = travel.region.value.split(" ")[0]
        lines.append(f"{travel.id}  {travel.saved_at}  [{region}]  {travel.title}  ({travel.total_difficulty})")
    if not lines:
        return "No saved plans yet."
    return "\n".join(lines)
