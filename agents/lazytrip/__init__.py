"""Lazy trip planner - generate, parse, edit and save minimal-movement itineraries."""

from .models import (
    Activity,
    Day,
    GenerationResult,
    GrammarVersion,
    GroundingLink,
    LazyScore,
    ParsedItinerary,
    SavedTravel,
    StarRating,
    TravelRequest,
)
from .parser import ItineraryTextParser, parse_result
from .editor import recompute_derived_stats
from .generator import ClaudePlanGenerator, GeminiPlanGenerator, PlanGenerationError
from .mapper import ItineraryMapper

__all__ = [
    "Activity",
    "Day",
    "GenerationResult",
    "GrammarVersion",
    "GroundingLink",
    "LazyScore",
    "ParsedItinerary",
    "SavedTravel",
    "StarRating",
    "TravelRequest",
    "ItineraryTextParser",
    "parse_result",
    "recompute_derived_stats",
    "ClaudePlanGenerator",
    "GeminiPlanGenerator",
    "PlanGenerationError",
    "ItineraryMapper",
]
