"""Application state for one planning session.

Holds the form selections and the current itinerary so front ends do not
need globals. The parser stays a pure function and never sees this object.
"""

import threading
import uuid
from datetime import datetime
from typing import Optional

import database as db

from . import editor
from .generator import BasePlanGenerator
from .models import (
    Activity,
    GenerationResult,
    GrammarVersion,
    ParsedItinerary,
    SavedTravel,
    TravelRequest,
)
from .parser import check_grammar, parse_result


class RequestSequencer:
    """Monotonic request numbers; only the newest one is current."""

    def __init__(self):
        self._lock = threading.Lock()
        self._latest = 0

    def issue(self) -> int:
        with self._lock:
            self._latest += 1
            return self._latest

    def is_current(self, sequence: int) -> bool:
        with self._lock:
            return sequence == self._latest


class PlanSession:
    def __init__(
        self,
        generator: BasePlanGenerator,
        grammar: GrammarVersion = GrammarVersion.STAR_RATING,
        request: Optional[TravelRequest] = None,
    ):
        self.generator = generator
        self.grammar = GrammarVersion(grammar)
        self.request = request or TravelRequest()
        self.itinerary: Optional[ParsedItinerary] = None
        self.result: Optional[GenerationResult] = None
        self._sequencer = RequestSequencer()

    def submit(self, request: Optional[TravelRequest] = None) -> Optional[ParsedItinerary]:
        """Generate and parse a plan.

        Returns None when a newer submission or cancel() happened while this
        one was in flight; the stale response is dropped.
        Raises PlanGenerationError on failure.
        """
        request = request or self.request
        sequence = self._sequencer.issue()
        result = self.generator.generate(request, grammar=self.grammar, sequence=sequence)

        if not self._sequencer.is_current(sequence):
            print(f"[SESSION] Discarding stale response #{sequence}")
            return None

        self.request = request

        warning = check_grammar(result.text, self.grammar)
        if warning:
            print(f"[SESSION] Warning: {warning}")

        self.result = result
        self.itinerary = parse_result(result.text, result.links, self.grammar)
        return self.itinerary

    def cancel(self) -> None:
        """Invalidate any request still in flight."""
        self._sequencer.issue()

    def reset(self) -> None:
        """Start over with a new request."""
        self.cancel()
        self.itinerary = None
        self.result = None

    # Editing

    def move_activity(self, day_index: int, from_index: int, to_index: int) -> ParsedItinerary:
        self.itinerary = editor.move_activity(self._require_itinerary(), day_index, from_index, to_index)
        return self.itinerary

    def delete_activity(self, day_index: int, activity_index: int) -> ParsedItinerary:
        self.itinerary = editor.delete_activity(self._require_itinerary(), day_index, activity_index)
        return self.itinerary

    def add_place(self, day_index: int, after_index: int, place: Activity) -> ParsedItinerary:
        self.itinerary = editor.insert_activity(self._require_itinerary(), day_index, after_index, place)
        return self.itinerary

    def recommendations_for(self, day_index: int, activity_index: int) -> list[Activity]:
        """Nearby places for an activity that has coordinates."""
        activity = self._require_itinerary().days[day_index].activities[activity_index]
        if not activity.has_coordinates:
            return []
        return self.generator.get_nearby_recommendations(activity.lat, activity.lng)

    # Saving

    def save_current(self) -> SavedTravel:
        """Save the raw text of the current plan. Edits are not persisted."""
        itinerary = self._require_itinerary()
        saved = SavedTravel(
            id=uuid.uuid4().hex,
            title=itinerary.title,
            content=self.result.text,
            links=list(self.result.links),
            saved_at=datetime.now().isoformat(timespec="seconds"),
            region=self.request.region,
            grammar=self.grammar,
            total_difficulty=itinerary.total_difficulty,
            request=self.request.to_dict(),
        )
        db.add_saved_travel(saved)
        return saved

    def restore(self, travel_id: str) -> Optional[ParsedItinerary]:
        """Load a saved plan by re-parsing its stored text."""
        saved = db.get_saved_travel(travel_id)
        if saved is None:
            return None
        self.cancel()
        self.grammar = saved.grammar
        if saved.request:
            try:
                self.request = TravelRequest.from_dict(saved.request)
            except (KeyError, ValueError, TypeError) as e:
                print(f"[SESSION] Ignoring unreadable saved selections: {e}")
        self.result = GenerationResult(text=saved.content, links=saved.links)
        self.itinerary = db.parse_saved_travel(saved)
        return self.itinerary

    def _require_itinerary(self) -> ParsedItinerary:
        if self.itinerary is None:
            raise ValueError("No itinerary in this session yet")
        return self.itinerary
