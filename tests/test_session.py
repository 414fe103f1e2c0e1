"""Tests for the planning session state object."""

import pytest

import database as db
from agents.lazytrip.generator import BasePlanGenerator
from agents.lazytrip.models import (
    Activity,
    GenerationResult,
    GrammarVersion,
    GroundingLink,
    Region,
    TravelRequest,
)
from agents.lazytrip.parser import parse_result
from agents.lazytrip.session import PlanSession, RequestSequencer


class CannedGenerator(BasePlanGenerator):
    """Returns fixed text; an optional hook runs while the 'request' is in flight."""

    provider = "canned"

    def __init__(self, text, links=None, during_call=None, places=None):
        super().__init__(max_retries=0, base_delay=0)
        self.text = text
        self.links = links or []
        self.during_call = during_call
        self.places = places or []
        self.grammars = []

    def generate(self, request, grammar=GrammarVersion.STAR_RATING, sequence=0):
        self.grammars.append(grammar)
        return super().generate(request, grammar=grammar, sequence=sequence)

    def _call(self, system_instruction, prompt, location):
        if self.during_call:
            self.during_call()
        return GenerationResult(text=self.text, links=list(self.links))

    def get_nearby_recommendations(self, lat, lng):
        return self.places


def test_sequencer():
    sequencer = RequestSequencer()
    first = sequencer.issue()
    second = sequencer.issue()

    assert second > first
    assert sequencer.is_current(second)
    assert not sequencer.is_current(first)


def test_submit_parses_result(sample_text, sample_links):
    session = PlanSession(CannedGenerator(sample_text, sample_links))

    itinerary = session.submit(TravelRequest(region=Region.JEJU))

    assert itinerary == parse_result(sample_text, sample_links)
    assert session.itinerary is itinerary
    assert session.request.region == Region.JEJU
    assert session.result.sequence == 1


def test_submit_uses_session_grammar():
    generator = CannedGenerator("[DIFFICULTY] 99\n[DAY 1]\n[PLACE] Hotel Bed")
    session = PlanSession(generator, grammar=GrammarVersion.LAZY_SCORE)

    itinerary = session.submit()

    assert generator.grammars == [GrammarVersion.LAZY_SCORE]
    assert itinerary.metrics.difficulty == 99


def test_stale_response_is_discarded(sample_text):
    session = PlanSession(None)
    session.generator = CannedGenerator(sample_text, during_call=session.cancel)

    assert session.submit(TravelRequest(region=Region.BUSAN)) is None
    assert session.itinerary is None
    assert session.request == TravelRequest()


def test_newer_submission_wins(sample_text):
    session = PlanSession(None)
    newer = CannedGenerator("[TITLE] Newer\n[DAY 1]\n[PLACE] Newer Place")

    def resubmit():
        # A second submission lands while the first is still in flight
        session.generator = newer
        session.submit(TravelRequest(region=Region.JEJU))

    session.generator = CannedGenerator(sample_text, during_call=resubmit)

    assert session.submit(TravelRequest(region=Region.BUSAN)) is None
    assert session.itinerary.title == "Newer"
    assert session.request.region == Region.JEJU


def test_grammar_mismatch_warns(capsys):
    session = PlanSession(CannedGenerator("[DIFFICULTY] 90\n[DAY 1]\n[PLACE] Lobby"))

    itinerary = session.submit()

    assert itinerary.metrics.stars == 5
    assert "Warning" in capsys.readouterr().out


def test_edits_update_current_itinerary(edit_text):
    session = PlanSession(CannedGenerator(edit_text))
    session.submit()

    session.move_activity(0, 2, 0)
    session.delete_activity(0, 1)

    assert [a.name for a in session.itinerary.days[0].activities] == ["Hotel C", "Mall B"]
    assert session.itinerary.metrics.steps == 3000


def test_add_recommended_place(edit_text):
    bakery = Activity(name="Corner Bakery", lat="37.56", lng="126.97")
    session = PlanSession(CannedGenerator(edit_text, places=[bakery]))
    session.submit()

    places = session.recommendations_for(0, 0)
    session.add_place(0, 0, places[0])

    assert session.itinerary.days[0].activities[1].name == "Corner Bakery"
    assert "query=37.56,126.97" in session.itinerary.days[0].activities[1].map_link.uri


def test_no_recommendations_without_coordinates(edit_text):
    session = PlanSession(CannedGenerator(edit_text, places=[Activity(name="Anything")]))
    session.submit()

    # Hotel C has no [LATLNG]
    assert session.recommendations_for(0, 2) == []


def test_edit_without_itinerary():
    session = PlanSession(CannedGenerator(""))

    with pytest.raises(ValueError):
        session.delete_activity(0, 0)


def test_reset(sample_text):
    session = PlanSession(CannedGenerator(sample_text))
    session.submit()
    session.reset()

    assert session.itinerary is None
    assert session.result is None


def test_save_and_restore(temp_db, sample_text, sample_links):
    request = TravelRequest(region=Region.BUSAN, laziness_level=5)
    session = PlanSession(CannedGenerator(sample_text, sample_links), request=request)
    first_parse = session.submit()
    # Edits are not persisted; restore re-parses the raw text
    session.delete_activity(0, 0)

    saved = session.save_current()
    stored = db.get_saved_travel(saved.id)

    assert stored.content == sample_text
    assert stored.links == sample_links
    assert stored.region == Region.BUSAN
    assert stored.total_difficulty == 80
    assert stored.request["laziness_level"] == 5

    fresh = PlanSession(CannedGenerator(""))
    restored = fresh.restore(saved.id)

    assert restored == first_parse
    assert fresh.request == request
    assert fresh.result.links == [GroundingLink(title="Cafe A", uri="https://maps/a")]


def test_restore_missing(temp_db):
    session = PlanSession(CannedGenerator(""))

    assert session.restore("nope") is None
