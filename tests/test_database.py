"""Tests for the saved travel store."""

import database as db
from agents.lazytrip.models import GrammarVersion, GroundingLink, Region, SavedTravel
from agents.lazytrip.parser import parse_result


def make_travel(travel_id, saved_at, content, **kwargs):
    return SavedTravel(
        id=travel_id,
        title=kwargs.pop("title", f"Trip {travel_id}"),
        content=content,
        saved_at=saved_at,
        **kwargs,
    )


def test_empty_store(temp_db):
    assert db.get_saved_travels() == []
    assert db.get_saved_travel("missing") is None
    assert db.load_itinerary("missing") is None


def test_add_and_list_newest_first(temp_db, sample_text):
    db.add_saved_travel(make_travel("old", "2026-01-01T10:00:00", sample_text))
    db.add_saved_travel(make_travel("new", "2026-03-01T10:00:00", sample_text, region=Region.BUSAN))

    travels = db.get_saved_travels()

    assert [t.id for t in travels] == ["new", "old"]
    assert travels[0].region == Region.BUSAN
    assert travels[1].region == Region.SEOUL


def test_round_trip_fields(temp_db, sample_text, sample_links):
    travel = make_travel(
        "t1",
        "2026-02-02T09:30:00",
        sample_text,
        links=sample_links,
        grammar=GrammarVersion.LAZY_SCORE,
        total_difficulty=88,
        request={"region": "JEJU", "laziness_level": 5},
    )
    db.add_saved_travel(travel)

    loaded = db.get_saved_travel("t1")

    assert loaded == travel


def test_load_itinerary_reparses_raw_text(temp_db, sample_text, sample_links):
    db.add_saved_travel(make_travel("t1", "2026-02-02T09:30:00", sample_text, links=sample_links))

    itinerary = db.load_itinerary("t1")

    assert itinerary == parse_result(sample_text, sample_links)
    assert itinerary.days[0].activities[0].map_link == GroundingLink(title="Cafe A", uri="https://maps/a")


def test_saving_same_id_replaces(temp_db, sample_text):
    db.add_saved_travel(make_travel("t1", "2026-01-01T00:00:00", sample_text, title="First"))
    db.add_saved_travel(make_travel("t1", "2026-01-02T00:00:00", sample_text, title="Second"))

    travels = db.get_saved_travels()

    assert len(travels) == 1
    assert travels[0].title == "Second"


def test_delete(temp_db, sample_text):
    db.add_saved_travel(make_travel("t1", "2026-01-01T00:00:00", sample_text))

    assert db.delete_saved_travel("t1") is True
    assert db.delete_saved_travel("t1") is False
    assert db.get_saved_travels() == []


def test_corrupt_rows_are_skipped(temp_db, sample_text, capsys):
    db.add_saved_travel(make_travel("good", "2026-01-01T00:00:00", sample_text))
    with db.get_db() as conn:
        conn.execute("""
            INSERT INTO saved_travels (id, title, content, links, saved_at, region, grammar, total_difficulty, request)
            VALUES ('bad', 'Broken', 'text', 'not json', '2026-05-01T00:00:00', 'SEOUL', 'star_rating', 0, '{}')
        """)

    travels = db.get_saved_travels()

    assert [t.id for t in travels] == ["good"]
    assert db.get_saved_travel("bad") is None
    assert "[DB]" in capsys.readouterr().out


def test_db_path_from_environment(temp_db, sample_text):
    db.add_saved_travel(make_travel("t1", "2026-01-01T00:00:00", sample_text))

    assert db.get_db_path() == str(temp_db)
    assert temp_db.exists()
