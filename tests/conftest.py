"""Shared fixtures for the lazy trip tests."""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from agents.lazytrip.models import GroundingLink


SAMPLE_TEXT = """[TITLE] Test Trip
[STARS] 4
[COMMENT] Fine, I guess.
[DAY 1]
[PLACE] Cafe A
[DESC] Nice view
[TIP] Sit by window
[PLACE] X
[DESC] too short name, should be dropped
[DAY 2]
[PLACE] Museum B
[DESC] Quiet
"""

EDIT_TEXT = """[TITLE] 역세권 껌딱지 여행
[STARS] 4
[STEPS] 4000
[MOVEMENTS] 4
[INDOOR] 80
[COMMENT] 안 걸어도 됩니다.
[DAY 1]
[PLACE] Cafe A
[LATLNG] 37.5665, 126.9780
[DESC] Right by exit 2
[PLACE] Mall B
[LATLNG] 37.5700, 126.9800
[DESC] Everything under one roof
[PLACE] Hotel C
[DESC] Bed
[DAY 2]
[PLACE] Market D
[LATLNG] 35.1000, 129.0300
[DESC] Snacks
"""


@pytest.fixture
def sample_text():
    return SAMPLE_TEXT


@pytest.fixture
def sample_links():
    return [GroundingLink(title="Cafe A", uri="https://maps/a")]


@pytest.fixture
def edit_text():
    return EDIT_TEXT


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """Point the saved-travel store at a throwaway sqlite file."""
    db_path = tmp_path / "lazytrip_test.db"
    monkeypatch.setenv("LAZYTRIP_DB_PATH", str(db_path))
    return db_path
