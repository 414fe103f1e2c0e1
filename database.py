"""SQLite storage for saved travel plans.

Plans are stored as the raw model text plus the selections that produced
them. Loading a plan re-runs the parser, so the parser stays the only
definition of the itinerary structure.
"""

import os
import json
import sqlite3
from contextlib import contextmanager
from typing import Optional, List

from agents.lazytrip.models import GrammarVersion, GroundingLink, ParsedItinerary, Region, SavedTravel
from agents.lazytrip.parser import parse_result


DEFAULT_DB_PATH = os.path.join(os.path.dirname(__file__), "lazytrip.db")


def get_db_path() -> str:
    """Database file path; LAZYTRIP_DB_PATH overrides the default."""
    return os.environ.get("LAZYTRIP_DB_PATH") or DEFAULT_DB_PATH


def get_connection():
    """Get a database connection."""
    conn = sqlite3.connect(get_db_path())
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def get_db():
    """Context manager for database connections."""
    conn = get_connection()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db():
    """Initialize database tables."""
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS saved_travels (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                content TEXT NOT NULL,
                links TEXT,
                saved_at TEXT NOT NULL,
                region TEXT,
                grammar TEXT NOT NULL,
                total_difficulty INTEGER,
                request TEXT
            )
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_saved_travels_saved_at ON saved_travels(saved_at)
        """)


def _row_to_saved_travel(row) -> SavedTravel:
    """Build a SavedTravel from a row. Raises on corrupt content."""
    links = [GroundingLink.from_dict(link) for link in json.loads(row["links"] or "[]")]
    return SavedTravel(
        id=row["id"],
        title=row["title"],
        content=row["content"],
        links=links,
        saved_at=row["saved_at"],
        region=Region[row["region"]] if row["region"] else Region.SEOUL,
        grammar=GrammarVersion(row["grammar"]),
        total_difficulty=row["total_difficulty"] or 0,
        request=json.loads(row["request"] or "{}"),
    )


# ============ Saved Travel Functions ============

def add_saved_travel(travel: SavedTravel) -> str:
    """Save a travel plan, replacing one with the same id. Returns the id."""
    init_db()
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            INSERT OR REPLACE INTO saved_travels
                (id, title, content, links, saved_at, region, grammar, total_difficulty, request)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            travel.id,
            travel.title,
            travel.content,
            json.dumps([link.to_dict() for link in travel.links], ensure_ascii=False),
            travel.saved_at,
            travel.region.name,
            travel.grammar.value,
            travel.total_difficulty,
            json.dumps(travel.request, ensure_ascii=False),
        ))
    return travel.id


def get_saved_travels() -> List[SavedTravel]:
    """All saved plans, newest first. Corrupt rows are skipped."""
    init_db()
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            SELECT id, title, content, links, saved_at, region, grammar, total_difficulty, request
            FROM saved_travels ORDER BY saved_at DESC, rowid DESC
        """)
        rows = cursor.fetchall()

    travels = []
    for row in rows:
        try:
            travels.append(_row_to_saved_travel(row))
        except (ValueError, KeyError, TypeError) as e:
            print(f"[DB] Skipping unreadable saved travel {row['id']}: {e}")
    return travels


def get_saved_travel(travel_id: str) -> Optional[SavedTravel]:
    """Get one saved plan by id, or None if missing or unreadable."""
    init_db()
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            SELECT id, title, content, links, saved_at, region, grammar, total_difficulty, request
            FROM saved_travels WHERE id = ?
        """, (travel_id,))
        row = cursor.fetchone()

    if row is None:
        return None
    try:
        return _row_to_saved_travel(row)
    except (ValueError, KeyError, TypeError) as e:
        print(f"[DB] Saved travel {travel_id} is unreadable: {e}")
        return None


def delete_saved_travel(travel_id: str) -> bool:
    """Delete a saved plan."""
    init_db()
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("DELETE FROM saved_travels WHERE id = ?", (travel_id,))
        return cursor.rowcount > 0


def parse_saved_travel(travel: SavedTravel) -> ParsedItinerary:
    """Re-parse a saved plan's raw text with the grammar it was saved under."""
    return parse_result(travel.content, travel.links, travel.grammar)


def load_itinerary(travel_id: str) -> Optional[ParsedItinerary]:
    travel = get_saved_travel(travel_id)
    if travel is None:
        return None
    return parse_saved_travel(travel)
