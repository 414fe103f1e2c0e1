"""Parse tag-delimited itinerary text written by the model."""

from __future__ import annotations

import re
from typing import Optional, Sequence

from .models import (
    Activity,
    Day,
    GrammarVersion,
    GroundingLink,
    LazyScore,
    ParsedItinerary,
    StarRating,
)


DEFAULT_TITLE = "무제의 여정"
DEFAULT_COMMENT = "귀찮지만 이 정도면 갈 만 합니다."
DEFAULT_DIFFICULTY = 80
DEFAULT_STARS = 5
DEFAULT_STEPS = 4000
DEFAULT_MOVEMENTS = 3
DEFAULT_INDOOR = 70
DEFAULT_PHOTO = 3

# Names shorter than this are noise (e.g. a stray trailing [PLACE])
MIN_NAME_LENGTH = 2

# Tool-call traces and code fences can span lines and straddle [DAY]/[PLACE].
# Call arguments never contain parentheses; an unclosed call is left in place.
TOOL_CALL_RE = re.compile(r"google_maps\([^()]*\)")
CODE_FENCE_RE = re.compile(r"```.*?```", re.DOTALL)
FENCE_LINE_RE = re.compile(r"^[ \t]*```[^\n]*(?:\n|\Z)", re.MULTILINE)

DAY_SPLIT_RE = re.compile(r"\[DAY\s*(\d+)\]")
PLACE_MARKER = "[PLACE]"
BRACKET_TAG_RE = re.compile(r"\[[^\]\n]*\]")
LEADING_INT_RE = re.compile(r"^-?\d+")
LATLNG_RE = re.compile(r"\[LATLNG\]\s*([\d.-]+)\s*,\s*([\d.-]+)")

# Metric tags each grammar defines, used for boundary checks
METRIC_TAGS = {
    GrammarVersion.LAZY_SCORE: ("DIFFICULTY",),
    GrammarVersion.STAR_RATING: ("STARS", "STEPS", "MOVEMENTS", "INDOOR"),
}


def _has_markers(text: str) -> bool:
    return PLACE_MARKER in text or DAY_SPLIT_RE.search(text) is not None


def sanitize(text: str) -> str:
    """Strip leaked tool-call fragments and fenced code blocks.

    A reply wrapped in a single fence keeps its content: when removing fenced
    blocks would leave no [DAY]/[PLACE] marker, only the fence lines go.
    """
    text = TOOL_CALL_RE.sub("", text or "")
    stripped = CODE_FENCE_RE.sub("", text)
    if _has_markers(text) and not _has_markers(stripped):
        return FENCE_LINE_RE.sub("", text)
    return stripped


def _clamp(value: int, low: int, high: Optional[int] = None) -> int:
    value = max(low, value)
    if high is not None:
        value = min(high, value)
    return value


def resolve_map_link(name: str, links: Sequence[GroundingLink]) -> Optional[GroundingLink]:
    """Find the first link whose title contains, or is contained in, the name.

    Comparison is case-insensitive. Model place names and map titles often
    differ by a branch suffix or a translated word, so exact matching is not
    used; two places sharing a short fragment can match the wrong link.
    """
    lowered = name.lower()
    for link in links:
        title = (link.title or "").strip().lower()
        if not title:
            continue
        if title in lowered or lowered in title:
            return link
    return None


def check_grammar(text: str, grammar: GrammarVersion) -> Optional[str]:
    """Return a warning when the text uses another grammar's metric tags.

    The parser itself never sniffs the shape; callers use this at the
    boundary to report a prompt/parser mismatch.
    """
    def has_any(tags):
        return any(f"[{tag}]" in text for tag in tags)

    if has_any(METRIC_TAGS[grammar]):
        return None
    for other, tags in METRIC_TAGS.items():
        if other != grammar and has_any(tags):
            return (
                f"Text carries {other.value} metric tags but was parsed as "
                f"{grammar.value}; metrics fell back to defaults"
            )
    return None


class ItineraryTextParser:
    """Turn model text plus grounding links into a ParsedItinerary.

    Parsing is pure and never raises: missing or malformed tags fall back to
    defaults and unusable place blocks or empty days are dropped.
    """

    def __init__(self, grammar: GrammarVersion = GrammarVersion.STAR_RATING):
        self.grammar = GrammarVersion(grammar)

    def parse(self, text: str, links: Optional[Sequence[GroundingLink]] = None) -> ParsedItinerary:
        """Parse a full itinerary."""
        links = list(links or [])
        clean_text = sanitize(text)

        title = self._line_field(clean_text, "TITLE") or DEFAULT_TITLE
        comment = self._line_field(clean_text, "COMMENT") or DEFAULT_COMMENT
        metrics = self._parse_metrics(clean_text)

        days = []
        day_blocks = DAY_SPLIT_RE.split(clean_text)
        # [preamble, day_num_1, content_1, day_num_2, content_2, ...]
        for i in range(1, len(day_blocks), 2):
            day_num = day_blocks[i]
            day_content = day_blocks[i + 1] if i + 1 < len(day_blocks) else ""
            activities = self._parse_day(day_content, links)
            if activities:
                days.append(Day(day=day_num, activities=activities))

        itinerary = ParsedItinerary(
            title=title,
            metrics=metrics,
            comment=comment,
            days=days,
        )
        itinerary.baseline_metrics = metrics
        itinerary.baseline_activity_count = itinerary.activity_count
        return itinerary

    def parse_places(self, text: str, links: Optional[Sequence[GroundingLink]] = None) -> list[Activity]:
        """Parse a bare list of [PLACE] blocks, e.g. nearby recommendations."""
        return self._parse_day(sanitize(text), list(links or []))

    def _parse_metrics(self, text: str):
        if self.grammar == GrammarVersion.LAZY_SCORE:
            difficulty = self._int_field(text, "DIFFICULTY", DEFAULT_DIFFICULTY)
            return LazyScore(difficulty=_clamp(difficulty, 0, 100))

        return StarRating(
            stars=_clamp(self._int_field(text, "STARS", DEFAULT_STARS), 1, 5),
            steps=_clamp(self._int_field(text, "STEPS", DEFAULT_STEPS), 0),
            movements=_clamp(self._int_field(text, "MOVEMENTS", DEFAULT_MOVEMENTS), 0),
            indoor=_clamp(self._int_field(text, "INDOOR", DEFAULT_INDOOR), 0, 100),
        )

    def _parse_day(self, day_content: str, links: list[GroundingLink]) -> list[Activity]:
        activities = []
        # Text before the first [PLACE] is day-level preamble
        for block in day_content.split(PLACE_MARKER)[1:]:
            activity = self._parse_place(block, links)
            if activity is not None:
                activities.append(activity)
        return activities

    def _parse_place(self, block: str, links: list[GroundingLink]) -> Optional[Activity]:
        trimmed = block.strip()
        if not trimmed:
            return None

        first_line = trimmed.split("\n", 1)[0]
        name = BRACKET_TAG_RE.sub("", first_line).strip()
        if len(name) < MIN_NAME_LENGTH:
            return None

        activity = Activity(
            name=name,
            desc=self._block_field(block, "DESC"),
            tip=self._block_field(block, "TIP"),
            map_link=resolve_map_link(name, links),
        )

        if self.grammar == GrammarVersion.STAR_RATING:
            match = LATLNG_RE.search(block)
            if match:
                activity.lat, activity.lng = match.group(1), match.group(2)
        else:
            photo = self._leading_int(self._block_field(block, "PHOTO"))
            activity.photo = _clamp(photo if photo is not None else DEFAULT_PHOTO, 1, 5)

        return activity

    def _line_field(self, text: str, tag: str) -> str:
        """First `[TAG] rest of line` value, trimmed; empty when absent."""
        match = re.search(rf"\[{tag}\][ \t]*(.*)", text)
        return match.group(1).strip() if match else ""

    def _int_field(self, text: str, tag: str, default: int) -> int:
        value = self._leading_int(self._line_field(text, tag))
        return default if value is None else value

    def _block_field(self, block: str, tag: str) -> str:
        """Value from the tag up to the next `[` or end of block."""
        match = re.search(rf"\[{tag}\]\s*(.*?)(?=\[|\Z)", block, re.DOTALL)
        return match.group(1).strip() if match else ""

    def _leading_int(self, value: str) -> Optional[int]:
        match = LEADING_INT_RE.match(value.replace(",", ""))
        return int(match.group(0)) if match else None


def parse_result(
    text: str,
    links: Optional[Sequence[GroundingLink]] = None,
    grammar: GrammarVersion = GrammarVersion.STAR_RATING,
) -> ParsedItinerary:
    """Parse model text into an itinerary using the given grammar."""
    return ItineraryTextParser(grammar).parse(text, links)
