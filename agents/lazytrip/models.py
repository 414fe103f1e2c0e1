"""Data models for lazy trip planning."""

import uuid
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, Union


class TravelStyle(str, Enum):
    HERMIT = "집돌이/집순이 (숙소 중심)"
    EFFICIENCY = "가성비 여행 (체험 중심)"
    STATUS = "SNS 과시용 (감성 중심)"
    WELLNESS = "웰니스 여행 (치유 중심)"


class Region(str, Enum):
    SEOUL = "서울 (지하철 역세권)"
    BUSAN = "부산 (바다만 잠깐)"
    JEJU = "제주 (주차장 넓은 곳)"
    GANGNEUNG = "강릉 (바다 산책 최단거리)"
    JEONJU = "전주 (한옥마을 엎어지면 코 앞)"
    GYEONGJU = "경주 (황리단길 껌딱지)"
    INCHEON = "인천 (공항 근처/송도)"
    SOKCHO = "속초 (중앙시장 먹방)"
    YEOSU = "여수 (밤바다 호캉스)"
    OVERSEAS = "해외 (가까운 이웃 나라)"


class TransportMode(str, Enum):
    CAR = "자차/택시 (문 앞 하차)"
    PUBLIC = "대중교통 (역세권 껌딱지)"


class Duration(str, Enum):
    DAY_TRIP = "당일치기"
    ONE_NIGHT = "1박 2일"
    TWO_NIGHTS = "2박 3일"


class Budget(str, Enum):
    KRW_10 = "10만원 이하"
    KRW_20 = "20만원 대"
    KRW_30 = "30만원 대"
    KRW_MORE = "럭셔리(무제한)"


class Participant(str, Enum):
    SOLO = "1인 (완벽한 고독)"
    SMALL = "2~3인 (소수 정예)"
    LARGE = "4인 이상 (단체/가족)"


# Laziness levels 1-5, as shown to the user
LAZY_LEVELS = ["살짝 귀찮음", "많이 귀찮음", "움직이면 사망", "침대와 합체", "영혼만 여행"]


class GrammarVersion(str, Enum):
    """Tag grammar the model is asked to write and the parser reads."""

    LAZY_SCORE = "lazy_score"    # [DIFFICULTY] + per-place [PHOTO]
    STAR_RATING = "star_rating"  # [STARS]/[STEPS]/[MOVEMENTS]/[INDOOR] + per-place [LATLNG]


def new_activity_id() -> str:
    return uuid.uuid4().hex[:9]


@dataclass
class GeoPoint:
    latitude: float
    longitude: float


@dataclass
class GroundingLink:
    """A (title, uri) pair returned by the map-retrieval tool."""

    title: str
    uri: str

    def to_dict(self) -> dict:
        return {"title": self.title, "uri": self.uri}

    @classmethod
    def from_dict(cls, data: dict) -> "GroundingLink":
        return cls(title=data.get("title") or "", uri=data.get("uri") or "")


@dataclass
class GenerationResult:
    """Raw model output before parsing."""

    text: str
    links: list[GroundingLink] = field(default_factory=list)
    sequence: int = 0


@dataclass
class LazyScore:
    """Single 0-100 laziness score; higher means less walking."""

    difficulty: int = 80

    grammar = GrammarVersion.LAZY_SCORE

    def to_dict(self) -> dict:
        return {"grammar": self.grammar.value, "difficulty": self.difficulty}


@dataclass
class StarRating:
    """Star rating with auxiliary movement metrics."""

    stars: int = 5
    steps: int = 4000
    movements: int = 3
    indoor: int = 70  # percent of time spent indoors

    grammar = GrammarVersion.STAR_RATING

    def to_dict(self) -> dict:
        return {
            "grammar": self.grammar.value,
            "stars": self.stars,
            "steps": self.steps,
            "movements": self.movements,
            "indoor": self.indoor,
        }


Metrics = Union[LazyScore, StarRating]


@dataclass
class Activity:
    """One visitable place within a day."""

    name: str
    desc: str = ""
    tip: str = ""
    lat: Optional[str] = None
    lng: Optional[str] = None
    photo: Optional[int] = None  # photogenic rating 1-5
    map_link: Optional[GroundingLink] = None
    # Only used to keep list keys stable while editing
    id: str = field(default_factory=new_activity_id, compare=False)

    @property
    def has_coordinates(self) -> bool:
        return bool(self.lat) and bool(self.lng)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "desc": self.desc,
            "tip": self.tip,
            "lat": self.lat,
            "lng": self.lng,
            "photo": self.photo,
            "map_link": self.map_link.to_dict() if self.map_link else None,
        }


@dataclass
class Day:
    day: str  # kept as text, only ever displayed
    activities: list[Activity] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "day": self.day,
            "activities": [activity.to_dict() for activity in self.activities],
        }


@dataclass
class ParsedItinerary:
    """A structured itinerary produced from model text."""

    title: str
    metrics: Metrics
    comment: str
    days: list[Day] = field(default_factory=list)
    # Parse-time values that derived stats are rescaled from after edits
    baseline_metrics: Optional[Metrics] = None
    baseline_activity_count: int = 0

    @property
    def grammar(self) -> GrammarVersion:
        return self.metrics.grammar

    @property
    def activity_count(self) -> int:
        return sum(len(day.activities) for day in self.days)

    @property
    def total_difficulty(self) -> int:
        """Single 0-100 number for list views, whichever metric shape is held."""
        if isinstance(self.metrics, LazyScore):
            return self.metrics.difficulty
        return self.metrics.stars * 20

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "metrics": self.metrics.to_dict(),
            "comment": self.comment,
            "days": [day.to_dict() for day in self.days],
        }


@dataclass
class TravelRequest:
    """Travel preferences collected from the user."""

    region: Region = Region.SEOUL
    duration: Duration = Duration.DAY_TRIP
    style: TravelStyle = TravelStyle.HERMIT
    budget: Budget = Budget.KRW_10
    transport: TransportMode = TransportMode.PUBLIC
    participants: Participant = Participant.SOLO
    include_food: bool = True
    laziness_level: int = 4
    location: Optional[GeoPoint] = None

    def __post_init__(self):
        if not 1 <= self.laziness_level <= len(LAZY_LEVELS):
            raise ValueError(
                f"laziness_level must be between 1 and {len(LAZY_LEVELS)}, got {self.laziness_level}"
            )

    @property
    def lazy_description(self) -> str:
        return LAZY_LEVELS[self.laziness_level - 1]

    @property
    def is_public_transport(self) -> bool:
        return self.transport == TransportMode.PUBLIC

    def to_dict(self) -> dict:
        data = asdict(self)
        for key in ("region", "duration", "style", "budget", "transport", "participants"):
            data[key] = getattr(self, key).name
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "TravelRequest":
        location = data.get("location")
        return cls(
            region=Region[data.get("region", "SEOUL")],
            duration=Duration[data.get("duration", "DAY_TRIP")],
            style=TravelStyle[data.get("style", "HERMIT")],
            budget=Budget[data.get("budget", "KRW_10")],
            transport=TransportMode[data.get("transport", "PUBLIC")],
            participants=Participant[data.get("participants", "SOLO")],
            include_food=data.get("include_food", True),
            laziness_level=data.get("laziness_level", 4),
            location=GeoPoint(**location) if location else None,
        )


@dataclass
class SavedTravel:
    """A saved itinerary. Holds the raw model text, not the parsed structure."""

    id: str
    title: str
    content: str
    links: list[GroundingLink] = field(default_factory=list)
    saved_at: str = ""
    region: Region = Region.SEOUL
    grammar: GrammarVersion = GrammarVersion.STAR_RATING
    total_difficulty: int = 0
    request: dict = field(default_factory=dict)
