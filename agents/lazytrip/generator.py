"""Generate lazy travel plans with an LLM.

Gemini is the default because its Google Maps tool returns grounding links
that the parser matches against place names. Claude is kept as a fallback
provider; it returns text only.
"""

from __future__ import annotations

import os
import time
from typing import Optional

import anthropic
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from .models import (
    Activity,
    GenerationResult,
    GeoPoint,
    GrammarVersion,
    GroundingLink,
    TravelRequest,
)
from .parser import ItineraryTextParser


GEMINI_MODEL = "gemini-2.5-flash"
CLAUDE_MODEL = "claude-sonnet-4-20250514"

EMPTY_RESPONSE_TEXT = "코스를 생성할 수 없습니다."
GENERIC_ERROR_MESSAGE = "여행 코스를 불러오는 중 오류가 발생했습니다."
RATE_LIMIT_MESSAGE = "요청이 너무 많습니다. 잠시 후 다시 시도해주세요."
MISSING_KEY_MESSAGE = "API 키가 설정되지 않았습니다."

# HTTP codes and statuses that mean "service busy, try again"
TRANSIENT_CODES = {429, 503, 529}
TRANSIENT_STATUSES = {"RESOURCE_EXHAUSTED", "UNAVAILABLE"}

MAX_RECOMMENDATIONS = 5


class PlanGenerationError(Exception):
    """A user-facing generation failure."""

    def __init__(self, message: str, transient: bool = False):
        super().__init__(message)
        self.transient = transient


MARKERS_LAZY_SCORE = """
    [TITLE] 여행 제목 (예: "20만원으로 끝내는 00역 껌딱지 여행")
    [DIFFICULTY] 1-100 (게으름 지수: 숫자가 높을수록 이동이 적고 편안함)
    [COMMENT] 전체적인 한 줄 평

    [DAY 1]
    [PLACE] 장소명
    [DESC] 이 장소가 게으른 사람에게 좋은 이유 설명
    [TIP] {tip}
    [PHOTO] 1-5 (사진 스팟 지수 숫자)

    [PLACE] ... (다음 장소 반복)
"""

MARKERS_STAR_RATING = """
    [TITLE] 여행 제목 (예: "20만원으로 끝내는 00역 껌딱지 여행")
    [STARS] 1-5 (편안함 별점: 별이 많을수록 덜 움직임)
    [STEPS] 예상 총 걸음 수 (숫자만)
    [MOVEMENTS] 장소 간 이동 횟수 (숫자만)
    [INDOOR] 실내 체류 비율 0-100 (숫자만)
    [COMMENT] 전체적인 한 줄 평

    [DAY 1]
    [PLACE] 장소명
    [LATLNG] 위도, 경도 (예: 37.5665, 126.9780)
    [DESC] 이 장소가 게으른 사람에게 좋은 이유 설명
    [TIP] {tip}

    [PLACE] ... (다음 장소 반복)
"""

MARKERS = {
    GrammarVersion.LAZY_SCORE: MARKERS_LAZY_SCORE,
    GrammarVersion.STAR_RATING: MARKERS_STAR_RATING,
}

NEARBY_PROMPT = """
    위도 {lat}, 경도 {lng} 에서 걸어서 5분 이내에 있는 실제 장소(카페, 맛집, 쉼터)를 최대 {limit}곳 추천해줘.
    게으른 사람도 갈 수 있을 만큼 가까워야 합니다.

    반드시 다음 형식으로만 응답하세요:
    [PLACE] 장소명
    [LATLNG] 위도, 경도
    [DESC] 한 줄 설명

    [PLACE] ... (다음 장소 반복)
"""


def build_system_instruction(request: TravelRequest, grammar: GrammarVersion = GrammarVersion.STAR_RATING) -> str:
    """System instruction with the persona, constraints and tag format."""
    is_public = request.is_public_transport
    if request.include_food:
        food_rule = "반드시 그 지역에서 가장 유명하고 검증된 맛집을 일정 중간에 끼워 넣으세요."
    else:
        food_rule = "식사는 간단히 때우는 걸 선호하므로 식당보다는 위치가 좋은 카페나 근처 편의점 위주로 언급하세요."
    if is_public:
        transport_rule = (
            "- 대중교통 모드: 반드시 지하철역 출구에서 도보 5분(300m) 이내인 곳만 추천하세요. "
            "구체적인 역 이름과 출구 번호를 명시하세요."
        )
        tip = "가까운 역/정류장에서 가장 덜 걷는 경로"
    else:
        transport_rule = "- 자차 모드: 주차가 매우 편리하거나 발렛이 가능한 곳 위주로 추천하세요."
        tip = "주차장 위치나 발렛 꿀팁"

    return f"""
    당신은 여행을 극도로 싫어하는 사람들을 위한 '냉소적이고 위트 있는' 여행 가이드입니다.
    Google Maps 데이터를 활용하여 실제 존재하는 장소(관광지, 맛집, 숙소)를 추천하세요.

    사용자의 게으름 강도: {request.lazy_description} (5단계 중 {request.laziness_level}단계)
    - 게으름 강도가 높을수록 장소 간 이동 거리는 더 짧아야 하며, 한 곳에서 모든 것을 해결하는 '몰링(Malling)'이나 '호캉스' 위주로 짜야 합니다.

    컨셉: '최소 이동', '노 웨이팅', '찍먹 여행'.

    중요 조건:
    - 인원: {request.participants.value}
    - 일정: {request.duration.value}
    - 예산: {request.budget.value} (이 금액 안에서 모든 일정, 식비, 입장료를 해결)
    - 맛집 포함 여부: {food_rule}
    - 이동 수단: {request.transport.value}
    {transport_rule}

    경로 최적화:
    - 모든 장소는 지리적으로 가까운 순서대로 배치하여 '최소 동선'을 보장하세요.

    반드시 다음의 마커 형식을 엄격히 지켜서 응답하세요:
    {MARKERS[GrammarVersion(grammar)].format(tip=tip)}
    말투: "역 출구에서 넘어지면 코 닿을 데니까 걱정 마세요." 처럼 냉소적이고 웃기게.
    """


def build_prompt(request: TravelRequest) -> str:
    """User prompt listing the selected options."""
    location_line = ""
    if request.location:
        location_line = f"현재 위치: 위도 {request.location.latitude}, 경도 {request.location.longitude}"

    return f"""
    지역: {request.region.value}
    인원: {request.participants.value}
    일정: {request.duration.value}
    성향: {request.style.value}
    예산: {request.budget.value}
    이동: {request.transport.value}
    맛집 포함: {'예' if request.include_food else '아니오'}
    게으름 강도: {request.lazy_description}
    {location_line}

    위 조건에 맞춰 실제 장소들이 포함된 최단 거리 여행 코스를 짜줘.
    """


class BasePlanGenerator:
    """Shared retry loop and recommendation parsing.

    Subclasses implement `_call` (one request to the service) and
    `_is_transient` (whether a failure is worth retrying).
    """

    provider = "base"

    def __init__(self, max_retries: int = 3, base_delay: float = 1.0):
        self.max_retries = max_retries
        self.base_delay = base_delay

    def generate(
        self,
        request: TravelRequest,
        grammar: GrammarVersion = GrammarVersion.STAR_RATING,
        sequence: int = 0,
    ) -> GenerationResult:
        """Generate a plan as raw tagged text plus grounding links."""
        system_instruction = build_system_instruction(request, grammar)
        prompt = build_prompt(request)
        result = self._call_with_retry(system_instruction, prompt, request.location)
        result.sequence = sequence
        return result

    def get_nearby_recommendations(self, lat: str, lng: str) -> list[Activity]:
        """Places within a short walk of the given coordinates."""
        prompt = NEARBY_PROMPT.format(lat=lat, lng=lng, limit=MAX_RECOMMENDATIONS)
        location = None
        try:
            location = GeoPoint(latitude=float(lat), longitude=float(lng))
        except (TypeError, ValueError):
            pass
        result = self._call_with_retry("", prompt, location)
        places = ItineraryTextParser(GrammarVersion.STAR_RATING).parse_places(result.text, result.links)
        return places[:MAX_RECOMMENDATIONS]

    def _call_with_retry(self, system_instruction: str, prompt: str, location: Optional[GeoPoint]) -> GenerationResult:
        attempt = 0
        while True:
            try:
                return self._call(system_instruction, prompt, location)
            except Exception as e:
                if not self._is_transient(e):
                    print(f"[{self.provider.upper()}] Generation failed: {e}")
                    raise PlanGenerationError(GENERIC_ERROR_MESSAGE) from e
                if attempt >= self.max_retries:
                    print(f"[{self.provider.upper()}] Giving up after {attempt + 1} attempts: {e}")
                    raise PlanGenerationError(RATE_LIMIT_MESSAGE, transient=True) from e

                delay = self.base_delay * (2 ** attempt)
                print(f"[{self.provider.upper()}] Service busy, retrying in {delay:.1f}s ({e})")
                time.sleep(delay)
                attempt += 1

    def _call(self, system_instruction: str, prompt: str, location: Optional[GeoPoint]) -> GenerationResult:
        raise NotImplementedError

    def _is_transient(self, error: Exception) -> bool:
        return False


class GeminiPlanGenerator(BasePlanGenerator):
    """Gemini with the Google Maps grounding tool."""

    provider = "gemini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = GEMINI_MODEL,
        client=None,
        max_retries: int = 3,
        base_delay: float = 1.0,
    ):
        super().__init__(max_retries=max_retries, base_delay=base_delay)
        self.model = model
        if client is None:
            api_key = api_key or os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY")
            if not api_key:
                raise ValueError(
                    f"{MISSING_KEY_MESSAGE} Set GEMINI_API_KEY env var or pass api_key."
                )
            client = genai.Client(api_key=api_key)
        self.client = client

    def _call(self, system_instruction: str, prompt: str, location: Optional[GeoPoint]) -> GenerationResult:
        tool_config = None
        if location:
            tool_config = genai_types.ToolConfig(
                retrieval_config=genai_types.RetrievalConfig(
                    lat_lng=genai_types.LatLng(
                        latitude=location.latitude,
                        longitude=location.longitude,
                    )
                )
            )
        config = genai_types.GenerateContentConfig(
            system_instruction=system_instruction or None,
            tools=[genai_types.Tool(google_maps=genai_types.GoogleMaps())],
            tool_config=tool_config,
        )

        response = self.client.models.generate_content(
            model=self.model,
            contents=prompt,
            config=config,
        )
        text = getattr(response, "text", None) or EMPTY_RESPONSE_TEXT
        return GenerationResult(text=text, links=self._extract_links(response))

    def _extract_links(self, response) -> list[GroundingLink]:
        """Pull map (title, uri) pairs out of the first candidate's grounding chunks."""
        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            return []
        metadata = getattr(candidates[0], "grounding_metadata", None)
        chunks = getattr(metadata, "grounding_chunks", None) or []

        links = []
        for chunk in chunks:
            maps = getattr(chunk, "maps", None)
            if maps is None:
                continue
            links.append(GroundingLink(title=maps.title or "", uri=maps.uri or ""))
        return links

    def _is_transient(self, error: Exception) -> bool:
        if isinstance(error, genai_errors.APIError):
            return error.code in TRANSIENT_CODES or error.status in TRANSIENT_STATUSES
        return "429" in str(error)


class ClaudePlanGenerator(BasePlanGenerator):
    """Claude without map grounding; links are always empty."""

    provider = "claude"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = CLAUDE_MODEL,
        client=None,
        max_retries: int = 3,
        base_delay: float = 1.0,
    ):
        super().__init__(max_retries=max_retries, base_delay=base_delay)
        self.model = model
        if client is None:
            api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
            if not api_key:
                raise ValueError(
                    f"{MISSING_KEY_MESSAGE} Set ANTHROPIC_API_KEY env var or pass api_key."
                )
            # Retries are handled by _call_with_retry
            client = anthropic.Anthropic(api_key=api_key, max_retries=0)
        self.client = client

    def _call(self, system_instruction: str, prompt: str, location: Optional[GeoPoint]) -> GenerationResult:
        kwargs = {}
        if system_instruction:
            kwargs["system"] = system_instruction
        message = self.client.messages.create(
            model=self.model,
            max_tokens=4096,
            messages=[{"role": "user", "content": prompt}],
            **kwargs,
        )
        text = message.content[0].text if message.content else ""
        return GenerationResult(text=text or EMPTY_RESPONSE_TEXT, links=[])

    def _is_transient(self, error: Exception) -> bool:
        if isinstance(error, (anthropic.RateLimitError, anthropic.InternalServerError)):
            return True
        if isinstance(error, anthropic.APIStatusError):
            return error.status_code in TRANSIENT_CODES
        return False


PROVIDERS = {
    "gemini": GeminiPlanGenerator,
    "claude": ClaudePlanGenerator,
}


def get_generator(provider: Optional[str] = None, api_key: Optional[str] = None) -> BasePlanGenerator:
    """Build the generator named by `provider` or LAZYTRIP_PROVIDER (default gemini)."""
    provider = (provider or os.environ.get("LAZYTRIP_PROVIDER") or "gemini").lower()
    if provider not in PROVIDERS:
        raise ValueError(f"Unknown provider: {provider}. Choose from: {', '.join(PROVIDERS)}")
    return PROVIDERS[provider](api_key=api_key)
