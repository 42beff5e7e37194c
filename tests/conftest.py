"""Shared test fixtures."""

import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from macro_ledger.config import Settings
from macro_ledger.containers import AppContainer
from macro_ledger.services.goals import GoalsService
from macro_ledger.services.history import HistoryArchive
from macro_ledger.services.ledger import LedgerStore
from macro_ledger.services.manual_entry import ManualEntryService
from macro_ledger.services.pipeline import AnalysisPipeline
from macro_ledger.services.quota import UsageQuota
from macro_ledger.services.store import InMemoryDurableStore
from macro_ledger.services.vision import MealAnalysisService, VisionClient

TZ = ZoneInfo("America/New_York")

MEAL_PAYLOAD: dict[str, object] = {
    "title": "Chicken bowl",
    "calories": 600,
    "protein": 45,
    "carbs": 60,
    "fats": 18,
    "items": [
        {
            "name": "chicken breast",
            "grams": 150,
            "calories": 250,
            "protein": 40,
            "carbs": 0,
            "fats": 6,
        },
        {
            "name": "white rice",
            "grams": 200,
            "calories": 350,
            "protein": 5,
            "carbs": 60,
            "fats": 12,
        },
    ],
}


def at(year: int, month: int, day: int, hour: int = 12, minute: int = 0) -> datetime:
    """Build an aware local datetime in the test timezone."""
    return datetime(year, month, day, hour, minute, tzinfo=TZ)


@dataclass
class FakeClock:
    """Settable clock used in place of datetime.now."""

    now: datetime = field(default_factory=lambda: at(2026, 3, 10))

    def __call__(self) -> datetime:
        return self.now


@dataclass
class FakeVisionClient(VisionClient):
    """Fake vision client replaying queued replies or errors."""

    replies: list[object] = field(default_factory=list)
    default_reply: str = field(default_factory=lambda: json.dumps(MEAL_PAYLOAD))
    calls: int = 0
    last_image_data_url: str | None = None

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        temperature: float,
        max_tokens: int,
        system_prompt: str,
        user_prompt: str,
        image_data_url: str,
    ) -> str | None:
        self.calls += 1
        self.last_image_data_url = image_data_url
        reply = self.replies.pop(0) if self.replies else self.default_reply
        if isinstance(reply, Exception):
            raise reply
        return reply


@dataclass
class BlockingVisionClient(VisionClient):
    """Vision client that waits until released before answering."""

    release: asyncio.Event = field(default_factory=asyncio.Event)
    started: asyncio.Event = field(default_factory=asyncio.Event)
    calls: int = 0

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        temperature: float,
        max_tokens: int,
        system_prompt: str,
        user_prompt: str,
        image_data_url: str,
    ) -> str | None:
        self.calls += 1
        self.started.set()
        await self.release.wait()
        return json.dumps(MEAL_PAYLOAD)


@dataclass
class FakeCaptureSource:
    """Picker returning fixed bytes, or None for no selection."""

    image_bytes: bytes | None = b"\xff\xd8\xffjpeg-bytes"

    async def acquire(self) -> bytes | None:
        return self.image_bytes


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryDurableStore:
    return InMemoryDurableStore()


@pytest.fixture
def history(store: InMemoryDurableStore) -> HistoryArchive:
    return HistoryArchive(store)


@pytest.fixture
def ledger(
    store: InMemoryDurableStore, history: HistoryArchive, clock: FakeClock
) -> LedgerStore:
    ledger = LedgerStore(store=store, history=history, tz=TZ, clock=clock)
    ledger.load()
    return ledger


@pytest.fixture
def quota(ledger: LedgerStore) -> UsageQuota:
    return UsageQuota(ledger=ledger, limit=10)


@pytest.fixture
def vision_client() -> FakeVisionClient:
    return FakeVisionClient()


@pytest.fixture
def analysis_service(
    vision_client: FakeVisionClient, clock: FakeClock
) -> MealAnalysisService:
    return MealAnalysisService(client=vision_client, model="gpt-4o-mini", clock=clock)


@pytest.fixture
def pipeline(
    analysis_service: MealAnalysisService, ledger: LedgerStore, quota: UsageQuota
) -> AnalysisPipeline:
    return AnalysisPipeline(
        analysis_service=analysis_service, ledger=ledger, quota=quota
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        openai_api_key="openai-key",
        timezone="America/New_York",
        store_backend="memory",
    )


@pytest.fixture
def container(
    settings: Settings,
    store: InMemoryDurableStore,
    history: HistoryArchive,
    ledger: LedgerStore,
    quota: UsageQuota,
    analysis_service: MealAnalysisService,
    pipeline: AnalysisPipeline,
    clock: FakeClock,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        store=store,
        goals_service=GoalsService(store),
        history=history,
        ledger=ledger,
        quota=quota,
        analysis_service=analysis_service,
        pipeline=pipeline,
        manual_entry=ManualEntryService(ledger, clock=clock),
        close_resources=close_resources,
    )

