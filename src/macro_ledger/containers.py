"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from macro_ledger.adapters.openai_vision_client import OpenAIVisionClient
from macro_ledger.adapters.supabase_store import SupabaseDurableStore
from macro_ledger.config import Settings, resolve_timezone
from macro_ledger.services.goals import GoalsService
from macro_ledger.services.history import HistoryArchive
from macro_ledger.services.ledger import LedgerStore
from macro_ledger.services.manual_entry import ManualEntryService
from macro_ledger.services.pipeline import AnalysisPipeline
from macro_ledger.services.quota import UsageQuota
from macro_ledger.services.store import DurableStore, InMemoryDurableStore
from macro_ledger.services.vision import MealAnalysisService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    store: DurableStore
    goals_service: GoalsService
    history: HistoryArchive
    ledger: LedgerStore
    quota: UsageQuota
    analysis_service: MealAnalysisService
    pipeline: AnalysisPipeline
    manual_entry: ManualEntryService
    close_resources: Callable[[], Awaitable[None]]

    def load(self) -> None:
        """Restore persisted state; run once at process start."""
        self.goals_service.load()
        self.ledger.load()


def build_store(settings: Settings) -> DurableStore:
    """Create the durable store selected by settings."""
    if settings.store_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise ValueError("Supabase store requires SUPABASE_URL and key")
        client = create_client(settings.supabase_url, settings.supabase_service_key)
        return SupabaseDurableStore(client=client, table=settings.supabase_table)
    return InMemoryDurableStore()


def build_container(
    settings: Settings | None = None, store: DurableStore | None = None
) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    resolved_store = store or build_store(resolved_settings)
    tz = resolve_timezone(resolved_settings.timezone)
    goals_service = GoalsService(resolved_store)
    history = HistoryArchive(resolved_store)
    ledger = LedgerStore(store=resolved_store, history=history, tz=tz)
    quota = UsageQuota(ledger=ledger, limit=resolved_settings.daily_analysis_limit)
    vision_client = OpenAIVisionClient.create(
        resolved_settings.openai_api_key,
        timeout_seconds=resolved_settings.openai_timeout_seconds,
    )
    analysis_service = MealAnalysisService(
        client=vision_client,
        model=resolved_settings.openai_model,
        temperature=resolved_settings.openai_temperature,
        max_tokens=resolved_settings.openai_max_tokens,
    )
    pipeline = AnalysisPipeline(
        analysis_service=analysis_service,
        ledger=ledger,
        quota=quota,
    )
    manual_entry = ManualEntryService(ledger)

    async def close_resources() -> None:
        await vision_client.close()

    return AppContainer(
        settings=resolved_settings,
        store=resolved_store,
        goals_service=goals_service,
        history=history,
        ledger=ledger,
        quota=quota,
        analysis_service=analysis_service,
        pipeline=pipeline,
        manual_entry=manual_entry,
        close_resources=close_resources,
    )
