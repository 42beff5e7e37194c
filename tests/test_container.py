"""Tests for container wiring."""

import asyncio

import pytest

from macro_ledger.adapters.openai_vision_client import OpenAIVisionClient
from macro_ledger.config import Settings
from macro_ledger.containers import build_container, build_store
from macro_ledger.services.store import InMemoryDurableStore, StoreKey


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)

    assert container.pipeline.ledger is container.ledger
    assert container.quota.limit == 10
    assert container.ledger.tz is not None
    assert isinstance(container.store, InMemoryDurableStore)
    asyncio.run(container.close_resources())


def test_container_load_restores_persisted_goals(settings) -> None:
    store = InMemoryDurableStore()
    store.set_bytes(StoreKey.GOALS, b"[1800,120,150,60]")
    container = build_container(settings, store=store)

    container.load()

    assert container.goals_service.goals.calories == 1800
    assert store.get_bytes(StoreKey.LAST_DAY) is not None
    asyncio.run(container.close_resources())


def test_missing_api_key_leaves_client_unconfigured() -> None:
    container = build_container(
        Settings(openai_api_key=None), store=InMemoryDurableStore()
    )

    client = container.analysis_service.client
    assert isinstance(client, OpenAIVisionClient)
    assert client.client is None


def test_supabase_backend_requires_credentials() -> None:
    with pytest.raises(ValueError):
        build_store(Settings(store_backend="supabase", supabase_url=None))
