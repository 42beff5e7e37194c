"""Tests for the HTTP API."""

import asyncio

import httpx
from fastapi.testclient import TestClient

from macro_ledger.api.app import create_app, create_default_app
from macro_ledger.domain.errors import HttpError
from macro_ledger.services.pipeline import AnalysisPipeline
from macro_ledger.services.vision import MealAnalysisService
from tests.conftest import BlockingVisionClient, FakeClock, FakeVisionClient, at

IMAGE = b"\xff\xd8\xffmeal-photo"


def _client(container) -> TestClient:  # type: ignore[no-untyped-def]
    return TestClient(create_app(container))


def test_health(container) -> None:
    response = _client(container).get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_manual_entry_updates_today(container) -> None:
    client = _client(container)

    response = client.post(
        "/meals/manual",
        json={"title": "Oats", "calories": "", "protein": "12", "carbs": 54},
    )

    assert response.status_code == 201
    assert response.json()["calories"] == 0
    today = client.get("/today").json()
    assert today["totals"] == {"calories": 0, "protein": 12, "carbs": 54, "fats": 0}
    assert today["meals"][0]["title"] == "Oats"
    assert today["remaining_quota"] == 10
    assert today["last_rollover_day"] == "2026-03-10"


def test_photo_flow_commits_edited_meal(
    container, vision_client: FakeVisionClient
) -> None:
    client = _client(container)

    assert client.post("/analysis/capture").json()["status"] == "capturing"
    analyzed = client.post("/analysis/image", content=IMAGE).json()

    assert analyzed["status"] == "succeeded"
    assert analyzed["candidate"]["calories"] == 600
    assert analyzed["has_image"] is True

    committed = client.post("/analysis/confirm", json={"calories": 650})

    assert committed.status_code == 201
    assert committed.json()["calories"] == 650
    assert committed.json()["has_image"] is True
    today = client.get("/today").json()
    assert today["totals"]["calories"] == 650
    assert today["ai_usage_count"] == 1
    assert client.get("/analysis").json()["last_outcome"] == "committed"
    assert vision_client.calls == 1


def test_failed_analysis_can_be_retried(
    container, vision_client: FakeVisionClient
) -> None:
    vision_client.replies = [HttpError(500, "boom")]
    client = _client(container)
    client.post("/analysis/capture")

    failed = client.post("/analysis/image", content=IMAGE).json()

    assert failed["status"] == "failed"
    assert failed["has_image"] is True
    assert failed["error"]["category"] == "transport"
    assert failed["error"]["retryable"] is True
    assert client.get("/quota").json()["remaining"] == 10

    retried = client.post("/analysis/retry").json()

    assert retried["status"] == "succeeded"
    assert client.get("/quota").json()["remaining"] == 9


def test_capture_blocked_when_quota_exhausted(
    container, vision_client: FakeVisionClient
) -> None:
    for _ in range(10):
        container.ledger.record_usage()
    client = _client(container)

    response = client.post("/analysis/capture")

    assert response.status_code == 429
    body = response.json()
    assert body["status"] == "idle"
    assert body["notice"]["title"] == "Daily limit reached"
    assert body["notice"]["message"] == (
        "10/10 AI photos used today. The limit resets at midnight."
    )
    assert vision_client.calls == 0


def test_empty_image_body_cancels_capture(container) -> None:
    client = _client(container)
    client.post("/analysis/capture")

    body = client.post("/analysis/image", content=b"").json()

    assert body["status"] == "idle"
    assert body["last_outcome"] == "capture_cancelled"


def test_invalid_action_is_conflict(container) -> None:
    response = _client(container).post("/analysis/confirm")

    assert response.status_code == 409
    assert response.json()["status"] == "idle"


def test_cancel_discards_candidate(container) -> None:
    client = _client(container)
    client.post("/analysis/capture")
    client.post("/analysis/image", content=IMAGE)

    body = client.post("/analysis/cancel").json()

    assert body["status"] == "idle"
    assert body["has_image"] is False
    assert client.get("/today").json()["meals"] == []


def test_goals_and_progress(container) -> None:
    client = _client(container)

    assert client.get("/goals").json() == {
        "calories": 2000,
        "protein": 150,
        "carbs": 200,
        "fats": 70,
    }
    updated = client.put(
        "/goals", json={"calories": 1000, "protein": 100, "carbs": 100, "fats": 50}
    )
    client.post("/meals/manual", json={"title": "Pasta", "calories": 500, "carbs": 150})

    progress = client.get("/goals/progress").json()

    assert updated.status_code == 200
    assert progress["calories"] == 0.5
    assert progress["carbs"] == 1.0
    assert progress["protein"] == 0.0


def test_negative_goals_are_rejected(container) -> None:
    response = _client(container).put(
        "/goals", json={"calories": -1, "protein": 100, "carbs": 100, "fats": 50}
    )

    assert response.status_code == 422


def test_rollover_archives_previous_day(container, clock: FakeClock) -> None:
    client = _client(container)
    client.post("/meals/manual", json={"title": "Dinner", "calories": 900})

    clock.now = at(2026, 3, 11, 7)
    rolled = client.post("/rollover").json()

    assert rolled == {"rolled_over": True}
    history = client.get("/history").json()["days"]
    assert [(day["date"], day["calories"]) for day in history] == [
        ("2026-03-10", 900)
    ]
    assert client.get("/today").json()["meals"] == []
    assert client.post("/rollover").json() == {"rolled_over": False}


def test_default_app_uses_environment_settings(monkeypatch) -> None:
    monkeypatch.setenv("STORE_BACKEND", "memory")
    monkeypatch.setenv("DAILY_ANALYSIS_LIMIT", "3")
    monkeypatch.setenv("TIMEZONE", "UTC")

    client = TestClient(create_default_app())

    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/quota").json()["remaining"] == 3


def test_cancel_endpoint_withdraws_running_analysis(container, ledger, quota) -> None:
    async def scenario() -> tuple[httpx.Response, httpx.Response]:
        blocking = BlockingVisionClient()
        container.pipeline = AnalysisPipeline(
            analysis_service=MealAnalysisService(client=blocking, model="m"),
            ledger=ledger,
            quota=quota,
        )
        transport = httpx.ASGITransport(app=create_app(container))
        async with httpx.AsyncClient(
            transport=transport, base_url="http://testserver"
        ) as client:
            await client.post("/analysis/capture")
            upload = asyncio.create_task(client.post("/analysis/image", content=IMAGE))
            await blocking.started.wait()
            cancelled = await client.post("/analysis/cancel")
            uploaded = await upload
        return cancelled, uploaded

    cancelled, uploaded = asyncio.run(scenario())

    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "idle"
    assert cancelled.json()["last_outcome"] == "discarded"
    assert uploaded.json()["status"] == "idle"
    assert ledger.snapshot().ai_usage_count == 0
