"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from macro_ledger.api.schemas import (
    ConfirmRequest,
    HistoryResponse,
    ManualEntryRequest,
    MealView,
    NoticeView,
    PipelineView,
    ProgressResponse,
    QuotaResponse,
    TodayResponse,
)
from macro_ledger.app_logging import configure_logging
from macro_ledger.containers import AppContainer, build_container
from macro_ledger.domain.goals import MacroGoals
from macro_ledger.services.pipeline import PipelineStateError, PipelineStatus


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)
    container.load()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(PipelineStateError)
    async def pipeline_state_error(
        request: Request, exc: PipelineStateError
    ) -> JSONResponse:
        logger.info("Rejected pipeline action: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": str(exc), "status": exc.status.value},
        )

    def _container(request: Request) -> AppContainer:
        return request.app.state.container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/today")
    async def today(request: Request) -> TodayResponse:
        """Return today's meals, totals and usage."""
        state_container = _container(request)
        return TodayResponse.from_state(
            state_container.ledger.snapshot(),
            state_container.quota.limit,
        )

    @app.post("/rollover")
    async def rollover(request: Request) -> dict[str, bool]:
        """Run the day-boundary check now."""
        rolled_over = _container(request).ledger.check_rollover()
        return {"rolled_over": rolled_over}

    @app.get("/history")
    async def history(request: Request) -> HistoryResponse:
        """Return archived days, newest first."""
        return HistoryResponse(days=_container(request).history.load())

    @app.get("/goals")
    async def get_goals(request: Request) -> MacroGoals:
        return _container(request).goals_service.goals

    @app.put("/goals")
    async def put_goals(goals: MacroGoals, request: Request) -> MacroGoals:
        """Replace the daily goals."""
        return _container(request).goals_service.replace(goals)

    @app.get("/goals/progress")
    async def goals_progress(request: Request) -> ProgressResponse:
        """Return the fraction of each goal covered today."""
        state_container = _container(request)
        totals = state_container.ledger.snapshot().totals
        progress = state_container.goals_service.progress(totals)
        return ProgressResponse(**asdict(progress))

    @app.get("/quota")
    async def quota(request: Request) -> QuotaResponse:
        state_container = _container(request)
        return QuotaResponse(
            remaining=state_container.quota.remaining(),
            notice=NoticeView.from_notice(state_container.quota.notice()),
        )

    @app.post("/meals/manual", status_code=status.HTTP_201_CREATED)
    async def manual_meal(payload: ManualEntryRequest, request: Request) -> MealView:
        """Log a meal typed in by the user."""
        record = _container(request).manual_entry.add(
            title=payload.title,
            calories=payload.calories,
            protein=payload.protein,
            carbs=payload.carbs,
            fats=payload.fats,
        )
        return MealView.from_record(record)

    @app.get("/analysis")
    async def analysis_state(request: Request) -> PipelineView:
        return PipelineView.from_pipeline(_container(request).pipeline)

    @app.post("/analysis/capture", response_model=None)
    async def start_capture(request: Request) -> PipelineView | JSONResponse:
        """Open the capture flow, or report that today's quota is used up."""
        pipeline = _container(request).pipeline
        state = pipeline.start_capture()
        view = PipelineView.from_pipeline(pipeline)
        if state.status is not PipelineStatus.CAPTURING:
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content=view.model_dump(mode="json"),
            )
        return view

    @app.post("/analysis/capture/cancel")
    async def cancel_capture(request: Request) -> PipelineView:
        pipeline = _container(request).pipeline
        pipeline.cancel_capture()
        return PipelineView.from_pipeline(pipeline)

    @app.post("/analysis/image")
    async def submit_image(request: Request) -> PipelineView:
        """Analyze the photo sent as the raw request body.

        An empty body means the picker returned no selection.
        """
        pipeline = _container(request).pipeline
        body = await request.body()
        await pipeline.submit_capture(body or None)
        return PipelineView.from_pipeline(pipeline)

    @app.post("/analysis/retry")
    async def retry(request: Request) -> PipelineView:
        pipeline = _container(request).pipeline
        await pipeline.retry()
        return PipelineView.from_pipeline(pipeline)

    @app.post("/analysis/confirm", status_code=status.HTTP_201_CREATED)
    async def confirm(
        request: Request, payload: ConfirmRequest | None = None
    ) -> MealView:
        """Commit the analyzed meal, optionally with edited totals."""
        pipeline = _container(request).pipeline
        edits = payload.to_edits() if payload else None
        record = pipeline.confirm(edits)
        return MealView.from_record(record)

    @app.post("/analysis/cancel")
    async def cancel(request: Request) -> PipelineView:
        """Discard the candidate or failure, or withdraw a running analysis."""
        pipeline = _container(request).pipeline
        pipeline.cancel()
        return PipelineView.from_pipeline(pipeline)

    return app


def create_default_app() -> FastAPI:
    """Build the app from environment settings; ``uvicorn --factory`` target."""
    return create_app(build_container())
