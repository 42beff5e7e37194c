"""Request and response models for the HTTP API."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel

from macro_ledger.domain.errors import AnalysisError, QuotaExceededError
from macro_ledger.domain.history import DailySummary
from macro_ledger.domain.ledger import LedgerState
from macro_ledger.domain.meals import DetectedItem, MacroTotals, MealRecord
from macro_ledger.services.pipeline import AnalysisPipeline, MacroEdits
from macro_ledger.services.quota import UsageNotice


class MealView(BaseModel):
    id: UUID
    title: str
    calories: int
    protein: int
    carbs: int
    fats: int
    items: list[DetectedItem]
    has_image: bool
    timestamp: datetime

    @classmethod
    def from_record(cls, record: MealRecord) -> "MealView":
        return cls(
            id=record.id,
            title=record.title,
            calories=record.calories,
            protein=record.protein,
            carbs=record.carbs,
            fats=record.fats,
            items=list(record.items),
            has_image=record.image_bytes is not None,
            timestamp=record.timestamp,
        )


class TodayResponse(BaseModel):
    meals: list[MealView]
    totals: MacroTotals
    ai_usage_count: int
    remaining_quota: int
    last_rollover_day: date

    @classmethod
    def from_state(cls, state: LedgerState, limit: int) -> "TodayResponse":
        return cls(
            meals=[MealView.from_record(meal) for meal in state.today_meals],
            totals=state.totals,
            ai_usage_count=state.ai_usage_count,
            remaining_quota=max(limit - state.ai_usage_count, 0),
            last_rollover_day=state.last_rollover_day,
        )


class HistoryResponse(BaseModel):
    days: list[DailySummary]


class NoticeView(BaseModel):
    title: str
    message: str
    used: int
    limit: int
    exhausted: bool

    @classmethod
    def from_notice(cls, notice: UsageNotice) -> "NoticeView":
        return cls(
            title=notice.title,
            message=notice.message,
            used=notice.used,
            limit=notice.limit,
            exhausted=notice.exhausted,
        )


class QuotaResponse(BaseModel):
    remaining: int
    notice: NoticeView


class ErrorView(BaseModel):
    category: str
    message: str
    detail: str
    retryable: bool

    @classmethod
    def from_error(cls, error: AnalysisError | QuotaExceededError) -> "ErrorView":
        return cls(
            category=error.category.value,
            message=error.user_message,
            detail=str(error),
            retryable=error.retryable,
        )


class PipelineView(BaseModel):
    status: str
    candidate: MealView | None
    has_image: bool
    error: ErrorView | None
    notice: NoticeView | None
    last_outcome: str | None

    @classmethod
    def from_pipeline(cls, pipeline: AnalysisPipeline) -> "PipelineView":
        state = pipeline.state
        return cls(
            status=state.status.value,
            candidate=(
                MealView.from_record(state.candidate) if state.candidate else None
            ),
            has_image=state.image_bytes is not None,
            error=ErrorView.from_error(state.error) if state.error else None,
            notice=(
                NoticeView.from_notice(pipeline.notice) if pipeline.notice else None
            ),
            last_outcome=(
                pipeline.last_outcome.value if pipeline.last_outcome else None
            ),
        )


class ManualEntryRequest(BaseModel):
    title: str | None = None
    calories: int | str | None = None
    protein: int | str | None = None
    carbs: int | str | None = None
    fats: int | str | None = None


class ConfirmRequest(BaseModel):
    calories: int | None = None
    protein: int | None = None
    carbs: int | None = None
    fats: int | None = None

    def to_edits(self) -> MacroEdits:
        return MacroEdits(
            calories=self.calories,
            protein=self.protein,
            carbs=self.carbs,
            fats=self.fats,
        )


class ProgressResponse(BaseModel):
    calories: float
    protein: float
    carbs: float
    fats: float
