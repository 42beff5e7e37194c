"""State machine for photo-based meal logging."""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from macro_ledger.domain.errors import AnalysisError, QuotaExceededError
from macro_ledger.domain.meals import MacroTotals, MealRecord
from macro_ledger.services.ledger import LedgerStore
from macro_ledger.services.quota import UsageNotice, UsageQuota
from macro_ledger.services.vision import MealAnalysisService

_logger = logging.getLogger(__name__)


class CaptureSource(Protocol):
    """Camera or photo-library picker."""

    async def acquire(self) -> bytes | None:
        """Return image bytes, or None when the user selected nothing."""


class PipelineStatus(str, Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    ANALYZING = "analyzing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class PipelineOutcome(str, Enum):
    """How the last pipeline run ended."""

    CAPTURE_CANCELLED = "capture_cancelled"
    COMMITTED = "committed"
    DISCARDED = "discarded"


@dataclass(frozen=True)
class PipelineState:
    """Snapshot of the pipeline.

    ``image_bytes`` is retained while analyzing and after success or failure
    so a failed analysis can be retried without recapturing.
    """

    status: PipelineStatus
    candidate: MealRecord | None = None
    image_bytes: bytes | None = None
    error: AnalysisError | QuotaExceededError | None = None


IDLE = PipelineState(status=PipelineStatus.IDLE)


class PipelineStateError(Exception):
    """Raised when an action is not valid in the current state."""

    def __init__(self, action: str, status: PipelineStatus) -> None:
        super().__init__(f"Cannot {action} while {status.value}")
        self.action = action
        self.status = status


@dataclass(frozen=True)
class MacroEdits:
    """User edits to a candidate's totals; None keeps the estimate."""

    calories: int | None = None
    protein: int | None = None
    carbs: int | None = None
    fats: int | None = None

    def apply(self, candidate: MealRecord) -> MealRecord:
        return candidate.with_macros(
            MacroTotals(
                calories=_pick(self.calories, candidate.calories),
                protein=_pick(self.protein, candidate.protein),
                carbs=_pick(self.carbs, candidate.carbs),
                fats=_pick(self.fats, candidate.fats),
            )
        )

    def clamped(self) -> "MacroEdits":
        """Return edits with negative values raised to zero."""
        return MacroEdits(
            calories=_clamp(self.calories),
            protein=_clamp(self.protein),
            carbs=_clamp(self.carbs),
            fats=_clamp(self.fats),
        )


@dataclass
class AnalysisPipeline:
    """Drives capture, analysis, confirmation and commit of a meal photo.

    Analyses sharing ``gate`` run one at a time: the quota check, the
    collaborator call and the usage charge happen under the lock, so
    concurrent requests cannot exceed the daily limit.
    """

    analysis_service: MealAnalysisService
    ledger: LedgerStore
    quota: UsageQuota
    gate: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
    notice: UsageNotice | None = field(default=None, init=False)
    last_outcome: PipelineOutcome | None = field(default=None, init=False)
    _state: PipelineState = field(default=IDLE, init=False)
    _analysis_task: asyncio.Task[PipelineState] | None = field(
        default=None, init=False, repr=False
    )
    _withdrawn_task: asyncio.Task[PipelineState] | None = field(
        default=None, init=False, repr=False
    )

    @property
    def state(self) -> PipelineState:
        return self._state

    def start_capture(self) -> PipelineState:
        """Open the capture flow if today's quota allows another analysis."""
        self._require("start capture", PipelineStatus.IDLE)
        if not self.quota.can_analyze():
            self.notice = self.quota.notice()
            _logger.info("Capture blocked: %s", self.notice.message)
            return self._state
        self.notice = None
        self.last_outcome = None
        self._state = PipelineState(status=PipelineStatus.CAPTURING)
        return self._state

    def cancel_capture(self) -> PipelineState:
        self._require("cancel capture", PipelineStatus.CAPTURING)
        return self._finish(PipelineOutcome.CAPTURE_CANCELLED)

    async def submit_capture(self, image_bytes: bytes | None) -> PipelineState:
        """Hand the captured photo to analysis; None means nothing was picked."""
        self._require("submit capture", PipelineStatus.CAPTURING)
        if image_bytes is None:
            return self._finish(PipelineOutcome.CAPTURE_CANCELLED)
        return await self._analyze(image_bytes)

    async def capture(self, source: CaptureSource) -> PipelineState:
        """Run the capture flow against a picker and analyze the result."""
        state = self.start_capture()
        if state.status is not PipelineStatus.CAPTURING:
            return state
        try:
            image_bytes = await source.acquire()
        except asyncio.CancelledError:
            self._finish(PipelineOutcome.CAPTURE_CANCELLED)
            raise
        return await self.submit_capture(image_bytes)

    async def retry(self) -> PipelineState:
        """Analyze the retained photo again after a failure."""
        self._require("retry", PipelineStatus.FAILED)
        image_bytes = self._state.image_bytes
        if image_bytes is None:
            raise PipelineStateError("retry", self._state.status)
        return await self._analyze(image_bytes)

    def confirm(self, edits: MacroEdits | None = None) -> MealRecord:
        """Commit the candidate, with any edited totals, to today's ledger."""
        self._require("confirm", PipelineStatus.SUCCEEDED)
        candidate = self._state.candidate
        if candidate is None:
            raise PipelineStateError("confirm", self._state.status)
        record = edits.apply(candidate) if edits else candidate
        self.ledger.add(record)
        self._finish(PipelineOutcome.COMMITTED)
        return record

    def cancel(self) -> PipelineState:
        """Drop the candidate or failure along with the retained photo.

        While analyzing, the in-flight request is withdrawn: its task is
        cancelled, no usage is charged and the pipeline is Idle at once.
        """
        self._require(
            "cancel",
            PipelineStatus.ANALYZING,
            PipelineStatus.SUCCEEDED,
            PipelineStatus.FAILED,
        )
        if self._state.status is PipelineStatus.ANALYZING:
            task = self._analysis_task
            if task is None or task.done():
                raise PipelineStateError("cancel", self._state.status)
            self._withdrawn_task = task
            task.cancel()
            _logger.info("Withdrawing in-flight meal analysis")
        return self._finish(PipelineOutcome.DISCARDED)

    async def _analyze(self, image_bytes: bytes) -> PipelineState:
        task = asyncio.current_task()
        self._analysis_task = task
        self._state = PipelineState(
            status=PipelineStatus.ANALYZING, image_bytes=image_bytes
        )
        try:
            return await self._run_analysis(image_bytes)
        except asyncio.CancelledError:
            if task is not None and task is self._withdrawn_task:
                self._withdrawn_task = None
                if task.uncancel() == 0:
                    return self._state
            else:
                _logger.info("Meal analysis cancelled")
                self._finish(PipelineOutcome.DISCARDED)
            raise
        except Exception:
            _logger.exception("Meal analysis crashed; discarding the run")
            self._finish(PipelineOutcome.DISCARDED)
            raise
        finally:
            if self._analysis_task is task:
                self._analysis_task = None

    async def _run_analysis(self, image_bytes: bytes) -> PipelineState:
        try:
            async with self.gate:
                self.quota.ensure_available()
                candidate = await self.analysis_service.analyze(image_bytes)
                self.ledger.record_usage()
        except QuotaExceededError as exc:
            self.notice = self.quota.notice()
            _logger.info("Analysis blocked by quota: %s", exc)
            return self._fail(image_bytes, exc)
        except AnalysisError as exc:
            _logger.warning(
                "Meal analysis failed: category=%s error=%s",
                exc.category.value,
                exc,
            )
            return self._fail(image_bytes, exc)

        _logger.info(
            "Meal analysis succeeded: title=%s calories=%s",
            candidate.title,
            candidate.calories,
        )
        self._state = PipelineState(
            status=PipelineStatus.SUCCEEDED,
            candidate=candidate,
            image_bytes=image_bytes,
        )
        return self._state

    def _fail(
        self, image_bytes: bytes, error: AnalysisError | QuotaExceededError
    ) -> PipelineState:
        self._state = PipelineState(
            status=PipelineStatus.FAILED, image_bytes=image_bytes, error=error
        )
        return self._state

    def _finish(self, outcome: PipelineOutcome) -> PipelineState:
        self.last_outcome = outcome
        self._state = IDLE
        return self._state

    def _require(self, action: str, *allowed: PipelineStatus) -> None:
        if self._state.status not in allowed:
            raise PipelineStateError(action, self._state.status)


def _pick(value: int | None, default: int) -> int:
    return default if value is None else value


def _clamp(value: int | None) -> int | None:
    return None if value is None else max(value, 0)
