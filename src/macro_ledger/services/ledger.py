"""Ledger of today's meals, totals and analysis usage."""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo

from pydantic import TypeAdapter

from macro_ledger.domain.ledger import LedgerState
from macro_ledger.domain.meals import MacroTotals, MealRecord, sum_macros
from macro_ledger.services.history import HistoryArchive
from macro_ledger.services.rollover import (
    NoRollover,
    calendar_day,
    decide_rollover,
    local_now,
)
from macro_ledger.services.store import DurableStore, StoreKey, load_record, save_record

_MEALS_ADAPTER = TypeAdapter(list[MealRecord])
_TOTALS_ADAPTER = TypeAdapter(list[int])
_DAY_ADAPTER = TypeAdapter(date)
_COUNT_ADAPTER = TypeAdapter(int)
_TOTAL_FIELDS = 4

_logger = logging.getLogger(__name__)


@dataclass
class LedgerStore:
    """Single owner of today's ledger state.

    Every public method takes the lock, runs the rollover check and then
    reads or mutates state. Mutations are written to the durable store before
    the method returns.
    """

    store: DurableStore
    history: HistoryArchive
    tz: tzinfo | None = None
    clock: Callable[[], datetime] = local_now
    _meals: list[MealRecord] = field(default_factory=list, init=False, repr=False)
    _totals: MacroTotals = field(default_factory=MacroTotals, init=False)
    _usage_count: int = field(default=0, init=False)
    _last_day: date | None = field(default=None, init=False)
    _lock: threading.RLock = field(
        default_factory=threading.RLock, init=False, repr=False
    )

    def load(self, now: datetime | None = None) -> LedgerState:
        """Restore state from the durable store and roll over if needed."""
        with self._lock:
            resolved_now = now or self.clock()
            self._restore(resolved_now)
            self._check_rollover_locked(resolved_now)
            return self._snapshot_locked()

    def check_rollover(self, now: datetime | None = None) -> bool:
        """Archive and reset the ledger if the calendar day changed.

        Returns True when a rollover happened.
        """
        with self._lock:
            resolved_now = now or self.clock()
            self._ensure_loaded(resolved_now)
            return self._check_rollover_locked(resolved_now)

    def add(self, record: MealRecord, now: datetime | None = None) -> LedgerState:
        """Add a meal to the front of today's list and update totals."""
        with self._lock:
            self._begin(now)
            meals = [record, *self._meals]
            totals = self._totals.plus(record.macros)
            self._write_locked(
                meals, totals, self._usage_count, self._require_last_day()
            )
            self._meals = meals
            self._totals = totals
            _logger.info(
                "Meal added: title=%s calories=%s meals_today=%s",
                record.title,
                record.calories,
                len(self._meals),
            )
            return self._snapshot_locked()

    def record_usage(self, now: datetime | None = None) -> int:
        """Charge one completed analysis and return the new count."""
        with self._lock:
            self._begin(now)
            usage_count = self._usage_count + 1
            self._write_locked(
                self._meals, self._totals, usage_count, self._require_last_day()
            )
            self._usage_count = usage_count
            return usage_count

    def usage_count(self, now: datetime | None = None) -> int:
        with self._lock:
            self._begin(now)
            return self._usage_count

    def remaining_quota(self, limit: int, now: datetime | None = None) -> int:
        """Return how many analyses are left under ``limit`` today."""
        with self._lock:
            self._begin(now)
            return max(limit - self._usage_count, 0)

    def snapshot(self, now: datetime | None = None) -> LedgerState:
        """Return a read-only view of today's state."""
        with self._lock:
            self._begin(now)
            return self._snapshot_locked()

    def _begin(self, now: datetime | None) -> None:
        resolved_now = now or self.clock()
        self._ensure_loaded(resolved_now)
        self._check_rollover_locked(resolved_now)

    def _ensure_loaded(self, now: datetime) -> None:
        if self._last_day is None:
            self._restore(now)

    def _restore(self, now: datetime) -> None:
        meals = load_record(self.store, StoreKey.TODAY_MEALS, _MEALS_ADAPTER) or []
        stored_totals = _totals_from_list(
            load_record(self.store, StoreKey.TODAY_TOTALS, _TOTALS_ADAPTER)
        )
        totals = sum_macros(meals)
        if stored_totals is not None and stored_totals != totals:
            _logger.warning(
                "Stored totals disagree with stored meals; recomputing from meals"
            )
        usage_count = load_record(self.store, StoreKey.USAGE_COUNT, _COUNT_ADAPTER)
        if usage_count is None or usage_count < 0:
            usage_count = 0
        last_day = load_record(self.store, StoreKey.LAST_DAY, _DAY_ADAPTER)

        self._meals = meals
        self._totals = totals
        self._usage_count = usage_count
        if last_day is None:
            self._last_day = calendar_day(now, self.tz)
            self._persist_locked()
        else:
            self._last_day = last_day

    def _check_rollover_locked(self, now: datetime) -> bool:
        last_day = self._require_last_day()
        decision = decide_rollover(last_day, now, self._totals, self.tz)
        if isinstance(decision, NoRollover):
            if calendar_day(now, self.tz) < last_day:
                _logger.warning(
                    "Clock is behind the last rollover day %s; keeping ledger",
                    last_day.isoformat(),
                )
            return False

        self.history.append(decision.summary)
        self._write_locked([], MacroTotals(), 0, decision.today)
        self._meals = []
        self._totals = MacroTotals()
        self._usage_count = 0
        self._last_day = decision.today
        _logger.info(
            "Rolled over ledger from %s to %s",
            last_day.isoformat(),
            decision.today.isoformat(),
        )
        return True

    def _persist_locked(self) -> None:
        self._write_locked(
            self._meals, self._totals, self._usage_count, self._require_last_day()
        )

    def _write_locked(
        self,
        meals: list[MealRecord],
        totals: MacroTotals,
        usage_count: int,
        last_day: date,
    ) -> None:
        # LAST_DAY is written last; a partial write keeps the previous day.
        save_record(self.store, StoreKey.TODAY_MEALS, _MEALS_ADAPTER, meals)
        save_record(
            self.store, StoreKey.TODAY_TOTALS, _TOTALS_ADAPTER, totals.as_list()
        )
        save_record(self.store, StoreKey.USAGE_COUNT, _COUNT_ADAPTER, usage_count)
        save_record(self.store, StoreKey.LAST_DAY, _DAY_ADAPTER, last_day)

    def _snapshot_locked(self) -> LedgerState:
        return LedgerState(
            today_meals=tuple(self._meals),
            totals=self._totals,
            ai_usage_count=self._usage_count,
            last_rollover_day=self._require_last_day(),
        )

    def _require_last_day(self) -> date:
        if self._last_day is None:
            raise RuntimeError("Ledger used before load()")
        return self._last_day


def _totals_from_list(values: list[int] | None) -> MacroTotals | None:
    if values is None or len(values) != _TOTAL_FIELDS:
        return None
    calories, protein, carbs, fats = values
    return MacroTotals(calories=calories, protein=protein, carbs=carbs, fats=fats)
