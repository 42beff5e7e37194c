"""Append-only archive of closed days."""

import logging
import threading
from dataclasses import dataclass, field

from pydantic import TypeAdapter

from macro_ledger.domain.history import DailySummary
from macro_ledger.services.store import DurableStore, StoreKey, load_record, save_record

_HISTORY_ADAPTER = TypeAdapter(list[DailySummary])

_logger = logging.getLogger(__name__)


@dataclass
class HistoryArchive:
    """Persisted list of daily summaries, newest first."""

    store: DurableStore
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    def load(self) -> list[DailySummary]:
        """Return all archived days sorted newest first."""
        with self._lock:
            days = self._read()
        return sorted(days, key=lambda summary: summary.date, reverse=True)

    def append(self, summary: DailySummary) -> bool:
        """Archive a closed day.

        A day that is already archived is kept as is and False is returned.
        """
        with self._lock:
            days = self._read()
            if any(day.date == summary.date for day in days):
                _logger.warning(
                    "Day %s is already archived; keeping the stored summary",
                    summary.date.isoformat(),
                )
                return False
            days.insert(0, summary)
            save_record(self.store, StoreKey.HISTORY, _HISTORY_ADAPTER, days)
        _logger.info(
            "Archived day %s: calories=%s protein=%s carbs=%s fats=%s",
            summary.date.isoformat(),
            summary.calories,
            summary.protein,
            summary.carbs,
            summary.fats,
        )
        return True

    def _read(self) -> list[DailySummary]:
        return load_record(self.store, StoreKey.HISTORY, _HISTORY_ADAPTER) or []
