"""Daily macro goals service."""

import logging
from dataclasses import dataclass, field

from pydantic import TypeAdapter, ValidationError

from macro_ledger.domain.goals import DEFAULT_GOALS, MacroGoals, MacroProgress
from macro_ledger.domain.meals import MacroTotals
from macro_ledger.services.store import DurableStore, StoreKey, load_record, save_record

_GOALS_ADAPTER = TypeAdapter(list[int])
_GOAL_FIELDS = 4

_logger = logging.getLogger(__name__)


@dataclass
class GoalsService:
    """Loads, replaces and persists the user's macro goals."""

    store: DurableStore
    goals: MacroGoals = field(default=DEFAULT_GOALS)

    def load(self) -> MacroGoals:
        """Restore stored goals, persisting defaults when none are usable."""
        stored = load_record(self.store, StoreKey.GOALS, _GOALS_ADAPTER)
        goals = _goals_from_list(stored)
        if goals is None:
            self.goals = DEFAULT_GOALS
            self._persist()
        else:
            self.goals = goals
        return self.goals

    def replace(self, goals: MacroGoals) -> MacroGoals:
        """Replace the current goals and persist them."""
        self.goals = goals
        self._persist()
        return self.goals

    def progress(self, totals: MacroTotals) -> MacroProgress:
        """Return how much of each goal today's totals cover."""
        return MacroProgress(
            calories=_fraction(totals.calories, self.goals.calories),
            protein=_fraction(totals.protein, self.goals.protein),
            carbs=_fraction(totals.carbs, self.goals.carbs),
            fats=_fraction(totals.fats, self.goals.fats),
        )

    def _persist(self) -> None:
        values = [
            self.goals.calories,
            self.goals.protein,
            self.goals.carbs,
            self.goals.fats,
        ]
        save_record(self.store, StoreKey.GOALS, _GOALS_ADAPTER, values)


def _goals_from_list(values: list[int] | None) -> MacroGoals | None:
    if values is None:
        return None
    if len(values) != _GOAL_FIELDS:
        _logger.warning("Ignoring stored goals with %s fields", len(values))
        return None
    calories, protein, carbs, fats = values
    try:
        return MacroGoals(calories=calories, protein=protein, carbs=carbs, fats=fats)
    except ValidationError:
        _logger.warning("Ignoring stored goals with negative values")
        return None


def _fraction(value: int, goal: int) -> float:
    return min(max(value / max(goal, 1), 0.0), 1.0)
