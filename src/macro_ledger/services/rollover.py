"""Day-boundary rollover decisions."""

from dataclasses import dataclass
from datetime import date, datetime, tzinfo

from macro_ledger.domain.history import DailySummary
from macro_ledger.domain.meals import MacroTotals


@dataclass(frozen=True)
class NoRollover:
    """The ledger still belongs to the current calendar day."""


@dataclass(frozen=True)
class Rollover:
    """Archive the summary and reset the ledger to ``today``."""

    summary: DailySummary
    today: date


RolloverDecision = NoRollover | Rollover


def local_now() -> datetime:
    """Return the current time in the system local zone."""
    return datetime.now().astimezone()


def calendar_day(now: datetime, tz: tzinfo | None = None) -> date:
    """Return the local calendar date for an instant.

    Naive datetimes are taken as local wall-clock time. Aware datetimes are
    converted to ``tz``, or to the system local zone when ``tz`` is None.
    """
    if now.tzinfo is None:
        return now.date()
    return now.astimezone(tz).date()


def decide_rollover(
    last_day: date,
    now: datetime,
    totals: MacroTotals,
    tz: tzinfo | None = None,
) -> RolloverDecision:
    """Decide whether the ledger must be archived and reset.

    A gap of several days produces a single summary under ``last_day``. A
    ``now`` earlier than ``last_day`` never moves the day marker backwards.
    """
    today = calendar_day(now, tz)
    if today <= last_day:
        return NoRollover()
    return Rollover(summary=DailySummary.from_totals(last_day, totals), today=today)
