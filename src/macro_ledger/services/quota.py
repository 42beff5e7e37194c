"""Daily quota on completed photo analyses."""

from dataclasses import dataclass
from datetime import datetime

from macro_ledger.domain.errors import QuotaExceededError
from macro_ledger.services.ledger import LedgerStore


@dataclass(frozen=True)
class UsageNotice:
    """User-facing summary of today's analysis usage."""

    title: str
    message: str
    used: int
    limit: int
    exhausted: bool


@dataclass
class UsageQuota:
    """Policy consulted before every analysis request."""

    ledger: LedgerStore
    limit: int = 10

    def can_analyze(
        self, limit: int | None = None, now: datetime | None = None
    ) -> bool:
        """Return True while today's usage is below the limit."""
        resolved_limit = self.limit if limit is None else limit
        return self.ledger.usage_count(now) < resolved_limit

    def remaining(self, now: datetime | None = None) -> int:
        return self.ledger.remaining_quota(self.limit, now)

    def ensure_available(self, now: datetime | None = None) -> None:
        """Raise QuotaExceededError when no analyses are left today."""
        used = self.ledger.usage_count(now)
        if used >= self.limit:
            raise QuotaExceededError(used=used, limit=self.limit)

    def notice(self, now: datetime | None = None) -> UsageNotice:
        used = self.ledger.usage_count(now)
        exhausted = used >= self.limit
        return UsageNotice(
            title="Daily limit reached" if exhausted else "AI Photos",
            message=(
                f"{used}/{self.limit} AI photos used today. "
                "The limit resets at midnight."
            ),
            used=used,
            limit=self.limit,
            exhausted=exhausted,
        )
