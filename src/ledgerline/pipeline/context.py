"""Per-import state passed explicitly between pipeline stages."""

import threading
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional

from ledgerline.config import PipelineSettings
from ledgerline.domain.entities import Transaction
from ledgerline.domain.errors import ImportCancelled


@dataclass
class ImportContext:
    """Prefetched lookups and settings for one import of one account.

    Attributes:
        account_id: Target account
        existing_fingerprints: fingerprint -> existing transaction ID
        existing_transactions: Non-archived transactions in the fuzzy window
        settings: Pipeline thresholds
        cancel_event: Set from another thread to cancel the import
    """

    account_id: int
    existing_fingerprints: dict[str, int] = field(default_factory=dict)
    existing_transactions: list[Transaction] = field(default_factory=list)
    settings: PipelineSettings = field(default_factory=PipelineSettings)
    cancel_event: threading.Event = field(default_factory=threading.Event)

    def check_cancelled(self, stage: str) -> None:
        """Raise ImportCancelled if cancellation was requested.

        Called before each store access so a cancelled import never writes.
        """
        if self.cancel_event.is_set():
            raise ImportCancelled(f"Import cancelled before {stage}")

    def cancel(self) -> None:
        self.cancel_event.set()

    def fuzzy_window(self, dates: list[date]) -> Optional[tuple[date, date]]:
        """Date range to prefetch for fuzzy matching, or None without dates."""
        if not dates:
            return None
        days = timedelta(days=self.settings.fuzzy_date_window_days)
        return min(dates) - days, max(dates) + days
