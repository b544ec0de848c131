"""Read-only rollups over the ledger."""

from coach.reports.aggregation import ReportService, clamp_days

__all__ = ["ReportService", "clamp_days"]
