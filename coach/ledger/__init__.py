"""Durable ledger of confirmations, sessions, reports, timer events and SRS state."""

from coach.ledger.records import AccountSnapshot, PlanSnapshot, PomodoroDurations, SRSSnapshot
from coach.ledger.store import LedgerStore

__all__ = [
    "AccountSnapshot",
    "LedgerStore",
    "PlanSnapshot",
    "PomodoroDurations",
    "SRSSnapshot",
]
