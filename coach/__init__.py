"""
Study Coach: chat-driven study-habit tracking.

Core components:
- LedgerStore: durable confirmations, sessions, reports and timer events
- SM2Scheduler / FlashcardService: spaced-repetition flashcards
- PomodoroScheduler: per (user, task) focus/break timers
- PointsEngine: points and consecutive-day streaks
- ReportService: single-day and multi-day rollups
"""

__version__ = "1.0.0"
