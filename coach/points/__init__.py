"""Points and daily streak bookkeeping."""

from coach.points.engine import PointsEngine, StreakUpdate, reached_milestone

__all__ = ["PointsEngine", "StreakUpdate", "reached_milestone"]
