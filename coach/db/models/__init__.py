# SQLAlchemy models
from .base import Base
from .flashcards import Card, Review, SRSState
from .ledger import Confirmation, PomodoroEvent, StudySession, TaskMinutes, TaskProgress
from .users import PlanState, PomodoroUserConfig, UserAccount, UserProfile

__all__ = [
    # Base
    "Base",
    # Ledger
    "Confirmation",
    "StudySession",
    "TaskMinutes",
    "TaskProgress",
    "PomodoroEvent",
    # Flashcards
    "Card",
    "SRSState",
    "Review",
    # Users
    "UserAccount",
    "UserProfile",
    "PomodoroUserConfig",
    "PlanState",
]
