from .profile import UserProfile
from .habit import Habit, HabitCompletion
from .routine import DailyRoutine, RoutineSegment
from .evening_review import EveningReview
from .pending_adaptation import PendingAdaptation
from .behavior_event import BehaviorEvent

__all__ = [
    "UserProfile",
    "Habit",
    "HabitCompletion",
    "DailyRoutine",
    "RoutineSegment",
    "EveningReview",
    "PendingAdaptation",
    "BehaviorEvent",
]
