from .user import User
from .habit import Habit

__all__ = [
    "User",
    "Habit",
]
