from emailwriter.models.user import User
from emailwriter.models.settings import UserSettings
from emailwriter.models.history import GenerationAttempt

__all__ = [
    "User",
    "UserSettings",
    "GenerationAttempt",
]
