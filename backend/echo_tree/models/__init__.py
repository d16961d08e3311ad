"""SQLAlchemy models exposed by the backend."""
from .base import Base
from .content import Message, Reply
from .penalty import Penalty
from .quiz import QuizAttempt
from .role_change import RoleChange
from .session import UserSession
from .user import AccountStatus, Role, User

__all__ = [
    "AccountStatus",
    "Base",
    "Message",
    "Penalty",
    "QuizAttempt",
    "Reply",
    "Role",
    "RoleChange",
    "User",
    "UserSession",
]
