# hotel_approvals/models/auth/__init__.py

from .profile import Profile
from .user_role import UserRole

__all__ = [
    "Profile",
    "UserRole",
]
