"""Repository modules for the metadata and social graph stores."""

from .media_repo import MediaRepository
from .user_repo import UserRepository

__all__ = [
    "MediaRepository",
    "UserRepository",
]
