"""
Domain package for the user store.

Exports the record models shared by the repositories, the CLI, and the
seeding script. Keep this package focused on data definitions and validation.
"""

from user_store.domain.models import NewUser, User

__all__ = [
    "NewUser",
    "User",
]
