"""
Repositories package for the user store.

Each repository groups the units of work for one table and runs them through
a PooledExecutor.
"""

from user_store.repositories.users import UserInput, UserRepository

__all__ = [
    "UserInput",
    "UserRepository",
]
