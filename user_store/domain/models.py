"""
Domain models for the user store.

Defines the `users` row shape created by the schema bootstrap. NewUser is
what callers supply and is checked against the column limits; User is what
storage hands back once `id` and `created_at` have been assigned, taken as
stored.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class NewUser(BaseModel):
    """
    A user record before it is stored.
    """

    fname: str = Field(..., min_length=1, max_length=50, description="First name.")
    lname: str = Field(..., min_length=1, max_length=50, description="Last name.")
    age: Optional[int] = Field(None, description="Age in years, if known.")

    model_config = {
        "frozen": True,
        "extra": "forbid",
    }

    def insert_params(self) -> tuple:
        return (self.fname, self.lname, self.age)


class User(BaseModel):
    """
    Representation of a single row in the `users` table.

    No input limits apply here: any row the table accepts can be read back.
    """

    id: int = Field(..., description="Primary key (SERIAL), assigned on insert.")
    fname: str
    lname: str
    age: Optional[int] = None
    created_at: datetime = Field(..., description="Row creation timestamp, assigned on insert.")

    model_config = {"frozen": True}

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "User":
        return cls.model_validate(row)


__all__ = ["NewUser", "User"]
