"""
Identity claims carried by the identity provider's bearer tokens.
"""

from enum import Enum

from pydantic import BaseModel, Field


class Role(str, Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class Identity(BaseModel):
    sub: str = Field(..., min_length=1, max_length=64)
    role: Role = Role.STUDENT

    @property
    def user_id(self) -> str:
        return self.sub
