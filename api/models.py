"""
API response models for the user endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
separate from the dataclasses in auth/models.py, which own the internal
domain representation. None of them has a password or token field, so a
response built from them cannot carry either.

Request bodies are read as plain JSON objects and validated by
auth/flow.AuthFlow, which owns the field rules and their messages.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UserPublic(BaseModel):
    """Response body for POST /users/register (201) and POST /users/login (200)."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str


class ProfileResponse(BaseModel):
    """Response body for GET /users/profile."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    name: str
    email: str
    created_at: str = Field(alias="createdAt")


class MessageResponse(BaseModel):
    """Every error body, and the logout body: a single message field."""

    model_config = ConfigDict(frozen=True)

    message: str


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    database: Optional[str] = None
