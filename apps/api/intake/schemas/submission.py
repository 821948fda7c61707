"""Schemas for submission endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class SubmissionCreated(BaseModel):
    """201 body. Only the generated id and timestamp are echoed back."""

    message: str
    id: int
    timestamp: datetime


class ErrorBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    error: str
    message: str | None = None
    required: list[str] | None = None
    valid_types: list[str] | None = Field(default=None, alias="validTypes")


class EnvelopeBody(BaseModel):
    """Encrypted-mode request and response body."""

    envelope: str = Field(..., min_length=1)


class HealthRead(BaseModel):
    status: str
    env: str
    version: str
