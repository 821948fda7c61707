"""Pydantic schemas for request and response bodies."""

from intake.schemas.submission import (
    EnvelopeBody,
    ErrorBody,
    HealthRead,
    SubmissionCreated,
)

__all__ = ["EnvelopeBody", "ErrorBody", "HealthRead", "SubmissionCreated"]
