"""Rate limiting configuration for the public submission endpoints."""

import os

from slowapi import Limiter
from slowapi.util import get_remote_address

from intake.core.config import settings

IS_TESTING = os.getenv("TESTING", "").lower() in ("1", "true", "yes")

# Storage defaults to in-memory; point RATE_LIMIT_STORAGE_URI at redis:// for
# multi-worker deployments.
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    enabled=not IS_TESTING and settings.RATE_LIMIT_SUBMISSIONS > 0,
)

SUBMISSION_LIMIT = f"{max(settings.RATE_LIMIT_SUBMISSIONS, 1)}/minute"
