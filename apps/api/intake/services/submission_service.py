"""Submission pipeline: clean, validate, decode media, insert in one transaction."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from intake.core.exceptions import PersistenceFailure
from intake.core.request_context import current_request_id
from intake.core.structured_logging import build_log_context
from intake.db.models import SubmissionMixin
from intake.services.media import MediaDecoder
from intake.services.validation import clean_fields, validate_submission
from intake.services.variants import SubmissionVariant


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PersistedSubmission:
    """What a caller gets back from an insert: never the submitted fields."""

    id: int
    created_at: datetime


def decode_media(
    variant: SubmissionVariant,
    media: Mapping[str, Any],
    decoder: MediaDecoder,
) -> dict[str, bytes | list[bytes]]:
    """Decode every media slot into column values."""
    return {
        slot.column: decoder.decode(media[slot.field], field=slot.field)
        for slot in variant.media
    }


def build_row(
    variant: SubmissionVariant,
    fields: Mapping[str, str | None],
    media_columns: Mapping[str, bytes | list[bytes]],
) -> SubmissionMixin:
    values: dict[str, Any] = {
        column: fields.get(key) or None for key, column in variant.columns.items()
    }
    rule = variant.role_rule
    if rule and fields.get(rule.field) != rule.sentinel:
        values[variant.columns[rule.linked_field]] = None
    values.update(media_columns)
    return variant.model(**values)


def persist(
    db: Session,
    variant: SubmissionVariant,
    fields: Mapping[str, str | None],
    media_columns: Mapping[str, bytes | list[bytes]],
) -> PersistedSubmission:
    """
    Insert one submission row atomically.

    Either the whole row (media included) commits, or the transaction is rolled
    back and PersistenceFailure is raised. Nothing is retried.
    """
    row = build_row(variant, fields, media_columns)
    try:
        db.add(row)
        db.commit()
        db.refresh(row)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "Failed to save %s submission",
            variant.log_label or variant.key,
            extra=build_log_context(request_id=current_request_id(), variant=variant.key),
        )
        raise PersistenceFailure(str(exc.orig if getattr(exc, "orig", None) else exc)) from exc

    return PersistedSubmission(id=row.id, created_at=row.created_at)


def submit(
    db: Session,
    variant: SubmissionVariant,
    raw_fields: Mapping[str, Any],
    media: Mapping[str, Any],
    *,
    decoder: MediaDecoder,
    today: date | None = None,
) -> PersistedSubmission:
    """Run the full pipeline for one request."""
    fields = clean_fields(variant, raw_fields)
    validate_submission(variant, fields, media, today=today)
    media_columns = decode_media(variant, media, decoder)
    created = persist(db, variant, fields, media_columns)

    logger.info(
        "Saved %s submission",
        variant.log_label or variant.key,
        extra=build_log_context(
            request_id=current_request_id(),
            variant=variant.key,
            submission_id=created.id,
        ),
    )
    return created
