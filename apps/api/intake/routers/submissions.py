"""Public submission endpoints: campus feedback, form intake and security incidents.

All three routes share one handler. The wire protocol is chosen per deployment
by ``SUBMISSION_MODE``:

* ``plain`` - multipart body (text fields plus image file parts or base64
  text values), plain JSON responses;
* ``encrypted`` - ``{"envelope": "v:1,..."}`` bodies in both directions,
  including error responses.
"""

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from slowapi.errors import RateLimitExceeded
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

from intake.core.config import Settings
from intake.core.deps import get_db
from intake.core.envelope import EnvelopeCodec
from intake.core.exceptions import IntakeError, MalformedEnvelope, PayloadTooLarge
from intake.core.rate_limit import SUBMISSION_LIMIT, limiter
from intake.core.request_context import current_request_id
from intake.core.structured_logging import build_log_context
from intake.schemas.submission import EnvelopeBody, ErrorBody, SubmissionCreated
from intake.services import submission_service
from intake.services.media import UploadedImage
from intake.services.variants import VARIANTS, SubmissionVariant
from intake.utils.file_upload import (
    content_length_exceeds_limit,
    get_upload_file_size,
    read_stream_within_limit,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["submissions"])

ENCRYPTION_FALLBACK_BODY = {
    "error": "Internal server error",
    "message": "Response encryption failed",
}


# =============================================================================
# Responses
# =============================================================================

def _sealed_response(codec: EnvelopeCodec, status_code: int, body: dict[str, Any]) -> JSONResponse:
    try:
        envelope = codec.seal(body)
    except (TypeError, ValueError):
        # Last resort: the only plaintext body an encrypted deployment sends.
        logger.exception(
            "Failed to seal response body",
            extra=build_log_context(request_id=current_request_id()),
        )
        return JSONResponse(status_code=500, content=ENCRYPTION_FALLBACK_BODY)
    return JSONResponse(status_code=status_code, content={"envelope": envelope})


def _respond(request: Request, status_code: int, body: dict[str, Any]) -> JSONResponse:
    codec: EnvelopeCodec | None = request.app.state.codec
    if codec is not None:
        return _sealed_response(codec, status_code, body)
    return JSONResponse(status_code=status_code, content=body)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 for the submission routes, sealed like every other response."""
    logger.info(
        "Submission rate limited: %s",
        exc.detail,
        extra=build_log_context(
            request_id=current_request_id(), route=request.url.path, method=request.method
        ),
    )
    response = _respond(request, 429, {"error": f"Rate limit exceeded: {exc.detail}"})
    return request.app.state.limiter._inject_headers(
        response, getattr(request.state, "view_rate_limit", None)
    )


# =============================================================================
# Request readers
# =============================================================================

async def _read_part(item: UploadFile | str, *, field: str, settings: Settings) -> UploadedImage | str:
    if not isinstance(item, UploadFile):
        return item
    size = await get_upload_file_size(item)
    if size > settings.MAX_IMAGE_BYTES:
        max_mb = settings.MAX_IMAGE_BYTES / (1024 * 1024)
        raise PayloadTooLarge(
            f"File size exceeds {max_mb:.0f} MB limit", field=field, limit=settings.MAX_IMAGE_BYTES
        )
    data = await item.read()
    return UploadedImage(
        field=field,
        content_type=item.content_type,
        data=data,
        filename=item.filename,
    )


async def _read_multipart(
    request: Request, variant: SubmissionVariant, settings: Settings
) -> tuple[dict[str, Any], dict[str, Any]]:
    form = await request.form()
    fields: dict[str, Any] = {}
    for key, value in form.multi_items():
        if key in variant.media_fields or not isinstance(value, str):
            continue
        fields[key] = value

    media: dict[str, Any] = {}
    for slot in variant.media:
        items = [
            await _read_part(item, field=slot.field, settings=settings)
            for item in form.getlist(slot.field)
        ]
        items = [item for item in items if item != ""]
        if slot.many:
            media[slot.field] = items
        elif items:
            media[slot.field] = items[0]
    return fields, media


async def _read_envelope(
    request: Request, variant: SubmissionVariant, settings: Settings, codec: EnvelopeCodec
) -> tuple[dict[str, Any], dict[str, Any]]:
    if content_length_exceeds_limit(
        request.headers.get("content-length"),
        max_size_bytes=settings.MAX_ENVELOPE_BODY_BYTES,
        overhead_bytes=0,
    ):
        raise PayloadTooLarge("Request body too large", limit=settings.MAX_ENVELOPE_BODY_BYTES)

    raw = await read_stream_within_limit(
        request.stream(), max_size_bytes=settings.MAX_ENVELOPE_BODY_BYTES
    )
    if raw is None:
        raise PayloadTooLarge("Request body too large", limit=settings.MAX_ENVELOPE_BODY_BYTES)

    try:
        body = EnvelopeBody.model_validate(json.loads(raw))
    except (json.JSONDecodeError, UnicodeDecodeError, ValidationError):
        raise MalformedEnvelope("Missing encrypted envelope", required=["envelope"]) from None

    payload = codec.open_json(body.envelope)
    fields = {key: value for key, value in payload.items() if key not in variant.media_fields}
    media = {slot.field: payload.get(slot.field) for slot in variant.media}
    return fields, media


# =============================================================================
# Handler
# =============================================================================

async def handle_submission(request: Request, variant: SubmissionVariant, db: Session) -> JSONResponse:
    settings: Settings = request.app.state.settings
    codec: EnvelopeCodec | None = request.app.state.codec
    log_context = build_log_context(
        request_id=current_request_id(),
        route=request.url.path,
        method=request.method,
        variant=variant.key,
    )

    try:
        if codec is not None:
            fields, media = await _read_envelope(request, variant, settings, codec)
        else:
            fields, media = await _read_multipart(request, variant, settings)

        created = await run_in_threadpool(
            submission_service.submit,
            db,
            variant,
            fields,
            media,
            decoder=request.app.state.decoder,
        )
    except IntakeError as exc:
        if exc.status_code >= 500:
            logger.error("Submission failed: %s", exc.reason, extra=log_context)
        else:
            logger.info("Submission rejected: %s", exc.reason, extra=log_context)
        return _respond(request, exc.status_code, exc.to_body())
    except StarletteHTTPException as exc:
        # Malformed multipart bodies surface from request.form() as HTTP 400s.
        logger.info("Malformed request body: %s", exc.detail, extra=log_context)
        return _respond(
            request, exc.status_code, {"error": "Malformed request body", "message": str(exc.detail)}
        )
    except Exception as exc:
        logger.exception("Unhandled error while saving submission", extra=log_context)
        return _respond(request, 500, {"error": "Internal server error", "message": str(exc)})

    body = SubmissionCreated(
        message=variant.success_message,
        id=created.id,
        timestamp=created.created_at,
    )
    return _respond(request, 201, body.model_dump(mode="json"))


def _make_endpoint(variant: SubmissionVariant):
    async def add_info(request: Request, db: Session = Depends(get_db)) -> JSONResponse:
        return await handle_submission(request, variant, db)

    # slowapi keys its per-route limits on the function name
    add_info.__name__ = add_info.__qualname__ = f"add_{variant.key.replace('-', '_')}_info"
    return limiter.limit(SUBMISSION_LIMIT)(add_info)


for _variant in VARIANTS.values():
    router.add_api_route(
        f"/{_variant.key}/add-info",
        _make_endpoint(_variant),
        methods=["POST"],
        status_code=201,
        response_model=None,
        summary=f"Submit a {_variant.log_label}",
        responses={
            201: {"model": SubmissionCreated},
            400: {"model": ErrorBody},
            413: {"model": ErrorBody},
            500: {"model": ErrorBody},
        },
    )
