"""HTTP tests for the submission endpoints in encrypted (envelope) mode."""

import json

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select

from intake.core.config import settings
from intake.core.envelope import VERSION_HEADER, EnvelopeCodec
from intake.core.rate_limit import limiter
from intake.db.models import CampusFeedback, FormSubmission, SecurityIncident
from intake.main import create_app

from conftest import JPEG_BYTES, PNG_BYTES, b64, data_uri, display_date, make_settings


def _security_payload(**overrides):
    payload = {
        "contact": "0400 111 222",
        "selectionType": "event",
        "eventName": "Concert",
        "eventDate": display_date(2),
        "name": "Alex Kim",
        "mobileNumber": "0400111222",
        "staffId": "S-991",
        "verification": "verified",
        "incidentReport": "Crowd crush near gate 3",
        "images": [data_uri(PNG_BYTES), data_uri(JPEG_BYTES, "jpeg"), b64(b"third")],
    }
    payload.update(overrides)
    return payload


def _campus_payload(**overrides):
    payload = {
        "contact": "0400 111 222",
        "eventName": "Open Day",
        "name": "Sam Lee",
        "mobileNumber": "0400111222",
        "userType": "Staff",
        "staffId": "E-42",
        "feedback": "Great tour",
        "visitDate": display_date(),
        "selfieImage": data_uri(PNG_BYTES),
        "signature": data_uri(JPEG_BYTES, "jpeg"),
    }
    payload.update(overrides)
    return payload


def _count(db, model) -> int:
    return db.scalar(select(func.count()).select_from(model))


async def _post_sealed(client: AsyncClient, codec: EnvelopeCodec, path: str, payload):
    return await client.post(path, json={"envelope": codec.seal(payload)})


def _open_body(codec: EnvelopeCodec, response) -> dict:
    body = response.json()
    assert set(body) == {"envelope"}
    assert body["envelope"].startswith(VERSION_HEADER)
    return codec.open_json(body["envelope"])


@pytest.mark.asyncio
async def test_sealed_security_report_is_saved_with_sealed_response(
    encrypted_client: AsyncClient, codec: EnvelopeCodec, db
):
    response = await _post_sealed(
        encrypted_client, codec, "/api/security-form/add-info", _security_payload()
    )

    assert response.status_code == 201
    body = _open_body(codec, response)
    assert body["message"] == "Security incident report submitted successfully!"
    assert set(body) == {"message", "id", "timestamp"}

    row = db.get(SecurityIncident, body["id"])
    assert row.incident_images == [PNG_BYTES, JPEG_BYTES, b"third"]
    assert row.incident_report == "Crowd crush near gate 3"


@pytest.mark.asyncio
async def test_sealed_campus_feedback_keeps_staff_id(
    encrypted_client: AsyncClient, codec: EnvelopeCodec, db
):
    response = await _post_sealed(
        encrypted_client, codec, "/api/campus-form/add-info", _campus_payload()
    )

    assert response.status_code == 201
    row = db.get(CampusFeedback, _open_body(codec, response)["id"])
    assert row.staff_id == "E-42"
    assert row.selfie_image == PNG_BYTES


@pytest.mark.asyncio
async def test_sealed_form_submission_is_saved(
    encrypted_client: AsyncClient, codec: EnvelopeCodec, db
):
    payload = {
        "firstName": "Ana",
        "lastName": "Lopez",
        "eventName": "Expo",
        "visitorType": "Staff",
        "idNumber": "ID-7",
        "eventDate": display_date(),
        "selfie": data_uri(PNG_BYTES),
        "signature": data_uri(PNG_BYTES),
    }

    response = await _post_sealed(encrypted_client, codec, "/api/form-submission/add-info", payload)

    assert response.status_code == 201
    body = _open_body(codec, response)
    assert body["message"] == "Form data submitted successfully!"
    assert db.get(FormSubmission, body["id"]).id_number == "ID-7"


@pytest.mark.asyncio
@pytest.mark.parametrize("request_body", [{}, {"envelope": ""}, {"envelope": 42}, {"data": "v:1,AAAA"}])
async def test_missing_envelope_gets_sealed_400(
    encrypted_client: AsyncClient, codec: EnvelopeCodec, db, request_body
):
    response = await encrypted_client.post("/api/security-form/add-info", json=request_body)

    assert response.status_code == 400
    assert _open_body(codec, response) == {
        "error": "Missing encrypted envelope",
        "required": ["envelope"],
    }
    assert _count(db, SecurityIncident) == 0


@pytest.mark.asyncio
async def test_non_json_body_gets_sealed_400(encrypted_client: AsyncClient, codec: EnvelopeCodec):
    response = await encrypted_client.post(
        "/api/security-form/add-info",
        content=b"not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert _open_body(codec, response)["error"] == "Missing encrypted envelope"


@pytest.mark.asyncio
@pytest.mark.parametrize("envelope", ["v:1,QUJD", "v:1,***", "AAAAAAAAAAAAAAAAAAAAAA=="])
async def test_undecryptable_envelope_gets_sealed_400(
    encrypted_client: AsyncClient, codec: EnvelopeCodec, db, envelope
):
    response = await encrypted_client.post(
        "/api/campus-form/add-info", json={"envelope": envelope}
    )

    assert response.status_code == 400
    body = _open_body(codec, response)
    assert body["error"] == "Failed to decrypt request data"
    assert body["message"]
    assert _count(db, CampusFeedback) == 0


@pytest.mark.asyncio
async def test_invalid_selection_type_gets_sealed_valid_types(
    encrypted_client: AsyncClient, codec: EnvelopeCodec, db
):
    response = await _post_sealed(
        encrypted_client,
        codec,
        "/api/security-form/add-info",
        _security_payload(selectionType="parking"),
    )

    assert response.status_code == 400
    body = _open_body(codec, response)
    assert body["error"] == "Invalid selection type"
    assert body["validTypes"] == ["event", "students", "employees", "campus", "others-suggestions"]
    assert _count(db, SecurityIncident) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("images", [[], "not-a-list", None])
async def test_security_report_requires_image_list(
    encrypted_client: AsyncClient, codec: EnvelopeCodec, images
):
    response = await _post_sealed(
        encrypted_client, codec, "/api/security-form/add-info", _security_payload(images=images)
    )

    assert response.status_code == 400
    assert _open_body(codec, response)["error"] == "At least one incident image is required"


@pytest.mark.asyncio
async def test_invalid_image_data_gets_sealed_400(
    encrypted_client: AsyncClient, codec: EnvelopeCodec, db
):
    response = await _post_sealed(
        encrypted_client,
        codec,
        "/api/security-form/add-info",
        _security_payload(images=[data_uri(PNG_BYTES), "not base64!!"]),
    )

    assert response.status_code == 400
    assert _open_body(codec, response) == {"error": "Invalid image data", "field": "images"}
    assert _count(db, SecurityIncident) == 0


@pytest.mark.asyncio
async def test_oversized_decoded_image_gets_sealed_413(engine, codec: EnvelopeCodec, db):
    app = create_app(make_settings(SUBMISSION_MODE="encrypted", MAX_IMAGE_BYTES=16))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        response = await _post_sealed(
            c, codec, "/api/security-form/add-info", _security_payload()
        )

    assert response.status_code == 413
    assert _open_body(codec, response)["field"] == "images"
    assert _count(db, SecurityIncident) == 0


@pytest.mark.asyncio
async def test_seal_failure_falls_back_to_plaintext_500(
    encrypted_app: FastAPI, encrypted_client: AsyncClient, codec: EnvelopeCodec, monkeypatch
):
    def broken_seal(payload):
        raise ValueError("cipher unavailable")

    monkeypatch.setattr(encrypted_app.state.codec, "seal", broken_seal)

    response = await _post_sealed(
        encrypted_client, codec, "/api/security-form/add-info", _security_payload()
    )

    assert response.status_code == 500
    assert response.json() == {
        "error": "Internal server error",
        "message": "Response encryption failed",
    }


def test_encrypted_mode_without_key_material_refuses_to_start():
    with pytest.raises(RuntimeError):
        create_app(make_settings(SUBMISSION_MODE="encrypted", ENVELOPE_KEY="", ENVELOPE_IV=""))


@pytest.mark.asyncio
async def test_envelope_body_over_limit_gets_sealed_413(engine, codec: EnvelopeCodec, db):
    app = create_app(make_settings(SUBMISSION_MODE="encrypted", MAX_ENVELOPE_BODY_BYTES=64))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        response = await _post_sealed(
            c, codec, "/api/security-form/add-info", _security_payload()
        )

    assert response.status_code == 413
    assert _open_body(codec, response) == {"error": "Request body too large", "limit": 64}
    assert _count(db, SecurityIncident) == 0


def _chunked(body: bytes, size: int = 32):
    async def chunks():
        for start in range(0, len(body), size):
            yield body[start:start + size]

    return chunks()


@pytest.mark.asyncio
async def test_chunked_body_over_limit_gets_sealed_413(engine, codec: EnvelopeCodec, db):
    app = create_app(make_settings(SUBMISSION_MODE="encrypted", MAX_ENVELOPE_BODY_BYTES=100))
    body = json.dumps({"envelope": codec.seal(_campus_payload())}).encode()
    assert len(body) > 100

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        response = await c.post(
            "/api/campus-form/add-info",
            content=_chunked(body),
            headers={"Content-Type": "application/json"},
        )

    assert "content-length" not in response.request.headers
    assert response.status_code == 413
    assert _open_body(codec, response) == {"error": "Request body too large", "limit": 100}
    assert _count(db, CampusFeedback) == 0


@pytest.mark.asyncio
async def test_chunked_body_within_limit_is_saved(
    encrypted_client: AsyncClient, codec: EnvelopeCodec, db
):
    body = json.dumps({"envelope": codec.seal(_campus_payload())}).encode()

    response = await encrypted_client.post(
        "/api/campus-form/add-info",
        content=_chunked(body),
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 201
    assert _count(db, CampusFeedback) == 1


@pytest.mark.asyncio
async def test_unknown_payload_keys_are_ignored(
    encrypted_client: AsyncClient, codec: EnvelopeCodec, db
):
    payload = _campus_payload(meta={"device": "kiosk-3"}, images=[data_uri(PNG_BYTES)])

    response = await _post_sealed(encrypted_client, codec, "/api/campus-form/add-info", payload)

    assert response.status_code == 201
    assert _count(db, CampusFeedback) == 1


@pytest.mark.asyncio
async def test_rate_limited_request_gets_sealed_429(
    encrypted_client: AsyncClient, codec: EnvelopeCodec, monkeypatch
):
    monkeypatch.setattr(limiter, "enabled", True)
    limiter.reset()
    try:
        for _ in range(settings.RATE_LIMIT_SUBMISSIONS + 1):
            response = await encrypted_client.post("/api/security-form/add-info", json={})
            if response.status_code == 429:
                break
    finally:
        limiter.reset()

    assert response.status_code == 429
    assert _open_body(codec, response)["error"].startswith("Rate limit exceeded")
