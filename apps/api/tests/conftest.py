"""
Test configuration and fixtures.

Provides:
- Per-test SQLite database (file-backed, so connection checkout is observable)
- Plain-mode and encrypted-mode app instances built from explicit Settings
- HTTPX AsyncClient over ASGITransport
"""
import os

# Must be set before any intake module reads settings.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ["SUBMISSION_MODE"] = "plain"
os.environ["TESTING"] = "1"

import base64
from datetime import date, timedelta
from typing import AsyncGenerator, Generator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from intake.core.config import Settings
from intake.core.envelope import EnvelopeCodec, EnvelopeKey
from intake.db import models  # noqa: F401 - registers tables
from intake.db.base import Base
from intake.db.session import SessionLocal
from intake.main import create_app
from intake.services.media import MediaDecoder


TEST_ENVELOPE_KEY = "aBfGhIjKlMnOpQrStUvWxYz012345678"
TEST_ENVELOPE_IV = "1234567890123456"

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + b"\x01" * 24
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00" + b"\x02" * 24


def display_date(days_ago: int = 0) -> str:
    """dd/mm/yyyy text for a date relative to today."""
    return (date.today() - timedelta(days=days_ago)).strftime("%d/%m/%Y")


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def data_uri(data: bytes, subtype: str = "png") -> str:
    return f"data:image/{subtype};base64," + base64.b64encode(data).decode("ascii")


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def engine(tmp_path) -> Generator[Engine, None, None]:
    """
    Fresh database per test, bound to the app's SessionLocal.

    The request path (get_db) therefore talks to this engine.
    """
    test_engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'intake.db'}",
        connect_args={"check_same_thread": False},
        hide_parameters=True,
    )
    Base.metadata.create_all(test_engine)
    SessionLocal.configure(bind=test_engine)

    yield test_engine

    test_engine.dispose()


@pytest.fixture(scope="function")
def db(engine: Engine) -> Generator[Session, None, None]:
    session = SessionLocal()
    yield session
    session.close()


# =============================================================================
# Settings / collaborators
# =============================================================================

def make_settings(**overrides) -> Settings:
    values = {
        "DATABASE_URL": "sqlite+pysqlite:///:memory:",
        "ENV": "test",
        "SUBMISSION_MODE": "plain",
        "ENVELOPE_KEY": TEST_ENVELOPE_KEY,
        "ENVELOPE_IV": TEST_ENVELOPE_IV,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def codec() -> EnvelopeCodec:
    return EnvelopeCodec(
        EnvelopeKey(key=TEST_ENVELOPE_KEY.encode(), iv=TEST_ENVELOPE_IV.encode())
    )


@pytest.fixture
def decoder() -> MediaDecoder:
    return MediaDecoder(allowed_types=["image/jpeg", "image/png"], max_item_bytes=1024)


# =============================================================================
# App / Client Fixtures
# =============================================================================

@pytest.fixture
def plain_app() -> FastAPI:
    return create_app(make_settings(SUBMISSION_MODE="plain"))


@pytest.fixture
def encrypted_app() -> FastAPI:
    return create_app(make_settings(SUBMISSION_MODE="encrypted"))


@pytest.fixture(scope="function")
async def client(engine: Engine, plain_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient for a plain (multipart) deployment."""
    async with AsyncClient(
        transport=ASGITransport(app=plain_app),
        base_url="http://test",
    ) as c:
        yield c


@pytest.fixture(scope="function")
async def encrypted_client(
    engine: Engine, encrypted_app: FastAPI
) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient for an encrypted (envelope) deployment."""
    async with AsyncClient(
        transport=ASGITransport(app=encrypted_app),
        base_url="http://test",
    ) as c:
        yield c
