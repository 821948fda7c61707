"""FastAPI dependencies for database access."""

from typing import Generator

from sqlalchemy.orm import Session

from intake.db.session import SessionLocal


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures its connection is returned to the
    pool after the request, on every exit path.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
