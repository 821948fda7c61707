"""CLI tools for intake administration."""

import json
import sys

import click

from intake.core.config import settings
from intake.core.envelope import EnvelopeCodec, EnvelopeKey
from intake.core.exceptions import IntakeError


def _codec() -> EnvelopeCodec:
    try:
        return EnvelopeCodec(EnvelopeKey.from_settings(settings))
    except RuntimeError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
def cli():
    """Campus intake CLI tools."""
    pass


@cli.command("init-db")
def init_db():
    """
    Create the submission tables in DATABASE_URL.

    Existing tables are left untouched.

    Example:
        intake init-db
    """
    from intake.db import models  # noqa: F401 - registers tables on Base.metadata
    from intake.db.base import Base
    from intake.db.session import engine

    Base.metadata.create_all(engine)
    click.echo("✓ Created tables: " + ", ".join(sorted(Base.metadata.tables)))


@cli.command()
@click.argument("document", required=False)
def seal(document: str | None):
    """
    Seal a JSON document into an envelope.

    Reads DOCUMENT, or stdin when omitted. Useful for building test requests
    against an encrypted deployment.

    Example:
        echo '{"contact": "0400"}' | intake seal
    """
    raw = document if document is not None else sys.stdin.read()
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"Input is not valid JSON: {exc.msg}") from exc
    click.echo(_codec().seal(payload))


@cli.command("open")
@click.argument("envelope")
def open_envelope(envelope: str):
    """Decrypt ENVELOPE and print its plaintext."""
    try:
        click.echo(_codec().open(envelope))
    except IntakeError as exc:
        message = exc.extra.get("message", exc.reason)
        raise click.ClickException(f"{exc.reason}: {message}") from exc


@cli.command()
@click.option("--host", default=None, help="Bind address (default: HOST setting)")
@click.option("--port", default=None, type=int, help="Port (default: PORT setting)")
def serve(host: str | None, port: int | None):
    """Run the API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "intake.main:app",
        host=host or settings.HOST,
        port=port or settings.PORT,
    )


if __name__ == "__main__":
    cli()
