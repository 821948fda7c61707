"""Custom SQLAlchemy types for submission media."""

from __future__ import annotations

import base64
import json

from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.types import LargeBinary, Text, TypeDecorator


class BinaryArray(TypeDecorator):
    """Ordered list of binary blobs.

    Stored as ``BYTEA[]`` on PostgreSQL and as a JSON list of base64 strings on
    other backends. Element order is preserved on both.
    """

    impl = Text
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(ARRAY(LargeBinary))
        return dialect.type_descriptor(Text())

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        items = [bytes(item) for item in value]
        if dialect.name == "postgresql":
            return items
        return json.dumps([base64.b64encode(item).decode("ascii") for item in items])

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "postgresql":
            return [bytes(item) for item in value]
        return [base64.b64decode(item) for item in json.loads(value)]
