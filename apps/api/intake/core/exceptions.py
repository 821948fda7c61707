"""Error taxonomy for the submission pipeline.

Every failure a client can cause (or observe) is an ``IntakeError``. Routers turn
these into responses in a single place; services only raise them.
"""

from typing import Any


class IntakeError(Exception):
    """Base class for client-facing submission errors."""

    status_code: int = 400

    def __init__(self, reason: str, **extra: Any) -> None:
        super().__init__(reason)
        self.reason = reason
        self.extra = {key: value for key, value in extra.items() if value is not None}

    def to_body(self) -> dict[str, Any]:
        """Return the JSON error body sent to the client."""
        return {"error": self.reason, **self.extra}


class MalformedEnvelope(IntakeError):
    """The request envelope is absent or lacks the version header."""


class DecryptionFailure(IntakeError):
    """The envelope could not be base64-decoded, decrypted or unpadded."""


class ValidationRejected(IntakeError):
    """A submission failed a field rule.

    ``required`` lists the field names that would satisfy a presence rule and
    ``valid_types`` echoes an enum allow-list.
    """

    def __init__(
        self,
        reason: str,
        *,
        required: list[str] | None = None,
        valid_types: list[str] | None = None,
    ) -> None:
        super().__init__(reason, required=required, validTypes=valid_types)
        self.required = required
        self.valid_types = valid_types


class UnsupportedMediaType(IntakeError):
    """An uploaded part is not an allowed image type."""


class DecodeFailure(IntakeError):
    """A base64 image payload could not be decoded."""


class PayloadTooLarge(IntakeError):
    status_code = 413


class PersistenceFailure(IntakeError):
    """The insert transaction failed and was rolled back."""

    status_code = 500

    def __init__(self, cause: str) -> None:
        # The driver message is passed through unredacted.
        super().__init__("Internal server error", message=cause)
        self.cause = cause
