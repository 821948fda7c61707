"""Envelope encryption for request/response bodies.

An envelope is ``"v:1," + base64(AES-256-CBC(PKCS7(utf8(plaintext))))`` with a
static key and IV shared by every client and the server. There is no integrity
tag: a corrupted ciphertext either fails unpadding or decrypts to different
bytes. Treat this as transport obfuscation, not authenticated encryption.
"""

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from intake.core.config import Settings
from intake.core.exceptions import DecryptionFailure, MalformedEnvelope


VERSION_HEADER = "v:1,"
KEY_LENGTH_BYTES = 32
IV_LENGTH_BYTES = 16
_BLOCK_SIZE_BITS = 128


@dataclass(frozen=True)
class EnvelopeKey:
    """AES-256 key and CBC initialization vector."""

    key: bytes
    iv: bytes

    def __post_init__(self) -> None:
        if len(self.key) != KEY_LENGTH_BYTES:
            raise ValueError(
                f"Envelope key must be exactly {KEY_LENGTH_BYTES} bytes. Current length: {len(self.key)}"
            )
        if len(self.iv) != IV_LENGTH_BYTES:
            raise ValueError(
                f"Envelope IV must be exactly {IV_LENGTH_BYTES} bytes. Current length: {len(self.iv)}"
            )

    @classmethod
    def from_settings(cls, settings: Settings) -> "EnvelopeKey":
        """Build key material from ENVELOPE_KEY / ENVELOPE_IV."""
        if not settings.ENVELOPE_KEY or not settings.ENVELOPE_IV:
            raise RuntimeError(
                "ENVELOPE_KEY and ENVELOPE_IV must be set to use encrypted envelopes."
            )
        try:
            return cls(
                key=settings.ENVELOPE_KEY.encode("utf-8"),
                iv=settings.ENVELOPE_IV.encode("utf-8"),
            )
        except ValueError as exc:
            raise RuntimeError(str(exc)) from exc


class EnvelopeCodec:
    """Seal and open versioned envelopes with injected key material."""

    def __init__(self, key: EnvelopeKey) -> None:
        self._key = key

    def _cipher(self) -> Cipher:
        return Cipher(algorithms.AES(self._key.key), modes.CBC(self._key.iv))

    def seal(self, payload: Any) -> str:
        """Encrypt a payload into an envelope string.

        ``str`` and ``bytes`` are encrypted as-is; anything else is serialized
        to compact JSON first.
        """
        if isinstance(payload, bytes):
            plaintext = payload
        elif isinstance(payload, str):
            plaintext = payload.encode("utf-8")
        else:
            plaintext = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode(
                "utf-8"
            )

        padder = padding.PKCS7(_BLOCK_SIZE_BITS).padder()
        padded = padder.update(plaintext) + padder.finalize()
        encryptor = self._cipher().encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return VERSION_HEADER + base64.b64encode(ciphertext).decode("ascii")

    def open(self, envelope: str) -> str:
        """Decrypt an envelope and return the UTF-8 plaintext."""
        if not isinstance(envelope, str) or not envelope.startswith(VERSION_HEADER):
            raise MalformedEnvelope(
                "Failed to decrypt request data",
                message="Invalid envelope format: missing version header",
            )
        encoded = envelope[len(VERSION_HEADER) :]

        try:
            ciphertext = base64.b64decode(encoded, validate=True)
            decryptor = self._cipher().decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(_BLOCK_SIZE_BITS).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
            return plaintext.decode("utf-8")
        except (binascii.Error, ValueError) as exc:
            raise DecryptionFailure("Failed to decrypt request data", message=str(exc)) from exc

    def open_json(self, envelope: str) -> dict[str, Any]:
        """Open an envelope whose plaintext must be a JSON object."""
        plaintext = self.open(envelope)
        try:
            data = json.loads(plaintext)
        except json.JSONDecodeError as exc:
            raise MalformedEnvelope(
                "Failed to decrypt request data", message=f"Decrypted payload is not JSON: {exc.msg}"
            ) from exc
        if not isinstance(data, dict):
            raise MalformedEnvelope(
                "Failed to decrypt request data",
                message="Decrypted payload must be a JSON object",
            )
        return data
