"""Image payload decoding for submissions.

A media source is one of:

* ``UploadedImage`` - a multipart file part already read into memory,
* ``str`` - base64, optionally prefixed with ``data:image/<subtype>;base64,``,
* ``list`` of the above - decoded element-wise, order preserved.
"""

import base64
import binascii
import re
from dataclasses import dataclass
from typing import Union

from intake.core.exceptions import (
    DecodeFailure,
    PayloadTooLarge,
    UnsupportedMediaType,
)


DATA_URI_PREFIX = re.compile(r"^data:(image/[\w.+-]+);base64,", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")

_MIME_TYPE_ALIASES: dict[str, str] = {
    # Non-standard but commonly seen in the wild.
    "image/jpg": "image/jpeg",
}

_PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
_JPEG_SIGNATURE_PREFIX = b"\xff\xd8\xff"
_EXECUTABLE_SIGNATURE_PREFIXES = (
    b"MZ",  # Windows PE
    b"\x7fELF",  # Linux ELF
    b"\xfe\xed\xfa\xce",  # Mach-O (32-bit)
    b"\xfe\xed\xfa\xcf",  # Mach-O (64-bit)
    b"\xcf\xfa\xed\xfe",  # Mach-O (reverse endian)
    b"\xca\xfe\xba\xbe",  # Mach-O fat
)


@dataclass(frozen=True)
class UploadedImage:
    """A multipart file part materialized as bytes."""

    field: str
    content_type: str | None
    data: bytes
    filename: str | None = None


MediaSource = Union[UploadedImage, str, bytes, list]


def _mime_allowed(content_type: str, allowed: list[str]) -> bool:
    for item in allowed:
        item = item.strip()
        if not item:
            continue
        if item.endswith("/*"):
            prefix = item[:-1]
            if content_type.startswith(prefix):
                return True
        if content_type == item:
            return True
    return False


class MediaDecoder:
    """Turn submitted media sources into raw bytes.

    ``max_item_bytes`` caps each decoded image; ``allowed_types`` is the MIME
    allow-list applied to uploaded parts (``image/*`` wildcards allowed).
    """

    def __init__(self, *, allowed_types: list[str], max_item_bytes: int) -> None:
        self.allowed_types = [_MIME_TYPE_ALIASES.get(t, t) for t in allowed_types]
        self.max_item_bytes = max_item_bytes

    def decode(self, source: MediaSource, *, field: str = "image") -> bytes | list[bytes]:
        if isinstance(source, list):
            return [self._decode_one(item, field=field) for item in source]
        return self._decode_one(source, field=field)

    def _decode_one(self, source, *, field: str) -> bytes:
        if isinstance(source, UploadedImage):
            data = self.check_upload(source)
        elif isinstance(source, (bytes, bytearray)):
            data = bytes(source)
            check_image_bytes(data, None, field=field)
        elif isinstance(source, str):
            data = decode_base64_image(source, field=field)
            check_image_bytes(data, data_uri_type(source), field=field)
        else:
            raise DecodeFailure("Invalid image data", field=field)

        self._check_size(len(data), field=field)
        return data

    def check_upload(self, upload: UploadedImage) -> bytes:
        """Validate an uploaded part's declared type and leading bytes."""
        content_type = _normalize_mime(upload.content_type)
        if not content_type or not _mime_allowed(content_type, self.allowed_types):
            raise UnsupportedMediaType(
                f"Unsupported mimetype: {content_type or 'unknown'}",
                field=upload.field,
                allowedTypes=self.allowed_types,
            )
        check_image_bytes(upload.data, content_type, field=upload.field)
        return upload.data

    def _check_size(self, size: int, *, field: str) -> None:
        if size > self.max_item_bytes:
            max_mb = self.max_item_bytes / (1024 * 1024)
            raise PayloadTooLarge(
                f"File size exceeds {max_mb:.0f} MB limit", field=field, limit=self.max_item_bytes
            )


def _normalize_mime(value: str | None) -> str:
    content_type = (value or "").split(";", 1)[0].strip().lower()
    return _MIME_TYPE_ALIASES.get(content_type, content_type)


def data_uri_type(value: str) -> str | None:
    """MIME type declared by a ``data:`` prefix, or None for bare base64."""
    match = DATA_URI_PREFIX.match(value.strip())
    return _normalize_mime(match.group(1)) if match else None


def check_image_bytes(data: bytes, content_type: str | None, *, field: str) -> None:
    """
    Sniff the leading bytes of an image.

    Executables are always rejected; PNG and JPEG must start with their
    signature when that is the declared type.
    """
    head = data[:16]
    if head.startswith(_EXECUTABLE_SIGNATURE_PREFIXES):
        raise UnsupportedMediaType("Executable files are not allowed", field=field)
    if content_type == "image/png" and not head.startswith(_PNG_SIGNATURE):
        raise UnsupportedMediaType("File content does not match image/png", field=field)
    if content_type == "image/jpeg" and not head.startswith(_JPEG_SIGNATURE_PREFIX):
        raise UnsupportedMediaType("File content does not match image/jpeg", field=field)


def decode_base64_image(value: str, *, field: str = "image") -> bytes:
    """Decode a base64 image, stripping an optional data-URI prefix."""
    encoded = _WHITESPACE.sub("", DATA_URI_PREFIX.sub("", value.strip(), count=1))
    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeFailure("Invalid image data", field=field) from exc
    if not data:
        raise DecodeFailure("Invalid image data", field=field)
    return data
