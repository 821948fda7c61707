"""Utility modules."""

from intake.utils.file_upload import (
    content_length_exceeds_limit,
    get_upload_file_size,
    read_stream_within_limit,
)
from intake.utils.normalization import derive_name_parts, normalize_text

__all__ = [
    # Normalization
    "derive_name_parts",
    "normalize_text",
    # Uploads
    "content_length_exceeds_limit",
    "get_upload_file_size",
    "read_stream_within_limit",
]
