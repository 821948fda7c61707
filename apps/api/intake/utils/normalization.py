"""Data normalization utilities for submitted text fields."""

from typing import Optional


def normalize_text(value: Optional[str]) -> Optional[str]:
    """
    Strip surrounding whitespace from a submitted value.

    Returns:
        The trimmed value, or None if nothing is left
    """
    if value is None:
        return None
    value = value.strip()
    return value or None


def derive_name_parts(
    first_name: Optional[str],
    last_name: Optional[str],
    name: Optional[str],
) -> tuple[Optional[str], Optional[str]]:
    """
    Fill first/last name from a combined name when either is missing.

    The first whitespace-separated token becomes the first name and the rest
    the last name; explicitly supplied parts always win.
    """
    first_name = normalize_text(first_name)
    last_name = normalize_text(last_name)

    if (not first_name or not last_name) and name:
        parts = name.split()
        if parts:
            head, rest = parts[0], parts[1:]
            first_name = first_name or head
            last_name = last_name or " ".join(rest) or None
    return first_name, last_name
