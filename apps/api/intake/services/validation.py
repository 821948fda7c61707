"""Field validation for submissions.

Rules run in a fixed order and the first failure wins:

1. required fields present (non-blank after trimming)
2. staff identifier present when the role field is the staff sentinel
3. selection type in the variant's allow-list
4. date text matches dd/mm/yyyy
5. date is a real calendar date
6. date falls in the trailing window ending today (local time)
7. required media present
"""

import re
from collections.abc import Mapping
from datetime import date, timedelta
from typing import Any

from intake.core.exceptions import ValidationRejected
from intake.services.media import UploadedImage
from intake.services.variants import SubmissionVariant
from intake.utils.normalization import derive_name_parts, normalize_text


DATE_PATTERN = re.compile(r"^([0-9]{2})/([0-9]{2})/([0-9]{4})$")
DATE_WINDOW_DAYS = 7


def clean_fields(variant: SubmissionVariant, raw: Mapping[str, Any]) -> dict[str, str | None]:
    """
    Trim known text fields and coerce scalar JSON values to strings.

    Keys the variant does not store (client metadata, another form's media)
    are dropped without inspection.
    """
    known = set(variant.columns)
    if variant.derive_name_parts:
        known.add("name")

    fields: dict[str, str | None] = {}
    for key, value in raw.items():
        if key not in known:
            continue
        if isinstance(value, bool) or not (value is None or isinstance(value, (str, int, float))):
            raise ValidationRejected(f"Field '{key}' must be a string")
        fields[key] = normalize_text(None if value is None else str(value))

    if variant.derive_name_parts:
        first_name, last_name = derive_name_parts(
            fields.get("firstName"), fields.get("lastName"), fields.get("name")
        )
        fields["firstName"] = first_name
        fields["lastName"] = last_name
    return fields


def _media_present(source: Any) -> bool:
    if isinstance(source, UploadedImage):
        return bool(source.data)
    if isinstance(source, (bytes, bytearray)):
        return bool(source)
    if isinstance(source, str):
        return bool(source.strip())
    if isinstance(source, list):
        return len(source) > 0
    return False


def _is_present(name: str, fields: Mapping[str, Any], media: Mapping[str, Any]) -> bool:
    if fields.get(name):
        return True
    return _media_present(media.get(name))


def parse_display_date(value: str, *, field: str) -> date:
    """Parse dd/mm/yyyy text, rejecting non-matching or impossible dates."""
    match = DATE_PATTERN.match(value)
    if not match:
        raise ValidationRejected(f"{field} must be in dd/mm/yyyy format")
    day, month, year = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        raise ValidationRejected("Invalid date provided") from None


def check_date_window(value: date, *, field: str, today: date) -> None:
    earliest = today - timedelta(days=DATE_WINDOW_DAYS - 1)
    if value < earliest or value > today:
        raise ValidationRejected(f"{field} must be within the past 7 days including today")


def validate_submission(
    variant: SubmissionVariant,
    fields: Mapping[str, str | None],
    media: Mapping[str, Any],
    *,
    today: date | None = None,
) -> None:
    """Raise ValidationRejected for the first rule the submission breaks."""
    if not all(_is_present(name, fields, media) for name in variant.required):
        raise ValidationRejected("Required fields missing", required=list(variant.required))

    rule = variant.role_rule
    if rule and fields.get(rule.field) == rule.sentinel and not fields.get(rule.linked_field):
        raise ValidationRejected(rule.message, required=[rule.linked_field])

    if variant.selection_field:
        selection = fields.get(variant.selection_field)
        if selection not in variant.valid_selection_types:
            raise ValidationRejected(
                "Invalid selection type", valid_types=list(variant.valid_selection_types)
            )

    if variant.date_field and fields.get(variant.date_field):
        parsed = parse_display_date(fields[variant.date_field], field=variant.date_field)
        check_date_window(parsed, field=variant.date_field, today=today or date.today())

    for slot in variant.media:
        source = media.get(slot.field)
        if slot.many != isinstance(source, list):
            source = None
        if not _media_present(source):
            raise ValidationRejected(slot.required_message, required=[slot.field])
