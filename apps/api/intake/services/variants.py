"""Descriptors for the three submission kinds.

Each endpoint runs the same pipeline; everything that differs between the
campus feedback form, the general event form and the security incident report
lives in one ``SubmissionVariant``.
"""

from dataclasses import dataclass, field

from intake.db.enums import STAFF_ROLE, IncidentSelectionType
from intake.db.models import CampusFeedback, FormSubmission, SecurityIncident, SubmissionMixin


# Landing-form fields shared by every variant: payload key -> column
PERSON_COLUMNS: dict[str, str] = {
    "firstName": "first_name",
    "lastName": "last_name",
    "gender": "gender",
    "email": "email",
    "contact": "contact",
    "employeeId": "employee_id",
    "employeeType": "employee_type",
    "employeeStatus": "employee_status",
}


@dataclass(frozen=True)
class MediaSlot:
    """An image field: payload/part name, target column and cardinality."""

    field: str
    column: str
    required_message: str
    many: bool = False


@dataclass(frozen=True)
class RoleRule:
    """``linked_field`` is mandatory (and stored) only when ``field == sentinel``."""

    field: str
    sentinel: str
    linked_field: str
    message: str


@dataclass(frozen=True)
class SubmissionVariant:
    key: str
    model: type[SubmissionMixin]
    required: tuple[str, ...]
    columns: dict[str, str]
    success_message: str
    media: tuple[MediaSlot, ...] = ()
    date_field: str | None = None
    selection_field: str | None = None
    valid_selection_types: tuple[str, ...] = ()
    role_rule: RoleRule | None = None
    derive_name_parts: bool = False
    log_label: str = field(default="", compare=False)

    @property
    def media_fields(self) -> frozenset[str]:
        return frozenset(slot.field for slot in self.media)


CAMPUS_FEEDBACK = SubmissionVariant(
    key="campus-form",
    model=CampusFeedback,
    required=(
        "contact",
        "eventName",
        "name",
        "mobileNumber",
        "userType",
        "feedback",
        "signature",
        "visitDate",
    ),
    columns={
        **PERSON_COLUMNS,
        "eventName": "event_name",
        "name": "name",
        "mobileNumber": "mobile_number",
        "userType": "user_type",
        "staffId": "staff_id",
        "feedback": "feedback",
        "visitDate": "visit_date",
    },
    media=(
        MediaSlot("selfieImage", "selfie_image", "Selfie image is required"),
        MediaSlot("signature", "signature", "Signature image is required"),
    ),
    date_field="visitDate",
    role_rule=RoleRule(
        field="userType",
        sentinel=STAFF_ROLE,
        linked_field="staffId",
        message="Staff ID is required for staff members",
    ),
    success_message="Complete feedback data saved successfully!",
    log_label="campus feedback",
)

FORM_SUBMISSION = SubmissionVariant(
    key="form-submission",
    model=FormSubmission,
    required=("firstName", "eventName", "visitorType", "eventDate"),
    columns={
        **PERSON_COLUMNS,
        "eventName": "event_name",
        "eventDate": "event_date",
        "visitorType": "visitor_type",
        "idNumber": "id_number",
        "feedback": "feedback",
        "formType": "form_type",
    },
    media=(
        MediaSlot("selfie", "selfie", "Selfie image is required"),
        MediaSlot("signature", "signature", "Signature image is required"),
    ),
    date_field="eventDate",
    role_rule=RoleRule(
        field="visitorType",
        sentinel=STAFF_ROLE,
        linked_field="idNumber",
        message="ID number is required for staff members",
    ),
    derive_name_parts=True,
    success_message="Form data submitted successfully!",
    log_label="form submission",
)

SECURITY_INCIDENT = SubmissionVariant(
    key="security-form",
    model=SecurityIncident,
    required=(
        "contact",
        "selectionType",
        "eventName",
        "eventDate",
        "name",
        "mobileNumber",
        "staffId",
        "verification",
        "incidentReport",
    ),
    columns={
        **PERSON_COLUMNS,
        "selectionType": "selection_type",
        "eventName": "event_name",
        "eventDate": "event_date",
        "name": "name",
        "mobileNumber": "mobile_number",
        "staffId": "staff_id",
        "verification": "verification",
        "incidentReport": "incident_report",
    },
    media=(
        MediaSlot(
            "images",
            "incident_images",
            "At least one incident image is required",
            many=True,
        ),
    ),
    date_field="eventDate",
    selection_field="selectionType",
    valid_selection_types=tuple(IncidentSelectionType.values()),
    success_message="Security incident report submitted successfully!",
    log_label="security incident",
)


VARIANTS: dict[str, SubmissionVariant] = {
    variant.key: variant for variant in (CAMPUS_FEEDBACK, FORM_SUBMISSION, SECURITY_INCIDENT)
}
