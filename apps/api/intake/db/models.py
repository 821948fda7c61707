"""SQLAlchemy ORM models for campus feedback, form intake and security incidents."""

from datetime import datetime

from sqlalchemy import CheckConstraint, Integer, LargeBinary, String, Text, event, func, inspect
from sqlalchemy.orm import Mapped, mapped_column

from intake.db.base import Base
from intake.db.enums import IncidentSelectionType
from intake.db.types import BinaryArray


class PersonFieldsMixin:
    """Identity fields shared by every submission kind (from the landing form)."""

    first_name: Mapped[str | None] = mapped_column(Text)
    last_name: Mapped[str | None] = mapped_column(Text)
    gender: Mapped[str | None] = mapped_column(String(50))
    email: Mapped[str | None] = mapped_column(Text)
    employee_id: Mapped[str | None] = mapped_column(String(100))
    employee_type: Mapped[str | None] = mapped_column(String(100))
    employee_status: Mapped[str | None] = mapped_column(String(100))


class SubmissionMixin(PersonFieldsMixin):
    """Server-assigned identity. Rows are insert-only."""

    # Media columns that may not change after the row is first written
    __write_once__ = ()

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)


# =============================================================================
# Submission Models
# =============================================================================

class CampusFeedback(SubmissionMixin, Base):
    """
    Visitor feedback captured at a campus event.

    visit_date holds the dd/mm/yyyy text exactly as submitted.
    """
    __tablename__ = "campus_feedback"
    __write_once__ = ("selfie_image", "signature")

    contact: Mapped[str] = mapped_column(Text, nullable=False)
    event_name: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    mobile_number: Mapped[str] = mapped_column(String(50), nullable=False)
    user_type: Mapped[str] = mapped_column(String(50), nullable=False)
    staff_id: Mapped[str | None] = mapped_column(String(100))
    selfie_image: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    feedback: Mapped[str] = mapped_column(Text, nullable=False)
    signature: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    visit_date: Mapped[str] = mapped_column(String(10), nullable=False)


class FormSubmission(SubmissionMixin, Base):
    """General event form with selfie and signature."""
    __tablename__ = "form_submissions"
    __write_once__ = ("selfie", "signature")

    contact: Mapped[str | None] = mapped_column(Text)
    event_name: Mapped[str] = mapped_column(Text, nullable=False)
    event_date: Mapped[str] = mapped_column(String(10), nullable=False)
    visitor_type: Mapped[str] = mapped_column(String(50), nullable=False)
    id_number: Mapped[str | None] = mapped_column(String(100))
    feedback: Mapped[str | None] = mapped_column(Text)
    selfie: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    signature: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    form_type: Mapped[str | None] = mapped_column(String(100))


class SecurityIncident(SubmissionMixin, Base):
    """Security incident report with one or more photos, in submission order."""
    __tablename__ = "security_incidents"
    __write_once__ = ("incident_images",)
    __table_args__ = (
        CheckConstraint(
            "selection_type IN ({})".format(
                ", ".join(f"'{value}'" for value in IncidentSelectionType.values())
            ),
            name="ck_security_incidents_selection_type",
        ),
    )

    contact: Mapped[str] = mapped_column(Text, nullable=False)
    selection_type: Mapped[str] = mapped_column(String(50), nullable=False)
    event_name: Mapped[str] = mapped_column(Text, nullable=False)
    event_date: Mapped[str] = mapped_column(String(10), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    mobile_number: Mapped[str] = mapped_column(String(50), nullable=False)
    staff_id: Mapped[str] = mapped_column(String(100), nullable=False)
    verification: Mapped[str] = mapped_column(Text, nullable=False)
    incident_report: Mapped[str] = mapped_column(Text, nullable=False)
    incident_images: Mapped[list[bytes]] = mapped_column(BinaryArray, nullable=False)


SUBMISSION_MODELS: tuple[type[SubmissionMixin], ...] = (
    CampusFeedback,
    FormSubmission,
    SecurityIncident,
)


def _reject_media_update(mapper, connection, target) -> None:
    state = inspect(target)
    for column in target.__write_once__:
        if state.attrs[column].history.has_changes():
            raise ValueError(
                f"{target.__tablename__}.{column} is write-once and cannot be modified"
            )


for _model in SUBMISSION_MODELS:
    event.listen(_model, "before_update", _reject_media_update)
