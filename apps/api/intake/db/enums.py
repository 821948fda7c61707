"""Closed value sets stored in submission columns."""

from enum import Enum


class IncidentSelectionType(str, Enum):
    """What a security incident report is about."""

    EVENT = "event"
    STUDENTS = "students"
    EMPLOYEES = "employees"
    CAMPUS = "campus"
    OTHERS_SUGGESTIONS = "others-suggestions"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


# userType / visitorType value that makes the staff identifier mandatory
STAFF_ROLE = "Staff"
