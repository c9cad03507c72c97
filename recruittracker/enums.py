"""
Enumerated candidate fields.

Each member's value is the label shown to users and written to CSV/JSON
exports. Parsing from free text is case-insensitive on that label.
"""

from enum import Enum
from typing import Optional


class LabeledEnum(Enum):
    """Enum whose values are display labels."""

    @property
    def label(self) -> str:
        return self.value

    @classmethod
    def match_label(cls, text: Optional[str]):
        """Return the member whose label matches `text`, or None."""
        if text is None:
            return None
        wanted = text.strip().lower()
        for member in cls:
            if member.value.lower() == wanted:
                return member
        return None

    @classmethod
    def from_label(cls, text: Optional[str], default):
        """Like match_label but falls back to `default` when nothing matches."""
        member = cls.match_label(text)
        return default if member is None else member


class LeadSource(LabeledEnum):
    INDEED = "Indeed"
    CAREER_BUILDER = "Career Builder"
    ZIP_RECRUITER = "ZIP Recruiter"
    IN_PERSON = "In-Person"
    MONSTER = "Monster"
    REFERRAL = "Referral"


class PreviousEmployer(LabeledEnum):
    DEALERSHIP = "Dealership"
    INDEPENDENT = "Independent"
    BELLE = "Belle"
    DISCOUNT = "Discount"
    OTHER = "Other"


class TechnicalFocus(LabeledEnum):
    ELECTRICAL = "Electrical"
    DRIVEABILITY = "Drive-ability"
    MAINTENANCE = "Maintenance"
    LOF = "LOF"
    LIGHT_MECHANICAL = "Light Mechanical"
    BRAKES = "Brakes"


class TechnicianLevel(LabeledEnum):
    UNKNOWN = "Unknown"
    A = "A"
    B = "B"
    C = "C"
    LUBE_TECH = "Lube Tech"


class HiringStatus(LabeledEnum):
    NOT_CONTACTED = "Not Contacted"
    GHOSTED = "Ghosted Replies"
    VISIT_FOR_INTERVIEW = "Visit for Interview"
    NO_SHOW = "No Show for Interview"
    OFFER = "Offer"
    HIRED = "Hired"
    REJECTED_OFFER = "Rejected Offer"
    FUTURE_OFFER = "Intention to Offer"


class SortOption(LabeledEnum):
    NAME_ASC = "Name (A-Z)"
    NAME_DESC = "Name (Z-A)"
    DATE_ADDED_NEWEST = "Date Added (Newest)"
    DATE_ADDED_OLDEST = "Date Added (Oldest)"
    EXPERIENCE_HIGHEST = "Experience (Highest)"
    EXPERIENCE_LOWEST = "Experience (Lowest)"


class ExportFormat(LabeledEnum):
    CSV = "CSV"
    JSON = "JSON"
    TEXT = "Text"
    EXCEL = "Excel"

    @property
    def file_extension(self) -> str:
        return {
            ExportFormat.CSV: "csv",
            ExportFormat.JSON: "json",
            ExportFormat.TEXT: "txt",
            ExportFormat.EXCEL: "csv",
        }[self]
