"""
Validation for manually entered candidates.

Bulk CSV imports do not go through these checks; they use their own
name/phone dedup key (see importer.py).
"""

import re
from typing import TYPE_CHECKING, Optional

from .database import Candidate
from .errors import RecruitTrackerError
from .normalize import digits_only

if TYPE_CHECKING:
    from .storage import RecordStore

EMAIL_PATTERN = re.compile(r"^[A-Z0-9a-z._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
PHONE_DIGITS = 10


class ValidationError(RecruitTrackerError):
    """Base class for user-facing validation failures."""
    pass


class InvalidEmailError(ValidationError):
    def __init__(self, email: str = ""):
        super().__init__("Invalid email address")
        self.email = email


class InvalidPhoneNumberError(ValidationError):
    def __init__(self, phone: str = ""):
        super().__init__("Invalid phone number format")
        self.phone = phone


class DuplicateCandidateError(ValidationError):
    def __init__(self):
        super().__init__("A candidate with this information already exists")


class MissingRequiredFieldError(ValidationError):
    def __init__(self, field: str):
        super().__init__(f"Required field missing: {field}")
        self.field = field


def validate_email(email: str) -> bool:
    return EMAIL_PATTERN.match(email) is not None


def validate_phone_number(number: str) -> bool:
    """US numbers only: exactly ten digits once punctuation is removed."""
    return len(digits_only(number)) == PHONE_DIGITS


def validate(candidate: Candidate) -> None:
    """
    Check email and phone format. Empty values are allowed; name is optional.

    Raises:
        InvalidEmailError: If email is set and malformed
        InvalidPhoneNumberError: If phone is set and not ten digits
    """
    if candidate.email and not validate_email(candidate.email):
        raise InvalidEmailError(candidate.email)
    if candidate.phone_number and not validate_phone_number(candidate.phone_number):
        raise InvalidPhoneNumberError(candidate.phone_number)


def is_duplicate(
    name: str,
    phone_number: str,
    store: "RecordStore",
    exclude: Optional[Candidate] = None,
) -> bool:
    """
    True if an existing candidate has the exact same phone, or the same
    name ignoring case. `exclude` skips the record being edited.
    """
    def others(c: Candidate) -> bool:
        return c is not exclude

    if phone_number:
        if store.fetch_count(Candidate, lambda c: others(c) and c.phone_number == phone_number):
            return True

    if name:
        wanted = name.lower()
        # Name comparison happens in memory across every record.
        for candidate in store.fetch(Candidate):
            if others(candidate) and candidate.name.lower() == wanted:
                return True

    return False


def check_for_duplicates(candidate: Candidate, store: "RecordStore") -> None:
    """
    Raises:
        DuplicateCandidateError: If is_duplicate() matches another record
    """
    if is_duplicate(candidate.name, candidate.phone_number, store, exclude=candidate):
        raise DuplicateCandidateError()


def require_fields(**fields: str) -> None:
    """
    Raise MissingRequiredFieldError for the first blank keyword value.

    Example:
        require_fields(name=args.name)
    """
    for field, value in fields.items():
        if not (value or "").strip():
            raise MissingRequiredFieldError(field.replace("_", " ").title())
