import re
from typing import Tuple

_NON_DIGITS = re.compile(r"\D")


def normalize_header(s: str) -> str:
    """Header cell comparison form: BOM removed, trimmed, lowercased."""
    return s.replace("\ufeff", "").strip().lower()


def digits_only(s: str) -> str:
    return _NON_DIGITS.sub("", s or "")


def dedup_key(name: str, phone: str) -> str:
    """Composite duplicate key: lowercased name and digits-only phone."""
    return f"{(name or '').lower()}|{digits_only(phone)}"


def split_name(full: str) -> Tuple[str, str]:
    """Split a full name into (first, rest). Single-word names get an empty last name."""
    parts = full.split()
    if not parts:
        return full, ""
    if len(parts) == 1:
        return parts[0], ""
    return parts[0], " ".join(parts[1:])


def compose_name(first: str | None, last: str | None) -> str | None:
    if first and last:
        return f"{first} {last}"
    return first or last or None


def yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"
