"""
Candidate search and filtering.

Filters are plain functions over a materialized list of candidates; the
store is only used to fetch everything up front.
"""

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from .database import Candidate
from .enums import (
    HiringStatus,
    LeadSource,
    PreviousEmployer,
    SortOption,
    TechnicalFocus,
    TechnicianLevel,
)
from .logger import get_logger
from .storage import RecordStore

logger = get_logger()

FILTER_VERSION = 1

_SET_FIELDS = {
    "lead_sources": LeadSource,
    "previous_employers": PreviousEmployer,
    "technical_focus": TechnicalFocus,
    "technician_levels": TechnicianLevel,
    "hiring_statuses": HiringStatus,
}
_OPTIONAL_FIELDS = (
    "years_of_experience_min",
    "years_of_experience_max",
    "needs_health_insurance",
    "is_hot_candidate",
    "needs_follow_up",
    "avoid_candidate",
)


@dataclass
class SearchFilter:
    """
    Saved search criteria.

    Empty sets and None values do not filter. Boolean criteria are
    tri-state: None ignores the flag, True/False require that value.
    """

    name: str = ""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    is_active: bool = True

    search_text: str = ""
    lead_sources: Set[LeadSource] = field(default_factory=set)
    previous_employers: Set[PreviousEmployer] = field(default_factory=set)
    technical_focus: Set[TechnicalFocus] = field(default_factory=set)
    technician_levels: Set[TechnicianLevel] = field(default_factory=set)
    hiring_statuses: Set[HiringStatus] = field(default_factory=set)
    years_of_experience_min: Optional[int] = None
    years_of_experience_max: Optional[int] = None
    needs_health_insurance: Optional[bool] = None
    is_hot_candidate: Optional[bool] = None
    needs_follow_up: Optional[bool] = None
    avoid_candidate: Optional[bool] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "version": FILTER_VERSION,
            "id": self.id,
            "name": self.name,
            "is_active": self.is_active,
            "search_text": self.search_text,
        }
        for attr, enum_cls in _SET_FIELDS.items():
            # Enum declaration order keeps saved files stable.
            members = getattr(self, attr)
            data[attr] = [m.value for m in enum_cls if m in members]
        for attr in _OPTIONAL_FIELDS:
            data[attr] = getattr(self, attr)
        data["date_from"] = self.date_from.isoformat() if self.date_from else None
        data["date_to"] = self.date_to.isoformat() if self.date_to else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchFilter":
        """
        Build a filter from to_dict() output.

        Raises:
            ValueError: If the version is newer than this code understands,
                or a stored label is unknown
        """
        version = data.get("version", FILTER_VERSION)
        if version > FILTER_VERSION:
            raise ValueError(f"Unsupported filter version: {version}")

        search_filter = cls(name=data.get("name", ""))
        if data.get("id"):
            search_filter.id = data["id"]
        search_filter.is_active = data.get("is_active", True)
        search_filter.search_text = data.get("search_text", "")
        for attr, enum_cls in _SET_FIELDS.items():
            setattr(search_filter, attr, {enum_cls(label) for label in data.get(attr, [])})
        for attr in _OPTIONAL_FIELDS:
            setattr(search_filter, attr, data.get(attr))
        for attr in ("date_from", "date_to"):
            if data.get(attr):
                setattr(search_filter, attr, datetime.fromisoformat(data[attr]))
        return search_filter


def save_filter(search_filter: SearchFilter, path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(search_filter.to_dict(), f, indent=2)


def load_filter(path: Path) -> SearchFilter:
    with open(path, "r", encoding="utf-8") as f:
        return SearchFilter.from_dict(json.load(f))


def _matches_term(candidate: Candidate, term: str) -> bool:
    return (
        term in candidate.name
        or term in candidate.email
        or term in candidate.phone_number
        or term in candidate.notes
    )


def get_filtered_candidates(records: List[Candidate], search_filter: SearchFilter) -> List[Candidate]:
    """
    Apply every active criterion in turn and return the survivors in input order.

    Text search: each whitespace-separated term must appear (case-sensitive)
    in the name, email, phone or notes.
    """
    f = search_filter
    candidates = list(records)

    for term in f.search_text.split():
        candidates = [c for c in candidates if _matches_term(c, term)]

    if f.lead_sources:
        candidates = [c for c in candidates if c.lead_source in f.lead_sources]
    if f.previous_employers:
        candidates = [c for c in candidates if any(e in f.previous_employers for e in c.previous_employers)]
    if f.technical_focus:
        candidates = [c for c in candidates if any(t in f.technical_focus for t in c.technical_focus)]
    if f.technician_levels:
        candidates = [c for c in candidates if c.technician_level in f.technician_levels]
    if f.hiring_statuses:
        candidates = [c for c in candidates if c.hiring_status in f.hiring_statuses]

    if f.years_of_experience_min is not None:
        candidates = [c for c in candidates if c.years_of_experience >= f.years_of_experience_min]
    if f.years_of_experience_max is not None:
        candidates = [c for c in candidates if c.years_of_experience <= f.years_of_experience_max]

    if f.needs_health_insurance is not None:
        candidates = [c for c in candidates if c.needs_health_insurance == f.needs_health_insurance]
    if f.is_hot_candidate is not None:
        candidates = [c for c in candidates if c.is_hot_candidate == f.is_hot_candidate]
    if f.needs_follow_up is not None:
        candidates = [c for c in candidates if c.needs_follow_up == f.needs_follow_up]
    if f.avoid_candidate is not None:
        candidates = [c for c in candidates if c.avoid_candidate == f.avoid_candidate]

    if f.date_from is not None:
        candidates = [c for c in candidates if c.date_entered >= f.date_from]
    if f.date_to is not None:
        candidates = [c for c in candidates if c.date_entered <= f.date_to]

    return candidates


_SORT_KEYS = {
    SortOption.NAME_ASC: (lambda c: c.name.casefold(), False),
    SortOption.NAME_DESC: (lambda c: c.name.casefold(), True),
    SortOption.DATE_ADDED_NEWEST: (lambda c: c.date_entered, True),
    SortOption.DATE_ADDED_OLDEST: (lambda c: c.date_entered, False),
    SortOption.EXPERIENCE_HIGHEST: (lambda c: c.years_of_experience, True),
    SortOption.EXPERIENCE_LOWEST: (lambda c: c.years_of_experience, False),
}


def sort_candidates(records: List[Candidate], option: SortOption) -> List[Candidate]:
    """Stable sort: ties keep their input order in both directions."""
    key, reverse = _SORT_KEYS[option]
    return sorted(records, key=key, reverse=reverse)


def search_candidates(
    store: RecordStore,
    search_filter: Optional[SearchFilter] = None,
    sort_option: Optional[SortOption] = None,
) -> List[Candidate]:
    """Fetch all candidates, then filter and sort them."""
    candidates = store.fetch(Candidate)
    total = len(candidates)
    if search_filter is not None:
        candidates = get_filtered_candidates(candidates, search_filter)
    if sort_option is not None:
        candidates = sort_candidates(candidates, sort_option)
    logger.debug("Search complete", total=total, matched=len(candidates))
    return candidates
