"""
Candidate export to CSV, JSON and plain text.

Every format is built from the same label -> value projection so a CSV
export can be imported back with the default column mapping.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from .csv_parser import LINE_BREAKS
from .database import Candidate
from .enums import ExportFormat, HiringStatus, SortOption
from .errors import ExportError
from .logger import get_logger
from .normalize import split_name, yes_no
from .search import SearchFilter, get_filtered_candidates, sort_candidates
from .storage import RecordStore

logger = get_logger()

DEFAULT_EXPORT_FIELDS = [
    "First Name",
    "Last Name",
    "Email",
    "Phone",
    "Lead Source",
    "Company",
    "Referral",
    "Experience",
    "Skill Level",
    "Previous Employers",
    "Technical Focus",
    "Hiring Status",
    "Contacted",
    "Hot Candidate",
    "Needs Follow-up",
    "Avoid",
    "Pay Scale",
    "Needs Insurance",
    "Notes",
    "Date Entered",
]


def format_date(value: datetime) -> str:
    """Numeric US date without zero padding, e.g. 3/7/2024."""
    return f"{value.month}/{value.day}/{value.year}"


def field_value(label: str, candidate: Candidate) -> str:
    """
    Value of one export column for a candidate.

    Accepts the DEFAULT_EXPORT_FIELDS labels plus the legacy "Name" and
    "Tech Level" columns. Unknown labels give an empty string.
    """
    if label == "First Name":
        return split_name(candidate.name)[0]
    if label == "Last Name":
        return split_name(candidate.name)[1]
    if label == "Name":
        return candidate.name
    if label == "Email":
        return candidate.email
    if label == "Phone":
        return candidate.phone_number
    if label == "Lead Source":
        return candidate.lead_source.value
    if label == "Referral":
        return candidate.referral_name or ""
    if label == "Company":
        company = candidate.company
        return company.name if company is not None else ""
    if label == "Experience":
        return f"{candidate.years_of_experience} years"
    if label in ("Skill Level", "Tech Level"):
        return candidate.technician_level.value
    if label == "Previous Employers":
        return "; ".join(e.value for e in candidate.previous_employers)
    if label == "Technical Focus":
        return "; ".join(t.value for t in candidate.technical_focus)
    if label == "Hiring Status":
        return candidate.hiring_status.value
    if label == "Contacted":
        return yes_no(candidate.hiring_status != HiringStatus.NOT_CONTACTED)
    if label == "Hot Candidate":
        return yes_no(candidate.is_hot_candidate)
    if label == "Needs Follow-up":
        return yes_no(candidate.needs_follow_up)
    if label == "Avoid":
        return yes_no(candidate.avoid_candidate)
    if label == "Pay Scale":
        return candidate.concept_pay_scale or ""
    if label == "Needs Insurance":
        return yes_no(candidate.needs_health_insurance)
    if label == "Notes":
        return candidate.notes
    if label == "Date Entered":
        return format_date(candidate.date_entered)
    return ""


def escape_csv_field(value: str) -> str:
    """
    Quote a field containing a comma, a quote or anything the importer
    treats as a line break; double inner quotes.
    """
    if "," in value or '"' in value or any(ch in LINE_BREAKS for ch in value):
        return '"' + value.replace('"', '""') + '"'
    return value


def project(candidate: Candidate, fields: List[str]) -> Dict[str, str]:
    return {label: field_value(label, candidate) for label in fields}


def export_csv(records: List[Candidate], fields: List[str]) -> str:
    lines = [",".join(fields)]
    for candidate in records:
        lines.append(",".join(escape_csv_field(field_value(label, candidate)) for label in fields))
    return "".join(line + "\n" for line in lines)


def export_json(records: List[Candidate], fields: List[str]) -> str:
    return json.dumps([project(c, fields) for c in records], indent=2, ensure_ascii=False)


def export_database_text(records: List[Candidate], generated: Optional[datetime] = None) -> str:
    """Human-readable dump: a header followed by each candidate's profile."""
    generated = generated or datetime.now()
    parts = [
        "Recruiting Tracker Database Export\n",
        f"Generated: {generated:%Y-%m-%d %H:%M}\n",
        f"Total Candidates: {len(records)}\n\n",
    ]
    for index, candidate in enumerate(records, start=1):
        parts.append(f"Candidate #{index}\n")
        parts.append("==================\n")
        parts.append(candidate.export_text())
        parts.append("\n\n")
    return "".join(parts)


def export_data(records: List[Candidate], fmt: ExportFormat, fields: Optional[List[str]] = None) -> bytes:
    """
    Serialize candidates in the given format.

    Args:
        records: Candidates in output order
        fmt: Target format; Excel produces CSV that spreadsheet apps open
        fields: Column labels in order; DEFAULT_EXPORT_FIELDS when empty

    Returns:
        UTF-8 encoded export

    Raises:
        ExportError: If the format is not supported
    """
    fields = list(fields) if fields else list(DEFAULT_EXPORT_FIELDS)

    if fmt in (ExportFormat.CSV, ExportFormat.EXCEL):
        text = export_csv(records, fields)
    elif fmt == ExportFormat.JSON:
        text = export_json(records, fields)
    elif fmt == ExportFormat.TEXT:
        text = export_database_text(records)
    else:
        raise ExportError(f"Unsupported export format: {fmt}")

    logger.record_export(fmt.value, len(records))
    return text.encode("utf-8")


@dataclass
class ExportConfiguration:
    format: ExportFormat = ExportFormat.CSV
    include_fields: List[str] = field(default_factory=list)
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    filter: Optional[SearchFilter] = None
    sort_option: Optional[SortOption] = None


class DataExporter:
    """Select candidates from the store according to a configuration and export them."""

    def __init__(self, store: RecordStore):
        self.store = store

    def select(self, config: ExportConfiguration) -> List[Candidate]:
        candidates = self.store.fetch(Candidate)
        if config.date_from is not None:
            candidates = [c for c in candidates if c.date_entered >= config.date_from]
        if config.date_to is not None:
            candidates = [c for c in candidates if c.date_entered <= config.date_to]
        if config.filter is not None:
            candidates = get_filtered_candidates(candidates, config.filter)
        if config.sort_option is not None:
            candidates = sort_candidates(candidates, config.sort_option)
        return candidates

    def export(self, config: ExportConfiguration) -> bytes:
        candidates = self.select(config)
        data = export_data(candidates, config.format, config.include_fields)
        logger.info(
            "Export complete",
            format=config.format.value,
            candidates=len(candidates),
            size=len(data),
        )
        return data
