"""
CSV import of candidates.

Pipeline: decode -> detect delimiter -> tokenize -> find header -> map
columns -> build candidates -> skip duplicates -> attach companies ->
insert -> one commit at the end.

Row-level problems never abort an import. They are collected in the
ImportResult together with diagnostics when nothing could be read.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .csv_parser import (
    decode_csv,
    detect_delimiter,
    has_line_break,
    is_blank_row,
    is_directive_row,
    parse_csv,
)
from .database import Candidate, Company, Position
from .enums import HiringStatus, LeadSource, TechnicianLevel
from .errors import (
    CsvImportError,
    NoDataRowsError,
    NoHeaderRowError,
    NoRowsDetectedError,
    PersistenceError,
)
from .logger import get_logger
from .normalize import compose_name, dedup_key, normalize_header
from .storage import RecordStore

logger = get_logger()

UNMAPPED = -1
DEFAULT_POSITION_TITLE = "General"
TRUE_VALUES = {"true", "1", "yes", "y"}
DATE_FORMATS = (
    "%m/%d/%y, %I:%M %p",
    "%m/%d/%Y, %I:%M %p",
    "%m/%d/%y",
    "%m/%d/%Y",
)
_YEARS_PATTERN = re.compile(r"^([+-]?\d+)(?:\s*(?:years?|yrs?))?$", re.IGNORECASE)


class ImportField(Enum):
    """Logical candidate fields a CSV column can be mapped to."""

    FIRST_NAME = "First Name"
    LAST_NAME = "Last Name"
    NAME = "Name"  # legacy single column
    PHONE = "Phone"
    EMAIL = "Email"
    LEAD_SOURCE = "Lead Source"
    YEARS_EXPERIENCE = "Years Experience"
    TECHNICIAN_LEVEL = "Skill Level"
    COMPANY = "Company"
    HIRING_STATUS = "Hiring Status"
    CONTACTED = "Contacted"
    HOT_CANDIDATE = "Hot Candidate"
    NEEDS_FOLLOW_UP = "Needs Follow-up"
    NEEDS_INSURANCE = "Needs Insurance"
    NOTES = "Notes"
    DATE_ENTERED = "Date Entered"


# Header synonyms tried after the field's own label, in order.
FIELD_SYNONYMS: Dict[ImportField, List[str]] = {
    ImportField.FIRST_NAME: ["first", "first name", "firstname", "first_name", "given name"],
    ImportField.LAST_NAME: ["last", "last name", "lastname", "last_name", "surname", "family name"],
    ImportField.NAME: ["full name", "fullname", "name (full)"],
    ImportField.PHONE: [
        "phone number", "phone #", "phone#",
        "cell", "cell phone", "cellphone",
        "mobile", "mobile phone", "mobile number",
        "contact", "contact number",
        "telephone", "tel",
    ],
    ImportField.EMAIL: [],
    ImportField.LEAD_SOURCE: ["source"],
    ImportField.COMPANY: ["company name", "employer", "organization", "org"],
    ImportField.YEARS_EXPERIENCE: ["experience", "years exp", "yoe"],
    ImportField.TECHNICIAN_LEVEL: ["level", "tech level", "technician level", "skill level", "skill"],
    ImportField.HIRING_STATUS: ["status"],
    ImportField.CONTACTED: ["was contacted", "has contacted"],
    ImportField.HOT_CANDIDATE: ["hot"],
    ImportField.NEEDS_FOLLOW_UP: ["follow up", "needs follow up"],
    ImportField.NEEDS_INSURANCE: ["insurance"],
    ImportField.NOTES: ["comments"],
    ImportField.DATE_ENTERED: ["created", "date"],
}


@dataclass
class ImportOptions:
    """Parsing options chosen by the user."""

    delimiter: Optional[str] = None  # None = auto-detect
    ignore_quotes: bool = False  # treat quotes as data for malformed files


@dataclass
class ImportResult:
    imported: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)
    # Values that were replaced by a default (unknown lead source, bad date, ...)
    warnings: List[str] = field(default_factory=list)

    def summary(self, max_errors: int = 5) -> str:
        """User-facing summary: counts plus the first few errors."""
        lines = [f"Imported {self.imported}, skipped {self.skipped}."]
        lines += self.errors[:max_errors]
        if len(self.errors) > max_errors:
            lines.append(f"... and {len(self.errors) - max_errors} more")
        return "\n".join(lines)


# Value parsers


def parse_bool(text: Optional[str]) -> bool:
    if text is None:
        return False
    return text.strip().lower() in TRUE_VALUES


def parse_int(text: Optional[str]) -> int:
    """Years of experience: "7", "7 years" or "7 yrs"; anything else is 0."""
    if not text:
        return 0
    match = _YEARS_PATTERN.match(text.strip())
    if not match:
        return 0
    return max(int(match.group(1)), 0)


def parse_date(text: Optional[str]) -> Optional[datetime]:
    """
    Parse ISO-8601 first, then US month/day/year styles with optional time.

    Returns naive local datetimes, or None when nothing matches.
    """
    if text is None:
        return None
    # Spreadsheet apps emit narrow/no-break spaces before AM/PM.
    trimmed = text.strip().replace("\u202f", " ").replace("\xa0", " ")
    if not trimmed:
        return None
    iso = trimmed[:-1] + "+00:00" if trimmed.endswith("Z") else trimmed
    try:
        parsed = datetime.fromisoformat(iso)
    except ValueError:
        pass
    else:
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone().replace(tzinfo=None)
        return parsed
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(trimmed, fmt)
        except ValueError:
            continue
    return None


# Preview and mapping


def _tokenize(text: str, delimiter: str, ignore_quotes: bool) -> List[List[str]]:
    rows = parse_csv(text, delimiter, respect_quotes=not ignore_quotes)
    # Only a header came back although there are line breaks: quoting is broken.
    if not ignore_quotes and len(rows) <= 1 and has_line_break(text):
        rows = parse_csv(text, delimiter, respect_quotes=False)
    return rows


def _locate_header(rows: List[List[str]]) -> int:
    """
    Index of the first row that is neither blank nor a `sep=` directive.

    Raises:
        NoRowsDetectedError: If there are no rows
        NoHeaderRowError: If every row is blank or a directive
    """
    if not rows:
        raise NoRowsDetectedError()
    for index, row in enumerate(rows):
        if not is_blank_row(row) and not is_directive_row(row):
            return index
    raise NoHeaderRowError()


def preview(raw: bytes, options: Optional[ImportOptions] = None) -> Optional[Tuple[List[str], List[List[str]]]]:
    """
    Return (headers, data_rows) for column mapping, or None if the file has no rows.

    Headers are returned as written so users see their own column names.

    Raises:
        InvalidEncodingError: If the bytes are not UTF-8
    """
    options = options or ImportOptions()
    text = decode_csv(raw)
    delimiter = options.delimiter or detect_delimiter(text)
    rows = [
        row for row in _tokenize(text, delimiter, options.ignore_quotes)
        if not is_blank_row(row) and not is_directive_row(row)
    ]
    if not rows:
        return None
    return rows[0], rows[1:]


def default_field_mapping(headers: List[str]) -> Dict[ImportField, int]:
    """Best-effort column index per field (case-insensitive); UNMAPPED when absent."""
    normalized = [normalize_header(h) for h in headers]

    def find(labels: List[str]) -> int:
        for label in labels:
            key = normalize_header(label)
            if key in normalized:
                return normalized.index(key)
        return UNMAPPED

    return {f: find([f.value] + FIELD_SYNONYMS[f]) for f in ImportField}


# Import


def company_index(store: RecordStore) -> Dict[str, Company]:
    """Lowercased name -> Company; the first company wins on a name clash."""
    companies: Dict[str, Company] = {}
    for company in store.fetch(Company):
        companies.setdefault(company.name.lower(), company)
    return companies


def ensure_company_position(
    store: RecordStore,
    company_name: str,
    companies: Optional[Dict[str, Company]] = None,
) -> Position:
    """
    Find or create the company (case-insensitive name) and its default
    "General" position, returning the position.

    `companies` is a company_index() built once per batch; it is updated
    with any company created here. Without it the store is queried.
    """
    if companies is None:
        companies = company_index(store)
    wanted = company_name.lower()
    company = companies.get(wanted)
    if company is None:
        company = Company(name=company_name)
        store.insert(company)
        companies[wanted] = company
        logger.debug("Created company during import", company=company_name)

    position = next((p for p in company.positions if p.title == DEFAULT_POSITION_TITLE), None)
    if position is None:
        position = Position(title=DEFAULT_POSITION_TITLE, position_description="Auto-created")
        company.positions.append(position)
    return position


def _delimiter_label(delimiter: str) -> str:
    return "TAB" if delimiter == "\t" else delimiter


def _is_mapped(mapping: Dict[ImportField, int], f: ImportField) -> bool:
    index = mapping.get(f, UNMAPPED)
    return index is not None and index >= 0


def _parse_choice(enum_cls, text, default, field_label, row_number, warnings):
    if text is None:
        return default
    member = enum_cls.match_label(text)
    if member is None:
        warnings.append(f"Row {row_number}: unrecognized {field_label} '{text}', using '{default.value}'")
        return default
    return member


def import_candidates(
    raw: bytes,
    store: RecordStore,
    mapping: Optional[Dict[ImportField, int]] = None,
    options: Optional[ImportOptions] = None,
) -> ImportResult:
    """
    Import candidates from CSV bytes into the store.

    Args:
        raw: UTF-8 CSV bytes (BOM and `sep=` line allowed)
        store: Record store to deduplicate against and insert into
        mapping: Field -> column index; defaults to default_field_mapping(header).
            Missing fields, UNMAPPED and None all mean "not mapped".
        options: Forced delimiter / ignore-quotes mode

    Returns:
        ImportResult with imported/skipped counts and row errors

    If the final save fails, the message is appended to errors and
    `imported` still counts the rows that were inserted. The session is
    rolled back by the store, so those rows are not kept in it either.
    """
    options = options or ImportOptions()
    result = ImportResult()

    try:
        text = decode_csv(raw)
        delimiter = options.delimiter or detect_delimiter(text)
        rows = _tokenize(text, delimiter, options.ignore_quotes)
        header_index = _locate_header(rows)
        header = rows[header_index]
        data_rows = rows[header_index + 1:]
        if not data_rows:
            raise NoDataRowsError([
                f"Diagnostics: delimiter={_delimiter_label(delimiter)}",
                f"Header cols={len(header)}, total rows={len(rows)}",
                f"Headers={' | '.join(header)}",
            ])
    except CsvImportError as e:
        logger.warning("CSV import aborted", reason=str(e))
        logger.record_error(type(e).__name__)
        result.errors.extend(e.messages)
        return result

    if mapping is None:
        mapping = default_field_mapping(header)

    existing_keys = {dedup_key(c.name, c.phone_number) for c in store.fetch(Candidate)}
    companies = company_index(store)
    duplicates = 0

    for offset, row in enumerate(data_rows):
        row_number = header_index + offset + 2

        if is_blank_row(row):
            continue

        def value(f: ImportField) -> Optional[str]:
            if not _is_mapped(mapping, f) or mapping[f] >= len(row):
                return None
            return row[mapping[f]].strip() or None

        name = compose_name(value(ImportField.FIRST_NAME), value(ImportField.LAST_NAME)) or value(ImportField.NAME)
        if not name:
            result.skipped += 1
            result.errors.append(f"Row {row_number}: Missing required Name")
            logger.record_error("MissingRequiredField")
            continue
        phone = value(ImportField.PHONE) or ""

        key = dedup_key(name, phone)
        if key in existing_keys:
            result.skipped += 1
            duplicates += 1
            continue

        date_text = value(ImportField.DATE_ENTERED)
        date_entered = parse_date(date_text)
        if date_text and date_entered is None:
            result.warnings.append(f"Row {row_number}: unrecognized Date Entered '{date_text}', using today")

        candidate = Candidate(
            name=name,
            phone_number=phone,
            email=value(ImportField.EMAIL) or "",
            lead_source=_parse_choice(
                LeadSource, value(ImportField.LEAD_SOURCE), LeadSource.IN_PERSON,
                "Lead Source", row_number, result.warnings,
            ),
            years_of_experience=parse_int(value(ImportField.YEARS_EXPERIENCE)),
            technician_level=_parse_choice(
                TechnicianLevel, value(ImportField.TECHNICIAN_LEVEL), TechnicianLevel.UNKNOWN,
                "Skill Level", row_number, result.warnings,
            ),
            hiring_status=_parse_choice(
                HiringStatus, value(ImportField.HIRING_STATUS), HiringStatus.NOT_CONTACTED,
                "Hiring Status", row_number, result.warnings,
            ),
            date_entered=date_entered or datetime.now(),
        )
        candidate.is_hot_candidate = parse_bool(value(ImportField.HOT_CANDIDATE))
        candidate.needs_follow_up = parse_bool(value(ImportField.NEEDS_FOLLOW_UP))
        candidate.needs_health_insurance = parse_bool(value(ImportField.NEEDS_INSURANCE))
        candidate.notes = value(ImportField.NOTES) or ""

        company_name = value(ImportField.COMPANY)
        if company_name:
            candidate.position = ensure_company_position(store, company_name, companies)

        # A mapped Contacted column wins over the status column.
        if _is_mapped(mapping, ImportField.CONTACTED):
            if parse_bool(value(ImportField.CONTACTED)):
                candidate.hiring_status = HiringStatus.VISIT_FOR_INTERVIEW
            else:
                candidate.hiring_status = HiringStatus.NOT_CONTACTED

        store.insert(candidate)
        result.imported += 1
        existing_keys.add(key)

    if result.imported == 0 and result.skipped == 0:
        result.errors += [
            f"Diagnostics: delimiter={_delimiter_label(delimiter)}",
            f"Header cols={len(header)}, data rows={len(data_rows)}",
            f"Headers={' | '.join(header)}",
            "Mapping: phone={}, first={}, last={}, name={}".format(
                mapping.get(ImportField.PHONE, UNMAPPED),
                mapping.get(ImportField.FIRST_NAME, UNMAPPED),
                mapping.get(ImportField.LAST_NAME, UNMAPPED),
                mapping.get(ImportField.NAME, UNMAPPED),
            ),
        ]

    try:
        store.save()
    except PersistenceError as e:
        logger.record_save_failure()
        result.errors.append(str(e))

    for warning in result.warnings:
        logger.warning(warning)
    logger.record_import(len(data_rows), result.imported, result.skipped, duplicates)
    logger.info(
        "CSV import finished",
        imported=result.imported,
        skipped=result.skipped,
        duplicates=duplicates,
        errors=len(result.errors),
        delimiter=_delimiter_label(delimiter),
    )
    return result
