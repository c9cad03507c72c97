import argparse
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from . import __version__
from .database import Candidate, Company, Position
from .enums import (
    ExportFormat,
    HiringStatus,
    LeadSource,
    PreviousEmployer,
    SortOption,
    TechnicalFocus,
    TechnicianLevel,
)
from .env import get_settings, load_env
from .errors import CsvImportError, ExportError, PersistenceError
from .exporter import DataExporter, ExportConfiguration
from .importer import (
    UNMAPPED,
    ImportField,
    ImportOptions,
    default_field_mapping,
    ensure_company_position,
    import_candidates,
    parse_date,
    preview,
)
from .logger import get_logger
from .normalize import normalize_header, yes_no
from .search import SearchFilter, load_filter, search_candidates
from .statistics import StatisticsAggregator
from .storage import RecordStore, open_store
from .validation import ValidationError, require_fields

DELIMITER_NAMES = {"comma": ",", "semicolon": ";", "tab": "\t"}


@contextmanager
def store_for(args: argparse.Namespace):
    store = open_store(Path(args.db))
    try:
        yield store
    finally:
        store.close()


def _choice(enum_cls, text: Optional[str], default=None):
    if text is None:
        return default
    member = enum_cls.match_label(text)
    if member is None:
        labels = ", ".join(m.value for m in enum_cls)
        raise SystemExit(f"Unknown {enum_cls.__name__} '{text}'. Use one of: {labels}")
    return member


def _read_input(path: str) -> bytes:
    input_path = Path(path)
    if not input_path.exists():
        raise SystemExit(f"Input file not found: {input_path}")
    return input_path.read_bytes()


def _import_options(args: argparse.Namespace) -> ImportOptions:
    delimiter = None
    if args.delimiter:
        delimiter = DELIMITER_NAMES.get(args.delimiter.lower(), args.delimiter)
        if len(delimiter) != 1:
            raise SystemExit("Delimiter must be comma, semicolon, tab or a single character")
    return ImportOptions(delimiter=delimiter, ignore_quotes=args.ignore_quotes)


def _date_arg(text: Optional[str]) -> Optional[datetime]:
    if text is None:
        return None
    parsed = parse_date(text)
    if parsed is None:
        raise SystemExit(f"Unrecognized date: {text}")
    return parsed


def find_candidate(store: RecordStore, uid: str) -> Candidate:
    """Look a candidate up by uid or a unique uid prefix."""
    matches = store.fetch(Candidate, lambda c: c.uid.startswith(uid))
    if not matches:
        raise SystemExit(f"No candidate with id {uid}")
    if len(matches) > 1:
        raise SystemExit(f"Ambiguous id {uid}: {len(matches)} candidates match")
    return matches[0]


def build_mapping(headers: List[str], pairs: List[str]) -> Dict[ImportField, int]:
    """
    Default mapping with FIELD=COLUMN overrides applied.

    COLUMN is a header name, a zero-based index, or "none" to unmap.
    """
    mapping = default_field_mapping(headers)
    normalized = [normalize_header(h) for h in headers]
    for pair in pairs:
        if "=" not in pair:
            raise SystemExit(f"Mapping must look like FIELD=COLUMN: {pair}")
        label, column = (part.strip() for part in pair.split("=", 1))
        field = next((f for f in ImportField if f.value.lower() == label.lower()), None)
        if field is None:
            raise SystemExit(f"Unknown import field: {label}")
        if column.lower() == "none":
            mapping[field] = UNMAPPED
        elif column.isdigit():
            mapping[field] = int(column)
        elif normalize_header(column) in normalized:
            mapping[field] = normalized.index(normalize_header(column))
        else:
            raise SystemExit(f"Column not found in header: {column}")
    return mapping


def cmd_init(args: argparse.Namespace) -> None:
    with store_for(args):
        pass
    print(f"Database ready: {args.db}")


def cmd_add(args: argparse.Namespace) -> None:
    try:
        require_fields(name=args.name)
    except ValidationError as e:
        raise SystemExit(str(e))
    if args.years < 0:
        raise SystemExit("Years of experience cannot be negative")

    candidate = Candidate(
        name=args.name.strip(),
        phone_number=args.phone or "",
        email=args.email or "",
        lead_source=_choice(LeadSource, args.lead_source, LeadSource.IN_PERSON),
        years_of_experience=args.years,
        previous_employers=[_choice(PreviousEmployer, e) for e in args.employer],
        technical_focus=[_choice(TechnicalFocus, t) for t in args.focus],
        technician_level=_choice(TechnicianLevel, args.level, TechnicianLevel.UNKNOWN),
        hiring_status=_choice(HiringStatus, args.status, HiringStatus.NOT_CONTACTED),
        referral_name=args.referral,
    )
    candidate.is_hot_candidate = args.hot
    candidate.needs_follow_up = args.follow_up
    candidate.needs_health_insurance = args.insurance
    candidate.notes = args.notes or ""

    with store_for(args) as store:
        if args.company:
            candidate.position = ensure_company_position(store, args.company)
        store.follow_up_listeners.append(
            lambda c: print(f"Follow-up needed: {c.name}")
        )
        try:
            store.add_candidate(candidate)
        except ValidationError as e:
            store.session.rollback()
            raise SystemExit(str(e))
        except PersistenceError as e:
            raise SystemExit(str(e))
    print(f"Added: {candidate.uid} {candidate.name}")


def cmd_import(args: argparse.Namespace) -> None:
    raw = _read_input(args.input)
    options = _import_options(args)
    mapping = None
    if args.map:
        try:
            previewed = preview(raw, options)
        except CsvImportError as e:
            raise SystemExit(str(e))
        if previewed is None:
            raise SystemExit("No rows detected in CSV file")
        mapping = build_mapping(previewed[0], args.map)

    with store_for(args) as store:
        result = import_candidates(raw, store, mapping=mapping, options=options)
    print(result.summary())
    if result.warnings:
        print(f"Warnings: {len(result.warnings)}")
        for warning in result.warnings[:5]:
            print(f" - {warning}")
    if result.imported == 0 and result.errors:
        raise SystemExit(1)


def cmd_preview(args: argparse.Namespace) -> None:
    raw = _read_input(args.input)
    try:
        previewed = preview(raw, _import_options(args))
    except CsvImportError as e:
        raise SystemExit(str(e))
    if previewed is None:
        print("No rows detected.")
        return
    headers, rows = previewed
    mapping = default_field_mapping(headers)
    print(f"Columns ({len(headers)}):")
    for index, header in enumerate(headers):
        fields = [f.value for f, i in mapping.items() if i == index]
        suffix = f" -> {', '.join(fields)}" if fields else ""
        print(f"  [{index}] {header}{suffix}")
    print(f"Data rows: {len(rows)}")
    for row in rows[:args.rows]:
        print("  " + " | ".join(row))


def _search_filter(args: argparse.Namespace) -> Optional[SearchFilter]:
    search_filter = None
    if args.filter:
        filter_path = Path(args.filter)
        if not filter_path.exists():
            raise SystemExit(f"Filter file not found: {filter_path}")
        try:
            search_filter = load_filter(filter_path)
        except ValueError as e:
            raise SystemExit(f"Invalid filter file: {e}")
    if getattr(args, "query", None):
        search_filter = search_filter or SearchFilter(name="command line")
        search_filter.search_text = args.query
    return search_filter


def cmd_export(args: argparse.Namespace) -> None:
    fields = [f.strip() for f in args.fields.split(",") if f.strip()] if args.fields else []
    config = ExportConfiguration(
        format=_choice(ExportFormat, args.format),
        include_fields=fields,
        date_from=_date_arg(args.date_from),
        date_to=_date_arg(args.date_to),
        filter=_search_filter(args),
        sort_option=_choice(SortOption, args.sort),
    )
    with store_for(args) as store:
        try:
            data = DataExporter(store).export(config)
        except ExportError as e:
            raise SystemExit(str(e))

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(data)
        print(f"Wrote {len(data)} bytes to {output_path}")
    else:
        print(data.decode("utf-8"), end="")


def cmd_list(args: argparse.Namespace) -> None:
    search_filter = _search_filter(args)
    if args.hot:
        search_filter = search_filter or SearchFilter(name="command line")
        search_filter.is_hot_candidate = True
    if args.follow_up:
        search_filter = search_filter or SearchFilter(name="command line")
        search_filter.needs_follow_up = True

    with store_for(args) as store:
        candidates = search_candidates(store, search_filter, _choice(SortOption, args.sort))
        if not candidates:
            print("No candidates found.")
            return
        print(f"Found {len(candidates)} candidates:\n")
        for c in candidates:
            company = c.company.name if c.company is not None else "-"
            print(f"{c.uid[:8]}  {c.name}")
            print(f"  Phone: {c.phone_number}  Email: {c.email}")
            print(f"  Status: {c.hiring_status.value}  Level: {c.technician_level.value}  Company: {company}")
            print(f"  Hot: {yes_no(c.is_hot_candidate)}  Follow-up: {yes_no(c.needs_follow_up)}  Avoid: {yes_no(c.avoid_candidate)}")


def cmd_stats(args: argparse.Namespace) -> None:
    with store_for(args) as store:
        stats = StatisticsAggregator(store)
        for insight in stats.generate_insights():
            print(f"{insight.title}: {insight.value} ({insight.trend})")
        if stats.total_candidates() == 0:
            return

        sections = [
            ("Lead Sources", stats.lead_source_distribution()),
            ("Technician Levels", stats.technician_level_distribution()),
            ("Hiring Status", stats.hiring_status_distribution()),
            ("Experience", stats.experience_distribution()),
        ]
        for title, entries in sections:
            print(f"\n{title}:")
            for entry in entries:
                print(f"  {entry.category}: {entry.count} ({entry.percentage:.1f}%)")

        print(f"\nLast {args.months} months:")
        for point in stats.candidates_by_month(months=args.months):
            print(f"  {point.month:%Y-%m}: {point.count}")


def cmd_avoid(args: argparse.Namespace) -> None:
    with store_for(args) as store:
        candidate = find_candidate(store, args.uid)
        changed = candidate.update_avoid_flag(not args.clear, reason=args.reason)
        if not changed:
            print(f"No change: avoid flag already {yes_no(candidate.avoid_candidate)}")
            return
        try:
            store.save()
        except PersistenceError as e:
            raise SystemExit(str(e))
    print(f"Avoid flag for {candidate.name}: {yes_no(candidate.avoid_candidate)}")


def cmd_delete(args: argparse.Namespace) -> None:
    with store_for(args) as store:
        if args.kind == "candidate":
            if not args.uid:
                raise SystemExit("--uid is required to delete a candidate")
            record = find_candidate(store, args.uid)
            label = record.name
        elif args.kind == "company":
            if not args.company:
                raise SystemExit("--company is required to delete a company")
            wanted = args.company.lower()
            matches = store.fetch(Company, lambda c: c.name.lower() == wanted)
            if not matches:
                raise SystemExit(f"No company named {args.company}")
            record = matches[0]
            label = record.name
        else:
            if not args.company or not args.title:
                raise SystemExit("--company and --title are required to delete a position")
            wanted = args.company.lower()
            matches = store.fetch(
                Position,
                lambda p: p.title == args.title and p.company is not None and p.company.name.lower() == wanted,
            )
            if not matches:
                raise SystemExit(f"No position {args.title} at {args.company}")
            record = matches[0]
            label = f"{record.title} ({record.company.name})"

        store.delete(record)
        try:
            store.save()
        except PersistenceError as e:
            raise SystemExit(str(e))
    print(f"Deleted {args.kind}: {label}")


def _add_import_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--input", required=True, help="Path to CSV file")
    parser.add_argument("--delimiter", help="Force delimiter: comma, semicolon, tab or a character (default: detect)")
    parser.add_argument("--ignore-quotes", action="store_true", help="Treat quotes as data (for malformed files)")


def _add_filter_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--query", help="Search terms; every term must appear in name, email, phone or notes")
    parser.add_argument("--filter", help="Path to a saved filter JSON file")
    parser.add_argument("--sort", help="Sort option, e.g. \"Name (A-Z)\" or \"Date Added (Newest)\"")


def main(argv: Optional[List[str]] = None) -> None:
    # Load .env if present (RECRUIT_TRACKER_DB, RECRUIT_TRACKER_LOG_LEVEL, ...)
    load_env()
    try:
        settings = get_settings()
    except ValueError as e:
        raise SystemExit(str(e))

    parser = argparse.ArgumentParser(prog="recruit-tracker", description="Recruit Tracker: technician candidate records")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--db", default=str(settings.db_path), help=f"Path to SQLite database (default: {settings.db_path})")

    subparsers = parser.add_subparsers(dest="command")
    ini = subparsers.add_parser("init", help="Create the database if it does not exist")
    ini.set_defaults(func=cmd_init)

    add = subparsers.add_parser("add", help="Add a candidate (validated, duplicate-checked)")
    add.add_argument("--name", required=True, help="Full name")
    add.add_argument("--phone", help="Phone number (10 digits, punctuation allowed)")
    add.add_argument("--email", help="Email address")
    add.add_argument("--lead-source", help="Indeed, Career Builder, ZIP Recruiter, In-Person, Monster, Referral")
    add.add_argument("--referral", help="Who referred the candidate")
    add.add_argument("--years", type=int, default=0, help="Years of experience")
    add.add_argument("--level", help="Technician level: A, B, C, Lube Tech")
    add.add_argument("--status", help="Hiring status (default: Not Contacted)")
    add.add_argument("--employer", action="append", default=[], help="Previous employer type (repeatable)")
    add.add_argument("--focus", action="append", default=[], help="Technical focus (repeatable)")
    add.add_argument("--company", help="Company; its General position is created if needed")
    add.add_argument("--notes", help="Free-form notes")
    add.add_argument("--hot", action="store_true", help="Mark as hot candidate")
    add.add_argument("--follow-up", action="store_true", help="Mark as needing follow-up")
    add.add_argument("--insurance", action="store_true", help="Candidate needs health insurance")
    add.set_defaults(func=cmd_add)

    imp = subparsers.add_parser("import", help="Import candidates from a CSV file")
    _add_import_options(imp)
    imp.add_argument("--map", action="append", default=[], metavar="FIELD=COLUMN",
                     help="Override a column mapping, e.g. \"Phone=Cell #\" or \"Notes=none\" (repeatable)")
    imp.set_defaults(func=cmd_import)

    prv = subparsers.add_parser("preview", help="Show CSV columns, the default mapping and sample rows")
    _add_import_options(prv)
    prv.add_argument("--rows", type=int, default=5, help="Sample rows to show (default 5)")
    prv.set_defaults(func=cmd_preview)

    exp = subparsers.add_parser("export", help="Export candidates as CSV, JSON, Text or Excel")
    exp.add_argument("--format", default="CSV", help="CSV, JSON, Text or Excel (default: CSV)")
    exp.add_argument("--fields", help="Comma-separated column labels (default: all standard columns)")
    exp.add_argument("--from", dest="date_from", help="Only candidates entered on/after this date")
    exp.add_argument("--to", dest="date_to", help="Only candidates entered on/before this date")
    exp.add_argument("--output", help="Output file (default: stdout)")
    _add_filter_options(exp)
    exp.set_defaults(func=cmd_export)

    for command in ("list", "search"):
        lst = subparsers.add_parser(command, help="List candidates matching the given filters")
        _add_filter_options(lst)
        lst.add_argument("--hot", action="store_true", help="Only hot candidates")
        lst.add_argument("--follow-up", action="store_true", help="Only candidates needing follow-up")
        lst.set_defaults(func=cmd_list)

    sts = subparsers.add_parser("stats", help="Show counts, distributions and monthly trend")
    sts.add_argument("--months", type=int, default=12, help="Months in the trend (default 12)")
    sts.set_defaults(func=cmd_stats)

    avd = subparsers.add_parser("avoid", help="Set or clear a candidate's avoid flag")
    avd.add_argument("--uid", required=True, help="Candidate id (or unique prefix)")
    avd.add_argument("--clear", action="store_true", help="Clear the flag instead of setting it")
    avd.add_argument("--reason", help="Reason recorded in the flag history")
    avd.set_defaults(func=cmd_avoid)

    dlt = subparsers.add_parser("delete", help="Delete a candidate, position or company")
    dlt.add_argument("kind", choices=["candidate", "position", "company"])
    dlt.add_argument("--uid", help="Candidate id (or unique prefix)")
    dlt.add_argument("--company", help="Company name")
    dlt.add_argument("--title", help="Position title")
    dlt.set_defaults(func=cmd_delete)

    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    logger = get_logger()
    logger.configure(level=settings.log_level, log_dir=settings.log_dir)

    if hasattr(args, "func"):
        args.func(args)
        if args.command in ("import", "export"):
            logger.log_metrics_summary()
        return

    parser.print_help()


if __name__ == "__main__":
    main()
