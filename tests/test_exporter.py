"""
Tests for exporter.py - CSV, JSON and text exports.
"""

import json
import pytest
from datetime import datetime, timedelta

from recruittracker.csv_parser import parse_csv
from recruittracker.database import Candidate, Company, Position
from recruittracker.enums import (
    ExportFormat,
    HiringStatus,
    LeadSource,
    PreviousEmployer,
    SortOption,
    TechnicalFocus,
    TechnicianLevel,
)
from recruittracker.errors import ExportError
from recruittracker.exporter import (
    DEFAULT_EXPORT_FIELDS,
    DataExporter,
    ExportConfiguration,
    escape_csv_field,
    export_data,
    export_database_text,
    field_value,
)
from recruittracker.search import SearchFilter


@pytest.fixture
def detailed(make_candidate, entered):
    company = Company(name="Acme Auto")
    position = Position(title="General", company=company)
    candidate = make_candidate(
        name="Bob Van Dyke",
        phone="555-111-2222",
        email="bob@example.com",
        lead_source=LeadSource.REFERRAL,
        referral_name="Jim",
        years_of_experience=7,
        previous_employers=[PreviousEmployer.DEALERSHIP, PreviousEmployer.BELLE],
        technical_focus=[TechnicalFocus.DRIVEABILITY],
        technician_level=TechnicianLevel.LUBE_TECH,
        hiring_status=HiringStatus.OFFER,
        position=position,
        date_entered=entered,
        is_hot_candidate=True,
        concept_pay_scale="$30/hr",
        notes='Says "call after 5", prefers texts',
    )
    return candidate


class TestFieldValue:
    """Test the label -> value projection."""

    def test_split_name(self, detailed):
        assert field_value("First Name", detailed) == "Bob"
        assert field_value("Last Name", detailed) == "Van Dyke"
        assert field_value("Name", detailed) == "Bob Van Dyke"

    def test_single_word_name(self, make_candidate):
        cher = make_candidate(name="Cher")

        assert field_value("First Name", cher) == "Cher"
        assert field_value("Last Name", cher) == ""

    def test_labels_and_lists(self, detailed):
        assert field_value("Lead Source", detailed) == "Referral"
        assert field_value("Referral", detailed) == "Jim"
        assert field_value("Company", detailed) == "Acme Auto"
        assert field_value("Experience", detailed) == "7 years"
        assert field_value("Skill Level", detailed) == "Lube Tech"
        assert field_value("Tech Level", detailed) == "Lube Tech"
        assert field_value("Previous Employers", detailed) == "Dealership; Belle"
        assert field_value("Technical Focus", detailed) == "Drive-ability"
        assert field_value("Hiring Status", detailed) == "Offer"
        assert field_value("Pay Scale", detailed) == "$30/hr"

    def test_yes_no_flags(self, detailed):
        assert field_value("Hot Candidate", detailed) == "Yes"
        assert field_value("Needs Follow-up", detailed) == "No"
        assert field_value("Avoid", detailed) == "No"
        assert field_value("Needs Insurance", detailed) == "No"

    def test_contacted_derived_from_status(self, make_candidate):
        assert field_value("Contacted", make_candidate()) == "No"
        assert field_value("Contacted", make_candidate(hiring_status=HiringStatus.GHOSTED)) == "Yes"

    def test_date_entered_numeric(self, detailed):
        assert field_value("Date Entered", detailed) == "3/7/2024"

    def test_missing_optional_values(self, make_candidate):
        candidate = make_candidate()

        assert field_value("Company", candidate) == ""
        assert field_value("Referral", candidate) == ""
        assert field_value("Pay Scale", candidate) == ""

    def test_unknown_label(self, detailed):
        assert field_value("Shoe Size", detailed) == ""


class TestEscapeCsvField:
    """Test CSV quoting."""

    def test_plain_value_unchanged(self):
        assert escape_csv_field("Bob") == "Bob"

    def test_comma_quoted(self):
        assert escape_csv_field("a,b") == '"a,b"'

    def test_quotes_doubled(self):
        assert escape_csv_field('say "hi"') == '"say ""hi"""'

    def test_newline_quoted(self):
        assert escape_csv_field("line\nbreak") == '"line\nbreak"'

    @pytest.mark.parametrize("value", ["a\rb", "a\r\nb", "a\u2028b", "a\u2029b", "a\u0085b", "a\x0bb", "a\x0cb"])
    def test_other_line_breaks_quoted(self, value):
        """Every character that ends a row on import is quoted."""
        assert escape_csv_field(value) == f'"{value}"'

    def test_quoted_carriage_return_stays_one_row(self):
        line = ",".join(escape_csv_field(v) for v in ["Bob", "line one\rline two"])

        assert parse_csv(line) == [["Bob", "line one\rline two"]]


class TestExportData:
    """Test serialization formats."""

    def test_csv_header_and_rows(self, detailed, make_candidate):
        data = export_data([detailed, make_candidate()], ExportFormat.CSV)

        text = data.decode("utf-8")
        assert text.splitlines()[0] == ",".join(DEFAULT_EXPORT_FIELDS)
        assert text.endswith("\n")
        rows = parse_csv(text)
        assert len(rows) == 3
        assert rows[1][DEFAULT_EXPORT_FIELDS.index("Notes")] == 'Says "call after 5", prefers texts'
        assert rows[2][0] == "Alice"

    def test_csv_selected_fields_in_order(self, detailed):
        data = export_data([detailed], ExportFormat.CSV, ["Phone", "Name"])

        assert data.decode("utf-8") == "Phone,Name\n555-111-2222,Bob Van Dyke\n"

    def test_excel_is_csv(self, detailed):
        assert export_data([detailed], ExportFormat.EXCEL) == export_data([detailed], ExportFormat.CSV)

    def test_json(self, detailed):
        data = json.loads(export_data([detailed], ExportFormat.JSON, ["Name", "Experience", "Hot Candidate"]))

        assert data == [{"Name": "Bob Van Dyke", "Experience": "7 years", "Hot Candidate": "Yes"}]
        assert list(data[0]) == ["Name", "Experience", "Hot Candidate"]

    def test_json_default_fields(self, detailed):
        data = json.loads(export_data([detailed], ExportFormat.JSON))

        assert list(data[0]) == DEFAULT_EXPORT_FIELDS

    def test_json_keeps_unicode(self, make_candidate):
        data = export_data([make_candidate(name="José Peña")], ExportFormat.JSON, ["Name"])

        assert "José Peña".encode("utf-8") in data

    def test_text(self, detailed, make_candidate):
        text = export_data([detailed, make_candidate()], ExportFormat.TEXT).decode("utf-8")

        assert text.startswith("Recruiting Tracker Database Export\n")
        assert "Total Candidates: 2" in text
        assert "Candidate #1\n" in text
        assert "Candidate #2\n" in text
        assert "Name: Bob Van Dyke" in text

    def test_empty_csv_has_header(self):
        assert export_data([], ExportFormat.CSV) == (",".join(DEFAULT_EXPORT_FIELDS) + "\n").encode("utf-8")

    def test_unsupported_format(self):
        with pytest.raises(ExportError):
            export_data([], "PDF")


class TestDatabaseText:
    """Test the plain-text dump."""

    def test_generated_header(self, detailed):
        text = export_database_text([detailed], generated=datetime(2024, 5, 1, 8, 0))

        assert text.splitlines()[:3] == [
            "Recruiting Tracker Database Export",
            "Generated: 2024-05-01 08:00",
            "Total Candidates: 1",
        ]

    def test_avoid_history_included(self, make_candidate):
        candidate = make_candidate()
        candidate.update_avoid_flag(True, reason="Rude at interview")

        text = export_database_text([candidate])

        assert "Avoid Flag: Yes" in text
        assert "Enabled (Reason: Rude at interview)" in text


class TestDataExporter:
    """Test selection from the store."""

    @pytest.fixture
    def populated(self, store, make_candidate, entered):
        store.insert(make_candidate(name="Old Timer", phone="1", date_entered=entered - timedelta(days=60),
                                    lead_source=LeadSource.MONSTER))
        store.insert(make_candidate(name="Mid Way", phone="2", date_entered=entered,
                                    lead_source=LeadSource.INDEED))
        store.insert(make_candidate(name="New Hire", phone="3", date_entered=entered + timedelta(days=5),
                                    lead_source=LeadSource.INDEED))
        store.save()
        return store

    def export_names(self, store, **config):
        data = DataExporter(store).export(ExportConfiguration(include_fields=["Name"], **config))
        return data.decode("utf-8").splitlines()[1:]

    def test_all_in_store_order(self, populated):
        assert self.export_names(populated) == ["Old Timer", "Mid Way", "New Hire"]

    def test_date_range(self, populated, entered):
        assert self.export_names(populated, date_from=entered, date_to=entered) == ["Mid Way"]

    def test_filter_applied(self, populated):
        search_filter = SearchFilter(lead_sources={LeadSource.INDEED})

        assert self.export_names(populated, filter=search_filter) == ["Mid Way", "New Hire"]

    def test_sort_applied(self, populated):
        assert self.export_names(populated, sort_option=SortOption.NAME_ASC) == ["Mid Way", "New Hire", "Old Timer"]

    def test_json_format(self, populated):
        config = ExportConfiguration(format=ExportFormat.JSON, include_fields=["Name"])

        data = json.loads(DataExporter(populated).export(config))

        assert [row["Name"] for row in data] == ["Old Timer", "Mid Way", "New Hire"]

    def test_export_reads_committed_records(self, populated):
        """Exporter sees candidates as Candidate rows from the store."""
        assert len(DataExporter(populated).select(ExportConfiguration())) == populated.fetch_count(Candidate)
