"""
Exception types shared across the package.

Import problems carry the human-readable lines that end up in an
ImportResult, so callers can surface them without re-formatting.
"""

from typing import List, Optional


class RecruitTrackerError(Exception):
    """Base class for all package errors."""
    pass


class CsvImportError(RecruitTrackerError):
    """A CSV file could not be turned into rows at all."""

    def __init__(self, message: str, diagnostics: Optional[List[str]] = None):
        super().__init__(message)
        self.diagnostics = list(diagnostics or [])

    @property
    def messages(self) -> List[str]:
        return [str(self)] + self.diagnostics


class InvalidEncodingError(CsvImportError):
    """Input bytes are not valid UTF-8."""

    def __init__(self):
        super().__init__("Invalid CSV encoding (expected UTF-8)")


class NoRowsDetectedError(CsvImportError):
    """Parsing produced no rows."""

    def __init__(self):
        super().__init__("No rows detected in CSV file")


class NoHeaderRowError(CsvImportError):
    """Only directive or blank lines were found."""

    def __init__(self):
        super().__init__("No header row found in CSV after skipping directives/blank lines.")


class NoDataRowsError(CsvImportError):
    """A header row exists but nothing follows it."""

    def __init__(self, diagnostics: Optional[List[str]] = None):
        super().__init__(
            "No data rows found below the header. Check line endings or delimiter in your CSV.",
            diagnostics,
        )


class PersistenceError(RecruitTrackerError):
    """The record store failed to commit pending changes."""
    pass


class ExportError(RecruitTrackerError):
    """Records could not be serialized in the requested format."""
    pass
