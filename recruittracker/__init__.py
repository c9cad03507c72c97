"""Recruit Tracker: candidate records, CSV import/export, search and statistics."""

__version__ = "0.3.0"
