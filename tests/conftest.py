"""
Pytest configuration and shared fixtures.
"""

import pytest
from datetime import datetime
from pathlib import Path

# Quiet global logger before package modules grab it at import time.
from recruittracker.logger import get_logger

get_logger(enable_file=False, enable_console=False)

from recruittracker.database import Candidate  # noqa: E402
from recruittracker.enums import LeadSource  # noqa: E402
from recruittracker.storage import open_store  # noqa: E402


@pytest.fixture
def db_path(tmp_path) -> Path:
    """Path for a temporary SQLite database."""
    return tmp_path / "test.db"


@pytest.fixture
def store(db_path):
    """Record store on a fresh temporary database."""
    record_store = open_store(db_path)
    yield record_store
    record_store.close()


@pytest.fixture
def make_candidate():
    """Factory for candidates with sensible defaults."""

    def _make(name="Alice Smith", phone="1112223333", email="alice@example.com", **kwargs):
        flags = {
            key: kwargs.pop(key)
            for key in ("is_hot_candidate", "needs_follow_up", "needs_health_insurance", "notes", "concept_pay_scale")
            if key in kwargs
        }
        kwargs.setdefault("lead_source", LeadSource.INDEED)
        candidate = Candidate(name=name, phone_number=phone, email=email, **kwargs)
        for key, value in flags.items():
            setattr(candidate, key, value)
        return candidate

    return _make


@pytest.fixture
def sample_csv() -> bytes:
    """Three-row CSV with split names, company and a contacted column."""
    return (
        "First Name,Last Name,Phone,Email,Lead Source,Company,Years Experience,Skill Level,Contacted,Date Entered\n"
        "Jane,Doe,555-123-4567,jane@example.com,Indeed,Acme Auto,5 years,A,Yes,3/7/2024\n"
        "John,Roe,(555) 987-6543,john@example.com,Referral,acme auto,2,B,No,2024-01-15\n"
        "Maria,Lopez,5550001111,maria@example.com,Monster,,12,Lube Tech,,\n"
    ).encode("utf-8")


@pytest.fixture
def entered():
    """Fixed entry timestamp."""
    return datetime(2024, 3, 7, 9, 30)
