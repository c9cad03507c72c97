"""
Tests for storage.py - record store operations.
"""

import pytest

from recruittracker.database import Attachment, AvoidFlagEntry, Candidate, Company, Position
from recruittracker.errors import PersistenceError
from recruittracker.storage import open_store
from recruittracker.validation import DuplicateCandidateError, InvalidEmailError


class TestFetch:
    """Test fetch and count."""

    def test_insertion_order(self, store, make_candidate):
        for name, phone in [("Zed", "1"), ("Amy", "2"), ("Mo", "3")]:
            store.insert(make_candidate(name=name, phone=phone))
        store.save()

        assert [c.name for c in store.fetch(Candidate)] == ["Zed", "Amy", "Mo"]

    def test_predicate_and_sort(self, store, make_candidate):
        store.insert(make_candidate(name="Zed", phone="1", years_of_experience=3))
        store.insert(make_candidate(name="Amy", phone="2", years_of_experience=9))
        store.insert(make_candidate(name="Mo", phone="3", years_of_experience=1))
        store.save()

        result = store.fetch(
            Candidate,
            predicate=lambda c: c.years_of_experience > 1,
            sort_key=lambda c: c.name,
        )

        assert [c.name for c in result] == ["Amy", "Zed"]

    def test_reverse_sort(self, store, make_candidate):
        store.insert(make_candidate(name="Zed", phone="1"))
        store.insert(make_candidate(name="Amy", phone="2"))
        store.save()

        result = store.fetch(Candidate, sort_key=lambda c: c.name, reverse=True)

        assert [c.name for c in result] == ["Zed", "Amy"]

    def test_pending_inserts_visible(self, store, make_candidate):
        """Uncommitted inserts are included in fetches."""
        store.insert(make_candidate())

        assert store.fetch_count(Candidate) == 1

    def test_fetch_count_with_predicate(self, store, make_candidate):
        store.insert(make_candidate(name="A", phone="1", is_hot_candidate=True))
        store.insert(make_candidate(name="B", phone="2"))
        store.save()

        assert store.fetch_count(Candidate) == 2
        assert store.fetch_count(Candidate, lambda c: c.is_hot_candidate) == 1


class TestSave:
    """Test commit handling."""

    def test_save_persists(self, store, db_path, make_candidate):
        store.insert(make_candidate())
        store.save()

        other = open_store(db_path)
        assert other.fetch_count(Candidate) == 1
        other.close()

    def test_failed_save_rolls_back(self, store, make_candidate):
        """A constraint violation raises PersistenceError and discards the batch."""
        first = make_candidate(name="A", phone="1")
        second = make_candidate(name="B", phone="2")
        second.uid = first.uid
        store.insert(first)
        store.insert(second)

        with pytest.raises(PersistenceError) as exc:
            store.save()

        assert str(exc.value).startswith("Save failed:")
        assert store.fetch_count(Candidate) == 0


class TestAddCandidate:
    """Test the validated manual add flow."""

    def test_adds_and_commits(self, store, db_path, make_candidate):
        store.add_candidate(make_candidate(phone="(555) 123-4567"))

        other = open_store(db_path)
        assert other.fetch_count(Candidate) == 1
        other.close()

    def test_invalid_email_rejected(self, store, make_candidate):
        with pytest.raises(InvalidEmailError):
            store.add_candidate(make_candidate(email="bob@"))

        assert store.fetch_count(Candidate) == 0

    def test_duplicate_rejected(self, store, make_candidate):
        store.add_candidate(make_candidate(name="Alice Smith", phone="5551112222"))

        with pytest.raises(DuplicateCandidateError):
            store.add_candidate(make_candidate(name="alice smith", phone="5559990000"))

    def test_follow_up_listener_called(self, store, make_candidate):
        seen = []
        store.follow_up_listeners.append(seen.append)

        flagged = store.add_candidate(make_candidate(name="A", phone="5551112222", needs_follow_up=True))
        store.add_candidate(make_candidate(name="B", phone="5553334444"))

        assert seen == [flagged]


class TestDelete:
    """Test deletes and their cascades."""

    @pytest.fixture
    def staffed(self, store, make_candidate):
        company = Company(name="Acme Auto")
        lead = Position(title="Lead Tech", company=company)
        lube = Position(title="Lube Tech", company=company)
        bob = make_candidate(name="Bob", phone="1", position=lead)
        amy = make_candidate(name="Amy", phone="2", position=lube)
        store.insert(company)
        store.insert(bob)
        store.insert(amy)
        store.save()
        return company, lead, lube, bob, amy

    def test_delete_position_detaches_candidates(self, store, staffed):
        company, lead, lube, bob, amy = staffed

        store.delete(lead)
        store.save()

        assert store.fetch_count(Candidate) == 2
        assert bob.position is None
        assert amy.position is lube
        assert [p.title for p in store.fetch(Position)] == ["Lube Tech"]
        assert company.positions == [lube]

    def test_delete_company_removes_positions(self, store, db_path, staffed):
        company, lead, lube, bob, amy = staffed

        store.delete(company)
        store.save()

        assert store.fetch_count(Company) == 0
        assert store.fetch_count(Position) == 0
        assert store.fetch_count(Candidate) == 2

        other = open_store(db_path)
        assert all(c.position is None for c in other.fetch(Candidate))
        other.close()

    def test_delete_candidate_removes_owned_records(self, store, make_candidate):
        candidate = make_candidate()
        candidate.update_avoid_flag(True, reason="no show")
        Attachment(file_name="resume.pdf", file_data=b"%PDF", file_type="pdf", candidate=candidate)
        store.insert(candidate)
        store.save()

        store.delete(candidate)
        store.save()

        assert store.fetch_count(Candidate) == 0
        assert store.fetch_count(Attachment) == 0
        assert store.fetch_count(AvoidFlagEntry) == 0

    def test_delete_candidate_keeps_position(self, store, staffed):
        company, lead, lube, bob, amy = staffed

        store.delete(bob)
        store.save()

        assert store.fetch_count(Position) == 2
        assert lead.candidates == []
