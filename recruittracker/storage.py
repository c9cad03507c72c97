"""
Record store over a SQLAlchemy session.

Queries are plain Python predicates evaluated over the materialized rows.
"""

from pathlib import Path
from typing import Any, Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from .database import Candidate, Company, Position, get_session, init_database
from .errors import PersistenceError
from .logger import get_logger
from .validation import check_for_duplicates, validate

logger = get_logger()

Predicate = Callable[[Any], bool]


class RecordStore:
    """Insert/delete/fetch/save facade used by the importer, exporter and CLI."""

    def __init__(self, session):
        self.session = session
        # Called with the candidate after a manual add that needs follow-up.
        self.follow_up_listeners: List[Callable[[Candidate], None]] = []

    def insert(self, record) -> None:
        self.session.add(record)

    def delete(self, record) -> None:
        """
        Delete a record, detaching dependents first.

        Position: candidates keep existing with no position.
        Company: its positions are detached from their candidates and deleted.
        Candidate: attachments and avoid history go with it.
        """
        if isinstance(record, Company):
            for position in list(record.positions):
                self._detach_position(position)
                self.session.delete(position)
        elif isinstance(record, Position):
            self._detach_position(record)
            if record.company is not None:
                record.company.positions.remove(record)
        elif isinstance(record, Candidate):
            record.position = None
        self.session.delete(record)

    @staticmethod
    def _detach_position(position: Position) -> None:
        for candidate in list(position.candidates):
            candidate.position = None

    def fetch(
        self,
        model,
        predicate: Optional[Predicate] = None,
        sort_key: Optional[Callable[[Any], Any]] = None,
        reverse: bool = False,
    ) -> list:
        """
        Return all rows of `model` in insertion order, optionally filtered and sorted.

        Pending inserts are included (the session autoflushes before querying).
        """
        rows = self.session.query(model).order_by(model.id).all()
        if predicate is not None:
            rows = [r for r in rows if predicate(r)]
        if sort_key is not None:
            rows = sorted(rows, key=sort_key, reverse=reverse)
        return rows

    def fetch_count(self, model, predicate: Optional[Predicate] = None) -> int:
        if predicate is None:
            return self.session.query(model).count()
        return len(self.fetch(model, predicate))

    def save(self) -> None:
        """
        Commit pending changes.

        Raises:
            PersistenceError: If the commit fails; the session is rolled back
        """
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Save failed", error=str(e))
            raise PersistenceError(f"Save failed: {e}") from e

    def add_candidate(self, candidate: Candidate) -> Candidate:
        """
        Validate, duplicate-check, insert and commit a manually entered candidate.

        Raises:
            ValidationError: On bad email/phone or a duplicate
            PersistenceError: If the commit fails
        """
        validate(candidate)
        check_for_duplicates(candidate, self)
        self.insert(candidate)
        self.save()
        logger.info("Candidate added", uid=candidate.uid, follow_up=candidate.needs_follow_up)
        if candidate.needs_follow_up:
            for listener in self.follow_up_listeners:
                listener(candidate)
        return candidate

    def close(self) -> None:
        self.session.close()


def open_store(db_path: Path) -> RecordStore:
    """Create tables if needed and return a store bound to a fresh session."""
    db_path = Path(db_path)
    init_database(db_path)
    return RecordStore(get_session(db_path))
