"""
Database schema and connection management.

Uses SQLite with SQLAlchemy for candidate, company, position and
attachment storage.
"""

import mimetypes
import uuid
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Integer,
    LargeBinary,
    String,
    Text,
    TypeDecorator,
    create_engine,
)
from sqlalchemy.ext.mutable import MutableList
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

from .enums import (
    HiringStatus,
    LeadSource,
    PreviousEmployer,
    TechnicalFocus,
    TechnicianLevel,
)
from .normalize import yes_no

Base = declarative_base()


def _new_uid() -> str:
    return str(uuid.uuid4())


class EnumList(TypeDecorator):
    """List of enum members stored as a JSON array of labels."""

    impl = JSON
    cache_ok = True

    def __init__(self, enum_cls, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.enum_cls = enum_cls

    def process_bind_param(self, value, dialect):
        if value is None:
            return []
        return [self.enum_cls(v).value for v in value]

    def process_result_value(self, value, dialect):
        if not value:
            return []
        return [self.enum_cls(v) for v in value]


def _label_enum(enum_cls):
    # Labels, not member names, are what gets stored.
    return SAEnum(
        enum_cls,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        validate_strings=True,
    )


class Company(Base):
    """Employer that owns open positions."""

    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, default="")
    icon = Column(LargeBinary, nullable=True)

    positions = relationship(
        "Position",
        back_populates="company",
        cascade="all, delete-orphan",
        order_by="Position.id",
    )

    def __init__(self, name: str, icon: Optional[bytes] = None):
        self.name = name
        self.icon = icon

    def __repr__(self) -> str:
        return f"<Company {self.name!r}>"


class Position(Base):
    """Opening at a company that candidates can be attached to."""

    __tablename__ = "positions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=False)
    position_description = Column(Text, nullable=False, default="")
    date_created = Column(DateTime, nullable=False, default=datetime.now)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=True)

    company = relationship("Company", back_populates="positions")
    candidates = relationship("Candidate", back_populates="position", order_by="Candidate.id")

    def __init__(self, title: str, position_description: str = "", company: Optional[Company] = None):
        self.title = title
        self.position_description = position_description
        self.date_created = datetime.now()
        if company is not None:
            self.company = company

    def __repr__(self) -> str:
        return f"<Position {self.title!r}>"


class AvoidFlagEntry(Base):
    """One change of a candidate's avoid flag. Rows are never updated."""

    __tablename__ = "avoid_flag_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    candidate_id = Column(Integer, ForeignKey("candidates.id"), nullable=False)
    date = Column(DateTime, nullable=False, default=datetime.now)
    is_enabled = Column(Boolean, nullable=False)
    reason = Column(Text, nullable=True)


class Candidate(Base):
    """Technician candidate."""

    __tablename__ = "candidates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uid = Column(String, nullable=False, unique=True, default=_new_uid)

    # Basic information
    name = Column(String, nullable=False, default="")
    phone_number = Column(String, nullable=False, default="")
    email = Column(String, nullable=False, default="")
    lead_source = Column(_label_enum(LeadSource), nullable=False, default=LeadSource.IN_PERSON)
    referral_name = Column(String, nullable=True)

    # Experience and skills
    years_of_experience = Column(Integer, nullable=False, default=0)
    previous_employers = Column(MutableList.as_mutable(EnumList(PreviousEmployer)), nullable=False, default=list)
    technical_focus = Column(MutableList.as_mutable(EnumList(TechnicalFocus)), nullable=False, default=list)
    technician_level = Column(_label_enum(TechnicianLevel), nullable=False, default=TechnicianLevel.UNKNOWN)

    # Status and flags
    hiring_status = Column(_label_enum(HiringStatus), nullable=False, default=HiringStatus.NOT_CONTACTED)
    needs_follow_up = Column(Boolean, nullable=False, default=False)
    is_hot_candidate = Column(Boolean, nullable=False, default=False)
    _avoid_candidate = Column("avoid_candidate", Boolean, nullable=False, default=False)

    # Compensation
    concept_pay_scale = Column(String, nullable=True)
    concept_pay_date = Column(DateTime, nullable=True)
    needs_health_insurance = Column(Boolean, nullable=False, default=False)

    # Additional information
    offer_detail = Column(Text, nullable=True)
    offer_date = Column(DateTime, nullable=True)
    picture = Column(LargeBinary, nullable=True)
    social_media_links = Column(MutableList.as_mutable(JSON), nullable=False, default=list)
    notes = Column(Text, nullable=False, default="")
    date_entered = Column(DateTime, nullable=False, default=datetime.now)

    position_id = Column(Integer, ForeignKey("positions.id"), nullable=True)
    position = relationship("Position", back_populates="candidates")
    attached_files = relationship(
        "Attachment",
        back_populates="candidate",
        cascade="all, delete-orphan",
        order_by="Attachment.id",
    )
    avoid_flag_history = relationship(
        "AvoidFlagEntry",
        cascade="all, delete-orphan",
        order_by="AvoidFlagEntry.id",
    )

    def __init__(
        self,
        name: str,
        phone_number: str,
        email: str,
        lead_source: LeadSource,
        years_of_experience: int = 0,
        previous_employers: Optional[List[PreviousEmployer]] = None,
        technical_focus: Optional[List[TechnicalFocus]] = None,
        technician_level: TechnicianLevel = TechnicianLevel.UNKNOWN,
        hiring_status: HiringStatus = HiringStatus.NOT_CONTACTED,
        referral_name: Optional[str] = None,
        position: Optional[Position] = None,
        date_entered: Optional[datetime] = None,
    ):
        if years_of_experience < 0:
            raise ValueError("years_of_experience must be non-negative")
        self.uid = _new_uid()
        self.name = name
        self.phone_number = phone_number
        self.email = email
        self.lead_source = lead_source
        self.referral_name = referral_name
        self.years_of_experience = years_of_experience
        self.previous_employers = list(previous_employers or [])
        self.technical_focus = list(technical_focus or [])
        self.technician_level = technician_level
        self.hiring_status = hiring_status
        self.position = position

        self.needs_follow_up = False
        self.is_hot_candidate = False
        self._avoid_candidate = False
        self.needs_health_insurance = False
        self.social_media_links = []
        self.notes = ""
        self.date_entered = date_entered or datetime.now()

    def __repr__(self) -> str:
        return f"<Candidate {self.uid} - {self.name}>"

    @property
    def avoid_candidate(self) -> bool:
        return bool(self._avoid_candidate)

    def update_avoid_flag(self, new_value: bool, reason: Optional[str] = None) -> bool:
        """
        Set the avoid flag, logging the change.

        A history entry is appended only when the value actually changes.

        Returns:
            True if the flag changed
        """
        if bool(new_value) == self.avoid_candidate:
            return False
        self.avoid_flag_history.append(
            AvoidFlagEntry(date=datetime.now(), is_enabled=bool(new_value), reason=reason)
        )
        self._avoid_candidate = bool(new_value)
        return True

    @property
    def company(self) -> Optional[Company]:
        return self.position.company if self.position is not None else None

    def export_text(self) -> str:
        """Plain-text profile used by the text export."""
        lines = [
            "Candidate Profile",
            "================",
            "Basic Information:",
            f"Name: {self.name}",
            f"Phone: {self.phone_number}",
            f"Email: {self.email}",
            f"Lead Source: {self.lead_source.value}",
        ]
        if self.referral_name:
            lines.append(f"Referred By: {self.referral_name}")
        if self.position is not None:
            lines.append(f"Position: {self.position.title}")
        lines += [
            "",
            "Experience:",
            f"Years of Experience: {self.years_of_experience}",
            f"Technician Level: {self.technician_level.value}",
            f"Previous Employers: {', '.join(e.value for e in self.previous_employers)}",
            f"Technical Focus: {', '.join(f.value for f in self.technical_focus)}",
            "",
            "Status:",
            f"Hiring Status: {self.hiring_status.value}",
            f"Follow Up Required: {yes_no(self.needs_follow_up)}",
            f"Hot Candidate: {yes_no(self.is_hot_candidate)}",
            f"Avoid Flag: {yes_no(self.avoid_candidate)}",
        ]
        if self.avoid_flag_history:
            lines += ["", "Avoid Flag History:"]
            for entry in self.avoid_flag_history:
                line = f"- {entry.date:%Y-%m-%d %H:%M}: {'Enabled' if entry.is_enabled else 'Disabled'}"
                if entry.reason:
                    line += f" (Reason: {entry.reason})"
                lines.append(line)
        lines += ["", f"Date Entered: {self.date_entered:%Y-%m-%d %H:%M}"]
        return "\n".join(lines)


class Attachment(Base):
    """File (resume, certification, ...) attached to a candidate."""

    __tablename__ = "attachments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uid = Column(String, nullable=False, unique=True, default=_new_uid)
    file_name = Column(String, nullable=False, default="")
    file_data = Column(LargeBinary, nullable=False, default=b"")
    file_type = Column(String, nullable=False, default="")
    date_added = Column(DateTime, nullable=False, default=datetime.now)
    candidate_id = Column(Integer, ForeignKey("candidates.id"), nullable=True)

    candidate = relationship("Candidate", back_populates="attached_files")

    def __init__(self, file_name: str, file_data: bytes, file_type: str, candidate: Optional[Candidate] = None):
        self.uid = _new_uid()
        self.file_name = file_name
        self.file_data = file_data
        self.file_type = file_type
        self.date_added = datetime.now()
        if candidate is not None:
            self.candidate = candidate

    @property
    def file_extension(self) -> str:
        return Path(self.file_name).suffix.lstrip(".")

    @property
    def display_name(self) -> str:
        return Path(self.file_name).stem

    @property
    def content_type(self) -> Optional[str]:
        return mimetypes.guess_type(self.file_name)[0]

    @property
    def is_image(self) -> bool:
        return (self.content_type or "").startswith("image/")

    @property
    def is_pdf(self) -> bool:
        return self.content_type == "application/pdf"


def init_database(db_path: Path) -> None:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file
    """
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(engine)


def get_session(db_path: Path):
    """
    Get database session.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    engine = create_engine(f"sqlite:///{db_path}")
    Session = sessionmaker(bind=engine, expire_on_commit=False)
    return Session()
