"""
Aggregate statistics over stored candidates for the stats report.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from .database import Candidate
from .enums import HiringStatus, LeadSource, TechnicianLevel
from .storage import RecordStore

EXPERIENCE_BUCKETS = [
    ("0-2", 0, 2),
    ("3-5", 3, 5),
    ("6-10", 6, 10),
    ("11-15", 11, 15),
    ("16+", 16, None),
]


@dataclass
class TrendPoint:
    month: datetime  # first day of the month, midnight
    count: int


@dataclass
class DistributionEntry:
    category: str
    count: int
    percentage: float


@dataclass
class Insight:
    title: str
    value: str
    trend: str


def start_of_month(value: datetime) -> datetime:
    return datetime(value.year, value.month, 1)


def add_months(month: datetime, delta: int) -> datetime:
    index = month.year * 12 + (month.month - 1) + delta
    return datetime(index // 12, index % 12 + 1, 1)


def _percentage(count: int, total: int) -> float:
    return count / total * 100 if total else 0.0


def _whole_percent(count: int, total: int) -> str:
    return f"{int(_percentage(count, total))}%"


class StatisticsAggregator:
    """Counts, monthly trend and distributions over every candidate in the store."""

    def __init__(self, store: RecordStore):
        self.store = store

    def total_candidates(self) -> int:
        return self.store.fetch_count(Candidate)

    def hot_candidates(self) -> int:
        return self.store.fetch_count(Candidate, lambda c: c.is_hot_candidate)

    def needs_follow_up(self) -> int:
        return self.store.fetch_count(Candidate, lambda c: c.needs_follow_up)

    def avoid_list_count(self) -> int:
        return self.store.fetch_count(Candidate, lambda c: c.avoid_candidate)

    def candidates_by_month(self, months: int = 12, now: Optional[datetime] = None) -> List[TrendPoint]:
        """
        Candidates entered per month for the last `months` months, oldest first.

        Every month in the window is present, zero-filled. Candidates entered
        outside the window are ignored.
        """
        current = start_of_month(now or datetime.now())
        counts: Dict[datetime, int] = {
            add_months(current, -offset): 0 for offset in range(months - 1, -1, -1)
        }
        for candidate in self.store.fetch(Candidate):
            month = start_of_month(candidate.date_entered)
            if month in counts:
                counts[month] += 1
        return [TrendPoint(month=m, count=c) for m, c in sorted(counts.items())]

    def _distribution(self, enum_cls, attr: str) -> List[DistributionEntry]:
        candidates = self.store.fetch(Candidate)
        total = len(candidates)
        counts = {member: 0 for member in enum_cls}
        for candidate in candidates:
            counts[getattr(candidate, attr)] += 1
        entries = [
            DistributionEntry(category=m.value, count=n, percentage=_percentage(n, total))
            for m, n in counts.items()
        ]
        # sorted() is stable, so equal counts stay in enum order.
        return sorted(entries, key=lambda e: e.count, reverse=True)

    def lead_source_distribution(self) -> List[DistributionEntry]:
        return self._distribution(LeadSource, "lead_source")

    def technician_level_distribution(self) -> List[DistributionEntry]:
        return self._distribution(TechnicianLevel, "technician_level")

    def hiring_status_distribution(self) -> List[DistributionEntry]:
        return self._distribution(HiringStatus, "hiring_status")

    def experience_distribution(self) -> List[DistributionEntry]:
        candidates = self.store.fetch(Candidate)
        total = len(candidates)
        entries = []
        for label, low, high in EXPERIENCE_BUCKETS:
            count = sum(
                1 for c in candidates
                if c.years_of_experience >= low and (high is None or c.years_of_experience <= high)
            )
            entries.append(DistributionEntry(category=label, count=count, percentage=_percentage(count, total)))
        return entries

    def generate_insights(self, now: Optional[datetime] = None) -> List[Insight]:
        """
        Headline numbers: total with a month-over-month arrow, and the hot,
        follow-up and avoid counts with their share of the total.
        """
        total = self.total_candidates()
        if total == 0:
            return [
                Insight(title=title, value="0", trend="No data yet")
                for title in ("Total Candidates", "Hot Candidates", "Need Follow-up", "Avoid List")
            ]

        hot = self.hot_candidates()
        follow_up = self.needs_follow_up()
        avoid = self.avoid_list_count()

        trends = self.candidates_by_month(months=3, now=now)
        ratio = 1.0
        if len(trends) >= 2 and trends[-2].count > 0:
            ratio = trends[-1].count / trends[-2].count
        arrow = "\u2191" if ratio > 1 else "\u2193" if ratio < 1 else "\u2192"

        return [
            Insight(title="Total Candidates", value=str(total), trend=arrow),
            Insight(title="Hot Candidates", value=str(hot), trend=_whole_percent(hot, total)),
            Insight(title="Need Follow-up", value=str(follow_up), trend=_whole_percent(follow_up, total)),
            Insight(title="Avoid List", value=str(avoid), trend=_whole_percent(avoid, total)),
        ]
