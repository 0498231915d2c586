import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, List, Optional, Set

from alumni_insights.lookup import build_lookup, canonical_key, key_sort_key
from alumni_insights.models import Employer, EngagementFact, as_rows

TRUTHY_FLAGS = {"1", "1.0", "true", "yes", "y", "t"}


def to_number(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def to_count(value: Any) -> int:
    """Non-negative integer count; blanks, garbage and negatives count as 0."""
    number = to_number(value)
    if number is None or number < 0:
        return 0
    return int(number)


def is_truthy_flag(value: Any) -> bool:
    if value is None:
        return False
    return str(value).strip().lower() in TRUTHY_FLAGS


def parse_date_key(value: Any) -> Optional[date]:
    """YYYYMMDD date key to a date; anything else is None."""
    key = canonical_key(value)
    if key is None or len(key) != 8 or not key.isdigit():
        return None
    try:
        return datetime.strptime(key, "%Y%m%d").date()
    except ValueError:
        return None


def one_year_before(anchor: date) -> date:
    try:
        return anchor.replace(year=anchor.year - 1)
    except ValueError:
        # Feb 29 has no counterpart in the previous year
        return anchor.replace(year=anchor.year - 1, day=28)


@dataclass
class EmployerStats:
    employer_key: str
    employer_name: str
    industry: str
    total_hires: int = 0
    recent_hires: int = 0
    total_applications: int = 0
    engagement_scores: List[float] = field(default_factory=list)
    recent_event_keys: Set[str] = field(default_factory=set)
    event_keys: Set[str] = field(default_factory=set)
    student_keys: Set[str] = field(default_factory=set)
    row_count: int = 0

    @property
    def recent_events(self) -> int:
        return len(self.recent_event_keys)

    @property
    def events_count(self) -> int:
        return len(self.event_keys)

    @property
    def students_interacted(self) -> int:
        return len(self.student_keys)

    @property
    def avg_engagement_score(self) -> float:
        if not self.engagement_scores:
            return 0.0
        return sum(self.engagement_scores) / len(self.engagement_scores)


def join_employer_rows(engagement_rows: Iterable[Any], employers: Iterable[Any]):
    """Typed employer lookup plus the engagement rows whose employer_key resolves."""
    employer_lookup = build_lookup(as_rows(Employer, employers), "employer_key")
    joined = []
    for fact in as_rows(EngagementFact, engagement_rows):
        key = canonical_key(fact.employer_key)
        if key is not None and key in employer_lookup:
            joined.append((key, fact))
    return employer_lookup, joined


def recent_window_anchor(facts: Iterable[EngagementFact]) -> Optional[date]:
    """Latest event date in the given rows; the recent window ends here rather than at today."""
    dates = [d for d in (parse_date_key(f.event_date_key) for f in facts) if d is not None]
    return max(dates) if dates else None


def build_employer_stats(engagement_rows: Iterable[Any], employers: Iterable[Any],
                         as_of: Optional[date] = None) -> List[EmployerStats]:
    """Per-employer aggregates for every employer in the employer table.

    Engagement rows whose employer_key matches no employer are ignored.
    "Recent" means within twelve months up to `as_of`, which defaults to the
    latest event date among the joined rows.
    """
    employer_lookup, joined = join_employer_rows(engagement_rows, employers)

    stats = {
        key: EmployerStats(
            employer_key=key,
            employer_name=employer.employer_name or "Unknown",
            industry=employer.industry or "Unknown",
        )
        for key, employer in employer_lookup.items()
    }

    anchor = as_of or recent_window_anchor(fact for _, fact in joined)
    window_start = one_year_before(anchor) if anchor else None

    def in_window(day: Optional[date]) -> bool:
        return day is not None and anchor is not None and window_start <= day <= anchor

    for key, fact in joined:
        entry = stats[key]
        entry.row_count += 1
        entry.total_applications += to_count(fact.applications_submitted)

        score = to_number(fact.engagement_score)
        if score is not None:
            entry.engagement_scores.append(score)

        student_key = canonical_key(fact.student_key)
        if student_key is not None:
            entry.student_keys.add(student_key)

        event_date = parse_date_key(fact.event_date_key)
        event_key = canonical_key(fact.event_key)
        if event_key is not None:
            entry.event_keys.add(event_key)
            if in_window(event_date):
                entry.recent_event_keys.add(event_key)

        if is_truthy_flag(fact.hired_flag):
            entry.total_hires += 1
            hire_date = parse_date_key(fact.hire_date_key) or event_date
            if in_window(hire_date):
                entry.recent_hires += 1

    return sorted(stats.values(), key=lambda s: key_sort_key(s.employer_key))
