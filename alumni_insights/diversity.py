from dataclasses import dataclass
from typing import Any, Dict, Iterable, List

from alumni_insights.aggregates import is_truthy_flag
from alumni_insights.lookup import build_lookup, field_value, row_key
from alumni_insights.models import EngagementFact, as_rows
from alumni_insights.sanitizer import to_text

UNKNOWN_CATEGORY = "Unknown"


@dataclass
class DiversityEntry:
    category: str
    applicants: int
    hires: int
    hire_rate: float


def _category(row: Any, category_column: str) -> str:
    return to_text(field_value(row, category_column)) or UNKNOWN_CATEGORY


def compute_diversity(engagement_rows: Iterable[Any], dimension_rows: Iterable[Any],
                      category_column: str, key_column: str = "student_key") -> List[DiversityEntry]:
    """Hire rate per category of `category_column` (e.g. gender, visa_status).

    Applicants are all dimension rows in the category; hires are hired
    engagement rows joined back to a dimension row through `key_column`.
    Hired rows that do not resolve are left out.
    """
    dimension_rows = list(dimension_rows or [])
    applicants: Dict[str, int] = {}
    for row in dimension_rows:
        category = _category(row, category_column)
        applicants[category] = applicants.get(category, 0) + 1

    lookup = build_lookup(dimension_rows, key_column)
    hires: Dict[str, int] = {category: 0 for category in applicants}
    for fact in as_rows(EngagementFact, engagement_rows):
        if not is_truthy_flag(fact.hired_flag):
            continue
        match = lookup.get(row_key(fact, key_column))
        if match is None:
            continue
        category = _category(match, category_column)
        hires[category] = hires.get(category, 0) + 1

    return [
        DiversityEntry(
            category=category,
            applicants=count,
            hires=hires[category],
            hire_rate=round(hires[category] / count * 100, 2) if count else 0.0,
        )
        for category, count in applicants.items()
    ]
