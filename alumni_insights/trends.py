from typing import Any, Dict, Iterable, List, Optional, Tuple

from alumni_insights.aggregates import is_truthy_flag, parse_date_key, to_count
from alumni_insights.lookup import build_lookup, canonical_key
from alumni_insights.models import DateDim, EngagementFact, as_rows

Month = Tuple[int, int]


def _month_of(date_key: str, date_row) -> Tuple[Optional[Month], Optional[str]]:
    if date_row is not None and to_count(date_row.year) and to_count(date_row.month):
        year, month = to_count(date_row.year), to_count(date_row.month)
        label = f"{date_row.month_name[:3]} {year}" if date_row.month_name else f"{year}-{month:02d}"
        return (year, month), label
    day = parse_date_key(date_key)
    if day is None:
        return None, None
    return (day.year, day.month), day.strftime("%b %Y")


def _resolve_month(value: Any, date_lookup: Dict[str, DateDim]) -> Tuple[Optional[Month], Optional[str]]:
    key = canonical_key(value)
    if key is None:
        return None, None
    return _month_of(key, date_lookup.get(key))


def _date_lookup(dates: Iterable[Any]) -> Dict[str, DateDim]:
    return build_lookup(as_rows(DateDim, dates), "date_key")


def engagement_trend_by_month(engagement_rows: Iterable[Any], dates: Iterable[Any]) -> List[Dict[str, Any]]:
    """Engaged students and touchpoints per month, oldest month first.

    The event date is resolved through the date dimension when possible,
    otherwise read from the YYYYMMDD key itself. Undatable rows are skipped.
    """
    date_lookup = _date_lookup(dates)
    months: Dict[Month, Dict[str, Any]] = {}
    for fact in as_rows(EngagementFact, engagement_rows):
        month, label = _resolve_month(fact.event_date_key, date_lookup)
        if month is None:
            continue
        bucket = months.setdefault(month, {"month_label": label, "students": set(), "touchpoints": 0})
        student = canonical_key(fact.student_key)
        if student is not None:
            bucket["students"].add(student)
        bucket["touchpoints"] += 1

    return [
        {
            "month_label": bucket["month_label"],
            "engaged_alumni": len(bucket["students"]),
            "total_touchpoints": bucket["touchpoints"],
        }
        for _, bucket in sorted(months.items())
    ]


def employer_participation_by_month(engagement_rows: Iterable[Any], dates: Iterable[Any],
                                    employers: Optional[Iterable[Any]] = None) -> List[Dict[str, Any]]:
    """Distinct employers and events per event month, as "YYYY-MM" buckets.

    With `employers`, rows whose employer_key matches no employer are skipped.
    """
    date_lookup = _date_lookup(dates)
    known = set(build_lookup(employers, "employer_key")) if employers is not None else None
    months: Dict[Month, Dict[str, set]] = {}
    for fact in as_rows(EngagementFact, engagement_rows):
        employer = canonical_key(fact.employer_key)
        if known is not None and employer not in known:
            continue
        month, _ = _resolve_month(fact.event_date_key, date_lookup)
        if month is None:
            continue
        bucket = months.setdefault(month, {"employers": set(), "events": set()})
        if employer is not None:
            bucket["employers"].add(employer)
        event = canonical_key(fact.event_key)
        if event is not None:
            bucket["events"].add(event)

    return [
        {
            "month": f"{year}-{month:02d}",
            "active_employers": len(bucket["employers"]),
            "total_events": len(bucket["events"]),
        }
        for (year, month), bucket in sorted(months.items())
    ]


def opportunities_vs_hires_by_month(engagement_rows: Iterable[Any], dates: Iterable[Any]) -> List[Dict[str, Any]]:
    """Opportunities (rows with applications or offers) and hires per month.

    Rows are dated by `hire_date_key`, falling back to `event_date_key`.
    """
    date_lookup = _date_lookup(dates)
    months: Dict[Month, Dict[str, int]] = {}
    for fact in as_rows(EngagementFact, engagement_rows):
        date_key = fact.hire_date_key if canonical_key(fact.hire_date_key) else fact.event_date_key
        month, _ = _resolve_month(date_key, date_lookup)
        if month is None:
            continue
        bucket = months.setdefault(month, {"opportunities": 0, "hires": 0})
        if to_count(fact.job_offers_count) > 0 or to_count(fact.applications_submitted) > 0:
            bucket["opportunities"] += 1
        if is_truthy_flag(fact.hired_flag):
            bucket["hires"] += 1

    return [
        {"month": f"{year}-{month:02d}", **bucket}
        for (year, month), bucket in sorted(months.items())
    ]
