import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from alumni_insights import config
from alumni_insights.aggregates import EmployerStats, build_employer_stats, join_employer_rows
from alumni_insights.lookup import key_sort_key

logger = logging.getLogger(__name__)

# Normalization caps: reaching the cap earns the full weight
HEALTH_CAPS = {"total_hires": 10, "recent_hires": 5, "recent_events": 8, "avg_engagement_score": 10}
HEALTH_WEIGHTS = {"total_hires": 25, "recent_hires": 30, "recent_events": 20, "avg_engagement_score": 25}

CHURN_RISK_THRESHOLD = 30


@dataclass
class HealthEntry:
    employer_key: str
    employer_name: str
    industry: str
    total_hires: int
    recent_hires: int
    recent_events: int
    avg_engagement_score: float
    health_score: float


@dataclass
class RiskEntry:
    employer_key: str
    employer_name: str
    industry: str
    recent_hires: int
    recent_events: int
    avg_engagement_score: float
    total_applications: int
    risk_score: int
    reasons: List[str] = field(default_factory=list)


def score_health(stats: EmployerStats) -> float:
    total = 0.0
    for name, cap in HEALTH_CAPS.items():
        normalized = min(max(getattr(stats, name) / cap, 0.0), 1.0)
        total += HEALTH_WEIGHTS[name] * normalized
    return round(min(max(total, 0.0), 100.0), 2)


def compute_employer_health(engagement_rows: Iterable[Any], employers: Iterable[Any],
                            top_n: Optional[int] = None, as_of: Optional[date] = None) -> List[HealthEntry]:
    """Rank employers by a 0-100 health score; returns the top `top_n` (config.HEALTH_TOP_N by default)."""
    if top_n is None:
        top_n = config.HEALTH_TOP_N
    entries = [
        HealthEntry(
            employer_key=s.employer_key,
            employer_name=s.employer_name,
            industry=s.industry,
            total_hires=s.total_hires,
            recent_hires=s.recent_hires,
            recent_events=s.recent_events,
            avg_engagement_score=round(s.avg_engagement_score, 2),
            health_score=score_health(s),
        )
        for s in build_employer_stats(engagement_rows, employers, as_of=as_of)
    ]
    entries.sort(key=lambda e: (-e.health_score, key_sort_key(e.employer_key)))
    return entries[:top_n] if top_n > 0 else entries


def score_churn_risk(stats: EmployerStats):
    """Additive churn score for one employer, with the reasons that contributed points."""
    score = 0
    reasons = []
    if stats.recent_hires == 0:
        score += 40
        reasons.append("No hires in the last 12 months")
    elif stats.recent_hires <= 1:
        score += 25
        reasons.append("Only one hire in the last 12 months")

    if stats.recent_events == 0:
        score += 30
        reasons.append("No event participation in the last 12 months")
    elif stats.recent_events <= 1:
        score += 15
        reasons.append("Only one event in the last 12 months")

    if stats.avg_engagement_score < 5:
        score += 20
        reasons.append("Average engagement score below 5")

    if stats.total_applications < 3:
        score += 10
        reasons.append("Fewer than 3 applications received")
    return score, reasons


def compute_churn_risk(engagement_rows: Iterable[Any], employers: Iterable[Any],
                       as_of: Optional[date] = None) -> List[RiskEntry]:
    """Employers whose churn score reaches the at-risk threshold, highest risk first."""
    flagged = []
    for stats in build_employer_stats(engagement_rows, employers, as_of=as_of):
        score, reasons = score_churn_risk(stats)
        if score < CHURN_RISK_THRESHOLD:
            continue
        flagged.append(RiskEntry(
            employer_key=stats.employer_key,
            employer_name=stats.employer_name,
            industry=stats.industry,
            recent_hires=stats.recent_hires,
            recent_events=stats.recent_events,
            avg_engagement_score=round(stats.avg_engagement_score, 2),
            total_applications=stats.total_applications,
            risk_score=score,
            reasons=reasons,
        ))
    flagged.sort(key=lambda e: (-e.risk_score, key_sort_key(e.employer_key)))
    logger.debug(f"Flagged {len(flagged)} employer(s) at churn risk")
    return flagged


def _engagement_score(stats: EmployerStats) -> float:
    return round(stats.events_count + stats.students_interacted * 0.5 + stats.total_hires * 2, 2)


def _active_stats(engagement_rows: Iterable[Any], employers: Iterable[Any]) -> List[EmployerStats]:
    return [s for s in build_employer_stats(engagement_rows, employers) if s.row_count > 0]


def calculate_employer_engagement_scores(engagement_rows: Iterable[Any], employers: Iterable[Any]):
    """Composite score = events + 0.5 * students interacted + 2 * hires, for employers with any engagement."""
    results = []
    for stats in _active_stats(engagement_rows, employers):
        results.append({
            "employer_key": stats.employer_key,
            "employer_name": stats.employer_name,
            "industry": stats.industry,
            "events_count": stats.events_count,
            "students_interacted": stats.students_interacted,
            "hires": stats.total_hires,
            "engagement_score": _engagement_score(stats),
        })
    results.sort(key=lambda r: (-r["engagement_score"], key_sort_key(r["employer_key"])))
    return results


def count_active_employers(engagement_rows: Iterable[Any], employers: Iterable[Any]) -> int:
    _, joined = join_employer_rows(engagement_rows, employers)
    return len({key for key, _ in joined})


def calculate_industry_distribution(engagement_rows: Iterable[Any], employers: Iterable[Any]) -> List[Dict[str, Any]]:
    """Active employers per industry, with each industry's share of them."""
    counts: Dict[str, int] = {}
    for stats in _active_stats(engagement_rows, employers):
        counts[stats.industry] = counts.get(stats.industry, 0) + 1

    total = sum(counts.values())
    results = [
        {"industry": industry, "count": count, "percent": round(count / total * 100, 2) if total else 0.0}
        for industry, count in counts.items()
    ]
    results.sort(key=lambda r: (-r["count"], r["industry"]))
    return results


def calculate_top_hiring_employers(engagement_rows: Iterable[Any], employers: Iterable[Any],
                                   limit: int = 10) -> List[Dict[str, Any]]:
    results = [
        {
            "employer_key": stats.employer_key,
            "employer_name": stats.employer_name,
            "industry": stats.industry,
            "total_hires": stats.total_hires,
            "events_attended": stats.events_count,
            "engagement_score": _engagement_score(stats),
        }
        for stats in _active_stats(engagement_rows, employers)
    ]
    results.sort(key=lambda r: (-r["total_hires"], key_sort_key(r["employer_key"])))
    return results[:limit] if limit > 0 else results
