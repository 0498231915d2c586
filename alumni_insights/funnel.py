from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from alumni_insights.aggregates import is_truthy_flag, to_count
from alumni_insights.models import EngagementFact, as_rows

FUNNEL_STAGES = [
    ("Applications", "applications_submitted"),
    ("Interviews", "interviews_count"),
    ("Offers", "job_offers_count"),
    ("Hires", "hired_flag"),
]


@dataclass
class FunnelStage:
    stage: str
    count: int
    stage_conversion_percent: float
    cumulative_conversion_percent: float
    # count / previous count without the 100 cap; 0 when the previous stage is empty
    raw_stage_conversion_percent: float = 0.0


def _percent(numerator: float, denominator: float) -> float:
    if denominator <= 0:
        return 0.0
    return round(numerator / denominator * 100, 2)


def stage_totals(engagement_rows: Iterable[Any]) -> List[int]:
    totals = [0] * len(FUNNEL_STAGES)
    for fact in as_rows(EngagementFact, engagement_rows):
        for index, (_, column) in enumerate(FUNNEL_STAGES):
            value = getattr(fact, column)
            if column == "hired_flag":
                totals[index] += 1 if is_truthy_flag(value) else 0
            else:
                totals[index] += to_count(value)
    return totals


def compute_funnel(engagement_rows: Iterable[Any]) -> List[FunnelStage]:
    """Applications -> Interviews -> Offers -> Hires.

    Stage conversion is relative to the previous stage (0 when the previous
    stage is empty), cumulative conversion relative to Applications (0 when
    there are none). Both are capped so a later stage never reads as better
    than an earlier one; `raw_stage_conversion_percent` keeps the uncapped ratio.
    """
    counts = stage_totals(engagement_rows)
    stages: List[FunnelStage] = []
    for index, (name, _) in enumerate(FUNNEL_STAGES):
        count = counts[index]
        if index == 0:
            raw = 100.0
            cumulative = 100.0 if count > 0 else 0.0
        else:
            raw = _percent(count, counts[index - 1])
            cumulative = min(_percent(count, counts[0]), stages[-1].cumulative_conversion_percent)
        stages.append(FunnelStage(name, count, min(raw, 100.0), cumulative, raw))
    return stages


def largest_drop_off(stages: List[FunnelStage]) -> Optional[FunnelStage]:
    """Stage that loses the largest share of the original applicants; earliest stage wins ties."""
    worst: Optional[FunnelStage] = None
    worst_loss = 0.0
    for previous, current in zip(stages, stages[1:]):
        loss = previous.cumulative_conversion_percent - current.cumulative_conversion_percent
        if loss > worst_loss:
            worst, worst_loss = current, loss
    return worst


def calculate_hiring_conversion_rate(engagement_rows: Iterable[Any]) -> Dict[str, Any]:
    """Hires over opportunities, where an opportunity is a row with any applications or offers."""
    opportunities = 0
    hires = 0
    for fact in as_rows(EngagementFact, engagement_rows):
        if to_count(fact.job_offers_count) > 0 or to_count(fact.applications_submitted) > 0:
            opportunities += 1
        if is_truthy_flag(fact.hired_flag):
            hires += 1
    return {
        "total_opportunities": opportunities,
        "total_hires": hires,
        "conversion_rate": _percent(hires, opportunities),
    }


def calculate_hiring_funnel(engagement_rows: Iterable[Any]) -> Dict[str, Any]:
    """Opportunities -> applications -> hires summary.

    `application_rate` is applications per opportunity and `hire_rate` hires
    per application, both as percentages.
    """
    opportunities = 0
    applications = 0
    hires = 0
    for fact in as_rows(EngagementFact, engagement_rows):
        submitted = to_count(fact.applications_submitted)
        if to_count(fact.job_offers_count) > 0 or submitted > 0:
            opportunities += 1
        applications += submitted
        if is_truthy_flag(fact.hired_flag):
            hires += 1
    return {
        "opportunities_count": opportunities,
        "applications_count": applications,
        "hires_count": hires,
        "application_rate": _percent(applications, opportunities),
        "hire_rate": _percent(hires, applications),
    }
