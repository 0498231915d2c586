from dataclasses import asdict
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from alumni_insights.diversity import DiversityEntry
from alumni_insights.employers import HealthEntry, RiskEntry
from alumni_insights.funnel import FunnelStage
from alumni_insights.store import LoadResult


class FunnelStageResponse(BaseModel):
    stage: str
    count: int
    stage_conversion_percent: float
    cumulative_conversion_percent: float
    raw_stage_conversion_percent: float = 0.0


class FunnelResponse(BaseModel):
    stages: List[FunnelStageResponse]
    largest_drop_off: Optional[str] = None


class HealthEntryResponse(BaseModel):
    employer_key: str
    employer_name: str
    industry: str
    total_hires: int
    recent_hires: int
    recent_events: int
    avg_engagement_score: float
    health_score: float


class HealthResponse(BaseModel):
    employers: List[HealthEntryResponse]


class RiskEntryResponse(BaseModel):
    employer_key: str
    employer_name: str
    industry: str
    recent_hires: int
    recent_events: int
    avg_engagement_score: float
    total_applications: int
    risk_score: int
    reasons: List[str] = []


class ChurnRiskResponse(BaseModel):
    at_risk: List[RiskEntryResponse]


class DiversityEntryResponse(BaseModel):
    category: str
    applicants: int
    hires: int
    hire_rate: float


class DiversityResponse(BaseModel):
    column: str
    categories: List[DiversityEntryResponse]


class TableSummary(BaseModel):
    id: str
    label: str
    description: str = ""
    primary_key: str
    columns: List[str]


class RowErrorResponse(BaseModel):
    line: int
    message: str


class TableResponse(BaseModel):
    id: str
    primary_key: str
    columns: List[str]
    rows: List[Dict[str, str]]
    errors: List[RowErrorResponse] = []


def assemble_funnel(stages: List[FunnelStage], drop_off: Optional[FunnelStage] = None) -> FunnelResponse:
    return FunnelResponse(
        stages=[FunnelStageResponse(**asdict(stage)) for stage in stages],
        largest_drop_off=drop_off.stage if drop_off else None,
    )


def assemble_health(entries: List[HealthEntry]) -> HealthResponse:
    return HealthResponse(employers=[HealthEntryResponse(**asdict(entry)) for entry in entries])


def assemble_churn_risk(entries: List[RiskEntry]) -> ChurnRiskResponse:
    return ChurnRiskResponse(at_risk=[RiskEntryResponse(**asdict(entry)) for entry in entries])


def assemble_diversity(column: str, entries: List[DiversityEntry]) -> DiversityResponse:
    return DiversityResponse(column=column, categories=[DiversityEntryResponse(**asdict(e)) for e in entries])


def assemble_table(table: LoadResult) -> TableResponse:
    return TableResponse(
        id=table.table_id,
        primary_key=table.primary_key,
        columns=table.columns,
        rows=table.rows,
        errors=[RowErrorResponse(line=e.line, message=e.message) for e in table.errors],
    )


def assemble_table_summaries(tables: List[Dict[str, Any]]) -> List[TableSummary]:
    return [TableSummary(**table) for table in tables]
