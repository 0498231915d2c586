import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List

from dotenv import load_dotenv

load_dotenv()

from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from alumni_insights import config
from alumni_insights.alumni import engagement_by_program, summarize_alumni_engagement
from alumni_insights.diversity import compute_diversity
from alumni_insights.employers import (
    calculate_employer_engagement_scores,
    calculate_industry_distribution,
    calculate_top_hiring_employers,
    compute_churn_risk,
    compute_employer_health,
    count_active_employers,
)
from alumni_insights.errors import SourceMissing, TableStoreError
from alumni_insights.funnel import (
    calculate_hiring_conversion_rate,
    calculate_hiring_funnel,
    compute_funnel,
    largest_drop_off,
)
from alumni_insights.responses import (
    ChurnRiskResponse,
    DiversityResponse,
    FunnelResponse,
    HealthResponse,
    TableResponse,
    TableSummary,
    assemble_churn_risk,
    assemble_diversity,
    assemble_funnel,
    assemble_health,
    assemble_table,
    assemble_table_summaries,
)
from alumni_insights.store import TableStore
from alumni_insights.trends import (
    employer_participation_by_month,
    engagement_trend_by_month,
    opportunities_vs_hires_by_month,
)

logger = logging.getLogger(__name__)

ENGAGEMENT_TABLE = "alumniEngagement"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # One store (and cache) per application instance
    app.state.store = TableStore(data_dir=config.DATA_DIR)
    logger.info(f"Serving tables from {config.DATA_DIR}")
    yield
    app.state.store.invalidate()


app = FastAPI(title="Alumni Insights API", lifespan=lifespan)


def get_store(request: Request) -> TableStore:
    return request.app.state.store


@app.exception_handler(TableStoreError)
def table_store_error_handler(request: Request, exc: TableStoreError):
    logger.error(f"✗ {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=exc.status, content={"detail": str(exc)})


def _record_from(payload: Dict[str, Any]) -> Dict[str, Any]:
    record = payload.get("record")
    if not isinstance(record, dict):
        raise HTTPException(status_code=400, detail="Record payload is required.")
    return record


@app.get("/health")
def read_health():
    return {"status": "ok"}


@app.get("/tables", response_model=List[TableSummary])
def list_tables(store: TableStore = Depends(get_store)):
    return assemble_table_summaries(store.list_tables())


@app.get("/tables/{table_id}", response_model=TableResponse)
def read_table(table_id: str, store: TableStore = Depends(get_store)):
    return assemble_table(store.load(table_id))


@app.post("/tables/{table_id}", status_code=201)
def add_record(table_id: str, payload: Dict[str, Any] = Body(...), store: TableStore = Depends(get_store)):
    row = store.insert_record(table_id, _record_from(payload))
    return {"message": "Record added successfully.", "row": row}


@app.put("/tables/{table_id}/{record_id}")
def update_record(table_id: str, record_id: str, payload: Dict[str, Any] = Body(...),
                  store: TableStore = Depends(get_store)):
    row = store.update_record(table_id, record_id, _record_from(payload))
    return {"message": "Record updated successfully.", "row": row}


@app.delete("/tables/{table_id}/{record_id}")
def delete_record(table_id: str, record_id: str, store: TableStore = Depends(get_store)):
    store.delete_record(table_id, record_id)
    return {"message": "Record deleted successfully."}


@app.get("/metrics/funnel", response_model=FunnelResponse)
def funnel(store: TableStore = Depends(get_store)):
    stages = compute_funnel(store.load(ENGAGEMENT_TABLE).rows)
    return assemble_funnel(stages, largest_drop_off(stages))


@app.get("/metrics/employer-health", response_model=HealthResponse)
def employer_health(top_n: int = config.HEALTH_TOP_N, store: TableStore = Depends(get_store)):
    entries = compute_employer_health(
        store.load(ENGAGEMENT_TABLE).rows, store.load("employers").rows, top_n=top_n
    )
    return assemble_health(entries)


@app.get("/metrics/churn-risk", response_model=ChurnRiskResponse)
def churn_risk(store: TableStore = Depends(get_store)):
    entries = compute_churn_risk(store.load(ENGAGEMENT_TABLE).rows, store.load("employers").rows)
    return assemble_churn_risk(entries)


@app.get("/metrics/diversity", response_model=DiversityResponse)
def diversity(column: str = "gender", table: str = "students", key: str = "student_key",
              store: TableStore = Depends(get_store)):
    entries = compute_diversity(store.load(ENGAGEMENT_TABLE).rows, store.load(table).rows, column, key_column=key)
    return assemble_diversity(column, entries)


@app.get("/metrics/conversion-rate")
def conversion_rate(store: TableStore = Depends(get_store)):
    return calculate_hiring_conversion_rate(store.load(ENGAGEMENT_TABLE).rows)


@app.get("/metrics/engagement-scores")
def engagement_scores(store: TableStore = Depends(get_store)):
    rows = store.load(ENGAGEMENT_TABLE).rows
    employers = store.load("employers").rows
    return {
        "active_employers": count_active_employers(rows, employers),
        "employers": calculate_employer_engagement_scores(rows, employers),
    }


def _date_rows(store: TableStore) -> List[Dict[str, str]]:
    # The date table is optional; months fall back to the date keys
    try:
        return store.load("dates").rows
    except SourceMissing:
        return []


@app.get("/metrics/engagement-trend")
def engagement_trend(store: TableStore = Depends(get_store)):
    return {"months": engagement_trend_by_month(store.load(ENGAGEMENT_TABLE).rows, _date_rows(store))}


@app.get("/metrics/employer-participation")
def employer_participation(store: TableStore = Depends(get_store)):
    rows = store.load(ENGAGEMENT_TABLE).rows
    return {"months": employer_participation_by_month(rows, _date_rows(store), store.load("employers").rows)}


@app.get("/metrics/opportunities-vs-hires")
def opportunities_vs_hires(store: TableStore = Depends(get_store)):
    return {"months": opportunities_vs_hires_by_month(store.load(ENGAGEMENT_TABLE).rows, _date_rows(store))}


@app.get("/metrics/hiring-summary")
def hiring_summary(store: TableStore = Depends(get_store)):
    return calculate_hiring_funnel(store.load(ENGAGEMENT_TABLE).rows)


@app.get("/metrics/industry-distribution")
def industry_distribution(store: TableStore = Depends(get_store)):
    rows = store.load(ENGAGEMENT_TABLE).rows
    return {"industries": calculate_industry_distribution(rows, store.load("employers").rows)}


@app.get("/metrics/top-hiring-employers")
def top_hiring_employers(limit: int = 10, store: TableStore = Depends(get_store)):
    rows = store.load(ENGAGEMENT_TABLE).rows
    return {"employers": calculate_top_hiring_employers(rows, store.load("employers").rows, limit=limit)}


@app.get("/metrics/alumni-engagement")
def alumni_engagement(limit: int = 10, store: TableStore = Depends(get_store)):
    students = store.load("students").rows
    rows = store.load(ENGAGEMENT_TABLE).rows
    summary = summarize_alumni_engagement(students, rows)
    summary["by_program"] = engagement_by_program(students, rows, limit=limit)
    return summary
