from alumni_insights.diversity import DiversityEntry
from alumni_insights.employers import HealthEntry, RiskEntry
from alumni_insights.errors import RowError
from alumni_insights.funnel import compute_funnel, largest_drop_off
from alumni_insights.responses import (
    assemble_churn_risk,
    assemble_diversity,
    assemble_funnel,
    assemble_health,
    assemble_table,
    assemble_table_summaries,
)
from alumni_insights.store import LoadResult


def test_assemble_funnel_keeps_stage_order_and_values():
    stages = compute_funnel([{"applications_submitted": "10", "interviews_count": "4", "hired_flag": "1"}])

    response = assemble_funnel(stages, largest_drop_off(stages))

    assert [s.stage for s in response.stages] == ["Applications", "Interviews", "Offers", "Hires"]
    assert response.stages[1].cumulative_conversion_percent == 40.0
    assert response.largest_drop_off == "Interviews"
    assert assemble_funnel([]).largest_drop_off is None


def test_assemble_health_and_churn_pass_entries_through():
    health = HealthEntry("2", "Globex", "Finance", 1, 0, 0, 4.0, 12.5)
    risk = RiskEntry("2", "Globex", "Finance", 0, 0, 4.0, 1, 100, ["No hires in the last 12 months"])

    health_response = assemble_health([health])
    risk_response = assemble_churn_risk([risk])

    assert health_response.employers[0].model_dump() == {
        "employer_key": "2",
        "employer_name": "Globex",
        "industry": "Finance",
        "total_hires": 1,
        "recent_hires": 0,
        "recent_events": 0,
        "avg_engagement_score": 4.0,
        "health_score": 12.5,
    }
    assert risk_response.at_risk[0].risk_score == 100
    assert risk_response.at_risk[0].reasons == ["No hires in the last 12 months"]


def test_assemble_diversity_keeps_category_order():
    entries = [DiversityEntry("B", 100, 40, 40.0), DiversityEntry("A", 200, 50, 25.0)]

    response = assemble_diversity("gender", entries)

    assert response.column == "gender"
    assert [c.category for c in response.categories] == ["B", "A"]


def test_assemble_table_includes_row_errors():
    table = LoadResult("people", "id", ["id"], [{"id": "1"}], [RowError(3, "expected 1 fields, found 2")])

    response = assemble_table(table)

    assert response.rows == [{"id": "1"}]
    assert response.errors[0].line == 3


def test_assemble_table_summaries():
    summaries = assemble_table_summaries([
        {"id": "people", "label": "People", "description": "", "primary_key": "id", "columns": ["id", "name"]}
    ])

    assert summaries[0].columns == ["id", "name"]
