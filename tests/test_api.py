import pytest
from fastapi.testclient import TestClient

from alumni_insights import config
from alumni_insights.schema import default_registry
from alumni_insights.store import TableStore
from api import app, get_store


FIXTURES = {
    "Dim_Students.csv": (
        "student_key,first_name,gender\n"
        "1,Ana,F\n"
        "2,Ben,M\n"
        "3,Cy,F\n"
        "4,Dee,F\n"
    ),
    "dim_employers.csv": (
        "employer_key,employer_name,industry\n"
        "1,Acme,Manufacturing\n"
        "2,Globex,Finance\n"
    ),
    "fact_alumni_engagement.csv": (
        "fact_id,student_key,employer_key,event_key,event_date_key,applications_submitted,"
        "interviews_count,job_offers_count,hired_flag,engagement_score\n"
        "1,1,1,E1,20240110,40,20,5,1,9\n"
        "2,2,1,E2,20240301,30,10,3,1,8\n"
        "3,3,1,E3,20240501,30,10,2,0,7\n"
        "4,4,99,E4,20240601,5,1,1,1,10\n"
    ),
}


@pytest.fixture
def store(tmp_path):
    for name, content in FIXTURES.items():
        (tmp_path / name).write_text(content, encoding="utf-8")
    return TableStore(registry=default_registry(tmp_path))


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health_check(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_list_tables(client):
    response = client.get("/tables")

    assert response.status_code == 200
    tables = {t["id"]: t for t in response.json()}
    assert tables["employers"]["columns"] == ["employer_key", "employer_name", "industry"]
    # contacts has no CSV in the fixture directory
    assert tables["contacts"]["columns"] == []


def test_missing_source_is_404(client):
    response = client.get("/tables/events")

    assert response.status_code == 404
    assert "does not exist" in response.json()["detail"]


def test_read_table(client):
    response = client.get("/tables/employers")

    assert response.status_code == 200
    body = response.json()
    assert body["primary_key"] == "employer_key"
    assert [row["employer_name"] for row in body["rows"]] == ["Acme", "Globex"]


def test_unknown_table_is_404(client):
    response = client.get("/tables/payroll")

    assert response.status_code == 404
    assert response.json() == {"detail": 'Table "payroll" not found.'}


def test_record_lifecycle(client):
    created = client.post("/tables/employers", json={"record": {"employer_key": "3", "employer_name": " Initech "}})
    assert created.status_code == 201
    assert created.json()["row"] == {"employer_key": "3", "employer_name": "Initech", "industry": ""}

    duplicate = client.post("/tables/employers", json={"record": {"employer_key": "3"}})
    assert duplicate.status_code == 409

    updated = client.put("/tables/employers/3", json={"record": {"industry": "Software"}})
    assert updated.status_code == 200
    assert updated.json()["row"]["industry"] == "Software"

    assert client.delete("/tables/employers/3").status_code == 200
    assert client.delete("/tables/employers/3").status_code == 404


def test_missing_record_payload_is_400(client):
    assert client.post("/tables/employers", json={}).status_code == 400
    assert client.post("/tables/employers", json={"record": {"industry": "x"}}).status_code == 400


def test_funnel_endpoint(client):
    body = client.get("/metrics/funnel").json()

    assert [s["count"] for s in body["stages"]] == [105, 41, 11, 3]
    assert body["largest_drop_off"] == "Interviews"


def test_employer_health_endpoint_ignores_dangling_employers(client):
    body = client.get("/metrics/employer-health", params={"top_n": 5}).json()

    assert [e["employer_key"] for e in body["employers"]] == ["1", "2"]
    assert body["employers"][0]["total_hires"] == 2
    assert body["employers"][1]["health_score"] == 0.0


def test_churn_risk_endpoint(client):
    body = client.get("/metrics/churn-risk").json()

    assert [e["employer_key"] for e in body["at_risk"]] == ["2"]
    assert body["at_risk"][0]["risk_score"] == 100


def test_diversity_endpoint(client):
    body = client.get("/metrics/diversity", params={"column": "gender"}).json()

    categories = {c["category"]: c for c in body["categories"]}
    assert body["column"] == "gender"
    # student 4 resolves even though the employer on that row does not
    assert (categories["F"]["applicants"], categories["F"]["hires"]) == (3, 2)
    assert categories["M"]["hire_rate"] == 100.0


def test_conversion_rate_endpoint(client):
    assert client.get("/metrics/conversion-rate").json() == {
        "total_opportunities": 4,
        "total_hires": 3,
        "conversion_rate": 75.0,
    }


def test_engagement_scores_endpoint(client):
    body = client.get("/metrics/engagement-scores").json()

    assert body["active_employers"] == 1
    assert body["employers"][0]["employer_key"] == "1"
    assert body["employers"][0]["engagement_score"] == 8.5


def test_engagement_trend_without_date_table(client):
    body = client.get("/metrics/engagement-trend").json()

    assert [m["month_label"] for m in body["months"]] == ["Jan 2024", "Mar 2024", "May 2024", "Jun 2024"]
    assert all(m["total_touchpoints"] == 1 for m in body["months"])


def test_hiring_summary_endpoint(client):
    assert client.get("/metrics/hiring-summary").json() == {
        "opportunities_count": 4,
        "applications_count": 105,
        "hires_count": 3,
        "application_rate": 2625.0,
        "hire_rate": 2.86,
    }


def test_employer_breakdown_endpoints_skip_dangling_employers(client):
    industries = client.get("/metrics/industry-distribution").json()["industries"]
    top = client.get("/metrics/top-hiring-employers").json()["employers"]
    months = client.get("/metrics/employer-participation").json()["months"]

    assert industries == [{"industry": "Manufacturing", "count": 1, "percent": 100.0}]
    assert [(e["employer_key"], e["total_hires"]) for e in top] == [("1", 2)]
    assert [m["month"] for m in months] == ["2024-01", "2024-03", "2024-05"]


def test_opportunities_vs_hires_endpoint(client):
    months = client.get("/metrics/opportunities-vs-hires").json()["months"]

    assert [m["opportunities"] for m in months] == [1, 1, 1, 1]
    assert [m["hires"] for m in months] == [1, 1, 0, 1]


def test_alumni_engagement_endpoint(client):
    body = client.get("/metrics/alumni-engagement").json()

    assert (body["total_alumni"], body["engaged_alumni"], body["engagement_rate"]) == (4, 4, 100)
    assert body["by_program"] == [{"program": "Unknown", "engaged_alumni": 4}]


def test_lifespan_serves_tables_from_data_dir(tmp_path, monkeypatch):
    (tmp_path / "dim_employers.csv").write_text(FIXTURES["dim_employers.csv"], encoding="utf-8")
    monkeypatch.setattr(config, "DATA_DIR", tmp_path)

    with TestClient(app) as client:
        response = client.get("/tables/employers")
        assert isinstance(app.state.store, TableStore)

    assert response.status_code == 200
    assert len(response.json()["rows"]) == 2
