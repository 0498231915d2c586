from alumni_insights.trends import (
    employer_participation_by_month,
    engagement_trend_by_month,
    opportunities_vs_hires_by_month,
)


DATES = [
    {"date_key": "20240115", "year": "2024", "month": "1", "month_name": "January"},
    {"date_key": "20231205", "year": "2023", "month": "12", "month_name": "December"},
]


def test_trend_groups_by_month_oldest_first():
    facts = [
        {"student_key": "S1", "event_date_key": "20240115"},
        {"student_key": "S1", "event_date_key": "20240115"},
        {"student_key": "S2", "event_date_key": "20240115"},
        {"student_key": "S3", "event_date_key": "20231205"},
        {"student_key": "S4", "event_date_key": "20240220"},
    ]

    trend = engagement_trend_by_month(facts, DATES)

    assert trend == [
        {"month_label": "Dec 2023", "engaged_alumni": 1, "total_touchpoints": 1},
        {"month_label": "Jan 2024", "engaged_alumni": 2, "total_touchpoints": 3},
        {"month_label": "Feb 2024", "engaged_alumni": 1, "total_touchpoints": 1},
    ]


def test_trend_skips_undatable_rows():
    facts = [
        {"student_key": "S1", "event_date_key": ""},
        {"student_key": "S2", "event_date_key": "not-a-date"},
        {"student_key": "", "event_date_key": "20240115"},
    ]

    trend = engagement_trend_by_month(facts, DATES)

    assert trend == [{"month_label": "Jan 2024", "engaged_alumni": 0, "total_touchpoints": 1}]


def test_employer_participation_by_month():
    facts = [
        {"employer_key": "1", "event_key": "E1", "event_date_key": "20240115"},
        {"employer_key": "1.0", "event_key": "E2", "event_date_key": "20240116"},
        {"employer_key": "2", "event_key": "E2", "event_date_key": "20240120"},
        {"employer_key": "99", "event_key": "E3", "event_date_key": "20231205"},
    ]

    assert employer_participation_by_month(facts, DATES) == [
        {"month": "2023-12", "active_employers": 1, "total_events": 1},
        {"month": "2024-01", "active_employers": 2, "total_events": 2},
    ]

    known = [{"employer_key": "1"}, {"employer_key": "2"}]
    assert [m["month"] for m in employer_participation_by_month(facts, DATES, known)] == ["2024-01"]


def test_opportunities_vs_hires_dates_by_hire_date():
    facts = [
        {"event_date_key": "20231205", "hire_date_key": "20240115", "applications_submitted": "2", "hired_flag": "1"},
        {"event_date_key": "20240115", "job_offers_count": "1"},
        {"event_date_key": "20240115", "applications_submitted": "0"},
        {"event_date_key": "", "hired_flag": "1"},
    ]

    assert opportunities_vs_hires_by_month(facts, []) == [
        {"month": "2024-01", "opportunities": 2, "hires": 1},
    ]
