import argparse
import logging
import sys

from dotenv import load_dotenv

# Load environment variables before the config module reads them
load_dotenv()

from alumni_insights import config
from alumni_insights.alumni import engagement_by_program, summarize_alumni_engagement
from alumni_insights.diversity import compute_diversity
from alumni_insights.employers import compute_churn_risk, compute_employer_health
from alumni_insights.errors import SourceMissing, TableStoreError
from alumni_insights.funnel import compute_funnel, largest_drop_off
from alumni_insights.store import TableStore
from alumni_insights.trends import engagement_trend_by_month

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format=config.LOG_FORMAT,
    force=True
)
logger = logging.getLogger(__name__)

ENGAGEMENT_TABLE = "alumniEngagement"


def show_tables(store: TableStore):
    for table in store.list_tables():
        print(f"{table['id']} ({table['label']}) - key: {table['primary_key']}")
        print(f"   Columns: {', '.join(table['columns'])}")


def show_funnel(store: TableStore):
    stages = compute_funnel(store.load(ENGAGEMENT_TABLE).rows)
    print("\n--- Hiring Funnel ---")
    for stage in stages:
        print(f"{stage.stage:<13} {stage.count:>7}   stage {stage.stage_conversion_percent:6.2f}%"
              f"   cumulative {stage.cumulative_conversion_percent:6.2f}%")
    drop = largest_drop_off(stages)
    if drop:
        print(f"\nLargest drop-off: {drop.stage}")


def show_health(store: TableStore, top: int):
    entries = compute_employer_health(store.load(ENGAGEMENT_TABLE).rows, store.load("employers").rows, top_n=top)
    print(f"\n--- Employer Health (Top {top}) ---")
    for i, entry in enumerate(entries, 1):
        print(f"{i}. {entry.employer_name} (Score: {entry.health_score:.2f})")
        print(f"   Hires: {entry.total_hires} total, {entry.recent_hires} recent | "
              f"Events: {entry.recent_events} recent | Engagement: {entry.avg_engagement_score:.2f}")


def show_churn(store: TableStore):
    entries = compute_churn_risk(store.load(ENGAGEMENT_TABLE).rows, store.load("employers").rows)
    print(f"\n--- Employers at Churn Risk ({len(entries)}) ---")
    for entry in entries:
        print(f"{entry.employer_name} (Risk: {entry.risk_score})")
        for reason in entry.reasons:
            print(f"   - {reason}")


def show_diversity(store: TableStore, column: str):
    entries = compute_diversity(store.load(ENGAGEMENT_TABLE).rows, store.load("students").rows, column)
    print(f"\n--- Hire Rate by {column} ---")
    for entry in sorted(entries, key=lambda e: -e.hire_rate):
        print(f"{entry.category}: {entry.hires}/{entry.applicants} hired ({entry.hire_rate:.2f}%)")


def show_trend(store: TableStore):
    try:
        dates = store.load("dates").rows
    except SourceMissing:
        logger.warning("Date table missing, reading months from the date keys")
        dates = []
    rows = store.load(ENGAGEMENT_TABLE).rows
    print("\n--- Engagement by Month ---")
    for month in engagement_trend_by_month(rows, dates):
        print(f"{month['month_label']}: {month['engaged_alumni']} alumni, {month['total_touchpoints']} touchpoints")


def show_alumni(store: TableStore):
    students = store.load("students").rows
    rows = store.load(ENGAGEMENT_TABLE).rows
    summary = summarize_alumni_engagement(students, rows)
    print("\n--- Alumni Engagement ---")
    print(f"Engaged: {summary['engaged_alumni']} of {summary['total_alumni']} alumni ({summary['engagement_rate']}%)")
    print(f"Touchpoints: {summary['total_touchpoints']}")
    for entry in engagement_by_program(students, rows):
        print(f"   {entry['program']}: {entry['engaged_alumni']}")


def main():
    parser = argparse.ArgumentParser(description="Alumni engagement metrics over the CSV tables")
    parser.add_argument("command", nargs="?", choices=["tables", "funnel", "health", "churn", "diversity", "trend", "alumni"],
                        help="Report to print")
    parser.add_argument("--data_dir", type=str, default=str(config.DATA_DIR), help="Directory containing the CSV tables")
    parser.add_argument("--top", type=int, default=config.HEALTH_TOP_N, help="Number of employers in the health ranking")
    parser.add_argument("--column", type=str, default="gender", help="Student column for the diversity breakdown")
    parser.add_argument("--server", action="store_true", help="Run as API server")

    args = parser.parse_args()

    if args.server:
        import uvicorn
        print("Starting API server...")
        uvicorn.run("api:app", host=config.API_HOST, port=config.API_PORT, reload=True)
        return

    if not args.command:
        parser.error("a command is required unless running with --server")

    store = TableStore(data_dir=args.data_dir)
    try:
        if args.command == "tables":
            show_tables(store)
        elif args.command == "funnel":
            show_funnel(store)
        elif args.command == "health":
            show_health(store, args.top)
        elif args.command == "churn":
            show_churn(store)
        elif args.command == "diversity":
            show_diversity(store, args.column)
        elif args.command == "trend":
            show_trend(store)
        elif args.command == "alumni":
            show_alumni(store)
    except TableStoreError as e:
        logger.error(f"✗ {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
