# Table registry for the engagement star schema.
# Each table is one CSV file; the header row is the live column set.

from pathlib import Path
from typing import Dict, Optional, Union

from pydantic import BaseModel

from alumni_insights import config


class TableConfig(BaseModel):
    label: str
    description: str = ""
    file_path: Path
    primary_key: str


# Dimension Tables
STUDENTS = {
    "label": "Students",
    "description": "Core student roster and program details.",
    "file_name": "Dim_Students.csv",
    "primary_key": "student_key",
}

EMPLOYERS = {
    "label": "Employers",
    "description": "Employer directory with industry and location details.",
    "file_name": "dim_employers.csv",
    "primary_key": "employer_key",
}

CONTACTS = {
    "label": "Contacts",
    "description": "Primary employer contacts engaged with the university.",
    "file_name": "dim_contact.csv",
    "primary_key": "contact_key",
}

EVENTS = {
    "label": "Events",
    "description": "Engagement events and experiential opportunities.",
    "file_name": "dim_event.csv",
    "primary_key": "event_key",
}

DATES = {
    "label": "Dates",
    "description": "Date dimension used for analytics across dashboards.",
    "file_name": "dim_date.csv",
    "primary_key": "date_key",
}

# Fact Table
ALUMNI_ENGAGEMENT = {
    "label": "Alumni Engagement Facts",
    "description": "Fact table tracking alumni interactions and hiring outcomes.",
    "file_name": "fact_alumni_engagement.csv",
    "primary_key": "fact_id",
}

DEFAULT_TABLES = {
    "students": STUDENTS,
    "employers": EMPLOYERS,
    "contacts": CONTACTS,
    "events": EVENTS,
    "dates": DATES,
    "alumniEngagement": ALUMNI_ENGAGEMENT,
}


def default_registry(data_dir: Optional[Union[str, Path]] = None) -> Dict[str, TableConfig]:
    """Build the registry for the standard tables rooted at `data_dir` (config.DATA_DIR by default)."""
    root = Path(data_dir) if data_dir is not None else config.DATA_DIR
    return {
        table_id: TableConfig(
            label=table["label"],
            description=table["description"],
            file_path=root / table["file_name"],
            primary_key=table["primary_key"],
        )
        for table_id, table in DEFAULT_TABLES.items()
    }
