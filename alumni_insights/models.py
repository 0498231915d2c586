from typing import Any, Dict, Iterable, List, Mapping, Type, TypeVar

from pydantic import BaseModel, ConfigDict, field_validator

from alumni_insights.sanitizer import to_text


class TableRow(BaseModel):
    """A CSV row with typed known columns.

    Declared fields are always strings (empty when missing). Columns the
    model does not declare are kept in `model_extra`, so new admin columns
    survive without a code change.
    """

    model_config = ConfigDict(extra="allow")

    @field_validator("*", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> str:
        return to_text(value)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]):
        return cls.model_validate({str(k): to_text(v) for k, v in record.items()})

    def to_record(self) -> Dict[str, str]:
        return self.model_dump()


class Student(TableRow):
    student_key: str = ""
    first_name: str = ""
    last_name: str = ""
    gender: str = ""
    visa_status: str = ""
    program_name: str = ""
    graduation_year: str = ""
    current_city: str = ""
    current_state: str = ""


class Employer(TableRow):
    employer_key: str = ""
    employer_name: str = ""
    industry: str = ""
    hq_city: str = ""
    hq_state: str = ""
    employer_rating: str = ""


class Contact(TableRow):
    contact_key: str = ""
    employer_key: str = ""
    contact_name: str = ""
    email: str = ""


class Event(TableRow):
    event_key: str = ""
    event_name: str = ""
    event_type: str = ""
    event_date: str = ""


class DateDim(TableRow):
    date_key: str = ""
    full_date: str = ""
    year: str = ""
    month: str = ""
    month_name: str = ""


class EngagementFact(TableRow):
    fact_id: str = ""
    student_key: str = ""
    employer_key: str = ""
    contact_key: str = ""
    event_key: str = ""
    event_date_key: str = ""
    hire_date_key: str = ""
    engagement_type: str = ""
    applications_submitted: str = ""
    interviews_count: str = ""
    job_offers_count: str = ""
    hired_flag: str = ""
    engagement_score: str = ""
    participated_university_event_flag: str = ""


RowT = TypeVar("RowT", bound=TableRow)


def as_rows(model: Type[RowT], records: Iterable[Any]) -> List[RowT]:
    """Wrap plain dict records in `model`; rows already of that type pass through."""
    rows: List[RowT] = []
    for record in records or []:
        if isinstance(record, model):
            rows.append(record)
        elif isinstance(record, TableRow):
            rows.append(model.from_record(record.to_record()))
        elif isinstance(record, Mapping):
            rows.append(model.from_record(record))
    return rows
