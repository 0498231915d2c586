from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel


def to_text(value: Any) -> str:
    """Text form of a single cell: None becomes empty, everything else str() and trimmed."""
    if value is None:
        return ""
    return str(value).strip()


def sanitize_record(columns: Iterable[str], record: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """Project an arbitrary record onto `columns`.

    Every column is present in the result, extra fields are dropped and
    values are coerced with `to_text`. Typed rows (pydantic models) are read
    through `model_dump()`, which includes their extra columns. Never raises
    for odd input.
    """
    if isinstance(record, BaseModel):
        record = record.model_dump()
    record = record or {}
    sanitized: Dict[str, str] = {}
    for column in columns:
        try:
            value = record.get(column)
        except AttributeError:
            value = None
        sanitized[column] = to_text(value)
    return sanitized


def sanitize_rows(columns: List[str], rows: Iterable[Mapping[str, Any]]) -> List[Dict[str, str]]:
    return [sanitize_record(columns, row) for row in rows]
