import logging
import math
import re
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from alumni_insights.models import TableRow

logger = logging.getLogger(__name__)

_MISSING_TOKENS = {"", "undefined", "null", "none", "nan"}

# Integral text written with a ".0" suffix, e.g. "42.00"
_INTEGRAL_TEXT = re.compile(r"^([+-]?\d+)\.0+$")
_DIGITS = re.compile(r"^[+-]?\d+$")


def canonical_key(value: Any) -> Optional[str]:
    """Normalize a join key to its one canonical string form.

    Numbers become their integer text when integral (1 and 1.0 give "1"),
    and text keys lose a trailing ".0" suffix ("1.0" gives "1"). Digits are
    otherwise kept as written, so "007" stays "007" and long identifiers
    never round. Missing or placeholder values return None, meaning the key
    cannot resolve.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return str(int(value)) if value.is_integer() else repr(value)
    if isinstance(value, int):
        return str(value)

    text = str(value).strip()
    if text.lower() in _MISSING_TOKENS:
        return None
    match = _INTEGRAL_TEXT.match(text)
    return match.group(1) if match else text


def key_sort_key(key: Optional[str]) -> Tuple[int, int, str]:
    """Deterministic ordering for identifiers: numeric keys numerically, then text keys."""
    if key is None:
        return (2, 0, "")
    if _DIGITS.match(key):
        return (0, int(key), key)
    return (1, 0, key)


def field_value(row: Any, name: str) -> Any:
    if isinstance(row, TableRow):
        value = getattr(row, name, None)
        if value is None and row.model_extra:
            value = row.model_extra.get(name)
        return value
    if isinstance(row, Mapping):
        return row.get(name)
    return None


def row_key(row: Any, key_field: str) -> Optional[str]:
    """Canonical key of `row`, falling back to the `<name>_id` alias column."""
    key = canonical_key(field_value(row, key_field))
    if key is None and key_field.endswith("_key"):
        key = canonical_key(field_value(row, key_field[: -len("_key")] + "_id"))
    return key


def build_lookup(rows: Iterable[Any], key_field: str) -> Dict[str, Any]:
    """Map canonical primary key -> row. Rows without a usable key are skipped; first row wins on duplicates."""
    lookup: Dict[str, Any] = {}
    skipped = 0
    for row in rows or []:
        key = row_key(row, key_field)
        if key is None:
            skipped += 1
            continue
        lookup.setdefault(key, row)
    if skipped:
        logger.debug(f"Lookup on '{key_field}' skipped {skipped} row(s) without a key")
    return lookup


def build_lookups(tables: Mapping[str, Tuple[Iterable[Any], str]]) -> Dict[str, Dict[str, Any]]:
    """Build one lookup per named table, e.g. {"employers": (rows, "employer_key")}."""
    return {name: build_lookup(rows, key_field) for name, (rows, key_field) in tables.items()}
