import copy
import csv
import io
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from alumni_insights.errors import (
    DuplicateRecord,
    InvalidRecord,
    ParseError,
    RecordNotFound,
    RowError,
    SourceMissing,
    StorageIOError,
    TableNotFound,
)
from alumni_insights.lookup import canonical_key
from alumni_insights.models import TableRow
from alumni_insights.sanitizer import sanitize_record, sanitize_rows, to_text
from alumni_insights.schema import TableConfig, default_registry

logger = logging.getLogger(__name__)


@dataclass
class LoadResult:
    table_id: str
    primary_key: str
    columns: List[str]
    rows: List[Dict[str, str]]
    errors: List[RowError] = field(default_factory=list)


class TableCache:
    """Parsed tables keyed by table id, validated against the file's mtime and size."""

    def __init__(self):
        self._entries: Dict[str, Tuple[Tuple[int, int], LoadResult]] = {}

    def get(self, table_id: str, stamp: Tuple[int, int]) -> Optional[LoadResult]:
        entry = self._entries.get(table_id)
        if entry is None or entry[0] != stamp:
            return None
        return entry[1]

    def put(self, table_id: str, stamp: Tuple[int, int], result: LoadResult) -> None:
        self._entries[table_id] = (stamp, result)

    def invalidate(self, table_id: Optional[str] = None) -> None:
        if table_id is None:
            self._entries.clear()
        else:
            self._entries.pop(table_id, None)

    def __contains__(self, table_id: str) -> bool:
        return table_id in self._entries


def parse_csv(text: str) -> Tuple[List[str], List[Dict[str, str]], List[RowError]]:
    """Parse CSV text with a header row.

    Blank lines are skipped. Lines with more fields than the header, or with
    broken quoting, are reported and left out; short lines are padded.
    """
    reader = csv.reader(io.StringIO(text, newline=""), strict=True)
    columns: Optional[List[str]] = None
    rows: List[Dict[str, str]] = []
    errors: List[RowError] = []

    while True:
        try:
            fields = next(reader)
        except StopIteration:
            break
        except csv.Error as exc:
            errors.append(RowError(reader.line_num, str(exc)))
            continue

        if not fields or (len(fields) == 1 and not fields[0].strip()):
            continue
        if columns is None:
            columns = [name.strip() for name in fields]
            continue
        if len(fields) > len(columns):
            errors.append(RowError(reader.line_num, f"expected {len(columns)} fields, found {len(fields)}"))
            continue
        rows.append(sanitize_record(columns, dict(zip(columns, fields))))

    return columns or [], rows, errors


def render_csv(columns: Sequence[str], rows: Sequence[Mapping[str, Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(columns), lineterminator="\n")
    writer.writeheader()
    writer.writerows(sanitize_rows(list(columns), rows))
    return buffer.getvalue()


class TableStore:
    """Flat-file table store: one CSV per registered table.

    Writes replace the whole file. There is no locking, so the store assumes
    a single writer per table; overlapping load-modify-write sequences keep
    whichever write lands last.
    """

    def __init__(self, registry: Optional[Mapping[str, TableConfig]] = None, data_dir=None, strict: bool = False):
        self.registry: Dict[str, TableConfig] = dict(registry) if registry is not None else default_registry(data_dir)
        self.strict = strict
        self.cache = TableCache()

    def get_config(self, table_id: str) -> TableConfig:
        config = self.registry.get(table_id)
        if config is None:
            raise TableNotFound(table_id)
        return config

    def load(self, table_id: str, strict: Optional[bool] = None) -> LoadResult:
        config = self.get_config(table_id)
        path = Path(config.file_path)
        try:
            stat = path.stat()
        except FileNotFoundError:
            raise SourceMissing(table_id, path)
        stamp = (stat.st_mtime_ns, stat.st_size)

        result = self.cache.get(table_id, stamp)
        if result is None:
            logger.debug(f"Loading table '{table_id}' from {path}")
            try:
                with open(path, "r", encoding="utf-8-sig", newline="") as f:
                    text = f.read()
            except FileNotFoundError:
                raise SourceMissing(table_id, path)
            except UnicodeDecodeError as exc:
                raise ParseError(table_id, [RowError(0, f"file is not valid UTF-8: {exc.reason}")])
            columns, rows, errors = parse_csv(text)
            result = LoadResult(table_id, config.primary_key, columns, rows, errors)
            self.cache.put(table_id, stamp, result)
            if errors:
                logger.warning(f"Table '{table_id}': skipped {len(errors)} malformed row(s)")
            logger.debug(f"✓ Loaded {len(rows)} row(s) from '{table_id}'")

        strict = self.strict if strict is None else strict
        if strict and result.errors:
            raise ParseError(table_id, list(result.errors))
        return copy.deepcopy(result)

    def write(self, table_id: str, columns: Sequence[str], rows: Sequence[Mapping[str, Any]]) -> None:
        config = self.get_config(table_id)
        path = Path(config.file_path)
        columns = [to_text(column) for column in columns]
        temp_path = path.with_name(path.name + ".tmp")
        try:
            payload = render_csv(columns, rows)
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8", newline="") as f:
                f.write(payload)
            os.replace(temp_path, path)
        except OSError as exc:
            logger.error(f"✗ Failed to write table '{table_id}': {exc}")
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError:
                    logger.warning(f"Could not remove temp file {temp_path}")
            raise StorageIOError(table_id, str(exc)) from exc
        finally:
            self.cache.invalidate(table_id)
        logger.debug(f"✓ Wrote {len(rows)} row(s) to '{table_id}'")

    def invalidate(self, table_id: Optional[str] = None) -> None:
        self.cache.invalidate(table_id)

    def list_tables(self) -> List[Dict[str, Any]]:
        tables = []
        for table_id, config in self.registry.items():
            try:
                columns = self.load(table_id).columns
            except SourceMissing:
                columns = []
            tables.append({
                "id": table_id,
                "label": config.label,
                "description": config.description,
                "primary_key": config.primary_key,
                "columns": columns,
            })
        return tables

    def _find(self, table: LoadResult, key: Any) -> int:
        wanted = canonical_key(key)
        if wanted is None:
            return -1
        for index, row in enumerate(table.rows):
            if canonical_key(row.get(table.primary_key)) == wanted:
                return index
        return -1

    def get_record(self, table_id: str, key: Any) -> Dict[str, str]:
        table = self.load(table_id)
        index = self._find(table, key)
        if index == -1:
            raise RecordNotFound(table_id, table.primary_key, key)
        return table.rows[index]

    def insert_record(self, table_id: str, record: Mapping[str, Any]) -> Dict[str, str]:
        if isinstance(record, TableRow):
            record = record.to_record()
        if not isinstance(record, Mapping):
            raise InvalidRecord("Record payload is required.")
        table = self.load(table_id)
        key = canonical_key(record.get(table.primary_key))
        if key is None:
            raise InvalidRecord(f'Field "{table.primary_key}" is required for new records.')
        if self._find(table, key) != -1:
            raise DuplicateRecord(table_id, table.primary_key, key)

        sanitized = sanitize_record(table.columns, record)
        table.rows.append(sanitized)
        self.write(table_id, table.columns, table.rows)
        logger.info(f"Added {table.primary_key}={key} to '{table_id}'")
        return sanitized

    def update_record(self, table_id: str, key: Any, record: Mapping[str, Any]) -> Dict[str, str]:
        if isinstance(record, TableRow):
            record = record.to_record()
        if not isinstance(record, Mapping):
            raise InvalidRecord("Record payload is required.")
        table = self.load(table_id)
        index = self._find(table, key)
        if index == -1:
            raise RecordNotFound(table_id, table.primary_key, key)

        existing = table.rows[index]
        changes = sanitize_record([c for c in table.columns if c in record], record)
        updated = {**existing, **changes}
        # The primary key never changes on update
        updated[table.primary_key] = existing[table.primary_key]
        table.rows[index] = updated
        self.write(table_id, table.columns, table.rows)
        logger.info(f"Updated {table.primary_key}={key} in '{table_id}'")
        return updated

    def delete_record(self, table_id: str, key: Any) -> None:
        table = self.load(table_id)
        index = self._find(table, key)
        if index == -1:
            raise RecordNotFound(table_id, table.primary_key, key)
        del table.rows[index]
        self.write(table_id, table.columns, table.rows)
        logger.info(f"Deleted {table.primary_key}={key} from '{table_id}'")
