from dataclasses import dataclass
from typing import List


class TableStoreError(Exception):
    """Base class for table store failures. `status` mirrors the HTTP code callers should return."""

    status = 500


class TableNotFound(TableStoreError):
    status = 404

    def __init__(self, table_id: str):
        super().__init__(f'Table "{table_id}" not found.')
        self.table_id = table_id


class SourceMissing(TableStoreError):
    status = 404

    def __init__(self, table_id: str, path):
        super().__init__(f'Source file for "{table_id}" does not exist: {path}')
        self.table_id = table_id
        self.path = path


@dataclass
class RowError:
    line: int
    message: str


class ParseError(TableStoreError):
    status = 422

    def __init__(self, table_id: str, errors: List[RowError]):
        summary = "; ".join(f"line {e.line}: {e.message}" for e in errors[:5])
        more = f" (+{len(errors) - 5} more)" if len(errors) > 5 else ""
        super().__init__(f'{len(errors)} malformed row(s) in "{table_id}": {summary}{more}')
        self.table_id = table_id
        self.errors = errors


class StorageIOError(TableStoreError):
    status = 500

    def __init__(self, table_id: str, reason: str):
        super().__init__(f'Failed to write table "{table_id}": {reason}')
        self.table_id = table_id


class RecordNotFound(TableStoreError):
    status = 404

    def __init__(self, table_id: str, primary_key: str, key):
        super().__init__(f'Record with {primary_key}="{key}" not found in "{table_id}".')
        self.table_id = table_id
        self.key = key


class DuplicateRecord(TableStoreError):
    status = 409

    def __init__(self, table_id: str, primary_key: str, key):
        super().__init__(f'A record with {primary_key}="{key}" already exists in "{table_id}".')
        self.table_id = table_id
        self.key = key


class InvalidRecord(TableStoreError):
    status = 400
