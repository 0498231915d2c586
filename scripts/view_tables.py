import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from alumni_insights.errors import TableStoreError
from alumni_insights.store import TableStore


store = TableStore()

for table_id, table_config in store.registry.items():
    print(f"\n{'='*80}")
    print(f"{table_config.label} [{table_id}] -> {table_config.file_path}")
    print(f"{'='*80}")

    try:
        table = store.load(table_id)
    except TableStoreError as e:
        print(f"   ✗ {e}")
        continue

    print(f"   Primary Key: {table.primary_key}")
    print(f"   Columns: {', '.join(table.columns)}")
    print(f"   Rows: {len(table.rows)}")
    if table.errors:
        print(f"   Malformed Rows: {len(table.errors)}")
        for error in table.errors[:5]:
            print(f"      - line {error.line}: {error.message}")

    for row in table.rows[:3]:
        print(f"      {row.get(table.primary_key, 'N/A')}: " + ", ".join(f"{k}={v}" for k, v in row.items() if v)[:120])
