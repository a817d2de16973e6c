"""
Repository pattern for cost record access.

Stores the collectors' daily cost records in an append-only SQLite ledger
and reads the JSON exports the collectors write.
"""

import json
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .db import DEFAULT_DB_PATH, get_connection
from .models import CostRecord

_COLUMNS = (
    "date, subscription, category, subcategory, meter, resource, "
    "cost_local, cost_usd, currency"
)

# Collector exports use camelCase cost fields
_JSON_ALIASES = {
    "costLocal": "cost_local",
    "costUSD": "cost_usd",
    "costUsd": "cost_usd",
}


def _row_to_record(row: Tuple) -> CostRecord:
    return CostRecord(
        date=date.fromisoformat(row[0]),
        subscription=row[1],
        category=row[2],
        subcategory=row[3],
        meter=row[4],
        resource=row[5],
        cost_local=row[6],
        cost_usd=row[7],
        currency=row[8],
    )


def _record_to_row(record: CostRecord) -> Tuple:
    return (
        record.date.isoformat(),
        record.subscription,
        record.category,
        record.subcategory,
        record.meter,
        record.resource,
        record.cost_local,
        record.cost_usd,
        record.currency,
    )


class CostRecordRepository:
    """Read access to the cost record ledger."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize the repository with a database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

    def fetch_records(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
        subscription: Optional[str] = None,
    ) -> List[CostRecord]:
        """Fetch cost records in date order, optionally bounded.

        Args:
            start: First date to include
            end: Last date to include
            subscription: Optional filter for one subscription

        Returns:
            Records ordered by date, then insertion order
        """
        conn = get_connection(self.db_path)
        try:
            query = f"SELECT {_COLUMNS} FROM cost_record"
            params: List[Any] = []
            conditions = []

            if start is not None:
                conditions.append("date >= ?")
                params.append(start.isoformat())
            if end is not None:
                conditions.append("date <= ?")
                params.append(end.isoformat())
            if subscription:
                conditions.append("subscription = ?")
                params.append(subscription)

            if conditions:
                query += " WHERE " + " AND ".join(conditions)
            query += " ORDER BY date, id"

            cursor = conn.execute(query, params)
            return [_row_to_record(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def date_range(self) -> Optional[Tuple[date, date]]:
        """First and last date in the ledger, or None when it is empty."""
        conn = get_connection(self.db_path)
        try:
            row = conn.execute("SELECT MIN(date), MAX(date) FROM cost_record").fetchone()
            if row[0] is None:
                return None
            return date.fromisoformat(row[0]), date.fromisoformat(row[1])
        finally:
            conn.close()


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the cost_record table if it doesn't exist.

    Dimension columns are nullable: malformed collector rows are kept as
    they arrived and rejected later by the record store.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS cost_record (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                date TEXT NOT NULL,
                subscription TEXT,
                category TEXT,
                subcategory TEXT,
                meter TEXT,
                resource TEXT,
                cost_local REAL,
                cost_usd REAL,
                currency TEXT
            )
        """)
        conn.execute("CREATE INDEX IF NOT EXISTS idx_cost_record_date ON cost_record (date)")
        conn.commit()
    finally:
        conn.close()


def insert_cost_records(records: Iterable[CostRecord], db_path: str = DEFAULT_DB_PATH) -> int:
    """Insert cost records atomically into the append-only ledger.

    Args:
        records: Records to append
        db_path: Path to SQLite database file

    Returns:
        Number of records inserted
    """
    rows = [_record_to_row(record) for record in records]
    if not rows:
        return 0

    conn = get_connection(db_path)
    try:
        conn.execute("BEGIN TRANSACTION")
        conn.executemany(
            f"INSERT INTO cost_record ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            rows,
        )
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
    return len(rows)


def record_from_dict(data: Dict[str, Any]) -> CostRecord:
    """Build a record from one exported JSON object.

    Missing dimension values become None rather than errors.

    Raises:
        ValueError: If the date is missing or not ISO formatted
    """
    data = {_JSON_ALIASES.get(k, k): v for k, v in data.items()}
    if not data.get("date"):
        raise ValueError("cost record is missing 'date'")
    return CostRecord(
        date=date.fromisoformat(str(data["date"])[:10]),
        subscription=data.get("subscription"),
        category=data.get("category"),
        subcategory=data.get("subcategory"),
        meter=data.get("meter"),
        resource=data.get("resource"),
        cost_local=data.get("cost_local"),
        cost_usd=data.get("cost_usd"),
        currency=data.get("currency") or "",
    )


def read_cost_records_json(path: str) -> List[CostRecord]:
    """Read a collector JSON export: a list of records, or {"records": [...]}.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the JSON has the wrong shape
    """
    json_path = Path(path)
    if not json_path.exists():
        raise FileNotFoundError(f"Cost export not found: {path}")

    with open(json_path, 'r', encoding='utf-8') as f:
        try:
            payload = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in cost export {path}: {e}")

    if isinstance(payload, dict):
        payload = payload.get("records")
    if not isinstance(payload, list):
        raise ValueError("Cost export must be a list of records or {'records': [...]}")

    records = []
    for i, item in enumerate(payload):
        if not isinstance(item, dict):
            raise ValueError(f"Record at index {i} must be an object")
        records.append(record_from_dict(item))
    return records
