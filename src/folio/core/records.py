"""Record store: where documents' PDF links, extracted text and language live."""

import logging
from typing import Any, Dict, Iterator, List, Optional, Protocol, Union

import psycopg
from psycopg import sql
from pydantic import BaseModel

from .errors import PersistenceError, RecordNotFoundError, StoreUnavailableError

logger = logging.getLogger(__name__)

RecordId = Union[int, str]

# Columns the pipeline is allowed to write
WRITABLE_FIELDS = ("extracted_text", "language")


class DocumentRecord(BaseModel):
    """A stored document as seen by the extraction pipeline."""
    id: RecordId
    pdf_url: Optional[str] = None
    extracted_text: Optional[str] = None
    language: Optional[str] = None


class RecordStore(Protocol):
    def get(self, record_id: RecordId) -> DocumentRecord: ...

    def update(self, record_id: RecordId, fields: Dict[str, Any]) -> None: ...

    def iter_records(self, page_size: int = 1000) -> Iterator[DocumentRecord]: ...


def _check_fields(fields: Dict[str, Any]) -> None:
    unknown = set(fields) - set(WRITABLE_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")


class PostgresRecordStore:
    """Record store backed by a PostgreSQL ``records`` table."""

    def __init__(self, db_url: str, table: str = "records"):
        self.db_url = db_url
        self.table = table

    def _select(self) -> sql.Composed:
        return sql.SQL("SELECT id, pdf_url, extracted_text, language FROM {}").format(
            sql.Identifier(self.table)
        )

    def get(self, record_id: RecordId) -> DocumentRecord:
        """Load one record by id."""
        query = self._select() + sql.SQL(" WHERE id = %s")
        try:
            with psycopg.connect(self.db_url) as conn:
                with conn.cursor() as cur:
                    cur.execute(query, (record_id,))
                    row = cur.fetchone()
        except psycopg.Error as e:
            raise StoreUnavailableError(f"Failed to load record {record_id}: {e}") from e

        if row is None:
            raise RecordNotFoundError(record_id)

        return DocumentRecord(id=row[0], pdf_url=row[1], extracted_text=row[2], language=row[3])

    def update(self, record_id: RecordId, fields: Dict[str, Any]) -> None:
        """
        Write extraction fields for a record.

        Raises:
            ValueError: If a field other than extracted_text/language is given
            RecordNotFoundError: If no row matched
            PersistenceError: On database failure
        """
        _check_fields(fields)
        if not fields:
            return

        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(name)) for name in fields
        )
        query = sql.SQL("UPDATE {} SET {} WHERE id = %s").format(
            sql.Identifier(self.table), assignments
        )

        try:
            with psycopg.connect(self.db_url) as conn:
                with conn.cursor() as cur:
                    cur.execute(query, (*fields.values(), record_id))
                    updated = cur.rowcount
                conn.commit()
        except psycopg.Error as e:
            raise PersistenceError(f"Failed to update record {record_id}: {e}") from e

        if updated == 0:
            raise RecordNotFoundError(record_id)

        logger.info(f"Updated record {record_id}: {', '.join(fields)}")

    def iter_records(self, page_size: int = 1000) -> Iterator[DocumentRecord]:
        """Yield every record, ordered by id, one page at a time."""
        offset = 0
        query = self._select() + sql.SQL(" ORDER BY id LIMIT %s OFFSET %s")

        while True:
            try:
                with psycopg.connect(self.db_url) as conn:
                    with conn.cursor() as cur:
                        cur.execute(query, (page_size, offset))
                        rows = cur.fetchall()
            except psycopg.Error as e:
                raise StoreUnavailableError(f"Failed to list records: {e}") from e

            for row in rows:
                yield DocumentRecord(id=row[0], pdf_url=row[1], extracted_text=row[2], language=row[3])

            if len(rows) < page_size:
                break
            offset += page_size

    def ensure_schema(self) -> None:
        """Add the extraction columns if the table predates them."""
        statements = [
            sql.SQL("ALTER TABLE IF EXISTS {} ADD COLUMN IF NOT EXISTS extracted_text TEXT"),
            sql.SQL("ALTER TABLE IF EXISTS {} ADD COLUMN IF NOT EXISTS language TEXT"),
        ]
        try:
            with psycopg.connect(self.db_url) as conn:
                with conn.cursor() as cur:
                    for statement in statements:
                        cur.execute(statement.format(sql.Identifier(self.table)))
                conn.commit()
        except psycopg.Error as e:
            raise PersistenceError(f"Failed to add extraction columns: {e}") from e
        logger.info(f"Ensured extraction columns on {self.table}")

    def get_stats(self) -> Dict[str, int]:
        """Counts of records, records with text and records with a language."""
        query = sql.SQL(
            "SELECT COUNT(*), COUNT(extracted_text), COUNT(language) FROM {}"
        ).format(sql.Identifier(self.table))
        try:
            with psycopg.connect(self.db_url) as conn:
                with conn.cursor() as cur:
                    cur.execute(query)
                    total, with_text, with_language = cur.fetchone()
        except psycopg.Error as e:
            raise StoreUnavailableError(f"Failed to read record stats: {e}") from e
        return {
            "total_records": total,
            "with_text": with_text,
            "with_language": with_language,
            "pending": total - with_text,
        }


class InMemoryRecordStore:
    """Dictionary-backed store for local runs and tests."""

    def __init__(self, records: Optional[List[DocumentRecord]] = None):
        self.records: Dict[RecordId, DocumentRecord] = {r.id: r for r in records or []}
        self.updates: List[Dict[str, Any]] = []

    def get(self, record_id: RecordId) -> DocumentRecord:
        try:
            return self.records[record_id].model_copy()
        except KeyError:
            raise RecordNotFoundError(record_id) from None

    def update(self, record_id: RecordId, fields: Dict[str, Any]) -> None:
        _check_fields(fields)
        if record_id not in self.records:
            raise RecordNotFoundError(record_id)
        self.records[record_id] = self.records[record_id].model_copy(update=fields)
        self.updates.append({"id": record_id, **fields})

    def iter_records(self, page_size: int = 1000) -> Iterator[DocumentRecord]:
        for record_id in sorted(self.records, key=str):
            yield self.records[record_id].model_copy()
