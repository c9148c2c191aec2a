"""
Database schema bootstrap.
"""
from sqlalchemy import text

from ..logging_config import logger

# Every statement is idempotent: safe to run on each startup.
SCHEMA_STATEMENTS = [
    "CREATE EXTENSION IF NOT EXISTS vector",
    """
    CREATE TABLE IF NOT EXISTS document (
        id BIGSERIAL PRIMARY KEY,
        embedding vector({dim}) NOT NULL,
        text TEXT NOT NULL,
        name TEXT NOT NULL
    )
    """,
    "ALTER TABLE document ADD COLUMN IF NOT EXISTS embedding_name vector({dim})",
    "CREATE INDEX IF NOT EXISTS ix_document_name ON document (name)",
]

# pgvector stores the declared dimension as the column's type modifier
DECLARED_DIMENSIONS_SQL = """
    SELECT attname, atttypmod
    FROM pg_attribute
    WHERE attrelid = 'document'::regclass
      AND attname IN ('embedding', 'embedding_name')
      AND NOT attisdropped
"""


def run_sql_migrations(engine, dim: int) -> dict:
    """
    Create the chunk table for `dim`-dimensional vectors if it is missing.

    Returns:
        Mapping of vector column name -> declared dimension as found in the
        catalog after the migration ran. Callers compare it against `dim`.

    Raises:
        sqlalchemy.exc.SQLAlchemyError: on connection or DDL failure
    """
    with engine.begin() as conn:
        for statement in SCHEMA_STATEMENTS:
            conn.execute(text(statement.format(dim=int(dim))))
        rows = conn.execute(text(DECLARED_DIMENSIONS_SQL)).all()

    declared = {name: typmod for name, typmod in rows}
    logger.info("Database schema ready", table="document", declared=declared)
    return declared
