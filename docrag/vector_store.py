"""
Chunk persistence and nearest-neighbour search on PostgreSQL + pgvector.
"""
from dataclasses import dataclass
from enum import Enum
from time import perf_counter
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import SQLAlchemyError

from .db.migrations import run_sql_migrations
from .exceptions import StoreError
from .logging_config import logger
from .models import EMBED_DIM, Chunk


class Distance(str, Enum):
    """Distance operator; must be the same at index and query time."""
    L2 = "l2"          # <->
    COSINE = "cosine"  # <=>


@dataclass(frozen=True)
class ScoredChunk:
    text: str
    distance: float
    document_name: str


def _distance_expr(column, vector: Sequence[float], distance: Distance):
    if distance is Distance.COSINE:
        return column.cosine_distance(vector)
    return column.l2_distance(vector)


def build_nearest_query(
    query_embedding: Sequence[float],
    k: int,
    distance: Distance = Distance.L2,
    name_gate: Optional[float] = None,
):
    """
    SELECT text, distance, name ... ORDER BY distance LIMIT k.

    The name gate lives in the WHERE clause, so it filters candidates before
    ranking and before the LIMIT is applied. A chunk is eligible only when
    its name embedding exists and its cosine similarity to the query
    (1 - cosine distance) is strictly greater than `name_gate`.
    """
    qv = list(query_embedding)
    dist = _distance_expr(Chunk.embedding, qv, Distance(distance)).label("distance")
    stmt = select(Chunk.text, dist, Chunk.name)
    if name_gate is not None:
        stmt = stmt.where(Chunk.embedding_name.isnot(None)).where(
            (1 - Chunk.embedding_name.cosine_distance(qv)) > name_gate
        )
    return stmt.order_by(dist).limit(k)


class VectorStore:
    """
    Sole owner of chunk rows.

    Every method checks a pooled connection out of `engine` for one short
    transaction; nothing spans a whole document.
    """

    def __init__(self, engine=None, dim: int = EMBED_DIM):
        if engine is None:
            from .db import engine as default_engine
            engine = default_engine
        self.engine = engine
        self.dim = dim

    def ensure_schema(self) -> None:
        """Create the table if needed and verify its declared vector dimension."""
        try:
            declared = run_sql_migrations(self.engine, self.dim)
        except SQLAlchemyError as e:
            raise StoreError("Failed to initialize vector store schema", {"error": str(e)}) from e

        for column, declared_dim in declared.items():
            if declared_dim != self.dim:
                raise StoreError(
                    "Vector column dimension does not match the embedding model",
                    {"column": column, "declared": declared_dim, "expected": self.dim},
                )

    def _check_dim(self, vector: Sequence[float], field: str) -> None:
        if vector is None or len(vector) != self.dim:
            raise StoreError(
                "Vector dimension mismatch",
                {"field": field, "expected": self.dim, "got": None if vector is None else len(vector)},
            )

    def insert_chunk(
        self,
        text: str,
        embedding: Sequence[float],
        document_name: str,
        name_embedding: Optional[Sequence[float]] = None,
    ) -> None:
        if not text or not text.strip():
            raise StoreError("Refusing to store an empty chunk", {"document": document_name})
        self._check_dim(embedding, "embedding")
        if name_embedding is not None:
            self._check_dim(name_embedding, "name_embedding")

        stmt = insert(Chunk).values(
            text=text,
            embedding=list(embedding),
            name=document_name,
            embedding_name=list(name_embedding) if name_embedding is not None else None,
        )
        try:
            with self.engine.begin() as conn:
                conn.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError("Failed to insert chunk", {"document": document_name, "error": str(e)}) from e

    def delete_by_document_name(self, name: str) -> int:
        """Delete every chunk of `name`. Zero rows is not an error."""
        try:
            with self.engine.begin() as conn:
                result = conn.execute(delete(Chunk).where(Chunk.name == name))
        except SQLAlchemyError as e:
            raise StoreError("Failed to delete document", {"document": name, "error": str(e)}) from e
        return result.rowcount or 0

    def query_nearest(
        self,
        query_embedding: Sequence[float],
        k: int,
        distance: Distance = Distance.L2,
        name_gate: Optional[float] = None,
    ) -> List[ScoredChunk]:
        """Return up to `k` chunks ordered by ascending distance to the query."""
        if k < 1:
            raise ValueError("k must be >= 1")
        self._check_dim(query_embedding, "query_embedding")

        stmt = build_nearest_query(query_embedding, k, distance, name_gate)
        t = perf_counter()
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt).all()
        except SQLAlchemyError as e:
            raise StoreError("Similarity query failed", {"error": str(e)}) from e

        logger.debug(
            "Similarity query finished",
            rows=len(rows),
            distance=Distance(distance).value,
            gated=name_gate is not None,
            time_ms=round((perf_counter() - t) * 1000, 2),
        )
        return [ScoredChunk(text=r[0], distance=float(r[1]), document_name=r[2]) for r in rows]

    def list_documents(self) -> List[Tuple[str, int]]:
        """Document names with their chunk counts."""
        stmt = (
            select(Chunk.name, func.count(Chunk.id))
            .group_by(Chunk.name)
            .order_by(Chunk.name)
        )
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt).all()
        except SQLAlchemyError as e:
            raise StoreError("Failed to list documents", {"error": str(e)}) from e
        return [(r[0], int(r[1])) for r in rows]
