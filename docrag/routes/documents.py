"""
Document API routes.
Read-only view of what the ingestion orchestrator has indexed.
"""
from typing import List

from fastapi import APIRouter, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from ..exceptions import StoreError
from ..logging_config import logger
from ..schemas import DocumentSummary

router = APIRouter(prefix="/api", tags=["documents"])


@router.get("/documents", response_model=List[DocumentSummary])
async def list_documents(request: Request):
    """
    Returns all indexed documents with chunk counts.
    """
    try:
        rows = await run_in_threadpool(request.app.state.store.list_documents)
    except StoreError as e:
        logger.error("Error listing documents", error=str(e))
        raise HTTPException(status_code=503, detail="Vector store unavailable")

    logger.info("Listed documents", count=len(rows))
    return [DocumentSummary(name=name, chunks=chunks) for name, chunks in rows]
