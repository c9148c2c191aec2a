"""
Generation API routes.
Runs retrieval for a prompt and returns the chat session's answer.
"""
import asyncio
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request

from ..exceptions import EmbeddingError, GenerationError, GenerationTimeoutError, StoreError
from ..logging_config import logger
from ..schemas import GenerateBody, GeneratedText
from ..services.rag_service import answer

router = APIRouter(prefix="/api", tags=["chat"])


async def _generate(request: Request, prompt: str, k: Optional[int], threshold: Optional[float]) -> GeneratedText:
    state = request.app.state
    try:
        result = await answer(
            prompt,
            state.retrieval,
            state.chat_session,
            k=k,
            threshold=threshold,
            retrieval_timeout=state.settings.embed_timeout,
        )
    except EmbeddingError as e:
        logger.error("Failed to embed prompt", error=str(e), prompt=prompt)
        raise HTTPException(status_code=500, detail="Failed to embed prompt")
    except StoreError as e:
        logger.error("Vector store query failed", error=str(e), prompt=prompt)
        raise HTTPException(status_code=503, detail="Vector store unavailable")
    except GenerationTimeoutError as e:
        logger.error("Generation timed out", error=str(e), prompt=prompt)
        raise HTTPException(status_code=504, detail="Generation timed out")
    except GenerationError as e:
        logger.error("Generation failed", error=str(e), prompt=prompt)
        raise HTTPException(status_code=502, detail="Generation failed")
    except asyncio.TimeoutError:
        logger.error("Retrieval timed out", prompt=prompt)
        raise HTTPException(status_code=504, detail="Retrieval timed out")
    return GeneratedText(**result)


@router.get("/generate/{prompt}", response_model=GeneratedText)
async def generate_text(
    prompt: str,
    request: Request,
    k: Optional[int] = Query(None, ge=1, le=50),
    threshold: Optional[float] = Query(None, ge=-1.0, le=1.0),
):
    """
    Answer `prompt` grounded in the indexed documents.

    Example response:
    {"prompt": "What is the refund policy?", "text": "..."}
    """
    return await _generate(request, prompt, k, threshold)


@router.post("/generate", response_model=GeneratedText)
async def generate_text_from_body(payload: GenerateBody, request: Request):
    """Same as GET /generate/{prompt}, for prompts that do not fit a path segment."""
    return await _generate(request, payload.prompt, payload.k, payload.threshold)
