"""
RAG (Retrieval-Augmented Generation) service.
Retrieves context for a prompt and forwards the composed message to the chat session.
"""
import asyncio
import time
from typing import Dict, Optional

from ..logging_config import logger
from ..retrieval import RetrievalEngine
from .chat_session import ChatSession


async def answer(
    prompt: str,
    engine: RetrievalEngine,
    session: ChatSession,
    k: Optional[int] = None,
    threshold: Optional[float] = None,
    retrieval_timeout: Optional[float] = None,
) -> Dict[str, str]:
    """
    Main RAG query handler.

    1. Embed the prompt and fetch the nearest chunks (worker thread, bounded wait)
    2. Compose "Context: ... Question: ..." as one message
    3. Send it through the shared chat session

    Returns:
        {"prompt": <original prompt>, "text": <generated text>}

    Raises:
        EmbeddingError / StoreError: retrieval failed; the session is not called
        asyncio.TimeoutError: retrieval exceeded `retrieval_timeout`
        GenerationError: the chat backend failed or timed out
    """
    start_time = time.time()
    logger.info("Processing query", prompt=prompt, k=k, threshold=threshold)

    message = await asyncio.wait_for(
        asyncio.to_thread(engine.build_message, prompt, k, threshold),
        retrieval_timeout,
    )

    logger.info(
        "Sending to generator",
        message_length=len(message),
        message_preview=message[:200] + "..." if len(message) > 200 else message,
        session=session.name,
    )
    text = await session.send(message)

    elapsed_ms = round((time.time() - start_time) * 1000, 2)
    logger.info("Query completed", time_ms=elapsed_ms)
    return {"prompt": prompt, "text": text}
