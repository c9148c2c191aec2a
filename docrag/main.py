"""
Main FastAPI application entry point.
Responsibilities: App setup, router registration, startup/shutdown hooks.
"""
import asyncio
import signal

from fastapi import FastAPI

from .config import get_settings
from .embedding import preload_model
from .ingestion import DirectoryWatcher, IngestionOrchestrator
from .logging_config import logger, setup_logging
from .retrieval import RetrievalEngine
from .routes import chat, documents, models
from .segmentation import SegmentStrategy
from .services.chat_session import ChatSession, make_backend
from .vector_store import Distance, VectorStore

SHUTDOWN_DRAIN_SECONDS = 10.0

# -------------------------------------------------
# App setup
# -------------------------------------------------

app = FastAPI(title="docrag", version="0.1.0")

# Register routers
app.include_router(chat.router)
app.include_router(documents.router)
app.include_router(models.router)


def _request_shutdown() -> None:
    # uvicorn handles SIGTERM as a graceful shutdown, which runs shutdown_event
    signal.raise_signal(signal.SIGTERM)


def _on_ingestion_done(task: asyncio.Task) -> None:
    """
    A failed ingestion task is fatal: stop watching (nothing drains the queue
    any more) and shut the process down instead of serving a frozen index.
    """
    if task.cancelled():
        return
    exc = task.exception()
    if exc is None:
        return
    logger.critical("Ingestion stopped; shutting down", exc_info=exc)
    watcher = getattr(app.state, "watcher", None)
    if watcher is not None:
        watcher.stop()
    _request_shutdown()


@app.on_event("startup")
async def startup_event():
    """
    Bring up the store, the embedding model, the watcher and the ingestion task.

    Any failure here is fatal: the service cannot index or answer without them.
    """
    settings = get_settings()
    setup_logging(log_level=settings.log_level, json_logs=settings.json_logs)
    app.state.settings = settings

    try:
        logger.info("Initializing vector store schema...")
        store = VectorStore(dim=settings.embed_dim)
        await asyncio.to_thread(store.ensure_schema)
        logger.info("Vector store ready")

        logger.info("Preloading embedding model...")
        embedder = await asyncio.to_thread(preload_model)
        logger.info("Embedding model ready")

        queue: asyncio.Queue = asyncio.Queue()
        orchestrator = IngestionOrchestrator(
            queue,
            embedder,
            store,
            strategy=SegmentStrategy(settings.segment_strategy),
            window_size=settings.window_size,
            merge_threshold=settings.merge_threshold,
            embed_names=settings.embed_names,
            purge_on_create=settings.purge_on_create,
            embed_timeout=settings.embed_timeout,
            settle_time=settings.watch_settle_seconds,
        )
        watcher = DirectoryWatcher(
            settings.watch_dir,
            queue,
            create_missing=settings.watch_create_missing,
        )
        watcher.start()
    except Exception as e:
        logger.error("Startup initialization error", exc_info=e)
        raise

    task = asyncio.create_task(orchestrator.run(), name="ingestion")
    task.add_done_callback(_on_ingestion_done)

    app.state.store = store
    app.state.orchestrator = orchestrator
    app.state.watcher = watcher
    app.state.ingestion_task = task
    app.state.retrieval = RetrievalEngine(
        embedder,
        store,
        distance=Distance(settings.distance),
        default_k=settings.top_k,
        name_gate=settings.name_gate,
    )
    app.state.chat_session = ChatSession(
        make_backend(settings.chat_model, settings.ollama_url),
        system_prompt=settings.system_prompt,
        timeout=settings.generation_timeout,
    )
    logger.info("Application started", watch_dir=settings.watch_dir, chat_model=settings.chat_model)


@app.on_event("shutdown")
async def shutdown_event():
    """Stop watching, let queued events drain, then stop the ingestion task."""
    logger.info("Application shutting down")
    watcher = getattr(app.state, "watcher", None)
    if watcher is not None:
        watcher.stop()

    task = getattr(app.state, "ingestion_task", None)
    if task is None or task.done():
        return
    app.state.orchestrator.stop()
    try:
        await asyncio.wait_for(task, SHUTDOWN_DRAIN_SECONDS)
    except asyncio.TimeoutError:
        logger.warning("Ingestion did not drain in time; cancelled", **app.state.orchestrator.stats())
