"""
Entrypoint for the writing assistant service.

Wires the FastAPI application together: logging setup, the document store
lifecycle and the editor routes (semantic analysis, documents, settings).
"""

from __future__ import annotations

import argparse
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from analysis_router import router as editor_router
from config import TRUTHY_ENV_VALUES, config
from storage import DocumentStore

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
    ]
)

# Silence noisy third-party loggers to avoid cluttering output
_noisy_loggers = [
    'httpcore',
    'httpcore.connection',
    'httpcore.http11',
    'httpx',
    'openai._base_client',
    'aiosqlite',
]
for _logger_name in _noisy_loggers:
    logging.getLogger(_logger_name).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

VERBOSE_ENV_VAR = "EDITOR_VERBOSE"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the document store on startup and close it on shutdown"""
    store = DocumentStore(config.STORAGE.db_path)
    try:
        await store.initialize()
        app.state.document_store = store
    except Exception as e:
        logger.error(f"Failed to initialize document store: {e}")
        app.state.document_store = None

    yield

    logger.info("Shutting down writing assistant...")
    if app.state.document_store is not None:
        await store.close()
    logger.info("Shutdown complete")


app = FastAPI(
    title="Suggest Edit",
    description="Writing suggestions anchored to continuously edited text",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.include_router(editor_router)


@app.get("/health")
async def health_check():
    return {"status": "ok", "document_store": getattr(app.state, "document_store", None) is not None}


if __name__ == "__main__":
    import uvicorn

    parser = argparse.ArgumentParser(description="Suggest Edit writing assistant")
    parser.add_argument("--host", default=config.APP_HOST, help="Bind address")
    parser.add_argument("--port", type=int, default=config.APP_PORT, help="Bind port")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Emit phase headers and timings for each analysis pass",
    )
    args = parser.parse_args()

    if args.verbose or os.getenv(VERBOSE_ENV_VAR, "").lower() in TRUTHY_ENV_VALUES:
        config.EDITOR.verbose = True
        logging.getLogger().setLevel(logging.DEBUG)

    logger.info("Starting with uvicorn on %s:%d", args.host, args.port)
    uvicorn.run("main:app", host=args.host, port=args.port)
