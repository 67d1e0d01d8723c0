"""FastAPI application entry point.

Startup sequence: load .env -> create the shared LLM relay client.
"""

from contextlib import asynccontextmanager

import structlog
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse

from backend.api.routes import router
from backend.core.errors import GatewayError
from backend.core.llm_relay import LLMRelay

load_dotenv()

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("startup.begin")

    llm_relay = LLMRelay()
    app.state.llm_relay = llm_relay
    logger.info("startup.llm_initialized", healthy=llm_relay.is_healthy(),
                model=llm_relay.model_name)
    if not llm_relay.is_healthy():
        logger.error("startup.llm_not_configured", hint="Set OPENROUTER_API_KEY in .env")

    logger.info("startup.complete")
    yield

    await llm_relay.aclose()
    logger.info("shutdown.complete")


app = FastAPI(
    title="DiffDesk API",
    description="Pull request review dashboard: streamed AI code review relay",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS for the dashboard frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    """Render gateway failures as a generic JSON error body."""
    logger.info("request.failed", path=request.url.path, status=exc.status_code,
                error=type(exc).__name__)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """Last-resort handler: log the detail, return nothing internal."""
    logger.error("request.unhandled", path=request.url.path, error=str(exc),
                 error_type=type(exc).__name__)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


app.include_router(router)
