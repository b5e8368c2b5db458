"""FastAPI application for LaterStack."""

import logging
from contextlib import asynccontextmanager

logging.basicConfig(level=logging.INFO, format="%(name)s %(levelname)s: %(message)s")

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from laterstack.auth import get_caller_session, require_session
from laterstack.config import get_settings
from laterstack.errors import InvalidInput, LaterStackError
from laterstack.models.saved_item import init_db
from laterstack.routers import api, webhooks
from laterstack.routers.api import error_response
from laterstack.tracing import setup_tracing

logger = logging.getLogger(__name__)

_tracer_provider = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the database on startup."""
    await init_db()
    logger.info("LaterStack started")

    yield

    # Flush remaining traces
    if _tracer_provider:
        _tracer_provider.shutdown()


app = FastAPI(
    title="LaterStack",
    description="Save articles for later, ranked by how well they match your interests",
    version="0.1.0",
    lifespan=lifespan,
    root_path=get_settings().root_path,
)

# Include routers
app.include_router(api.router)
app.include_router(webhooks.router)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and parameters get the uniform failure body.

    Authentication is still checked first, so an anonymous caller sees 401.
    """
    try:
        require_session(get_caller_session(request))
    except LaterStackError as e:
        return error_response(e)
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
    return error_response(InvalidInput())


app.add_exception_handler(RequestValidationError, request_validation_handler)


# Set up OpenTelemetry tracing
_tracer_provider = setup_tracing(app)
