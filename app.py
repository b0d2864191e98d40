import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
from db import create_db_and_tables, dispose_engine
from exceptions import StorefrontException
from processing.processing import processing_router
from services.notification import NotificationDispatcher
from utils.error_handler import handle_service_error, handle_unexpected_error
from web.admin_router import admin_router
from web.api_router import api_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown."""
    # Startup
    await create_db_and_tables()
    dispatcher = NotificationDispatcher()
    dispatcher.start()
    app.state.dispatcher = dispatcher
    logger.info(f"[Startup] Storefront API ready ({config.RUNTIME_ENVIRONMENT.value})")

    yield

    # Shutdown
    logger.warning("Shutting down..")
    await dispatcher.stop()
    await dispose_engine()
    logger.warning("Bye!")


app = FastAPI(title="Storefront Orders", lifespan=lifespan)

if config.CORS_ALLOWED_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ALLOWED_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "X-User-Id", "X-Session-Token"],
    )
    logger.info(f"[Startup] CORS middleware enabled for origins: {config.CORS_ALLOWED_ORIGINS}")

app.include_router(api_router)
app.include_router(admin_router)
app.include_router(processing_router)


@app.exception_handler(StorefrontException)
async def storefront_exception_handler(request: Request, exc: StorefrontException):
    status_code, body = handle_service_error(exc)
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=400, content={"error": "INVALID_REQUEST", "message": str(exc), "details": {}})


@app.exception_handler(Exception)
async def unexpected_exception_handler(request: Request, exc: Exception):
    status_code, body = handle_unexpected_error(exc)
    return JSONResponse(status_code=status_code, content=body)


# Health check endpoint (for container monitoring)
@app.get("/health")
async def health_check():
    return {"status": "healthy"}
