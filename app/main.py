"""
WorkflowBuilder - FastAPI Application
HTTP API over the workflow database's stored procedures
"""
from contextlib import asynccontextmanager
import logging

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.core.logging_config import configure_logging
from app.integrations.etcd import EtcdClient
from app.services.workflow_gateway import WorkflowGateway
from app.api.routes import health, workflows

configure_logging(settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    logger.info("Starting WorkflowBuilder API...")

    gateway = WorkflowGateway.from_settings(settings)
    gateway.open()
    app.state.workflow_gateway = gateway
    app.state.etcd_client = EtcdClient(settings.etcd_url, timeout=settings.etcd_timeout_seconds)

    logger.info(f"API running on {settings.app_env} environment")
    yield
    gateway.close()
    logger.info("Shutting down WorkflowBuilder API...")


app = FastAPI(
    title=settings.app_name,
    description="Workflow, external service and action management API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning(f"Rejected request to {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={
            "error": "Invalid request parameters",
            "details": jsonable_encoder(exc.errors()),
        },
    )


app.include_router(health.router, tags=["Health"])
app.include_router(workflows.router, tags=["Workflows"])


def run() -> None:
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
