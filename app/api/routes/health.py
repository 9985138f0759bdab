"""
Health API Routes
"""
import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from app.api.dependencies import get_etcd_client, get_gateway
from app.config import settings
from app.core.exceptions import CoordinationError
from app.database import check_database_connection, database_health
from app.integrations.etcd import EtcdClient
from app.services.workflow_gateway import WorkflowGateway

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
async def index(request: Request) -> list[dict]:
    """List every documented route, one entry per path and method."""
    routes = []
    for path, operations in request.app.openapi().get("paths", {}).items():
        for method in operations:
            routes.append({"path": path, "methods": [method.lower()]})
    return routes


@router.get("/health")
def health_check(gateway: WorkflowGateway = Depends(get_gateway)) -> JSONResponse:
    """Application and database health"""
    db = database_health(gateway.engine)
    ok = bool(db.get("ok"))
    return JSONResponse(
        status_code=status.HTTP_200_OK if ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if ok else "degraded",
            "database": db,
        },
    )


@router.get("/test-db-connection")
def test_db_connection(gateway: WorkflowGateway = Depends(get_gateway)) -> JSONResponse:
    if not check_database_connection(gateway.engine):
        logger.error("Error connecting to database")
        return JSONResponse(status_code=500, content={"error": "Failed to connect to database"})
    return JSONResponse(content={"message": "Database connection successful"})


@router.get("/test-etcd-connection")
async def test_etcd_connection(etcd: EtcdClient = Depends(get_etcd_client)) -> JSONResponse:
    try:
        await etcd.check_connection(settings.etcd_health_key)
    except CoordinationError as exc:
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to connect to etcd", "details": str(exc)},
        )
    return JSONResponse(content={"message": "Etcd connection successful"})
