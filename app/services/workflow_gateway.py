from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Iterator

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from app.config import Settings
from app.core.exceptions import ErrorKind, GatewayError, classify_database_error
from app.database import check_database_connection, create_db_engine

logger = logging.getLogger(__name__)


def _integral_floats_as_int(value: Any) -> Any:
    # Integral floats render without a fraction until exponent form at 1e21.
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return int(value)
    if isinstance(value, dict):
        return {k: _integral_floats_as_int(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_integral_floats_as_int(v) for v in value]
    return value


def serialize_row(row: Any) -> dict[str, Any]:
    record = dict(row._mapping)
    for key, value in record.items():
        if isinstance(value, (datetime, date)):
            record[key] = value.isoformat()
    return record


class WorkflowGateway:
    """
    Maps workflow operations onto the stored procedures of the workflow database.

    Each public method issues exactly one call inside its own transaction and
    reshapes the result into plain dicts. Database failures are logged with the
    original error text and re-raised as ``GatewayError`` carrying an ErrorKind.
    """

    def __init__(self, engine: Engine, *, empty_collection_is_not_found: bool = True):
        self.engine = engine
        self.empty_collection_is_not_found = empty_collection_is_not_found
        self._closed = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "WorkflowGateway":
        return cls(
            create_db_engine(settings),
            empty_collection_is_not_found=settings.empty_collection_is_not_found,
        )

    def open(self) -> bool:
        """Verify the pool can reach the database. Failures are logged, not raised."""
        self._closed = False
        ok = check_database_connection(self.engine)
        if ok:
            logger.info("Workflow database reachable")
        else:
            logger.warning("Workflow database unreachable; calls will fail until it recovers")
        return ok

    def close(self) -> None:
        self._closed = True
        self.engine.dispose()
        logger.info("Workflow database pool disposed")

    @property
    def closed(self) -> bool:
        return self._closed

    @contextmanager
    def _connection(self, operation: str) -> Iterator[Connection]:
        if self._closed:
            raise GatewayError(ErrorKind.DATABASE, f"Error {operation}: gateway is closed")
        try:
            with self.engine.begin() as connection:
                yield connection
        except GatewayError:
            raise
        except SQLAlchemyError as exc:
            detail = str(getattr(exc, "orig", None) or exc)
            logger.error(f"Error {operation}: {detail}")
            raise GatewayError(
                classify_database_error(detail),
                f"Error {operation}: {detail}",
                detail=detail,
            ) from exc
        except Exception as exc:
            logger.exception(f"Unexpected error {operation}")
            raise GatewayError(ErrorKind.DATABASE, f"Error {operation}: {exc}", detail=str(exc)) from exc

    # Workflows

    def create_workflow(self, name: str | None, description: str | None) -> dict[str, Any]:
        if not name or not description:
            raise GatewayError(ErrorKind.VALIDATION, "Name and description are required fields")

        with self._connection("creating workflow") as connection:
            row = connection.execute(
                text("SELECT create_workflow(:name, :description) AS workflow_id"),
                {"name": name, "description": description},
            ).first()

        workflow_id = row.workflow_id if row is not None else None
        if not workflow_id:
            raise GatewayError(
                ErrorKind.MISSING_IDENTIFIER,
                "Failed to create workflow. Workflow ID not returned from the database.",
            )
        return {"id": workflow_id, "name": name, "description": description}

    def update_workflow(self, workflow_id: int, name: str, description: str) -> dict[str, Any] | None:
        with self._connection("updating workflow") as connection:
            result = connection.execute(
                text("SELECT update_workflow(:workflow_id, :name, :description)"),
                {"workflow_id": workflow_id, "name": name, "description": description},
            )
            affected = result.rowcount

        if not affected:
            return None

        logger.info("Workflow %s updated", workflow_id)
        return {
            "workflow_id": workflow_id,
            "workflow_name": name,
            "workflow_description": description,
        }

    def get_workflow(self, workflow_id: int) -> dict[str, Any] | None:
        with self._connection("retrieving workflow") as connection:
            row = connection.execute(
                text("SELECT * FROM get_workflow(:workflow_id)"),
                {"workflow_id": workflow_id},
            ).first()
        return serialize_row(row) if row is not None else None

    def get_workflows(self) -> list[dict[str, Any]]:
        with self._connection("retrieving workflows") as connection:
            rows = connection.execute(text("SELECT * FROM get_workflows()")).all()

        if not rows and self.empty_collection_is_not_found:
            raise GatewayError(ErrorKind.EMPTY_RESULT, "Workflows not found")
        return [serialize_row(r) for r in rows]

    def delete_workflow(self, workflow_id: int) -> dict[str, Any]:
        with self._connection("deleting workflow") as connection:
            row = connection.execute(
                text("SELECT delete_workflow(:workflow_id) AS deleted"),
                {"workflow_id": workflow_id},
            ).first()

        if row is not None and row.deleted:
            return {"success": True}
        return {"success": False, "error": "Workflow not found"}

    def execute_workflow(self, workflow_id: int, input_data: Any) -> str:
        # Placeholder: no execution engine exists, nothing is persisted.
        payload = json.dumps(_integral_floats_as_int(input_data), separators=(",", ":"), ensure_ascii=False)
        return f"Workflow {workflow_id} executed with input data: {payload}"

    def validate_workflow(self, definition: Any) -> dict[str, Any]:
        return {"isValid": True, "errors": []}

    # External services

    def add_external_service(self, workflow_id: int, name: str | None, endpoint: str | None) -> None:
        with self._connection("adding external service") as connection:
            connection.execute(
                text("SELECT add_external_service(:workflow_id, :name, :endpoint)"),
                {"workflow_id": workflow_id, "name": name, "endpoint": endpoint},
            )

    def remove_external_service(self, workflow_id: int, external_service_id: int) -> None:
        with self._connection("removing external service") as connection:
            connection.execute(
                text("SELECT remove_external_service(:workflow_id, :external_service_id)"),
                {"workflow_id": workflow_id, "external_service_id": external_service_id},
            )

    def list_external_services(self, workflow_id: int) -> list[dict[str, Any]]:
        with self._connection("listing external services") as connection:
            rows = connection.execute(
                text("SELECT * FROM list_external_services(:workflow_id)"),
                {"workflow_id": workflow_id},
            ).all()
        return [serialize_row(r) for r in rows]

    # Actions

    def add_workflow_action(self, workflow_id: int, action: dict[str, Any]) -> None:
        action_data = action.get("actionData")
        if action_data is not None and not isinstance(action_data, str):
            action_data = json.dumps(action_data)

        with self._connection("adding action to workflow") as connection:
            result = connection.execute(
                text(
                    "SELECT add_workflow_action("
                    ":workflow_id, :ordinal, :action_type, :action_data, :external_service_id)"
                ),
                {
                    "workflow_id": workflow_id,
                    "ordinal": action.get("ordinal"),
                    "action_type": action.get("actionType"),
                    "action_data": action_data,
                    "external_service_id": action.get("externalServiceId"),
                },
            )
            affected = result.rowcount

        if not affected:
            raise GatewayError(ErrorKind.DATABASE, "Error adding action to workflow: Failed to add action")

    def delete_workflow_action(self, workflow_id: int, action_id: int) -> None:
        with self._connection("deleting action from workflow") as connection:
            connection.execute(
                text("SELECT delete_workflow_action(:workflow_id, :action_id)"),
                {"workflow_id": workflow_id, "action_id": action_id},
            )

    def get_workflow_actions(self, workflow_id: int) -> list[dict[str, Any]]:
        with self._connection("getting actions for workflow") as connection:
            rows = connection.execute(
                text("SELECT * FROM get_workflow_actions(:workflow_id)"),
                {"workflow_id": workflow_id},
            ).all()
        return [serialize_row(r) for r in rows]
