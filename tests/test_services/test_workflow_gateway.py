from __future__ import annotations

from datetime import datetime
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError, ProgrammingError

from app.core.exceptions import ErrorKind, GatewayError, classify_database_error
from app.services.workflow_gateway import WorkflowGateway


def make_engine():
    engine = MagicMock()
    connection = MagicMock()
    begin = engine.begin.return_value
    begin.__enter__.return_value = connection
    begin.__exit__.return_value = False
    return engine, connection


def row(**values):
    return SimpleNamespace(_mapping=values, **values)


def sql_of(connection) -> str:
    return str(connection.execute.call_args.args[0])


def params_of(connection) -> dict:
    return connection.execute.call_args.args[1]


def test_create_workflow_returns_record_with_database_id():
    engine, connection = make_engine()
    connection.execute.return_value.first.return_value = row(workflow_id=42)
    gateway = WorkflowGateway(engine)

    result = gateway.create_workflow("Onboarding", "New hire flow")

    assert result == {"id": 42, "name": "Onboarding", "description": "New hire flow"}
    assert "create_workflow(:name, :description)" in sql_of(connection)
    assert params_of(connection) == {"name": "Onboarding", "description": "New hire flow"}


@pytest.mark.parametrize("name, description", [("", "d"), ("n", ""), (None, "d")])
def test_create_workflow_requires_fields_without_calling_database(name, description):
    engine, connection = make_engine()
    gateway = WorkflowGateway(engine)

    with pytest.raises(GatewayError) as excinfo:
        gateway.create_workflow(name, description)

    assert excinfo.value.kind == ErrorKind.VALIDATION
    engine.begin.assert_not_called()


def test_create_workflow_without_identifier_fails():
    engine, connection = make_engine()
    connection.execute.return_value.first.return_value = row(workflow_id=None)
    gateway = WorkflowGateway(engine)

    with pytest.raises(GatewayError) as excinfo:
        gateway.create_workflow("a", "b")

    assert excinfo.value.kind == ErrorKind.MISSING_IDENTIFIER


def test_update_workflow_zero_rows_returns_none():
    engine, connection = make_engine()
    connection.execute.return_value.rowcount = 0
    gateway = WorkflowGateway(engine)

    assert gateway.update_workflow(3, "a", "b") is None


def test_update_workflow_returns_updated_record():
    engine, connection = make_engine()
    connection.execute.return_value.rowcount = 1
    gateway = WorkflowGateway(engine)

    assert gateway.update_workflow(3, "a", "b") == {
        "workflow_id": 3,
        "workflow_name": "a",
        "workflow_description": "b",
    }
    assert params_of(connection) == {"workflow_id": 3, "name": "a", "description": "b"}


def test_get_workflow_present_and_absent():
    engine, connection = make_engine()
    created = datetime(2024, 1, 2, 3, 4, 5)
    connection.execute.return_value.first.return_value = row(
        id=5, name="a", description="b", created_at=created
    )
    gateway = WorkflowGateway(engine)

    assert gateway.get_workflow(5) == {
        "id": 5,
        "name": "a",
        "description": "b",
        "created_at": "2024-01-02T03:04:05",
    }

    connection.execute.return_value.first.return_value = None
    assert gateway.get_workflow(6) is None


def test_get_workflows_empty_raises_by_default():
    engine, connection = make_engine()
    connection.execute.return_value.all.return_value = []
    gateway = WorkflowGateway(engine)

    with pytest.raises(GatewayError) as excinfo:
        gateway.get_workflows()

    assert excinfo.value.kind == ErrorKind.EMPTY_RESULT
    assert excinfo.value.message == "Workflows not found"


def test_get_workflows_empty_is_list_when_policy_disabled():
    engine, connection = make_engine()
    connection.execute.return_value.all.return_value = []
    gateway = WorkflowGateway(engine, empty_collection_is_not_found=False)

    assert gateway.get_workflows() == []


@pytest.mark.parametrize(
    "deleted, expected",
    [
        (True, {"success": True}),
        (False, {"success": False, "error": "Workflow not found"}),
    ],
)
def test_delete_workflow_uses_deleted_flag(deleted, expected):
    engine, connection = make_engine()
    connection.execute.return_value.first.return_value = row(deleted=deleted)
    gateway = WorkflowGateway(engine)

    assert gateway.delete_workflow(7) == expected


def test_execute_workflow_is_repeatable_and_touches_no_database():
    engine, _ = make_engine()
    gateway = WorkflowGateway(engine)

    first = gateway.execute_workflow(4, {"user": "ana", "steps": [1, 2]})
    second = gateway.execute_workflow(4, {"user": "ana", "steps": [1, 2]})

    assert first == second == 'Workflow 4 executed with input data: {"user":"ana","steps":[1,2]}'
    engine.begin.assert_not_called()


def test_execute_workflow_renders_integral_floats_without_fraction():
    engine, _ = make_engine()
    gateway = WorkflowGateway(engine)

    result = gateway.execute_workflow(1, {"x": 1.0, "y": 2.5, "big": 1e21, "nested": [3.0]})

    assert result == 'Workflow 1 executed with input data: {"x":1,"y":2.5,"big":1e+21,"nested":[3]}'


def test_validate_workflow_always_valid():
    engine, _ = make_engine()
    assert WorkflowGateway(engine).validate_workflow({"steps": []}) == {"isValid": True, "errors": []}


def test_add_workflow_action_serialises_action_data():
    engine, connection = make_engine()
    connection.execute.return_value.rowcount = 1
    gateway = WorkflowGateway(engine)

    gateway.add_workflow_action(
        2,
        {"ordinal": 1, "actionType": "http_call", "actionData": {"path": "/x"}, "externalServiceId": None},
    )

    assert params_of(connection) == {
        "workflow_id": 2,
        "ordinal": 1,
        "action_type": "http_call",
        "action_data": '{"path": "/x"}',
        "external_service_id": None,
    }


def test_add_workflow_action_zero_rows_fails():
    engine, connection = make_engine()
    connection.execute.return_value.rowcount = 0
    gateway = WorkflowGateway(engine)

    with pytest.raises(GatewayError) as excinfo:
        gateway.add_workflow_action(2, {"ordinal": 1, "actionType": "http_call"})

    assert excinfo.value.kind == ErrorKind.DATABASE


@pytest.mark.parametrize(
    "message, kind",
    [
        ("ERROR:  Action not found", ErrorKind.ACTION_NOT_FOUND),
        ("ERROR:  Workflow not found", ErrorKind.WORKFLOW_NOT_FOUND),
        ("ERROR:  Invalid action type: teleport", ErrorKind.INVALID_ACTION_TYPE),
        ("ERROR:  External service not found", ErrorKind.EXTERNAL_SERVICE_NOT_FOUND),
        ("ERROR:  duplicate key value", ErrorKind.DATABASE),
    ],
)
def test_database_errors_are_classified(message, kind):
    engine, connection = make_engine()
    connection.execute.side_effect = ProgrammingError("SELECT 1", {}, Exception(message))
    gateway = WorkflowGateway(engine)

    with pytest.raises(GatewayError) as excinfo:
        gateway.delete_workflow_action(7, 3)

    assert excinfo.value.kind == kind
    assert message in excinfo.value.message


def test_connection_failure_is_rewrapped():
    engine, _ = make_engine()
    engine.begin.side_effect = OperationalError("connect", {}, Exception("connection refused"))
    gateway = WorkflowGateway(engine)

    with pytest.raises(GatewayError) as excinfo:
        gateway.list_external_services(1)

    assert excinfo.value.kind == ErrorKind.DATABASE
    assert "connection refused" in excinfo.value.message


def test_closed_gateway_refuses_calls():
    engine, _ = make_engine()
    gateway = WorkflowGateway(engine)

    gateway.close()

    engine.dispose.assert_called_once()
    assert gateway.closed
    with pytest.raises(GatewayError):
        gateway.get_workflow_actions(1)
    engine.begin.assert_not_called()


def test_classify_database_error_handles_empty_text():
    assert classify_database_error(None) == ErrorKind.DATABASE
    assert classify_database_error("") == ErrorKind.DATABASE


def test_create_workflow_end_to_end():
    """Route through the real gateway against a store that assigns id 42."""
    from fastapi.testclient import TestClient

    from app.api.dependencies import get_gateway
    from app.main import app

    engine, connection = make_engine()
    connection.execute.return_value.first.return_value = row(workflow_id=42)
    real = WorkflowGateway(engine)

    original_overrides = app.dependency_overrides.copy()
    app.dependency_overrides[get_gateway] = lambda: real
    try:
        response = TestClient(app).post(
            "/workflows", json={"name": "Onboarding", "description": "New hire flow"}
        )
    finally:
        app.dependency_overrides = original_overrides

    assert response.status_code == 201
    assert response.json() == {"id": 42, "name": "Onboarding", "description": "New hire flow"}


def test_delete_missing_action_end_to_end():
    from fastapi.testclient import TestClient

    from app.api.dependencies import get_gateway
    from app.main import app

    engine, connection = make_engine()
    connection.execute.side_effect = ProgrammingError(
        "SELECT delete_workflow_action(7, 3)", {}, Exception("Action not found")
    )
    real = WorkflowGateway(engine)

    original_overrides = app.dependency_overrides.copy()
    app.dependency_overrides[get_gateway] = lambda: real
    try:
        response = TestClient(app).delete("/workflows/7/action/3")
    finally:
        app.dependency_overrides = original_overrides

    assert response.status_code == 404
    assert response.json() == {"error": "Action not found in the specified workflow"}
