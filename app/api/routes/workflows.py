"""
Workflow API Routes
Workflows, their external services and ordered actions
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status

from app.api.dependencies import get_gateway
from app.core.exceptions import ErrorKind, GatewayError
from app.schemas.workflow import ExternalServiceCreate, WorkflowActionCreate, WorkflowDefinition
from app.services.workflow_gateway import WorkflowGateway

logger = logging.getLogger(__name__)

router = APIRouter()

REQUIRED_FIELDS_MESSAGE = "Name and description are required fields"


def _require_name_and_description(payload: Optional[WorkflowDefinition]) -> WorkflowDefinition:
    if payload is None or not payload.name or not payload.description:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=REQUIRED_FIELDS_MESSAGE)
    return payload


@router.post("/workflows", status_code=status.HTTP_201_CREATED)
def create_workflow(
    payload: Optional[WorkflowDefinition] = Body(default=None),
    gateway: WorkflowGateway = Depends(get_gateway),
) -> dict[str, Any]:
    payload = _require_name_and_description(payload)
    try:
        return gateway.create_workflow(payload.name, payload.description)
    except GatewayError as exc:
        logger.error(f"Error creating workflow: {exc.message}")
        if exc.kind == ErrorKind.VALIDATION:
            raise HTTPException(status_code=400, detail=REQUIRED_FIELDS_MESSAGE)
        raise HTTPException(status_code=500, detail="Failed to create workflow. Internal server error.")


@router.get("/workflows")
def list_workflows(gateway: WorkflowGateway = Depends(get_gateway)) -> dict[str, Any]:
    try:
        workflows = gateway.get_workflows()
    except GatewayError as exc:
        logger.error(f"Error retrieving workflows: {exc.message}")
        if exc.kind == ErrorKind.EMPTY_RESULT:
            raise HTTPException(status_code=404, detail="Workflows not found")
        raise HTTPException(status_code=500, detail="Failed to retrieve workflows")

    if not workflows and gateway.empty_collection_is_not_found:
        raise HTTPException(status_code=404, detail="Workflows not found")
    return {"workflows": workflows}


@router.post("/workflows/validate")
def validate_workflow(
    definition: Any = Body(default=None),
    gateway: WorkflowGateway = Depends(get_gateway),
) -> dict[str, Any]:
    return {"validationResults": gateway.validate_workflow(definition)}


@router.get("/workflows/{workflow_id}")
def get_workflow(workflow_id: int, gateway: WorkflowGateway = Depends(get_gateway)) -> dict[str, Any]:
    try:
        workflow = gateway.get_workflow(workflow_id)
    except GatewayError as exc:
        logger.error(f"Error retrieving workflow {workflow_id}: {exc.message}")
        raise HTTPException(status_code=500, detail="Failed to retrieve workflow")

    if not workflow:
        raise HTTPException(status_code=404, detail="Workflow not found")
    return {"workflow": workflow}


@router.put("/workflows/{workflow_id}")
def update_workflow(
    workflow_id: int,
    payload: Optional[WorkflowDefinition] = Body(default=None),
    gateway: WorkflowGateway = Depends(get_gateway),
) -> dict[str, Any]:
    payload = _require_name_and_description(payload)
    try:
        updated = gateway.update_workflow(workflow_id, payload.name, payload.description)
    except GatewayError as exc:
        logger.error(f"Error updating workflow {workflow_id}: {exc.message}")
        if exc.kind == ErrorKind.WORKFLOW_NOT_FOUND:
            raise HTTPException(status_code=404, detail="Workflow not found")
        raise HTTPException(status_code=400, detail="Failed to update workflow")

    if not updated:
        raise HTTPException(status_code=404, detail="Workflow not found")
    return {"workflow": updated}


@router.delete("/workflows/{workflow_id}")
def delete_workflow(workflow_id: int, gateway: WorkflowGateway = Depends(get_gateway)) -> dict[str, Any]:
    try:
        result = gateway.delete_workflow(workflow_id)
    except GatewayError as exc:
        logger.error(f"Error deleting workflow {workflow_id}: {exc.message}")
        raise HTTPException(status_code=404, detail=exc.message)
    return {"workflowInfo": result}


@router.post("/workflows/{workflow_id}/execute")
def execute_workflow(
    workflow_id: int,
    input_data: Any = Body(default=None),
    gateway: WorkflowGateway = Depends(get_gateway),
) -> dict[str, Any]:
    try:
        return {"result": gateway.execute_workflow(workflow_id, {} if input_data is None else input_data)}
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("/workflows/{workflow_id}/external-services")
def add_external_service(
    workflow_id: int,
    payload: ExternalServiceCreate,
    gateway: WorkflowGateway = Depends(get_gateway),
) -> dict[str, str]:
    details = payload.external_service_details
    if details is None:
        raise HTTPException(status_code=400, detail="External service details are required")
    try:
        gateway.add_external_service(workflow_id, details.name, details.endpoint)
    except GatewayError as exc:
        logger.error(f"Error adding external service to workflow {workflow_id}: {exc.message}")
        if exc.kind == ErrorKind.WORKFLOW_NOT_FOUND:
            raise HTTPException(status_code=404, detail="Workflow not found")
        raise HTTPException(status_code=400, detail="Failed to add external service to the workflow")
    return {"message": "External service added to the workflow successfully"}


@router.delete("/workflows/{workflow_id}/external-services/{external_service_id}")
def remove_external_service(
    workflow_id: int,
    external_service_id: int,
    gateway: WorkflowGateway = Depends(get_gateway),
) -> dict[str, str]:
    try:
        gateway.remove_external_service(workflow_id, external_service_id)
    except GatewayError as exc:
        logger.error(f"Error removing external service {external_service_id}: {exc.message}")
        if exc.kind == ErrorKind.WORKFLOW_NOT_FOUND:
            raise HTTPException(status_code=404, detail="Workflow not found")
        if exc.kind == ErrorKind.EXTERNAL_SERVICE_NOT_FOUND:
            raise HTTPException(status_code=404, detail="External service not found")
        raise HTTPException(status_code=400, detail="Failed to remove external service")
    return {"message": "External service removed from the workflow successfully"}


@router.get("/workflows/{workflow_id}/external-services")
def list_external_services(
    workflow_id: int,
    gateway: WorkflowGateway = Depends(get_gateway),
) -> dict[str, Any]:
    try:
        services = gateway.list_external_services(workflow_id)
    except GatewayError as exc:
        logger.error(f"Error listing external services for workflow {workflow_id}: {exc.message}")
        raise HTTPException(status_code=500, detail="Failed to list external services")

    if not services and gateway.empty_collection_is_not_found:
        raise HTTPException(status_code=404, detail="No external services found for the workflow")
    return {"externalServices": services}


@router.post("/workflows/{workflow_id}/action")
def add_workflow_action(
    workflow_id: int,
    payload: WorkflowActionCreate,
    gateway: WorkflowGateway = Depends(get_gateway),
) -> dict[str, str]:
    if payload.ordinal is None or not payload.action_type:
        raise HTTPException(status_code=400, detail="Ordinal and action type are required fields")
    try:
        gateway.add_workflow_action(workflow_id, payload.to_action())
    except GatewayError as exc:
        logger.error(f"Error adding action to workflow {workflow_id}: {exc.message}")
        if exc.kind == ErrorKind.WORKFLOW_NOT_FOUND:
            raise HTTPException(status_code=404, detail="Workflow not found")
        if exc.kind == ErrorKind.INVALID_ACTION_TYPE:
            raise HTTPException(status_code=400, detail="Invalid action type provided")
        if exc.kind == ErrorKind.EXTERNAL_SERVICE_NOT_FOUND:
            raise HTTPException(status_code=404, detail="External service not found")
        raise HTTPException(status_code=400, detail="Failed to add action to the workflow")
    return {"message": "Action added to the workflow successfully"}


@router.delete("/workflows/{workflow_id}/action/{action_id}")
def delete_workflow_action(
    workflow_id: int,
    action_id: int,
    gateway: WorkflowGateway = Depends(get_gateway),
) -> dict[str, str]:
    try:
        gateway.delete_workflow_action(workflow_id, action_id)
    except GatewayError as exc:
        logger.error(f"Error deleting action {action_id} from workflow {workflow_id}: {exc.message}")
        if exc.kind == ErrorKind.WORKFLOW_NOT_FOUND:
            raise HTTPException(status_code=404, detail="Workflow not found")
        if exc.kind == ErrorKind.ACTION_NOT_FOUND:
            raise HTTPException(status_code=404, detail="Action not found in the specified workflow")
        raise HTTPException(status_code=400, detail="Failed to delete action from the workflow")
    return {"message": "Action deleted from the workflow successfully"}


@router.get("/workflows/{workflow_id}/actions")
def list_workflow_actions(
    workflow_id: int,
    gateway: WorkflowGateway = Depends(get_gateway),
) -> dict[str, Any]:
    try:
        actions = gateway.get_workflow_actions(workflow_id)
    except GatewayError as exc:
        logger.error(f"Error getting workflow actions for {workflow_id}: {exc.message}")
        raise HTTPException(status_code=500, detail="Failed to retrieve workflow actions")

    if not actions and gateway.empty_collection_is_not_found:
        raise HTTPException(status_code=404, detail="No workflow actions found for the specified workflow")
    return {"workflowActions": actions}
