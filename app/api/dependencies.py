"""Shared API dependencies."""
from fastapi import Request

from app.integrations.etcd import EtcdClient
from app.services.workflow_gateway import WorkflowGateway


def get_gateway(request: Request) -> WorkflowGateway:
    return request.app.state.workflow_gateway


def get_etcd_client(request: Request) -> EtcdClient:
    return request.app.state.etcd_client


__all__ = ["get_gateway", "get_etcd_client"]
