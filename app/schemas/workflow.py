from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class WorkflowDefinition(BaseModel):
    # Presence is checked by the route so missing fields answer 400.
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    description: Optional[str] = None


class ExternalServiceDetails(BaseModel):
    name: Optional[str] = None
    endpoint: Optional[str] = None


class ExternalServiceCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    external_service_details: Optional[ExternalServiceDetails] = Field(
        default=None, alias="externalServiceDetails"
    )


class WorkflowActionCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ordinal: Optional[int] = None
    action_type: Optional[str] = Field(default=None, alias="actionType")
    action_data: Any = Field(default=None, alias="actionData")
    external_service_id: Optional[int] = Field(default=None, alias="externalServiceId")

    def to_action(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
