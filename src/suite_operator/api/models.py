"""Pydantic models for HTTP API responses and event payloads."""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from suite_operator.models.installation import Installation, StageStatus
from suite_operator.models.status import PreflightStatus


class EventType(str, Enum):
    """Severity of an installation event."""

    NORMAL = "Normal"
    WARNING = "Warning"


class EventPayload(BaseModel):
    """Payload POSTed to the event sink.

    Example:
        {
            "installation": "suite-operator/suite-installation",
            "type": "Normal",
            "reason": "InstallationCompleted",
            "message": "authentication stage has reconciled successfully",
            "timestamp": "2026-01-01T00:00:00Z"
        }
    """

    installation: str = Field(..., description="Installation key (namespace/name)")
    type: EventType = Field(..., description="Event severity")
    reason: str = Field(..., description="Machine-readable reason")
    message: str = Field(..., description="Human-readable description")
    timestamp: datetime = Field(..., description="When the event was emitted")


class InstallationSummary(BaseModel):
    """Installation status as exposed by the API."""

    namespace: str
    name: str
    type: str
    preflight_status: PreflightStatus
    preflight_message: str
    deletion_requested: bool
    finalizers: list[str]
    master_url: str = ""
    routing_subdomain: str = ""
    stages: dict[str, StageStatus] = Field(default_factory=dict)

    @classmethod
    def from_installation(cls, installation: Installation) -> "InstallationSummary":
        return cls(
            namespace=installation.metadata.namespace,
            name=installation.metadata.name,
            type=installation.spec.type,
            preflight_status=installation.status.preflight_status,
            preflight_message=installation.status.preflight_message,
            deletion_requested=installation.deletion_requested,
            finalizers=list(installation.metadata.finalizers),
            master_url=installation.spec.master_url,
            routing_subdomain=installation.spec.routing_subdomain,
            stages=installation.status.stages,
        )


class InstallationResponse(BaseModel):
    """GET /api/v1.0/installations/{namespace}/{name} response."""

    code: int = Field(default=200, description="Application-level status code")
    msg: str = Field(default="success", description="Status message")
    data: InstallationSummary


class InstallationListResponse(BaseModel):
    """GET /api/v1.0/installations response."""

    code: int = Field(default=200, description="Application-level status code")
    msg: str = Field(default="success", description="Status message")
    data: list[InstallationSummary] = Field(default_factory=list)


class SuccessResponse(BaseModel):
    """Success response for command endpoints."""

    code: int = Field(default=200, description="Application-level status code (200)")
    msg: str = Field(default="success", description="Success message")
    data: Optional[dict] = Field(None, description="Optional response data")


class ErrorResponse(BaseModel):
    """Error response for all endpoints.

    HTTP status code is always 200, real status in 'code' field.
    """

    code: int = Field(..., description="Application-level error code (404/500)")
    msg: str = Field(..., description="Error message")
