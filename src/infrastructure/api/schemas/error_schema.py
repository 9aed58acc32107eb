"""
RFC 7807 Problem Details error response schemas.

Implements standard error response format for the API.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

ERROR_TYPE_BASE = "https://lifecycle-engine.internal/errors"


class ProblemDetails(BaseModel):
    """
    RFC 7807 Problem Details for HTTP APIs.

    Lifecycle errors add the state/action/role they were raised for, so a
    client can re-read the instance and retry without parsing detail.
    """

    type: str = Field(
        ...,
        description="URI reference that identifies the problem type",
        examples=[f"{ERROR_TYPE_BASE}/invalid-transition"],
    )
    title: str = Field(..., description="Short, human-readable summary of the problem")
    status: int = Field(..., description="HTTP status code", ge=100, le=599)
    detail: str = Field(
        ..., description="Human-readable explanation specific to this occurrence"
    )
    instance: str = Field(
        ..., description="URI reference that identifies the specific occurrence"
    )
    correlation_id: str | None = Field(
        None, description="Correlation ID for request tracing"
    )
    state: str | None = Field(None, description="Lifecycle state the error refers to")
    action: str | None = Field(None, description="Lifecycle action the error refers to")
    role: str | None = Field(None, description="Acting role that was refused")
    actual_state: str | None = Field(
        None, description="State found in the store (concurrency conflicts)"
    )
    errors: list[Any] | None = Field(
        None, description="Field-level validation errors (422 responses)"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "type": f"{ERROR_TYPE_BASE}/invalid-transition",
                    "title": "Invalid Transition",
                    "status": 409,
                    "detail": "Action RENEW is not allowed from state SUSPENDED",
                    "instance": "/api/v1/events/0b6f.../complete",
                    "state": "SUSPENDED",
                    "action": "RENEW",
                },
                {
                    "type": f"{ERROR_TYPE_BASE}/concurrency-conflict",
                    "title": "Concurrency Conflict",
                    "status": 409,
                    "detail": "Service instance 5d1c... is no longer in state ACTIVE (now SUSPENDED)",
                    "instance": "/api/v1/instances/5d1c.../transitions",
                    "state": "ACTIVE",
                    "actual_state": "SUSPENDED",
                },
            ]
        }
    )
