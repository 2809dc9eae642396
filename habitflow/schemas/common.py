"""
Shared schema primitives used across the API.
"""
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict


class ErrorResponse(BaseModel):
    """Standard error envelope returned for all 4xx/5xx responses."""
    model_config = ConfigDict(from_attributes=True)

    code: str
    message: str
    details: Optional[dict[str, Any]] = None


# Reusable OpenAPI `responses` entries
UNAUTHENTICATED_RESPONSE = {
    401: {"model": ErrorResponse, "description": "Missing, invalid or expired bearer token."},
}
NOT_FOUND_RESPONSE = {
    404: {"model": ErrorResponse, "description": "Habit does not exist or belongs to another user."},
}
