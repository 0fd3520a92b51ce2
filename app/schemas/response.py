from pydantic import BaseModel, Field
from typing import Optional, Any, Dict


class ErrorResponse(BaseModel):
    """
    Standard error response structure.
    """
    error: str
    code: str
    details: Optional[Any] = None


class HealthResponse(BaseModel):
    """
    Health probe payload.
    """
    status: str
    timestamp: float
    environment: str
    version: str
    checks: Dict[str, Any] = Field(default_factory=dict)
