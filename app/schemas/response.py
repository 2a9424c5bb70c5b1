"""Response envelopes shared by every endpoint."""
from pydantic import BaseModel
from typing import Optional, Any


class ApiResponse(BaseModel):
    """Success envelope; ``data`` carries camelCase keys."""
    success: bool
    message: str
    data: Optional[Any] = None


class ErrorResponse(BaseModel):
    """Failure envelope with a stable error code, e.g. AUTH001."""
    success: bool = False
    code: str
    message: str
    data: Optional[dict] = None
