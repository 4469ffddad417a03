"""
Response envelopes shared by every endpoint
"""

from typing import Any, Optional
from pydantic import BaseModel

__all__ = ["StandardResponse", "ErrorResponse"]

class StandardResponse(BaseModel):
    """Successful call: message plus payload"""
    success: bool
    message: str
    data: Optional[Any] = None

class ErrorResponse(BaseModel):
    """Failed call; error_code is the machine-readable kind (e.g. claim_conflict)"""
    success: bool = False
    message: str
    error_code: str
    details: Optional[Any] = None
