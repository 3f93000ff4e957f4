# app/schemas/common.py
from pydantic import BaseModel
from typing import Any, Dict, Optional

class ErrorResponse(BaseModel):
    success: bool = False
    data: Optional[Dict[str, Any]] = None
    error: str
    code: Optional[str] = None

class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    timestamp: str
    backends: Dict[str, str]
