from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class AccessCodeRequest(BaseModel):
    # Left untyped so a non-string code is answered with 400 by the handler
    accessCode: Any = None


class AccessCodeResponse(BaseModel):
    success: bool
    role: Optional[str] = None
    permissions: List[str] = []
    message: str


class AccessLevelsResponse(BaseModel):
    levels: List[str]
    descriptions: Dict[str, str]


class AccessDiagnostic(BaseModel):
    initialized: bool
    environment: Dict[str, Optional[str]]
    timestamp: str
