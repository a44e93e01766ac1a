"""Response envelope shared by every endpoint: ``{request_id, data, error}``."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel


class ErrorOut(BaseModel):
    # Machine-readable, e.g. ATTEMPTS_EXHAUSTED / VALIDATION_ERROR
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None


class Envelope(BaseModel):
    request_id: str
    data: Optional[Any] = None
    # Exactly one of data / error is meaningful
    error: Optional[ErrorOut] = None
