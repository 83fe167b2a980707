from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class ParseRequest(BaseModel):
    text: Optional[str] = None
    image: Optional[str] = None


class ParseResponse(BaseModel):
    productName: Optional[str] = None
    price: Optional[float] = None


class ErrorResponse(BaseModel):
    error: str
    code: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    service: str
