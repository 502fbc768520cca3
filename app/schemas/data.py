from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class SaveDataRequest(BaseModel):
    """Body of ``POST /api/data``."""

    type: str = Field(..., description="Document type: outcomes, revenue, priorities or history")
    data: Any = Field(None, description="JSON document to store")


class SaveDataResponse(BaseModel):
    success: bool = True
    message: str = "Data saved successfully"
