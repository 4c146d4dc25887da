"""
Upstream record shapes.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class Document(BaseModel):
    """A record of an upstream collection."""

    id: str
    collection: str
    title: str = ""
    properties: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Workspace(BaseModel):
    """Workspace-level information (owner, display name, settings)."""

    id: str
    name: str
    properties: dict[str, Any] = Field(default_factory=dict)
