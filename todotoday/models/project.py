"""
Project note model definitions.
"""

from datetime import datetime
from typing import Optional

from todotoday.models.base import CamelModel


class ProjectUpdate(CamelModel):
    """Field mask for updating a project."""

    name: Optional[str] = None
    content: Optional[str] = None


class Project(CamelModel):
    """A named rich-text project note."""

    id: str
    name: str
    content: str = ""
    created_at: datetime
    updated_at: datetime
