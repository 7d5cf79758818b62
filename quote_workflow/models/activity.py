"""
Quote activity log projection.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from quote_workflow.utils.date_utils import normalize_identifier


class HistoryEntry(BaseModel):
    """One display entry of a quote's activity history."""

    model_config = ConfigDict(frozen=True)

    action: str
    title: str
    description: str = ""
    variant: str = "info"
    timestamp: Optional[datetime] = None
    user_id: Optional[str] = None
    user_name: Optional[str] = None

    @field_validator("user_id", mode="before")
    @classmethod
    def normalize_user_id(cls, v: Any) -> Optional[str]:
        return normalize_identifier(v)
