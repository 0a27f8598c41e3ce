"""Pydantic schemas for user summaries shown in member lists and the picker."""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field


class UserSummaryResponse(BaseModel):
    """User summary for display in member lists and search results."""

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID = Field(..., description="User ID")
    first_name: str = Field(..., description="User's first name")
    last_name: str = Field(..., description="User's last name")
    avatar_url: Optional[str] = Field(None, description="User's avatar URL")
    email: Optional[str] = Field(None, description="User email")

    @computed_field
    @property
    def display_name(self) -> str:
        """Full name, falling back to the email when no name is set."""
        name = f"{self.first_name} {self.last_name}".strip()
        return name or (self.email or "")
