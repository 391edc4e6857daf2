"""
Pydantic schemas for identity provider webhooks.
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class IdentityEmailAddress(BaseModel):
    id: Optional[str] = None
    email_address: Optional[str] = None


class IdentityUserData(BaseModel):
    """User object as delivered by the identity provider."""
    id: str = Field(..., description="Identity provider user id")
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None
    primary_email_address_id: Optional[str] = None
    email_addresses: List[IdentityEmailAddress] = Field(default_factory=list)

    def primary_email(self) -> Optional[str]:
        for entry in self.email_addresses:
            if entry.id == self.primary_email_address_id:
                return entry.email_address
        return None

    def display_name(self) -> str:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or "Unknown User"


class IdentityEvent(BaseModel):
    """Webhook envelope: event type plus loosely typed data."""
    type: str = Field(..., description="Event type, e.g. user.created")
    data: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        json_schema_extra = {
            "example": {
                "type": "user.created",
                "data": {
                    "id": "user_2abc123",
                    "first_name": "Asha",
                    "last_name": "Rao",
                    "primary_email_address_id": "idn_1",
                    "email_addresses": [{"id": "idn_1", "email_address": "asha@example.com"}],
                    "image_url": None
                }
            }
        }
