"""Lead capture schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class LeadCaptureRequest(BaseModel):
    """Visitor contact details submitted from the open house form."""

    name: str = Field(..., min_length=1, max_length=200)
    email: str | None = Field(default=None, max_length=320)
    phone: str | None = Field(default=None, max_length=50)
    notes: str | None = Field(default=None, max_length=2000)


class Lead(BaseModel):
    """Stored lead row."""

    model_config = ConfigDict(extra="ignore")

    id: str
    user_id: str
    open_house_id: str
    name: str
    email: str | None = None
    phone: str | None = None
    notes: str | None = None
    status: str = "active"
    created_at: datetime


class OpenHouse(BaseModel):
    """Open house fields consumed by gift automation."""

    model_config = ConfigDict(extra="ignore")

    id: str
    user_id: str
    address: str
    is_gift_enabled: bool = False
    gift_brand_code: str | None = None
    gift_brand_name: str | None = None
    gift_amount_in_cents: int | None = None

    @property
    def gift_automation_ready(self) -> bool:
        """Return True when a lead should receive a queued gift."""
        return bool(
            self.is_gift_enabled and self.gift_brand_code and (self.gift_amount_in_cents or 0) > 0
        )
