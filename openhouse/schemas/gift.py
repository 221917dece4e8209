"""Gift schemas.

A stored gift is a tagged union keyed by ``status``; each variant only
carries the fields that are meaningful in that state.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class GiftStatus(StrEnum):
    """Lifecycle states of a gift."""

    PENDING = "Pending"
    CREATED = "Created"
    SENT = "Sent"
    FAILED = "Failed"
    CANCELLED = "Cancelled"


TERMINAL_STATUSES = (GiftStatus.FAILED.value, GiftStatus.CANCELLED.value)


class GiftType(StrEnum):
    """How a gift was requested."""

    MANUAL = "Manual"
    AUTO = "Auto"


class _GiftBase(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    user_id: str
    recipient_name: str
    recipient_email: str
    brand_code: str
    brand_name: str | None = None
    amount_in_cents: int = Field(..., gt=0)
    type: GiftType = GiftType.MANUAL
    open_house_id: str | None = None
    lead_id: str | None = None
    created_at: datetime

    @field_validator("id", "user_id", "open_house_id", "lead_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value: Any) -> Any:
        return str(value) if value is not None else value

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES  # type: ignore[attr-defined]

    @property
    def is_debited(self) -> bool:
        """Return True when the agent's balance has been charged for this gift."""
        return False


class PendingGift(_GiftBase):
    """Queued by lead automation; not debited and without a claim link."""

    status: Literal["Pending"]
    claim_url: None = None


class CreatedGift(_GiftBase):
    """Interactive gift: balance debited, claim link present once minted."""

    status: Literal["Created"]
    claim_url: str | None = None
    short_id: str | None = None
    error_message: str | None = None

    @property
    def is_debited(self) -> bool:
        return True

    @property
    def needs_link(self) -> bool:
        """Return True while the provider has not returned a claim link."""
        return self.claim_url is None


class SentGift(_GiftBase):
    """Claim link minted, balance debited, recipient notified."""

    status: Literal["Sent"]
    claim_url: str
    short_id: str | None = None
    sent_at: datetime

    @property
    def is_debited(self) -> bool:
        return True


class FailedGift(_GiftBase):
    """Terminal failure; no claim link is usable."""

    status: Literal["Failed"]
    error_message: str = "Gift processing failed"

    @field_validator("error_message", mode="before")
    @classmethod
    def _default_message(cls, value: Any) -> Any:
        return value or "Gift processing failed"


class CancelledGift(_GiftBase):
    """Voided at the provider."""

    status: Literal["Cancelled"]
    claim_url: str | None = None
    cancelled_at: datetime


Gift = Annotated[
    PendingGift | CreatedGift | SentGift | FailedGift | CancelledGift,
    Field(discriminator="status"),
]

_gift_adapter: TypeAdapter[Gift] = TypeAdapter(Gift)


def parse_gift(row: dict[str, Any]) -> Gift:
    """Validate a raw ``gifts`` row into its status variant."""
    return _gift_adapter.validate_python(row)


class CreateGiftRequest(BaseModel):
    """Request body for interactive gift issuance."""

    recipient_name: str = Field(..., min_length=1, max_length=200)
    recipient_email: str = Field(..., min_length=3, max_length=320)
    brand_code: str = Field(..., min_length=1, max_length=100)
    amount_in_cents: int = Field(..., gt=0)
    region_code: str | None = None


class SendGiftRequest(BaseModel):
    """Request body for emailing a minted gift to its recipient."""

    message: str | None = Field(default=None, max_length=2000)


class GiftBrand(BaseModel):
    """Brand mirrored from the gift provider catalog."""

    model_config = ConfigDict(extra="ignore")

    brand_code: str
    name: str
    image_url: str | None = None
    value_type: str | None = None
    min_value_in_cents: int | None = Field(
        default=None,
        validation_alias=AliasChoices("min_value_in_cents", "min_price_in_cents"),
    )
    max_value_in_cents: int | None = Field(
        default=None,
        validation_alias=AliasChoices("max_value_in_cents", "max_price_in_cents"),
    )
    face_value_in_cents: int | None = None
    region_codes: list[str] | None = None

    def accepts(self, amount_cents: int) -> bool:
        """Return whether ``amount_cents`` is a valid value for this brand."""
        if self.value_type == "FIXED" and self.face_value_in_cents is not None:
            return amount_cents == self.face_value_in_cents
        if self.min_value_in_cents is not None and amount_cents < self.min_value_in_cents:
            return False
        if self.max_value_in_cents is not None and amount_cents > self.max_value_in_cents:
            return False
        return True


class ClaimLink(BaseModel):
    """Claim link minted by the gift provider."""

    claim_url: str
    short_id: str | None = None
