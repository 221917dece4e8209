"""Agent profile schemas."""

from pydantic import BaseModel, ConfigDict


class AgentProfile(BaseModel):
    """Agent fields used for balances and email signatures."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    email: str = ""
    phone: str | None = None
    title: str | None = None
    brokerage_name: str | None = None
    photo_url: str | None = None
    personal_logo_url: str | None = None
    brokerage_logo_url: str | None = None
    available_balance_cents: int = 0
    is_admin: bool = False
