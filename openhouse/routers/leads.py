"""Public lead capture endpoint used by the open house sign-in form."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from openhouse.dependencies import get_db_client, get_issuance_service
from openhouse.schemas.lead import LeadCaptureRequest
from openhouse.services.gift_issuance_service import GiftIssuanceService
from openhouse.services.lead_service import LeadService
from supabase import Client

router = APIRouter()


@router.post("/{open_house_id}/leads", status_code=201)
def capture_lead(
    open_house_id: str,
    payload: LeadCaptureRequest,
    client: Client = Depends(get_db_client),
    issuance: GiftIssuanceService = Depends(get_issuance_service),
) -> dict:
    """Store a visitor lead; a configured gift is settled after the response."""
    lead, gift = LeadService(client, issuance).capture_lead(
        open_house_id,
        name=payload.name,
        email=payload.email,
        phone=payload.phone,
        notes=payload.notes,
    )
    return {
        "lead": lead.model_dump(mode="json"),
        "gift": gift.model_dump(mode="json") if gift else None,
    }
