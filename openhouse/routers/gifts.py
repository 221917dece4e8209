"""Gift endpoints for agents."""

from __future__ import annotations

from typing import Any
from uuid import uuid4

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from openhouse.clients.giftbit import GiftbitClient
from openhouse.dependencies import (
    get_authenticated_user,
    get_current_user_id,
    get_db_client,
    get_issuance_service,
    get_provider,
)
from openhouse.schemas.gift import CreateGiftRequest, SendGiftRequest
from openhouse.services.catalog_service import CatalogService
from openhouse.services.gift_issuance_service import GiftIssuanceService
from openhouse.services.gift_record_service import GiftRecordService
from openhouse.utils.errors import ConfigurationError, ProviderError
from supabase import Client

router = APIRouter()


@router.get("")
def list_gifts(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user: Any = Depends(get_authenticated_user),
    client: Client = Depends(get_db_client),
) -> dict:
    """Return the current agent's gifts, newest first."""
    gifts = GiftRecordService(client).list_for_user(
        get_current_user_id(user), limit=limit, offset=offset
    )
    return {"gifts": [gift.model_dump(mode="json") for gift in gifts]}


@router.get("/brands")
def list_brands(
    region_code: str | None = Query(default=None),
    user: Any = Depends(get_authenticated_user),
    client: Client = Depends(get_db_client),
    provider: GiftbitClient = Depends(get_provider),
) -> dict:
    """Return the brands agents may gift."""
    brands = CatalogService(client, provider).list_brands(region_code)
    return {"brands": [brand.model_dump(mode="json") for brand in brands]}


@router.get("/regions")
def list_regions(
    user: Any = Depends(get_authenticated_user),
    client: Client = Depends(get_db_client),
    provider: GiftbitClient = Depends(get_provider),
) -> dict:
    """Return Giftbit regions."""
    return {"regions": CatalogService(client, provider).list_regions()}


@router.post("", status_code=201)
def create_gift(
    payload: CreateGiftRequest,
    user: Any = Depends(get_authenticated_user),
    service: GiftIssuanceService = Depends(get_issuance_service),
) -> Any:
    """Debit the agent and mint a claim link.

    When Giftbit fails after the debit the error body carries ``gift_id`` so
    the client can retry the link for the same gift. Failures before the
    debit (catalog lookup, missing credentials) leave no gift and no id.
    """
    gift_id = str(uuid4())
    try:
        gift = service.create_gift_link(
            user_id=get_current_user_id(user),
            recipient_name=payload.recipient_name,
            recipient_email=payload.recipient_email,
            brand_code=payload.brand_code,
            amount_in_cents=payload.amount_in_cents,
            region_code=payload.region_code,
            gift_id=gift_id,
        )
    except (ProviderError, ConfigurationError) as exc:
        content = exc.to_dict()
        if service.gifts.exists(gift_id):
            content["gift_id"] = gift_id
        return JSONResponse(
            status_code=exc.status_code,
            content=content,
        )
    return {"gift": gift.model_dump(mode="json")}


@router.get("/{gift_id}")
def get_gift(
    gift_id: str,
    user: Any = Depends(get_authenticated_user),
    client: Client = Depends(get_db_client),
) -> dict:
    """Return one of the current agent's gifts."""
    gift = GiftRecordService(client).get_for_user(gift_id, get_current_user_id(user))
    return {"gift": gift.model_dump(mode="json")}


@router.post("/{gift_id}/retry-link")
def retry_link(
    gift_id: str,
    user: Any = Depends(get_authenticated_user),
    service: GiftIssuanceService = Depends(get_issuance_service),
) -> dict:
    """Ask Giftbit again for a debited gift that has no claim link."""
    gift = service.retry_gift_link(gift_id, user_id=get_current_user_id(user))
    return {"gift": gift.model_dump(mode="json")}


@router.post("/{gift_id}/send")
def send_gift(
    gift_id: str,
    payload: SendGiftRequest,
    user: Any = Depends(get_authenticated_user),
    service: GiftIssuanceService = Depends(get_issuance_service),
) -> dict:
    """Email the claim link to the recipient."""
    gift = service.send_gift(gift_id, get_current_user_id(user), message=payload.message)
    return {"gift": gift.model_dump(mode="json")}
