"""Service package exports with lazy loading."""

from __future__ import annotations

from importlib import import_module
from typing import Any

_EXPORTS = {
    "CatalogService": "openhouse.services.catalog_service",
    "GiftIssuanceService": "openhouse.services.gift_issuance_service",
    "GiftRecordService": "openhouse.services.gift_record_service",
    "LeadService": "openhouse.services.lead_service",
    "LedgerService": "openhouse.services.ledger_service",
    "NotificationService": "openhouse.services.notification_service",
    "SupabaseService": "openhouse.services.common",
}

__all__ = sorted(_EXPORTS.keys())


def __getattr__(name: str) -> Any:
    if name not in _EXPORTS:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module = import_module(_EXPORTS[name])
    return getattr(module, name)
