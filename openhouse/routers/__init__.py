"""API router package."""

from openhouse.routers import admin, balance, gifts, leads

__all__ = [
    "admin",
    "balance",
    "gifts",
    "leads",
]
