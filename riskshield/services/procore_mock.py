"""Canned Procore data served when no Procore client id is configured (dev mode)."""

from __future__ import annotations

from typing import Any

from riskshield.domain.mixins import utcnow

MOCK_COMPANIES: list[dict[str, Any]] = [
    {"id": 1001, "name": "Apex Construction Group", "is_active": True},
    {"id": 1002, "name": "Harbour Civil Pty Ltd", "is_active": True},
]

_PROJECTS: list[dict[str, Any]] = [
    {
        "id": 5001, "name": "Sydney Metro Station Upgrade", "display_name": "SMSU-01",
        "project_number": "SMSU-01", "address": "1 Central Station", "city": "Sydney",
        "state_code": "NSW", "zip": "2000", "country_code": "AU", "active": True,
        "estimated_start_date": "2025-02-01", "estimated_completion_date": "2026-12-15",
        "estimated_value": 48_000_000,
    },
    {
        "id": 5002, "name": "Southbank Residential Tower", "display_name": "SRT",
        "project_number": "SRT-22", "address": "88 City Road", "city": "Southbank",
        "state_code": "VIC", "zip": "3006", "country_code": "AU", "active": True,
        "actual_start_date": "2024-09-01", "projected_finish_date": "2026-06-30",
        "estimated_value": 120_000_000,
    },
    {
        "id": 5003, "name": "Brisbane Hospital Fitout", "display_name": "BHF",
        "project_number": "BHF-07", "address": "200 Herston Road", "city": "Herston",
        "state_code": "QLD", "zip": "4006", "country_code": "AU", "active": False,
        "estimated_start_date": "2023-03-01", "estimated_completion_date": "2024-08-31",
        "estimated_value": 9_500_000,
    },
]

_VENDORS: list[dict[str, Any]] = [
    {
        "id": 7001, "name": "Bright Spark Electrical Pty Ltd", "abn": "51 824 753 556",
        "email_address": "admin@brightspark.example.com", "business_phone": "02 9000 1111",
        "address": "12 Wire St", "city": "Parramatta", "state_code": "NSW", "zip": "2150",
        "is_active": True, "primary_contact": {"name": "Sam Volt", "email_address": "sam@brightspark.example.com"},
    },
    {
        "id": 7002, "name": "Southern Plumbing Services", "tax_id": "53004085616",
        "email_address": "office@southernplumbing.example.com", "business_phone": "03 9000 2222",
        "address": "4 Pipe Lane", "city": "Dandenong", "state_code": "VIC", "zip": "3175",
        "is_active": True, "primary_contact": {"name": "Jo Waters"},
    },
    {
        "id": 7003, "name": "Northside Scaffolding", "custom_fields": {},
        "email_address": None, "business_phone": None, "state_code": "QLD",
        "is_active": True, "primary_contact": None,
    },
    {
        "id": 7004, "name": "Legacy Concrete Co", "abn": "33102417032",
        "email_address": "hello@legacyconcrete.example.com", "is_active": False,
    },
]


def _page(items: list[dict[str, Any]], page: int, per_page: int) -> list[dict[str, Any]]:
    start = (page - 1) * per_page
    return items[start:start + per_page]


def projects(page: int = 1, per_page: int = 100) -> list[dict[str, Any]]:
    return _page(_PROJECTS, page, per_page)


def project(project_id: int) -> dict[str, Any] | None:
    return next((p for p in _PROJECTS if p["id"] == project_id), None)


def vendors(page: int = 1, per_page: int = 100, is_active: bool | None = None) -> list[dict[str, Any]]:
    items = [v for v in _VENDORS if is_active is None or v.get("is_active", True) == is_active]
    return _page(items, page, per_page)


def vendor(vendor_id: int) -> dict[str, Any] | None:
    return next((dict(v) for v in _VENDORS if v["id"] == vendor_id), None)


def tokens() -> dict[str, Any]:
    stamp = int(utcnow().timestamp())
    return {
        "access_token": f"mock_access_{stamp}",
        "refresh_token": f"mock_refresh_{stamp}",
        "token_type": "Bearer",
        "expires_in": 7200,
    }
