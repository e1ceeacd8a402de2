"""Integration (Procore, Microsoft 365) schemas."""


from datetime import datetime
from typing import Any

from pydantic import Field

from riskshield.schemas.common import CamelModel

class ConnectionStatus(CamelModel):
    provider: str
    connected: bool
    email: str | None = None
    procore_company_id: int | None = None
    procore_company_name: str | None = None
    pending_company_selection: bool = False
    last_sync_at: datetime | None = None
    dev_mode: bool = False

class IntegrationsStatus(CamelModel):
    integrations: list[ConnectionStatus]

class ConnectOut(CamelModel):
    redirect_url: str

class SelectCompanyRequest(CamelModel):
    company_id: int = 0

class ProcoreCompanyOut(CamelModel):
    id: int
    name: str
    is_active: bool = True

class RemoteProject(CamelModel):
    id: int
    name: str
    display_name: str | None = None
    address: str | None = None
    city: str | None = None
    state_code: str | None = None
    active: bool = True
    synced: bool = False
    shield_id: str | None = None

class RemoteVendor(CamelModel):
    id: int
    name: str
    abn: str | None = None
    email_address: str | None = None
    business_phone: str | None = None
    is_active: bool = True
    synced: bool = False
    shield_id: str | None = None

class RemoteListing(CamelModel):
    page: int
    per_page: int
    has_more: bool

class RemoteProjectListing(RemoteListing):
    items: list[RemoteProject]

class RemoteVendorListing(RemoteListing):
    items: list[RemoteVendor]

class ProjectSyncRequest(CamelModel):
    project_ids: list[int] = Field(default_factory=list)
    update_existing: bool = True

class VendorSyncRequest(CamelModel):
    vendor_ids: list[int] = Field(default_factory=list)
    skip_duplicates: bool = False
    merge_existing: bool = True
    project_id: str | None = None

class SyncItemResult(CamelModel):
    success: bool
    operation: str
    procore_id: int
    shield_id: str | None = None
    entity_type: str
    message: str | None = None
    details: dict[str, Any] | None = None

class SyncBatchResult(CamelModel):
    total: int
    created: int
    updated: int
    skipped: int
    errors: int
    results: list[SyncItemResult]
    duration_ms: int

class PushComplianceRequest(CamelModel):
    subcontractor_id: str = ""

class PushComplianceResult(CamelModel):
    success: bool
    subcontractor_id: str
    procore_vendor_id: int
    compliance_status: str
    insurances_created: int
    message: str

class PushHistoryItem(CamelModel):
    id: str
    action: str
    details: dict[str, Any] | None = None
    created_at: datetime
