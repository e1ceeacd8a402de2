"""Domain package — all ORM models are imported here so Alembic autogenerate detects them.

Folder intent:
  company.py               — tenant companies and their billing state
  user.py                  — users, login sessions, password reset tokens
  subcontractor.py         — insured subcontractors
  project.py               — projects, insurance requirements, assignments
  document.py              — Certificates of Currency and verification results
  compliance_exception.py  — approved departures from requirements
  communication.py         — outbound correspondence and email templates
  notification.py          — in-app notifications
  audit.py                 — immutable audit log (never updated or deleted)
  snapshot.py              — daily compliance snapshots
  template.py              — requirement templates
  integration.py           — OAuth connections and Procore sync records
  mixins.py                — shared TimestampMixin, TenantMixin, time helpers
"""

from riskshield.domain.audit import AuditLog
from riskshield.domain.communication import Communication, EmailTemplate
from riskshield.domain.company import Company
from riskshield.domain.compliance_exception import ComplianceException
from riskshield.domain.document import CocDocument, Verification
from riskshield.domain.integration import OAuthConnection, OAuthState, ProcoreMapping, ProcoreSyncLog
from riskshield.domain.notification import Notification
from riskshield.domain.project import InsuranceRequirement, Project, ProjectSubcontractor
from riskshield.domain.snapshot import ComplianceSnapshot
from riskshield.domain.subcontractor import Subcontractor
from riskshield.domain.template import RequirementTemplate
from riskshield.domain.user import PasswordResetToken, User, UserSession

__all__ = [
    "AuditLog",
    "CocDocument",
    "Communication",
    "Company",
    "ComplianceException",
    "ComplianceSnapshot",
    "EmailTemplate",
    "InsuranceRequirement",
    "Notification",
    "OAuthConnection",
    "OAuthState",
    "PasswordResetToken",
    "ProcoreMapping",
    "ProcoreSyncLog",
    "Project",
    "ProjectSubcontractor",
    "RequirementTemplate",
    "Subcontractor",
    "User",
    "UserSession",
    "Verification",
]
