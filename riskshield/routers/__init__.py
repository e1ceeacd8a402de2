"""Routers package — HTTP endpoint definitions, all mounted under ``settings.api_prefix``.

Files:
  auth.py                   — signup, login, sessions, password reset, invitations
  company.py / users.py     — tenant profile and team management
  preferences.py            — the signed-in user's notification preferences
  subcontractors.py         — subcontractor CRUD and bulk import
  projects.py               — projects, requirements, assignments
  requirement_templates.py  — reusable requirement sets
  documents.py              — Certificate of Currency upload, processing, review
  reviews.py                — manual review queue
  alerts.py                 — stop-work risks and critical alerts
  exceptions.py             — compliance exceptions
  communications.py         — email history, templates, expirations, follow-ups
  notifications.py          — in-app notification feed
  audit_logs.py             — audit trail search
  compliance.py             — compliance trend history
  integrations.py           — OAuth connections (Procore, Microsoft 365)
  procore.py                — Procore import and compliance push
  stripe.py                 — billing and the Stripe webhook
  external.py               — ABN lookup
  deps.py                   — shared auth / role dependencies
"""

from riskshield.routers import (
    alerts,
    audit_logs,
    auth,
    communications,
    company,
    compliance,
    documents,
    exceptions,
    external,
    integrations,
    notifications,
    preferences,
    procore,
    projects,
    requirement_templates,
    reviews,
    stripe,
    subcontractors,
    users,
)

API_ROUTERS = [
    auth.router,
    company.router,
    users.router,
    preferences.router,
    subcontractors.router,
    projects.router,
    requirement_templates.router,
    documents.router,
    reviews.router,
    alerts.router,
    exceptions.router,
    communications.router,
    notifications.router,
    audit_logs.router,
    compliance.router,
    integrations.router,
    procore.router,
    stripe.router,
    external.router,
]
