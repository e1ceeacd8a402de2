"""Services package — all business logic lives here, never in routers.

Files:
  auth.py / user.py / company.py  — accounts, sessions, team and tenant profile
  abn.py                          — ABN normalisation and checksum validation
  subcontractor.py                — subcontractor CRUD, bulk import, merge
  project.py / templates.py       — projects, requirements, assignments, requirement templates
  document.py                     — certificate upload, AI processing, manual review
  parser.py / extraction.py       — PDF text / page rendering and OpenAI certificate extraction
  verification.py                 — rule checks of extracted data against requirements
  compliance_exception.py         — exception requests and approvals
  communication.py                — simulated email sending, templates, expiration reminders
  email_templates.py              — default templates and ``{{variable}}`` rendering
  notification.py / audit.py      — in-app notifications and the audit trail
  compliance.py                   — daily compliance snapshots and history backfill
  integrations.py / microsoft.py  — OAuth state and connection handling
  procore_client.py / procore_sync.py / procore_mock.py — Procore API, import and push-back
  billing.py / stripe_client.py   — subscription checkout and Stripe webhooks
  external.py                     — ABN lookup
  storage.py / http.py            — uploaded file storage and outbound HTTP plumbing

Rule: routers call services, services call repositories, repositories call the DB.
      No SQLAlchemy queries in routers. No FastAPI imports in services.
"""
