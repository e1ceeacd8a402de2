"""Pydantic schemas package.

Folder intent:
  common.py  — CamelModel base, SuccessOut, HealthResponse (all schemas inherit CamelModel)
  one module per router area (auth, company, user, subcontractor, project,
  template, document, compliance_exception, communication, notification,
  audit, compliance, integration, billing, external)
"""
