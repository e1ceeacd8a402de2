"""Certificate of Currency documents.

Endpoints:
  GET  /documents                 — list, optionally filtered by project / subcontractor
  POST /documents                 — multipart upload (PDF or image)
  GET  /documents/{id}            — document with its verification
  POST /documents/{id}/process    — run AI extraction and verification
  POST /documents/{id}/verify     — manual approve / reject
  GET  /documents/{id}/download   — stream the stored file
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.config import settings
from riskshield.core.exceptions import BadRequestError
from riskshield.core.response import DataResponse
from riskshield.db.base import get_db
from riskshield.domain.user import User
from riskshield.routers.deps import PROJECT_EDITORS, UPLOADERS, get_current_user, require_roles
from riskshield.schemas.document import DocumentOut, DocumentWithVerification, VerificationOut, VerifyRequest
from riskshield.services.document import DocumentService

router = APIRouter(prefix="/documents", tags=["Documents"])

_ALLOWED_CONTENT_TYPES = {
    "application/pdf": "pdf",
    "image/jpeg": "image",
    "image/jpg": "image",
    "image/png": "image",
    "image/gif": "image",
}

_ALLOWED_EXTENSIONS = {
    ".pdf": "pdf",
    ".jpg": "image",
    ".jpeg": "image",
    ".png": "image",
    ".gif": "image",
}


def _detect_file_kind(file: UploadFile) -> str:
    """Return ``'pdf'`` or ``'image'`` from the content type or, failing that, the extension."""
    kind_by_ct = _ALLOWED_CONTENT_TYPES.get(file.content_type or "")

    filename = (file.filename or "").lower()
    kind_by_ext = next((k for e, k in _ALLOWED_EXTENSIONS.items() if filename.endswith(e)), None)

    kind = kind_by_ct or kind_by_ext
    if not kind:
        raise BadRequestError("Invalid file type. Only PDF and image files are allowed.")
    return kind


async def _validate_and_read_file(file: UploadFile) -> bytes:
    _detect_file_kind(file)
    contents = await file.read()

    if len(contents) == 0:
        raise BadRequestError("Uploaded file is empty.")
    if len(contents) > settings.max_upload_size_bytes:
        raise BadRequestError(f"File too large. Maximum size is {settings.max_upload_size_mb}MB.")
    return contents


def _with_verification(item: dict[str, Any]) -> DocumentWithVerification:
    verification = item["verification"]
    return DocumentWithVerification(
        **DocumentOut.model_validate(item["document"]).model_dump(),
        project_name=item["project_name"],
        subcontractor_name=item["subcontractor_name"],
        verification=VerificationOut.model_validate(verification) if verification is not None else None,
    )


@router.get("", response_model=DataResponse[list[DocumentWithVerification]])
async def list_documents(
    project_id: Optional[str] = Query(default=None, alias="projectId"),
    subcontractor_id: Optional[str] = Query(default=None, alias="subcontractorId"),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    items = await DocumentService(session, user).list_documents(
        project_id=project_id, subcontractor_id=subcontractor_id
    )
    return {"data": [_with_verification(i) for i in items]}


@router.post("", response_model=DataResponse[DocumentWithVerification], status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(..., description="Certificate of Currency (PDF, JPG, PNG or GIF, max 10MB)"),
    project_id: str = Form(default="", alias="projectId"),
    subcontractor_id: str = Form(default="", alias="subcontractorId"),
    user: User = Depends(require_roles(*UPLOADERS)),
    session: AsyncSession = Depends(get_db),
):
    """Store the file and, when AI is configured, process it immediately."""
    contents = await _validate_and_read_file(file)
    item = await DocumentService(session, user).upload(
        contents=contents,
        file_name=file.filename or "certificate",
        content_type=file.content_type,
        project_id=project_id,
        subcontractor_id=subcontractor_id,
    )
    return {"data": _with_verification(item)}


@router.get("/{document_id}", response_model=DataResponse[DocumentWithVerification])
async def get_document(
    document_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    item = await DocumentService(session, user).get_detail(document_id)
    return {"data": _with_verification(item)}


@router.post("/{document_id}/process", response_model=DataResponse[DocumentWithVerification])
async def process_document(
    document_id: str,
    user: User = Depends(require_roles(*UPLOADERS)),
    session: AsyncSession = Depends(get_db),
):
    item = await DocumentService(session, user).process(document_id)
    return {"data": _with_verification(item)}


@router.post("/{document_id}/verify", response_model=DataResponse[VerificationOut])
async def verify_document(
    document_id: str,
    body: VerifyRequest,
    user: User = Depends(require_roles(*PROJECT_EDITORS)),
    session: AsyncSession = Depends(get_db),
):
    verification = await DocumentService(session, user).manual_verify(document_id, body.action, body.notes)
    return {"data": VerificationOut.model_validate(verification)}


@router.get("/{document_id}/download")
async def download_document(
    document_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    stored = await DocumentService(session, user).download(document_id)
    return FileResponse(stored.path, media_type=stored.content_type, filename=stored.file_name)
