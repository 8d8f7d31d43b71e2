"""Extraction API endpoints.

POST /extractions runs one uploaded debit sheet through the pipeline.
GET /extractions/logs exposes the append-only extraction audit log.
"""

import logging
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from debitflow.auth.dependencies import CurrentUser, get_current_user
from debitflow.config import Settings, get_settings
from debitflow.database import get_db
from debitflow.dependencies import get_extraction_pipeline
from debitflow.domain.documents.models import SourceDocument
from debitflow.domain.documents.validation import (
    document_kind,
    resolve_mime_type,
    sanitize_filename,
    validate_file_size,
    validate_filename,
)
from debitflow.domain.extraction.models import ExtractionStatus
from debitflow.extraction.pipeline import ExtractionPipeline
from debitflow.infrastructure.repositories import ExtractionLogRepository
from .schemas import (
    ErrorResponse,
    ExtractionLogDetailResponse,
    ExtractionLogListResponse,
    ExtractionLogResponse,
    ExtractionResponse,
    HeaderSummary,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/extractions", tags=["extractions"])

MAX_LOG_PAGE_SIZE = 100

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    413: {"model": ErrorResponse},
    415: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}


def _read_upload(file: UploadFile, max_size: int) -> SourceDocument:
    """Validate an upload and load it as a SourceDocument.

    Raises:
        HTTPException 400: Bad filename or empty file
        HTTPException 413: File too large
        HTTPException 415: Not a PDF or XLSX document
    """
    filename = file.filename or ""
    is_valid, error = validate_filename(filename)
    if not is_valid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)

    mime_type = resolve_mime_type(file.content_type, filename)
    kind = document_kind(mime_type) if mime_type else None
    if kind is None:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=f"Unsupported file type: {file.content_type or 'unknown'} ({filename})",
        )

    content = file.file.read()
    is_valid, error = validate_file_size(len(content), max_size)
    if not is_valid:
        code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE if content else status.HTTP_400_BAD_REQUEST
        raise HTTPException(status_code=code, detail=error)

    return SourceDocument(
        content=content,
        filename=sanitize_filename(filename),
        mime_type=mime_type,
        kind=kind,
    )


@router.post("", response_model=ExtractionResponse, responses=_ERROR_RESPONSES)
def create_extraction(
    file: Annotated[UploadFile, File(...)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    pipeline: Annotated[ExtractionPipeline, Depends(get_extraction_pipeline)],
    settings: Annotated[Settings, Depends(get_settings)],
    preview: Annotated[bool, Form()] = False,
):
    """Extract one debit sheet (PDF or XLSX) and store it as an order.

    With preview=true the extraction and reconciliation run but nothing is
    persisted except the audit entry.

    Domain failures (unreadable document, model failure, duplicate ARC
    number) are turned into {success: false, error} responses by the
    application exception handlers.
    """
    document = _read_upload(file, settings.MAX_UPLOAD_SIZE_BYTES)
    logger.info(
        f"Extraction requested for {document.filename} ({document.size_bytes} bytes, preview={preview})",
        extra={"user_id": str(current_user.id), "document_name": document.filename},
    )

    outcome = pipeline.run(document, user_id=current_user.id, preview=preview)
    draft = outcome.draft

    return ExtractionResponse(
        order_id=outcome.order_id,
        items_count=len(outcome.items),
        total_area=draft.computed_total_area,
        total_volume=draft.computed_total_volume,
        confidence=draft.overall_confidence,
        warnings=outcome.warnings,
        processing_time_ms=outcome.duration_ms,
        extracted_header_summary=HeaderSummary(**draft.header.summary()),
        method=outcome.method.value,
        unknown_references=outcome.unknown_references,
        preview=outcome.preview,
    )


@router.get("/logs", response_model=ExtractionLogListResponse)
def list_extraction_logs(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    status_filter: Optional[ExtractionStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
):
    """List audit entries, newest first (limit capped at 100)."""
    limit = min(limit, MAX_LOG_PAGE_SIZE)
    repository = ExtractionLogRepository(db)
    logs, total = repository.list_logs(
        status=status_filter.value if status_filter else None,
        limit=limit,
        offset=offset,
    )
    return ExtractionLogListResponse(
        items=[ExtractionLogResponse(**log.to_dict()) for log in logs],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/logs/{log_id}", response_model=ExtractionLogDetailResponse, responses={404: {"model": ErrorResponse}})
def get_extraction_log(
    log_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Fetch one audit entry with its raw model sample, draft and steps."""
    log = ExtractionLogRepository(db).get_log(log_id)
    if log is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Extraction log {log_id} not found",
        )
    return ExtractionLogDetailResponse(**log.to_dict(include_draft=True))
