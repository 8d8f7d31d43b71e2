"""Extraction API schemas - Request/response models for extraction endpoints.

The upload response uses camelCase keys; audit log responses keep the
column names.
"""

from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class HeaderSummary(BaseModel):
    """Plain header values of the extracted debit sheet."""

    order_number: Optional[str] = None
    reference_number: Optional[str] = None
    order_date: Optional[str] = None
    due_date: Optional[str] = None
    client_name: Optional[str] = None
    site_reference: Optional[str] = None
    salesperson_code: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ExtractionResponse(BaseModel):
    """Success payload of POST /extractions.

    Attributes:
        order_id: Committed debit sheet, null in preview mode
        items_count: Number of line items
        total_area: Sum of line areas (m²)
        total_volume: Sum of line volumes (m³)
        confidence: Overall draft confidence
        warnings: Reconciliation and parsing warnings
        processing_time_ms: Wall time of the extraction
        extracted_header_summary: Header values
        method: model, layout_fallback or excel_template
        unknown_references: Reference codes absent from the catalog
    """

    success: bool = True
    order_id: Optional[UUID] = None
    items_count: int
    total_area: float
    total_volume: float
    confidence: float
    warnings: List[str] = Field(default_factory=list)
    processing_time_ms: int
    extracted_header_summary: HeaderSummary
    method: str
    unknown_references: List[str] = Field(default_factory=list)
    preview: bool = False

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ErrorResponse(BaseModel):
    """Failure payload shared by every endpoint."""

    success: bool = False
    error: str


class ExtractionLogResponse(BaseModel):
    """One audit log entry."""

    id: UUID
    created_at: datetime
    user_id: Optional[UUID] = None
    document_name: str
    method: str
    status: str
    warnings: List[str] = Field(default_factory=list)
    confidence: Optional[float] = None
    duration_ms: int
    error_message: Optional[str] = None
    order_id: Optional[UUID] = None


class ExtractionLogDetailResponse(ExtractionLogResponse):
    """Audit log entry with the forensic fields."""

    raw_model_sample: Optional[str] = None
    parsed_draft: Optional[Any] = None
    steps: List[Any] = Field(default_factory=list)
    metadata: Optional[dict] = None


class ExtractionLogListResponse(BaseModel):
    """Paginated audit log entries, newest first."""

    items: List[ExtractionLogResponse]
    total: int
    limit: int
    offset: int
