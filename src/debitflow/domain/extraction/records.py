"""Records handed to the order store."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, List, Optional
from uuid import UUID


@dataclass(frozen=True)
class OrderRecord:
    """Debit sheet header as persisted, summary fields included."""

    order_number: str
    reference_number: Optional[str]
    order_date: Optional[date]
    due_date: Optional[date]
    lead_time_days: Optional[int]
    client_name: str
    site_reference: str
    salesperson_code: str
    material_summary: str
    thickness_summary: str
    total_area_m2: float
    total_volume_m3: float
    declared_total_quantity: Optional[float]
    confidence: float
    needs_review: bool
    source_document: str
    user_id: Optional[UUID] = None


@dataclass(frozen=True)
class ExtractionLogEntry:
    """Immutable audit record of one extraction attempt.

    Attributes:
        timestamp: Start of the attempt (UTC)
        document_name: Uploaded filename
        method: ExtractionMethod value, or "none" if no draft was produced
        status: success / needs_review / error
        raw_model_sample: Truncated raw model reply, for replaying parser bugs
        parsed_draft: JSON-serialisable draft, None on failure
        warnings: Warnings surfaced to the user
        confidence: Overall confidence, None on failure
        duration_ms: Wall time of the attempt
        steps: Recorded ExtractionContext entries
        error_message: Failure message when status is error
        order_id: Committed order, None in preview or on failure
    """

    timestamp: datetime
    document_name: str
    method: str
    status: str
    raw_model_sample: Optional[str]
    parsed_draft: Optional[dict]
    warnings: List[str]
    confidence: Optional[float]
    duration_ms: int
    steps: List[dict] = field(default_factory=list)
    error_message: Optional[str] = None
    order_id: Optional[UUID] = None
    user_id: Optional[UUID] = None
    metadata: dict[str, Any] = field(default_factory=dict)
