"""Debit sheet extraction data model.

Every extraction path (model reply, layout fallback, spreadsheet template)
produces a DebitOrderDraft. Header values are wrapped in ExtractionField so
consumers can tell "present but uncertain" from "absent"; line items carry
one provenance envelope (confidence, source, anomalies) per row.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, Field, computed_field

class ExtractionSource(str, Enum):
    """Where an extracted value came from."""
    MODEL = "model"
    HEURISTIC = "heuristic"


class ExtractionMethod(str, Enum):
    """Path that produced the draft."""
    MODEL = "model"
    LAYOUT_FALLBACK = "layout_fallback"
    EXCEL_TEMPLATE = "excel_template"


class ExtractionStatus(str, Enum):
    """Outcome recorded in the extraction log."""
    SUCCESS = "success"
    NEEDS_REVIEW = "needs_review"
    ERROR = "error"


class QuantityKind(str, Enum):
    """Whether a line is measured in m² (slab) or m³ (block)."""
    AREA = "area"
    VOLUME = "volume"
    AMBIGUOUS = "ambiguous"


@dataclass(frozen=True)
class PositionedToken:
    """Text token with page coordinates (origin bottom-left)."""

    text: str
    x: float
    y: float
    width: float = 0.0
    height: float = 0.0
    page: int = 0


@dataclass(frozen=True)
class DocumentLayout:
    """Output of a layout extractor.

    Attributes:
        plain_text: Full document text, pages joined by newlines
        pages: Tokens per page in the producer's reading order
        sheet_names: Worksheet names (spreadsheets only)
    """

    plain_text: str
    pages: Tuple[Tuple[PositionedToken, ...], ...]
    sheet_names: Tuple[str, ...] = ()

    @property
    def token_count(self) -> int:
        return sum(len(page) for page in self.pages)


@dataclass(frozen=True)
class CatalogEntry:
    """Read-only snapshot of a catalog reference."""

    id: str
    code: str
    description: str = ""
    unit_weight: Optional[float] = None


class ExtractionField(BaseModel):
    """Extracted value with provenance.

    The value type depends on the header field: str for identifiers and
    names, date for dates, float for weights.
    """

    value: Optional[Any] = Field(None, description="Extracted value, None when absent")
    confidence: float = Field(0.0, ge=0.0, le=1.0, description="Advisory confidence")
    source: ExtractionSource = Field(ExtractionSource.MODEL, description="Producer of the value")
    anomalies: List[str] = Field(default_factory=list, description="Coercion notes")

    @property
    def is_present(self) -> bool:
        if self.value is None:
            return False
        if isinstance(self.value, str):
            return bool(self.value.strip())
        return True


class LineItem(BaseModel):
    """Single piece line of a debit sheet."""

    line_no: int = Field(..., description="Position in the document (1-based)")
    description: str = Field("", description="Item name / label")
    material_name: str = Field("", description="Material designation, carries the K/Q code")
    finish: str = Field("", description="Surface finish (Brut, Adoucie, Polie)")
    length_cm: float = Field(0.0, description="Length in cm")
    width_cm: float = Field(0.0, description="Width in cm")
    thickness_cm: float = Field(0.0, description="Thickness in cm")
    piece_count: int = Field(0, description="Number of pieces")
    declared_quantity: float = Field(0.0, description="Quantity printed on the line (m² or m³)")
    area_m2: Optional[float] = Field(None, description="Area for slab lines")
    volume_m3: Optional[float] = Field(None, description="Volume for block lines")
    edge: str = Field("", description="Edge finishing (chant)")
    sketch: str = Field("", description="Sketch reference (croquis)")
    appliance_number: str = Field("", description="Appliance number (spreadsheet template)")
    confidence: float = Field(1.0, ge=0.0, le=1.0)
    source: ExtractionSource = ExtractionSource.MODEL
    anomalies: List[str] = Field(default_factory=list)

    @property
    def reference_code(self) -> str:
        """Code matched against the catalog."""
        return self.material_name.strip()


class MatchedLineItem(LineItem):
    """Line item enriched with its catalog match."""

    catalog_id: Optional[str] = Field(None, description="Matched catalog reference id")
    matched: bool = Field(False, description="True when the reference code is in the catalog")


class DraftHeader(BaseModel):
    """Debit sheet header."""

    order_number: ExtractionField = Field(default_factory=ExtractionField)
    reference_number: ExtractionField = Field(
        default_factory=ExtractionField, description="ARC number, duplicate detection key"
    )
    order_date: ExtractionField = Field(default_factory=ExtractionField)
    due_date: ExtractionField = Field(default_factory=ExtractionField)
    client_name: ExtractionField = Field(default_factory=ExtractionField)
    site_reference: ExtractionField = Field(default_factory=ExtractionField)
    salesperson_code: ExtractionField = Field(default_factory=ExtractionField)
    weight_kg: ExtractionField = Field(default_factory=ExtractionField)

    def summary(self) -> dict[str, Any]:
        """Plain values for API payloads and logs."""
        return {
            "order_number": self.order_number.value,
            "reference_number": self.reference_number.value,
            "order_date": self.order_date.value.isoformat() if self.order_date.value else None,
            "due_date": self.due_date.value.isoformat() if self.due_date.value else None,
            "client_name": self.client_name.value,
            "site_reference": self.site_reference.value,
            "salesperson_code": self.salesperson_code.value,
        }


class DebitOrderDraft(BaseModel):
    """Canonical, in-memory result of one extraction."""

    header: DraftHeader = Field(default_factory=DraftHeader)
    items: List[LineItem] = Field(default_factory=list)
    declared_total_quantity: Optional[float] = Field(
        None, description="Cumulative quantity printed on the document"
    )
    overall_confidence: float = Field(0.0, ge=0.0, le=1.0)
    warnings: List[str] = Field(default_factory=list)
    method: ExtractionMethod = ExtractionMethod.MODEL

    @computed_field
    @property
    def computed_total_area(self) -> float:
        return round(sum(item.area_m2 or 0.0 for item in self.items), 3)

    @computed_field
    @property
    def computed_total_volume(self) -> float:
        return round(sum(item.volume_m3 or 0.0 for item in self.items), 3)

    def with_warnings(self, warnings: List[str]) -> "DebitOrderDraft":
        """Return a copy with extra warnings appended (duplicates skipped)."""
        merged = list(self.warnings)
        for warning in warnings:
            if warning not in merged:
                merged.append(warning)
        return self.model_copy(update={"warnings": merged})
