"""Model reply parsing into a DebitOrderDraft.

The reply is first recovered into a JSON object (json_repair), then passed
through a pydantic coercion layer that accepts the shape variations models
produce: French or English keys, accents and casing differences, header
fields nested under "header", numbers as strings with comma decimals.
Each field is coerced independently; a bad field becomes a default value
plus an anomaly, never an exception.
"""

import logging
import re
import unicodedata
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .date_parser import parse_date
from .json_repair import load_reply_json
from .material_classifier import DEFAULT_BLOCK_THICKNESS_CM, assign_quantities
from .models import (
    DebitOrderDraft,
    DraftHeader,
    ExtractionField,
    ExtractionMethod,
    ExtractionSource,
    LineItem,
)
from .number_parser import parse_number

logger = logging.getLogger(__name__)

DEFAULT_MODEL_CONFIDENCE = 0.8

HEADER_KEYS = {
    "numeroos": "order_number",
    "os": "order_number",
    "ordernumber": "order_number",
    "numeroarc": "reference_number",
    "arc": "reference_number",
    "referencenumber": "reference_number",
    "datearc": "order_date",
    "date": "order_date",
    "orderdate": "order_date",
    "delai": "due_date",
    "duedate": "due_date",
    "client": "client_name",
    "clientname": "client_name",
    "chantier": "site_reference",
    "site": "site_reference",
    "sitereference": "site_reference",
    "commercial": "salesperson_code",
    "resp": "salesperson_code",
    "salespersoncode": "salesperson_code",
    "poids": "weight_kg",
    "weight": "weight_kg",
    "cumulqte": "declared_total",
    "cumulquantite": "declared_total",
    "declaredtotalquantity": "declared_total",
}

ITEM_KEYS = {
    "item": "description",
    "description": "description",
    "designation": "description",
    "materiaux": "material_name",
    "materiau": "material_name",
    "matiere": "material_name",
    "material": "material_name",
    "materialname": "material_name",
    "finition": "finish",
    "finish": "finish",
    "longueur": "length_cm",
    "length": "length_cm",
    "lengthcm": "length_cm",
    "largeur": "width_cm",
    "width": "width_cm",
    "widthcm": "width_cm",
    "epaisseur": "thickness_cm",
    "thickness": "thickness_cm",
    "thicknesscm": "thickness_cm",
    "quantite": "piece_count",
    "piececount": "piece_count",
    "qte": "declared_quantity",
    "quantity": "declared_quantity",
    "declaredquantity": "declared_quantity",
    "m2item": "declared_area",
    "m2": "declared_area",
    "aream2": "declared_area",
    "m3item": "declared_volume",
    "m3": "declared_volume",
    "volumem3": "declared_volume",
    "chant": "edge",
    "edge": "edge",
    "croquis": "sketch",
    "sketch": "sketch",
}

ITEM_LIST_KEYS = ("items", "lignes", "lines", "articles")


def _normalise_key(key: Any) -> str:
    decomposed = unicodedata.normalize("NFKD", str(key))
    ascii_key = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return re.sub(r"[^a-z0-9]", "", ascii_key.lower())


def _rename_keys(data: Dict[str, Any], mapping: Dict[str, str]) -> Dict[str, Any]:
    renamed: Dict[str, Any] = {}
    for key, value in data.items():
        target = mapping.get(_normalise_key(key))
        if target and target not in renamed:
            renamed[target] = value
    return renamed


def _coerce_text(raw: Any, name: str, anomalies: List[str]) -> str:
    if raw is None:
        return ""
    if isinstance(raw, (dict, list)):
        anomalies.append(f"{name}: unexpected {type(raw).__name__}, ignored")
        return ""
    # Collapse line breaks and runs of spaces from multi-line PDF cells
    return " ".join(str(raw).split())


def _coerce_number(raw: Any, name: str, anomalies: List[str], default: Optional[float] = 0.0) -> Optional[float]:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    number = parse_number(raw)
    if number is None:
        anomalies.append(f"{name}: '{raw}' is not a number, defaulted to {default}")
        return default
    return number


class ReplyLine(BaseModel):
    """One item of the model reply after coercion."""

    model_config = ConfigDict(extra="ignore")

    description: str = ""
    material_name: str = ""
    finish: str = ""
    length_cm: float = 0.0
    width_cm: float = 0.0
    thickness_cm: float = 0.0
    piece_count: int = 0
    declared_quantity: float = 0.0
    declared_area: Optional[float] = None
    declared_volume: Optional[float] = None
    edge: str = ""
    sketch: str = ""
    anomalies: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def coerce_fields(cls, data: Any) -> Dict[str, Any]:
        if not isinstance(data, dict):
            return {"anomalies": [f"item is not an object: {str(data)[:50]!r}"]}

        fields = _rename_keys(data, ITEM_KEYS)
        anomalies: List[str] = []
        coerced: Dict[str, Any] = {}
        for name in ("description", "material_name", "finish", "edge", "sketch"):
            coerced[name] = _coerce_text(fields.get(name), name, anomalies)
        for name in ("length_cm", "width_cm", "thickness_cm", "declared_quantity"):
            coerced[name] = _coerce_number(fields.get(name), name, anomalies)
        for name in ("declared_area", "declared_volume"):
            coerced[name] = _coerce_number(fields.get(name), name, anomalies, default=None)
        coerced["piece_count"] = int(_coerce_number(fields.get("piece_count"), "piece_count", anomalies))
        coerced["anomalies"] = anomalies
        return coerced

    @property
    def is_blank(self) -> bool:
        return not (
            self.description or self.material_name or self.length_cm
            or self.width_cm or self.declared_quantity or self.piece_count
        )


class ReplyPayload(BaseModel):
    """Whole model reply after coercion."""

    model_config = ConfigDict(extra="ignore")

    order_number: str = ""
    reference_number: str = ""
    order_date: str = ""
    due_date: str = ""
    client_name: str = ""
    site_reference: str = ""
    salesperson_code: str = ""
    weight_kg: Optional[float] = None
    declared_total: Optional[float] = None
    lines: List[ReplyLine] = Field(default_factory=list)
    confidence: float = DEFAULT_MODEL_CONFIDENCE
    warnings: List[str] = Field(default_factory=list)
    header_anomalies: Dict[str, List[str]] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def coerce_fields(cls, data: Any) -> Dict[str, Any]:
        if not isinstance(data, dict):
            return {}

        flat = dict(data)
        nested = data.get("header") or data.get("entete")
        if isinstance(nested, dict):
            flat.update(nested)
        fields = _rename_keys(flat, HEADER_KEYS)

        header_anomalies: Dict[str, List[str]] = {}
        coerced: Dict[str, Any] = {}
        for name in ("order_number", "reference_number", "order_date", "due_date",
                     "client_name", "site_reference", "salesperson_code"):
            anomalies: List[str] = []
            coerced[name] = _coerce_text(fields.get(name), name, anomalies)
            if anomalies:
                header_anomalies[name] = anomalies
        for name in ("weight_kg", "declared_total"):
            anomalies = []
            coerced[name] = _coerce_number(fields.get(name), name, anomalies, default=None)
            if anomalies:
                header_anomalies[name] = anomalies

        lines: Any = []
        for key in ITEM_LIST_KEYS:
            if key in data:
                lines = data[key]
                break
        if not isinstance(lines, list):
            header_anomalies.setdefault("items", []).append("items is not a list, ignored")
            lines = []
        coerced["lines"] = lines

        coerced["confidence"] = _coerce_confidence(data.get("confidence"))
        raw_warnings = data.get("warnings") or []
        if isinstance(raw_warnings, str):
            raw_warnings = [raw_warnings]
        coerced["warnings"] = [str(w) for w in raw_warnings if isinstance(w, (str, int, float)) and str(w).strip()]
        coerced["header_anomalies"] = header_anomalies
        return coerced


def _coerce_confidence(raw: Any) -> float:
    value = parse_number(raw)
    if value is None:
        return DEFAULT_MODEL_CONFIDENCE
    if 1.0 < value <= 100.0:
        # Percentage
        value = value / 100.0
    return min(max(value, 0.0), 1.0)


def _text_field(value: str, confidence: float, anomalies: Optional[List[str]] = None) -> ExtractionField:
    return ExtractionField(
        value=value,
        confidence=confidence if value else 0.0,
        source=ExtractionSource.MODEL,
        anomalies=anomalies or [],
    )


def _date_field(raw: str, name: str, confidence: float) -> ExtractionField:
    if not raw:
        return ExtractionField(value=None, confidence=0.0, source=ExtractionSource.MODEL)
    parsed = parse_date(raw)
    if parsed is None:
        return ExtractionField(
            value=None,
            confidence=0.0,
            source=ExtractionSource.MODEL,
            anomalies=[f"{name}: '{raw}' is not a recognised date"],
        )
    return ExtractionField(value=parsed, confidence=confidence, source=ExtractionSource.MODEL)


def build_draft(
    payload: Dict[str, Any],
    block_threshold_cm: float = DEFAULT_BLOCK_THICKNESS_CM,
) -> DebitOrderDraft:
    """Coerce a recovered JSON object into a draft.

    Args:
        payload: Object returned by load_reply_json
        block_threshold_cm: Passed to the material classifier

    Returns:
        DebitOrderDraft with method=model; coercion problems are listed in
        warnings and on the affected fields/lines
    """
    reply = ReplyPayload.model_validate(payload)
    confidence = reply.confidence
    anomalies = reply.header_anomalies

    header = DraftHeader(
        order_number=_text_field(reply.order_number, confidence, anomalies.get("order_number")),
        reference_number=_text_field(reply.reference_number, confidence, anomalies.get("reference_number")),
        order_date=_date_field(reply.order_date, "order_date", confidence),
        due_date=_date_field(reply.due_date, "due_date", confidence),
        client_name=_text_field(reply.client_name, confidence, anomalies.get("client_name")),
        site_reference=_text_field(reply.site_reference, confidence, anomalies.get("site_reference")),
        salesperson_code=_text_field(reply.salesperson_code, confidence, anomalies.get("salesperson_code")),
        weight_kg=ExtractionField(
            value=reply.weight_kg,
            confidence=confidence if reply.weight_kg is not None else 0.0,
            source=ExtractionSource.MODEL,
            anomalies=anomalies.get("weight_kg", []),
        ),
    )

    warnings = list(reply.warnings)
    for name in ("order_date", "due_date"):
        warnings.extend(getattr(header, name).anomalies)
    for name, notes in anomalies.items():
        warnings.extend(note for note in notes if note not in warnings)

    items: List[LineItem] = []
    for index, line in enumerate(reply.lines, start=1):
        if line.is_blank:
            reasons = "; ".join(line.anomalies) or "no usable data"
            warnings.append(f"Item {index} skipped: {reasons}")
            continue
        line_no = len(items) + 1
        item = LineItem(
            line_no=line_no,
            description=line.description,
            material_name=line.material_name,
            finish=line.finish,
            length_cm=line.length_cm,
            width_cm=line.width_cm,
            thickness_cm=line.thickness_cm,
            piece_count=line.piece_count,
            declared_quantity=line.declared_quantity,
            edge=line.edge,
            sketch=line.sketch,
            confidence=confidence,
            source=ExtractionSource.MODEL,
            anomalies=line.anomalies,
        )
        item = assign_quantities(
            item,
            declared_area=line.declared_area,
            declared_volume=line.declared_volume,
            block_threshold_cm=block_threshold_cm,
        )
        warnings.extend(f"Line {line_no}: {note}" for note in item.anomalies)
        items.append(item)

    declared_total = reply.declared_total if reply.declared_total else None

    return DebitOrderDraft(
        header=header,
        items=items,
        declared_total_quantity=declared_total,
        overall_confidence=confidence,
        warnings=warnings,
        method=ExtractionMethod.MODEL,
    )


def parse_model_reply_with_stage(
    text: str,
    block_threshold_cm: float = DEFAULT_BLOCK_THICKNESS_CM,
) -> Tuple[DebitOrderDraft, str]:
    """Parse a reply and report which repair stage recovered it."""
    payload, stage = load_reply_json(text)
    draft = build_draft(payload, block_threshold_cm=block_threshold_cm)
    logger.info(
        f"Parsed model reply: {len(draft.items)} items, repair stage '{stage}'"
    )
    return draft, stage


def parse_model_reply(
    text: str,
    block_threshold_cm: float = DEFAULT_BLOCK_THICKNESS_CM,
) -> DebitOrderDraft:
    """Parse the raw model reply into a DebitOrderDraft.

    Raises:
        UnparsableReply: The reply holds no recoverable JSON object
    """
    draft, _ = parse_model_reply_with_stage(text, block_threshold_cm)
    return draft
