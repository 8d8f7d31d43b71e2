"""Slab / block classification of debit sheet lines.

Material designations end with a stock code: a letter-plus-digit code
("GRANIT NOIR K2") denotes slab stock measured in m², a bare terminal Q
("MARBRE BLANC Q", "... PBQ") denotes block stock measured in m³.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from .models import LineItem, QuantityKind

logger = logging.getLogger(__name__)

# Any letter followed by digits (K2, A3, R10)
AREA_CODE_PATTERN = re.compile(r"\b[A-Z]\d+\b", re.IGNORECASE)
VOLUME_CODE_PATTERN = re.compile(r"Q$")

DEFAULT_BLOCK_THICKNESS_CM = 8.0


@dataclass(frozen=True)
class Classification:
    kind: QuantityKind
    anomaly: Optional[str] = None


def classify_material(
    material_name: str,
    thickness_cm: float = 0.0,
    block_threshold_cm: float = DEFAULT_BLOCK_THICKNESS_CM,
) -> Classification:
    """Decide whether a line is slab (area) or block (volume) stock.

    Codes matching neither pattern are classified by thickness when it is
    known (thick pieces are cut from blocks), otherwise as slab. Both cases
    carry an anomaly so the line is reviewed.

    Args:
        material_name: Material designation as printed
        thickness_cm: Piece thickness, 0 when unknown
        block_threshold_cm: Thickness from which unclassified lines are blocks

    Returns:
        Classification with the kind and an optional anomaly note
    """
    name = (material_name or "").strip()
    is_area = bool(AREA_CODE_PATTERN.search(name))
    is_volume = bool(VOLUME_CODE_PATTERN.search(name.upper()))

    if is_area and not is_volume:
        return Classification(QuantityKind.AREA)
    if is_volume and not is_area:
        return Classification(QuantityKind.VOLUME)
    if is_area and is_volume:
        return Classification(
            QuantityKind.AMBIGUOUS,
            f"Material '{name}' matches both slab and block codes; area and volume both computed",
        )

    label = f"'{name}'" if name else "(empty)"
    if thickness_cm and thickness_cm > 0:
        kind = QuantityKind.VOLUME if thickness_cm >= block_threshold_cm else QuantityKind.AREA
        return Classification(
            kind,
            f"Material {label} has no slab/block code; classified as {kind.value} "
            f"from thickness {thickness_cm:g} cm",
        )
    return Classification(
        QuantityKind.AREA,
        f"Material {label} has no slab/block code; defaulted to area",
    )


def compute_area(length_cm: float, width_cm: float, piece_count: float) -> float:
    return round(length_cm * width_cm * piece_count / 10_000, 4)


def compute_volume(length_cm: float, width_cm: float, thickness_cm: float, piece_count: float) -> float:
    return round(length_cm * width_cm * thickness_cm * piece_count / 1_000_000, 4)


def _first_positive(*values: Optional[float]) -> float:
    for value in values:
        if value is not None and value > 0:
            return value
    return 0.0


def assign_quantities(
    item: LineItem,
    declared_area: Optional[float] = None,
    declared_volume: Optional[float] = None,
    block_threshold_cm: float = DEFAULT_BLOCK_THICKNESS_CM,
) -> LineItem:
    """Populate area_m2 / volume_m3 according to the material classification.

    Preference order for the quantity: the per-line m²/m³ value reported for
    the line, then the line's declared quantity, then the figure computed from
    dimensions and piece count.

    Args:
        item: Line with dimensions and declared quantity set
        declared_area: m² printed/reported for the line, if any
        declared_volume: m³ printed/reported for the line, if any
        block_threshold_cm: See classify_material

    Returns:
        LineItem: Copy with exactly one of area/volume set, or both when
        the material code is ambiguous
    """
    classification = classify_material(item.material_name, item.thickness_cm, block_threshold_cm)
    anomalies = list(item.anomalies)
    if classification.anomaly:
        anomalies.append(classification.anomaly)

    area = compute_area(item.length_cm, item.width_cm, item.piece_count)
    volume = compute_volume(item.length_cm, item.width_cm, item.thickness_cm, item.piece_count)

    area_m2: Optional[float] = None
    volume_m3: Optional[float] = None

    if classification.kind == QuantityKind.AREA:
        area_m2 = _first_positive(declared_area, item.declared_quantity, area)
        if declared_volume:
            anomalies.append(f"Volume {declared_volume:g} m³ reported for slab material; ignored")
    elif classification.kind == QuantityKind.VOLUME:
        volume_m3 = _first_positive(declared_volume, item.declared_quantity, volume)
        if declared_area:
            anomalies.append(f"Area {declared_area:g} m² reported for block material; ignored")
    else:
        area_m2 = _first_positive(declared_area, area)
        volume_m3 = _first_positive(declared_volume, volume)

    return item.model_copy(update={
        "area_m2": area_m2,
        "volume_m3": volume_m3,
        "anomalies": anomalies,
    })
