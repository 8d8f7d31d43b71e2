"""Confidence scoring for heuristic drafts.

Model drafts carry the model's own confidence. Drafts built by the layout
fallback or the spreadsheet template get a completeness score instead:

- header_confidence = present critical fields / critical fields
- line_confidence = avg(present essential fields / essential fields)
- overall_confidence = 0.4 * header_confidence + 0.6 * line_confidence

Confidence is advisory; it never blocks persistence.
"""

from typing import List, Tuple

from .models import DraftHeader, LineItem

HEADER_FIELDS = ("reference_number", "order_number", "client_name", "due_date")


def calculate_header_confidence(header: DraftHeader) -> float:
    present = sum(1 for name in HEADER_FIELDS if getattr(header, name).is_present)
    return present / len(HEADER_FIELDS)


def calculate_line_confidence(line: LineItem) -> float:
    """Essential fields: material, dimensions, piece count, quantity."""
    checks = [
        bool(line.material_name),
        line.length_cm > 0 and line.width_cm > 0,
        line.piece_count > 0,
        bool(line.area_m2) or bool(line.volume_m3),
    ]
    return sum(checks) / len(checks)


def calculate_lines_confidence(lines: List[LineItem]) -> float:
    if not lines:
        return 0.0
    return sum(calculate_line_confidence(line) for line in lines) / len(lines)


def calculate_confidence(
    header: DraftHeader,
    lines: List[LineItem],
    header_weight: float = 0.4,
    lines_weight: float = 0.6,
) -> Tuple[float, dict]:
    """Calculate overall completeness confidence.

    Args:
        header: Draft header
        lines: Draft line items
        header_weight: Weight for header score (default 0.4)
        lines_weight: Weight for lines score (default 0.6)

    Returns:
        Tuple of (overall_score, breakdown_dict)

    Raises:
        ValueError: If weights do not sum to 1.0
    """
    if abs(header_weight + lines_weight - 1.0) > 0.01:
        raise ValueError(f"Weights must sum to 1.0, got {header_weight + lines_weight}")

    header_score = calculate_header_confidence(header)
    lines_score = calculate_lines_confidence(lines)
    overall = round(header_weight * header_score + lines_weight * lines_score, 3)

    return overall, {
        "header_score": round(header_score, 3),
        "lines_score": round(lines_score, 3),
        "line_count": len(lines),
    }
