"""Heuristic header extraction for the layout fallback path.

Header values are read from the plain text with a regex cascade per field;
the ARC reference and the client name fall back to token positions when the
text alone is not enough (labels and values printed in separate boxes).
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .date_parser import parse_date
from .models import DraftHeader, ExtractionField, ExtractionSource, PositionedToken
from .number_parser import parse_number

logger = logging.getLogger(__name__)

HEURISTIC_FIELD_CONFIDENCE = 0.7
POSITIONAL_FIELD_CONFIDENCE = 0.5
MAX_SITE_LENGTH = 150

_DATE = r"(\d{2}/\d{2}/\d{4})"

HEADER_PATTERNS: List[Tuple[str, Tuple[re.Pattern, ...]]] = [
    ("order_number", (re.compile(r"\bOS\s*N°?\s*:?\s*([A-Z0-9]+)", re.IGNORECASE),)),
    ("reference_number", (
        re.compile(r"\bARC\s*N°?\s*:?\s*(\d+)", re.IGNORECASE),
        re.compile(r"\bARC\s*[N°:]*\s*(\d{4,6})", re.IGNORECASE),
    )),
    ("order_date", (re.compile(r"\bDu\s*:?\s*" + _DATE, re.IGNORECASE),)),
    ("due_date", (re.compile(r"D[ée]lai\s*:?\s*" + _DATE, re.IGNORECASE),)),
    ("weight_kg", (re.compile(r"Poids\s*:?\s*([\d.,]+)", re.IGNORECASE),)),
    ("declared_total", (re.compile(r"Cumul\s+Qt[ée]\s*:?\s*([\d.,]+)", re.IGNORECASE),)),
    ("salesperson_code", (re.compile(r"\bResp\s*:?\s*([A-Z]+)", re.IGNORECASE),)),
]

LABEL_PREFIX = re.compile(
    r"^(Resp|Cial|Commercial|OS|N°|D[ée]lai|Poids|Cumul|Du|ARC|Page|Feuille|DBPM|Item|Mat[ée]riaux|Chantier)",
    re.IGNORECASE,
)
_NUMERIC_ONLY = re.compile(r"^[\d\s.,/:]+$")
_SITE = re.compile(r"Chantier\s*:?\s*([^\n]+)", re.IGNORECASE)
_SITE_STOP = re.compile(r"\s+Resp|Item|Mat[ée]riaux", re.IGNORECASE)
_CHANTIER_LABEL = re.compile(r"Chantier\s*:", re.IGNORECASE)
_ARC_VALUE = re.compile(r"^\d{4,6}$")

# Vertical window (points) in which a label and its value are considered aligned
ARC_LABEL_WINDOW = 30.0
CLIENT_WINDOW_BELOW = 100.0
CLIENT_WINDOW_ABOVE = 50.0
CLIENT_MAX_X_DISTANCE = 300.0


@dataclass(frozen=True)
class HeaderParseResult:
    header: DraftHeader
    declared_total: Optional[float]


def _first_match(text: str, patterns: Sequence[re.Pattern]) -> str:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match.group(1).strip()
    return ""


def extract_client_from_text(text: str) -> str:
    """Client name: the closest non-label line above "Chantier :"."""
    label = _CHANTIER_LABEL.search(text)
    if not label:
        return ""

    for line in reversed(text[:label.start()].splitlines()):
        candidate = line.strip()
        if not candidate or LABEL_PREFIX.match(candidate):
            continue
        if re.match(r"^\d+[.,]\d+$", candidate) or re.match(r"^\d{2}/\d{2}/\d{4}$", candidate):
            continue
        if 3 < len(candidate) < MAX_SITE_LENGTH:
            return candidate
    return ""


def extract_site_from_text(text: str) -> str:
    match = _SITE.search(text)
    if not match:
        return ""
    site = _SITE_STOP.split(match.group(1).strip())[0].strip()
    return site[:MAX_SITE_LENGTH]


def extract_reference_from_tokens(pages: Sequence[Sequence[PositionedToken]]) -> str:
    """ARC number printed in its own box next to (or under) the "ARC" label."""
    for tokens in pages:
        labels = [t for t in tokens if "arc" in t.text.lower()]
        if not labels:
            continue
        for token in tokens:
            if not _ARC_VALUE.match(token.text.strip()):
                continue
            if any(abs(label.y - token.y) < ARC_LABEL_WINDOW for label in labels):
                return token.text.strip()
    return ""


def extract_client_from_tokens(pages: Sequence[Sequence[PositionedToken]]) -> str:
    """Client name near the "Chantier" label, preferring the closest line."""
    for tokens in pages:
        anchor = next((t for t in tokens if "chantier" in t.text.lower()), None)
        if anchor is None:
            continue

        candidates = [
            t for t in tokens
            if anchor.y - CLIENT_WINDOW_BELOW < t.y < anchor.y + CLIENT_WINDOW_ABOVE
            and abs(t.x - anchor.x) < CLIENT_MAX_X_DISTANCE
            and 3 < len(t.text.strip()) < 100
            and not LABEL_PREFIX.match(t.text.strip())
            and not _NUMERIC_ONLY.match(t.text)
        ]
        candidates.sort(key=lambda t: abs(t.y - anchor.y))
        if candidates:
            return candidates[0].text.strip()
    return ""


def _field(value, confidence: float, anomalies: Optional[List[str]] = None) -> ExtractionField:
    present = value is not None and value != ""
    return ExtractionField(
        value=value,
        confidence=confidence if present else 0.0,
        source=ExtractionSource.HEURISTIC,
        anomalies=anomalies or [],
    )


def parse_header(text: str, pages: Sequence[Sequence[PositionedToken]] = ()) -> HeaderParseResult:
    """Extract the debit sheet header from plain text and token positions.

    Args:
        text: Document plain text
        pages: Positioned tokens, used for the ARC and client fallbacks

    Returns:
        HeaderParseResult with a heuristic-sourced DraftHeader and the
        declared cumulative quantity (None when not printed or zero)
    """
    raw = {name: _first_match(text, patterns) for name, patterns in HEADER_PATTERNS}

    reference = raw["reference_number"]
    reference_confidence = HEURISTIC_FIELD_CONFIDENCE
    if not reference:
        reference = extract_reference_from_tokens(pages)
        reference_confidence = POSITIONAL_FIELD_CONFIDENCE
        if reference:
            logger.info(f"ARC number found from token positions: {reference}")

    client = extract_client_from_text(text)
    client_confidence = HEURISTIC_FIELD_CONFIDENCE
    if not client:
        client = extract_client_from_tokens(pages)
        client_confidence = POSITIONAL_FIELD_CONFIDENCE

    date_fields = {}
    for name in ("order_date", "due_date"):
        parsed = parse_date(raw[name]) if raw[name] else None
        anomalies = [f"{name}: '{raw[name]}' is not a recognised date"] if raw[name] and parsed is None else []
        date_fields[name] = _field(parsed, HEURISTIC_FIELD_CONFIDENCE, anomalies)

    declared_total = parse_number(raw["declared_total"]) if raw["declared_total"] else None

    header = DraftHeader(
        order_number=_field(raw["order_number"], HEURISTIC_FIELD_CONFIDENCE),
        reference_number=_field(reference, reference_confidence),
        order_date=date_fields["order_date"],
        due_date=date_fields["due_date"],
        client_name=_field(client, client_confidence),
        site_reference=_field(extract_site_from_text(text), HEURISTIC_FIELD_CONFIDENCE),
        salesperson_code=_field(raw["salesperson_code"], HEURISTIC_FIELD_CONFIDENCE),
        weight_kg=_field(parse_number(raw["weight_kg"]) if raw["weight_kg"] else None, HEURISTIC_FIELD_CONFIDENCE),
    )
    return HeaderParseResult(header=header, declared_total=declared_total or None)
