"""Extraction error taxonomy.

Each exception carries a message that is safe to show to the operator who
uploaded the document. Row-level and field-level problems are never raised;
they degrade to warnings on the draft instead.
"""

from typing import Optional


class ExtractionError(Exception):
    """Base class for failures that abort an extraction attempt."""

    error_code = "extraction_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnsupportedDocument(ExtractionError):
    """Upload has a type or size the pipeline cannot handle."""

    error_code = "unsupported_document"


class DocumentUnreadable(ExtractionError):
    """Document bytes could not be opened as a PDF or workbook.

    Fatal: raised before any model call, no partial extraction is kept.
    """

    error_code = "document_unreadable"


class ModelCallFailed(ExtractionError):
    """Language model call failed on every attempt."""

    error_code = "model_call_failed"

    def __init__(self, attempts: int, last_error: str):
        super().__init__(
            f"Model call failed after {attempts} attempts: {last_error}"
        )
        self.attempts = attempts
        self.last_error = last_error


class UnparsableReply(ExtractionError):
    """Model reply could not be recovered into a JSON object.

    Attributes:
        sample: Truncated excerpt of the offending reply
        parse_error: Message of the first (direct) parse failure
    """

    error_code = "unparsable_reply"
    SAMPLE_CHARS = 200

    def __init__(self, text: str, parse_error: str):
        self.sample = (text or "")[:self.SAMPLE_CHARS]
        self.parse_error = parse_error
        super().__init__(
            f"Model reply is not valid JSON ({parse_error}). Sample: {self.sample!r}"
        )


class DuplicateOrderReference(ExtractionError):
    """An order with the same ARC reference number already exists."""

    error_code = "duplicate_order_reference"

    def __init__(self, reference_number: str, existing_order_id: Optional[str] = None):
        super().__init__(
            f"An order with reference number {reference_number} already exists"
        )
        self.reference_number = reference_number
        self.existing_order_id = existing_order_id
