"""Debit sheet extraction pipeline.

Method selection:
    1. Spreadsheet carrying the DBPM template sheet -> template parser
    2. Otherwise the model path (document inline or text excerpt)
    3. When the model path is unavailable, fails or returns no items and the
       fallback is enabled -> header regexes + layout parser (+ text lines)

The draft is then reconciled against a catalog snapshot, committed unless
preview is requested, and exactly one audit entry is appended whatever the
outcome.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple
from uuid import UUID

from debitflow.domain.ai.ports import LLMProviderPort, LLMReply
from debitflow.domain.documents.models import DocumentKind, SourceDocument
from debitflow.domain.documents.validation import validate_file_size
from debitflow.domain.extraction.confidence import calculate_confidence
from debitflow.domain.extraction.context import ExtractionContext
from debitflow.domain.extraction.excel_template import SheetGrid, find_template_sheet, parse_template
from debitflow.domain.extraction.exceptions import (
    ExtractionError,
    ModelCallFailed,
    UnparsableReply,
    UnsupportedDocument,
)
from debitflow.domain.extraction.header_parser import parse_header
from debitflow.domain.extraction.layout_parser import parse_from_layout, parse_items_from_text
from debitflow.domain.extraction.models import (
    DebitOrderDraft,
    DocumentLayout,
    DraftHeader,
    ExtractionMethod,
    ExtractionStatus,
    MatchedLineItem,
)
from debitflow.domain.extraction.ports import CatalogStorePort, LayoutExtractorPort
from debitflow.domain.extraction.reconciliation import reconcile
from debitflow.domain.extraction.records import ExtractionLogEntry
from debitflow.domain.extraction.reply_parser import parse_model_reply_with_stage
from debitflow.infrastructure.extractors import ExcelLayoutExtractor, get_layout_extractor, read_workbook

from .gateway import OrderGateway
from .model_client import ModelExtractionClient
from .prompts import (
    DEBIT_SHEET_EXTRACT_V1_SYSTEM,
    DEBIT_SHEET_PROMPT_VERSION,
    build_document_prompt,
    build_text_prompt,
)

logger = logging.getLogger(__name__)

NO_METHOD = "none"


@dataclass
class ExtractionOutcome:
    """Result of one pipeline run.

    Attributes:
        order_id: Committed debit sheet, None in preview
        draft: Reconciled draft (warnings include reconciliation warnings)
        items: Line items with their catalog match
        unknown_references: Codes absent from the catalog, verbatim
        status: success or needs_review
        duration_ms: Wall time of the run
        log_id: Audit entry id, None if the audit write failed
    """

    order_id: Optional[UUID]
    draft: DebitOrderDraft
    items: List[MatchedLineItem]
    unknown_references: List[str]
    status: ExtractionStatus
    duration_ms: int
    preview: bool = False
    log_id: Optional[UUID] = None

    @property
    def method(self) -> ExtractionMethod:
        return self.draft.method

    @property
    def warnings(self) -> List[str]:
        return self.draft.warnings


@dataclass
class _Acquisition:
    """Draft produced by one extraction method, or the error that prevented one."""

    context: ExtractionContext
    draft: Optional[DebitOrderDraft] = None
    raw_reply: Optional[str] = None
    error: Optional[ExtractionError] = None
    notes: List[str] = field(default_factory=list)


def merge_headers(primary: DraftHeader, secondary: DraftHeader) -> DraftHeader:
    """Field-wise merge: keep primary values that are present, fill the rest."""
    merged = {}
    for name in DraftHeader.model_fields:
        value = getattr(primary, name)
        merged[name] = value if value.is_present else getattr(secondary, name)
    return DraftHeader(**merged)


class ExtractionPipeline:
    """Runs one document through extraction, reconciliation and persistence."""

    def __init__(
        self,
        gateway: OrderGateway,
        catalog: CatalogStorePort,
        model_client: Optional[ModelExtractionClient] = None,
        fallback_enabled: bool = True,
        reconciliation_tolerance: float = 0.05,
        row_tolerance: float = 3.0,
        block_threshold_cm: float = 8.0,
        raw_sample_chars: int = 1000,
        max_upload_size: int = 20 * 1024 * 1024,
        extractor_for: Callable[[str], Optional[LayoutExtractorPort]] = get_layout_extractor,
    ):
        self.gateway = gateway
        self.catalog = catalog
        self.model_client = model_client
        self.fallback_enabled = fallback_enabled
        self.reconciliation_tolerance = reconciliation_tolerance
        self.row_tolerance = row_tolerance
        self.block_threshold_cm = block_threshold_cm
        self.raw_sample_chars = raw_sample_chars
        self.max_upload_size = max_upload_size
        self._extractor_for = extractor_for
        self._spreadsheet_extractor = ExcelLayoutExtractor()

    @classmethod
    def from_settings(
        cls,
        settings,
        gateway: OrderGateway,
        catalog: CatalogStorePort,
        provider: Optional[LLMProviderPort] = None,
    ) -> "ExtractionPipeline":
        model_client = None
        if provider is not None:
            model_client = ModelExtractionClient(
                provider,
                max_attempts=settings.LLM_MAX_ATTEMPTS,
                retry_delay_base=settings.LLM_RETRY_BASE_DELAY,
            )
        return cls(
            gateway=gateway,
            catalog=catalog,
            model_client=model_client,
            fallback_enabled=settings.FALLBACK_ENABLED,
            reconciliation_tolerance=settings.RECONCILIATION_TOLERANCE,
            row_tolerance=settings.ROW_TOLERANCE,
            block_threshold_cm=settings.BLOCK_THICKNESS_THRESHOLD_CM,
            raw_sample_chars=settings.RAW_SAMPLE_CHARS,
            max_upload_size=settings.MAX_UPLOAD_SIZE_BYTES,
        )

    def run(
        self,
        document: SourceDocument,
        user_id: Optional[UUID] = None,
        preview: bool = False,
    ) -> ExtractionOutcome:
        """Extract, reconcile and (unless preview) commit one document.

        Args:
            document: Uploaded document
            user_id: Submitting user, recorded on the order and the audit entry
            preview: Skip persistence of the order (the audit entry is still written)

        Returns:
            ExtractionOutcome

        Raises:
            UnsupportedDocument: Type or size cannot be handled
            DocumentUnreadable: The bytes cannot be opened
            ModelCallFailed: Model retries exhausted and no fallback result
            UnparsableReply: Model reply unrecoverable and no fallback result
            DuplicateOrderReference: The ARC number is already on file
        """
        context = ExtractionContext.start(document.filename)
        log_context = {"document_name": document.filename, "user_id": str(user_id) if user_id else None}
        draft: Optional[DebitOrderDraft] = None
        raw_reply: Optional[str] = None
        order_id: Optional[UUID] = None

        try:
            self._validate(document)
            layout, template, context = self._extract_layout(document, context)

            acquisition = self._acquire_draft(document, layout, template, context)
            context, raw_reply = acquisition.context, acquisition.raw_reply
            if acquisition.error is not None:
                raise acquisition.error
            draft = acquisition.draft
            if acquisition.notes:
                draft = draft.with_warnings(acquisition.notes)

            reconciliation = reconcile(draft, self.catalog.list_entries(), self.reconciliation_tolerance)
            draft = draft.with_warnings(reconciliation.warnings)
            context = context.record(
                "reconcile",
                matched=sum(1 for item in reconciliation.items if item.matched),
                unknown_references=len(reconciliation.unknown_references),
                warnings=len(draft.warnings),
            )

            if preview:
                context = context.record("commit", status="skipped", reason="preview")
            else:
                order_id = self.gateway.commit(draft, reconciliation.items, user_id, document.filename)
                context = context.record("commit", order_id=str(order_id))
        except Exception as e:
            context = context.record("failed", status="error", error_type=type(e).__name__)
            message = e.message if isinstance(e, ExtractionError) else f"Unexpected error: {e}"
            logger.warning(
                f"Extraction failed: {message}",
                extra={**log_context, "error_type": type(e).__name__},
            )
            self._append_log(
                document, context, user_id, preview,
                status=ExtractionStatus.ERROR,
                draft=draft,
                raw_reply=raw_reply,
                error_message=message,
            )
            raise

        status = ExtractionStatus.NEEDS_REVIEW if draft.warnings else ExtractionStatus.SUCCESS
        log_id = self._append_log(
            document, context, user_id, preview,
            status=status,
            draft=draft,
            raw_reply=raw_reply,
            order_id=order_id,
        )
        duration_ms = context.elapsed_ms()
        logger.info(
            f"Extraction finished: {status.value}, {len(draft.items)} items, {len(draft.warnings)} warnings",
            extra={**log_context, "method": draft.method.value, "duration_ms": duration_ms},
        )

        return ExtractionOutcome(
            order_id=order_id,
            draft=draft,
            items=reconciliation.items,
            unknown_references=reconciliation.unknown_references,
            status=status,
            duration_ms=duration_ms,
            preview=preview,
            log_id=log_id,
        )

    def _validate(self, document: SourceDocument) -> None:
        if document.kind not in (DocumentKind.PDF, DocumentKind.SPREADSHEET):
            raise UnsupportedDocument(f"Unsupported document type: {document.mime_type}")
        is_valid, error = validate_file_size(document.size_bytes, self.max_upload_size)
        if not is_valid:
            raise UnsupportedDocument(error)

    def _extract_layout(
        self,
        document: SourceDocument,
        context: ExtractionContext,
    ) -> Tuple[DocumentLayout, Optional[SheetGrid], ExtractionContext]:
        template = None
        if document.kind == DocumentKind.SPREADSHEET:
            sheets = read_workbook(document.content)
            template = find_template_sheet(sheets)
            layout = self._spreadsheet_extractor.layout_from_sheets(sheets)
        else:
            extractor = self._extractor_for(document.mime_type)
            if extractor is None:
                raise UnsupportedDocument(f"No extractor for {document.mime_type}")
            layout = extractor.extract(document.content)

        context = context.record(
            "layout",
            pages=len(layout.pages),
            tokens=layout.token_count,
            template=template is not None,
        )
        return layout, template, context

    def _acquire_draft(
        self,
        document: SourceDocument,
        layout: DocumentLayout,
        template: Optional[SheetGrid],
        context: ExtractionContext,
    ) -> _Acquisition:
        if template is not None:
            draft = parse_template(template, self.block_threshold_cm)
            context = context.record("template", items=len(draft.items))
            logger.info(
                "Spreadsheet template detected, model call skipped",
                extra={"document_name": document.filename, "method": draft.method.value},
            )
            return _Acquisition(context=context, draft=draft)

        model_draft: Optional[DebitOrderDraft] = None
        model_error: Optional[ExtractionError] = None
        raw_reply: Optional[str] = None
        notes: List[str] = []

        if self.model_client is None:
            context = context.record("model_call", status="skipped", reason="no provider configured")
        else:
            try:
                reply, context = self._call_model(document, layout, context)
                raw_reply = reply.text
                model_draft, context = self._parse_reply(reply, context)
            except (ModelCallFailed, UnparsableReply) as e:
                model_error = e
                step = "model_parse" if isinstance(e, UnparsableReply) else "model_call"
                context = context.record(step, status="failed", error_type=type(e).__name__)

        if model_draft is not None and model_draft.items:
            return _Acquisition(context=context, draft=model_draft, raw_reply=raw_reply)

        if not self.fallback_enabled:
            if model_error is not None:
                return _Acquisition(context=context, raw_reply=raw_reply, error=model_error)
            if model_draft is not None:
                return _Acquisition(context=context, draft=model_draft, raw_reply=raw_reply)
            return _Acquisition(
                context=context,
                error=ExtractionError("No model provider is configured and the layout fallback is disabled"),
            )

        if model_error is not None:
            notes.append(f"Model extraction failed ({model_error.message}); used layout fallback")
        elif model_draft is not None:
            notes.append("Model returned no line items; used layout fallback")

        draft, context = self._extract_via_layout(layout, model_draft, context)
        if not draft.items and model_error is not None:
            logger.warning(
                "Layout fallback recovered no items, surfacing the model error",
                extra={"document_name": document.filename},
            )
            return _Acquisition(context=context, raw_reply=raw_reply, error=model_error)

        logger.info(
            f"Layout fallback used: {len(draft.items)} items",
            extra={"document_name": document.filename, "method": draft.method.value},
        )
        return _Acquisition(context=context, draft=draft, raw_reply=raw_reply, notes=notes)

    def _call_model(
        self,
        document: SourceDocument,
        layout: DocumentLayout,
        context: ExtractionContext,
    ) -> Tuple[LLMReply, ExtractionContext]:
        if self.model_client.should_inline(document):
            prompt = build_document_prompt()
        else:
            prompt = build_text_prompt(layout.plain_text)

        outcome = self.model_client.extract_via_model(document, prompt, DEBIT_SHEET_EXTRACT_V1_SYSTEM)
        reply = outcome.reply
        context = context.record(
            "model_call",
            attempts=outcome.attempts,
            provider=reply.provider,
            model=reply.model,
            prompt_version=DEBIT_SHEET_PROMPT_VERSION,
            tokens_out=reply.tokens_out,
        )
        return reply, context

    def _parse_reply(self, reply: LLMReply, context: ExtractionContext) -> Tuple[DebitOrderDraft, ExtractionContext]:
        draft, stage = parse_model_reply_with_stage(reply.text, self.block_threshold_cm)
        context = context.record("model_parse", repair_stage=stage, items=len(draft.items))
        if reply.truncated:
            draft = draft.with_warnings(["Model reply was cut off at the token limit; some lines may be missing"])
        return draft, context

    def _extract_via_layout(
        self,
        layout: DocumentLayout,
        model_draft: Optional[DebitOrderDraft],
        context: ExtractionContext,
    ) -> Tuple[DebitOrderDraft, ExtractionContext]:
        parsed_header = parse_header(layout.plain_text, layout.pages)
        header = parsed_header.header
        declared_total = parsed_header.declared_total
        if model_draft is not None:
            header = merge_headers(model_draft.header, header)
            declared_total = model_draft.declared_total_quantity or declared_total

        result = parse_from_layout(layout.pages, self.row_tolerance, self.block_threshold_cm)
        source = "tokens"
        if not result.items:
            text_result = parse_items_from_text(layout.plain_text, self.block_threshold_cm)
            if text_result.items:
                result.warnings.extend(text_result.warnings)
                result.items = text_result.items
                source = "text"

        context = context.record(
            "layout_fallback",
            source=source,
            items=len(result.items),
            rows_dropped=result.rows_dropped,
        )
        draft = DebitOrderDraft(
            header=header,
            items=result.items,
            declared_total_quantity=declared_total,
            overall_confidence=calculate_confidence(header, result.items)[0],
            warnings=list(result.warnings),
            method=ExtractionMethod.LAYOUT_FALLBACK,
        )
        return draft, context

    def _append_log(
        self,
        document: SourceDocument,
        context: ExtractionContext,
        user_id: Optional[UUID],
        preview: bool,
        status: ExtractionStatus,
        draft: Optional[DebitOrderDraft] = None,
        raw_reply: Optional[str] = None,
        order_id: Optional[UUID] = None,
        error_message: Optional[str] = None,
    ) -> Optional[UUID]:
        entry = ExtractionLogEntry(
            timestamp=context.started_at,
            document_name=document.filename,
            method=draft.method.value if draft is not None else NO_METHOD,
            status=status.value,
            raw_model_sample=raw_reply[:self.raw_sample_chars] if raw_reply else None,
            parsed_draft=draft.model_dump(mode="json") if draft is not None else None,
            warnings=list(draft.warnings) if draft is not None else [],
            confidence=draft.overall_confidence if draft is not None else None,
            duration_ms=context.elapsed_ms(),
            steps=context.to_list(),
            error_message=error_message,
            order_id=order_id,
            user_id=user_id,
            metadata={
                "preview": preview,
                "mime_type": document.mime_type,
                "size_bytes": document.size_bytes,
            },
        )
        return self.gateway.append_extraction_log(entry)
