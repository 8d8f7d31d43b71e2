"""Unit tests for the immutable extraction context"""

from itertools import count

from debitflow.domain.extraction.context import ExtractionContext


def _clock():
    ticks = count()
    return lambda: next(ticks) * 0.5


class TestExtractionContext:

    def test_record_returns_new_context(self):
        context = ExtractionContext.start("fiche.pdf")
        updated = context.record("layout", tokens=12)

        assert context.entries == ()
        assert len(updated.entries) == 1
        assert updated.document_name == "fiche.pdf"

    def test_entries_kept_in_order(self):
        context = ExtractionContext.start("fiche.pdf")
        context = context.record("layout").record("model_call", status="failed").record("layout_fallback")

        assert [entry.step for entry in context.entries] == ["layout", "model_call", "layout_fallback"]
        assert context.last("model_call").status == "failed"
        assert context.last("commit") is None

    def test_elapsed_time_from_injected_clock(self):
        clock = _clock()
        context = ExtractionContext.start("fiche.pdf", clock=clock)
        context = context.record("layout", clock=clock)

        assert context.entries[0].elapsed_ms == 500

    def test_to_list_flattens_details(self):
        context = ExtractionContext.start("fiche.pdf").record("model_call", attempts=2, provider="fake")
        entry = context.to_list()[0]

        assert entry["step"] == "model_call"
        assert entry["status"] == "ok"
        assert entry["attempts"] == 2
        assert entry["provider"] == "fake"
