"""
Tests for structured JSON logging.
"""
import json
import logging
import sys

from leadsync.utils.logging import (
    StructuredJsonFormatter,
    correlation_id_ctx,
    generate_correlation_id,
    lead_log_context,
    set_correlation_id,
)


def _record(msg="Lead %s processed", args=("L1",), **extra):
    record = logging.LogRecord("leadsync.test", logging.INFO, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredJsonFormatter:
    def test_single_line_json(self):
        token = correlation_id_ctx.set("cid-1")
        try:
            line = StructuredJsonFormatter().format(_record())
        finally:
            correlation_id_ctx.reset(token)

        entry = json.loads(line)
        assert "\n" not in line
        assert entry["level"] == "INFO"
        assert entry["module"] == "leadsync.test"
        assert entry["message"] == "Lead L1 processed"
        assert entry["correlation_id"] == "cid-1"

    def test_pipeline_extras_are_promoted(self):
        entry = json.loads(StructuredJsonFormatter().format(
            _record(automation_id="a-1", lead_id="L1", provider="google", unrelated="x"),
        ))
        assert entry["automation_id"] == "a-1"
        assert entry["lead_id"] == "L1"
        assert entry["provider"] == "google"
        assert "unrelated" not in entry

    def test_exception_is_included(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord(
                "leadsync.test", logging.ERROR, __file__, 1, "failed", (), sys.exc_info(),
            )
        entry = json.loads(StructuredJsonFormatter().format(record))
        assert "RuntimeError: boom" in entry["exception"]


class TestCorrelationIds:
    def test_generated_ids_are_unique_hex(self):
        first, second = generate_correlation_id(), generate_correlation_id()
        assert first != second
        assert len(first) == 32
        int(first, 16)

    def test_set_correlation_id(self):
        token = correlation_id_ctx.set(None)
        try:
            set_correlation_id("abc")
            assert correlation_id_ctx.get() == "abc"
        finally:
            correlation_id_ctx.reset(token)


class TestLeadLogContext:
    def test_bound_fields_appear_on_records(self):
        with lead_log_context(lead_id="L1", page_id="P1"):
            with lead_log_context(automation_id="a-1"):
                entry = json.loads(StructuredJsonFormatter().format(_record()))
        assert entry["lead_id"] == "L1"
        assert entry["page_id"] == "P1"
        assert entry["automation_id"] == "a-1"

    def test_context_is_reset_after_block(self):
        with lead_log_context(lead_id="L1"):
            pass
        entry = json.loads(StructuredJsonFormatter().format(_record()))
        assert "lead_id" not in entry

    def test_explicit_extra_wins(self):
        with lead_log_context(lead_id="L1"):
            entry = json.loads(StructuredJsonFormatter().format(_record(lead_id="L2")))
        assert entry["lead_id"] == "L2"

    def test_empty_values_are_not_bound(self):
        with lead_log_context(lead_id="", form_id="F1"):
            entry = json.loads(StructuredJsonFormatter().format(_record()))
        assert "lead_id" not in entry
        assert entry["form_id"] == "F1"
