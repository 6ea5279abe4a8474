import json
import logging

from leadflow.logging_config import JSONFormatter, get_logger, lead_logger


def make_record(context=None):
    record = logging.LogRecord("leadflow.test", logging.INFO, __file__, 1, "Reply sent to %s", ("lead",), None)
    if context is not None:
        record.context = context
    return record


class TestJSONFormatter:
    def test_plain_record(self):
        line = json.loads(JSONFormatter().format(make_record()))

        assert line["level"] == "INFO"
        assert line["logger"] == "leadflow.test"
        assert line["message"] == "Reply sent to lead"
        assert "context" not in line

    def test_lead_ids_promoted_to_top_level(self):
        record = make_record({"tenant_id": "t-1", "lead_id": "l-1", "stage": "hot"})

        line = json.loads(JSONFormatter().format(record))

        assert line["tenant_id"] == "t-1"
        assert line["lead_id"] == "l-1"
        assert line["context"] == {"stage": "hot"}

    def test_cyrillic_kept_readable(self):
        record = logging.LogRecord("leadflow.test", logging.INFO, __file__, 1, "Сколько стоит?", None, None)

        assert "Сколько стоит?" in JSONFormatter().format(record)


class TestLeadLogger:
    def test_names_under_package(self):
        assert get_logger("orchestrator").name == "leadflow.orchestrator"

    def test_context_merged_over_lead_ids(self):
        adapter = lead_logger("orchestrator", "t-1", "l-1")

        msg, kwargs = adapter.process("Classified", {"context": {"stage": "warm"}})

        assert msg == "Classified"
        assert kwargs["extra"]["context"] == {"tenant_id": "t-1", "lead_id": "l-1", "stage": "warm"}

    def test_without_call_context(self):
        adapter = lead_logger("orchestrator", "t-1", "l-1")

        _, kwargs = adapter.process("Inbound recorded", {})

        assert kwargs["extra"]["context"] == {"tenant_id": "t-1", "lead_id": "l-1"}
