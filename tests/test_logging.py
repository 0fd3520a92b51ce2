import asyncio
import json
import logging

import pytest

from app.core.logging import ContextFilter, LogContext, StructuredFormatter, current_log_context


def test_nested_contexts_merge_and_restore():
    with LogContext(conversation_id="c1"):
        with LogContext(state="processing_edit"):
            assert current_log_context() == {"conversation_id": "c1", "state": "processing_edit"}
        assert current_log_context() == {"conversation_id": "c1"}
    assert current_log_context() == {}


@pytest.mark.asyncio
async def test_context_does_not_leak_between_tasks():
    seen = {}

    async def job(name):
        with LogContext(job=name):
            await asyncio.sleep(0)
            seen[name] = current_log_context()

    await asyncio.gather(job("edit"), job("video"))

    assert seen == {"edit": {"job": "edit"}, "video": {"job": "video"}}


def test_structured_record_carries_context():
    record = logging.LogRecord("dreamr.test", logging.INFO, __file__, 1, "hello", None, None)

    with LogContext(conversation_id="c1", phone="+15551234567"):
        ContextFilter().filter(record)

    payload = json.loads(StructuredFormatter().format(record))
    assert payload["message"] == "hello"
    assert payload["conversation_id"] == "c1"
    assert payload["phone"] == "+15551234567"
