from __future__ import annotations

import io
import json
import logging

import pytest

from subaccounts import logging as slog
from subaccounts.runtime.adapters import encode_calls

from .programs import ALICE


@pytest.fixture
def json_stream():
    stream = io.StringIO()
    slog.configure(json=True, level="DEBUG", stream=stream)
    return stream


def _records(stream):
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


def test_bind_and_scopes_restore_context():
    slog.clear_context()
    with slog.trace_scope("t1") as tid:
        assert tid == "t1"
        with slog.bound(owner=ALICE):
            assert slog.context()["owner"] == "0x" + ALICE.hex()
        assert "owner" not in slog.context()
        slog.bind(component="x")
        slog.unbind("component")
        assert slog.context() == {"trace_id": "t1"}
    assert slog.context() == {}


def test_json_formatter_includes_context_and_extras(json_stream):
    log = slog.get_logger("subaccounts.test")
    with slog.trace_scope("abc"):
        log.info("hello", extra={"global_id": 4, "adapter": b"\x01\x02"})
    (rec,) = _records(json_stream)
    assert rec["msg"] == "hello"
    assert rec["level"] == "INFO"
    assert rec["trace_id"] == "abc"
    assert rec["global_id"] == 4
    assert rec["adapter"] == "0x0102"


def test_text_formatter_line():
    stream = io.StringIO()
    record = logging.LogRecord("subaccounts.x", logging.WARNING, __file__, 1, "careful", (), None)
    line = slog.TextFormatter(stream).format(record)
    assert "WARN" in line
    assert line.endswith("| careful")


def test_non_atomic_failure_is_logged(json_stream, chain, registry, multicall, reverter):
    registry.register_new_account(ALICE)
    registry.execute_batch_non_atomic(
        ALICE, [multicall.address], [encode_calls([(reverter.address, 0, b"")])], [1]
    )
    warnings = [r for r in _records(json_stream) if r["level"] == "WARNING"]
    assert len(warnings) == 1
    assert warnings[0]["msg"] == "batch step failed"
    assert warnings[0]["global_id"] == 1
    assert warnings[0]["code"] == "FORWARD_FAILED"
