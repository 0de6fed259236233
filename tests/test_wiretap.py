"""
Tests for the wire log and its formatter.
"""

import json
import pytest
from pathlib import Path
from pulumipus.wiretap import WireLog, _format_entry, live_tap


@pytest.fixture
def wire_log(tmp_path):
    """Create a WireLog writing to a temp file."""
    return WireLog(str(tmp_path / "logs" / "wire.jsonl"))


def test_wire_log_writes_jsonl(wire_log):
    wire_log.log(direction="outbound", kind="prompt", content="list my stacks",
                 org_id="acme", conversation_id="conv-1")
    wire_log.log(direction="inbound", kind="program", content="import pulumi",
                 org_id="acme", conversation_id="conv-1", language="python")
    wire_log.close()

    lines = Path(wire_log.log_path).read_text().strip().split("\n")
    assert len(lines) == 2

    first = json.loads(lines[0])
    assert first["dir"] == "outbound"
    assert first["kind"] == "prompt"
    assert first["org"] == "acme"
    assert first["content"] == "list my stacks"

    second = json.loads(lines[1])
    assert second["lang"] == "python"


def test_wire_log_truncates_long_content(wire_log):
    wire_log.log(direction="inbound", kind="trace", content="x" * 5000)
    wire_log.close()

    entry = json.loads(Path(wire_log.log_path).read_text().strip())
    assert len(entry["content"]) < 5000
    assert "truncated" in entry["content"]
    assert entry["len"] == 5000


def test_format_entry_raw():
    entry = {"ts": "2026-01-01T00:00:00+00:00", "kind": "trace", "content": "test"}
    assert json.loads(_format_entry(entry, raw=True)) == entry


def test_format_entry_fancy():
    entry = {
        "ts": "2026-01-01T12:30:00+00:00",
        "dir": "inbound",
        "kind": "status",
        "org": "acme",
        "conv": "conv-1",
        "len": 11,
        "content": "Thinking...",
    }
    result = _format_entry(entry)
    assert "STATUS" in result
    assert "Thinking..." in result
    assert "acme" in result
    assert "12:30:00" in result


def test_live_tap_filters_by_kind(wire_log, capsys):
    wire_log.log(direction="inbound", kind="trace", content="trace-line")
    wire_log.log(direction="inbound", kind="response", content="answer-line")
    wire_log.close()

    live_tap(str(wire_log.log_path), follow=False, kind_filter="trace", raw=True)
    out = capsys.readouterr().out
    assert "trace-line" in out
    assert "answer-line" not in out


def test_live_tap_missing_file(tmp_path, capsys):
    live_tap(str(tmp_path / "nope.jsonl"), follow=False)
    assert "No wire log" in capsys.readouterr().out
