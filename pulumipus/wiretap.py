"""
Wiretap: a structured record of what went to and came back from Copilot.

WireLog appends one JSONL entry per prompt sent and per assistant message
received, trace messages included (they are never rendered in chat, so this
is where they can be read). live_tap() pretty-prints the file, optionally
following it like `tail -f`.
"""

import json
import time
import logging
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

# ANSI colors
C_RESET = "\033[0m"
C_BOLD = "\033[1m"
C_DIM = "\033[2m"
C_PROMPT = "\033[96m"     # cyan
C_RESPONSE = "\033[93m"   # yellow
C_TRACE = "\033[90m"      # gray
C_STATUS = "\033[94m"     # blue
C_PROGRAM = "\033[92m"    # green
C_ORG = "\033[95m"        # magenta
C_BORDER = "\033[90m"

KIND_COLORS = {
    "prompt": C_PROMPT,
    "response": C_RESPONSE,
    "trace": C_TRACE,
    "status": C_STATUS,
    "program": C_PROGRAM,
}

MAX_CONTENT = 2000


class WireLog:
    """
    JSONL wire log.

    Format:
        {"ts": "...", "dir": "outbound|inbound", "kind": "...",
         "org": "...", "conv": "...", "len": 123, "content": "..."}
    """

    def __init__(self, log_path: str):
        self.log_path = Path(log_path)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self._file = None

    def _ensure_open(self):
        if self._file is None:
            self._file = open(self.log_path, "a", buffering=1)  # line-buffered

    def log(
        self,
        direction: str,  # "outbound" (us->Copilot) or "inbound" (Copilot->us)
        kind: str,
        content: str,
        org_id: str = "",
        conversation_id: str = "",
        language: str = "",
    ):
        self._ensure_open()
        entry = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "dir": direction,
            "kind": kind,
            "org": org_id or "",
            "conv": conversation_id or "",
            "len": len(content),
        }
        if language:
            entry["lang"] = language

        if len(content) <= MAX_CONTENT:
            entry["content"] = content
        else:
            dropped = len(content) - MAX_CONTENT
            entry["content"] = (
                content[: MAX_CONTENT // 2]
                + f"\n\n[... {dropped} chars truncated ...]\n\n"
                + content[-MAX_CONTENT // 2:]
            )

        self._file.write(json.dumps(entry, ensure_ascii=False) + "\n")

    def close(self):
        if self._file:
            self._file.close()
            self._file = None


def _format_entry(entry: dict, raw: bool = False) -> str:
    """Format a single wire log entry for display."""
    if raw:
        return json.dumps(entry, ensure_ascii=False)

    ts = entry.get("ts", "")
    try:
        time_str = datetime.fromisoformat(ts).strftime("%H:%M:%S")
    except (ValueError, TypeError):
        time_str = ts[:8] if ts else "??:??:??"

    kind = entry.get("kind", "?")
    color = KIND_COLORS.get(kind, C_RESET)
    arrow = f"{C_DIM}──▶{C_RESET}" if entry.get("dir") == "outbound" else f"{C_DIM}◀──{C_RESET}"

    header = f"  {C_DIM}{time_str}{C_RESET} {arrow} {color}{C_BOLD}{kind.upper()}{C_RESET}"
    if entry.get("org"):
        header += f"  {C_ORG}[{entry['org']}]{C_RESET}"
    if entry.get("lang"):
        header += f"  {C_PROGRAM}{entry['lang']}{C_RESET}"
    header += f"  {C_DIM}({entry.get('len', 0)} chars){C_RESET}"
    if entry.get("conv"):
        header += f"  {C_DIM}conv:{entry['conv'][:16]}{C_RESET}"

    lines = [header]
    content = entry.get("content", "")
    if content:
        content_lines = content.split("\n")
        for cline in content_lines[:15]:
            lines.append(f"      {cline[:200]}")
        if len(content_lines) > 15:
            lines.append(f"      {C_DIM}[... {len(content_lines) - 15} more lines]{C_RESET}")

    lines.append(f"  {C_BORDER}{'─' * 60}{C_RESET}")
    return "\n".join(lines)


def _print_line(line: str, kind_filter: str | None, raw: bool):
    line = line.strip()
    if not line:
        return
    try:
        entry = json.loads(line)
    except json.JSONDecodeError:
        return
    if kind_filter and entry.get("kind") != kind_filter:
        return
    print(_format_entry(entry, raw=raw))


def live_tap(
    log_path: str | None = None,
    follow: bool = True,
    last_n: int = 20,
    kind_filter: str | None = None,
    raw: bool = False,
):
    """
    Show the last `last_n` wire entries, then keep watching for new ones.

    Args:
        log_path: Path to wire.jsonl. If None, reads from config.
        follow: Keep watching the file (tail -f behavior).
        kind_filter: Only show entries of this kind (prompt, trace, ...).
        raw: Output raw JSONL instead of formatted.
    """
    if log_path is None:
        from pulumipus.config import get_config
        log_path = get_config()["wiretap"]["path"]

    wire_path = Path(log_path)
    if not wire_path.exists():
        print(f"  ✗  No wire log found at {wire_path}")
        print("     Chat with Copilot first: pulumipus chat")
        return

    if not raw:
        print(f"  ☎  Tapping into {wire_path}")
        print(f"  {C_BORDER}{'═' * 60}{C_RESET}")

    with open(wire_path) as f:
        all_lines = f.readlines()
    for line in all_lines[max(0, len(all_lines) - last_n):]:
        _print_line(line, kind_filter, raw)

    if not follow:
        return

    if not raw:
        print(f"\n  {C_DIM}[listening for new traffic... Ctrl+C to stop]{C_RESET}\n")

    try:
        with open(wire_path) as f:
            f.seek(0, 2)
            while True:
                line = f.readline()
                if not line:
                    time.sleep(0.1)
                    continue
                _print_line(line, kind_filter, raw)
    except KeyboardInterrupt:
        if not raw:
            print(f"\n  {C_DIM}[disconnected]{C_RESET}")
