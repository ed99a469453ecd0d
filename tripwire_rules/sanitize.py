from __future__ import annotations

import re
from typing import Any

MAX_LOGGED_CHARS = 1000

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")
_NEWLINE_RE = re.compile(r"[\r\n]+")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    try:
        return str(value)
    except Exception:
        return ""


def prevent_log_injection(value: Any, *, max_len: int = MAX_LOGGED_CHARS) -> str:
    """
    Neutralize attacker-controlled text before it lands in a log line (CWE-117).

      - ANSI escapes      -> [ANSI]
      - CR / LF runs      -> " [NEWLINE] "
      - other C0/C1 chars -> [CTRL-XX]

    Result is capped at max_len characters ("..." suffix when cut).
    """
    s = _to_text(value)
    if not s:
        return s

    s = _ANSI_RE.sub("[ANSI]", s)
    s = _NEWLINE_RE.sub(" [NEWLINE] ", s)
    s = _CONTROL_RE.sub(lambda m: f"[CTRL-{ord(m.group(0)):02X}]", s)

    if len(s) > max_len:
        s = s[: max_len - 3] + "..."
    return s
