"""Lightweight command parsing helpers for inspx-dbg."""

from __future__ import annotations

import re
import shlex
from typing import List

_HEX_RE = re.compile(r"^0[xX][0-9a-fA-F]+$")
_DEC_RE = re.compile(r"^[0-9]+$")


def split_command(line: str) -> List[str]:
    """Split a command line into argv tokens using shlex rules."""
    if not line:
        return []
    try:
        return shlex.split(line, comments=False, posix=True)
    except ValueError as exc:
        return [line.strip(), f"#parse-error:{exc}"]


def parse_number(text: str) -> int:
    """Parse ``0x``-prefixed hex or plain decimal; raises ValueError otherwise."""
    value = text.strip()
    if _HEX_RE.match(value):
        return int(value, 16)
    if _DEC_RE.match(value):
        return int(value, 10)
    raise ValueError(f"invalid number: '{text}'")


__all__ = ["parse_number", "split_command"]
