#!/usr/bin/env python3
"""Entry point for the inspx-dbg process inspector."""

from __future__ import annotations

from inspx_dbg import main

if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
