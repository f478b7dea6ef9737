"""
inspx-dbg CLI package.

Interactive front-end for the ``inspx`` toolkit: browse the lib/field stores,
move the navigator and read, write or dump target memory through the agent.
Use ``python -m inspx_dbg``, the ``inspx-dbg`` console script or
``python/inspx_dbg.py`` to launch it.
"""

from __future__ import annotations

from .cli import main

__all__ = ["main"]
__version__ = "0.1.0"
