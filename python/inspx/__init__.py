"""
inspx - process inspection toolkit.

Shared back-end for the interactive inspector front-end (``inspx_dbg``):

    records.py    → catalog record variants and their rendering
    filters.py    → ``key<op>value`` filter expressions
    store.py      → paginated lib/field stores and the selection grammar
    navigator.py  → current selection and address arithmetic
    selector.py   → ``[store:]selection`` resolution with field fallback
    channel.py    → JSON-lines RPC channel to the in-process agent
    memory.py     → typed reads/writes behind protection checks
    memview.py    → hex/typed memory views with byte-order calibration
    client.py     → listing, thread, patch, hook, disassembly and scan wrappers
"""

from .channel import AgentChannel, Channel, ChannelConfig, ChannelError  # noqa: F401
from .client import AgentClient, HookConfig  # noqa: F401
from .filters import FilterCondition, FilterOperator, FilterSyntaxError, parse_filter_string  # noqa: F401
from .memory import ConversionError, MemoryAccessError, parse_value_type  # noqa: F401
from .memview import MemoryView, view_memory  # noqa: F401
from .navigator import Navigator  # noqa: F401
from .records import DataKind, Record, ValueType  # noqa: F401
from .selector import SelectorResolver  # noqa: F401
from .store import SelectionError, SelectionIndexError, Store, StoreIndexError  # noqa: F401

__all__ = [
    "AgentChannel",
    "AgentClient",
    "Channel",
    "ChannelConfig",
    "ChannelError",
    "ConversionError",
    "DataKind",
    "FilterCondition",
    "FilterOperator",
    "FilterSyntaxError",
    "HookConfig",
    "MemoryAccessError",
    "MemoryView",
    "Navigator",
    "Record",
    "SelectionError",
    "SelectionIndexError",
    "SelectorResolver",
    "Store",
    "StoreIndexError",
    "ValueType",
    "parse_filter_string",
    "parse_value_type",
    "view_memory",
]
