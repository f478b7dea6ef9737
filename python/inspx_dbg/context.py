"""Inspector session state shared by all commands."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from inspx.channel import AgentChannel, Channel, ChannelConfig, ChannelError
from inspx.client import AgentClient
from inspx.memory import ConversionError, address_of
from inspx.navigator import Navigator
from inspx.records import Record, ValueType
from inspx.selector import SelectorResolver
from inspx.store import SelectionError, Store

from .parser import parse_number

LOGGER = logging.getLogger("inspx_dbg.context")


@dataclass
class SessionContext:
    """Holds the stores, navigator and agent connection of one REPL session."""

    host: str = "127.0.0.1"
    port: int = 27070
    json_output: bool = False
    call_timeout: Optional[float] = None
    aliases: Dict[str, str] = field(default_factory=dict)
    lib_store: Store = field(default_factory=lambda: Store("Lib"))
    field_store: Store = field(default_factory=lambda: Store("Field"))
    navigator: Navigator = field(default_factory=Navigator)
    scan_type: ValueType = ValueType.INT
    patches: Dict[int, bytes] = field(default_factory=dict)
    _channel: Optional[Channel] = field(default=None, init=False, repr=False)
    _client: Optional[AgentClient] = field(default=None, init=False, repr=False)

    def ensure_channel(self) -> Channel:
        """Create the agent channel if needed; it connects on first call."""
        if self._channel is None:
            config = ChannelConfig(host=self.host, port=self.port, call_timeout=self.call_timeout)
            self._channel = AgentChannel(config)
            LOGGER.debug("agent channel configured for %s:%s", self.host, self.port)
        return self._channel

    @property
    def client(self) -> AgentClient:
        channel = self.ensure_channel()
        if self._client is None or self._client.channel is not channel:
            self._client = AgentClient(channel)
        return self._client

    def disconnect(self) -> None:
        channel = self._channel
        if not channel:
            return
        try:
            channel.close()
        except OSError as exc:
            LOGGER.debug("channel close failed: %s", exc)
        self._channel = None
        self._client = None

    # ------------------------------------------------------------------
    # Aliases
    # ------------------------------------------------------------------
    def resolve_alias(self, name: str) -> str:
        return self.aliases.get(name, name)

    def set_alias(self, alias: str, command: str) -> None:
        if alias == command:
            self.aliases.pop(alias, None)
            return
        self.aliases[alias] = command

    def list_aliases(self) -> Dict[str, str]:
        return dict(self.aliases)

    # ------------------------------------------------------------------
    # Selection helpers
    # ------------------------------------------------------------------
    @property
    def resolver(self) -> SelectorResolver:
        return SelectorResolver(self.lib_store, self.field_store)

    def store(self, name: str) -> Optional[Store]:
        return self.resolver.store_for(name)

    def resolve(self, selector: str) -> List[Record]:
        return self.resolver.resolve(selector)

    def address_from_selection(self, target: str) -> int:
        """
        Address for memory commands: selector first, then a literal number.

        Zero is rejected either way.
        """
        try:
            records = self.resolve(target)
        except SelectionError as exc:
            try:
                address = parse_number(target)
            except ValueError:
                raise ConversionError(f"Invalid address: {target} ({exc})") from None
        else:
            address = address_of(records[0])
        if address == 0:
            raise ConversionError("Address cannot be zero")
        return address

    def resolve_target_address(self, target: str) -> int:
        """Address for hook/disassembly/goto: number, then selector, then agent symbol lookup."""
        try:
            return parse_number(target)
        except ValueError:
            pass
        try:
            records = self.resolve(target)
        except SelectionError as exc:
            try:
                address = self.client.find_symbol(target)
            except ChannelError:
                raise exc from None
            if address is None:
                raise SelectionError(f"Symbol not found: {target}") from None
            return address
        return address_of(records[0])

    def navigator_address(self) -> int:
        record = self.navigator.get()
        if record is None:
            raise SelectionError("Nothing selected")
        address = address_of(record)
        if address == 0:
            raise ConversionError("Address cannot be zero")
        return address


__all__ = ["SessionContext"]
