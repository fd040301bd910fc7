from __future__ import annotations

from typing import Dict, Protocol, runtime_checkable

from loguru import logger

from common.errors import ValidationError
from policy.types import AssetInfo


@runtime_checkable
class AssetRegistry(Protocol):
    def lookup_handler(self, asset: str) -> AssetInfo:
        ...

    def is_paused(self) -> bool:
        ...


class InMemoryAssetRegistry:
    """Handle -> {enabled, adapter} table plus the protocol-wide pause flag."""

    def __init__(self) -> None:
        self._entries: Dict[str, AssetInfo] = {}
        self._paused = False

    def register(self, handle: str, handler, enabled: bool = True) -> None:
        if not handle:
            raise ValidationError("ZeroAddress", "handle must be set")
        self._entries[handle] = AssetInfo(enabled=enabled, handler=handler)
        logger.info("Registered {} (enabled={})", handle, enabled)

    def set_enabled(self, handle: str, enabled: bool) -> None:
        info = self._entries.get(handle)
        if info is None:
            raise ValidationError("TokenNotEnabled", f"{handle} is not registered")
        self._entries[handle] = AssetInfo(enabled=enabled, handler=info.handler)

    def lookup_handler(self, asset: str) -> AssetInfo:
        return self._entries.get(asset, AssetInfo(enabled=False))

    def pause(self) -> None:
        self._paused = True
        logger.warning("Protocol paused")

    def unpause(self) -> None:
        self._paused = False
        logger.info("Protocol unpaused")

    def is_paused(self) -> bool:
        return self._paused
