"""
Wallet identity providers.

The orchestrator only reads ``is_connected`` and ``current_identity``;
connecting stays with the caller.
"""

import logging
from typing import Optional, Protocol, runtime_checkable

from solders.pubkey import Pubkey

logger = logging.getLogger(__name__)


@runtime_checkable
class IdentityProvider(Protocol):
    @property
    def is_connected(self) -> bool: ...

    @property
    def current_identity(self) -> Optional[str]: ...

    async def connect(self) -> None: ...

    async def disconnect(self) -> None: ...


class InMemoryIdentityProvider:
    """Identity provider backed by a known public key, for servers and tests."""

    def __init__(self, public_key: Optional[str] = None, connected: bool = False):
        self._public_key = str(Pubkey.from_string(public_key)) if public_key else None
        self._connected = connected and self._public_key is not None

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def current_identity(self) -> Optional[str]:
        return self._public_key if self._connected else None

    async def connect(self) -> None:
        if not self._public_key:
            raise ConnectionError("No wallet identity available to connect.")
        self._connected = True
        logger.info(f"InMemoryIdentityProvider: Connected wallet {self._public_key}")

    async def disconnect(self) -> None:
        if self._connected:
            logger.info(f"InMemoryIdentityProvider: Disconnected wallet {self._public_key}")
        self._connected = False
