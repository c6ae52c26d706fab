"""
Minting session wiring.

Ties a wallet, the image resolver and the mint orchestrator together for a
single client session: preview tiles for every variant, a mint action, and a
preview of the freshly minted item.
"""

import asyncio
import logging
from typing import Callable, List, Optional

from cnft_minter.config import AppConfig, get_settings
from cnft_minter.core.image_resolver import MetadataImageResolver, PreviewSlot, variant_label
from cnft_minter.core.mint_orchestrator import MintOrchestrator, TransactionSubmitter
from cnft_minter.core.mint_request import MintResult
from cnft_minter.exceptions import ConnectionRequiredError
from cnft_minter.integrations.mint_service_client import MintServiceClient
from cnft_minter.integrations.wallet import IdentityProvider

logger = logging.getLogger(__name__)


class MintSession:
    """One client session: previews plus minting for a single wallet."""

    def __init__(
        self,
        identity: IdentityProvider,
        config: Optional[AppConfig] = None,
        resolver: Optional[MetadataImageResolver] = None,
        submitter: Optional[TransactionSubmitter] = None,
        orchestrator: Optional[MintOrchestrator] = None,
    ):
        self.config = config or get_settings()
        self.identity = identity
        self.resolver = resolver or MetadataImageResolver(self.config.gateway)
        self.submitter = submitter or MintServiceClient(self.config.mint)
        self.orchestrator = orchestrator or MintOrchestrator(self.config.mint, identity, self.submitter)
        self.slots: List[PreviewSlot] = []
        self.last_result: Optional[MintResult] = None
        self.minted_slot: Optional[PreviewSlot] = None

    async def load_previews(self, on_change: Optional[Callable[[PreviewSlot], None]] = None) -> List[PreviewSlot]:
        """Create and resolve one preview slot per configured variant."""
        for slot in self.slots:
            slot.teardown()
        self.slots = [
            PreviewSlot(self.resolver, reference, on_change)
            for reference in self.config.variant_references()
        ]
        await asyncio.gather(*(slot.refresh() for slot in self.slots))
        return self.slots

    async def _connect(self):
        logger.info("MintSession: Wallet not connected, connecting")
        try:
            await self.identity.connect()
        except Exception as e:
            logger.error(f"MintSession: Wallet connect failed: {e}")
            raise ConnectionRequiredError("Failed to connect wallet.") from e

    async def mint(self) -> MintResult:
        """
        Mint for the wallet and start resolving the minted image.

        A disconnected wallet is connected first and the mint then proceeds.
        A failed connect raises ConnectionRequiredError without submitting.
        """
        if not self.identity.is_connected:
            await self._connect()

        if self.minted_slot:
            self.minted_slot.teardown()
            self.minted_slot = None

        result = await self.orchestrator.mint()
        self.last_result = result
        logger.info(
            f"MintSession: Minted {variant_label(result.uri, self.config.gateway.document_extension)} "
            f"({result.signature})"
        )
        self.minted_slot = PreviewSlot(self.resolver, result.uri)
        await self.minted_slot.refresh()
        return result

    async def close(self):
        for slot in self.slots:
            slot.teardown()
        if self.minted_slot:
            self.minted_slot.teardown()
        await self.resolver.aclose()
        aclose = getattr(self.submitter, "aclose", None)
        if aclose is not None:
            await aclose()
