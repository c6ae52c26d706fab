"""
Mint Orchestrator

Builds, submits and confirms a compressed NFT mint for the connected wallet.
Failures are classified and, for collection or authority failures, retried
exactly once with a request that carries no collection.
"""

import logging
import random
import time
from enum import Enum
from typing import Any, Callable, List, Optional, Protocol

from cnft_minter.config import MintConfig, MintVariant
from cnft_minter.core.error_classifier import classify, should_retry
from cnft_minter.core.mint_request import (
    MintRequest,
    MintResult,
    RequestShape,
    build_mint_request,
    explorer_url,
)
from cnft_minter.core.signature import normalize_signature
from cnft_minter.exceptions import (
    ClassifiedError,
    ConnectionRequiredError,
    DebounceRejectedError,
    ErrorKind,
    MissingSignatureError,
)
from cnft_minter.integrations.wallet import IdentityProvider
from cnft_minter.utils.logging_config import performance_logger

logger = logging.getLogger(__name__)


class TransactionSubmitter(Protocol):
    async def submit(self, request: MintRequest) -> Any: ...


class AttemptState(Enum):
    PRIMARY = "primary"
    ALTERNATE_RETRY = "alternate_retry"
    FAILED = "failed"


ATTEMPT_SHAPES = {
    AttemptState.PRIMARY: RequestShape.COLLECTION_UNVERIFIED,
    AttemptState.ALTERNATE_RETRY: RequestShape.NO_COLLECTION,
}


def next_state(state: AttemptState, kind: ErrorKind) -> AttemptState:
    """Transition after a failed attempt. Only the primary attempt may retry."""
    if state is AttemptState.PRIMARY and should_retry(kind):
        return AttemptState.ALTERNATE_RETRY
    return AttemptState.FAILED


class MintOrchestrator:
    """
    Mints one randomly chosen variant for the connected wallet.

    Calls within ``debounce_ms`` of the previous call are rejected outright
    with DebounceRejectedError; they are never queued.
    """

    def __init__(
        self,
        config: MintConfig,
        identity: IdentityProvider,
        submitter: TransactionSubmitter,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.identity = identity
        self.submitter = submitter
        self.rng = rng or random.Random()
        self.clock = clock
        self._last_invocation_ms: Optional[float] = None

    def _check_debounce(self):
        now_ms = self.clock() * 1000
        if self._last_invocation_ms is not None:
            elapsed = now_ms - self._last_invocation_ms
            if elapsed < self.config.debounce_ms:
                retry_after = int(self.config.debounce_ms - elapsed)
                logger.warning(f"MintOrchestrator: Mint requested too soon, retry in {retry_after} ms")
                raise DebounceRejectedError(retry_after_ms=retry_after)
        self._last_invocation_ms = now_ms

    def _require_identity(self) -> str:
        owner = self.identity.current_identity if self.identity.is_connected else None
        if not owner:
            logger.error("MintOrchestrator: No wallet connected")
            raise ConnectionRequiredError()
        return owner

    def select_variant(self) -> MintVariant:
        return self.rng.choice(self.config.variants)

    async def _submit(self, request: MintRequest, attempts: List[str]) -> MintResult:
        started = time.monotonic()
        try:
            raw = await self.submitter.submit(request)
        except Exception:
            performance_logger.log_submission(request.shape.value, (time.monotonic() - started) * 1000, False)
            raise
        performance_logger.log_submission(request.shape.value, (time.monotonic() - started) * 1000, True)

        signature = normalize_signature(raw)
        if not signature:
            raise MissingSignatureError(raw_message=repr(raw))

        return MintResult(
            signature=signature,
            uri=request.uri,
            explorer_url=explorer_url(self.config, signature),
            shape=request.shape,
            attempts=tuple(attempts),
        )

    def _classify_failure(self, error: Exception) -> ClassifiedError:
        if isinstance(error, ClassifiedError):
            return error

        raw_message = str(error)
        logs = getattr(error, "logs", None) or []
        logger.error(f"MintOrchestrator: Mint attempt failed: {raw_message}")
        for line in logs:
            logger.error(f"MintOrchestrator: Program log: {line}")
        return classify(raw_message, logs=list(logs))

    async def mint(self) -> MintResult:
        """
        Mint one variant for the connected wallet.

        Raises:
            DebounceRejectedError: called again inside the debounce window
            ConnectionRequiredError: no wallet identity is connected
            ClassifiedError: the mint failed; for a failed retry this is the
                classification of the primary attempt
        """
        self._check_debounce()
        owner = self._require_identity()

        variant = self.select_variant()
        logger.info(f"MintOrchestrator: Minting {variant.metadata_reference} for {owner}")

        state = AttemptState.PRIMARY
        first_failure: Optional[ClassifiedError] = None
        attempts: List[str] = []

        while state is not AttemptState.FAILED:
            shape = ATTEMPT_SHAPES[state]
            request = build_mint_request(self.config, variant, owner, shape)
            attempts.append(shape.value)

            try:
                result = await self._submit(request, attempts)
            except Exception as e:
                failure = self._classify_failure(e)
                if first_failure is None:
                    first_failure = failure
                state = next_state(state, failure.kind)
                if state is AttemptState.ALTERNATE_RETRY:
                    logger.warning(
                        f"MintOrchestrator: {failure.kind.value} on primary attempt, "
                        f"retrying without collection"
                    )
                continue

            logger.info(f"MintOrchestrator: Mint confirmed {result.signature} ({result.explorer_url})")
            return result

        logger.error(f"MintOrchestrator: Mint failed after {len(attempts)} attempt(s): {first_failure.message}")
        raise first_failure
