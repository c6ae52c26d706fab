"""
Mint Service Client

Submits mint requests to the mint relay service, which signs, sends and
confirms the Bubblegum transaction on our behalf.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from cnft_minter.config import MintConfig
from cnft_minter.core.mint_request import MintRequest
from cnft_minter.exceptions import SubmissionError

logger = logging.getLogger(__name__)


class MintServiceClient:
    """Client for the internal mint relay service."""

    def __init__(
        self,
        config: MintConfig,
        api_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the mint relay client.

        Args:
            config: Mint configuration carrying the relay URL and send options
            api_key: Optional API key for authenticating with the relay
            client: Optional preconfigured httpx client
        """
        self.config = config
        self.service_url = config.mint_service_url.rstrip("/")
        self.api_key = api_key
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=config.submit_timeout)

    def _get_headers(self) -> Dict[str, str]:
        headers = {"content-type": "application/json"}
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        return headers

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    async def submit(self, request: MintRequest) -> Any:
        """
        Send a mint request and wait for confirmation.

        Returns:
            The relay's raw result: a signature string, a [signature, slot]
            pair, or an object carrying ``signature`` or ``txid``.

        Raises:
            SubmissionError: when the relay is unreachable or the mint failed.
        """
        payload = {
            "request": request.to_wire(),
            "options": {
                "commitment": self.config.commitment,
                "skipPreflight": self.config.skip_preflight,
            },
        }

        try:
            response = await self._client.post(
                f"{self.service_url}/mint",
                json=payload,
                headers=self._get_headers(),
            )
        except httpx.HTTPError as e:
            raise SubmissionError(f"Mint relay unreachable: {e}") from e

        if response.is_success:
            try:
                return response.json()
            except ValueError:
                # Some relays answer with the bare signature as text
                return response.text.strip()

        message, logs = self._extract_error(response)
        logger.error(f"MintServiceClient: Mint relay returned {response.status_code}: {message}")
        raise SubmissionError(message, logs=logs)

    @staticmethod
    def _extract_error(response: httpx.Response) -> Tuple[str, List[str]]:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}", []

        if not isinstance(body, dict):
            return str(body), []

        message = body.get("error") or body.get("message") or f"HTTP {response.status_code}"
        logs = body.get("logs") or []
        if not isinstance(logs, list):
            logs = [str(logs)]
        return str(message), [str(line) for line in logs]
