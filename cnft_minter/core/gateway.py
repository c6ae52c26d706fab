"""
Gateway Resolver

Turns content-addressed references into gateway URLs and walks an ordered
list of candidate URLs until one passes a probe.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")

Probe = Callable[[str], Awaitable[bool]]


def strip_scheme(reference: str) -> str:
    """Return the content path of ``scheme://id/path`` or a bare ``id/path``."""
    return _SCHEME_RE.sub("", reference, count=1)


def is_http_url(reference: str) -> bool:
    return reference.startswith(("http://", "https://"))


@dataclass
class ProbeOutcome:
    """Result of walking a candidate list. ``url`` is None on exhaustion."""
    url: Optional[str] = None
    tried_urls: List[str] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.url is not None


class GatewayResolver:
    """Deterministic path builder over an ordered list of access points."""

    def __init__(self, access_points: Sequence[str]):
        if not access_points:
            raise ValueError("GatewayResolver requires at least one access point.")
        self.access_points = tuple(access_points)

    def resolve(self, content_path: str, index: int = 0) -> str:
        """Combine the access point at ``index`` with a scheme-less content path."""
        return f"{self.access_points[index]}{content_path.lstrip('/')}"

    def candidate_urls(self, reference: str) -> List[str]:
        """Every gateway URL for a reference, in priority order."""
        content_path = strip_scheme(reference)
        return [self.resolve(content_path, i) for i in range(len(self.access_points))]

    async def first_success(self, urls: Iterable[str], probe: Probe) -> ProbeOutcome:
        """
        Probe each URL in order and stop at the first success.

        Probes run strictly one at a time. Exhaustion is reported through the
        returned outcome, never raised.
        """
        outcome = ProbeOutcome()
        for url in urls:
            outcome.tried_urls.append(url)
            if await probe(url):
                outcome.url = url
                return outcome
            logger.debug(f"GatewayResolver: Probe failed for {url}")
        return outcome

    async def first_reachable(self, reference: str, probe: Probe) -> ProbeOutcome:
        """Probe a reference across every access point in priority order."""
        return await self.first_success(self.candidate_urls(reference), probe)
