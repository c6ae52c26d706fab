"""
Metadata Image Resolver

Resolves a metadata document reference to a working image URL. The image the
document declares is preferred; when the document is unreachable or declares
nothing usable, image paths are guessed from the reference by swapping its
extension. Every miss degrades to ``None`` so callers can show a placeholder.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

import httpx

from cnft_minter.config import GatewayConfig
from cnft_minter.core.gateway import GatewayResolver, is_http_url, strip_scheme
from cnft_minter.utils.logging_config import performance_logger

logger = logging.getLogger(__name__)

# Status codes of gateways that refuse HEAD but serve GET
_HEAD_UNSUPPORTED = {405, 501}


@dataclass
class ResolvedImage:
    """A reachable image URL. ``tried_urls`` is diagnostic only."""
    http_url: str
    tried_urls: List[str] = field(default_factory=list)


def extract_image_field(document: Any) -> Optional[str]:
    """
    Pull the image reference out of a metadata document.

    Precedence is fixed: ``image``, ``image_url``, then the first entry of
    ``properties.files`` carrying ``uri``, then one carrying ``url``.
    """
    if not isinstance(document, dict):
        return None

    for key in ("image", "image_url"):
        value = document.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()

    properties = document.get("properties")
    files = properties.get("files") if isinstance(properties, dict) else None
    if not isinstance(files, list):
        return None

    entries = [entry for entry in files if isinstance(entry, dict)]
    for key in ("uri", "url"):
        for entry in entries:
            value = entry.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return None


def variant_label(reference: str, document_extension: str = ".json") -> str:
    """Display label for a metadata reference, e.g. ``variant-a``."""
    name = strip_scheme(reference).rstrip("/").split("/")[-1]
    if name.endswith(document_extension):
        name = name[: -len(document_extension)]
    return name or "Unknown"


class MetadataImageResolver:
    """Resolves metadata references to image URLs across content gateways."""

    def __init__(self, config: GatewayConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.gateway = GatewayResolver(config.access_points)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout=config.fetch_timeout, connect=config.probe_timeout),
            follow_redirects=True,
        )
        self._closed = False

    @property
    def closed(self) -> bool:
        """True once this resolver or its client has been closed."""
        return self._closed or self._client.is_closed

    async def aclose(self):
        self._closed = True
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def fetch_document(self, reference: str) -> Optional[Dict[str, Any]]:
        """Fetch and parse the metadata document from the first gateway that serves it."""
        documents: Dict[str, Dict[str, Any]] = {}

        async def fetch(url: str) -> bool:
            if self.closed:
                return False
            started = time.monotonic()
            try:
                response = await self._client.get(url, follow_redirects=True)
                response.raise_for_status()
                document = response.json()
            except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
                logger.debug(f"MetadataImageResolver: Document fetch failed for {url}: {e}")
                performance_logger.log_probe("GET", url, (time.monotonic() - started) * 1000, False)
                return False
            except RuntimeError:
                # Client closed while this request was in flight
                if not self.closed:
                    raise
                return False

            ok = isinstance(document, dict)
            if ok:
                documents[url] = document
            else:
                logger.debug(f"MetadataImageResolver: Document at {url} is not a JSON object")
            performance_logger.log_probe("GET", url, (time.monotonic() - started) * 1000, ok)
            return ok

        outcome = await self.gateway.first_reachable(reference, fetch)
        if not outcome.found:
            logger.warning(
                f"MetadataImageResolver: Metadata document unreachable on all "
                f"{len(self.gateway.access_points)} gateways: {reference}"
            )
            return None

        logger.debug(f"MetadataImageResolver: Fetched metadata document from {outcome.url}")
        return documents[outcome.url]

    async def exists(self, url: str) -> bool:
        """Lightweight existence probe that never downloads the body."""
        if self.closed:
            return False
        started = time.monotonic()
        ok = False
        try:
            response = await self._client.head(url, follow_redirects=True, timeout=self.config.probe_timeout)
            if response.status_code in _HEAD_UNSUPPORTED and not self.closed:
                async with self._client.stream(
                    "GET", url, follow_redirects=True, timeout=self.config.probe_timeout
                ) as streamed:
                    ok = streamed.is_success
            else:
                ok = response.is_success
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug(f"MetadataImageResolver: Existence probe failed for {url}: {e}")
        except RuntimeError:
            if not self.closed:
                raise
        performance_logger.log_probe("HEAD", url, (time.monotonic() - started) * 1000, ok)
        return ok

    def image_candidates(self, reference: str, primary: Optional[str] = None) -> List[str]:
        """
        Ordered image references to probe: the declared image first, then the
        reference path with its document extension swapped for each image
        extension.
        """
        candidates: List[str] = []
        if primary:
            candidates.append(primary if is_http_url(primary) else strip_scheme(primary))

        path = strip_scheme(reference)
        extension = self.config.document_extension
        if path.endswith(extension):
            stem = path[: -len(extension)]
        else:
            head, _, name = path.rpartition("/")
            if "." in name:
                name = name.rsplit(".", 1)[0]
            stem = f"{head}/{name}" if head else name

        for image_extension in self.config.image_extensions:
            guess = f"{stem}{image_extension}"
            if guess not in candidates:
                candidates.append(guess)
        return candidates

    def _urls_for(self, candidate: str) -> List[str]:
        if is_http_url(candidate):
            return [candidate]
        return self.gateway.candidate_urls(candidate)

    async def resolve_image(self, reference: str) -> Optional[ResolvedImage]:
        """
        Resolve a metadata reference to a reachable image URL.

        Returns None when every candidate is unreachable on every gateway, or
        once the resolver has been closed.
        """
        if self.closed:
            return None
        document = await self.fetch_document(reference)
        primary = extract_image_field(document) if document is not None else None
        if document is not None and primary is None:
            logger.info(f"MetadataImageResolver: No image field in metadata for {reference}, guessing paths")

        tried: List[str] = []
        for candidate in self.image_candidates(reference, primary):
            if self.closed:
                logger.debug(f"MetadataImageResolver: Resolver closed, abandoning {reference}")
                return None
            outcome = await self.gateway.first_success(self._urls_for(candidate), self.exists)
            tried.extend(outcome.tried_urls)
            if outcome.found:
                logger.info(f"MetadataImageResolver: Resolved image for {reference}: {outcome.url}")
                return ResolvedImage(http_url=outcome.url, tried_urls=tried)

        logger.warning(
            f"MetadataImageResolver: Image unavailable for {reference} after {len(tried)} probes"
        )
        return None

    async def resolve_many(self, references: Iterable[str]) -> Dict[str, Optional[ResolvedImage]]:
        """Resolve several references concurrently, one sequential walk each."""
        references = list(references)
        results = await asyncio.gather(*(self.resolve_image(ref) for ref in references))
        return dict(zip(references, results))


class PreviewState(Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    UNAVAILABLE = "unavailable"


class PreviewSlot:
    """
    Display-side holder for one preview tile.

    Results of resolutions that finish after ``teardown()`` are discarded, as
    are results superseded by a newer ``refresh()``.
    """

    def __init__(
        self,
        resolver: MetadataImageResolver,
        reference: str,
        on_change: Optional[Callable[["PreviewSlot"], None]] = None,
    ):
        self.resolver = resolver
        self.reference = reference
        self.on_change = on_change
        self.state = PreviewState.PENDING
        self.image: Optional[ResolvedImage] = None
        self.closed = False
        self._generation = 0

    @property
    def display_url(self) -> Optional[str]:
        """URL to render, or None for the placeholder."""
        return self.image.http_url if self.image else None

    @property
    def label(self) -> str:
        return variant_label(self.reference, self.resolver.config.document_extension)

    async def refresh(self) -> Optional[ResolvedImage]:
        if self.closed:
            return None

        self._generation += 1
        generation = self._generation
        self.state = PreviewState.PENDING

        image = await self.resolver.resolve_image(self.reference)

        if self.closed or generation != self._generation:
            logger.debug(f"PreviewSlot: Discarding stale resolution for {self.reference}")
            return None

        self.image = image
        self.state = PreviewState.RESOLVED if image else PreviewState.UNAVAILABLE
        if self.on_change:
            self.on_change(self)
        return image

    async def report_load_failure(self) -> Optional[ResolvedImage]:
        """The displayed URL failed to load; resolve again from the document."""
        if self.closed:
            return None
        logger.info(f"PreviewSlot: Image failed to load for {self.reference}, re-resolving")
        self.image = None
        return await self.refresh()

    def teardown(self):
        self.closed = True
