"""
Tests for MetadataImageResolver against fake gateways.
"""

import pytest

from cnft_minter.core.image_resolver import MetadataImageResolver, extract_image_field, variant_label

REFERENCE = "ipfs://CIDX/variant-a.json"


def gw(config, index, path):
    return f"{config.access_points[index]}{path}"


class TestExtractImageField:

    def test_image_takes_precedence(self):
        document = {"image": "ipfs://CIDX/a.png", "image_url": "ipfs://CIDX/b.png"}

        assert extract_image_field(document) == "ipfs://CIDX/a.png"

    def test_image_url_used_when_image_missing(self):
        assert extract_image_field({"image": "", "image_url": "ipfs://CIDX/b.png"}) == "ipfs://CIDX/b.png"

    def test_file_uri_before_file_url(self):
        document = {"properties": {"files": [{"url": "ipfs://CIDX/url.png"}, {"uri": "ipfs://CIDX/uri.png"}]}}

        assert extract_image_field(document) == "ipfs://CIDX/uri.png"

    def test_file_url_as_last_resort(self):
        document = {"properties": {"files": [{"type": "image/png", "url": "ipfs://CIDX/url.png"}]}}

        assert extract_image_field(document) == "ipfs://CIDX/url.png"

    @pytest.mark.parametrize("document", [
        None,
        [],
        {},
        {"image": 7},
        {"properties": {"files": "nope"}},
        {"properties": {"files": [{"uri": ""}]}},
    ])
    def test_nothing_usable(self, document):
        assert extract_image_field(document) is None


class TestVariantLabel:

    def test_drops_scheme_and_extension(self):
        assert variant_label("ipfs://CIDX/variant-b.json") == "variant-b"

    def test_unknown_for_empty(self):
        assert variant_label("") == "Unknown"


class TestImageCandidates:

    @pytest.fixture
    def resolver(self, gateway_config, fake_gateway):
        return MetadataImageResolver(gateway_config, client=fake_gateway.client())

    def test_primary_first_then_extension_guesses(self, resolver):
        candidates = resolver.image_candidates(REFERENCE, "ipfs://CIDX/art.png")

        assert candidates == [
            "CIDX/art.png",
            "CIDX/variant-a.png",
            "CIDX/variant-a.jpg",
            "CIDX/variant-a.jpeg",
            "CIDX/variant-a.gif",
            "CIDX/variant-a.webp",
        ]

    def test_duplicate_primary_not_probed_twice(self, resolver):
        candidates = resolver.image_candidates(REFERENCE, "ipfs://CIDX/variant-a.png")

        assert candidates.count("CIDX/variant-a.png") == 1
        assert candidates[0] == "CIDX/variant-a.png"

    def test_http_primary_kept_verbatim(self, resolver):
        candidates = resolver.image_candidates(REFERENCE, "https://cdn.test/art.png")

        assert candidates[0] == "https://cdn.test/art.png"


class TestResolveImage:

    @pytest.mark.asyncio
    async def test_declared_image_via_second_gateway(self, image_resolver, fake_gateway, gateway_config):
        fake_gateway.serve_json(gw(gateway_config, 0, "CIDX/variant-a.json"), {}, status=503)
        fake_gateway.serve_json(gw(gateway_config, 1, "CIDX/variant-a.json"), {"image": "ipfs://CIDX/art.png"})
        fake_gateway.fail(gw(gateway_config, 0, "CIDX/art.png"))
        fake_gateway.serve_file(gw(gateway_config, 1, "CIDX/art.png"))

        resolved = await image_resolver.resolve_image(REFERENCE)

        assert resolved is not None
        assert resolved.http_url == gw(gateway_config, 1, "CIDX/art.png")
        assert resolved.tried_urls == [gw(gateway_config, 0, "CIDX/art.png"), gw(gateway_config, 1, "CIDX/art.png")]
        assert gw(gateway_config, 2, "CIDX/variant-a.json") not in fake_gateway.urls_requested()
        assert gw(gateway_config, 2, "CIDX/art.png") not in fake_gateway.urls_requested()

    @pytest.mark.asyncio
    async def test_falls_back_to_extension_guess_when_document_unreachable(
        self, image_resolver, fake_gateway, gateway_config
    ):
        fake_gateway.serve_file(gw(gateway_config, 2, "CIDX/variant-a.jpg"))

        resolved = await image_resolver.resolve_image(REFERENCE)

        assert resolved.http_url == gw(gateway_config, 2, "CIDX/variant-a.jpg")
        # every gateway was tried for the .png guess before moving to .jpg
        assert resolved.tried_urls[:3] == [gw(gateway_config, i, "CIDX/variant-a.png") for i in range(3)]

    @pytest.mark.asyncio
    async def test_unparseable_document_moves_to_next_gateway(self, image_resolver, fake_gateway, gateway_config):
        fake_gateway.serve_file(gw(gateway_config, 0, "CIDX/variant-a.json"), content=b"<html>busy</html>")
        fake_gateway.serve_json(gw(gateway_config, 1, "CIDX/variant-a.json"), {"image_url": "ipfs://CIDX/art.gif"})
        fake_gateway.serve_file(gw(gateway_config, 0, "CIDX/art.gif"))

        resolved = await image_resolver.resolve_image(REFERENCE)

        assert resolved.http_url == gw(gateway_config, 0, "CIDX/art.gif")

    @pytest.mark.asyncio
    async def test_existence_probe_uses_head(self, image_resolver, fake_gateway, gateway_config):
        fake_gateway.serve_file(gw(gateway_config, 0, "CIDX/variant-a.png"))

        await image_resolver.resolve_image(REFERENCE)

        assert gw(gateway_config, 0, "CIDX/variant-a.png") in fake_gateway.urls_requested("HEAD")
        assert gw(gateway_config, 0, "CIDX/variant-a.png") not in fake_gateway.urls_requested("GET")

    @pytest.mark.asyncio
    async def test_head_unsupported_falls_back_to_get(self, image_resolver, fake_gateway, gateway_config):
        url = gw(gateway_config, 0, "CIDX/variant-a.png")
        fake_gateway.serve_file(url)
        fake_gateway.head_status[url] = 405

        resolved = await image_resolver.resolve_image(REFERENCE)

        assert resolved.http_url == url
        assert url in fake_gateway.urls_requested("GET")

    @pytest.mark.asyncio
    async def test_http_image_probed_directly(self, image_resolver, fake_gateway, gateway_config):
        fake_gateway.serve_json(gw(gateway_config, 0, "CIDX/variant-a.json"), {"image": "https://cdn.test/art.png"})
        fake_gateway.serve_file("https://cdn.test/art.png")

        resolved = await image_resolver.resolve_image(REFERENCE)

        assert resolved.http_url == "https://cdn.test/art.png"
        assert resolved.tried_urls == ["https://cdn.test/art.png"]

    @pytest.mark.asyncio
    async def test_everything_down_returns_none(self, image_resolver, fake_gateway, gateway_config):
        for url in image_resolver.gateway.candidate_urls(REFERENCE):
            fake_gateway.fail(url)

        resolved = await image_resolver.resolve_image(REFERENCE)

        assert resolved is None
        # document on every gateway, then every image guess on every gateway
        expected = len(gateway_config.access_points) * (1 + len(gateway_config.image_extensions))
        assert len(fake_gateway.requests) == expected

    @pytest.mark.asyncio
    async def test_resolve_many(self, image_resolver, fake_gateway, gateway_config):
        fake_gateway.serve_file(gw(gateway_config, 1, "CIDX/variant-a.png"))
        references = [REFERENCE, "ipfs://CIDX/variant-b.json"]

        results = await image_resolver.resolve_many(references)

        assert list(results) == references
        assert results[REFERENCE].http_url == gw(gateway_config, 1, "CIDX/variant-a.png")
        assert results["ipfs://CIDX/variant-b.json"] is None

    @pytest.mark.asyncio
    async def test_closed_resolver_sends_nothing(self, image_resolver, fake_gateway, gateway_config):
        fake_gateway.serve_file(gw(gateway_config, 0, "CIDX/variant-a.png"))
        await image_resolver.aclose()

        assert image_resolver.closed
        assert await image_resolver.resolve_image(REFERENCE) is None
        assert await image_resolver.exists(gw(gateway_config, 0, "CIDX/variant-a.png")) is False
        assert fake_gateway.requests == []

    @pytest.mark.asyncio
    async def test_closed_client_degrades_to_none(self, gateway_config, fake_gateway):
        client = fake_gateway.client()
        resolver = MetadataImageResolver(gateway_config, client=client)
        await client.aclose()

        assert resolver.closed
        assert await resolver.fetch_document(REFERENCE) is None
        assert await resolver.resolve_image(REFERENCE) is None
