"""
Mint request and result types.

A MintRequest is built fresh for each submission attempt and is frozen, so
the retry path always builds a new one rather than editing the first.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from cnft_minter.config import MintConfig, MintVariant


class RequestShape(Enum):
    """How the collection is attached to a mint request."""
    COLLECTION_UNVERIFIED = "collection_unverified"
    NO_COLLECTION = "no_collection"


@dataclass(frozen=True)
class Creator:
    address: str
    share: int
    verified: bool = False


@dataclass(frozen=True)
class MintRequest:
    owner: str
    delegate: str
    tree: str
    name: str
    symbol: str
    uri: str
    creators: Tuple[Creator, ...]
    collection: Optional[str] = None
    collection_verified: bool = False
    seller_fee_basis_points: int = 0
    shape: RequestShape = RequestShape.COLLECTION_UNVERIFIED

    def to_wire(self) -> Dict[str, Any]:
        """Serialize into the mint relay's request body."""
        collection = None
        if self.collection is not None:
            collection = {"key": self.collection, "verified": self.collection_verified}

        body: Dict[str, Any] = {
            "leafOwner": self.owner,
            "leafDelegate": self.delegate,
            "merkleTree": self.tree,
            "metadata": {
                "name": self.name,
                "symbol": self.symbol,
                "uri": self.uri,
                "sellerFeeBasisPoints": self.seller_fee_basis_points,
                "creators": [
                    {"address": c.address, "verified": c.verified, "share": c.share}
                    for c in self.creators
                ],
                "collection": collection,
                "uses": None,
            },
        }
        if self.collection is not None:
            body["collectionMint"] = self.collection
        return body


def build_mint_request(
    config: MintConfig,
    variant: MintVariant,
    owner: str,
    shape: RequestShape,
    delegate: Optional[str] = None,
) -> MintRequest:
    """
    Build the request for one attempt.

    The collection-aware shape always leaves the collection unverified so a
    public mint needs no collection-authority signature. The no-collection
    shape drops the collection reference entirely.
    """
    collection = config.collection_mint if shape is RequestShape.COLLECTION_UNVERIFIED else None
    creators = tuple(
        # Only the signer can attest as a creator
        Creator(address=address, share=share, verified=(address == owner))
        for address, share in variant.creator_shares
    )
    return MintRequest(
        owner=owner,
        delegate=delegate or owner,
        tree=config.tree_address,
        name=variant.name,
        symbol=variant.symbol,
        uri=variant.metadata_reference,
        creators=creators,
        collection=collection,
        collection_verified=False,
        seller_fee_basis_points=config.seller_fee_basis_points,
        shape=shape,
    )


def explorer_url(config: MintConfig, signature: str) -> str:
    return f"{config.explorer_base_url.rstrip('/')}/tx/{signature}?cluster={config.cluster}"


@dataclass(frozen=True)
class MintResult:
    signature: str
    uri: str
    explorer_url: str
    shape: RequestShape = RequestShape.COLLECTION_UNVERIFIED
    attempts: Tuple[str, ...] = field(default=(), compare=False)

    def to_dict(self) -> Dict[str, str]:
        return {"signature": self.signature, "uri": self.uri, "explorerUrl": self.explorer_url}
