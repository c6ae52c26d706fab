"""
cNFT Minter - compressed NFT minting with resilient IPFS gateway resolution.

This package provides:
- Gateway resolution across unreliable content gateways
- Metadata-driven image resolution for preview tiles
- A mint orchestrator with failure classification and a single alternate-shape retry
"""

__version__ = "0.1.0"
__author__ = "cNFT Minter Team"
