"""
Centralized Configuration Management

This module provides the configuration for the cNFT minter. Gateway and mint
values are compiled-in constants grouped into nested sections; only logging
can be tuned from environment variables.
"""

from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from solders.pubkey import Pubkey

METADATA_CID = "bafybeifikwvqllaf2yzonmm4seorkhlkshjtcqopog24rq75einzf6hp4a"


def _validate_pubkey(value: str) -> str:
    try:
        Pubkey.from_string(value)
    except ValueError as e:
        raise ValueError(f"'{value}' is not a valid Solana public key: {e}") from e
    return value


class MintVariant(BaseModel):
    """One of the predefined cNFT variants a mint may produce."""

    model_config = ConfigDict(frozen=True)

    name: str
    symbol: str
    metadata_reference: str
    creator_shares: Tuple[Tuple[str, int], ...]

    @field_validator("creator_shares")
    @classmethod
    def validate_shares(cls, shares):
        if not shares:
            raise ValueError("at least one creator is required")
        for address, _ in shares:
            _validate_pubkey(address)
        total = sum(share for _, share in shares)
        if total != 100:
            raise ValueError(f"creator shares must sum to 100, got {total}")
        return shares


class GatewayConfig(BaseModel):
    """Content gateway configuration."""

    model_config = ConfigDict(frozen=True)

    # Priority is list position, index 0 is tried first
    access_points: Tuple[str, ...] = (
        "https://ipfs.io/ipfs/",
        "https://cloudflare-ipfs.com/ipfs/",
        "https://gateway.pinata.cloud/ipfs/",
    )
    document_extension: str = ".json"
    image_extensions: Tuple[str, ...] = (".png", ".jpg", ".jpeg", ".gif", ".webp")

    probe_timeout: float = 10.0
    fetch_timeout: float = 15.0

    @field_validator("access_points")
    @classmethod
    def validate_access_points(cls, access_points):
        if not access_points:
            raise ValueError("at least one access point is required")
        for access_point in access_points:
            if not access_point.startswith(("http://", "https://")):
                raise ValueError(f"access point must be an http(s) URL: {access_point}")
            if not access_point.endswith("/"):
                raise ValueError(f"access point must end with '/': {access_point}")
        return access_points


CREATOR_ADDRESS = "44P1KCTk7dqLkZNFCdrYZ352Eps7bibSDqkpMYMLM3fG"


def _default_variants() -> Tuple[MintVariant, ...]:
    return tuple(
        MintVariant(
            name="Subscriber Giveaway",
            symbol="SUB",
            metadata_reference=f"ipfs://{METADATA_CID}/variant-{suffix}.json",
            creator_shares=((CREATOR_ADDRESS, 100),),
        )
        for suffix in ("a", "b", "c")
    )


class MintConfig(BaseModel):
    """Compressed NFT mint configuration."""

    model_config = ConfigDict(frozen=True)

    # Public tree, any identity may mint into it
    tree_address: str = "EpmQQngjpkqNpfrriw5JyXYbkUP6i1ph9h31vR2jEdvW"
    collection_mint: Optional[str] = "CPsXpcmo5B1os7Rr9FPNDj6oTwoCZqQ4S8QJAiQDJTSo"
    variants: Tuple[MintVariant, ...] = _default_variants()
    seller_fee_basis_points: int = 0

    # Explorer links
    explorer_base_url: str = "https://explorer.solana.com"
    cluster: str = "devnet"

    # Submission
    debounce_ms: int = 3000
    commitment: str = "confirmed"
    skip_preflight: bool = False
    mint_service_url: str = "http://mint-relay:8002"
    submit_timeout: float = 120.0

    @field_validator("tree_address")
    @classmethod
    def validate_tree(cls, value):
        return _validate_pubkey(value)

    @field_validator("collection_mint")
    @classmethod
    def validate_collection(cls, value):
        if value is None:
            return value
        return _validate_pubkey(value)

    @model_validator(mode="after")
    def validate_variants(self):
        if not self.variants:
            raise ValueError("at least one mint variant is required")
        if self.debounce_ms < 0:
            raise ValueError("debounce_ms must not be negative")
        return self


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = "INFO"
    format: str = "text"
    file: Optional[str] = None


class AppConfig(BaseModel):
    """
    Application configuration with nested sections.
    Components receive the section they need at construction.
    """

    gateway: GatewayConfig = GatewayConfig()
    mint: MintConfig = MintConfig()
    logging: LoggingConfig = LoggingConfig()

    def variant_references(self) -> List[str]:
        """Metadata references of every configured variant, in order."""
        return [variant.metadata_reference for variant in self.mint.variants]


# Global settings instance
def create_settings() -> AppConfig:
    """Create settings instance from compiled-in defaults and LOG_* variables."""
    return AppConfig()


settings = create_settings()


def get_settings() -> AppConfig:
    """Get the global settings instance."""
    return settings
