"""Configuration management for HUBBLE."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class TreeConfig(BaseModel):
    """Merkle tree geometry shared with the on-chain contracts."""

    state_depth: int = Field(default=32, ge=1, le=32, description="State tree depth")
    max_deposit_subtree_depth: int = Field(
        default=1, ge=0, description="Deepest deposit subtree merged at once"
    )


class CodecConfig(BaseModel):
    """Fixed-point amount codec used in compressed transactions."""

    exponent_bits: int = Field(default=4, ge=1)
    mantissa_bits: int = Field(default=12, ge=1)
    place: int = Field(default=6, ge=0, description="Decimal places of a unit")


class BatchConfig(BaseModel):
    max_txs_per_commit: int = Field(default=32, ge=1)


class ChainConfig(BaseModel):
    """Connection details of the on-chain rollup contract."""

    rpc_url: str = Field(default="http://localhost:8545")
    rollup_address: str | None = Field(default=None)
    stake_amount: int = Field(default=10**17, ge=0, description="Stake per batch in wei")


class HubbleConfig(BaseSettings):
    """Root configuration for HUBBLE."""

    tree: TreeConfig = Field(default_factory=TreeConfig)
    codec: CodecConfig = Field(default_factory=CodecConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    chain: ChainConfig = Field(default_factory=ChainConfig)

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    model_config = {"env_prefix": "HUBBLE_", "env_nested_delimiter": "__"}

    @classmethod
    def from_yaml(cls, path: Path) -> HubbleConfig:
        import yaml
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)
