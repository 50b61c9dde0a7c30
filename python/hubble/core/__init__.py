"""Core types, errors and configuration."""

from hubble.core.types import State, PDALeaf, Result, TxType
from hubble.core.config import HubbleConfig

__all__ = ["State", "PDALeaf", "Result", "TxType", "HubbleConfig"]
