"""Merkle trees and the leaf stores built on them."""

from hubble.tree.merkle import MerkleAccumulator, Tree, zero_hashes
from hubble.tree.store import LeafStore
from hubble.tree.state import StateTree
from hubble.tree.registry import AccountRegistry

__all__ = [
    "MerkleAccumulator",
    "Tree",
    "zero_hashes",
    "LeafStore",
    "StateTree",
    "AccountRegistry",
]
