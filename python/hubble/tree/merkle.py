"""Fixed-depth keccak Merkle trees matching the on-chain MerkleTree library."""

from __future__ import annotations

from functools import lru_cache
from math import ceil, log2
from typing import Sequence

from eth_utils import keccak

from hubble.core.errors import IndexOutOfRangeError, NotFoundError
from hubble.core.types import Bytes32, ZERO_BYTES32

MAX_DEPTH = 32


def parent_hash(left: Bytes32, right: Bytes32) -> Bytes32:
    """keccak256(abi.encode(left, right)); operand order is significant."""
    return keccak(left + right)


@lru_cache(maxsize=None)
def zero_hashes(depth: int) -> tuple[Bytes32, ...]:
    """Return ``Z[0..depth]`` where ``Z[0] = keccak(bytes32(0))``."""
    if depth < 0 or depth > MAX_DEPTH:
        raise ValueError(f"Depth must be within [0, {MAX_DEPTH}], got {depth}")
    zeros = [keccak(ZERO_BYTES32)]
    for _ in range(depth):
        zeros.append(parent_hash(zeros[-1], zeros[-1]))
    return tuple(zeros)


def compute_root(leaf: Bytes32, index: int, witness: Sequence[Bytes32]) -> Bytes32:
    """Fold a witness from the leaf level up; bit ``i`` of index marks a right child."""
    node = leaf
    path = index
    for sibling in witness:
        if path & 1:
            node = parent_hash(sibling, node)
        else:
            node = parent_hash(node, sibling)
        path >>= 1
    return node


def verify_inclusion(
    root: Bytes32,
    leaf: Bytes32,
    index: int,
    witness: Sequence[Bytes32],
) -> bool:
    if index < 0 or index >= 1 << len(witness):
        return False
    return compute_root(leaf, index, witness) == root


class MerkleAccumulator:
    """Binary hash tree of fixed depth over a prefix of populated leaves.

    Every query derives the internal levels from the current leaf hashes.
    Nodes to the right of the populated prefix are the zero hashes of
    their level, so the cost is O(n * depth) and never O(2 ** depth).
    """

    def __init__(self, depth: int, leaves: Sequence[Bytes32] = ()) -> None:
        self.depth = depth
        self.size = 1 << depth
        self.zeros = zero_hashes(depth)
        if len(leaves) > self.size:
            raise ValueError(f"{len(leaves)} leaves do not fit in depth {depth}")
        self._leaves = list(leaves)
        self._levels: list[list[Bytes32]] | None = None

    def __len__(self) -> int:
        return len(self._leaves)

    def leaves(self) -> list[Bytes32]:
        """All ``2 ** depth`` leaf hashes, zero-padded. Only sensible for small trees."""
        return self._leaves + [self.zeros[0]] * (self.size - len(self._leaves))

    def branches(self) -> list[list[Bytes32]]:
        """Levels ``0..depth``; each holds its populated prefix only."""
        if self._levels is not None:
            return self._levels
        levels = [list(self._leaves)]
        for level in range(1, self.depth + 1):
            below = levels[-1]
            zero = self.zeros[level - 1]
            current: list[Bytes32] = []
            for i in range(0, len(below), 2):
                left = below[i]
                right = below[i + 1] if i + 1 < len(below) else zero
                current.append(parent_hash(left, right))
            levels.append(current)
        self._levels = levels
        return levels

    def node(self, level: int, index: int) -> Bytes32:
        if index >= 1 << (self.depth - level):
            raise IndexOutOfRangeError(index, 1 << (self.depth - level))
        nodes = self.branches()[level]
        if index < len(nodes):
            return nodes[index]
        return self.zeros[level]

    def root(self) -> Bytes32:
        return self.node(self.depth, 0)

    def siblings_from(self, position: int, from_level: int) -> list[Bytes32]:
        """Sibling path of node ``position`` at ``from_level`` up to the root."""
        if from_level < 0 or from_level > self.depth:
            raise ValueError(f"Level {from_level} outside tree of depth {self.depth}")
        width = 1 << (self.depth - from_level)
        if position < 0 or position >= width:
            raise IndexOutOfRangeError(position, width)
        siblings: list[Bytes32] = []
        current = position
        for level in range(from_level, self.depth):
            siblings.append(self.node(level, current ^ 1))
            current >>= 1
        return siblings

    def siblings(self, index: int) -> list[Bytes32]:
        return self.siblings_from(index, 0)

    def find_empty_subtree_position(self, subtree_depth: int) -> int:
        if subtree_depth < 0 or subtree_depth > self.depth:
            raise ValueError(f"Subtree depth {subtree_depth} outside [0, {self.depth}]")
        zero = self.zeros[subtree_depth]
        nodes = self.branches()[subtree_depth]
        for i, node in enumerate(nodes):
            if node == zero:
                return i
        if len(nodes) < 1 << (self.depth - subtree_depth):
            return len(nodes)
        raise NotFoundError(f"No empty subtree of depth {subtree_depth} can be found")


class Tree:
    """Merkle tree sized to its leaves, as ``MerkleTree.merklise`` builds it on-chain.

    The depth is ``max(1, ceil(log2(n)))``: a single leaf is hashed with
    ``Z[0]`` rather than standing in for the root.
    """

    def __init__(self, leaves: Sequence[Bytes32]) -> None:
        if not leaves:
            raise ValueError("Can not merklize an empty leaf list")
        depth = max(1, ceil(log2(len(leaves))))
        self._acc = MerkleAccumulator(depth, leaves)

    @classmethod
    def merklize(cls, leaves: Sequence[Bytes32]) -> Tree:
        return cls(leaves)

    @property
    def depth(self) -> int:
        return self._acc.depth

    @property
    def root(self) -> Bytes32:
        return self._acc.root()

    def witness(self, index: int) -> list[Bytes32]:
        if index >= len(self._acc):
            raise IndexOutOfRangeError(index, len(self._acc))
        return self._acc.siblings(index)
