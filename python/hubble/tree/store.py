"""Typed leaf stores backed by a fixed-depth Merkle accumulator."""

from __future__ import annotations

import threading
from typing import Callable, Generic, Sequence, TypeVar

import structlog

from hubble.core.errors import (
    IndexOutOfRangeError,
    MissingDataError,
    NoCheckpointError,
    TreeFullError,
)
from hubble.core.types import Bytes32, Leaf
from hubble.tree.merkle import MerkleAccumulator

logger = structlog.get_logger()

T = TypeVar("T")


class LeafStore(Generic[T]):
    """Append-only leaf array with in-place updates and checkpoint/rollback.

    The leaf compression is a capability passed at construction, so state
    and public-key stores are two instantiations of the same component.
    Leaves are immutable records, so copying the list is a full snapshot.
    """

    def __init__(
        self,
        level: int,
        compress: Callable[[T], Bytes32],
        dummy: T,
        kind: str = "Leaf",
    ) -> None:
        self.level = level
        self.size = 1 << level
        self.compress = compress
        self.dummy = dummy
        self.kind = kind
        self.items: list[Leaf[T]] = []
        self.stashed_items: list[Leaf[T]] | None = None
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self.items)

    def _append(self, item: Leaf[T]) -> int:
        with self._lock:
            if len(self.items) >= self.size:
                raise TreeFullError(self.size)
            self.items.append(item)
            return len(self.items) - 1

    def insert(self, data: T) -> int:
        return self._append(Leaf(hash=self.compress(data), data=data))

    def insert_hash(self, leaf_hash: Bytes32) -> int:
        return self._append(Leaf(hash=leaf_hash))

    def next_empty_index(self) -> int:
        return len(self.items)

    @property
    def is_full(self) -> bool:
        return len(self.items) >= self.size

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= len(self.items):
            raise IndexOutOfRangeError(index, len(self.items))

    def update(self, index: int, data: T) -> None:
        with self._lock:
            self._check_index(index)
            self.items[index] = Leaf(hash=self.compress(data), data=data)

    def update_hash(self, index: int, leaf_hash: Bytes32) -> None:
        with self._lock:
            self._check_index(index)
            self.items[index] = Leaf(hash=leaf_hash)

    def get(self, index: int) -> Leaf[T]:
        with self._lock:
            self._check_index(index)
            return self.items[index]

    def data(self, index: int) -> T | None:
        """Known data at ``index``; None for hash-only or unpopulated slots."""
        with self._lock:
            if 0 <= index < len(self.items):
                return self.items[index].data
            return None

    def accumulator(self) -> MerkleAccumulator:
        with self._lock:
            return MerkleAccumulator(self.level, [item.hash for item in self.items])

    def leaves(self) -> list[Bytes32]:
        return self.accumulator().leaves()

    @property
    def root(self) -> Bytes32:
        return self.accumulator().root()

    def witness(self, index: int) -> list[Bytes32]:
        return self.accumulator().siblings(index)

    def get_subtree_siblings(self, position: int, subtree_depth: int) -> list[Bytes32]:
        return self.accumulator().siblings_from(position, subtree_depth)

    def find_empty_subtree_position(self, subtree_depth: int) -> int:
        return self.accumulator().find_empty_subtree_position(subtree_depth)

    def get_proof(self, index: int, allow_dummy: bool = False) -> tuple[T, list[Bytes32]]:
        """Leaf value and full sibling path for ``index``.

        Unknown data (hash-only or unpopulated) is replaced by the dummy
        value only when ``allow_dummy`` is set.
        """
        with self._lock:
            data = self.data(index)
            if data is None:
                if not allow_dummy:
                    raise MissingDataError(index, self.kind)
                data = self.dummy
            return data, self.witness(index)

    def set_checkpoint(self) -> None:
        with self._lock:
            self.stashed_items = list(self.items)
            logger.debug("checkpoint_set", kind=self.kind, leaves=len(self.items))

    def restore_checkpoint(self) -> None:
        with self._lock:
            if self.stashed_items is None:
                raise NoCheckpointError()
            self.items = list(self.stashed_items)
            logger.debug("checkpoint_restored", kind=self.kind, leaves=len(self.items))

    @property
    def has_checkpoint(self) -> bool:
        return self.stashed_items is not None

    def clear_checkpoint(self) -> None:
        with self._lock:
            self.stashed_items = None

    def extend_hashes(self, hashes: Sequence[Bytes32]) -> list[int]:
        with self._lock:
            if len(self.items) + len(hashes) > self.size:
                raise TreeFullError(self.size)
            return [self.insert_hash(h) for h in hashes]

    def _clone_into(self, other: LeafStore[T]) -> None:
        with self._lock:
            other.items = list(self.items)
            other.stashed_items = (
                None if self.stashed_items is None else list(self.stashed_items)
            )
