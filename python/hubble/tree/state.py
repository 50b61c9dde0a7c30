"""Balance state tree."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

import structlog

from hubble.core.types import (
    DUMMY_STATE,
    Bytes32,
    State,
    StateMerkleProof,
)
from hubble.tree.merkle import MerkleAccumulator, zero_hashes
from hubble.tree.store import LeafStore

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class DepositMerge:
    """Where a deposit subtree landed and the proof that the slot was empty."""

    position: int
    subtree_depth: int
    subtree_root: Bytes32
    empty_proof: StateMerkleProof


class StateTree(LeafStore[State]):
    """Store of ``State`` leaves, compressed as keccak of the packed encoding."""

    def __init__(self, level: int, max_deposit_subtree_depth: int | None = None) -> None:
        super().__init__(level, State.to_state_leaf, DUMMY_STATE, kind="Account")
        self.max_deposit_subtree_depth = max_deposit_subtree_depth

    @classmethod
    def new(cls, level: int, max_deposit_subtree_depth: int | None = None) -> StateTree:
        return cls(level, max_deposit_subtree_depth)

    def copy(self) -> StateTree:
        """Independent tree with the same leaves, for speculative simulation."""
        clone = StateTree(self.level, self.max_deposit_subtree_depth)
        self._clone_into(clone)
        return clone

    def create_state(self, state: State) -> int:
        index = self.insert(state)
        logger.debug("state_created", index=index, pubkey_index=state.pubkey_index)
        return index

    def create_state_bulk(self, states: Iterable[State]) -> list[int]:
        return [self.create_state(state) for state in states]

    def get_state(self, index: int) -> State | None:
        return self.data(index)

    def exists(self, index: int) -> bool:
        return self.data(index) is not None

    def get_state_merkle_proof(self, index: int, allow_dummy: bool = False) -> StateMerkleProof:
        state, witness = self.get_proof(index, allow_dummy)
        return StateMerkleProof(path=index, state=state, witness=tuple(witness))

    def get_subtree_merkle_proof(self, position: int, level: int) -> StateMerkleProof:
        """Prove the subtree at ``(level, position)`` is currently empty."""
        witness = self.get_subtree_siblings(position, level)
        return StateMerkleProof(path=position, state=DUMMY_STATE, witness=tuple(witness))

    def merge_deposit_subtree(self, states: Sequence[State], subtree_depth: int) -> DepositMerge:
        """Write a full subtree of deposits into the first empty aligned slot."""
        bound = self.max_deposit_subtree_depth
        if bound is not None and subtree_depth > bound:
            raise ValueError(
                f"Deposit subtree depth {subtree_depth} exceeds the maximum of {bound}"
            )
        width = 1 << subtree_depth
        if len(states) != width:
            raise ValueError(f"A depth {subtree_depth} subtree takes {width} deposits")
        with self._lock:
            position = self.find_empty_subtree_position(subtree_depth)
            proof = self.get_subtree_merkle_proof(position, subtree_depth)
            first = position * width
            padding = max(0, first - len(self.items))
            self.extend_hashes([zero_hashes(0)[0]] * padding)
            for offset, state in enumerate(states):
                if first + offset < len(self.items):
                    self.update(first + offset, state)
                else:
                    self.insert(state)
        subtree_root = MerkleAccumulator(
            subtree_depth, [s.to_state_leaf() for s in states]
        ).root()
        logger.info(
            "deposit_subtree_merged",
            position=position,
            subtree_depth=subtree_depth,
            padding=padding,
        )
        return DepositMerge(
            position=position,
            subtree_depth=subtree_depth,
            subtree_root=subtree_root,
            empty_proof=proof,
        )
