"""
HUBBLE: off-chain replica of an optimistic rollup's state transitions

Maintains the state and public-key Merkle trees, applies transfer, mass
migration and create2 transfer commitments with witnesses, builds batches and
replays disputed commitments the way the on-chain verifier does.
"""

from hubble.core.types import (
    State,
    PDALeaf,
    Result,
    StateMerkleProof,
    CommitResult,
)

__version__ = "0.1.0"
__all__ = [
    "State",
    "PDALeaf",
    "Result",
    "StateMerkleProof",
    "CommitResult",
]
