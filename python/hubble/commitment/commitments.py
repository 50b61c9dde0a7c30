"""Commitments, batches and commitment inclusion proofs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Generic, Sequence, TypeVar

from web3 import Web3

from hubble.core.errors import EmptyBatchError, IndexOutOfRangeError
from hubble.core.types import EMPTY_SIGNATURE, ZERO_BYTES32, Bytes32, Signature, TxType
from hubble.tree.merkle import Tree, verify_inclusion

TRANSFER_BODY_TYPES = ["bytes32", "uint256[2]", "uint256", "bytes"]
MASS_MIGRATION_BODY_TYPES = [
    "bytes32",
    "uint256[2]",
    "uint256",
    "bytes32",
    "uint256",
    "uint256",
    "uint256",
    "bytes",
]


def commitment_hash(state_root: Bytes32, body_root: Bytes32) -> Bytes32:
    return bytes(Web3.solidity_keccak(["bytes32", "bytes32"], [state_root, body_root]))


@dataclass(frozen=True, slots=True)
class CompressedCommitment:
    """A commitment reduced to the two roots its hash is built from."""

    state_root: Bytes32
    body_root: Bytes32

    def hash(self) -> Bytes32:
        return commitment_hash(self.state_root, self.body_root)

    def to_sol_struct(self) -> dict[str, Any]:
        return {"stateRoot": self.state_root, "bodyRoot": self.body_root}


@dataclass(frozen=True, slots=True)
class Commitment:
    """Base of the commitment variants; subclasses define the body."""

    state_root: Bytes32 = ZERO_BYTES32

    tx_type: ClassVar[TxType]

    @property
    def body_root(self) -> Bytes32:
        raise NotImplementedError

    def body(self) -> dict[str, Any]:
        raise NotImplementedError

    def hash(self) -> Bytes32:
        return commitment_hash(self.state_root, self.body_root)

    def to_sol_struct(self) -> dict[str, Any]:
        return {"stateRoot": self.state_root, "body": self.body()}

    def to_compressed(self) -> CompressedCommitment:
        return CompressedCommitment(state_root=self.state_root, body_root=self.body_root)

    def to_batch(self) -> Batch:
        return BATCH_TYPES[self.tx_type]([self])


@dataclass(frozen=True, slots=True)
class TransferCommitment(Commitment):
    account_root: Bytes32 = ZERO_BYTES32
    signature: Signature = EMPTY_SIGNATURE
    fee_receiver: int = 0
    txs: bytes = b""

    tx_type: ClassVar[TxType] = TxType.TRANSFER

    @property
    def body_root(self) -> Bytes32:
        return bytes(
            Web3.solidity_keccak(
                TRANSFER_BODY_TYPES,
                [self.account_root, list(self.signature), self.fee_receiver, self.txs],
            )
        )

    def body(self) -> dict[str, Any]:
        return {
            "accountRoot": self.account_root,
            "signature": list(self.signature),
            "feeReceiver": self.fee_receiver,
            "txs": self.txs,
        }


@dataclass(frozen=True, slots=True)
class Create2TransferCommitment(TransferCommitment):
    """Same body layout as a transfer; ``txs`` carries the assigned indices."""

    tx_type: ClassVar[TxType] = TxType.CREATE2_TRANSFER


@dataclass(frozen=True, slots=True)
class MassMigrationCommitment(Commitment):
    account_root: Bytes32 = ZERO_BYTES32
    signature: Signature = EMPTY_SIGNATURE
    spoke_id: int = 0
    withdraw_root: Bytes32 = ZERO_BYTES32
    token_id: int = 0
    amount: int = 0
    fee_receiver: int = 0
    txs: bytes = b""

    tx_type: ClassVar[TxType] = TxType.MASS_MIGRATION

    @property
    def body_root(self) -> Bytes32:
        return bytes(
            Web3.solidity_keccak(
                MASS_MIGRATION_BODY_TYPES,
                [
                    self.account_root,
                    list(self.signature),
                    self.spoke_id,
                    self.withdraw_root,
                    self.token_id,
                    self.amount,
                    self.fee_receiver,
                    self.txs,
                ],
            )
        )

    def body(self) -> dict[str, Any]:
        return {
            "accountRoot": self.account_root,
            "signature": list(self.signature),
            "spokeID": self.spoke_id,
            "withdrawRoot": self.withdraw_root,
            "tokenID": self.token_id,
            "amount": self.amount,
            "feeReceiver": self.fee_receiver,
            "txs": self.txs,
        }


C = TypeVar("C", bound=Commitment)


@dataclass(frozen=True, slots=True)
class CommitmentInclusionProof:
    """Position of a commitment in a batch, full or compressed."""

    commitment: Commitment | CompressedCommitment
    path: int
    witness: tuple[Bytes32, ...]

    def verify(self, commitment_root: Bytes32) -> bool:
        return verify_inclusion(
            commitment_root, self.commitment.hash(), self.path, self.witness
        )

    def to_sol_struct(self) -> dict[str, Any]:
        return {
            "commitment": self.commitment.to_sol_struct(),
            "path": self.path,
            "witness": list(self.witness),
        }


class Batch(Generic[C]):
    """A non-empty ordered list of commitments of one kind."""

    def __init__(self, commitments: Sequence[C]) -> None:
        if not commitments:
            raise EmptyBatchError()
        self.commitments: list[C] = list(commitments)
        self._tree = Tree.merklize([c.hash() for c in self.commitments])

    def __len__(self) -> int:
        return len(self.commitments)

    def __str__(self) -> str:
        return (
            f"<{type(self).__name__} {len(self.commitments)} commitments "
            f"root=0x{self.commitment_root.hex()}>"
        )

    @property
    def commitment_root(self) -> Bytes32:
        return self._tree.root

    @property
    def post_state_root(self) -> Bytes32:
        return self.commitments[-1].state_root

    def witness(self, index: int) -> list[Bytes32]:
        if index < 0 or index >= len(self.commitments):
            raise IndexOutOfRangeError(index, len(self.commitments))
        return self._tree.witness(index)

    def proof(self, index: int) -> CommitmentInclusionProof:
        return CommitmentInclusionProof(
            commitment=self.commitments[index],
            path=index,
            witness=tuple(self.witness(index)),
        )

    def proof_compressed(self, index: int) -> CommitmentInclusionProof:
        return CommitmentInclusionProof(
            commitment=self.commitments[index].to_compressed(),
            path=index,
            witness=tuple(self.witness(index)),
        )


class TransferBatch(Batch[TransferCommitment]):
    def submit_args(self) -> list[Any]:
        """Positional arguments of ``submitTransfer``."""
        return [
            [c.state_root for c in self.commitments],
            [list(c.signature) for c in self.commitments],
            [c.fee_receiver for c in self.commitments],
            [c.txs for c in self.commitments],
        ]


class Create2TransferBatch(Batch[Create2TransferCommitment]):
    def submit_args(self) -> list[Any]:
        """Positional arguments of ``submitCreate2Transfer``."""
        return [
            [c.state_root for c in self.commitments],
            [list(c.signature) for c in self.commitments],
            [c.fee_receiver for c in self.commitments],
            [c.txs for c in self.commitments],
        ]


class MassMigrationBatch(Batch[MassMigrationCommitment]):
    def submit_args(self) -> list[Any]:
        """Positional arguments of ``submitMassMigration``."""
        return [
            [c.state_root for c in self.commitments],
            [list(c.signature) for c in self.commitments],
            [[c.spoke_id, c.token_id, c.amount, c.fee_receiver] for c in self.commitments],
            [c.withdraw_root for c in self.commitments],
            [c.txs for c in self.commitments],
        ]


BATCH_TYPES: dict[TxType, type[Batch[Any]]] = {
    TxType.TRANSFER: TransferBatch,
    TxType.MASS_MIGRATION: MassMigrationBatch,
    TxType.CREATE2_TRANSFER: Create2TransferBatch,
}
