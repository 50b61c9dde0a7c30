"""Dispute replay: decide whether a submitted commitment is fraudulent."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence

import structlog

from hubble.commitment.commitments import (
    Commitment,
    CommitmentInclusionProof,
    Create2TransferCommitment,
    MassMigrationCommitment,
    TransferCommitment,
)
from hubble.core.errors import EncodingError, ProofError
from hubble.core.types import Bytes32, Result, StateMerkleProof, TxType
from hubble.encoding.codec import USDT, DecimalCodec
from hubble.encoding.tx import (
    Create2Transfer,
    MassMigration,
    Transfer,
    serialize_mass_migrations,
    serialize_transfers,
)
from hubble.engine.transitions import (
    Transition,
    process_create2_transfer_commit,
    process_mass_migration_commit,
    process_transfer_commit,
)

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class DisputeVerdict:
    """Outcome of replaying one commitment against its predecessor."""

    tx_type: TxType
    path: int
    result: Result
    claimed_root: Bytes32
    post_root: Bytes32

    @property
    def fraudulent(self) -> bool:
        return self.result != Result.OK or self.post_root != self.claimed_root

    def to_fraud_proof(self, batch_id: int) -> FraudProof | None:
        if not self.fraudulent:
            return None
        if self.result != Result.OK:
            description = f"Transition rejected with {self.result.name}"
        else:
            description = "Recomputed state root differs from the committed one"
        return FraudProof(
            tx_type=self.tx_type,
            batch_id=batch_id,
            commitment_index=self.path,
            result=self.result,
            claimed_root=self.claimed_root,
            actual_root=self.post_root,
            description=description,
        )


@dataclass(frozen=True, slots=True)
class FraudProof:
    """What a challenger needs to open a ``disputeTransition*`` call."""

    tx_type: TxType
    batch_id: int
    commitment_index: int
    result: Result
    claimed_root: Bytes32
    actual_root: Bytes32
    description: str


class DisputeReplayer:
    """Replays commitments statelessly, the way the on-chain dispute does.

    ``previous`` supplies the pre-state root and ``target`` the commitment
    under dispute. When batch roots are given, both inclusion proofs are
    checked first and a proof that does not verify raises ``ProofError``.
    """

    def __init__(self, codec: DecimalCodec = USDT, max_txs_per_commit: int = 32) -> None:
        self.codec = codec
        self.max_txs_per_commit = max_txs_per_commit

    def _check_inclusion(
        self,
        previous: CommitmentInclusionProof,
        target: CommitmentInclusionProof,
        previous_batch_root: Bytes32 | None,
        target_batch_root: Bytes32 | None,
    ) -> None:
        if previous_batch_root is not None and not previous.verify(previous_batch_root):
            raise ProofError(f"Previous commitment #{previous.path} is not in its batch")
        if target_batch_root is not None and not target.verify(target_batch_root):
            raise ProofError(f"Target commitment #{target.path} is not in its batch")

    def _verdict(
        self,
        tx_type: TxType,
        target: CommitmentInclusionProof,
        transition: Transition,
    ) -> DisputeVerdict:
        verdict = DisputeVerdict(
            tx_type=tx_type,
            path=target.path,
            result=transition.result,
            claimed_root=target.commitment.state_root,
            post_root=transition.post_root,
        )
        if verdict.fraudulent:
            logger.warning(
                "fraud_detected",
                kind=tx_type.name.lower(),
                path=target.path,
                result=verdict.result.name,
            )
        else:
            logger.debug("commitment_verified", kind=tx_type.name.lower(), path=target.path)
        return verdict

    @staticmethod
    def _full_commitment(target: CommitmentInclusionProof, tx_type: TxType) -> Commitment:
        commitment = target.commitment
        if getattr(commitment, "tx_type", None) != tx_type:
            raise TypeError(
                f"A {tx_type.name.lower()} dispute needs the full {tx_type.name.lower()} commitment"
            )
        return commitment

    def _compression_matches(self, posted: bytes, serialize: Callable[[], bytes]) -> bool:
        try:
            return serialize() == posted
        except EncodingError as exc:
            logger.warning("compression_unencodable", error=str(exc))
            return False

    def replay_transfer(
        self,
        previous: CommitmentInclusionProof,
        target: CommitmentInclusionProof,
        txs: Sequence[Transfer],
        proofs: Sequence[StateMerkleProof],
        previous_batch_root: Bytes32 | None = None,
        target_batch_root: Bytes32 | None = None,
    ) -> DisputeVerdict:
        commitment: TransferCommitment = self._full_commitment(target, TxType.TRANSFER)
        self._check_inclusion(previous, target, previous_batch_root, target_batch_root)
        pre_root = previous.commitment.state_root
        if not self._compression_matches(
            commitment.txs, lambda: serialize_transfers(txs, self.codec)
        ):
            transition = Transition(pre_root, Result.BAD_COMPRESSION)
        else:
            transition = process_transfer_commit(
                pre_root,
                txs,
                proofs,
                commitment.fee_receiver,
                self.codec,
                self.max_txs_per_commit,
            )
        return self._verdict(TxType.TRANSFER, target, transition)

    def replay_mass_migration(
        self,
        previous: CommitmentInclusionProof,
        target: CommitmentInclusionProof,
        txs: Sequence[MassMigration],
        proofs: Sequence[StateMerkleProof],
        previous_batch_root: Bytes32 | None = None,
        target_batch_root: Bytes32 | None = None,
    ) -> DisputeVerdict:
        commitment: MassMigrationCommitment = self._full_commitment(
            target, TxType.MASS_MIGRATION
        )
        self._check_inclusion(previous, target, previous_batch_root, target_batch_root)
        pre_root = previous.commitment.state_root
        if not self._compression_matches(
            commitment.txs, lambda: serialize_mass_migrations(txs, self.codec)
        ):
            transition = Transition(pre_root, Result.BAD_COMPRESSION)
        else:
            transition = process_mass_migration_commit(
                pre_root,
                txs,
                proofs,
                commitment.fee_receiver,
                commitment.spoke_id,
                commitment.token_id,
                commitment.amount,
                commitment.withdraw_root,
                self.codec,
                self.max_txs_per_commit,
            )
        return self._verdict(TxType.MASS_MIGRATION, target, transition)

    def replay_create2_transfer(
        self,
        previous: CommitmentInclusionProof,
        target: CommitmentInclusionProof,
        txs: Sequence[Create2Transfer],
        proofs: Sequence[StateMerkleProof],
        targets: Sequence[tuple[int, int]],
        previous_batch_root: Bytes32 | None = None,
        target_batch_root: Bytes32 | None = None,
    ) -> DisputeVerdict:
        """``targets`` holds the ``(state_index, pubkey_index)`` of each transfer."""
        commitment: Create2TransferCommitment = self._full_commitment(
            target, TxType.CREATE2_TRANSFER
        )
        if len(targets) != len(txs):
            raise ProofError(f"{len(txs)} create2 transfers but {len(targets)} targets")
        self._check_inclusion(previous, target, previous_batch_root, target_batch_root)
        pre_root = previous.commitment.state_root
        if not self._compression_matches(
            commitment.txs,
            lambda: b"".join(
                tx.encode(self.codec, state_index, pubkey_index)
                for tx, (state_index, pubkey_index) in zip(txs, targets)
            ),
        ):
            transition = Transition(pre_root, Result.BAD_COMPRESSION)
        else:
            transition = process_create2_transfer_commit(
                pre_root,
                txs,
                proofs,
                targets,
                commitment.fee_receiver,
                self.codec,
                self.max_txs_per_commit,
            )
        return self._verdict(TxType.CREATE2_TRANSFER, target, transition)
