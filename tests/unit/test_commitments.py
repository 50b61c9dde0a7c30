"""
Commitment and batch unit tests
Tests for hubble/commitment/commitments.py
"""
import pytest
from eth_utils import keccak

from hubble.commitment.commitments import (
    Batch,
    Create2TransferBatch,
    Create2TransferCommitment,
    MassMigrationBatch,
    MassMigrationCommitment,
    TransferBatch,
    TransferCommitment,
)
from hubble.core.errors import EmptyBatchError, IndexOutOfRangeError
from hubble.tree.merkle import zero_hashes


def word(value: int) -> bytes:
    return value.to_bytes(32, "big")


def commitments(n: int) -> list[TransferCommitment]:
    return [
        TransferCommitment(
            state_root=keccak(bytes([i])),
            account_root=b"\x0a" * 32,
            signature=(i, i + 1),
            fee_receiver=i,
            txs=bytes([i]) * 12,
        )
        for i in range(n)
    ]


class TestCommitmentHash:
    """Tests for body roots and commitment hashes."""

    def test_transfer_body_root_layout(self):
        c = TransferCommitment(
            account_root=b"\x0a" * 32,
            signature=(7, 8),
            fee_receiver=3,
            txs=b"\x01\x02\x03",
        )
        expected = keccak(b"\x0a" * 32 + word(7) + word(8) + word(3) + b"\x01\x02\x03")
        assert c.body_root == expected

    def test_mass_migration_body_root_layout(self):
        c = MassMigrationCommitment(
            account_root=b"\x0b" * 32,
            signature=(1, 2),
            spoke_id=4,
            withdraw_root=b"\x0c" * 32,
            token_id=5,
            amount=6,
            fee_receiver=7,
            txs=b"\xff",
        )
        expected = keccak(
            b"\x0b" * 32
            + word(1)
            + word(2)
            + word(4)
            + b"\x0c" * 32
            + word(5)
            + word(6)
            + word(7)
            + b"\xff"
        )
        assert c.body_root == expected

    def test_hash_is_keccak_of_roots(self):
        c = commitments(1)[0]
        assert c.hash() == keccak(c.state_root + c.body_root)
        assert c.to_compressed().hash() == c.hash()

    def test_defaults(self):
        c = TransferCommitment()
        assert c.state_root == b"\x00" * 32
        assert c.signature == (0, 0)
        assert c.txs == b""

    def test_sol_struct(self):
        c = MassMigrationCommitment(spoke_id=2, token_id=1)
        struct = c.to_sol_struct()
        assert struct["stateRoot"] == c.state_root
        assert struct["body"]["spokeID"] == 2
        assert struct["body"]["tokenID"] == 1


class TestBatch:
    """Tests for batch roots and inclusion proofs."""

    def test_empty_batch(self):
        with pytest.raises(EmptyBatchError):
            Batch([])

    def test_single_commitment_root(self):
        c1 = commitments(1)[0]
        assert Batch([c1]).commitment_root == keccak(c1.hash() + zero_hashes(0)[0])

    def test_two_commitment_root(self):
        c1, c2 = commitments(2)
        assert Batch([c1, c2]).commitment_root == keccak(c1.hash() + c2.hash())

    def test_post_state_root(self):
        batch = Batch(commitments(3))
        assert batch.post_state_root == commitments(3)[-1].state_root

    def test_proofs_verify(self):
        batch = TransferBatch(commitments(5))
        for i in range(5):
            assert batch.proof(i).verify(batch.commitment_root)
            assert batch.proof_compressed(i).verify(batch.commitment_root)
        assert not batch.proof(0).verify(b"\x00" * 32)

    def test_witness_out_of_range(self):
        with pytest.raises(IndexOutOfRangeError):
            Batch(commitments(2)).witness(2)

    def test_to_batch_picks_kind(self):
        assert isinstance(TransferCommitment().to_batch(), TransferBatch)
        assert isinstance(Create2TransferCommitment().to_batch(), Create2TransferBatch)
        assert isinstance(MassMigrationCommitment().to_batch(), MassMigrationBatch)

    def test_mass_migration_submit_args(self):
        c = MassMigrationCommitment(spoke_id=1, token_id=2, amount=3, fee_receiver=4)
        state_roots, signatures, meta, withdraw_roots, txs = c.to_batch().submit_args()
        assert meta == [[1, 2, 3, 4]]
        assert signatures == [[0, 0]]
        assert withdraw_roots == [c.withdraw_root]

    def test_str(self):
        assert str(Batch(commitments(2))).startswith("<Batch 2 commitments root=0x")
