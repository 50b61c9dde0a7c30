"""
Rollup client unit tests
Tests for hubble/client/rollup.py against a mocked async contract
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from hubble.client.rollup import RollupClient
from hubble.commitment.commitments import (
    Batch,
    MassMigrationCommitment,
    TransferCommitment,
)
from hubble.core.config import ChainConfig

TX_HASH = b"\xab" * 32


def mock_contract() -> MagicMock:
    contract = MagicMock()
    for name in (
        "submitTransfer",
        "submitMassMigration",
        "submitCreate2Transfer",
        "disputeTransitionTransfer",
    ):
        getattr(contract.functions, name).return_value.transact = AsyncMock(
            return_value=TX_HASH
        )
    contract.functions.numOfBatchesSubmitted.return_value.call = AsyncMock(return_value=3)
    contract.functions.invalidBatchMarker.return_value.call = AsyncMock(return_value=0)
    return contract


class TestSubmission:
    """Tests for batch submission."""

    def test_submit_transfer_sends_stake(self):
        contract = mock_contract()
        client = RollupClient(contract, stake_amount=10**17)
        batch = TransferCommitment(fee_receiver=2, txs=b"\x01" * 12).to_batch()

        tx_hash = asyncio.run(client.submit_transfer(batch))

        assert tx_hash == TX_HASH
        contract.functions.submitTransfer.assert_called_once_with(*batch.submit_args())
        contract.functions.submitTransfer.return_value.transact.assert_awaited_once_with(
            {"value": 10**17}
        )

    def test_submit_mass_migration_with_sender(self):
        contract = mock_contract()
        client = RollupClient(contract, stake_amount=5, sender="0xabc")
        batch = MassMigrationCommitment(spoke_id=1).to_batch()

        asyncio.run(client.submit_mass_migration(batch))

        contract.functions.submitMassMigration.return_value.transact.assert_awaited_once_with(
            {"value": 5, "from": "0xabc"}
        )


class TestDispute:
    """Tests for dispute calls."""

    def test_dispute_transfer_encodes_structs(self, state_tree):
        contract = mock_contract()
        client = RollupClient(contract, stake_amount=0)
        previous = Batch([TransferCommitment(state_root=state_tree.root)])
        target = Batch([TransferCommitment(state_root=b"\x02" * 32)])
        proofs = [state_tree.get_state_merkle_proof(0)]

        asyncio.run(
            client.dispute_transition_transfer(
                4, previous.proof_compressed(0), target.proof(0), proofs
            )
        )

        args = contract.functions.disputeTransitionTransfer.call_args.args
        assert args[0] == 4
        assert args[1]["commitment"]["bodyRoot"] == previous.commitments[0].body_root
        assert args[2]["commitment"]["body"]["feeReceiver"] == 0
        assert args[3][0]["accountIP"]["pathToAccount"] == 0
        contract.functions.disputeTransitionTransfer.return_value.transact.assert_awaited_once_with(
            {}
        )


class TestReads:
    """Tests for contract reads."""

    def test_counters(self):
        client = RollupClient(mock_contract(), stake_amount=0)
        assert asyncio.run(client.num_of_batches_submitted()) == 3
        assert asyncio.run(client.invalid_batch_marker()) == 0

    def test_web3_requires_connection(self):
        client = RollupClient(mock_contract(), stake_amount=0)
        with pytest.raises(RuntimeError):
            client.web3

    def test_connect_needs_address(self):
        with pytest.raises(ValueError):
            asyncio.run(RollupClient.connect(ChainConfig(), abi=[]))
