"""Async client for the on-chain rollup contract."""

from __future__ import annotations

from typing import Any, Sequence

import structlog
from web3 import AsyncHTTPProvider, AsyncWeb3

from hubble.commitment.commitments import (
    CommitmentInclusionProof,
    Create2TransferBatch,
    MassMigrationBatch,
    TransferBatch,
)
from hubble.core.config import ChainConfig
from hubble.core.types import Bytes32, StateMerkleProof

logger = structlog.get_logger()


class RollupClient:
    """Submits batches and disputes through an async web3 contract handle.

    The contract is injected so callers (and tests) decide how it is built;
    ``connect`` covers the usual HTTP provider case.
    """

    def __init__(
        self,
        contract: Any,
        stake_amount: int,
        sender: str | None = None,
        web3: AsyncWeb3 | None = None,
    ) -> None:
        self.contract = contract
        self.stake_amount = stake_amount
        self.sender = sender
        self._web3 = web3

    @classmethod
    async def connect(
        cls,
        config: ChainConfig,
        abi: Sequence[dict[str, Any]],
        sender: str | None = None,
    ) -> RollupClient:
        if config.rollup_address is None:
            raise ValueError("chain.rollup_address must be set to reach the rollup")
        web3 = AsyncWeb3(AsyncHTTPProvider(config.rpc_url))
        chain_id = await web3.eth.chain_id
        contract = web3.eth.contract(
            address=AsyncWeb3.to_checksum_address(config.rollup_address), abi=abi
        )
        logger.info("connected_to_rollup", chain_id=chain_id, address=config.rollup_address)
        return cls(contract, config.stake_amount, sender=sender, web3=web3)

    async def close(self) -> None:
        if self._web3 is not None and self._web3.provider:
            await self._web3.provider.disconnect()
        self._web3 = None

    @property
    def web3(self) -> AsyncWeb3:
        if self._web3 is None:
            raise RuntimeError("Not connected. Call connect() first.")
        return self._web3

    def _params(self, value: int = 0) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if value:
            params["value"] = value
        if self.sender is not None:
            params["from"] = self.sender
        return params

    async def _transact(self, name: str, *args: Any, value: int = 0) -> Bytes32:
        tx_hash = await getattr(self.contract.functions, name)(*args).transact(
            self._params(value)
        )
        logger.info("rollup_tx_sent", method=name, tx_hash=bytes(tx_hash).hex())
        return bytes(tx_hash)

    async def wait(self, tx_hash: Bytes32) -> Any:
        receipt = await self.web3.eth.wait_for_transaction_receipt(tx_hash)
        if receipt["status"] != 1:
            logger.error("rollup_tx_reverted", tx_hash=tx_hash.hex())
        return receipt

    # -- submission ---------------------------------------------------------

    async def submit_transfer(self, batch: TransferBatch) -> Bytes32:
        logger.info("batch_submitting", kind="transfer", commitments=len(batch))
        return await self._transact(
            "submitTransfer", *batch.submit_args(), value=self.stake_amount
        )

    async def submit_mass_migration(self, batch: MassMigrationBatch) -> Bytes32:
        logger.info("batch_submitting", kind="mass_migration", commitments=len(batch))
        return await self._transact(
            "submitMassMigration", *batch.submit_args(), value=self.stake_amount
        )

    async def submit_create2_transfer(self, batch: Create2TransferBatch) -> Bytes32:
        logger.info("batch_submitting", kind="create2_transfer", commitments=len(batch))
        return await self._transact(
            "submitCreate2Transfer", *batch.submit_args(), value=self.stake_amount
        )

    # -- disputes -----------------------------------------------------------

    async def _dispute(
        self,
        name: str,
        batch_id: int,
        previous: CommitmentInclusionProof,
        target: CommitmentInclusionProof,
        proofs: Sequence[StateMerkleProof],
    ) -> Bytes32:
        logger.warning("dispute_opening", method=name, batch_id=batch_id, path=target.path)
        return await self._transact(
            name,
            batch_id,
            previous.to_sol_struct(),
            target.to_sol_struct(),
            [proof.to_sol_struct() for proof in proofs],
        )

    async def dispute_transition_transfer(
        self,
        batch_id: int,
        previous: CommitmentInclusionProof,
        target: CommitmentInclusionProof,
        proofs: Sequence[StateMerkleProof],
    ) -> Bytes32:
        return await self._dispute(
            "disputeTransitionTransfer", batch_id, previous, target, proofs
        )

    async def dispute_transition_mass_migration(
        self,
        batch_id: int,
        previous: CommitmentInclusionProof,
        target: CommitmentInclusionProof,
        proofs: Sequence[StateMerkleProof],
    ) -> Bytes32:
        return await self._dispute(
            "disputeTransitionMassMigration", batch_id, previous, target, proofs
        )

    async def dispute_transition_create2_transfer(
        self,
        batch_id: int,
        previous: CommitmentInclusionProof,
        target: CommitmentInclusionProof,
        proofs: Sequence[StateMerkleProof],
    ) -> Bytes32:
        return await self._dispute(
            "disputeTransitionCreate2Transfer", batch_id, previous, target, proofs
        )

    # -- reads --------------------------------------------------------------

    async def num_of_batches_submitted(self) -> int:
        return await self.contract.functions.numOfBatchesSubmitted().call()

    async def invalid_batch_marker(self) -> int:
        return await self.contract.functions.invalidBatchMarker().call()
