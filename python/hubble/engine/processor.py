"""Stateful transaction application against a local state tree.

Every transaction is validated completely before the tree is touched, so
a rejected transaction leaves the tree exactly as it found it. A commit
stops at the first rejected transaction and reports ``safe=False``; it
never rolls back the transactions applied before it, callers take a
checkpoint when they need that.
"""

from __future__ import annotations

from typing import Sequence

import structlog

from hubble.core.errors import MissingDataError
from hubble.core.types import (
    DUMMY_STATE,
    Bytes32,
    CommitResult,
    Registration,
    Result,
    Signature,
    State,
    StateMerkleProof,
)
from hubble.encoding.codec import USDT, DecimalCodec
from hubble.encoding.tx import (
    BurnConsent,
    Create2Transfer,
    MassMigration,
    SignedTx,
    Transfer,
    Tx,
)
from hubble.engine.signature import SignatureScheme, check_signature
from hubble.engine.transitions import withdraw_leaf
from hubble.tree.merkle import MerkleAccumulator
from hubble.tree.registry import AccountRegistry
from hubble.tree.state import StateTree

logger = structlog.get_logger()


class TransactionEngine:
    """Validates and applies transactions, recording the witnesses used."""

    def __init__(
        self,
        state_tree: StateTree,
        registry: AccountRegistry | None = None,
        codec: DecimalCodec = USDT,
        max_txs_per_commit: int = 32,
    ) -> None:
        self.state_tree = state_tree
        self.registry = registry
        self.codec = codec
        self.max_txs_per_commit = max_txs_per_commit

    # -- reads --------------------------------------------------------------

    def _load(self, index: int) -> State | None:
        """State at ``index``; None for an unpopulated slot."""
        if index < 0 or index >= len(self.state_tree):
            return None
        state = self.state_tree.get(index).data
        if state is None:
            raise MissingDataError(index, "Account")
        return state

    def _in_tree(self, index: int) -> bool:
        return 0 <= index < self.state_tree.size

    def _proof(self, index: int) -> StateMerkleProof:
        if not self._in_tree(index):
            return StateMerkleProof(path=index, state=DUMMY_STATE, witness=())
        return self.state_tree.get_state_merkle_proof(index, allow_dummy=True)

    def _proof_after(self, index: int, changed: int, leaf: Bytes32) -> StateMerkleProof:
        """Witness for ``index`` as it will look once ``changed`` holds ``leaf``."""
        if not self._in_tree(index):
            return self._proof(index)
        hashes = [item.hash for item in self.state_tree.items]
        hashes[changed] = leaf
        witness = MerkleAccumulator(self.state_tree.level, hashes).siblings(index)
        return StateMerkleProof(
            path=index,
            state=self.state_tree.data(index) or DUMMY_STATE,
            witness=tuple(witness),
        )

    # -- validation ---------------------------------------------------------

    def _check_amount(self, tx: Tx) -> Result:
        if tx.amount <= 0:
            return Result.INVALID_TOKEN_AMOUNT
        if not self.codec.is_encodable(tx.amount) or not self.codec.is_encodable(tx.fee):
            return Result.INVALID_TOKEN_AMOUNT
        return Result.OK

    def _check_sender(self, tx: Tx, sender: State | None, token_type: int) -> Result:
        if sender is None:
            return Result.ACCOUNT_DOES_NOT_EXIST
        if sender.token_type != tx.token_type or tx.token_type != token_type:
            return Result.BAD_FROM_TOKEN_TYPE
        if sender.balance < tx.amount + tx.fee:
            return Result.NOT_ENOUGH_BALANCE
        if sender.nonce != tx.nonce:
            return Result.BAD_NONCE
        return Result.OK

    @staticmethod
    def _check_receiver(receiver: State | None, token_type: int) -> Result:
        if receiver is None:
            return Result.ACCOUNT_DOES_NOT_EXIST
        if receiver.token_type != token_type:
            return Result.BAD_TO_TOKEN_TYPE
        return Result.OK

    # -- single transactions ------------------------------------------------

    def apply_transfer(
        self, tx: Transfer, token_type: int | None = None
    ) -> tuple[list[StateMerkleProof], Result]:
        token = tx.token_type if token_type is None else token_type
        sender = None
        result = self._check_amount(tx)
        if result == Result.OK:
            sender = self._load(tx.from_index)
            result = self._check_sender(tx, sender, token)
        if result != Result.OK:
            return [self._proof(tx.from_index), self._proof(tx.to_index)], result

        new_sender = sender.debit(tx.amount + tx.fee)
        if tx.to_index == tx.from_index:
            receiver = new_sender
        else:
            receiver = self._load(tx.to_index)
        result = self._check_receiver(receiver, token)
        if result != Result.OK:
            receiver_proof = self._proof_after(
                tx.to_index, tx.from_index, new_sender.to_state_leaf()
            )
            return [self._proof(tx.from_index), receiver_proof], result

        sender_proof = self._proof(tx.from_index)
        self.state_tree.update(tx.from_index, new_sender)
        receiver_proof = self._proof(tx.to_index)
        self.state_tree.update(tx.to_index, receiver.credit(tx.amount))
        return [sender_proof, receiver_proof], Result.OK

    def apply_mass_migration(
        self,
        tx: MassMigration,
        token_type: int | None = None,
        spoke_id: int | None = None,
    ) -> tuple[list[StateMerkleProof], Result, Bytes32 | None]:
        token = tx.token_type if token_type is None else token_type
        sender = None
        if spoke_id is not None and tx.spoke_id != spoke_id:
            result = Result.BAD_SPOKE_ID
        else:
            result = self._check_amount(tx)
        if result == Result.OK:
            sender = self._load(tx.from_index)
            result = self._check_sender(tx, sender, token)
        if result != Result.OK:
            return [self._proof(tx.from_index)], result, None

        sender_proof = self._proof(tx.from_index)
        self.state_tree.update(tx.from_index, sender.debit(tx.amount + tx.fee))
        leaf = withdraw_leaf(sender.pubkey_index, token, tx.amount)
        return [sender_proof], Result.OK, leaf

    def apply_create2_transfer(
        self, tx: Create2Transfer, token_type: int | None = None
    ) -> tuple[list[StateMerkleProof], Result, Registration | None]:
        if self.registry is None:
            raise ValueError("Create2 transfers need an account registry")
        token = tx.token_type if token_type is None else token_type
        to_index = self.state_tree.next_empty_index()
        sender = None
        result = self._check_amount(tx)
        if result == Result.OK:
            sender = self._load(tx.from_index)
            result = self._check_sender(tx, sender, token)
        if result == Result.OK:
            if self.registry.is_full or self.state_tree.is_full:
                result = Result.REGISTRATION_FULL
            elif self.registry.is_registered(tx.to_pubkey):
                result = Result.PUBKEY_ALREADY_REGISTERED
        if result != Result.OK:
            proofs = [self._proof(tx.from_index)]
            if not self.state_tree.is_full:
                proofs.append(self._proof(to_index))
            return proofs, result, None

        pubkey_proof = self.registry.get_pda_merkle_proof(
            self.registry.next_empty_index(), allow_dummy=True
        )
        pubkey_index = self.registry.insert_public_key(tx.to_pubkey)
        sender_proof = self._proof(tx.from_index)
        self.state_tree.update(tx.from_index, sender.debit(tx.amount + tx.fee))
        receiver_proof = self._proof(to_index)
        self.state_tree.create_state(State(pubkey_index, token, tx.amount, 0))
        registration = Registration(
            pubkey_index=pubkey_index,
            state_index=to_index,
            pubkey_proof=pubkey_proof,
        )
        return [sender_proof, receiver_proof], Result.OK, registration

    def apply_burn_consent(self, tx: BurnConsent) -> tuple[list[StateMerkleProof], Result]:
        """Raise the sender's burn consent. The consent may not exceed the balance."""
        sender = None
        if tx.amount <= 0 or not self.codec.is_encodable(tx.amount):
            result = Result.INVALID_TOKEN_AMOUNT
        else:
            sender = self._load(tx.from_index)
            result = self._check_consent(tx, sender)
        proof = self._proof(tx.from_index)
        if result != Result.OK:
            return [proof], result
        self.state_tree.update(tx.from_index, sender.consent(tx.amount))
        return [proof], Result.OK

    @staticmethod
    def _check_consent(tx: BurnConsent, sender: State | None) -> Result:
        if sender is None:
            return Result.ACCOUNT_DOES_NOT_EXIST
        if sender.balance < sender.burn + tx.amount:
            return Result.NOT_ENOUGH_BALANCE
        if sender.nonce != tx.nonce:
            return Result.BAD_NONCE
        return Result.OK

    def check_signature(
        self,
        scheme: SignatureScheme,
        signature: Signature,
        txs: Sequence[SignedTx],
        domain: Bytes32,
    ) -> Result:
        if self.registry is None:
            raise ValueError("Signature checks need an account registry")
        return check_signature(
            scheme, signature, txs, self.state_tree, self.registry, domain
        )

    # -- commits ------------------------------------------------------------

    def _start(self, txs: Sequence[Tx]) -> CommitResult:
        commit = CommitResult()
        if len(txs) > self.max_txs_per_commit:
            return commit.reject(self.max_txs_per_commit, Result.TOO_MANY_TX)
        if txs:
            commit.token_type = txs[0].token_type
        return commit

    def _credit_fee(self, commit: CommitResult, fee_receiver: int, index: int) -> None:
        receiver = self._load(fee_receiver)
        token = commit.token_type
        if token is None and receiver is not None:
            token = receiver.token_type
        proof = self._proof(fee_receiver)
        commit.proofs.append(proof)
        result = self._check_receiver(receiver, token)
        if result != Result.OK:
            commit.reject(index, result)
            return
        self.state_tree.update(fee_receiver, receiver.credit(commit.total_fee))

    def _finish(self, kind: str, commit: CommitResult, txs: Sequence[Tx]) -> CommitResult:
        if commit.safe:
            logger.info(
                "commit_processed",
                kind=kind,
                txs=len(txs),
                total_amount=commit.total_amount,
                total_fee=commit.total_fee,
            )
        else:
            logger.warning(
                "transaction_rejected",
                kind=kind,
                index=commit.failed_index,
                result=commit.result.name,
            )
        return commit

    def process_transfer_commit(
        self, txs: Sequence[Transfer], fee_receiver: int
    ) -> CommitResult:
        commit = self._start(txs)
        if not commit.safe:
            return self._finish("transfer", commit, txs)
        for i, tx in enumerate(txs):
            proofs, result = self.apply_transfer(tx, commit.token_type)
            commit.proofs.extend(proofs)
            if result != Result.OK:
                commit.reject(i, result)
                return self._finish("transfer", commit, txs)
            commit.total_amount += tx.amount
            commit.total_fee += tx.fee
        self._credit_fee(commit, fee_receiver, len(txs))
        return self._finish("transfer", commit, txs)

    def process_mass_migration_commit(
        self,
        txs: Sequence[MassMigration],
        fee_receiver: int,
        spoke_id: int | None = None,
    ) -> CommitResult:
        """Every transaction must target ``spoke_id``, by default the first one's spoke."""
        commit = self._start(txs)
        if not commit.safe:
            return self._finish("mass_migration", commit, txs)
        if spoke_id is None and txs:
            spoke_id = txs[0].spoke_id
        for i, tx in enumerate(txs):
            proofs, result, leaf = self.apply_mass_migration(tx, commit.token_type, spoke_id)
            commit.proofs.extend(proofs)
            if result != Result.OK:
                commit.reject(i, result)
                return self._finish("mass_migration", commit, txs)
            commit.withdraw_leaves.append(leaf)
            commit.total_amount += tx.amount
            commit.total_fee += tx.fee
        self._credit_fee(commit, fee_receiver, len(txs))
        return self._finish("mass_migration", commit, txs)

    def process_create2_transfer_commit(
        self, txs: Sequence[Create2Transfer], fee_receiver: int
    ) -> CommitResult:
        commit = self._start(txs)
        if not commit.safe:
            return self._finish("create2_transfer", commit, txs)
        for i, tx in enumerate(txs):
            proofs, result, registration = self.apply_create2_transfer(tx, commit.token_type)
            commit.proofs.extend(proofs)
            if result != Result.OK:
                commit.reject(i, result)
                return self._finish("create2_transfer", commit, txs)
            commit.registrations.append(registration)
            commit.total_amount += tx.amount
            commit.total_fee += tx.fee
        self._credit_fee(commit, fee_receiver, len(txs))
        return self._finish("create2_transfer", commit, txs)

    def process_burn_consent_commit(self, txs: Sequence[BurnConsent]) -> CommitResult:
        commit = CommitResult()
        if len(txs) > self.max_txs_per_commit:
            commit.reject(self.max_txs_per_commit, Result.TOO_MANY_TX)
            return self._finish("burn_consent", commit, txs)
        for i, tx in enumerate(txs):
            proofs, result = self.apply_burn_consent(tx)
            commit.proofs.extend(proofs)
            if result != Result.OK:
                commit.reject(i, result)
                return self._finish("burn_consent", commit, txs)
            commit.total_amount += tx.amount
        return self._finish("burn_consent", commit, txs)
